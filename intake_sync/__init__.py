"""Operator ↔ customer display synchronization for repair-shop intake kiosks."""

__version__ = "0.1.0"
