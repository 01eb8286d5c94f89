"""Advertisement playlist and rotation for the standby screen."""
