"""Advertisement content and the display-config read contract."""
from __future__ import annotations

import datetime
import enum
import logging
from typing import Any, List, Literal, Optional, Union

from pydantic import Field, ValidationError, field_validator

from ..models import WireModel

logger = logging.getLogger(__name__)


class VisualStyle(str, enum.Enum):
    GRADIENT = "gradient"
    IMAGE = "image"


class CustomSlide(WireModel):
    """Operator-authored slide from the location settings."""

    kind: Literal["custom"] = "custom"
    id: str
    title: str
    description: str = ""
    visual_style: VisualStyle = VisualStyle.GRADIENT
    gradient: Optional[str] = None
    image_url: Optional[str] = None
    icon: Optional[str] = None
    display_duration_ms: Optional[int] = Field(None, gt=0)


class Countdown(WireModel):
    end_date: Optional[datetime.date] = None
    text: str = "Offerta valida ancora"


class QrCode(WireModel):
    destination_url: str


class EnhancedFeatures(WireModel):
    logo_url: Optional[str] = None
    countdown: Optional[Countdown] = None
    qr_code: Optional[QrCode] = None


class CampaignRecord(WireModel):
    """Paid campaign row as served by the data store."""

    id: str
    title: str
    description: str = ""
    image_url: Optional[str] = None
    gradient: Optional[str] = None
    icon: Optional[str] = None
    display_seconds: Optional[int] = Field(None, gt=0)
    status: str = "pending"
    start_date: datetime.date
    end_date: datetime.date
    enhanced_features: EnhancedFeatures = Field(default_factory=EnhancedFeatures)

    def is_running(self, today: datetime.date) -> bool:
        return self.status == "active" and self.start_date <= today <= self.end_date


class CampaignSlide(WireModel):
    """A running paid campaign, ready for rotation."""

    kind: Literal["campaign"] = "campaign"
    id: str
    campaign_id: str
    title: str
    description: str = ""
    image_url: Optional[str] = None
    gradient: Optional[str] = None
    display_duration_ms: int = Field(..., gt=0)
    enhanced_features: EnhancedFeatures = Field(default_factory=EnhancedFeatures)


class PromoSlide(WireModel):
    """Synthetic "this space is available" slide."""

    kind: Literal["promo"] = "promo"
    id: str = "qr-promo"
    title: str
    description: str = ""
    gradient: Optional[str] = "from-amber-600 via-orange-500 to-red-500"
    qr_url: Optional[str] = None
    display_duration_ms: Optional[int] = None


AdPlaylistItem = Union[CustomSlide, CampaignSlide, PromoSlide]


class LocationBranding(WireModel):
    name: str = ""
    logo_url: Optional[str] = None


class TickerMessage(WireModel):
    """One line of the scrolling ticker under the slides."""

    id: str
    text: str
    emoji: Optional[str] = None


class DisplayConfig(WireModel):
    """Everything the display reads from the data store."""

    campaigns: List[CampaignRecord] = Field(default_factory=list)
    operator_slides: List[CustomSlide] = Field(default_factory=list)
    location_branding: LocationBranding = Field(default_factory=LocationBranding)
    slide_interval_ms: Optional[int] = Field(None, gt=0)
    ticker_enabled: bool = True
    ticker_speed: Optional[int] = Field(None, gt=0, description="Seconds for one full ticker scroll")
    ticker_messages: List[TickerMessage] = Field(default_factory=list)
    # Headlines from the location's RSS feed, resolved by the config service
    ticker_rss_items: List[TickerMessage] = Field(default_factory=list)

    @field_validator("campaigns", mode="before")
    @classmethod
    def drop_invalid_campaigns(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, list):
            return value
        records: List[CampaignRecord] = []
        for row in value:
            try:
                records.append(row if isinstance(row, CampaignRecord) else CampaignRecord.model_validate(row))
            except ValidationError as exc:
                row_id = row.get("id") if isinstance(row, dict) else None
                logger.warning("Skipping invalid campaign %s: %d errors", row_id, exc.error_count())
        return records


__all__ = [
    "AdPlaylistItem",
    "CampaignRecord",
    "CampaignSlide",
    "Countdown",
    "CustomSlide",
    "DisplayConfig",
    "EnhancedFeatures",
    "LocationBranding",
    "PromoSlide",
    "QrCode",
    "TickerMessage",
    "VisualStyle",
]
