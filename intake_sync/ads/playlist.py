"""Playlist composition: operator slides, running campaigns, promo slide."""
from __future__ import annotations

import datetime
import logging
from typing import Iterable, List, Optional, Sequence

from .models import AdPlaylistItem, CampaignRecord, CampaignSlide, CustomSlide, PromoSlide

logger = logging.getLogger(__name__)

DEFAULT_CAMPAIGN_SECONDS = 5

DEFAULT_SLIDES: tuple[CustomSlide, ...] = (
    CustomSlide(
        id="default-1",
        title="Consegna Veloce",
        description="Lascia il tuo dispositivo e ritiralo riparato",
        icon="smartphone",
        gradient="from-blue-600 via-blue-500 to-cyan-400",
    ),
    CustomSlide(
        id="default-2",
        title="Partner Certificato",
        description="Riparazioni garantite da tecnici qualificati",
        icon="shield",
        gradient="from-emerald-600 via-green-500 to-teal-400",
    ),
    CustomSlide(
        id="default-3",
        title="Preventivo Gratuito",
        description="Ricevi un preventivo senza impegno",
        icon="wrench",
        gradient="from-violet-600 via-purple-500 to-fuchsia-400",
    ),
)


def running_campaigns(
    records: Iterable[CampaignRecord],
    today: datetime.date,
    *,
    default_seconds: int = DEFAULT_CAMPAIGN_SECONDS,
) -> List[CampaignSlide]:
    """Turn campaign rows into slides, keeping only active ones whose window contains ``today``."""
    slides: List[CampaignSlide] = []
    for record in records:
        if not record.is_running(today):
            continue
        slides.append(
            CampaignSlide(
                id=f"paid-{record.id}",
                campaign_id=record.id,
                title=record.title,
                description=record.description,
                image_url=record.image_url,
                gradient=record.gradient,
                display_duration_ms=(record.display_seconds or default_seconds) * 1000,
                enhanced_features=record.enhanced_features,
            )
        )
    return slides


def build_playlist(
    operator_slides: Sequence[CustomSlide],
    campaigns: Iterable[CampaignRecord],
    *,
    today: Optional[datetime.date] = None,
    promo: Optional[PromoSlide] = None,
    campaign_default_seconds: int = DEFAULT_CAMPAIGN_SECONDS,
) -> List[AdPlaylistItem]:
    """
    Compose the effective playlist.

    Order: operator slides (built-in defaults when there are none), then running
    paid campaigns, then the promo slide when the location has no slides of its
    own. Never returns an empty list.
    """
    today = today or datetime.date.today()
    base: List[AdPlaylistItem] = list(operator_slides) if operator_slides else list(DEFAULT_SLIDES)
    paid = running_campaigns(campaigns, today, default_seconds=campaign_default_seconds)
    playlist: List[AdPlaylistItem] = [*base, *paid]
    if not operator_slides and promo is not None:
        playlist.append(promo)
    logger.debug(
        "playlist built: %d slides (%s), %d campaigns, promo=%s",
        len(base),
        "custom" if operator_slides else "default",
        len(paid),
        bool(not operator_slides and promo is not None),
    )
    return playlist


__all__ = ["DEFAULT_CAMPAIGN_SECONDS", "DEFAULT_SLIDES", "build_playlist", "running_campaigns"]
