"""HTTP client for the display-config read contract."""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from ..ads.models import DisplayConfig
from ..config import Settings

logger = logging.getLogger(__name__)


class DisplayConfigClient:
    """Thin wrapper around ``GET /locations/{id}/display-config``."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.config_api_url,
            timeout=self.settings.polling.request_timeout_seconds,
        )

    async def fetch_display_config(self) -> Optional[DisplayConfig]:
        """Campaigns, operator slides and branding for this location, or None on failure."""
        path = f"/locations/{self.settings.location_id}/display-config"
        try:
            response = await self._client.get(path)
            response.raise_for_status()
            return DisplayConfig.model_validate(response.json())
        except httpx.TimeoutException:
            logger.error("display_config.fetch: request timeout")
            return None
        except httpx.NetworkError as e:
            logger.error("display_config.fetch: network error - %s", e)
            return None
        except httpx.HTTPStatusError as e:
            logger.error("display_config.fetch: HTTP %d - %s", e.response.status_code, e.response.text)
            return None
        except (ValueError, ValidationError) as e:
            logger.error("display_config.fetch: invalid response body - %s", e)
            return None
        except Exception as e:
            logger.exception("display_config.fetch: unexpected error - %s", e)
            return None

    async def aclose(self) -> None:
        try:
            await self._client.aclose()
        except Exception as e:
            logger.warning("Error closing HTTP client: %s", e)


__all__ = ["DisplayConfigClient"]
