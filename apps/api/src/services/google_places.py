"""Google Places (New) client: fetches a place's regular opening hours."""
from typing import List, Optional

import httpx

from src.core.config import get_settings

FIELD_MASK = "regularOpeningHours"


class GooglePlacesError(Exception):
    """Google Places could not be reached or returned an error."""


class GooglePlacesClient:
    """Thin wrapper around GET /places/{place_id}."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.GOOGLE_PLACES_API_KEY
        self._base_url = (base_url or settings.GOOGLE_PLACES_BASE_URL).rstrip("/")
        self._timeout = timeout or settings.GOOGLE_PLACES_TIMEOUT_SECONDS
        self._transport = transport

    def is_configured(self) -> bool:
        return bool(self._api_key)

    def fetch_opening_periods(self, place_id: str) -> List[dict]:
        """
        Return regularOpeningHours.periods for a place.

        A place without published hours yields an empty list.

        Raises:
            GooglePlacesError: missing API key, network failure or non-2xx reply
        """
        if not self.is_configured():
            raise GooglePlacesError("GOOGLE_PLACES_API_KEY is not configured")

        url = f"{self._base_url}/places/{place_id}"
        headers = {
            "X-Goog-Api-Key": self._api_key,
            "X-Goog-FieldMask": FIELD_MASK,
        }
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise GooglePlacesError(f"Google Places request failed: {e}") from e

        if not response.is_success:
            raise GooglePlacesError(
                f"Google Places error {response.status_code}: {response.text[:500] if response.text else ''}"
            )

        data = response.json() if response.content else {}
        return (data.get("regularOpeningHours") or {}).get("periods") or []
