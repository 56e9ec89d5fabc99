import logging
from typing import Any, Dict, List

import httpx

from zipforecast.errors import ResolverUnavailable
from zipforecast.models import UNKNOWN_POSTAL_CODE, Found, Location, NotFound, Resolution

logger = logging.getLogger(__name__)

# Matches at these levels are too coarse for a local forecast.
COARSE_ADDRESS_TYPES = frozenset({"country", "state"})


class NominatimGeocoder:
    """Resolve free-text addresses through Nominatim (OpenStreetMap)."""

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "zipforecast/1.0",
        country_codes: str = "us",
        timeout_seconds: float = 5.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.country_codes = country_codes
        self.timeout = timeout_seconds

    async def resolve(self, text: str) -> Resolution:
        query = (text or "").strip()
        if not query:
            return NotFound("blank address")

        url = f"{self.base_url}/search"
        params = {
            "q": query,
            "format": "jsonv2",
            "addressdetails": 1,
            "limit": 1,
            "countrycodes": self.country_codes,
        }
        headers = {"User-Agent": self.user_agent}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(url, params=params, headers=headers)
                r.raise_for_status()
                results: List[Dict[str, Any]] = r.json()
        except httpx.HTTPStatusError as exc:
            logger.error("Geocoding error for address %r: HTTP %s", query, exc.response.status_code)
            raise ResolverUnavailable(f"Nominatim returned status {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("Geocoding error for address %r: %s", query, exc)
            raise ResolverUnavailable(f"Nominatim request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("Geocoding error for address %r: invalid JSON", query)
            raise ResolverUnavailable("Nominatim returned invalid JSON") from exc

        if not isinstance(results, list) or not all(isinstance(m, dict) for m in results):
            logger.error("Unexpected Nominatim response for %r: %.200r", query, results)
            raise ResolverUnavailable("Nominatim returned an unexpected response")
        if not results:
            return NotFound(f"no match for {query!r}")

        match = results[0]
        address_type = match.get("addresstype")
        if address_type in COARSE_ADDRESS_TYPES:
            return NotFound(f"{query!r} only matched a {address_type}")

        try:
            location = Location(
                latitude=float(match["lat"]),
                longitude=float(match["lon"]),
                postal_code=_postal_code(match),
                formatted_address=match.get("display_name", query),
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Unexpected Nominatim result for %r: %r", query, exc)
            raise ResolverUnavailable("Nominatim returned an unexpected result") from exc
        return Found(location)


def _postal_code(match: Dict[str, Any]) -> str:
    address = match.get("address") or {}
    return address.get("postcode") or UNKNOWN_POSTAL_CODE
