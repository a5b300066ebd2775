"""
Photon autocomplete adapter.

Sole responsibility: talk to Photon over HTTP and normalise GeoJSON features
into ``Suggestion`` objects.  The suggestion token is the OSM reference
(``"N123"``, ``"W456"``, ...) which Nominatim's lookup endpoint accepts.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

import httpx

from carpool.domain.entities import Suggestion
from carpool.domain.errors import ProviderError

from .providers import SuggestionProvider

logger = logging.getLogger(__name__)


class PhotonSuggestionProvider(SuggestionProvider):
    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def suggest(self, text: str, limit: int = 5) -> AsyncIterator[list[Suggestion]]:
        try:
            response = await self.client.get(
                f"{self.base_url}/api/", params={"q": text, "limit": limit}
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"Photon request failed: {exc}") from exc
        if not isinstance(data, dict):
            raise ProviderError("Unexpected Photon payload")

        features = data.get("features", []) or []
        suggestions = [_to_suggestion(f) for f in features[:limit]]
        logger.debug("Photon returned %d suggestions for %r", len(suggestions), text)
        yield [s for s in suggestions if s is not None]


def _to_suggestion(feature: dict[str, Any]) -> Suggestion | None:
    props = feature.get("properties", {}) or {}
    street = " ".join(
        part for part in (props.get("housenumber"), props.get("street")) if part
    )
    title = props.get("name") or street
    if not title:
        return None

    locality = [props.get("city"), props.get("state"), props.get("country")]
    if props.get("name") and street:
        locality.insert(0, street)
    subtitle = ", ".join(part for part in locality if part)

    token = None
    if props.get("osm_type") and props.get("osm_id") is not None:
        token = f"{props['osm_type']}{props['osm_id']}"
    return Suggestion(title=title, subtitle=subtitle, token=token)
