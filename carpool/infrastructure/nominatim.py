"""
Nominatim geocoding adapter.

* ``search``  -- ``/search`` free-text query, results kept in provider order.
* ``lookup``  -- ``/lookup`` by OSM reference (the Photon suggestion token).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from carpool.domain.entities import Coordinate
from carpool.domain.errors import ProviderError

from .providers import GeocodingProvider, PlaceCandidate

logger = logging.getLogger(__name__)


class NominatimGeocodingProvider(GeocodingProvider):
    def __init__(self, client: httpx.AsyncClient, base_url: str, limit: int = 5):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.limit = limit

    async def search(self, text: str) -> list[PlaceCandidate]:
        rows = await self._get_json(
            "/search", {"q": text, "format": "jsonv2", "limit": self.limit}
        )
        return [_to_candidate(row) for row in rows]

    async def lookup(self, token: Any) -> Optional[PlaceCandidate]:
        rows = await self._get_json(
            "/lookup", {"osm_ids": str(token), "format": "jsonv2"}
        )
        return _to_candidate(rows[0]) if rows else None

    async def _get_json(self, path: str, params: dict[str, Any]) -> list[dict]:
        try:
            response = await self.client.get(f"{self.base_url}{path}", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"Nominatim request failed: {exc}") from exc

        if not isinstance(data, list):
            raise ProviderError(f"Unexpected Nominatim payload for {path}")
        logger.debug("Nominatim %s returned %d rows", path, len(data))
        return data


def _to_candidate(row: dict[str, Any]) -> PlaceCandidate:
    try:
        coordinate = Coordinate(float(row["lat"]), float(row["lon"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderError("Malformed Nominatim result") from exc
    name = row.get("name") or row.get("display_name") or ""
    return PlaceCandidate(display_name=name, coordinate=coordinate)
