"""
OSRM directions adapter.

Sole responsibility:
- Talk to OSRM via HTTP
- Convert internal (lat, lon) -> OSRM (lon,lat)
- Return normalised ``RouteCandidate`` objects

``NoRoute`` is a valid answer (empty list); every other non-``Ok`` code is a
provider failure.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from carpool.domain.entities import Coordinate
from carpool.domain.errors import ProviderError

from .providers import DirectionsProvider, RouteCandidate

logger = logging.getLogger(__name__)

NO_ROUTE_CODES = {"NoRoute", "NoSegment"}


class OSRMDirectionsProvider(DirectionsProvider):
    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    @staticmethod
    def format_coordinates(coords: list[Coordinate]) -> str:
        """Convert coordinates to OSRM format 'lon,lat;lon,lat;...'"""
        return ";".join(f"{c.longitude},{c.latitude}" for c in coords)

    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: str = "driving",
    ) -> list[RouteCandidate]:
        coordinates = self.format_coordinates([origin, destination])
        url = f"{self.base_url}/route/v1/{profile}/{coordinates}"
        try:
            response = await self.client.get(
                url,
                params={"overview": "full", "geometries": "geojson"},
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise ProviderError(f"OSRM request failed: {exc}") from exc
        if not isinstance(data, dict):
            raise ProviderError("Unexpected OSRM payload")

        code = data.get("code")
        if code in NO_ROUTE_CODES:
            logger.info("OSRM found no route (%s)", code)
            return []
        if code != "Ok":
            raise ProviderError(f"OSRM error: {data.get('message', code or 'Unknown error')}")

        return [_to_candidate(route) for route in data.get("routes", []) or []]


def _to_candidate(route: dict[str, Any]) -> RouteCandidate:
    try:
        points = tuple(
            Coordinate(float(lat), float(lon))
            for lon, lat in route["geometry"]["coordinates"]
        )
        return RouteCandidate(
            points=points,
            distance_meters=float(route["distance"]),
            duration_seconds=float(route["duration"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderError("Malformed OSRM route") from exc
