"""
Static in-memory gazetteer.

Offline backend implementing all three provider boundaries from a small set
of Paris-area landmarks, so the API can be demoed (``PROVIDER_BACKEND=static``)
and tests can run without network access.

Assumption
----------
Routes are straight lines between the two points, subdivided into a few
segments.  Road distance is approximated as ``ROAD_FACTOR x haversine`` and
duration from a fixed average speed.  Places in different ``network`` groups
have no road connection (Corsica is an island), which yields ``NoRoute``.
"""

from __future__ import annotations

from typing import Any, AsyncIterator, Optional

from carpool.domain.distance import haversine_m
from carpool.domain.entities import Coordinate, Suggestion

from .providers import (
    DirectionsProvider,
    GeocodingProvider,
    PlaceCandidate,
    RouteCandidate,
    SuggestionProvider,
)

ROAD_FACTOR = 1.3
SEGMENTS = 8

PLACES = [
    {"key": "eiffel-tower", "name": "Eiffel Tower", "subtitle": "Champ de Mars, Paris, France",
     "lat": 48.8584, "lng": 2.2945, "network": "mainland"},
    {"key": "louvre-museum", "name": "Louvre Museum", "subtitle": "Rue de Rivoli, Paris, France",
     "lat": 48.8606, "lng": 2.3376, "network": "mainland"},
    {"key": "notre-dame", "name": "Notre-Dame de Paris", "subtitle": "Île de la Cité, Paris, France",
     "lat": 48.8530, "lng": 2.3499, "network": "mainland"},
    {"key": "arc-de-triomphe", "name": "Arc de Triomphe", "subtitle": "Place Charles de Gaulle, Paris, France",
     "lat": 48.8738, "lng": 2.2950, "network": "mainland"},
    {"key": "sacre-coeur", "name": "Sacré-Cœur", "subtitle": "Montmartre, Paris, France",
     "lat": 48.8867, "lng": 2.3431, "network": "mainland"},
    {"key": "gare-du-nord", "name": "Gare du Nord", "subtitle": "Rue de Dunkerque, Paris, France",
     "lat": 48.8809, "lng": 2.3553, "network": "mainland"},
    {"key": "orly-airport", "name": "Paris Orly Airport", "subtitle": "Orly, France",
     "lat": 48.7262, "lng": 2.3652, "network": "mainland"},
    {"key": "cdg-airport", "name": "Paris Charles de Gaulle Airport", "subtitle": "Roissy-en-France, France",
     "lat": 49.0097, "lng": 2.5479, "network": "mainland"},
    {"key": "versailles", "name": "Palace of Versailles", "subtitle": "Versailles, France",
     "lat": 48.8049, "lng": 2.1204, "network": "mainland"},
    {"key": "ajaccio-citadel", "name": "Ajaccio Citadel", "subtitle": "Ajaccio, Corsica, France",
     "lat": 41.9193, "lng": 8.7386, "network": "corsica"},
]


def _normalise(text: str) -> str:
    return " ".join(text.casefold().split())


def _matches(place: dict[str, Any], text: str) -> bool:
    haystack = _normalise(f"{place['name']} {place['subtitle']}")
    return all(word in haystack for word in _normalise(text).split())


def _rank(place: dict[str, Any], text: str) -> int:
    name, query = _normalise(place["name"]), _normalise(text)
    if name == query:
        return 0
    if name.startswith(query):
        return 1
    return 2


class StaticGazetteer(SuggestionProvider, GeocodingProvider, DirectionsProvider):
    def __init__(self, places: Optional[list[dict[str, Any]]] = None, average_speed_kmh: float = 40.0):
        self.places = {p["key"]: p for p in (places or PLACES)}
        self.average_speed_kmh = average_speed_kmh

    def _find(self, text: str) -> list[dict[str, Any]]:
        if not text.strip():
            return []
        hits = [p for p in self.places.values() if _matches(p, text)]
        return sorted(hits, key=lambda p: _rank(p, text))

    def _network_of(self, coordinate: Coordinate) -> Optional[str]:
        for p in self.places.values():
            if (p["lat"], p["lng"]) == (coordinate.latitude, coordinate.longitude):
                return p["network"]
        return None

    # ── SuggestionProvider ────────────────────────────────────────────

    async def suggest(self, text: str, limit: int = 5) -> AsyncIterator[list[Suggestion]]:
        yield [
            Suggestion(title=p["name"], subtitle=p["subtitle"], token=p["key"])
            for p in self._find(text)[:limit]
        ]

    # ── GeocodingProvider ─────────────────────────────────────────────

    async def search(self, text: str) -> list[PlaceCandidate]:
        return [_candidate(p) for p in self._find(text)]

    async def lookup(self, token: Any) -> Optional[PlaceCandidate]:
        place = self.places.get(token)
        return _candidate(place) if place else None

    # ── DirectionsProvider ────────────────────────────────────────────

    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: str = "driving",
    ) -> list[RouteCandidate]:
        origin_net = self._network_of(origin)
        dest_net = self._network_of(destination)
        if origin_net and dest_net and origin_net != dest_net:
            return []

        straight = haversine_m(
            origin.latitude, origin.longitude,
            destination.latitude, destination.longitude,
        )
        distance = straight * ROAD_FACTOR
        duration = distance / (self.average_speed_kmh * 1000 / 3600)
        interior = tuple(
            Coordinate(
                origin.latitude + (destination.latitude - origin.latitude) * i / SEGMENTS,
                origin.longitude + (destination.longitude - origin.longitude) * i / SEGMENTS,
            )
            for i in range(1, SEGMENTS)
        )
        points = (origin,) + interior + (destination,)
        return [RouteCandidate(points=points, distance_meters=distance, duration_seconds=duration)]


def _candidate(place: dict[str, Any]) -> PlaceCandidate:
    return PlaceCandidate(
        display_name=place["name"],
        coordinate=Coordinate(place["lat"], place["lng"]),
    )
