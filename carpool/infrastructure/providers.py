"""
Provider boundaries.

Each external service sits behind an abstract base class so the resolver,
the route calculator and the autocomplete coordinator stay provider-agnostic.
Adapters normalise raw payloads into the candidate types below and raise
``ProviderError`` on transport or payload failures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from carpool.domain.entities import Coordinate, Suggestion


@dataclass(frozen=True)
class PlaceCandidate:
    display_name: str
    coordinate: Coordinate


@dataclass(frozen=True)
class RouteCandidate:
    points: tuple[Coordinate, ...]
    distance_meters: float
    duration_seconds: float


class SuggestionProvider(ABC):
    @abstractmethod
    def suggest(self, text: str, limit: int = 5) -> AsyncIterator[list[Suggestion]]:
        """Stream suggestion lists for *text*; zero, one or many updates."""


class GeocodingProvider(ABC):
    @abstractmethod
    async def search(self, text: str) -> list[PlaceCandidate]:
        """Candidates for *text*, provider-ranked (best first)."""

    @abstractmethod
    async def lookup(self, token: Any) -> Optional[PlaceCandidate]:
        """Resolve a suggestion token, or ``None`` when it is unknown."""


class DirectionsProvider(ABC):
    @abstractmethod
    async def route(
        self,
        origin: Coordinate,
        destination: Coordinate,
        profile: str = "driving",
    ) -> list[RouteCandidate]:
        """Candidate routes, provider-ranked; empty when no route exists."""
