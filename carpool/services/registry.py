"""
Provider wiring and the in-process session registry.

Sessions live only in memory: one ``RouteSession`` per client, addressed by
an opaque id.  Nothing is persisted.  A session unseen for
``session_idle_seconds`` is closed by ``evict_idle``; at most
``max_sessions`` are open at once.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from carpool.config import Settings
from carpool.infrastructure.gazetteer import StaticGazetteer
from carpool.infrastructure.http_client import get_http_client
from carpool.infrastructure.nominatim import NominatimGeocodingProvider
from carpool.infrastructure.osrm import OSRMDirectionsProvider
from carpool.infrastructure.photon import PhotonSuggestionProvider
from carpool.infrastructure.providers import (
    DirectionsProvider,
    GeocodingProvider,
    SuggestionProvider,
)

from .geocoding import GeocodingResolver
from .routing import RouteCalculator
from .session import RouteSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Providers:
    suggestions: SuggestionProvider
    geocoding: GeocodingProvider
    directions: DirectionsProvider


def build_providers(settings: Settings) -> Providers:
    if settings.provider_backend == "static":
        gazetteer = StaticGazetteer(average_speed_kmh=settings.static_average_speed_kmh)
        return Providers(gazetteer, gazetteer, gazetteer)
    if settings.provider_backend != "http":
        raise ValueError(f"Unknown provider backend: {settings.provider_backend!r}")

    client = get_http_client()
    return Providers(
        suggestions=PhotonSuggestionProvider(client, settings.photon_url),
        geocoding=NominatimGeocodingProvider(client, settings.nominatim_url),
        directions=OSRMDirectionsProvider(client, settings.osrm_url),
    )


class SessionLimitReached(Exception):
    """Raised when ``max_sessions`` sessions are already open."""


class SessionRegistry:
    def __init__(
        self,
        settings: Settings,
        providers: Optional[Providers] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self._providers = providers
        self._clock = clock
        self._sessions: dict[str, RouteSession] = {}
        self._last_seen: dict[str, float] = {}

    @property
    def providers(self) -> Providers:
        if self._providers is None:
            self._providers = build_providers(self.settings)
        return self._providers

    def create(self) -> RouteSession:
        s = self.settings
        if len(self._sessions) >= s.max_sessions:
            raise SessionLimitReached(f"{s.max_sessions} sessions already open")

        session = RouteSession(
            GeocodingResolver(self.providers.geocoding, timeout=s.provider_timeout_seconds),
            RouteCalculator(self.providers.directions, timeout=s.provider_timeout_seconds),
            self.providers.suggestions,
            debounce_seconds=s.autocomplete_debounce_seconds,
            suggestion_limit=s.autocomplete_limit,
            suggestion_timeout=s.provider_timeout_seconds,
            padding_ratio=s.map_padding_ratio,
            single_place_span_meters=s.map_single_place_span_meters,
        )
        self._sessions[session.id] = session
        self._last_seen[session.id] = self._clock()
        logger.info("Session %s created (%d active)", session.id, len(self._sessions))
        return session

    def get(self, session_id: str) -> Optional[RouteSession]:
        """Look up a session and mark it as seen now."""
        session = self._sessions.get(session_id)
        if session is not None:
            self._last_seen[session_id] = self._clock()
        return session

    async def remove(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        self._last_seen.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        logger.info("Session %s closed", session_id)
        return True

    async def evict_idle(self) -> int:
        """Close every session unseen for ``session_idle_seconds``."""
        cutoff = self._clock() - self.settings.session_idle_seconds
        expired = [sid for sid, seen in self._last_seen.items() if seen <= cutoff]
        for session_id in expired:
            await self.remove(session_id)
        if expired:
            logger.info(
                "Evicted %d idle sessions (%d active)", len(expired), len(self._sessions)
            )
        return len(expired)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.remove(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
