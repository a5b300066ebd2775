"""
Route Calculator
================

Computes a single drivable route between two resolved places.  The first
(provider-ranked) candidate is selected; there is no alternate-route
choice and no automatic retry.
"""

from __future__ import annotations

import asyncio
import logging

from carpool.domain.entities import ResolvedPlace, RouteResult
from carpool.domain.errors import NoRouteFound, ProviderError
from carpool.infrastructure.providers import DirectionsProvider

logger = logging.getLogger(__name__)

DEFAULT_PROFILE = "driving"


class RouteCalculator:
    def __init__(
        self,
        provider: DirectionsProvider,
        timeout: float = 12.0,
        profile: str = DEFAULT_PROFILE,
    ):
        self.provider = provider
        self.timeout = timeout
        self.profile = profile
        self.calls = 0

    async def compute_route(
        self, origin: ResolvedPlace, destination: ResolvedPlace
    ) -> RouteResult:
        """Raises ``NoRouteFound`` / ``ProviderError``."""
        self.calls += 1
        logger.info(
            "Computing %s route %s -> %s",
            self.profile,
            origin.display_name,
            destination.display_name,
        )
        try:
            candidates = await asyncio.wait_for(
                self.provider.route(
                    origin.coordinate, destination.coordinate, self.profile
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.warning("Route request timed out after %.1fs", self.timeout)
            raise ProviderError("route request timed out") from exc

        usable = [c for c in candidates if c.points]
        if not usable:
            raise NoRouteFound(
                f"no route from {origin.display_name} to {destination.display_name}"
            )

        best = usable[0]
        result = RouteResult(
            polyline=best.points,
            distance_meters=best.distance_meters,
            duration_seconds=best.duration_seconds,
        )
        logger.info(
            "Route ready: %s, %s (%d points)",
            result.distance_text,
            result.duration_text,
            len(result.polyline),
        )
        return result
