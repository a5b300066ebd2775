"""
Geocoding Resolver
==================

Turns free text (or an accepted suggestion) into exactly one
``ResolvedPlace``.  The provider's top-ranked candidate wins; there is no
disambiguation step.  Every provider call is bounded by ``timeout`` and a
timeout surfaces as ``ProviderError``.
"""

from __future__ import annotations

import asyncio
import logging

from carpool.domain.entities import ResolvedPlace, Suggestion
from carpool.domain.errors import InvalidInput, NotFound, ProviderError
from carpool.infrastructure.providers import GeocodingProvider, PlaceCandidate

logger = logging.getLogger(__name__)


class GeocodingResolver:
    def __init__(self, provider: GeocodingProvider, timeout: float = 12.0):
        self.provider = provider
        self.timeout = timeout

    async def resolve(self, text: str) -> ResolvedPlace:
        """Best match for *text*.  Raises ``NotFound`` / ``ProviderError``."""
        query = text.strip()
        if not query:
            raise InvalidInput()

        candidates = await self._bounded(self.provider.search(query), query)
        if not candidates:
            logger.info("No geocoding match for %r", query)
            raise NotFound(f"location not found: {query}")
        return _to_place(candidates[0])

    async def resolve_suggestion(self, suggestion: Suggestion) -> ResolvedPlace:
        """Resolve via the suggestion token, falling back to its title."""
        if suggestion.token is not None:
            candidate = await self._bounded(
                self.provider.lookup(suggestion.token), suggestion.title
            )
            if candidate is not None:
                return _to_place(candidate)
            logger.debug(
                "Token %r unknown to provider; resolving %r by text",
                suggestion.token,
                suggestion.title,
            )
        return await self.resolve(suggestion.title)

    async def _bounded(self, call, label: str):
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("Geocoding %r timed out after %.1fs", label, self.timeout)
            raise ProviderError(f"geocoding timed out: {label}") from exc


def _to_place(candidate: PlaceCandidate) -> ResolvedPlace:
    return ResolvedPlace(
        display_name=candidate.display_name,
        coordinate=candidate.coordinate,
    )
