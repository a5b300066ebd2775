"""
Shared test fixtures.

Sessions run against the static gazetteer (no network) with a tiny debounce.
The wrappers below add call counting, scripted failures and gates that hold
a request open until the test releases it, so races can be staged
deterministically.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator, Optional

import pytest
import pytest_asyncio

from carpool.domain.entities import Coordinate, Suggestion
from carpool.infrastructure.gazetteer import StaticGazetteer
from carpool.infrastructure.providers import (
    DirectionsProvider,
    GeocodingProvider,
    PlaceCandidate,
    RouteCandidate,
    SuggestionProvider,
)
from carpool.services.geocoding import GeocodingResolver
from carpool.services.routing import RouteCalculator
from carpool.services.session import RouteSession

DEBOUNCE = 0.01


# ── Test doubles ──────────────────────────────────────────────────────


class RecordingSuggestions(SuggestionProvider):
    """Suggestion provider that records every query it receives."""

    def __init__(
        self,
        batches: Optional[dict[str, list[list[Suggestion]]]] = None,
        error: Optional[Exception] = None,
    ):
        self.batches = batches or {}
        self.error = error
        self.calls: list[str] = []

    async def suggest(self, text: str, limit: int = 5) -> AsyncIterator[list[Suggestion]]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        default = [[Suggestion(title=f"{text} Street", subtitle="Paris", token=None)]]
        for batch in self.batches.get(text, default):
            yield batch


class GatedGeocoder(GeocodingProvider):
    """Wraps a geocoder; requests block until the test opens their gate.

    ``gate`` holds searches and lookups, ``lookup_gate`` lookups only.
    """

    def __init__(self, inner: GeocodingProvider, gated: bool = False):
        self.inner = inner
        self.gate = asyncio.Event()
        self.lookup_gate = asyncio.Event()
        if not gated:
            self.gate.set()
        self.lookup_gate.set()
        self.searches: list[str] = []
        self.lookups: list[Any] = []
        self.missing: set[str] = set()

    async def search(self, text: str) -> list[PlaceCandidate]:
        self.searches.append(text)
        await self.gate.wait()
        if text in self.missing:
            return []
        return await self.inner.search(text)

    async def lookup(self, token: Any) -> Optional[PlaceCandidate]:
        self.lookups.append(token)
        await self.gate.wait()
        await self.lookup_gate.wait()
        return await self.inner.lookup(token)


class CountingDirections(DirectionsProvider):
    def __init__(self, inner: DirectionsProvider):
        self.inner = inner
        self.calls: list[tuple[Coordinate, Coordinate]] = []

    async def route(self, origin, destination, profile="driving") -> list[RouteCandidate]:
        self.calls.append((origin, destination))
        return await self.inner.route(origin, destination, profile)


class FailingDirections(DirectionsProvider):
    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    async def route(self, origin, destination, profile="driving") -> list[RouteCandidate]:
        self.calls += 1
        raise self.error


class HangingDirections(DirectionsProvider):
    """Never answers; only a timeout gets the caller out."""

    async def route(self, origin, destination, profile="driving") -> list[RouteCandidate]:
        await asyncio.Event().wait()
        return []


class FailingGeocoder(GeocodingProvider):
    def __init__(self, error: Exception):
        self.error = error

    async def search(self, text: str) -> list[PlaceCandidate]:
        raise self.error

    async def lookup(self, token: Any) -> Optional[PlaceCandidate]:
        raise self.error


async def settle(rounds: int = 10) -> None:
    """Let already-scheduled tasks run up to their next blocking await."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture
def gazetteer() -> StaticGazetteer:
    return StaticGazetteer()


@pytest.fixture
def suggestions() -> RecordingSuggestions:
    return RecordingSuggestions()


@pytest.fixture
def geocoder(gazetteer) -> GatedGeocoder:
    return GatedGeocoder(gazetteer)


@pytest.fixture
def directions(gazetteer) -> CountingDirections:
    return CountingDirections(gazetteer)


@pytest.fixture
def calculator(directions) -> RouteCalculator:
    return RouteCalculator(directions, timeout=1.0)


@pytest_asyncio.fixture
async def session(geocoder, calculator, suggestions) -> AsyncIterator[RouteSession]:
    s = RouteSession(
        GeocodingResolver(geocoder, timeout=1.0),
        calculator,
        suggestions,
        debounce_seconds=DEBOUNCE,
        suggestion_timeout=1.0,
    )
    yield s
    await s.close()


@pytest.fixture
def events(session) -> list:
    """Every (state, event) pair the session publishes."""
    published: list = []
    session.subscribe(lambda state, event: published.append((state, event)))
    return published
