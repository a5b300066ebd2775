"""
Ordering tests: last request wins per field, superseded joins are dropped,
and START / END resolve in parallel.  Gated providers hold requests open so
each interleaving is staged explicitly.
"""

import pytest

from carpool.domain.entities import Coordinate, ResolvedPlace, Suggestion
from carpool.domain.enums import ErrorKind, FieldId, RoutePhase, SessionEvent

from conftest import settle

PLACE = ResolvedPlace("Louvre Museum", Coordinate(48.8606, 2.3376))


class TestStaleResults:
    @pytest.mark.asyncio
    async def test_stale_suggestions_are_dropped(self, session):
        session.on_text_changed(FieldId.START, "Lou")
        stale = session.state.start.generation
        session.on_text_changed(FieldId.START, "Louvre")
        before = session.state

        session.deliver_suggestions(FieldId.START, stale, (Suggestion("Lou Street"),))
        assert session.state is before

    @pytest.mark.asyncio
    async def test_stale_resolution_is_dropped(self, session):
        session.on_text_changed(FieldId.END, "Louvre")
        stale = session.state.end.generation
        session.on_text_changed(FieldId.END, "Louvre Museum")
        before = session.state

        session.apply_resolution(FieldId.END, stale, PLACE)
        assert session.state is before
        assert session.state.end.resolved is None

    @pytest.mark.asyncio
    async def test_current_resolution_is_applied(self, session):
        session.on_text_changed(FieldId.END, "Louvre Museum")
        session.apply_resolution(FieldId.END, session.state.end.generation, PLACE)
        assert session.state.end.resolved == PLACE

    @pytest.mark.asyncio
    async def test_selection_overtaken_by_typing(self, session, geocoder):
        geocoder.gate.clear()
        session.on_suggestion_selected(FieldId.START, Suggestion("Eiffel Tower", token="eiffel-tower"))
        await settle()
        assert geocoder.lookups == ["eiffel-tower"]

        session.on_text_changed(FieldId.START, "Gare du Nord")
        geocoder.gate.set()
        await session.drain()

        assert session.state.start.query == "Gare du Nord"
        assert session.state.start.resolved is None


class TestRouteJoin:
    @pytest.mark.asyncio
    async def test_start_and_end_resolve_concurrently(self, session, geocoder):
        session.on_text_changed(FieldId.START, "Eiffel Tower")
        session.on_text_changed(FieldId.END, "Louvre Museum")
        geocoder.gate.clear()

        task = session.trigger_route()
        await settle()
        # both searches are in flight before either has answered
        assert sorted(geocoder.searches) == ["Eiffel Tower", "Louvre Museum"]
        assert session.state.phase == RoutePhase.RESOLVING

        geocoder.gate.set()
        await task
        assert session.state.phase == RoutePhase.ROUTE_READY

    @pytest.mark.asyncio
    async def test_edit_during_resolution_abandons_route(self, session, geocoder, calculator, events):
        session.on_text_changed(FieldId.START, "Eiffel Tower")
        session.on_text_changed(FieldId.END, "Louvre Museum")
        geocoder.gate.clear()

        task = session.trigger_route()
        await settle()
        session.on_text_changed(FieldId.START, "Arc de Triomphe")
        assert session.state.phase == RoutePhase.RESOLVING
        assert session.state.busy

        geocoder.gate.set()
        await task

        state = session.state
        assert state.phase == RoutePhase.IDLE
        assert not state.busy
        assert state.route is None
        assert state.last_error is None
        assert state.start.resolved is None
        assert state.start.query == "Arc de Triomphe"
        assert calculator.calls == 0
        assert SessionEvent.ROUTE_ABANDONED in [event for _, event in events]

    @pytest.mark.asyncio
    async def test_newer_trigger_supersedes_older_join(self, session, geocoder, calculator, events):
        session.on_text_changed(FieldId.START, "Eiffel Tower")
        session.on_text_changed(FieldId.END, "Louvre Museum")
        geocoder.gate.clear()

        first = session.trigger_route()
        await settle()
        second = session.trigger_route()
        await settle()

        geocoder.gate.set()
        await first
        await second

        assert calculator.calls == 1
        assert session.state.phase == RoutePhase.ROUTE_READY
        assert session.state.route_generation == 2
        ready = [event for _, event in events if event is SessionEvent.ROUTE_READY]
        assert len(ready) == 1

    @pytest.mark.asyncio
    async def test_reset_during_join_drops_result(self, session, geocoder, calculator):
        session.on_text_changed(FieldId.START, "Eiffel Tower")
        session.on_text_changed(FieldId.END, "Louvre Museum")
        geocoder.gate.clear()

        session.trigger_route()
        await settle()
        session.reset()
        geocoder.gate.set()
        await session.drain()

        state = session.state
        assert state.phase == RoutePhase.IDLE
        assert state.route is None
        assert not state.busy
        assert calculator.calls == 0


class TestSelectionDuringJoin:
    @pytest.mark.asyncio
    async def test_join_waits_for_pending_suggestion_lookup(self, session, geocoder, calculator):
        geocoder.lookup_gate.clear()
        session.on_text_changed(FieldId.START, "Eiffel Tower")
        # the title alone matches nothing; only the token identifies the place
        session.on_suggestion_selected(
            FieldId.END, Suggestion("Musée du Louvre", token="louvre-museum")
        )

        task = session.trigger_route()
        await settle()
        assert geocoder.searches == ["Eiffel Tower"]
        assert session.state.phase == RoutePhase.RESOLVING

        geocoder.lookup_gate.set()
        await task
        await session.drain()

        state = session.state
        assert state.phase == RoutePhase.ROUTE_READY
        assert state.route is not None
        assert state.map_view.overlay is not None
        assert state.end.resolved.display_name == "Louvre Museum"
        assert geocoder.lookups == ["louvre-museum"]
        assert geocoder.searches == ["Eiffel Tower"]
        assert calculator.calls == 1

    @pytest.mark.asyncio
    async def test_failed_suggestion_lookup_fails_the_join_once(self, session, geocoder, calculator):
        geocoder.lookup_gate.clear()
        session.on_text_changed(FieldId.START, "Eiffel Tower")
        session.on_suggestion_selected(
            FieldId.END, Suggestion("Musée du Louvre", token="no-such-place")
        )

        task = session.trigger_route()
        await settle()
        geocoder.lookup_gate.set()
        await task
        await session.drain()

        state = session.state
        assert state.phase == RoutePhase.RESOLUTION_FAILED
        assert state.end.error.kind == ErrorKind.NOT_FOUND
        assert not state.busy
        # the title fallback ran inside the selection only, not again for the join
        assert geocoder.searches.count("Musée du Louvre") == 1
        assert calculator.calls == 0

    @pytest.mark.asyncio
    async def test_lookup_for_older_generation_is_not_awaited(self, session, geocoder):
        geocoder.lookup_gate.clear()
        session.on_suggestion_selected(
            FieldId.START, Suggestion("Eiffel Tower", token="eiffel-tower")
        )
        session.on_text_changed(FieldId.START, "Arc de Triomphe")
        session.on_text_changed(FieldId.END, "Louvre Museum")

        await session.trigger_route()
        assert session.state.phase == RoutePhase.ROUTE_READY
        assert session.state.start.resolved.display_name == "Arc de Triomphe"

        geocoder.lookup_gate.set()
        await session.drain()
        assert session.state.phase == RoutePhase.ROUTE_READY
