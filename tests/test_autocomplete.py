"""Debounce, cancellation and error suppression in the autocomplete path."""

import asyncio
import logging

import pytest

from carpool.domain.entities import Suggestion
from carpool.domain.enums import FieldId, SessionEvent
from carpool.services.autocomplete import AutocompleteCoordinator

from conftest import RecordingSuggestions


def _updates(events):
    return [
        state for state, event in events
        if event is SessionEvent.SUGGESTIONS_UPDATED
    ]


class TestCoordinator:
    @pytest.mark.asyncio
    async def test_empty_text_clears_without_request(self):
        provider = RecordingSuggestions()
        delivered = []
        coordinator = AutocompleteCoordinator(
            provider, lambda *args: delivered.append(args), debounce_seconds=0.01
        )
        coordinator.on_text_changed(FieldId.START, "", 3)
        await coordinator.drain()
        assert provider.calls == []
        assert delivered == [(FieldId.START, 3, ())]

    @pytest.mark.asyncio
    async def test_whitespace_counts_as_empty(self):
        provider = RecordingSuggestions()
        delivered = []
        coordinator = AutocompleteCoordinator(
            provider, lambda *args: delivered.append(args), debounce_seconds=0.01
        )
        coordinator.on_text_changed(FieldId.END, "   ", 1)
        await coordinator.drain()
        assert provider.calls == []
        assert delivered == [(FieldId.END, 1, ())]

    @pytest.mark.asyncio
    async def test_every_streamed_update_is_delivered_in_order(self):
        first = [Suggestion("Louvre")]
        second = [Suggestion("Louvre"), Suggestion("Louvre Museum")]
        provider = RecordingSuggestions(batches={"Louv": [first, second]})
        delivered = []
        coordinator = AutocompleteCoordinator(
            provider, lambda *args: delivered.append(args), debounce_seconds=0.01
        )
        coordinator.on_text_changed(FieldId.END, "Louv", 7)
        await coordinator.drain()
        assert delivered == [
            (FieldId.END, 7, tuple(first)),
            (FieldId.END, 7, tuple(second)),
        ]

    @pytest.mark.asyncio
    async def test_results_are_capped_at_limit(self):
        many = [Suggestion(f"Place {i}") for i in range(10)]
        provider = RecordingSuggestions(batches={"Pl": [many]})
        delivered = []
        coordinator = AutocompleteCoordinator(
            provider, lambda *args: delivered.append(args), debounce_seconds=0.0, limit=3
        )
        coordinator.on_text_changed(FieldId.START, "Pl", 1)
        await coordinator.drain()
        assert len(delivered[0][2]) == 3

    @pytest.mark.asyncio
    async def test_fields_are_debounced_independently(self):
        provider = RecordingSuggestions()
        coordinator = AutocompleteCoordinator(provider, lambda *a: None, debounce_seconds=0.01)
        coordinator.on_text_changed(FieldId.START, "Eiffel", 1)
        coordinator.on_text_changed(FieldId.END, "Louvre", 1)
        await coordinator.drain()
        assert sorted(provider.calls) == ["Eiffel", "Louvre"]

    @pytest.mark.asyncio
    async def test_cancel_all_stops_pending_fetches(self):
        provider = RecordingSuggestions()
        coordinator = AutocompleteCoordinator(provider, lambda *a: None, debounce_seconds=0.05)
        coordinator.on_text_changed(FieldId.START, "Eiffel", 1)
        coordinator.cancel_all()
        await asyncio.sleep(0.1)
        assert provider.calls == []
        assert coordinator.pending() == []


class TestSessionAutocomplete:
    @pytest.mark.asyncio
    async def test_rapid_typing_issues_one_request_for_final_text(self, session, suggestions, events):
        for text in ("E", "Ei", "Eif", "Eiff", "Eiffel"):
            session.on_text_changed(FieldId.START, text)
        await session.drain()

        assert suggestions.calls == ["Eiffel"]
        updates = _updates(events)
        assert len(updates) == 1
        assert updates[0].start.suggestions[0].title == "Eiffel Street"

    @pytest.mark.asyncio
    async def test_typing_marks_field_active_exclusively(self, session):
        session.on_text_changed(FieldId.START, "Eiffel")
        session.on_text_changed(FieldId.END, "Louvre")
        assert session.state.active_field == FieldId.END
        assert not session.state.start.active
        await session.drain()

    @pytest.mark.asyncio
    async def test_clearing_text_clears_suggestions_without_request(self, session, suggestions):
        session.on_text_changed(FieldId.START, "Eiffel")
        await session.drain()
        assert session.state.start.suggestions

        suggestions.calls.clear()
        session.on_text_changed(FieldId.START, "")
        await session.drain()
        assert suggestions.calls == []
        assert session.state.start.suggestions == ()

    @pytest.mark.asyncio
    async def test_fetch_failure_is_logged_not_surfaced(self, session, suggestions, caplog):
        suggestions.error = RuntimeError("service down")
        with caplog.at_level(logging.WARNING, logger="carpool.services.autocomplete"):
            session.on_text_changed(FieldId.START, "Eiffel")
            await session.drain()

        assert session.state.start.suggestions == ()
        assert session.state.last_error is None
        assert "Suggestion fetch failed" in caplog.text

    @pytest.mark.asyncio
    async def test_selecting_clears_list_and_deactivates(self, session):
        session.on_text_changed(FieldId.END, "Louvre")
        await session.drain()
        assert session.state.end.active

        session.on_suggestion_selected(
            FieldId.END, Suggestion("Louvre Museum", token="louvre-museum")
        )
        end = session.state.end
        assert end.query == "Louvre Museum"
        assert end.suggestions == ()
        assert not end.active

        await session.drain()
        assert session.state.end.resolved.display_name == "Louvre Museum"

    @pytest.mark.asyncio
    async def test_selection_uses_token_instead_of_text_search(self, session, geocoder):
        session.on_suggestion_selected(
            FieldId.START, Suggestion("Eiffel Tower", token="eiffel-tower")
        )
        await session.drain()
        assert geocoder.lookups == ["eiffel-tower"]
        assert geocoder.searches == []

    @pytest.mark.asyncio
    async def test_selection_failure_still_clears_and_deactivates(self, session, geocoder):
        geocoder.missing.add("Atlantis")
        session.on_text_changed(FieldId.START, "Atl")
        await session.drain()

        session.on_suggestion_selected(FieldId.START, Suggestion("Atlantis"))
        await session.drain()

        start = session.state.start
        assert start.suggestions == ()
        assert not start.active
        assert start.resolved is None
        assert start.error.kind.value == "NOT_FOUND"
        assert session.state.last_error.field == FieldId.START

    @pytest.mark.asyncio
    async def test_select_by_index_out_of_range(self, session):
        with pytest.raises(IndexError):
            session.select_suggestion_at(FieldId.START, 0)
