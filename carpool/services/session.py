"""
Route Session Orchestrator
==========================

Single owner of ``SessionState`` for one user.  Raw presentation events
(``on_text_changed``, ``on_suggestion_selected``, ``activate_field``,
``trigger_route``, ``reset``) come in; immutable snapshots go out to
subscribers together with the ``SessionEvent`` that produced them.

Concurrency safety
------------------
* All mutations run on the event loop inside ``_commit`` between awaits, so
  there is exactly one writer.
* Every async result carries the generation captured when it was issued.
  A suggestion list or resolution is applied only if the field's generation
  is unchanged; a route join only if ``route_generation`` is unchanged.
* Superseded tasks are cancelled cooperatively; their results, if any, are
  dropped.

Routing lifecycle
-----------------
1. ``trigger_route`` bumps ``route_generation``, sets ``busy`` and enters
   RESOLVING.  A blank field fails immediately with INVALID_INPUT.
2. START and END resolve concurrently.  Places already resolved for the
   current generation are reused and a suggestion lookup still in flight is
   awaited rather than repeated as a text search.
3. Join: both must succeed, otherwise RESOLUTION_FAILED naming the side(s)
   and the route calculator is never invoked.
4. Route calculator -> ROUTE_READY or ROUTE_FAILED.
5. A text edit during 2-4 lets the join finish but drops the edited field's
   result and returns the session to IDLE.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import replace
from typing import Callable, Optional, Union

from carpool.domain.entities import (
    FieldSlot,
    ResolvedPlace,
    RouteResult,
    SessionError,
    SessionState,
    Suggestion,
)
from carpool.domain.enums import ErrorKind, FieldId, RoutePhase, SessionEvent
from carpool.domain.errors import ProviderError, RoutingError
from carpool.domain.map_state import derive
from carpool.infrastructure.providers import SuggestionProvider

from .autocomplete import AutocompleteCoordinator
from .geocoding import GeocodingResolver
from .routing import RouteCalculator

logger = logging.getLogger(__name__)

Listener = Callable[[SessionState, SessionEvent], None]
Outcome = Union[ResolvedPlace, BaseException]


def _other(field: FieldId) -> FieldId:
    return FieldId.END if field is FieldId.START else FieldId.START


class RouteSession:
    def __init__(
        self,
        resolver: GeocodingResolver,
        calculator: RouteCalculator,
        suggestion_provider: SuggestionProvider,
        *,
        debounce_seconds: float = 0.3,
        suggestion_limit: int = 5,
        suggestion_timeout: float = 12.0,
        padding_ratio: float = 0.15,
        single_place_span_meters: float = 5_000.0,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.resolver = resolver
        self.calculator = calculator
        self.autocomplete = AutocompleteCoordinator(
            suggestion_provider,
            self.deliver_suggestions,
            debounce_seconds=debounce_seconds,
            limit=suggestion_limit,
            timeout=suggestion_timeout,
        )
        self.padding_ratio = padding_ratio
        self.single_place_span_meters = single_place_span_meters

        self._state = SessionState()
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()
        # field -> (generation, task) of the suggestion lookup still in flight
        self._selections: dict[FieldId, tuple[int, asyncio.Task]] = {}

    @property
    def state(self) -> SessionState:
        return self._state

    # ── Subscription ──────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Field events ──────────────────────────────────────────────────

    def on_text_changed(self, field: FieldId, text: str) -> None:
        slot = self._state.slot(field)
        if text == slot.query:
            return

        generation = slot.generation + 1
        state = self._state.with_slot(
            field,
            replace(
                slot,
                query=text,
                resolved=None,
                active=True,
                generation=generation,
                error=None,
            ),
        )
        state = self._deactivate(state, _other(field))
        self._commit(self._invalidate_route(state), SessionEvent.TEXT_CHANGED)
        self.autocomplete.on_text_changed(field, text, generation)

    def activate_field(self, field: Optional[FieldId]) -> None:
        """Make *field* the single active field, or blur both with ``None``."""
        state = self._state
        for field_id in FieldId:
            slot = state.slot(field_id)
            state = state.with_slot(field_id, replace(slot, active=field_id is field))
        self._commit(state, SessionEvent.FIELD_ACTIVATED)

    def on_suggestion_selected(
        self, field: FieldId, suggestion: Suggestion
    ) -> asyncio.Task:
        """Accept *suggestion*; resolution runs in the background."""
        self.autocomplete.cancel(field)
        slot = self._state.slot(field)
        generation = slot.generation + 1
        state = self._state.with_slot(
            field,
            replace(
                slot,
                query=suggestion.title,
                resolved=None,
                suggestions=(),
                active=False,
                generation=generation,
                error=None,
            ),
        )
        self._commit(self._invalidate_route(state), SessionEvent.SUGGESTION_SELECTED)
        task = self._spawn(self._resolve_selection(field, suggestion, generation))
        self._selections[field] = (generation, task)
        task.add_done_callback(lambda t, f=field: self._forget_selection(f, t))
        return task

    def select_suggestion_at(self, field: FieldId, index: int) -> asyncio.Task:
        """Accept the *index*-th suggestion currently shown for *field*."""
        suggestions = self._state.slot(field).suggestions
        if not 0 <= index < len(suggestions):
            raise IndexError(f"No suggestion #{index} for {field.value}")
        return self.on_suggestion_selected(field, suggestions[index])

    # ── Async result application ──────────────────────────────────────

    def deliver_suggestions(
        self, field: FieldId, generation: int, suggestions: tuple[Suggestion, ...]
    ) -> None:
        slot = self._state.slot(field)
        if slot.generation != generation:
            logger.debug(
                "Dropping stale suggestions for %s (gen %d, current %d)",
                field.value,
                generation,
                slot.generation,
            )
            return
        state = self._state.with_slot(field, replace(slot, suggestions=suggestions))
        self._commit(state, SessionEvent.SUGGESTIONS_UPDATED)

    def apply_resolution(self, field: FieldId, generation: int, outcome: Outcome) -> None:
        """Merge a single-field resolution result issued at *generation*."""
        slot = self._state.slot(field)
        if slot.generation != generation:
            logger.debug("Dropping stale resolution for %s", field.value)
            return

        if isinstance(outcome, ResolvedPlace):
            state = self._state
            if slot.resolved is not None and slot.resolved != outcome:
                state = self._invalidate_route(state)
            state = state.with_slot(field, replace(slot, resolved=outcome, error=None))
            self._commit(state, SessionEvent.PLACE_RESOLVED)
            return

        error = self._to_session_error(outcome, field)
        state = self._invalidate_route(self._state)
        state = state.with_slot(field, replace(slot, resolved=None, error=error))
        self._commit(replace(state, last_error=error), SessionEvent.RESOLUTION_FAILED)

    # ── Routing ───────────────────────────────────────────────────────

    def trigger_route(self) -> Optional[asyncio.Task]:
        """Start a fresh resolve-and-route join; returns its task."""
        state = replace(
            self._state,
            route_generation=self._state.route_generation + 1,
            route=None,
            busy=True,
            last_error=None,
        ).transition_to(RoutePhase.RESOLVING)
        for field in FieldId:
            state = state.with_slot(field, replace(state.slot(field), error=None))
        route_generation = state.route_generation

        blank = [f for f in FieldId if not state.slot(f).query.strip()]
        if blank:
            names = " and ".join(f.value for f in blank)
            error = SessionError(
                kind=ErrorKind.INVALID_INPUT,
                message=f"{names} location is empty",
                field=blank[0] if len(blank) == 1 else None,
            )
            for field in blank:
                state = state.with_slot(field, replace(state.slot(field), error=error))
            state = replace(
                state.transition_to(RoutePhase.RESOLUTION_FAILED),
                busy=False,
                last_error=error,
            )
            self._commit(state, SessionEvent.RESOLUTION_FAILED)
            return None

        self._commit(state, SessionEvent.ROUTE_STARTED)
        logger.info("Session %s: route #%d started", self.id, route_generation)
        slots = {f: state.slot(f) for f in FieldId}
        return self._spawn(self._run_route(route_generation, slots))

    async def _run_route(self, route_generation: int, slots: dict[FieldId, FieldSlot]) -> None:
        generations = {f: slots[f].generation for f in FieldId}
        results = await asyncio.gather(
            *(self._resolve_for_route(f, slots[f]) for f in FieldId),
            return_exceptions=True,
        )
        if not self._is_current(route_generation):
            return
        if self._abandon_if_edited(generations):
            return

        state = self._state
        failures: list[SessionError] = []
        places: dict[FieldId, ResolvedPlace] = {}
        for field, outcome in zip(FieldId, results):
            slot = state.slot(field)
            if isinstance(outcome, ResolvedPlace):
                places[field] = outcome
                slot = replace(slot, resolved=outcome, error=None)
            else:
                error = self._to_session_error(outcome, field)
                failures.append(error)
                slot = replace(slot, resolved=None, error=error)
            state = state.with_slot(field, slot)

        if failures:
            last_error = failures[0]
            if len(failures) > 1:
                last_error = SessionError(
                    kind=failures[0].kind,
                    message="; ".join(f"{e.field.value}: {e.message}" for e in failures),
                )
            logger.info(
                "Session %s: route #%d resolution failed (%s)",
                self.id,
                route_generation,
                last_error.message,
            )
            state = replace(
                state.transition_to(RoutePhase.RESOLUTION_FAILED),
                busy=False,
                last_error=last_error,
            )
            self._commit(state, SessionEvent.RESOLUTION_FAILED)
            return

        self._commit(state, SessionEvent.PLACE_RESOLVED)

        outcome: Union[RouteResult, BaseException]
        try:
            outcome = await self.calculator.compute_route(
                places[FieldId.START], places[FieldId.END]
            )
        except RoutingError as exc:
            outcome = exc
        except Exception as exc:
            logger.exception("Unexpected error computing route")
            outcome = ProviderError(str(exc) or "route request failed")

        if not self._is_current(route_generation):
            return
        if self._abandon_if_edited(generations):
            return

        if isinstance(outcome, RouteResult):
            state = replace(
                self._state.transition_to(RoutePhase.ROUTE_READY),
                route=outcome,
                busy=False,
                last_error=None,
            )
            self._commit(state, SessionEvent.ROUTE_READY)
            return

        error = self._to_session_error(outcome, None)
        logger.info("Session %s: route #%d failed (%s)", self.id, route_generation, error.message)
        state = replace(
            self._state.transition_to(RoutePhase.ROUTE_FAILED),
            route=None,
            busy=False,
            last_error=error,
        )
        self._commit(state, SessionEvent.ROUTE_FAILED)

    async def _resolve_for_route(self, field: FieldId, slot: FieldSlot) -> ResolvedPlace:
        if slot.resolved is not None:
            return slot.resolved

        # An accepted suggestion still being looked up is the field's place;
        # the join shares that outcome instead of searching the title again.
        selection = self._selections.get(field)
        if selection is not None and selection[0] == slot.generation:
            outcome = await asyncio.shield(selection[1])
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        return await self.resolver.resolve(slot.query)

    async def _resolve_selection(
        self, field: FieldId, suggestion: Suggestion, generation: int
    ) -> Outcome:
        outcome: Outcome
        try:
            outcome = await self.resolver.resolve_suggestion(suggestion)
        except RoutingError as exc:
            outcome = exc
        except Exception as exc:
            logger.exception("Unexpected error resolving suggestion %r", suggestion.title)
            outcome = ProviderError(str(exc) or "search failed")
        self.apply_resolution(field, generation, outcome)
        return outcome

    def _forget_selection(self, field: FieldId, task: asyncio.Task) -> None:
        selection = self._selections.get(field)
        if selection is not None and selection[1] is task:
            del self._selections[field]

    def _is_current(self, route_generation: int) -> bool:
        if self._state.route_generation != route_generation:
            logger.debug("Route #%d superseded; dropping result", route_generation)
            return False
        return True

    def _abandon_if_edited(self, generations: dict[FieldId, int]) -> bool:
        edited = [f for f in FieldId if self._state.slot(f).generation != generations[f]]
        if not edited:
            return False
        logger.info(
            "Session %s: %s edited during routing; abandoning route",
            self.id,
            ", ".join(f.value for f in edited),
        )
        state = replace(self._state.transition_to(RoutePhase.IDLE), busy=False)
        self._commit(state, SessionEvent.ROUTE_ABANDONED)
        return True

    # ── Lifecycle ─────────────────────────────────────────────────────

    def reset(self) -> None:
        """Clear both fields and the route; in-flight work becomes stale."""
        self.autocomplete.cancel_all()
        self._cancel_tasks()
        old = self._state
        state = SessionState(
            start=FieldSlot(generation=old.start.generation + 1),
            end=FieldSlot(generation=old.end.generation + 1),
            route_generation=old.route_generation + 1,
        )
        self._commit(state, SessionEvent.RESET)

    async def drain(self) -> None:
        """Wait until no suggestion, resolution or route task is pending."""
        while True:
            pending = [t for t in self._tasks if not t.done()] + self.autocomplete.pending()
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        self.autocomplete.cancel_all()
        self._cancel_tasks()
        await self.drain()
        self._listeners.clear()

    # ── Internals ─────────────────────────────────────────────────────

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_tasks(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._selections.clear()

    @staticmethod
    def _deactivate(state: SessionState, field: FieldId) -> SessionState:
        slot = state.slot(field)
        if not slot.active:
            return state
        return state.with_slot(field, replace(slot, active=False))

    @staticmethod
    def _invalidate_route(state: SessionState) -> SessionState:
        """An edit clears the route; outside a join the session goes IDLE."""
        state = replace(state, route=None)
        if state.phase is RoutePhase.RESOLVING:
            return state
        return replace(state.transition_to(RoutePhase.IDLE), last_error=None)

    @staticmethod
    def _to_session_error(
        exc: BaseException, field: Optional[FieldId]
    ) -> SessionError:
        if isinstance(exc, RoutingError):
            return SessionError(kind=exc.kind, message=str(exc), field=field)
        logger.error("Unexpected resolution failure", exc_info=exc)
        return SessionError(
            kind=ErrorKind.PROVIDER_ERROR,
            message=ProviderError.default_message,
            field=field,
        )

    def _commit(self, state: SessionState, event: SessionEvent) -> None:
        state = replace(
            state,
            map_view=derive(
                state.places,
                state.route,
                padding_ratio=self.padding_ratio,
                single_place_span_meters=self.single_place_span_meters,
            ),
        )
        state.check_invariants()
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state, event)
            except Exception:
                logger.exception("Session listener failed on %s", event.value)
