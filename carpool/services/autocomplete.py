"""
Autocomplete Coordinator
========================

Debounces text changes per field and drives the suggestion provider.

Per field there is at most one pending task.  A newer text change cancels
it (cooperatively: a request already sent may still complete remotely) and
schedules a fresh one after ``debounce_seconds`` of quiet.  Every update is
delivered together with the generation captured when the change arrived;
the session drops deliveries whose generation is no longer current.

Failures never reach the user: they are logged and delivered as an empty
list so stale suggestions disappear.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from carpool.domain.entities import Suggestion
from carpool.domain.enums import FieldId
from carpool.infrastructure.providers import SuggestionProvider

logger = logging.getLogger(__name__)

Deliver = Callable[[FieldId, int, tuple[Suggestion, ...]], None]


class AutocompleteCoordinator:
    def __init__(
        self,
        provider: SuggestionProvider,
        deliver: Deliver,
        *,
        debounce_seconds: float = 0.3,
        limit: int = 5,
        timeout: float = 12.0,
    ):
        self.provider = provider
        self.deliver = deliver
        self.debounce_seconds = debounce_seconds
        self.limit = limit
        self.timeout = timeout
        self._tasks: dict[FieldId, asyncio.Task] = {}

    # ── Public API ────────────────────────────────────────────────────

    def on_text_changed(self, field: FieldId, text: str, generation: int) -> None:
        self.cancel(field)
        query = text.strip()
        if not query:
            self.deliver(field, generation, ())
            return

        task = asyncio.create_task(
            self._fetch(field, query, generation),
            name=f"autocomplete-{field.value}-{generation}",
        )
        self._tasks[field] = task
        task.add_done_callback(lambda t, f=field: self._forget(f, t))

    def cancel(self, field: FieldId) -> None:
        task = self._tasks.pop(field, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_all(self) -> None:
        for field in list(self._tasks):
            self.cancel(field)

    def pending(self) -> list[asyncio.Task]:
        return [t for t in self._tasks.values() if not t.done()]

    async def drain(self) -> None:
        """Wait for every scheduled fetch to finish or be cancelled."""
        pending = self.pending()
        while pending:
            await asyncio.gather(*pending, return_exceptions=True)
            pending = self.pending()

    # ── Internals ─────────────────────────────────────────────────────

    def _forget(self, field: FieldId, task: asyncio.Task) -> None:
        if self._tasks.get(field) is task:
            del self._tasks[field]

    async def _fetch(self, field: FieldId, query: str, generation: int) -> None:
        await asyncio.sleep(self.debounce_seconds)
        logger.debug("Fetching suggestions for %s=%r (gen %d)", field.value, query, generation)

        updates = self.provider.suggest(query, self.limit)
        try:
            while True:
                try:
                    batch = await asyncio.wait_for(updates.__anext__(), timeout=self.timeout)
                except StopAsyncIteration:
                    break
                self.deliver(field, generation, tuple(batch[: self.limit]))
        except asyncio.TimeoutError:
            logger.warning("Suggestions for %s timed out after %.1fs", field.value, self.timeout)
            self.deliver(field, generation, ())
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.warning("Suggestion fetch failed for %s=%r", field.value, query, exc_info=True)
            self.deliver(field, generation, ())
        finally:
            aclose = getattr(updates, "aclose", None)
            if aclose is not None:
                await aclose()
