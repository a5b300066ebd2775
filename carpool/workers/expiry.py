"""
Session Expiry Worker
=====================

Background loop that closes sessions whose client stopped calling the API.

Every ``session_sweep_interval_seconds`` the worker asks the registry to
evict sessions unseen for ``session_idle_seconds``.  Started and stopped by
the application lifespan.
"""

from __future__ import annotations

import asyncio
import logging

from carpool.services.registry import SessionRegistry

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_expiry_loop(registry: SessionRegistry) -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop(registry))
    logger.info(
        "Session expiry worker started (interval=%.0fs, idle=%.0fs)",
        registry.settings.session_sweep_interval_seconds,
        registry.settings.session_idle_seconds,
    )


async def stop_expiry_loop() -> None:
    global _task
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
        _task = None
    logger.info("Session expiry worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop(registry: SessionRegistry) -> None:
    """Periodic loop: evict idle sessions then sleep."""
    assert _stop_event is not None
    interval = registry.settings.session_sweep_interval_seconds
    while not _stop_event.is_set():
        try:
            await registry.evict_idle()
        except Exception:
            logger.exception("Unhandled error in session expiry sweep")
        try:
            await asyncio.wait_for(_stop_event.wait(), timeout=interval)
            break
        except asyncio.TimeoutError:
            pass  # next sweep
