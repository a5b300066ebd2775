"""
Domain value objects and the session snapshot.

Patterns used
-------------
- **Immutable snapshots**: every object here is a frozen dataclass.  The
  session never mutates state in place; it builds a new ``SessionState``
  with ``dataclasses.replace`` and publishes it.
- **State Pattern** on ``SessionState.phase``: ``transition_to`` enforces the
  routing lifecycle (IDLE -> RESOLVING -> ROUTE_READY | ROUTE_FAILED |
  RESOLUTION_FAILED -> IDLE).
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .enums import PHASE_TRANSITIONS, ErrorKind, FieldId, RoutePhase
from .formatting import format_distance, format_duration


class InvalidStateTransition(Exception):
    """Raised when a routing phase change violates the state machine."""


class SessionInvariantError(Exception):
    """Raised when a snapshot breaks one of the session invariants."""


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class Suggestion:
    title: str
    subtitle: str = ""
    token: Optional[Any] = None  # opaque provider token


@dataclass(frozen=True)
class ResolvedPlace:
    display_name: str
    coordinate: Coordinate


@dataclass(frozen=True)
class RouteResult:
    polyline: tuple[Coordinate, ...]
    distance_meters: float
    duration_seconds: float

    @property
    def distance_text(self) -> str:
        return format_distance(self.distance_meters)

    @property
    def duration_text(self) -> str:
        return format_duration(self.duration_seconds)


@dataclass(frozen=True)
class MapRegion:
    """Bounding box in degrees."""

    south: float
    west: float
    north: float
    east: float

    @property
    def center(self) -> Coordinate:
        return Coordinate(
            (self.south + self.north) / 2, (self.west + self.east) / 2
        )

    def contains(self, point: Coordinate) -> bool:
        return (
            self.south <= point.latitude <= self.north
            and self.west <= point.longitude <= self.east
        )


@dataclass(frozen=True)
class Annotation:
    field: FieldId
    coordinate: Coordinate
    label: str


@dataclass(frozen=True)
class MapViewState:
    region: Optional[MapRegion] = None
    overlay: Optional[tuple[Coordinate, ...]] = None
    annotations: tuple[Annotation, ...] = ()


@dataclass(frozen=True)
class SessionError:
    kind: ErrorKind
    message: str
    field: Optional[FieldId] = None


# ── Session snapshot ──────────────────────────────────────────────────


@dataclass(frozen=True)
class FieldSlot:
    query: str = ""
    resolved: Optional[ResolvedPlace] = None
    suggestions: tuple[Suggestion, ...] = ()
    active: bool = False
    generation: int = 0
    error: Optional[SessionError] = None


@dataclass(frozen=True)
class SessionState:
    start: FieldSlot = field(default_factory=FieldSlot)
    end: FieldSlot = field(default_factory=FieldSlot)
    route: Optional[RouteResult] = None
    map_view: MapViewState = field(default_factory=MapViewState)
    phase: RoutePhase = RoutePhase.IDLE
    busy: bool = False
    last_error: Optional[SessionError] = None
    route_generation: int = 0

    def slot(self, field_id: FieldId) -> FieldSlot:
        return self.start if field_id is FieldId.START else self.end

    def with_slot(self, field_id: FieldId, slot: FieldSlot) -> SessionState:
        if field_id is FieldId.START:
            return replace(self, start=slot)
        return replace(self, end=slot)

    @property
    def places(self) -> dict[FieldId, Optional[ResolvedPlace]]:
        return {FieldId.START: self.start.resolved, FieldId.END: self.end.resolved}

    @property
    def active_field(self) -> Optional[FieldId]:
        for field_id in FieldId:
            if self.slot(field_id).active:
                return field_id
        return None

    def transition_to(self, new_phase: RoutePhase) -> SessionState:
        """Return a copy in *new_phase* if the transition is legal, else raise."""
        if new_phase is self.phase and new_phase is not RoutePhase.RESOLVING:
            return self
        allowed = PHASE_TRANSITIONS.get(self.phase, set())
        if new_phase not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.phase} to {new_phase}"
            )
        return replace(self, phase=new_phase)

    def check_invariants(self) -> None:
        if self.start.active and self.end.active:
            raise SessionInvariantError("Both fields are active")
        if self.route is not None and (
            self.start.resolved is None or self.end.resolved is None
        ):
            raise SessionInvariantError("Route exists without two resolved places")
        if self.map_view.overlay is not None and self.route is None:
            raise SessionInvariantError("Overlay exists without a route")
