"""Domain enumerations and state-transition rules."""

import enum


class FieldId(str, enum.Enum):
    START = "START"
    END = "END"


class RoutePhase(str, enum.Enum):
    IDLE = "IDLE"
    RESOLVING = "RESOLVING"
    ROUTE_READY = "ROUTE_READY"
    ROUTE_FAILED = "ROUTE_FAILED"
    RESOLUTION_FAILED = "RESOLUTION_FAILED"


# State machine: maps current phase -> set of valid next phases.
# RESOLVING -> RESOLVING is a fresh trigger superseding an in-flight join.
PHASE_TRANSITIONS: dict[RoutePhase, set[RoutePhase]] = {
    RoutePhase.IDLE: {RoutePhase.RESOLVING},
    RoutePhase.RESOLVING: {
        RoutePhase.RESOLVING,
        RoutePhase.ROUTE_READY,
        RoutePhase.ROUTE_FAILED,
        RoutePhase.RESOLUTION_FAILED,
        RoutePhase.IDLE,
    },
    RoutePhase.ROUTE_READY: {RoutePhase.IDLE, RoutePhase.RESOLVING},
    RoutePhase.ROUTE_FAILED: {RoutePhase.IDLE, RoutePhase.RESOLVING},
    RoutePhase.RESOLUTION_FAILED: {RoutePhase.IDLE, RoutePhase.RESOLVING},
}


class ErrorKind(str, enum.Enum):
    NOT_FOUND = "NOT_FOUND"
    NO_ROUTE_FOUND = "NO_ROUTE_FOUND"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    INVALID_INPUT = "INVALID_INPUT"


class SessionEvent(str, enum.Enum):
    """What caused a published snapshot."""

    TEXT_CHANGED = "TEXT_CHANGED"
    FIELD_ACTIVATED = "FIELD_ACTIVATED"
    SUGGESTIONS_UPDATED = "SUGGESTIONS_UPDATED"
    SUGGESTION_SELECTED = "SUGGESTION_SELECTED"
    PLACE_RESOLVED = "PLACE_RESOLVED"
    RESOLUTION_FAILED = "RESOLUTION_FAILED"
    ROUTE_STARTED = "ROUTE_STARTED"
    ROUTE_READY = "ROUTE_READY"
    ROUTE_FAILED = "ROUTE_FAILED"
    ROUTE_ABANDONED = "ROUTE_ABANDONED"
    RESET = "RESET"
