"""
Error taxonomy shared by the resolver, the route calculator and the session.

Every error carries its ``ErrorKind`` so the session can record it as a
user-visible condition without inspecting exception types.
"""

from __future__ import annotations

from typing import Optional

from .enums import ErrorKind, FieldId


class RoutingError(Exception):
    kind: ErrorKind = ErrorKind.PROVIDER_ERROR
    default_message = "request failed"

    def __init__(self, message: str = "", field: Optional[FieldId] = None):
        super().__init__(message or self.default_message)
        self.field = field


class NotFound(RoutingError):
    """Geocoding yielded no match."""

    kind = ErrorKind.NOT_FOUND
    default_message = "location not found"


class NoRouteFound(RoutingError):
    """Directions provider returned no route."""

    kind = ErrorKind.NO_ROUTE_FOUND
    default_message = "route unavailable"


class ProviderError(RoutingError):
    """Network or service failure, including timeouts."""

    kind = ErrorKind.PROVIDER_ERROR
    default_message = "search failed"


class InvalidInput(RoutingError):
    """Empty query submitted for resolution."""

    kind = ErrorKind.INVALID_INPUT
    default_message = "location is empty"
