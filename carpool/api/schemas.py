"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from carpool.domain.entities import (
    Coordinate,
    FieldSlot,
    MapViewState,
    ResolvedPlace,
    RouteResult,
    SessionError,
    SessionState,
)


# ── Requests ──────────────────────────────────────────────────────────


class TextUpdateRequest(BaseModel):
    text: str = Field(..., max_length=256)


# ── Responses ─────────────────────────────────────────────────────────


class CoordinateResponse(BaseModel):
    lat: float
    lng: float

    @classmethod
    def from_domain(cls, c: Coordinate) -> CoordinateResponse:
        return cls(lat=c.latitude, lng=c.longitude)


class SuggestionResponse(BaseModel):
    index: int
    title: str
    subtitle: str


class PlaceResponse(BaseModel):
    display_name: str
    coordinate: CoordinateResponse

    @classmethod
    def from_domain(cls, place: ResolvedPlace) -> PlaceResponse:
        return cls(
            display_name=place.display_name,
            coordinate=CoordinateResponse.from_domain(place.coordinate),
        )


class ErrorResponse(BaseModel):
    kind: str
    message: str
    field: Optional[str] = None

    @classmethod
    def from_domain(cls, error: SessionError) -> ErrorResponse:
        return cls(
            kind=error.kind.value,
            message=error.message,
            field=error.field.value if error.field else None,
        )


class FieldResponse(BaseModel):
    query: str
    active: bool
    suggestions: list[SuggestionResponse] = []
    resolved: Optional[PlaceResponse] = None
    error: Optional[ErrorResponse] = None

    @classmethod
    def from_domain(cls, slot: FieldSlot) -> FieldResponse:
        return cls(
            query=slot.query,
            active=slot.active,
            suggestions=[
                SuggestionResponse(index=i, title=s.title, subtitle=s.subtitle)
                for i, s in enumerate(slot.suggestions)
            ],
            resolved=PlaceResponse.from_domain(slot.resolved) if slot.resolved else None,
            error=ErrorResponse.from_domain(slot.error) if slot.error else None,
        )


class RouteResponse(BaseModel):
    distance_meters: float
    duration_seconds: float
    distance_text: str
    duration_text: str
    polyline: list[CoordinateResponse]

    @classmethod
    def from_domain(cls, route: RouteResult) -> RouteResponse:
        return cls(
            distance_meters=route.distance_meters,
            duration_seconds=route.duration_seconds,
            distance_text=route.distance_text,
            duration_text=route.duration_text,
            polyline=[CoordinateResponse.from_domain(p) for p in route.polyline],
        )


class RegionResponse(BaseModel):
    south: float
    west: float
    north: float
    east: float
    center: CoordinateResponse


class AnnotationResponse(BaseModel):
    field: str
    label: str
    coordinate: CoordinateResponse


class MapViewResponse(BaseModel):
    region: Optional[RegionResponse] = None
    overlay: Optional[list[CoordinateResponse]] = None
    annotations: list[AnnotationResponse] = []

    @classmethod
    def from_domain(cls, view: MapViewState) -> MapViewResponse:
        region = None
        if view.region is not None:
            r = view.region
            region = RegionResponse(
                south=r.south, west=r.west, north=r.north, east=r.east,
                center=CoordinateResponse.from_domain(r.center),
            )
        overlay = None
        if view.overlay is not None:
            overlay = [CoordinateResponse.from_domain(p) for p in view.overlay]
        return cls(
            region=region,
            overlay=overlay,
            annotations=[
                AnnotationResponse(
                    field=a.field.value,
                    label=a.label,
                    coordinate=CoordinateResponse.from_domain(a.coordinate),
                )
                for a in view.annotations
            ],
        )


class SessionResponse(BaseModel):
    id: str
    phase: str
    busy: bool
    start: FieldResponse
    end: FieldResponse
    route: Optional[RouteResponse] = None
    map_view: MapViewResponse
    last_error: Optional[ErrorResponse] = None

    @classmethod
    def from_state(cls, session_id: str, state: SessionState) -> SessionResponse:
        return cls(
            id=session_id,
            phase=state.phase.value,
            busy=state.busy,
            start=FieldResponse.from_domain(state.start),
            end=FieldResponse.from_domain(state.end),
            route=RouteResponse.from_domain(state.route) if state.route else None,
            map_view=MapViewResponse.from_domain(state.map_view),
            last_error=ErrorResponse.from_domain(state.last_error) if state.last_error else None,
        )


class HealthResponse(BaseModel):
    status: str = "ok"


class SessionCountResponse(BaseModel):
    active_sessions: int
