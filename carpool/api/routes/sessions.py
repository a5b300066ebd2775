"""
Session endpoints
=================

POST   /api/v1/sessions                                   -- open a session (503 when full)
GET    /api/v1/sessions/{id}                              -- current snapshot
PUT    /api/v1/sessions/{id}/fields/{field}/text          -- keystroke(s)
POST   /api/v1/sessions/{id}/fields/{field}/activate      -- focus a field
POST   /api/v1/sessions/{id}/fields/{field}/suggestions/{index}/select
POST   /api/v1/sessions/{id}/route                        -- trigger routing (202)
POST   /api/v1/sessions/{id}/reset                        -- clear everything
DELETE /api/v1/sessions/{id}                              -- close a session

The presentation only forwards raw events; every snapshot returned here is
the session's published state at the time of the response.
"""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from carpool.api.dependencies import get_registry, get_session
from carpool.api.middleware import limiter
from carpool.api.schemas import SessionResponse, TextUpdateRequest
from carpool.config import settings
from carpool.domain.enums import FieldId
from carpool.services.registry import SessionLimitReached, SessionRegistry
from carpool.services.session import RouteSession

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _snapshot(session: RouteSession) -> SessionResponse:
    return SessionResponse.from_state(session.id, session.state)


@router.post(
    "",
    status_code=201,
    response_model=SessionResponse,
    summary="Open a route-planning session",
)
@limiter.limit(settings.rate_limit)
async def create_session(
    request: Request,
    registry: SessionRegistry = Depends(get_registry),
):
    try:
        session = registry.create()
    except SessionLimitReached as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return _snapshot(session)


@router.get("/{session_id}", response_model=SessionResponse, summary="Get session state")
@limiter.limit(settings.rate_limit)
async def get_session_state(
    request: Request,
    session: RouteSession = Depends(get_session),
):
    return _snapshot(session)


@router.put(
    "/{session_id}/fields/{field}/text",
    response_model=SessionResponse,
    summary="Update a location field's text",
    description="Suggestions arrive asynchronously after the debounce window.",
)
@limiter.limit(settings.rate_limit)
async def update_text(
    request: Request,
    field: FieldId,
    body: TextUpdateRequest,
    session: RouteSession = Depends(get_session),
):
    session.on_text_changed(field, body.text)
    return _snapshot(session)


@router.post(
    "/{session_id}/fields/{field}/activate",
    response_model=SessionResponse,
    summary="Make a field the active one",
)
@limiter.limit(settings.rate_limit)
async def activate_field(
    request: Request,
    field: FieldId,
    session: RouteSession = Depends(get_session),
):
    session.activate_field(field)
    return _snapshot(session)


@router.post(
    "/{session_id}/fields/{field}/suggestions/{index}/select",
    response_model=SessionResponse,
    summary="Accept one of the field's current suggestions",
)
@limiter.limit(settings.rate_limit)
async def select_suggestion(
    request: Request,
    field: FieldId,
    index: int,
    wait: bool = False,
    session: RouteSession = Depends(get_session),
):
    try:
        task = session.select_suggestion_at(field, index)
    except IndexError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if wait:
        await asyncio.wait({task})
    return _snapshot(session)


@router.post(
    "/{session_id}/route",
    status_code=202,
    response_model=SessionResponse,
    summary="Resolve both fields and compute a route",
    responses={202: {"description": "Routing started; poll the session or pass wait=true."}},
)
@limiter.limit(settings.rate_limit)
async def trigger_route(
    request: Request,
    wait: bool = False,
    session: RouteSession = Depends(get_session),
):
    task = session.trigger_route()
    if wait and task is not None:
        await asyncio.wait({task})
    return _snapshot(session)


@router.post(
    "/{session_id}/reset",
    response_model=SessionResponse,
    summary="Clear both fields and the route",
)
@limiter.limit(settings.rate_limit)
async def reset_session(
    request: Request,
    session: RouteSession = Depends(get_session),
):
    session.reset()
    return _snapshot(session)


@router.delete("/{session_id}", status_code=204, summary="Close a session")
@limiter.limit(settings.rate_limit)
async def close_session(
    request: Request,
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
):
    if not await registry.remove(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return Response(status_code=204)
