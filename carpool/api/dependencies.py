"""FastAPI dependency injection helpers."""

from fastapi import Depends, HTTPException, Request

from carpool.services.registry import SessionRegistry
from carpool.services.session import RouteSession


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_session(
    session_id: str, registry: SessionRegistry = Depends(get_registry)
) -> RouteSession:
    """Look up the session addressed by the path, or 404."""
    session = registry.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session
