"""
auth/dependencies.py -- FastAPI Depends() helpers for the auth routes.

get_auth_service() hands route handlers the AuthService built in the API
lifespan (app.state.auth_service). get_deadline() builds the per-request
Deadline from Settings.request_timeout_seconds (app.state.settings).

Both read app.state rather than module globals so tests can wire in their own
service and settings through a patched lifespan.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.service import AuthService
from core.deadline import Deadline


def get_auth_service(request: Request) -> AuthService:
    """Return the shared AuthService. Safe to share: the service is stateless."""
    return request.app.state.auth_service


def get_deadline(request: Request) -> Deadline:
    """Start the per-call deadline when the route's dependencies resolve.

    Use as a FastAPI dependency:
        @router.post("/auth/login")
        def login(deadline: Deadline = Depends(get_deadline)): ...
    """
    return Deadline.after(request.app.state.settings.request_timeout_seconds)
