"""
api/routes/v1/auth.py -- Login, registration and admin-check REST endpoints.

Routes:
  POST /api/v1/auth/login     -- email + password + app_id -> signed token
  POST /api/v1/auth/register  -- email + password -> new user id (201)
  POST /api/v1/auth/is-admin  -- user_id -> admin flag

All three are public: they ARE the authentication step. Request-body checks
(non-empty fields, non-zero ids) happen in api/models.py before a handler
runs. Domain errors raised by AuthService propagate to the AuthError handler
in api/main.py, which owns the kind -> status mapping.

Handlers are plain `def`, so FastAPI runs them on its worker threadpool.
bcrypt work in one request does not block the event loop or other requests.

Security:
  Cache-Control: no-store on login responses -- the body is a bearer credential.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.models import (
    IsAdminRequest,
    IsAdminResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
)
from auth.dependencies import get_auth_service, get_deadline
from auth.service import AuthService
from core.deadline import Deadline

router = APIRouter()


@router.post("/auth/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
    deadline: Deadline = Depends(get_deadline),
) -> JSONResponse:
    """Exchange credentials for a token scoped to body.app_id.

    Wrong password and unknown email return the same 401 invalid_credentials.
    An unknown app_id returns 400 invalid_app_id.
    """
    token = service.login(body.email, body.password, body.app_id, deadline=deadline)
    resp = JSONResponse(status_code=200, content=LoginResponse(token=token).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
    deadline: Deadline = Depends(get_deadline),
) -> RegisterResponse:
    """Create an account. A duplicate email returns 409 already_exists."""
    user_id = service.register_new_user(body.email, body.password, deadline=deadline)
    return RegisterResponse(user_id=user_id)


@router.post("/auth/is-admin", response_model=IsAdminResponse)
def is_admin(
    body: IsAdminRequest,
    service: AuthService = Depends(get_auth_service),
    deadline: Deadline = Depends(get_deadline),
) -> IsAdminResponse:
    """Report whether body.user_id holds the admin flag.

    An unknown user id returns 401 invalid_credentials, the status existing
    clients already handle.
    """
    return IsAdminResponse(is_admin=service.is_admin(body.user_id, deadline=deadline))
