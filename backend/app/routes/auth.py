"""
Caisse Backend — Authentication Routes
========================================

What:  POST /api/signup (public self-registration) and POST /api/login.
How:   Thin handlers: parse the body, delegate to AuthService, wrap the
       result in an `{ok: true}` envelope. Errors are raised as application
       exceptions and formatted by the global handlers.
"""

import logging

from fastapi import APIRouter, Depends

from app.database import Database, get_database
from app.schemas.auth import LoginRequest, LoginResponse, SignupRequest
from app.schemas.common import ErrorResponse, OkResponse
from app.services.auth_service import auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


@router.post(
    "/signup",
    response_model=OkResponse,
    responses={
        400: {"description": "Email or password missing", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create a client account",
)
async def signup(
    body: SignupRequest,
    db: Database = Depends(get_database),
) -> OkResponse:
    await auth_service.signup(
        db,
        email=body.email,
        password=body.password,
        agencies=body.agencies,
    )
    return OkResponse()


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        400: {"description": "Email or password missing", "model": ErrorResponse},
        401: {"description": "Invalid credentials", "model": ErrorResponse},
    },
    summary="Exchange credentials for a session token",
    description="Returns a bearer token valid for TOKEN_TTL_HOURS and the session identity.",
)
async def login(
    body: LoginRequest,
    db: Database = Depends(get_database),
) -> LoginResponse:
    token, user = await auth_service.login(db, email=body.email, password=body.password)
    return LoginResponse(token=token, user=user)
