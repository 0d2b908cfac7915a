"""
Caisse Backend — User Management Routes
=========================================

What:  Admin endpoints to list, create and delete accounts.

Route Inventory:
    GET    /api/users        admin; super_admin sees all, admin sees own company
    POST   /api/users        admin (or open, see OPEN_USER_CREATION)
    DELETE /api/users/{id}   admin; idempotent
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends

from app.database import Database, get_database
from app.dependencies import require_admin, require_user_creator
from app.exceptions import ValidationError
from app.schemas.auth import SessionUser
from app.schemas.common import ErrorResponse, OkResponse
from app.schemas.user import UserCreateRequest, UserItem, UserListResponse
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Users"])


@router.get(
    "/users",
    response_model=UserListResponse,
    responses={
        401: {"description": "Missing or invalid token", "model": ErrorResponse},
        403: {"description": "Caller is not an admin", "model": ErrorResponse},
    },
    summary="List user accounts",
)
async def list_users(
    admin: SessionUser = Depends(require_admin),
    db: Database = Depends(get_database),
) -> UserListResponse:
    rows = await user_service.list_users(db, viewer=admin)
    return UserListResponse(users=[UserItem(**row) for row in rows])


@router.post(
    "/users",
    response_model=OkResponse,
    responses={
        400: {"description": "Email or password missing", "model": ErrorResponse},
        403: {"description": "Caller may not grant the requested role", "model": ErrorResponse},
        409: {"description": "Email already registered", "model": ErrorResponse},
    },
    summary="Create a user account",
)
async def create_user(
    body: UserCreateRequest,
    creator: Optional[SessionUser] = Depends(require_user_creator),
    db: Database = Depends(get_database),
) -> OkResponse:
    await user_service.create_user_as(
        db,
        creator,
        email=body.email,
        password=body.password,
        role=body.role,
        company=body.company,
        agencies=body.agencies,
    )
    return OkResponse()


@router.delete(
    "/users/{user_id}",
    response_model=OkResponse,
    responses={
        400: {"description": "Blank id", "model": ErrorResponse},
        500: {"description": "Database error", "model": ErrorResponse},
    },
    summary="Delete a user account",
    description="Succeeds whether or not the account exists.",
)
async def delete_user(
    user_id: str,
    admin: SessionUser = Depends(require_admin),
    db: Database = Depends(get_database),
) -> OkResponse:
    user_id = user_id.strip()
    if not user_id:
        raise ValidationError("missing_id", field="id")
    await user_service.delete_user(db, user_id)
    logger.info("User %s deleted by %s", user_id, admin.id)
    return OkResponse()
