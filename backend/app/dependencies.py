"""
Caisse Backend — Authentication & Authorization Dependencies
==============================================================

What:  FastAPI dependencies that gate routes by token and role.
How:   Each gate raises AuthenticationError (401) or AuthorizationError (403);
       the global exception handlers turn those into error envelopes.

Gates:
    require_user          valid bearer token
    require_admin         require_user + role in {super_admin, admin}
    require_sale_writer   require_user + role in {super_admin, admin, cashier, caissier}
    require_user_creator  require_admin, or nothing when OPEN_USER_CREATION is on
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request

from app.config import settings
from app.exceptions import AuthenticationError, AuthorizationError
from app.roles import ADMIN_ROLES, SALE_WRITER_ROLES
from app.schemas.auth import SessionUser
from app.security import decode_token, extract_bearer_token

logger = logging.getLogger(__name__)


async def require_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> SessionUser:
    """Resolve the caller from the `Authorization: Bearer` header."""
    token = extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError(context={"reason": "missing_token"})

    user = decode_token(token)
    request.state.user = user
    return user


async def require_admin(user: SessionUser = Depends(require_user)) -> SessionUser:
    if user.role not in ADMIN_ROLES:
        logger.warning("User %s (role=%s) denied admin access", user.id, user.role)
        raise AuthorizationError()
    return user


async def require_sale_writer(user: SessionUser = Depends(require_user)) -> SessionUser:
    if user.role not in SALE_WRITER_ROLES:
        logger.warning("User %s (role=%s) denied sale entry", user.id, user.role)
        raise AuthorizationError()
    return user


async def require_user_creator(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> Optional[SessionUser]:
    """
    Gate for POST /api/users.

    Whether account creation needs an admin is a deployment policy
    (OPEN_USER_CREATION); admin-only unless explicitly opened.
    """
    if settings.open_user_creation:
        return None
    user = await require_user(request, authorization)
    return await require_admin(user)
