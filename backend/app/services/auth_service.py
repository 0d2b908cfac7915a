"""
Caisse Backend — Authentication Service
=========================================

What:  Signup and login flows.
Who:   Called by POST /api/signup and POST /api/login.

Failure masking:
    Unknown email and wrong password raise the same AuthenticationError
    with the same message, so a caller cannot probe which emails exist.
"""

import logging
from typing import Optional, Tuple

from sqlalchemy import select

from app.config import settings
from app.database import Database
from app.exceptions import AuthenticationError, ValidationError
from app.models.user import User
from app.roles import DEFAULT_ROLE, SIGNUP_ROLE
from app.schemas.auth import SessionUser
from app.security import create_token, dummy_password_hash, verify_password
from app.services.user_service import user_service

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class AuthService:
    """
    Signup and login.

    Stateless: the database handle is passed to every call.
    """

    async def signup(
        self,
        db: Database,
        email: Optional[str],
        password: Optional[str],
        agencies: Optional[str] = None,
    ) -> int:
        """
        Self-service account creation.

        New accounts get the `client` role in the default company.

        Raises:
            ValidationError: email or password missing
            ConflictError:   email already registered
        """
        user_id = await user_service.create_user(
            db,
            email=email,
            password=password,
            role=SIGNUP_ROLE,
            company=settings.default_company,
            agencies=agencies,
        )
        logger.info("Signup completed for user %s", user_id)
        return user_id

    async def login(
        self,
        db: Database,
        email: Optional[str],
        password: Optional[str],
    ) -> Tuple[str, SessionUser]:
        """
        Check credentials and issue a session token.

        Returns:
            (token, session user)

        Raises:
            ValidationError:     email or password missing
            AuthenticationError: unknown email or wrong password (same message)
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        row = await db.fetch_one(
            select(
                User.id,
                User.email,
                User.password_hash,
                User.role,
                User.company,
                User.agencies,
            ).where(User.email == email)
        )
        # Unknown emails still pay for one bcrypt check
        stored_hash = row["password_hash"] if row is not None else await dummy_password_hash()
        password_ok = await verify_password(password, stored_hash)
        if row is None or not password_ok:
            logger.warning("Rejected login attempt")
            raise AuthenticationError(INVALID_CREDENTIALS)

        user = SessionUser(
            id=row["id"],
            email=row["email"],
            role=row["role"] or DEFAULT_ROLE,
            company=row["company"] or "",
            agencies=row["agencies"] or "",
        )
        token = create_token(user)
        logger.info("User %s logged in (role=%s)", user.id, user.role)
        return token, user


# ── Singleton Instance ────────────────────────────────────────────────────
auth_service = AuthService()
