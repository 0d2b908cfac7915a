"""
Caisse Backend — User Service
===============================

What:  Account creation, listing, deletion, and the first-run administrator.
Who:   Called by the user routes, by AuthService.signup and by the lifespan.

Scoping:
    super_admin lists and creates accounts in every company; admin lists
    and creates accounts of their own company only, and never a super_admin.
    With OPEN_USER_CREATION an anonymous caller may create non-admin accounts. Deletion is idempotent: removing an id that does not exist
    still succeeds.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select

from app.config import settings
from app.database import Database
from app.exceptions import AuthorizationError, ConflictError, ValidationError
from app.models.user import User
from app.roles import ADMIN_ROLES, DEFAULT_ROLE, Role, is_super_admin, parse_agencies
from app.schemas.auth import SessionUser
from app.security import hash_password

logger = logging.getLogger(__name__)

_KNOWN_ROLES = {role.value for role in Role}


class UserService:
    """Business logic for user accounts."""

    async def create_user(
        self,
        db: Database,
        email: Optional[str],
        password: Optional[str],
        role: Optional[str] = None,
        company: Optional[str] = None,
        agencies: Optional[str] = None,
    ) -> int:
        """
        Insert a new account.

        Defaults: role `user`, company DEFAULT_COMPANY, no agencies.

        Returns:
            The new user's id

        Raises:
            ValidationError: email/password missing, unknown role
            ConflictError:   email already registered
            StorageError:    any other database failure
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        role = role or DEFAULT_ROLE
        if role not in _KNOWN_ROLES:
            raise ValidationError(f"Unknown role '{role}'", field="role")

        password_hash = await hash_password(password)
        try:
            result = await db.execute(
                insert(User).values(
                    email=email,
                    password_hash=password_hash,
                    role=role,
                    company=company or settings.default_company,
                    agencies=agencies or "",
                )
            )
        except ConflictError as exc:
            raise ConflictError("User already exists", context=exc.context) from exc

        logger.info("User %s created (role=%s)", result.lastrowid, role)
        return result.lastrowid

    async def create_user_as(
        self,
        db: Database,
        creator: Optional[SessionUser],
        email: Optional[str],
        password: Optional[str],
        role: Optional[str] = None,
        company: Optional[str] = None,
        agencies: Optional[str] = None,
    ) -> int:
        """
        Account creation requested through the API.

        `creator` is None when OPEN_USER_CREATION lets anonymous callers in.

        Raises:
            AuthorizationError: the creator may not grant `role`
            (plus everything create_user raises)
        """
        requested_role = role or DEFAULT_ROLE
        if creator is None:
            if requested_role in ADMIN_ROLES:
                logger.warning("Anonymous caller denied creation of a %s account", requested_role)
                raise AuthorizationError()
        elif not is_super_admin(creator.role):
            if requested_role == Role.SUPER_ADMIN.value:
                logger.warning("User %s (role=%s) denied super_admin creation", creator.id, creator.role)
                raise AuthorizationError()
            # Admins only populate their own company
            company = creator.company or settings.default_company

        return await self.create_user(
            db,
            email=email,
            password=password,
            role=role,
            company=company,
            agencies=agencies,
        )

    async def list_users(self, db: Database, viewer: SessionUser) -> List[Dict[str, Any]]:
        """Accounts visible to `viewer`, newest first, without password hashes."""
        stmt = select(User.id, User.email, User.role, User.company, User.agencies)
        if not is_super_admin(viewer.role):
            stmt = stmt.where(User.company == viewer.company)
        return await db.fetch_many(stmt.order_by(User.id.desc()))

    async def delete_user(self, db: Database, user_id: str) -> None:
        result = await db.execute(delete(User).where(User.id == user_id))
        logger.info("Delete user %s (rows affected: %d)", user_id, result.rowcount)

    async def ensure_bootstrap_admin(self, db: Database) -> bool:
        """
        Create the configured super_admin if it does not exist yet.

        What:  First-run access for a fresh database.
        When:  Once per startup, after schema initialization.
        How:   Uses BOOTSTRAP_ADMIN_EMAIL / BOOTSTRAP_ADMIN_PASSWORD. When they
               are unset nothing is created; a warning is logged if the
               database has no super_admin at all.

        Returns:
            True if an account was created.
        """
        email = settings.bootstrap_admin_email
        password = settings.bootstrap_admin_password
        if not email or not password:
            existing = await db.fetch_one(
                select(User.id).where(User.role == Role.SUPER_ADMIN.value).limit(1)
            )
            if existing is None:
                logger.warning(
                    "No super_admin account exists and BOOTSTRAP_ADMIN_EMAIL / "
                    "BOOTSTRAP_ADMIN_PASSWORD are not set"
                )
            return False

        if await db.fetch_one(select(User.id).where(User.email == email)) is not None:
            return False

        try:
            await self.create_user(
                db,
                email=email,
                password=password,
                role=Role.SUPER_ADMIN.value,
                company=settings.bootstrap_admin_company,
                agencies=",".join(parse_agencies(settings.bootstrap_admin_agencies)),
            )
        except ConflictError:
            # Another worker created it between the lookup and the insert
            return False

        logger.info("Bootstrap administrator created: %s", email)
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
