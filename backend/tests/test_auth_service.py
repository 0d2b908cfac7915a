"""
Caisse Backend — Auth Service Tests
=====================================

What:  Signup and login against a real (throwaway) SQLite database.

What we test:
    ✅ Signup creates a client in the default company
    ✅ Login returns a token that decodes to the stored identity
    ✅ Unknown email and wrong password fail identically
    ✅ Missing fields and duplicate emails
"""

import pytest

from app.exceptions import AuthenticationError, ConflictError, ValidationError
from app.security import decode_token, verify_password
from app.services.auth_service import INVALID_CREDENTIALS, AuthService


class TestSignup:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_signup_creates_client_account(self, db):
        user_id = await self.service.signup(db, "new@acme.test", "pw", agencies="Lyon")

        row = await db.fetch_one("SELECT * FROM users WHERE id = :id", {"id": user_id})
        assert row["email"] == "new@acme.test"
        assert row["role"] == "client"
        assert row["company"] == "ACME"
        assert row["agencies"] == "Lyon"
        assert row["password_hash"] != "pw"

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts(self, db):
        await self.service.signup(db, "dup@acme.test", "pw")

        with pytest.raises(ConflictError) as excinfo:
            await self.service.signup(db, "dup@acme.test", "other")
        assert excinfo.value.message == "User already exists"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email, password", [(None, "pw"), ("a@acme.test", None), ("", "")])
    async def test_missing_fields(self, db, email, password):
        with pytest.raises(ValidationError):
            await self.service.signup(db, email, password)


class TestLogin:

    def setup_method(self):
        self.service = AuthService()

    @pytest.mark.asyncio
    async def test_login_issues_token_for_stored_identity(self, db):
        user_id = await self.service.signup(db, "c@acme.test", "secret", agencies="A,B")

        token, user = await self.service.login(db, "c@acme.test", "secret")

        assert user.id == user_id
        assert user.email == "c@acme.test"
        assert user.role == "client"
        assert user.company == "ACME"
        assert user.agencies == "A,B"
        assert decode_token(token) == user

    @pytest.mark.asyncio
    async def test_wrong_password_and_unknown_email_fail_identically(self, db):
        await self.service.signup(db, "c@acme.test", "secret")

        with pytest.raises(AuthenticationError) as wrong_password:
            await self.service.login(db, "c@acme.test", "nope")
        with pytest.raises(AuthenticationError) as unknown_email:
            await self.service.login(db, "ghost@acme.test", "secret")

        assert wrong_password.value.message == INVALID_CREDENTIALS
        assert unknown_email.value.message == INVALID_CREDENTIALS
        assert wrong_password.value.context == unknown_email.value.context

    @pytest.mark.asyncio
    async def test_unknown_email_still_checks_a_password(self, db, monkeypatch):
        """Unknown emails cost one bcrypt check, like a wrong password."""
        checked = []

        async def recording_verify(password, password_hash):
            checked.append(password_hash)
            return await verify_password(password, password_hash)

        monkeypatch.setattr("app.services.auth_service.verify_password", recording_verify)

        with pytest.raises(AuthenticationError):
            await self.service.login(db, "ghost@acme.test", "secret")

        assert len(checked) == 1
        assert checked[0].startswith("$2")

    @pytest.mark.asyncio
    async def test_missing_fields(self, db):
        with pytest.raises(ValidationError):
            await self.service.login(db, "c@acme.test", None)
        with pytest.raises(ValidationError):
            await self.service.login(db, None, "secret")

    @pytest.mark.asyncio
    async def test_legacy_row_without_role_logs_in_as_user(self, db):
        """Rows written before roles existed have role NULL."""
        await self.service.signup(db, "old@acme.test", "pw")
        await db.execute("UPDATE users SET role = NULL, company = NULL WHERE email = 'old@acme.test'")

        _, user = await self.service.login(db, "old@acme.test", "pw")

        assert user.role == "user"
        assert user.company == ""
