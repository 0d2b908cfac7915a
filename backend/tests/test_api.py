"""
Caisse Backend — HTTP API Tests
=================================

What:  End-to-end requests through the full middleware and handler stack.
How:   httpx AsyncClient over ASGITransport against create_app(database=db).

What we test:
    ✅ Liveness and health endpoints
    ✅ Signup / login envelopes and status codes
    ✅ Role gates on users and sales endpoints
    ✅ Sale upsert and scoped listing over HTTP
    ✅ Error envelopes carry the request ID
"""

from datetime import datetime, timedelta, timezone

import pytest

from app.config import settings
from app.security import create_token


async def _signup_and_login(client, email="c@acme.test", password="secret"):
    await client.post("/api/signup", json={"email": email, "password": password})
    response = await client.post("/api/login", json={"email": email, "password": password})
    return response.json()


class TestHealth:

    @pytest.mark.asyncio
    async def test_root_is_plain_text(self, test_client):
        response = await test_client.get("/")

        assert response.status_code == 200
        assert response.text == "Caisse backend OK"
        assert response.headers["content-type"].startswith("text/plain")

    @pytest.mark.asyncio
    async def test_health_reports_database(self, test_client, db):
        response = await test_client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True, "db": "sqlite", "path": db.path}

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/", headers={"X-Request-ID": "till-42"})
        assert response.headers["X-Request-ID"] == "till-42"

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, test_client):
        response = await test_client.get("/")
        assert len(response.headers["X-Request-ID"]) == 8


class TestSignupAndLogin:

    @pytest.mark.asyncio
    async def test_signup_then_login(self, test_client):
        response = await test_client.post(
            "/api/signup",
            json={"email": " c@acme.test ", "password": "secret", "agencies": ["Lyon", "Nice"]},
        )
        assert response.status_code == 200
        assert response.json() == {"ok": True}

        response = await test_client.post(
            "/api/login", json={"email": "c@acme.test", "password": "secret"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["token"]
        assert body["user"]["email"] == "c@acme.test"
        assert body["user"]["role"] == "client"
        assert body["user"]["company"] == "ACME"
        assert body["user"]["agencies"] == "Lyon,Nice"
        assert "password_hash" not in body["user"]

    @pytest.mark.asyncio
    async def test_duplicate_signup_conflicts(self, test_client):
        payload = {"email": "c@acme.test", "password": "secret"}
        await test_client.post("/api/signup", json=payload)

        response = await test_client.post("/api/signup", json=payload)

        assert response.status_code == 409
        assert response.json()["ok"] is False
        assert response.json()["error"] == "User already exists"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"email": "c@acme.test"}, {"password": "x"}])
    async def test_signup_missing_fields(self, test_client, payload):
        response = await test_client.post("/api/signup", json=payload)

        assert response.status_code == 400
        assert response.json()["ok"] is False

    @pytest.mark.asyncio
    async def test_malformed_body_is_400(self, test_client):
        response = await test_client.post(
            "/api/signup",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request body"

    @pytest.mark.asyncio
    async def test_login_failures_are_indistinguishable(self, test_client):
        await test_client.post("/api/signup", json={"email": "c@acme.test", "password": "secret"})
        headers = {"X-Request-ID": "probe"}

        wrong_password = await test_client.post(
            "/api/login", json={"email": "c@acme.test", "password": "nope"}, headers=headers
        )
        unknown_email = await test_client.post(
            "/api/login", json={"email": "ghost@acme.test", "password": "secret"}, headers=headers
        )

        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()
        assert wrong_password.json() == {
            "ok": False,
            "error": "Invalid credentials",
            "request_id": "probe",
        }

    @pytest.mark.asyncio
    async def test_login_missing_fields(self, test_client):
        response = await test_client.post("/api/login", json={"email": "c@acme.test"})
        assert response.status_code == 400


class TestUsersEndpoints:

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client):
        response = await test_client.get("/api/users")

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["cashier", "caissier", "client", "user"])
    async def test_non_admin_is_forbidden(self, test_client, make_user, auth_headers, role):
        headers = auth_headers(make_user(role=role))

        assert (await test_client.get("/api/users", headers=headers)).status_code == 403
        response = await test_client.post(
            "/api/users", json={"email": "x@acme.test", "password": "pw"}, headers=headers
        )
        assert response.status_code == 403
        assert (await test_client.delete("/api/users/1", headers=headers)).status_code == 403

    @pytest.mark.asyncio
    async def test_admin_creates_and_lists(self, test_client, make_user, auth_headers):
        headers = auth_headers(make_user(role="admin", company="ACME"))

        response = await test_client.post(
            "/api/users",
            json={"email": "new@acme.test", "password": "pw", "role": "cashier", "agencies": "Lyon"},
            headers=headers,
        )
        assert response.status_code == 200

        response = await test_client.get("/api/users", headers=headers)
        assert response.status_code == 200
        users = response.json()["users"]
        assert [u["email"] for u in users] == ["new@acme.test"]
        assert users[0]["role"] == "cashier"
        assert "password_hash" not in users[0]

    @pytest.mark.asyncio
    async def test_unknown_role_is_400(self, test_client, make_user, auth_headers):
        response = await test_client.post(
            "/api/users",
            json={"email": "new@acme.test", "password": "pw", "role": "owner"},
            headers=auth_headers(make_user(role="super_admin")),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_open_user_creation(self, test_client, monkeypatch):
        monkeypatch.setattr(settings, "open_user_creation", True)

        response = await test_client.post(
            "/api/users", json={"email": "self@acme.test", "password": "pw"}
        )

        assert response.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["admin", "super_admin"])
    async def test_open_user_creation_never_grants_admin_roles(self, test_client, monkeypatch, role):
        monkeypatch.setattr(settings, "open_user_creation", True)

        response = await test_client.post(
            "/api/users", json={"email": "self@acme.test", "password": "pw", "role": role}
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_admin_cannot_create_super_admin(self, test_client, make_user, auth_headers):
        headers = auth_headers(make_user(role="admin", company="ACME"))

        response = await test_client.post(
            "/api/users",
            json={"email": "root@other.test", "password": "pw", "role": "super_admin", "company": "OTHER"},
            headers=headers,
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"
        root = auth_headers(make_user(role="super_admin", company=""))
        assert (await test_client.get("/api/users", headers=root)).json()["users"] == []

    @pytest.mark.asyncio
    async def test_admin_creates_accounts_in_own_company(self, test_client, make_user, auth_headers):
        headers = auth_headers(make_user(role="admin", company="ACME"))

        response = await test_client.post(
            "/api/users",
            json={"email": "c@other.test", "password": "pw", "role": "cashier", "company": "OTHER"},
            headers=headers,
        )

        assert response.status_code == 200
        [user] = (await test_client.get("/api/users", headers=headers)).json()["users"]
        assert user["email"] == "c@other.test"
        assert user["company"] == "ACME"

    @pytest.mark.asyncio
    async def test_super_admin_may_create_anywhere(self, test_client, make_user, auth_headers):
        headers = auth_headers(make_user(role="super_admin", company="ACME"))

        response = await test_client.post(
            "/api/users",
            json={"email": "boss@other.test", "password": "pw", "role": "super_admin", "company": "OTHER"},
            headers=headers,
        )

        assert response.status_code == 200
        [user] = (await test_client.get("/api/users", headers=headers)).json()["users"]
        assert (user["role"], user["company"]) == ("super_admin", "OTHER")

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, test_client, make_user, auth_headers):
        headers = auth_headers(make_user(role="super_admin"))
        await test_client.post(
            "/api/users", json={"email": "gone@acme.test", "password": "pw"}, headers=headers
        )
        [user] = (await test_client.get("/api/users", headers=headers)).json()["users"]

        first = await test_client.delete(f"/api/users/{user['id']}", headers=headers)
        second = await test_client.delete(f"/api/users/{user['id']}", headers=headers)

        assert first.status_code == second.status_code == 200
        assert (await test_client.get("/api/users", headers=headers)).json()["users"] == []

    @pytest.mark.asyncio
    async def test_delete_blank_id_is_400(self, test_client, make_user, auth_headers):
        response = await test_client.delete(
            "/api/users/%20", headers=auth_headers(make_user(role="admin"))
        )
        assert response.status_code == 400


class TestSalesEndpoints:

    @pytest.mark.asyncio
    async def test_requires_token(self, test_client):
        assert (await test_client.get("/api/sales")).status_code == 401
        assert (await test_client.post("/api/sales", json={"id": "s"})).status_code == 401

    @pytest.mark.asyncio
    async def test_client_role_cannot_record(self, test_client):
        session = await _signup_and_login(test_client)

        response = await test_client.post(
            "/api/sales",
            json={"id": "s-1", "total": 1},
            headers={"Authorization": f"Bearer {session['token']}"},
        )

        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["cashier", "caissier", "admin", "super_admin"])
    async def test_writer_roles_can_record(self, test_client, make_user, auth_headers, role):
        response = await test_client.post(
            "/api/sales",
            json={"id": f"s-{role}", "agency": "Lyon", "total": 12.5},
            headers=auth_headers(make_user(role=role)),
        )

        assert response.status_code == 200
        assert response.json() == {"ok": True, "id": f"s-{role}"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload, error",
        [
            ({"total": 1}, "missing_id"),
            ({"id": "s", "total": "abc"}, "invalid_total"),
            ({"id": "s", "total": "1e400"}, "invalid_total"),
            ({"id": "s", "total_cents": 10**30}, "invalid_total"),
            ({"id": "s", "total_cents": 10**20}, "invalid_total"),
        ],
    )
    async def test_invalid_sale_is_400(self, test_client, make_user, auth_headers, payload, error):
        response = await test_client.post(
            "/api/sales", json=payload, headers=auth_headers(make_user())
        )

        assert response.status_code == 400
        assert response.json()["error"] == error

    @pytest.mark.asyncio
    async def test_non_object_body_is_400(self, test_client, make_user, auth_headers):
        response = await test_client.post(
            "/api/sales", json=[{"id": "s"}], headers=auth_headers(make_user())
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_repost_overwrites(self, test_client, make_user, auth_headers):
        headers = auth_headers(make_user(agencies="Lyon"))
        await test_client.post(
            "/api/sales", json={"id": "s-1", "agency": "Lyon", "total": 1}, headers=headers
        )
        await test_client.post(
            "/api/sales",
            json={"id": "s-1", "agency": "Lyon", "total": 2, "note": "fixed"},
            headers=headers,
        )

        response = await test_client.get("/api/sales", headers=headers)

        sales = response.json()["sales"]
        assert len(sales) == 1
        assert sales[0]["total_cents"] == 200
        assert sales[0]["note"] == "fixed"
        assert sales[0]["company"] == "ACME"
        assert sales[0]["created_at"]

    @pytest.mark.asyncio
    async def test_listing_scope(self, test_client, make_user, auth_headers):
        root = auth_headers(make_user(role="super_admin", agencies=""))
        for sale_id, agency in (("1", "A"), ("2", "B"), ("3", "C")):
            await test_client.post(
                "/api/sales", json={"id": sale_id, "agency": agency}, headers=root
            )

        viewer = auth_headers(make_user(role="client", agencies="A,B"))
        sales = (await test_client.get("/api/sales", headers=viewer)).json()["sales"]
        assert sorted(s["id"] for s in sales) == ["1", "2"]

        response = await test_client.get("/api/sales", params={"agency": "C"}, headers=viewer)
        assert response.status_code == 200
        assert response.json() == {"ok": True, "sales": []}

        no_agencies = auth_headers(make_user(role="admin", agencies=""))
        assert (await test_client.get("/api/sales", headers=no_agencies)).json()["sales"] == []

        everything = (await test_client.get("/api/sales", headers=root)).json()["sales"]
        assert len(everything) == 3

    @pytest.mark.asyncio
    async def test_expired_token_is_401(self, test_client, make_user):
        issued = datetime.now(timezone.utc) - timedelta(hours=settings.token_ttl_hours + 1)
        token = create_token(make_user(), now=issued)

        response = await test_client.get(
            "/api/sales", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 401
        assert response.json()["ok"] is False

    @pytest.mark.asyncio
    async def test_delete_requires_admin_and_is_idempotent(self, test_client, make_user, auth_headers):
        cashier = auth_headers(make_user())
        admin = auth_headers(make_user(role="admin"))
        await test_client.post("/api/sales", json={"id": "s-1", "agency": "Lyon"}, headers=cashier)

        assert (await test_client.delete("/api/sales/s-1", headers=cashier)).status_code == 403
        assert (await test_client.delete("/api/sales/s-1", headers=admin)).status_code == 200
        assert (await test_client.delete("/api/sales/s-1", headers=admin)).status_code == 200
        assert (await test_client.get("/api/sales", headers=cashier)).json()["sales"] == []

    @pytest.mark.asyncio
    async def test_delete_blank_id_is_400(self, test_client, make_user, auth_headers):
        response = await test_client.delete(
            "/api/sales/%20", headers=auth_headers(make_user(role="admin"))
        )
        assert response.status_code == 400
