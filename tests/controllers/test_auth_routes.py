import pytest
from conftest import PASSWORD, bearer

from admin_auth.models.admin import AdminRole, AdminStatus
from admin_auth.services.approval_service import REGISTRATION_ACKNOWLEDGEMENT
from admin_auth.services.password_service import RESET_REQUEST_ACKNOWLEDGEMENT

NEW_PASSWORD = "Fresh-Password-55"


@pytest.fixture
def principal(make_account):
    async def factory():
        return await make_account(
            email="principal@example.com", name="Principal", role=AdminRole.PRINCIPAL
        )

    return factory


async def _token(login, email="admin@example.com", password=PASSWORD):
    response = await login(email, password)
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_register_approve_login_scenario(client, login, principal, dispatcher):
    await principal()

    registered = await client.post(
        "/api/admin/register",
        json={"name": "Adwoa", "email": "admin@x.com", "password": PASSWORD},
    )
    assert registered.status_code == 201
    assert registered.json() == {"message": REGISTRATION_ACKNOWLEDGEMENT}
    assert "new_registration:principal@example.com" in dispatcher.names

    refused = await login("admin@x.com")
    assert refused.status_code == 403
    assert refused.json()["detail"]["code"] == "ACCOUNT_NOT_APPROVED"
    assert refused.json()["detail"]["status"] == "pending"

    principal_token = await _token(login, "principal@example.com")
    pending = await client.get("/api/admin/admins/pending", headers=bearer(principal_token))
    assert [p["email"] for p in pending.json()] == ["admin@x.com"]

    approved = await client.patch(
        f"/api/admin/admins/{pending.json()[0]['id']}/approve", headers=bearer(principal_token)
    )
    assert approved.status_code == 200
    assert approved.json()["admin"]["status"] == "approved"

    logged_in = await login("admin@x.com")
    assert logged_in.status_code == 200
    body = logged_in.json()
    assert body["token_type"] == "bearer"
    assert body["admin"]["email"] == "admin@x.com"

    sessions = await client.get("/api/admin/sessions", headers=bearer(body["access_token"]))
    assert len(sessions.json()) == 1
    assert sessions.json()[0]["is_current"] is True


@pytest.mark.asyncio
async def test_login_sets_http_only_cookie(client, make_account):
    await make_account()
    response = await client.post("/api/admin/login", json={"email": "admin@example.com", "password": PASSWORD})

    cookie = response.headers["set-cookie"]
    assert cookie.startswith("adminToken=")
    assert "HttpOnly" in cookie
    assert "samesite=strict" in cookie.lower()

    client.cookies.clear()
    client.cookies.set("adminToken", response.json()["access_token"])
    profile = await client.get("/api/admin/profile")
    assert profile.status_code == 200
    assert profile.json()["email"] == "admin@example.com"


@pytest.mark.asyncio
async def test_unknown_and_wrong_password_look_the_same(client, login, make_account):
    await make_account()
    unknown = await login("ghost@example.com")
    wrong = await login("admin@example.com", "Wrong-Password-1")

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json()
    assert unknown.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_lockout_scenario(client, login, make_account, load_account, dispatcher):
    account = await make_account()
    for _ in range(3):
        assert (await login(password="Wrong-Password-1")).status_code == 401

    locked = await login()
    assert locked.status_code == 423
    detail = locked.json()["detail"]
    assert detail["code"] == "ACCOUNT_LOCKED"
    assert 4 <= detail["lockout_remaining_minutes"] <= 5

    stored = await load_account(account.id)
    assert stored.failed_login_attempts == 3
    assert [r.success for r in stored.login_history] == [False, False, False]
    assert "account_locked:admin@example.com" in dispatcher.names


@pytest.mark.asyncio
async def test_principal_unlocks_locked_admin(client, login, make_account, principal):
    await principal()
    account = await make_account()
    for _ in range(3):
        await login(password="Wrong-Password-1")

    token = await _token(login, "principal@example.com")
    unlocked = await client.patch(f"/api/admin/admins/{account.id}/unlock", headers=bearer(token))
    assert unlocked.status_code == 200
    assert (await login()).status_code == 200


@pytest.mark.asyncio
async def test_sixth_login_evicts_oldest_session(client, login, make_account):
    await make_account()
    tokens = [await _token(login) for _ in range(6)]

    oldest = await client.get("/api/admin/profile", headers=bearer(tokens[0]))
    assert oldest.status_code == 401
    assert oldest.json()["detail"]["code"] == "SESSION_EXPIRED"

    sessions = await client.get("/api/admin/sessions", headers=bearer(tokens[-1]))
    assert len(sessions.json()) == 5


@pytest.mark.asyncio
async def test_logout_and_logout_all(client, login, make_account):
    await make_account()
    first, second, third = [await _token(login) for _ in range(3)]

    out = await client.post("/api/admin/logout", headers=bearer(first))
    assert out.status_code == 200
    assert (await client.get("/api/admin/profile", headers=bearer(first))).status_code == 401

    everywhere = await client.post("/api/admin/logout-all", headers=bearer(second))
    assert everywhere.json()["sessions_revoked"] == 2
    assert (await client.get("/api/admin/profile", headers=bearer(third))).status_code == 401


@pytest.mark.asyncio
async def test_missing_and_garbage_tokens(client):
    missing = await client.get("/api/admin/profile")
    assert missing.status_code == 401
    assert missing.json()["detail"]["code"] == "NO_TOKEN"

    garbage = await client.get("/api/admin/profile", headers=bearer("abc.def.ghi"))
    assert garbage.json()["detail"]["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_change_password_scenario(client, login, make_account):
    await make_account()
    current = await _token(login)
    other = await _token(login)

    changed = await client.post(
        "/api/admin/password/change",
        json={"current_password": PASSWORD, "new_password": NEW_PASSWORD},
        headers=bearer(current),
    )
    assert changed.status_code == 200
    assert changed.json()["sessions_revoked"] == 1

    assert (await client.get("/api/admin/profile", headers=bearer(current))).status_code == 200
    assert (await client.get("/api/admin/profile", headers=bearer(other))).status_code == 401

    reused = await client.post(
        "/api/admin/password/change",
        json={"current_password": NEW_PASSWORD, "new_password": PASSWORD},
        headers=bearer(current),
    )
    assert reused.status_code == 400
    assert reused.json()["detail"]["code"] == "PASSWORD_REUSED"

    wrong = await client.post(
        "/api/admin/password/change",
        json={"current_password": "Not-The-Password", "new_password": "Another-One-88"},
        headers=bearer(current),
    )
    assert wrong.json()["detail"]["code"] == "INCORRECT_PASSWORD"


@pytest.mark.asyncio
async def test_password_reset_scenario(client, login, make_account, dispatcher, mailer):
    await make_account()
    session_token = await _token(login)

    known = await client.post("/api/admin/password/reset-request", json={"email": "admin@example.com"})
    unknown = await client.post("/api/admin/password/reset-request", json={"email": "nobody@example.com"})
    assert known.status_code == unknown.status_code == 200
    assert known.json() == unknown.json() == {"message": RESET_REQUEST_ACKNOWLEDGEMENT}

    (job,) = dispatcher.named("password_reset:")
    await job()
    code = mailer.send_password_reset_email.await_args.kwargs["code"]

    verified = await client.post(
        "/api/admin/password/verify-code", json={"email": "admin@example.com", "code": code}
    )
    assert verified.status_code == 200

    reset = await client.post(
        "/api/admin/password/reset",
        json={"email": "admin@example.com", "code": code, "new_password": NEW_PASSWORD},
    )
    assert reset.status_code == 200
    assert reset.json()["sessions_revoked"] == 1
    assert (await client.get("/api/admin/profile", headers=bearer(session_token))).status_code == 401
    assert (await login(password=NEW_PASSWORD)).status_code == 200

    bad_code = await client.post(
        "/api/admin/password/verify-code", json={"email": "admin@example.com", "code": code}
    )
    assert bad_code.status_code == 400
    assert bad_code.json()["detail"]["code"] == "INVALID_RESET_CODE"


@pytest.mark.asyncio
async def test_malformed_input_is_a_validation_error(client):
    response = await client.post("/api/admin/register", json={"name": "X", "email": "not-an-email"})
    assert response.status_code == 400
    detail = response.json()["detail"]
    assert detail["code"] == "VALIDATION_ERROR"
    assert {tuple(e["loc"]) for e in detail["errors"]} >= {("body", "email"), ("body", "password")}

    bad_code = await client.post(
        "/api/admin/password/verify-code", json={"email": "a@example.com", "code": "12ab"}
    )
    assert bad_code.status_code == 400
