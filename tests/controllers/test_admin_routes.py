import pytest
from conftest import bearer

from admin_auth.models.admin import AdminRole, AdminStatus


@pytest.fixture
def principal_token(make_account, login):
    async def factory():
        await make_account(email="principal@example.com", name="Principal", role=AdminRole.PRINCIPAL)
        response = await login("principal@example.com")
        return response.json()["access_token"]

    return factory


@pytest.mark.asyncio
async def test_admin_routes_require_principal(client, login, make_account):
    await make_account()
    token = (await login()).json()["access_token"]

    for method, path in [
        ("GET", "/api/admin/admins"),
        ("GET", "/api/admin/admins/pending"),
        ("PATCH", "/api/admin/admins/00000000-0000-0000-0000-000000000000/approve"),
        ("DELETE", "/api/admin/admins/00000000-0000-0000-0000-000000000000"),
    ]:
        response = await client.request(method, path, headers=bearer(token))
        assert response.status_code == 403, path
        assert response.json()["detail"]["code"] == "INSUFFICIENT_PRIVILEGES"


@pytest.mark.asyncio
async def test_list_and_detail(client, principal_token, make_account):
    token = await principal_token()
    target = await make_account(email="one@example.com")
    await make_account(email="two@example.com", status=AdminStatus.PENDING)

    listing = (await client.get("/api/admin/admins", headers=bearer(token))).json()
    assert listing["total"] == 2
    assert listing["counts"]["approved"] == 1
    assert listing["counts"]["pending"] == 1

    detail = await client.get(f"/api/admin/admins/{target.id}", headers=bearer(token))
    assert detail.status_code == 200
    assert detail.json()["email"] == "one@example.com"
    assert detail.json()["sessions"] == []

    missing = await client.get("/api/admin/admins/not-a-uuid", headers=bearer(token))
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "ACCOUNT_NOT_FOUND"


@pytest.mark.asyncio
async def test_reject_with_and_without_body(client, principal_token, make_account, dispatcher):
    token = await principal_token()
    first = await make_account(email="first@example.com", status=AdminStatus.PENDING)
    second = await make_account(email="second@example.com", status=AdminStatus.PENDING)

    with_reason = await client.patch(
        f"/api/admin/admins/{first.id}/reject", json={"reason": "Not on the team"}, headers=bearer(token)
    )
    without = await client.patch(f"/api/admin/admins/{second.id}/reject", headers=bearer(token))

    assert with_reason.status_code == without.status_code == 200
    assert with_reason.json()["admin"]["status"] == "rejected"
    assert {"rejection:first@example.com", "rejection:second@example.com"} <= set(dispatcher.names)

    twice = await client.patch(f"/api/admin/admins/{first.id}/reject", headers=bearer(token))
    assert twice.status_code == 409
    assert twice.json()["detail"]["code"] == "INVALID_STATE"


@pytest.mark.asyncio
async def test_suspension_cuts_live_sessions(client, principal_token, make_account, login):
    token = await principal_token()
    target = await make_account()
    target_token = (await login()).json()["access_token"]

    suspended = await client.patch(f"/api/admin/admins/{target.id}/toggle-status", headers=bearer(token))
    assert suspended.json()["message"] == "Admin suspended"
    assert (await client.get("/api/admin/profile", headers=bearer(target_token))).status_code == 403
    assert (await login()).json()["detail"]["code"] == "ACCOUNT_NOT_APPROVED"

    reactivated = await client.patch(f"/api/admin/admins/{target.id}/toggle-status", headers=bearer(token))
    assert reactivated.json()["message"] == "Admin reactivated"
    # old sessions stay revoked
    assert (await client.get("/api/admin/profile", headers=bearer(target_token))).status_code == 401
    assert (await login()).status_code == 200


@pytest.mark.asyncio
async def test_delete_and_principal_protection(client, principal_token, make_account, login):
    token = await principal_token()
    target = await make_account()
    other_principal = await make_account(email="p2@example.com", role=AdminRole.PRINCIPAL)

    deleted = await client.delete(f"/api/admin/admins/{target.id}", headers=bearer(token))
    assert deleted.status_code == 200
    assert (await login()).json()["detail"]["code"] == "INVALID_CREDENTIALS"

    protected = await client.delete(f"/api/admin/admins/{other_principal.id}", headers=bearer(token))
    assert protected.status_code == 403
    assert protected.json()["detail"]["code"] == "CANNOT_MODIFY_PRINCIPAL"
