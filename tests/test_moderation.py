import pytest
from sqlalchemy import update

from app.auth.models import User

from helpers import create_concert, register_user


@pytest.fixture
async def admin_headers(client, session_factory):
    headers, user = await register_user(client, "admin@exemple.fr", name="Admin")
    async with session_factory() as session:
        await session.execute(update(User).where(User.id == user["id"]).values(role="ADMIN"))
        await session.commit()
    return headers


@pytest.fixture
async def groupe_id(client, groupe_headers):
    return (await client.get("/api/groupe/profile", headers=groupe_headers)).json()["id"]


async def test_report_groupe_and_review(client, organisateur_headers, admin_headers, groupe_id, mongo):
    created = await client.post("/api/reports", json={
        "target_type": "groupe", "target_id": groupe_id, "reason": "  Photos sans rapport avec le groupe  ",
    }, headers=organisateur_headers)
    assert created.status_code == 201
    assert created.json()["reason"] == "Photos sans rapport avec le groupe"
    assert created.json()["status"] == "PENDING"

    pending = (await client.get("/api/admin/reports", params={"statut": "PENDING"}, headers=admin_headers)).json()
    assert len(pending) == 1

    reviewed = await client.patch(
        f"/api/admin/reports/{pending[0]['id']}", json={"status": "REVIEWED"}, headers=admin_headers
    )
    assert reviewed.json()["reviewed_at"] is not None

    entry = await mongo["audit_logs"].find_one({"action": "admin_action"})
    assert entry["details"]["report_id"] == pending[0]["id"]


async def test_report_requires_existing_target(client, organisateur_headers):
    response = await client.post("/api/reports", json={
        "target_type": "concert", "target_id": 9999, "reason": "Concert qui n'existe pas",
    }, headers=organisateur_headers)
    assert response.status_code == 404


async def test_report_reason_too_short(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    response = await client.post("/api/reports", json={
        "target_type": "concert", "target_id": concert["id"], "reason": "   court   ",
    }, headers=organisateur_headers)
    assert response.status_code == 422


async def test_admin_routes_require_admin(client, organisateur_headers):
    assert (await client.get("/api/admin/reports", headers=organisateur_headers)).status_code == 403
    assert (await client.get("/api/admin/users", headers=organisateur_headers)).status_code == 403


async def test_admin_hides_and_verifies_groupe(client, admin_headers, groupe_id):
    hidden = await client.patch(
        f"/api/admin/groupes/{groupe_id}/visibility", json={"is_visible": False}, headers=admin_headers
    )
    assert hidden.json()["is_visible"] is False
    assert (await client.get(f"/api/groupes/{groupe_id}")).status_code == 404

    verified = await client.patch(f"/api/admin/groupes/{groupe_id}/verify", json={}, headers=admin_headers)
    assert verified.json()["is_verified"] is True


async def test_admin_lists_users(client, admin_headers, organisateur_headers):
    users = (await client.get("/api/admin/users", headers=admin_headers)).json()
    assert {u["email"] for u in users} == {"admin@exemple.fr", "orga@exemple.fr"}
