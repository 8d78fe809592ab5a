from datetime import timedelta

from sqlalchemy import select

from app.concerts.models import Concert
from app.concerts.services import ConcertService
from app.inscriptions.models import Inscription
from app.inscriptions.services import InscriptionService
from app.utils.dates import utcnow

from helpers import create_concert, make_premium, register_guest, register_user, update_concert_row


def soon():
    # Reste dans l'année civile en cours pour le quota
    return (utcnow() + timedelta(minutes=30)).isoformat()


async def test_create_concert_generates_slug(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, title="Soirée Jazz à l'Atelier")

    prefix, suffix = concert["slug"].rsplit("-", 1)
    assert prefix == "soiree-jazz-a-latelier"
    assert len(suffix) == 8
    assert concert["status"] == "PUBLIE"


async def test_concert_date_must_be_in_future(client, organisateur_headers):
    response = await client.post("/api/organisateur/concerts", json={
        "title": "Trop tard",
        "date": (utcnow() - timedelta(hours=1)).isoformat(),
    }, headers=organisateur_headers)
    assert response.status_code == 422


async def test_capacity_bounds_and_initial_status(client, organisateur_headers):
    base = {"title": "Concert", "date": soon()}
    for payload in ({"max_invites": 0}, {"max_invites": 501}, {"status": "PASSE"}):
        response = await client.post("/api/organisateur/concerts", json={**base, **payload}, headers=organisateur_headers)
        assert response.status_code == 422


async def test_groupe_cannot_create_concert(client, groupe_headers):
    response = await client.post(
        "/api/organisateur/concerts", json={"title": "Concert", "date": soon()}, headers=groupe_headers
    )
    assert response.status_code == 403


async def test_free_plan_limited_to_three_concerts_per_year(client):
    headers, _ = await register_user(client, "gratuit@exemple.fr")
    for i in range(3):
        await create_concert(client, headers, title=f"Concert {i}", date=soon())

    response = await client.post(
        "/api/organisateur/concerts", json={"title": "Concert 4", "date": soon()}, headers=headers
    )
    assert response.status_code == 403
    assert "Limite de 3 concerts/an" in response.json()["detail"]


async def test_premium_plan_has_no_concert_limit(client, session_factory):
    headers, user = await register_user(client, "premium@exemple.fr")
    await make_premium(session_factory, user["id"])

    for i in range(4):
        await create_concert(client, headers, title=f"Concert {i}", date=soon())


async def test_list_concerts_with_counts(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=2)
    await register_guest(client, concert["id"], "alice@exemple.fr", party_size=2)
    await register_guest(client, concert["id"], "bob@exemple.fr", party_size=1)

    listing = (await client.get("/api/organisateur/concerts", headers=organisateur_headers)).json()
    assert listing[0]["confirmed_count"] == 2
    assert listing[0]["waitlisted_count"] == 1


async def test_other_organiser_cannot_see_concert(client, organisateur_headers, other_organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    response = await client.get(f"/api/organisateur/concerts/{concert['id']}", headers=other_organisateur_headers)
    assert response.status_code == 404


async def test_capacity_cannot_drop_below_confirmed(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=5)
    await register_guest(client, concert["id"], "alice@exemple.fr", party_size=3)

    response = await client.put(
        f"/api/organisateur/concerts/{concert['id']}", json={"max_invites": 2}, headers=organisateur_headers
    )
    assert response.status_code == 400


async def test_capacity_increase_promotes_waitlist(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=1)
    await register_guest(client, concert["id"], "alice@exemple.fr")
    await register_guest(client, concert["id"], "bob@exemple.fr")

    response = await client.put(
        f"/api/organisateur/concerts/{concert['id']}", json={"max_invites": 2}, headers=organisateur_headers
    )
    assert response.status_code == 200

    listing = (await client.get(
        f"/api/organisateur/concerts/{concert['id']}/inscriptions", headers=organisateur_headers
    )).json()
    assert listing["confirmed_count"] == 2
    assert listing["waitlisted_count"] == 0


async def test_capacity_change_locks_concert_row(client, organisateur_headers, monkeypatch):
    concert = await create_concert(client, organisateur_headers, max_invites=1)
    locked = []
    original = InscriptionService.lock_concert

    async def recording_lock(self, concert_id):
        locked.append(concert_id)
        return await original(self, concert_id)

    monkeypatch.setattr(InscriptionService, "lock_concert", recording_lock)

    response = await client.put(
        f"/api/organisateur/concerts/{concert['id']}", json={"max_invites": 3}, headers=organisateur_headers
    )
    assert response.status_code == 200
    assert locked == [concert["id"]]


async def test_cancelled_concert_refuses_registrations(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    response = await client.put(
        f"/api/organisateur/concerts/{concert['id']}", json={"status": "ANNULE"}, headers=organisateur_headers
    )
    assert response.json()["status"] == "ANNULE"

    registration = await register_guest(client, concert["id"], "alice@exemple.fr")
    assert registration.status_code == 404


async def test_delete_concert_removes_registrations(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()

    response = await client.delete(f"/api/organisateur/concerts/{concert['id']}", headers=organisateur_headers)
    assert response.status_code == 204

    view = await client.get(
        f"/api/inscriptions/{alice['inscription']['id']}", params={"token": alice["management_token"]}
    )
    assert view.status_code == 404


# ===============================
# PAGE PUBLIQUE
# ===============================
async def test_public_page_hides_private_details(client, organisateur_headers, groupe_headers):
    groupe = (await client.get("/api/groupe/profile", headers=groupe_headers)).json()
    concert = await create_concert(client, organisateur_headers, max_invites=5, groupe_id=groupe["id"])
    await register_guest(client, concert["id"], "alice@exemple.fr", party_size=2, first_name="Alice", last_name="durand")
    hidden = await client.post("/api/inscriptions", json={
        "concert_id": concert["id"], "first_name": "Bob", "last_name": "Martin",
        "email": "bob@exemple.fr", "show_in_guest_list": False,
    })
    assert hidden.status_code == 201

    page = (await client.get(f"/api/concerts/public/{concert['slug']}")).json()
    assert "full_address" not in page
    assert page["public_address"] == "Croix-Rousse, Lyon"
    assert page["remaining_seats"] == 2
    assert page["is_full"] is False
    assert page["groupe"]["name"] == "Les Chaussettes"
    assert page["organisateur_name"] == "Jeanne Martin"
    assert page["guest_list"] == [{"first_name": "Alice", "last_initial": "D.", "party_size": 2}]


async def test_public_page_respects_show_groupe(client, organisateur_headers, groupe_headers):
    groupe = (await client.get("/api/groupe/profile", headers=groupe_headers)).json()
    concert = await create_concert(client, organisateur_headers, groupe_id=groupe["id"], show_groupe=False)

    page = (await client.get(f"/api/concerts/public/{concert['slug']}")).json()
    assert page["groupe"] is None


async def test_draft_concert_is_not_public(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, status="BROUILLON")
    response = await client.get(f"/api/concerts/public/{concert['slug']}")
    assert response.status_code == 404


# ===============================
# CLÔTURE
# ===============================
async def test_mark_past_requires_date_passed(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    response = await client.post(f"/api/organisateur/concerts/{concert['id']}/terminer", headers=organisateur_headers)
    assert response.status_code == 400


async def test_mark_past_generates_review_tokens(client, organisateur_headers, session_factory):
    concert = await create_concert(client, organisateur_headers, max_invites=1)
    await register_guest(client, concert["id"], "alice@exemple.fr")
    await register_guest(client, concert["id"], "bob@exemple.fr")
    await update_concert_row(session_factory, concert["id"], date=utcnow() - timedelta(hours=3))

    response = await client.post(f"/api/organisateur/concerts/{concert['id']}/terminer", headers=organisateur_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["concert"]["status"] == "PASSE"
    # Seuls les confirmés reçoivent un lien d'avis
    assert body["review_tokens_created"] == 1

    again = await client.post(f"/api/organisateur/concerts/{concert['id']}/terminer", headers=organisateur_headers)
    assert again.status_code == 400


async def test_mark_past_due_closes_only_published_past_concerts(client, organisateur_headers, session_factory):
    past = await create_concert(client, organisateur_headers, title="Passé")
    await register_guest(client, past["id"], "alice@exemple.fr")
    future = await create_concert(client, organisateur_headers, title="À venir")
    draft = await create_concert(client, organisateur_headers, title="Brouillon", status="BROUILLON")
    await update_concert_row(session_factory, past["id"], date=utcnow() - timedelta(hours=3))
    await update_concert_row(session_factory, draft["id"], date=utcnow() - timedelta(hours=3))

    async with session_factory() as session:
        assert await ConcertService(session).mark_past_due() == 1

    async with session_factory() as session:
        result = await session.execute(select(Concert.id, Concert.status))
        statuses = dict(result.all())
        result = await session.execute(select(Inscription).where(Inscription.concert_id == past["id"]))
        inscription = result.scalars().one()

    assert statuses == {past["id"]: "PASSE", future["id"]: "PUBLIE", draft["id"]: "BROUILLON"}
    assert inscription.status == "CONFIRME"
    assert inscription.review_token
