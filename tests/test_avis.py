from datetime import timedelta

import pytest
from sqlalchemy import select

from app.inscriptions.models import Inscription
from app.utils.dates import utcnow

from helpers import create_concert, register_guest, update_concert_row


@pytest.fixture
async def groupe_id(client, groupe_headers):
    return (await client.get("/api/groupe/profile", headers=groupe_headers)).json()["id"]


async def past_concert(client, headers, session_factory, groupe_id, guests=()):
    concert = await create_concert(client, headers, groupe_id=groupe_id)
    for email in guests:
        await register_guest(client, concert["id"], email)
    await update_concert_row(session_factory, concert["id"], date=utcnow() - timedelta(days=1))
    response = await client.post(f"/api/organisateur/concerts/{concert['id']}/terminer", headers=headers)
    assert response.status_code == 200, response.text
    return concert


async def review_token_for(session_factory, email):
    async with session_factory() as session:
        result = await session.execute(select(Inscription.review_token).where(Inscription.email == email))
        return result.scalar()


async def test_organiser_review_after_past_concert(client, organisateur_headers, session_factory, groupe_id):
    concert = await past_concert(client, organisateur_headers, session_factory, groupe_id)

    payload = {"concert_id": concert["id"], "groupe_id": groupe_id, "note": 5, "comment": "Superbe soirée"}
    response = await client.post("/api/avis", json=payload, headers=organisateur_headers)
    assert response.status_code == 201
    assert response.json()["author_type"] == "ORGANISATEUR"
    assert response.json()["author_name"] == "Jeanne Martin"

    again = await client.post("/api/avis", json=payload, headers=organisateur_headers)
    assert again.status_code == 409


async def test_organiser_review_requires_past_concert(client, organisateur_headers, groupe_id):
    concert = await create_concert(client, organisateur_headers, groupe_id=groupe_id)

    response = await client.post("/api/avis", json={
        "concert_id": concert["id"], "groupe_id": groupe_id, "note": 4,
    }, headers=organisateur_headers)
    assert response.status_code == 400


async def test_organiser_review_requires_matching_groupe(client, organisateur_headers, session_factory, groupe_id):
    concert = await past_concert(client, organisateur_headers, session_factory, groupe_id)

    response = await client.post("/api/avis", json={
        "concert_id": concert["id"], "groupe_id": groupe_id + 1, "note": 4,
    }, headers=organisateur_headers)
    assert response.status_code == 400


async def test_note_must_be_between_one_and_five(client, organisateur_headers, session_factory, groupe_id):
    concert = await past_concert(client, organisateur_headers, session_factory, groupe_id)

    for note in (0, 6):
        response = await client.post("/api/avis", json={
            "concert_id": concert["id"], "groupe_id": groupe_id, "note": note,
        }, headers=organisateur_headers)
        assert response.status_code == 422


async def test_guest_review_with_token(client, organisateur_headers, session_factory, groupe_id):
    await past_concert(client, organisateur_headers, session_factory, groupe_id, guests=["alice@exemple.fr"])
    token = await review_token_for(session_factory, "alice@exemple.fr")
    assert token

    context = await client.get(f"/api/avis/token/{token}")
    assert context.status_code == 200
    assert context.json()["groupe_name"] == "Les Chaussettes"
    assert context.json()["first_name"] == "Alice"

    response = await client.post(f"/api/avis/token/{token}", json={"note": 4, "comment": "Très chouette"})
    assert response.status_code == 201
    assert response.json()["author_name"] == "Alice Durand"

    # Le token ne sert qu'une fois
    assert (await client.get(f"/api/avis/token/{token}")).status_code == 409
    assert (await client.post(f"/api/avis/token/{token}", json={"note": 1})).status_code == 409


async def test_unknown_review_token(client):
    response = await client.get("/api/avis/token/inconnu")
    assert response.status_code == 404


async def test_public_review_one_per_email(client, organisateur_headers, groupe_id):
    concert = await create_concert(client, organisateur_headers, groupe_id=groupe_id)
    payload = {"email": "Bob@Exemple.fr", "name": "Bob", "note": 3}

    first = await client.post(f"/api/concerts/{concert['id']}/avis", json=payload)
    assert first.status_code == 201
    assert first.json()["author_type"] == "INVITE"

    second = await client.post(f"/api/concerts/{concert['id']}/avis", json={**payload, "email": "bob@exemple.fr"})
    assert second.status_code == 409


async def test_public_review_needs_groupe(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    response = await client.post(f"/api/concerts/{concert['id']}/avis", json={
        "email": "bob@exemple.fr", "name": "Bob", "note": 3,
    })
    assert response.status_code == 404


async def test_groupe_reviews_average(client, organisateur_headers, groupe_id):
    concert = await create_concert(client, organisateur_headers, groupe_id=groupe_id)
    for i, note in enumerate((5, 4, 4)):
        await client.post(f"/api/concerts/{concert['id']}/avis", json={
            "email": f"invite{i}@exemple.fr", "name": f"Invité {i}", "note": note,
        })

    body = (await client.get(f"/api/groupes/{groupe_id}/avis")).json()
    assert body["count"] == 3
    assert body["average"] == 4.3
    assert len(body["avis"]) == 3


async def test_groupe_without_reviews(client, groupe_id):
    body = (await client.get(f"/api/groupes/{groupe_id}/avis")).json()
    assert body == {"average": None, "count": 0, "avis": []}
