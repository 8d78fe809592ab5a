from datetime import timedelta

from app.utils.dates import utcnow

from helpers import create_concert, register_guest, update_concert_row


async def test_third_guest_is_waitlisted_when_capacity_two_is_full(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=2)

    first = await register_guest(client, concert["id"], "alice@exemple.fr")
    second = await register_guest(client, concert["id"], "bob@exemple.fr")
    third = await register_guest(client, concert["id"], "chloe@exemple.fr")

    assert first.json()["inscription"]["status"] == "CONFIRME"
    assert second.json()["inscription"]["status"] == "CONFIRME"
    assert third.status_code == 201
    assert third.json()["inscription"]["status"] == "LISTE_ATTENTE"


async def test_party_size_larger_than_remaining_is_waitlisted(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=3)

    await register_guest(client, concert["id"], "alice@exemple.fr", party_size=2)
    response = await register_guest(client, concert["id"], "bob@exemple.fr", party_size=2)

    assert response.json()["inscription"]["status"] == "LISTE_ATTENTE"


async def test_unlimited_concert_always_confirms(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=None)
    for i in range(5):
        response = await register_guest(client, concert["id"], f"invite{i}@exemple.fr", party_size=10)
        assert response.json()["inscription"]["status"] == "CONFIRME"


async def test_registration_requires_published_concert(client, organisateur_headers):
    draft = await create_concert(client, organisateur_headers, status="BROUILLON")
    response = await register_guest(client, draft["id"], "alice@exemple.fr")
    assert response.status_code == 404

    response = await register_guest(client, 9999, "alice@exemple.fr")
    assert response.status_code == 404


async def test_registration_returns_management_link(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    body = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()

    inscription_id = body["inscription"]["id"]
    assert len(body["management_token"]) == 64
    assert body["management_url"] == (
        f"https://concerts.exemple.fr/inscription/{inscription_id}?token={body['management_token']}"
    )


async def test_self_service_requires_matching_token(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()
    bob = (await register_guest(client, concert["id"], "bob@exemple.fr")).json()
    alice_id = alice["inscription"]["id"]

    ok = await client.get(f"/api/inscriptions/{alice_id}", params={"token": alice["management_token"]})
    assert ok.status_code == 200
    assert ok.json()["concert"]["title"] == "Concert au salon"

    assert (await client.get(f"/api/inscriptions/{alice_id}")).status_code == 404
    wrong = await client.get(f"/api/inscriptions/{alice_id}", params={"token": bob["management_token"]})
    assert wrong.status_code == 404
    cancel = await client.delete(f"/api/inscriptions/{alice_id}", params={"token": "faux"})
    assert cancel.status_code == 404
    edit = await client.put(f"/api/inscriptions/{alice_id}", params={"token": "faux"}, json={"party_size": 2})
    assert edit.status_code == 404


async def test_cancellation_promotes_waitlisted_guest(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=2)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr", party_size=2)).json()
    bob = (await register_guest(client, concert["id"], "bob@exemple.fr", party_size=1)).json()
    assert bob["inscription"]["status"] == "LISTE_ATTENTE"

    response = await client.delete(
        f"/api/inscriptions/{alice['inscription']['id']}", params={"token": alice["management_token"]}
    )
    assert response.status_code == 200
    assert response.json()["status"] == "ANNULE"

    bob_view = await client.get(
        f"/api/inscriptions/{bob['inscription']['id']}", params={"token": bob["management_token"]}
    )
    assert bob_view.json()["inscription"]["status"] == "CONFIRME"


async def test_promotion_follows_arrival_order_and_stops_at_first_misfit(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=3)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr", party_size=3)).json()
    await register_guest(client, concert["id"], "gros@exemple.fr", party_size=3)
    await register_guest(client, concert["id"], "petit@exemple.fr", party_size=1)

    # Alice passe de 3 à 1: 2 places libérées, le groupe de 3 ne rentre pas et bloque la file
    await client.put(
        f"/api/inscriptions/{alice['inscription']['id']}",
        params={"token": alice["management_token"]},
        json={"party_size": 1},
    )

    listing = await client.get(
        f"/api/organisateur/concerts/{concert['id']}/inscriptions", headers=organisateur_headers
    )
    statuses = {i["email"]: i["status"] for i in listing.json()["inscriptions"]}
    assert statuses["gros@exemple.fr"] == "LISTE_ATTENTE"
    assert statuses["petit@exemple.fr"] == "LISTE_ATTENTE"
    assert listing.json()["confirmed_count"] == 1


async def test_self_update_cannot_exceed_capacity(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=3)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr", party_size=1)).json()
    await register_guest(client, concert["id"], "bob@exemple.fr", party_size=1)

    response = await client.put(
        f"/api/inscriptions/{alice['inscription']['id']}",
        params={"token": alice["management_token"]},
        json={"party_size": 3},
    )
    assert response.status_code == 400
    assert "2 place(s)" in response.json()["detail"]


async def test_cannot_edit_after_concert(client, organisateur_headers, session_factory):
    concert = await create_concert(client, organisateur_headers)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()
    await update_concert_row(session_factory, concert["id"], date=utcnow() - timedelta(days=1))

    response = await client.delete(
        f"/api/inscriptions/{alice['inscription']['id']}", params={"token": alice["management_token"]}
    )
    assert response.status_code == 400


async def test_lookup_by_email(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()

    found = await client.post("/api/inscriptions/lookup", json={"email": "ALICE@exemple.fr", "concert_id": concert["id"]})
    assert found.status_code == 200
    assert found.json()["management_url"] == alice["management_url"]

    missing = await client.post("/api/inscriptions/lookup", json={"email": "x@exemple.fr", "concert_id": concert["id"]})
    assert missing.status_code == 404

    await client.delete(
        f"/api/inscriptions/{alice['inscription']['id']}", params={"token": alice["management_token"]}
    )
    cancelled = await client.post("/api/inscriptions/lookup", json={"email": "alice@exemple.fr", "concert_id": concert["id"]})
    assert cancelled.status_code == 400


async def test_registration_feeds_organiser_contacts(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    await register_guest(client, concert["id"], "alice@exemple.fr")

    contacts = (await client.get("/api/organisateur/contacts", headers=organisateur_headers)).json()
    assert contacts[0]["email"] == "alice@exemple.fr"
    assert contacts[0]["participation_count"] == 1
    assert contacts[0]["source_type"] == "inscription"


# ===============================
# GESTION ORGANISATEUR
# ===============================
async def test_manual_add_respects_capacity(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=1)
    url = f"/api/organisateur/concerts/{concert['id']}/inscriptions"

    first = await client.post(url, json={"first_name": "Alice", "email": "alice@exemple.fr"}, headers=organisateur_headers)
    assert first.status_code == 201
    full = await client.post(url, json={"first_name": "Bob", "email": "bob@exemple.fr"}, headers=organisateur_headers)
    assert full.status_code == 400
    waiting = await client.post(
        url, json={"first_name": "Bob", "email": "bob@exemple.fr", "status": "LISTE_ATTENTE"}, headers=organisateur_headers
    )
    assert waiting.json()["status"] == "LISTE_ATTENTE"


async def test_organiser_delete_promotes_and_explicit_promote(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=1)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()
    bob = (await register_guest(client, concert["id"], "bob@exemple.fr")).json()
    chloe = (await register_guest(client, concert["id"], "chloe@exemple.fr")).json()

    not_fitting = await client.post(
        f"/api/organisateur/inscriptions/{chloe['inscription']['id']}/promouvoir", headers=organisateur_headers
    )
    assert not_fitting.status_code == 400

    deleted = await client.delete(
        f"/api/organisateur/inscriptions/{alice['inscription']['id']}", headers=organisateur_headers
    )
    assert deleted.status_code == 204

    listing = (await client.get(
        f"/api/organisateur/concerts/{concert['id']}/inscriptions", headers=organisateur_headers
    )).json()
    statuses = {i["id"]: i["status"] for i in listing["inscriptions"]}
    assert statuses == {bob["inscription"]["id"]: "CONFIRME", chloe["inscription"]["id"]: "LISTE_ATTENTE"}


async def test_organiser_cancel_status_promotes(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=1)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()
    bob = (await register_guest(client, concert["id"], "bob@exemple.fr")).json()

    response = await client.put(
        f"/api/organisateur/inscriptions/{alice['inscription']['id']}",
        json={"status": "ANNULE"},
        headers=organisateur_headers,
    )
    assert response.json()["status"] == "ANNULE"

    bob_view = await client.get(
        f"/api/inscriptions/{bob['inscription']['id']}", params={"token": bob["management_token"]}
    )
    assert bob_view.json()["inscription"]["status"] == "CONFIRME"


async def test_other_organiser_cannot_manage_registrations(client, organisateur_headers, other_organisateur_headers):
    concert = await create_concert(client, organisateur_headers)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()

    listing = await client.get(
        f"/api/organisateur/concerts/{concert['id']}/inscriptions", headers=other_organisateur_headers
    )
    assert listing.status_code == 404
    delete = await client.delete(
        f"/api/organisateur/inscriptions/{alice['inscription']['id']}", headers=other_organisateur_headers
    )
    assert delete.status_code == 404


async def test_organiser_demotion_keeps_guest_on_waitlist(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=1)
    alice = (await register_guest(client, concert["id"], "alice@exemple.fr")).json()
    await register_guest(client, concert["id"], "bob@exemple.fr")

    response = await client.put(
        f"/api/organisateur/inscriptions/{alice['inscription']['id']}",
        json={"status": "LISTE_ATTENTE"},
        headers=organisateur_headers,
    )
    assert response.status_code == 200

    listing = (await client.get(
        f"/api/organisateur/concerts/{concert['id']}/inscriptions", headers=organisateur_headers
    )).json()
    statuses = {i["email"]: i["status"] for i in listing["inscriptions"]}
    assert statuses == {"alice@exemple.fr": "LISTE_ATTENTE", "bob@exemple.fr": "CONFIRME"}
