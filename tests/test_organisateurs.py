from helpers import create_concert, register_guest


async def test_update_profile(client, organisateur_headers):
    response = await client.put("/api/organisateur/profile", json={
        "name": "Jeanne <b>Martin</b>",
        "city": "Lyon",
        "postal_code": "69004",
        "custom_branding": {"couleur": "#ff6600"},
    }, headers=organisateur_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Jeanne Martin"
    assert body["custom_branding"] == {"couleur": "#ff6600"}

    profile = (await client.get("/api/organisateur/profile", headers=organisateur_headers)).json()
    assert profile["postal_code"] == "69004"


async def test_dashboard_counts(client, organisateur_headers):
    concert = await create_concert(client, organisateur_headers, max_invites=2)
    await create_concert(client, organisateur_headers, status="BROUILLON")
    await register_guest(client, concert["id"], "alice@exemple.fr", party_size=2)
    await register_guest(client, concert["id"], "bob@exemple.fr", party_size=1)

    stats = (await client.get("/api/organisateur/dashboard", headers=organisateur_headers)).json()
    assert stats["concerts_total"] == 2
    assert stats["concerts_by_status"]["PUBLIE"] == 1
    assert stats["concerts_by_status"]["BROUILLON"] == 1
    assert stats["upcoming_concerts"] == 1
    assert stats["confirmed_guests"] == 2
    assert stats["waitlisted_guests"] == 1
    assert stats["contacts_count"] == 2
    assert stats["is_premium"] is False
    assert stats["concerts_limit"] == 3
