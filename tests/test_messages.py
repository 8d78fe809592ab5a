from app.messages.models import MessageTemplate

from helpers import create_concert


async def add_default_template(session_factory):
    async with session_factory() as session:
        template = MessageTemplate(
            organisateur_id=None,
            name="Invitation classique",
            subject="Invitation : {{titre_concert}}",
            content="Bonjour {{prenom}}, rendez-vous le {{date_concert}} à {{ville_concert}} : {{lien_inscription}}",
            type="EMAIL",
            is_default=True,
        )
        session.add(template)
        await session.commit()
        return template.id


async def test_list_includes_defaults_first(client, organisateur_headers, session_factory):
    await add_default_template(session_factory)
    await client.post("/api/organisateur/templates", json={
        "name": "A mon style", "content": "Salut {{prenom}}",
    }, headers=organisateur_headers)

    templates = (await client.get("/api/organisateur/templates", headers=organisateur_headers)).json()
    assert [t["is_default"] for t in templates] == [True, False]


async def test_free_plan_limited_to_two_templates(client, organisateur_headers):
    for i in range(2):
        response = await client.post("/api/organisateur/templates", json={
            "name": f"Modèle {i}", "content": "Bonjour",
        }, headers=organisateur_headers)
        assert response.status_code == 201

    third = await client.post("/api/organisateur/templates", json={
        "name": "Modèle 3", "content": "Bonjour",
    }, headers=organisateur_headers)
    assert third.status_code == 403
    assert "Limite de 2 templates" in third.json()["detail"]


async def test_default_template_is_read_only(client, organisateur_headers, session_factory):
    template_id = await add_default_template(session_factory)

    update = await client.put(
        f"/api/organisateur/templates/{template_id}", json={"name": "Piraté"}, headers=organisateur_headers
    )
    assert update.status_code == 403
    delete = await client.delete(f"/api/organisateur/templates/{template_id}", headers=organisateur_headers)
    assert delete.status_code == 403


async def test_other_organiser_template_is_hidden(client, organisateur_headers, other_organisateur_headers):
    template = (await client.post("/api/organisateur/templates", json={
        "name": "Perso", "content": "Bonjour",
    }, headers=organisateur_headers)).json()

    response = await client.put(
        f"/api/organisateur/templates/{template['id']}", json={"name": "Autre"}, headers=other_organisateur_headers
    )
    assert response.status_code == 404


async def test_render_template_for_concert(client, organisateur_headers, session_factory):
    template_id = await add_default_template(session_factory)
    concert = await create_concert(client, organisateur_headers, date="2099-03-14T20:30:00")

    response = await client.post("/api/organisateur/templates/render", json={
        "template_id": template_id,
        "concert_id": concert["id"],
        "first_name": "Alice",
        "phone": "+33 6 12 34 56 78",
        "recipients": ["alice@exemple.fr"],
    }, headers=organisateur_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["subject"] == "Invitation : Concert au salon"
    assert body["message"] == (
        "Bonjour Alice, rendez-vous le samedi 14 mars 2099 à Lyon : "
        f"https://concerts.exemple.fr/concert/{concert['slug']}"
    )
    assert body["links"]["whatsapp"].startswith("https://wa.me/33612345678?text=Bonjour%20Alice")
    assert body["links"]["sms"].startswith("sms:+33 6 12 34 56 78?body=")
    assert "&to=alice@exemple.fr&su=Invitation%20%3A%20Concert%20au%20salon" in body["links"]["gmail"]


async def test_render_requires_own_concert(client, organisateur_headers, other_organisateur_headers, session_factory):
    template_id = await add_default_template(session_factory)
    concert = await create_concert(client, organisateur_headers)

    response = await client.post("/api/organisateur/templates/render", json={
        "template_id": template_id, "concert_id": concert["id"],
    }, headers=other_organisateur_headers)
    assert response.status_code == 404
