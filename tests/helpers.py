from datetime import timedelta

from sqlalchemy import select

from app.auth.models import Plan, Subscription
from app.concerts.models import Concert
from app.utils.dates import utcnow

PASSWORD = "MotDePasse1"


async def register_user(client, email, role="ORGANISATEUR", name="Jeanne Martin"):
    response = await client.post("/api/auth/register", json={
        "email": email,
        "password": PASSWORD,
        "name": name,
        "role": role,
    })
    assert response.status_code == 201, response.text
    body = response.json()
    return {"Authorization": f"Bearer {body['access_token']}"}, body["user"]


async def create_concert(client, headers, **overrides):
    payload = {
        "title": "Concert au salon",
        "date": (utcnow() + timedelta(days=30)).isoformat(),
        "city": "Lyon",
        "public_address": "Croix-Rousse, Lyon",
        "full_address": "12 rue des Tisserands, 69004 Lyon",
        "max_invites": 10,
        "status": "PUBLIE",
    }
    payload.update(overrides)
    response = await client.post("/api/organisateur/concerts", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def register_guest(client, concert_id, email, party_size=1, first_name="Alice", last_name="Durand"):
    return await client.post("/api/inscriptions", json={
        "concert_id": concert_id,
        "first_name": first_name,
        "last_name": last_name,
        "email": email,
        "party_size": party_size,
    })


async def update_concert_row(session_factory, concert_id, **values):
    """Modifie directement un concert en base (date passée, statut...)"""
    async with session_factory() as session:
        result = await session.execute(select(Concert).where(Concert.id == concert_id))
        concert = result.scalars().first()
        for key, value in values.items():
            setattr(concert, key, value)
        await session.commit()


async def make_premium(session_factory, user_id):
    async with session_factory() as session:
        result = await session.execute(select(Subscription).where(Subscription.user_id == user_id))
        subscription = result.scalars().first()
        subscription.plan = Plan.PREMIUM.value
        await session.commit()
