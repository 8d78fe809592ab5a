from datetime import timedelta

from sqlalchemy import select

from app.auth.models import TokenPurpose, VerificationToken
from app.utils.dates import utcnow

from helpers import PASSWORD, register_user


async def token_for(session_factory, email, purpose):
    async with session_factory() as session:
        result = await session.execute(
            select(VerificationToken.token).where(
                VerificationToken.identifier == email,
                VerificationToken.purpose == purpose.value,
            )
        )
        return result.scalar()


async def test_register_creates_free_organiser(client):
    headers, user = await register_user(client, "Jeanne@Exemple.fr")
    assert user["email"] == "jeanne@exemple.fr"
    assert user["role"] == "ORGANISATEUR"
    assert user["is_premium"] is False
    assert user["email_verified_at"] is None

    me = await client.get("/api/auth/me", headers=headers)
    assert me.json()["id"] == user["id"]


async def test_register_duplicate_email(client):
    await register_user(client, "jeanne@exemple.fr")
    response = await client.post("/api/auth/register", json={
        "email": "jeanne@exemple.fr", "password": PASSWORD, "name": "Jeanne",
    })
    assert response.status_code == 409


async def test_register_rejects_weak_password_and_admin_role(client):
    weak = await client.post("/api/auth/register", json={
        "email": "jeanne@exemple.fr", "password": "motdepasse", "name": "Jeanne",
    })
    assert weak.status_code == 422

    admin = await client.post("/api/auth/register", json={
        "email": "jeanne@exemple.fr", "password": PASSWORD, "name": "Jeanne", "role": "ADMIN",
    })
    assert admin.status_code == 422


async def test_login(client):
    await register_user(client, "jeanne@exemple.fr")

    ok = await client.post("/api/auth/login", json={"email": "JEANNE@exemple.fr", "password": PASSWORD})
    assert ok.status_code == 200
    assert ok.json()["token_type"] == "bearer"

    wrong = await client.post("/api/auth/login", json={"email": "jeanne@exemple.fr", "password": "Mauvais123"})
    assert wrong.status_code == 401


async def test_login_is_rate_limited(client):
    statuses = []
    for _ in range(11):
        response = await client.post("/api/auth/login", json={"email": "x@exemple.fr", "password": "Mauvais123"})
        statuses.append(response.status_code)
    assert statuses[:10] == [401] * 10
    assert statuses[10] == 429


async def test_me_requires_token(client):
    assert (await client.get("/api/auth/me")).status_code == 401
    invalid = await client.get("/api/auth/me", headers={"Authorization": "Bearer pas-un-jwt"})
    assert invalid.status_code == 401


async def test_verify_email_token_is_single_use(client, session_factory):
    headers, _ = await register_user(client, "jeanne@exemple.fr")
    token = await token_for(session_factory, "jeanne@exemple.fr", TokenPurpose.VERIFY_EMAIL)

    response = await client.post("/api/auth/verify-email", json={"token": token})
    assert response.status_code == 200

    me = (await client.get("/api/auth/me", headers=headers)).json()
    assert me["email_verified_at"] is not None

    again = await client.post("/api/auth/verify-email", json={"token": token})
    assert again.status_code == 400


async def test_password_reset_flow(client, session_factory):
    await register_user(client, "jeanne@exemple.fr")

    unknown = await client.post("/api/auth/forgot-password", json={"email": "inconnu@exemple.fr"})
    known = await client.post("/api/auth/forgot-password", json={"email": "jeanne@exemple.fr"})
    assert unknown.json() == known.json()

    token = await token_for(session_factory, "jeanne@exemple.fr", TokenPurpose.RESET_PASSWORD)
    response = await client.post("/api/auth/reset-password", json={
        "token": token, "new_password": "NouveauMdp2", "confirm_password": "NouveauMdp2",
    })
    assert response.status_code == 200

    old = await client.post("/api/auth/login", json={"email": "jeanne@exemple.fr", "password": PASSWORD})
    assert old.status_code == 401
    new = await client.post("/api/auth/login", json={"email": "jeanne@exemple.fr", "password": "NouveauMdp2"})
    assert new.status_code == 200


async def test_expired_reset_token(client, session_factory):
    await register_user(client, "jeanne@exemple.fr")
    await client.post("/api/auth/forgot-password", json={"email": "jeanne@exemple.fr"})

    async with session_factory() as session:
        record = (await session.execute(
            select(VerificationToken).where(VerificationToken.purpose == TokenPurpose.RESET_PASSWORD.value)
        )).scalars().first()
        record.expires_at = utcnow() - timedelta(minutes=1)
        token = record.token
        await session.commit()

    response = await client.post("/api/auth/reset-password", json={"token": token, "new_password": "NouveauMdp2"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Lien expiré"


async def test_change_role_creates_groupe_profile(client):
    headers, _ = await register_user(client, "jeanne@exemple.fr")

    response = await client.put("/api/auth/role", json={"role": "GROUPE"}, headers=headers)
    assert response.status_code == 200
    new_headers = {"Authorization": f"Bearer {response.json()['access_token']}"}

    profile = await client.get("/api/groupe/profile", headers=new_headers)
    assert profile.status_code == 200
    assert profile.json()["name"] == "Jeanne Martin"

    # L'ancien rôle n'ouvre plus l'espace organisateur
    concerts = await client.get("/api/organisateur/concerts", headers=new_headers)
    assert concerts.status_code == 403


async def test_audit_log_written_on_register(client, mongo):
    await register_user(client, "jeanne@exemple.fr")
    entry = await mongo["audit_logs"].find_one({"action": "register"})
    assert entry is not None
    assert entry["user_id"] is not None
