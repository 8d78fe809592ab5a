from datetime import timedelta

from app.utils.dates import utcnow


async def test_track_event(client, mongo):
    response = await client.post("/api/analytics/track", json={
        "type": "CONCERT_VIEW", "target_id": 12, "metadata": {"source": "partage"},
    })
    assert response.status_code == 200
    assert response.json() == {"success": True}

    event = await mongo["analytics"].find_one({"target_id": 12})
    assert event["type"] == "CONCERT_VIEW"
    assert event["metadata"] == {"source": "partage"}


async def test_track_event_validation(client):
    missing = await client.post("/api/analytics/track", json={"type": "PROFILE_VIEW"})
    assert missing.status_code == 400
    assert missing.json()["detail"] == "Paramètres manquants"

    invalid = await client.post("/api/analytics/track", json={"type": "CLICK", "target_id": 1})
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "Type invalide"


async def test_groupe_stats(client, groupe_headers, mongo):
    groupe_id = (await client.get("/api/groupe/profile", headers=groupe_headers)).json()["id"]
    for _ in range(2):
        await client.post("/api/analytics/track", json={"type": "PROFILE_VIEW", "target_id": groupe_id})
    await mongo["analytics"].insert_one({
        "type": "PROFILE_VIEW", "target_id": groupe_id, "created_at": utcnow() - timedelta(days=45),
    })
    await client.post("/api/analytics/track", json={"type": "CONCERT_VIEW", "target_id": groupe_id})

    stats = (await client.get("/api/groupe/stats", headers=groupe_headers)).json()
    assert stats == {"profile_views_total": 3, "profile_views_30_days": 2}
