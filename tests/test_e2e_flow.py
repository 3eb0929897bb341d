from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from barter_engine.models.db import SocialAccount
from barter_engine.models.db.enums import SocialProvider


def _register(client, payload):
    r = client.post("/api/v1/users/", json=payload)
    assert r.status_code == 200, r.text
    data = r.json()
    return data, {"Authorization": f"Bearer {data['api_key']}"}


def test_full_barter_campaign_flow(client: TestClient, db_session: Session, offer_payload):
    brand, brand_auth = _register(client, {
        "name": "Glow Labs",
        "email": "team@glowlabs.example.com",
        "role": "BRAND",
        "brand": {"name": "Glow Labs", "lat": 40.7128, "lng": -74.006},
    })
    creator, creator_auth = _register(client, {
        "name": "Maya",
        "email": "maya@creator.example.com",
        "role": "CREATOR",
        "creator": {
            "full_name": "Maya Chen", "followers_count": 8000, "country": "US",
            "address1": "12 Bleecker St", "city": "New York", "zip": "10012",
        },
    })

    # Wizard: start empty, autosave, publish
    r = client.post("/api/v1/offers/", json={"title": "", "metadata": {}}, headers=brand_auth)
    offer_id = r.json()["id"]
    fields = offer_payload(acceptance_followers_threshold=5000, above_threshold_auto_accept=True, max_claims=1)
    fields["expected_version"] = 1
    r = client.put(f"/api/v1/offers/{offer_id}/draft", json=fields, headers=brand_auth)
    assert r.status_code == 200, r.text
    r = client.post(f"/api/v1/offers/{offer_id}/draft/publish", json={"expected_version": 2}, headers=brand_auth)
    assert r.status_code == 200, r.text

    # Not connected yet: the feed says how to fix it
    feed = client.get("/api/v1/creator/feed", headers=creator_auth).json()
    assert feed[0]["next_step"] == "CONNECT_SOCIAL"

    # OAuth callback lands
    db_session.add(SocialAccount(creator_id=creator["creator"]["id"], provider=SocialProvider.INSTAGRAM))
    db_session.commit()

    r = client.post(f"/api/v1/offers/{offer_id}/claim", headers=creator_auth)
    assert r.status_code == 200, r.text
    match = r.json()
    assert match["status"] == "ACCEPTED"

    r = client.patch(
        f"/api/v1/shipments/manual/{match['shipment']['id']}",
        json={"status": "SHIPPED", "carrier": "UPS", "tracking_number": "1Z999AA10123456784"},
        headers=brand_auth,
    )
    assert r.status_code == 200, r.text

    r = client.post(
        f"/api/v1/creator/matches/{match['id']}/submit",
        json={"permalink": "https://www.instagram.com/reel/Cx12345/"},
        headers=creator_auth,
    )
    assert r.status_code == 200, r.text

    r = client.post(f"/api/v1/deliverables/{match['deliverable']['id']}/verify", json={}, headers=brand_auth)
    assert r.status_code == 200, r.text

    board = client.get("/api/v1/matches/pipeline", headers=brand_auth).json()
    assert [(card["id"], card["stage"]) for card in board] == [(match["id"], "complete")]

    kinds = {n["kind"] for n in client.get("/api/v1/creator/notifications", headers=creator_auth).json()}
    assert kinds == {"success"}
    texts = [n["text"] for n in client.get("/api/v1/creator/notifications", headers=creator_auth).json()]
    assert texts == [
        "Your post was verified. Nice work!",
        "Your product is on its way!",
        "You're in! Your claim was accepted.",
    ]


def test_health_endpoints(client: TestClient):
    assert client.get("/health").json()["status"] == "healthy"
    detailed = client.get("/health/detailed").json()
    assert "database" in detailed["checks"]
    r = client.get("/")
    assert r.json()["api_base"] == "/api/v1"
