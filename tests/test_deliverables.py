from fastapi.testclient import TestClient

from barter_engine.config import ELIGIBILITY_SETTINGS
from barter_engine.models.db import Strike

PERMALINK = "https://www.instagram.com/reel/Cx12345/"


def _accepted(client, auth, brand_factory, creator_factory, offer_factory, **offer_fields):
    brand = brand_factory()
    offer = offer_factory(brand, **offer_fields)
    creator = creator_factory()
    r = client.post(f"/api/v1/offers/{offer.id}/claim", headers=auth(creator))
    assert r.status_code == 200, r.text
    return brand, creator, r.json()


def _submit(client, auth, creator, match_id, **body):
    payload = {"permalink": PERMALINK}
    payload.update(body)
    return client.post(f"/api/v1/creator/matches/{match_id}/submit", json=payload, headers=auth(creator))


def _stage(client, auth, brand, match_id):
    cards = client.get("/api/v1/matches/pipeline", headers=auth(brand)).json()
    return next(card["stage"] for card in cards if card["id"] == match_id)


def test_verified_deliverable_cannot_be_sent_back(client: TestClient, brand_factory, creator_factory, offer_factory, auth):
    brand, creator, match = _accepted(client, auth, brand_factory, creator_factory, offer_factory)
    deliverable_id = match["deliverable"]["id"]

    r = _submit(client, auth, creator, match["id"], notes="Posted with #glowlabs")
    assert r.status_code == 200, r.text
    assert r.json()["submitted_permalink"] == PERMALINK
    assert _stage(client, auth, brand, match["id"]) == "posted"

    r = client.post(f"/api/v1/deliverables/{deliverable_id}/verify", json={}, headers=auth(brand))
    assert r.status_code == 200, r.text
    verified = r.json()
    assert verified["status"] == "VERIFIED"
    assert verified["verified_permalink"] == PERMALINK
    assert [review["action"] for review in verified["reviews"]] == ["VERIFIED"]
    assert _stage(client, auth, brand, match["id"]) == "complete"

    r = client.post(
        f"/api/v1/deliverables/{deliverable_id}/request-changes",
        json={"reason": "Too late"},
        headers=auth(brand),
    )
    assert r.status_code == 409
    assert r.json()["code"] == "INVALID_TRANSITION"
    assert r.json()["current"] == "VERIFIED"


def test_request_changes_then_resubmit(client: TestClient, brand_factory, creator_factory, offer_factory, auth):
    brand, creator, match = _accepted(client, auth, brand_factory, creator_factory, offer_factory)
    deliverable_id = match["deliverable"]["id"]
    _submit(client, auth, creator, match["id"])

    r = client.post(
        f"/api/v1/deliverables/{deliverable_id}/request-changes",
        json={"reason": "Missing brand tag"},
        headers=auth(brand),
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "REPOST_REQUIRED"
    assert body["review_count"] == 1
    assert body["submitted_permalink"] is None
    assert body["submitted_at"] is None
    assert len(body["reviews"]) == 1
    review = body["reviews"][0]
    assert review["action"] == "REQUEST_CHANGES"
    assert review["reason"] == "Missing brand tag"
    # The review keeps what was under review at the time
    assert review["submitted_permalink"] == PERMALINK
    assert _stage(client, auth, brand, match["id"]) == "repost_required"

    texts = [n["text"] for n in client.get("/api/v1/creator/notifications", headers=auth(creator)).json()]
    assert "Changes requested: Missing brand tag" in texts

    r = _submit(client, auth, creator, match["id"], permalink="https://www.instagram.com/reel/Cx67890/")
    assert r.status_code == 200
    assert r.json()["status"] == "DUE"
    assert _stage(client, auth, brand, match["id"]) == "posted"

    detail = client.get(f"/api/v1/deliverables/{deliverable_id}", headers=auth(brand)).json()
    assert detail["review_count"] == 1
    assert detail["submitted_permalink"] == "https://www.instagram.com/reel/Cx67890/"


def test_request_changes_needs_a_submission_and_reason(client: TestClient, brand_factory, creator_factory, offer_factory, auth):
    brand, creator, match = _accepted(client, auth, brand_factory, creator_factory, offer_factory)
    url = f"/api/v1/deliverables/{match['deliverable']['id']}/request-changes"

    r = client.post(url, json={"reason": "Missing brand tag"}, headers=auth(brand))
    assert r.status_code == 409

    _submit(client, auth, creator, match["id"])
    r = client.post(url, json={"reason": ""}, headers=auth(brand))
    assert r.status_code == 400
    assert r.json()["issues"][0]["field"] == "reason"


def test_fail_records_one_strike(client: TestClient, db_session, brand_factory, creator_factory, offer_factory, auth):
    brand, creator, match = _accepted(client, auth, brand_factory, creator_factory, offer_factory)
    deliverable_id = match["deliverable"]["id"]

    r = client.post(f"/api/v1/deliverables/{deliverable_id}/fail", json={"reason": "Never posted"}, headers=auth(brand))
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "FAILED"
    assert r.json()["failure_reason"] == "Never posted"

    # FAILED is terminal
    r = client.post(f"/api/v1/deliverables/{deliverable_id}/fail", json={"reason": "Again"}, headers=auth(brand))
    assert r.status_code == 409

    db_session.expire_all()
    strikes = db_session.query(Strike).filter(Strike.creator_id == creator.creator_id).all()
    assert len(strikes) == 1
    assert strikes[0].match_id == match["id"]


def test_strikes_block_future_claims(client: TestClient, brand_factory, creator_factory, offer_factory, auth, monkeypatch):
    monkeypatch.setitem(ELIGIBILITY_SETTINGS, "strike_limit", 1)
    brand, creator, match = _accepted(client, auth, brand_factory, creator_factory, offer_factory)
    client.post(f"/api/v1/deliverables/{match['deliverable']['id']}/fail", json={"reason": "No show"}, headers=auth(brand))

    next_offer = offer_factory(brand, title="Autumn glow kit")
    r = client.post(f"/api/v1/offers/{next_offer.id}/claim", headers=auth(creator))
    assert r.status_code == 409
    assert r.json()["reason"] == "STRIKE_BLOCKED"
    assert r.json()["details"] == {"strikes": 1, "limit": 1}


def test_usage_rights_must_be_granted(client: TestClient, brand_factory, creator_factory, offer_factory, auth):
    brand, creator, match = _accepted(
        client, auth, brand_factory, creator_factory, offer_factory,
        usage_rights_required=True, usage_rights_scope="ORGANIC_ONLY",
    )

    r = _submit(client, auth, creator, match["id"])
    assert r.status_code == 400
    assert [i["field"] for i in r.json()["issues"]] == ["grant_usage_rights"]

    r = _submit(client, auth, creator, match["id"], grant_usage_rights=True)
    assert r.status_code == 200
    assert r.json()["usage_rights_scope"] == "ORGANIC_ONLY"
    assert r.json()["usage_rights_granted_at"] is not None


def test_brand_can_verify_a_post_it_found(client: TestClient, brand_factory, creator_factory, offer_factory, auth):
    brand, creator, match = _accepted(client, auth, brand_factory, creator_factory, offer_factory)
    url = f"/api/v1/deliverables/{match['deliverable']['id']}/verify"

    r = client.post(url, json={}, headers=auth(brand))
    assert r.status_code == 400
    assert r.json()["issues"][0]["field"] == "permalink"

    r = client.post(url, json={"permalink": PERMALINK}, headers=auth(brand))
    assert r.status_code == 200
    assert r.json()["verified_permalink"] == PERMALINK


def test_submission_rules(client: TestClient, brand_factory, creator_factory, offer_factory, auth):
    brand, creator, match = _accepted(client, auth, brand_factory, creator_factory, offer_factory)

    r = _submit(client, auth, creator, match["id"], permalink="instagram.com/reel/Cx12345")
    assert r.status_code == 400
    assert r.json()["issues"][0]["code"] == "invalid_url"

    stranger = creator_factory(full_name="Someone Else")
    assert _submit(client, auth, stranger, match["id"]).status_code == 404

    pending_brand = brand_factory(name="Picky Co")
    picky = offer_factory(pending_brand, acceptance_followers_threshold=50_000, above_threshold_auto_accept=True)
    pending = client.post(f"/api/v1/offers/{picky.id}/claim", headers=auth(creator)).json()
    assert pending["status"] == "PENDING_APPROVAL"
    assert _submit(client, auth, creator, pending["id"]).status_code == 409


def test_deliverables_are_private_to_the_brand(client: TestClient, brand_factory, creator_factory, offer_factory, auth):
    brand, creator, match = _accepted(client, auth, brand_factory, creator_factory, offer_factory)
    stranger = brand_factory(name="Other Co")
    deliverable_id = match["deliverable"]["id"]
    assert client.get(f"/api/v1/deliverables/{deliverable_id}", headers=auth(stranger)).status_code == 404
    assert client.get(f"/api/v1/deliverables/{deliverable_id}", headers=auth(brand)).status_code == 200
