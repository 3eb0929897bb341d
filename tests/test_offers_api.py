from fastapi.testclient import TestClient

from barter_engine.config import BILLING_SETTINGS
from barter_engine.models.db.enums import OfferStatus

OFFERS = "/api/v1/offers/"


def _issue_fields(response):
    return [issue["field"] for issue in response.json()["issues"]]


def test_create_draft_then_publish(client: TestClient, offer_payload, brand_factory, auth):
    brand = brand_factory()
    r = client.post(OFFERS, json={"title": "", "metadata": {"category": "OTHER"}}, headers=auth(brand))
    assert r.status_code == 200, r.text
    draft = r.json()
    assert draft["status"] == "DRAFT"
    assert draft["version"] == 1
    assert draft["published_at"] is None

    # Publishing validates strictly and reports every outstanding issue at once
    r = client.patch(f"{OFFERS}{draft['id']}", json={"status": "PUBLISHED"}, headers=auth(brand))
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "VALIDATION_ERROR"
    fields = _issue_fields(r)
    assert "title" in fields
    assert "countries_allowed" in fields
    assert "metadata.category_other" in fields
    assert "metadata.platforms" in fields

    full = offer_payload()
    full["metadata"]["category"] = "OTHER"
    full["metadata"]["category_other"] = "Candles"
    full["status"] = "PUBLISHED"
    full.pop("usage_rights_scope")
    r = client.patch(f"{OFFERS}{draft['id']}", json=full, headers=auth(brand))
    assert r.status_code == 200, r.text
    published = r.json()
    assert published["status"] == "PUBLISHED"
    assert published["published_at"] is not None
    assert published["metadata"]["category_other"] == "Candles"
    assert published["version"] == 2


def test_create_published_directly(client: TestClient, offer_payload, brand_factory, auth):
    brand = brand_factory()
    r = client.post(OFFERS, json=offer_payload(status="PUBLISHED"), headers=auth(brand))
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["status"] == "PUBLISHED"
    assert data["active_claim_count"] == 0
    assert data["metadata"]["platforms"] == ["INSTAGRAM"]


def test_other_category_without_companion_names_field(client: TestClient, offer_payload, brand_factory, auth):
    brand = brand_factory()
    payload = offer_payload(status="PUBLISHED")
    payload["metadata"]["category"] = "OTHER"
    r = client.post(OFFERS, json=payload, headers=auth(brand))
    assert r.status_code == 400
    assert _issue_fields(r) == ["metadata.category_other"]


def test_draft_still_rejects_forbidden_values(client: TestClient, brand_factory, auth):
    brand = brand_factory()
    r = client.post(
        OFFERS,
        json={"title": "Glow", "metadata": {"category": "SKINCARE", "category_other": "Candles"}},
        headers=auth(brand),
    )
    assert r.status_code == 400
    assert _issue_fields(r) == ["metadata.category_other"]


def test_archive_and_resume(client: TestClient, brand_factory, offer_factory, auth):
    brand = brand_factory()
    offer = offer_factory(brand)
    r = client.patch(f"{OFFERS}{offer.id}", json={"status": "ARCHIVED"}, headers=auth(brand))
    assert r.status_code == 200
    assert r.json()["status"] == "ARCHIVED"

    r = client.patch(f"{OFFERS}{offer.id}", json={"status": "DRAFT"}, headers=auth(brand))
    assert r.status_code == 409
    assert r.json()["code"] == "INVALID_TRANSITION"

    r = client.patch(f"{OFFERS}{offer.id}", json={"status": "PUBLISHED"}, headers=auth(brand))
    assert r.status_code == 200
    assert r.json()["status"] == "PUBLISHED"


def test_published_offer_cannot_drift_invalid(client: TestClient, brand_factory, offer_factory, auth):
    brand = brand_factory()
    offer = offer_factory(brand)
    r = client.patch(f"{OFFERS}{offer.id}", json={"countries_allowed": []}, headers=auth(brand))
    assert r.status_code == 400
    assert "countries_allowed" in _issue_fields(r)

    r = client.patch(
        f"{OFFERS}{offer.id}",
        json={"metadata": {"platforms": ["INSTAGRAM"], "fulfillment_type": "SHOPIFY"}},
        headers=auth(brand),
    )
    assert r.status_code == 400
    assert "metadata.fulfillment_type" in _issue_fields(r)


def test_stale_version_is_conflict(client: TestClient, brand_factory, offer_factory, auth):
    brand = brand_factory()
    offer = offer_factory(brand)
    r = client.patch(f"{OFFERS}{offer.id}", json={"title": "Glow kit v2", "expected_version": 1}, headers=auth(brand))
    assert r.status_code == 200
    assert r.json()["version"] == 2

    r = client.patch(f"{OFFERS}{offer.id}", json={"title": "Glow kit v3", "expected_version": 1}, headers=auth(brand))
    assert r.status_code == 409
    body = r.json()
    assert body["code"] == "STALE_OFFER"
    assert body["details"]["current_version"] == 2


def test_delete_only_drafts(client: TestClient, brand_factory, offer_factory, auth):
    brand = brand_factory()
    published = offer_factory(brand)
    r = client.delete(f"{OFFERS}{published.id}", headers=auth(brand))
    assert r.status_code == 409

    draft = offer_factory(brand, status=OfferStatus.DRAFT)
    r = client.delete(f"{OFFERS}{draft.id}", headers=auth(brand))
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert client.get(f"{OFFERS}{draft.id}", headers=auth(brand)).status_code == 404


def test_duplicate_creates_draft_copy(client: TestClient, brand_factory, offer_factory, auth):
    brand = brand_factory()
    offer = offer_factory(brand)
    r = client.post(f"{OFFERS}{offer.id}/duplicate", headers=auth(brand))
    assert r.status_code == 200
    copy = r.json()
    assert copy["id"] != offer.id
    assert copy["status"] == "DRAFT"
    assert copy["title"] == "Summer glow kit (copy)"
    assert copy["metadata"] == offer.offer_metadata


def test_list_filters_by_status(client: TestClient, brand_factory, offer_factory, auth):
    brand = brand_factory()
    offer_factory(brand)
    offer_factory(brand, status=OfferStatus.DRAFT)
    r = client.get(OFFERS, params={"status": "DRAFT"}, headers=auth(brand))
    assert r.status_code == 200
    assert [o["status"] for o in r.json()] == ["DRAFT"]
    assert len(client.get(OFFERS, headers=auth(brand)).json()) == 2


def test_paywall_blocks_publish_without_subscription(client: TestClient, offer_payload, brand_factory, auth, monkeypatch):
    monkeypatch.setitem(BILLING_SETTINGS, "enabled", True)
    unpaid = brand_factory()
    r = client.post(OFFERS, json=offer_payload(status="PUBLISHED"), headers=auth(unpaid))
    assert r.status_code == 402
    assert r.json()["code"] == "PAYWALL"

    # Drafts are never gated
    r = client.post(OFFERS, json=offer_payload(), headers=auth(unpaid))
    assert r.status_code == 200

    paid = brand_factory(name="Paid Co", subscribed=True)
    r = client.post(OFFERS, json=offer_payload(status="PUBLISHED"), headers=auth(paid))
    assert r.status_code == 200


def test_pickup_requires_brand_location(client: TestClient, offer_payload, brand_factory, auth):
    brand = brand_factory(lat=None, lng=None)
    payload = offer_payload(status="PUBLISHED")
    payload["metadata"]["manual_fulfillment_method"] = "PICKUP"
    r = client.post(OFFERS, json=payload, headers=auth(brand))
    assert r.status_code == 400
    assert _issue_fields(r) == ["brand_location"]


def test_other_brand_sees_404(client: TestClient, brand_factory, offer_factory, auth):
    owner = brand_factory()
    stranger = brand_factory(name="Other Co")
    offer = offer_factory(owner)
    assert client.get(f"{OFFERS}{offer.id}", headers=auth(stranger)).status_code == 404
    assert client.patch(f"{OFFERS}{offer.id}", json={"status": "ARCHIVED"}, headers=auth(stranger)).status_code == 404


def test_auth_required_and_role_checked(client: TestClient, offer_payload, creator_factory, auth):
    assert client.get(OFFERS).status_code == 401
    assert client.get(OFFERS, headers={"Authorization": "Bearer nope"}).status_code == 401
    creator = creator_factory()
    assert client.post(OFFERS, json=offer_payload(), headers=auth(creator)).status_code == 401


def test_request_shape_errors_are_400_with_issues(client: TestClient, brand_factory, auth):
    brand = brand_factory()
    r = client.post(OFFERS, json={"title": "Glow", "max_claims": 0, "countries_allowed": ["FR"]}, headers=auth(brand))
    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "VALIDATION_ERROR"
    fields = [issue["field"] for issue in body["issues"]]
    assert "max_claims" in fields
    assert any(f.startswith("countries_allowed") for f in fields)
