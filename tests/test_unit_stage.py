import pytest
from datetime import datetime, timezone
from types import SimpleNamespace

from barter_engine.errors import InvalidTransition
from barter_engine.models.db.enums import DeliverableStatus, MatchStatus, OfferStatus, Stage
from barter_engine.services.stage import (
    ALREADY_THERE, COMPLETE_HINT, DEFAULT_HINT, REPOST_HINT,
    BoardAction, BoardRejection, derive_stage, resolve_board_drop,
)
from barter_engine.services.transitions import (
    DELIVERABLE_TRANSITIONS, MATCH_TRANSITIONS, OFFER_TRANSITIONS, assert_transition,
)

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _match(status="ACCEPTED"):
    return SimpleNamespace(status=status)


def _shipment(status="PENDING", fulfillment_type="MANUAL"):
    return SimpleNamespace(status=status, fulfillment_type=fulfillment_type)


def _deliverable(status="DUE", submitted=False):
    return SimpleNamespace(
        status=status,
        submitted_at=NOW if submitted else None,
        submitted_permalink="https://instagram.com/p/abc" if submitted else None,
    )


def test_stage_precedence():
    assert derive_stage(_match("PENDING_APPROVAL")) == Stage.APPLIED
    assert derive_stage(_match()) == Stage.APPROVED
    assert derive_stage(_match(), _shipment(), _deliverable()) == Stage.APPROVED
    assert derive_stage(_match(), _shipment("SHIPPED"), _deliverable()) == Stage.SHIPPED
    assert derive_stage(_match(), _shipment("SHIPPED"), _deliverable(submitted=True)) == Stage.POSTED
    assert derive_stage(_match(), _shipment("SHIPPED"), _deliverable("REPOST_REQUIRED")) == Stage.REPOST_REQUIRED
    assert derive_stage(_match(), _shipment("PENDING"), _deliverable("VERIFIED", submitted=True)) == Stage.COMPLETE


def test_shopify_shipped_statuses():
    assert derive_stage(_match(), _shipment("FULFILLED", "SHOPIFY")) == Stage.SHIPPED
    assert derive_stage(_match(), _shipment("COMPLETED", "SHOPIFY")) == Stage.SHIPPED
    assert derive_stage(_match(), _shipment("DRAFT_CREATED", "SHOPIFY")) == Stage.APPROVED


def test_ugc_without_shipment_goes_straight_to_posted():
    assert derive_stage(_match(), None, _deliverable(submitted=True)) == Stage.POSTED


def test_derivation_is_pure():
    match, shipment, deliverable = _match(), _shipment("SHIPPED"), _deliverable(submitted=True)
    first = derive_stage(match, shipment, deliverable)
    assert derive_stage(match, shipment, deliverable) == first
    reordered = SimpleNamespace(
        submitted_permalink=deliverable.submitted_permalink,
        submitted_at=deliverable.submitted_at,
        status=deliverable.status,
    )
    assert derive_stage(match, shipment, reordered) == first


def test_board_drop_maps_to_real_operations():
    assert resolve_board_drop(Stage.APPROVED, _match("PENDING_APPROVAL")) == BoardAction.APPROVE_MATCH
    assert resolve_board_drop(Stage.SHIPPED, _match(), _shipment(), _deliverable()) == BoardAction.MARK_SHIPPED
    assert resolve_board_drop(
        Stage.COMPLETE, _match(), _shipment("SHIPPED"), _deliverable(submitted=True)
    ) == BoardAction.VERIFY_DELIVERABLE
    assert resolve_board_drop(
        Stage.REPOST_REQUIRED, _match(), _shipment("SHIPPED"), _deliverable(submitted=True), reason="Tag the brand"
    ) == BoardAction.REQUEST_CHANGES


def test_board_drop_rejections_explain_themselves():
    assert resolve_board_drop(Stage.APPROVED, _match()) == BoardRejection(ALREADY_THERE)
    assert resolve_board_drop(Stage.APPLIED, _match()) == BoardRejection(DEFAULT_HINT)
    assert resolve_board_drop(Stage.POSTED, _match(), _shipment("SHIPPED"), _deliverable()) == BoardRejection(DEFAULT_HINT)
    assert resolve_board_drop(Stage.COMPLETE, _match(), _shipment(), _deliverable()) == BoardRejection(COMPLETE_HINT)
    # Repost needs a reason, so a bare drop is refused
    assert resolve_board_drop(
        Stage.REPOST_REQUIRED, _match(), _shipment("SHIPPED"), _deliverable(submitted=True)
    ) == BoardRejection(REPOST_HINT)
    # Storefront shipments are never marked shipped from the board
    assert resolve_board_drop(
        Stage.SHIPPED, _match(), _shipment("PENDING", "SHOPIFY"), _deliverable()
    ) == BoardRejection(DEFAULT_HINT)


def test_terminal_states_have_no_exits():
    for status in (MatchStatus.REVOKED, MatchStatus.CANCELED):
        for target in MatchStatus:
            with pytest.raises(InvalidTransition):
                assert_transition("match", MATCH_TRANSITIONS, status, target)
    for status in (DeliverableStatus.VERIFIED, DeliverableStatus.FAILED):
        with pytest.raises(InvalidTransition):
            assert_transition("deliverable", DELIVERABLE_TRANSITIONS, status, DeliverableStatus.REPOST_REQUIRED)


def test_offer_edges():
    assert_transition("offer", OFFER_TRANSITIONS, OfferStatus.DRAFT, OfferStatus.PUBLISHED)
    assert_transition("offer", OFFER_TRANSITIONS, OfferStatus.PUBLISHED, OfferStatus.ARCHIVED)
    assert_transition("offer", OFFER_TRANSITIONS, OfferStatus.ARCHIVED, OfferStatus.PUBLISHED)
    with pytest.raises(InvalidTransition) as exc:
        assert_transition("offer", OFFER_TRANSITIONS, OfferStatus.PUBLISHED, OfferStatus.DRAFT)
    assert exc.value.current == "PUBLISHED"
    assert exc.value.target == "DRAFT"
