import pytest

from barter_engine.errors import ValidationError
from barter_engine.models.db.enums import OfferTemplate
from barter_engine.services.metadata_validator import (
    ValidationContext, ValidationMode, expected_region, validate, validate_offer,
)


PUBLISH_US = ValidationContext(countries_allowed=["US"], mode=ValidationMode.PUBLISH)
DRAFT_US = ValidationContext(countries_allowed=["US"], mode=ValidationMode.DRAFT)


def _base(**extra):
    data = {
        "platforms": ["INSTAGRAM"],
        "fulfillment_type": "MANUAL",
        "manual_fulfillment_method": "PICKUP",
    }
    data.update(extra)
    return data


def _fields(result):
    return [issue.field for issue in result.issues]


def test_category_other_requires_companion_in_publish_mode():
    result = validate(_base(category="OTHER"), PUBLISH_US)
    assert not result.ok
    assert _fields(result) == ["category_other"]
    assert result.issues[0].code == "required"

    fixed = validate(_base(category="OTHER", category_other="Candles"), PUBLISH_US)
    assert fixed.ok
    assert fixed.metadata["category_other"] == "Candles"


def test_category_other_tolerated_in_draft_mode():
    result = validate({"category": "OTHER"}, DRAFT_US)
    assert result.ok


def test_companion_without_other_is_forbidden_in_both_modes():
    for context in (DRAFT_US, PUBLISH_US):
        result = validate(_base(category="SKINCARE", category_other="Candles"), context)
        assert not result.ok
        assert result.issues[0].field == "category_other"
        assert result.issues[0].code == "forbidden"


def test_platform_other_companion_on_multi_select():
    result = validate(_base(platforms=["INSTAGRAM", "OTHER"]), PUBLISH_US)
    assert _fields(result) == ["platform_other"]
    assert validate(_base(platforms=["INSTAGRAM", "OTHER"], platform_other="Lemon8"), PUBLISH_US).ok


def test_radius_miles_normalized_to_km():
    result = validate(_base(location_radius_miles=10), PUBLISH_US)
    assert result.ok
    assert "location_radius_miles" not in result.metadata
    assert result.metadata["location_radius_km"] == pytest.approx(16.093, abs=0.001)


def test_radius_in_both_units_must_agree():
    agreeing = validate(_base(location_radius_miles=10, location_radius_km=16.1), PUBLISH_US)
    assert agreeing.ok
    assert agreeing.metadata["location_radius_km"] == pytest.approx(16.1)

    conflicting = validate(_base(location_radius_miles=10, location_radius_km=40), PUBLISH_US)
    assert not conflicting.ok
    assert conflicting.issues[0].code == "ambiguous_unit"


def test_radius_out_of_range_rejected():
    result = validate(_base(location_radius_miles=0), PUBLISH_US)
    assert not result.ok
    assert result.issues[0].code == "out_of_range"


def test_manual_fields_forbidden_unless_manual():
    result = validate(
        {"platforms": ["INSTAGRAM"], "fulfillment_type": "SHOPIFY", "manual_fulfillment_method": "PICKUP"},
        PUBLISH_US,
    )
    assert not result.ok
    assert _fields(result) == ["manual_fulfillment_method"]


def test_manual_method_required_when_publishing_manual():
    result = validate({"platforms": ["INSTAGRAM"], "fulfillment_type": "MANUAL"}, PUBLISH_US)
    assert _fields(result) == ["manual_fulfillment_method"]


def test_fulfillment_optional_for_ugc_only_template():
    ugc = ValidationContext(countries_allowed=["US"], mode=ValidationMode.PUBLISH, template=OfferTemplate.UGC_ONLY)
    assert validate({"platforms": ["INSTAGRAM"]}, ugc).ok
    reel = ValidationContext(countries_allowed=["US"], mode=ValidationMode.PUBLISH, template=OfferTemplate.REEL)
    assert _fields(validate({"platforms": ["INSTAGRAM"]}, reel)) == ["fulfillment_type"]


def test_region_must_match_countries():
    result = validate(_base(region="IN"), PUBLISH_US)
    assert not result.ok
    assert result.issues[0].code == "region_mismatch"
    assert expected_region(["US", "IN"]).value == "US_IN"
    assert validate(_base(region="US_IN"), ValidationContext(["US", "IN"], ValidationMode.PUBLISH)).ok


def test_platform_not_available_in_country():
    context = ValidationContext(countries_allowed=["IN"], mode=ValidationMode.PUBLISH)
    result = validate(_base(platforms=["TIKTOK"]), context)
    assert not result.ok
    assert result.issues[0].code == "platform_not_allowed"
    # Allowed when at least one chosen country carries the platform
    assert validate(_base(platforms=["TIKTOK"]), ValidationContext(["US", "IN"], ValidationMode.PUBLISH)).ok


def test_all_issues_reported_together():
    result = validate(
        {"category": "OTHER", "fulfillment_type": "SHOPIFY", "manual_fulfillment_notes": "ring bell", "region": "IN"},
        PUBLISH_US,
    )
    assert set(_fields(result)) == {"category_other", "manual_fulfillment_notes", "region", "platforms"}


def test_schema_errors_name_the_field():
    result = validate(_base(cta_url="not a url", product_value=-1), PUBLISH_US)
    assert not result.ok
    assert {"cta_url", "product_value"} <= set(_fields(result))


def test_unknown_keys_are_preserved_and_blank_strings_dropped():
    result = validate(_base(ui_color="teal", guidelines="   "), PUBLISH_US)
    assert result.ok
    assert result.metadata["ui_color"] == "teal"
    assert "guidelines" not in result.metadata


def test_draft_round_trip_is_stable():
    first = validate({"category": "OTHER", "platforms": ["INSTAGRAM", "INSTAGRAM"], "location_radius_miles": 5}, DRAFT_US)
    assert first.ok
    assert first.metadata["platforms"] == ["INSTAGRAM"]
    second = validate(first.metadata, DRAFT_US)
    assert second.ok
    assert second.metadata == first.metadata


def test_validate_offer_prefixes_metadata_fields():
    result = validate_offer(
        {"title": "ab", "countries_allowed": [], "metadata": {"category": "OTHER"}},
        ValidationMode.PUBLISH,
    )
    fields = _fields(result)
    assert "title" in fields
    assert "countries_allowed" in fields
    assert "metadata.category_other" in fields
    assert "metadata.platforms" in fields


def test_usage_rights_scope_required_iff_rights_required():
    missing = validate_offer(
        {"title": "Glow kit", "countries_allowed": ["US"], "usage_rights_required": True,
         "metadata": _base()},
        ValidationMode.PUBLISH,
    )
    assert _fields(missing) == ["usage_rights_scope"]
    stray = validate_offer(
        {"title": "Glow kit", "countries_allowed": ["US"], "usage_rights_scope": "ORGANIC_ONLY",
         "metadata": _base()},
        ValidationMode.DRAFT,
    )
    assert _fields(stray) == ["usage_rights_scope"]


def test_raise_for_issues_carries_every_issue():
    result = validate({"category": "OTHER", "region": "IN"}, PUBLISH_US)
    with pytest.raises(ValidationError) as exc:
        result.raise_for_issues()
    assert "category_other" in exc.value.fields
    assert "region" in exc.value.fields
