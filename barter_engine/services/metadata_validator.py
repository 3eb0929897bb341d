"""Offer metadata validation & normalization.

Steps (all issues are gathered before returning; nothing is applied partially):
 1. Normalize distance: ``location_radius_miles`` is converted to km and removed.
 2. Field shape via the ``OfferMetadata`` Pydantic schema (types, enums, ranges).
 3. OTHER companions: a selection containing OTHER requires its ``*_other``
    text, any other selection forbids it (category, platforms, content types, niches).
 4. Fulfillment shape: manual method/notes only when fulfillment is MANUAL.
 5. Region must agree with the region implied by ``countries_allowed``.
 6. Platforms must be allowed in at least one of the chosen countries.
 7. Publish mode only: required content (platforms, fulfillment, companions).

Draft mode tolerates missing content but still rejects malformed or forbidden
values, so a draft can be stored and completed later.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from barter_engine.config import METADATA_LIMITS, PLATFORMS_BY_COUNTRY, OFFER_LIMITS
from barter_engine.errors import Issue, ValidationError
from barter_engine.models.db.enums import OfferTemplate, Region
from barter_engine.models.schemas.metadata import OfferMetadata
from barter_engine.utils.geo import miles_to_km


class ValidationMode(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISH = "PUBLISH"


@dataclass(frozen=True)
class ValidationContext:
    countries_allowed: Sequence[str] = ()
    mode: ValidationMode = ValidationMode.DRAFT
    template: Optional[OfferTemplate] = None


@dataclass
class ValidationResult:
    ok: bool
    metadata: Optional[Dict[str, Any]] = None
    issues: List[Issue] = field(default_factory=list)

    def raise_for_issues(self) -> Dict[str, Any]:
        if not self.ok:
            raise ValidationError(self.issues)
        return self.metadata or {}


# (selection field, companion field)
OTHER_COMPANIONS = (
    ("category", "category_other"),
    ("platforms", "platform_other"),
    ("content_types", "content_type_other"),
    ("niches", "niche_other"),
)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        return list(value)
    return [value]


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _normalize_radius(data: Dict[str, Any], issues: List[Issue]) -> None:
    if "location_radius_miles" not in data:
        return
    miles = data.pop("location_radius_miles")
    if miles is None or miles == "":
        return
    try:
        miles_value = float(miles)
    except (TypeError, ValueError):
        issues.append(Issue("location_radius_miles", "float_parsing", "location_radius_miles must be a number"))
        return
    low, high = METADATA_LIMITS["radius_miles_min"], METADATA_LIMITS["radius_miles_max"]
    if not low <= miles_value <= high:
        issues.append(Issue(
            "location_radius_miles", "out_of_range",
            f"location_radius_miles must be between {low} and {high}",
        ))
        return
    km = min(round(miles_to_km(miles_value), 3), float(METADATA_LIMITS["radius_km_max"]))
    existing = data.get("location_radius_km")
    if existing is None or existing == "":
        data["location_radius_km"] = km
        return
    try:
        existing_km = float(existing)
    except (TypeError, ValueError):
        return  # reported by the schema pass
    if abs(existing_km - km) > float(METADATA_LIMITS["radius_unit_tolerance_km"]):
        issues.append(Issue(
            "location_radius_miles", "ambiguous_unit",
            "location_radius_miles conflicts with location_radius_km; supply one unit",
        ))


def _schema_issues(exc: PydanticValidationError) -> List[Issue]:
    issues = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ())) or "metadata"
        issues.append(Issue(loc, err.get("type", "invalid"), f"{loc}: {err.get('msg', 'invalid value')}"))
    return issues


def _companion_issues(data: Mapping[str, Any], mode: ValidationMode) -> List[Issue]:
    issues = []
    for selection, companion in OTHER_COMPANIONS:
        has_other = "OTHER" in _as_list(data.get(selection))
        has_companion = _has_text(data.get(companion))
        verb = "is" if selection == "category" else "includes"
        if has_other and not has_companion and mode == ValidationMode.PUBLISH:
            issues.append(Issue(companion, "required", f"{companion} is required when {selection} {verb} OTHER"))
        elif has_companion and not has_other:
            issues.append(Issue(companion, "forbidden", f"{companion} is only allowed when {selection} {verb} OTHER"))
    return issues


def _fulfillment_issues(data: Mapping[str, Any], context: ValidationContext) -> List[Issue]:
    issues = []
    fulfillment = data.get("fulfillment_type")
    is_manual = fulfillment == "MANUAL"
    for key in ("manual_fulfillment_method", "manual_fulfillment_notes"):
        if data.get(key) not in (None, "") and not is_manual:
            issues.append(Issue(key, "forbidden", f"{key} is only allowed when fulfillment_type is MANUAL"))
    if context.mode == ValidationMode.PUBLISH:
        if is_manual and not data.get("manual_fulfillment_method"):
            issues.append(Issue(
                "manual_fulfillment_method", "required",
                "manual_fulfillment_method is required when fulfillment_type is MANUAL",
            ))
        if not fulfillment and context.template != OfferTemplate.UGC_ONLY:
            issues.append(Issue(
                "fulfillment_type", "required",
                "fulfillment_type is required unless the template is UGC_ONLY",
            ))
    return issues


def expected_region(countries: Iterable[str]) -> Optional[Region]:
    unique = sorted({str(c) for c in countries if str(c) in PLATFORMS_BY_COUNTRY})
    if not unique:
        return None
    if len(unique) > 1:
        return Region.US_IN
    return Region(unique[0])


def allowed_platforms(countries: Iterable[str]) -> set[str]:
    allowed: set[str] = set()
    for country in countries:
        allowed.update(PLATFORMS_BY_COUNTRY.get(str(country), []))
    return allowed


def _region_issues(data: Mapping[str, Any], countries: Sequence[str]) -> List[Issue]:
    region = data.get("region")
    if not region or not countries:
        return []
    expected = expected_region(countries)
    if expected is not None and region != expected.value:
        return [Issue(
            "region", "region_mismatch",
            f"region {region} does not match allowed countries (expected {expected.value})",
        )]
    return []


def _platform_issues(data: Mapping[str, Any], context: ValidationContext) -> List[Issue]:
    platforms = [str(p) for p in _as_list(data.get("platforms"))]
    issues = []
    if context.countries_allowed:
        allowed = allowed_platforms(context.countries_allowed)
        blocked = [p for p in platforms if p not in allowed]
        if blocked:
            issues.append(Issue(
                "platforms", "platform_not_allowed",
                f"platforms not available in {', '.join(sorted(context.countries_allowed))}: {', '.join(blocked)}",
            ))
    if context.mode == ValidationMode.PUBLISH and not platforms:
        issues.append(Issue("platforms", "required", "at least one platform is required to publish"))
    return issues


def validate(raw_metadata: Optional[Mapping[str, Any]], context: ValidationContext) -> ValidationResult:
    """Validate and normalize an offer metadata bag.

    Returns ``ValidationResult(ok=True, metadata=<canonical dict>)`` or
    ``ValidationResult(ok=False, issues=[...])`` with every issue found.
    """
    issues: List[Issue] = []
    data: Dict[str, Any] = dict(raw_metadata or {})
    _normalize_radius(data, issues)

    canonical: Optional[Dict[str, Any]] = None
    try:
        parsed = OfferMetadata.model_validate(data)
        canonical = parsed.model_dump(mode="json", exclude_none=True)
        view: Mapping[str, Any] = canonical
    except PydanticValidationError as exc:
        issues.extend(_schema_issues(exc))
        view = data

    issues.extend(_companion_issues(view, context.mode))
    issues.extend(_fulfillment_issues(view, context))
    issues.extend(_region_issues(view, context.countries_allowed))
    issues.extend(_platform_issues(view, context))

    if issues:
        return ValidationResult(ok=False, issues=issues)
    return ValidationResult(ok=True, metadata=canonical)


def validate_offer_fields(
    *,
    title: Optional[str],
    countries_allowed: Sequence[str],
    usage_rights_required: bool,
    usage_rights_scope: Any,
    mode: ValidationMode,
) -> List[Issue]:
    issues = []
    if mode == ValidationMode.PUBLISH:
        if len((title or "").strip()) < OFFER_LIMITS["title_min"]:
            issues.append(Issue("title", "required", f"title must be at least {OFFER_LIMITS['title_min']} characters"))
        if not countries_allowed:
            issues.append(Issue("countries_allowed", "required", "at least one country is required to publish"))
        if usage_rights_required and not usage_rights_scope:
            issues.append(Issue(
                "usage_rights_scope", "required", "usage_rights_scope is required when usage rights are required",
            ))
    unknown = [c for c in countries_allowed if c not in PLATFORMS_BY_COUNTRY]
    if unknown:
        issues.append(Issue("countries_allowed", "unsupported_country", f"unsupported countries: {', '.join(unknown)}"))
    if usage_rights_scope and not usage_rights_required:
        issues.append(Issue(
            "usage_rights_scope", "forbidden", "usage_rights_scope is only allowed when usage rights are required",
        ))
    return issues


def validate_offer(offer_fields: Mapping[str, Any], mode: ValidationMode) -> ValidationResult:
    """Validate a full offer (top-level fields plus metadata) as one issue list.

    Metadata issues are reported under ``metadata.<field>``.
    """
    countries = [getattr(c, "value", c) for c in offer_fields.get("countries_allowed") or []]
    template = offer_fields.get("template")
    issues = validate_offer_fields(
        title=offer_fields.get("title"),
        countries_allowed=countries,
        usage_rights_required=bool(offer_fields.get("usage_rights_required")),
        usage_rights_scope=offer_fields.get("usage_rights_scope"),
        mode=mode,
    )
    meta_result = validate(
        offer_fields.get("metadata"),
        ValidationContext(
            countries_allowed=countries,
            mode=mode,
            template=OfferTemplate(template) if template else None,
        ),
    )
    issues.extend(
        Issue(f"metadata.{issue.field}", issue.code, issue.message) for issue in meta_result.issues
    )
    if issues:
        return ValidationResult(ok=False, issues=issues)
    return ValidationResult(ok=True, metadata=meta_result.metadata)


__all__ = [
    "ValidationMode",
    "ValidationContext",
    "ValidationResult",
    "OTHER_COMPANIONS",
    "validate",
    "validate_offer",
    "validate_offer_fields",
    "expected_region",
    "allowed_platforms",
]
