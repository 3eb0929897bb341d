"""Core application configuration & tunable lifecycle rules.

Business rules that may evolve (metadata limits, country platform allow-lists,
strike policy, shipping grace periods, billing gate) are centralized here so
they can be adjusted without diving into service logic. Values are module
constants with environment overrides; tests monkeypatch the dicts directly.
"""
from __future__ import annotations

import os


def _env_flag(name: str, default: str = "false") -> bool:
	return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# ---------------------------- Offer Metadata ------------------------------ #
METADATA_LIMITS: dict[str, int | float] = {
	"product_value_max": 1_000_000,
	"other_text_min": 2,
	"other_text_max": 64,
	"description_max": 800,
	"guidelines_max": 800,
	"hashtags_max": 200,
	"campaign_name_max": 160,
	"manual_notes_max": 300,
	"cta_url_max": 800,
	"preset_id_max": 40,
	"platforms_max": 6,
	"content_types_max": 6,
	"niches_max": 8,
	"radius_km_min": 1,
	"radius_km_max": 8000,
	"radius_miles_min": 1,
	"radius_miles_max": 5000,
	# Both radius keys supplied: tolerated difference after conversion.
	"radius_unit_tolerance_km": 0.5,
}

KM_PER_MILE: float = 1.609344

# Platforms a brand may target per shipping country.
PLATFORMS_BY_COUNTRY: dict[str, list[str]] = {
	"US": ["INSTAGRAM", "TIKTOK", "YOUTUBE", "OTHER"],
	"IN": ["INSTAGRAM", "YOUTUBE", "OTHER"],
}

# ------------------------------ Offer Fields ------------------------------ #
OFFER_LIMITS: dict[str, int] = {
	"title_min": 3,
	"title_max": 160,
	"max_claims_max": 10_000,
	"deadline_days_max": 365,
	"followers_threshold_max": 100_000_000,
}

# ------------------------------ Eligibility ------------------------------- #
ELIGIBILITY_SETTINGS: dict[str, int] = {
	# Active (unforgiven) strikes at which a creator can no longer claim.
	"strike_limit": int(os.getenv("STRIKE_LIMIT", "3")),
	"earth_radius_km": 6371,
}

# ------------------------------- Lifecycle -------------------------------- #
LIFECYCLE_SETTINGS: dict[str, object] = {
	# Provisional deliverable window while the product is still in transit.
	"shipping_grace_days": int(os.getenv("SHIPPING_GRACE_DAYS", "14")),
	"campaign_code_prefix": os.getenv("CAMPAIGN_CODE_PREFIX", "BRTR-"),
	"campaign_code_alphabet": "ABCDEFGHJKLMNPQRSTUVWXYZ23456789",
	"campaign_code_length": 6,
	"campaign_code_attempts": 5,
	"shopify_shipped_statuses": frozenset({"FULFILLED", "COMPLETED"}),
	"default_usage_rights_scope": "PAID_ADS_12MO",
	# Deadline sweep: reminder lead time and rows handled per run
	"reminder_window_hours": int(os.getenv("REMINDER_WINDOW_HOURS", "48")),
	"deadline_sweep_batch": int(os.getenv("DEADLINE_SWEEP_BATCH", "200")),
}

# --------------------------------- Billing -------------------------------- #
BILLING_SETTINGS: dict[str, object] = {
	"enabled": _env_flag("BILLING_ENABLED"),
}

# ---------------------------------- API ----------------------------------- #
CORS_ORIGINS: list[str] = [
	o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()
]

# ----------------------------- Social Connect ----------------------------- #
SOCIAL_CONNECT_SETTINGS: dict[str, str] = {
	"base_url": os.getenv("SOCIAL_CONNECT_BASE_URL", "https://connect.example.com/oauth"),
}

__all__ = [
	"METADATA_LIMITS",
	"KM_PER_MILE",
	"PLATFORMS_BY_COUNTRY",
	"OFFER_LIMITS",
	"ELIGIBILITY_SETTINGS",
	"LIFECYCLE_SETTINGS",
	"BILLING_SETTINGS",
	"SOCIAL_CONNECT_SETTINGS",
	"CORS_ORIGINS",
]
