"""Campaign tracking codes handed to creators for each match."""
from __future__ import annotations

import secrets

from barter_engine.config import LIFECYCLE_SETTINGS


def generate_campaign_code() -> str:
    alphabet = str(LIFECYCLE_SETTINGS["campaign_code_alphabet"])
    length = int(LIFECYCLE_SETTINGS["campaign_code_length"])  # type: ignore[arg-type]
    body = "".join(secrets.choice(alphabet) for _ in range(length))
    return f"{LIFECYCLE_SETTINGS['campaign_code_prefix']}{body}"


def generate_api_key(prefix: str) -> str:
    return f"{prefix}_{secrets.token_hex(16)}"


__all__ = ["generate_campaign_code", "generate_api_key"]
