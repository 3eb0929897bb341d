"""Domain error taxonomy raised by the lifecycle services.

Each error carries the HTTP status it maps to and a stable ``code`` so the API
layer can render it without knowing which service raised it. Every failure is
per-request; services roll back before raising so prior state is untouched.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from fastapi import status


@dataclass(frozen=True)
class Issue:
    field: str
    code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class LifecycleError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(LifecycleError):
    """Metadata or schema problems. Always carries the full issue list."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"

    def __init__(self, issues: List[Issue], message: str = "Validation failed"):
        super().__init__(message)
        self.issues = list(issues)

    @property
    def fields(self) -> List[str]:
        return [issue.field for issue in self.issues]

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["issues"] = [issue.to_dict() for issue in self.issues]
        return payload


class InvalidTransition(LifecycleError):
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_TRANSITION"

    def __init__(self, entity: str, current: str, target: str, message: Optional[str] = None):
        super().__init__(message or f"{entity} cannot move from {current} to {target}")
        self.entity = entity
        self.current = current
        self.target = target

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload.update({"entity": self.entity, "current": self.current, "target": self.target})
        return payload


class Conflict(LifecycleError):
    """Optimistic concurrency mismatch; re-fetch and retry once."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"

    def __init__(self, message: str, code: Optional[str] = None, **details: Any):
        super().__init__(message)
        if code:
            self.code = code
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        if self.details:
            payload["details"] = self.details
        return payload


class EligibilityDenied(LifecycleError):
    status_code = status.HTTP_409_CONFLICT
    code = "ELIGIBILITY_DENIED"

    def __init__(self, reason, details: Optional[Dict[str, Any]] = None):
        super().__init__(f"Claim denied: {reason.value}")
        self.reason = reason
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload.update({
            "reason": self.reason.value,
            "next_step": self.reason.next_step.value,
            "details": self.details,
        })
        return payload


class NotFound(LifecycleError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class Paywall(LifecycleError):
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    code = "PAYWALL"

    def __init__(self, message: str = "An active subscription is required to publish offers"):
        super().__init__(message)


__all__ = [
    "Issue",
    "LifecycleError",
    "ValidationError",
    "InvalidTransition",
    "Conflict",
    "EligibilityDenied",
    "NotFound",
    "Paywall",
]
