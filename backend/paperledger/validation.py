from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., receipt number clash)."""


class InsufficientStockError(ConflictError):
    """Raised when a sale would drive an item's stock below zero."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """404-level problem: a referenced bank, item or other record does not exist."""


@dataclass(frozen=True)
class RecordValidationPolicy:
    """
    Central policy layer for ledger records:
    - writable_fields: what callers are allowed to set
    - required_on_create: fields that must be present (and non-blank) on create
    - non_negative: decimal fields that may not drop below zero
    - choices: enumerated string fields and their allowed values
    - allow_extra: route unknown keys into the record's ``extra`` map
      instead of rejecting them
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    non_negative: set[str] = None  # type: ignore
    choices: dict[str, tuple[str, ...]] = None  # type: ignore
    allow_extra: bool = False


def to_decimal(value: Any, field_name: str) -> Decimal:
    """
    Strict decimal coercion for money and quantity input.

    Accepts Decimal, int, float and numeric strings. Rejects booleans,
    blanks, NaN and infinities.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float)):
        # str() first so 0.1 stays 0.1 rather than its binary expansion
        result = Decimal(str(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field_name} must be a number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field_name} must be a number")
    else:
        raise ValidationError(f"{field_name} must be a number")

    if not result.is_finite():
        raise ValidationError(f"{field_name} must be a finite number")
    return result


def require_positive(value: Any, field_name: str) -> Decimal:
    amount = to_decimal(value, field_name)
    if amount <= 0:
        raise ValidationError(f"{field_name} must be > 0")
    return amount


def require_non_negative(value: Any, field_name: str) -> Decimal:
    amount = to_decimal(value, field_name)
    if amount < 0:
        raise ValidationError(f"{field_name} must be >= 0")
    return amount


def _coerce_value(record_type, key: str, value: Any, policy: RecordValidationPolicy):
    if value is None:
        return None

    if key in record_type.decimal_fields:
        if policy.non_negative and key in policy.non_negative:
            return require_non_negative(value, key)
        return to_decimal(value, key)

    choices = (policy.choices or {}).get(key)
    if choices is not None:
        text = str(value).strip()
        if text not in choices:
            raise ValidationError(f"{key} must be one of: {', '.join(choices)}")
        return text

    if isinstance(value, str):
        return value.strip()
    return value


def validate_payload(
    *,
    record_type,
    payload: dict,
    policy: RecordValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes caller input for a ledger record type.

    Returns a cleaned patch dict with only writable fields (plus an
    ``extra`` dict when the policy allows free-form fields).

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    known = {f.name for f in fields(record_type)}
    patch: dict = {}
    extra: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields:
            if policy.allow_extra and k not in known:
                extra[k] = raw
                continue
            raise ValidationError(f"Field not allowed: {k}")
        if k not in known:
            raise ValidationError(f"Unknown field: {k}")

        if k == "extra":
            if raw is not None and not isinstance(raw, dict):
                raise ValidationError("extra must be an object")
            patch[k] = dict(raw or {})
            continue

        if raw is None and (k in record_type.decimal_fields or k in (policy.choices or {})):
            raise ValidationError(f"{k} cannot be null")

        val = _coerce_value(record_type, k, raw, policy)

        if k in required and (val is None or val == ""):
            raise ValidationError(f"{k} cannot be blank")

        patch[k] = val

    if extra:
        merged = dict(patch.get("extra") or {})
        merged.update(extra)
        patch["extra"] = merged

    return patch
