from __future__ import annotations
from datetime import date, datetime
from halistock.time_utils import parse_iso_datetime, to_day

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999,999.99 DA (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999

PRODUCT_PRICE_FIELDS = ("purchase_price_cents", "sale_price_cents", "rental_price_per_day_cents")


class ValidationError(ValueError):
    """400-level input problem."""


class InvalidAmountError(ValidationError):
    """400-level: non-positive payment, negative price, or start date after end date."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., overlapping reservation)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class NotFoundError(LookupError):
    """404-level: referenced record does not exist at mutation time."""


class StoreUnavailableError(RuntimeError):
    """503-level: the database could not complete the operation."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return _coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except Exception:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        return parse_day(col.key, value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    for field in PRODUCT_PRICE_FIELDS:
        if field in patch and patch[field] is not None:
            require_amount_cents(field, patch[field], allow_zero=True)

    if "stock" in patch and patch["stock"] is not None and patch["stock"] < 0:
        raise ValidationError("stock must be >= 0")

    if patch.get("barcode") == "":
        patch["barcode"] = None


def require_amount_cents(name: str, value: Any, *, allow_zero: bool) -> int:
    """
    Validate a money amount in cents.

    allow_zero=False is the payment rule (strictly positive);
    allow_zero=True is the price rule (non-negative).
    """
    amount = _coerce_int(name, value)
    if allow_zero and amount < 0:
        raise InvalidAmountError(f"{name} must be >= 0")
    if not allow_zero and amount <= 0:
        raise InvalidAmountError(f"{name} must be > 0")
    if amount > MAX_PRICE_CENTS:
        raise InvalidAmountError(f"{name} cannot exceed {MAX_PRICE_CENTS} ({MAX_PRICE_CENTS / 100:,.2f} DA)")
    return amount


def require_percent(name: str, value: Any) -> int:
    if value is None:
        return 0
    percent = _coerce_int(name, value)
    if percent < 0 or percent > 100:
        raise ValidationError(f"{name} must be between 0 and 100")
    return percent


def require_positive_int(name: str, value: Any) -> int:
    number = _coerce_int(name, value)
    if number <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return number


def require_text(name: str, value: Any, max_length: int = 255) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise ValidationError(f"{name} is required")
    if len(text) > max_length:
        raise ValidationError(f"{name} exceeds max length {max_length}")
    return text


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_day(name: str, value: Any) -> date:
    """Calendar day from a date, datetime or ISO string; ValidationError otherwise."""
    try:
        day = to_day(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an ISO-8601 date")
    if day is None:
        raise ValidationError(f"{name} is required")
    return day


def require_date_range(start: Any, end: Any) -> tuple[date, date]:
    """Both bounds inclusive; start after end is rejected."""
    start_day = parse_day("start_date", start)
    end_day = parse_day("end_date", end)
    if start_day > end_day:
        raise InvalidAmountError("start_date must be on or before end_date")
    return start_day, end_day
