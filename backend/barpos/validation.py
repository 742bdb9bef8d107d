from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import InvalidInputError
from .models import StockMovementType


# Maximum price: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_PRICE_CENTS = 999_999_999


class ValidationError(InvalidInputError):
    """400-level input problem."""


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


def coerce_int(key: str, value: Any) -> int:
    """Strict integer coercion: rejects bools, floats and scientific notation."""
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
        return coerce_int(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("false", "0", "no", "off", ""):
            return False
        # fallback: truthiness
        return bool(value)

    # Strings / Text (sqlalchemy Enum is a String subtype; parsed by the rule functions)
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
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price_cents must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")

    if "low_stock_threshold" in patch and patch["low_stock_threshold"] is not None:
        if patch["low_stock_threshold"] < 0:
            raise ValidationError("low_stock_threshold must be >= 0")

    if "stock_quantity" in patch and patch["stock_quantity"] is not None:
        qty = patch["stock_quantity"]
        if qty < 0:
            raise ValidationError("stock_quantity must be >= 0")


def parse_movement_type(value: Any, default: StockMovementType | None = None) -> StockMovementType:
    if value is None:
        if default is None:
            raise ValidationError("type is required")
        return default
    if isinstance(value, StockMovementType):
        return value
    try:
        return StockMovementType(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(t.value for t in StockMovementType)
        raise ValidationError(f"type must be one of: {allowed}")


def enforce_rules_stock_adjust(patch: dict) -> None:
    # ADJUST requires a non-zero delta; type defaults to ADJUSTMENT
    delta = patch.get("delta")
    if delta is None or delta == 0:
        raise ValidationError("delta must be a non-zero integer")
    patch["type"] = parse_movement_type(patch.get("type"), default=StockMovementType.ADJUSTMENT)


def enforce_rules_stock_set(payload: dict) -> dict:
    """Validate a set-level body: {"quantity": int >= 0, "note": str?, "created_by_id": int?}."""
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    for k in payload.keys():
        if k not in ("quantity", "note", "created_by_id"):
            raise ValidationError(f"Field not allowed: {k}")

    if payload.get("quantity") is None:
        raise ValidationError("Missing required fields: quantity")

    quantity = coerce_int("quantity", payload["quantity"])
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")

    note = payload.get("note")
    if note is not None:
        note = str(note).strip() or None
        if note is not None and len(note) > 500:
            raise ValidationError("note exceeds max length 500")

    created_by_id = payload.get("created_by_id")
    if created_by_id is not None:
        created_by_id = coerce_int("created_by_id", created_by_id)

    return {"quantity": quantity, "note": note, "created_by_id": created_by_id}


def enforce_rules_order_items(items: Any) -> list[dict]:
    """
    Normalize order lines to [{"product_id": int, "quantity": int}, ...].

    Rejects an empty list, missing product ids and non-positive quantities.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("items must be a non-empty list")

    lines = []
    for i, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{i}] must be an object")
        if raw.get("product_id") is None:
            raise ValidationError(f"items[{i}].product_id is required")
        if raw.get("quantity") is None:
            raise ValidationError(f"items[{i}].quantity is required")

        product_id = coerce_int(f"items[{i}].product_id", raw["product_id"])
        quantity = coerce_int(f"items[{i}].quantity", raw["quantity"])
        if quantity <= 0:
            raise ValidationError(f"items[{i}].quantity must be > 0")

        lines.append({"product_id": product_id, "quantity": quantity})

    return lines
