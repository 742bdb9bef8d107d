# backend/barpos/routes/inventory.py
"""
Stock management routes.

All stock changes made here go through StockManager, which writes the product
row and its StockMovement in one transaction.

Status codes:
- 404 product (or tenant) not found
- 400 invalid body (zero delta, negative level, unknown type)
- 409 the change would make stock negative
"""
from flask import Blueprint, request, g, current_app

from ..errors import BarposError, error_response
from ..models import StockMovement
from ..services.products_service import get_product
from ..services.stock_service import StockManager
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    ValidationError,
    enforce_rules_stock_adjust,
    enforce_rules_stock_set,
)
from ..decorators import require_tenant


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/<int:tenant_id>/products")

STOCK_ADJUST_POLICY = ModelValidationPolicy(
    writable_fields={"delta", "type", "note", "created_by_id"},
    required_on_create={"delta"},
)


def _actor_id(created_by_id: int | None) -> int | None:
    """Body created_by_id wins over the X-Actor-Id header, including 0."""
    return created_by_id if created_by_id is not None else g.actor_id


def _summary(product_id: int) -> dict:
    product = get_product(tenant_id=g.tenant_id, product_id=product_id)
    return {
        "product_id": product.id,
        "stock_quantity": product.stock_quantity,
        "is_available": product.is_available,
        "low_stock_threshold": product.low_stock_threshold,
        "is_low_stock": product.is_low_stock,
    }


@inventory_bp.get("/low-stock")
@require_tenant
def low_stock_route(tenant_id: int):
    """Products at or below their low-stock threshold, lowest stock first."""
    products = StockManager().get_low_stock_products(tenant_id=g.tenant_id)
    return {"items": [p.to_dict() for p in products], "count": len(products)}, 200


@inventory_bp.post("/<int:product_id>/stock-adjust")
@require_tenant
def adjust_stock_route(tenant_id: int, product_id: int):
    """
    Apply a relative stock change.

    Body: {"delta": int != 0, "type": RESTOCK|SALE|ADJUSTMENT|SPOILAGE|RETURN|INVENTORY_COUNT,
           "note": str, "created_by_id": int}
    """
    payload = request.get_json(silent=True) or {}
    # type is optional; an explicit null means the default
    if isinstance(payload, dict) and "type" in payload and payload["type"] is None:
        payload = {k: v for k, v in payload.items() if k != "type"}

    try:
        patch = validate_payload(
            model=StockMovement,
            payload=payload,
            policy=STOCK_ADJUST_POLICY,
            partial=False,
        )
        enforce_rules_stock_adjust(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    manager = StockManager()
    try:
        movement = manager.adjust_stock(
            tenant_id=g.tenant_id,
            product_id=product_id,
            delta=patch["delta"],
            movement_type=patch["type"],
            note=patch.get("note"),
            actor_id=_actor_id(patch.get("created_by_id")),
        )
    except BarposError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return {"error": "Internal server error"}, 500

    current_app.logger.info(
        "stock adjusted tenant=%s product=%s type=%s delta=%s new_stock=%s",
        g.tenant_id, product_id, movement.type.value, movement.delta, movement.new_stock,
    )
    return {"movement": movement.to_dict(), "summary": _summary(product_id)}, 201


@inventory_bp.post("/<int:product_id>/stock-set")
@require_tenant
def set_stock_route(tenant_id: int, product_id: int):
    """
    Set an absolute stock level (physical count).

    Body: {"quantity": int >= 0, "note": str, "created_by_id": int}
    """
    payload = request.get_json(silent=True) or {}

    try:
        data = enforce_rules_stock_set(payload)
    except ValidationError as e:
        return {"error": str(e)}, 400

    manager = StockManager()
    try:
        movement = manager.set_stock_level(
            tenant_id=g.tenant_id,
            product_id=product_id,
            quantity=data["quantity"],
            note=data["note"],
            actor_id=_actor_id(data["created_by_id"]),
        )
    except BarposError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to set stock level")
        return {"error": "Internal server error"}, 500

    current_app.logger.info(
        "stock counted tenant=%s product=%s previous=%s new_stock=%s",
        g.tenant_id, product_id, movement.previous_stock, movement.new_stock,
    )
    return {"movement": movement.to_dict(), "summary": _summary(product_id)}, 201


@inventory_bp.get("/<int:product_id>/stock-movements")
@require_tenant
def stock_movements_route(tenant_id: int, product_id: int):
    """
    List stock movements for a product, newest first.

    Query params:
    - limit: int (optional, default 50, capped by STOCK_MOVEMENTS_MAX_LIMIT)
    """
    limit = request.args.get("limit", type=int)
    rows = StockManager().list_stock_movements(
        tenant_id=g.tenant_id,
        product_id=product_id,
        limit=limit,
        max_limit=current_app.config.get("STOCK_MOVEMENTS_MAX_LIMIT", 200),
    )
    return {"items": [r.to_dict() for r in rows], "count": len(rows)}, 200


@inventory_bp.get("/<int:product_id>/stock-ledger/verify")
@require_tenant
def verify_ledger_route(tenant_id: int, product_id: int):
    """Replay the product's movements and compare with its current stock."""
    try:
        return StockManager().verify_ledger(tenant_id=g.tenant_id, product_id=product_id), 200
    except BarposError as e:
        return error_response(e)
