# Overview: Flask API routes for table orders; parses input and returns JSON responses.

# backend/barpos/routes/orders.py
"""Order API routes (QR table ordering and the status workflow)"""

from flask import Blueprint, request, jsonify, g, current_app

from ..errors import BarposError, error_response
from ..services.order_service import OrderFulfillment
from ..validation import ValidationError, coerce_int
from ..decorators import require_tenant


orders_bp = Blueprint("orders", __name__, url_prefix="/api/<int:tenant_id>/orders")


@orders_bp.post("")
@require_tenant
def create_order_route(tenant_id: int):
    """
    Create an order for a table and reserve its stock.

    Body: {"table_id": int, "items": [{"product_id": int, "quantity": int}, ...],
           "payment_intent_id": str (optional)}

    409 with details {product_id, available, requested} when stock is short;
    nothing is reserved in that case.
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400

    try:
        if data.get("table_id") is None:
            raise ValidationError("table_id and items are required")
        table_id = coerce_int("table_id", data["table_id"])
        payment_intent_id = data.get("payment_intent_id")
        if payment_intent_id is not None:
            payment_intent_id = str(payment_intent_id).strip() or None

        order = OrderFulfillment().create_order(
            tenant_id=g.tenant_id,
            table_id=table_id,
            items=data.get("items"),
            payment_intent_id=payment_intent_id,
        )
    except BarposError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception:
        current_app.logger.exception("Failed to create order")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info(
        "order created tenant=%s order=%s table=%s total_cents=%s",
        g.tenant_id, order.id, order.table_id, order.total_amount_cents,
    )
    return jsonify({"order": order.to_dict(include_items=True)}), 201


@orders_bp.get("")
@require_tenant
def list_orders_route(tenant_id: int):
    """
    List orders, newest first.

    Query params:
    - status: OrderStatus (optional)
    - table_id: int (optional)
    """
    try:
        orders = OrderFulfillment().list_orders(
            tenant_id=g.tenant_id,
            status=request.args.get("status") or None,
            table_id=request.args.get("table_id", type=int),
        )
    except BarposError as e:
        body, status = error_response(e)
        return jsonify(body), status

    return jsonify({"orders": [o.to_dict() for o in orders], "count": len(orders)}), 200


@orders_bp.get("/<int:order_id>")
@require_tenant
def get_order_route(tenant_id: int, order_id: int):
    try:
        order = OrderFulfillment().get_order(tenant_id=g.tenant_id, order_id=order_id)
    except BarposError as e:
        body, status = error_response(e)
        return jsonify(body), status

    return jsonify({"order": order.to_dict(include_items=True)}), 200


@orders_bp.patch("/<int:order_id>/status")
@require_tenant
def update_order_status_route(tenant_id: int, order_id: int):
    """
    Move an order along PENDING_PAYMENT -> PAID -> PREPARING -> READY -> DELIVERED,
    or to CANCELLED from any non-terminal status. Never touches stock.

    Body: {"status": str, "payment_intent_id": str (optional)}
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict) or not data.get("status"):
        return jsonify({"error": "Valid status is required"}), 400

    try:
        order = OrderFulfillment().update_order_status(
            tenant_id=g.tenant_id,
            order_id=order_id,
            status=data["status"],
            payment_intent_id=data.get("payment_intent_id"),
        )
    except BarposError as e:
        body, status = error_response(e)
        return jsonify(body), status
    except Exception:
        current_app.logger.exception("Failed to update order status")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict()}), 200
