# Overview: Flask API routes for catalog operations; parses input and returns JSON responses.

# backend/barpos/routes/products.py
"""
Product catalog routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the tenant in the URL
(/api/<tenant_id>/products). A product of another tenant answers 404.

STOCK: stock_quantity is accepted on create only (recorded as a RESTOCK
movement). PUT rejects it; use the stock-adjust / stock-set routes.
"""
from flask import Blueprint, request, g, current_app

from ..errors import BarposError, error_response
from ..models import Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from ..decorators import require_tenant

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name",
        "description",
        "price_cents",
        "stock_quantity",
        "is_available",
        "low_stock_threshold",
        "unit_of_measure",
        "category",
        "image_url",
    },
    required_on_create={"name", "price_cents"},
)

# No stock_quantity: stock changes go through stock-adjust / stock-set
PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=set(products_service.PRODUCT_MUTABLE_FIELDS),
)

products_bp = Blueprint("products", __name__, url_prefix="/api/<int:tenant_id>/products")


def _bool_arg(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


@products_bp.get("")
@require_tenant
def list_products_route(tenant_id: int):
    """
    List products with optional filters and pagination.

    Query params:
    - is_available: bool (optional)
    - min_stock: int (optional) - stock_quantity >= min_stock
    - category: str (optional)
    - q: str (optional) - name/description search
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return products_service.list_products(
        tenant_id=g.tenant_id,
        is_available=_bool_arg("is_available"),
        min_stock=request.args.get("min_stock", type=int),
        category=request.args.get("category"),
        query=request.args.get("q"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@products_bp.post("")
@require_tenant
def create_product_route(tenant_id: int):
    """Create a new product, optionally with initial stock."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(
            tenant_id=g.tenant_id,
            patch=patch,
            actor_id=g.actor_id,
            default_low_stock_threshold=current_app.config.get("LOW_STOCK_DEFAULT_THRESHOLD", 5),
        )
    except BarposError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    current_app.logger.info(
        "product created tenant=%s product=%s stock=%s",
        g.tenant_id, created.id, created.stock_quantity,
    )
    return created.to_dict(), 201


@products_bp.get("/<int:product_id>")
@require_tenant
def get_product_route(tenant_id: int, product_id: int):
    try:
        product = products_service.get_product(tenant_id=g.tenant_id, product_id=product_id)
    except BarposError as e:
        return error_response(e)
    return product.to_dict(), 200


@products_bp.put("/<int:product_id>")
@require_tenant
def update_product_route(tenant_id: int, product_id: int):
    """
    Update catalog fields of a product.

    Sending stock_quantity is rejected with 400.
    """
    payload = request.get_json(silent=True) or {}

    if isinstance(payload, dict) and "stock_quantity" in payload:
        return {
            "error": "stock_quantity cannot be updated directly; use stock-adjust or stock-set",
        }, 400

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(tenant_id=g.tenant_id, product_id=product_id, patch=patch)
    except BarposError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_tenant
def delete_product_route(tenant_id: int, product_id: int):
    """Hard-delete a product. Its stock history is kept."""
    try:
        products_service.delete_product(tenant_id=g.tenant_id, product_id=product_id)
    except BarposError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return {"error": "Internal server error"}, 500

    return {"ok": True}, 200
