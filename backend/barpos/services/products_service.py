# backend/barpos/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are tenant-scoped.
- Every lookup filters by (product_id, tenant_id)
- A product of another tenant is reported as not found

STOCK: stock_quantity is not a catalog field. Initial stock on creation goes
through StockManager as a RESTOCK movement; afterwards only the stock
endpoints change it.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..errors import NotFoundError, InvalidInputError
from ..models import Product, StockMovementType
from .stock_service import StockManager

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "price_cents",
    "is_available",
    "low_stock_threshold",
    "unit_of_measure",
    "category",
    "image_url",
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def get_product(*, tenant_id: int, product_id: int, session=None) -> Product:
    session = session if session is not None else db.session
    product = session.query(Product).filter_by(id=product_id, tenant_id=tenant_id).first()
    if product is None:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def list_products(
    *,
    tenant_id: int,
    is_available: bool | None = None,
    min_stock: int | None = None,
    category: str | None = None,
    query: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    session=None,
) -> dict:
    """
    Tenant-scoped product listing with optional filters and pagination.

    Args:
        tenant_id: Tenant scope
        is_available: Filter on the availability flag
        min_stock: Only products with stock_quantity >= min_stock
        category: Exact category match
        query: Case-insensitive substring of name or description
        page: Page number (1-indexed). If None, returns all items.
        per_page: Items per page (default 20, max 100)

    Returns:
        Dict with 'items', 'count', and pagination metadata if paginated.
    """
    session = session if session is not None else db.session

    base_query = session.query(Product).filter(Product.tenant_id == tenant_id)

    if is_available is not None:
        base_query = base_query.filter(Product.is_available.is_(is_available))
    if min_stock is not None:
        base_query = base_query.filter(Product.stock_quantity >= min_stock)
    if category:
        base_query = base_query.filter(Product.category == category)
    if query:
        pattern = f"%{query.strip()}%"
        base_query = base_query.filter(
            or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
        )

    base_query = base_query.order_by(Product.created_at.desc(), Product.id.desc())

    # If no pagination requested, return all items
    if page is None:
        products = base_query.all()
        return {
            "items": [p.to_dict() for p in products],
            "count": len(products),
        }

    # Pagination logic
    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)  # Ensure page >= 1

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    products = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def create_product(
    *,
    tenant_id: int,
    patch: dict,
    actor_id: int | None = None,
    default_low_stock_threshold: int = 5,
    session=None,
) -> Product:
    """
    Create product using a validated patch dict.

    patch may carry stock_quantity: it is applied as a RESTOCK movement in the
    same transaction, so the ledger replays from zero. An explicit
    is_available in the patch wins over the derived value.

    Raises:
        InvalidInputError: name missing or stock_quantity negative
    """
    session = session if session is not None else db.session

    if not patch.get("name"):
        raise InvalidInputError("name is required")

    initial_stock = patch.get("stock_quantity") or 0
    if initial_stock < 0:
        raise InvalidInputError("stock_quantity must be >= 0")

    p = Product(
        tenant_id=tenant_id,
        stock_quantity=0,
        is_available=False,
        low_stock_threshold=default_low_stock_threshold,
    )
    apply_product_patch(p, {k: v for k, v in patch.items() if k != "is_available"})
    if p.price_cents is None:
        p.price_cents = 0
    if not p.unit_of_measure:
        p.unit_of_measure = "unit"

    try:
        session.add(p)
        session.flush()  # ensure p.id exists before the stock movement

        if initial_stock > 0:
            StockManager(session).apply_stock_delta(
                tenant_id=tenant_id,
                product_id=p.id,
                delta=initial_stock,
                movement_type=StockMovementType.RESTOCK,
                note="initial stock",
                actor_id=actor_id,
                commit=False,
            )

        if patch.get("is_available") is not None:
            p.is_available = patch["is_available"]

        session.commit()
    except Exception:
        session.rollback()
        raise
    return p


def update_product(*, tenant_id: int, product_id: int, patch: dict, session=None) -> Product:
    """
    Update catalog fields of a product.

    stock_quantity is rejected: stock changes go through the stock endpoints so
    that every change is recorded in the ledger.

    Raises:
        NotFoundError: product does not exist for this tenant
        InvalidInputError: patch tries to write stock_quantity
    """
    session = session if session is not None else db.session

    if "stock_quantity" in patch:
        raise InvalidInputError(
            "stock_quantity cannot be updated directly; use stock-adjust or stock-set"
        )

    p = get_product(tenant_id=tenant_id, product_id=product_id, session=session)
    apply_product_patch(p, patch)
    session.commit()
    return p


def delete_product(*, tenant_id: int, product_id: int, session=None) -> None:
    """
    Hard-delete a product.

    Stock movements and order items keep product_id as a plain reference, so
    history survives the delete.
    """
    session = session if session is not None else db.session

    p = get_product(tenant_id=tenant_id, product_id=product_id, session=session)
    session.delete(p)
    session.commit()
