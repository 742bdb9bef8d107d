# Overview: Service-layer operations for product stock; the only write path for stock_quantity.

# backend/barpos/services/stock_service.py

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError, InsufficientStockError, InvalidInputError
from ..models import Product, StockMovement, StockMovementType
from ..validation import parse_movement_type
from .concurrency import lock_for_update, run_with_retry
"""
barpos Stock Invariants (authoritative)

Stock model:
- Product.stock_quantity is the authoritative current count.
- StockMovement is the append-only audit trail of every change to it.
- apply_stock_delta is the single sanctioned mutation path; adjust, set-level
  and order reservation all call through it.

Business invariants:
- stock_quantity may never go negative. A delta that would do so fails with
  InsufficientStockError and writes nothing.
- Every movement satisfies new_stock == previous_stock + delta.
- After every stock operation is_available == (stock_quantity > 0).
- Replaying a product's movements from zero, in id order, reproduces its
  current stock_quantity.

Atomicity:
- The product update and the movement insert happen in one DB transaction.
- commit=False lets a caller (order creation) fold several deltas into its own
  unit of work; the caller then owns commit/rollback.

Concurrency:
- The product row is read with SELECT ... FOR UPDATE, so the guard above is
  evaluated at write time against the locked value. Pre-flight checks made
  elsewhere are advisory only.
- Product.version_id turns a lost update into StaleDataError where FOR UPDATE
  is not honored; run_with_retry redoes the whole unit.
"""


DEFAULT_MOVEMENTS_LIMIT = 50
MAX_MOVEMENTS_LIMIT = 200


class StockManager:
    """
    Applies stock deltas and answers stock queries for one tenant-scoped catalog.

    The session is the persistence port: routes pass the process-wide
    Flask-SQLAlchemy scoped session, tests may pass any Session.
    """

    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def _get_product(self, tenant_id: int, product_id: int, *, lock: bool = False) -> Product:
        query = self.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id)
        if lock:
            query = lock_for_update(query)
        product = query.first()
        if product is None:
            raise NotFoundError("Product not found", details={"product_id": product_id})
        return product

    def _run_unit(self, op):
        """Run op as a committed unit of work; roll back on any failure."""
        try:
            return run_with_retry(op, session=self.session)
        except Exception:
            self.session.rollback()
            raise

    def _apply_stock_delta_inner(
        self,
        *,
        tenant_id: int,
        product_id: int,
        delta: int,
        movement_type: StockMovementType,
        note: str | None = None,
        actor_id: int | None = None,
    ) -> StockMovement:
        """Core delta logic without retry or commit. Locks the product row."""
        product = self._get_product(tenant_id, product_id, lock=True)

        previous_stock = product.stock_quantity or 0
        new_stock = previous_stock + delta
        if new_stock < 0:
            raise InsufficientStockError(product_id, available=previous_stock, requested=-delta)

        product.stock_quantity = new_stock
        product.is_available = new_stock > 0

        movement = StockMovement(
            tenant_id=tenant_id,
            product_id=product_id,
            type=movement_type,
            delta=delta,
            previous_stock=previous_stock,
            new_stock=new_stock,
            note=note,
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self.session.flush()
        return movement

    def apply_stock_delta(
        self,
        *,
        tenant_id: int,
        product_id: int,
        delta: int,
        movement_type=StockMovementType.ADJUSTMENT,
        note: str | None = None,
        actor_id: int | None = None,
        commit: bool = True,
    ) -> StockMovement:
        """
        Apply a signed delta to a product's stock and record the movement.

        Raises:
            NotFoundError: product does not exist for this tenant
            InsufficientStockError: stock would become negative
            InvalidInputError: delta is not an integer or movement_type is unknown
        """
        if not isinstance(delta, int) or isinstance(delta, bool):
            raise InvalidInputError("delta must be an integer")
        movement_type = parse_movement_type(movement_type, default=StockMovementType.ADJUSTMENT)

        def _inner():
            return self._apply_stock_delta_inner(
                tenant_id=tenant_id,
                product_id=product_id,
                delta=delta,
                movement_type=movement_type,
                note=note,
                actor_id=actor_id,
            )

        if not commit:
            return _inner()

        def _op():
            movement = _inner()
            self.session.commit()
            return movement

        return self._run_unit(_op)

    def adjust_stock(
        self,
        *,
        tenant_id: int,
        product_id: int,
        delta: int,
        movement_type=None,
        note: str | None = None,
        actor_id: int | None = None,
    ) -> StockMovement:
        """Relative adjustment. delta must be non-zero; movement_type defaults to ADJUSTMENT."""
        if delta is None or isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            raise InvalidInputError("delta must be a non-zero integer")

        return self.apply_stock_delta(
            tenant_id=tenant_id,
            product_id=product_id,
            delta=delta,
            movement_type=parse_movement_type(movement_type, default=StockMovementType.ADJUSTMENT),
            note=note,
            actor_id=actor_id,
        )

    def set_stock_level(
        self,
        *,
        tenant_id: int,
        product_id: int,
        quantity: int,
        note: str | None = None,
        actor_id: int | None = None,
    ) -> StockMovement:
        """
        Set an absolute stock level (physical count).

        The delta is derived from the locked current value inside the same unit
        of work, so the result is exactly `quantity` even under concurrent
        writes. A zero delta is still recorded: the count itself is auditable.
        """
        if quantity is None or isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
            raise InvalidInputError("quantity must be an integer >= 0")

        def _op():
            product = self._get_product(tenant_id, product_id, lock=True)
            movement = self._apply_stock_delta_inner(
                tenant_id=tenant_id,
                product_id=product_id,
                delta=quantity - (product.stock_quantity or 0),
                movement_type=StockMovementType.INVENTORY_COUNT,
                note=note,
                actor_id=actor_id,
            )
            self.session.commit()
            return movement

        return self._run_unit(_op)

    def get_stock_level(self, *, tenant_id: int, product_id: int) -> int:
        return self._get_product(tenant_id, product_id).stock_quantity or 0

    def check_stock_availability(self, *, tenant_id: int, product_ids) -> dict[int, int]:
        """
        One-query lookup of current stock for several products.

        Ids that do not exist for the tenant are absent from the result.
        """
        ids = set(product_ids)
        if not ids:
            return {}
        rows = (
            self.session.query(Product.id, Product.stock_quantity)
            .filter(Product.tenant_id == tenant_id, Product.id.in_(ids))
            .all()
        )
        return {row.id: int(row.stock_quantity or 0) for row in rows}

    def get_low_stock_products(self, *, tenant_id: int) -> list[Product]:
        """Products at or below their threshold, lowest stock first."""
        return (
            self.session.query(Product)
            .filter(
                Product.tenant_id == tenant_id,
                Product.stock_quantity <= Product.low_stock_threshold,
            )
            .order_by(Product.stock_quantity.asc(), Product.id.asc())
            .all()
        )

    def list_stock_movements(
        self,
        *,
        tenant_id: int,
        product_id: int,
        limit: int | None = DEFAULT_MOVEMENTS_LIMIT,
        max_limit: int = MAX_MOVEMENTS_LIMIT,
    ) -> list[StockMovement]:
        """Newest movements first. Works for deleted products too (history is kept)."""
        limit = DEFAULT_MOVEMENTS_LIMIT if limit is None else limit
        limit = max(1, min(limit, max_limit))

        return (
            self.session.query(StockMovement)
            .filter_by(tenant_id=tenant_id, product_id=product_id)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .limit(limit)
            .all()
        )

    def verify_ledger(self, *, tenant_id: int, product_id: int) -> dict:
        """
        Replay a product's movements from zero and compare with stock_quantity.

        Reports every movement whose previous_stock does not continue the
        replay or whose new_stock != previous_stock + delta.
        """
        product = self._get_product(tenant_id, product_id)

        movements = (
            self.session.query(StockMovement)
            .filter_by(tenant_id=tenant_id, product_id=product_id)
            .order_by(StockMovement.id.asc())
            .all()
        )

        running = 0
        broken = []
        for m in movements:
            if m.previous_stock != running or m.new_stock != m.previous_stock + m.delta:
                broken.append({
                    "movement_id": m.id,
                    "expected_previous_stock": running,
                    "previous_stock": m.previous_stock,
                    "delta": m.delta,
                    "new_stock": m.new_stock,
                })
            running = m.new_stock

        return {
            "tenant_id": tenant_id,
            "product_id": product_id,
            "movement_count": len(movements),
            "replayed_stock": running,
            "stock_quantity": product.stock_quantity,
            "broken_movements": broken,
            "consistent": not broken and running == product.stock_quantity,
        }
