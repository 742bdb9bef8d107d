"""
Order Service - validate, price and reserve stock for table orders.

Every line's stock decrement, the order header and its items are written in
a single transaction. A failure on any line (missing
product, stock taken by a concurrent order) rolls back the decrements already
applied for earlier lines, so a failed call leaves stock untouched.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError, InsufficientStockError, InvalidInputError
from ..models import Order, OrderItem, OrderStatus, Product, StockMovementType, TERMINAL_ORDER_STATUSES
from ..validation import enforce_rules_order_items
from .concurrency import run_with_retry
from .stock_service import StockManager
from .tenant_service import require_table_in_tenant


ORDER_STOCK_NOTE = "customer order"

# Position of each status in the forward flow. CANCELLED sits outside it.
ORDER_STATUS_RANK = {
    OrderStatus.PENDING_PAYMENT: 0,
    OrderStatus.PAID: 1,
    OrderStatus.PREPARING: 2,
    OrderStatus.READY: 3,
    OrderStatus.DELIVERED: 4,
    OrderStatus.CANCELLED: None,
}


def parse_order_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise InvalidInputError(f"status must be one of: {allowed}")


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """
    Forward-only status flow.

    - Any later status in PENDING_PAYMENT -> PAID -> PREPARING -> READY -> DELIVERED
    - CANCELLED from any non-terminal status
    - DELIVERED and CANCELLED are terminal
    """
    if current in TERMINAL_ORDER_STATUSES:
        return False
    if target == OrderStatus.CANCELLED:
        return True
    current_rank = ORDER_STATUS_RANK[current]
    target_rank = ORDER_STATUS_RANK[target]
    return target_rank > current_rank


class OrderFulfillment:
    """
    Creates orders and moves them through their status workflow.

    Stock is reserved only by create_order; status changes never touch stock.
    """

    def __init__(self, session=None, stock_manager: StockManager | None = None):
        self.session = session if session is not None else db.session
        self.stock = stock_manager if stock_manager is not None else StockManager(self.session)

    def _check_availability(self, tenant_id: int, lines: list[dict]) -> None:
        """
        Pre-flight batch check. Advisory only: the write-time guard in
        StockManager is what actually protects against concurrent orders.
        """
        requested: dict[int, int] = {}
        for line in lines:
            requested[line["product_id"]] = requested.get(line["product_id"], 0) + line["quantity"]

        available = self.stock.check_stock_availability(
            tenant_id=tenant_id, product_ids=requested.keys()
        )

        for product_id, qty in requested.items():
            if product_id not in available:
                raise NotFoundError("Product not found", details={"product_id": product_id})
            if available[product_id] < qty:
                raise InsufficientStockError(product_id, available=available[product_id], requested=qty)

    def create_order(
        self,
        *,
        tenant_id: int,
        table_id: int,
        items,
        payment_intent_id: str | None = None,
    ) -> Order:
        """
        Validate, price and reserve stock for a multi-line order.

        Args:
            tenant_id: Tenant scope
            table_id: Table placing the order (must be active)
            items: [{"product_id": int, "quantity": int}, ...]
            payment_intent_id: Opaque payment reference, stored as-is

        Returns:
            The created Order in PENDING_PAYMENT status

        Raises:
            InvalidInputError: empty items, non-positive quantity, inactive table
            NotFoundError: table or product missing for this tenant
            InsufficientStockError: a line asks for more than is in stock
        """
        lines = enforce_rules_order_items(items)

        def _op():
            require_table_in_tenant(table_id, tenant_id, session=self.session)

            self._check_availability(tenant_id, lines)

            total_amount_cents = 0
            priced_lines = []

            for line in lines:
                product = (
                    self.session.query(Product)
                    .filter_by(id=line["product_id"], tenant_id=tenant_id)
                    .first()
                )
                if product is None:
                    raise NotFoundError("Product not found", details={"product_id": line["product_id"]})

                unit_price_cents = product.price_cents or 0
                total_amount_cents += unit_price_cents * line["quantity"]
                priced_lines.append((line, unit_price_cents))

                self.stock.apply_stock_delta(
                    tenant_id=tenant_id,
                    product_id=line["product_id"],
                    delta=-line["quantity"],
                    movement_type=StockMovementType.SALE,
                    note=ORDER_STOCK_NOTE,
                    commit=False,
                )

            order = Order(
                tenant_id=tenant_id,
                table_id=table_id,
                status=OrderStatus.PENDING_PAYMENT,
                total_amount_cents=total_amount_cents,
                payment_intent_id=payment_intent_id,
            )
            self.session.add(order)
            self.session.flush()

            self.session.add_all([
                OrderItem(
                    order_id=order.id,
                    product_id=line["product_id"],
                    quantity=line["quantity"],
                    unit_price_cents=unit_price_cents,
                )
                for line, unit_price_cents in priced_lines
            ])

            self.session.commit()
            return order

        try:
            return run_with_retry(_op, session=self.session)
        except Exception:
            self.session.rollback()
            raise

    def get_order(self, *, tenant_id: int, order_id: int) -> Order:
        order = self.session.query(Order).filter_by(id=order_id, tenant_id=tenant_id).first()
        if order is None:
            raise NotFoundError("Order not found", details={"order_id": order_id})
        return order

    def list_orders(
        self,
        *,
        tenant_id: int,
        status=None,
        table_id: int | None = None,
    ) -> list[Order]:
        query = self.session.query(Order).filter(Order.tenant_id == tenant_id)
        if status is not None:
            query = query.filter(Order.status == parse_order_status(status))
        if table_id is not None:
            query = query.filter(Order.table_id == table_id)
        return query.order_by(Order.created_at.desc(), Order.id.desc()).all()

    def update_order_status(
        self,
        *,
        tenant_id: int,
        order_id: int,
        status,
        payment_intent_id: str | None = None,
    ) -> Order:
        """
        Move an order along its workflow.

        Setting the current status again is a no-op (payment_intent_id may
        still be attached). Backward moves and moves out of a terminal status
        raise InvalidInputError.
        """
        target = parse_order_status(status)
        order = self.get_order(tenant_id=tenant_id, order_id=order_id)

        if order.status != target and not can_transition(order.status, target):
            raise InvalidInputError(
                f"Cannot change order status from {order.status.value} to {target.value}",
                details={"order_id": order_id, "from": order.status.value, "to": target.value},
            )

        order.status = target
        if payment_intent_id is not None:
            order.payment_intent_id = payment_intent_id
        self.session.commit()
        return order
