from __future__ import annotations

from enum import Enum

from ..extensions import db
from barpos.time_utils import to_utc_z


class OrderStatus(str, Enum):
    """Order lifecycle states, in forward order. CANCELLED is the side exit."""
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID = "PAID"
    PREPARING = "PREPARING"
    READY = "READY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


class Order(db.Model):
    """
    Customer order placed from a table.

    total_amount_cents is the price snapshot taken when the order was created;
    it is never recomputed from the catalog.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_tenant_status_created", "tenant_id", "status", "created_at"),
        db.Index("ix_orders_tenant_table", "tenant_id", "table_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    table_id = db.Column(db.Integer, db.ForeignKey("dining_tables.id"), nullable=False)

    status = db.Column(
        db.Enum(OrderStatus, name="order_status", native_enum=False, length=32),
        nullable=False,
        default=OrderStatus.PENDING_PAYMENT,
    )

    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)

    # Opaque reference from the payment provider; never interpreted here
    payment_intent_id = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    table = db.relationship("Table")

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} total={self.total_amount_cents}>"

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "table_id": self.table_id,
            "status": self.status.value if self.status else None,
            "total_amount_cents": self.total_amount_cents,
            "payment_intent_id": self.payment_intent_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    """Individual line of an order. unit_price_cents is frozen at order time."""
    __tablename__ = "order_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    # Plain reference so reporting keeps working after a product is deleted
    product_id = db.Column(db.Integer, nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "line_total_cents": self.line_total_cents,
            "created_at": to_utc_z(self.created_at),
        }
