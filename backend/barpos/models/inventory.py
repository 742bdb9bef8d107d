from __future__ import annotations

from enum import Enum

from ..extensions import db
from barpos.time_utils import to_utc_z


class StockMovementType(str, Enum):
    """Why a stock level changed."""
    RESTOCK = "RESTOCK"
    SALE = "SALE"
    ADJUSTMENT = "ADJUSTMENT"
    SPOILAGE = "SPOILAGE"
    RETURN = "RETURN"
    INVENTORY_COUNT = "INVENTORY_COUNT"


class Product(db.Model):
    """
    Catalog item with its authoritative stock level.

    MULTI-TENANT: Products are scoped to tenants via tenant_id.

    STOCK DESIGN DECISION:
    - stock_quantity is the current count; StockMovement is its audit trail.
    - stock_quantity is written ONLY by StockManager.apply_stock_delta, in the
      same transaction as the StockMovement row it produces.
    - is_available follows stock_quantity > 0 after every stock operation, but
      a catalog update may switch it off (e.g., an item pulled from the menu).

    CONCURRENCY:
    - Stock writes lock the row (SELECT ... FOR UPDATE).
    - version_id_col turns a lost update into StaleDataError on databases
      that ignore FOR UPDATE (SQLite).
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        db.Index("ix_products_tenant_stock", "tenant_id", "stock_quantity"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_available = db.Column(db.Boolean, nullable=False, default=False)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=5)
    unit_of_measure = db.Column(db.String(32), nullable=False, default="unit")

    category = db.Column(db.String(120), nullable=True, index=True)
    image_url = db.Column(db.String(512), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    tenant = db.relationship("Tenant", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock_quantity} tenant_id={self.tenant_id}>"

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.low_stock_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "stock_quantity": self.stock_quantity,
            "is_available": self.is_available,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "unit_of_measure": self.unit_of_measure,
            "category": self.category,
            "image_url": self.image_url,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only stock ledger entry.

    INVARIANTS:
    - new_stock == previous_stock + delta (also enforced by a CHECK constraint)
    - Written once, in the same transaction as the product update; never
      updated or deleted.
    - product_id is a plain reference: deleting a product keeps its history.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("new_stock = previous_stock + delta", name="ck_stock_movements_balance"),
        db.CheckConstraint("new_stock >= 0", name="ck_stock_movements_new_stock_non_negative"),
        db.Index("ix_stock_movements_tenant_product_created", "tenant_id", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False, index=True)

    type = db.Column(
        db.Enum(StockMovementType, name="stock_movement_type", native_enum=False, length=32),
        nullable=False,
        index=True,
    )

    delta = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    note = db.Column(db.String(500), nullable=True)
    created_by_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<StockMovement id={self.id} product_id={self.product_id} type={self.type} "
            f"{self.previous_stock}{self.delta:+d}={self.new_stock}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "type": self.type.value if self.type else None,
            "delta": self.delta,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "note": self.note,
            "created_by_id": self.created_by_id,
            "created_at": to_utc_z(self.created_at),
        }
