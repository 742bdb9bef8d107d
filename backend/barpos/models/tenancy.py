from __future__ import annotations

from ..extensions import db
from barpos.time_utils import to_utc_z


class Tenant(db.Model):
    """
    Multi-tenant root: every bar/restaurant is a Tenant.

    DESIGN:
    - Shared-database multi-tenancy; every tenant-owned row carries tenant_id
    - All lookups filter by (id, tenant_id); a row of another tenant is
      reported exactly like a missing row
    - Deactivated tenants keep their data but are rejected at the API boundary
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(64), nullable=False, unique=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} slug={self.slug!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Table(db.Model):
    """
    A physical table in the venue; the target of QR ordering.

    Orders reference a table by id. Only active tables accept new orders.
    """
    __tablename__ = "dining_tables"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "number", name="uq_dining_tables_tenant_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    number = db.Column(db.Integer, nullable=False)
    label = db.Column(db.String(64), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    tenant = db.relationship("Tenant", backref=db.backref("tables", lazy=True))

    def __repr__(self) -> str:
        return f"<Table id={self.id} number={self.number} tenant_id={self.tenant_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "number": self.number,
            "label": self.label,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
