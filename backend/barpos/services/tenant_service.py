"""
Tenant scoping helpers.

Every request is addressed to a tenant (/api/<tenant_id>/...). Routes resolve
the tenant first; services then filter every lookup by tenant_id. A row that
belongs to another tenant is reported as missing, never as forbidden, so the
API does not reveal cross-tenant existence.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError, InvalidInputError
from ..models import Tenant, Table, Order

TABLE_MUTABLE_FIELDS = {"number", "label", "is_active"}


def require_active_tenant(tenant_id: int, session=None) -> Tenant:
    """Return the tenant or raise NotFoundError if it is missing or inactive."""
    session = session if session is not None else db.session
    tenant = session.query(Tenant).filter_by(id=tenant_id).first()
    if tenant is None or not tenant.is_active:
        raise NotFoundError("Tenant not found")
    return tenant


def require_table_in_tenant(table_id: int, tenant_id: int, *, require_active: bool = True, session=None) -> Table:
    """
    Validate that a table belongs to the tenant (and optionally is open for orders).

    Raises:
        NotFoundError if the table doesn't exist for this tenant
        InvalidInputError if require_active and the table is inactive
    """
    session = session if session is not None else db.session
    table = session.query(Table).filter_by(id=table_id, tenant_id=tenant_id).first()
    if table is None:
        raise NotFoundError("Table not found", details={"table_id": table_id})
    if require_active and not table.is_active:
        raise InvalidInputError("Table is inactive", details={"table_id": table_id})
    return table


def create_tenant(*, name: str, slug: str, session=None) -> Tenant:
    session = session if session is not None else db.session
    name = (name or "").strip()
    slug = (slug or "").strip().lower()
    if not name or not slug:
        raise InvalidInputError("name and slug are required")
    if session.query(Tenant).filter_by(slug=slug).first() is not None:
        raise InvalidInputError(f"Tenant slug '{slug}' already exists")

    tenant = Tenant(name=name, slug=slug, is_active=True)
    session.add(tenant)
    session.commit()
    return tenant


def _check_table_number(session, tenant_id: int, number, exclude_id: int | None = None) -> None:
    if number is None or number <= 0:
        raise InvalidInputError("number must be > 0")
    query = session.query(Table).filter_by(tenant_id=tenant_id, number=number)
    if exclude_id is not None:
        query = query.filter(Table.id != exclude_id)
    if query.first() is not None:
        raise InvalidInputError(f"Table {number} already exists for this tenant")


def create_table(
    *,
    tenant_id: int,
    number: int,
    label: str | None = None,
    is_active: bool = True,
    session=None,
) -> Table:
    session = session if session is not None else db.session
    require_active_tenant(tenant_id, session=session)
    _check_table_number(session, tenant_id, number)

    table = Table(tenant_id=tenant_id, number=number, label=label, is_active=bool(is_active))
    session.add(table)
    session.commit()
    return table


def list_tables(
    *,
    tenant_id: int,
    is_active: bool | None = None,
    query: str | None = None,
    session=None,
) -> list[Table]:
    """Tables of a tenant ordered by number; optional active flag and label search."""
    session = session if session is not None else db.session
    q = session.query(Table).filter(Table.tenant_id == tenant_id)
    if is_active is not None:
        q = q.filter(Table.is_active.is_(is_active))
    if query:
        q = q.filter(Table.label.ilike(f"%{query.strip()}%"))
    return q.order_by(Table.number.asc(), Table.id.asc()).all()


def update_table(*, tenant_id: int, table_id: int, patch: dict, session=None) -> Table:
    """
    Update number, label or is_active of a table.

    Deactivating a table stops new orders for it; existing orders are untouched.
    """
    session = session if session is not None else db.session
    table = require_table_in_tenant(table_id, tenant_id, require_active=False, session=session)

    if "number" in patch:
        _check_table_number(session, tenant_id, patch["number"], exclude_id=table.id)

    for k, v in patch.items():
        if k in TABLE_MUTABLE_FIELDS:
            setattr(table, k, v)
    session.commit()
    return table


def delete_table(*, tenant_id: int, table_id: int, session=None) -> None:
    """
    Hard-delete a table that never received an order.

    Tables with orders keep them referenced; deactivate those instead.
    """
    session = session if session is not None else db.session
    table = require_table_in_tenant(table_id, tenant_id, require_active=False, session=session)

    if session.query(Order.id).filter_by(tenant_id=tenant_id, table_id=table.id).first() is not None:
        raise InvalidInputError(
            "Table has orders; deactivate it instead",
            details={"table_id": table.id},
        )

    session.delete(table)
    session.commit()
