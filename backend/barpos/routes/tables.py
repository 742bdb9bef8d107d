# Overview: Flask API routes for dining tables; parses input and returns JSON responses.

# backend/barpos/routes/tables.py
"""
Dining table routes (the targets of QR ordering).

MULTI-TENANT: All table operations are scoped to the tenant in the URL
(/api/<tenant_id>/tables). A table of another tenant answers 404.

Deactivating a table (PUT {"is_active": false}) stops new orders for it.
DELETE is refused with 400 once the table has orders.
"""
from flask import Blueprint, request, g, current_app

from ..errors import BarposError, error_response
from ..models import Table
from ..services import tenant_service
from ..validation import ModelValidationPolicy, validate_payload, ValidationError
from ..decorators import require_tenant

TABLE_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={"number", "label", "is_active"},
    required_on_create={"number"},
)

TABLE_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=set(tenant_service.TABLE_MUTABLE_FIELDS),
)

tables_bp = Blueprint("tables", __name__, url_prefix="/api/<int:tenant_id>/tables")


def _active_arg() -> bool | None:
    raw = request.args.get("active")
    if raw is None or raw == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes", "on")


@tables_bp.get("")
@require_tenant
def list_tables_route(tenant_id: int):
    """
    List tables ordered by number.

    Query params:
    - active: bool (optional)
    - q: str (optional) - label search
    """
    tables = tenant_service.list_tables(
        tenant_id=g.tenant_id,
        is_active=_active_arg(),
        query=request.args.get("q"),
    )
    return {"items": [t.to_dict() for t in tables], "count": len(tables)}, 200


@tables_bp.post("")
@require_tenant
def create_table_route(tenant_id: int):
    """Body: {"number": int > 0, "label": str, "is_active": bool}"""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Table, payload=payload, policy=TABLE_CREATE_POLICY, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = tenant_service.create_table(
            tenant_id=g.tenant_id,
            number=patch["number"],
            label=patch.get("label") or None,
            is_active=patch["is_active"] if patch.get("is_active") is not None else True,
        )
    except BarposError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create table")
        return {"error": "Internal server error"}, 500

    current_app.logger.info("table created tenant=%s table=%s number=%s", g.tenant_id, created.id, created.number)
    return created.to_dict(), 201


@tables_bp.get("/<int:table_id>")
@require_tenant
def get_table_route(tenant_id: int, table_id: int):
    try:
        table = tenant_service.require_table_in_tenant(table_id, g.tenant_id, require_active=False)
    except BarposError as e:
        return error_response(e)
    return table.to_dict(), 200


@tables_bp.put("/<int:table_id>")
@require_tenant
def update_table_route(tenant_id: int, table_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Table, payload=payload, policy=TABLE_UPDATE_POLICY, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = tenant_service.update_table(tenant_id=g.tenant_id, table_id=table_id, patch=patch)
    except BarposError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update table")
        return {"error": "Internal server error"}, 500

    return updated.to_dict(), 200


@tables_bp.delete("/<int:table_id>")
@require_tenant
def delete_table_route(tenant_id: int, table_id: int):
    try:
        tenant_service.delete_table(tenant_id=g.tenant_id, table_id=table_id)
    except BarposError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete table")
        return {"error": "Internal server error"}, 500

    return {"ok": True}, 200
