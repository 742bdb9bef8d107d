# Overview: Request decorators for tenant-scoped API routes.

from functools import wraps
from flask import request, jsonify, g

from .errors import NotFoundError
from .services.tenant_service import require_active_tenant


def _parse_actor_id(raw: str | None) -> int | None:
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)


def require_tenant(f):
    """
    Resolve the tenant addressed by the URL and establish request context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.tenant: The active Tenant object
    - g.tenant_id: The tenant ID used to scope every service call
    - g.actor_id: Optional acting user id from the X-Actor-Id header
      (authentication is handled upstream of this service)

    Returns 404 if the tenant doesn't exist or is deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_id = kwargs.get("tenant_id")

        try:
            tenant = require_active_tenant(tenant_id)
        except NotFoundError:
            return jsonify({"error": "Tenant not found"}), 404

        g.tenant = tenant
        g.tenant_id = tenant.id
        g.actor_id = _parse_actor_id(request.headers.get("X-Actor-Id"))

        return f(*args, **kwargs)

    return decorated_function
