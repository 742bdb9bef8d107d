# Overview: Error taxonomy shared by the stock and order services.

"""
Core errors.

Every service failure is one of these kinds; the HTTP layer maps them:
- NotFoundError -> 404
- InvalidInputError -> 400
- InsufficientStockError -> 409

Lookups always filter by (id, tenant_id), so a row owned by another tenant
raises NotFoundError exactly like a missing row.
"""

from __future__ import annotations


class BarposError(Exception):
    """Base class for domain errors. Carries optional structured details."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NotFoundError(BarposError):
    """Referenced product/order/table does not exist for the tenant."""


class InvalidInputError(BarposError):
    """Zero delta, negative level, empty or non-positive order lines, etc."""


class InsufficientStockError(BarposError):
    """A decrement would drive stock_quantity below zero."""

    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: available {available}, requested {requested}",
            details={
                "product_id": product_id,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


HTTP_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (InsufficientStockError, 409),
    (InvalidInputError, 400),
)


def error_response(exc: BarposError) -> tuple[dict, int]:
    """JSON body and status code for a domain error (400 if unmapped)."""
    status = 400
    for cls, code in HTTP_STATUS_BY_ERROR:
        if isinstance(exc, cls):
            status = code
            break
    return {"error": exc.message, "details": exc.details}, status
