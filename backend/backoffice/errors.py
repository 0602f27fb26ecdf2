# Overview: Typed failures raised by the order core and mapped to HTTP responses by the routes.

from __future__ import annotations


class OrderError(Exception):
    """Base for every business-rule or storage failure of an order operation."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": str(self), "details": self.details}


class ValidationError(OrderError, ValueError):
    """400-level input problem. Raised before any transaction is opened."""


class NotFoundError(OrderError):
    """Referenced order or variant does not exist."""

    status_code = 404


class InsufficientStockError(OrderError):
    """
    A reservation asked for more units than a variant has on hand.

    variant_id / available / requested describe the first failing variant;
    details["items"] lists every shortage found during validation.
    """

    status_code = 409

    def __init__(self, variant_id: int, available: int, requested: int, details: dict | None = None):
        super().__init__(
            f"Not enough stock for variant {variant_id}. In stock: {available}",
            details={"variant_id": variant_id, "available": available, "requested": requested, **(details or {})},
        )
        self.variant_id = variant_id
        self.available = available
        self.requested = requested


class TransactionFailure(OrderError):
    """
    The store rejected the unit of work (deadlock, lock timeout, constraint).

    retryable=True for lock/timeout/optimistic-version conflicts; the caller
    decides whether to retry.
    """

    def __init__(self, message: str, *, retryable: bool, details: dict | None = None):
        super().__init__(message, details=details)
        self.retryable = retryable

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return 503 if self.retryable else 409

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data
