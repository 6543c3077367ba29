# Overview: Error taxonomy shared by the checkout core, services and routes.

"""
POS error taxonomy.

Every error here is recoverable: the operation that raised it left state
unchanged. Routes translate them to JSON using `http_status`.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for business-rule and persistence errors."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": self.message, "code": type(self).__name__}
        if self.details:
            payload["details"] = self.details
        return payload


class AlreadyOpen(PosError):
    """A register session is already OPEN."""
    http_status = 409


class RegisterClosed(PosError):
    """Operation requires an OPEN register session."""
    http_status = 409


class InsufficientPayment(PosError):
    """Tendered total is below the cart total."""


class EmptyCart(PosError):
    """Settlement attempted with no cart lines."""


class InvalidAmount(PosError):
    """Non-numeric, non-finite or out-of-range money input."""


class PersistenceFailure(PosError):
    """
    The storage layer reported an error or was unreachable.

    Nothing was committed; callers may retry the same operation.
    """
    http_status = 503

    def __init__(self, message: str, details: dict | None = None, *, retryable: bool = True):
        super().__init__(message, details)
        self.retryable = retryable

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["retryable"] = self.retryable
        return payload


class ValidationError(PosError):
    """400-level input problem."""


class NotFound(PosError):
    http_status = 404


class PermissionDenied(PosError):
    http_status = 403


class ProductUnavailable(PosError):
    """Product is inactive and cannot be added to a cart."""


class PaymentNotFound(PosError):
    """No tendered payment at the given position."""
