# Overview: Closed enumerations used by models, services and routes.

from __future__ import annotations

import enum


class PaymentMethod(str, enum.Enum):
    """
    Tender types accepted at checkout.

    Closed set so per-method grouping in cash positions and reports is
    exhaustive. Values are the wire/storage names.
    """
    CASH = "CASH"
    PIX = "PIX"
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"

    @classmethod
    def parse(cls, value) -> "PaymentMethod":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
        raise ValueError(f"Invalid payment method: {value!r}. Must be one of {[m.value for m in cls]}")


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    OPERATOR = "OPERATOR"

    @classmethod
    def parse(cls, value) -> "UserRole":
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]
        raise ValueError(f"Invalid role: {value!r}. Must be one of {[r.value for r in cls]}")


class SessionStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
