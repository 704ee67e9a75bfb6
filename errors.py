"""
errors.py
Error kinds raised by the service and storage layers.
"""

from __future__ import annotations


class SubscriptionError(Exception):
    """Base class for every error the tracker raises on purpose."""


class ValidationError(SubscriptionError):
    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class NotFoundError(SubscriptionError):
    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} not found: {entity_id}")


class StorageError(SubscriptionError):
    """Storage backend failure, surfaced as-is (no retries)."""


class ParseError(SubscriptionError, ValueError):
    """Unparseable date or number."""
