"""
Domain errors surfaced to the API boundary.
"""

from __future__ import annotations


class StorefrontError(Exception):
    """Base class for errors raised by the catalog and credential services."""

    status_code = 500


class Unauthorized(StorefrontError):
    """Credentials did not match any stored user."""

    status_code = 401


class InvalidToken(Unauthorized):
    """A bearer token failed signature, expiry or type verification."""


class NotFound(StorefrontError):
    status_code = 404

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found")
        self.kind = kind
        self.record_id = record_id


class InvalidInput(StorefrontError):
    """A filter value could not be coerced to the stored field's type."""

    status_code = 400


class StorageError(StorefrontError):
    """The persistence backend failed while serving an operation."""

    status_code = 503
