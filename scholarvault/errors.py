"""
Exception taxonomy for catalog, storage and verification operations.

Every error carries the HTTP status it maps to at the request boundary.
"""

from __future__ import annotations

from typing import Any, Optional

from scholarvault.models.enums import StorageFailureReason


class CatalogError(Exception):
    """Base exception for catalog errors."""

    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CatalogError):
    """Raised when required metadata or content is missing on ingest."""

    http_status = 400

    def __init__(self, message: str, fields: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.fields = fields or []


class NotFound(CatalogError):
    """Raised when a paper id does not resolve to a record."""

    http_status = 404


class PersistenceFailure(CatalogError):
    """Raised when a metadata write fails after content was stored.

    The stored object is orphaned; no compensating delete is attempted.
    """

    def __init__(self, message: str, orphaned_cid: Optional[str] = None):
        super().__init__(message)
        self.orphaned_cid = orphaned_cid


class UnknownFailure(CatalogError):
    """Catch-all wrapper that keeps the underlying message."""

    pass


class StorageError(CatalogError):
    """Base exception for content store failures."""

    reason = StorageFailureReason.BACKEND

    def __init__(self, message: str, reason: Optional[StorageFailureReason] = None):
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class StorageConfigurationError(StorageError):
    """Raised when storage credentials are absent or still a placeholder."""

    http_status = 400
    reason = StorageFailureReason.CONFIGURATION


class StorageUnavailable(StorageError):
    """Raised when the backend is unreachable, times out or fails the request."""

    reason = StorageFailureReason.CONNECTIVITY
