"""Model exports."""

from scholarvault.models.config import (
    DatabaseConfig,
    LoggingConfig,
    SettingsConfig,
    StorageConfig,
    is_placeholder_credential,
)
from scholarvault.models.enums import StorageBackend, StorageFailureReason, VerificationReason
from scholarvault.models.papers import (
    PaperPage,
    PaperRecord,
    ProofRecord,
    SearchFilters,
    UploadMetadata,
    VerificationOutcome,
)

__all__ = [
    "DatabaseConfig",
    "LoggingConfig",
    "PaperPage",
    "PaperRecord",
    "ProofRecord",
    "SearchFilters",
    "SettingsConfig",
    "StorageBackend",
    "StorageConfig",
    "StorageFailureReason",
    "UploadMetadata",
    "VerificationOutcome",
    "VerificationReason",
    "is_placeholder_credential",
]
