"""Configuration models loaded from YAML and environment."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from scholarvault.models.enums import StorageBackend

DEFAULT_STORAGE_ENDPOINT = "https://api.calibration.node.glif.io/rpc/v1"

# Values shipped in example env files. Treated as "not configured".
_PLACEHOLDER_CREDENTIALS: frozenset[str] = frozenset({
    "your_filecoin_private_key_here",
    "your_private_key_here",
    "changeme",
})


def is_placeholder_credential(value: Optional[str]) -> bool:
    if not value or not value.strip():
        return True
    v = value.strip().lower()
    return v in _PLACEHOLDER_CREDENTIALS or v.startswith("0xyour_")


class StorageConfig(BaseModel):
    backend: StorageBackend = StorageBackend.GATEWAY
    endpoint: str = DEFAULT_STORAGE_ENDPOINT
    private_key: Optional[str] = None
    request_timeout: float = Field(default=30.0, gt=0)
    with_cdn: bool = True
    verify_tls: bool = True

    def has_credentials(self) -> bool:
        return not is_placeholder_credential(self.private_key)


class DatabaseConfig(BaseModel):
    path: str = "data/catalog.db"


class LoggingConfig(BaseModel):
    level: str = "normal"
    debug: bool = False
    log_file: Optional[str] = None
    audit_dir: Optional[str] = "logs"


class SettingsConfig(BaseModel):
    storage: StorageConfig = Field(default_factory=StorageConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
