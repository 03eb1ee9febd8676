"""YAML and env loader for service settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from scholarvault.models import SettingsConfig, StorageBackend

# Env var -> (section, key). Env always wins over the YAML file.
_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "PRIVATE_KEY": ("storage", "private_key"),
    "RPC_URL": ("storage", "endpoint"),
    "STORAGE_BACKEND": ("storage", "backend"),
    "STORAGE_TIMEOUT": ("storage", "request_timeout"),
    "DATABASE_PATH": ("database", "path"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FILE": ("logging", "log_file"),
    "AUDIT_LOG_DIR": ("logging", "audit_dir"),
}


def _read_yaml(path: str) -> dict:
    resolved = Path(path)
    if not resolved.exists():
        return {}
    with resolved.open("r", encoding="utf-8") as file_obj:
        loaded = yaml.safe_load(file_obj) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Expected object at root of YAML file: {path}")
    return loaded


def _apply_env(raw: dict[str, Any]) -> dict[str, Any]:
    for env_key, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_key)
        if value is None or value == "":
            continue
        raw.setdefault(section, {})
        raw[section][key] = value.strip()
    if os.getenv("DEBUG", "").lower() == "true":
        raw.setdefault("logging", {})
        raw["logging"]["debug"] = True
    return raw


def load_settings(settings_path: str = "config/settings.yaml") -> SettingsConfig:
    """Load settings from .env, an optional YAML file and the process environment.

    A missing YAML file is not an error; the service can be configured from
    the environment alone.
    """
    load_dotenv()
    raw = _apply_env(_read_yaml(settings_path))
    return SettingsConfig.model_validate(raw)


def missing_storage_credentials(settings: SettingsConfig) -> list[str]:
    """Return env var names the configured storage backend still needs.

    The in-memory backend needs none. Placeholder values count as missing.
    """
    if settings.storage.backend == StorageBackend.MEMORY:
        return []
    missing: list[str] = []
    if not settings.storage.has_credentials():
        missing.append("PRIVATE_KEY")
    if not settings.storage.endpoint:
        missing.append("RPC_URL")
    return missing
