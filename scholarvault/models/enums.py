"""Enum definitions for typed storage and verification boundaries."""

from enum import Enum


class StorageBackend(str, Enum):
    GATEWAY = "gateway"
    MEMORY = "memory"


class StorageFailureReason(str, Enum):
    CONFIGURATION = "configuration"  # credentials absent or placeholder; no call attempted
    CONNECTIVITY = "connectivity"
    TIMEOUT = "timeout"
    BACKEND = "backend"  # reachable but refused or failed the request


class VerificationReason(str, Enum):
    CONFIRMED = "confirmed"
    MISSING = "missing"
    CONFIGURATION = "configuration"
    CONNECTIVITY = "connectivity"
    TIMEOUT = "timeout"
    BACKEND = "backend"
