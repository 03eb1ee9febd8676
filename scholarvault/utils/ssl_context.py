"""TLS and connection pooling for outbound storage gateway sessions."""

from __future__ import annotations

import os
import ssl

import aiohttp
import certifi

SKIP_VERIFY_ENV = "SCHOLARVAULT_SSL_SKIP_VERIFY"


def tls_verification_disabled(verify_tls: bool = True) -> bool:
    if not verify_tls:
        return True
    return os.getenv(SKIP_VERIFY_ENV, "").lower() in ("1", "true", "yes")


def gateway_ssl(verify_tls: bool = True) -> ssl.SSLContext | bool:
    """SSL argument for aiohttp: a certifi-backed context, or False when verification is off."""
    if tls_verification_disabled(verify_tls):
        return False
    return ssl.create_default_context(cafile=certifi.where())


def gateway_connector(verify_tls: bool = True, limit: int = 20) -> aiohttp.TCPConnector:
    return aiohttp.TCPConnector(ssl=gateway_ssl(verify_tls), limit=limit, ttl_dns_cache=300)
