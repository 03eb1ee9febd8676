import ssl

import pytest

from scholarvault.utils.ssl_context import (
    SKIP_VERIFY_ENV,
    gateway_connector,
    gateway_ssl,
    tls_verification_disabled,
)


def test_default_context_verifies(monkeypatch) -> None:
    monkeypatch.delenv(SKIP_VERIFY_ENV, raising=False)

    context = gateway_ssl()

    assert isinstance(context, ssl.SSLContext)
    assert context.verify_mode == ssl.CERT_REQUIRED


def test_config_flag_disables_verification(monkeypatch) -> None:
    monkeypatch.delenv(SKIP_VERIFY_ENV, raising=False)
    assert gateway_ssl(verify_tls=False) is False


def test_env_disables_verification(monkeypatch) -> None:
    monkeypatch.setenv(SKIP_VERIFY_ENV, "true")
    assert tls_verification_disabled() is True


@pytest.mark.asyncio
async def test_gateway_connector_pool_limit(monkeypatch) -> None:
    monkeypatch.delenv(SKIP_VERIFY_ENV, raising=False)
    connector = gateway_connector(limit=5)
    try:
        assert connector.limit == 5
    finally:
        await connector.close()
