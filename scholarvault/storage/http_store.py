"""Storage gateway client using direct HTTP.

The gateway fronts a content-addressed storage network:

    GET  /preflight?size=N  -> {"sufficient": bool, "required": int}
    POST /upload            -> {"cid": str, "size": int, "provider": str, "dealId": str | null}
    GET  /piece/{cid}       -> raw bytes
    HEAD /piece/{cid}       -> 200 present, 404 missing

Requests are signed with an HMAC of the configured private key; the key itself
never leaves the process.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import aiohttp

from scholarvault.errors import StorageConfigurationError, StorageError, StorageUnavailable
from scholarvault.models import StorageConfig, StorageFailureReason
from scholarvault.storage.base import StoredObject
from scholarvault.utils.logging_config import get_logger
from scholarvault.utils.ssl_context import gateway_connector
from scholarvault.utils.structured_log import log_storage_call

logger = get_logger(__name__)

PROVIDER_NAME = "filecoin-pdp"


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


class GatewayContentStore:
    name = "gateway"

    def __init__(self, config: StorageConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session
        self._owns_session = session is None

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    def _require_credentials(self) -> None:
        if not self.config.has_credentials():
            raise StorageConfigurationError(
                "Storage private key not configured. Set PRIVATE_KEY to a valid private key."
            )
        if not self.config.endpoint:
            raise StorageConfigurationError("Storage endpoint not configured. Set RPC_URL.")

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                connector=gateway_connector(self.config.verify_tls)
            )
            self._owns_session = True
        return self._session

    def _url(self, path: str) -> str:
        return self.config.endpoint.rstrip("/") + path

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self.config.request_timeout)

    def _signed_headers(self, method: str, path: str, body: bytes = b"") -> dict[str, str]:
        key = (self.config.private_key or "").strip().encode("utf-8")
        timestamp = str(int(time.time()))
        digest = hashlib.sha256(body).hexdigest()
        message = "\n".join([method, path, timestamp, digest]).encode("utf-8")
        return {
            "X-Key-Id": hashlib.sha256(key).hexdigest()[:16],
            "X-Timestamp": timestamp,
            "X-Content-SHA256": digest,
            "X-Signature": hmac.new(key, message, hashlib.sha256).hexdigest(),
        }

    @staticmethod
    def _status_error(operation: str, status: int, body: str) -> StorageError:
        if status in (401, 403):
            return StorageConfigurationError(
                f"Storage gateway rejected credentials during {operation} (HTTP {status})"
            )
        return StorageUnavailable(
            f"Storage gateway error {status} during {operation}: {body[:500]}",
            reason=StorageFailureReason.BACKEND,
        )

    @asynccontextmanager
    async def _call(self, operation: str, cid: Optional[str] = None) -> AsyncIterator[None]:
        """Translate transport failures into typed StorageErrors and audit them."""
        started = time.monotonic()
        try:
            yield
        except StorageError as exc:
            self._log_failure(operation, exc, cid, started)
            raise
        except asyncio.TimeoutError as exc:
            err = StorageUnavailable(
                f"Storage {operation} timed out after {self.config.request_timeout:g}s",
                reason=StorageFailureReason.TIMEOUT,
            )
            self._log_failure(operation, err, cid, started)
            raise err from exc
        except aiohttp.ClientConnectionError as exc:
            err = StorageUnavailable(
                f"Unable to connect to storage network at {self.config.endpoint}: {exc}",
                reason=StorageFailureReason.CONNECTIVITY,
            )
            self._log_failure(operation, err, cid, started)
            raise err from exc
        except aiohttp.ClientError as exc:
            err = StorageUnavailable(
                f"Storage {operation} failed: {exc}", reason=StorageFailureReason.BACKEND
            )
            self._log_failure(operation, err, cid, started)
            raise err from exc

    def _log_failure(
        self, operation: str, exc: StorageError, cid: Optional[str], started: float
    ) -> None:
        logger.warning("Storage %s failed (%s): %s", operation, exc.reason.value, exc.message)
        log_storage_call(
            operation,
            "error",
            backend=self.name,
            cid=cid,
            latency_ms=_elapsed_ms(started),
            reason=exc.reason.value,
            error=exc.message,
        )

    # ------------------------------------------------------------------
    # ContentStore
    # ------------------------------------------------------------------

    async def _preflight(self, session: aiohttp.ClientSession, size: int) -> None:
        path = "/preflight"
        async with session.get(
            self._url(path),
            params={"size": str(size)},
            headers=self._signed_headers("GET", path),
            timeout=self._timeout(),
        ) as response:
            if response.status != 200:
                raise self._status_error("preflight", response.status, await response.text())
            payload = await response.json()
        if not payload.get("sufficient", False):
            raise StorageUnavailable(
                "Allowance not sufficient. Please increase your storage allowance.",
                reason=StorageFailureReason.BACKEND,
            )

    async def put(self, content: bytes) -> StoredObject:
        started = time.monotonic()
        path = "/upload"
        async with self._call("put"):
            self._require_credentials()
            session = self._get_session()
            await self._preflight(session, len(content))
            params = {"withCDN": "true"} if self.config.with_cdn else None
            async with session.post(
                self._url(path),
                data=content,
                params=params,
                headers=self._signed_headers("POST", path, content),
                timeout=self._timeout(),
            ) as response:
                if response.status not in (200, 201):
                    raise self._status_error("upload", response.status, await response.text())
                payload = await response.json()
            cid = payload.get("cid") or payload.get("commp")
            if not cid:
                raise StorageUnavailable(
                    "Storage gateway response missing cid", reason=StorageFailureReason.BACKEND
                )
        deal_id = payload.get("dealId")
        stored = StoredObject(
            cid=str(cid),
            size=len(content),
            provider=str(payload.get("provider") or PROVIDER_NAME),
            deal_id=str(deal_id) if deal_id is not None else None,
        )
        logger.info("Stored %d bytes as %s", stored.size, stored.cid)
        log_storage_call(
            "put",
            "ok",
            backend=self.name,
            cid=stored.cid,
            size=stored.size,
            latency_ms=_elapsed_ms(started),
        )
        return stored

    async def get(self, cid: str) -> bytes:
        started = time.monotonic()
        path = f"/piece/{cid}"
        async with self._call("get", cid):
            self._require_credentials()
            session = self._get_session()
            async with session.get(
                self._url(path),
                headers=self._signed_headers("GET", path),
                timeout=self._timeout(),
            ) as response:
                if response.status != 200:
                    raise self._status_error("download", response.status, await response.text())
                data = await response.read()
        log_storage_call(
            "get", "ok", backend=self.name, cid=cid, size=len(data), latency_ms=_elapsed_ms(started)
        )
        return data

    async def exists(self, cid: str) -> bool:
        started = time.monotonic()
        path = f"/piece/{cid}"
        async with self._call("exists", cid):
            self._require_credentials()
            session = self._get_session()
            async with session.head(
                self._url(path),
                headers=self._signed_headers("HEAD", path),
                timeout=self._timeout(),
            ) as response:
                status = response.status
                if status not in (200, 404):
                    raise self._status_error("existence check", status, "")
        found = status == 200
        log_storage_call(
            "exists",
            "ok" if found else "missing",
            backend=self.name,
            cid=cid,
            latency_ms=_elapsed_ms(started),
        )
        return found

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
