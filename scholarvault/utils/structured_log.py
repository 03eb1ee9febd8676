"""Structured logging for a machine-parseable storage and verification audit trail."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
from structlog.processors import JSONRenderer
from structlog.typing import Processor

_configured = False
_logger: structlog.BoundLogger | None = None
_file_handle: Any = None


def configure_audit_logging(log_dir: str) -> Path:
    """One-time setup at service start. Writes JSON lines to {log_dir}/audit.jsonl."""
    global _configured, _logger, _file_handle
    audit_path = Path(log_dir) / "audit.jsonl"
    if _configured:
        return audit_path
    audit_path.parent.mkdir(parents=True, exist_ok=True)
    _file_handle = open(audit_path, "a", encoding="utf-8")
    file_handle = _file_handle

    def _file_logger_factory(*args: Any, **kwargs: Any) -> structlog.PrintLogger:
        return structlog.PrintLogger(file_handle)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        JSONRenderer(),
    ]
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=_file_logger_factory,
        cache_logger_on_first_use=False,
    )
    _configured = True
    _logger = structlog.get_logger()
    return audit_path


def reset_audit_logging() -> None:
    """Close the audit file and drop configuration (used on shutdown and in tests)."""
    global _configured, _logger, _file_handle
    if _file_handle is not None:
        _file_handle.close()
    _file_handle = None
    _logger = None
    _configured = False
    structlog.reset_defaults()


def bind_request(request_id: str) -> None:
    """Bind request context so every audit line carries the request id."""
    structlog.contextvars.bind_contextvars(request_id=request_id)


def clear_request() -> None:
    structlog.contextvars.clear_contextvars()


def log_storage_call(
    operation: str,
    status: str,
    *,
    backend: str | None = None,
    cid: str | None = None,
    size: int | None = None,
    latency_ms: int | None = None,
    reason: str | None = None,
    error: str | None = None,
) -> None:
    """Log a content store call (operation: put|get|exists)."""
    payload: dict[str, Any] = {"operation": operation, "status": status}
    if backend is not None:
        payload["backend"] = backend
    if cid is not None:
        payload["cid"] = cid
    if size is not None:
        payload["size"] = size
    if latency_ms is not None:
        payload["latency_ms"] = latency_ms
    if reason is not None:
        payload["reason"] = reason
    if error is not None:
        payload["error"] = error
    if _logger is not None:
        _logger.info("storage_call", **payload)


def log_ingest(paper_id: str, cid: str, version: int, parent_cid: str | None = None) -> None:
    """Log a successfully persisted paper version."""
    payload: dict[str, Any] = {"paper_id": paper_id, "cid": cid, "version": version}
    if parent_cid is not None:
        payload["parent_cid"] = parent_cid
    if _logger is not None:
        _logger.info("ingest", **payload)


def log_orphaned_content(cid: str, error: str) -> None:
    """Log content that was stored but whose metadata write failed."""
    if _logger is not None:
        _logger.warning("orphaned_content", cid=cid, error=error)


def log_verification(paper_id: str, cid: str, is_valid: bool, reason: str, proof: str) -> None:
    """Log the outcome of one verification attempt."""
    if _logger is not None:
        _logger.info(
            "verification",
            paper_id=paper_id,
            cid=cid,
            is_valid=is_valid,
            reason=reason,
            proof=proof,
        )


# ---------------------------------------------------------------------------
# JSONL replay helpers
# ---------------------------------------------------------------------------

_KNOWN_EVENTS = frozenset({"storage_call", "ingest", "orphaned_content", "verification"})


def normalize_jsonl_event(entry: dict[str, Any]) -> dict[str, Any] | None:
    """Convert one audit.jsonl line to a flat {"type", "ts", ...} event.

    structlog writes the event name into the "event" key and adds "timestamp"
    and "level". Unknown event names are dropped.
    """
    ev = entry.get("event")
    if ev not in _KNOWN_EVENTS:
        return None
    out = {k: v for k, v in entry.items() if k not in ("event", "level", "timestamp")}
    out["type"] = ev
    out["ts"] = entry.get("timestamp", "")
    return out


def load_events_from_jsonl(path: str) -> list[dict[str, Any]]:
    """Read an audit.jsonl file and return normalized events.

    Skips lines that fail to parse or map to no known event type.
    """
    p = Path(path)
    if not p.exists():
        return []
    events: list[dict[str, Any]] = []
    with p.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            event = normalize_jsonl_event(entry)
            if event is not None:
                events.append(event)
    return events
