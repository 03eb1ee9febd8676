"""FastAPI web backend for the paper catalog.

Run with:
    uvicorn scholarvault.web.app:app --reload --port ${PORT:-8000}

Or via the CLI:
    python -m scholarvault.main serve
"""

from __future__ import annotations

import json as _json
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncGenerator, AsyncIterator, Optional

import pydantic
from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from scholarvault import __version__
from scholarvault.catalog import CatalogService, VerificationCoordinator
from scholarvault.config.loader import load_settings, missing_storage_credentials
from scholarvault.db.database import get_db
from scholarvault.db.repositories import CatalogRepository
from scholarvault.errors import (
    CatalogError,
    StorageConfigurationError,
    StorageUnavailable,
    UnknownFailure,
    ValidationError,
)
from scholarvault.models import SearchFilters, SettingsConfig, StorageFailureReason, UploadMetadata
from scholarvault.storage.client import StorageHandle
from scholarvault.utils.logging_config import get_logger, parse_log_level, setup_logging
from scholarvault.utils.structured_log import (
    bind_request,
    clear_request,
    configure_audit_logging,
    reset_audit_logging,
)

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Lifespan: settings, logging and the shared storage handle
# ---------------------------------------------------------------------------

def create_app(
    settings: Optional[SettingsConfig] = None,
    storage: Optional[StorageHandle] = None,
) -> FastAPI:
    """Build the application. Settings load from env/YAML at startup when not given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        cfg: SettingsConfig = app.state.settings or load_settings()
        app.state.settings = cfg
        setup_logging(
            parse_log_level(cfg.logging.level),
            log_file=cfg.logging.log_file,
            debug=cfg.logging.debug,
        )
        audit_configured = False
        if cfg.logging.audit_dir:
            configure_audit_logging(cfg.logging.audit_dir)
            audit_configured = True

        missing = missing_storage_credentials(cfg)
        if missing:
            logger.warning(
                "Storage credentials not configured (%s); uploads and verification will fail",
                ", ".join(missing),
            )
        handle: StorageHandle = app.state.storage or StorageHandle(cfg.storage)
        app.state.storage = handle
        await handle.open()
        try:
            yield
        finally:
            await handle.close()
            if audit_configured:
                reset_audit_logging()

    app = FastAPI(title="Scholar Vault API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.storage = storage

    _register_error_handlers(app)

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        bind_request(uuid.uuid4().hex[:12])
        try:
            return await call_next(request)
        except Exception as exc:
            # Answered here so the envelope still passes through CORS
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return _error_response(500, str(exc) or type(exc).__name__)
        finally:
            clear_request()

    # Added last so it wraps every other middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    _register_routes(app)
    return app


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------

def _field_errors(errors: Any) -> list[dict[str, str]]:
    return [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "message": str(err.get("msg", ""))}
        for err in errors
    ]


def _error_response(status_code: int, error: str, details: Any = None) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "error": error}
    if details:
        body["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content=body)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(CatalogError)
    async def _catalog_error(_request: Request, exc: CatalogError) -> JSONResponse:
        if exc.http_status >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        details = exc.fields if isinstance(exc, ValidationError) else None
        return _error_response(exc.http_status, exc.message, details)

    @app.exception_handler(RequestValidationError)
    async def _request_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(400, "Invalid request parameters", _field_errors(exc.errors()))


def _ok(data: Any, status_code: int = 200, message: Optional[str] = None) -> JSONResponse:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

async def get_repository(request: Request) -> AsyncIterator[CatalogRepository]:
    async with get_db(request.app.state.settings.database.path) as db:
        yield CatalogRepository(db)


def _parse_metadata(raw: Optional[str]) -> UploadMetadata:
    if not raw:
        raise ValidationError(
            "No metadata provided", [{"field": "metadata", "message": "Metadata is required"}]
        )
    try:
        return UploadMetadata.model_validate(_json.loads(raw))
    except _json.JSONDecodeError as exc:
        raise ValidationError(
            "Invalid metadata JSON", [{"field": "metadata", "message": str(exc)}]
        ) from exc
    except pydantic.ValidationError as exc:
        raise ValidationError("Invalid metadata", _field_errors(exc.errors())) from exc


async def _read_upload(file: Optional[UploadFile]) -> bytes:
    if file is None:
        raise ValidationError("No file provided", [{"field": "file", "message": "File is required"}])
    return await file.read()


def _upload_storage_error(exc: CatalogError) -> CatalogError:
    """Replace low-level storage text with remediation the uploader can act on."""
    if isinstance(exc, StorageConfigurationError):
        return StorageConfigurationError(
            "Storage configuration missing. Please configure your private key (PRIVATE_KEY) "
            "to upload papers to the storage network."
        )
    if isinstance(exc, StorageUnavailable) and exc.reason == StorageFailureReason.CONNECTIVITY:
        return StorageUnavailable(
            "Unable to connect to the storage network. "
            "Please check your internet connection and configuration.",
            reason=exc.reason,
        )
    if isinstance(exc, StorageUnavailable):
        return StorageUnavailable(f"Upload failed: {exc.message}", reason=exc.reason)
    return exc


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

def _register_routes(app: FastAPI) -> None:
    @app.get("/health")
    async def health_check(request: Request) -> dict[str, str]:
        handle: StorageHandle = request.app.state.storage
        return {"status": "ok", "storage": handle.backend_name}

    @app.post("/papers")
    async def upload_paper(
        request: Request,
        file: Optional[UploadFile] = File(default=None),
        metadata: Optional[str] = Form(default=None),
        repo: CatalogRepository = Depends(get_repository),
    ) -> JSONResponse:
        content = await _read_upload(file)
        meta = _parse_metadata(metadata)
        service = CatalogService(repo, request.app.state.storage)
        try:
            paper = await service.ingest(content, meta, file_type=file.content_type)
        except (StorageConfigurationError, StorageUnavailable) as exc:
            raise _upload_storage_error(exc) from exc
        except CatalogError:
            raise
        except Exception as exc:
            raise UnknownFailure(f"Failed to upload paper: {exc}") from exc
        return _ok(paper.to_api(), status_code=201, message="Paper uploaded successfully")

    @app.get("/papers")
    async def search_papers(
        request: Request,
        query: Optional[str] = None,
        author: Optional[str] = None,
        verified: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
        date_from: Optional[datetime] = Query(default=None, alias="dateFrom"),
        date_to: Optional[datetime] = Query(default=None, alias="dateTo"),
        repo: CatalogRepository = Depends(get_repository),
    ) -> JSONResponse:
        try:
            filters = SearchFilters(
                query=query,
                author=author,
                verified=verified,
                date_from=date_from,
                date_to=date_to,
                page=page,
                limit=limit,
            )
        except pydantic.ValidationError as exc:
            raise ValidationError("Invalid search parameters", _field_errors(exc.errors())) from exc
        service = CatalogService(repo, request.app.state.storage)
        try:
            result = await service.search(filters)
        except CatalogError:
            raise
        except Exception as exc:
            raise UnknownFailure(f"Failed to search papers: {exc}") from exc
        return _ok(result.to_api())

    @app.get("/papers/{paper_id}")
    async def get_paper(
        request: Request,
        paper_id: str,
        repo: CatalogRepository = Depends(get_repository),
    ) -> JSONResponse:
        service = CatalogService(repo, request.app.state.storage)
        paper = await service.get_by_id(paper_id)
        return _ok(paper.to_api())

    @app.post("/papers/{paper_id}/verify")
    async def verify_paper(
        request: Request,
        paper_id: str,
        repo: CatalogRepository = Depends(get_repository),
    ) -> JSONResponse:
        coordinator = VerificationCoordinator(repo, request.app.state.storage)
        try:
            outcome = await coordinator.verify(paper_id)
        except CatalogError:
            raise
        except Exception as exc:
            raise UnknownFailure(f"Failed to verify paper: {exc}") from exc
        return _ok(outcome.to_api())

    @app.get("/papers/{paper_id}/proofs")
    async def list_proofs(
        request: Request,
        paper_id: str,
        repo: CatalogRepository = Depends(get_repository),
    ) -> JSONResponse:
        coordinator = VerificationCoordinator(repo, request.app.state.storage)
        proofs = await coordinator.proofs(paper_id)
        return _ok([proof.to_api() for proof in proofs])

    @app.post("/papers/{paper_id}/versions")
    async def upload_version(
        request: Request,
        paper_id: str,
        file: Optional[UploadFile] = File(default=None),
        metadata: Optional[str] = Form(default=None),
        repo: CatalogRepository = Depends(get_repository),
    ) -> JSONResponse:
        content = await _read_upload(file)
        meta = _parse_metadata(metadata)
        service = CatalogService(repo, request.app.state.storage)
        try:
            paper = await service.create_version(
                paper_id, content, meta, file_type=file.content_type
            )
        except (StorageConfigurationError, StorageUnavailable) as exc:
            raise _upload_storage_error(exc) from exc
        except CatalogError:
            raise
        except Exception as exc:
            raise UnknownFailure(f"Failed to upload new version: {exc}") from exc
        return _ok(paper.to_api(), status_code=201, message="New version uploaded successfully")

    @app.get("/papers/{paper_id}/versions")
    async def list_versions(
        request: Request,
        paper_id: str,
        repo: CatalogRepository = Depends(get_repository),
    ) -> JSONResponse:
        service = CatalogService(repo, request.app.state.storage)
        chain = await service.version_history(paper_id)
        return _ok([paper.to_api() for paper in chain])

    @app.get("/papers/{paper_id}/download")
    async def download_paper(
        request: Request,
        paper_id: str,
        repo: CatalogRepository = Depends(get_repository),
    ) -> Response:
        service = CatalogService(repo, request.app.state.storage)
        downloaded = await service.download(paper_id)
        return Response(
            content=downloaded.content,
            media_type=downloaded.file_type,
            headers={
                "Content-Disposition": f'attachment; filename="{downloaded.filename}"',
                "X-Content-CID": downloaded.cid,
            },
        )


app = create_app()
