"""Catalog orchestration: ingestion, search, versions and verification."""

from scholarvault.catalog.service import CatalogService, DownloadedPaper
from scholarvault.catalog.verification import VerificationCoordinator

__all__ = ["CatalogService", "DownloadedPaper", "VerificationCoordinator"]
