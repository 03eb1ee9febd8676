"""Verification coordinator: re-checks stored content and appends proof records."""

from __future__ import annotations

import secrets
import time
from typing import List

from scholarvault.db.repositories import CatalogRepository
from scholarvault.errors import NotFound, PersistenceFailure, StorageError
from scholarvault.models import (
    PaperRecord,
    ProofRecord,
    StorageFailureReason,
    VerificationOutcome,
    VerificationReason,
)
from scholarvault.storage.client import StorageHandle
from scholarvault.utils.logging_config import get_logger
from scholarvault.utils.structured_log import log_verification

logger = get_logger(__name__)

MESSAGE_CONFIRMED = (
    "Paper verification successful - data integrity confirmed on the storage network"
)
MESSAGE_MISSING = "Paper verification failed - data may be corrupted or missing"

_FAILURE_REASONS = {
    StorageFailureReason.CONFIGURATION: VerificationReason.CONFIGURATION,
    StorageFailureReason.CONNECTIVITY: VerificationReason.CONNECTIVITY,
    StorageFailureReason.TIMEOUT: VerificationReason.TIMEOUT,
    StorageFailureReason.BACKEND: VerificationReason.BACKEND,
}


def failure_message(exc: StorageError) -> str:
    """User-facing text for a check that could not be performed."""
    if exc.reason == StorageFailureReason.CONFIGURATION:
        return (
            "Verification failed - storage configuration missing. "
            "Please configure your private key (PRIVATE_KEY)."
        )
    if exc.reason == StorageFailureReason.CONNECTIVITY:
        return (
            "Verification failed - unable to connect to the storage network. "
            "Check your RPC URL configuration."
        )
    if exc.reason == StorageFailureReason.TIMEOUT:
        return "Verification failed - the storage network did not respond in time."
    return f"Verification failed - {exc.message}"


def make_proof_token(cid: str, is_valid: bool) -> str:
    stamp = int(time.time() * 1000)
    nonce = secrets.token_hex(4)
    if is_valid:
        return f"verified-proof-{stamp}-{cid[-8:]}-{nonce}"
    return f"failed-proof-{stamp}-{nonce}"


class VerificationCoordinator:
    def __init__(self, repository: CatalogRepository, storage: StorageHandle):
        self.repository = repository
        self.storage = storage

    async def _check(self, paper: PaperRecord) -> VerificationOutcome:
        try:
            store = await self.storage.store()
            present = await store.exists(paper.cid)
        except StorageError as exc:
            logger.warning("Verification check for %s could not run: %s", paper.id, exc.message)
            return VerificationOutcome(
                is_valid=False,
                message=failure_message(exc),
                reason=_FAILURE_REASONS[exc.reason],
            )
        except Exception as exc:
            logger.exception("Unexpected error verifying %s", paper.id)
            return VerificationOutcome(
                is_valid=False,
                message=f"Verification failed - {exc}",
                reason=VerificationReason.BACKEND,
            )
        if present:
            return VerificationOutcome(
                is_valid=True, message=MESSAGE_CONFIRMED, reason=VerificationReason.CONFIRMED
            )
        return VerificationOutcome(
            is_valid=False, message=MESSAGE_MISSING, reason=VerificationReason.MISSING
        )

    async def verify(self, paper_id: str) -> VerificationOutcome:
        """Re-check the paper's CID and record the outcome.

        The verification flag and a new proof record are written together, in one
        transaction, for every attempt, including attempts where the check itself
        failed.
        """
        paper = await self.repository.get_paper(paper_id)
        if paper is None:
            raise NotFound("Paper not found")

        outcome = await self._check(paper)
        proof = ProofRecord(
            paper_id=paper.id,
            cid=paper.cid,
            proof=make_proof_token(paper.cid, outcome.is_valid),
            is_valid=outcome.is_valid,
        )
        try:
            await self.repository.record_verification(proof)
        except Exception as exc:
            raise PersistenceFailure(f"Failed to record verification: {exc}") from exc

        log_verification(paper.id, paper.cid, outcome.is_valid, outcome.reason.value, proof.proof)
        logger.info("Verified %s: %s (%s)", paper.id, outcome.is_valid, outcome.reason.value)
        return outcome

    async def proofs(self, paper_id: str) -> List[ProofRecord]:
        if await self.repository.get_paper(paper_id) is None:
            raise NotFound("Paper not found")
        return await self.repository.list_proofs(paper_id)
