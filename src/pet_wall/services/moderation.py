"""Moderation gate guarded by the shared operator secret."""

import hmac
import logging
from dataclasses import dataclass
from uuid import UUID

from pet_wall.domain.errors import (
    AlreadyModerated,
    InvalidTarget,
    PersistFailed,
    RecordNotFound,
    Unauthorized,
)
from pet_wall.domain.submissions import (
    TERMINAL_STATUSES,
    ModerationStatus,
    SubmissionRecord,
)
from pet_wall.services.submissions import StorageClient, SubmissionRepository

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingSubmission:
    """Pending record together with its preview URL."""

    record: SubmissionRecord
    image_url: str


@dataclass
class ModerationService:
    """Applies operator decisions to pending submissions."""

    repository: SubmissionRepository
    storage: StorageClient
    operator_secret: str

    def authorize(self, credential: str | None) -> None:
        """Raise Unauthorized unless the credential matches the operator secret."""
        if not credential or not hmac.compare_digest(
            credential.encode("utf-8"), self.operator_secret.encode("utf-8")
        ):
            raise Unauthorized

    def moderate(self, credential: str | None, record_id: UUID, target: str) -> None:
        """Move a pending submission to approved or rejected."""
        self.authorize(credential)
        status = _parse_target(target)
        try:
            updated = self.repository.update_status(
                record_id, status, expected=ModerationStatus.PENDING
            )
        except Exception as exc:
            _logger.exception("Failed to update submission %s", record_id)
            raise PersistFailed(str(exc)) from exc
        if not updated:
            record = self._get(record_id)
            if record is None:
                raise RecordNotFound(str(record_id))
            raise AlreadyModerated(f"{record_id} is {record.status}")
        _logger.info("Submission moderated: id=%s status=%s", record_id, status)

    def list_pending(self, limit: int) -> list[PendingSubmission]:
        """Return pending submissions with their public image URLs."""
        try:
            records = self.repository.list_pending(limit)
        except Exception as exc:
            raise PersistFailed(str(exc)) from exc
        try:
            return [
                PendingSubmission(
                    record=record,
                    image_url=self.storage.public_url(record.storage_path),
                )
                for record in records
            ]
        except Exception as exc:
            _logger.exception("Failed to resolve pending image URLs")
            raise PersistFailed(str(exc)) from exc

    def _get(self, record_id: UUID) -> SubmissionRecord | None:
        try:
            return self.repository.get_submission(record_id)
        except Exception as exc:
            raise PersistFailed(str(exc)) from exc


def _parse_target(target: str) -> ModerationStatus:
    try:
        status = ModerationStatus(target)
    except ValueError as exc:
        raise InvalidTarget(f"unsupported status: {target!r}") from exc
    if status not in TERMINAL_STATUSES:
        raise InvalidTarget(f"unsupported status: {target!r}")
    return status
