"""Submission pipeline: frame a photo, store it and create a pending record."""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID, uuid4

from pet_wall.domain.errors import (
    InvalidImage,
    PersistFailed,
    RequiredFieldMissing,
    UnsupportedMediaType,
    UploadFailed,
)
from pet_wall.domain.frames import FrameOptions
from pet_wall.domain.submissions import (
    ModerationStatus,
    NewSubmission,
    SubmissionForm,
    SubmissionRecord,
    UploadedPhoto,
)
from pet_wall.services import compositor

MAX_CAPTION_CHARS = 50
MAX_KEY_NAME_CHARS = 40
STORAGE_PREFIX = "pending"

_UNSAFE_KEY_CHARS = re.compile(r"[^a-zA-Z0-9_-]")

_logger = logging.getLogger(__name__)


class SubmissionRepository(Protocol):
    """Persistence interface for submission records."""

    def create_submission(self, submission: NewSubmission) -> SubmissionRecord:
        """Insert a pending submission and return it."""

    def get_submission(self, record_id: UUID) -> SubmissionRecord | None:
        """Return a submission by id, if present."""

    def update_status(
        self,
        record_id: UUID,
        status: ModerationStatus,
        expected: ModerationStatus,
    ) -> bool:
        """Set the status when the current one matches; return whether it did."""

    def list_approved(self, limit: int) -> list[SubmissionRecord]:
        """Return approved submissions, newest first."""

    def list_pending(self, limit: int) -> list[SubmissionRecord]:
        """Return pending submissions, newest first."""


class StorageClient(Protocol):
    """Interface for the binary asset store."""

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        """Store bytes under a key; raise on failure."""

    def public_url(self, key: str) -> str:
        """Return the public URL for a stored key."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SubmissionService:
    """Turns one uploaded photo and its form fields into a pending record."""

    repository: SubmissionRepository
    storage: StorageClient
    max_source_bytes: int
    max_source_side: int
    clock: Callable[[], datetime] = field(default=_utcnow)

    def submit(
        self, photo: UploadedPhoto, form: SubmissionForm, options: FrameOptions
    ) -> UUID:
        """Compose, upload and record a submission; return the record id."""
        if not (photo.content_type or "").startswith("image/"):
            raise UnsupportedMediaType(photo.content_type)
        submission_fields = normalize_form(form)

        try:
            source = compositor.shrink_to_budget(
                photo.data, self.max_source_bytes, self.max_source_side
            )
        except InvalidImage as exc:
            raise UnsupportedMediaType(photo.filename) from exc
        framed = compositor.compose(source, options)

        key = build_storage_key(submission_fields.display_name, self.clock())
        try:
            self.storage.upload(key, framed, compositor.OUTPUT_CONTENT_TYPE)
        except Exception as exc:
            _logger.exception("Failed to upload submission asset", extra={"key": key})
            raise UploadFailed(str(exc)) from exc

        try:
            record = self.repository.create_submission(
                NewSubmission(storage_path=key, **submission_fields.model_dump())
            )
        except Exception as exc:
            _logger.exception(
                "Failed to create submission record; asset left orphaned",
                extra={"key": key},
            )
            raise PersistFailed(str(exc)) from exc
        _logger.info("Submission stored: id=%s key=%s", record.id, key)
        return record.id


def normalize_form(form: SubmissionForm) -> SubmissionForm:
    """Trim fields, drop blanks and enforce the required display name."""
    display_name = form.display_name.strip()
    if not display_name:
        raise RequiredFieldMissing("display_name")
    handle = _clean((form.handle or "").strip().lstrip("@"))
    caption = _clean(form.caption)
    if caption is not None:
        caption = caption[:MAX_CAPTION_CHARS]
    region = _clean(form.region)
    return SubmissionForm(
        display_name=display_name,
        handle=handle,
        caption=caption,
        pet_name=_clean(form.pet_name),
        pet_age=_clean(form.pet_age),
        city=_clean(form.city),
        region=region.upper() if region else None,
    )


def build_storage_key(display_name: str, submitted_at: datetime) -> str:
    """Build a unique storage key from the submission time and name."""
    safe_name = _UNSAFE_KEY_CHARS.sub("_", display_name.strip()[:MAX_KEY_NAME_CHARS])
    timestamp_ms = int(submitted_at.timestamp() * 1000)
    suffix = uuid4().hex[:8]
    return f"{STORAGE_PREFIX}/{timestamp_ms}_{safe_name or 'guest'}_{suffix}.jpg"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
