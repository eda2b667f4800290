"""Submission domain models."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel


class ModerationStatus(StrEnum):
    """Moderation states of a submission."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


TERMINAL_STATUSES = frozenset({ModerationStatus.APPROVED, ModerationStatus.REJECTED})


@dataclass(frozen=True)
class SubmissionRecord:
    """Represents a submitted photo stored in the database."""

    id: UUID
    created_at: datetime
    display_name: str
    storage_path: str
    status: ModerationStatus
    handle: str | None = None
    caption: str | None = None
    pet_name: str | None = None
    pet_age: str | None = None
    city: str | None = None
    region: str | None = None


@dataclass(frozen=True)
class NewSubmission:
    """Normalized payload for creating a pending submission."""

    display_name: str
    storage_path: str
    handle: str | None
    caption: str | None
    pet_name: str | None
    pet_age: str | None
    city: str | None
    region: str | None


class SubmissionForm(BaseModel):
    """Raw form fields sent by the submitter."""

    display_name: str = ""
    handle: str | None = None
    caption: str | None = None
    pet_name: str | None = None
    pet_age: str | None = None
    city: str | None = None
    region: str | None = None


@dataclass(frozen=True)
class UploadedPhoto:
    """File chosen by the submitter."""

    filename: str
    content_type: str | None
    data: bytes
