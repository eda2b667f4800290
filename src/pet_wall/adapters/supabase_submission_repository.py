"""Supabase-backed submission repository."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from pet_wall.domain.submissions import (
    ModerationStatus,
    NewSubmission,
    SubmissionRecord,
)
from pet_wall.services.submissions import SubmissionRepository

DEFAULT_TABLE = "wall_photos"


@dataclass
class SupabaseSubmissionRepository(SubmissionRepository):
    """Supabase implementation for submission persistence."""

    client: Client
    table: str = DEFAULT_TABLE

    def create_submission(self, submission: NewSubmission) -> SubmissionRecord:
        """Insert a pending submission row and return it."""
        response = (
            self.client.table(self.table)
            .insert(
                {
                    "display_name": submission.display_name,
                    "instagram": submission.handle,
                    "caption": submission.caption,
                    "pet_name": submission.pet_name,
                    "pet_age": submission.pet_age,
                    "city": submission.city,
                    "state": submission.region,
                    "storage_path": submission.storage_path,
                    "status": ModerationStatus.PENDING.value,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create submission")
        return record_from_row(response.data[0])

    def get_submission(self, record_id: UUID) -> SubmissionRecord | None:
        """Return a submission by id, if present."""
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("id", str(record_id))
            .limit(1)
            .execute()
        )
        if response.data:
            return record_from_row(response.data[0])
        return None

    def update_status(
        self,
        record_id: UUID,
        status: ModerationStatus,
        expected: ModerationStatus,
    ) -> bool:
        """Set the status of a row still in the expected state."""
        response = (
            self.client.table(self.table)
            .update({"status": status.value})
            .eq("id", str(record_id))
            .eq("status", expected.value)
            .execute()
        )
        return bool(response.data)

    def list_approved(self, limit: int) -> list[SubmissionRecord]:
        """Return approved submissions, newest first."""
        return self._list_by_status(ModerationStatus.APPROVED, limit)

    def list_pending(self, limit: int) -> list[SubmissionRecord]:
        """Return pending submissions, newest first."""
        return self._list_by_status(ModerationStatus.PENDING, limit)

    def _list_by_status(
        self, status: ModerationStatus, limit: int
    ) -> list[SubmissionRecord]:
        response = (
            self.client.table(self.table)
            .select("*")
            .eq("status", status.value)
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return [record_from_row(row) for row in response.data or []]


def record_from_row(row: dict[str, object]) -> SubmissionRecord:
    """Map a ``wall_photos`` row to a submission record."""
    return SubmissionRecord(
        id=UUID(str(row["id"])),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        display_name=str(row.get("display_name") or ""),
        storage_path=str(row.get("storage_path") or ""),
        status=ModerationStatus(str(row.get("status") or ModerationStatus.PENDING)),
        handle=_optional_text(row.get("instagram")),
        caption=_optional_text(row.get("caption")),
        pet_name=_optional_text(row.get("pet_name")),
        pet_age=_optional_text(row.get("pet_age")),
        city=_optional_text(row.get("city")),
        region=_optional_text(row.get("state")),
    )


def _optional_text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None
