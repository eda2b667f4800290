"""Shared test fixtures."""

import asyncio
import io
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest
from PIL import Image

from pet_wall.config import Settings
from pet_wall.containers import AppContainer
from pet_wall.domain.rotation import ChangeEvent, QueueItem
from pet_wall.domain.submissions import (
    ModerationStatus,
    NewSubmission,
    SubmissionRecord,
)
from pet_wall.services.moderation import ModerationService
from pet_wall.services.rotation import (
    AssetResolver,
    ChangeFeed,
    ChangeSubscription,
    RotationQueue,
)
from pet_wall.services.submissions import (
    StorageClient,
    SubmissionRepository,
    SubmissionService,
)

BASE_TIME = datetime(2026, 3, 14, 18, 0, tzinfo=UTC)
CDN = "https://cdn.example.test"


def make_image_bytes(
    size: tuple[int, int] = (400, 300),
    color: tuple[int, int, int] = (200, 40, 40),
    image_format: str = "PNG",
) -> bytes:
    """Encode a solid-color image."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


def make_item(name: str, minutes: int = 0) -> QueueItem:
    """Build an approved queue item created ``minutes`` after the base time."""
    return QueueItem(
        id=uuid4(),
        created_at=BASE_TIME + timedelta(minutes=minutes),
        display_name=name,
        storage_path=f"pending/{name}.jpg",
    )


@dataclass
class InMemorySubmissionRepository(SubmissionRepository):
    """In-memory submission repository that notifies change listeners."""

    records: dict[UUID, SubmissionRecord] = field(default_factory=dict)
    listeners: list[Callable[[ChangeEvent], None]] = field(default_factory=list)
    approved_calls: int = 0
    fail_writes: bool = False
    fail_reads: bool = False

    def add(
        self,
        name: str,
        status: ModerationStatus = ModerationStatus.APPROVED,
        minutes: int | None = None,
    ) -> SubmissionRecord:
        offset = len(self.records) if minutes is None else minutes
        record = SubmissionRecord(
            id=uuid4(),
            created_at=BASE_TIME + timedelta(minutes=offset),
            display_name=name,
            storage_path=f"pending/{name}.jpg",
            status=status,
        )
        self.records[record.id] = record
        return record

    def create_submission(self, submission: NewSubmission) -> SubmissionRecord:
        if self.fail_writes:
            raise RuntimeError("insert failed")
        record = SubmissionRecord(
            id=uuid4(),
            created_at=BASE_TIME + timedelta(minutes=len(self.records)),
            display_name=submission.display_name,
            storage_path=submission.storage_path,
            status=ModerationStatus.PENDING,
            handle=submission.handle,
            caption=submission.caption,
            pet_name=submission.pet_name,
            pet_age=submission.pet_age,
            city=submission.city,
            region=submission.region,
        )
        self.records[record.id] = record
        self._notify(record)
        return record

    def get_submission(self, record_id: UUID) -> SubmissionRecord | None:
        if self.fail_reads:
            raise RuntimeError("select failed")
        return self.records.get(record_id)

    def update_status(
        self,
        record_id: UUID,
        status: ModerationStatus,
        expected: ModerationStatus,
    ) -> bool:
        if self.fail_writes:
            raise RuntimeError("update failed")
        record = self.records.get(record_id)
        if record is None or record.status != expected:
            return False
        updated = replace(record, status=status)
        self.records[record_id] = updated
        self._notify(updated)
        return True

    def delete(self, record_id: UUID) -> None:
        self.records.pop(record_id, None)
        for listener in list(self.listeners):
            listener(ChangeEvent(record_id=record_id, status=None))

    def list_approved(self, limit: int) -> list[SubmissionRecord]:
        self.approved_calls += 1
        if self.fail_reads:
            raise RuntimeError("select failed")
        return self._list(ModerationStatus.APPROVED, limit)

    def list_pending(self, limit: int) -> list[SubmissionRecord]:
        if self.fail_reads:
            raise RuntimeError("select failed")
        return self._list(ModerationStatus.PENDING, limit)

    def _list(self, status: ModerationStatus, limit: int) -> list[SubmissionRecord]:
        matching = [record for record in self.records.values() if record.status == status]
        return sorted(matching, key=lambda record: record.created_at, reverse=True)[
            :limit
        ]

    def _notify(self, record: SubmissionRecord) -> None:
        event = ChangeEvent(
            record_id=record.id,
            status=record.status,
            item=QueueItem.from_record(record)
            if record.status == ModerationStatus.APPROVED
            else None,
        )
        for listener in list(self.listeners):
            listener(event)


@dataclass
class InMemoryStorage(StorageClient):
    """In-memory asset storage for tests."""

    objects: dict[str, tuple[bytes, str]] = field(default_factory=dict)
    fail_uploads: bool = False
    fail_urls: bool = False

    def upload(self, key: str, data: bytes, content_type: str) -> None:
        if self.fail_uploads:
            raise RuntimeError("storage unavailable")
        if key in self.objects:
            raise RuntimeError("duplicate key")
        self.objects[key] = (data, content_type)

    def public_url(self, key: str) -> str:
        if self.fail_urls:
            raise RuntimeError("storage unavailable")
        return f"{CDN}/{key}"


@dataclass
class _InMemorySubscription(ChangeSubscription):
    repository: InMemorySubmissionRepository
    handler: Callable[[ChangeEvent], None]

    async def close(self) -> None:
        if self.handler in self.repository.listeners:
            self.repository.listeners.remove(self.handler)


@dataclass
class InMemoryChangeFeed(ChangeFeed):
    """Change feed backed by the in-memory repository listeners."""

    repository: InMemorySubmissionRepository

    async def subscribe(
        self, handler: Callable[[ChangeEvent], None]
    ) -> ChangeSubscription:
        self.repository.listeners.append(handler)
        return _InMemorySubscription(self.repository, handler)


@dataclass
class FakeAssetResolver(AssetResolver):
    """Asset resolver whose completion can be gated per key."""

    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    failing: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list)

    async def resolve_public_url(self, key: str) -> str:
        self.calls.append(key)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        if key in self.failing:
            raise RuntimeError("resolution failed")
        return f"{CDN}/{key}"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        output_width=160,
        output_height=90,
        upload_max_side=800,
        environment="test",
    )


@pytest.fixture
def repository() -> InMemorySubmissionRepository:
    return InMemorySubmissionRepository()


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def container(
    settings: Settings,
    repository: InMemorySubmissionRepository,
    storage: InMemoryStorage,
) -> AppContainer:
    submission_service = SubmissionService(
        repository=repository,
        storage=storage,
        max_source_bytes=settings.upload_max_bytes,
        max_source_side=settings.upload_max_side,
    )
    moderation_service = ModerationService(
        repository=repository,
        storage=storage,
        operator_secret=settings.admin_token,
    )
    rotation_queue = RotationQueue(
        source=repository,
        change_feed=InMemoryChangeFeed(repository),
        assets=FakeAssetResolver(),
        limit=settings.queue_limit,
        interval_seconds=3600,
    )

    async def close_resources() -> None:
        await rotation_queue.stop()

    return AppContainer(
        settings=settings,
        submission_service=submission_service,
        moderation_service=moderation_service,
        rotation_queue=rotation_queue,
        close_resources=close_resources,
    )
