"""Rotation state and the pure reducers that drive the live wall.

The live wall keeps a bounded queue of approved submissions, newest first, and
a pointer to the one currently on screen. Every change to that state goes
through one of the reducers below; they never mutate their input and never
perform I/O, so the owner can apply them one at a time in a single place.
"""

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from pet_wall.domain.submissions import ModerationStatus, SubmissionRecord


@dataclass(frozen=True)
class QueueItem:
    """Display copy of an approved submission."""

    id: UUID
    created_at: datetime
    display_name: str
    storage_path: str | None
    handle: str | None = None
    caption: str | None = None
    pet_name: str | None = None
    pet_age: str | None = None
    city: str | None = None
    region: str | None = None

    @classmethod
    def from_record(cls, record: SubmissionRecord) -> "QueueItem":
        """Build a queue item from a stored submission."""
        return cls(
            id=record.id,
            created_at=record.created_at,
            display_name=record.display_name,
            storage_path=record.storage_path,
            handle=record.handle,
            caption=record.caption,
            pet_name=record.pet_name,
            pet_age=record.pet_age,
            city=record.city,
            region=record.region,
        )


@dataclass(frozen=True)
class ChangeEvent:
    """A record was inserted, updated or deleted upstream.

    ``status`` is ``None`` when the record no longer exists.
    """

    record_id: UUID
    status: ModerationStatus | None
    item: QueueItem | None = None

    @property
    def is_approval(self) -> bool:
        return self.status == ModerationStatus.APPROVED and self.item is not None


@dataclass(frozen=True)
class RotationState:
    """Queue of displayable items and the one currently shown."""

    queue: tuple[QueueItem, ...] = ()
    current: QueueItem | None = None

    @property
    def current_id(self) -> UUID | None:
        return self.current.id if self.current else None

    def index_of(self, item_id: UUID) -> int | None:
        """Return the queue position of an id, if present."""
        for index, item in enumerate(self.queue):
            if item.id == item_id:
                return index
        return None


def load_snapshot(
    state: RotationState, items: Iterable[QueueItem], limit: int
) -> RotationState:
    """Replace the queue with a fresh snapshot of approved items."""
    ordered = sorted(_unique(items), key=lambda item: item.created_at, reverse=True)
    queue = tuple(ordered[:limit])
    refreshed = RotationState(queue=queue, current=None)
    if state.current is not None:
        index = refreshed.index_of(state.current.id)
        if index is not None:
            return replace(refreshed, current=queue[index])
    return replace(refreshed, current=queue[0] if queue else None)


def apply_change(state: RotationState, event: ChangeEvent, limit: int) -> RotationState:
    """Merge one change notification into the state."""
    if event.is_approval:
        item = event.item
        assert item is not None
        index = state.index_of(item.id)
        if index is not None:
            queue = state.queue[:index] + (item,) + state.queue[index + 1 :]
        else:
            queue = ((item,) + state.queue)[:limit]
        current = state.current
        if current is None:
            current = item
        elif current.id == item.id:
            current = item
        return RotationState(queue=queue, current=current)

    queue = tuple(entry for entry in state.queue if entry.id != event.record_id)
    current = state.current
    if current is not None and current.id == event.record_id:
        current = None
    return RotationState(queue=queue, current=current)


def advance(state: RotationState) -> RotationState:
    """Move the pointer to the next queue member, wrapping around."""
    if not state.queue:
        return RotationState(queue=state.queue, current=None)
    if state.current is None:
        return replace(state, current=state.queue[0])
    index = state.index_of(state.current.id)
    if index is None:
        return replace(state, current=state.queue[0])
    return replace(state, current=state.queue[(index + 1) % len(state.queue)])


def _unique(items: Iterable[QueueItem]) -> list[QueueItem]:
    seen: set[UUID] = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return unique
