"""Supabase Realtime feed of submission changes."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from uuid import UUID

from supabase import AsyncClient, acreate_client

from pet_wall.adapters.supabase_submission_repository import (
    DEFAULT_TABLE,
    record_from_row,
)
from pet_wall.domain.rotation import ChangeEvent, QueueItem
from pet_wall.domain.submissions import ModerationStatus
from pet_wall.services.rotation import ChangeFeed, ChangeSubscription

_logger = logging.getLogger(__name__)


def change_event_from_rows(
    old: Mapping[str, object] | None, new: Mapping[str, object] | None
) -> ChangeEvent | None:
    """Convert a before/after row pair into a change event.

    A missing ``new`` row means the record was deleted.
    """
    if new:
        record = record_from_row(dict(new))
        return ChangeEvent(
            record_id=record.id,
            status=record.status,
            item=QueueItem.from_record(record)
            if record.status == ModerationStatus.APPROVED
            else None,
        )
    if old and old.get("id"):
        return ChangeEvent(record_id=UUID(str(old["id"])), status=None)
    return None


def change_event_from_payload(payload: Mapping[str, object]) -> ChangeEvent | None:
    """Extract the row pair from a realtime ``postgres_changes`` payload."""
    data = payload.get("data")
    if isinstance(data, Mapping):
        return change_event_from_rows(
            _as_row(data.get("old_record")), _as_row(data.get("record"))
        )
    return change_event_from_rows(_as_row(payload.get("old")), _as_row(payload.get("new")))


def _as_row(value: object) -> Mapping[str, object] | None:
    return value if isinstance(value, Mapping) and value else None


@dataclass
class _RealtimeSubscription(ChangeSubscription):
    client: AsyncClient
    channel: object

    async def close(self) -> None:
        await self.client.remove_channel(self.channel)


@dataclass
class SupabaseChangeFeed(ChangeFeed):
    """Subscribes to inserts, updates and deletes on the submissions table."""

    supabase_url: str
    supabase_key: str
    table: str = DEFAULT_TABLE
    schema: str = "public"

    async def subscribe(
        self, handler: Callable[[ChangeEvent], None]
    ) -> ChangeSubscription:
        """Open a realtime channel forwarding parsed events to ``handler``."""
        client = await acreate_client(self.supabase_url, self.supabase_key)

        def on_change(payload: dict[str, object]) -> None:
            try:
                event = change_event_from_payload(payload)
            except (KeyError, ValueError):
                _logger.warning("Ignoring malformed change payload", exc_info=True)
                return
            if event is not None:
                handler(event)

        channel = client.channel(f"{self.table}-changes")
        channel.on_postgres_changes(
            "*", schema=self.schema, table=self.table, callback=on_change
        )
        await channel.subscribe()
        _logger.info("Subscribed to realtime changes on %s", self.table)
        return _RealtimeSubscription(client=client, channel=channel)
