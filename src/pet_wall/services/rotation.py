"""Live wall rotation queue.

The queue owns the display state. Snapshot loads, change notifications, timer
ticks and asset resolutions all arrive concurrently, but each is turned into a
message and applied by a single mailbox worker, so state updates are totally
ordered and never interleave.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from functools import partial
from typing import Protocol
from uuid import UUID

from pet_wall.domain.rotation import (
    ChangeEvent,
    QueueItem,
    RotationState,
    advance,
    apply_change,
    load_snapshot,
)
from pet_wall.domain.submissions import SubmissionRecord

_logger = logging.getLogger(__name__)

Reducer = Callable[[RotationState], RotationState]


class ApprovedSource(Protocol):
    """Read access to approved submissions."""

    def list_approved(self, limit: int) -> list[SubmissionRecord]:
        """Return approved submissions, newest first."""


class ChangeSubscription(Protocol):
    """Handle for an active change subscription."""

    async def close(self) -> None:
        """Stop delivering events."""


class ChangeFeed(Protocol):
    """Source of submission change notifications."""

    async def subscribe(
        self, handler: Callable[[ChangeEvent], None]
    ) -> ChangeSubscription:
        """Deliver every change to ``handler`` until the subscription is closed."""


class AssetResolver(Protocol):
    """Resolves a storage key to a displayable URL."""

    async def resolve_public_url(self, key: str) -> str:
        """Return the public URL for a stored asset."""


@dataclass(frozen=True)
class LiveView:
    """Read-only snapshot consumed by the display surface."""

    current: QueueItem | None
    asset_url: str
    approved_count: int


@dataclass
class _Reduce:
    reducer: Reducer
    label: str
    done: asyncio.Future[None] | None = None


@dataclass(frozen=True)
class _AssetResolved:
    tag: UUID
    url: str


_Message = _Reduce | _AssetResolved


@dataclass(eq=False)
class RotationQueue:
    """Cycles the live wall through approved submissions."""

    source: ApprovedSource
    change_feed: ChangeFeed
    assets: AssetResolver
    limit: int = 120
    interval_seconds: float = 7.0

    _state: RotationState = field(default_factory=RotationState, init=False)
    _asset_url: str = field(default="", init=False)
    _loop: asyncio.AbstractEventLoop | None = field(default=None, init=False)
    _mailbox: asyncio.Queue[_Message] | None = field(default=None, init=False)
    _worker: asyncio.Task[None] | None = field(default=None, init=False)
    _timer: asyncio.Task[None] | None = field(default=None, init=False)
    _subscription: ChangeSubscription | None = field(default=None, init=False)
    _resolutions: set[asyncio.Task[None]] = field(default_factory=set, init=False)
    _replay: list[ChangeEvent] | None = field(default=None, init=False)
    _refresh_lock: asyncio.Lock | None = field(default=None, init=False)

    @property
    def state(self) -> RotationState:
        return self._state

    @property
    def running(self) -> bool:
        return self._worker is not None

    def view(self) -> LiveView:
        """Return what the display should show right now."""
        return LiveView(
            current=self._state.current,
            asset_url=self._asset_url,
            approved_count=len(self._state.queue),
        )

    async def start(self) -> None:
        """Subscribe to changes, load the snapshot and start the timer."""
        if self._worker is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._mailbox = asyncio.Queue()
        self._refresh_lock = asyncio.Lock()
        self._worker = asyncio.create_task(self._drain(), name="rotation-mailbox")
        try:
            self._subscription = await self.change_feed.subscribe(self.post_change)
        except Exception:
            _logger.exception("Failed to subscribe to submission changes")
        await self.refresh()
        self._timer = asyncio.create_task(self._run_timer(), name="rotation-timer")
        _logger.info(
            "Rotation started: items=%s interval=%ss",
            len(self._state.queue),
            self.interval_seconds,
        )

    async def stop(self) -> None:
        """Tear down the subscription, timer, worker and pending resolutions."""
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            try:
                await subscription.close()
            except Exception:
                _logger.exception("Failed to close change subscription")
        tasks = [task for task in (self._timer, self._worker) if task is not None]
        tasks.extend(self._resolutions)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if self._mailbox is not None:
            while not self._mailbox.empty():
                message = self._mailbox.get_nowait()
                if isinstance(message, _Reduce) and message.done is not None:
                    message.done.cancel()
        self._timer = None
        self._worker = None
        self._mailbox = None
        self._loop = None
        self._resolutions.clear()
        _logger.info("Rotation stopped")

    async def refresh(self) -> bool:
        """Reload the approved snapshot; keep the prior state on failure."""
        if self._refresh_lock is None:
            raise RuntimeError("RotationQueue is not running")
        async with self._refresh_lock:
            # changes applied while the snapshot is in flight are replayed on top
            self._replay = []
            try:
                records = await asyncio.to_thread(self.source.list_approved, self.limit)
            except Exception:
                self._replay = None
                _logger.exception("Failed to load approved snapshot")
                return False
            items = [QueueItem.from_record(record) for record in records]
            await self._apply(partial(self._load, items=items), "snapshot")
            return True

    async def tick(self) -> None:
        """Advance to the next item."""
        await self._apply(advance, "tick")

    async def handle_change(self, event: ChangeEvent) -> None:
        """Merge a change notification and wait until it is applied."""
        await self._apply(partial(self._merge, event=event), "change")

    def post_change(self, event: ChangeEvent) -> None:
        """Queue a change notification without waiting; safe from any thread."""
        if self._loop is None or self._mailbox is None:
            _logger.debug("Dropping change for %s: rotation not running", event.record_id)
            return
        message = _Reduce(partial(self._merge, event=event), "change")
        if _running_loop() is self._loop:
            self._mailbox.put_nowait(message)
            return
        try:
            self._loop.call_soon_threadsafe(self._mailbox.put_nowait, message)
        except RuntimeError:
            _logger.warning("Dropping change for %s: loop closed", event.record_id)

    async def settle(self) -> None:
        """Wait until queued updates and in-flight resolutions are applied."""
        while self._mailbox is not None:
            if self._resolutions:
                await asyncio.gather(*list(self._resolutions), return_exceptions=True)
            await self._mailbox.join()
            if not self._resolutions:
                return

    async def _apply(self, reducer: Reducer, label: str) -> None:
        if self._loop is None or self._mailbox is None:
            raise RuntimeError("RotationQueue is not running")
        done: asyncio.Future[None] = self._loop.create_future()
        self._mailbox.put_nowait(_Reduce(reducer, label, done))
        await done

    def _load(self, state: RotationState, items: list[QueueItem]) -> RotationState:
        merged = load_snapshot(state, items, self.limit)
        for event in self._replay or []:
            merged = apply_change(merged, event, self.limit)
        self._replay = None
        return merged

    def _merge(self, state: RotationState, event: ChangeEvent) -> RotationState:
        if self._replay is not None:
            self._replay.append(event)
        return apply_change(state, event, self.limit)

    async def _drain(self) -> None:
        assert self._mailbox is not None
        mailbox = self._mailbox
        while True:
            message = await mailbox.get()
            try:
                if isinstance(message, _AssetResolved):
                    self._apply_asset(message)
                else:
                    self._apply_reducer(message)
            except Exception:
                _logger.exception("Rotation update failed")
            finally:
                if (
                    isinstance(message, _Reduce)
                    and message.done is not None
                    and not message.done.done()
                ):
                    message.done.set_result(None)
                mailbox.task_done()

    def _apply_reducer(self, message: _Reduce) -> None:
        previous_id = self._state.current_id
        self._state = message.reducer(self._state)
        if self._state.current_id != previous_id:
            self._asset_url = ""
            self._start_resolution(self._state.current)

    def _apply_asset(self, message: _AssetResolved) -> None:
        if self._state.current_id != message.tag:
            _logger.debug("Discarding stale asset URL for %s", message.tag)
            return
        self._asset_url = message.url

    def _start_resolution(self, item: QueueItem | None) -> None:
        if item is None or not item.storage_path:
            return
        task = asyncio.create_task(self._resolve(item.id, item.storage_path))
        self._resolutions.add(task)
        task.add_done_callback(self._resolutions.discard)

    async def _resolve(self, tag: UUID, key: str) -> None:
        try:
            url = await self.assets.resolve_public_url(key)
        except Exception:
            _logger.warning("Failed to resolve asset for %s", tag, exc_info=True)
            url = ""
        if self._mailbox is not None:
            self._mailbox.put_nowait(_AssetResolved(tag=tag, url=url))

    async def _run_timer(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.tick()
            except Exception:
                _logger.exception("Rotation tick failed")


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
