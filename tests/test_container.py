"""Tests for container wiring."""

import asyncio

from pet_wall.adapters.supabase_submission_repository import (
    SupabaseSubmissionRepository,
)
from pet_wall.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert isinstance(
        container.submission_service.repository, SupabaseSubmissionRepository
    )
    assert container.moderation_service.operator_secret == "admin-token"
    assert container.rotation_queue.limit == settings.queue_limit
    assert container.rotation_queue.interval_seconds == settings.slide_seconds
    assert not container.rotation_queue.running
    asyncio.run(container.close_resources())
