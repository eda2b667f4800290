"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from pet_wall.adapters.supabase_change_feed import SupabaseChangeFeed
from pet_wall.adapters.supabase_storage import SupabaseStorage, StorageAssetResolver
from pet_wall.adapters.supabase_submission_repository import (
    SupabaseSubmissionRepository,
)
from pet_wall.config import Settings
from pet_wall.services.moderation import ModerationService
from pet_wall.services.rotation import RotationQueue
from pet_wall.services.submissions import SubmissionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    submission_service: SubmissionService
    moderation_service: ModerationService
    rotation_queue: RotationQueue
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    repository = SupabaseSubmissionRepository(
        supabase_client, table=resolved_settings.submissions_table
    )
    storage = SupabaseStorage(supabase_client, bucket=resolved_settings.storage_bucket)
    submission_service = SubmissionService(
        repository=repository,
        storage=storage,
        max_source_bytes=resolved_settings.upload_max_bytes,
        max_source_side=resolved_settings.upload_max_side,
    )
    moderation_service = ModerationService(
        repository=repository,
        storage=storage,
        operator_secret=resolved_settings.admin_token,
    )
    rotation_queue = RotationQueue(
        source=repository,
        change_feed=SupabaseChangeFeed(
            supabase_url=resolved_settings.supabase_url,
            supabase_key=resolved_settings.supabase_service_key,
            table=resolved_settings.submissions_table,
        ),
        assets=StorageAssetResolver(storage),
        limit=resolved_settings.queue_limit,
        interval_seconds=resolved_settings.slide_seconds,
    )

    async def close_resources() -> None:
        await rotation_queue.stop()

    return AppContainer(
        settings=resolved_settings,
        submission_service=submission_service,
        moderation_service=moderation_service,
        rotation_queue=rotation_queue,
        close_resources=close_resources,
    )
