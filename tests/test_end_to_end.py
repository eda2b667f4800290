"""Submission to live wall flow across the services."""

import asyncio

from pet_wall.domain.frames import FrameOptions
from pet_wall.domain.submissions import ModerationStatus, SubmissionForm, UploadedPhoto
from tests.conftest import CDN, make_image_bytes


def test_submitted_photo_reaches_wall_only_after_approval(container, repository) -> None:
    queue = container.rotation_queue
    options = FrameOptions(output_width=160, output_height=90)
    photo = UploadedPhoto(
        filename="dog.png", content_type="image/png", data=make_image_bytes()
    )

    async def scenario() -> None:
        await queue.start()
        calls_after_start = repository.approved_calls

        record_id = await asyncio.to_thread(
            container.submission_service.submit,
            photo,
            SubmissionForm(display_name="Ana", pet_name="Rex"),
            options,
        )
        await queue.settle()
        assert repository.records[record_id].status == ModerationStatus.PENDING
        assert queue.view().current is None

        container.moderation_service.moderate("admin-token", record_id, "approved")
        await queue.settle()

        view = queue.view()
        assert view.current is not None
        assert view.current.id == record_id
        assert view.approved_count == 1
        storage_path = repository.records[record_id].storage_path
        assert view.asset_url == f"{CDN}/{storage_path}"
        assert repository.approved_calls == calls_after_start

        await container.close_resources()

    asyncio.run(scenario())
