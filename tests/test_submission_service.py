"""Tests for the submission pipeline."""

import io
import re

import pytest
from PIL import Image

from pet_wall.domain.errors import (
    PersistFailed,
    RequiredFieldMissing,
    UnsupportedMediaType,
    UploadFailed,
)
from pet_wall.domain.frames import FrameOptions
from pet_wall.domain.submissions import ModerationStatus, SubmissionForm, UploadedPhoto
from pet_wall.services.submissions import (
    SubmissionService,
    build_storage_key,
    normalize_form,
)
from tests.conftest import (
    BASE_TIME,
    InMemoryStorage,
    InMemorySubmissionRepository,
    make_image_bytes,
)

OPTIONS = FrameOptions(output_width=160, output_height=90)


def _service(
    repository: InMemorySubmissionRepository, storage: InMemoryStorage
) -> SubmissionService:
    return SubmissionService(
        repository=repository,
        storage=storage,
        max_source_bytes=3 * 1024 * 1024,
        max_source_side=800,
        clock=lambda: BASE_TIME,
    )


def _photo(data: bytes | None = None, content_type: str = "image/png") -> UploadedPhoto:
    return UploadedPhoto(
        filename="dog.png",
        content_type=content_type,
        data=data if data is not None else make_image_bytes(),
    )


def test_submit_stores_framed_asset_and_pending_record(repository, storage) -> None:
    service = _service(repository, storage)
    form = SubmissionForm(
        display_name=" Ana ",
        handle="@ana.pets",
        caption="Sleepy boy",
        pet_name="Rex",
        pet_age="3",
        city="Austin",
        region="tx",
    )

    record_id = service.submit(_photo(), form, OPTIONS)

    record = repository.records[record_id]
    assert record.status == ModerationStatus.PENDING
    assert record.display_name == "Ana"
    assert record.handle == "ana.pets"
    assert record.region == "TX"
    data, content_type = storage.objects[record.storage_path]
    assert content_type == "image/jpeg"
    with Image.open(io.BytesIO(data)) as framed:
        assert framed.size == (160, 90)
    assert repository.list_approved(10) == []


def test_submit_requires_display_name(repository, storage) -> None:
    service = _service(repository, storage)

    with pytest.raises(RequiredFieldMissing) as excinfo:
        service.submit(_photo(), SubmissionForm(display_name="   "), OPTIONS)

    assert excinfo.value.field == "display_name"
    assert storage.objects == {}
    assert repository.records == {}


def test_submit_rejects_non_image_content_type(repository, storage) -> None:
    service = _service(repository, storage)

    with pytest.raises(UnsupportedMediaType):
        service.submit(
            _photo(content_type="application/pdf"),
            SubmissionForm(display_name="Ana"),
            OPTIONS,
        )

    assert storage.objects == {}


def test_submit_rejects_undecodable_image(repository, storage) -> None:
    service = _service(repository, storage)

    with pytest.raises(UnsupportedMediaType):
        service.submit(
            _photo(data=b"not really a png"), SubmissionForm(display_name="Ana"), OPTIONS
        )

    assert storage.objects == {}
    assert repository.records == {}


def test_upload_failure_creates_no_record(repository) -> None:
    storage = InMemoryStorage(fail_uploads=True)
    service = _service(repository, storage)

    with pytest.raises(UploadFailed):
        service.submit(_photo(), SubmissionForm(display_name="Ana"), OPTIONS)

    assert repository.records == {}


def test_record_failure_leaves_uploaded_asset(storage) -> None:
    repository = InMemorySubmissionRepository(fail_writes=True)
    service = _service(repository, storage)

    with pytest.raises(PersistFailed):
        service.submit(_photo(), SubmissionForm(display_name="Ana"), OPTIONS)

    assert len(storage.objects) == 1


def test_each_submission_gets_its_own_key(repository, storage) -> None:
    service = _service(repository, storage)
    form = SubmissionForm(display_name="Ana")

    first = service.submit(_photo(), form, OPTIONS)
    second = service.submit(_photo(), form, OPTIONS)

    assert repository.records[first].storage_path != repository.records[second].storage_path


def test_normalize_form_trims_and_drops_blanks() -> None:
    normalized = normalize_form(
        SubmissionForm(
            display_name="Ana",
            handle="  @@ana ",
            caption="x" * 80,
            pet_name="  ",
            city=" Austin ",
            region=" sp ",
        )
    )

    assert normalized.handle == "ana"
    assert normalized.caption == "x" * 50
    assert normalized.pet_name is None
    assert normalized.pet_age is None
    assert normalized.city == "Austin"
    assert normalized.region == "SP"


def test_build_storage_key_sanitizes_name() -> None:
    key = build_storage_key("Ana & Rex!", BASE_TIME)
    blank = build_storage_key("   ", BASE_TIME)

    timestamp = int(BASE_TIME.timestamp() * 1000)
    assert re.fullmatch(rf"pending/{timestamp}_Ana___Rex__[0-9a-f]{{8}}\.jpg", key)
    assert blank.startswith(f"pending/{timestamp}_guest_")


def test_build_storage_key_truncates_long_names() -> None:
    key = build_storage_key("n" * 60, BASE_TIME)

    assert f"_{'n' * 40}_" in key
    assert "n" * 41 not in key


def test_normalize_form_trims_caption_before_truncating() -> None:
    normalized = normalize_form(
        SubmissionForm(display_name="Ana", caption=" " * 10 + "x" * 50 + "  ")
    )
    blank = normalize_form(SubmissionForm(display_name="Ana", caption="     "))

    assert normalized.caption == "x" * 50
    assert blank.caption is None


def test_submit_flattens_transparent_png(repository, storage) -> None:
    buffer = io.BytesIO()
    Image.new("RGBA", (200, 100), (255, 0, 0, 0)).save(buffer, format="PNG")
    service = _service(repository, storage)

    record_id = service.submit(
        _photo(data=buffer.getvalue()), SubmissionForm(display_name="Ana"), OPTIONS
    )

    data, _ = storage.objects[repository.records[record_id].storage_path]
    with Image.open(io.BytesIO(data)) as framed:
        red, green, blue = framed.convert("RGB").getpixel((80, 45))
    assert red < 30
    assert green < 30
    assert blue < 30
