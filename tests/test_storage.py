import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from tarag_api.errors import ValidationError


def upload(data=b"\x89PNG fake", content_type="image/png", filename="pic.png"):
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=Headers({"content-type": content_type}))


async def test_save_and_delete(image_storage):
    ref = await image_storage.save(upload(), "room1")

    assert ref.startswith("/uploads/roomImages/")
    assert ref.endswith("_room1.png")
    stored = image_storage.root / ref.rsplit("/", 1)[-1]
    assert stored.read_bytes() == b"\x89PNG fake"

    assert image_storage.delete(ref)
    assert not stored.exists()
    assert not image_storage.delete(ref)


async def test_rejects_non_images(image_storage):
    with pytest.raises(ValidationError, match="Only images"):
        await image_storage.save(upload(content_type="application/pdf", filename="doc.pdf"), "room1")


async def test_rejects_large_files(image_storage):
    with pytest.raises(ValidationError, match="too large"):
        await image_storage.save(upload(data=b"x" * 2048), "room1")


async def test_rejects_empty_files(image_storage):
    with pytest.raises(ValidationError):
        await image_storage.save(upload(data=b""), "room1")


def test_delete_ignores_blank_ref(image_storage):
    assert not image_storage.delete("")
