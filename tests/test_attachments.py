# tests/test_attachments.py
import asyncio
import io

import pytest
from starlette.datastructures import Headers, UploadFile

from medireminder.core.attachments import AttachmentManager, normalize_external_url, sanitize_filename
from medireminder.core.exceptions import InvalidInput, PayloadTooLarge, UnsupportedMediaType
from medireminder.core.image_ref import ExternalImage, LocalImage, parse_image_ref
from tests._helpers import PNG_BYTES

BASE_URL = "http://media.test/uploads/medicaments"


@pytest.fixture
def manager(tmp_path):
    return AttachmentManager(
        directory=tmp_path / "uploads",
        base_url=BASE_URL + "/",
        max_bytes=1024,
        allowed_types=["image/png", "image/jpeg"],
        chunk_size=100,
    )


def make_upload(data=PNG_BYTES, filename="pill.png", content_type="image/png", known_size=True):
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        size=len(data) if known_size else None,
        headers=Headers({"content-type": content_type}),
    )


def files_in(manager):
    return sorted(manager.directory.iterdir()) if manager.directory.exists() else []


def test_parse_image_ref_tags_values():
    assert parse_image_ref(None) is None
    assert parse_image_ref("") is None
    assert parse_image_ref("https://x.org/a.png") == ExternalImage("https://x.org/a.png")
    assert parse_image_ref("HTTP://x.org/a.png") == ExternalImage("HTTP://x.org/a.png")
    assert parse_image_ref("/srv/uploads/1_2_a.png") == LocalImage("/srv/uploads/1_2_a.png")


def test_public_url(manager):
    assert manager.public_url(None) is None
    assert manager.public_url(ExternalImage("https://x.org/a.png")) == "https://x.org/a.png"
    assert manager.public_url(LocalImage("/anywhere/else/17_3_a.png")) == f"{BASE_URL}/17_3_a.png"


def test_normalize_external_url():
    assert normalize_external_url(None) is None
    assert normalize_external_url("   ") is None
    assert normalize_external_url(" https://x.org/a.png ") == "https://x.org/a.png"
    for bad in ("ftp://x.org/a.png", "relative/path.png", "https://"):
        with pytest.raises(InvalidInput):
            normalize_external_url(bad)


def test_sanitize_filename():
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("my pill (1).png") == "my_pill_1_.png"
    assert sanitize_filename(None) == "image"
    assert sanitize_filename("...") == "image"


def test_generated_names_are_unique(manager):
    names = {manager.generate_filename(7, "a.png") for _ in range(200)}
    assert len(names) == 200
    assert all("_7_" in n and n.endswith("a.png") for n in names)


def test_save_upload_writes_file(manager):
    ref = asyncio.run(manager.save_upload(make_upload(), owner_id=5))
    assert isinstance(ref, LocalImage)
    written = files_in(manager)
    assert [p.name for p in written] == [ref.filename]
    assert written[0].read_bytes() == PNG_BYTES


def test_save_upload_rejects_type(manager):
    with pytest.raises(UnsupportedMediaType):
        asyncio.run(manager.save_upload(make_upload(content_type="image/gif"), owner_id=5))
    assert files_in(manager) == []


def test_save_upload_rejects_declared_size(manager):
    with pytest.raises(PayloadTooLarge):
        asyncio.run(manager.save_upload(make_upload(data=b"x" * 2048), owner_id=5))
    assert files_in(manager) == []


def test_save_upload_removes_partial_file_when_stream_is_too_long(manager):
    upload = make_upload(data=b"x" * 2048, known_size=False)
    with pytest.raises(PayloadTooLarge):
        asyncio.run(manager.save_upload(upload, owner_id=5))
    assert files_in(manager) == []


def test_resolve_for_create(manager):
    none = asyncio.run(manager.resolve_for_create(1))
    assert none.ref is None and none.public_url is None

    external = asyncio.run(manager.resolve_for_create(1, external_url="https://x.org/a.png"))
    assert external.ref == ExternalImage("https://x.org/a.png")
    assert external.public_url == "https://x.org/a.png"
    assert external.written is None
    assert files_in(manager) == []

    local = asyncio.run(manager.resolve_for_create(1, upload=make_upload(), external_url="https://x.org/a.png"))
    assert isinstance(local.ref, LocalImage)
    assert local.written == local.ref
    assert local.public_url == f"{BASE_URL}/{local.ref.filename}"


def test_resolve_for_update_passes_existing_through(manager):
    existing = LocalImage(str(manager.directory / "1_1_a.png"))
    resolved = asyncio.run(manager.resolve_for_update(existing, 1))
    assert resolved.changed is False
    assert resolved.ref == existing
    assert resolved.public_url == f"{BASE_URL}/1_1_a.png"
    assert resolved.replaced is None


def test_resolve_for_update_reports_replaced_local_file(manager):
    old = asyncio.run(manager.save_upload(make_upload(), owner_id=1))
    resolved = asyncio.run(manager.resolve_for_update(old, 1, external_url="https://x.org/b.png"))
    assert resolved.changed is True
    assert resolved.ref == ExternalImage("https://x.org/b.png")
    assert resolved.replaced == old


def test_resolve_for_update_never_replaces_external(manager):
    old = ExternalImage("https://x.org/a.png")
    resolved = asyncio.run(manager.resolve_for_update(old, 1, upload=make_upload()))
    assert resolved.replaced is None
    assert isinstance(resolved.ref, LocalImage)


def test_resolve_for_update_remove(manager):
    old = asyncio.run(manager.save_upload(make_upload(), owner_id=1))
    resolved = asyncio.run(manager.resolve_for_update(old, 1, remove=True))
    assert resolved.changed is True
    assert resolved.ref is None and resolved.public_url is None
    assert resolved.replaced == old


def test_delete_artifact(manager, tmp_path):
    ref = asyncio.run(manager.save_upload(make_upload(), owner_id=1))
    assert manager.delete_artifact(ref) is True
    assert manager.delete_artifact(ref) is False
    assert manager.delete_artifact(None) is False
    assert manager.delete_artifact(ExternalImage("https://x.org/a.png")) is False

    outside = tmp_path / "keep.png"
    outside.write_bytes(PNG_BYTES)
    assert manager.delete_artifact(LocalImage(str(outside))) is False
    assert outside.exists()


def test_discard_only_touches_written_file(manager):
    resolved = asyncio.run(manager.resolve_for_create(1, upload=make_upload()))
    manager.discard(resolved)
    assert files_in(manager) == []
