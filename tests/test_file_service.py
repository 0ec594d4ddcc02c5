"""
Feed API — File Service Unit Tests
====================================

What:  Tests for image validation, storage, path resolution and deletion.
How:   Each test uses its own FileService on a pytest tmp_path.
"""

import logging

import pytest

from feed_api.exceptions import FileStorageError, ValidationError
from feed_api.services.file_service import FileService, normalize_image_path


@pytest.fixture
def service(tmp_path):
    return FileService(storage_root=str(tmp_path))


class TestFileValidation:
    """Tests for upload validation in FileService."""

    # ── Extension Validation ──────────────────────────────────────────────

    def test_validate_extension_allowed(self, service):
        assert service.validate_extension("photo.jpg") == ".jpg"
        assert service.validate_extension("photo.jpeg") == ".jpeg"
        assert service.validate_extension("photo.png") == ".png"

    def test_validate_extension_uppercase(self, service):
        """Extension check should be case-insensitive."""
        assert service.validate_extension("photo.PNG") == ".png"
        assert service.validate_extension("photo.Jpeg") == ".jpeg"

    @pytest.mark.parametrize("filename", ["animation.gif", "document.pdf", "noextension", "malware.exe"])
    def test_validate_extension_rejected(self, service, filename):
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            service.validate_extension(filename)
        assert exc_info.value.status_code == 422
        assert exc_info.value.field == "image"

    # ── MIME Type Validation ──────────────────────────────────────────────

    def test_validate_mime_type_png(self, service, png_bytes):
        assert service.validate_mime_type(png_bytes, "photo.png") == "image/png"

    def test_validate_mime_type_jpeg(self, service, jpeg_bytes):
        assert service.validate_mime_type(jpeg_bytes, "photo.jpg") == "image/jpeg"

    @pytest.mark.parametrize(
        "content",
        [b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<>>\nendobj\n", b"just some plain text\n"],
    )
    def test_validate_mime_type_rejects_renamed_file(self, service, content):
        """A non-image named photo.png is rejected by its bytes, not its name."""
        with pytest.raises(ValidationError, match="not supported") as exc_info:
            service.validate_mime_type(content, "photo.png")
        assert exc_info.value.context["detected_mime"] != "image/png"

    # ── Size Validation ───────────────────────────────────────────────────

    def test_validate_size_within_limit(self, service):
        service.validate_size(None, 1000)

    def test_validate_size_over_limit(self, service):
        from feed_api.config import settings
        with pytest.raises(ValidationError, match="too large"):
            service.validate_size(None, settings.max_file_size + 1)

    def test_validate_size_reported_over_limit(self, service):
        from feed_api.config import settings
        with pytest.raises(ValidationError, match="exceeds maximum"):
            service.validate_size(settings.max_file_size + 1, 10)

    def test_validate_size_empty_file(self, service):
        with pytest.raises(ValidationError, match="empty"):
            service.validate_size(0, 0)


class TestPaths:

    def test_normalize_image_path_backslashes(self):
        assert normalize_image_path("images\\2024\\01\\a.png") == "images/2024/01/a.png"

    def test_normalize_image_path_unchanged(self):
        assert normalize_image_path("images/2024/01/a.png") == "images/2024/01/a.png"

    def test_resolve_inside_root(self, service, tmp_path):
        assert service.resolve("images/a.png") == tmp_path.resolve() / "images" / "a.png"

    def test_resolve_rejects_traversal(self, service):
        with pytest.raises(ValidationError, match="Invalid image path"):
            service.resolve("images/../../outside.png")

    @pytest.mark.parametrize(
        "variant",
        ["images/2024/a.png", "/images/2024/a.png", "./images/2024/a.png", "images//2024/a.png", "images\\2024\\a.png"],
    )
    def test_canonical_image_url(self, service, variant):
        assert service.canonical_image_url(variant) == "images/2024/a.png"

    def test_canonical_image_url_rejects_traversal(self, service):
        with pytest.raises(ValidationError, match="Invalid image path"):
            service.canonical_image_url("../outside.png")

    def test_image_exists(self, service, tmp_path):
        (tmp_path / "images").mkdir()
        (tmp_path / "images" / "a.png").write_bytes(b"x")
        assert service.image_exists("images/a.png")
        assert not service.image_exists("images/b.png")


class TestStorage:

    @pytest.mark.asyncio
    async def test_validate_and_store_writes_file(self, service, tmp_path, png_bytes):
        abs_path, rel_path = await service.validate_and_store(
            filename="photo.png",
            content=png_bytes,
        )

        assert rel_path.startswith("images/")
        assert rel_path.endswith(".png")
        assert "\\" not in rel_path
        assert (tmp_path / rel_path).read_bytes() == png_bytes
        assert abs_path == str(tmp_path.resolve() / rel_path)

    @pytest.mark.asyncio
    async def test_validate_and_store_rejects_before_writing(self, service, tmp_path):
        with pytest.raises(ValidationError):
            await service.validate_and_store(
                filename="photo.png",
                content=b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n1 0 obj\n<<>>\nendobj\n",
            )
        assert not (tmp_path / "images").exists()


class TestDeletion:

    @pytest.mark.asyncio
    async def test_delete_image_removes_file(self, service, tmp_path):
        (tmp_path / "images").mkdir()
        target = tmp_path / "images" / "old.png"
        target.write_bytes(b"old")

        await service.delete_image("images/old.png")
        assert not target.exists()

    @pytest.mark.asyncio
    async def test_delete_image_missing_file_raises(self, service):
        with pytest.raises(FileStorageError):
            await service.delete_image("images/missing.png")

    @pytest.mark.asyncio
    async def test_clear_image_reports_failure_without_raising(self, service, caplog):
        with caplog.at_level(logging.ERROR, logger="feed_api.services.file_service"):
            await service.clear_image("images/missing.png")
        assert "Image deletion failed" in caplog.text

    @pytest.mark.asyncio
    async def test_cleanup_file_removes_file(self, tmp_path, service):
        test_file = tmp_path / "test.jpg"
        test_file.write_bytes(b"test content")

        await service.cleanup_file(str(test_file))
        assert not test_file.exists()

    @pytest.mark.asyncio
    async def test_cleanup_file_nonexistent(self, tmp_path, service):
        """cleanup_file should not raise for non-existent files."""
        await service.cleanup_file(str(tmp_path / "nonexistent.jpg"))
