"""
Feed API — Image Storage Service
==================================

What:  Validates, stores, resolves and deletes post images.
Why:   Keeps every file system operation behind one object with path checks.
How:   Uploads are checked (extension, size, detected content type) and written
       to date-organized directories under <storage_root>/<image_dir> with UUID
       filenames. Posts store the relative, forward-slash path as imageUrl.
Who:   Called by PostService when posts are created, updated and deleted.

Security Model:
    - UUID filenames: no user input ends up in the stored path
    - Resolved paths must stay inside the storage root (no ../ escapes), both
      when serving images and when accepting an existing imageUrl on update
    - Size limit prevents memory exhaustion
    - The content type is read from the file bytes with libmagic, so a renamed
      non-image is rejected whatever the client claims
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import aiofiles.os
import magic

from feed_api.config import settings
from feed_api.exceptions import FileStorageError, ValidationError
from feed_api.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg"}


def normalize_image_path(path: str) -> str:
    """Use forward slashes regardless of the platform the path was built on."""
    return path.replace("\\", "/")


class FileService:
    """
    Manages the lifecycle of post image files.

    Directory Structure:
        storage/
        └── images/
            └── 2024/
                └── 01/
                    └── 15/
                        ├── a1b2c3d4-5678.jpg
                        └── e5f6g7h8-9012.png
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
                          If None, uses settings.storage_root.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """
        Returns: Normalized extension (lowercase with dot).
        Raises:  ValidationError if extension is not allowed.
        """
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="image",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_mime_type(self, file_content: bytes, filename: str) -> str:
        """
        Detect the MIME type from the file's header bytes.

        What:    libmagic matches the leading bytes against known signatures
                 (PNG starts with 89 50 4E 47, JPEG with FF D8 FF).
        Args:
            file_content: Raw bytes of the upload
            filename:     Original filename, for logging only

        Raises:
            ValidationError:  detected type is not PNG or JPEG
            FileStorageError: libmagic could not inspect the content
        """
        try:
            mime_type = magic.from_buffer(file_content, mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed for %s: %s", filename, str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "The file must be a PNG or JPEG image."
                ),
                field="image",
                context={"detected_mime": mime_type, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Validate file size against the configured maximum.

        Args:
            content_length: Size reported by the client (may be None or inaccurate)
            actual_size:    Actual byte count of the uploaded file
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="The uploaded image is empty.", field="image")

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="image",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) is too large, maximum is {max_mb:.0f}MB.",
                field="image",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    # ── Paths ─────────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """
        Creates <image_dir>/YYYY/MM/DD/<uuid>.<ext>.

        Returns: Tuple of (absolute_path, relative_path_from_storage_root).
        """
        now = datetime.now(timezone.utc)
        date_dir = now.strftime("%Y/%m/%d")
        unique_name = f"{uuid.uuid4()}{extension}"

        relative_path = normalize_image_path(f"{settings.image_dir}/{date_dir}/{unique_name}")
        absolute_path = self.storage_root / relative_path

        return absolute_path, relative_path

    def resolve(self, image_url: str) -> Path:
        """
        Map a stored imageUrl to its absolute path.

        Raises: ValidationError if the path escapes the storage root.
        """
        full_path = (self.storage_root / normalize_image_path(image_url).lstrip("/")).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(
                message="Invalid image path",
                field="image",
                context={"image_url": image_url},
            )
        return full_path

    def canonical_image_url(self, image_url: str) -> str:
        """
        Reduce an imageUrl to its stored form, relative to the storage root.

        "/images/a.png", "./images/a.png" and "images//a.png" all become
        "images/a.png", so two spellings of one file compare equal.
        """
        return self.resolve(image_url).relative_to(self.storage_root).as_posix()

    def image_exists(self, image_url: str) -> bool:
        return self.resolve(image_url).is_file()

    # ── Storage ───────────────────────────────────────────────────────────

    async def store_file(self, content: bytes, extension: str) -> Tuple[str, str]:
        """
        Write validated file content to disk.

        Returns: Tuple of (absolute_path, relative_path).
        Raises:  FileStorageError if directory creation or file write fails.
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)

            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)

            logger.info("Image stored: %s (%d bytes)", relative_path, len(content))
            return str(absolute_path), relative_path

        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": relative_path, "os_error": str(e)},
            )

    async def validate_and_store(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> Tuple[str, str]:
        """
        Complete file validation and storage pipeline.

        Validation order (cheapest first):
            1. Extension check
            2. Size check
            3. Content type detected from the bytes
            4. Store file

        Returns: Tuple of (absolute_path, relative_path_for_db).
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content, filename)

        return await self.store_file(content, ext)

    # ── Deletion ──────────────────────────────────────────────────────────

    async def delete_image(self, image_url: str) -> None:
        """
        Remove a post image from storage.

        Raises:
            FileStorageError if the file cannot be removed, including when
            it is already missing: the post pointed at a file that is gone.
        """
        path = self.resolve(image_url)
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            raise FileStorageError(
                message="Failed to delete post image.",
                context={"image_url": image_url, "os_error": str(e)},
            )
        logger.info("Deleted image: %s", image_url)

    async def clear_image(self, image_url: str) -> None:
        """
        Background-task entry point for deleting a replaced or orphaned image.

        Runs after the response has been sent, so a failure cannot change the
        response any more. It is reported to the error log with the id of the
        request that scheduled it, and the post row keeps its new state.
        """
        try:
            await self.delete_image(image_url)
        except (FileStorageError, ValidationError) as e:
            logger.error(
                "[%s] Image deletion failed for %s: %s | Context: %s",
                request_id_var.get(""),
                image_url,
                e.message,
                e.context,
            )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Remove a just-written upload whose post could not be saved.

        Best effort: missing files are ignored and other failures are logged.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up file: %s", path.name)
            else:
                logger.debug("Cleanup: file already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", file_path, str(e))


file_service = FileService()
