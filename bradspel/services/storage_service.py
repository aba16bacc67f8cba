"""
Bradspel Backend — File Storage Service
========================================

What:  The file storage collaborator: accepts uploaded bytes, returns a URL
       the frontend can load.
How:   Validates extension, size and the MIME type libmagic reads from the
       content, then writes the file under a date-organized directory with
       a UUID filename.
Who:   GameService.set_image (cover uploads) and the /files route.

Directory Structure:
    storage/
    └── 2026/
        └── 10/
            └── 19/
                ├── a1b2c3d4-....jpg
                └── e5f6a7b8-....png

Security Model:
    - Extension and detected MIME type must agree on an image type
    - Size limit enforced before writing
    - UUID filenames contain no user input (no path traversal on write)
    - resolve() refuses any path that escapes the storage root (on read)
"""

import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import magic

from bradspel.config import settings
from bradspel.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

EXTENSION_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
}
ALLOWED_EXTENSIONS = set(EXTENSION_MIME_TYPES)
ALLOWED_MIME_TYPES = set(EXTENSION_MIME_TYPES.values())


class StorageService:
    """Stores uploads on the local volume and maps them to public URLs."""

    def __init__(self, storage_root: Optional[str] = None, public_url: Optional[str] = None):
        """
        Args:
            storage_root: Override the storage path (used in tests).
            public_url:   Override the URL prefix files are served under.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.public_url = (public_url or settings.public_files_url).rstrip("/")

    def validate_extension(self, filename: str) -> str:
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Check the Content-Length header (when sent) and the actual byte count.

        Raises:
            ValidationError: empty file, or larger than settings.max_file_size
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(message="The uploaded file is empty.", field="file")

        if (content_length and content_length > settings.max_file_size) or (
            actual_size > settings.max_file_size
        ):
            raise ValidationError(
                message=f"File is too large. Maximum size is {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def validate_content(self, content: bytes, extension: str) -> str:
        """
        Detect the MIME type from the content bytes and check it against the
        extension.

        Returns:
            Detected MIME type, e.g. "image/png".

        Raises:
            ValidationError:  not an accepted image, or not the type the
                              extension claims
            FileStorageError: libmagic could not inspect the content
        """
        try:
            mime_type = magic.from_buffer(content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            )

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    "Upload a PNG, JPEG or WebP image."
                ),
                field="file",
                context={"detected_mime": mime_type, "extension": extension},
            )
        if mime_type != EXTENSION_MIME_TYPES[extension]:
            raise ValidationError(
                message="File content does not match its extension.",
                field="file",
                context={"detected_mime": mime_type, "extension": extension},
            )
        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """YYYY/MM/DD/<uuid><ext>, as (absolute path, relative path)."""
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store(
        self,
        content: bytes,
        suggested_name: str,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Validate and persist an upload.

        Returns:
            Retrievable URL, e.g. "/files/2026/10/19/<uuid>.png".

        Raises:
            ValidationError:  bad extension, size or content
            FileStorageError: the write failed
        """
        ext = self.validate_extension(suggested_name)
        self.validate_size(content_length, len(content))
        mime_type = self.validate_content(content, ext)

        absolute_path, relative_path = self._generate_storage_path(ext)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Failed to save uploaded image. Please try again.",
                context={"path": str(absolute_path), "os_error": str(e)},
            )

        logger.info("File stored: %s (%s, %d bytes)", relative_path, mime_type, len(content))
        return f"{self.public_url}/{relative_path}"

    def resolve(self, relative_path: str) -> Path:
        """
        Map a path below the storage root to an existing file.

        Raises:
            ValidationError: the path escapes the storage root
            NotFoundError:   no such file
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    async def cleanup_url(self, url: str) -> None:
        """
        Remove a stored file by its public URL. Best-effort: failures are logged.

        Used when the database write that would have referenced the file fails.
        """
        prefix = f"{self.public_url}/"
        if not url.startswith(prefix):
            return
        try:
            path = self.resolve(url[len(prefix):])
            os.remove(path)
            logger.info("Cleaned up file: %s", path.name)
        except (NotFoundError, ValidationError):
            logger.debug("Cleanup: file already gone: %s", url)
        except OSError as e:
            logger.warning("Failed to clean up file %s: %s", url, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
storage_service = StorageService()
