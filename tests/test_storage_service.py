"""
Bradspel Backend — File Storage Unit Tests
===========================================

What:  Tests for StorageService validation, storage and path resolution.

Test Strategy:
    ✅ Allowed extensions (.png, .jpg, .jpeg, .webp), case-insensitive
    ✅ Rejected extensions, unsupported content and content that does not
       match its extension (libmagic detection)
    ✅ Size limits, including the Content-Length header
    ✅ Stored files land under YYYY/MM/DD with UUID names
    ✅ resolve() refuses paths outside the storage root
"""

import re
from unittest.mock import patch

import pytest

from bradspel.config import settings
from bradspel.exceptions import FileStorageError, NotFoundError, ValidationError
from bradspel.services.storage_service import StorageService

JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"
WEBP_BYTES = b"RIFF\x1c\x00\x00\x00WEBPVP8 \x10\x00\x00\x00" + b"\x00" * 16


class TestFileValidation:
    def setup_method(self):
        self.service = StorageService(storage_root="/tmp/unused")

    # ── Extension Validation ──────────────────────────────────────────────

    @pytest.mark.parametrize("name", ["box.png", "box.jpg", "box.jpeg", "box.webp", "BOX.PNG", "x.Jpeg"])
    def test_allowed_extensions(self, name):
        assert self.service.validate_extension(name) == name[name.rindex("."):].lower()

    @pytest.mark.parametrize("name", ["anim.gif", "rules.pdf", "noextension", "malware.exe"])
    def test_rejected_extensions(self, name):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(name)

    # ── Size Validation ───────────────────────────────────────────────────

    def test_size_within_limit(self):
        self.service.validate_size(None, 1000)

    def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(None, 0)

    def test_oversized_file_rejected(self):
        with pytest.raises(ValidationError, match="too large"):
            self.service.validate_size(None, settings.max_file_size + 1)

    def test_oversized_content_length_rejected(self):
        with pytest.raises(ValidationError, match="too large"):
            self.service.validate_size(settings.max_file_size + 1, 10)

    # ── Content Validation ────────────────────────────────────────────────

    def test_detected_mime_types(self, sample_image_bytes):
        assert self.service.validate_content(sample_image_bytes, ".png") == "image/png"
        assert self.service.validate_content(JPEG_BYTES, ".jpg") == "image/jpeg"
        assert self.service.validate_content(JPEG_BYTES, ".jpeg") == "image/jpeg"
        assert self.service.validate_content(WEBP_BYTES, ".webp") == "image/webp"

    def test_unsupported_content_rejected(self):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_content(b"GIF89a\x01\x00\x01\x00\x00\x00\x00;", ".png")

    def test_content_must_match_extension(self):
        with pytest.raises(ValidationError, match="does not match"):
            self.service.validate_content(JPEG_BYTES, ".png")

    def test_detection_failure_raises_storage_error(self, sample_image_bytes):
        with patch(
            "bradspel.services.storage_service.magic.from_buffer",
            side_effect=RuntimeError("magic database missing"),
        ):
            with pytest.raises(FileStorageError, match="Could not verify"):
                self.service.validate_content(sample_image_bytes, ".png")


class TestStore:
    @pytest.mark.asyncio
    async def test_store_writes_dated_uuid_path(self, tmp_path, sample_image_bytes):
        service = StorageService(storage_root=str(tmp_path), public_url="/files")

        url = await service.store(sample_image_bytes, "Cover Photo.PNG")

        assert re.fullmatch(r"/files/\d{4}/\d{2}/\d{2}/[0-9a-f-]{36}\.png", url)
        stored = service.resolve(url[len("/files/"):])
        assert stored.read_bytes() == sample_image_bytes

    @pytest.mark.asyncio
    async def test_store_rejects_disguised_file(self, tmp_path):
        service = StorageService(storage_root=str(tmp_path))

        with pytest.raises(ValidationError):
            await service.store(b"<?php echo 'hi'; ?>", "image.png")
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_write_failure_raises_storage_error(self, tmp_path, sample_image_bytes):
        service = StorageService(storage_root=str(tmp_path))

        with patch("bradspel.services.storage_service.aiofiles.open", side_effect=OSError("disk full")):
            with pytest.raises(FileStorageError, match="Failed to save"):
                await service.store(sample_image_bytes, "cover.png")

    @pytest.mark.asyncio
    async def test_cleanup_url_removes_file(self, tmp_path, sample_image_bytes):
        service = StorageService(storage_root=str(tmp_path), public_url="/files")
        url = await service.store(sample_image_bytes, "cover.png")

        await service.cleanup_url(url)

        with pytest.raises(NotFoundError):
            service.resolve(url[len("/files/"):])
        # Already gone: no error
        await service.cleanup_url(url)


class TestResolve:
    def test_traversal_rejected(self, tmp_path):
        service = StorageService(storage_root=str(tmp_path / "storage"))
        (tmp_path / "secret.txt").write_text("x")

        with pytest.raises(ValidationError, match="Invalid file path"):
            service.resolve("../secret.txt")

    def test_missing_file(self, tmp_path):
        service = StorageService(storage_root=str(tmp_path))
        with pytest.raises(NotFoundError):
            service.resolve("2026/01/01/nothing.png")
