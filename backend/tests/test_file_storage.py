"""
Tests for local upload storage.
"""
import io
import os

import pytest
from types import SimpleNamespace
from unittest.mock import MagicMock
from uuid import uuid4

from talaty.services import file_storage
from talaty.services.errors import ValidationError


def fake_upload(filename, content=b"%PDF-1.4 test", content_type="application/pdf"):
    return SimpleNamespace(filename=filename, file=io.BytesIO(content), content_type=content_type)


class TestAllowedExtension:

    @pytest.mark.parametrize("filename", ["id.pdf", "ID.PDF", "scan.jpeg", "license.docx"])
    def test_allowed(self, filename):
        assert file_storage.allowed_extension(filename)

    @pytest.mark.parametrize("filename", ["script.exe", "archive.tar.gz", "noextension", ""])
    def test_rejected(self, filename):
        assert not file_storage.allowed_extension(filename)


class TestSaveUpload:

    def test_saves_under_user_directory_with_timestamp_prefix(self):
        stored = file_storage.save_upload("user-1", fake_upload("passport scan.pdf"))

        assert os.path.exists(stored.file_path)
        assert os.path.basename(os.path.dirname(stored.file_path)) == "user-1"
        prefix, _, name = os.path.basename(stored.file_path).partition("_")
        assert prefix.isdigit()
        assert name == "passport_scan.pdf"
        assert stored.file_name == "passport scan.pdf"
        assert stored.file_size == len(b"%PDF-1.4 test")

        assert file_storage.delete_file(stored.file_path) is True
        assert not os.path.exists(stored.file_path)

    def test_disallowed_type_raises(self):
        with pytest.raises(ValidationError):
            file_storage.save_upload("user-1", fake_upload("payload.exe"))

    def test_missing_file_raises(self):
        with pytest.raises(ValidationError):
            file_storage.save_upload("user-1", None)

    def test_delete_missing_file_is_not_an_error(self):
        assert file_storage.delete_file("/nonexistent/path.pdf") is False


class TestUploadSizeLimit:
    """Oversized uploads are rejected without leaving a file behind."""

    def test_stream_over_limit_raises_and_leaves_no_file(self, monkeypatch):
        monkeypatch.setattr(file_storage, "max_upload_bytes", lambda: 10)
        monkeypatch.setattr(file_storage, "CHUNK_SIZE", 4)
        user_id = f"user-{uuid4()}"

        with pytest.raises(ValidationError, match="File too large"):
            file_storage.save_upload(user_id, fake_upload("big.pdf", content=b"x" * 32))

        assert os.listdir(file_storage.get_user_upload_dir(user_id)) == []

    def test_copy_stops_reading_once_limit_is_passed(self, monkeypatch):
        monkeypatch.setattr(file_storage, "max_upload_bytes", lambda: 10)
        monkeypatch.setattr(file_storage, "CHUNK_SIZE", 4)
        stream = io.BytesIO(b"x" * 64)

        with pytest.raises(ValidationError):
            file_storage.save_upload(f"user-{uuid4()}", SimpleNamespace(
                filename="big.pdf", file=stream, content_type="application/pdf",
            ))

        # three 4-byte chunks cross the 10-byte limit
        assert stream.tell() == 12

    def test_upload_exactly_at_limit_is_kept(self, monkeypatch):
        monkeypatch.setattr(file_storage, "max_upload_bytes", lambda: 8)
        monkeypatch.setattr(file_storage, "CHUNK_SIZE", 4)

        stored = file_storage.save_upload(f"user-{uuid4()}", fake_upload("ok.pdf", content=b"y" * 8))

        assert stored.file_size == 8
        assert file_storage.delete_file(stored.file_path) is True

    def test_declared_size_over_limit_is_rejected_before_reading(self):
        stream = MagicMock()
        upload = SimpleNamespace(
            filename="big.pdf",
            file=stream,
            content_type="application/pdf",
            size=file_storage.max_upload_bytes() + 1,
        )

        with pytest.raises(ValidationError, match="File too large"):
            file_storage.save_upload("user-1", upload)

        stream.read.assert_not_called()
