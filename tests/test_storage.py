"""Tests for material storage backends."""
from unittest.mock import MagicMock

import pytest

from examgen.errors import StorageUnavailable
from examgen.services.storage import GCSStorage, LocalStorage, create_storage, parse_gcs_path


class TestParseGcsPath:
    def test_splits_bucket_and_blob(self):
        assert parse_gcs_path("gs://examgen/course-1/unit1.pdf") == ("examgen", "course-1/unit1.pdf")

    @pytest.mark.parametrize("path", ["examgen/unit1.pdf", "gs://examgen", "gs:///unit1.pdf", "gs://examgen/"])
    def test_rejects_malformed_paths(self, path):
        with pytest.raises(ValueError):
            parse_gcs_path(path)


class TestLocalStorage:
    @pytest.mark.asyncio
    async def test_gcs_uri_maps_under_root(self, tmp_path):
        storage = LocalStorage(str(tmp_path))
        await storage.put_bytes("gs://examgen/course-1/unit1.pdf", b"%PDF-1.7")

        assert (tmp_path / "course-1" / "unit1.pdf").read_bytes() == b"%PDF-1.7"
        assert await storage.get_bytes("gs://examgen/course-1/unit1.pdf") == b"%PDF-1.7"

    @pytest.mark.asyncio
    async def test_missing_file_is_unavailable(self, tmp_path):
        with pytest.raises(StorageUnavailable):
            await LocalStorage(str(tmp_path)).get_bytes("course-1/missing.pdf")

    @pytest.mark.asyncio
    async def test_paths_cannot_escape_root(self, tmp_path):
        storage = LocalStorage(str(tmp_path / "uploads"))
        with pytest.raises(StorageUnavailable):
            await storage.get_bytes("../secrets.txt")


class TestGCSStorage:
    @pytest.mark.asyncio
    async def test_downloads_blob(self):
        client = MagicMock()
        client.bucket.return_value.blob.return_value.download_as_bytes.return_value = b"pdf-bytes"

        data = await GCSStorage(client=client).get_bytes("gs://examgen/course-1/unit1.pdf")

        assert data == b"pdf-bytes"
        client.bucket.assert_called_once_with("examgen")
        client.bucket.return_value.blob.assert_called_once_with("course-1/unit1.pdf")

    @pytest.mark.asyncio
    async def test_sdk_errors_become_unavailable(self):
        client = MagicMock()
        client.bucket.return_value.blob.return_value.download_as_bytes.side_effect = RuntimeError("403")

        with pytest.raises(StorageUnavailable):
            await GCSStorage(client=client).get_bytes("gs://examgen/course-1/unit1.pdf")


def test_create_storage_selects_backend(settings_for_tests):
    assert isinstance(create_storage(settings_for_tests), LocalStorage)
    assert isinstance(create_storage(settings_for_tests.model_copy(update={"STORAGE_BACKEND": "gcs"})), GCSStorage)
    with pytest.raises(ValueError):
        create_storage(settings_for_tests.model_copy(update={"STORAGE_BACKEND": "ftp"}))
