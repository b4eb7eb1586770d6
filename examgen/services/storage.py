"""Object storage access for uploaded course materials.

Material paths are ``gs://bucket/path`` URIs in production. The local backend maps the
blob path onto a directory so development can run without Google Cloud credentials.
"""
import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

from examgen.config import Settings
from examgen.errors import StorageUnavailable

logger = logging.getLogger(__name__)


def parse_gcs_path(gcs_path: str) -> Tuple[str, str]:
    """
    Split a GCS URI into bucket and blob path.

    Args:
        gcs_path: GCS path (gs://bucket/path)

    Returns:
        Tuple of (bucket_name, blob_path)
    """
    if not gcs_path.startswith("gs://"):
        raise ValueError(f"Invalid GCS path format: {gcs_path}")

    path_parts = gcs_path[5:].split("/", 1)
    if len(path_parts) != 2 or not path_parts[0] or not path_parts[1]:
        raise ValueError(f"Invalid GCS path format: {gcs_path}")

    return path_parts[0], path_parts[1]


class StorageService(ABC):
    """Byte-level access to stored materials."""

    @abstractmethod
    async def get_bytes(self, path: str) -> bytes:
        """Fetch the full object. Raises StorageUnavailable on any failure."""
        pass

    @abstractmethod
    async def put_bytes(self, path: str, data: bytes) -> None:
        pass


class GCSStorage(StorageService):
    """Google Cloud Storage backend. Blocking SDK calls run in a worker thread."""

    def __init__(self, project_id: str = "", client: Optional[Any] = None):
        self.project_id = project_id
        self._client = client

    @property
    def client(self):
        if self._client is None:
            from google.cloud import storage as gcs_storage

            self._client = gcs_storage.Client(project=self.project_id or None)
        return self._client

    def _download(self, path: str) -> bytes:
        bucket_name, blob_path = parse_gcs_path(path)
        blob = self.client.bucket(bucket_name).blob(blob_path)
        return blob.download_as_bytes()

    def _upload(self, path: str, data: bytes) -> None:
        bucket_name, blob_path = parse_gcs_path(path)
        blob = self.client.bucket(bucket_name).blob(blob_path)
        blob.upload_from_string(data, content_type="application/pdf")

    async def get_bytes(self, path: str) -> bytes:
        try:
            data = await asyncio.to_thread(self._download, path)
        except Exception as e:
            logger.error(f"Failed to download {path} from GCS: {e}")
            raise StorageUnavailable(f"Could not read material from storage: {path}") from e

        logger.info(f"Downloaded {len(data)} bytes from {path}")
        return data

    async def put_bytes(self, path: str, data: bytes) -> None:
        try:
            await asyncio.to_thread(self._upload, path, data)
        except Exception as e:
            logger.error(f"Failed to upload {path} to GCS: {e}")
            raise StorageUnavailable(f"Could not write material to storage: {path}") from e


class LocalStorage(StorageService):
    """Filesystem backend for development.

    Accepts either ``gs://bucket/blob`` URIs (the blob path is resolved under the
    root) or plain relative paths.
    """

    def __init__(self, root: str):
        self.root = os.path.abspath(root)

    def _resolve(self, path: str) -> str:
        if path.startswith("gs://"):
            _, path = parse_gcs_path(path)
        resolved = os.path.abspath(os.path.join(self.root, path.lstrip("/")))
        if os.path.commonpath([resolved, self.root]) != self.root:
            raise ValueError(f"Path escapes storage root: {path}")
        return resolved

    def _read(self, path: str) -> bytes:
        with open(self._resolve(path), "rb") as f:
            return f.read()

    def _write(self, path: str, data: bytes) -> None:
        local_path = self._resolve(path)
        os.makedirs(os.path.dirname(local_path), exist_ok=True)
        with open(local_path, "wb") as f:
            f.write(data)

    async def get_bytes(self, path: str) -> bytes:
        try:
            return await asyncio.to_thread(self._read, path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read local file for {path}: {e}")
            raise StorageUnavailable(f"Could not read material from storage: {path}") from e

    async def put_bytes(self, path: str, data: bytes) -> None:
        try:
            await asyncio.to_thread(self._write, path, data)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to write local file for {path}: {e}")
            raise StorageUnavailable(f"Could not write material to storage: {path}") from e


def create_storage(config: Settings) -> StorageService:
    """Build the storage backend selected by STORAGE_BACKEND."""
    backend = config.STORAGE_BACKEND.lower()

    if backend == "gcs":
        return GCSStorage(project_id=config.GCS_PROJECT_ID)
    if backend == "local":
        logger.info(f"Using local storage rooted at {config.LOCAL_STORAGE_ROOT}")
        return LocalStorage(config.LOCAL_STORAGE_ROOT)

    raise ValueError(f"Unsupported storage backend: {config.STORAGE_BACKEND}")
