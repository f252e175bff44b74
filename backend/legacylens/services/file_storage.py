"""Content-addressed file storage for uploaded sources.

This module provides an abstract interface for raw file storage, with a
local-disk implementation (default) and a MinIO implementation for shared
deployments. Keys come from the content fingerprint, so a key is written at
most once and its content never changes.
"""

import logging
from abc import ABC, abstractmethod
from io import BytesIO
from pathlib import Path

from minio import Minio
from minio.error import S3Error

from legacylens.core.config import settings

logger = logging.getLogger(__name__)


class FileStorageError(Exception):
    """Base exception for file storage operations."""
    pass


class FileStorage(ABC):
    """Abstract interface for raw file storage.

    Implementations: LocalFileStorage (default), MinIOFileStorage.
    """

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """Store content under a key.

        Raises:
            FileStorageError: If the write fails
        """
        ...

    @abstractmethod
    def read(self, key: str) -> bytes | None:
        """Read content by key.

        Returns:
            File content as bytes, or None if not found

        Raises:
            FileStorageError: If the read fails (except not found)
        """
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Delete content by key (idempotent)."""
        ...


class LocalFileStorage(FileStorage):
    """Filesystem implementation rooted at a base directory."""

    def __init__(self, base_dir: str | Path | None = None):
        self.base_dir = Path(base_dir or settings.upload_dir).resolve()

    def _path(self, key: str) -> Path:
        path = (self.base_dir / key).resolve()
        if not path.is_relative_to(self.base_dir):
            raise FileStorageError(f"Key escapes storage root: {key}")
        return path

    def write(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".tmp")
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
            logger.debug(f"Stored {key} ({len(data)} bytes)")
        except OSError as e:
            logger.error(f"Failed to store {key}: {e}")
            raise FileStorageError(f"Failed to store file: {e}") from e

    def read(self, key: str) -> bytes | None:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            logger.debug(f"File not found in storage: {key}")
            return None
        except OSError as e:
            logger.error(f"Failed to read {key}: {e}")
            raise FileStorageError(f"Failed to read file: {e}") from e

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
            logger.debug(f"Deleted {key}")
        except OSError as e:
            logger.error(f"Failed to delete {key}: {e}")
            raise FileStorageError(f"Failed to delete file: {e}") from e


class MinIOFileStorage(FileStorage):
    """MinIO implementation of FileStorage."""

    def __init__(
        self,
        bucket: str | None = None,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        secure: bool | None = None,
        client: Minio | None = None,
    ):
        self.bucket = bucket or settings.minio_bucket
        self._client = client or Minio(
            endpoint or settings.minio_endpoint,
            access_key=access_key or settings.minio_access_key,
            secret_key=secret_key or settings.minio_secret_key,
            secure=secure if secure is not None else settings.minio_secure,
        )
        self._bucket_checked = False

    def _ensure_bucket(self) -> None:
        if self._bucket_checked:
            return
        if not self._client.bucket_exists(self.bucket):
            self._client.make_bucket(self.bucket)
            logger.info(f"Created MinIO bucket {self.bucket}")
        self._bucket_checked = True

    def write(self, key: str, data: bytes) -> None:
        try:
            self._ensure_bucket()
            self._client.put_object(
                self.bucket,
                key,
                BytesIO(data),
                len(data),
                content_type="application/octet-stream",
            )
            logger.debug(f"Uploaded object: {self.bucket}/{key} ({len(data)} bytes)")
        except S3Error as e:
            logger.error(f"Failed to upload {self.bucket}/{key}: {e}")
            raise FileStorageError(f"Failed to upload object: {e}") from e

    def read(self, key: str) -> bytes | None:
        try:
            response = self._client.get_object(self.bucket, key)
            try:
                return response.read()
            finally:
                response.close()
                response.release_conn()
        except S3Error as e:
            if e.code == "NoSuchKey":
                logger.debug(f"Object not found: {self.bucket}/{key}")
                return None
            logger.error(f"Failed to download {self.bucket}/{key}: {e}")
            raise FileStorageError(f"Failed to download object: {e}") from e

    def exists(self, key: str) -> bool:
        try:
            self._client.stat_object(self.bucket, key)
            return True
        except S3Error as e:
            if e.code == "NoSuchKey":
                return False
            logger.error(f"Failed to check existence of {self.bucket}/{key}: {e}")
            raise FileStorageError(f"Failed to check object existence: {e}") from e

    def delete(self, key: str) -> None:
        try:
            self._client.remove_object(self.bucket, key)
            logger.debug(f"Deleted object: {self.bucket}/{key}")
        except S3Error as e:
            logger.error(f"Failed to delete {self.bucket}/{key}: {e}")
            raise FileStorageError(f"Failed to delete object: {e}") from e


# Singleton instance for convenience
_default_storage: FileStorage | None = None


def get_file_storage() -> FileStorage:
    """Get the configured file storage backend (singleton)."""
    global _default_storage
    if _default_storage is None:
        if settings.storage_backend == "minio":
            _default_storage = MinIOFileStorage()
        else:
            _default_storage = LocalFileStorage()
    return _default_storage
