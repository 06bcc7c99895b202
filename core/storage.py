"""
Artifact store for the Sitespeed Result Service
Key-addressed blob access on top of any S3-compatible object storage
"""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.errors import ObjectNotFoundError, StorageError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NotFound", "404"}
_CHUNK_SIZE = 64 * 1024


def result_key(identifier: str) -> str:
    return f"results/{identifier}/result.zip"


def screenshot_key(identifier: str) -> str:
    return f"results/{identifier}/screenshot.png"


@dataclass
class StoredObject:
    """A streamed object plus the metadata the backend reported for it."""

    body: BinaryIO
    content_type: Optional[str] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None

    def iter_chunks(self, chunk_size: int = _CHUNK_SIZE) -> Iterator[bytes]:
        try:
            while True:
                chunk = self.body.read(chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            self.close()

    def close(self):
        try:
            self.body.close()
        except Exception as e:
            logger.debug(f"Error closing object body: {e}")


class ArtifactStore(ABC):
    """
    Uniform blob operations used by the pipeline and the result cache.

    Implementations stream, never buffer whole objects, and raise
    ObjectNotFoundError for missing keys and StorageError for anything else.
    """

    @abstractmethod
    def put(self, key: str, stream: BinaryIO, content_type: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def get(self, key: str) -> StoredObject:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def exists(self, key: str) -> bool:
        ...

    def upload_file(
        self, key: str, path: Union[str, Path], content_type: Optional[str] = None
    ) -> None:
        try:
            handle = open(path, "rb")
        except OSError as e:
            raise StorageError(f"Cannot read {path} for upload", cause=e) from e
        with handle:
            self.put(key, handle, content_type=content_type)

    def download(self, key: str, local_path: Union[str, Path]) -> None:
        """
        Stream an object into a local file.

        A partially written file is removed before the error propagates.
        """
        obj = self.get(key)
        try:
            with open(local_path, "wb") as target:
                shutil.copyfileobj(obj.body, target, _CHUNK_SIZE)
        except (OSError, BotoCoreError) as e:
            _remove_quietly(local_path)
            raise StorageError(f"Failed to download {key}", cause=e) from e
        except BaseException:
            _remove_quietly(local_path)
            raise
        finally:
            obj.close()


class S3ArtifactStore(ArtifactStore):
    """ArtifactStore backed by boto3."""

    def __init__(self, client, bucket_name: str):
        self.client = client
        self.bucket_name = bucket_name

    @classmethod
    def from_settings(cls, settings) -> "S3ArtifactStore":
        client = boto3.client(
            "s3",
            endpoint_url=settings.S3_SERVICE_URL or None,
            aws_access_key_id=settings.S3_ACCESS_KEY,
            aws_secret_access_key=settings.S3_SECRET_KEY,
            region_name=settings.S3_REGION,
            # Most self-hosted S3 services only understand path-style URLs
            config=Config(s3={"addressing_style": "path"}),
        )
        logger.info(
            f"🪣 S3 artifact store ready (bucket: {settings.S3_BUCKET_NAME}, "
            f"endpoint: {settings.S3_SERVICE_URL or 'default'})"
        )
        return cls(client, settings.S3_BUCKET_NAME)

    def put(self, key: str, stream: BinaryIO, content_type: Optional[str] = None) -> None:
        params = {"Bucket": self.bucket_name, "Key": key, "Body": stream}
        if content_type:
            params["ContentType"] = content_type
        try:
            self.client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Failed to upload {key}", cause=e) from e
        logger.info(f"⬆️  Uploaded s3://{self.bucket_name}/{key}")

    def get(self, key: str) -> StoredObject:
        try:
            resp = self.client.get_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(f"Object not found: {key}", cause=e) from e
            raise StorageError(f"Failed to fetch {key}", cause=e) from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to fetch {key}", cause=e) from e

        return StoredObject(
            body=resp["Body"],
            content_type=resp.get("ContentType"),
            last_modified=resp.get("LastModified"),
            etag=resp.get("ETag"),
        )

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return
            raise StorageError(f"Failed to delete {key}", cause=e) from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to delete {key}", cause=e) from e
        logger.info(f"🗑️  Deleted s3://{self.bucket_name}/{key}")

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise StorageError(f"Failed to stat {key}", cause=e) from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to stat {key}", cause=e) from e


def _is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    return code in _NOT_FOUND_CODES


def _remove_quietly(path: Union[str, Path]):
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"⚠️ Could not remove partial download {path}: {e}")
