"""Remote object store access for S3-hosted repositories."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from .config import config
from .exceptions import ObjectNotFoundError, ObjectStoreError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(frozen=True)
class RemoteObject:
    """An object returned by a bucket listing."""

    key: str
    """Bucket key"""

    size: int = 0
    """Object size in bytes"""

    @property
    def is_folder_marker(self) -> bool:
        """True for zero-content keys representing folders."""
        return self.key.endswith("/")


class ObjectStore(Protocol):
    """Operations the rebuild engine needs from a remote object store."""

    def list_objects(self, bucket: str, prefix: str = "") -> list[RemoteObject]: ...

    def get_object(self, bucket: str, key: str) -> BinaryIO: ...

    def put_object(self, bucket: str, key: str, body: BinaryIO) -> None: ...

    def delete_object(self, bucket: str, key: str) -> None: ...

    def copy_object(
        self, bucket: str, source_key: str, dest_bucket: str, dest_key: str
    ) -> None: ...


class _ObjectBody:
    """Object body stream reporting read failures as ObjectStoreError."""

    def __init__(self, body: Any, error: Callable[[Exception], ObjectStoreError]):
        self._body = body
        self._error = error

    def read(self, size: int = -1) -> bytes:
        try:
            if size is None or size < 0:
                return self._body.read()
            return self._body.read(size)
        except (ClientError, BotoCoreError) as e:
            raise self._error(e) from e

    def close(self) -> None:
        self._body.close()


class S3ObjectStore:
    """ObjectStore implementation backed by boto3."""

    def __init__(
        self,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        max_retries: int = 3,
        timeout: float = 30.0,
    ):
        """Initialize the S3 object store.

        When either part of the credential pair is given, both are used
        explicitly; otherwise boto3's default credential chain applies
        (environment, shared config, instance profile).

        Args:
            access_key: AWS access key id (default: from S3REPO_ACCESS_KEY)
            secret_key: AWS secret access key (default: from S3REPO_SECRET_KEY)
            region: Optional region name
            endpoint_url: Optional endpoint for S3-compatible services
            max_retries: Maximum retry attempts per call (default: 3)
            timeout: Connect/read timeout in seconds (default: 30.0)
        """
        self.access_key = access_key or config.access_key
        self.secret_key = secret_key or config.secret_key
        self.region = region or config.region
        self.endpoint_url = endpoint_url or config.endpoint_url
        self.max_retries = max_retries
        self.timeout = timeout
        self._client: Any = None

    @property
    def uses_explicit_credentials(self) -> bool:
        return self.access_key is not None or self.secret_key is not None

    def _get_client(self) -> Any:
        """Get or create the boto3 S3 client."""
        if self._client is None:
            boto_config = BotoConfig(
                connect_timeout=self.timeout,
                read_timeout=self.timeout,
                retries={"max_attempts": self.max_retries, "mode": "standard"},
            )
            kwargs: dict[str, Any] = {"config": boto_config}
            if self.region:
                kwargs["region_name"] = self.region
            if self.endpoint_url:
                kwargs["endpoint_url"] = self.endpoint_url
            if self.uses_explicit_credentials:
                kwargs["aws_access_key_id"] = self.access_key
                kwargs["aws_secret_access_key"] = self.secret_key
            else:
                logger.debug("No explicit credentials; using boto3 credential chain")
            self._client = boto3.client("s3", **kwargs)
        return self._client

    def _translate_error(
        self, e: Exception, operation: str, bucket: str, key: str
    ) -> ObjectStoreError:
        """Convert a botocore exception into an ObjectStoreError.

        Args:
            e: The botocore exception
            operation: Name of the failed operation, for the message
            bucket: Bucket the operation addressed
            key: Key the operation addressed

        Returns:
            The exception to raise
        """
        location = f"s3://{bucket}/{key}"
        if isinstance(e, ClientError):
            error = e.response.get("Error", {})
            code = str(error.get("Code", ""))
            message = error.get("Message") or code
            if code in _NOT_FOUND_CODES:
                return ObjectNotFoundError(f"{location} not found", key=key)
            return ObjectStoreError(
                f"{operation} {location} failed: {message}", key=key
            )
        return ObjectStoreError(f"{operation} {location} failed: {e}", key=key)

    def list_objects(self, bucket: str, prefix: str = "") -> list[RemoteObject]:
        """List every object under a prefix, following pagination.

        Args:
            bucket: Bucket name
            prefix: Key prefix ("" for the whole bucket)

        Returns:
            List of RemoteObject in listing order
        """
        client = self._get_client()
        objects: list[RemoteObject] = []
        try:
            paginator = client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    objects.append(
                        RemoteObject(key=item["Key"], size=item.get("Size", 0))
                    )
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "List", bucket, prefix) from e
        logger.debug(f"Listed {len(objects)} objects in s3://{bucket}/{prefix}")
        return objects

    def get_object(self, bucket: str, key: str) -> BinaryIO:
        """Open an object's body for reading.

        The caller closes the stream. Errors while reading it are raised as
        ObjectStoreError.
        """
        try:
            response = self._get_client().get_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "Get", bucket, key) from e
        return _ObjectBody(  # type: ignore[return-value]
            response["Body"],
            lambda e: self._translate_error(e, "Read", bucket, key),
        )

    def put_object(self, bucket: str, key: str, body: BinaryIO) -> None:
        try:
            self._get_client().put_object(Bucket=bucket, Key=key, Body=body)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "Put", bucket, key) from e

    def delete_object(self, bucket: str, key: str) -> None:
        """Delete an object. Deleting an absent key is not an error on S3."""
        try:
            self._get_client().delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "Delete", bucket, key) from e

    def copy_object(
        self, bucket: str, source_key: str, dest_bucket: str, dest_key: str
    ) -> None:
        try:
            self._get_client().copy_object(
                Bucket=dest_bucket,
                Key=dest_key,
                CopySource={"Bucket": bucket, "Key": source_key},
            )
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "Copy", bucket, source_key) from e
