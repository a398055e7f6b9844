"""Remote and local file operations used by the rebuild engine."""

import logging
import shutil
from pathlib import Path

from ..exceptions import (
    DownloadError,
    ObjectNotFoundError,
    ObjectStoreError,
    PublishError,
)
from ..store import ObjectStore

logger = logging.getLogger(__name__)

PARTIAL_SUFFIX = ".part"


class SyncOperations:
    """Wraps object store calls and maps their failures to stage errors."""

    def __init__(self, store: ObjectStore):
        """Initialize sync operations.

        Args:
            store: Remote object store
        """
        self.store = store

    def download_object(self, bucket: str, key: str, local_path: Path) -> Path:
        """Download an object to a local file.

        The body is streamed into a sibling ``.part`` file that replaces
        ``local_path`` only once the whole body has been written, so a failed
        fetch never leaves a truncated file behind.

        Args:
            bucket: Bucket name
            key: Object key
            local_path: Local path where the object should be saved

        Returns:
            Path where the object was saved

        Raises:
            DownloadError: If fetching or writing fails
        """
        partial_path = local_path.with_name(local_path.name + PARTIAL_SUFFIX)
        try:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            body = self.store.get_object(bucket, key)
            try:
                with open(partial_path, "wb") as f:
                    shutil.copyfileobj(body, f)
                partial_path.replace(local_path)
            except BaseException:
                self._discard(partial_path)
                raise
            finally:
                body.close()
        except (ObjectStoreError, OSError) as e:
            raise DownloadError(
                f"Failed to download object from s3://{bucket}/{key}: {e}", key=key
            ) from e
        return local_path

    def _discard(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove {path}: {e}")

    def upload_file(self, bucket: str, key: str, local_path: Path) -> None:
        """Upload a local file.

        Raises:
            PublishError: If reading or uploading fails
        """
        try:
            with open(local_path, "rb") as f:
                self.store.put_object(bucket, key, f)
        except (ObjectStoreError, OSError) as e:
            raise PublishError(
                f"Failed to upload {local_path} to s3://{bucket}/{key}: {e}", key=key
            ) from e

    def delete_remote(self, bucket: str, key: str, missing_ok: bool = False) -> bool:
        """Delete a remote object.

        Args:
            bucket: Bucket name
            key: Object key
            missing_ok: Treat an absent object as already deleted

        Returns:
            False if the object was absent and missing_ok is set, else True

        Raises:
            PublishError: If the delete fails
        """
        try:
            self.store.delete_object(bucket, key)
        except ObjectNotFoundError as e:
            if not missing_ok:
                raise PublishError(
                    f"Failed to delete s3://{bucket}/{key}: {e}", key=key
                ) from e
            logger.debug(f"s3://{bucket}/{key} does not exist; nothing to delete")
            return False
        except ObjectStoreError as e:
            raise PublishError(
                f"Failed to delete s3://{bucket}/{key}: {e}", key=key
            ) from e
        return True

    def rename_remote(self, bucket: str, source_key: str, target_key: str) -> None:
        """Rename a remote object by copying it and deleting the source.

        Raises:
            PublishError: If the copy or the delete fails
        """
        try:
            self.store.copy_object(bucket, source_key, bucket, target_key)
        except ObjectStoreError as e:
            raise PublishError(
                f"Failed to copy s3://{bucket}/{source_key} to {target_key}: {e}",
                key=source_key,
            ) from e
        self.delete_remote(bucket, source_key)
