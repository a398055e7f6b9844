"""Core engine for rebuilding an S3-hosted repository."""

import logging
import tempfile
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

from rich.progress import BarColumn, Progress, SpinnerColumn, TaskID, TextColumn

from ..config import RebuildOptions
from ..exceptions import DownloadError, ObjectStoreError, ValidationError
from ..indexer import RepositoryIndexer
from ..location import parse_repository_location
from ..output import OutputFormatter
from ..store import ObjectStore, RemoteObject
from ..utils import format_size
from .context import RemoteSnapshotRename, SyncContext
from .mirror import LocalMirror
from .operations import SyncOperations
from .reconciler import SnapshotReconciler
from .snapshots import classify_snapshot

logger = logging.getLogger(__name__)


class SyncEngine:
    """Rebuilds a repository by mirroring, reconciling and republishing it.

    A run executes six stages strictly in order: prepare, download,
    validate, reconcile, rebuild and publish. Publishing uploads the new
    metadata before any remote object is deleted or renamed, so a client
    reading the repository concurrently always finds every file the live
    metadata declares.
    """

    def __init__(
        self,
        store: ObjectStore,
        indexer: RepositoryIndexer,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize the engine.

        Args:
            store: Remote object store holding the repository
            indexer: Indexer used to validate and regenerate metadata
            output: Output formatter for displaying progress/status
        """
        self.store = store
        self.indexer = indexer
        self.output = output or OutputFormatter()
        self.operations = SyncOperations(store)
        self.reconciler = SnapshotReconciler()

    def rebuild(self, options: RebuildOptions) -> dict:
        """Run the whole rebuild pipeline.

        Args:
            options: Run parameters

        Returns:
            Dictionary with run statistics

        Raises:
            S3RepoError: If any stage fails; the run stops at that stage

        Examples:
            >>> engine = SyncEngine(S3ObjectStore(), CreaterepoIndexer())
            >>> stats = engine.rebuild(RebuildOptions("s3://bucket/repo"))
            >>> print(f"Deleted {stats['deletes_remote']} old snapshot(s)")
        """
        options.validate()
        start_time = time.time()

        context = self._prepare(options)
        self._download_repository(context, options.workers)
        if options.skip_validate:
            logger.debug("Skipping repository validation")
        else:
            self._validate_repository(context)
        if options.remove_old_snapshots:
            self._remove_old_snapshots(context)
        self._rebuild_index(context)
        self._publish(context, options)

        logger.debug(f"Rebuild took {time.time() - start_time:.2f}s")
        if not self.output.quiet:
            self._display_summary(context.stats, dry_run=options.skip_publish)
        return context.stats

    def _prepare(self, options: RebuildOptions) -> SyncContext:
        """Resolve the location and set up the staging directory.

        Args:
            options: Run parameters

        Returns:
            Fresh SyncContext for the run
        """
        location = parse_repository_location(options.repository_path)
        if location.has_relative_folder:
            self.output.info(
                f"Using bucket '{location.bucket}' and folder "
                f"'{location.relative_folder}' as repository..."
            )
        else:
            self.output.info(f"Using bucket '{location.bucket}' as repository...")

        staging = options.staging_directory
        if staging is None:
            staging = Path(tempfile.mkdtemp(prefix="s3repo-"))
        self.output.info(f"Using {staging.resolve()} as staging directory.")

        mirror = LocalMirror(staging)
        if options.skip_pre_clean:
            self.output.warning("Not cleaning staging directory!")
            staging.mkdir(parents=True, exist_ok=True)
        else:
            mirror.clean()

        return SyncContext(
            location=location,
            mirror=mirror,
            repo_root=mirror.path_for(location.relative_folder or ""),
            excluded_files=list(options.excluded_files),
        )

    def _list_repository(self, context: SyncContext) -> list[RemoteObject]:
        prefix = context.location.key_prefix
        try:
            objects = self.store.list_objects(context.bucket, prefix)
        except ObjectStoreError as e:
            raise DownloadError(
                f"Failed to list s3://{context.bucket}/{prefix}: {e}", key=prefix
            ) from e
        logger.debug(
            f"Found {len(objects)} objects in bucket '{context.bucket}' "
            f"with prefix '{prefix}'"
        )
        return objects

    def _download_repository(self, context: SyncContext, max_workers: int) -> None:
        """Download every repository object and record snapshot metadata.

        Snapshot classification happens here, on the calling thread; only
        the object fetches are handed to worker threads.

        Args:
            context: Run context (snapshots and stats are updated)
            max_workers: Number of parallel download workers

        Raises:
            DownloadError: If listing, fetching or writing fails
        """
        self.output.info("Downloading entire repository...")
        logger.debug(f"Excluded files = {context.excluded_files}")

        pending: list[RemoteObject] = []
        for remote_object in self._list_repository(context):
            key = remote_object.key
            if remote_object.is_folder_marker:
                logger.debug(f"No need to download {key}, it's a folder")
                continue
            if not context.mirror.is_safe_key(key):
                logger.warning(f"Key {key!r} resolves outside the staging directory")
                self.output.warning(f"Skipping '{key}': it points outside the repository")
                context.stats["unsafe_skips"] += 1
                continue

            repo_relative_path = context.location.to_repo_relative_path(key)
            logger.debug(f"repo relative path = {repo_relative_path}")
            if context.is_excluded(repo_relative_path):
                self.output.info(
                    f"No need to download {key}, it's explicitly excluded "
                    "(and will be removed from S3)"
                )
                context.stats["excluded"] += 1
                continue

            snapshot = classify_snapshot(key, context.location)
            if snapshot is not None:
                context.add_snapshot(snapshot)

            if context.mirror.is_file(key):
                self.output.info(
                    f"Skipping download of '{key}' as file already exists..."
                )
                context.stats["download_skips"] += 1
            else:
                pending.append(remote_object)

        if not pending:
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            transient=True,
            disable=not self.output.show_progress,
        ) as progress:
            task = progress.add_task("Downloading objects...", total=len(pending))
            if max_workers > 1 and len(pending) > 1:
                self._download_parallel(context, pending, max_workers, progress, task)
            else:
                for remote_object in pending:
                    self._download_single(context, remote_object)
                    progress.update(task, advance=1)

        context.stats["downloads"] += len(pending)

    def _download_single(self, context: SyncContext, remote_object: RemoteObject) -> str:
        key = remote_object.key
        logger.debug(f"Downloading '{key}' ({format_size(remote_object.size)})...")
        start = time.time()
        self.operations.download_object(
            context.bucket, key, context.mirror.path_for(key)
        )
        logger.debug(f"Download of {key} took {time.time() - start:.2f}s")
        return key

    def _download_parallel(
        self,
        context: SyncContext,
        pending: list[RemoteObject],
        max_workers: int,
        progress: Progress,
        task: TaskID,
    ) -> None:
        """Download objects using a ThreadPoolExecutor.

        The first failure cancels the downloads that have not started and is
        re-raised.
        """
        logger.debug(f"Downloading {len(pending)} objects with {max_workers} workers")
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(self._download_single, context, remote_object)
                for remote_object in pending
            ]
            for future in as_completed(futures):
                try:
                    future.result()
                except DownloadError:
                    for other in futures:
                        other.cancel()
                    raise
                progress.update(task, advance=1)

    def _validate_repository(self, context: SyncContext) -> None:
        """Check that the metadata exists and every declared file was mirrored.

        Raises:
            ValidationError: If the metadata is missing or a file is absent
        """
        self.output.info("Validating downloaded repository...")
        if not self.indexer.index_exists(context.repo_root):
            raise ValidationError(
                f"Repository does not exist: no metadata in {context.repo_root}",
                key=str(context.repo_root),
            )
        for repo_relative_path in self.indexer.parse_declared_files(context.repo_root):
            bucket_key = context.location.to_bucket_key(repo_relative_path)
            if not context.mirror.is_file(bucket_key):
                raise ValidationError(
                    f"Repository metadata declared file {repo_relative_path} "
                    "but the file does not exist.",
                    key=bucket_key,
                )

    def _remove_old_snapshots(self, context: SyncContext) -> None:
        """Delete superseded snapshots locally and rename the kept ones.

        Remote deletes and renames are only recorded here; they are applied
        after the new metadata has been published.

        Raises:
            LocalCleanupError: If a superseded snapshot cannot be deleted
        """
        self.output.info("Removing old snapshots...")
        plan = self.reconciler.plan(context.snapshots)
        if plan.is_empty:
            self.output.info("No old snapshots to remove.")

        for snapshot in plan.to_delete:
            self.output.info(f"Deleting old snapshot '{snapshot.bucket_key}', locally...")
            context.mirror.delete(snapshot.bucket_key)
            context.add_snapshot_to_delete(snapshot)
            context.stats["deletes_local"] += 1

        for snapshot, new_filename in plan.to_rename:
            self.output.info(f"Renaming {snapshot.bucket_key} => {new_filename}")
            try:
                new_key = context.mirror.rename(snapshot.bucket_key, new_filename)
            except OSError as e:
                logger.warning(f"Failed to rename {snapshot.bucket_key}: {e}")
                self.output.warning(
                    f"Failed to rename {snapshot.bucket_key} to {new_filename}"
                )
                continue
            context.add_snapshot_to_rename(
                RemoteSnapshotRename(source=snapshot, new_bucket_key=new_key)
            )
            context.stats["renames_local"] += 1

        for message in plan.warnings:
            self.output.warning(message)

    def _rebuild_index(self, context: SyncContext) -> None:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
            disable=not self.output.show_progress,
        ) as progress:
            progress.add_task("Rebuilding repository metadata...", total=None)
            self.indexer.rebuild(context.repo_root)
        self.output.info("Rebuilt repository metadata.")

    def _publish(self, context: SyncContext, options: RebuildOptions) -> None:
        """Propagate the rebuilt repository to the remote store.

        Steps run in a fixed order and each completes before the next:
        upload, delete excluded files, delete old snapshots, rename kept
        snapshots. Completed operations are not rolled back on failure.

        Raises:
            PublishError: If any remote operation fails
        """
        dry_run = options.skip_publish
        log_prefix = ""
        if dry_run:
            self.output.info(
                "NOTE: Per configuration, no remote operations will be "
                "performed on the S3 repository."
            )
            log_prefix = "SKIPPING: "

        bucket = context.bucket
        upload_root = (
            self.indexer.index_directory(context.repo_root)
            if options.upload_metadata_only
            else context.mirror.root
        )
        for local_file in context.mirror.list_files(upload_root):
            self.output.info(
                f"{log_prefix}Uploading {local_file.path.name} to "
                f"s3://{bucket}/{local_file.key}..."
            )
            if not dry_run:
                self.operations.upload_file(bucket, local_file.key, local_file.path)
            context.stats["uploads"] += 1

        for repo_relative_path in context.excluded_files:
            bucket_key = context.location.to_bucket_key(repo_relative_path)
            self.output.info(
                f"{log_prefix}Deleting excluded file '{bucket_key}' "
                "from S3 (if it exists)..."
            )
            if dry_run or self.operations.delete_remote(
                bucket, bucket_key, missing_ok=True
            ):
                context.stats["deletes_remote"] += 1

        # A rename target is overwritten by its copy; deleting it first would
        # leave the published metadata pointing at a missing object.
        rename_targets = {r.new_bucket_key for r in context.snapshots_to_rename}
        for snapshot in context.snapshots_to_delete:
            if snapshot.bucket_key in rename_targets:
                logger.debug(f"Not deleting {snapshot.bucket_key}; it is a rename target")
                continue
            self.output.info(
                f"{log_prefix}Deleting old snapshot '{snapshot.bucket_key}' from S3..."
            )
            if not dry_run:
                self.operations.delete_remote(bucket, snapshot.bucket_key)
            context.stats["deletes_remote"] += 1

        for rename in context.snapshots_to_rename:
            source_key = rename.source.bucket_key
            self.output.info(
                f"{log_prefix}Renaming key '{source_key}' to "
                f"'{rename.new_bucket_key}' in S3..."
            )
            if not dry_run:
                self.operations.rename_remote(bucket, source_key, rename.new_bucket_key)
            context.stats["renames_remote"] += 1

    def _display_summary(self, stats: dict, dry_run: bool) -> None:
        """Display run summary.

        Args:
            stats: Statistics dictionary
            dry_run: Whether this was a dry run
        """
        self.output.print("")
        if dry_run:
            self.output.success("Dry run complete!")
        else:
            self.output.success("Rebuild complete!")

        if stats["downloads"] > 0:
            self.output.info(f"  Downloaded: {stats['downloads']}")
        if stats["download_skips"] > 0:
            self.output.info(f"  Already present: {stats['download_skips']}")
        if stats["excluded"] > 0:
            self.output.info(f"  Excluded: {stats['excluded']}")
        if stats["unsafe_skips"] > 0:
            self.output.info(f"  Skipped unsafe keys: {stats['unsafe_skips']}")
        if stats["deletes_local"] > 0:
            self.output.info(f"  Old snapshots removed: {stats['deletes_local']}")
        if stats["renames_local"] > 0:
            self.output.info(f"  Snapshots renamed: {stats['renames_local']}")
        verb = "Would upload" if dry_run else "Uploaded"
        self.output.info(f"  {verb}: {stats['uploads']}")
        if stats["deletes_remote"] > 0:
            verb = "Would delete remotely" if dry_run else "Deleted remotely"
            self.output.info(f"  {verb}: {stats['deletes_remote']}")
        if stats["renames_remote"] > 0:
            verb = "Would rename remotely" if dry_run else "Renamed remotely"
            self.output.info(f"  {verb}: {stats['renames_remote']}")
