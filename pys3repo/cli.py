"""CLI interface for rebuilding S3-hosted yum repositories."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .config import RebuildOptions, config
from .exceptions import S3RepoError
from .indexer import CreaterepoIndexer
from .output import OutputFormatter
from .store import S3ObjectStore
from .sync import SyncEngine
from .utils import parse_excludes

logger = logging.getLogger(__name__)


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pys3repo")
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """PyS3Repo - Rebuild yum repositories hosted in S3."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pys3repo").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command("rebuild-repo")
@click.argument("repository_path")
@click.option(
    "--staging-directory",
    "-d",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Local staging directory (default: a new temporary directory)",
)
@click.option(
    "--access-key", envvar=config.ENV_ACCESS_KEY, help="AWS access key id"
)
@click.option(
    "--secret-key", envvar=config.ENV_SECRET_KEY, help="AWS secret access key"
)
@click.option("--region", envvar=config.ENV_REGION, help="AWS region")
@click.option(
    "--endpoint-url",
    envvar=config.ENV_ENDPOINT_URL,
    help="Endpoint URL for S3-compatible object stores",
)
@click.option(
    "--excludes",
    default="",
    help="Comma-delimited repo-relative paths to remove from the repository",
)
@click.option(
    "--do-not-validate",
    is_flag=True,
    help="Do not validate the repository metadata before rebuilding",
)
@click.option(
    "--remove-old-snapshots",
    is_flag=True,
    help="Keep only the newest build of every SNAPSHOT artifact",
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Run every step except the remote operations on S3",
)
@click.option(
    "--upload-metadata-only/--upload-all",
    default=True,
    help="Upload only the regenerated metadata (default) or the whole repository",
)
@click.option(
    "--do-not-pre-clean",
    is_flag=True,
    help="Keep existing staging files; they are not downloaded again",
)
@click.option(
    "--createrepo",
    envvar=config.ENV_CREATEREPO,
    default=None,
    help="createrepo executable (default: createrepo)",
)
@click.option(
    "--workers",
    "-j",
    type=int,
    default=None,
    help="Number of parallel download workers (default: 1)",
)
@click.pass_context
def rebuild_repo(
    ctx: Any,
    repository_path: str,
    staging_directory: Optional[Path],
    access_key: Optional[str],
    secret_key: Optional[str],
    region: Optional[str],
    endpoint_url: Optional[str],
    excludes: str,
    do_not_validate: bool,
    remove_old_snapshots: bool,
    dry_run: bool,
    upload_metadata_only: bool,
    do_not_pre_clean: bool,
    createrepo: Optional[str],
    workers: Optional[int],
) -> None:
    """Rebuild a yum repository stored in S3.

    REPOSITORY_PATH: s3://bucket/folder or /bucket/folder
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        options = RebuildOptions(
            repository_path=repository_path,
            staging_directory=staging_directory,
            excluded_files=parse_excludes(excludes),
            skip_validate=do_not_validate,
            remove_old_snapshots=remove_old_snapshots,
            skip_publish=dry_run,
            upload_metadata_only=upload_metadata_only,
            skip_pre_clean=do_not_pre_clean,
            workers=workers if workers is not None else config.workers,
        )
        store = S3ObjectStore(
            access_key=access_key,
            secret_key=secret_key,
            region=region,
            endpoint_url=endpoint_url,
        )
        engine = SyncEngine(store, CreaterepoIndexer(createrepo), out)
        stats = engine.rebuild(options)

        if out.json_output:
            out.output_json({"dry_run": dry_run, **stats})

    except KeyboardInterrupt:
        out.warning("\nRebuild cancelled by user")
        ctx.exit(130)
    except S3RepoError as e:
        logger.debug("Rebuild failed", exc_info=True)
        out.error(f"{e.stage} failed: {e}")
        ctx.exit(1)


if __name__ == "__main__":
    main()
