"""Per-release synchronization of ChangeLog.txt into RSS feeds."""

from datetime import UTC, datetime
from pathlib import Path

from .config import Config
from .errors import SyncError
from .feed import read_freshness_marker, render, write_feed
from .fetch import ChangeLogFetcher
from .logging_config import ExecutionLogger, create_execution_logger
from .models import NotNewer, ReleaseResult, SourceLocation, SyncSummary


def feed_title(location: SourceLocation) -> str:
    return f"ChangeLog.txt for {location.name}"


def sync_release(
    fetcher: ChangeLogFetcher,
    location: SourceLocation,
    dest_dir: Path,
    logger: ExecutionLogger,
    quiet: bool = False,
) -> ReleaseResult:
    """Bring one release's feed up to date.

    Reads the feed file's mtime once, fetches conditionally on it (or
    unconditionally when there is no feed yet), then renders and writes the
    feed stamped with the document's Last-Modified. Every SyncError is
    logged and reported in the result rather than raised.
    """
    path = dest_dir / location.feed_filename
    if not quiet:
        logger.info(
            f"Processing {location.base_url}",
            release=location.name,
            url=location.changelog_url,
        )

    try:
        known_fresh_as_of = read_freshness_marker(path)
        if known_fresh_as_of is None:
            outcome = fetcher.fetch(location)
        else:
            outcome = fetcher.fetch_if_newer(location, known_fresh_as_of)

        if isinstance(outcome, NotNewer):
            if not quiet:
                logger.info(
                    f"{location.name}: remote ChangeLog.txt is not newer",
                    release=location.name,
                    remote_modified=outcome.remote_modified.isoformat(),
                )
            return ReleaseResult(
                location=location,
                status="not_newer",
                modified=outcome.remote_modified,
            )

        tree = render(feed_title(location), location.base_url, outcome.entries)
        write_feed(path, tree, outcome.modified)
    except SyncError as e:
        logger.log_release_failure(location.name, e)
        return ReleaseResult(
            location=location,
            status="failed",
            error_kind=type(e).__name__,
            error=str(e),
        )

    logger.info(
        f"Wrote {path}",
        release=location.name,
        entries_count=len(outcome.entries),
        last_modified=outcome.modified.isoformat(),
    )
    return ReleaseResult(
        location=location,
        status="written",
        modified=outcome.modified,
        entries=len(outcome.entries),
    )


def sync_all(config: Config, fetcher: ChangeLogFetcher | None = None) -> SyncSummary:
    """Sync every configured release, one after another.

    Raises:
        ConfigError: If the destination directory is unusable
    """
    execution_id = f"run_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    logger = create_execution_logger("main", execution_id)

    dest_dir = config.check_dest()
    if fetcher is None:
        fetcher = ChangeLogFetcher(
            timeout=config.timeout, verify=config.verify, execution_id=execution_id
        )

    locations = config.locations()
    logger.log_execution_start(dest=str(dest_dir), release_count=len(locations))

    summary = SyncSummary()
    for location in locations:
        summary.results.append(
            sync_release(fetcher, location, dest_dir, logger, quiet=config.quiet)
        )

    logger.log_metrics(summary.to_metrics())
    logger.log_execution_end(success=summary.count("failed") == 0)
    return summary
