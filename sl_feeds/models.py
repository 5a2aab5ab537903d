"""Data models for sl-feeds."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

SECURITY_FIX_MARK = "(* Security fix *)"


@dataclass(frozen=True)
class Change:
    """One package-change line of a ChangeLog.txt entry."""

    path: str
    action: str
    notes: tuple[str, ...] = ()

    @property
    def security_fix(self) -> bool:
        return SECURITY_FIX_MARK in self.action or any(
            SECURITY_FIX_MARK in note for note in self.notes
        )


@dataclass(frozen=True)
class Entry:
    """One dated block of ChangeLog.txt."""

    date: datetime
    commentary: str = ""
    changes: tuple[Change, ...] = ()

    @property
    def security_fix(self) -> bool:
        return any(change.security_fix for change in self.changes)

    def to_changelog(self) -> str:
        """Render the entry body back into ChangeLog.txt text."""
        lines = []
        if self.commentary:
            lines.append(self.commentary)
        for change in self.changes:
            lines.append(f"{change.path}:  {change.action}".rstrip())
            lines.extend(f"  {note}" for note in change.notes)
        return "\n".join(lines)


@dataclass(frozen=True)
class SourceLocation:
    """A release on a mirror, plus the local file name prefix."""

    mirror_url: str
    release: str
    prefix: str = ""

    @property
    def base_url(self) -> str:
        """Mirror URL joined with the release path segment."""
        return f"{self.mirror_url.rstrip('/')}/{self.release}"

    @property
    def changelog_url(self) -> str:
        return f"{self.base_url}/ChangeLog.txt"

    @property
    def name(self) -> str:
        """Release name as used locally, including the prefix."""
        return f"{self.prefix}{self.release}"

    @property
    def feed_filename(self) -> str:
        return f"{self.name}.rss"


@dataclass(frozen=True)
class Fetched:
    """A full fetch: parsed entries and the document's Last-Modified time."""

    entries: list[Entry]
    modified: datetime


@dataclass(frozen=True)
class NotNewer:
    """The remote document is not newer than the known-fresh-as-of time."""

    remote_modified: datetime


ReleaseStatus = Literal["written", "not_newer", "failed"]


@dataclass
class ReleaseResult:
    """Outcome of syncing one release."""

    location: SourceLocation
    status: ReleaseStatus
    modified: datetime | None = None
    entries: int = 0
    error_kind: str | None = None
    error: str | None = None


@dataclass
class SyncSummary:
    """Counts across one run over all configured releases."""

    results: list[ReleaseResult] = field(default_factory=list)

    def count(self, status: ReleaseStatus) -> int:
        return sum(1 for result in self.results if result.status == status)

    @property
    def errors(self) -> list[str]:
        return [
            f"{result.location.name}: {result.error}"
            for result in self.results
            if result.status == "failed"
        ]

    def to_metrics(self) -> dict:
        return {
            "releases_processed": len(self.results),
            "feeds_written": self.count("written"),
            "releases_not_newer": self.count("not_newer"),
            "releases_failed": self.count("failed"),
            "errors": self.errors,
        }
