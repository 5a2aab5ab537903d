"""Parser for Slackware-style ChangeLog.txt documents.

A ChangeLog.txt is a sequence of blocks, each introduced by a date line::

    Mon Jan 23 02:05:27 UTC 2017
    Commentary about this batch of updates.
    a/kernel-generic-4.4.44-x86_64-1.txz:  Upgraded.
      Patched a local privilege escalation.
      (* Security fix *)
    +--------------------------+

Unindented ``path/to/package: action`` lines are package changes, indented
lines right after a change are notes on that change, and anything else is
commentary on the block.
"""

import re
from datetime import UTC, datetime, tzinfo
from typing import BinaryIO

from dateutil import parser as date_parser
from dateutil import tz

from .errors import ChangeLogParseError
from .models import Change, Entry

DAYS = "Mon|Tue|Wed|Thu|Fri|Sat|Sun"
MONTHS = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec"

HEADER_RE = re.compile(
    rf"^(?:{DAYS}) (?:{MONTHS}) +\d{{1,2}} \d{{1,2}}:\d{{2}}:\d{{2}} [A-Z]{{2,5}} \d{{4}}$"
)
HEADER_START_RE = re.compile(rf"^(?:{DAYS}) (?:{MONTHS})\b")
DIVIDER_RE = re.compile(r"^\+-+\+$")
CHANGE_RE = re.compile(r"^(?P<path>[^\s:]*/[^\s:]*):(?:\s+(?P<action>.*))?$")

# Zone abbreviations seen in older ChangeLog.txt files.
US_ZONES = {
    "EST": tz.tzoffset("EST", -5 * 3600),
    "EDT": tz.tzoffset("EDT", -4 * 3600),
    "CST": tz.tzoffset("CST", -6 * 3600),
    "CDT": tz.tzoffset("CDT", -5 * 3600),
    "MST": tz.tzoffset("MST", -7 * 3600),
    "MDT": tz.tzoffset("MDT", -6 * 3600),
    "PST": tz.tzoffset("PST", -8 * 3600),
    "PDT": tz.tzoffset("PDT", -7 * 3600),
}


def _zone(name: str, offset: int | None) -> tzinfo:
    if offset:
        return tz.tzoffset(name, offset)
    return US_ZONES.get(name, tz.UTC)


def parse_date(line: str) -> datetime:
    """Parse a ChangeLog.txt date line into an aware datetime.

    Raises:
        ChangeLogParseError: If the line is not a valid date
    """
    try:
        date = date_parser.parse(line, tzinfos=_zone)
    except (ValueError, OverflowError) as e:
        raise ChangeLogParseError(f"Invalid date header {line!r}: {e}") from e

    if date.tzinfo is None:
        date = date.replace(tzinfo=UTC)
    return date


def format_date(date: datetime) -> str:
    """Format a datetime the way ChangeLog.txt date lines are written.

    The day of month is space padded, as date(1) prints it.
    """
    return f"{date:%a %b} {date.day:2d} {date:%H:%M:%S %Z %Y}"


class _Block:
    """Accumulates the lines of the block currently being read."""

    def __init__(self, date: datetime):
        self.date = date
        self.commentary: list[str] = []
        self.changes: list[tuple[str, str, list[str]]] = []

    def add(self, line: str) -> None:
        match = CHANGE_RE.match(line)
        if match:
            action = (match.group("action") or "").strip()
            self.changes.append((match.group("path"), action, []))
        elif line[0].isspace() and self.changes:
            self.changes[-1][2].append(line.strip())
        else:
            self.commentary.append(line.strip())

    def entry(self) -> Entry:
        return Entry(
            date=self.date,
            commentary="\n".join(self.commentary),
            changes=tuple(
                Change(path=path, action=action, notes=tuple(notes))
                for path, action, notes in self.changes
            ),
        )


def parse_text(text: str) -> list[Entry]:
    """Parse decoded ChangeLog.txt text into entries, in document order."""
    entries: list[Entry] = []
    block: _Block | None = None

    lines = text.split("\n")
    last = len(lines) - 1
    for index, raw in enumerate(lines):
        line = raw.rstrip("\r")
        stripped = line.strip()

        if not stripped or DIVIDER_RE.match(stripped):
            continue

        if HEADER_RE.match(stripped):
            if block is not None:
                entries.append(block.entry())
            block = _Block(parse_date(stripped))
            continue

        # Only the final piece can lack its newline.
        if index == last and HEADER_START_RE.match(stripped):
            raise ChangeLogParseError(f"Stream ended mid-header: {stripped!r}")

        # Lines ahead of the first date line belong to no entry.
        if block is None:
            continue

        block.add(line.rstrip())

    if block is not None:
        entries.append(block.entry())
    return entries


def parse(stream: BinaryIO) -> list[Entry]:
    """Parse a ChangeLog.txt byte stream into entries.

    Args:
        stream: Binary file-like object holding the document

    Returns:
        Entries in the order they appear in the document

    Raises:
        ChangeLogParseError: If the stream is not valid UTF-8 or a date line
            is malformed
    """
    try:
        text = stream.read().decode("utf-8")
    except UnicodeDecodeError as e:
        raise ChangeLogParseError(f"ChangeLog.txt is not valid UTF-8: {e}") from e
    return parse_text(text)
