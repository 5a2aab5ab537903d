"""Render ChangeLog.txt entries as RSS 2.0 and persist them with their mtime."""

import os
import re
import tempfile
import xml.etree.ElementTree as ET
from datetime import UTC, datetime
from email.utils import format_datetime
from pathlib import Path

import feedparser

from .changelog import format_date
from .errors import PersistenceError
from .models import SECURITY_FIX_MARK, Entry

# Characters outside the XML 1.0 Char production.
INVALID_XML_CHARS_RE = re.compile(
    "[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]"
)


def xml_text(text: str) -> str:
    """Replace characters XML cannot carry with U+FFFD."""
    return INVALID_XML_CHARS_RE.sub("\ufffd", text)


def item_title(entry: Entry) -> str:
    title = format_date(entry.date)
    if entry.security_fix:
        title = f"{title} {SECURITY_FIX_MARK}"
    return title


def render(title: str, link: str, entries: list[Entry]) -> ET.ElementTree:
    """Build an RSS 2.0 document from entries, keeping their order.

    Args:
        title: Channel title
        link: Channel link, the mirror URL joined with the release
        entries: Entries as parsed from ChangeLog.txt

    Returns:
        ElementTree rooted at <rss>
    """
    root = ET.Element("rss", version="2.0")
    channel = ET.SubElement(root, "channel")
    ET.SubElement(channel, "title").text = xml_text(title)
    ET.SubElement(channel, "link").text = xml_text(link)
    ET.SubElement(channel, "description").text = xml_text(title)

    changelog_url = xml_text(f"{link}/ChangeLog.txt")
    for entry in entries:
        utc_date = entry.date.astimezone(UTC)
        item = ET.SubElement(channel, "item")
        ET.SubElement(item, "title").text = item_title(entry)
        ET.SubElement(item, "link").text = changelog_url
        ET.SubElement(item, "guid", isPermaLink="false").text = (
            f"{changelog_url}#{int(utc_date.timestamp())}"
        )
        ET.SubElement(item, "pubDate").text = format_datetime(utc_date, usegmt=True)
        ET.SubElement(item, "description").text = xml_text(entry.to_changelog())

    return ET.ElementTree(root)


def write_feed(path: str | Path, tree: ET.ElementTree, modified: datetime) -> None:
    """Atomically write a feed and stamp its mtime to modified.

    The document goes to a temporary file next to path, is checked to parse
    as a feed, gets its atime/mtime set, and only then replaces path. On any
    failure path is left as it was.

    Raises:
        PersistenceError: If writing, checking or stamping fails
    """
    path = Path(path)
    try:
        fd, tmp = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as e:
        raise PersistenceError(f"Failed to create a file next to {path}: {e}") from e

    try:
        with os.fdopen(fd, "wb") as f:
            tree.write(f, encoding="utf-8", xml_declaration=True)

        parsed = feedparser.parse(tmp)
        if parsed.bozo:
            raise PersistenceError(
                f"Rendered feed for {path} does not parse: {parsed.bozo_exception}"
            )

        # mkstemp creates 0600; feeds are meant to be served.
        os.chmod(tmp, 0o644)
        timestamp = modified.timestamp()
        os.utime(tmp, (timestamp, timestamp))
        os.replace(tmp, path)
    except PersistenceError:
        _discard(tmp)
        raise
    except OSError as e:
        _discard(tmp)
        raise PersistenceError(f"Failed to write {path}: {e}") from e


def _discard(tmp: str) -> None:
    try:
        os.remove(tmp)
    except FileNotFoundError:
        pass


def read_freshness_marker(path: str | Path) -> datetime | None:
    """Return the mtime of a previously written feed, or None if absent.

    Raises:
        PersistenceError: If the file exists but cannot be stat'ed
    """
    try:
        mtime = os.stat(path).st_mtime
    except FileNotFoundError:
        return None
    except OSError as e:
        raise PersistenceError(f"Failed to stat {path}: {e}") from e
    return datetime.fromtimestamp(mtime, UTC)
