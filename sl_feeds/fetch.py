"""Freshness-gated retrieval of a release's ChangeLog.txt."""

import io
from datetime import datetime

import requests
from dateutil import parser as date_parser

from . import changelog
from .errors import MetadataError, ProtocolError, TransportError
from .logging_config import create_execution_logger
from .models import Fetched, NotNewer, SourceLocation

USER_AGENT = "sl-feeds/1.0 (ChangeLog.txt to RSS)"

# Any date or time field the header leaves out would come from these and differ.
INCOMPLETE_DEFAULTS = (
    datetime(1900, 1, 1, 0, 0, 0),
    datetime(2000, 12, 28, 23, 59, 59),
)


def parse_last_modified(response: requests.Response) -> datetime:
    """Extract the Last-Modified header of a response as an aware datetime.

    Raises:
        MetadataError: If the header is missing, unparsable, incomplete or
            has no zone
    """
    value = response.headers.get("Last-Modified")
    if not value:
        raise MetadataError(f"No Last-Modified header from {response.url}")

    try:
        modified = date_parser.parse(value, default=INCOMPLETE_DEFAULTS[0])
        check = date_parser.parse(value, default=INCOMPLETE_DEFAULTS[1])
    except (ValueError, OverflowError) as e:
        raise MetadataError(
            f"Unparsable Last-Modified {value!r} from {response.url}"
        ) from e

    if modified != check:
        raise MetadataError(
            f"Incomplete Last-Modified {value!r} from {response.url}"
        )

    if modified.tzinfo is None:
        raise MetadataError(
            f"Last-Modified {value!r} from {response.url} has no timezone"
        )
    return modified


class ChangeLogFetcher:
    """Fetches ChangeLog.txt documents, skipping ones that have not changed."""

    def __init__(
        self,
        timeout: float = 30,
        verify: bool | str = True,
        execution_id: str | None = None,
        session: requests.Session | None = None,
    ):
        """Initialize ChangeLogFetcher.

        Args:
            timeout: HTTP request timeout in seconds
            verify: TLS verification flag, or a path to a CA bundle
            execution_id: Execution ID for logging context
            session: Optional pre-built requests session
        """
        self.timeout = timeout
        self.logger = create_execution_logger("fetcher", execution_id)
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        self.session.verify = verify

        self.logger.debug("ChangeLogFetcher initialized", timeout=timeout)

    def _request(self, method: str, url: str) -> requests.Response:
        try:
            response = self.session.request(
                method, url, timeout=self.timeout, allow_redirects=True
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e

        if response.status_code != requests.codes.ok:
            response.close()
            raise ProtocolError(response.status_code, url)
        return response

    def fetch(self, location: SourceLocation) -> Fetched:
        """Fetch and parse the full ChangeLog.txt of a release.

        Args:
            location: Release to fetch

        Returns:
            Fetched entries with the document's Last-Modified time

        Raises:
            TransportError: If the mirror cannot be reached
            ProtocolError: If the mirror answers with a non-200 status
            MetadataError: If Last-Modified is missing or unparsable
            ChangeLogParseError: If the body cannot be parsed
        """
        url = location.changelog_url
        self.logger.info("Downloading ChangeLog.txt", url=url)

        with self._request("GET", url) as response:
            modified = parse_last_modified(response)
            body = response.content

        entries = changelog.parse(io.BytesIO(body))
        self.logger.info(
            "ChangeLog.txt parsed",
            url=url,
            entries_count=len(entries),
            content_length=len(body),
            last_modified=modified.isoformat(),
        )
        return Fetched(entries=entries, modified=modified)

    def fetch_if_newer(
        self, location: SourceLocation, known_fresh_as_of: datetime
    ) -> Fetched | NotNewer:
        """Fetch the ChangeLog.txt only if it changed after known_fresh_as_of.

        A HEAD request checks Last-Modified first. Equal times count as not
        newer.

        Returns:
            Fetched when the remote is strictly newer, NotNewer otherwise

        Raises:
            Same as fetch()
        """
        url = location.changelog_url
        with self._request("HEAD", url) as response:
            remote_modified = parse_last_modified(response)

        if remote_modified > known_fresh_as_of:
            self.logger.debug(
                "Remote ChangeLog.txt is newer",
                url=url,
                remote_modified=remote_modified.isoformat(),
                known_fresh_as_of=known_fresh_as_of.isoformat(),
            )
            return self.fetch(location)
        return NotNewer(remote_modified=remote_modified)
