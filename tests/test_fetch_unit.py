"""Unit tests for the freshness-gated ChangeLog.txt fetcher."""

from datetime import UTC, datetime, timedelta

import pytest
import requests

from conftest import SAMPLE_CHANGELOG, make_response
from sl_feeds.errors import (
    ChangeLogParseError,
    MetadataError,
    ProtocolError,
    TransportError,
)
from sl_feeds.fetch import ChangeLogFetcher
from sl_feeds.models import Fetched, NotNewer

MODIFIED = datetime(2017, 1, 23, 3, 0, 0, tzinfo=UTC)
URL = "http://mirror.example/slackware64-14.2/ChangeLog.txt"


class TestFetchUnit:
    """Unit tests for the unconditional fetch."""

    def test_fetch_returns_entries_and_last_modified(self, fetcher, session, location):
        session.request.return_value = make_response(body=SAMPLE_CHANGELOG)

        result = fetcher.fetch(location)

        assert isinstance(result, Fetched)
        assert result.modified == MODIFIED
        assert len(result.entries) == 3
        session.request.assert_called_once_with(
            "GET", URL, timeout=30, allow_redirects=True
        )

    def test_session_setup(self, session):
        fetcher = ChangeLogFetcher(timeout=5, verify="/etc/ssl/extra.pem", session=session)

        assert fetcher.timeout == 5
        assert session.verify == "/etc/ssl/extra.pem"
        assert session.headers["User-Agent"].startswith("sl-feeds/")

    def test_non_200_status_is_protocol_error(self, fetcher, session, location):
        session.request.return_value = make_response(status_code=404)

        with pytest.raises(ProtocolError) as excinfo:
            fetcher.fetch(location)

        assert excinfo.value.status_code == 404
        assert excinfo.value.url == URL
        assert str(excinfo.value) == f"404 status from {URL}"

    def test_connection_failure_is_transport_error(self, fetcher, session, location):
        session.request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(TransportError, match="connection refused"):
            fetcher.fetch(location)

    def test_timeout_is_transport_error(self, fetcher, session, location):
        session.request.side_effect = requests.Timeout("read timed out")

        with pytest.raises(TransportError):
            fetcher.fetch(location)

    def test_missing_last_modified(self, fetcher, session, location):
        session.request.return_value = make_response(
            body=SAMPLE_CHANGELOG, last_modified=None
        )

        with pytest.raises(MetadataError, match="No Last-Modified"):
            fetcher.fetch(location)

    def test_unparsable_last_modified(self, fetcher, session, location):
        session.request.return_value = make_response(
            body=SAMPLE_CHANGELOG, last_modified="bogus"
        )

        with pytest.raises(MetadataError, match="Unparsable"):
            fetcher.fetch(location)

    @pytest.mark.parametrize(
        "last_modified",
        [
            "03:00:00 GMT",
            "Mon, 23 Jan 03:00:00 GMT",
            "Mon, 23 Jan 2017 GMT",
            "Jan 2017 03:00:00 GMT",
        ],
    )
    def test_incomplete_last_modified(self, fetcher, session, location, last_modified):
        session.request.return_value = make_response(
            body=SAMPLE_CHANGELOG, last_modified=last_modified
        )

        with pytest.raises(MetadataError, match="Incomplete"):
            fetcher.fetch(location)

    def test_head_with_time_only_last_modified(self, fetcher, session, location):
        session.request.return_value = make_response(last_modified="03:00:00 GMT")

        with pytest.raises(MetadataError):
            fetcher.fetch_if_newer(location, MODIFIED)

        assert session.request.call_count == 1

    def test_last_modified_without_zone(self, fetcher, session, location):
        session.request.return_value = make_response(
            body=SAMPLE_CHANGELOG, last_modified="2017-01-23 03:00:00"
        )

        with pytest.raises(MetadataError, match="no timezone"):
            fetcher.fetch(location)

    def test_unparsable_body(self, fetcher, session, location):
        session.request.return_value = make_response(body=b"\xff\xfe\xfd")

        with pytest.raises(ChangeLogParseError):
            fetcher.fetch(location)

    def test_empty_body(self, fetcher, session, location):
        session.request.return_value = make_response(body=b"")

        result = fetcher.fetch(location)

        assert result.entries == []
        assert result.modified == MODIFIED


class TestFetchIfNewerUnit:
    """Unit tests for the conditional fetch."""

    def test_equal_timestamp_is_not_newer(self, fetcher, session, location):
        session.request.return_value = make_response()

        result = fetcher.fetch_if_newer(location, MODIFIED)

        assert result == NotNewer(remote_modified=MODIFIED)
        session.request.assert_called_once_with(
            "HEAD", URL, timeout=30, allow_redirects=True
        )

    def test_older_remote_is_not_newer(self, fetcher, session, location):
        session.request.return_value = make_response()

        result = fetcher.fetch_if_newer(location, MODIFIED + timedelta(days=1))

        assert isinstance(result, NotNewer)
        assert session.request.call_count == 1

    def test_newer_remote_falls_through_to_fetch(self, fetcher, session, location):
        session.request.side_effect = [
            make_response(),
            make_response(body=SAMPLE_CHANGELOG),
        ]

        result = fetcher.fetch_if_newer(location, MODIFIED - timedelta(seconds=1))

        assert isinstance(result, Fetched)
        assert result.modified == MODIFIED
        assert len(result.entries) == 3
        methods = [call.args[0] for call in session.request.call_args_list]
        assert methods == ["HEAD", "GET"]

    def test_head_error_status(self, fetcher, session, location):
        session.request.return_value = make_response(status_code=503)

        with pytest.raises(ProtocolError) as excinfo:
            fetcher.fetch_if_newer(location, MODIFIED)

        assert excinfo.value.status_code == 503

    def test_head_without_last_modified_is_not_treated_as_fresh(
        self, fetcher, session, location
    ):
        session.request.return_value = make_response(last_modified=None)

        with pytest.raises(MetadataError):
            fetcher.fetch_if_newer(location, MODIFIED)

        assert session.request.call_count == 1

    def test_last_modified_in_other_zone(self, fetcher, session, location):
        session.request.return_value = make_response(
            last_modified="Sun, 22 Jan 2017 22:00:00 -0500"
        )

        result = fetcher.fetch_if_newer(location, MODIFIED)

        assert isinstance(result, NotNewer)
        assert result.remote_modified == MODIFIED
