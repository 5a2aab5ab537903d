"""Shared fixtures for sl-feeds tests."""

from unittest.mock import MagicMock

import pytest
import requests

from sl_feeds.fetch import ChangeLogFetcher
from sl_feeds.models import SourceLocation

SAMPLE_CHANGELOG = b"""\
Mon Jan 23 02:05:27 UTC 2017
a/kernel-generic-4.4.44-x86_64-1.txz:  Upgraded.
  Fixed a local privilege escalation.
  (* Security fix *)
l/glibc-2.24-x86_64-2.txz:  Rebuilt.
+--------------------------+
Thu Jan 19 21:03:16 UTC 2017
Happy new year! Here's a round of updates.

Updated the installer.
+--------------------------+
Wed Jan  4 08:00:00 CST 2017
ap/vim-8.0.0134-x86_64-1.txz:  Upgraded.
"""

LAST_MODIFIED = "Mon, 23 Jan 2017 03:00:00 GMT"


def make_response(
    status_code: int = 200,
    body: bytes = b"",
    last_modified: str | None = LAST_MODIFIED,
    url: str = "http://mirror.example/slackware64-14.2/ChangeLog.txt",
) -> requests.Response:
    """Build a requests.Response without touching the network."""
    response = requests.Response()
    response.status_code = status_code
    response._content = body
    response._content_consumed = True
    response.url = url
    if last_modified is not None:
        response.headers["Last-Modified"] = last_modified
    return response


@pytest.fixture
def location():
    return SourceLocation(
        mirror_url="http://mirror.example/", release="slackware64-14.2"
    )


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session, headers={})


@pytest.fixture
def fetcher(session):
    return ChangeLogFetcher(session=session)
