"""Property-based tests for the ChangeLog.txt parser."""

import io
from datetime import UTC, datetime

from hypothesis import given
from hypothesis import strategies as st

from sl_feeds.changelog import format_date, parse

dates = st.datetimes(
    min_value=datetime(1993, 1, 1),
    max_value=datetime(2099, 12, 31),
    timezones=st.just(UTC),
).map(lambda d: d.replace(microsecond=0))

commentary_lines = st.from_regex(r"[a-z][a-z .!]{0,40}", fullmatch=True)

change_lines = st.tuples(
    st.from_regex(r"[a-z]{1,3}/[a-z0-9.+-]{1,30}", fullmatch=True),
    st.sampled_from(["Upgraded.", "Rebuilt.", "Added.", "Removed.", "Patched."]),
)

blocks = st.tuples(
    dates,
    st.lists(commentary_lines, max_size=3),
    st.lists(change_lines, max_size=5),
)


def build_document(doc_blocks, divider: bool, trailing_newline: bool) -> bytes:
    parts = []
    for date, commentary, changes in doc_blocks:
        lines = [format_date(date), *commentary]
        lines.extend(f"{path}:  {action}" for path, action in changes)
        parts.append("\n".join(lines))

    separator = "\n+--------------------------+\n" if divider else "\n"
    text = separator.join(parts)
    if trailing_newline and text:
        text += "\n"
    return text.encode("utf-8")


class TestChangeLogParserProperties:
    """Property-based tests for parse()."""

    @given(st.lists(blocks, max_size=8), st.booleans(), st.booleans())
    def test_one_entry_per_block_in_document_order(
        self, doc_blocks, divider, trailing_newline
    ):
        """
        For any document with N date blocks, parse returns N entries in
        document order, commentary-only blocks included.
        """
        data = build_document(doc_blocks, divider, trailing_newline)

        entries = parse(io.BytesIO(data))

        assert len(entries) == len(doc_blocks)
        for entry, (date, commentary, changes) in zip(entries, doc_blocks):
            assert entry.date == date
            assert entry.commentary == "\n".join(line.strip() for line in commentary)
            assert [(c.path, c.action) for c in entry.changes] == changes

    @given(st.lists(blocks, min_size=1, max_size=5))
    def test_last_block_is_never_truncated(self, doc_blocks):
        """
        A final block with no closing divider or header still yields the
        final entry with all of its change lines.
        """
        data = build_document(doc_blocks, divider=True, trailing_newline=False)

        entries = parse(io.BytesIO(data))

        last_date, _, last_changes = doc_blocks[-1]
        assert entries[-1].date == last_date
        assert len(entries[-1].changes) == len(last_changes)
