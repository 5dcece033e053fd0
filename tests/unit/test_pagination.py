"""Tests for the opaque keyset cursors."""

from datetime import UTC, datetime

import pytest

from src.pp_common.pagination import (
    cursor_decode,
    cursor_encode,
    decode_ts_cursor,
    encode_ts_cursor,
    split_page,
)


class TestCursor:
    def test_round(self) -> None:
        assert cursor_decode(cursor_encode({"id": 42})) == {"id": 42}

    def test_cursor_is_url_safe(self) -> None:
        cursor = cursor_encode({"id": "?" * 30})
        assert "+" not in cursor and "/" not in cursor

    @pytest.mark.parametrize("bad", [None, "", "%%%", "bm90IGpzb24=", "WzEsMl0="])
    def test_malformed_cursor_is_none(self, bad: str | None) -> None:
        assert cursor_decode(bad) is None


class TestTimestampCursor:
    def test_round(self) -> None:
        ts = datetime(2026, 5, 1, 9, 30, tzinfo=UTC)
        assert decode_ts_cursor(encode_ts_cursor(ts, "123")) == (ts, "123")

    def test_missing_keys(self) -> None:
        assert decode_ts_cursor(cursor_encode({"id": "1"})) == (None, None)

    def test_bad_timestamp(self) -> None:
        assert decode_ts_cursor(cursor_encode({"ts": "yesterday", "id": "1"})) == (None, None)


class TestSplitPage:
    def test_extra_row_means_more(self) -> None:
        assert split_page([1, 2, 3], 2) == ([1, 2], True)

    def test_exact_page(self) -> None:
        assert split_page([1, 2], 2) == ([1, 2], False)

    def test_empty(self) -> None:
        assert split_page([], 5) == ([], False)
