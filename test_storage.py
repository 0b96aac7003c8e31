"""
Tests for the message log in storage.py.

Tests cover:
- Body validation (empty, whitespace, 4000 vs 4001 characters)
- Author trimming, truncation and placeholder
- Strictly increasing id assignment
- fetch_since / fetch_recent slices, ordering and clamping
- Stats on empty and populated logs
- Persistence failures leave no trace
"""

from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from livefeed import errors
from livefeed.errors import ErrorKind
from livefeed.storage import SessionLocal, append_message, fetch_recent, fetch_since, get_stats


def seed(db, count: int, author: str = "Alice") -> list[int]:
    """Append count messages and return their ids."""
    ids = []
    for i in range(count):
        result = append_message(db, author, f"message {i + 1}")
        assert result.ok
        ids.append(result.id)
    return ids


class TestAppendValidation:
    """Test body validation before persistence."""

    def test_empty_body_rejected(self, db):
        result = append_message(db, "Alice", "")

        assert not result.ok
        assert result.kind is ErrorKind.VALIDATION
        assert result.error == errors.EMPTY_BODY
        assert result.id is None
        assert get_stats(db)["total"] == 0

    def test_whitespace_body_rejected(self, db):
        result = append_message(db, "Alice", "   \n\t ")

        assert result.kind is ErrorKind.VALIDATION
        assert get_stats(db)["total"] == 0

    def test_none_body_rejected(self, db):
        result = append_message(db, "Alice", None)

        assert result.kind is ErrorKind.VALIDATION

    def test_body_at_max_length_accepted(self, db):
        result = append_message(db, "Alice", "x" * 4000)

        assert result.ok
        assert result.id == 1
        assert fetch_recent(db, 1)[0].body == "x" * 4000

    def test_body_over_max_length_rejected(self, db):
        result = append_message(db, "Alice", "x" * 4001)

        assert result.kind is ErrorKind.VALIDATION
        assert result.error == errors.BODY_TOO_LONG
        assert get_stats(db)["total"] == 0

    def test_body_is_trimmed(self, db):
        append_message(db, "Alice", "  hello  ")

        assert fetch_recent(db, 1)[0].body == "hello"


class TestAppendAuthor:
    """Test author normalization."""

    def test_missing_author_uses_placeholder(self, db):
        append_message(db, None, "hi")

        assert fetch_recent(db, 1)[0].author == "Anonymous"

    def test_blank_author_uses_placeholder(self, db):
        append_message(db, "    ", "hi")

        assert fetch_recent(db, 1)[0].author == "Anonymous"

    def test_author_trimmed_and_truncated(self, db):
        append_message(db, "  " + "b" * 200 + "  ", "hi")

        author = fetch_recent(db, 1)[0].author
        assert author == "b" * 150


class TestAppendIds:
    """Test id assignment."""

    def test_ids_strictly_increasing(self, db):
        ids = seed(db, 5)

        assert ids == [1, 2, 3, 4, 5]

    def test_created_at_follows_id_order(self, db):
        seed(db, 5)

        rows = fetch_since(db, 0, 10)
        stamps = [row.created_at for row in rows]
        assert stamps == sorted(stamps)
        assert all(stamp.endswith("Z") for stamp in stamps)

    def test_concurrent_appends_get_unique_ids(self, tables):
        def append_in_own_session(i: int):
            session = SessionLocal()
            try:
                return append_message(session, f"writer-{i % 8}", f"message {i}")
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(append_in_own_session, range(80)))

        assert all(result.ok for result in results)
        ids = [result.id for result in results]
        assert sorted(ids) == list(range(1, 81))

        with SessionLocal() as session:
            rows = fetch_since(session, 0, 200)
            assert [row.id for row in rows] == list(range(1, 81))
            assert get_stats(session) == {"total": 80, "max_id": 80}

    def test_failed_commit_is_rolled_back(self, db):
        seed(db, 1)

        with patch.object(db, "commit", side_effect=OperationalError("INSERT", {}, Exception("disk I/O error"))):
            result = append_message(db, "Alice", "lost")

        assert not result.ok
        assert result.kind is ErrorKind.PERSISTENCE
        assert result.error.startswith("Insert failed:")
        assert result.id is None
        assert get_stats(db) == {"total": 1, "max_id": 1}

        # the log keeps working and no id was handed out for the failure
        assert append_message(db, "Alice", "next").id == 2


class TestFetchSince:
    """Test incremental retrieval."""

    def test_returns_exactly_messages_after_cursor(self, db):
        seed(db, 10)

        rows = fetch_since(db, 4, 100)

        assert [row.id for row in rows] == [5, 6, 7, 8, 9, 10]

    def test_truncated_to_limit(self, db):
        seed(db, 10)

        rows = fetch_since(db, 2, 3)

        assert [row.id for row in rows] == [3, 4, 5]

    def test_zero_cursor_from_beginning(self, db):
        seed(db, 3)

        assert [row.id for row in fetch_since(db, 0, 10)] == [1, 2, 3]

    def test_cursor_at_head_returns_nothing(self, db):
        seed(db, 3)

        assert fetch_since(db, 3, 10) == []

    def test_negative_cursor_treated_as_zero(self, db):
        seed(db, 2)

        assert [row.id for row in fetch_since(db, -5, 10)] == [1, 2]

    def test_limit_clamped_to_hard_cap(self, db):
        seed(db, 205)

        rows = fetch_since(db, 0, 10000)

        assert len(rows) == 200
        assert rows[0].id == 1
        assert rows[-1].id == 200

    @pytest.mark.parametrize("limit", [0, -3])
    def test_non_positive_limit_returns_one(self, db, limit):
        seed(db, 3)

        assert [row.id for row in fetch_since(db, 0, limit)] == [1]


class TestFetchRecent:
    """Test most-recent window retrieval."""

    def test_last_n_in_ascending_order(self, db):
        seed(db, 10)

        rows = fetch_recent(db, 3)

        assert [row.id for row in rows] == [8, 9, 10]

    def test_fewer_messages_than_requested(self, db):
        seed(db, 2)

        assert [row.id for row in fetch_recent(db, 50)] == [1, 2]

    def test_count_clamped_to_at_least_one(self, db):
        seed(db, 3)

        assert [row.id for row in fetch_recent(db, 0)] == [3]

    def test_count_clamped_to_hard_cap(self, db):
        seed(db, 205)

        rows = fetch_recent(db, 500)

        assert len(rows) == 200
        assert rows[0].id == 6
        assert rows[-1].id == 205

    def test_empty_log(self, db):
        assert fetch_recent(db, 10) == []


class TestStats:
    """Test total / max id."""

    def test_empty_log(self, db):
        assert get_stats(db) == {"total": 0, "max_id": 0}

    def test_alice_and_bob(self, db):
        assert append_message(db, "Alice", "hello").id == 1
        assert get_stats(db) == {"total": 1, "max_id": 1}

        assert append_message(db, "Bob", "world").id == 2

        rows = fetch_since(db, 1, 10)
        assert [(row.id, row.author, row.body) for row in rows] == [(2, "Bob", "world")]
        assert [row.id for row in fetch_recent(db, 1)] == [2]
        assert [row.id for row in fetch_recent(db, 50)] == [1, 2]
