"""Tests for the local view merge."""

import pytest

from livefeed.client.view import FeedMessage, LocalView


def msgs(*ids: int) -> list[FeedMessage]:
    return [FeedMessage(id=i, author="a", body=f"m{i}", created_at="") for i in ids]


def ids_of(view: LocalView) -> list[int]:
    return [m.id for m in view.messages]


class TestFeedMessage:
    """Tests for the FeedMessage payload mapping."""

    def test_from_dict(self):
        message = FeedMessage.from_dict(
            {"id": "7", "author": "Bob", "body": "world", "createdAt": "2025-01-15T10:00:00.000000Z"}
        )

        assert message.id == 7
        assert message.author == "Bob"
        assert message.created_at == "2025-01-15T10:00:00.000000Z"

    def test_from_dict_requires_id(self):
        with pytest.raises(KeyError):
            FeedMessage.from_dict({"author": "Bob", "body": "world"})

    def test_to_dict(self):
        message = FeedMessage(id=1, author="Alice", body="hello", created_at="t")

        assert message.to_dict() == {"id": 1, "author": "Alice", "body": "hello", "createdAt": "t"}


class TestMerge:
    """Tests for LocalView.merge."""

    def test_merge_into_empty_view(self):
        view = LocalView(capacity=10)

        result = view.merge(msgs(1, 2, 3))

        assert ids_of(view) == [1, 2, 3]
        assert view.observed_ids == {1, 2, 3}
        assert view.cursor == 3
        assert [m.id for m in result.added] == [1, 2, 3]
        assert result.evicted == []

    def test_merge_is_idempotent(self):
        view = LocalView(capacity=10)
        batch = msgs(1, 2, 3)

        view.merge(batch)
        second = view.merge(batch)

        assert ids_of(view) == [1, 2, 3]
        assert view.cursor == 3
        assert second.added == []

    def test_duplicates_within_batch(self):
        view = LocalView(capacity=10)

        view.merge(msgs(1, 1, 2))

        assert ids_of(view) == [1, 2]

    def test_out_of_order_batches_converge(self):
        forward = LocalView(capacity=10)
        forward.merge(msgs(1, 2))
        forward.merge(msgs(3, 4))

        backward = LocalView(capacity=10)
        backward.merge(msgs(3, 4))
        backward.merge(msgs(1, 2))

        assert ids_of(forward) == ids_of(backward) == [1, 2, 3, 4]
        assert forward.cursor == backward.cursor == 4

    def test_cursor_never_decreases(self):
        view = LocalView(capacity=10)
        view.merge(msgs(5, 6))

        view.merge(msgs(2))
        assert view.cursor == 6

        view.merge([])
        assert view.cursor == 6

    def test_overlapping_responses(self):
        view = LocalView(capacity=10)

        view.merge(msgs(1, 2, 3))
        view.merge(msgs(2, 3, 4, 5))

        assert ids_of(view) == [1, 2, 3, 4, 5]

    def test_eviction_keeps_capacity(self):
        view = LocalView(capacity=3)

        result = view.merge(msgs(1, 2, 3, 4, 5))

        assert ids_of(view) == [3, 4, 5]
        assert view.observed_ids == {3, 4, 5}
        assert view.cursor == 5
        # 1 and 2 were added and dropped in the same merge
        assert [m.id for m in result.added] == [3, 4, 5]
        assert result.evicted == []

    def test_eviction_reports_previously_rendered(self):
        view = LocalView(capacity=3)
        view.merge(msgs(1, 2, 3))

        result = view.merge(msgs(4, 5))

        assert ids_of(view) == [3, 4, 5]
        assert [m.id for m in result.evicted] == [1, 2]
        assert [m.id for m in result.added] == [4, 5]
        assert 1 not in view
        assert 2 not in view

    def test_bounded_after_many_merges(self):
        view = LocalView(capacity=50)

        for start in range(1, 1000, 7):
            view.merge(msgs(*range(start, start + 7)))
            assert len(view) <= 50
            assert view.observed_ids == set(ids_of(view))

        assert ids_of(view) == list(range(952, 1002))

    def test_late_arrival_of_evicted_message(self):
        view = LocalView(capacity=3)
        view.merge(msgs(1, 2, 3, 4))

        result = view.merge(msgs(1))

        assert ids_of(view) == [2, 3, 4]
        assert result.added == []

    def test_replace_resets_state(self):
        view = LocalView(capacity=10)
        view.merge(msgs(1, 2, 90))

        result = view.merge(msgs(3, 4), replace=True)

        assert ids_of(view) == [3, 4]
        assert view.observed_ids == {3, 4}
        assert view.cursor == 4
        assert [m.id for m in result.added] == [3, 4]

    def test_replace_with_empty_batch(self):
        view = LocalView(capacity=10)
        view.merge(msgs(1, 2))

        view.merge([], replace=True)

        assert len(view) == 0
        assert view.cursor == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            LocalView(capacity=0)
