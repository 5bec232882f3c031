"""Unit tests for study batch selection."""

from datetime import datetime, timedelta, timezone

import pytest

from app.models import Item, ProgressRecord
from app.srs.selection import level_tag, review_priority, select_study_batch
from app.srs.time import utc_datetime_to_iso_z

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
USER = "user-1"
POOL = "pool-1"


def make_entry(item_id: str, due_in_days: float = 0, times_seen: int = 1, **fields):
    record = ProgressRecord.new(USER, item_id, POOL)
    record.timesSeen = times_seen
    record.nextReviewDate = utc_datetime_to_iso_z(NOW + timedelta(days=due_in_days))
    for name, value in fields.items():
        setattr(record, name, value)
    item = Item(id=item_id, poolId=POOL, front=item_id, translation=item_id)
    return record, item


def unseen(item_id: str):
    return make_entry(item_id, due_in_days=0, times_seen=0)


def ids(batch):
    return [s.item_id for s in batch]


class TestDefaultMode:
    def test_due_items_ordered_by_priority(self):
        entries = [
            make_entry("c", due_in_days=-1, easinessFactor=2.5, repetition=5),
            make_entry("a", due_in_days=-2, easinessFactor=2.5, repetition=3),
            make_entry("b", due_in_days=-0.5, easinessFactor=1.3, repetition=0),
        ]

        batch = select_study_batch(entries, 10, now=NOW)

        assert ids(batch) == ["a", "b", "c"]
        assert batch[0].priority == pytest.approx(24)
        assert batch[1].priority == pytest.approx(21)
        assert batch[2].priority == pytest.approx(10)

    def test_not_due_items_are_excluded(self):
        entries = [
            make_entry("due", due_in_days=-1),
            make_entry("later", due_in_days=3),
        ]
        assert ids(select_study_batch(entries, 10, now=NOW)) == ["due"]

    def test_due_items_come_before_new_items(self):
        entries = [unseen("n1"), make_entry("due", due_in_days=-1), unseen("n2")]

        batch = select_study_batch(entries, 10, now=NOW, seed="s")

        assert batch[0].item_id == "due"
        assert sorted(ids(batch[1:])) == ["n1", "n2"]
        assert all(s.level_tag == "new" for s in batch[1:])

    def test_batch_never_exceeds_desired_count(self):
        entries = [make_entry(f"d{i}", due_in_days=-i - 1) for i in range(5)]
        entries += [unseen(f"n{i}") for i in range(5)]

        batch = select_study_batch(entries, 3, now=NOW)

        assert len(batch) == 3
        assert all(s.item_id.startswith("d") for s in batch)

    def test_new_items_fill_remaining_slots(self):
        entries = [make_entry("due", due_in_days=-1)] + [unseen(f"n{i}") for i in range(6)]
        batch = select_study_batch(entries, 4, now=NOW, seed=1)
        assert len(batch) == 4
        assert ids(batch)[0] == "due"

    def test_same_seed_gives_same_order(self):
        entries = [unseen(f"n{i:02d}") for i in range(20)]

        first = select_study_batch(entries, 20, now=NOW, seed="user-1:pool-1:2026-03-01")
        second = select_study_batch(list(reversed(entries)), 20, now=NOW, seed="user-1:pool-1:2026-03-01")

        assert ids(first) == ids(second)
        assert sorted(ids(first)) == [f"n{i:02d}" for i in range(20)]

    def test_different_seeds_shuffle_differently(self):
        entries = [unseen(f"n{i:02d}") for i in range(20)]
        orders = {tuple(ids(select_study_batch(entries, 20, now=NOW, seed=s))) for s in range(5)}
        assert len(orders) > 1

    def test_ties_broken_by_item_id(self):
        entries = [make_entry(i, due_in_days=-1) for i in ("z", "m", "a")]
        assert ids(select_study_batch(entries, 10, now=NOW)) == ["a", "m", "z"]

    def test_duplicate_items_selected_once(self):
        entry = make_entry("dup", due_in_days=-1)
        assert ids(select_study_batch([entry, entry, unseen("n")], 10, now=NOW)) == ["dup", "n"]


class TestStrugglingMode:
    def test_overdue_first_then_lowest_ef(self):
        entries = [
            make_entry("hard", due_in_days=2, easinessFactor=1.4, repetition=4, correctCount=4),
            make_entry("overdue", due_in_days=-1, easinessFactor=2.4, repetition=4, correctCount=4),
            make_entry("harder", due_in_days=3, easinessFactor=1.3, repetition=4, correctCount=4),
        ]

        batch = select_study_batch(entries, 10, mode="struggling-focus", now=NOW)

        assert ids(batch) == ["overdue", "harder", "hard"]

    def test_excludes_unseen_and_comfortable_items(self):
        entries = [
            unseen("new"),
            make_entry("easy", due_in_days=10, easinessFactor=2.5, repetition=4, correctCount=4),
            make_entry("wrong", due_in_days=10, easinessFactor=2.5, repetition=4, correctCount=1, incorrectCount=3),
            make_entry("young", due_in_days=10, easinessFactor=2.5, repetition=1, correctCount=1),
        ]

        batch = select_study_batch(entries, 10, mode="struggling-focus", now=NOW)

        assert sorted(ids(batch)) == ["wrong", "young"]

    def test_respects_desired_count(self):
        entries = [make_entry(f"s{i}", due_in_days=-1, easinessFactor=1.3) for i in range(8)]
        assert len(select_study_batch(entries, 5, mode="struggling-focus", now=NOW)) == 5


class TestSelectionEdgeCases:
    def test_zero_desired_count_returns_empty(self):
        assert select_study_batch([make_entry("a", due_in_days=-1)], 0, now=NOW) == []

    def test_empty_pool_returns_empty(self):
        assert select_study_batch([], 10, now=NOW) == []
        assert select_study_batch([], 10, mode="struggling-focus", now=NOW) == []

    def test_nothing_due_and_nothing_new_returns_empty(self):
        assert select_study_batch([make_entry("later", due_in_days=5)], 10, now=NOW) == []

    def test_invalid_mode_raises(self):
        with pytest.raises(ValueError, match="Invalid mode"):
            select_study_batch([], 10, mode="random", now=NOW)

    def test_selection_does_not_modify_records(self):
        entries = [make_entry("a", due_in_days=-1), unseen("b")]
        before = [r.model_dump() for r, _ in entries]
        select_study_batch(entries, 10, now=NOW)
        assert [r.model_dump() for r, _ in entries] == before


class TestLevelTag:
    def test_new(self):
        record, _ = unseen("a")
        assert level_tag(record, NOW) == "new"

    def test_learning(self):
        record, _ = make_entry("a", due_in_days=2, repetition=1)
        assert level_tag(record, NOW) == "learning"

    def test_review(self):
        record, _ = make_entry("a", due_in_days=-1, repetition=3)
        assert level_tag(record, NOW) == "review"

    def test_mastered(self):
        record, _ = make_entry("a", due_in_days=20, repetition=5)
        assert level_tag(record, NOW) == "mastered"


def test_priority_grows_with_days_overdue():
    recent, _ = make_entry("a", due_in_days=-1)
    older, _ = make_entry("b", due_in_days=-4)
    assert review_priority(older, NOW) > review_priority(recent, NOW)
