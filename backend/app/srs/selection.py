"""Study batch selection.

Ranks a user's progress records for one pool into an ordered, bounded batch.
Selection is read-only: records are never modified here.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Literal

from .sm2 import EF_MAX, LEARNED_REPETITIONS
from .time import ensure_utc, fractional_days_between, parse_iso_z, utc_now

if TYPE_CHECKING:
    from app.models import Item, ProgressRecord

Mode = Literal["default", "struggling-focus"]
LevelTag = Literal["new", "learning", "review", "mastered"]

# Priority weights for default mode.
OVERDUE_DAY_WEIGHT = 10
DIFFICULTY_WEIGHT = 5
REPETITION_WEIGHT = 2
REPETITION_CAP = 5

# Struggling-focus: items below this easiness factor count as hard.
STRUGGLING_EASINESS_FACTOR = 2.0


@dataclass(frozen=True)
class SelectedItem:
    item_id: str
    level_tag: LevelTag
    priority: float = 0.0


def is_due(record: "ProgressRecord", now: datetime) -> bool:
    return ensure_utc(now) >= parse_iso_z(record.nextReviewDate)


def level_tag(record: "ProgressRecord", now: datetime | None = None) -> LevelTag:
    """Coarse learning stage of a record, as shown next to each batch item."""
    now = now or utc_now()
    if record.timesSeen == 0:
        return "new"
    if record.repetition < LEARNED_REPETITIONS:
        return "learning"
    if is_due(record, now):
        return "review"
    return "mastered"


def review_priority(record: "ProgressRecord", now: datetime) -> float:
    """Urgency of a due record; higher means review sooner."""
    days_past_due = max(0.0, fractional_days_between(parse_iso_z(record.nextReviewDate), now))
    return (
        days_past_due * OVERDUE_DAY_WEIGHT
        + (EF_MAX - record.easinessFactor) * DIFFICULTY_WEIGHT
        + (REPETITION_CAP - min(REPETITION_CAP, record.repetition)) * REPETITION_WEIGHT
    )


def is_struggling(record: "ProgressRecord", now: datetime) -> bool:
    return (
        is_due(record, now)
        or record.easinessFactor < STRUGGLING_EASINESS_FACTOR
        or record.incorrectCount > record.correctCount
        or record.repetition < LEARNED_REPETITIONS
    )


def _unique_records(entries: Iterable[tuple["ProgressRecord", "Item"]]) -> list["ProgressRecord"]:
    seen: set[str] = set()
    records = []
    for record, item in entries:
        if item.id in seen:
            continue
        seen.add(item.id)
        records.append(record)
    return records


def _select_default(
    records: list["ProgressRecord"], desired_count: int, now: datetime, seed: int | str | None
) -> list[SelectedItem]:
    due = [r for r in records if r.timesSeen > 0 and is_due(r, now)]
    scored = [(review_priority(r, now), r) for r in due]
    scored.sort(key=lambda pair: (-pair[0], parse_iso_z(pair[1].nextReviewDate), pair[1].itemId))

    batch = [
        SelectedItem(item_id=r.itemId, level_tag=level_tag(r, now), priority=priority)
        for priority, r in scored[:desired_count]
    ]

    remaining = desired_count - len(batch)
    if remaining > 0:
        unseen = sorted((r for r in records if r.timesSeen == 0), key=lambda r: r.itemId)
        random.Random(seed).shuffle(unseen)
        batch.extend(SelectedItem(item_id=r.itemId, level_tag="new") for r in unseen[:remaining])

    return batch


def _select_struggling(records: list["ProgressRecord"], desired_count: int, now: datetime) -> list[SelectedItem]:
    candidates = [r for r in records if r.timesSeen > 0 and is_struggling(r, now)]
    candidates.sort(
        key=lambda r: (
            not is_due(r, now),
            r.easinessFactor,
            parse_iso_z(r.nextReviewDate),
            r.itemId,
        )
    )
    return [SelectedItem(item_id=r.itemId, level_tag=level_tag(r, now)) for r in candidates[:desired_count]]


def select_study_batch(
    entries: Iterable[tuple["ProgressRecord", "Item"]],
    desired_count: int,
    mode: Mode = "default",
    now: datetime | None = None,
    seed: int | str | None = None,
) -> list[SelectedItem]:
    """Pick the ordered batch of items to study.

    Default mode takes due records by descending priority and tops the batch up
    with never-seen items in a seeded shuffle. Struggling-focus mode takes
    overdue or hard records, overdue first and then lowest easiness factor.

    Args:
        entries: (record, item) pairs for one user; unseen items carry a default record
        desired_count: Maximum batch size
        mode: "default" or "struggling-focus"
        now: Reference time (defaults to current UTC time)
        seed: Seed for the new-item shuffle; the same seed gives the same order

    Returns:
        Ordered items, at most ``desired_count``, without duplicate item IDs.
        Empty when nothing is eligible.
    """
    if desired_count <= 0:
        return []

    now = ensure_utc(now) if now is not None else utc_now()
    records = _unique_records(entries)

    if mode == "default":
        return _select_default(records, desired_count, now, seed)
    if mode == "struggling-focus":
        return _select_struggling(records, desired_count, now)
    raise ValueError(f"Invalid mode: {mode}")
