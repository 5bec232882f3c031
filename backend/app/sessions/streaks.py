"""Daily study streaks."""

from __future__ import annotations

from datetime import date

from app.models import UserStudyStats


def advance_daily_streak(stats: UserStudyStats, today: date) -> UserStudyStats:
    """Return stats updated for a session completed on ``today``.

    Only the first session of a day moves the streak: studying the day after
    the last study day extends it, any longer gap restarts it at 1.
    """
    last = date.fromisoformat(stats.lastStudyDate) if stats.lastStudyDate else None

    if last == today:
        return stats

    if last is not None and (today - last).days == 1:
        current = stats.currentStreak + 1
    else:
        current = 1

    return stats.model_copy(
        update={
            "currentStreak": current,
            "longestStreak": max(stats.longestStreak, current),
            "lastStudyDate": today.isoformat(),
        }
    )
