"""Study-session accounting."""

from .accumulator import SessionAccumulator, SessionAttempt, SessionRegistry, SessionSnapshot
from .streaks import advance_daily_streak

__all__ = [
    "SessionAccumulator",
    "SessionAttempt",
    "SessionRegistry",
    "SessionSnapshot",
    "advance_daily_streak",
]
