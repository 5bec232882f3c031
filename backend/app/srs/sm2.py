"""SM-2 state transition.

Implements the SuperMemo SM-2 rule (P. A. Wozniak, 1990) used to schedule
every item. The transition is a pure function of the stored state and the
quality of one answer, so it is safe to call from any thread.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime

from .time import add_days, ensure_utc, utc_now

logger = logging.getLogger(__name__)

# Easiness factor bounds. SM-2 fixes the floor at 1.3; new items start at the ceiling.
EF_MIN = 1.3
EF_MAX = 2.5
DEFAULT_EASINESS_FACTOR = EF_MAX

# EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02))
EF_BASE_INCREMENT = 0.1
EF_LINEAR_PENALTY = 0.08
EF_QUADRATIC_PENALTY = 0.02

MIN_QUALITY = 0
MAX_QUALITY = 5
# Qualities below this are a failed recall and reset the repetition run.
PASSING_QUALITY = 3

FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
# Intervals never grow past one year.
MAX_INTERVAL_DAYS = 365

# Consecutive successful recalls after which an item counts as learned.
LEARNED_REPETITIONS = 3


@dataclass(frozen=True)
class SM2State:
    easiness_factor: float = DEFAULT_EASINESS_FACTOR
    interval: int = FIRST_INTERVAL_DAYS
    repetition: int = 0


@dataclass(frozen=True)
class SM2Result:
    easiness_factor: float
    interval: int
    repetition: int
    next_review_date: datetime
    quality: int
    is_learned: bool

    @property
    def state(self) -> SM2State:
        return SM2State(
            easiness_factor=self.easiness_factor,
            interval=self.interval,
            repetition=self.repetition,
        )


def clamp_easiness_factor(ef: float) -> float:
    return max(EF_MIN, min(EF_MAX, ef))


def clamp_quality(quality: int) -> int:
    return max(MIN_QUALITY, min(MAX_QUALITY, int(quality)))


def round_half_away_from_zero(value: float) -> int:
    if value < 0:
        return -math.floor(-value + 0.5)
    return math.floor(value + 0.5)


def next_easiness_factor(ef: float, quality: int) -> float:
    miss = MAX_QUALITY - quality
    delta = EF_BASE_INCREMENT - miss * (EF_LINEAR_PENALTY + miss * EF_QUADRATIC_PENALTY)
    return clamp_easiness_factor(ef + delta)


def sanitize_state(state: SM2State) -> SM2State:
    """Clamp a stored state back inside the SM-2 invariants.

    Out-of-range values can only come from a corrupted record. They are
    logged and repaired rather than failing the review.
    """
    ef = state.easiness_factor
    interval = state.interval
    repetition = state.repetition

    if not EF_MIN <= ef <= EF_MAX:
        logger.warning("Algorithm invariant violation: easiness_factor=%r clamped", ef)
        ef = EF_MAX if math.isnan(ef) else clamp_easiness_factor(ef)
    if interval < FIRST_INTERVAL_DAYS:
        logger.warning("Algorithm invariant violation: interval=%r raised to %d", interval, FIRST_INTERVAL_DAYS)
        interval = FIRST_INTERVAL_DAYS
    if repetition < 0:
        logger.warning("Algorithm invariant violation: repetition=%r reset to 0", repetition)
        repetition = 0

    if (ef, interval, repetition) == (state.easiness_factor, state.interval, state.repetition):
        return state
    return SM2State(easiness_factor=ef, interval=interval, repetition=repetition)


def apply_sm2(state: SM2State, quality: int, now: datetime | None = None) -> SM2Result:
    """Apply one SM-2 update to the given state.

    quality: 0-5, values outside the range are clamped

    Rules:
    - if q < 3: repetition = 0, interval = 1
    - else:
        repetition += 1
        if repetition == 1: interval = 1
        if repetition == 2: interval = 6
        else: interval = round(interval * EF), using the EF held before this update
    - EF' = EF + (0.1 - (5-q)*(0.08 + (5-q)*0.02)), clamped to [1.3, 2.5]
    - next_review_date = now + interval days
    - is_learned = repetition >= 3 and q >= 3
    """
    now = ensure_utc(now) if now is not None else utc_now()
    quality = clamp_quality(quality)
    state = sanitize_state(state)

    if quality < PASSING_QUALITY:
        repetition = 0
        interval = FIRST_INTERVAL_DAYS
    else:
        repetition = state.repetition + 1
        if repetition == 1:
            interval = FIRST_INTERVAL_DAYS
        elif repetition == 2:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = round_half_away_from_zero(state.interval * state.easiness_factor)
            interval = max(FIRST_INTERVAL_DAYS, min(interval, MAX_INTERVAL_DAYS))

    return SM2Result(
        easiness_factor=next_easiness_factor(state.easiness_factor, quality),
        interval=interval,
        repetition=repetition,
        next_review_date=add_days(now, interval),
        quality=quality,
        is_learned=repetition >= LEARNED_REPETITIONS and quality >= PASSING_QUALITY,
    )
