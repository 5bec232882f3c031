"""Deterministic recall-quality estimate for SM-2.

Maps one answer observation (correctness, latency, how many times the item was
already attempted in this session) to the 0-5 SM-2 quality scale:

5 - perfect response
4 - correct response after a hesitation
3 - correct response recalled with serious difficulty
1 - incorrect response, first try
0 - incorrect again after earlier attempts (complete blackout)
"""

from __future__ import annotations

# Answers faster than this are treated as effortless recall (quality 5).
FAST_RESPONSE_MS = 2000
# Answers faster than this, but not fast, are a correct recall with hesitation (quality 4).
MODERATE_RESPONSE_MS = 5000

QUALITY_PERFECT = 5
QUALITY_HESITANT = 4
QUALITY_DIFFICULT = 3
QUALITY_INCORRECT = 1
QUALITY_BLACKOUT = 0

# Correct answers without timing data.
QUALITY_UNTIMED_CORRECT = QUALITY_HESITANT


def estimate_quality(
    is_correct: bool,
    response_time_ms: int | None = None,
    attempts_this_session: int | None = None,
) -> int:
    """Estimate SM-2 quality from an answer observation.

    Rules (checked in order):
    - Incorrect after more than one attempt this session -> 0
    - Incorrect otherwise (first attempt or unknown) -> 1
    - Correct with timing: < 2000ms -> 5, < 5000ms -> 4, otherwise -> 3
    - Correct without timing -> 4

    Args:
        is_correct: Whether the user answered correctly
        response_time_ms: Answer latency in milliseconds, if measured
        attempts_this_session: Ordinal attempt number for the item in the current session

    Returns:
        Quality in the range 0-5
    """
    if not is_correct:
        if attempts_this_session is not None and attempts_this_session > 1:
            return QUALITY_BLACKOUT
        return QUALITY_INCORRECT

    if response_time_ms is None:
        return QUALITY_UNTIMED_CORRECT

    if response_time_ms < FAST_RESPONSE_MS:
        return QUALITY_PERFECT
    if response_time_ms < MODERATE_RESPONSE_MS:
        return QUALITY_HESITANT
    return QUALITY_DIFFICULT
