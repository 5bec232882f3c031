"""Session-level answer accounting and the TTL registry of live sessions."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cachetools import TTLCache

from app.srs.time import parse_iso_z, utc_now_iso

if TYPE_CHECKING:
    from app.repositories import SessionHistoryRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionAttempt:
    """One answer given during a study session."""

    attempt_id: str
    item_id: str
    is_correct: bool
    answered_at: str
    response_time_ms: int | None = None
    attempt_number: int = 1
    newly_learned: bool = False


@dataclass(frozen=True)
class SessionSnapshot:
    """Point-in-time totals of a session, as persisted to session history."""

    session_id: str
    user_id: str
    pool_id: str
    mode: str
    status: str
    started_at: str
    taken_at: str
    version: int
    attempts: int
    words_studied: int
    correct_answers: int
    incorrect_answers: int
    best_streak: int
    newly_learned: int

    @property
    def accuracy(self) -> int:
        if self.attempts == 0:
            return 0
        return round(self.correct_answers / self.attempts * 100)

    @property
    def session_length_seconds(self) -> int:
        elapsed = parse_iso_z(self.taken_at) - parse_iso_z(self.started_at)
        return max(0, int(elapsed.total_seconds()))

    def to_document(self) -> dict:
        return {
            "id": self.session_id,
            "userId": self.user_id,
            "poolId": self.pool_id,
            "mode": self.mode,
            "status": self.status,
            "startedAt": self.started_at,
            "updatedAt": self.taken_at,
            "endedAt": self.taken_at if self.status != "active" else None,
            "version": self.version,
            "attempts": self.attempts,
            "wordsStudied": self.words_studied,
            "correctAnswers": self.correct_answers,
            "incorrectAnswers": self.incorrect_answers,
            "accuracy": self.accuracy,
            "bestStreak": self.best_streak,
            "newlyLearned": self.newly_learned,
            "sessionLengthSeconds": self.session_length_seconds,
        }


class SessionAccumulator:
    """Aggregates the answers of one study session.

    Attempts are de-duplicated by attempt ID, so replaying an answer never
    double-counts. Every change bumps a version; flushing writes a snapshot
    of absolute totals and remembers the highest version persisted, so a
    session has unsent data exactly when ``has_unsent`` is true.
    """

    def __init__(self, session_id: str, user_id: str, pool_id: str, mode: str = "default"):
        self.session_id = session_id
        self.user_id = user_id
        self.pool_id = pool_id
        self.mode = mode
        self.started_at = utc_now_iso()
        self.status = "active"

        self.attempts = 0
        self.correct_answers = 0
        self.incorrect_answers = 0
        self.current_streak = 0
        self.best_streak = 0
        self.newly_learned = 0

        self._attempt_ids: set[str] = set()
        self._item_attempts: dict[str, int] = {}
        self._version = 0
        self._flushed_version = 0
        self._lock = threading.Lock()
        # Serializes flushes so snapshots reach the store in version order
        self._flush_lock = threading.Lock()

    @property
    def words_studied(self) -> int:
        return len(self._item_attempts)

    @property
    def has_unsent(self) -> bool:
        with self._lock:
            return self._version > self._flushed_version

    def attempts_for_item(self, item_id: str) -> int:
        """Number of recorded attempts for an item in this session."""
        with self._lock:
            return self._item_attempts.get(item_id, 0)

    def has_attempt(self, attempt_id: str) -> bool:
        with self._lock:
            return attempt_id in self._attempt_ids

    def record(self, attempt: SessionAttempt) -> bool:
        """Fold an attempt into the totals.

        Returns:
            False if the attempt ID was already recorded (nothing changes)
        """
        with self._lock:
            if attempt.attempt_id in self._attempt_ids:
                return False
            self._attempt_ids.add(attempt.attempt_id)
            self._item_attempts[attempt.item_id] = self._item_attempts.get(attempt.item_id, 0) + 1

            self.attempts += 1
            if attempt.is_correct:
                self.correct_answers += 1
                self.current_streak += 1
                self.best_streak = max(self.best_streak, self.current_streak)
            else:
                self.incorrect_answers += 1
                self.current_streak = 0
            if attempt.newly_learned:
                self.newly_learned += 1

            self._version += 1
            return True

    def mark_ended(self, status: str) -> None:
        with self._lock:
            if self.status != status:
                self.status = status
                self._version += 1

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return SessionSnapshot(
                session_id=self.session_id,
                user_id=self.user_id,
                pool_id=self.pool_id,
                mode=self.mode,
                status=self.status,
                started_at=self.started_at,
                taken_at=utc_now_iso(),
                version=self._version,
                attempts=self.attempts,
                words_studied=len(self._item_attempts),
                correct_answers=self.correct_answers,
                incorrect_answers=self.incorrect_answers,
                best_streak=self.best_streak,
                newly_learned=self.newly_learned,
            )

    def flush(self, repository: "SessionHistoryRepository") -> SessionSnapshot:
        """Persist the current totals.

        Raises whatever the repository raises; the unsent marker is only
        cleared after a successful write.
        """
        with self._flush_lock:
            snapshot = self.snapshot()
            if snapshot.version <= self._flushed_version and snapshot.version > 0:
                return snapshot
            repository.save_snapshot(snapshot.to_document())
            with self._lock:
                self._flushed_version = max(self._flushed_version, snapshot.version)
            return snapshot


def _log_dropped(key: tuple[str, str], accumulator: SessionAccumulator, reason: str) -> None:
    user_id, session_id = key
    if accumulator.has_unsent:
        logger.warning(
            f"Session {reason} with unsent totals: user={user_id}, session={session_id}, "
            f"attempts={accumulator.attempts}"
        )
    else:
        logger.debug(f"Session {reason}: user={user_id}, session={session_id}")


class _SessionCache(TTLCache):
    """TTLCache that reports sessions dropped by expiry or size eviction."""

    def expire(self, time=None):
        expired = super().expire(time)
        for key, accumulator in expired:
            _log_dropped(key, accumulator, "expired")
        return expired

    def popitem(self):
        key, accumulator = super().popitem()
        _log_dropped(key, accumulator, "evicted")
        return key, accumulator


class SessionRegistry:
    """Thread-safe TTL-based registry of live session accumulators.

    Keyed by (user_id, session_id). Sessions expire after TTL seconds of
    inactivity (sliding window). A session dropped while it still has unsent
    totals is logged at WARNING.
    """

    # Default TTL: 30 minutes
    DEFAULT_TTL_SECONDS = 30 * 60
    # Max sessions to cache
    MAX_SESSIONS = 10000

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, maxsize: int = MAX_SESSIONS):
        self._cache: TTLCache[tuple[str, str], SessionAccumulator] = _SessionCache(
            maxsize=maxsize, ttl=ttl_seconds
        )
        self._lock = threading.Lock()

    def start(self, user_id: str, pool_id: str, mode: str = "default") -> SessionAccumulator:
        """Register a new session and return its accumulator."""
        accumulator = SessionAccumulator(str(uuid.uuid4()), user_id, pool_id, mode)
        with self._lock:
            self._cache[(user_id, accumulator.session_id)] = accumulator
        return accumulator

    def get(self, user_id: str, session_id: str) -> SessionAccumulator | None:
        """Get a live session; accessing it refreshes its TTL."""
        key = (user_id, session_id)
        with self._lock:
            accumulator = self._cache.get(key)
            if accumulator is not None:
                self._cache[key] = accumulator
            return accumulator

    def pop(self, user_id: str, session_id: str) -> SessionAccumulator | None:
        with self._lock:
            return self._cache.pop((user_id, session_id), None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)
