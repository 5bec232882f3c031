"""Learn (SRS) API router: answers and study sessions."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status

from app.auth import CurrentUser, get_current_user
from app.dependencies import (
    get_item_repository,
    get_progress_repository,
    get_session_registry,
    get_session_repository,
    http_error_for_store_failure,
)
from app.models import (
    AnswerObservation,
    Item,
    ProgressRecord,
    ProgressResult,
    SessionRequest,
    SessionSummaryResponse,
    StudyBatchResponse,
    StudyItem,
    UserStudyStats,
)
from app.repositories import (
    ItemNotFoundError,
    ItemRepository,
    ProgressRepository,
    SessionHistoryRepository,
    StoreError,
    TransientStoreError,
)
from app.sessions import (
    SessionAccumulator,
    SessionAttempt,
    SessionRegistry,
    SessionSnapshot,
    advance_daily_streak,
)
from app.srs.quality import estimate_quality
from app.srs.selection import select_study_batch
from app.srs.sm2 import apply_sm2
from app.srs.time import utc_date, utc_datetime_to_iso_z, utc_now

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/learn", tags=["learn"])


def apply_answer(record: ProgressRecord, is_correct: bool, quality: int, attempt_id: str, now: datetime) -> ProgressRecord:
    """Apply one answer to a progress record and update its SRS fields.

    Updates:
    - SM-2 state (easinessFactor, interval, repetition, nextReviewDate, learned)
    - Counters (timesSeen, correctCount/incorrectCount, consecutiveCorrect)
    - lastSeen, quality and lastAttemptId

    manuallyLearned is left alone: answers never set or clear it.

    Args:
        record: The record to update (mutated in place)
        is_correct: Whether the answer was correct
        quality: SM-2 quality of the answer
        attempt_id: Attempt ID used to recognise replays
        now: Answer time

    Returns:
        The updated record (same reference)
    """
    result = apply_sm2(record.sm2_state, quality, now)

    record.easinessFactor = result.easiness_factor
    record.interval = result.interval
    record.repetition = result.repetition
    record.nextReviewDate = utc_datetime_to_iso_z(result.next_review_date)
    record.quality = result.quality
    record.learned = result.is_learned

    record.timesSeen += 1
    if is_correct:
        record.correctCount += 1
        record.consecutiveCorrect += 1
    else:
        record.incorrectCount += 1
        record.consecutiveCorrect = 0

    record.lastSeen = utc_datetime_to_iso_z(now)
    record.lastAttemptId = attempt_id
    return record


class AnswerTransition:
    """Progress transition for one answer, safe to re-run on write conflicts.

    Remembers whether the record was already learned before the answer (for
    wasNewlyLearned) and skips records that already carry this attempt ID,
    so a replayed or retried answer is applied at most once.

    A record carrying this attempt ID after this object produced a write is
    its own write whose response was lost; the pre-answer state is kept and
    the answer is not reported as a replay.
    """

    def __init__(self, is_correct: bool, quality: int, attempt_id: str, now: datetime):
        self.is_correct = is_correct
        self.quality = quality
        self.attempt_id = attempt_id
        self.now = now
        self.was_learned = False
        self.replayed = False
        self.applied = False

    def __call__(self, record: ProgressRecord) -> ProgressRecord | None:
        if record.lastAttemptId == self.attempt_id:
            if not self.applied:
                self.was_learned = record.is_learned
                self.replayed = True
            return None

        self.was_learned = record.is_learned
        self.replayed = False
        self.applied = True
        return apply_answer(record, self.is_correct, self.quality, self.attempt_id, self.now)


def _progress_result(record: ProgressRecord, transition: AnswerTransition, durable: bool) -> ProgressResult:
    return ProgressResult(
        itemId=record.itemId,
        easinessFactor=record.easinessFactor,
        interval=record.interval,
        repetition=record.repetition,
        nextReviewDate=record.nextReviewDate,
        quality=transition.quality,
        isLearned=record.learned,
        wasNewlyLearned=record.learned and not transition.was_learned and not transition.replayed,
        durable=durable,
    )


def submit_answer(
    user_id: str,
    item: Item,
    transition: AnswerTransition,
    progress_repo: ProgressRepository,
) -> ProgressRecord:
    """Create the record on first answer and apply the transition to it."""
    progress_repo.upsert_default(user_id, item)
    return progress_repo.apply_transition(user_id, item.id, transition)


def _retry_answer_write(
    user_id: str,
    item: Item,
    transition: AnswerTransition,
    progress_repo: ProgressRepository,
) -> None:
    """Background retry of an answer whose write was not durable."""
    try:
        record = submit_answer(user_id, item, transition, progress_repo)
    except StoreError as e:
        logger.error(
            f"Background progress write failed: user={user_id}, item={item.id}, "
            f"attempt={transition.attempt_id}, error={e}"
        )
        return
    logger.info(
        f"Background progress write succeeded: user={user_id}, item={item.id}, "
        f"attempt={transition.attempt_id}, interval={record.interval}"
    )


def _flush_session(accumulator: SessionAccumulator, session_repo: SessionHistoryRepository) -> bool:
    """Persist session totals; failures leave the data marked unsent."""
    try:
        accumulator.flush(session_repo)
        return True
    except StoreError as e:
        logger.warning(
            f"Session flush failed: user={accumulator.user_id}, session={accumulator.session_id}, error={e}"
        )
        return False


def _summary(
    snapshot: SessionSnapshot,
    fully_recorded: bool,
    stats: UserStudyStats | None = None,
) -> SessionSummaryResponse:
    return SessionSummaryResponse(
        sessionId=snapshot.session_id,
        status=snapshot.status,
        attempts=snapshot.attempts,
        wordsStudied=snapshot.words_studied,
        correctAnswers=snapshot.correct_answers,
        incorrectAnswers=snapshot.incorrect_answers,
        accuracy=snapshot.accuracy,
        bestStreak=snapshot.best_streak,
        newlyLearned=snapshot.newly_learned,
        sessionLengthSeconds=snapshot.session_length_seconds,
        fullyRecorded=fully_recorded,
        currentStreak=stats.currentStreak if stats else None,
        longestStreak=stats.longestStreak if stats else None,
    )


def _get_session_or_404(registry: SessionRegistry, user_id: str, session_id: str) -> SessionAccumulator:
    accumulator = registry.get(user_id, session_id)
    if accumulator is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Session with ID {session_id} not found",
        )
    return accumulator


@router.post("/answer", response_model=ProgressResult)
def record_answer(
    observation: AnswerObservation,
    response: Response,
    background_tasks: BackgroundTasks,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    item_repo: Annotated[ItemRepository, Depends(get_item_repository)],
    progress_repo: Annotated[ProgressRepository, Depends(get_progress_repository)],
    session_repo: Annotated[SessionHistoryRepository, Depends(get_session_repository)],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> ProgressResult:
    """Record one answer and reschedule the item.

    If the progress write stays unavailable after retries, the new schedule is
    computed locally from the record read before the answer and returned with
    durable=false (HTTP 202) while one more write is attempted in the
    background. If that record could not be read either, nothing is computed
    or scheduled and the answer fails with 503.
    """
    try:
        item = item_repo.get_by_id(observation.itemId)
    except ItemNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Item with ID {observation.itemId} not found",
        )
    except StoreError as e:
        raise http_error_for_store_failure(e)

    accumulator = None
    if observation.sessionId:
        accumulator = registry.get(user.user_id, observation.sessionId)
        if accumulator is None:
            logger.warning(
                f"Answer for unknown or expired session: user={user.user_id}, session={observation.sessionId}"
            )

    attempt_number = observation.attemptsThisSessionForItem
    if attempt_number is None and accumulator is not None:
        attempt_number = accumulator.attempts_for_item(item.id) + 1

    now = utc_now()
    attempt_id = observation.attemptId or str(uuid.uuid4())
    quality = estimate_quality(observation.isCorrect, observation.responseTimeMs, attempt_number)
    transition = AnswerTransition(observation.isCorrect, quality, attempt_id, now)

    durable = True
    known = None
    try:
        known = progress_repo.upsert_default(user.user_id, item)
        record = progress_repo.apply_transition(user.user_id, item.id, transition)
    except TransientStoreError as e:
        if known is None:
            raise http_error_for_store_failure(e)
        logger.warning(
            f"Progress write not durable, retrying in background: user={user.user_id}, "
            f"item={item.id}, attempt={attempt_id}, error={e}"
        )
        durable = False
        record = transition(known.model_copy(deep=True)) or known
        background_tasks.add_task(_retry_answer_write, user.user_id, item, transition, progress_repo)
        response.status_code = status.HTTP_202_ACCEPTED
    except StoreError as e:
        raise http_error_for_store_failure(e)

    result = _progress_result(record, transition, durable)

    logger.info(
        f"Answer recorded: user={user.user_id}, item={item.id}, correct={observation.isCorrect}, "
        f"quality={quality}, interval={result.interval}, repetition={result.repetition}, "
        f"attempt={attempt_id}, replayed={transition.replayed}, durable={durable}"
    )

    if accumulator is not None:
        recorded = accumulator.record(
            SessionAttempt(
                attempt_id=attempt_id,
                item_id=item.id,
                is_correct=observation.isCorrect,
                answered_at=utc_datetime_to_iso_z(now),
                response_time_ms=observation.responseTimeMs,
                attempt_number=attempt_number or 1,
                newly_learned=result.wasNewlyLearned,
            )
        )
        if recorded:
            background_tasks.add_task(_flush_session, accumulator, session_repo)

    return result


@router.post("/session", response_model=StudyBatchResponse)
def start_session(
    req: SessionRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    item_repo: Annotated[ItemRepository, Depends(get_item_repository)],
    progress_repo: Annotated[ProgressRepository, Depends(get_progress_repository)],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> StudyBatchResponse:
    """Start a study session and return the ordered batch of items to study.

    An empty batch is a valid answer; what to show instead is up to the client.
    """
    try:
        items = item_repo.list_by_pool(req.poolId)
        records = {r.itemId: r for r in progress_repo.list_for_pool(user.user_id, req.poolId)}
    except StoreError as e:
        raise http_error_for_store_failure(e)

    entries = [
        (records.get(item.id) or ProgressRecord.new(user.user_id, item.id, item.poolId), item)
        for item in items
    ]

    now = utc_now()
    seed = req.seed or f"{user.user_id}:{req.poolId}:{utc_date(now).isoformat()}"
    batch = select_study_batch(entries, req.desiredCount, req.mode, now=now, seed=seed)

    accumulator = registry.start(user.user_id, req.poolId, req.mode)

    logger.info(
        f"Study session started: user={user.user_id}, pool={req.poolId}, session={accumulator.session_id}, "
        f"mode={req.mode}, requested={req.desiredCount}, selected={len(batch)}, pool_size={len(items)}"
    )

    return StudyBatchResponse(
        sessionId=accumulator.session_id,
        poolId=req.poolId,
        mode=req.mode,
        items=[StudyItem(itemId=s.item_id, levelTag=s.level_tag) for s in batch],
        count=len(batch),
    )


@router.post("/sessions/{session_id}/finish", response_model=SessionSummaryResponse)
def finish_session(
    session_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    session_repo: Annotated[SessionHistoryRepository, Depends(get_session_repository)],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> SessionSummaryResponse:
    """Complete a session: final flush of its totals and daily streak update.

    If the final flush cannot be persisted the summary reports
    fullyRecorded=false and the session stays registered so the client can
    call finish again.
    """
    accumulator = _get_session_or_404(registry, user.user_id, session_id)
    accumulator.mark_ended("completed")

    fully_recorded = _flush_session(accumulator, session_repo)

    stats = None
    if accumulator.attempts > 0:
        try:
            stats = session_repo.get_user_stats(user.user_id)
            stats = session_repo.save_user_stats(advance_daily_streak(stats, utc_date(utc_now())))
        except StoreError as e:
            logger.warning(f"Streak update failed: user={user.user_id}, session={session_id}, error={e}")
            stats = None

    if fully_recorded:
        registry.pop(user.user_id, session_id)
    else:
        logger.warning(f"Session not fully recorded: user={user.user_id}, session={session_id}")

    snapshot = accumulator.snapshot()
    logger.info(
        f"Study session finished: user={user.user_id}, session={session_id}, "
        f"attempts={snapshot.attempts}, correct={snapshot.correct_answers}, fully_recorded={fully_recorded}"
    )
    return _summary(snapshot, fully_recorded, stats)


@router.delete("/sessions/{session_id}", response_model=SessionSummaryResponse)
def abandon_session(
    session_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    session_repo: Annotated[SessionHistoryRepository, Depends(get_session_repository)],
    registry: Annotated[SessionRegistry, Depends(get_session_registry)],
) -> SessionSummaryResponse:
    """Abandon a session, flushing unsent totals best-effort.

    Answers already applied to progress records are kept.
    """
    accumulator = _get_session_or_404(registry, user.user_id, session_id)
    accumulator.mark_ended("abandoned")

    fully_recorded = _flush_session(accumulator, session_repo)
    registry.pop(user.user_id, session_id)

    snapshot = accumulator.snapshot()
    logger.info(
        f"Study session abandoned: user={user.user_id}, session={session_id}, "
        f"attempts={snapshot.attempts}, fully_recorded={fully_recorded}"
    )
    return _summary(snapshot, fully_recorded)
