"""Progress models: per-(user, item) scheduling state and answer payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from app.srs.sm2 import DEFAULT_EASINESS_FACTOR, FIRST_INTERVAL_DAYS, SM2State
from app.srs.time import utc_now_iso


def progress_id(user_id: str, item_id: str) -> str:
    """Document ID of the progress record for a user and item."""
    return f"{user_id}:{item_id}"


class ProgressRecord(BaseModel):
    """Scheduling state for one user and one item, as stored in the database."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="'{userId}:{itemId}'")
    userId: str = Field(..., description="Owner user ID (partition key)")
    itemId: str = Field(..., description="Item ID")
    poolId: str | None = Field(None, description="Pool the item belongs to")

    # SM-2 state
    easinessFactor: float = Field(DEFAULT_EASINESS_FACTOR, description="SM-2 easiness factor [1.3, 2.5]")
    interval: int = Field(FIRST_INTERVAL_DAYS, description="Days until the next review (>= 1)")
    repetition: int = Field(0, description="Consecutive successful recalls")
    nextReviewDate: str = Field(default_factory=utc_now_iso, description="Next review timestamp (UTC ISO Z)")
    quality: int | None = Field(None, description="Quality of the most recent answer")
    learned: bool = Field(False, description="Whether the last transition marked the item learned")

    # Counters
    timesSeen: int = 0
    correctCount: int = 0
    incorrectCount: int = 0
    consecutiveCorrect: int = 0

    manuallyLearned: bool = Field(False, description="Learned flag set explicitly by the user or system")

    lastSeen: str | None = None
    lastAttemptId: str | None = Field(None, description="Attempt ID of the last applied answer")
    createdAt: str = Field(default_factory=utc_now_iso)
    updatedAt: str = Field(default_factory=utc_now_iso)

    etag: str | None = Field(None, alias="_etag", description="Store version for optimistic concurrency")

    @classmethod
    def new(cls, user_id: str, item_id: str, pool_id: str | None = None) -> "ProgressRecord":
        """Default record for an item the user has not answered yet."""
        return cls(id=progress_id(user_id, item_id), userId=user_id, itemId=item_id, poolId=pool_id)

    @property
    def sm2_state(self) -> SM2State:
        return SM2State(
            easiness_factor=self.easinessFactor,
            interval=self.interval,
            repetition=self.repetition,
        )

    @property
    def is_learned(self) -> bool:
        return self.learned or self.manuallyLearned

    @property
    def accuracy(self) -> int:
        answered = self.correctCount + self.incorrectCount
        if answered == 0:
            return 0
        return round(self.correctCount / answered * 100)

    @property
    def is_difficult(self) -> bool:
        if self.incorrectCount == 0:
            return False
        more_wrong_than_right = self.incorrectCount > self.correctCount
        struggling_but_seen = self.consecutiveCorrect < 2 and self.timesSeen >= 3
        return more_wrong_than_right or struggling_but_seen

    def to_document(self) -> dict:
        """Body to persist (store-managed fields excluded)."""
        return self.model_dump(exclude={"etag"})


class AnswerObservation(BaseModel):
    """Request body for POST /learn/answer."""

    itemId: str = Field(..., min_length=1, description="Answered item")
    isCorrect: bool = Field(..., description="Whether the answer was correct")
    responseTimeMs: int | None = Field(None, ge=0, description="Answer latency in milliseconds")
    attemptsThisSessionForItem: int | None = Field(
        None, ge=1, description="Ordinal attempt number for this item in the session"
    )
    sessionId: str | None = Field(None, description="Study session the answer belongs to")
    attemptId: str | None = Field(
        None, min_length=1, max_length=200, description="Client attempt ID used to de-duplicate replays"
    )


class ProgressResult(BaseModel):
    """Response for POST /learn/answer."""

    itemId: str
    easinessFactor: float
    interval: int
    repetition: int
    nextReviewDate: str
    quality: int
    isLearned: bool
    wasNewlyLearned: bool
    durable: bool = Field(True, description="False while the write is still being retried")


class ProgressRecordResponse(BaseModel):
    """Progress record returned by the API."""

    itemId: str
    poolId: str | None
    easinessFactor: float
    interval: int
    repetition: int
    nextReviewDate: str
    quality: int | None
    timesSeen: int
    correctCount: int
    incorrectCount: int
    consecutiveCorrect: int
    manuallyLearned: bool
    isLearned: bool
    isDifficult: bool
    accuracy: int
    lastSeen: str | None

    @classmethod
    def from_record(cls, record: ProgressRecord) -> "ProgressRecordResponse":
        return cls(
            itemId=record.itemId,
            poolId=record.poolId,
            easinessFactor=record.easinessFactor,
            interval=record.interval,
            repetition=record.repetition,
            nextReviewDate=record.nextReviewDate,
            quality=record.quality,
            timesSeen=record.timesSeen,
            correctCount=record.correctCount,
            incorrectCount=record.incorrectCount,
            consecutiveCorrect=record.consecutiveCorrect,
            manuallyLearned=record.manuallyLearned,
            isLearned=record.is_learned,
            isDifficult=record.is_difficult,
            accuracy=record.accuracy,
            lastSeen=record.lastSeen,
        )


class ManualLearnedUpdate(BaseModel):
    """Request body for PUT /progress/{item_id}/learned."""

    manuallyLearned: bool


class ProgressSummary(BaseModel):
    totalItems: int
    learnedItems: int
    difficultItems: int
    averageAccuracy: int


class ProgressListResponse(BaseModel):
    """Response for GET /progress."""

    records: list[ProgressRecordResponse]
    total: int
    limit: int
    offset: int
    hasMore: bool
    summary: ProgressSummary
