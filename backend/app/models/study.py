"""Models for study-session endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

StudyMode = Literal["default", "struggling-focus"]
LevelTag = Literal["new", "learning", "review", "mastered"]
SessionStatus = Literal["active", "completed", "abandoned"]

DEFAULT_SESSION_SIZE = 10
MAX_SESSION_SIZE = 50


class SessionRequest(BaseModel):
    """Request body for POST /learn/session."""

    poolId: str = Field(..., min_length=1, description="Pool to study")
    desiredCount: int = Field(DEFAULT_SESSION_SIZE, ge=1, le=MAX_SESSION_SIZE, description="Batch size")
    mode: StudyMode = Field("default", description="Selection strategy")
    seed: str | None = Field(None, max_length=200, description="Seed for the new-item shuffle")


class StudyItem(BaseModel):
    itemId: str
    levelTag: LevelTag


class StudyBatchResponse(BaseModel):
    """Response for POST /learn/session."""

    sessionId: str
    poolId: str
    mode: StudyMode
    items: list[StudyItem]
    count: int


class SessionSummaryResponse(BaseModel):
    """Response when a session is finished or abandoned."""

    sessionId: str
    status: SessionStatus
    attempts: int
    wordsStudied: int
    correctAnswers: int
    incorrectAnswers: int
    accuracy: int
    bestStreak: int
    newlyLearned: int
    sessionLengthSeconds: int
    fullyRecorded: bool = Field(..., description="False if the final flush could not be persisted")
    currentStreak: int | None = Field(None, description="Daily study streak after this session")
    longestStreak: int | None = None


class UserStudyStats(BaseModel):
    """Daily study streak, one document per user."""

    id: str = Field(..., description="Same as userId")
    userId: str = Field(..., description="Owner user ID (partition key)")
    currentStreak: int = 0
    longestStreak: int = 0
    lastStudyDate: str | None = Field(None, description="UTC date (YYYY-MM-DD) of the last completed session")

    @classmethod
    def empty(cls, user_id: str) -> "UserStudyStats":
        return cls(id=user_id, userId=user_id)
