"""Models module for Pydantic schemas."""

from .item import Item
from .progress import (
    AnswerObservation,
    ManualLearnedUpdate,
    ProgressListResponse,
    ProgressRecord,
    ProgressRecordResponse,
    ProgressResult,
    ProgressSummary,
    progress_id,
)
from .study import (
    DEFAULT_SESSION_SIZE,
    MAX_SESSION_SIZE,
    LevelTag,
    SessionRequest,
    SessionStatus,
    SessionSummaryResponse,
    StudyBatchResponse,
    StudyItem,
    StudyMode,
    UserStudyStats,
)

__all__ = [
    "Item",
    "AnswerObservation",
    "ManualLearnedUpdate",
    "ProgressListResponse",
    "ProgressRecord",
    "ProgressRecordResponse",
    "ProgressResult",
    "ProgressSummary",
    "progress_id",
    "DEFAULT_SESSION_SIZE",
    "MAX_SESSION_SIZE",
    "LevelTag",
    "SessionRequest",
    "SessionStatus",
    "SessionSummaryResponse",
    "StudyBatchResponse",
    "StudyItem",
    "StudyMode",
    "UserStudyStats",
]
