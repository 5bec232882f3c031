"""Progress API router."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth import CurrentUser, get_current_user
from app.dependencies import get_progress_repository, http_error_for_store_failure
from app.models import (
    ManualLearnedUpdate,
    ProgressListResponse,
    ProgressRecord,
    ProgressRecordResponse,
    ProgressSummary,
)
from app.repositories import ProgressNotFoundError, ProgressRepository, StoreError

router = APIRouter(prefix="/progress", tags=["progress"])

ProgressFilter = Literal["all", "learned", "difficult"]


def _summarize(records: list[ProgressRecord]) -> ProgressSummary:
    answered = [r for r in records if r.timesSeen > 0]
    return ProgressSummary(
        totalItems=len(records),
        learnedItems=sum(1 for r in records if r.is_learned),
        difficultItems=sum(1 for r in records if r.is_difficult),
        averageAccuracy=round(sum(r.accuracy for r in answered) / len(answered)) if answered else 0,
    )


@router.get("", response_model=ProgressListResponse)
def list_progress(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    repo: Annotated[ProgressRepository, Depends(get_progress_repository)],
    poolId: str | None = None,
    type: ProgressFilter = "all",
    limit: int = Query(20, ge=1, le=50),
    offset: int = Query(0, ge=0),
) -> ProgressListResponse:
    """List the user's progress records, optionally for one pool and filtered."""
    try:
        if poolId:
            records = repo.list_for_pool(user.user_id, poolId)
        else:
            records = repo.list_for_user(user.user_id)
    except StoreError as e:
        raise http_error_for_store_failure(e)

    records = [r for r in records if r.timesSeen > 0]
    if type == "learned":
        filtered = [r for r in records if r.is_learned]
    elif type == "difficult":
        filtered = [r for r in records if r.is_difficult]
    else:
        filtered = records

    page = filtered[offset:offset + limit]
    return ProgressListResponse(
        records=[ProgressRecordResponse.from_record(r) for r in page],
        total=len(filtered),
        limit=limit,
        offset=offset,
        hasMore=offset + limit < len(filtered),
        summary=_summarize(records),
    )


@router.get("/{item_id}", response_model=ProgressRecordResponse)
def get_progress(
    item_id: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    repo: Annotated[ProgressRepository, Depends(get_progress_repository)],
) -> ProgressRecordResponse:
    """Get the user's progress for one item."""
    try:
        record = repo.get_by_key(user.user_id, item_id)
    except StoreError as e:
        raise http_error_for_store_failure(e)

    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No progress for item {item_id}",
        )
    return ProgressRecordResponse.from_record(record)


@router.put("/{item_id}/learned", response_model=ProgressRecordResponse)
def set_manually_learned(
    item_id: str,
    update: ManualLearnedUpdate,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    repo: Annotated[ProgressRepository, Depends(get_progress_repository)],
) -> ProgressRecordResponse:
    """Set or clear the manual learned flag.

    The flag is an annotation only; it does not change the item's schedule.
    """

    def set_flag(record: ProgressRecord) -> ProgressRecord | None:
        if record.manuallyLearned == update.manuallyLearned:
            return None
        record.manuallyLearned = update.manuallyLearned
        return record

    try:
        record = repo.apply_transition(user.user_id, item_id, set_flag)
    except ProgressNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No progress for item {item_id}",
        )
    except StoreError as e:
        raise http_error_for_store_failure(e)

    return ProgressRecordResponse.from_record(record)
