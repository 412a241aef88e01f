import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from devboard.core.auth import get_current_user
from devboard.core.database import get_db
from devboard.core.errors import ValidationError
from devboard.core.logging import log_event
from devboard.features.external.github import GitHubClient, get_github_client
from devboard.features.streaks import service as streak_service
from devboard.models.user import User

router = APIRouter(prefix="/streaks")


class ActivityIn(BaseModel):
    date: dt.date
    description: Optional[str] = None
    language: Optional[str] = None
    commitCount: int = Field(0, ge=0)


class ActivityPatch(BaseModel):
    date: Optional[dt.date] = None
    description: Optional[str] = None
    language: Optional[str] = None
    commitCount: Optional[int] = Field(None, ge=0)


@router.get("")
def list_streaks(
    start: Optional[dt.date] = Query(None, alias="startDate"),
    end: Optional[dt.date] = Query(None, alias="endDate"),
    sort: Optional[str] = None,
    limit: int = Query(30, ge=1, le=366),
    page: int = Query(1, ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Paginated activity entries for the caller, newest day first by default."""
    records, total = streak_service.list_activity(
        db, user.id, start=start, end=end, sort=sort, limit=limit, page=page
    )
    return {
        "status": "success",
        "results": len(records),
        "total": total,
        "page": page,
        "data": {"streaks": [record.to_dict() for record in records]},
    }


@router.get("/stats")
def streak_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"status": "success", "data": streak_service.activity_stats(db, user.id)}


@router.post("/sync-github")
async def sync_github(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    client: GitHubClient = Depends(get_github_client),
):
    if not user.github_username:
        raise ValidationError("No GitHub account linked to your profile")
    calendar = await client.get_contribution_calendar(user.github_username, user.github_token)
    # Provider call stays on the loop; Session work runs in the threadpool
    created, updated = await run_in_threadpool(streak_service.sync_external_activity, db, user.id, calendar)
    stats = await run_in_threadpool(streak_service.activity_stats, db, user.id)
    log_event(
        "info",
        "streaks.sync_github",
        user_id=user.id,
        provider="github",
        extra={"records_created": created, "records_updated": updated},
    )
    return {
        "status": "success",
        "data": {
            "created": created,
            "updated": updated,
            "stats": stats,
        },
    }


@router.post("", status_code=201)
def create_streak(body: ActivityIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    record = streak_service.create_activity(
        db,
        user.id,
        day=body.date,
        description=body.description,
        language=body.language,
        commit_count=body.commitCount,
    )
    return {"status": "success", "data": {"streak": record.to_dict()}}


@router.get("/{record_id}")
def get_streak(record_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"status": "success", "data": {"streak": streak_service.get_activity(db, user.id, record_id).to_dict()}}


@router.patch("/{record_id}")
def update_streak(
    record_id: str, body: ActivityPatch, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    record = streak_service.update_activity(
        db,
        user.id,
        record_id,
        day=body.date,
        description=body.description,
        language=body.language,
        commit_count=body.commitCount,
    )
    return {"status": "success", "data": {"streak": record.to_dict()}}


@router.delete("/{record_id}", status_code=204)
def delete_streak(record_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    streak_service.delete_activity(db, user.id, record_id)
