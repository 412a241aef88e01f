from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import func, insert, select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from devboard.core.database import activity_records
from devboard.core.errors import (
    ConflictError,
    NotFoundError,
    PermissionError,
    ProviderUnavailableError,
    ValidationError,
)
from devboard.features.streaks.engine import StreakEngine, streak_engine
from devboard.models.streak import ActivityRecord

SORTABLE_FIELDS = {
    "date": activity_records.c.date,
    "language": activity_records.c.language,
    "commit_count": activity_records.c.commit_count,
    "commitCount": activity_records.c.commit_count,
    "created_at": activity_records.c.created_at,
    "createdAt": activity_records.c.created_at,
}


def _to_record(row) -> ActivityRecord:
    return ActivityRecord(
        id=row.id,
        user_id=row.user_id,
        date=row.date,
        commit_count=row.commit_count,
        source=row.source,
        description=row.description,
        language=row.language,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _order_by(sort: Optional[str]):
    if sort:
        field, _, direction = sort.partition(":")
        column = SORTABLE_FIELDS.get(field)
        if column is not None:
            return column.desc() if direction.lower() == "desc" else column.asc()
    return activity_records.c.date.desc()


def list_activity(
    db: Session,
    user_id: str,
    *,
    start: Optional[date] = None,
    end: Optional[date] = None,
    sort: Optional[str] = None,
    limit: int = 30,
    page: int = 1,
) -> Tuple[List[ActivityRecord], int]:
    conditions = [activity_records.c.user_id == user_id]
    if start:
        conditions.append(activity_records.c.date >= start)
    if end:
        conditions.append(activity_records.c.date <= end)

    total = db.execute(select(func.count()).select_from(activity_records).where(*conditions)).scalar_one()
    rows = db.execute(
        select(activity_records)
        .where(*conditions)
        .order_by(_order_by(sort))
        .limit(limit)
        .offset((page - 1) * limit)
    ).all()
    return [_to_record(row) for row in rows], total


def all_activity(db: Session, user_id: str) -> List[ActivityRecord]:
    rows = db.execute(select(activity_records).where(activity_records.c.user_id == user_id)).all()
    return [_to_record(row) for row in rows]


def get_activity(db: Session, user_id: str, record_id: str) -> ActivityRecord:
    row = db.execute(
        select(activity_records).where(activity_records.c.id == record_id, activity_records.c.user_id == user_id)
    ).first()
    if not row:
        raise NotFoundError("Streak entry not found")
    return _to_record(row)


def _find_by_day(db: Session, user_id: str, day: date):
    return db.execute(
        select(activity_records).where(activity_records.c.user_id == user_id, activity_records.c.date == day)
    ).first()


def create_activity(
    db: Session,
    user_id: str,
    *,
    day: date,
    description: Optional[str] = None,
    language: Optional[str] = None,
    commit_count: int = 0,
) -> ActivityRecord:
    if day is None:
        raise ValidationError("Date is required")
    if commit_count < 0:
        raise ValidationError("commitCount must be zero or positive")
    if _find_by_day(db, user_id, day):
        raise ConflictError("A streak entry already exists for this date")

    record_id = str(uuid4())
    now = datetime.now(timezone.utc)
    try:
        db.execute(
            insert(activity_records).values(
                id=record_id,
                user_id=user_id,
                date=day,
                description=description,
                language=language,
                source="manual",
                commit_count=commit_count,
                created_at=now,
                updated_at=now,
            )
        )
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent insert for the same day
        db.rollback()
        raise ConflictError("A streak entry already exists for this date")
    return get_activity(db, user_id, record_id)


def update_activity(
    db: Session,
    user_id: str,
    record_id: str,
    *,
    day: Optional[date] = None,
    description: Optional[str] = None,
    language: Optional[str] = None,
    commit_count: Optional[int] = None,
) -> ActivityRecord:
    record = get_activity(db, user_id, record_id)
    if record.source == "external":
        raise PermissionError("Synced activity entries cannot be edited")
    if commit_count is not None and commit_count < 0:
        raise ValidationError("commitCount must be zero or positive")

    values = {}
    if day is not None and day != record.date:
        if _find_by_day(db, user_id, day):
            raise ConflictError("A streak entry already exists for this date")
        values["date"] = day
    if description is not None:
        values["description"] = description
    if language:
        values["language"] = language
    if commit_count is not None:
        values["commit_count"] = commit_count

    if values:
        values["updated_at"] = datetime.now(timezone.utc)
        try:
            db.execute(update(activity_records).where(activity_records.c.id == record_id).values(**values))
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("A streak entry already exists for this date")
    return get_activity(db, user_id, record_id)


def delete_activity(db: Session, user_id: str, record_id: str) -> None:
    record = get_activity(db, user_id, record_id)
    if record.source == "external":
        raise PermissionError("Synced activity entries cannot be deleted")
    db.execute(delete(activity_records).where(activity_records.c.id == record_id))
    db.commit()


def activity_stats(db: Session, user_id: str, engine: Optional[StreakEngine] = None) -> dict:
    engine = engine or streak_engine
    records = all_activity(db, user_id)
    streak = engine.compute_streak(records)
    distributions = engine.compute_distributions(records)
    return {
        "currentStreak": streak.current_streak,
        "longestStreak": streak.longest_streak,
        "lastActiveDate": streak.last_active_date.isoformat() if streak.last_active_date else None,
        "languageDistribution": [
            {"language": language, "count": count} for language, count in distributions.by_language.items()
        ],
        "monthlyActivity": [{"month": month, "count": count} for month, count in distributions.by_month.items()],
        "total": len(records),
    }


def _contribution_days(calendar: dict) -> Iterable[dict]:
    for week in calendar.get("weeks") or []:
        for day in week.get("contributionDays") or []:
            yield day


def sync_external_activity(db: Session, user_id: str, calendar: dict) -> Tuple[int, int]:
    """
    Upsert one external record per day with contributions.

    Existing records for the same day (manual or external) take the
    provider's count and become external. Returns (created, updated).
    """
    created = 0
    updated = 0
    now = datetime.now(timezone.utc)
    try:
        for day in _contribution_days(calendar):
            count = int(day.get("contributionCount") or 0)
            if count <= 0:
                continue
            day_value = date.fromisoformat(day["date"])
            existing = _find_by_day(db, user_id, day_value)
            if existing:
                db.execute(
                    update(activity_records)
                    .where(activity_records.c.id == existing.id)
                    .values(commit_count=count, source="external", updated_at=now)
                )
                updated += 1
            else:
                db.execute(
                    insert(activity_records).values(
                        id=str(uuid4()),
                        user_id=user_id,
                        date=day_value,
                        description=f"GitHub: {count} contribution(s)",
                        source="external",
                        commit_count=count,
                        created_at=now,
                        updated_at=now,
                    )
                )
                created += 1
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Activity changed during sync, try again")
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        db.rollback()
        raise ProviderUnavailableError(
            "GitHub returned a malformed contribution calendar", provider="github"
        ) from exc
    return created, updated
