"""Coding challenge catalog, progress tracking and daily/weekly rotation."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, insert, or_, select, update
from sqlalchemy.orm import Session

from devboard.core.clock import Clock, default_clock
from devboard.core.database import challenges, user_challenges
from devboard.core.errors import NotFoundError, PermissionError, ValidationError
from devboard.features.challenges.generator import DIFFICULTIES, ChallengeGenerator
from devboard.models.challenge import Challenge, ChallengeProgress, GeneratedChallenge

logger = logging.getLogger("devboard")

PROGRESS_STATUSES = ("not_started", "in_progress", "completed")
ROTATION_TAGS = ("daily", "weekly")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands back naive datetimes; everything is stored in UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_progress(row) -> ChallengeProgress:
    return ChallengeProgress(
        user_id=row.user_id,
        challenge_id=row.challenge_id,
        status=row.status,
        solution=row.solution,
        completed_at=_as_utc(row.completed_at),
    )


def _to_challenge(row, progress: Optional[ChallengeProgress] = None) -> Challenge:
    return Challenge(
        id=row.id,
        title=row.title,
        description=row.description,
        difficulty=row.difficulty,
        language=row.language,
        tags=list(row.tags or []),
        is_public=bool(row.is_public),
        source=row.source,
        created_by=row.created_by,
        expires_at=_as_utc(row.expires_at),
        created_at=_as_utc(row.created_at),
        user_progress=progress,
    )


def _progress_by_challenge(db: Session, user_id: str, challenge_ids: List[str]) -> Dict[str, ChallengeProgress]:
    if not challenge_ids:
        return {}
    rows = db.execute(
        select(user_challenges).where(
            user_challenges.c.user_id == user_id,
            user_challenges.c.challenge_id.in_(challenge_ids),
        )
    ).all()
    return {row.challenge_id: _to_progress(row) for row in rows}


def _validate_difficulty(difficulty: Optional[str]) -> None:
    if difficulty is not None and difficulty not in DIFFICULTIES:
        raise ValidationError(f"difficulty must be one of: {', '.join(DIFFICULTIES)}")


def list_challenges(
    db: Session,
    user_id: str,
    *,
    difficulty: Optional[str] = None,
    language: Optional[str] = None,
    tag: Optional[str] = None,
    is_public: Optional[bool] = None,
) -> List[Challenge]:
    """Public challenges plus the caller's own, newest first, with the caller's progress attached."""
    _validate_difficulty(difficulty)
    conditions = [or_(challenges.c.is_public.is_(True), challenges.c.created_by == user_id)]
    if difficulty:
        conditions.append(challenges.c.difficulty == difficulty)
    if language:
        conditions.append(challenges.c.language == language)
    if is_public is not None:
        conditions.append(challenges.c.is_public.is_(is_public))

    rows = db.execute(select(challenges).where(*conditions).order_by(challenges.c.created_at.desc())).all()
    if tag:
        rows = [row for row in rows if tag in (row.tags or [])]

    progress = _progress_by_challenge(db, user_id, [row.id for row in rows])
    return [_to_challenge(row, progress.get(row.id)) for row in rows]


def _get_row(db: Session, challenge_id: str):
    row = db.execute(select(challenges).where(challenges.c.id == challenge_id)).first()
    if not row:
        raise NotFoundError("Challenge not found")
    return row


def get_challenge(db: Session, user_id: str, challenge_id: str) -> Challenge:
    row = _get_row(db, challenge_id)
    if not row.is_public and row.created_by != user_id:
        raise PermissionError("You do not have access to this challenge")
    progress = _progress_by_challenge(db, user_id, [row.id])
    return _to_challenge(row, progress.get(row.id))


def create_challenge(
    db: Session,
    user_id: Optional[str],
    *,
    title: str,
    description: str,
    difficulty: str = "medium",
    language: str = "javascript",
    tags: Optional[List[str]] = None,
    is_public: bool = True,
    source: str = "manual",
    expires_at: Optional[datetime] = None,
) -> Challenge:
    if not title or not description:
        raise ValidationError("Title and description are required")
    _validate_difficulty(difficulty)

    challenge_id = str(uuid4())
    now = datetime.now(timezone.utc)
    db.execute(
        insert(challenges).values(
            id=challenge_id,
            title=title,
            description=description,
            difficulty=difficulty,
            language=language,
            tags=tags or [],
            is_public=is_public,
            source=source,
            created_by=user_id,
            expires_at=_as_utc(expires_at),
            created_at=now,
            updated_at=now,
        )
    )
    db.commit()
    return _to_challenge(_get_row(db, challenge_id))


def update_challenge(db: Session, user_id: str, challenge_id: str, changes: dict) -> Challenge:
    row = _get_row(db, challenge_id)
    if row.created_by != user_id:
        raise PermissionError("Only the creator can modify this challenge")
    _validate_difficulty(changes.get("difficulty"))

    allowed = {"title", "description", "difficulty", "language", "tags", "is_public"}
    values = {key: value for key, value in changes.items() if key in allowed and value is not None}
    if values:
        values["updated_at"] = datetime.now(timezone.utc)
        db.execute(update(challenges).where(challenges.c.id == challenge_id).values(**values))
        db.commit()
    return get_challenge(db, user_id, challenge_id)


def delete_challenge(db: Session, user_id: str, challenge_id: str) -> None:
    row = _get_row(db, challenge_id)
    if row.created_by != user_id:
        raise PermissionError("Only the creator can delete this challenge")
    db.execute(delete(user_challenges).where(user_challenges.c.challenge_id == challenge_id))
    db.execute(delete(challenges).where(challenges.c.id == challenge_id))
    db.commit()


def _persist_generated(db: Session, generated: GeneratedChallenge, user_id: Optional[str] = None) -> Challenge:
    return create_challenge(
        db,
        user_id,
        title=generated.title,
        description=generated.description,
        difficulty=generated.difficulty,
        language=generated.language,
        tags=generated.tags,
        is_public=True,
        source=generated.source,
        expires_at=generated.expires_at,
    )


async def generate_challenge(
    db: Session,
    user_id: str,
    generator: ChallengeGenerator,
    *,
    difficulty: Optional[str] = None,
    language: Optional[str] = None,
    topic: Optional[str] = None,
) -> Challenge:
    _validate_difficulty(difficulty)
    generated = await generator.generate(difficulty=difficulty, language=language, topic=topic)
    return await run_in_threadpool(_persist_generated, db, generated, user_id)


def _active_rotation(db: Session, tag: str, now: datetime):
    rows = db.execute(
        select(challenges).where(challenges.c.source == "ai").order_by(challenges.c.created_at.desc())
    ).all()
    for row in rows:
        expires_at = _as_utc(row.expires_at)
        if tag in (row.tags or []) and expires_at is not None and expires_at > now:
            return row
    return None


def _store_rotation(db: Session, generated: GeneratedChallenge):
    return _get_row(db, _persist_generated(db, generated).id)


def _with_progress(db: Session, user_id: str, row) -> Challenge:
    progress = _progress_by_challenge(db, user_id, [row.id])
    return _to_challenge(row, progress.get(row.id))


async def get_rotation_challenge(
    db: Session,
    user_id: str,
    generator: ChallengeGenerator,
    *,
    tag: str,
    clock: Optional[Clock] = None,
) -> Challenge:
    """Return the unexpired daily or weekly challenge, generating one when none is active."""
    if tag not in ROTATION_TAGS:
        raise ValidationError(f"Unknown challenge rotation: {tag}")
    now = (clock or default_clock).now().astimezone(timezone.utc)

    row = await run_in_threadpool(_active_rotation, db, tag, now)
    if row is None:
        generated = await (generator.generate_daily() if tag == "daily" else generator.generate_weekly())
        row = await run_in_threadpool(_store_rotation, db, generated)
        logger.info(f"[challenges] generated {tag} challenge", extra={"user_id": user_id})

    return await run_in_threadpool(_with_progress, db, user_id, row)


def update_progress(
    db: Session,
    user_id: str,
    challenge_id: str,
    *,
    status: str,
    solution: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ChallengeProgress:
    if status not in PROGRESS_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PROGRESS_STATUSES)}")
    get_challenge(db, user_id, challenge_id)

    current = now or datetime.now(timezone.utc)
    existing = db.execute(
        select(user_challenges).where(
            user_challenges.c.user_id == user_id,
            user_challenges.c.challenge_id == challenge_id,
        )
    ).first()

    if existing:
        values = {"status": status, "updated_at": current}
        if solution is not None:
            values["solution"] = solution
        if status == "completed" and existing.completed_at is None:
            values["completed_at"] = current
        db.execute(update(user_challenges).where(user_challenges.c.id == existing.id).values(**values))
    else:
        db.execute(
            insert(user_challenges).values(
                user_id=user_id,
                challenge_id=challenge_id,
                status=status,
                solution=solution,
                completed_at=current if status == "completed" else None,
                created_at=current,
                updated_at=current,
            )
        )
    db.commit()

    row = db.execute(
        select(user_challenges).where(
            user_challenges.c.user_id == user_id,
            user_challenges.c.challenge_id == challenge_id,
        )
    ).first()
    return _to_progress(row)
