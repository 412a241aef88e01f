"""Todo CRUD, filtering and stats."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import uuid4

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.orm import Session

from devboard.core.database import todos
from devboard.core.errors import NotFoundError, ValidationError
from devboard.models.todo import Todo

STATUSES = ("pending", "in_progress", "completed")
PRIORITIES = ("low", "medium", "high")

SORTABLE_FIELDS = {
    "title": todos.c.title,
    "status": todos.c.status,
    "priority": todos.c.priority,
    "deadline": todos.c.deadline,
    "created_at": todos.c.created_at,
    "createdAt": todos.c.created_at,
    "updated_at": todos.c.updated_at,
    "updatedAt": todos.c.updated_at,
}


def _to_todo(row) -> Todo:
    return Todo(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        description=row.description,
        status=row.status,
        priority=row.priority,
        tags=list(row.tags or []),
        deadline=row.deadline,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _validate_fields(status: Optional[str], priority: Optional[str], title: Optional[str]) -> None:
    if status is not None and status not in STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STATUSES)}")
    if priority is not None and priority not in PRIORITIES:
        raise ValidationError(f"priority must be one of: {', '.join(PRIORITIES)}")
    if title is not None and not 1 <= len(title) <= 255:
        raise ValidationError("Title must be between 1 and 255 characters")


def _order_by(sort: Optional[str]):
    if sort:
        field, _, direction = sort.partition(":")
        column = SORTABLE_FIELDS.get(field)
        if column is not None:
            return column.desc() if direction.lower() == "desc" else column.asc()
    return todos.c.created_at.desc()


def list_todos(
    db: Session,
    user_id: str,
    *,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    tag: Optional[str] = None,
    sort: Optional[str] = None,
    limit: int = 20,
    page: int = 1,
) -> Tuple[List[Todo], int]:
    conditions = [todos.c.user_id == user_id]
    if status:
        conditions.append(todos.c.status == status)
    if priority:
        conditions.append(todos.c.priority == priority)

    rows = db.execute(select(todos).where(*conditions).order_by(_order_by(sort))).all()
    items = [_to_todo(row) for row in rows]
    if tag:
        # JSON containment differs per dialect; tag lists are small
        items = [item for item in items if tag in item.tags]

    start = (page - 1) * limit
    return items[start:start + limit], len(items)


def get_todo(db: Session, user_id: str, todo_id: str) -> Todo:
    row = db.execute(select(todos).where(todos.c.id == todo_id, todos.c.user_id == user_id)).first()
    if not row:
        raise NotFoundError("Todo not found")
    return _to_todo(row)


def create_todo(
    db: Session,
    user_id: str,
    *,
    title: str,
    description: Optional[str] = None,
    status: Optional[str] = None,
    priority: Optional[str] = None,
    tags: Optional[List[str]] = None,
    deadline: Optional[datetime] = None,
) -> Todo:
    if not title:
        raise ValidationError("Title is required")
    _validate_fields(status, priority, title)

    todo_id = str(uuid4())
    now = datetime.now(timezone.utc)
    db.execute(
        insert(todos).values(
            id=todo_id,
            user_id=user_id,
            title=title,
            description=description,
            status=status or "pending",
            priority=priority or "medium",
            tags=tags or [],
            deadline=deadline,
            created_at=now,
            updated_at=now,
        )
    )
    db.commit()
    return get_todo(db, user_id, todo_id)


def update_todo(db: Session, user_id: str, todo_id: str, changes: dict) -> Todo:
    get_todo(db, user_id, todo_id)
    _validate_fields(changes.get("status"), changes.get("priority"), changes.get("title"))

    allowed = {"title", "description", "status", "priority", "tags", "deadline"}
    values = {key: value for key, value in changes.items() if key in allowed}
    if values:
        values["updated_at"] = datetime.now(timezone.utc)
        db.execute(update(todos).where(todos.c.id == todo_id).values(**values))
        db.commit()
    return get_todo(db, user_id, todo_id)


def delete_todo(db: Session, user_id: str, todo_id: str) -> None:
    get_todo(db, user_id, todo_id)
    db.execute(delete(todos).where(todos.c.id == todo_id))
    db.commit()


def todo_stats(db: Session, user_id: str, *, now: Optional[datetime] = None) -> dict:
    current = now or datetime.now(timezone.utc)

    status_counts = {
        row.status: row.count
        for row in db.execute(
            select(todos.c.status, func.count().label("count")).where(todos.c.user_id == user_id).group_by(todos.c.status)
        )
    }
    priority_counts = {
        row.priority: row.count
        for row in db.execute(
            select(todos.c.priority, func.count().label("count"))
            .where(todos.c.user_id == user_id)
            .group_by(todos.c.priority)
        )
    }
    upcoming = db.execute(
        select(todos)
        .where(todos.c.user_id == user_id, todos.c.deadline >= current, todos.c.status != "completed")
        .order_by(todos.c.deadline.asc())
        .limit(5)
    ).all()
    total = db.execute(select(func.count()).select_from(todos).where(todos.c.user_id == user_id)).scalar_one()

    return {
        "statusCounts": status_counts,
        "priorityCounts": priority_counts,
        "upcomingDeadlines": [_to_todo(row).to_dict() for row in upcoming],
        "total": total,
    }
