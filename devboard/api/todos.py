from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from devboard.core.auth import get_current_user
from devboard.core.database import get_db
from devboard.features.todos import service as todo_service
from devboard.models.user import User

router = APIRouter(prefix="/todos")


class TodoIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    deadline: Optional[datetime] = None


class TodoPatch(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    tags: Optional[List[str]] = None
    deadline: Optional[datetime] = None


@router.get("")
def list_todos(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    tag: Optional[str] = None,
    sort: Optional[str] = None,
    limit: int = Query(20, ge=1, le=100),
    page: int = Query(1, ge=1),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items, total = todo_service.list_todos(
        db, user.id, status=status, priority=priority, tag=tag, sort=sort, limit=limit, page=page
    )
    return {
        "status": "success",
        "results": len(items),
        "total": total,
        "page": page,
        "data": {"todos": [item.to_dict() for item in items]},
    }


@router.get("/stats")
def todo_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"status": "success", "data": todo_service.todo_stats(db, user.id)}


@router.post("", status_code=201)
def create_todo(body: TodoIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    todo = todo_service.create_todo(db, user.id, **body.model_dump())
    return {"status": "success", "data": {"todo": todo.to_dict()}}


@router.get("/{todo_id}")
def get_todo(todo_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return {"status": "success", "data": {"todo": todo_service.get_todo(db, user.id, todo_id).to_dict()}}


@router.patch("/{todo_id}")
def update_todo(todo_id: str, body: TodoPatch, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    todo = todo_service.update_todo(db, user.id, todo_id, body.model_dump(exclude_unset=True))
    return {"status": "success", "data": {"todo": todo.to_dict()}}


@router.delete("/{todo_id}", status_code=204)
def delete_todo(todo_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    todo_service.delete_todo(db, user.id, todo_id)
