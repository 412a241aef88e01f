from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from devboard.core.auth import get_current_user
from devboard.core.database import get_db
from devboard.features.challenges import service as challenge_service
from devboard.features.challenges.generator import ChallengeGenerator, get_challenge_generator
from devboard.models.user import User

router = APIRouter(prefix="/challenges")


class ChallengeIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    difficulty: str = "medium"
    language: str = "javascript"
    tags: List[str] = Field(default_factory=list)
    isPublic: bool = True


class ChallengePatch(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    difficulty: Optional[str] = None
    language: Optional[str] = None
    tags: Optional[List[str]] = None
    isPublic: Optional[bool] = None


class GenerateIn(BaseModel):
    difficulty: Optional[str] = None
    language: Optional[str] = None
    topic: Optional[str] = None


class ProgressIn(BaseModel):
    status: str
    solution: Optional[str] = None


def _one(challenge) -> dict:
    return {"status": "success", "data": {"challenge": challenge.to_dict()}}


@router.get("")
def list_challenges(
    difficulty: Optional[str] = None,
    language: Optional[str] = None,
    tag: Optional[str] = None,
    isPublic: Optional[bool] = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    items = challenge_service.list_challenges(
        db, user.id, difficulty=difficulty, language=language, tag=tag, is_public=isPublic
    )
    return {"status": "success", "results": len(items), "data": {"challenges": [c.to_dict() for c in items]}}


@router.get("/daily")
async def daily_challenge(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generator: ChallengeGenerator = Depends(get_challenge_generator),
):
    return _one(await challenge_service.get_rotation_challenge(db, user.id, generator, tag="daily"))


@router.get("/weekly")
async def weekly_challenge(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generator: ChallengeGenerator = Depends(get_challenge_generator),
):
    return _one(await challenge_service.get_rotation_challenge(db, user.id, generator, tag="weekly"))


@router.post("/generate", status_code=201)
async def generate_challenge(
    body: GenerateIn,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    generator: ChallengeGenerator = Depends(get_challenge_generator),
):
    challenge = await challenge_service.generate_challenge(
        db, user.id, generator, difficulty=body.difficulty, language=body.language, topic=body.topic
    )
    return _one(challenge)


@router.post("", status_code=201)
def create_challenge(body: ChallengeIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    challenge = challenge_service.create_challenge(
        db,
        user.id,
        title=body.title,
        description=body.description,
        difficulty=body.difficulty,
        language=body.language,
        tags=body.tags,
        is_public=body.isPublic,
    )
    return _one(challenge)


@router.get("/{challenge_id}")
def get_challenge(challenge_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _one(challenge_service.get_challenge(db, user.id, challenge_id))


@router.patch("/{challenge_id}")
def update_challenge(
    challenge_id: str, body: ChallengePatch, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    changes = body.model_dump(exclude_unset=True)
    if "isPublic" in changes:
        changes["is_public"] = changes.pop("isPublic")
    return _one(challenge_service.update_challenge(db, user.id, challenge_id, changes))


@router.delete("/{challenge_id}", status_code=204)
def delete_challenge(challenge_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    challenge_service.delete_challenge(db, user.id, challenge_id)


@router.post("/{challenge_id}/progress")
def update_progress(
    challenge_id: str, body: ProgressIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    progress = challenge_service.update_progress(
        db, user.id, challenge_id, status=body.status, solution=body.solution
    )
    return {"status": "success", "data": {"progress": progress.to_dict()}}
