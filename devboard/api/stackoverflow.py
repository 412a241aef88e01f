from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from devboard.core.auth import get_current_user
from devboard.core.database import get_db
from devboard.core.errors import NotFoundError, ValidationError
from devboard.core.validation import require_stackoverflow_user_id
from devboard.features.external.stackoverflow import StackOverflowClient, get_stackoverflow_client
from devboard.features.users import service as user_service
from devboard.models.user import User

router = APIRouter(prefix="/stackoverflow", dependencies=[Depends(get_current_user)])


class LinkStackOverflowIn(BaseModel):
    stackoverflowUserId: str


@router.get("/profile/{user_id}")
async def stackoverflow_profile(user_id: str, client: StackOverflowClient = Depends(get_stackoverflow_client)):
    profile = await client.get_user_profile(require_stackoverflow_user_id(user_id))
    if profile is None:
        raise NotFoundError("StackOverflow user not found")
    return {"status": "success", "data": {"profile": profile}}


@router.get("/questions/{user_id}")
async def stackoverflow_questions(
    user_id: str,
    page: int = Query(1, ge=1),
    pagesize: int = Query(10, ge=1, le=100),
    client: StackOverflowClient = Depends(get_stackoverflow_client),
):
    body = await client.get_user_questions(require_stackoverflow_user_id(user_id), page, pagesize)
    return {
        "status": "success",
        "results": len(body["items"]),
        "hasMore": bool(body.get("has_more")),
        "data": {"questions": body["items"]},
    }


@router.get("/answers/{user_id}")
async def stackoverflow_answers(
    user_id: str,
    page: int = Query(1, ge=1),
    pagesize: int = Query(10, ge=1, le=100),
    client: StackOverflowClient = Depends(get_stackoverflow_client),
):
    body = await client.get_user_answers(require_stackoverflow_user_id(user_id), page, pagesize)
    return {
        "status": "success",
        "results": len(body["items"]),
        "hasMore": bool(body.get("has_more")),
        "data": {"answers": body["items"]},
    }


@router.get("/top-tags/{user_id}")
async def stackoverflow_top_tags(user_id: str, client: StackOverflowClient = Depends(get_stackoverflow_client)):
    body = await client.get_user_top_tags(require_stackoverflow_user_id(user_id))
    return {"status": "success", "results": len(body["items"]), "data": {"topTags": body["items"]}}


@router.get("/comprehensive/{user_id}")
async def stackoverflow_comprehensive(
    user_id: str, client: StackOverflowClient = Depends(get_stackoverflow_client)
):
    result = await client.get_comprehensive_profile(require_stackoverflow_user_id(user_id))
    if result.payload["profile"] is None:
        raise NotFoundError("StackOverflow user not found")
    return {"status": "success", "degraded": result.degraded, "data": result.payload}


@router.get("/me")
async def stackoverflow_me(
    user: User = Depends(get_current_user), client: StackOverflowClient = Depends(get_stackoverflow_client)
):
    if not user.stackoverflow_user_id:
        raise ValidationError("No StackOverflow account linked to your profile")
    result = await client.get_comprehensive_profile(user.stackoverflow_user_id)
    return {"status": "success", "degraded": result.degraded, "data": result.payload}


@router.post("/link")
def stackoverflow_link(
    body: LinkStackOverflowIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)
):
    user_id = require_stackoverflow_user_id(body.stackoverflowUserId)
    updated = user_service.link_stackoverflow(db, user, stackoverflow_user_id=user_id)
    return {"status": "success", "data": {"user": updated.public_dict()}}
