from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from devboard.core.auth import get_current_user
from devboard.core.database import get_db
from devboard.core.errors import ValidationError
from devboard.core.validation import require_github_username
from devboard.features.external.github import GitHubClient, get_github_client
from devboard.features.users import service as user_service
from devboard.models.user import User

router = APIRouter(prefix="/github")


class LinkGithubIn(BaseModel):
    githubUsername: str
    githubToken: Optional[str] = None


def _token_for(user: User, username: str) -> Optional[str]:
    # A linked token is only sent when reading the caller's own account
    if user.github_token and user.github_username and user.github_username.lower() == username.lower():
        return user.github_token
    return None


@router.get("/profile/{username}")
async def github_profile(
    username: str, user: User = Depends(get_current_user), client: GitHubClient = Depends(get_github_client)
):
    username = require_github_username(username)
    profile = await client.get_user_profile(username, _token_for(user, username))
    return {"status": "success", "data": {"profile": profile}}


@router.get("/repos/{username}")
async def github_repos(
    username: str,
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(get_current_user),
    client: GitHubClient = Depends(get_github_client),
):
    username = require_github_username(username)
    repos = await client.get_user_repositories(username, _token_for(user, username), limit=limit)
    return {"status": "success", "results": len(repos), "data": {"repositories": repos}}


@router.get("/pinned/{username}")
async def github_pinned(
    username: str, user: User = Depends(get_current_user), client: GitHubClient = Depends(get_github_client)
):
    username = require_github_username(username)
    repos = await client.get_pinned_repositories(username, _token_for(user, username))
    return {"status": "success", "results": len(repos), "data": {"pinnedRepositories": repos}}


@router.get("/contributions/{username}")
async def github_contributions(
    username: str, user: User = Depends(get_current_user), client: GitHubClient = Depends(get_github_client)
):
    username = require_github_username(username)
    calendar = await client.get_contribution_calendar(username, _token_for(user, username))
    return {"status": "success", "data": {"contributions": calendar}}


@router.get("/comprehensive/{username}")
async def github_comprehensive(
    username: str, user: User = Depends(get_current_user), client: GitHubClient = Depends(get_github_client)
):
    username = require_github_username(username)
    result = await client.get_comprehensive_profile(username, _token_for(user, username))
    return {"status": "success", "degraded": result.degraded, "data": result.payload}


@router.get("/me")
async def github_me(user: User = Depends(get_current_user), client: GitHubClient = Depends(get_github_client)):
    if not user.github_username:
        raise ValidationError("No GitHub account linked to your profile")
    result = await client.get_comprehensive_profile(user.github_username, user.github_token)
    return {"status": "success", "degraded": result.degraded, "data": result.payload}


@router.post("/link")
def github_link(body: LinkGithubIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    username = require_github_username(body.githubUsername)
    updated = user_service.link_github(db, user, github_username=username, github_token=body.githubToken)
    return {"status": "success", "data": {"user": updated.public_dict()}}
