from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from devboard.core.auth import create_access_token, get_current_user
from devboard.core.database import get_db
from devboard.core.errors import ValidationError
from devboard.core.validation import is_valid_github_username, is_valid_stackoverflow_user_id
from devboard.features.users import service as user_service
from devboard.models.user import User

router = APIRouter(prefix="/auth")


class RegisterIn(BaseModel):
    username: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginIn(BaseModel):
    email: str
    password: str


class ProfileIn(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    githubUsername: Optional[str] = None
    stackoverflowUserId: Optional[str] = None


class PasswordIn(BaseModel):
    currentPassword: str
    newPassword: str


def _token_response(user: User) -> dict:
    return {"status": "success", "token": create_access_token(user.id), "data": {"user": user.public_dict()}}


@router.post("/register", status_code=201)
def register(body: RegisterIn, db: Session = Depends(get_db)):
    user = user_service.register(db, username=body.username, email=body.email, password=body.password)
    return _token_response(user)


@router.post("/login")
def login(body: LoginIn, db: Session = Depends(get_db)):
    user = user_service.authenticate(db, email=body.email, password=body.password)
    return _token_response(user)


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    return {"status": "success", "data": {"user": user.public_dict()}}


@router.patch("/update-profile")
def update_profile(body: ProfileIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    if body.githubUsername and not is_valid_github_username(body.githubUsername):
        raise ValidationError("Invalid GitHub username format")
    if body.stackoverflowUserId and not is_valid_stackoverflow_user_id(body.stackoverflowUserId):
        raise ValidationError("Invalid StackOverflow user ID format")
    updated = user_service.update_profile(
        db,
        user,
        username=body.username,
        email=body.email,
        github_username=body.githubUsername,
        stackoverflow_user_id=body.stackoverflowUserId,
    )
    return {"status": "success", "data": {"user": updated.public_dict()}}


@router.patch("/update-password")
def update_password(body: PasswordIn, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    updated = user_service.update_password(
        db, user, current_password=body.currentPassword, new_password=body.newPassword
    )
    # Rotate the session token along with the password
    return _token_response(updated)
