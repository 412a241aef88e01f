"""
User domain service.
- register / authenticate
- get_user
- update_profile / update_password
- link_github / link_stackoverflow
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import insert, or_, select, update
from sqlalchemy.orm import Session

from devboard.core.auth import hash_password, verify_password
from devboard.core.database import users as app_users
from devboard.core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from devboard.core.validation import is_valid_email, validate_password
from devboard.models.user import User


def _to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        email=row.email,
        github_username=row.github_username,
        github_token=row.github_token,
        stackoverflow_user_id=row.stackoverflow_user_id,
        is_active=row.is_active,
        last_login=row.last_login,
        created_at=row.created_at,
    )


def get_user(db: Session, user_id: str) -> Optional[User]:
    row = db.execute(select(app_users).where(app_users.c.id == user_id)).first()
    return _to_user(row) if row else None


def _require_user(db: Session, user_id: str) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def register(db: Session, *, username: str, email: str, password: str) -> User:
    if not username or not email or not password:
        raise ValidationError("Please provide username, email and password")
    if not 3 <= len(username) <= 30:
        raise ValidationError("Username must be between 3 and 30 characters")
    if not is_valid_email(email):
        raise ValidationError("Please provide a valid email address")
    validate_password(password)

    existing = db.execute(
        select(app_users.c.id).where(or_(app_users.c.email == email, app_users.c.username == username))
    ).first()
    if existing:
        raise ConflictError("User with that email or username already exists")

    user_id = str(uuid4())
    now = datetime.now(timezone.utc)
    db.execute(
        insert(app_users).values(
            id=user_id,
            username=username,
            email=email,
            password_hash=hash_password(password),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
    )
    db.commit()
    return _require_user(db, user_id)


def authenticate(db: Session, *, email: str, password: str) -> User:
    if not email or not password:
        raise ValidationError("Please provide email and password")

    row = db.execute(select(app_users).where(app_users.c.email == email)).first()
    if not row or not verify_password(password, row.password_hash):
        raise AuthenticationError("Incorrect email or password")

    db.execute(
        update(app_users).where(app_users.c.id == row.id).values(last_login=datetime.now(timezone.utc))
    )
    db.commit()
    return _require_user(db, row.id)


def update_profile(
    db: Session,
    user: User,
    *,
    username: Optional[str] = None,
    email: Optional[str] = None,
    github_username: Optional[str] = None,
    stackoverflow_user_id: Optional[str] = None,
) -> User:
    if email and not is_valid_email(email):
        raise ValidationError("Please provide a valid email address")

    if email and email != user.email:
        taken = db.execute(select(app_users.c.id).where(app_users.c.email == email)).first()
        if taken:
            raise ConflictError("Email is already taken")

    if username and username != user.username:
        taken = db.execute(select(app_users.c.id).where(app_users.c.username == username)).first()
        if taken:
            raise ConflictError("Username is already taken")

    values = {
        key: value
        for key, value in {
            "username": username,
            "email": email,
            "github_username": github_username,
            "stackoverflow_user_id": stackoverflow_user_id,
        }.items()
        if value
    }
    if values:
        db.execute(update(app_users).where(app_users.c.id == user.id).values(**values))
        db.commit()
    return _require_user(db, user.id)


def update_password(db: Session, user: User, *, current_password: str, new_password: str) -> User:
    if not current_password or not new_password:
        raise ValidationError("Please provide current password and new password")

    row = db.execute(select(app_users.c.password_hash).where(app_users.c.id == user.id)).first()
    if not row or not verify_password(current_password, row.password_hash):
        raise AuthenticationError("Current password is incorrect")

    validate_password(new_password)
    db.execute(
        update(app_users).where(app_users.c.id == user.id).values(password_hash=hash_password(new_password))
    )
    db.commit()
    return _require_user(db, user.id)


def link_github(db: Session, user: User, *, github_username: str, github_token: Optional[str] = None) -> User:
    values = {"github_username": github_username}
    if github_token:
        values["github_token"] = github_token
    db.execute(update(app_users).where(app_users.c.id == user.id).values(**values))
    db.commit()
    return _require_user(db, user.id)


def link_stackoverflow(db: Session, user: User, *, stackoverflow_user_id: str) -> User:
    db.execute(
        update(app_users).where(app_users.c.id == user.id).values(stackoverflow_user_id=stackoverflow_user_id)
    )
    db.commit()
    return _require_user(db, user.id)
