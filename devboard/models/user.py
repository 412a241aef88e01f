from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    username: str
    email: str
    github_username: Optional[str] = None
    github_token: Optional[str] = None
    stackoverflow_user_id: Optional[str] = None
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def public_dict(self) -> dict:
        """Serializable view without credentials."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "githubUsername": self.github_username,
            "hasGithubToken": bool(self.github_token),
            "stackoverflowUserId": self.stackoverflow_user_id,
            "isActive": self.is_active,
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
