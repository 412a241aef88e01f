from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional

ChallengeDifficulty = Literal["easy", "medium", "hard"]
ChallengeSource = Literal["manual", "ai"]
ProgressStatus = Literal["not_started", "in_progress", "completed"]


@dataclass
class GeneratedChallenge:
    """Challenge text produced by the generator, not yet persisted."""

    title: str
    description: str
    difficulty: ChallengeDifficulty
    language: str
    tags: List[str] = field(default_factory=list)
    source: ChallengeSource = "ai"
    expires_at: Optional[datetime] = None


@dataclass
class ChallengeProgress:
    user_id: str
    challenge_id: str
    status: ProgressStatus = "not_started"
    solution: Optional[str] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "challengeId": self.challenge_id,
            "status": self.status,
            "solution": self.solution,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class Challenge:
    """Domain model for a coding challenge."""

    id: str
    title: str
    description: str
    difficulty: ChallengeDifficulty
    language: str
    tags: List[str] = field(default_factory=list)
    is_public: bool = True
    source: ChallengeSource = "manual"
    created_by: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    user_progress: Optional[ChallengeProgress] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "difficulty": self.difficulty,
            "language": self.language,
            "tags": self.tags,
            "isPublic": self.is_public,
            "source": self.source,
            "createdBy": self.created_by,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "userProgress": self.user_progress.to_dict() if self.user_progress else None,
        }
