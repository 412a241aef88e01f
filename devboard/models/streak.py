from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Literal, Optional

ActivitySource = Literal["manual", "external"]


@dataclass
class ActivityRecord:
    """
    One day of coding activity for a user. Day-level only, no direct DB concerns.
    """

    user_id: str
    date: date
    commit_count: int = 0
    source: ActivitySource = "manual"
    description: Optional[str] = None
    language: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "commitCount": self.commit_count,
            "source": self.source,
            "description": self.description,
            "language": self.language,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class StreakResult:
    current_streak: int = 0
    longest_streak: int = 0
    last_active_date: Optional[date] = None


@dataclass
class ActivityDistributions:
    by_language: Dict[str, int] = field(default_factory=dict)
    by_month: Dict[str, int] = field(default_factory=dict)
