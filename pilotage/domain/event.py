"""
Calendar event domain record
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional


@dataclass
class EventRecord:
    id: str
    title: str
    start_at: datetime
    end_at: datetime
    description: Optional[str] = None
    participants: List[str] = field(default_factory=list)  # user ids
    user_id: Optional[str] = None  # owner

    @classmethod
    def from_row(cls, row: Any) -> "EventRecord":
        return cls(
            id=row.id,
            title=row.title,
            start_at=row.start_at,
            end_at=row.end_at,
            description=row.description,
            participants=list(row.participants or []),
            user_id=row.user_id,
        )
