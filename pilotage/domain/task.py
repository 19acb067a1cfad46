"""
Task domain record
"""
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional


STATUS_TODO = "todo"
STATUS_ONGOING = "ongoing"
STATUS_COMPLETED = "completed"
TASK_STATUSES = (STATUS_TODO, STATUS_ONGOING, STATUS_COMPLETED)

PRIORITY_LOW = "low"
PRIORITY_MEDIUM = "medium"
PRIORITY_HIGH = "high"
TASK_PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH)

TYPE_PROJECT = "project"
TYPE_SINGLE = "single"
TYPE_SUBTASK = "subtask"
TASK_TYPES = (TYPE_PROJECT, TYPE_SINGLE, TYPE_SUBTASK)


@dataclass
class TaskRecord:
    id: str
    title: str
    user_id: str
    status: str = STATUS_TODO
    priority: str = PRIORITY_MEDIUM
    type: str = TYPE_SINGLE
    description: Optional[str] = None
    parent_task_id: Optional[str] = None
    due_date: Optional[date] = None
    organization_id: Optional[str] = None
    assignee_id: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    estimated_duration: Optional[int] = None  # minutes
    progress: Optional[int] = None  # 0-100, projects only

    @property
    def is_open(self) -> bool:
        return self.status != STATUS_COMPLETED

    @classmethod
    def from_row(cls, row: Any) -> "TaskRecord":
        return cls(
            id=row.id,
            title=row.title,
            user_id=row.user_id,
            status=row.status,
            priority=row.priority,
            type=row.type,
            description=row.description,
            parent_task_id=row.parent_task_id,
            due_date=row.due_date,
            organization_id=row.organization_id,
            assignee_id=row.assignee_id,
            tags=list(row.tags or []),
            estimated_duration=row.estimated_duration,
            progress=row.progress,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "type": self.type,
            "parent_task_id": self.parent_task_id,
            "due_date": self.due_date,
            "user_id": self.user_id,
            "organization_id": self.organization_id,
            "assignee_id": self.assignee_id,
            "tags": self.tags,
            "estimated_duration": self.estimated_duration,
            "progress": self.progress,
        }
