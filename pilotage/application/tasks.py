"""
Tasks store - the user's own tasks plus those of the current organization
"""
import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy import or_

from pilotage.application.cache import EntityCache
from pilotage.domain.task import (
    PRIORITY_HIGH,
    PRIORITY_MEDIUM,
    STATUS_COMPLETED,
    STATUS_ONGOING,
    STATUS_TODO,
    TASK_PRIORITIES,
    TASK_STATUSES,
    TASK_TYPES,
    TYPE_PROJECT,
    TYPE_SINGLE,
    TYPE_SUBTASK,
    TaskRecord,
)
from pilotage.infrastructure.db.models import TaskModel
from pilotage.infrastructure.remote.gateway import RemoteGateway

logger = logging.getLogger(__name__)

TASK_FIELDS = (
    "title", "description", "status", "priority", "type", "parent_task_id",
    "due_date", "assignee_id", "tags", "estimated_duration", "progress",
)


class TaskValidationError(ValueError):
    """Erreur de validation de tâche"""
    pass


def validate_task_fields(values: Dict[str, Any]) -> Dict[str, Any]:
    """Check the enumerated and bounded fields present in values."""
    unknown = set(values) - set(TASK_FIELDS)
    if unknown:
        raise TaskValidationError(f"Champs inconnus : {', '.join(sorted(unknown))}")

    if "title" in values:
        title = (values["title"] or "").strip()
        if not title:
            raise TaskValidationError("Le titre de la tâche ne peut pas être vide")
        values["title"] = title
    if values.get("status") is not None and values["status"] not in TASK_STATUSES:
        raise TaskValidationError(f"Statut invalide : {values['status']}")
    if values.get("priority") is not None and values["priority"] not in TASK_PRIORITIES:
        raise TaskValidationError(f"Priorité invalide : {values['priority']}")
    if values.get("type") is not None and values["type"] not in TASK_TYPES:
        raise TaskValidationError(f"Type de tâche invalide : {values['type']}")
    progress = values.get("progress")
    if progress is not None and not 0 <= progress <= 100:
        raise TaskValidationError("La progression doit être comprise entre 0 et 100")
    duration = values.get("estimated_duration")
    if duration is not None and duration < 0:
        raise TaskValidationError("La durée estimée ne peut pas être négative")
    return values


class TasksStore:
    """
    Cached tasks, newest first

    Usage:
        store = TasksStore(gateway, user_id, organization_id)
        store.fetch_tasks()
        task = store.create(title="Préparer le bilan", priority="high")
        store.mark_completed(task.id)
    """

    def __init__(self, gateway: RemoteGateway, user_id: str | None, organization_id: str | None = None):
        self.gateway = gateway
        self.user_id = user_id
        self.organization_id = organization_id
        self._tasks: EntityCache[TaskRecord] = EntityCache()
        self.loading = False

    @property
    def tasks(self) -> List[TaskRecord]:
        return self._tasks.items

    def get(self, task_id: str) -> TaskRecord | None:
        return self._tasks.get(task_id)

    def subtasks_of(self, task_id: str) -> List[TaskRecord]:
        return [t for t in self.tasks if t.parent_task_id == task_id]

    def fetch_tasks(self) -> List[TaskRecord]:
        if not self.user_id:
            self._tasks.replace_all([])
            return []

        visible = TaskModel.user_id == self.user_id
        if self.organization_id:
            visible = or_(visible, TaskModel.organization_id == self.organization_id)

        self.loading = True
        try:
            rows = self.gateway.select(TaskModel, visible, order_by=(TaskModel.created_at.desc(),))
            self._tasks.replace_all(TaskRecord.from_row(r) for r in rows)
        finally:
            self.loading = False
        return self.tasks

    refetch = fetch_tasks

    def create(self, title: str, **payload: Any) -> TaskRecord:
        if not self.user_id:
            raise TaskValidationError("Utilisateur non connecté")

        values = validate_task_fields({"title": title, **payload})
        values["status"] = values.get("status") or STATUS_TODO
        values["priority"] = values.get("priority") or PRIORITY_MEDIUM
        values["type"] = values.get("type") or TYPE_SINGLE
        if values["type"] == TYPE_SUBTASK and not values.get("parent_task_id"):
            raise TaskValidationError("Une sous-tâche doit avoir une tâche parente")
        if values["type"] == TYPE_PROJECT:
            values["progress"] = 0
        else:
            values.pop("progress", None)

        row = self.gateway.insert(
            TaskModel, user_id=self.user_id, organization_id=self.organization_id, **values
        )
        task = TaskRecord.from_row(row)
        self._tasks.replace_all([task, *self.tasks])
        logger.info("Task %s created by %s", task.id, self.user_id)
        return task

    def update(self, task_id: str, **payload: Any) -> TaskRecord:
        values = validate_task_fields(dict(payload))
        if not values:
            raise TaskValidationError("Aucune modification à enregistrer")

        with self._tasks.optimistic() as cache:
            current = cache.get(task_id)
            if current is not None:
                cache.upsert(replace(current, **values))
            row = self.gateway.update(
                TaskModel, task_id, updated_at=datetime.now(timezone.utc), **values
            )
            task = TaskRecord.from_row(row)
            cache.upsert(task)
        return task

    def remove(self, task_id: str) -> None:
        with self._tasks.optimistic() as cache:
            cache.discard(task_id)
            self.gateway.delete(TaskModel, task_id)
        # the backend cascades to sub-tasks
        for subtask in self.subtasks_of(task_id):
            self._tasks.discard(subtask.id)

    def mark_completed(self, task_id: str) -> TaskRecord:
        return self.update(task_id, status=STATUS_COMPLETED)

    def mark_ongoing(self, task_id: str) -> TaskRecord:
        return self.update(task_id, status=STATUS_ONGOING)

    def mark_todo(self, task_id: str) -> TaskRecord:
        return self.update(task_id, status=STATUS_TODO)

    def stats(self) -> Dict[str, int]:
        """Counters over projects and single tasks (sub-tasks excluded)."""
        main_tasks = [t for t in self.tasks if t.type != TYPE_SUBTASK]
        return {
            "total": len(main_tasks),
            "todo": sum(1 for t in main_tasks if t.status == STATUS_TODO),
            "ongoing": sum(1 for t in main_tasks if t.status == STATUS_ONGOING),
            "completed": sum(1 for t in main_tasks if t.status == STATUS_COMPLETED),
            "high_priority": sum(1 for t in main_tasks if t.priority == PRIORITY_HIGH and t.is_open),
        }
