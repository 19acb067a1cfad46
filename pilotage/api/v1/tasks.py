"""
Task API endpoints
"""
from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from pilotage.api.deps import get_tasks_store
from pilotage.application.tasks import TasksStore


router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])

# Fields a PATCH cannot clear
REQUIRED_FIELDS = ("title", "status", "priority", "type")


# === Request/Response models ===

class CreateTaskRequest(BaseModel):
    title: str
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    type: str | None = None
    parent_task_id: str | None = None
    due_date: date | None = None
    assignee_id: str | None = None
    tags: list[str] = Field(default_factory=list)
    estimated_duration: int | None = None  # minutes


class UpdateTaskRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    type: str | None = None
    parent_task_id: str | None = None
    due_date: date | None = None
    assignee_id: str | None = None
    tags: list[str] | None = None
    estimated_duration: int | None = None
    progress: int | None = None


class TaskResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str | None = None
    status: str
    priority: str
    type: str
    parent_task_id: str | None = None
    due_date: date | None = None
    user_id: str
    organization_id: str | None = None
    assignee_id: str | None = None
    tags: list[str] = []
    estimated_duration: int | None = None
    progress: int | None = None


# === Endpoints ===

@router.get("/")
def list_tasks(store: TasksStore = Depends(get_tasks_store)):
    """Tâches visibles et statistiques (hors sous-tâches)"""
    return {
        "tasks": [TaskResponse.model_validate(t).model_dump(mode="json") for t in store.tasks],
        "stats": store.stats(),
    }


@router.post("/", response_model=TaskResponse)
def create_task(req: CreateTaskRequest, store: TasksStore = Depends(get_tasks_store)):
    payload = req.model_dump(exclude={"title"}, exclude_none=True)
    return TaskResponse.model_validate(store.create(req.title, **payload))


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(task_id: str, req: UpdateTaskRequest, store: TasksStore = Depends(get_tasks_store)):
    changes = {
        key: value
        for key, value in req.model_dump(exclude_unset=True).items()
        if value is not None or key not in REQUIRED_FIELDS
    }
    return TaskResponse.model_validate(store.update(task_id, **changes))


@router.delete("/{task_id}")
def delete_task(task_id: str, store: TasksStore = Depends(get_tasks_store)):
    store.remove(task_id)
    return {"status": "deleted"}


@router.post("/{task_id}/complete", response_model=TaskResponse)
def complete_task(task_id: str, store: TasksStore = Depends(get_tasks_store)):
    """Marquer comme terminée"""
    return TaskResponse.model_validate(store.mark_completed(task_id))


@router.post("/{task_id}/start", response_model=TaskResponse)
def start_task(task_id: str, store: TasksStore = Depends(get_tasks_store)):
    """Marquer comme en cours"""
    return TaskResponse.model_validate(store.mark_ongoing(task_id))


@router.post("/{task_id}/reopen", response_model=TaskResponse)
def reopen_task(task_id: str, store: TasksStore = Depends(get_tasks_store)):
    """Remettre à faire"""
    return TaskResponse.model_validate(store.mark_todo(task_id))
