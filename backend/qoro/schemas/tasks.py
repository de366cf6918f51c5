"""Task & Project Schemas — board items, comments, recurrence and progress views."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from qoro.core.domain_types import (
    ProjectStatus, RecurrenceFrequency, TaskPriority, TaskStatus,
)
from qoro.schemas.common import OptionalText, ORMResponse, UtcDatetime


class Subtask(BaseModel):
    id: str = Field(min_length=1, max_length=64)
    text: str = Field(min_length=1, max_length=500)
    is_completed: bool = False


class Recurrence(BaseModel):
    frequency: RecurrenceFrequency
    interval: int = Field(1, ge=1, le=365)


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: OptionalText = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: UtcDatetime | None = None
    responsible_user_id: UUID | None = None
    project_id: UUID | None = None
    subtasks: list[Subtask] = Field(default_factory=list)
    recurrence: Recurrence | None = None


class TaskUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=300)
    description: OptionalText = None
    priority: TaskPriority | None = None
    due_date: UtcDatetime | None = None
    responsible_user_id: UUID | None = None
    project_id: UUID | None = None
    subtasks: list[Subtask] | None = None
    recurrence: Recurrence | None = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class CommentCreate(BaseModel):
    text: str = Field(min_length=1, max_length=5000)


class TaskResponse(ORMResponse):
    title: str
    description: str | None = None
    status: TaskStatus
    priority: TaskPriority
    due_date: datetime | None = None
    responsible_user_id: UUID | None = None
    responsible_user_name: str | None = None
    project_id: UUID | None = None
    creator_id: UUID | None = None
    subtasks: list[dict] = Field(default_factory=list)
    comments: list[dict] = Field(default_factory=list)
    recurrence: dict | None = None
    completed_at: datetime | None = None
    is_archived: bool = False


class TaskStatusResult(BaseModel):
    id: UUID
    status: TaskStatus
    next_occurrence_id: UUID | None = None


class TaskMetricsResponse(BaseModel):
    total_tasks: int
    completed_tasks: int
    in_progress_tasks: int
    pending_tasks: int


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: OptionalText = None
    status: ProjectStatus = ProjectStatus.ACTIVE
    due_date: UtcDatetime | None = None


class ProjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    description: OptionalText = None
    status: ProjectStatus | None = None
    due_date: UtcDatetime | None = None


class ProjectResponse(ORMResponse):
    name: str
    description: str | None = None
    status: ProjectStatus
    due_date: datetime | None = None
    owner_id: UUID | None = None
    task_count: int = 0
    completed_task_count: int = 0
    progress: int = 0


class ProjectWithTasks(BaseModel):
    project: ProjectResponse
    tasks: list[TaskResponse]
