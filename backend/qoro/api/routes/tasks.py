"""Task & Project Routes — kanban board, comments, metrics and projects.

Invariants:
    - Every route requires effective access to the Task module
    - Board filtering (archived, 24h done window) happens in task_service
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.api.deps import require_module
from qoro.core.domain_types import Module
from qoro.infrastructure.database import get_db
from qoro.schemas.common import DeleteResult
from qoro.schemas.tasks import (
    CommentCreate, ProjectCreate, ProjectResponse, ProjectUpdate,
    ProjectWithTasks, TaskCreate, TaskMetricsResponse, TaskResponse,
    TaskStatusResult, TaskStatusUpdate, TaskUpdate,
)
from qoro.services import project_service, task_service
from qoro.services.org_context import ActorContext

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["tasks"])

task_actor = require_module(Module.TASK)


# ─── Tasks ───────────────────────────────────────────────────────

@router.post(
    "/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED,
)
async def create_task(
    body: TaskCreate,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.create_task(db, actor, body.model_dump())


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    project_id: UUID | None = Query(None),
    responsible_user_id: UUID | None = Query(None),
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.list_tasks(
        db, actor, project_id=project_id, responsible_user_id=responsible_user_id,
    )


@router.get("/tasks/metrics", response_model=TaskMetricsResponse)
async def get_task_metrics(
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.get_task_metrics(db, actor)


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    task = await task_service.get_task(db, actor, task_id)
    return (await task_service.task_views(db, task.organization_id, [task]))[0]


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    body: TaskUpdate,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.update_task(
        db, actor, task_id, body.model_dump(exclude_unset=True),
    )


@router.put("/tasks/{task_id}/status", response_model=TaskStatusResult)
async def update_task_status(
    task_id: UUID,
    body: TaskStatusUpdate,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.update_task_status(db, actor, task_id, body.status)


@router.post(
    "/tasks/{task_id}/comments", status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    task_id: UUID,
    body: CommentCreate,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.add_comment(db, actor, task_id, body.text)


@router.post("/tasks/{task_id}/archive", response_model=DeleteResult)
async def archive_task(
    task_id: UUID,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    await task_service.archive_task(db, actor, task_id)
    return {"id": task_id}


@router.delete("/tasks/{task_id}", response_model=DeleteResult)
async def delete_task(
    task_id: UUID,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    await task_service.delete_task(db, actor, task_id)
    return {"id": task_id}


# ─── Projects ────────────────────────────────────────────────────

@router.post(
    "/projects", response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_project(
    body: ProjectCreate,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await project_service.create_project(db, actor, body.model_dump())


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await project_service.list_projects(db, actor)


@router.get("/projects/{project_id}", response_model=ProjectWithTasks)
async def get_project(
    project_id: UUID,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await project_service.get_project_with_tasks(db, actor, project_id)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    body: ProjectUpdate,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    return await project_service.update_project(
        db, actor, project_id, body.model_dump(exclude_unset=True),
    )


@router.delete("/projects/{project_id}", response_model=DeleteResult)
async def delete_project(
    project_id: UUID,
    actor: ActorContext = Depends(task_actor),
    db: AsyncSession = Depends(get_db),
):
    await project_service.delete_project(db, actor, project_id)
    return {"id": project_id}
