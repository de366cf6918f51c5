"""Task Service — kanban board, comments, recurrence and board metrics.

Invariants:
    - completed_at is set exactly when status becomes done and cleared otherwise
    - Board listing hides archived tasks and done tasks completed over 24h ago
    - A recurring task moved into done spawns one new `todo` occurrence with
      the next due date and unchecked subtasks
    - Responsible user and project must belong to the actor's organization

Design Decisions:
    - Comments and subtasks live in JSON columns on the task: they are always
      read with the task and never queried on their own
"""

import logging
import uuid
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.domain_types import TaskStatus
from qoro.core.errors import ResourceNotFoundError
from qoro.core.task_rules import (
    completion_timestamp, is_visible_on_board, next_due_date, reset_subtasks,
    should_spawn_recurrence, status_metrics,
)
from qoro.core.time_utils import utc_now
from qoro.models.project import Project
from qoro.models.task import Task
from qoro.models.user import User
from qoro.services.org_context import ActorContext, get_owned, names_by_id

logger = logging.getLogger(__name__)

NOT_FOUND = "Tarefa não encontrada ou acesso negado."
PROJECT_NOT_FOUND = "Projeto não encontrado ou acesso negado."
RESPONSIBLE_NOT_FOUND = "Usuário responsável não encontrado nesta organização."


async def _check_references(
    db: AsyncSession, organization_id: UUID, fields: dict,
) -> None:
    user_id = fields.get("responsible_user_id")
    if user_id is not None:
        user = await db.get(User, user_id)
        if user is None or user.organization_id != organization_id:
            raise ResourceNotFoundError("User", str(user_id), RESPONSIBLE_NOT_FOUND)
    project_id = fields.get("project_id")
    if project_id is not None:
        project = await db.get(Project, project_id)
        if project is None or project.organization_id != organization_id:
            raise ResourceNotFoundError("Project", str(project_id), PROJECT_NOT_FOUND)


async def task_views(
    db: AsyncSession, organization_id: UUID, tasks: list[Task],
) -> list[dict]:
    names = await names_by_id(
        db, User, (t.responsible_user_id for t in tasks), organization_id,
    )
    return [
        {**t.to_dict(), "responsible_user_name": names.get(t.responsible_user_id)}
        for t in tasks
    ]


async def create_task(
    db: AsyncSession, actor: ActorContext, data: dict,
) -> dict:
    organization_id = actor.require_organization()
    await _check_references(db, organization_id, data)
    status = data.get("status", TaskStatus.TODO)
    task = Task(
        organization_id=organization_id,
        creator_id=actor.user_id,
        completed_at=completion_timestamp(status, utc_now()),
        **data,
    )
    db.add(task)
    await db.commit()
    await db.refresh(task)
    logger.info("Task created", extra=actor.log_extra())
    return (await task_views(db, organization_id, [task]))[0]


async def list_tasks(
    db: AsyncSession,
    actor: ActorContext,
    *,
    project_id: UUID | None = None,
    responsible_user_id: UUID | None = None,
) -> list[dict]:
    """Board tasks, newest first."""
    if not actor.has_organization:
        return []
    query = (
        select(Task)
        .where(Task.organization_id == actor.organization_id)
        .where(Task.is_archived.is_(False))
    )
    if project_id is not None:
        query = query.where(Task.project_id == project_id)
    if responsible_user_id is not None:
        query = query.where(Task.responsible_user_id == responsible_user_id)
    result = await db.execute(query.order_by(Task.created_at.desc()))
    now = utc_now()
    visible = [
        t for t in result.scalars().all()
        if is_visible_on_board(t.status, t.completed_at, now)
    ]
    return await task_views(db, actor.organization_id, visible)


async def get_task(db: AsyncSession, actor: ActorContext, task_id: UUID) -> Task:
    return await get_owned(db, Task, task_id, actor, NOT_FOUND)


async def update_task(
    db: AsyncSession, actor: ActorContext, task_id: UUID, changes: dict,
) -> dict:
    task = await get_task(db, actor, task_id)
    await _check_references(db, task.organization_id, changes)
    for key, value in changes.items():
        setattr(task, key, value)
    await db.commit()
    await db.refresh(task)
    return (await task_views(db, task.organization_id, [task]))[0]


async def update_task_status(
    db: AsyncSession, actor: ActorContext, task_id: UUID, status: TaskStatus,
) -> dict:
    task = await get_task(db, actor, task_id)
    old_status = task.status
    now = utc_now()
    task.status = status.value
    if status.value != old_status:
        task.completed_at = completion_timestamp(status, now)

    next_occurrence = None
    if should_spawn_recurrence(old_status, status.value, task.recurrence):
        next_occurrence = Task(
            organization_id=task.organization_id,
            title=task.title,
            description=task.description,
            status=TaskStatus.TODO.value,
            priority=task.priority,
            due_date=next_due_date(task.due_date, task.recurrence, now),
            responsible_user_id=task.responsible_user_id,
            project_id=task.project_id,
            creator_id=task.creator_id,
            subtasks=reset_subtasks(task.subtasks),
            comments=[],
            recurrence=dict(task.recurrence),
        )
        db.add(next_occurrence)
    await db.commit()
    if next_occurrence is not None:
        logger.info("Recurring task spawned its next occurrence", extra=actor.log_extra())
    return {
        "id": task.id,
        "status": status,
        "next_occurrence_id": next_occurrence.id if next_occurrence else None,
    }


async def add_comment(
    db: AsyncSession, actor: ActorContext, task_id: UUID, text: str,
) -> dict:
    task = await get_task(db, actor, task_id)
    comment = {
        "id": str(uuid.uuid4()),
        "author_id": str(actor.user_id),
        "author_name": actor.name,
        "text": text,
        "created_at": utc_now().isoformat(),
    }
    # reassign so the JSON column is flagged dirty
    task.comments = [*(task.comments or []), comment]
    await db.commit()
    return comment


async def archive_task(
    db: AsyncSession, actor: ActorContext, task_id: UUID,
) -> None:
    task = await get_task(db, actor, task_id)
    task.is_archived = True
    await db.commit()


async def delete_task(
    db: AsyncSession, actor: ActorContext, task_id: UUID,
) -> None:
    task = await get_task(db, actor, task_id)
    await db.delete(task)
    await db.commit()


async def get_task_metrics(db: AsyncSession, actor: ActorContext) -> dict:
    if not actor.has_organization:
        return status_metrics([])
    result = await db.execute(
        select(Task.status).where(Task.organization_id == actor.organization_id),
    )
    return status_metrics(result.scalars().all())
