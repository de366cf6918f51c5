"""Project Service — task groups with derived progress.

Invariants:
    - progress = round(done / total * 100), 0 for a project without tasks
    - Archived tasks still count towards progress
    - Deleting a project detaches its tasks (project_id -> NULL), never deletes them
"""

import logging
from collections import defaultdict
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qoro.core.task_rules import project_progress
from qoro.models.project import Project
from qoro.models.task import Task
from qoro.services.org_context import ActorContext, get_owned
from qoro.services.task_service import task_views

logger = logging.getLogger(__name__)

NOT_FOUND = "Projeto não encontrado ou acesso negado."


def _project_view(project: Project, statuses: list[str]) -> dict:
    total, done, progress = project_progress(statuses)
    return {
        **project.to_dict(),
        "task_count": total,
        "completed_task_count": done,
        "progress": progress,
    }


async def _statuses(db: AsyncSession, project_ids: list[UUID]) -> dict[UUID, list[str]]:
    by_project: dict[UUID, list[str]] = defaultdict(list)
    if not project_ids:
        return by_project
    result = await db.execute(
        select(Task.project_id, Task.status).where(Task.project_id.in_(project_ids)),
    )
    for row in result:
        by_project[row.project_id].append(row.status)
    return by_project


async def create_project(
    db: AsyncSession, actor: ActorContext, data: dict,
) -> dict:
    project = Project(
        organization_id=actor.require_organization(),
        owner_id=actor.user_id,
        **data,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    logger.info("Project created", extra=actor.log_extra())
    return _project_view(project, [])


async def list_projects(db: AsyncSession, actor: ActorContext) -> list[dict]:
    if not actor.has_organization:
        return []
    result = await db.execute(
        select(Project)
        .where(Project.organization_id == actor.organization_id)
        .order_by(Project.created_at.desc()),
    )
    projects = result.scalars().all()
    statuses = await _statuses(db, [p.id for p in projects])
    return [_project_view(p, statuses[p.id]) for p in projects]


async def get_project_with_tasks(
    db: AsyncSession, actor: ActorContext, project_id: UUID,
) -> dict:
    project = await get_owned(db, Project, project_id, actor, NOT_FOUND)
    result = await db.execute(
        select(Task)
        .where(Task.project_id == project.id)
        .order_by(Task.created_at.desc()),
    )
    tasks = list(result.scalars().all())
    return {
        "project": _project_view(project, [t.status for t in tasks]),
        "tasks": await task_views(db, project.organization_id, tasks),
    }


async def update_project(
    db: AsyncSession, actor: ActorContext, project_id: UUID, changes: dict,
) -> dict:
    project = await get_owned(db, Project, project_id, actor, NOT_FOUND)
    for key, value in changes.items():
        setattr(project, key, value)
    await db.commit()
    await db.refresh(project)
    statuses = await _statuses(db, [project.id])
    return _project_view(project, statuses[project.id])


async def delete_project(
    db: AsyncSession, actor: ActorContext, project_id: UUID,
) -> None:
    project = await get_owned(db, Project, project_id, actor, NOT_FOUND)
    await db.execute(
        update(Task).where(Task.project_id == project.id).values(project_id=None),
    )
    await db.delete(project)
    await db.commit()
    logger.info("Project deleted", extra=actor.log_extra())
