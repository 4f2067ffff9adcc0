"""
Project and membership CRUD operations.
Every authorization decision reads the membership rows loaded here, so loads
always refresh them from the database.
"""
from __future__ import annotations

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bugtracker.crud.base import CRUDBase
from bugtracker.models.project import Project, ProjectMember
from bugtracker.schemas.project import ProjectCreate, ProjectUpdate


class CRUDProject(CRUDBase[Project, ProjectCreate, ProjectUpdate]):

    async def get_with_members(
        self,
        db: AsyncSession,
        project_id: uuid.UUID,
        *,
        for_update: bool = False,
    ) -> Project | None:
        """
        Fetch a project with its members (and their users) loaded.
        for_update takes a row lock on the project, which serializes ticket
        numbering and membership changes per project.
        """
        query = (
            select(Project)
            .options(
                selectinload(Project.owner),
                selectinload(Project.members).selectinload(ProjectMember.user),
            )
            .where(Project.id == project_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update(of=Project)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def get_by_key(self, db: AsyncSession, key: str) -> Project | None:
        result = await db.execute(select(Project).where(Project.key == key))
        return result.scalar_one_or_none()

    async def create_project(
        self,
        db: AsyncSession,
        *,
        obj_in: ProjectCreate,
        owner_id: uuid.UUID,
    ) -> Project:
        """Create the project and the owner's admin membership in one flush."""
        project = Project(
            title=obj_in.title,
            description=obj_in.description,
            key=obj_in.key,
            owner_id=owner_id,
            status=obj_in.status,
            color=obj_in.color,
            icon=obj_in.icon,
        )
        project.members.append(ProjectMember(user_id=owner_id, role="admin"))
        db.add(project)
        await db.flush()
        return project

    async def list_for_member(
        self,
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 20,
    ) -> tuple[list[Project], int]:
        membership = select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
        query = (
            select(Project)
            .options(
                selectinload(Project.owner),
                selectinload(Project.members).selectinload(ProjectMember.user),
            )
            .where(Project.id.in_(membership))
        )
        count_query = (
            select(func.count()).select_from(Project).where(Project.id.in_(membership))
        )

        total_result = await db.execute(count_query)
        total = total_result.scalar_one()

        result = await db.execute(
            query.order_by(Project.created_at.desc()).offset(skip).limit(limit)
        )
        return list(result.scalars().all()), total

    async def count_owned_by(self, db: AsyncSession, *, user_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count()).select_from(Project).where(Project.owner_id == user_id)
        )
        return result.scalar_one()

    # ── Membership ────────────────────────────────────────────────────────────

    async def get_member(
        self, db: AsyncSession, *, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> ProjectMember | None:
        result = await db.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_member(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str = "developer",
    ) -> ProjectMember:
        member = ProjectMember(project_id=project_id, user_id=user_id, role=role)
        db.add(member)
        await db.flush()
        return member

    async def update_member_role(
        self, db: AsyncSession, *, member: ProjectMember, role: str
    ) -> ProjectMember:
        member.role = role
        db.add(member)
        await db.flush()
        return member

    async def remove_member(self, db: AsyncSession, *, member: ProjectMember) -> None:
        await db.delete(member)
        await db.flush()


crud_project = CRUDProject(Project)
