"""
Project management service.
Handles project CRUD and membership changes. Membership changes run with the
project row locked so concurrent admins cannot lose each other's updates.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.exceptions import ConflictException, NotFoundException
from bugtracker.core.security import normalize_email
from bugtracker.crud.project import crud_project
from bugtracker.crud.user import crud_user
from bugtracker.models.project import Project
from bugtracker.models.user import User
from bugtracker.schemas.project import MemberAdd, ProjectCreate, ProjectUpdate
from bugtracker.services import permissions

logger = logging.getLogger(__name__)


async def load_project(
    db: AsyncSession, project_id: uuid.UUID, *, for_update: bool = False
) -> Project:
    """Project with members, or NotFoundException."""
    project = await crud_project.get_with_members(db, project_id, for_update=for_update)
    if project is None:
        raise NotFoundException("Project", str(project_id))
    return project


class ProjectService:

    async def create_project(
        self,
        db: AsyncSession,
        *,
        project_in: ProjectCreate,
        current_user: User,
    ) -> Project:
        """The creator becomes owner and gets the admin membership row."""
        if await crud_project.get_by_key(db, project_in.key) is not None:
            raise ConflictException(f"Project key '{project_in.key}' is already in use")

        try:
            async with db.begin_nested():
                project = await crud_project.create_project(
                    db, obj_in=project_in, owner_id=current_user.id
                )
        except IntegrityError:
            raise ConflictException(f"Project key '{project_in.key}' is already in use")

        logger.info("Project created: project_id=%s key=%s", project.id, project.key)
        return await load_project(db, project.id)

    async def list_projects(
        self,
        db: AsyncSession,
        *,
        current_user: User,
        page: int,
        size: int,
    ) -> tuple[list[Project], int]:
        return await crud_project.list_for_member(
            db, user_id=current_user.id, skip=(page - 1) * size, limit=size
        )

    async def get_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        current_user: User,
    ) -> Project:
        project = await load_project(db, project_id)
        permissions.require_view(project, current_user.id)
        return project

    async def update_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        project_in: ProjectUpdate,
        current_user: User,
    ) -> Project:
        project = await load_project(db, project_id)
        permissions.require_manage_project(project, current_user.id)

        changes = project_in.model_dump(exclude_unset=True, exclude_none=True)
        await crud_project.update(db, db_obj=project, obj_in=changes)
        return await load_project(db, project_id)

    async def delete_project(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        current_user: User,
    ) -> None:
        """Tickets of the project stay behind until the orphan purge runs."""
        project = await load_project(db, project_id)
        permissions.require_manage_project(project, current_user.id)
        await crud_project.remove(db, db_obj=project)
        logger.info("Project deleted: project_id=%s by user_id=%s", project_id, current_user.id)

    # ── Membership ────────────────────────────────────────────────────────────

    async def add_member(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        member_in: MemberAdd,
        current_user: User,
    ) -> tuple[Project, uuid.UUID]:
        """Returns the refreshed project and the id of the added user."""
        project = await load_project(db, project_id, for_update=True)
        permissions.require_manage_project(project, current_user.id)

        target = await crud_user.get_by_email(db, normalize_email(member_in.email))
        if target is None:
            raise NotFoundException("User")

        if permissions.is_member(project, target.id):
            raise ConflictException("User is already a member of this project")

        await crud_project.add_member(
            db, project_id=project.id, user_id=target.id, role=member_in.role
        )
        return await load_project(db, project_id), target.id

    async def update_member_role(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        role: str,
        current_user: User,
    ) -> Project:
        project = await load_project(db, project_id, for_update=True)
        permissions.require_manage_project(project, current_user.id)
        permissions.require_not_owner(project, user_id, "change the role of")

        member = await crud_project.get_member(db, project_id=project_id, user_id=user_id)
        if member is None:
            raise NotFoundException("Project member", str(user_id))

        await crud_project.update_member_role(db, member=member, role=role)
        return await load_project(db, project_id)

    async def remove_member(
        self,
        db: AsyncSession,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        current_user: User,
    ) -> Project:
        project = await load_project(db, project_id, for_update=True)
        permissions.require_manage_project(project, current_user.id)
        permissions.require_not_owner(project, user_id, "remove")

        member = await crud_project.get_member(db, project_id=project_id, user_id=user_id)
        if member is None:
            raise NotFoundException("Project member", str(user_id))

        await crud_project.remove_member(db, member=member)
        return await load_project(db, project_id)


project_service = ProjectService()
