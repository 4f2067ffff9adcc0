"""
Project routes.
CRUD on /projects plus membership management under /projects/{id}/members.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, Query, status

from bugtracker.core.dependencies import CurrentUser, DBSession, Dispatcher
from bugtracker.schemas.pagination import PaginatedResponse
from bugtracker.schemas.project import (
    MemberAdd,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectRead,
    ProjectUpdate,
)
from bugtracker.services.notification_service import ProjectRef
from bugtracker.services.project_service import project_service

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get(
    "/",
    response_model=PaginatedResponse[ProjectRead],
    summary="List projects I am a member of",
)
async def list_projects(
    current_user: CurrentUser,
    db: DBSession,
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> PaginatedResponse[ProjectRead]:
    projects, total = await project_service.list_projects(
        db, current_user=current_user, page=page, size=size
    )
    return PaginatedResponse(
        items=[ProjectRead.model_validate(p) for p in projects],
        total=total,
        page=page,
        size=size,
    )


@router.post(
    "/",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
)
async def create_project(
    project_in: ProjectCreate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.create_project(
        db, project_in=project_in, current_user=current_user
    )
    return ProjectRead.model_validate(project)


@router.get("/{project_id}", response_model=ProjectRead, summary="Get a project")
async def get_project(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.get_project(
        db, project_id=project_id, current_user=current_user
    )
    return ProjectRead.model_validate(project)


@router.put("/{project_id}", response_model=ProjectRead, summary="Update a project")
async def update_project(
    project_id: uuid.UUID,
    project_in: ProjectUpdate,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.update_project(
        db, project_id=project_id, project_in=project_in, current_user=current_user
    )
    return ProjectRead.model_validate(project)


@router.delete(
    "/{project_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a project",
)
async def delete_project(
    project_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> None:
    await project_service.delete_project(db, project_id=project_id, current_user=current_user)


# ── Members ───────────────────────────────────────────────────────────────────

@router.post(
    "/{project_id}/members",
    response_model=ProjectRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add a member by email",
)
async def add_member(
    project_id: uuid.UUID,
    member_in: MemberAdd,
    current_user: CurrentUser,
    db: DBSession,
    dispatcher: Dispatcher,
    background_tasks: BackgroundTasks,
) -> ProjectRead:
    project, new_member_id = await project_service.add_member(
        db, project_id=project_id, member_in=member_in, current_user=current_user
    )
    response = ProjectRead.model_validate(project)
    ref = ProjectRef.from_project(project)
    await db.commit()

    background_tasks.add_task(
        dispatcher.project_member_added,
        ref,
        new_member_id,
        current_user.id,
    )
    return response


@router.patch(
    "/{project_id}/members/{user_id}",
    response_model=ProjectRead,
    summary="Change a member's role",
)
async def update_member_role(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    body: MemberRoleUpdate,
    current_user: CurrentUser,
    db: DBSession,
    dispatcher: Dispatcher,
    background_tasks: BackgroundTasks,
) -> ProjectRead:
    project = await project_service.update_member_role(
        db,
        project_id=project_id,
        user_id=user_id,
        role=body.role,
        current_user=current_user,
    )
    response = ProjectRead.model_validate(project)
    ref = ProjectRef.from_project(project)
    await db.commit()

    background_tasks.add_task(
        dispatcher.project_role_changed,
        ref,
        user_id,
        body.role,
        current_user.id,
    )
    return response


@router.delete(
    "/{project_id}/members/{user_id}",
    response_model=ProjectRead,
    summary="Remove a member",
)
async def remove_member(
    project_id: uuid.UUID,
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: DBSession,
) -> ProjectRead:
    project = await project_service.remove_member(
        db, project_id=project_id, user_id=user_id, current_user=current_user
    )
    return ProjectRead.model_validate(project)
