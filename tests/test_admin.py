"""
Maintenance endpoint tests.
"""
from __future__ import annotations

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.models.activity import Activity
from bugtracker.models.comment import Comment
from bugtracker.models.ticket import Ticket
from tests.conftest import create_project, create_ticket

pytestmark = pytest.mark.asyncio

PURGE_URL = "/api/v1/admin/maintenance/purge-orphans"


async def _count(db: AsyncSession, model) -> int:  # type: ignore[no-untyped-def]
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


class TestPurgeOrphans:
    async def test_requires_platform_admin(
        self, client: AsyncClient, owner: dict, project: dict
    ) -> None:
        # Owning a project does not make anyone a platform admin.
        response = await client.post(PURGE_URL, headers=owner["headers"])
        assert response.status_code == 403

    async def test_nothing_to_purge(self, client: AsyncClient, admin_headers: dict) -> None:
        response = await client.post(PURGE_URL, headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {
            "tickets": 0,
            "comments": 0,
            "activities": 0,
            "notifications": 0,
        }

    async def test_purges_rows_left_by_project_delete(
        self,
        client: AsyncClient,
        db: AsyncSession,
        owner: dict,
        developer: dict,
        admin_headers: dict,
    ) -> None:
        doomed = await create_project(client, owner["headers"], "OLD")
        kept = await create_project(client, owner["headers"], "NEW")
        ticket = await create_ticket(client, owner["headers"], doomed["id"])
        await client.post(
            f"/api/v1/tickets/{ticket['id']}/comments",
            json={"text": "Last words"},
            headers=owner["headers"],
        )
        await create_ticket(client, owner["headers"], kept["id"])

        await client.delete(f"/api/v1/projects/{doomed['id']}", headers=owner["headers"])
        # Dependent rows survive the delete until the purge runs.
        assert await _count(db, Ticket) == 2
        assert await _count(db, Comment) == 1

        response = await client.post(PURGE_URL, headers=admin_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["tickets"] == 1
        assert data["comments"] == 1
        assert data["activities"] == 1

        assert await _count(db, Ticket) == 1
        assert await _count(db, Comment) == 0
        assert await _count(db, Activity) == 1

        response = await client.get(
            f"/api/v1/projects/{kept['id']}/tickets", headers=owner["headers"]
        )
        assert response.json()["total"] == 1

    async def test_purges_rows_left_by_ticket_delete(
        self, client: AsyncClient, owner: dict, project: dict, admin_headers: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        await client.put(
            f"/api/v1/tickets/{ticket['id']}", json={"status": "done"}, headers=owner["headers"]
        )
        await client.delete(f"/api/v1/tickets/{ticket['id']}", headers=owner["headers"])

        response = await client.post(PURGE_URL, headers=admin_headers)
        data = response.json()
        assert data["tickets"] == 0
        assert data["activities"] == 2
        # The developer's ticket_updated notification points at the deleted ticket.
        assert data["notifications"] == 1
