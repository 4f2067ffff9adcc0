"""
Activity trail tests, through the API and against the recorder directly.
"""
from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.schemas.activity import ActivityCreate
from bugtracker.services.activity_service import (
    ActivityRecorder,
    ChangeRecord,
    diff_ticket_changes,
)
from tests.conftest import create_ticket

pytestmark = pytest.mark.asyncio


async def _activity(client: AsyncClient, headers: dict, ticket_id: str) -> list[dict]:
    response = await client.get(f"/api/v1/tickets/{ticket_id}/activity", headers=headers)
    assert response.status_code == 200
    return response.json()["items"]


# ── Diffing ───────────────────────────────────────────────────────────────────

class TestDiffTicketChanges:
    SNAPSHOT = {"title": "Crash", "status": "todo", "priority": "medium"}

    async def test_fixed_field_order(self) -> None:
        records = diff_ticket_changes(
            self.SNAPSHOT, {"priority": "high", "status": "done", "title": "Crash on save"}
        )
        assert [r.field for r in records] == ["title", "status", "priority"]
        assert [r.action for r in records] == ["updated", "status_changed", "updated"]

    async def test_unchanged_and_untracked_fields_ignored(self) -> None:
        records = diff_ticket_changes(
            self.SNAPSHOT,
            {"status": "todo", "assignee_id": uuid.uuid4(), "tags": ["ui"], "description": "x"},
        )
        assert records == []

    async def test_description_text(self) -> None:
        [record] = diff_ticket_changes(self.SNAPSHOT, {"status": "in-progress"})
        assert record.old_value == "todo"
        assert record.new_value == "in-progress"
        assert record.description == 'Changed status from "todo" to "in-progress"'


# ── Through the API ───────────────────────────────────────────────────────────

class TestActivityTrail:
    async def test_creation_is_recorded(
        self, client: AsyncClient, owner: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        [entry] = await _activity(client, owner["headers"], ticket["id"])
        assert entry["action"] == "created"
        assert entry["user_id"] == owner["id"]
        assert "ENG-1" in entry["description"]

    async def test_assignee_only_update_records_nothing(
        self, client: AsyncClient, owner: dict, developer: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        await client.put(
            f"/api/v1/tickets/{ticket['id']}",
            json={"assignee_id": developer["id"], "tags": ["triaged"]},
            headers=owner["headers"],
        )
        entries = await _activity(client, owner["headers"], ticket["id"])
        assert [e["action"] for e in entries] == ["created"]

    async def test_multi_field_update_in_order(
        self, client: AsyncClient, owner: dict, developer: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        await client.put(
            f"/api/v1/tickets/{ticket['id']}",
            json={"priority": "critical", "status": "in-progress"},
            headers=developer["headers"],
        )
        entries = await _activity(client, owner["headers"], ticket["id"])
        changes = entries[1:]
        assert [(e["field"], e["old_value"], e["new_value"]) for e in changes] == [
            ("status", "todo", "in-progress"),
            ("priority", "medium", "critical"),
        ]
        assert all(e["user_id"] == developer["id"] for e in changes)
        assert changes[0]["user"]["name"] == "Bob Developer"

    async def test_no_op_update_records_nothing(
        self, client: AsyncClient, owner: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        await client.put(
            f"/api/v1/tickets/{ticket['id']}",
            json={"status": "todo", "priority": "medium"},
            headers=owner["headers"],
        )
        assert len(await _activity(client, owner["headers"], ticket["id"])) == 1

    async def test_non_member_cannot_read(
        self, client: AsyncClient, owner: dict, outsider: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        response = await client.get(
            f"/api/v1/tickets/{ticket['id']}/activity", headers=outsider["headers"]
        )
        assert response.status_code == 403

    async def test_member_posts_entry(
        self, client: AsyncClient, owner: dict, developer: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        response = await client.post(
            f"/api/v1/tickets/{ticket['id']}/activity",
            json={"action": "duplicated", "description": "  Duplicate of ENG-9  "},
            headers=developer["headers"],
        )
        assert response.status_code == 201
        data = response.json()
        assert data["action"] == "duplicated"
        assert data["description"] == "Duplicate of ENG-9"
        assert data["ticket_id"] == ticket["id"]
        assert data["user"]["name"] == "Bob Developer"

        entries = await _activity(client, owner["headers"], ticket["id"])
        assert [e["action"] for e in entries] == ["created", "duplicated"]

    async def test_posted_entry_keeps_field_values(
        self, client: AsyncClient, owner: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        response = await client.post(
            f"/api/v1/tickets/{ticket['id']}/activity",
            json={
                "action": "priority_changed",
                "field": "priority",
                "old_value": "low",
                "new_value": "high",
                "description": "Escalated by support",
            },
            headers=owner["headers"],
        )
        assert response.status_code == 201
        data = response.json()
        assert (data["field"], data["old_value"], data["new_value"]) == ("priority", "low", "high")

    async def test_post_rejects_created_and_blank_description(
        self, client: AsyncClient, owner: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        url = f"/api/v1/tickets/{ticket['id']}/activity"

        response = await client.post(
            url, json={"action": "created", "description": "again"}, headers=owner["headers"]
        )
        assert response.status_code == 422

        response = await client.post(
            url, json={"action": "commented", "description": "   "}, headers=owner["headers"]
        )
        assert response.status_code == 422
        assert len(await _activity(client, owner["headers"], ticket["id"])) == 1

    async def test_non_member_cannot_post(
        self, client: AsyncClient, owner: dict, outsider: dict, project: dict
    ) -> None:
        ticket = await create_ticket(client, owner["headers"], project["id"])
        response = await client.post(
            f"/api/v1/tickets/{ticket['id']}/activity",
            json={"action": "commented", "description": "hi"},
            headers=outsider["headers"],
        )
        assert response.status_code == 403

    async def test_post_to_missing_ticket(self, client: AsyncClient, owner: dict) -> None:
        response = await client.post(
            f"/api/v1/tickets/{uuid.uuid4()}/activity",
            json={"action": "commented", "description": "hi"},
            headers=owner["headers"],
        )
        assert response.status_code == 404


# ── Recorder ──────────────────────────────────────────────────────────────────

class TestActivityRecorder:
    async def test_write_failure_is_swallowed(self, db: AsyncSession) -> None:
        # ticket_id is NOT NULL, so the insert fails inside the savepoint.
        record = ChangeRecord(
            field="status",
            old_value="todo",
            new_value="done",
            action="status_changed",
            description='Changed status from "todo" to "done"',
        )
        entries = await ActivityRecorder().record_changes(
            db, ticket_id=None, user_id=uuid.uuid4(), records=[record]  # type: ignore[arg-type]
        )
        assert entries == []
        # The outer transaction is still usable.
        await db.commit()

    async def test_timestamps_follow_evaluation_order(self, db: AsyncSession) -> None:
        records = diff_ticket_changes(
            {"title": "a", "status": "todo", "priority": "low"},
            {"title": "b", "status": "done", "priority": "high"},
        )
        entries = await ActivityRecorder().record_changes(
            db, ticket_id=uuid.uuid4(), user_id=uuid.uuid4(), records=records
        )
        assert len(entries) == 3
        stamps = [e.created_at for e in entries]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == 3

    async def test_nothing_to_record(self, db: AsyncSession) -> None:
        entries = await ActivityRecorder().record_changes(
            db, ticket_id=uuid.uuid4(), user_id=uuid.uuid4(), records=[]
        )
        assert entries == []

    async def test_posted_entry_failure_propagates(self, db: AsyncSession) -> None:
        activity_in = ActivityCreate(action="commented", description="note")
        with pytest.raises(SQLAlchemyError):
            await ActivityRecorder().record_entry(
                db, ticket_id=None, user_id=uuid.uuid4(), activity_in=activity_in  # type: ignore[arg-type]
            )
        await db.commit()
