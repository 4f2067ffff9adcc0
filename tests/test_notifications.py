"""
Notification endpoint tests plus unit tests for audience derivation and delivery.
"""
from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.core.security import hash_password
from bugtracker.models.notification import Notification
from bugtracker.models.user import User
from bugtracker.services.notification_service import (
    NotificationDispatcher,
    NotificationDraft,
    ProjectRef,
    TicketRef,
    build_project_member_added,
    build_ticket_assigned,
    build_ticket_commented,
    build_ticket_updated,
    comment_preview,
)
from tests.conftest import create_ticket, shared_session_factory

pytestmark = pytest.mark.asyncio

NOTIFICATIONS_URL = "/api/v1/notifications"


def _ticket_ref() -> TicketRef:
    return TicketRef(
        id=uuid.uuid4(), project_id=uuid.uuid4(), ticket_key="ENG-7", title="Crash on save"
    )


async def _make_user(db: AsyncSession, email: str) -> User:
    user = User(name=email.split("@")[0], email=email, hashed_password=hash_password("x"))
    db.add(user)
    await db.flush()
    return user


# ── Audience derivation ───────────────────────────────────────────────────────

class TestBuilders:
    async def test_comment_preview_truncates_long_text(self) -> None:
        assert comment_preview("B" * 60) == "B" * 50 + "..."
        assert comment_preview("B" * 40) == "B" * 40
        assert comment_preview("B" * 50) == "B" * 50

    async def test_commented_excludes_author_and_duplicates(self) -> None:
        author, a, b = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        drafts = build_ticket_commented(_ticket_ref(), "Looks good", author, [a, author, b, a])
        assert [d.user_id for d in drafts] == [a, b]
        assert all(d.action_by_id == author for d in drafts)
        assert drafts[0].message == "New comment on ENG-7: Looks good"

    async def test_assigned_to_self_is_silent(self) -> None:
        user = uuid.uuid4()
        assert build_ticket_assigned(_ticket_ref(), user, user) == []

    async def test_assigned(self) -> None:
        ticket = _ticket_ref()
        assignee, actor = uuid.uuid4(), uuid.uuid4()
        [draft] = build_ticket_assigned(ticket, assignee, actor)
        assert draft.user_id == assignee
        assert draft.type == "ticket_assigned"
        assert draft.ticket_id == ticket.id
        assert draft.project_id == ticket.project_id
        assert draft.link == f"/projects/{ticket.project_id}/tickets/{ticket.id}"

    async def test_updated_with_only_the_actor_as_member(self) -> None:
        actor = uuid.uuid4()
        assert build_ticket_updated(_ticket_ref(), actor, [actor]) == []

    async def test_member_added(self) -> None:
        project = ProjectRef(id=uuid.uuid4(), title="Engineering")
        member, actor = uuid.uuid4(), uuid.uuid4()
        [draft] = build_project_member_added(project, member, actor)
        assert draft.type == "project_added"
        assert draft.ticket_id is None
        assert draft.message == "You've been added to Engineering"


# ── Delivery ──────────────────────────────────────────────────────────────────

class TestDispatcher:
    async def test_bad_draft_does_not_stop_the_batch(self, db: AsyncSession) -> None:
        first = await _make_user(db, "first@example.com")
        second = await _make_user(db, "second@example.com")
        await db.commit()

        actor = uuid.uuid4()
        good = build_ticket_commented(_ticket_ref(), "Hi", actor, [first.id, second.id])
        bad = NotificationDraft(
            user_id=first.id,
            type="ticket_commented",
            title=None,  # type: ignore[arg-type]
            message="broken",
            link="/",
            action_by_id=actor,
        )

        dispatcher = NotificationDispatcher(shared_session_factory(db))
        delivered = await dispatcher.deliver([good[0], bad, good[1]])
        assert delivered == 2

        result = await db.execute(select(func.count()).select_from(Notification))
        assert result.scalar_one() == 2

    async def test_nothing_to_deliver(self, db: AsyncSession) -> None:
        dispatcher = NotificationDispatcher(shared_session_factory(db))
        user = uuid.uuid4()
        assert await dispatcher.ticket_assigned(_ticket_ref(), user, user) == 0


# ── API ───────────────────────────────────────────────────────────────────────

class TestNotificationRoutes:
    async def _seed(self, client: AsyncClient, owner: dict, developer: dict, project: dict) -> None:
        # developer already holds project_added; two assignments add two more.
        for _ in range(2):
            await create_ticket(
                client, owner["headers"], project["id"], assignee_id=developer["id"]
            )

    async def test_list_newest_first_with_unread_count(
        self, client: AsyncClient, owner: dict, developer: dict, project: dict
    ) -> None:
        await self._seed(client, owner, developer, project)
        response = await client.get(f"{NOTIFICATIONS_URL}/", headers=developer["headers"])
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["unread_count"] == 3
        assert [n["type"] for n in data["items"]][-1] == "project_added"
        assert data["items"][0]["action_by"]["name"] == "Alice Owner"

    async def test_mark_one_read(
        self, client: AsyncClient, owner: dict, developer: dict, project: dict
    ) -> None:
        await self._seed(client, owner, developer, project)
        items = (await client.get(f"{NOTIFICATIONS_URL}/", headers=developer["headers"])).json()[
            "items"
        ]

        response = await client.put(
            f"{NOTIFICATIONS_URL}/{items[0]['id']}/read", headers=developer["headers"]
        )
        assert response.status_code == 200
        assert response.json()["is_read"] is True

        response = await client.get(
            f"{NOTIFICATIONS_URL}/?unread_only=true", headers=developer["headers"]
        )
        assert response.json()["total"] == 2
        assert response.json()["unread_count"] == 2

    async def test_mark_read_returns_actor(
        self, client: AsyncClient, db: AsyncSession, owner: dict, developer: dict, project: dict
    ) -> None:
        result = await db.execute(
            select(Notification.id).where(
                Notification.user_id == uuid.UUID(developer["id"]),
                Notification.type == "project_added",
            )
        )
        notification_id = result.scalar_one()

        response = await client.put(
            f"{NOTIFICATIONS_URL}/{notification_id}/read", headers=developer["headers"]
        )
        assert response.status_code == 200
        data = response.json()
        assert data["is_read"] is True
        assert data["action_by_id"] == owner["id"]
        assert data["action_by"]["name"] == "Alice Owner"

    async def test_read_all_then_clear_read(
        self, client: AsyncClient, owner: dict, developer: dict, project: dict
    ) -> None:
        await self._seed(client, owner, developer, project)

        response = await client.put(f"{NOTIFICATIONS_URL}/read-all", headers=developer["headers"])
        assert response.status_code == 200
        assert response.json()["count"] == 3

        response = await client.delete(
            f"{NOTIFICATIONS_URL}/clear-read", headers=developer["headers"]
        )
        assert response.status_code == 200
        assert response.json()["count"] == 3

        response = await client.get(f"{NOTIFICATIONS_URL}/", headers=developer["headers"])
        assert response.json()["total"] == 0
        assert response.json()["unread_count"] == 0

    async def test_clear_read_keeps_unread(
        self, client: AsyncClient, owner: dict, developer: dict, project: dict
    ) -> None:
        await self._seed(client, owner, developer, project)
        items = (await client.get(f"{NOTIFICATIONS_URL}/", headers=developer["headers"])).json()[
            "items"
        ]
        await client.put(
            f"{NOTIFICATIONS_URL}/{items[0]['id']}/read", headers=developer["headers"]
        )

        response = await client.delete(
            f"{NOTIFICATIONS_URL}/clear-read", headers=developer["headers"]
        )
        assert response.json()["count"] == 1

        response = await client.get(f"{NOTIFICATIONS_URL}/", headers=developer["headers"])
        assert response.json()["total"] == 2

    async def test_delete_one(
        self, client: AsyncClient, developer: dict, project: dict
    ) -> None:
        items = (await client.get(f"{NOTIFICATIONS_URL}/", headers=developer["headers"])).json()[
            "items"
        ]
        response = await client.delete(
            f"{NOTIFICATIONS_URL}/{items[0]['id']}", headers=developer["headers"]
        )
        assert response.status_code == 204

        response = await client.get(f"{NOTIFICATIONS_URL}/", headers=developer["headers"])
        assert response.json()["total"] == 0

    async def test_someone_elses_notification(
        self, client: AsyncClient, owner: dict, developer: dict, project: dict
    ) -> None:
        items = (await client.get(f"{NOTIFICATIONS_URL}/", headers=developer["headers"])).json()[
            "items"
        ]
        notification_id = items[0]["id"]

        response = await client.put(
            f"{NOTIFICATIONS_URL}/{notification_id}/read", headers=owner["headers"]
        )
        assert response.status_code == 403

        response = await client.delete(
            f"{NOTIFICATIONS_URL}/{notification_id}", headers=owner["headers"]
        )
        assert response.status_code == 403

    async def test_missing_notification(self, client: AsyncClient, owner: dict) -> None:
        response = await client.put(
            f"{NOTIFICATIONS_URL}/{uuid.uuid4()}/read", headers=owner["headers"]
        )
        assert response.status_code == 404
