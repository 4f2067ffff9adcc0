"""
Ticket activity recorder.

Computes change records from a ticket snapshot and the requested changes, and
writes them as an append-only audit trail. Writes triggered by a ticket
mutation are best-effort: they run in a savepoint and a database error is
logged, never raised, so the mutation itself still succeeds. Entries posted
by clients go through the same path but let errors propagate.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.db.base import utcnow
from bugtracker.models.activity import Activity
from bugtracker.models.ticket import Ticket
from bugtracker.schemas.activity import ActivityCreate

logger = logging.getLogger(__name__)

# Evaluation order is also the order entries are written and read back.
TRACKED_FIELDS = ("title", "status", "priority")


@dataclass(frozen=True)
class ChangeRecord:
    field: str
    old_value: str
    new_value: str
    action: str
    description: str


def diff_ticket_changes(
    snapshot: Mapping[str, Any], changes: Mapping[str, Any]
) -> list[ChangeRecord]:
    """
    One record per tracked field that is present in changes and differs from
    the snapshot. Untracked fields (assignee, tags, ...) never produce one.
    """
    records: list[ChangeRecord] = []
    for field in TRACKED_FIELDS:
        if field not in changes:
            continue
        old, new = snapshot.get(field), changes[field]
        if new is None or new == old:
            continue
        records.append(
            ChangeRecord(
                field=field,
                old_value=str(old),
                new_value=str(new),
                action="status_changed" if field == "status" else "updated",
                description=f'Changed {field} from "{old}" to "{new}"',
            )
        )
    return records


def ticket_snapshot(ticket: Ticket) -> dict[str, Any]:
    return {field: getattr(ticket, field) for field in TRACKED_FIELDS}


class ActivityRecorder:

    async def record_created(
        self, db: AsyncSession, *, ticket: Ticket, user_id: uuid.UUID
    ) -> list[Activity]:
        return await self._persist(
            db,
            [
                Activity(
                    ticket_id=ticket.id,
                    user_id=user_id,
                    action="created",
                    description=f"Created ticket {ticket.ticket_key}",
                )
            ],
        )

    async def record_changes(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        user_id: uuid.UUID,
        records: list[ChangeRecord],
    ) -> list[Activity]:
        return await self._persist(
            db,
            [
                Activity(
                    ticket_id=ticket_id,
                    user_id=user_id,
                    action=record.action,
                    field=record.field,
                    old_value=record.old_value,
                    new_value=record.new_value,
                    description=record.description,
                )
                for record in records
            ],
        )

    async def record_entry(
        self,
        db: AsyncSession,
        *,
        ticket_id: uuid.UUID,
        user_id: uuid.UUID,
        activity_in: ActivityCreate,
    ) -> Activity:
        """Client-submitted entry. Database errors propagate."""
        entries = await self._persist(
            db,
            [Activity(ticket_id=ticket_id, user_id=user_id, **activity_in.model_dump())],
            best_effort=False,
        )
        return entries[0]

    async def _persist(
        self, db: AsyncSession, entries: list[Activity], *, best_effort: bool = True
    ) -> list[Activity]:
        if not entries:
            return []

        # Strictly increasing timestamps keep created_at order equal to list order.
        base = utcnow()
        for offset, entry in enumerate(entries):
            entry.created_at = base + timedelta(microseconds=offset)

        try:
            async with db.begin_nested():
                db.add_all(entries)
                await db.flush()
        except SQLAlchemyError:
            if not best_effort:
                raise
            logger.exception(
                "Failed to record activity: ticket_id=%s actions=%s",
                entries[0].ticket_id,
                [entry.action for entry in entries],
            )
            return []
        return entries


activity_recorder = ActivityRecorder()
