"""SQL-backed GoalRepository — async SQLAlchemy with raw SQL.

Table player_goals keeps one row per goal. Timestamps are stored as UTC
ISO-8601 text so the same statements run on PostgreSQL (asyncpg) and
SQLite (aiosqlite). A partial unique index enforces one active goal per
(owner_id, metric).
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Callable

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from haddaf.goals.errors import DuplicateActiveGoalError, StorageError
from haddaf.goals.models import PlayerGoal, utcnow
from haddaf.goals.repository import GoalRepository, Snapshot, SnapshotHub, stamp

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    "CREATE TABLE IF NOT EXISTS player_goals ("
    "id VARCHAR(64) PRIMARY KEY, "
    "owner_id VARCHAR(128) NOT NULL, "
    "metric VARCHAR(16) NOT NULL, "
    "target_count INTEGER NOT NULL, "
    "status VARCHAR(16) NOT NULL, "
    "achieved_at VARCHAR(40), "
    "created_at VARCHAR(40) NOT NULL, "
    "updated_at VARCHAR(40) NOT NULL"
    ")",
    "CREATE INDEX IF NOT EXISTS ix_player_goals_owner ON player_goals (owner_id)",
    "CREATE UNIQUE INDEX IF NOT EXISTS ux_player_goals_active_metric "
    "ON player_goals (owner_id, metric) WHERE status = 'active'",
)

_COLUMNS = "id, owner_id, metric, target_count, status, achieved_at, created_at, updated_at"

_UPSERT = (
    f"INSERT INTO player_goals ({_COLUMNS}) "
    "VALUES (:id, :owner_id, :metric, :target_count, :status, :achieved_at, :created_at, :updated_at) "
    "ON CONFLICT (id) DO UPDATE SET "
    "owner_id = excluded.owner_id, "
    "metric = excluded.metric, "
    "target_count = excluded.target_count, "
    "status = excluded.status, "
    "achieved_at = excluded.achieved_at, "
    "updated_at = excluded.updated_at"
)

# Compare-and-set: only an active row may become achieved, so achieved_at is written once
_MARK_ACHIEVED = (
    "UPDATE player_goals "
    "SET status = 'achieved', achieved_at = :achieved_at, updated_at = :updated_at "
    "WHERE id = :id AND status = 'active'"
)


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _to_params(goal: PlayerGoal) -> dict[str, Any]:
    return {
        "id": goal.id,
        "owner_id": goal.owner_id,
        "metric": goal.metric.value,
        "target_count": goal.target_count,
        "status": goal.status.value,
        "achieved_at": _iso(goal.achieved_at),
        "created_at": _iso(goal.created_at),
        "updated_at": _iso(goal.updated_at),
    }


def _to_goal(row: dict[str, Any]) -> PlayerGoal:
    return PlayerGoal.model_validate(row)


class SqlGoalRepository(GoalRepository):
    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._sessionmaker = sessionmaker
        self._clock = clock
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()
        self.hub = SnapshotHub()

    async def ensure_schema(self) -> None:
        if self._schema_ready:
            return
        async with self._schema_lock:
            if self._schema_ready:
                return
            try:
                async with self._sessionmaker() as session:
                    async with session.begin():
                        for statement in SCHEMA_STATEMENTS:
                            await session.execute(text(statement))
            except SQLAlchemyError as exc:
                raise StorageError("Could not prepare goal storage") from exc
            self._schema_ready = True
            logger.info("player_goals schema ready")

    async def save(self, goal: PlayerGoal) -> PlayerGoal:
        await self.ensure_schema()
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    previous = await self._fetch_one(session, goal.id)
                    stored = stamp(goal, previous, self._clock())
                    await session.execute(text(_UPSERT), _to_params(stored))
        except IntegrityError as exc:
            # Primary key conflicts are upserted, so only the active-metric index can fire here
            raise DuplicateActiveGoalError(goal.owner_id, goal.metric.value) from exc
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not save goal {goal.id}") from exc
        await self._publish(stored.owner_id)
        return stored

    async def mark_achieved(self, goal: PlayerGoal) -> PlayerGoal | None:
        await self.ensure_schema()
        params = {
            "id": goal.id,
            "achieved_at": _iso(goal.achieved_at),
            "updated_at": _iso(self._clock()),
        }
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    result = await session.execute(text(_MARK_ACHIEVED), params)
                    if result.rowcount != 1:
                        return None
                    stored = await self._fetch_one(session, goal.id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not mark goal {goal.id} achieved") from exc
        await self._publish(stored.owner_id)
        return stored

    async def delete(self, goal_id: str) -> None:
        await self.ensure_schema()
        try:
            async with self._sessionmaker() as session:
                async with session.begin():
                    existing = await self._fetch_one(session, goal_id)
                    if existing is None:
                        return
                    await session.execute(
                        text("DELETE FROM player_goals WHERE id = :id"), {"id": goal_id}
                    )
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not delete goal {goal_id}") from exc
        await self._publish(existing.owner_id)

    async def get(self, goal_id: str) -> PlayerGoal | None:
        await self.ensure_schema()
        try:
            async with self._sessionmaker() as session:
                return await self._fetch_one(session, goal_id)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not load goal {goal_id}") from exc

    async def list_for_owner(self, owner_id: str) -> Snapshot:
        await self.ensure_schema()
        query = (
            f"SELECT {_COLUMNS} FROM player_goals "
            "WHERE owner_id = :owner_id "
            "ORDER BY created_at, id"
        )
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(text(query), {"owner_id": owner_id})
                columns = result.keys()
                return [_to_goal(dict(zip(columns, r))) for r in result.fetchall()]
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not list goals for {owner_id}") from exc

    def subscribe(self, owner_id: str) -> AsyncGenerator[Snapshot, None]:
        return self.hub.stream(owner_id, self.list_for_owner)

    async def _fetch_one(self, session: AsyncSession, goal_id: str) -> PlayerGoal | None:
        result = await session.execute(
            text(f"SELECT {_COLUMNS} FROM player_goals WHERE id = :id"), {"id": goal_id}
        )
        row = result.fetchone()
        if row is None:
            return None
        return _to_goal(dict(zip(result.keys(), row)))

    async def _publish(self, owner_id: str) -> None:
        # The database has no push channel; writes made through this instance fan out here
        if self.hub.has_subscribers(owner_id):
            self.hub.publish(owner_id, await self.list_for_owner(owner_id))
