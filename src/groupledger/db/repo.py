from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from functools import lru_cache
from typing import Any, AsyncIterator

import asyncpg

from groupledger.config import get_settings
from groupledger.db.models import Expense, Member, SettlementRecord
from groupledger.logging import get_logger, sql_logger
from groupledger.utils.parse import parse_expense, parse_settlement_record


class Database:
    """Lazily created asyncpg pool shared by one ``LedgerRepository``."""

    def __init__(self, dsn: str, *, min_size: int = 1, max_size: int = 10) -> None:
        # SQLAlchemy-style URLs carry a driver suffix asyncpg does not understand
        self._dsn = dsn.replace("postgresql+asyncpg://", "postgresql://", 1)
        self._min_size = min_size
        self._max_size = max_size
        self._pool: asyncpg.Pool | None = None
        self._log = get_logger(__name__)

    @property
    def connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> asyncpg.Pool:
        if self._pool is None:
            self._pool = await asyncpg.create_pool(self._dsn, min_size=self._min_size, max_size=self._max_size)
            self._log.info("db.pool.created", min_size=self._min_size, max_size=self._max_size)
        return self._pool

    async def close(self) -> None:
        pool, self._pool = self._pool, None
        if pool is not None:
            await pool.close()
            self._log.info("db.pool.closed")

    async def fetch(self, query: str, *args: Any) -> list[asyncpg.Record]:
        pool = await self.connect()
        sql_logger.info("sql.fetch", query=query, args=args)
        return await pool.fetch(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        pool = await self.connect()
        async with pool.acquire() as conn:
            async with conn.transaction():
                sql_logger.info("sql.transaction")
                yield conn


async def _execute(conn: asyncpg.Connection, query: str, *args: Any) -> str:
    sql_logger.info("sql.execute", query=query, args=args)
    return await conn.execute(query, *args)


class LedgerRepository:
    def __init__(self, db: Database) -> None:
        self.db = db

    async def get_members(self, group_id: str) -> list[Member]:
        rows = await self.db.fetch(
            "SELECT member_id FROM group_members WHERE group_id = $1 ORDER BY member_id",
            group_id,
        )
        return [str(row["member_id"]) for row in rows]

    async def get_expenses(self, group_id: str) -> list[Expense]:
        rows = await self.db.fetch(
            """
            SELECT id, payer, amount, split_with, category, description,
                   is_settlement, settlement_id, created_at
            FROM group_transactions
            WHERE group_id = $1
            ORDER BY created_at, id
            """,
            group_id,
        )
        return [parse_expense(dict(row)) for row in rows]

    async def get_settlement_history(self, group_id: str) -> list[SettlementRecord]:
        rows = await self.db.fetch(
            """
            SELECT from_member, to_member, amount, settled_at, settled_by
            FROM settled_debts
            WHERE group_id = $1
            ORDER BY settled_at, id
            """,
            group_id,
        )
        return [parse_settlement_record(dict(row)) for row in rows]

    async def append_settlement(self, group_id: str, record: SettlementRecord, expense: Expense) -> None:
        async with self.db.transaction() as conn:
            await _execute(
                conn,
                """
                INSERT INTO settled_debts (group_id, from_member, to_member, amount, settled_at, settled_by)
                VALUES ($1, $2, $3, $4, $5, $6)
                """,
                group_id,
                record.from_member,
                record.to_member,
                Decimal(str(record.amount)),
                record.settled_at,
                record.settled_by,
            )
            await _execute(
                conn,
                """
                INSERT INTO group_transactions (
                    group_id, payer, amount, split_with, category, description,
                    is_settlement, settlement_id, created_at
                )
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
                """,
                group_id,
                expense.payer,
                Decimal(str(expense.amount)),
                list(expense.split_with),
                expense.category,
                expense.description,
                expense.is_settlement,
                expense.settlement_id,
                expense.created_at,
            )


@lru_cache(maxsize=1)
def get_repository() -> LedgerRepository:
    settings = get_settings()
    db = Database(
        settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    return LedgerRepository(db)
