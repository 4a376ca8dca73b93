from __future__ import annotations

from typing import Sequence

import pytest

from groupledger.db.models import Expense, SettlementRecord


class InMemoryLedgerStore:
    def __init__(
        self,
        members: list[str],
        expenses: Sequence[Expense] = (),
        history: Sequence[SettlementRecord] = (),
        fail_append: bool = False,
    ) -> None:
        self.members = list(members)
        self.expenses = list(expenses)
        self.history = list(history)
        self.fail_append = fail_append
        self.appends: list[tuple[str, SettlementRecord, Expense]] = []

    async def get_members(self, group_id: str) -> list[str]:
        return list(self.members)

    async def get_expenses(self, group_id: str) -> list[Expense]:
        return list(self.expenses)

    async def get_settlement_history(self, group_id: str) -> list[SettlementRecord]:
        return list(self.history)

    async def append_settlement(self, group_id: str, record: SettlementRecord, expense: Expense) -> None:
        if self.fail_append:
            raise ConnectionError("store unavailable")
        self.appends.append((group_id, record, expense))
        self.history.append(record)
        self.expenses.append(expense)


@pytest.fixture
def three_way_store() -> InMemoryLedgerStore:
    return InMemoryLedgerStore(
        members=["A", "B", "C"],
        expenses=[Expense(payer="A", amount=-90.0, split_with=("B", "C"), id="dinner")],
    )
