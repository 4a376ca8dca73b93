from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from groupledger.config import get_settings
from groupledger.db.models import (
    Expense,
    LedgerAnomaly,
    Member,
    NetPosition,
    PlannedSettlement,
    SettlementRecord,
)
from groupledger.logging import get_logger
from groupledger.services.balances import calculate_balances
from groupledger.services.recorder import LedgerStore
from groupledger.services.settlement import TOLERANCE, plan_settlements, reconcile_settlements


@dataclass(slots=True)
class GroupLedger:
    net_positions: dict[Member, NetPosition]
    settlement_plan: list[PlannedSettlement]
    anomalies: list[LedgerAnomaly] = field(default_factory=list)

    @property
    def outstanding(self) -> list[PlannedSettlement]:
        return [planned for planned in self.settlement_plan if not planned.settled]


def compute_group_ledger(
    members: Iterable[Member],
    expenses: Sequence[Expense],
    history: Sequence[SettlementRecord] = (),
    tolerance: float = TOLERANCE,
) -> GroupLedger:
    report = calculate_balances(members, expenses, history)
    plan = plan_settlements(report.totals(), tolerance)
    plan = reconcile_settlements(plan, history, tolerance)
    return GroupLedger(net_positions=report.positions, settlement_plan=plan, anomalies=report.anomalies)


def is_transaction_settled(
    expense: Expense,
    history: Sequence[SettlementRecord],
    now: Optional[datetime] = None,
) -> bool:
    """Display rule: a split expense counts as settled once any payment follows it."""
    if not history:
        return False
    if expense.is_settlement_payment or expense.is_settlement:
        return True
    if not expense.split_with:
        return False

    created_at = _as_utc(expense.created_at or now or datetime.now(timezone.utc))
    return any(record.settled_at is not None and _as_utc(record.settled_at) > created_at for record in history)


def _as_utc(value: datetime) -> datetime:
    # naive timestamps are UTC, matching parse_timestamp
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def load_group_ledger(store: LedgerStore, group_id: str) -> GroupLedger:
    members = await store.get_members(group_id)
    expenses = await store.get_expenses(group_id)
    history = await store.get_settlement_history(group_id)

    ledger = compute_group_ledger(members, expenses, history, get_settings().settlement_tolerance)

    log = get_logger(__name__)
    log.info(
        "ledger.computed",
        group_id=group_id,
        members=len(members),
        expenses=len(expenses),
        settlements=len(history),
        planned=len(ledger.settlement_plan),
        skipped=len(ledger.anomalies),
    )
    return ledger
