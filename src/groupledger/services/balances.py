from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

from groupledger.db.models import (
    AnomalyKind,
    Expense,
    LedgerAnomaly,
    Member,
    NetPosition,
    SettlementRecord,
)
from groupledger.logging import get_logger

log = get_logger(__name__)


@dataclass(slots=True)
class BalanceReport:
    positions: dict[Member, NetPosition]
    anomalies: list[LedgerAnomaly] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.anomalies)

    def totals(self) -> dict[Member, float]:
        return {member: position.total for member, position in self.positions.items()}


def _record_anomaly(
    anomalies: list[LedgerAnomaly],
    kind: AnomalyKind,
    expense_id: str | None = None,
    member: Member | None = None,
) -> None:
    anomalies.append(LedgerAnomaly(kind=kind, expense_id=expense_id, member=member))
    log.warning("ledger.anomaly", kind=kind.value, expense_id=expense_id, member=member)


def _apply_expense(
    positions: dict[Member, NetPosition],
    expense: Expense,
    anomalies: list[LedgerAnomaly],
) -> None:
    payer = positions.get(expense.payer)
    if payer is None:
        _record_anomaly(anomalies, AnomalyKind.UNKNOWN_PAYER, expense.id, expense.payer)
        return
    if expense.amount == 0:
        _record_anomaly(anomalies, AnomalyKind.ZERO_AMOUNT, expense.id, expense.payer)
        return

    payer.spent += expense.amount
    if not expense.split_with:
        return

    # The payer bears a share too; the divisor counts every listed participant.
    share = abs(expense.amount) / (len(expense.split_with) + 1)
    for member_id in expense.split_with:
        if member_id == expense.payer:
            _record_anomaly(anomalies, AnomalyKind.PAYER_IN_SPLIT, expense.id, member_id)
            continue
        member = positions.get(member_id)
        if member is None:
            _record_anomaly(anomalies, AnomalyKind.UNKNOWN_SPLIT_MEMBER, expense.id, member_id)
            continue

        payer.owes.setdefault(member_id, 0.0)
        member.owes.setdefault(expense.payer, 0.0)
        if expense.amount < 0:
            member.owes[expense.payer] += share
        else:
            payer.owes[member_id] += share


def _apply_settlement(
    positions: dict[Member, NetPosition],
    record: SettlementRecord,
    anomalies: list[LedgerAnomaly],
) -> None:
    debtor = positions.get(record.from_member)
    creditor = positions.get(record.to_member)
    if debtor is None or creditor is None:
        missing = record.from_member if debtor is None else record.to_member
        _record_anomaly(anomalies, AnomalyKind.UNKNOWN_SETTLEMENT_MEMBER, member=missing)
        return

    # Only obligations that are currently non-zero get adjusted.
    if debtor.owes.get(record.to_member):
        debtor.owes[record.to_member] -= record.amount
    if creditor.owes.get(record.from_member):
        creditor.owes[record.from_member] += record.amount


def calculate_balances(
    members: Iterable[Member],
    expenses: Sequence[Expense],
    history: Sequence[SettlementRecord] = (),
) -> BalanceReport:
    positions: dict[Member, NetPosition] = {member: NetPosition() for member in members}
    anomalies: list[LedgerAnomaly] = []

    for expense in expenses:
        if expense.is_settlement_payment:
            continue
        _apply_expense(positions, expense, anomalies)

    for record in history:
        _apply_settlement(positions, record, anomalies)

    for member_id, position in positions.items():
        total_owes = sum(max(0.0, amount) for amount in position.owes.values())
        total_owed = 0.0
        for other_id, other in positions.items():
            if other_id == member_id:
                continue
            owed = other.owes.get(member_id, 0.0)
            if owed > 0:
                total_owed += owed
        position.total = total_owed - total_owes

    return BalanceReport(positions=positions, anomalies=anomalies)
