from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

from groupledger.config import get_settings
from groupledger.db.models import (
    SETTLEMENT_CATEGORY,
    Expense,
    Member,
    PlannedSettlement,
    SettlementRecord,
)
from groupledger.logging import get_logger
from groupledger.services.authz import assert_settlement_participant
from groupledger.utils.currency import format_currency


class LedgerStore(Protocol):
    async def get_members(self, group_id: str) -> list[Member]: ...

    async def get_expenses(self, group_id: str) -> Sequence[Expense]: ...

    async def get_settlement_history(self, group_id: str) -> Sequence[SettlementRecord]: ...

    async def append_settlement(self, group_id: str, record: SettlementRecord, expense: Expense) -> None: ...


class AlreadySettledError(ValueError):
    pass


@dataclass(slots=True, frozen=True)
class SettlementReceipt:
    settlement_id: str
    record: SettlementRecord
    expense: Expense
    message: str


def build_settlement_id(from_member: Member, to_member: Member, settled_at: datetime) -> str:
    return f"{from_member}_{to_member}_{settled_at.isoformat()}"


async def record_settlement(
    store: LedgerStore,
    group_id: str,
    planned: PlannedSettlement,
    settled_by: Member,
    *,
    to_name: Optional[str] = None,
    currency: Optional[str] = None,
    now: Optional[datetime] = None,
) -> SettlementReceipt:
    """
    Persist a confirmed payment for one planned settlement.

    The settlement record and its ``settlement``-category ledger entry are
    handed to the store in a single ``append_settlement`` call; the store
    commits both or neither. The ledger entry carries a positive amount and
    is kept out of later balance runs by its category.
    """
    assert_settlement_participant(settled_by, planned)
    if planned.settled:
        raise AlreadySettledError("This debt is already settled")
    if planned.amount <= 0:
        raise ValueError("Settlement amount must be positive")

    settled_at = now or datetime.now(timezone.utc)
    settlement_id = build_settlement_id(planned.from_member, planned.to_member, settled_at)

    record = SettlementRecord(
        from_member=planned.from_member,
        to_member=planned.to_member,
        amount=planned.amount,
        settled_at=settled_at,
        settled_by=settled_by,
    )
    expense = Expense(
        payer=planned.from_member,
        amount=planned.amount,
        split_with=(planned.to_member,),
        category=SETTLEMENT_CATEGORY,
        created_at=settled_at,
        description=f"Debt payment to {to_name or planned.to_member}",
        is_settlement=True,
        settlement_id=settlement_id,
    )

    await store.append_settlement(group_id, record, expense)

    log = get_logger(__name__)
    log.info(
        "settlement.recorded",
        group_id=group_id,
        settlement_id=settlement_id,
        from_member=planned.from_member,
        to_member=planned.to_member,
        amount=planned.amount,
    )

    code = currency or get_settings().default_currency
    message = f"Debt of {format_currency(planned.amount, code)} settled successfully!"
    return SettlementReceipt(settlement_id=settlement_id, record=record, expense=expense, message=message)
