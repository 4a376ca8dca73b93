from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

Member = str

SETTLEMENT_CATEGORY = "settlement"


class AnomalyKind(str, Enum):
    UNKNOWN_PAYER = "unknown_payer"
    ZERO_AMOUNT = "zero_amount"
    PAYER_IN_SPLIT = "payer_in_split"
    UNKNOWN_SPLIT_MEMBER = "unknown_split_member"
    UNKNOWN_SETTLEMENT_MEMBER = "unknown_settlement_member"


@dataclass(slots=True, frozen=True)
class Expense:
    payer: Member
    amount: float
    split_with: tuple[Member, ...] = ()
    category: str = ""
    created_at: Optional[datetime] = None
    id: Optional[str] = None
    description: Optional[str] = None
    is_settlement: bool = False
    settlement_id: Optional[str] = None

    @property
    def is_settlement_payment(self) -> bool:
        return self.category == SETTLEMENT_CATEGORY


@dataclass(slots=True, frozen=True)
class SettlementRecord:
    from_member: Member
    to_member: Member
    amount: float
    settled_at: Optional[datetime] = None
    settled_by: Optional[Member] = None


@dataclass(slots=True)
class NetPosition:
    spent: float = 0.0
    owes: dict[Member, float] = field(default_factory=dict)
    total: float = 0.0


@dataclass(slots=True, frozen=True)
class PlannedSettlement:
    from_member: Member
    to_member: Member
    amount: float
    settled: bool = False


@dataclass(slots=True, frozen=True)
class LedgerAnomaly:
    kind: AnomalyKind
    expense_id: Optional[str] = None
    member: Optional[Member] = None
