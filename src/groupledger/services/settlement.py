from __future__ import annotations

from dataclasses import replace
from typing import List, Mapping, Sequence

from groupledger.db.models import Member, PlannedSettlement, SettlementRecord

TOLERANCE = 0.01


def plan_settlements(totals: Mapping[Member, float], tolerance: float = TOLERANCE) -> List[PlannedSettlement]:
    """
    Greedy debtor/creditor matching over net balances.

    Balances are sorted ascending with ties broken by member id, so the
    biggest debtor pays the biggest creditor first and the same snapshot
    always yields the same plan. Each emitted amount is rounded to cents;
    running balances are not.
    """
    ordered = sorted(totals.items(), key=lambda item: (item[1], item[0]))
    members = [member for member, _ in ordered]
    balances = [balance for _, balance in ordered]

    plan: list[PlannedSettlement] = []
    i, j = 0, len(balances) - 1

    while i < j:
        if abs(balances[i]) < tolerance:
            i += 1
            continue
        if balances[j] < tolerance:
            j -= 1
            continue
        if balances[i] > 0:
            # no debtors left
            break

        amount = min(abs(balances[i]), balances[j])
        if amount > 0:
            plan.append(
                PlannedSettlement(
                    from_member=members[i],
                    to_member=members[j],
                    amount=round(amount, 2),
                )
            )

        balances[i] += amount
        balances[j] -= amount

        if abs(balances[i]) < tolerance:
            i += 1
        if balances[j] < tolerance:
            j -= 1

    return plan


def reconcile_settlements(
    plan: Sequence[PlannedSettlement],
    history: Sequence[SettlementRecord],
    tolerance: float = TOLERANCE,
) -> List[PlannedSettlement]:
    paid: dict[tuple[Member, Member], float] = {}
    for record in history:
        key = (record.from_member, record.to_member)
        paid[key] = paid.get(key, 0.0) + record.amount

    reconciled: list[PlannedSettlement] = []
    for planned in plan:
        total_paid = paid.get((planned.from_member, planned.to_member), 0.0)
        reconciled.append(replace(planned, settled=abs(total_paid - planned.amount) < tolerance))
    return reconciled
