from __future__ import annotations

from groupledger.db.models import Member, PlannedSettlement


class AuthorizationError(PermissionError):
    pass


def is_settlement_participant(member: Member, planned: PlannedSettlement) -> bool:
    return member in (planned.from_member, planned.to_member)


def assert_settlement_participant(member: Member, planned: PlannedSettlement) -> None:
    if not is_settlement_participant(member, planned):
        raise AuthorizationError("You can only settle debts that involve you")
