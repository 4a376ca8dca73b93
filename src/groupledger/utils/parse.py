from __future__ import annotations

import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from groupledger.db.models import Expense, SettlementRecord


def _first(doc: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = doc.get(key)
        if value is not None:
            return value
    return None


def parse_amount(value: Any) -> float:
    """
    Convert a stored amount into a float.

    Accepts ints, floats, ``Decimal`` (NUMERIC columns) and numeric strings.
    Booleans, empty values and non-finite numbers are rejected.
    """
    if value is None or isinstance(value, bool):
        raise ValueError("Amount is missing")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValueError("Amount is missing")
    if not isinstance(value, (int, float, Decimal, str)):
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not math.isfinite(amount):
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Normalize a timestamp to an aware UTC datetime.

    Supported forms:
    - ``datetime`` (naive values are taken as UTC)
    - ISO-8601 strings, including a trailing ``Z``
    - Firestore-style mappings ``{"seconds": ..., "nanoseconds": ...}``
    - epoch seconds as int or float
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, Mapping):
        if "seconds" not in value:
            raise ValueError("Timestamp mapping has no 'seconds'")
        seconds = float(value["seconds"]) + float(value.get("nanoseconds", 0)) / 1e9
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
    elif isinstance(value, bool):
        raise ValueError("Invalid timestamp")
    elif isinstance(value, (int, float)):
        dt = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"Invalid timestamp: {value!r}") from exc
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _parse_members(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        raise ValueError("splitWith must be a list of member ids")
    return tuple(str(member) for member in value)


def parse_expense(doc: Mapping[str, Any]) -> Expense:
    payer = _first(doc, "payer", "userId", "user_id")
    if payer is None:
        raise ValueError("Expense has no payer")

    doc_id = _first(doc, "id")
    settlement_id = _first(doc, "settlementId", "settlement_id")
    return Expense(
        payer=str(payer),
        amount=parse_amount(doc.get("amount")),
        split_with=_parse_members(_first(doc, "splitWith", "split_with")),
        category=str(doc.get("category") or ""),
        created_at=parse_timestamp(_first(doc, "createdAt", "created_at")),
        id=str(doc_id) if doc_id is not None else None,
        description=doc.get("description"),
        is_settlement=bool(_first(doc, "isSettlement", "is_settlement") or False),
        settlement_id=str(settlement_id) if settlement_id is not None else None,
    )


def parse_settlement_record(doc: Mapping[str, Any]) -> SettlementRecord:
    from_member = _first(doc, "from", "from_member")
    to_member = _first(doc, "to", "to_member")
    if from_member is None or to_member is None:
        raise ValueError("Settlement record needs both 'from' and 'to'")
    if from_member == to_member:
        raise ValueError("Settlement record pays the same member")

    amount = parse_amount(doc.get("amount"))
    if amount <= 0:
        raise ValueError("Settlement amount must be positive")

    settled_by = _first(doc, "settledBy", "settled_by")
    return SettlementRecord(
        from_member=str(from_member),
        to_member=str(to_member),
        amount=amount,
        settled_at=parse_timestamp(_first(doc, "settledAt", "settled_at")),
        settled_by=str(settled_by) if settled_by is not None else None,
    )
