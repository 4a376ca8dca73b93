import random

import pytest

from groupledger.db.models import AnomalyKind, Expense, SettlementRecord
from groupledger.services.balances import calculate_balances
from groupledger.services.settlement import plan_settlements


def test_pairwise_split():
    report = calculate_balances(["A", "B"], [Expense(payer="A", amount=-100.0, split_with=("B",))])

    assert report.positions["A"].total == pytest.approx(50.0)
    assert report.positions["B"].total == pytest.approx(-50.0)
    assert report.positions["A"].spent == pytest.approx(-100.0)
    assert report.positions["B"].owes == {"A": 50.0}
    assert report.skipped == 0


def test_three_way_split_with_partial_settlement():
    expenses = [Expense(payer="A", amount=-90.0, split_with=("B", "C"))]
    history = [SettlementRecord(from_member="B", to_member="A", amount=30.0)]

    totals = calculate_balances(["A", "B", "C"], expenses, history).totals()

    assert totals["A"] == pytest.approx(30.0)
    assert totals["B"] == pytest.approx(0.0)
    assert totals["C"] == pytest.approx(-30.0)


def test_personal_expense_only_counts_as_spent():
    report = calculate_balances(["A", "B"], [Expense(payer="A", amount=-40.0)])

    assert report.positions["A"].spent == pytest.approx(-40.0)
    assert report.positions["A"].owes == {}
    assert report.positions["B"].owes == {}
    assert report.totals() == {"A": 0.0, "B": 0.0}


def test_income_split_means_payer_owes():
    report = calculate_balances(["A", "B"], [Expense(payer="A", amount=60.0, split_with=("B",))])

    assert report.positions["A"].total == pytest.approx(-30.0)
    assert report.positions["B"].total == pytest.approx(30.0)
    assert report.positions["A"].spent == pytest.approx(60.0)


def test_settlement_expenses_are_excluded():
    members = ["A", "B", "C"]
    expenses = [
        Expense(payer="A", amount=-90.0, split_with=("B", "C")),
        Expense(payer="C", amount=-12.0, split_with=("A",)),
    ]
    with_payment = expenses + [
        Expense(payer="B", amount=30.0, split_with=("A",), category="settlement", is_settlement=True),
    ]

    plain = calculate_balances(members, expenses)
    tagged = calculate_balances(members, with_payment)

    assert tagged.positions == plain.positions


def test_member_without_activity_is_all_zero():
    report = calculate_balances(["A", "B", "idle"], [Expense(payer="A", amount=-10.0, split_with=("B",))])

    idle = report.positions["idle"]
    assert (idle.spent, idle.owes, idle.total) == (0.0, {}, 0.0)


def test_anomalies_are_skipped_and_counted():
    expenses = [
        Expense(payer="A", amount=-90.0, split_with=("A", "B"), id="self"),
        Expense(payer="A", amount=-30.0, split_with=("ghost",), id="ghost"),
        Expense(payer="stranger", amount=-10.0, split_with=("A",), id="stranger"),
        Expense(payer="B", amount=0.0, split_with=("A",), id="zero"),
    ]

    report = calculate_balances(["A", "B"], expenses)

    assert [(a.kind, a.expense_id) for a in report.anomalies] == [
        (AnomalyKind.PAYER_IN_SPLIT, "self"),
        (AnomalyKind.UNKNOWN_SPLIT_MEMBER, "ghost"),
        (AnomalyKind.UNKNOWN_PAYER, "stranger"),
        (AnomalyKind.ZERO_AMOUNT, "zero"),
    ]
    assert report.skipped == 4
    # the divisor still counts every listed participant
    assert report.positions["B"].owes["A"] == pytest.approx(30.0)
    assert report.positions["A"].spent == pytest.approx(-120.0)
    assert report.positions["B"].spent == 0.0


def test_settlement_with_unknown_member_is_counted():
    history = [SettlementRecord(from_member="ghost", to_member="A", amount=5.0)]

    report = calculate_balances(["A"], [], history)

    assert report.anomalies[0].kind == AnomalyKind.UNKNOWN_SETTLEMENT_MEMBER
    assert report.anomalies[0].member == "ghost"


def test_overpayment_is_floored_at_zero():
    expenses = [Expense(payer="A", amount=-100.0, split_with=("B",))]
    history = [SettlementRecord(from_member="B", to_member="A", amount=80.0)]

    report = calculate_balances(["A", "B"], expenses, history)

    assert report.positions["B"].owes["A"] == pytest.approx(-30.0)
    assert report.totals() == {"A": 0.0, "B": 0.0}


def test_settlement_adjusts_both_directions_when_both_are_open():
    expenses = [
        Expense(payer="A", amount=-60.0, split_with=("B",)),
        Expense(payer="B", amount=-20.0, split_with=("A",)),
    ]
    history = [SettlementRecord(from_member="B", to_member="A", amount=20.0)]

    report = calculate_balances(["A", "B"], expenses, history)

    assert report.positions["B"].owes["A"] == pytest.approx(10.0)
    assert report.positions["A"].owes["B"] == pytest.approx(30.0)
    assert report.positions["A"].total == pytest.approx(-20.0)
    assert report.positions["B"].total == pytest.approx(20.0)


def _random_group(rng: random.Random) -> tuple[list[str], list[Expense], list[SettlementRecord]]:
    members = [f"m{idx}" for idx in range(rng.randint(2, 7))]
    expenses = []
    for _ in range(rng.randint(1, 25)):
        payer = rng.choice(members)
        others = [member for member in members if member != payer]
        split = tuple(rng.sample(others, rng.randint(0, len(others))))
        share = rng.randint(1, 500)
        sign = -1 if rng.random() < 0.9 else 1
        expenses.append(Expense(payer=payer, amount=float(sign * share * (len(split) + 1)), split_with=split))
    history = []
    for _ in range(rng.randint(0, 8)):
        from_member, to_member = rng.sample(members, 2)
        history.append(SettlementRecord(from_member=from_member, to_member=to_member, amount=float(rng.randint(1, 300))))
    return members, expenses, history


@pytest.mark.parametrize("seed", range(25))
def test_zero_sum_and_plan_validity(seed):
    members, expenses, history = _random_group(random.Random(seed))

    totals = calculate_balances(members, expenses, history).totals()
    plan = plan_settlements(totals)

    assert abs(sum(totals.values())) <= 0.01 * len(members)
    assert len(plan) <= len(members) - 1

    after = dict(totals)
    for planned in plan:
        after[planned.from_member] += planned.amount
        after[planned.to_member] -= planned.amount
    assert all(abs(value) < 0.01 for value in after.values())


@pytest.mark.parametrize("seed", range(5))
def test_computation_is_deterministic(seed):
    members, expenses, history = _random_group(random.Random(seed))

    first = calculate_balances(members, expenses, history)
    second = calculate_balances(members, expenses, history)

    assert first.positions == second.positions
    assert plan_settlements(first.totals()) == plan_settlements(second.totals())
