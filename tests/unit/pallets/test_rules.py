"""Unit tests for pallet completion rules.

Covers:
- Default fallback (no rules -> bottles >= capacity).
- Tree evaluation, including empty composites.
- Group-format parsing (SEQUENTIAL / COMBINE).
- Invalid rules.
- Human-readable summary.
- Evaluation is idempotent (pure).
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.pallets.exceptions import InvalidCompletionRules
from modules.pallets.rules import (
    AllOf,
    AnyOf,
    BottlesAtLeast,
    Condition,
    PalletMetrics,
    ProfitAtLeast,
    describe,
    dump_rules,
    evaluate,
    is_complete,
    parse_rules,
)

pytestmark = pytest.mark.unit


def _metrics(bottles=0, profit="0"):
    return PalletMetrics(bottles=bottles, profit_sek=Decimal(profit))


class TestDefaultFallback:
    @pytest.mark.parametrize(
        "bottles,expected", [(719, False), (720, True), (900, True)]
    )
    def test_no_rules_uses_capacity(self, bottles, expected):
        assert is_complete(None, bottles, Decimal("0"), capacity=720) is expected

    def test_empty_composite_falls_back_to_capacity(self):
        assert is_complete(AllOf(rules=[]), 720, Decimal("0"), capacity=720) is True
        assert is_complete(AnyOf(rules=[]), 10, Decimal("0"), capacity=720) is False

    @pytest.mark.parametrize("data", [None, {}])
    def test_empty_data_is_no_rule(self, data):
        assert parse_rules(data) is None


class TestEvaluate:
    def test_bottles_threshold(self):
        rule = BottlesAtLeast(value=600)
        assert evaluate(rule, _metrics(bottles=600)) is True
        assert evaluate(rule, _metrics(bottles=599)) is False

    def test_profit_threshold(self):
        rule = ProfitAtLeast(value=Decimal("15000"))
        assert evaluate(rule, _metrics(profit="15000.00")) is True
        assert evaluate(rule, _metrics(profit="14999.99")) is False

    @pytest.mark.parametrize(
        "op,expected", [(">=", True), (">", False), ("<=", True), ("<", False)]
    )
    def test_condition_operators(self, op, expected):
        rule = Condition(metric="bottles", op=op, value=Decimal("500"))
        assert evaluate(rule, _metrics(bottles=500)) is expected

    def test_or_profit_beats_bottles(self):
        rule = AnyOf(rules=[BottlesAtLeast(value=600), ProfitAtLeast(value=Decimal("15000"))])
        assert is_complete(rule, 120, Decimal("16000"), capacity=720) is True

    def test_and_needs_both(self):
        rule = AllOf(rules=[BottlesAtLeast(value=600), ProfitAtLeast(value=Decimal("15000"))])
        assert is_complete(rule, 650, Decimal("1000"), capacity=720) is False
        assert is_complete(rule, 650, Decimal("15000"), capacity=720) is True

    def test_rules_override_capacity(self):
        assert is_complete(BottlesAtLeast(value=300), 300, Decimal("0"), capacity=720) is True

    def test_idempotent(self):
        rule = AnyOf(
            rules=[
                AllOf(rules=[BottlesAtLeast(value=100), ProfitAtLeast(value=Decimal("10"))]),
                Condition(metric="profit_sek", op=">", value=Decimal("99999")),
            ]
        )
        metrics = _metrics(bottles=150, profit="20")
        results = {evaluate(rule, metrics) for _ in range(5)}
        assert results == {True}


class TestParseTree:
    def test_round_trip_through_json(self):
        data = {
            "type": "or",
            "rules": [
                {"type": "bottles_gte", "value": 600},
                {"type": "profit_gte", "value": 15000},
            ],
        }
        rule = parse_rules(data)
        assert isinstance(rule, AnyOf)
        assert parse_rules(dump_rules(rule)) == rule

    def test_unknown_type(self):
        with pytest.raises(InvalidCompletionRules):
            parse_rules({"type": "weight_gte", "value": 1})

    def test_not_an_object(self):
        with pytest.raises(InvalidCompletionRules):
            parse_rules([1, 2])

    def test_no_known_key(self):
        with pytest.raises(InvalidCompletionRules):
            parse_rules({"threshold": 5})

    def test_negative_bottles_rejected(self):
        with pytest.raises(InvalidCompletionRules):
            parse_rules({"type": "bottles_gte", "value": -1})


class TestParseGroups:
    def test_sequential_is_first_match(self):
        rule = parse_rules(
            {
                "mode": "SEQUENTIAL",
                "groups": [
                    {"operator": "AND", "conditions": [{"metric": "bottles", "op": ">=", "value": 720}]},
                    {"operator": "AND", "conditions": [{"metric": "profit_sek", "op": ">=", "value": 20000}]},
                ],
            }
        )
        assert isinstance(rule, AnyOf)
        assert is_complete(rule, 100, Decimal("20000"), capacity=720) is True
        assert is_complete(rule, 100, Decimal("100"), capacity=720) is False

    def test_combine_and(self):
        rule = parse_rules(
            {
                "mode": "COMBINE",
                "operator": "AND",
                "groups": [
                    {"conditions": [{"metric": "bottles", "op": ">", "value": 500}]},
                    {"conditions": [{"metric": "profit_sek", "op": ">=", "value": 10000}]},
                ],
            }
        )
        assert isinstance(rule, AllOf)
        assert is_complete(rule, 501, Decimal("10000"), capacity=720) is True
        assert is_complete(rule, 500, Decimal("10000"), capacity=720) is False

    def test_group_or_operator(self):
        rule = parse_rules(
            {
                "groups": [
                    {
                        "operator": "OR",
                        "conditions": [
                            {"metric": "bottles", "op": ">=", "value": 700},
                            {"metric": "profit_sek", "op": ">=", "value": 5000},
                        ],
                    }
                ]
            }
        )
        assert is_complete(rule, 10, Decimal("5000"), capacity=720) is True

    def test_empty_group_never_holds(self):
        rule = parse_rules({"mode": "COMBINE", "operator": "OR", "groups": [{"conditions": []}]})
        assert is_complete(rule, 10_000, Decimal("1000000"), capacity=720) is False

    def test_no_groups_is_no_rule(self):
        assert parse_rules({"groups": []}) is None

    def test_bad_comparator(self):
        with pytest.raises(InvalidCompletionRules):
            parse_rules({"groups": [{"conditions": [{"metric": "bottles", "op": "==", "value": 1}]}]})


class TestDescribe:
    def test_default(self):
        assert describe(None, 720) == "IF Bottles >= 720 THEN Complete ELSE Incomplete"

    def test_default_without_capacity(self):
        assert describe(None) == "IF Bottles >= capacity THEN Complete ELSE Incomplete"

    def test_tree(self):
        rule = AnyOf(rules=[BottlesAtLeast(value=600), ProfitAtLeast(value=Decimal("15000"))])
        assert describe(rule) == (
            "IF (Bottles >= 600 OR Profit (SEK) >= 15000) THEN Complete ELSE Incomplete"
        )

    def test_condition_with_decimal(self):
        rule = Condition(metric="profit_sek", op=">", value=Decimal("1234.50"))
        assert describe(rule) == "IF Profit (SEK) > 1234.5 THEN Complete ELSE Incomplete"

    def test_empty_composite(self):
        assert describe(AllOf(rules=[])) == "IF (none) THEN Complete ELSE Incomplete"
