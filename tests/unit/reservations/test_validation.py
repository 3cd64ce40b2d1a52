"""Unit tests for the six-bottle rule.

Covers:
- Per-producer buckets must hold a multiple of six.
- Producers of the same group are summed together.
- ``needed`` / ``required`` and the error text.
- Empty cart and unknown wines.
"""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.reservations.validation import (
    CartLine,
    CartWine,
    required_bottles,
    validate_six_bottle_rule,
)

pytestmark = pytest.mark.unit

LESTRILLE = CartWine(wine_id="w1", producer_id="p1", producer_name="Château Lestrille")
LESTRILLE_BLANC = CartWine(wine_id="w2", producer_id="p1", producer_name="Château Lestrille")
BOUSCAT = CartWine(wine_id="w3", producer_id="p2", producer_name="Domaine du Bouscat")
GROUPED_A = CartWine(
    wine_id="w4",
    producer_id="p3",
    producer_name="Clos A",
    group_id="g1",
    group_name="Rive Gauche Collective",
)
GROUPED_B = CartWine(
    wine_id="w5",
    producer_id="p4",
    producer_name="Clos B",
    group_id="g1",
    group_name="Rive Gauche Collective",
)

WINES = {w.wine_id: w for w in (LESTRILLE, LESTRILLE_BLANC, BOUSCAT, GROUPED_A, GROUPED_B)}


@pytest.mark.parametrize(
    "actual, expected",
    [(0, 6), (1, 6), (5, 6), (6, 6), (7, 12), (12, 12), (13, 18)],
)
def test_required_bottles(actual, expected):
    assert required_bottles(actual) == expected


class TestSingleProducer:
    def test_six_bottles_valid(self):
        result = validate_six_bottle_rule([CartLine("w1", 6)], WINES)
        assert result.is_valid is True
        assert result.errors == []

    def test_wines_of_same_producer_are_summed(self):
        result = validate_six_bottle_rule([CartLine("w1", 4), CartLine("w2", 2)], WINES)
        assert result.is_valid is True
        (bucket,) = result.producer_validations
        assert bucket.producer_or_group_id == "producer:p1"
        assert bucket.actual == 6

    def test_partial_case_invalid(self):
        result = validate_six_bottle_rule([CartLine("w1", 4)], WINES)

        assert result.is_valid is False
        (bucket,) = result.producer_validations
        assert bucket.actual == 4
        assert bucket.required == 6
        assert bucket.needed == 2
        assert result.errors == [
            "Château Lestrille: 4 bottles. Add 2 more for 6 total."
        ]

    def test_needed_rounds_to_next_case(self):
        result = validate_six_bottle_rule([CartLine("w1", 8)], WINES)
        (bucket,) = result.producer_validations
        assert bucket.required == 12
        assert bucket.needed == 4


class TestMultipleProducers:
    def test_each_producer_checked_separately(self):
        result = validate_six_bottle_rule([CartLine("w1", 3), CartLine("w3", 3)], WINES)

        assert result.is_valid is False
        assert len(result.producer_validations) == 2
        assert len(result.errors) == 2

    def test_one_invalid_producer_fails_cart(self):
        result = validate_six_bottle_rule([CartLine("w1", 6), CartLine("w3", 5)], WINES)

        assert result.is_valid is False
        valid = {v.producer_or_group_id: v.is_valid for v in result.producer_validations}
        assert valid == {"producer:p1": True, "producer:p2": False}
        assert result.errors == ["Domaine du Bouscat: 5 bottles. Add 1 more for 6 total."]


class TestProducerGroups:
    def test_group_members_are_mixed(self):
        result = validate_six_bottle_rule([CartLine("w4", 3), CartLine("w5", 3)], WINES)

        assert result.is_valid is True
        (bucket,) = result.producer_validations
        assert bucket.producer_or_group_id == "group:g1"
        assert bucket.name == "Rive Gauche Collective"
        assert bucket.group_id == "g1"
        assert bucket.producer_ids == ["p3", "p4"]

    def test_group_shortfall_names_group(self):
        result = validate_six_bottle_rule([CartLine("w4", 2), CartLine("w5", 2)], WINES)
        assert result.errors == [
            "Rive Gauche Collective: 4 bottles. Add 2 more for 6 total."
        ]

    def test_grouped_and_ungrouped_not_mixed(self):
        result = validate_six_bottle_rule([CartLine("w4", 3), CartLine("w1", 3)], WINES)
        assert result.is_valid is False
        assert len(result.producer_validations) == 2


class TestEdgeCases:
    def test_empty_cart_is_valid(self):
        result = validate_six_bottle_rule([], WINES)
        assert result.is_valid is True
        assert result.producer_validations == []

    def test_unknown_wine_skipped(self):
        result = validate_six_bottle_rule([CartLine("w1", 6), CartLine("missing", 1)], WINES)
        assert result.is_valid is True
        assert len(result.producer_validations) == 1

    def test_wine_without_producer_skipped(self):
        orphan = CartWine(wine_id="w9", producer_id=None)
        result = validate_six_bottle_rule([CartLine("w9", 1)], {"w9": orphan})
        assert result.is_valid is True
        assert result.producer_validations == []

    def test_wine_ids_compared_as_strings(self):
        wine_id = uuid4()
        wine = CartWine(wine_id=str(wine_id), producer_id="p1", producer_name="P")
        result = validate_six_bottle_rule([CartLine(wine_id, 6)], {str(wine_id): wine})
        assert result.producer_validations[0].actual == 6
