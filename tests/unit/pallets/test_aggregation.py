"""Unit tests for PalletAggregator (pure, no database).

Covers:
- Bottles and ex-VAT profit per pallet.
- MOQ filter (all or nothing per producer).
- Lines with missing data are skipped, the rest still counts.
- Over-capacity is a normal result.
- Completion rules, including invalid stored rules.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace

import pytest

from modules.pallets.aggregation import PalletAggregator, PalletLine
from modules.reservations.constants import ReservationStatus

pytestmark = pytest.mark.unit

# 20000 cents incl. VAT -> 16000 ex VAT; cost 7.00 * 11.25 -> 7875 + 2219 tax
PROFIT_PER_BOTTLE = 16000 - (7875 + 2219)


def _pallet(id="pal-1", capacity=720, rules=None):
    return SimpleNamespace(id=id, bottle_capacity=capacity, completion_rules=rules)


def _line(quantity, **overrides):
    fields = {
        "pallet_id": "pal-1",
        "reservation_id": "r1",
        "reservation_status": ReservationStatus.PLACED,
        "quantity": quantity,
        "wine_id": "w1",
        "producer_id": "p1",
        "producer_name": "Château Test",
        "pickup_zone_id": "z1",
        "moq_bottles": None,
        "base_price_cents": 20000,
        "cost_amount": Decimal("7.00"),
        "cost_currency": "EUR",
        "exchange_rate": Decimal("11.25"),
        "alcohol_tax_cents": 2219,
    }
    fields.update(overrides)
    return PalletLine(**fields)


@pytest.fixture()
def aggregator():
    return PalletAggregator(prices_include_vat=True)


class TestLineEconomics:
    def test_cost_ex_vat_includes_alcohol_tax(self, aggregator):
        assert aggregator.cost_ex_vat_cents(_line(1)) == 10094

    def test_profit_per_bottle(self, aggregator):
        assert aggregator.profit_per_bottle_cents(_line(1)) == PROFIT_PER_BOTTLE

    def test_prices_excluding_vat(self):
        aggregator = PalletAggregator(prices_include_vat=False)
        assert aggregator.profit_per_bottle_cents(_line(1)) == 20000 - 10094

    def test_rate_provider_used_without_stored_rate(self):
        class StubRates:
            def fetch_rate(self, from_currency, to_currency=None, **kwargs):
                return Decimal("10")

        aggregator = PalletAggregator(rate_provider=StubRates(), prices_include_vat=True)
        assert aggregator.cost_ex_vat_cents(_line(1, exchange_rate=None)) == 7000 + 2219

    def test_missing_rate_without_provider_is_one(self, aggregator):
        assert aggregator.cost_ex_vat_cents(_line(1, exchange_rate=None)) == 700 + 2219


class TestAggregate:
    def test_two_three_bottle_reservations(self, aggregator):
        fill = aggregator.aggregate_one(
            _pallet(), [_line(3, reservation_id="r1"), _line(3, reservation_id="r2")]
        )
        assert fill.current_bottles == 6
        assert fill.profit_cents_ex_vat == PROFIT_PER_BOTTLE * 6
        assert fill.is_complete is False
        assert fill.remaining_bottles == 714

    def test_inactive_and_foreign_lines_ignored(self, aggregator):
        fill = aggregator.aggregate_one(
            _pallet(),
            [
                _line(6),
                _line(60, reservation_status=ReservationStatus.DECLINED),
                _line(60, pallet_id="pal-other"),
            ],
        )
        assert fill.current_bottles == 6

    def test_many_pallets_at_once(self, aggregator):
        fills = aggregator.aggregate(
            [_pallet("a"), _pallet("b"), _pallet("c")],
            [_line(6, pallet_id="a"), _line(12, pallet_id="b")],
        )
        assert {pid: f.current_bottles for pid, f in fills.items()} == {"a": 6, "b": 12, "c": 0}


class TestMoqFilter:
    def test_producer_below_moq_contributes_nothing(self, aggregator):
        fill = aggregator.aggregate_one(
            _pallet(),
            [
                _line(12, producer_id="p1"),
                _line(12, producer_id="p2", producer_name="Small", moq_bottles=24),
            ],
        )
        assert fill.current_bottles == 12
        assert fill.profit_cents_ex_vat == PROFIT_PER_BOTTLE * 12
        by_producer = {p.producer_id: p for p in fill.producers}
        assert by_producer["p2"].is_eligible is False
        assert by_producer["p2"].bottles == 12
        assert by_producer["p1"].is_eligible is True

    def test_reaching_moq_counts_all_lines(self, aggregator):
        fill = aggregator.aggregate_one(
            _pallet(),
            [
                _line(12, reservation_id="r1", moq_bottles=24),
                _line(12, reservation_id="r2", moq_bottles=24),
            ],
        )
        assert fill.current_bottles == 24


class TestResilience:
    def test_deleted_wine_line_skipped(self, aggregator):
        deleted = _line(
            6,
            reservation_id="r2",
            wine_id=None,
            producer_id=None,
            pickup_zone_id=None,
            base_price_cents=None,
            cost_amount=None,
        )
        fill = aggregator.aggregate_one(_pallet(), [_line(6), deleted])
        assert fill.current_bottles == 6
        assert fill.skipped_lines == 1

    @pytest.mark.parametrize("missing", ["producer_id", "pickup_zone_id", "base_price_cents", "cost_amount"])
    def test_any_missing_field_skips_line(self, aggregator, missing):
        fill = aggregator.aggregate_one(_pallet(), [_line(6, **{missing: None})])
        assert fill.current_bottles == 0
        assert fill.profit_cents_ex_vat == 0
        assert fill.skipped_lines == 1

    def test_over_capacity_tolerated(self, aggregator):
        fill = aggregator.aggregate_one(_pallet(capacity=12), [_line(18)])
        assert fill.current_bottles == 18
        assert fill.is_over_capacity
        assert fill.is_complete is True
        assert fill.remaining_bottles == 0
        assert fill.fill_percentage == 150.0

    def test_invalid_rules_fall_back_to_capacity(self, aggregator):
        pallet = _pallet(capacity=6, rules={"type": "nonsense"})
        assert aggregator.aggregate_one(pallet, [_line(6)]).is_complete is True


class TestCompletionRules:
    def test_profit_rule_completes_small_pallet(self, aggregator):
        rules = {"type": "profit_gte", "value": 100}
        fill = aggregator.aggregate_one(_pallet(rules=rules), [_line(6)])
        # 6 * 59.06 SEK
        assert fill.profit_sek == Decimal("354.36")
        assert fill.is_complete is True

    def test_bottles_rule_below_threshold(self, aggregator):
        rules = {"type": "bottles_gte", "value": 600}
        fill = aggregator.aggregate_one(_pallet(rules=rules), [_line(594)])
        assert fill.is_complete is False
