"""Pallet fill and profit, recomputed from reservation lines.

Nothing here is stored: every read folds the active reservation lines of
a pallet into a ``PalletFill``.

Per pallet:

- ``current_bottles``: effective quantities of MOQ-eligible lines.
- ``profit_cents_ex_vat``: ``(price_ex_vat - cost_ex_vat) * quantity``
  over the same lines, where ``cost_ex_vat`` is the converted cost plus
  the wine's own alcohol tax.
- ``is_complete``: the pallet's completion rules, or ``bottles >= capacity``.

A line with missing producer, pickup zone, wine or cost data is skipped
and logged; the rest of the pallet is still computed.  A pallet above
capacity is a normal result.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Protocol

import structlog
from django.conf import settings

from modules.catalog.pricing import price_ex_vat_cents
from modules.pallets.eligibility import eligibility, producer_totals
from modules.pallets.exceptions import InvalidCompletionRules
from modules.pallets.rules import is_complete, parse_rules
from modules.reservations.constants import ACTIVE_STATUSES

if TYPE_CHECKING:
    from modules.catalog.fx import ExchangeRateProvider

logger = structlog.get_logger(__name__)


class PalletLike(Protocol):
    id: Any
    bottle_capacity: int
    completion_rules: Optional[dict]


@dataclass(frozen=True)
class PalletLine:
    """One reservation item, flattened with the wine and producer data it needs."""

    pallet_id: str
    reservation_id: str
    reservation_status: str
    quantity: int
    item_id: Optional[str] = None
    wine_id: Optional[str] = None
    producer_id: Optional[str] = None
    producer_name: Optional[str] = None
    pickup_zone_id: Optional[str] = None
    moq_bottles: Optional[int] = None
    base_price_cents: Optional[int] = None
    cost_amount: Optional[Decimal] = None
    cost_currency: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    alcohol_tax_cents: Optional[int] = None

    def missing_fields(self) -> List[str]:
        required = {
            "producer_id": self.producer_id,
            "pickup_zone_id": self.pickup_zone_id,
            "wine_id": self.wine_id,
            "base_price_cents": self.base_price_cents,
            "cost_amount": self.cost_amount,
        }
        return [name for name, value in required.items() if value is None]


@dataclass(frozen=True)
class ProducerFill:
    producer_id: str
    producer_name: Optional[str]
    bottles: int
    moq_bottles: int
    is_eligible: bool


@dataclass(frozen=True)
class PalletFill:
    pallet_id: str
    capacity: int
    current_bottles: int = 0
    profit_cents_ex_vat: int = 0
    is_complete: bool = False
    skipped_lines: int = 0
    producers: List[ProducerFill] = field(default_factory=list)

    @property
    def profit_sek(self) -> Decimal:
        return Decimal(self.profit_cents_ex_vat) / 100

    @property
    def remaining_bottles(self) -> int:
        return max(self.capacity - self.current_bottles, 0)

    @property
    def fill_percentage(self) -> float:
        if self.capacity <= 0:
            return 0.0
        return round(self.current_bottles * 100 / self.capacity, 1)

    @property
    def is_over_capacity(self) -> bool:
        return self.current_bottles > self.capacity


class PalletAggregator:
    """Folds reservation lines into per-pallet fill, profit and completion."""

    def __init__(
        self,
        rate_provider: Optional[ExchangeRateProvider] = None,
        prices_include_vat: Optional[bool] = None,
    ) -> None:
        self._rates = rate_provider
        self._prices_include_vat = (
            settings.PRICES_INCLUDE_VAT if prices_include_vat is None else prices_include_vat
        )

    # ------------------------------------------------------------------
    # Line economics
    # ------------------------------------------------------------------

    def _rate_for(self, line: PalletLine) -> Decimal:
        if line.exchange_rate is not None:
            return Decimal(line.exchange_rate)
        if self._rates is not None and line.cost_currency:
            return self._rates.fetch_rate(line.cost_currency)
        return Decimal("1.0")

    def cost_ex_vat_cents(self, line: PalletLine) -> int:
        converted = (Decimal(line.cost_amount) * self._rate_for(line) * 100).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
        alcohol_tax = (
            line.alcohol_tax_cents
            if line.alcohol_tax_cents is not None
            else settings.DEFAULT_ALCOHOL_TAX_CENTS
        )
        return int(converted) + int(alcohol_tax)

    def profit_per_bottle_cents(self, line: PalletLine) -> int:
        price = price_ex_vat_cents(line.base_price_cents, self._prices_include_vat)
        return price - self.cost_ex_vat_cents(line)

    # ------------------------------------------------------------------
    # Aggregation
    # ------------------------------------------------------------------

    def _usable_lines(self, lines: Iterable[PalletLine], pallet_ids: set) -> tuple[List[PalletLine], Dict[str, int]]:
        usable: List[PalletLine] = []
        skipped: Dict[str, int] = {}
        for line in lines:
            if line.pallet_id not in pallet_ids:
                continue
            if line.reservation_status not in ACTIVE_STATUSES:
                continue
            missing = line.missing_fields()
            if missing:
                logger.warning(
                    "pallet.aggregation.line_skipped",
                    pallet_id=line.pallet_id,
                    reservation_id=line.reservation_id,
                    item_id=line.item_id,
                    missing=missing,
                )
                skipped[line.pallet_id] = skipped.get(line.pallet_id, 0) + 1
                continue
            usable.append(line)
        return usable, skipped

    def _rules_for(self, pallet: PalletLike):
        try:
            return parse_rules(pallet.completion_rules)
        except InvalidCompletionRules as exc:
            logger.warning(
                "pallet.completion_rules_invalid",
                pallet_id=str(pallet.id),
                error=str(exc),
            )
            return None

    def aggregate(
        self, pallets: Iterable[PalletLike], lines: Iterable[PalletLine]
    ) -> Dict[str, PalletFill]:
        pallets = list(pallets)
        pallet_ids = {str(p.id) for p in pallets}
        usable, skipped = self._usable_lines(lines, pallet_ids)

        totals = producer_totals(usable)
        moqs = {line.producer_id: line.moq_bottles for line in usable}
        eligible = eligibility(totals, moqs)
        names = {line.producer_id: line.producer_name for line in usable}

        bottles: Dict[str, int] = {pid: 0 for pid in pallet_ids}
        profit: Dict[str, int] = {pid: 0 for pid in pallet_ids}
        for line in usable:
            if not eligible.get((line.pallet_id, line.producer_id), False):
                continue
            bottles[line.pallet_id] += line.quantity
            profit[line.pallet_id] += self.profit_per_bottle_cents(line) * line.quantity

        fills: Dict[str, PalletFill] = {}
        for pallet in pallets:
            pid = str(pallet.id)
            producers = [
                ProducerFill(
                    producer_id=producer_id,
                    producer_name=names.get(producer_id),
                    bottles=total,
                    moq_bottles=moqs.get(producer_id) or 0,
                    is_eligible=eligible[(p_id, producer_id)],
                )
                for (p_id, producer_id), total in sorted(totals.items())
                if p_id == pid
            ]
            fill = PalletFill(
                pallet_id=pid,
                capacity=pallet.bottle_capacity,
                current_bottles=bottles[pid],
                profit_cents_ex_vat=profit[pid],
                skipped_lines=skipped.get(pid, 0),
                producers=producers,
            )
            complete = is_complete(
                self._rules_for(pallet),
                bottles=fill.current_bottles,
                profit_sek=fill.profit_sek,
                capacity=fill.capacity,
            )
            fills[pid] = replace(fill, is_complete=complete)
            if fill.is_over_capacity:
                logger.info(
                    "pallet.over_capacity",
                    pallet_id=pid,
                    current_bottles=fill.current_bottles,
                    capacity=fill.capacity,
                )
        return fills

    def aggregate_one(self, pallet: PalletLike, lines: Iterable[PalletLine]) -> PalletFill:
        return self.aggregate([pallet], lines)[str(pallet.id)]
