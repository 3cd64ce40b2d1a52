"""Consumer price calculation for wines.

Converts a producer's cost (in the producer's currency) into a final
consumer price in the local currency:

1. ``cost_local = cost * exchange_rate``
2. ``margin_amount = cost_local * margin% * (1 - member_discount%)``
3. ``price_before_tax = cost_local + margin_amount``
4. ``price_after_tax = price_before_tax + alcohol_tax``
5. ``final_price = price_after_tax + vat_amount`` where ``vat_amount`` is 0
   when the price already includes VAT, otherwise ``VAT_RATE`` of the
   *undiscounted* price after tax
6. ``final_price_cents = ceil(final_price * 100)``

A member discount only ever shrinks the margin; cost, alcohol tax and VAT
are passed through untouched, so a d% discount lowers the final price by
exactly d% of the margin.  Cents are rounded up so rounding never eats
into the margin.  All arithmetic is ``Decimal``.
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from pydantic import BaseModel, ConfigDict

from modules.catalog.constants import MAX_MARGIN_PERCENTAGE
from modules.catalog.exceptions import InvalidPricingInput

Number = Union[Decimal, int, float, str]

VAT_RATE = Decimal("0.25")
HUNDRED = Decimal("100")
ONE_CENT = Decimal("1")


class PriceBreakdown(BaseModel):
    """Price components in local currency (``final_price_cents`` in minor units)."""

    model_config = ConfigDict(frozen=True)

    cost_local: Decimal
    alcohol_tax: Decimal
    margin_amount: Decimal
    vat_amount: Decimal
    price_before_tax: Decimal
    price_after_tax: Decimal
    final_price: Decimal
    final_price_cents: int
    margin_percentage: Decimal
    member_discount_percent: Decimal


def to_decimal(value: Number, name: str) -> Decimal:
    """Coerce ``value`` to a finite, non-negative ``Decimal``.

    Raises:
        InvalidPricingInput: the value is missing, non-numeric, non-finite
            or negative.
    """
    if value is None or isinstance(value, bool):
        raise InvalidPricingInput(f"{name} is required.")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPricingInput(f"{name} is not a number: {value!r}.") from None
    if not result.is_finite():
        raise InvalidPricingInput(f"{name} must be finite, got {value!r}.")
    if result < 0:
        raise InvalidPricingInput(f"{name} must not be negative, got {value!r}.")
    return result


def to_cents(amount: Decimal) -> int:
    """Round a local-currency amount *up* to whole cents."""
    return int((amount * HUNDRED).to_integral_value(rounding=ROUND_CEILING))


def alcohol_tax_from_cents(cents: int) -> Decimal:
    return (to_decimal(cents, "alcohol_tax_cents") / HUNDRED).quantize(Decimal("0.01"))


def calculate_price(
    cost_amount: Number,
    exchange_rate: Number,
    alcohol_tax: Number,
    margin_percentage: Number,
    price_includes_vat: bool,
    member_discount_percent: Number = 0,
) -> PriceBreakdown:
    cost = to_decimal(cost_amount, "cost_amount")
    rate = to_decimal(exchange_rate, "exchange_rate")
    tax = to_decimal(alcohol_tax, "alcohol_tax")
    margin_pct = to_decimal(margin_percentage, "margin_percentage")
    if margin_pct > MAX_MARGIN_PERCENTAGE:
        raise InvalidPricingInput(
            f"margin_percentage must be at most {MAX_MARGIN_PERCENTAGE}, got {margin_percentage!r}."
        )
    discount_pct = to_decimal(member_discount_percent, "member_discount_percent")
    if discount_pct > HUNDRED:
        raise InvalidPricingInput(
            f"member_discount_percent must be at most 100, got {member_discount_percent!r}."
        )

    cost_local = cost * rate
    full_margin = cost_local * margin_pct / HUNDRED
    margin_amount = full_margin * (1 - discount_pct / HUNDRED)
    price_before_tax = cost_local + margin_amount
    price_after_tax = price_before_tax + tax

    # VAT is fixed on the list price; the discount comes off the margin alone
    if price_includes_vat:
        vat_amount = Decimal("0")
    else:
        vat_amount = (cost_local + full_margin + tax) * VAT_RATE
    final_price = price_after_tax + vat_amount

    return PriceBreakdown(
        cost_local=cost_local,
        alcohol_tax=tax,
        margin_amount=margin_amount,
        vat_amount=vat_amount,
        price_before_tax=price_before_tax,
        price_after_tax=price_after_tax,
        final_price=final_price,
        final_price_cents=to_cents(final_price),
        margin_percentage=margin_pct,
        member_discount_percent=discount_pct,
    )


def price_ex_vat_cents(price_cents: int, includes_vat: bool) -> int:
    """Strip VAT from a stored consumer price, rounding to the nearest cent."""
    if not includes_vat:
        return int(price_cents)
    return int(
        (Decimal(int(price_cents)) / (1 + VAT_RATE)).quantize(ONE_CENT, rounding=ROUND_HALF_UP)
    )
