"""Producer minimum-order (MOQ) eligibility per pallet.

A producer's bottles on a pallet only count once the producer's total on
that pallet reaches its MOQ.  It is all or nothing: below the MOQ none of
the producer's lines count, at or above it all of them do.  Only lines of
active reservations are totalled.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING, Dict, Iterable, Mapping, Optional, Tuple

from modules.reservations.constants import ACTIVE_STATUSES

if TYPE_CHECKING:
    from modules.pallets.aggregation import PalletLine

ProducerKey = Tuple[str, str]


def producer_totals(lines: Iterable[PalletLine]) -> Dict[ProducerKey, int]:
    """Bottles per ``(pallet_id, producer_id)`` over active reservations."""
    totals: Dict[ProducerKey, int] = defaultdict(int)
    for line in lines:
        if line.reservation_status not in ACTIVE_STATUSES:
            continue
        if not line.producer_id or line.quantity <= 0:
            continue
        totals[(line.pallet_id, line.producer_id)] += line.quantity
    return dict(totals)


def is_eligible(total: int, moq: Optional[int]) -> bool:
    return total >= (moq or 0)


def eligibility(
    totals: Mapping[ProducerKey, int], moqs: Mapping[str, Optional[int]]
) -> Dict[ProducerKey, bool]:
    """``moqs`` maps producer id to its MOQ; a missing or zero MOQ always passes."""
    return {
        key: is_eligible(total, moqs.get(key[1]))
        for key, total in totals.items()
    }
