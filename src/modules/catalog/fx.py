"""Exchange rates from an HTTP rates API (Frankfurter-compatible).

Three ways to price a wine's cost in the local currency:

- ``live``: today's rate (``GET /latest``).
- ``fixed_date``: the rate of a given day (``GET /YYYY-MM-DD``).
- ``period_average``: the mean of the daily rates over a date range
  (``GET /YYYY-MM-DD..YYYY-MM-DD``).

The provider never raises on network or payload problems: it logs
``fx.rate_fallback`` and returns ``Decimal("1.0")`` so pricing keeps
working.  Successful look-ups are memoised in an injected
``ExpiringCache``.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

import requests
import structlog
from django.conf import settings

from modules.catalog.constants import ExchangeRateSource
from modules.core.cache import ExpiringCache

if TYPE_CHECKING:
    from modules.catalog.models import Wine

logger = structlog.get_logger(__name__)

FALLBACK_RATE = Decimal("1.0")
RATE_PRECISION = Decimal("0.000001")

Period = Tuple[date, date]


def d(val: Any) -> Decimal:
    if isinstance(val, Decimal):
        return val
    return Decimal(str(val))


class ExchangeRateProvider:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        cache: Optional[ExpiringCache] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or settings.FX_API_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.FX_TIMEOUT_SECONDS
        self.cache = cache or ExpiringCache("fx", ttl=settings.FX_CACHE_TTL_SECONDS)
        self.session = session or requests.Session()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def fetch_rate(
        self,
        from_currency: str,
        to_currency: Optional[str] = None,
        *,
        on: Optional[date] = None,
        period: Optional[Period] = None,
    ) -> Decimal:
        """Rate to convert one unit of ``from_currency`` into ``to_currency``.

        Pass ``on`` for a historical day or ``period`` for a range average;
        neither means the latest rate.  Returns ``1.0`` for identical
        currencies and on any failure.
        """
        base = (from_currency or "").strip().upper()
        quote = (to_currency or settings.LOCAL_CURRENCY).strip().upper()
        if not base or base == quote:
            return Decimal("1")

        if period is not None:
            start, end = period
            path = f"{start.isoformat()}..{end.isoformat()}"
        elif on is not None:
            path = on.isoformat()
        else:
            path = "latest"

        cache_key = f"{base}:{quote}:{path}"
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        log = logger.bind(from_currency=base, to_currency=quote, path=path)
        try:
            payload = self._get(path, base, quote)
            rate = self._parse(payload, quote, averaged=period is not None)
        except (requests.RequestException, ValueError, KeyError, TypeError, InvalidOperation) as exc:
            log.warning("fx.rate_fallback", error=str(exc), rate=str(FALLBACK_RATE))
            return FALLBACK_RATE

        if rate <= 0:
            log.warning("fx.rate_fallback", error="non-positive rate", rate=str(FALLBACK_RATE))
            return FALLBACK_RATE

        self.cache.set(cache_key, rate)
        log.info("fx.rate_fetched", rate=str(rate))
        return rate

    def resolve_rate_for_wine(self, wine: Wine) -> Decimal:
        """Fetch the rate a wine is configured to be priced with."""
        source = wine.exchange_rate_source
        if source == ExchangeRateSource.FIXED_DATE and wine.exchange_rate_date:
            return self.fetch_rate(wine.cost_currency, on=wine.exchange_rate_date)
        if (
            source == ExchangeRateSource.PERIOD_AVERAGE
            and wine.exchange_rate_period_start
            and wine.exchange_rate_period_end
        ):
            return self.fetch_rate(
                wine.cost_currency,
                period=(wine.exchange_rate_period_start, wine.exchange_rate_period_end),
            )
        return self.fetch_rate(wine.cost_currency)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _get(self, path: str, base: str, quote: str) -> Dict[str, Any]:
        resp = self.session.get(
            f"{self.base_url}/{path}",
            params={"from": base, "to": quote},
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    @staticmethod
    def _parse(payload: Dict[str, Any], quote: str, averaged: bool) -> Decimal:
        rates = payload["rates"]
        if not averaged:
            return d(rates[quote]).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)

        # {"2024-01-02": {"SEK": 11.2}, "2024-01-03": {"SEK": 11.3}, ...}
        daily = [d(day[quote]) for day in rates.values() if quote in day]
        if not daily:
            raise ValueError(f"no {quote} rates in period")
        mean = sum(daily, Decimal("0")) / len(daily)
        return mean.quantize(RATE_PRECISION, rounding=ROUND_HALF_UP)
