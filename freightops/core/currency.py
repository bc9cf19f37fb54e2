from abc import ABC, abstractmethod
from datetime import date
from typing import Dict, List, Optional, Tuple
import logging
import time
from freightops.core.config import settings
from freightops.core.exceptions import RateUnavailableError
from freightops.schemas.currency import (
    MultiCurrencyAmount, InvoiceConversion, CurrencyTransaction, MultiCurrencyTotals
)

logger = logging.getLogger(__name__)

# Used when no published rate covers a pair
FALLBACK_RATES = {
    "USD_EUR": 0.85,
    "USD_GBP": 0.73,
    "USD_JPY": 110,
    "USD_CAD": 1.25,
    "USD_AUD": 1.35,
    "EUR_GBP": 0.86,
    "EUR_JPY": 129,
    "GBP_JPY": 150,
}

# symbol, decimals, symbol placement
CURRENCY_FORMATS = {
    "USD": ("$", 2, "before"),
    "EUR": ("€", 2, "after"),
    "GBP": ("£", 2, "before"),
    "JPY": ("¥", 0, "before"),
    "CAD": ("C$", 2, "before"),
    "AUD": ("A$", 2, "before"),
    "CHF": ("CHF", 2, "after"),
    "CNY": ("¥", 2, "before"),
    "INR": ("₹", 2, "before"),
    "MXN": ("$", 2, "before"),
}

SUPPORTED_CURRENCIES = [
    "USD", "EUR", "GBP", "JPY", "CAD", "AUD", "CHF", "CNY", "INR", "MXN",
    "BRL", "KRW", "SGD", "HKD", "NOK", "SEK", "DKK", "PLN", "CZK", "HUF",
    "TRY", "ZAR", "ILS", "AED", "SAR", "THB", "MYR", "IDR", "PHP", "VND",
]


class RateProvider(ABC):
    """Source of base-quoted exchange rates."""

    @abstractmethod
    def latest(self) -> Dict[str, float]:
        pass

    @abstractmethod
    def historical(self, on: date) -> Dict[str, float]:
        pass


class InMemoryRateProvider(RateProvider):
    """Holds rate snapshots published by the HQ operator."""

    def __init__(self):
        self._latest: Dict[str, float] = {}
        self._history: Dict[date, Dict[str, float]] = {}

    def publish(self, rates: Dict[str, float], as_of: Optional[date] = None):
        if as_of is None:
            self._latest = dict(rates)
        else:
            self._history[as_of] = dict(rates)

    def latest(self) -> Dict[str, float]:
        if not self._latest:
            raise RateUnavailableError("No exchange rates have been published")
        return dict(self._latest)

    def historical(self, on: date) -> Dict[str, float]:
        rates = self._history.get(on)
        if rates is None:
            raise RateUnavailableError(f"No exchange rates published for {on.isoformat()}")
        return dict(rates)

    def clear(self):
        self._latest = {}
        self._history.clear()


def fallback_rate(from_currency: str, to_currency: str) -> Optional[float]:
    key = f"{from_currency}_{to_currency}"
    reverse_key = f"{to_currency}_{from_currency}"
    if key in FALLBACK_RATES:
        return FALLBACK_RATES[key]
    if reverse_key in FALLBACK_RATES:
        return 1 / FALLBACK_RATES[reverse_key]
    return None


def format_currency(amount: float, currency: str) -> str:
    symbol, decimals, position = CURRENCY_FORMATS.get(currency, (currency, 2, "after"))
    formatted = f"{amount:.{decimals}f}"
    if position == "before":
        return f"{symbol}{formatted}"
    return f"{formatted} {symbol}"


class CurrencyService:
    def __init__(self, provider: RateProvider, base_currency: str = settings.BASE_CURRENCY,
                 cache_ttl: float = settings.RATE_CACHE_TTL_SECONDS):
        self.provider = provider
        self.base_currency = base_currency
        self.cache_ttl = cache_ttl
        self._cache: Dict[str, Tuple[float, float]] = {}

    def _cross_rate(self, rates: Dict[str, float], from_currency: str, to_currency: str) -> float:
        try:
            if from_currency == self.base_currency:
                rate = rates[to_currency]
            elif to_currency == self.base_currency:
                rate = 1 / rates[from_currency]
            else:
                rate = rates[to_currency] / rates[from_currency]
        except KeyError:
            raise RateUnavailableError(f"Exchange rate not available for {from_currency} to {to_currency}")
        return rate

    def get_exchange_rate(self, from_currency: str, to_currency: str) -> float:
        from_currency, to_currency = from_currency.upper(), to_currency.upper()
        if from_currency == to_currency:
            return 1.0

        cache_key = f"{from_currency}_{to_currency}"
        cached = self._cache.get(cache_key)
        if cached and time.monotonic() - cached[1] < self.cache_ttl:
            return cached[0]

        try:
            rate = self._cross_rate(self.provider.latest(), from_currency, to_currency)
        except RateUnavailableError:
            rate = fallback_rate(from_currency, to_currency)
            if rate is None:
                raise
            logger.warning(f"Using fallback rate for {from_currency} to {to_currency}: {rate}")
            return rate

        self._cache[cache_key] = (rate, time.monotonic())
        return rate

    def get_historical_rate(self, on: date, from_currency: str, to_currency: str) -> float:
        from_currency, to_currency = from_currency.upper(), to_currency.upper()
        if from_currency == to_currency:
            return 1.0
        return self._cross_rate(self.provider.historical(on), from_currency, to_currency)

    def convert(self, amount: float, from_currency: str, to_currency: str) -> MultiCurrencyAmount:
        from_currency, to_currency = from_currency.upper(), to_currency.upper()
        exchange_rate = self.get_exchange_rate(from_currency, to_currency)
        base_rate = self.get_exchange_rate(from_currency, self.base_currency)
        return MultiCurrencyAmount(
            amount=amount * exchange_rate,
            currency=to_currency,
            base_amount=amount * base_rate,
            base_currency=self.base_currency,
            exchange_rate=exchange_rate
        )

    def convert_invoice_amounts(self, amount: float, currency: str, targets: List[str]) -> InvoiceConversion:
        currency = currency.upper()
        base_rate = self.get_exchange_rate(currency, self.base_currency)
        original = MultiCurrencyAmount(
            amount=amount,
            currency=currency,
            base_amount=amount * base_rate,
            base_currency=self.base_currency,
            exchange_rate=1.0
        )
        conversions = [
            self.convert(amount, currency, target)
            for target in targets
            if target.upper() != currency
        ]
        return InvoiceConversion(original=original, conversions=conversions)

    def multi_currency_totals(self, transactions: List[CurrencyTransaction]) -> MultiCurrencyTotals:
        by_currency: Dict[str, float] = {}
        total_base = 0.0
        variance = 0.0

        for tx in transactions:
            currency = tx.currency.upper()
            by_currency[currency] = by_currency.get(currency, 0.0) + tx.amount
            current_rate = self.get_exchange_rate(currency, self.base_currency)
            try:
                historical_rate = self.get_historical_rate(tx.date, currency, self.base_currency)
            except RateUnavailableError:
                logger.warning(f"Could not get rates for {currency} on {tx.date.isoformat()}, using current rate")
                total_base += tx.amount * current_rate
                continue
            base_amount = tx.amount * historical_rate
            total_base += base_amount
            variance += abs(tx.amount * current_rate - base_amount)

        return MultiCurrencyTotals(
            total_by_original_currency=by_currency,
            total_in_base_currency=round(total_base, 2),
            exchange_rate_variance=round(variance, 2)
        )

    def clear_cache(self):
        self._cache.clear()


# Global Accessors
rate_provider = InMemoryRateProvider()
currency_service = CurrencyService(rate_provider)


def publish_rates(rates: Dict[str, float], as_of: Optional[date] = None):
    rate_provider.publish(rates, as_of)
    currency_service.clear_cache()
    logger.info(f"Published {len(rates)} exchange rates ({as_of.isoformat() if as_of else 'latest'})")
