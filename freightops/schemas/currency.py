from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from typing import Dict, List, Optional

class RatePublishRequest(BaseModel):
    """Rates quoted against the base currency (1 base = rate units)."""
    rates: Dict[str, float]
    as_of: Optional[date] = None

    @field_validator('rates')
    @classmethod
    def positive_rates(cls, v):
        for code, rate in v.items():
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive")
        return {code.upper(): rate for code, rate in v.items()}

class MultiCurrencyAmount(BaseModel):
    amount: float
    currency: str
    base_amount: float
    base_currency: str
    exchange_rate: float
    converted_at: datetime = Field(default_factory=datetime.utcnow)

class InvoiceConversionRequest(BaseModel):
    amount: float
    currency: str
    target_currencies: List[str]

class InvoiceConversion(BaseModel):
    original: MultiCurrencyAmount
    conversions: List[MultiCurrencyAmount]

class CurrencyTransaction(BaseModel):
    amount: float
    currency: str
    date: date

class MultiCurrencyTotalsRequest(BaseModel):
    transactions: List[CurrencyTransaction]

class MultiCurrencyTotals(BaseModel):
    total_by_original_currency: Dict[str, float]
    total_in_base_currency: float
    exchange_rate_variance: float
