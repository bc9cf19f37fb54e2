from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "FreightOps Back Office"
    LOG_LEVEL: str = "INFO"

    # HQ console
    HQ_API_KEY: str = "hq-dev-key"

    # Bank transaction matching
    TRANSACTION_LOOKBACK_DAYS: int = 30
    MATCH_CONFIRM_THRESHOLD: float = 0.8
    LOAD_MATCH_MIN_SCORE: float = 0.5
    AMOUNT_TOLERANCE_TIGHT: float = 0.05
    AMOUNT_TOLERANCE_LOOSE: float = 0.10
    DATE_PROXIMITY_DAYS: int = 7

    # Payroll
    DEFAULT_MILEAGE_RATE: float = 0.60
    DEFAULT_HOURLY_RATE: float = 25.00
    HIGH_MILEAGE_THRESHOLD: float = 2000
    HIGH_MILEAGE_BONUS: float = 500.00
    OVERTIME_THRESHOLD_HOURS: float = 40
    OVERTIME_MULTIPLIER: float = 1.5
    PAY_PERIODS_PER_YEAR: int = 26
    FEDERAL_TAX_RATE: float = 0.22
    STATE_TAX_RATE: float = 0.06
    SOCIAL_SECURITY_RATE: float = 0.062
    MEDICARE_RATE: float = 0.0145

    # Currency
    BASE_CURRENCY: str = "USD"
    RATE_CACHE_TTL_SECONDS: int = 3600

    # Subscriptions
    DEFAULT_TIER: str = "starter"

    # AI explanations
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_MODEL: str = "gpt-3.5-turbo"

    class Config:
        case_sensitive = True

settings = Settings()
