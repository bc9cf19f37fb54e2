from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class TierConfig(BaseModel):
    name: str
    monthly_fee: float
    yearly_fee: float
    trial_days: int
    included_drivers: int
    extra_driver_fee: float
    transaction_import_limit: int
    allows_overage: bool
    description: str

class DriverLimitCheck(BaseModel):
    allowed: bool
    current_count: int
    requested: int
    limit: int
    would_cause_overage: bool = False
    additional_cost: float = 0.0
    message: Optional[str] = None

class OverageCalculation(BaseModel):
    tenant_id: str
    tier: str
    current_drivers: int
    included_drivers: int
    extra_drivers: int
    extra_driver_fee: float
    total_overage_fee: float

class TrialStatus(BaseModel):
    is_trial_active: bool
    trial_days_left: int
    trial_end_date: Optional[datetime] = None

class SubscriptionStatus(BaseModel):
    plan_id: str
    plan_name: str
    current_drivers: int
    included_drivers: int
    extra_drivers: int
    base_cost: float
    extra_cost: float
    total_cost: float
    upgrade_recommended: bool
    trial_status: TrialStatus
