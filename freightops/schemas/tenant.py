from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from freightops.schemas.common import UTCDateTime

class BusinessType(str, Enum):
    MOTOR_CARRIER = "motor_carrier"
    RAIL_CARRIER = "rail_carrier"
    OCEAN_CARRIER = "ocean_carrier"
    AIR_CARRIER = "air_carrier"
    FREIGHT_FORWARDER = "freight_forwarder"
    LOGISTICS_PROVIDER = "logistics_provider"
    INTERMODAL = "intermodal"
    GENERAL = "general"

class SubscriptionTier(str, Enum):
    STARTER = "starter"
    PRO = "pro"

class TenantCreate(BaseModel):
    tenant_name: str = Field(..., min_length=1)
    business_type: BusinessType = BusinessType.MOTOR_CARRIER
    subscription_tier: SubscriptionTier = SubscriptionTier.STARTER
    trial_end_date: Optional[UTCDateTime] = None

class Tenant(TenantCreate):
    id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

class HQEmployeeCreate(BaseModel):
    first_name: str
    last_name: str
    email: str
    role: str
    department: str
    position: str
    phone: Optional[str] = None

class HQEmployee(HQEmployeeCreate):
    employee_id: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

class BillingEventStatus(str, Enum):
    PENDING = "pending"

class BillingEvent(BaseModel):
    tenant_id: str
    event_type: str = "driver_overage"
    billing_period: str
    extra_drivers: int
    amount: float
    subscription_tier: str
    status: BillingEventStatus = BillingEventStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.utcnow)
