from fastapi import APIRouter, Header, Query
from freightops.core import subscription
from freightops.schemas.subscription import DriverLimitCheck, OverageCalculation, SubscriptionStatus

router = APIRouter(prefix="/subscription", tags=["subscription"])


@router.get("/status", response_model=SubscriptionStatus)
async def subscription_status(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return subscription.subscription_status(x_tenant_id)


@router.get("/driver-limit", response_model=DriverLimitCheck)
async def driver_limit(requested: int = Query(1, ge=1), x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return subscription.check_tenant_driver_limit(x_tenant_id, requested)


@router.get("/overage", response_model=OverageCalculation)
async def overage(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return subscription.calculate_overage(x_tenant_id)


@router.get("/tiers")
async def list_tiers():
    return subscription.SUBSCRIPTION_TIERS
