import math
from datetime import datetime, timedelta
from typing import Dict, Optional
import logging
from freightops.core.config import settings
from freightops.core.exceptions import NotFoundError, FreightOpsError
from freightops.db.memory import tenant_state, HQ_STATE
from freightops.schemas.subscription import (
    TierConfig, DriverLimitCheck, OverageCalculation, TrialStatus, SubscriptionStatus
)

logger = logging.getLogger(__name__)

# Motor-carrier pricing. Starter is a hard driver limit, Pro bills extra drivers.
SUBSCRIPTION_TIERS: Dict[str, TierConfig] = {
    "starter": TierConfig(
        name="Starter",
        monthly_fee=99,
        yearly_fee=999,
        trial_days=30,
        included_drivers=5,
        extra_driver_fee=10,
        transaction_import_limit=500,
        allows_overage=False,
        description="Essential trucking management for small carriers (up to 5 drivers)"
    ),
    "pro": TierConfig(
        name="Pro",
        monthly_fee=199,
        yearly_fee=1999,
        trial_days=30,
        included_drivers=15,
        extra_driver_fee=8,
        transaction_import_limit=2000,
        allows_overage=True,
        description="Complete trucking operations for growing carriers (up to 15 drivers, $8 per additional driver)"
    ),
}

UPGRADE_REVIEW_DRIVER_COUNT = 10


def get_tier_config(tier: str) -> TierConfig:
    config = SUBSCRIPTION_TIERS.get(tier)
    if config is None:
        raise FreightOpsError(f"Invalid subscription plan '{tier}'")
    return config


def tenant_tier(tenant_id: str) -> str:
    tenant = HQ_STATE["tenants"].get(tenant_id)
    if tenant is None:
        return settings.DEFAULT_TIER
    return tenant.subscription_tier.value


def count_active_drivers(tenant_id: str) -> int:
    employees = tenant_state(tenant_id)["employees"].values()
    return sum(1 for e in employees if e.employee_type.value == "driver" and e.status.value == "active")


def check_driver_limit(tier: str, current_count: int, requested: int = 1) -> DriverLimitCheck:
    config = get_tier_config(tier)
    limit = config.included_drivers
    total_after = current_count + requested
    extra = max(0, total_after - limit)

    if extra == 0:
        return DriverLimitCheck(allowed=True, current_count=current_count, requested=requested, limit=limit)

    extra_cost = extra * config.extra_driver_fee
    if not config.allows_overage:
        return DriverLimitCheck(
            allowed=False,
            current_count=current_count,
            requested=requested,
            limit=limit,
            message=(f"Driver limit exceeded. You have {current_count} drivers, limit is {limit}. "
                     f"Adding {requested} more would require {extra} extra driver(s) at "
                     f"${config.extra_driver_fee:g}/month each (additional ${extra_cost:g}/month).")
        )

    return DriverLimitCheck(
        allowed=True,
        current_count=current_count,
        requested=requested,
        limit=limit,
        would_cause_overage=True,
        additional_cost=extra_cost,
        message=f"{extra} driver(s) over the included {limit} will be billed at ${config.extra_driver_fee:g}/month each."
    )


def check_tenant_driver_limit(tenant_id: str, requested: int = 1) -> DriverLimitCheck:
    return check_driver_limit(tenant_tier(tenant_id), count_active_drivers(tenant_id), requested)


def calculate_overage(tenant_id: str) -> OverageCalculation:
    tier = tenant_tier(tenant_id)
    config = get_tier_config(tier)
    current = count_active_drivers(tenant_id)
    extra = max(0, current - config.included_drivers)
    return OverageCalculation(
        tenant_id=tenant_id,
        tier=tier,
        current_drivers=current,
        included_drivers=config.included_drivers,
        extra_drivers=extra,
        extra_driver_fee=config.extra_driver_fee,
        total_overage_fee=extra * config.extra_driver_fee
    )


def trial_status(created_at: datetime, trial_days: int, trial_end_date: Optional[datetime] = None,
                 now: Optional[datetime] = None) -> TrialStatus:
    now = now or datetime.utcnow()
    end = trial_end_date or created_at + timedelta(days=trial_days)
    if now >= end:
        return TrialStatus(is_trial_active=False, trial_days_left=0, trial_end_date=end)
    days_left = math.ceil((end - now).total_seconds() / 86400)
    return TrialStatus(is_trial_active=True, trial_days_left=days_left, trial_end_date=end)


def subscription_status(tenant_id: str, now: Optional[datetime] = None) -> SubscriptionStatus:
    tenant = HQ_STATE["tenants"].get(tenant_id)
    if tenant is None:
        raise NotFoundError("Company not found")

    plan_id = tenant.subscription_tier.value
    config = get_tier_config(plan_id)
    current = count_active_drivers(tenant_id)
    extra = max(0, current - config.included_drivers)
    extra_cost = extra * config.extra_driver_fee
    total_cost = config.monthly_fee + extra_cost

    upgrade_recommended = False
    if plan_id == "starter" and current > UPGRADE_REVIEW_DRIVER_COUNT:
        pro = SUBSCRIPTION_TIERS["pro"]
        pro_total = pro.monthly_fee + max(0, current - pro.included_drivers) * pro.extra_driver_fee
        upgrade_recommended = pro_total < total_cost

    return SubscriptionStatus(
        plan_id=plan_id,
        plan_name=config.name,
        current_drivers=current,
        included_drivers=config.included_drivers,
        extra_drivers=extra,
        base_cost=config.monthly_fee,
        extra_cost=extra_cost,
        total_cost=total_cost,
        upgrade_recommended=upgrade_recommended,
        trial_status=trial_status(tenant.created_at, config.trial_days, tenant.trial_end_date, now)
    )
