from datetime import datetime
from typing import List, Optional
import logging
from freightops.core.exceptions import NotFoundError
from freightops.core.identifiers import generate_company_identifier, generate_employee_id
from freightops.core.subscription import calculate_overage
from freightops.db.memory import HQ_STATE
from freightops.schemas.subscription import OverageCalculation
from freightops.schemas.tenant import (
    Tenant, TenantCreate, HQEmployee, HQEmployeeCreate, BillingEvent
)

logger = logging.getLogger(__name__)


def create_tenant(request: TenantCreate) -> Tenant:
    tenants = HQ_STATE["tenants"]
    tenant_id = generate_company_identifier(request.tenant_name, tenants.keys(), request.business_type)
    tenant = Tenant(id=tenant_id, **request.model_dump())
    tenants[tenant_id] = tenant
    logger.info(f"Tenant onboarded: {tenant_id} ({tenant.tenant_name}, {tenant.subscription_tier.value})")
    return tenant


def get_tenant(tenant_id: str) -> Tenant:
    tenant = HQ_STATE["tenants"].get(tenant_id)
    if tenant is None:
        raise NotFoundError(f"Company not found: {tenant_id}")
    return tenant


def list_tenants() -> List[Tenant]:
    return list(HQ_STATE["tenants"].values())


def create_hq_employee(request: HQEmployeeCreate) -> HQEmployee:
    employees = HQ_STATE["employees"]
    employee_id = generate_employee_id(lambda candidate: candidate in employees)
    employee = HQEmployee(employee_id=employee_id, **request.model_dump())
    employees[employee_id] = employee
    return employee


def list_hq_employees() -> List[HQEmployee]:
    return list(HQ_STATE["employees"].values())


def tenants_with_overage() -> List[OverageCalculation]:
    calculations = [calculate_overage(tenant_id) for tenant_id in HQ_STATE["tenants"]]
    return [c for c in calculations if c.extra_drivers > 0]


def process_monthly_overages(now: Optional[datetime] = None) -> List[BillingEvent]:
    """Records one pending overage billing event per tenant over its driver allowance per period."""
    billing_period = (now or datetime.utcnow()).strftime("%Y-%m")
    already_billed = {
        e.tenant_id for e in HQ_STATE["billing_events"] if e.billing_period == billing_period
    }
    events = []
    for calculation in tenants_with_overage():
        if calculation.tenant_id in already_billed:
            continue
        event = BillingEvent(
            tenant_id=calculation.tenant_id,
            billing_period=billing_period,
            extra_drivers=calculation.extra_drivers,
            amount=calculation.total_overage_fee,
            subscription_tier=calculation.tier
        )
        HQ_STATE["billing_events"].append(event)
        events.append(event)
        logger.info(f"Created overage invoice for company {calculation.tenant_id}: ${calculation.total_overage_fee:.2f}")

    logger.info(f"Monthly overage billing for {billing_period} completed: {len(events)} tenant(s) charged")
    return events


def list_billing_events(tenant_id: Optional[str] = None) -> List[BillingEvent]:
    events = HQ_STATE["billing_events"]
    if tenant_id:
        return [e for e in events if e.tenant_id == tenant_id]
    return list(events)
