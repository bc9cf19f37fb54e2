from fastapi import APIRouter, Depends, Header, HTTPException, Query
from typing import List, Optional
from freightops.core import hq
from freightops.core.audit import audit_repo
from freightops.core.config import settings
from freightops.core.currency import publish_rates
from freightops.core.identifiers import generate_identifier_options, is_valid_scac, business_type_from_scac
from freightops.db.memory import HQ_STATE
from freightops.schemas.audit import AuditLogEntry
from freightops.schemas.currency import RatePublishRequest
from freightops.schemas.tenant import (
    Tenant, TenantCreate, HQEmployee, HQEmployeeCreate, BillingEvent, BusinessType
)


async def require_hq_key(x_hq_key: Optional[str] = Header(None, alias="X-HQ-Key")):
    if x_hq_key != settings.HQ_API_KEY:
        raise HTTPException(status_code=403, detail="Invalid HQ credentials")


router = APIRouter(prefix="/hq", tags=["hq"], dependencies=[Depends(require_hq_key)])


@router.post("/tenants", response_model=Tenant, status_code=201)
async def create_tenant(request: TenantCreate):
    return hq.create_tenant(request)


@router.get("/tenants", response_model=List[Tenant])
async def list_tenants():
    return hq.list_tenants()


@router.get("/tenants/{tenant_id}", response_model=Tenant)
async def get_tenant(tenant_id: str):
    return hq.get_tenant(tenant_id)


@router.get("/identifiers/options", response_model=List[str])
async def identifier_options(company_name: str, business_type: BusinessType = BusinessType.MOTOR_CARRIER,
                             count: int = Query(5, ge=1, le=20)):
    return generate_identifier_options(company_name, HQ_STATE["tenants"].keys(), business_type, count)


@router.get("/identifiers/{code}")
async def validate_identifier(code: str):
    code = code.upper()
    valid = is_valid_scac(code)
    return {
        "code": code,
        "valid": valid,
        "business_type": business_type_from_scac(code) if valid else None,
        "available": code not in HQ_STATE["tenants"]
    }


@router.post("/employees", response_model=HQEmployee, status_code=201)
async def create_hq_employee(request: HQEmployeeCreate):
    return hq.create_hq_employee(request)


@router.get("/employees", response_model=List[HQEmployee])
async def list_hq_employees():
    return hq.list_hq_employees()


@router.post("/billing/overages", response_model=List[BillingEvent])
async def process_monthly_overages():
    return hq.process_monthly_overages()


@router.get("/billing/events", response_model=List[BillingEvent])
async def list_billing_events(tenant_id: Optional[str] = None):
    return hq.list_billing_events(tenant_id)


@router.put("/currency/rates")
async def publish_exchange_rates(request: RatePublishRequest):
    publish_rates(request.rates, request.as_of)
    return {"status": "published", "count": len(request.rates), "as_of": request.as_of}


@router.get("/audit", response_model=List[AuditLogEntry])
async def read_audit_log(tenant_id: Optional[str] = None):
    return audit_repo.get_all(tenant_id)
