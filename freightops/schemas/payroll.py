from enum import Enum
from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import Optional, List
import uuid
from freightops.schemas.common import UTCDateTime

class EmployeeType(str, Enum):
    DRIVER = "driver"
    OFFICE = "office"
    DISPATCHER = "dispatcher"
    MECHANIC = "mechanic"
    MANAGER = "manager"

class PayType(str, Enum):
    HOURLY = "hourly"
    SALARY = "salary"
    MILEAGE = "mileage"
    COMMISSION = "commission"

class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

class TimeEntryStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"

class PayrollStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    PAID = "paid"

class PayrollRunStatus(str, Enum):
    PROCESSING = "processing"
    APPROVED = "approved"
    COMPLETED = "completed"

class EmployeeCreate(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    employee_type: EmployeeType
    pay_type: PayType
    hourly_rate: Optional[float] = Field(None, ge=0)
    salary_amount: Optional[float] = Field(None, ge=0)  # annual
    mileage_rate: Optional[float] = Field(None, ge=0)
    commission_rate: Optional[float] = Field(None, ge=0, le=1)
    health_insurance: float = Field(0.0, ge=0)  # per pay period
    retirement_401k_percent: float = Field(0.0, ge=0, le=1)
    department: Optional[str] = None
    job_title: Optional[str] = None
    hire_date: Optional[date] = None
    status: EmployeeStatus = EmployeeStatus.ACTIVE

    @model_validator(mode="after")
    def check_pay_fields(self):
        if self.pay_type == PayType.SALARY and self.salary_amount is None:
            raise ValueError("salary_amount is required for salary pay")
        if self.pay_type == PayType.COMMISSION and self.commission_rate is None:
            raise ValueError("commission_rate is required for commission pay")
        return self

class Employee(EmployeeCreate):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)

class ClockInRequest(BaseModel):
    location: Optional[str] = None
    at: Optional[UTCDateTime] = None

class ClockOutRequest(BaseModel):
    miles: Optional[float] = Field(None, ge=0)
    load_id: Optional[str] = None
    notes: Optional[str] = None
    at: Optional[UTCDateTime] = None

class TimeEntry(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    employee_id: str
    tenant_id: str
    clock_in: datetime
    clock_out: Optional[datetime] = None
    total_hours: float = 0.0
    miles: Optional[float] = None
    load_id: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    employee_type: EmployeeType
    status: TimeEntryStatus = TimeEntryStatus.ACTIVE

class PayrollCalculationRequest(BaseModel):
    employee_id: str
    pay_period_start: UTCDateTime
    pay_period_end: UTCDateTime
    bonus: float = Field(0.0, ge=0)
    commission_base: float = Field(0.0, ge=0)

    @model_validator(mode="after")
    def check_period(self):
        if self.pay_period_end < self.pay_period_start:
            raise ValueError("pay_period_end must not be before pay_period_start")
        return self

class EmployeePayroll(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    employee_id: str
    tenant_id: str
    pay_period_start: datetime
    pay_period_end: datetime
    employee_type: EmployeeType
    pay_type: PayType

    total_hours: float = 0.0
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    hourly_rate: float = 0.0
    regular_pay: float = 0.0
    overtime_pay: float = 0.0

    salary_amount: float = 0.0
    salary_pay: float = 0.0

    total_miles: float = 0.0
    mileage_rate: float = 0.0
    mileage_pay: float = 0.0

    bonus_pay: float = 0.0
    commission_pay: float = 0.0

    gross_pay: float = 0.0

    federal_tax: float = 0.0
    state_tax: float = 0.0
    social_security: float = 0.0
    medicare: float = 0.0
    health_insurance: float = 0.0
    retirement_401k: float = 0.0
    total_deductions: float = 0.0
    net_pay: float = 0.0

    status: PayrollStatus = PayrollStatus.DRAFT
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class PayrollRunRequest(BaseModel):
    pay_period_start: UTCDateTime
    pay_period_end: UTCDateTime
    pay_date: date

class PayrollRun(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    tenant_id: str
    pay_period_start: datetime
    pay_period_end: datetime
    pay_date: date
    payroll_ids: List[str] = Field(default_factory=list)
    total_employees: int = 0
    total_gross_pay: float = 0.0
    total_net_pay: float = 0.0
    total_taxes: float = 0.0
    total_deductions: float = 0.0
    status: PayrollRunStatus = PayrollRunStatus.PROCESSING
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class StubLine(BaseModel):
    quantity: float
    rate: float
    amount: float

class PayStub(BaseModel):
    payroll_id: str
    company_name: str
    employee_name: str
    employee_id: str
    pay_period_start: datetime
    pay_period_end: datetime
    regular: StubLine
    overtime: StubLine
    mileage: StubLine
    salary: float
    bonus: float
    commission: float
    gross: float
    federal_tax: float
    state_tax: float
    social_security: float
    medicare: float
    health_insurance: float
    retirement_401k: float
    total_deductions: float
    net_pay: float
    status: PayrollStatus
