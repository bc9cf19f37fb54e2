from datetime import datetime
from typing import List, Optional
import logging
from freightops.core.config import settings
from freightops.core.exceptions import FreightOpsError, NotFoundError, ConflictError, LimitExceededError
from freightops.core.subscription import check_tenant_driver_limit
from freightops.db.memory import tenant_state, HQ_STATE
from freightops.schemas.payroll import (
    Employee, EmployeeCreate, EmployeeType, EmployeeStatus, PayType, TimeEntry, TimeEntryStatus,
    EmployeePayroll, PayrollStatus, PayrollRun, PayrollRunStatus, PayrollCalculationRequest,
    PayStub, StubLine
)

logger = logging.getLogger(__name__)


def _money(value: float) -> float:
    return round(value, 2)


# --- Employees -----------------------------------------------------------------

def create_employee(tenant_id: str, request: EmployeeCreate) -> Employee:
    if request.employee_type == EmployeeType.DRIVER and request.status == EmployeeStatus.ACTIVE:
        check = check_tenant_driver_limit(tenant_id)
        if not check.allowed:
            raise LimitExceededError(check.message)
        if check.would_cause_overage:
            logger.info(f"Driver overage for tenant {tenant_id}: +${check.additional_cost:.2f}/month")

    employee = Employee(tenant_id=tenant_id, **request.model_dump())
    tenant_state(tenant_id)["employees"][employee.id] = employee
    logger.info(f"Employee created for tenant {tenant_id}: {employee.id} ({employee.employee_type.value})")
    return employee


def get_employee(tenant_id: str, employee_id: str) -> Employee:
    employee = tenant_state(tenant_id)["employees"].get(employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def list_employees(tenant_id: str) -> List[Employee]:
    return list(tenant_state(tenant_id)["employees"].values())


# --- Time clock ----------------------------------------------------------------

def _active_entry(tenant_id: str, employee_id: str) -> Optional[TimeEntry]:
    for entry in tenant_state(tenant_id)["time_entries"]:
        if entry.employee_id == employee_id and entry.status == TimeEntryStatus.ACTIVE:
            return entry
    return None


def clock_in(tenant_id: str, employee_id: str, location: Optional[str] = None,
             at: Optional[datetime] = None) -> TimeEntry:
    employee = get_employee(tenant_id, employee_id)
    if _active_entry(tenant_id, employee_id):
        raise ConflictError("Employee is already clocked in")

    entry = TimeEntry(
        employee_id=employee_id,
        tenant_id=tenant_id,
        clock_in=at or datetime.utcnow(),
        location=location,
        employee_type=employee.employee_type
    )
    tenant_state(tenant_id)["time_entries"].append(entry)
    return entry


def clock_out(tenant_id: str, employee_id: str, miles: Optional[float] = None, load_id: Optional[str] = None,
              notes: Optional[str] = None, at: Optional[datetime] = None) -> TimeEntry:
    entry = _active_entry(tenant_id, employee_id)
    if entry is None:
        raise NotFoundError("No active clock-in found for employee")

    clock_out_at = at or datetime.utcnow()
    if clock_out_at < entry.clock_in:
        raise FreightOpsError("Clock-out time is before clock-in time")

    entry.clock_out = clock_out_at
    entry.total_hours = round((clock_out_at - entry.clock_in).total_seconds() / 3600, 2)
    entry.miles = miles
    entry.load_id = load_id
    entry.notes = notes
    entry.status = TimeEntryStatus.COMPLETED
    return entry


def list_time_entries(tenant_id: str, employee_id: Optional[str] = None) -> List[TimeEntry]:
    entries = tenant_state(tenant_id)["time_entries"]
    if employee_id:
        return [e for e in entries if e.employee_id == employee_id]
    return list(entries)


# --- Payroll math ----------------------------------------------------------------

def calculate_pay(employee: Employee, entries: List[TimeEntry], bonus: float = 0.0,
                  commission_base: float = 0.0) -> dict:
    """
    Computes earnings and deductions for one employee from completed time entries.

    Mileage (driver) pay is miles x mileage rate plus hours x hourly rate, with the
    high-mileage bonus. Hourly pay splits overtime above the period threshold.
    Salary is the annual amount spread over the pay periods in a year. Commission
    applies the employee's rate to the commission base.
    """
    total_hours = round(sum(e.total_hours for e in entries), 2)
    total_miles = sum(e.miles or 0 for e in entries)
    hourly_rate = employee.hourly_rate if employee.hourly_rate is not None else settings.DEFAULT_HOURLY_RATE

    pay = {
        "total_hours": total_hours,
        "total_miles": total_miles,
        "regular_hours": 0.0,
        "overtime_hours": 0.0,
        "hourly_rate": 0.0,
        "regular_pay": 0.0,
        "overtime_pay": 0.0,
        "salary_amount": 0.0,
        "salary_pay": 0.0,
        "mileage_rate": 0.0,
        "mileage_pay": 0.0,
        "bonus_pay": bonus,
        "commission_pay": 0.0,
    }

    if employee.pay_type == PayType.MILEAGE:
        mileage_rate = employee.mileage_rate if employee.mileage_rate is not None else settings.DEFAULT_MILEAGE_RATE
        pay["mileage_rate"] = mileage_rate
        pay["mileage_pay"] = _money(total_miles * mileage_rate)
        pay["hourly_rate"] = hourly_rate
        pay["regular_hours"] = total_hours
        pay["regular_pay"] = _money(total_hours * hourly_rate)
        if total_miles > settings.HIGH_MILEAGE_THRESHOLD:
            pay["bonus_pay"] += settings.HIGH_MILEAGE_BONUS
    elif employee.pay_type == PayType.HOURLY:
        regular = min(total_hours, settings.OVERTIME_THRESHOLD_HOURS)
        overtime = round(max(0.0, total_hours - settings.OVERTIME_THRESHOLD_HOURS), 2)
        pay["hourly_rate"] = hourly_rate
        pay["regular_hours"] = regular
        pay["overtime_hours"] = overtime
        pay["regular_pay"] = _money(regular * hourly_rate)
        pay["overtime_pay"] = _money(overtime * hourly_rate * settings.OVERTIME_MULTIPLIER)
    elif employee.pay_type == PayType.SALARY:
        pay["salary_amount"] = employee.salary_amount
        pay["salary_pay"] = _money(employee.salary_amount / settings.PAY_PERIODS_PER_YEAR)
    elif employee.pay_type == PayType.COMMISSION:
        pay["commission_pay"] = _money(commission_base * employee.commission_rate)

    pay["bonus_pay"] = _money(pay["bonus_pay"])
    gross = _money(pay["regular_pay"] + pay["overtime_pay"] + pay["salary_pay"] + pay["mileage_pay"]
                   + pay["bonus_pay"] + pay["commission_pay"])

    deductions = {
        "federal_tax": _money(gross * settings.FEDERAL_TAX_RATE),
        "state_tax": _money(gross * settings.STATE_TAX_RATE),
        "social_security": _money(gross * settings.SOCIAL_SECURITY_RATE),
        "medicare": _money(gross * settings.MEDICARE_RATE),
        "health_insurance": _money(employee.health_insurance),
        "retirement_401k": _money(gross * employee.retirement_401k_percent),
    }
    total_deductions = _money(sum(deductions.values()))

    pay.update(deductions)
    pay["gross_pay"] = gross
    pay["total_deductions"] = total_deductions
    pay["net_pay"] = _money(gross - total_deductions)
    return pay


def calculate_payroll(tenant_id: str, request: PayrollCalculationRequest) -> EmployeePayroll:
    employee = get_employee(tenant_id, request.employee_id)
    entries = [
        e for e in tenant_state(tenant_id)["time_entries"]
        if e.employee_id == employee.id
        and e.status == TimeEntryStatus.COMPLETED
        and request.pay_period_start <= e.clock_in <= request.pay_period_end
    ]

    pay = calculate_pay(employee, entries, request.bonus, request.commission_base)
    payroll = EmployeePayroll(
        employee_id=employee.id,
        tenant_id=tenant_id,
        pay_period_start=request.pay_period_start,
        pay_period_end=request.pay_period_end,
        employee_type=employee.employee_type,
        pay_type=employee.pay_type,
        **pay
    )
    tenant_state(tenant_id)["payrolls"][payroll.id] = payroll
    return payroll


def get_payroll(tenant_id: str, payroll_id: str) -> EmployeePayroll:
    payroll = tenant_state(tenant_id)["payrolls"].get(payroll_id)
    if payroll is None:
        raise NotFoundError("Payroll record not found")
    return payroll


def list_payrolls(tenant_id: str, employee_id: Optional[str] = None) -> List[EmployeePayroll]:
    payrolls = tenant_state(tenant_id)["payrolls"].values()
    if employee_id:
        return [p for p in payrolls if p.employee_id == employee_id]
    return list(payrolls)


def _transition(payroll: EmployeePayroll, expected: PayrollStatus, target: PayrollStatus) -> EmployeePayroll:
    if payroll.status != expected:
        raise ConflictError(f"Payroll is {payroll.status.value}; only {expected.value} payrolls can become {target.value}")
    payroll.status = target
    payroll.updated_at = datetime.utcnow()
    return payroll


def approve_payroll(tenant_id: str, payroll_id: str) -> EmployeePayroll:
    return _transition(get_payroll(tenant_id, payroll_id), PayrollStatus.DRAFT, PayrollStatus.APPROVED)


def mark_payroll_paid(tenant_id: str, payroll_id: str) -> EmployeePayroll:
    return _transition(get_payroll(tenant_id, payroll_id), PayrollStatus.APPROVED, PayrollStatus.PAID)


# --- Payroll runs ------------------------------------------------------------------

def process_payroll_run(tenant_id: str, pay_period_start: datetime, pay_period_end: datetime, pay_date) -> PayrollRun:
    payrolls: List[EmployeePayroll] = []
    for employee in list_employees(tenant_id):
        if employee.status != EmployeeStatus.ACTIVE:
            continue
        try:
            payrolls.append(calculate_payroll(tenant_id, PayrollCalculationRequest(
                employee_id=employee.id,
                pay_period_start=pay_period_start,
                pay_period_end=pay_period_end
            )))
        except Exception as e:
            logger.error(f"Error calculating payroll for employee {employee.id}: {e}")

    run = PayrollRun(
        tenant_id=tenant_id,
        pay_period_start=pay_period_start,
        pay_period_end=pay_period_end,
        pay_date=pay_date,
        payroll_ids=[p.id for p in payrolls],
        total_employees=len(payrolls),
        total_gross_pay=_money(sum(p.gross_pay for p in payrolls)),
        total_net_pay=_money(sum(p.net_pay for p in payrolls)),
        total_taxes=_money(sum(p.federal_tax + p.state_tax + p.social_security + p.medicare for p in payrolls)),
        total_deductions=_money(sum(p.total_deductions for p in payrolls))
    )
    tenant_state(tenant_id)["payroll_runs"][run.id] = run
    logger.info(f"Payroll run COMPLETED for tenant: {tenant_id}. Employees: {run.total_employees}")
    return run


def get_payroll_run(tenant_id: str, run_id: str) -> PayrollRun:
    run = tenant_state(tenant_id)["payroll_runs"].get(run_id)
    if run is None:
        raise NotFoundError("Payroll run not found")
    return run


def list_payroll_runs(tenant_id: str) -> List[PayrollRun]:
    return list(tenant_state(tenant_id)["payroll_runs"].values())


def approve_payroll_run(tenant_id: str, run_id: str) -> PayrollRun:
    run = get_payroll_run(tenant_id, run_id)
    if run.status != PayrollRunStatus.PROCESSING:
        raise ConflictError(f"Payroll run is already {run.status.value}")
    for payroll_id in run.payroll_ids:
        payroll = get_payroll(tenant_id, payroll_id)
        if payroll.status == PayrollStatus.DRAFT:
            _transition(payroll, PayrollStatus.DRAFT, PayrollStatus.APPROVED)
    run.status = PayrollRunStatus.APPROVED
    run.updated_at = datetime.utcnow()
    return run


def complete_payroll_run(tenant_id: str, run_id: str) -> PayrollRun:
    run = get_payroll_run(tenant_id, run_id)
    if run.status != PayrollRunStatus.APPROVED:
        raise ConflictError("Only approved payroll runs can be completed")
    for payroll_id in run.payroll_ids:
        payroll = get_payroll(tenant_id, payroll_id)
        if payroll.status == PayrollStatus.APPROVED:
            _transition(payroll, PayrollStatus.APPROVED, PayrollStatus.PAID)
    run.status = PayrollRunStatus.COMPLETED
    run.updated_at = datetime.utcnow()
    return run


# --- Pay stubs -----------------------------------------------------------------------

def build_pay_stub(tenant_id: str, payroll_id: str) -> PayStub:
    payroll = get_payroll(tenant_id, payroll_id)
    employee = tenant_state(tenant_id)["employees"].get(payroll.employee_id)
    tenant = HQ_STATE["tenants"].get(tenant_id)

    return PayStub(
        payroll_id=payroll.id,
        company_name=tenant.tenant_name if tenant else "Unknown Company",
        employee_name=employee.name if employee else "Unknown Employee",
        employee_id=payroll.employee_id,
        pay_period_start=payroll.pay_period_start,
        pay_period_end=payroll.pay_period_end,
        regular=StubLine(quantity=payroll.regular_hours, rate=payroll.hourly_rate, amount=payroll.regular_pay),
        overtime=StubLine(
            quantity=payroll.overtime_hours,
            rate=round(payroll.hourly_rate * settings.OVERTIME_MULTIPLIER, 2),
            amount=payroll.overtime_pay
        ),
        mileage=StubLine(quantity=payroll.total_miles, rate=payroll.mileage_rate, amount=payroll.mileage_pay),
        salary=payroll.salary_pay,
        bonus=payroll.bonus_pay,
        commission=payroll.commission_pay,
        gross=payroll.gross_pay,
        federal_tax=payroll.federal_tax,
        state_tax=payroll.state_tax,
        social_security=payroll.social_security,
        medicare=payroll.medicare,
        health_insurance=payroll.health_insurance,
        retirement_401k=payroll.retirement_401k,
        total_deductions=payroll.total_deductions,
        net_pay=payroll.net_pay,
        status=payroll.status
    )
