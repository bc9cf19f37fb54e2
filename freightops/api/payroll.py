from fastapi import APIRouter, HTTPException, Header
from fastapi.responses import StreamingResponse
from typing import List, Optional
import hashlib
import io
import logging
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from freightops.core import payroll
from freightops.core.audit import audit_repo
from freightops.schemas.audit import AuditLogEntry, AuditStatus, ActionType
from freightops.schemas.payroll import (
    Employee, EmployeeCreate, ClockInRequest, ClockOutRequest, TimeEntry, PayrollCalculationRequest,
    EmployeePayroll, PayrollRun, PayrollRunRequest, PayStub
)

router = APIRouter(prefix="/payroll", tags=["payroll"])
logger = logging.getLogger(__name__)


@router.post("/employees", response_model=Employee, status_code=201)
async def create_employee(request: EmployeeCreate, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.create_employee(x_tenant_id, request)


@router.get("/employees", response_model=List[Employee])
async def list_employees(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.list_employees(x_tenant_id)


@router.get("/employees/{employee_id}", response_model=Employee)
async def get_employee(employee_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.get_employee(x_tenant_id, employee_id)


@router.post("/employees/{employee_id}/clock-in", response_model=TimeEntry)
async def clock_in(employee_id: str, request: ClockInRequest, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.clock_in(x_tenant_id, employee_id, request.location, request.at)


@router.post("/employees/{employee_id}/clock-out", response_model=TimeEntry)
async def clock_out(employee_id: str, request: ClockOutRequest, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.clock_out(x_tenant_id, employee_id, request.miles, request.load_id, request.notes, request.at)


@router.get("/time-entries", response_model=List[TimeEntry])
async def list_time_entries(employee_id: Optional[str] = None, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.list_time_entries(x_tenant_id, employee_id)


@router.post("/calculate", response_model=EmployeePayroll)
async def calculate_payroll(request: PayrollCalculationRequest, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.calculate_payroll(x_tenant_id, request)


@router.get("/records", response_model=List[EmployeePayroll])
async def list_payrolls(employee_id: Optional[str] = None, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.list_payrolls(x_tenant_id, employee_id)


@router.get("/records/{payroll_id}", response_model=EmployeePayroll)
async def get_payroll(payroll_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.get_payroll(x_tenant_id, payroll_id)


@router.post("/records/{payroll_id}/approve", response_model=EmployeePayroll)
async def approve_payroll(payroll_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.approve_payroll(x_tenant_id, payroll_id)


@router.post("/records/{payroll_id}/pay", response_model=EmployeePayroll)
async def mark_payroll_paid(payroll_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.mark_payroll_paid(x_tenant_id, payroll_id)


@router.get("/records/{payroll_id}/stub", response_model=PayStub)
async def get_pay_stub(payroll_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.build_pay_stub(x_tenant_id, payroll_id)


def render_pay_stub(stub: PayStub) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=letter)
    styles = getSampleStyleSheet()
    elements = []

    elements.append(Paragraph(f"{stub.company_name} - Pay Stub", styles['Title']))
    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"<b>Employee:</b> {stub.employee_name} ({stub.employee_id})", styles['Normal']))
    elements.append(Paragraph(
        f"<b>Pay Period:</b> {stub.pay_period_start.strftime('%Y-%m-%d')} to {stub.pay_period_end.strftime('%Y-%m-%d')}",
        styles['Normal']
    ))
    elements.append(Paragraph(f"<b>Status:</b> {stub.status.value}", styles['Normal']))
    elements.append(Spacer(1, 18))

    elements.append(Paragraph("Earnings", styles['Heading2']))
    earnings = [
        ["Item", "Quantity", "Rate", "Amount"],
        ["Regular", f"{stub.regular.quantity:.2f}", f"${stub.regular.rate:.2f}", f"${stub.regular.amount:.2f}"],
        ["Overtime", f"{stub.overtime.quantity:.2f}", f"${stub.overtime.rate:.2f}", f"${stub.overtime.amount:.2f}"],
        ["Mileage", f"{stub.mileage.quantity:.0f}", f"${stub.mileage.rate:.3f}", f"${stub.mileage.amount:.2f}"],
        ["Salary", "", "", f"${stub.salary:.2f}"],
        ["Bonus", "", "", f"${stub.bonus:.2f}"],
        ["Commission", "", "", f"${stub.commission:.2f}"],
        ["Gross Pay", "", "", f"${stub.gross:.2f}"],
    ]
    earnings_table = Table(earnings, colWidths=[150, 90, 90, 110])
    earnings_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
    ]))
    elements.append(earnings_table)
    elements.append(Spacer(1, 18))

    elements.append(Paragraph("Deductions", styles['Heading2']))
    deductions = [
        ["Deduction", "Amount"],
        ["Federal Tax", f"${stub.federal_tax:.2f}"],
        ["State Tax", f"${stub.state_tax:.2f}"],
        ["Social Security", f"${stub.social_security:.2f}"],
        ["Medicare", f"${stub.medicare:.2f}"],
        ["Health Insurance", f"${stub.health_insurance:.2f}"],
        ["401(k)", f"${stub.retirement_401k:.2f}"],
        ["Total Deductions", f"${stub.total_deductions:.2f}"],
        ["Net Pay", f"${stub.net_pay:.2f}"],
    ]
    deductions_table = Table(deductions, colWidths=[200, 150])
    deductions_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
    ]))
    elements.append(deductions_table)

    elements.append(Spacer(1, 36))
    elements.append(Paragraph(
        "Tax withholdings are estimates at flat rates. Consult a payroll professional for filings.",
        ParagraphStyle(name='Footer', fontSize=8, textColor=colors.grey, alignment=1)
    ))

    doc.build(elements)
    return buffer.getvalue()


@router.get("/records/{payroll_id}/stub/pdf")
async def get_pay_stub_pdf(payroll_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    stub = payroll.build_pay_stub(x_tenant_id, payroll_id)

    try:
        pdf_bytes = render_pay_stub(stub)
    except Exception as e:
        logger.error(f"Pay stub PDF build failed: {str(e)}")
        raise HTTPException(status_code=500, detail="PDF generation failed during document build.")

    audit_repo.save(AuditLogEntry(
        endpoint=f"/payroll/records/{payroll_id}/stub/pdf",
        method="GET",
        action_type=ActionType.PDF_DOWNLOAD,
        tenant_id=x_tenant_id,
        output_hash=hashlib.sha256(pdf_bytes).hexdigest(),
        status=AuditStatus.SUCCESS
    ))

    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=Pay_Stub_{payroll_id[:8]}.pdf",
            "Content-Length": str(len(pdf_bytes))
        }
    )


@router.post("/runs", response_model=PayrollRun, status_code=201)
async def process_payroll_run(request: PayrollRunRequest, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.process_payroll_run(x_tenant_id, request.pay_period_start, request.pay_period_end, request.pay_date)


@router.get("/runs", response_model=List[PayrollRun])
async def list_payroll_runs(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.list_payroll_runs(x_tenant_id)


@router.get("/runs/{run_id}", response_model=PayrollRun)
async def get_payroll_run(run_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.get_payroll_run(x_tenant_id, run_id)


@router.post("/runs/{run_id}/approve", response_model=PayrollRun)
async def approve_payroll_run(run_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.approve_payroll_run(x_tenant_id, run_id)


@router.post("/runs/{run_id}/complete", response_model=PayrollRun)
async def complete_payroll_run(run_id: str, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return payroll.complete_payroll_run(x_tenant_id, run_id)
