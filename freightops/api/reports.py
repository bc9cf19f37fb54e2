from fastapi import APIRouter, HTTPException, Header
from fastapi.responses import StreamingResponse
from freightops.db.memory import APP_STATE, HQ_STATE
from freightops.schemas.report import (
    BankingReportResponse, BankingSummary, MatchTypeBreakdown, TransactionDetail, ReportAudit
)
from freightops.schemas.banking import MatchStatus
from freightops.schemas.audit import AuditLogEntry, AuditStatus, ActionType
from freightops.core.audit import audit_repo
import uuid
import logging
import io
import hashlib
from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib import colors

router = APIRouter()
logger = logging.getLogger(__name__)

def build_banking_report(x_tenant_id: str) -> BankingReportResponse:
    """Aggregates the tenant's bank feed and match decisions for both JSON and PDF endpoints."""
    data = APP_STATE.get(x_tenant_id)
    if not data or not data.get("transactions"):
        raise HTTPException(status_code=404, detail="No bank transactions found for this tenant.")

    transactions = data["transactions"]
    matches = {m.bank_transaction_id: m for m in data["matches"]}

    summary = BankingSummary(total_transactions=len(transactions))
    by_type = {}
    details = []

    for tx in transactions.values():
        amount = abs(tx.amount)
        if tx.amount > 0:
            summary.total_debits += amount
        else:
            summary.total_credits += amount

        match = matches.get(tx.id)
        if match is None or match.status == MatchStatus.REJECTED:
            summary.unmatched_count += 1
            summary.unmatched_amount += amount
            if match is not None:
                summary.rejected_count += 1
        else:
            summary.matched_count += 1
            summary.matched_amount += amount
            if match.status == MatchStatus.CONFIRMED:
                summary.confirmed_count += 1
            else:
                summary.suggested_count += 1

            bucket = by_type.setdefault(match.match_type.value, MatchTypeBreakdown(match_type=match.match_type.value))
            bucket.count += 1
            bucket.amount += amount
            bucket.average_confidence += match.confidence

        details.append(TransactionDetail(
            transaction_id=tx.id,
            date=tx.date,
            description=tx.description,
            amount=tx.amount,
            transaction_type=tx.transaction_type.value,
            match_type=match.match_type.value if match else "-",
            linked_record=(match.load_id or match.expense_id or "-") if match else "-",
            confidence=match.confidence if match else 0.0,
            status=match.status.value if match else "unmatched"
        ))

    for bucket in by_type.values():
        bucket.amount = round(bucket.amount, 2)
        bucket.average_confidence = round(bucket.average_confidence / bucket.count, 2)

    summary.total_debits = round(summary.total_debits, 2)
    summary.total_credits = round(summary.total_credits, 2)
    summary.matched_amount = round(summary.matched_amount, 2)
    summary.unmatched_amount = round(summary.unmatched_amount, 2)
    summary.match_rate = round(summary.matched_count / summary.total_transactions * 100, 2)

    connection = data.get("connection")
    tenant = HQ_STATE["tenants"].get(x_tenant_id)

    return BankingReportResponse(
        tenant_id=x_tenant_id,
        company_name=tenant.tenant_name if tenant else "-",
        institution_name=connection.institution_name if connection else None,
        summary=summary,
        by_match_type=sorted(by_type.values(), key=lambda b: b.match_type),
        transaction_details=sorted(details, key=lambda d: d.date),
        audit=ReportAudit(report_id=str(uuid.uuid4()))
    )

@router.get("/reports/banking", response_model=BankingReportResponse)
async def get_banking_report(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    logger.info(f"JSON Report requested for tenant: {x_tenant_id}")
    return build_banking_report(x_tenant_id)

@router.get("/reports/banking/pdf")
async def get_banking_pdf_report(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    logger.info(f"PDF Report Generation STARTED for tenant: {x_tenant_id}")
    report = build_banking_report(x_tenant_id)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4)
    styles = getSampleStyleSheet()
    elements = []

    # 1. Header
    elements.append(Paragraph("Bank Reconciliation Report", styles['Title']))
    elements.append(Spacer(1, 12))
    elements.append(Paragraph(f"<b>Tenant ID:</b> {report.tenant_id}", styles['Normal']))
    elements.append(Paragraph(f"<b>Company:</b> {report.company_name}", styles['Normal']))
    elements.append(Paragraph(f"<b>Bank:</b> {report.institution_name or '-'}", styles['Normal']))
    elements.append(Paragraph(f"<b>Generated:</b> {report.audit.generated_at.strftime('%Y-%m-%d %H:%M:%S')}", styles['Normal']))
    elements.append(Spacer(1, 24))

    # 2. Summary table
    elements.append(Paragraph("Matching Summary", styles['Heading2']))
    s = report.summary
    summary_data = [
        ["Metric", "Value"],
        ["Total Transactions", str(s.total_transactions)],
        ["Matched", str(s.matched_count)],
        ["Confirmed", str(s.confirmed_count)],
        ["Suggested", str(s.suggested_count)],
        ["Rejected", str(s.rejected_count)],
        ["Unmatched", str(s.unmatched_count)],
        ["Money In", f"${s.total_credits:,.2f}"],
        ["Money Out", f"${s.total_debits:,.2f}"],
        ["Match Rate", f"{s.match_rate:.1f}%"]
    ]
    summary_table = Table(summary_data, colWidths=[200, 150])
    summary_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
    ]))
    elements.append(summary_table)
    elements.append(Spacer(1, 24))

    # 3. Breakdown by match type
    if report.by_match_type:
        elements.append(Paragraph("By Match Type", styles['Heading2']))
        breakdown = [["Type", "Count", "Amount", "Avg. Confidence"]]
        for b in report.by_match_type:
            breakdown.append([b.match_type, str(b.count), f"${b.amount:,.2f}", f"{b.average_confidence:.2f}"])
        breakdown_table = Table(breakdown, colWidths=[130, 60, 110, 110])
        breakdown_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.navy),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey)
        ]))
        elements.append(breakdown_table)

    # 4. Footer
    elements.append(Spacer(1, 48))
    footer_text = "Suggested matches require review before they are posted to the books."
    elements.append(Paragraph(footer_text, ParagraphStyle(name='Footer', fontSize=8, textColor=colors.grey, alignment=1)))

    try:
        doc.build(elements)
    except Exception as e:
        logger.error(f"PDF Build Failed: {str(e)}")
        raise HTTPException(status_code=500, detail="PDF generation failed during document build.")

    pdf_bytes = buffer.getvalue()
    pdf_hash = hashlib.sha256(pdf_bytes).hexdigest()

    audit_repo.save(AuditLogEntry(
        endpoint="/reports/banking/pdf",
        method="GET",
        action_type=ActionType.PDF_DOWNLOAD,
        tenant_id=x_tenant_id,
        output_hash=pdf_hash,
        status=AuditStatus.SUCCESS
    ))

    buffer.seek(0)
    return StreamingResponse(
        buffer,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f"attachment; filename=Bank_Reconciliation_{x_tenant_id[:8]}.pdf",
            "Content-Length": str(len(pdf_bytes))
        }
    )
