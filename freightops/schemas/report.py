from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date

# Any changes to this schema must be reflected in BOTH JSON and PDF report formats.

class BankingSummary(BaseModel):
    total_transactions: int = 0
    matched_count: int = 0
    confirmed_count: int = 0
    suggested_count: int = 0
    rejected_count: int = 0
    unmatched_count: int = 0
    total_credits: float = 0.0
    total_debits: float = 0.0
    matched_amount: float = 0.0
    unmatched_amount: float = 0.0
    match_rate: float = 0.0  # 0 to 100

class MatchTypeBreakdown(BaseModel):
    match_type: str
    count: int = 0
    amount: float = 0.0
    average_confidence: float = 0.0

class TransactionDetail(BaseModel):
    transaction_id: str
    date: date
    description: str
    amount: float
    transaction_type: str
    match_type: str = "-"
    linked_record: str = "-"
    confidence: float = 0.0
    status: str = "unmatched"

class ReportAudit(BaseModel):
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    report_id: str
    matcher_version: str = "1.0.0"
    data_sources: List[str] = ["Bank_Feed", "Load_Board", "Expense_Ledger"]

class BankingReportResponse(BaseModel):
    tenant_id: str
    company_name: str = "-"
    institution_name: Optional[str] = None
    summary: BankingSummary
    by_match_type: List[MatchTypeBreakdown] = []
    transaction_details: List[TransactionDetail] = []
    audit: ReportAudit
