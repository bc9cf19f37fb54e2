from enum import Enum
from pydantic import BaseModel, Field, field_validator, ValidationInfo
from datetime import date, datetime
from typing import Optional, List
import re

class TransactionType(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"

class MatchType(str, Enum):
    LOAD_PAYMENT = "load_payment"
    FUEL_EXPENSE = "fuel_expense"
    MAINTENANCE = "maintenance"
    DRIVER_PAY = "driver_pay"
    OTHER = "other"

class MatchStatus(str, Enum):
    SUGGESTED = "suggested"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"

class ExpenseCategory(str, Enum):
    FUEL = "fuel"
    MAINTENANCE = "maintenance"
    DRIVER_PAY = "driver_pay"
    OTHER = "other"

class BankConnectionRequest(BaseModel):
    account_id: str
    institution_name: str = "Unknown Bank"
    account_name: str
    account_type: str = "checking"

class BankConnection(BankConnectionRequest):
    tenant_id: str
    connected_at: datetime = Field(default_factory=datetime.utcnow)

class BankTransaction(BaseModel):
    """A bank feed line. Positive amounts are money leaving the account."""
    id: str = Field(..., validation_alias="transaction_id")
    account_id: str
    amount: float
    date: date
    description: str = Field(..., validation_alias="name")
    category: List[str] = Field(default_factory=list)
    merchant_name: Optional[str] = None
    pending: bool = False

    model_config = {"populate_by_name": True}

    @property
    def transaction_type(self) -> TransactionType:
        return TransactionType.DEBIT if self.amount > 0 else TransactionType.CREDIT

    @field_validator('date', mode='before')
    @classmethod
    def validate_date_format(cls, v):
        if isinstance(v, str):
            try:
                datetime.strptime(v, '%Y-%m-%d')
            except ValueError:
                raise ValueError("Date must be in YYYY-MM-DD format")
        return v

    @field_validator('amount', mode='before')
    @classmethod
    def validate_numeric(cls, v, info: ValidationInfo):
        if isinstance(v, str):
            if not re.match(r'^-?\d+(\.\d+)?$', v.strip()):
                raise ValueError(f"{info.field_name} must be strictly numeric")
        return v

    @field_validator('category', mode='before')
    @classmethod
    def split_category(cls, v):
        # CSV rows carry categories as "Travel;Gas Stations"
        if isinstance(v, str):
            return [c.strip() for c in v.split(";") if c.strip()]
        return v

    @field_validator('merchant_name', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

class BankTransactionOut(BaseModel):
    id: str
    account_id: str
    amount: float
    date: date
    description: str
    category: List[str]
    merchant_name: Optional[str] = None
    pending: bool
    transaction_type: TransactionType

    @classmethod
    def from_transaction(cls, tx: BankTransaction) -> "BankTransactionOut":
        return cls(
            id=tx.id,
            account_id=tx.account_id,
            amount=tx.amount,
            date=tx.date,
            description=tx.description,
            category=tx.category,
            merchant_name=tx.merchant_name,
            pending=tx.pending,
            transaction_type=tx.transaction_type
        )

class TransactionIngestRequest(BaseModel):
    transactions: List[BankTransaction]
    start_date: Optional[date] = None
    end_date: Optional[date] = None

class Load(BaseModel):
    id: str
    load_number: Optional[str] = None
    customer_name: Optional[str] = None
    rate: float = Field(..., gt=0)
    delivery_date: Optional[date] = None

class Expense(BaseModel):
    id: str
    category: ExpenseCategory
    amount: float = Field(..., gt=0)
    expense_date: Optional[date] = None
    vendor: Optional[str] = None

class TransactionMatch(BaseModel):
    bank_transaction_id: str
    load_id: Optional[str] = None
    expense_id: Optional[str] = None
    match_type: MatchType
    confidence: float = Field(..., ge=0, le=1)
    matched_at: datetime = Field(default_factory=datetime.utcnow)
    verified_at: Optional[datetime] = None
    status: MatchStatus

class MatchStatusUpdate(BaseModel):
    status: MatchStatus

    @field_validator('status')
    @classmethod
    def review_decision_only(cls, v):
        if v == MatchStatus.SUGGESTED:
            raise ValueError("status must be 'confirmed' or 'rejected'")
        return v

class MatchReview(BaseModel):
    transactions: List[BankTransactionOut]
    matches: List[TransactionMatch]
    unmatched: List[BankTransactionOut]
