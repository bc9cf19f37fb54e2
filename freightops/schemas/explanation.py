from pydantic import BaseModel, Field
from typing import Optional
from freightops.schemas.banking import MatchStatus, MatchType

class ExplainMatchRequest(BaseModel):
    bank_transaction_id: str
    description: str
    amount: float
    match_type: MatchType
    confidence: float = Field(..., ge=0, le=1)
    status: MatchStatus
    load_id: Optional[str] = None
    expense_id: Optional[str] = None

class ExplainMatchResponse(BaseModel):
    explanation: str
    root_cause: str
    suggested_action: str
    original_status: MatchStatus
