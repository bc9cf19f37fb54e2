from fastapi import APIRouter, Body
from freightops.schemas.explanation import ExplainMatchRequest, ExplainMatchResponse
from freightops.core.ai import generate_match_explanation

router = APIRouter()

@router.post("/explain-match", response_model=ExplainMatchResponse)
async def explain_match(request: ExplainMatchRequest = Body(...)):
    """
    Explain why a bank transaction was paired with a load or expense.
    Read-only: the match status is echoed back, never changed.
    """
    return generate_match_explanation(request)
