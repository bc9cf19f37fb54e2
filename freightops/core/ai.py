from openai import OpenAI, OpenAIError
import json
import logging
from freightops.schemas.explanation import ExplainMatchRequest, ExplainMatchResponse
from freightops.core.config import settings

logger = logging.getLogger(__name__)

# Without an API key the endpoint answers with the fallback response
client = OpenAI(api_key=settings.OPENAI_API_KEY) if settings.OPENAI_API_KEY else None
if client is None:
    logger.warning("OpenAI client not configured. Match explanations will respond with fallback.")

SYSTEM_PROMPT = """
You are a read-only bookkeeping analyst for a trucking company's back office.
Your goal is to explain why a bank transaction was paired with a load payment or an
operating expense (fuel, maintenance, driver pay) based strictly on the provided data.

RULES:
1. DO NOT change the match status.
2. DO NOT perform new calculations or invent numbers.
3. DO NOT give tax or legal advice.
4. Output valid JSON only.

OUTPUT FORMAT:
{
  "explanation": "Plain English explanation...",
  "root_cause": "Category (e.g., Amount Match, Keyword Match, Partial Payment, Timing Difference)",
  "suggested_action": "Action (e.g., Confirm Match, Reject Match, Check Rate Confirmation)"
}
"""

FALLBACK_EXPLANATION = "Automated explanation unavailable. Please review manually."


def generate_match_explanation(request: ExplainMatchRequest) -> ExplainMatchResponse:
    fallback_response = ExplainMatchResponse(
        explanation=FALLBACK_EXPLANATION,
        root_cause="System Limitation",
        suggested_action="Manual Review",
        original_status=request.status
    )

    if not client:
        return fallback_response

    user_content = f"""
    Status: {request.status.value}
    Match type: {request.match_type.value} (confidence {request.confidence:.2f})
    Bank transaction: {request.bank_transaction_id} "{request.description}" amount {request.amount:.2f}
    Linked record: {request.load_id or request.expense_id or "none"}

    Explain this match.
    """

    try:
        response = client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_content}
            ],
            temperature=0.0,
            response_format={"type": "json_object"}
        )

        content = response.choices[0].message.content
        if not content:
            logger.error("AI Generation Failed: empty completion")
            return fallback_response

        data = json.loads(content)
        if not isinstance(data, dict):
            logger.error(f"AI Generation Failed: expected a JSON object, got {type(data).__name__}")
            return fallback_response

        # Status always comes from the request, never from the model
        return ExplainMatchResponse(
            explanation=data.get("explanation", "No explanation provided."),
            root_cause=data.get("root_cause", "Unknown"),
            suggested_action=data.get("suggested_action", "Review"),
            original_status=request.status
        )

    except (OpenAIError, json.JSONDecodeError) as e:
        logger.error(f"AI Generation Failed: {e}")
        return fallback_response
