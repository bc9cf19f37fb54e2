from datetime import date, datetime, timedelta
from typing import List, Optional, Iterable, Tuple
import logging
from freightops.core.config import settings
from freightops.core.exceptions import NotFoundError
from freightops.db.memory import tenant_state
from freightops.schemas.banking import (
    BankConnection, BankConnectionRequest, BankTransaction, BankTransactionOut, Load, Expense,
    ExpenseCategory, TransactionMatch, TransactionType, MatchType, MatchStatus, MatchReview
)

# AUTHORITATIVE MATCHING ENGINE – DO NOT DUPLICATE
# Single source of truth for pairing bank feed lines with loads and expenses.

logger = logging.getLogger(__name__)

FUEL_KEYWORDS = ['fuel', 'gas', 'diesel', 'pilot', 'loves', 'ta travel', 'flying j', 'shell', 'exxon', 'bp']
MAINTENANCE_KEYWORDS = ['repair', 'maintenance', 'tire', 'parts', 'service', 'garage', 'mechanic']
DRIVER_PAY_KEYWORDS = ['payroll', 'salary', 'driver pay', 'wage']

# (keywords, match type, expense category, synthetic id prefix, base confidence)
EXPENSE_RULES = [
    (FUEL_KEYWORDS, MatchType.FUEL_EXPENSE, ExpenseCategory.FUEL, "fuel", 0.7),
    (MAINTENANCE_KEYWORDS, MatchType.MAINTENANCE, ExpenseCategory.MAINTENANCE, "maint", 0.6),
    (DRIVER_PAY_KEYWORDS, MatchType.DRIVER_PAY, ExpenseCategory.DRIVER_PAY, "pay", 0.8),
]

RECORDED_EXPENSE_BONUS = 0.2


def _relative_difference(amount: float, expected: float) -> float:
    return abs(abs(amount) - expected) / expected


def _within_days(a: date, b: date, days: int) -> bool:
    return abs((a - b).days) <= days


def score_load(tx: BankTransaction, load: Load) -> float:
    """Confidence that a credit is the payment for a load."""
    score = 0.0

    diff = _relative_difference(tx.amount, load.rate)
    if diff < settings.AMOUNT_TOLERANCE_TIGHT:
        score += 0.4
    elif diff < settings.AMOUNT_TOLERANCE_LOOSE:
        score += 0.2

    if load.customer_name and load.customer_name.lower() in tx.description.lower():
        score += 0.3

    if load.load_number and load.load_number in tx.description:
        score += 0.3

    if load.delivery_date and _within_days(tx.date, load.delivery_date, settings.DATE_PROXIMITY_DAYS):
        score += 0.2

    return round(min(score, 1.0), 4)


def find_load_match(tx: BankTransaction, loads: Iterable[Load]) -> Optional[Tuple[Load, float]]:
    best = None
    for load in loads:
        score = score_load(tx, load)
        if score > settings.LOAD_MATCH_MIN_SCORE and (best is None or score > best[1]):
            best = (load, score)
    return best


def classify_expense(tx: BankTransaction):
    """Returns the first expense rule whose keywords appear in the transaction text."""
    text = tx.description.lower()
    if tx.merchant_name:
        text = f"{text} {tx.merchant_name.lower()}"
    for rule in EXPENSE_RULES:
        if any(keyword in text for keyword in rule[0]):
            return rule
    return None


def find_expense_match(tx: BankTransaction, expenses: Iterable[Expense]) -> Optional[Tuple[MatchType, str, float]]:
    rule = classify_expense(tx)
    if rule is None:
        return None
    _, match_type, category, prefix, confidence = rule

    for expense in expenses:
        if expense.category != category:
            continue
        if _relative_difference(tx.amount, expense.amount) >= settings.AMOUNT_TOLERANCE_TIGHT:
            continue
        if expense.expense_date and not _within_days(tx.date, expense.expense_date, settings.DATE_PROXIMITY_DAYS):
            continue
        return match_type, expense.id, round(min(confidence + RECORDED_EXPENSE_BONUS, 1.0), 4)

    return match_type, f"{prefix}-{tx.id}", confidence


def _status_for(confidence: float) -> MatchStatus:
    return MatchStatus.CONFIRMED if confidence > settings.MATCH_CONFIRM_THRESHOLD else MatchStatus.SUGGESTED


def match_transaction(tx: BankTransaction, loads: List[Load], expenses: List[Expense]) -> Optional[TransactionMatch]:
    if tx.transaction_type == TransactionType.CREDIT:
        found = find_load_match(tx, loads)
        if found:
            load, confidence = found
            return TransactionMatch(
                bank_transaction_id=tx.id,
                load_id=load.id,
                match_type=MatchType.LOAD_PAYMENT,
                confidence=confidence,
                status=_status_for(confidence)
            )
        return None

    found = find_expense_match(tx, expenses)
    if found:
        match_type, expense_id, confidence = found
        return TransactionMatch(
            bank_transaction_id=tx.id,
            expense_id=expense_id,
            match_type=match_type,
            confidence=confidence,
            status=_status_for(confidence)
        )
    return None


# --- Tenant operations -------------------------------------------------------

def connect_bank(tenant_id: str, request: BankConnectionRequest) -> BankConnection:
    connection = BankConnection(tenant_id=tenant_id, **request.model_dump())
    tenant_state(tenant_id)["connection"] = connection
    logger.info(f"Bank connected for tenant: {tenant_id} ({connection.institution_name})")
    return connection


def get_connection(tenant_id: str) -> Optional[BankConnection]:
    return tenant_state(tenant_id)["connection"]


def disconnect_bank(tenant_id: str):
    state = tenant_state(tenant_id)
    state["connection"] = None
    state["transactions"].clear()
    state["matches"].clear()
    logger.info(f"Bank disconnected for tenant: {tenant_id}")


def default_window(today: Optional[date] = None) -> Tuple[date, date]:
    end = today or datetime.utcnow().date()
    return end - timedelta(days=settings.TRANSACTION_LOOKBACK_DAYS), end


def ingest_transactions(tenant_id: str, transactions: List[BankTransaction],
                        start_date: Optional[date] = None, end_date: Optional[date] = None) -> List[BankTransaction]:
    """Stores feed lines inside the window; returns the ones kept."""
    state = tenant_state(tenant_id)
    if state["connection"] is None:
        raise NotFoundError("No bank connection found for company")

    kept = []
    for tx in transactions:
        if start_date and tx.date < start_date:
            continue
        if end_date and tx.date > end_date:
            continue
        state["transactions"][tx.id] = tx
        kept.append(tx)

    logger.info(f"Ingested {len(kept)} of {len(transactions)} transactions for tenant: {tenant_id}")
    return kept


def register_loads(tenant_id: str, loads: List[Load]) -> int:
    store = tenant_state(tenant_id)["loads"]
    for load in loads:
        store[load.id] = load
    return len(store)


def register_expenses(tenant_id: str, expenses: List[Expense]) -> int:
    store = tenant_state(tenant_id)["expenses"]
    for expense in expenses:
        store[expense.id] = expense
    return len(store)


def match_transactions(tenant_id: str) -> List[TransactionMatch]:
    """
    Runs the matcher over every stored transaction that has no match record yet.
    Rejected suggestions keep their record so they are not suggested again.
    """
    state = tenant_state(tenant_id)
    existing: List[TransactionMatch] = state["matches"]
    seen = {m.bank_transaction_id for m in existing}
    claimed_loads = {m.load_id for m in existing if m.load_id and m.status != MatchStatus.REJECTED}
    expenses = list(state["expenses"].values())

    new_matches = []
    for tx in state["transactions"].values():
        if tx.id in seen:
            continue
        loads = [l for l in state["loads"].values() if l.id not in claimed_loads]
        match = match_transaction(tx, loads, expenses)
        if match is None:
            continue
        if match.load_id:
            claimed_loads.add(match.load_id)
        new_matches.append(match)

    existing.extend(new_matches)
    logger.info(f"Matching COMPLETED for tenant: {tenant_id}. New matches: {len(new_matches)}")
    return new_matches


def review_matches(tenant_id: str) -> MatchReview:
    state = tenant_state(tenant_id)
    transactions = list(state["transactions"].values())
    matches = list(state["matches"])
    settled = {m.bank_transaction_id for m in matches if m.status != MatchStatus.REJECTED}
    return MatchReview(
        transactions=[BankTransactionOut.from_transaction(tx) for tx in transactions],
        matches=matches,
        unmatched=[BankTransactionOut.from_transaction(tx) for tx in transactions if tx.id not in settled]
    )


def update_match_status(tenant_id: str, bank_transaction_id: str, status: MatchStatus) -> TransactionMatch:
    for match in tenant_state(tenant_id)["matches"]:
        if match.bank_transaction_id == bank_transaction_id:
            match.status = status
            if status == MatchStatus.CONFIRMED:
                match.verified_at = datetime.utcnow()
            return match
    raise NotFoundError(f"No match found for transaction {bank_transaction_id}")
