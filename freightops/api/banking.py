from fastapi import APIRouter, File, UploadFile, HTTPException, Header, Body
from typing import List, Optional
from datetime import date
import csv
import io
import logging
from pydantic import ValidationError
from freightops.core import matching
from freightops.core.exceptions import LimitExceededError, NotFoundError
from freightops.core.subscription import get_tier_config, tenant_tier
from freightops.schemas.banking import (
    BankConnection, BankConnectionRequest, BankTransaction, BankTransactionOut, TransactionIngestRequest,
    Load, Expense, TransactionMatch, MatchStatusUpdate, MatchReview
)

router = APIRouter(prefix="/banking", tags=["banking"])
logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"transaction_id", "account_id", "amount", "date", "name"}


def _enforce_import_limit(tenant_id: str, count: int):
    tier = tenant_tier(tenant_id)
    limit = get_tier_config(tier).transaction_import_limit
    if count > limit:
        raise LimitExceededError(f"Transaction limit exceeded for {tier} plan ({count} > {limit})", status_code=413)


@router.post("/connection", response_model=BankConnection)
async def connect_bank(request: BankConnectionRequest, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return matching.connect_bank(x_tenant_id, request)


@router.get("/connection", response_model=BankConnection)
async def get_connection(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    connection = matching.get_connection(x_tenant_id)
    if connection is None:
        raise NotFoundError("No bank connection found for company")
    return connection


@router.delete("/connection")
async def disconnect_bank(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    matching.disconnect_bank(x_tenant_id)
    return {"status": "disconnected"}


@router.post("/transactions")
async def ingest_transactions(request: TransactionIngestRequest, x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    _enforce_import_limit(x_tenant_id, len(request.transactions))
    start, end = request.start_date, request.end_date
    if start is None and end is None:
        start, end = matching.default_window()
    kept = matching.ingest_transactions(x_tenant_id, request.transactions, start, end)
    return {
        "status": "success",
        "received": len(request.transactions),
        "stored": len(kept),
        "window": {"start_date": start, "end_date": end}
    }


@router.post("/transactions/upload")
async def upload_transactions(
    file: UploadFile = File(...),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    x_tenant_id: str = Header(..., alias="X-Tenant-ID")
):
    if not file.filename.endswith('.csv'):
        raise HTTPException(status_code=400, detail="Invalid file format.")

    content = await file.read()
    try:
        decoded_content = content.decode('utf-8')
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Invalid encoding.")

    csv_reader = csv.DictReader(io.StringIO(decoded_content))
    columns = {c.strip() for c in (csv_reader.fieldnames or []) if c}
    missing = REQUIRED_COLUMNS - columns
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing required columns: {', '.join(sorted(missing))}")

    rows = list(csv_reader)
    _enforce_import_limit(x_tenant_id, len(rows))

    transactions: List[BankTransaction] = []
    for index, row in enumerate(rows):
        clean_row = {k.strip(): (v or "").strip() for k, v in row.items() if k}
        if not clean_row.get("pending"):
            clean_row.pop("pending", None)
        try:
            transactions.append(BankTransaction(**clean_row))
        except ValidationError as e:
            first = e.errors()[0]
            raise HTTPException(status_code=400, detail=f"Row {index + 2}: {first['msg']}")

    kept = matching.ingest_transactions(x_tenant_id, transactions, start_date, end_date)
    logger.info(f"Bank feed upload COMPLETED for tenant: {x_tenant_id}. Count: {len(kept)}")

    return {
        "status": "success",
        "total_transactions": len(kept),
        "transactions": [BankTransactionOut.from_transaction(tx) for tx in kept]
    }


@router.post("/loads")
async def register_loads(loads: List[Load] = Body(...), x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return {"status": "success", "total_loads": matching.register_loads(x_tenant_id, loads)}


@router.post("/expenses")
async def register_expenses(expenses: List[Expense] = Body(...), x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return {"status": "success", "total_expenses": matching.register_expenses(x_tenant_id, expenses)}


@router.post("/match", response_model=List[TransactionMatch])
async def run_matching(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return matching.match_transactions(x_tenant_id)


@router.get("/matches", response_model=MatchReview)
async def review_matches(x_tenant_id: str = Header(..., alias="X-Tenant-ID")):
    return matching.review_matches(x_tenant_id)


@router.patch("/matches/{bank_transaction_id}", response_model=TransactionMatch)
async def update_match_status(
    bank_transaction_id: str,
    update: MatchStatusUpdate,
    x_tenant_id: str = Header(..., alias="X-Tenant-ID")
):
    return matching.update_match_status(x_tenant_id, bank_transaction_id, update.status)
