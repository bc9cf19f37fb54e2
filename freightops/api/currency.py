from fastapi import APIRouter
from datetime import date
from typing import List
from freightops.core.currency import currency_service, format_currency, SUPPORTED_CURRENCIES
from freightops.schemas.currency import (
    MultiCurrencyAmount, InvoiceConversionRequest, InvoiceConversion, MultiCurrencyTotalsRequest,
    MultiCurrencyTotals
)

router = APIRouter(prefix="/currency", tags=["currency"])


@router.get("/supported", response_model=List[str])
async def supported_currencies():
    return SUPPORTED_CURRENCIES


@router.get("/rate")
async def exchange_rate(from_currency: str, to_currency: str):
    return {
        "from": from_currency.upper(),
        "to": to_currency.upper(),
        "rate": currency_service.get_exchange_rate(from_currency, to_currency)
    }


@router.get("/convert", response_model=MultiCurrencyAmount)
async def convert(amount: float, from_currency: str, to_currency: str):
    return currency_service.convert(amount, from_currency, to_currency)


@router.post("/invoice-conversion", response_model=InvoiceConversion)
async def convert_invoice(request: InvoiceConversionRequest):
    return currency_service.convert_invoice_amounts(request.amount, request.currency, request.target_currencies)


@router.post("/totals", response_model=MultiCurrencyTotals)
async def multi_currency_totals(request: MultiCurrencyTotalsRequest):
    return currency_service.multi_currency_totals(request.transactions)


@router.get("/format")
async def format_amount(amount: float, currency: str):
    return {"formatted": format_currency(amount, currency.upper())}


@router.get("/historical-rate")
async def historical_rate(on: date, from_currency: str, to_currency: str):
    return {
        "from": from_currency.upper(),
        "to": to_currency.upper(),
        "date": on,
        "rate": currency_service.get_historical_rate(on, from_currency, to_currency)
    }
