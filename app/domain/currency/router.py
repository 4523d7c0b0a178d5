"""Currency router - Public exchange rates and conversion"""

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ...database import get_db
from ...services.currency import (
    BASE_CURRENCY,
    CURRENCIES,
    UnsupportedCurrencyError,
    convert,
    detect_currency,
    format_with_symbol,
    load_rates,
)
from .middleware import CURRENCY_COOKIE

router = APIRouter(prefix="/api/currency", tags=["Currency"])


@router.get("/rates")
async def get_rates(request: Request, db: Session = Depends(get_db)):
    """AED based rates with the caller's detected currency"""
    rates = load_rates(db)
    preferred = request.cookies.get(CURRENCY_COOKIE)
    if preferred not in CURRENCIES:
        preferred = detect_currency(request.headers.get("accept-language"))
    return {
        "base": BASE_CURRENCY,
        "rates": {code: float(rate) for code, rate in rates.items()},
        "currencies": CURRENCIES,
        "detected_currency": preferred,
    }


@router.get("/convert")
async def convert_amount(
    amount: Decimal = Query(..., ge=0),
    from_currency: str = Query(..., alias="from"),
    to_currency: str = Query(..., alias="to"),
    db: Session = Depends(get_db),
):
    try:
        result = convert(amount, from_currency, to_currency, load_rates(db))
    except UnsupportedCurrencyError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    target = to_currency.upper()
    return {
        "amount": float(amount),
        "from": from_currency.upper(),
        "to": target,
        "converted": float(result["amount"]),
        "rate": float(result["rate"]),
        "formatted": format_with_symbol(result["amount"], target),
    }
