"""
Currency conversion and formatting.

Rates are expressed against AED (1 AED = rate units of the target currency).
Rows in the exchange_rates table override the built-in defaults.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

import httpx
from sqlalchemy.orm import Session

from ..config import EXCHANGE_RATES_URL
from ..models import ExchangeRate
from ..shared.utils import utcnow

logger = logging.getLogger(__name__)

BASE_CURRENCY = "AED"
DEFAULT_CURRENCY = "USD"

CURRENCIES = {
    "USD": {"symbol": "$", "name": "US Dollar", "decimals": 2},
    "EUR": {"symbol": "€", "name": "Euro", "decimals": 2},
    "GBP": {"symbol": "£", "name": "British Pound", "decimals": 2},
    "AUD": {"symbol": "A$", "name": "Australian Dollar", "decimals": 2},
    "CAD": {"symbol": "C$", "name": "Canadian Dollar", "decimals": 2},
    "CHF": {"symbol": "CHF", "name": "Swiss Franc", "decimals": 2},
    "AED": {"symbol": "AED", "name": "UAE Dirham", "decimals": 2},
    "SAR": {"symbol": "SAR", "name": "Saudi Riyal", "decimals": 2},
    "SGD": {"symbol": "S$", "name": "Singapore Dollar", "decimals": 2},
    "INR": {"symbol": "₹", "name": "Indian Rupee", "decimals": 2},
    "JPY": {"symbol": "¥", "name": "Japanese Yen", "decimals": 0},
}

# Symbol goes after the amount for these
SUFFIX_SYMBOL_CURRENCIES = {"EUR", "CHF"}

DEFAULT_RATES = {
    "AED": Decimal("1.0"),
    "USD": Decimal("0.27"),
    "EUR": Decimal("0.25"),
    "GBP": Decimal("0.22"),
    "AUD": Decimal("0.41"),
    "CAD": Decimal("0.37"),
    "CHF": Decimal("0.24"),
    "SAR": Decimal("1.02"),
    "SGD": Decimal("0.37"),
    "INR": Decimal("22.65"),
    "JPY": Decimal("40.74"),
}

EUROZONE = {
    "AT", "BE", "CY", "DE", "EE", "ES", "FI", "FR", "GR", "HR", "IE", "IT",
    "LT", "LU", "LV", "MT", "NL", "PT", "SI", "SK",
}

COUNTRY_CURRENCY = {
    **{code: "EUR" for code in EUROZONE},
    "US": "USD", "PR": "USD", "EC": "USD", "SV": "USD", "PA": "USD",
    "GB": "GBP", "UK": "GBP", "IM": "GBP", "JE": "GBP", "GG": "GBP",
    "AE": "AED",
    "SA": "SAR",
    "AU": "AUD", "NZ": "AUD",
    "CA": "CAD",
    "CH": "CHF", "LI": "CHF",
    "SG": "SGD",
    "IN": "INR",
    "JP": "JPY",
}


class UnsupportedCurrencyError(ValueError):
    pass


def is_supported(currency: Optional[str]) -> bool:
    return bool(currency) and currency.upper() in CURRENCIES


def _check(currency: str) -> str:
    code = (currency or "").upper()
    if code not in CURRENCIES:
        raise UnsupportedCurrencyError(f"Unsupported currency: {currency}")
    return code


def load_rates(db: Optional[Session] = None) -> dict[str, Decimal]:
    """Default rates overlaid with stored ones"""
    rates = dict(DEFAULT_RATES)
    if db is None:
        return rates
    for row in db.query(ExchangeRate).all():
        if row.currency in CURRENCIES and row.rate and row.rate > 0:
            rates[row.currency] = Decimal(str(row.rate))
    return rates


def round_for(currency: str, amount: Decimal) -> Decimal:
    decimals = CURRENCIES[currency]["decimals"]
    quantum = Decimal(1).scaleb(-decimals)
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


def convert(amount, from_currency: str, to_currency: str, rates: Optional[dict] = None) -> dict:
    """
    Convert through AED. Returns the rounded amount and the effective rate (6 dp).
    """
    source = _check(from_currency)
    target = _check(to_currency)
    rates = rates or DEFAULT_RATES
    value = Decimal(str(amount))

    if source == target:
        return {"amount": round_for(target, value), "rate": Decimal("1.000000")}

    rate = rates[target] / rates[source]
    converted = round_for(target, value * rate)
    return {"amount": converted, "rate": rate.quantize(Decimal("0.000001"), rounding=ROUND_HALF_UP)}


def format_amount(amount, currency: str) -> str:
    code = _check(currency)
    decimals = CURRENCIES[code]["decimals"]
    value = round_for(code, Decimal(str(amount)))
    return f"{value:,.{decimals}f}"


def format_with_symbol(amount, currency: str) -> str:
    code = _check(currency)
    symbol = CURRENCIES[code]["symbol"]
    formatted = format_amount(amount, code)
    if code in SUFFIX_SYMBOL_CURRENCIES:
        return f"{formatted} {symbol}"
    if len(symbol) > 1 and symbol.isalpha():
        return f"{symbol} {formatted}"
    return f"{symbol}{formatted}"


def to_smallest_unit(amount, currency: str) -> int:
    """Amount in minor units (cents); JPY has none"""
    code = _check(currency)
    decimals = CURRENCIES[code]["decimals"]
    return int(round_for(code, Decimal(str(amount))).scaleb(decimals))


def from_smallest_unit(units: int, currency: str) -> Decimal:
    code = _check(currency)
    return round_for(code, Decimal(units).scaleb(-CURRENCIES[code]["decimals"]))


def detect_currency(accept_language: Optional[str]) -> str:
    """
    Guess a currency from the first Accept-Language tag carrying a region,
    e.g. "en-GB,en;q=0.9" -> GBP. Falls back to USD.
    """
    if not accept_language:
        return DEFAULT_CURRENCY

    for part in accept_language.split(","):
        tag = part.split(";")[0].strip()
        pieces = tag.replace("_", "-").split("-")
        if len(pieces) >= 2:
            region = pieces[-1].upper()
            if region in COUNTRY_CURRENCY:
                return COUNTRY_CURRENCY[region]
    return DEFAULT_CURRENCY


async def refresh_exchange_rates(db: Session) -> int:
    """Fetch AED based rates and upsert the supported ones. Returns rows written"""
    async with httpx.AsyncClient(timeout=15) as client:
        response = await client.get(EXCHANGE_RATES_URL)
        response.raise_for_status()
        payload = response.json()

    fetched = payload.get("rates") or {}
    written = 0
    for code in CURRENCIES:
        value = fetched.get(code)
        if not value:
            continue
        row = db.query(ExchangeRate).filter(ExchangeRate.currency == code).first()
        if row is None:
            row = ExchangeRate(currency=code)
            db.add(row)
        row.rate = Decimal(str(value))
        row.updated_at = utcnow()
        written += 1

    db.commit()
    logger.info(f"✅ Refreshed {written} exchange rates")
    return written
