from decimal import Decimal

import pytest

from app.models import ExchangeRate
from app.services import currency


def test_convert_through_base_currency():
    result = currency.convert(100, "USD", "EUR")

    assert result["amount"] == Decimal("92.59")
    assert result["rate"] == Decimal("0.925926")


def test_convert_same_currency_keeps_amount():
    assert currency.convert("12.345", "usd", "USD") == {"amount": Decimal("12.35"), "rate": Decimal("1.000000")}


def test_convert_rejects_unknown_currency():
    with pytest.raises(currency.UnsupportedCurrencyError):
        currency.convert(10, "USD", "XYZ")


@pytest.mark.parametrize(
    "amount,code,expected",
    [
        (1234.5, "USD", "$1,234.50"),
        (1234.5, "EUR", "1,234.50 €"),
        (1234.5, "AED", "AED 1,234.50"),
        (1234.5, "CHF", "1,234.50 CHF"),
        (1234.5, "JPY", "¥1,235"),
        (0, "GBP", "£0.00"),
    ],
)
def test_format_with_symbol(amount, code, expected):
    assert currency.format_with_symbol(amount, code) == expected


def test_smallest_units():
    assert currency.to_smallest_unit("12.345", "USD") == 1235
    assert currency.to_smallest_unit(1234.5, "JPY") == 1235
    assert currency.from_smallest_unit(1999, "USD") == Decimal("19.99")
    assert currency.from_smallest_unit(500, "JPY") == Decimal("500")


@pytest.mark.parametrize(
    "header,expected",
    [
        ("en-GB,en;q=0.9", "GBP"),
        ("de-DE,de;q=0.8", "EUR"),
        ("fr,en-AE;q=0.5", "AED"),
        ("fr", "USD"),
        (None, "USD"),
    ],
)
def test_detect_currency(header, expected):
    assert currency.detect_currency(header) == expected


def test_stored_rates_override_defaults(db):
    db.add(ExchangeRate(currency="EUR", rate=Decimal("0.26")))
    db.commit()

    rates = currency.load_rates(db)

    assert rates["EUR"] == Decimal("0.26")
    assert rates["USD"] == Decimal("0.27")


# ============================================================================
# ENDPOINTS
# ============================================================================


def test_convert_endpoint(client):
    response = client.get("/api/currency/convert", params={"amount": 100, "from": "usd", "to": "EUR"})

    assert response.status_code == 200
    body = response.json()
    assert body["converted"] == 92.59
    assert body["to"] == "EUR"
    assert body["formatted"] == "92.59 €"


def test_convert_endpoint_rejects_unknown_currency(client):
    response = client.get("/api/currency/convert", params={"amount": 100, "from": "USD", "to": "XYZ"})
    assert response.status_code == 400


def test_rates_endpoint_reports_detected_currency(client):
    response = client.get("/api/currency/rates", headers={"accept-language": "de-DE,de;q=0.9"})

    assert response.status_code == 200
    body = response.json()
    assert body["base"] == "AED"
    assert body["rates"]["AED"] == 1.0
    assert body["detected_currency"] == "EUR"


def test_currency_cookie_is_set_once(client):
    first = client.get("/health", headers={"accept-language": "en-GB"})
    assert "preferred_currency=GBP" in first.headers["set-cookie"]

    # The client now sends the cookie back
    second = client.get("/health", headers={"accept-language": "ja-JP"})
    assert "set-cookie" not in second.headers
