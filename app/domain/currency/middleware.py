"""
Currency Cookie Middleware

Remembers a display currency per browser. The first response (or any
response where the cookie holds an unsupported code) sets it from the
Accept-Language region.
"""

import logging
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from ...config import IS_DEVELOPMENT
from ...services.currency import CURRENCIES, detect_currency

logger = logging.getLogger(__name__)

CURRENCY_COOKIE = "preferred_currency"
COOKIE_MAX_AGE = 365 * 24 * 60 * 60


class CurrencyCookieMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        current = request.cookies.get(CURRENCY_COOKIE)
        if current in CURRENCIES:
            return response

        currency = detect_currency(request.headers.get("accept-language"))
        response.set_cookie(
            CURRENCY_COOKIE,
            currency,
            max_age=COOKIE_MAX_AGE,
            path="/",
            samesite="lax",
            secure=not IS_DEVELOPMENT,
        )
        logger.debug(f"💱 Set {CURRENCY_COOKIE}={currency}")
        return response
