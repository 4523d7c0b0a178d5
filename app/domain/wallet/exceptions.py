"""Wallet errors and their HTTP mapping"""

from decimal import Decimal
from typing import Optional

from fastapi import HTTPException


class WalletError(Exception):
    """Base class for rule violations raised by the wallet ledger"""

    status_code = 409
    code = "wallet_error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_http(self) -> HTTPException:
        detail = {"code": self.code, "message": self.message}
        for key, value in self.details.items():
            detail[key] = float(value) if isinstance(value, Decimal) else value
        return HTTPException(status_code=self.status_code, detail=detail)


class WalletStateError(WalletError):
    """Operation not allowed in the wallet's current state (inactive account, bad amount, ...)"""

    def __init__(self, message: str, code: str = "wallet_state", status_code: int = 409, **details):
        super().__init__(message, **details)
        self.code = code
        self.status_code = status_code


class WalletFrozenError(WalletError):
    status_code = 403
    code = "wallet_frozen"

    def __init__(self, reason: Optional[str] = None):
        super().__init__("Wallet is frozen. Contact support to unfreeze it.", reason=reason)


class InsufficientBalanceError(WalletError):
    status_code = 402
    code = "insufficient_balance"

    def __init__(self, required: Decimal, available: Decimal):
        super().__init__(
            "Insufficient wallet balance",
            required=required,
            available=available,
            shortfall=required - available,
        )


class SpendingLimitExceededError(WalletError):
    status_code = 403
    code = "spending_limit_exceeded"

    def __init__(self, limit_type: str, limit: Decimal, attempted: Decimal, remaining: Decimal):
        super().__init__(
            f"This payment exceeds your {limit_type} spending limit",
            limit_type=limit_type,
            limit=limit,
            attempted=attempted,
            remaining=remaining,
        )
        self.limit_type = limit_type
        self.limit = limit
        self.attempted = attempted
