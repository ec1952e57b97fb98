"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth
  2xxx: Business rules (escrow, offers, trades, disputes)
  3xxx: Input validation
  9xxx: System

Business-rule failures are never transient: the request layer returns them
verbatim and nothing in the core retries them.
"""

from decimal import Decimal


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Account is disabled", 403)


class InvalidApiKeyError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid API key", 401)


# --- 2xxx: Business rules ---

class NotFoundError(AppError):
    def __init__(self, entity: str, entity_id: object, detail: str | None = None) -> None:
        message = detail or f"{entity} not found: {entity_id}"
        super().__init__(2001, message, 404)


class ForbiddenError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2002, f"Forbidden: {detail}", 403)


class InvalidStateError(AppError):
    def __init__(self, entity: str, entity_id: object, status: str, action: str) -> None:
        super().__init__(
            2003, f"{entity} {entity_id} in status {status} cannot {action}", 422
        )


class InsufficientFundsError(AppError):
    def __init__(self, required: Decimal, available: Decimal, detail: str = "available") -> None:
        shortfall = required - available
        super().__init__(
            2004,
            f"Insufficient funds: required {required}, {detail} {available}, "
            f"shortfall {shortfall}",
            422,
        )
        self.shortfall = shortfall


class InsufficientRemainingError(AppError):
    def __init__(self, offer_id: int, requested: Decimal, remaining: Decimal) -> None:
        shortfall = requested - remaining
        super().__init__(
            2005,
            f"Offer {offer_id} has insufficient remaining amount: requested {requested}, "
            f"remaining {remaining}, shortfall {shortfall}",
            422,
        )
        self.shortfall = shortfall


class ConflictError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2006, f"Conflict: {detail}", 409)


class WindowExpiredError(AppError):
    def __init__(self, window_minutes: int, elapsed_minutes: float) -> None:
        super().__init__(
            2007,
            f"Dispute window of {window_minutes} minutes after payment has expired "
            f"({elapsed_minutes:.1f} minutes elapsed)",
            422,
        )


# --- 3xxx: Input validation ---

class InputValidationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3001, f"Validation failed: {detail}", 400)


class InvalidPeriodError(AppError):
    def __init__(self, period_code: object) -> None:
        super().__init__(
            3002,
            f"Invalid holding period: {period_code!r}. Use whole months such as "
            '"1M", "6M" or "36M"',
            400,
        )


# --- 9xxx: System ---

class RateLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(9001, "Rate limit exceeded", 429)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class StorageError(AppError):
    def __init__(self, detail: str = "storage failure") -> None:
        super().__init__(9003, f"Storage error: {detail}", 503)
