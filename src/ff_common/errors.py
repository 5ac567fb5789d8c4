"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Configuration/Auth
  2xxx: Account/Balance
  3xxx: Market
  4xxx: Order/Batch
  5xxx: Exchange transport
"""


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


# --- 1xxx: Configuration/Auth ---

class ConfigurationError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(1001, f"Configuration error: {detail}", 500)


class UnauthorizedError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Unauthorized", 401)


# --- 2xxx: Account/Balance ---

class BalanceUnavailableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2001, f"Could not fetch account balance: {detail}", 502)


# --- 3xxx: Market ---

class MarketNotFoundError(AppError):
    def __init__(self, ticker: str) -> None:
        super().__init__(3001, f"Market not found: {ticker}", 404)


# --- 4xxx: Order/Batch ---

class BatchNotFoundError(AppError):
    def __init__(self, ref: str) -> None:
        super().__init__(4001, f"Batch not found: {ref}", 404)


class InvalidTransitionError(AppError):
    def __init__(self, order_id: str, current: str, target: str) -> None:
        super().__init__(
            4003, f"Order {order_id} cannot move from {current} to {target}", 422
        )


# --- 5xxx: Exchange transport ---

class ExchangeError(AppError):
    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        super().__init__(5001, f"Exchange API error: {status_code} - {detail}", 502)


class ExchangeRateLimitedError(AppError):
    def __init__(self, attempts: int) -> None:
        super().__init__(5002, f"Exchange rate limit: gave up after {attempts} attempts", 503)


class ExchangeResponseError(AppError):
    def __init__(self, endpoint: str, detail: str) -> None:
        super().__init__(5003, f"Malformed exchange response from {endpoint}: {detail}", 502)
