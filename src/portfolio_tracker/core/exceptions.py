"""Application-level exceptions."""


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class InsufficientSharesError(AppError):
    """Raised when attempting to sell more shares than owned."""

    def __init__(self, symbol: str, requested: str, available: str):
        self.symbol = symbol
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient shares of {symbol}: requested {requested}, available {available}",
            code="INSUFFICIENT_SHARES",
        )


class HoldingNotEmptyError(AppError):
    """Raised when deleting a holding that still has transactions."""

    def __init__(self, holding_id: str, transaction_count: int):
        self.holding_id = holding_id
        self.transaction_count = transaction_count
        super().__init__(
            f"Holding {holding_id} has {transaction_count} transaction(s) and cannot be deleted",
            code="HOLDING_NOT_EMPTY",
        )


class PersistenceConflictError(AppError):
    """Raised when a concurrent write changed a row since it was read."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            f"Concurrent modification of {resource} {identifier}",
            code="PERSISTENCE_CONFLICT",
        )


class QuoteUnavailableError(AppError):
    """Raised when no quote (fresh or stale) can be supplied for a symbol."""

    def __init__(self, symbol: str, reason: str = "no data"):
        self.symbol = symbol
        self.reason = reason
        super().__init__(
            f"Quote unavailable for {symbol}: {reason}",
            code="QUOTE_UNAVAILABLE",
        )


# Quote source errors. Raised by providers and handled by the quote cache.


class ProviderError(AppError):
    """Base class for failures reported by an external quote source."""

    code = "PROVIDER_ERROR"
    retryable = False

    def __init__(self, provider: str, symbol: str, detail: str = ""):
        self.provider = provider
        self.symbol = symbol
        message = f"{provider} failed for {symbol}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message, code=type(self).code)


class RateLimitedError(ProviderError):
    """Provider rejected the request because of its rate limit."""

    code = "PROVIDER_RATE_LIMITED"
    retryable = True


class SymbolNotFoundError(ProviderError):
    """Provider has no data for the symbol."""

    code = "PROVIDER_NOT_FOUND"


class ProviderUnavailableError(ProviderError):
    """Provider could not be reached or returned a server error."""

    code = "PROVIDER_UNAVAILABLE"
    retryable = True


class MalformedResponseError(ProviderError):
    """Provider answered with a payload that could not be interpreted."""

    code = "PROVIDER_MALFORMED_RESPONSE"
