from __future__ import annotations


class QuoteServiceError(Exception):
    """Base error for the quote facade."""


class ProviderError(QuoteServiceError):
    def __init__(self, provider: str, symbol: str, reason: str) -> None:
        super().__init__(f"{provider} failed for {symbol}: {reason}")
        self.provider = provider
        self.symbol = symbol
        self.reason = reason


class ResolutionExhausted(QuoteServiceError):
    """Synthetic fallback failed; nothing left to serve the symbol with."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"RESOLUTION_EXHAUSTED:{symbol}")
        self.symbol = symbol


class QuoteRequestValidationError(QuoteServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
