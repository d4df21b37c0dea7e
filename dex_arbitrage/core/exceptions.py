class ArbitrageError(Exception):
    """Base error for the arbitrage monitor."""


class ConfigurationError(ArbitrageError):
    """Raised when settings cannot be loaded or validated."""


class RpcError(ArbitrageError):
    """Raised when a JSON-RPC request fails."""


class RpcTransportError(RpcError):
    """Network, timeout or rate-limit failure; the same request may succeed later."""


class RpcResponseError(RpcError):
    """The node answered with an error object or a malformed envelope."""

    def __init__(self, message: str, code: int | None = None, data: object = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class QuoteError(ArbitrageError):
    """Raised when a venue cannot produce a quote."""

    def __init__(self, venue: str, message: str) -> None:
        super().__init__(f"{venue}: {message}")
        self.venue = venue


class TransientQuoteError(QuoteError):
    """Quote failed for a reason that may clear up by the next cycle."""


class PermanentQuoteError(QuoteError):
    """Quote cannot be produced for this pair/venue; not retried this cycle."""


class SinkError(ArbitrageError):
    """Raised when an opportunity line cannot be persisted."""
