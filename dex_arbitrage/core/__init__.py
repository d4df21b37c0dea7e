from .exceptions import ArbitrageError
from .http import HttpClientFactory
from .logging import configure_logging
from .rpc import RpcClient

__all__ = ["configure_logging", "HttpClientFactory", "RpcClient", "ArbitrageError"]
