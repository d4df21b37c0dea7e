from .algebra import AlgebraQuoter
from .base import BaseQuoter, QuoteSource
from .uniswap_v3 import UniswapV3Quoter

__all__ = ["QuoteSource", "BaseQuoter", "UniswapV3Quoter", "AlgebraQuoter"]
