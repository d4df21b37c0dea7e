from __future__ import annotations

from eth_abi import decode, encode

from dex_arbitrage.quoters.base import BaseQuoter, RpcCaller, function_selector

QUOTE_EXACT_INPUT_SINGLE = function_selector(
    "quoteExactInputSingle((address,address,uint256,uint24,uint160))"
)
_RETURN_TYPES = ["uint256", "uint160", "int24", "uint256"]


class UniswapV3Quoter(BaseQuoter):
    """
    Uniswap v3 QuoterV2.
    Params are passed as a single struct; the fee tier selects the pool.
    Returns (amountOut, sqrtPriceX96After, initializedTicksCrossed, gasEstimate).
    """
    kind = "uniswap_v3"

    def __init__(self, name: str, rpc: RpcCaller, quoter_address: str, fee: int = 500) -> None:
        super().__init__(name, rpc, quoter_address)
        self._fee = fee

    @property
    def fee(self) -> int:
        return self._fee

    def _encode_call(self, token_in: str, token_out: str, amount_in: int) -> bytes:
        params = (token_in, token_out, amount_in, self._fee, 0)
        return QUOTE_EXACT_INPUT_SINGLE + encode(["(address,address,uint256,uint24,uint160)"], [params])

    def _decode_amount_out(self, raw: bytes) -> int:
        amount_out, _sqrt_price_after, _ticks_crossed, _gas_estimate = decode(_RETURN_TYPES, raw)
        return int(amount_out)
