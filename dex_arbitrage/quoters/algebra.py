from __future__ import annotations

from eth_abi import decode, encode

from dex_arbitrage.quoters.base import BaseQuoter, function_selector

QUOTE_EXACT_INPUT_SINGLE = function_selector("quoteExactInputSingle(address,address,uint256,uint160)")


class AlgebraQuoter(BaseQuoter):
    """
    Algebra quoter (QuickSwap v3). One pool per pair with a dynamic fee, so no
    fee tier parameter. Only the leading amountOut word is read; deployments
    differ in what they return after it.
    """
    kind = "algebra"

    def _encode_call(self, token_in: str, token_out: str, amount_in: int) -> bytes:
        return QUOTE_EXACT_INPUT_SINGLE + encode(
            ["address", "address", "uint256", "uint160"], [token_in, token_out, amount_in, 0]
        )

    def _decode_amount_out(self, raw: bytes) -> int:
        (amount_out,) = decode(["uint256"], raw[:32])
        return int(amount_out)
