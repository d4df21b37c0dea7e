from __future__ import annotations

import logging
from typing import Protocol

from eth_abi.exceptions import DecodingError
from web3 import Web3

from dex_arbitrage.core.exceptions import (
    PermanentQuoteError,
    RpcResponseError,
    RpcTransportError,
    TransientQuoteError,
)
from dex_arbitrage.services.schemas import Token, TokenAmount


class RpcCaller(Protocol):
    async def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        ...


class QuoteSource(Protocol):
    name: str

    async def quote(self, amount_in: TokenAmount, token_in: Token, token_out: Token) -> TokenAmount:
        ...


def function_selector(signature: str) -> bytes:
    return bytes(Web3.keccak(text=signature)[:4])


class BaseQuoter:
    """Shared plumbing for quoter contracts answering ``quoteExactInputSingle``.

    Subclasses only know their calldata layout and how to read ``amountOut``
    back; validation, the ``eth_call`` itself and the mapping of failures to
    transient/permanent quote errors live here.
    """

    kind: str

    def __init__(self, name: str, rpc: RpcCaller, quoter_address: str) -> None:
        self.name = name
        self._rpc = rpc
        self._quoter_address = quoter_address
        self._log = logging.getLogger(f"dex_arbitrage.quoters.{name}")

    @property
    def quoter_address(self) -> str:
        return self._quoter_address

    async def quote(self, amount_in: TokenAmount, token_in: Token, token_out: Token) -> TokenAmount:
        if amount_in.magnitude <= 0:
            raise PermanentQuoteError(self.name, "input amount must be positive")
        if token_in.address.lower() == token_out.address.lower():
            raise PermanentQuoteError(self.name, f"cannot quote {token_in.symbol} against itself")
        if amount_in.exponent != token_in.decimals:
            raise PermanentQuoteError(
                self.name,
                f"amount has exponent {amount_in.exponent}, {token_in.symbol} has {token_in.decimals} decimals",
            )

        calldata = self._encode_call(token_in.address, token_out.address, amount_in.magnitude)
        try:
            raw = await self._rpc.eth_call(self._quoter_address, calldata)
        except RpcTransportError as exc:
            self._log.warning("Quote %s->%s failed (transient): %s", token_in.symbol, token_out.symbol, exc)
            raise TransientQuoteError(self.name, str(exc)) from exc
        except RpcResponseError as exc:
            self._log.error("Quote %s->%s rejected: %s", token_in.symbol, token_out.symbol, exc)
            raise PermanentQuoteError(self.name, str(exc)) from exc

        try:
            amount_out = self._decode_amount_out(raw)
        except DecodingError as exc:
            self._log.error("Malformed quoter response (%d bytes): %s", len(raw), exc)
            raise PermanentQuoteError(self.name, f"malformed quoter response: {exc}") from exc

        if amount_out <= 0:
            raise PermanentQuoteError(self.name, f"zero output for {amount_in.format()} {token_in.symbol}")

        self._log.debug(
            "Quoted %s %s -> %d %s units", amount_in.format(), token_in.symbol, amount_out, token_out.symbol
        )
        return TokenAmount(magnitude=amount_out, exponent=token_out.decimals)

    def _encode_call(self, token_in: str, token_out: str, amount_in: int) -> bytes:
        raise NotImplementedError

    def _decode_amount_out(self, raw: bytes) -> int:
        raise NotImplementedError
