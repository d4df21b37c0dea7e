from __future__ import annotations

from decimal import Decimal

import pytest

from dex_arbitrage.services.normalizer import to_rate
from dex_arbitrage.services.schemas import Quote, Rate, Token, TokenAmount

WETH = Token(symbol="WETH", address="0x7ceb23fd6bc0add59e62ac25578270cff1b9f619", decimals=18)
USDC = Token(symbol="USDC", address="0x3c499c542cef5e3811e1192ce70d8cc03d5c3359", decimals=6)

ONE_WETH = TokenAmount(magnitude=10**18, exponent=18)


def make_quote(venue: str, usdc_per_weth: str, timestamp_ms: int = 1_700_000_000_000) -> Quote:
    out = TokenAmount.from_decimal(Decimal(usdc_per_weth), USDC.decimals)
    return Quote(
        venue=venue,
        token_in=WETH,
        token_out=USDC,
        amount_in=ONE_WETH,
        amount_out=out,
        timestamp_ms=timestamp_ms,
    )


def make_rate(venue: str, usdc_per_weth: str) -> Rate:
    return to_rate(make_quote(venue, usdc_per_weth))


@pytest.fixture
def weth() -> Token:
    return WETH


@pytest.fixture
def usdc() -> Token:
    return USDC
