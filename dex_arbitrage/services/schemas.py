from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Context, Decimal, localcontext

# Enough digits that neither division nor the two-hop round trip rounds in practice.
DECIMAL_CONTEXT = Context(prec=50)


@dataclass(frozen=True, slots=True)
class Token:
    symbol: str
    address: str
    decimals: int


@dataclass(frozen=True, slots=True)
class TokenAmount:
    """Exact on-chain quantity: ``magnitude`` smallest units, ``10**exponent`` of them per whole token."""

    magnitude: int
    exponent: int

    def __post_init__(self) -> None:
        if self.magnitude < 0:
            raise ValueError(f"magnitude must be non-negative, got {self.magnitude}")
        if self.exponent < 0:
            raise ValueError(f"exponent must be non-negative, got {self.exponent}")

    @classmethod
    def from_decimal(cls, value: Decimal, exponent: int) -> TokenAmount:
        with localcontext(DECIMAL_CONTEXT):
            units = (Decimal(value) * Decimal(10) ** exponent).to_integral_value(rounding=ROUND_HALF_UP)
        return cls(magnitude=int(units), exponent=exponent)

    def to_decimal(self) -> Decimal:
        # String construction is exact whatever the context precision.
        return Decimal(f"{self.magnitude}E-{self.exponent}")

    def format(self) -> str:
        return format_decimal(self.to_decimal(), self.exponent)


def format_decimal(value: Decimal, places: int) -> str:
    """Plain notation at most ``places`` fractional digits, trailing zeros trimmed."""
    # Integer digits count against the precision, so a uint256 amount needs more than the default.
    with localcontext(DECIMAL_CONTEXT) as ctx:
        ctx.prec = max(DECIMAL_CONTEXT.prec, value.adjusted() + places + 2)
        quantized = value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    text = f"{quantized:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


@dataclass(frozen=True, slots=True)
class Quote:
    venue: str
    token_in: Token
    token_out: Token
    amount_in: TokenAmount
    amount_out: TokenAmount
    timestamp_ms: int


@dataclass(frozen=True, slots=True)
class Rate:
    """Units of ``quote.token_out`` per unit of ``quote.token_in`` on one venue."""

    venue: str
    value: Decimal
    quote: Quote


class Direction(enum.Enum):
    A_TO_B = "a_to_b"  # buy base on venue A, sell it on venue B
    B_TO_A = "b_to_a"


@dataclass(frozen=True, slots=True)
class PathResult:
    direction: Direction
    buy_venue: str
    sell_venue: str
    base_amount: Decimal
    quote_back: Decimal
    gross_profit: Decimal
    gas_cost: Decimal
    net_profit: Decimal

    @property
    def label(self) -> str:
        return f"{self.buy_venue} BUY -> {self.sell_venue} SELL"


@dataclass(frozen=True, slots=True)
class RoundTripResult:
    trade_size: TokenAmount
    best: PathResult
    path_1: PathResult
    path_2: PathResult

    @property
    def direction(self) -> Direction:
        return self.best.direction

    @property
    def gross_profit(self) -> Decimal:
        return self.best.gross_profit

    @property
    def gas_cost(self) -> Decimal:
        return self.best.gas_cost

    @property
    def net_profit(self) -> Decimal:
        return self.best.net_profit


@dataclass(frozen=True, slots=True)
class Opportunity:
    timestamp_ms: int
    direction: Direction
    buy_venue: str
    sell_venue: str
    trade_size: TokenAmount
    base_amount: Decimal
    quote_back: Decimal
    gross_profit: Decimal
    gas_cost: Decimal
    net_profit: Decimal
    rate_a: Rate
    rate_b: Rate
