from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt, field_validator, model_validator
from web3 import Web3

VenueKind = Literal["uniswap_v3", "algebra"]


def _checksum(value: str) -> str:
    if not Web3.is_address(value):
        raise ValueError(f"not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


def _float_to_str(value: Any) -> Any:
    # Decimal(0.1) would carry the binary float error into every calculation.
    if isinstance(value, float):
        return repr(value)
    return value


class TokenConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    address: str
    decimals: int = Field(ge=0, le=36)

    @field_validator("address")
    @classmethod
    def check_address(cls, value: str) -> str:
        return _checksum(value)


class PairConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Polygon PoS mainnet
    base: TokenConfig = Field(
        default_factory=lambda: TokenConfig(
            symbol="WETH", address="0x7ceb23fd6bc0add59e62ac25578270cff1b9f619", decimals=18
        )
    )
    quote: TokenConfig = Field(
        default_factory=lambda: TokenConfig(
            symbol="USDC", address="0x3c499c542cef5e3811e1192ce70d8cc03d5c3359", decimals=6
        )
    )

    @model_validator(mode="after")
    def distinct_tokens(self) -> "PairConfig":
        if self.base.address == self.quote.address:
            raise ValueError("base and quote tokens must differ")
        return self


class VenueConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    kind: VenueKind
    quoter_address: str
    fee: int = Field(default=500, ge=0, lt=2**24, description="Uniswap v3 fee tier (uint24); ignored by Algebra")

    @field_validator("quoter_address")
    @classmethod
    def check_address(cls, value: str) -> str:
        return _checksum(value)


def default_venues() -> list[VenueConfig]:
    return [
        VenueConfig(name="uniswap", kind="uniswap_v3", quoter_address="0x61ffe014ba17989e743c5f6cb21bf9697530b21e"),
        VenueConfig(name="quickswap", kind="algebra", quoter_address="0xa15f0d7377b2a0c0c10db057f641bed21028fc89"),
    ]


class RpcConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str = Field(default="https://polygon-rpc.com", min_length=1)
    timeout_sec: PositiveFloat = Field(default=10.0)
    max_retries: PositiveInt = Field(default=3)


class LoggingConfig(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    level: str = Field(default="INFO")
    json_format: bool = Field(default=False, alias="json")
    directory: str = Field(default="logs")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    rpc: RpcConfig = Field(default_factory=RpcConfig)
    pair: PairConfig = Field(default_factory=PairConfig)
    venues: list[VenueConfig] = Field(default_factory=default_venues, min_length=2, max_length=2)
    trade_size: Decimal = Field(default=Decimal("10000"), gt=0, description="Round-trip size in quote currency")
    probe_amount: Decimal = Field(default=Decimal("1"), gt=0, description="Base amount quoted on each venue")
    gas_cost: Decimal = Field(default=Decimal("0.01"), ge=0, description="Fixed cost of one round trip in quote currency")
    profit_threshold: Decimal = Field(default=Decimal("0.1"), ge=0)
    poll_interval_sec: PositiveFloat = Field(default=5.0)
    sink_path: str = Field(default="profit.txt", min_length=1)
    check_block_on_start: bool = True
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("trade_size", "probe_amount", "gas_cost", "profit_threshold", mode="before")
    @classmethod
    def decimal_from_float(cls, value: Any) -> Any:
        return _float_to_str(value)

    @model_validator(mode="after")
    def distinct_venues(self) -> "Settings":
        names = [venue.name for venue in self.venues]
        if len(set(names)) != len(names):
            raise ValueError(f"venue names must be unique: {names}")
        return self
