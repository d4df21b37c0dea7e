from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Protocol

from dex_arbitrage.core.exceptions import SinkError
from dex_arbitrage.services.schemas import Opportunity, Rate, RoundTripResult, format_decimal

log = logging.getLogger(__name__)


class Sink(Protocol):
    def append(self, line: str) -> None:
        ...


class FileSink:
    """Append-only text file, opened per write."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, line: str) -> None:
        if not line.endswith("\n"):
            line += "\n"
        try:
            with self._path.open("a", encoding="utf-8") as fp:
                fp.write(line)
        except OSError as exc:
            raise SinkError(f"Failed to write to {self._path}: {exc}") from exc


class OpportunityReporter:
    def __init__(self, sink: Sink) -> None:
        self._sink = sink

    def report(
        self,
        result: RoundTripResult,
        rates: tuple[Rate, Rate],
        threshold: Decimal,
        timestamp_ms: int | None = None,
    ) -> Opportunity | None:
        if not result.net_profit > threshold:
            return None

        rate_a, rate_b = rates
        best = result.best
        opportunity = Opportunity(
            timestamp_ms=timestamp_ms if timestamp_ms is not None else int(time.time() * 1000),
            direction=best.direction,
            buy_venue=best.buy_venue,
            sell_venue=best.sell_venue,
            trade_size=result.trade_size,
            base_amount=best.base_amount,
            quote_back=best.quote_back,
            gross_profit=best.gross_profit,
            gas_cost=best.gas_cost,
            net_profit=best.net_profit,
            rate_a=rate_a,
            rate_b=rate_b,
        )
        line = format_opportunity(opportunity)
        self._sink.append(line)
        log.info("Opportunity recorded: %s net=%s", best.label, opportunity.net_profit)
        return opportunity


def format_opportunity(opportunity: Opportunity) -> str:
    quote_token = opportunity.rate_a.quote.token_out
    base_token = opportunity.rate_a.quote.token_in
    qd = quote_token.decimals
    stamp = datetime.fromtimestamp(opportunity.timestamp_ms / 1000, tz=timezone.utc).isoformat(timespec="milliseconds")
    venues = " | ".join(
        f"{rate.venue}_out={rate.quote.amount_out.format()} {quote_token.symbol}"
        f" ({format_decimal(rate.value, qd)} {quote_token.symbol}/{base_token.symbol})"
        for rate in (opportunity.rate_a, opportunity.rate_b)
    )
    return (
        f"{stamp} ARB ({opportunity.buy_venue} BUY -> {opportunity.sell_venue} SELL): "
        f"net={format_decimal(opportunity.net_profit, qd)} {quote_token.symbol} | "
        f"start={opportunity.trade_size.format()} {quote_token.symbol} | "
        f"{base_token.symbol.lower()}_bought={format_decimal(opportunity.base_amount, base_token.decimals)} | "
        f"{quote_token.symbol.lower()}_back={format_decimal(opportunity.quote_back, qd)} | "
        f"gas={format_decimal(opportunity.gas_cost, qd)} | "
        f"{venues}\n"
    )


def format_status(result: RoundTripResult, rates: tuple[Rate, Rate]) -> str:
    """One-line cycle summary for the console; never persisted to the sink."""
    quote_token = rates[0].quote.token_out
    base_token = rates[0].quote.token_in
    qd = quote_token.decimals
    prices = " | ".join(
        f"{rate.venue}: {format_decimal(rate.value, qd)} {quote_token.symbol}/{base_token.symbol}" for rate in rates
    )
    paths = " | ".join(
        f"{path.label}: net {format_decimal(path.net_profit, qd)}" for path in (result.path_1, result.path_2)
    )
    return f"{prices} || {paths} || best: {result.best.label}"
