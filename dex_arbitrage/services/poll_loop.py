from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Sequence

from dex_arbitrage.config.models import Settings
from dex_arbitrage.core.exceptions import QuoteError, SinkError, TransientQuoteError
from dex_arbitrage.quoters.base import QuoteSource
from dex_arbitrage.services.arbitrage_engine import ArbitrageEvaluator
from dex_arbitrage.services.normalizer import to_rate
from dex_arbitrage.services.reporter import OpportunityReporter, format_status
from dex_arbitrage.services.schemas import Opportunity, Quote, RoundTripResult, Token, TokenAmount

log = logging.getLogger(__name__)
status_log = logging.getLogger("dex_arbitrage.status")


class LoopState(enum.Enum):
    IDLE = "idle"
    QUOTING = "quoting"
    EVALUATING = "evaluating"
    REPORTING = "reporting"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


class CycleStatus(enum.Enum):
    OK = "ok"
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    SINK_ERROR = "sink_error"


@dataclass(slots=True)
class CycleOutcome:
    status: CycleStatus
    result: RoundTripResult | None = None
    opportunity: Opportunity | None = None
    errors: list[QuoteError] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class LoopParameters:
    base: Token
    quote: Token
    probe_amount: TokenAmount
    trade_size: TokenAmount
    gas_cost: Decimal
    profit_threshold: Decimal
    poll_interval_sec: float

    @classmethod
    def from_settings(cls, settings: Settings) -> LoopParameters:
        base_cfg, quote_cfg = settings.pair.base, settings.pair.quote
        base = Token(symbol=base_cfg.symbol, address=base_cfg.address, decimals=base_cfg.decimals)
        quote = Token(symbol=quote_cfg.symbol, address=quote_cfg.address, decimals=quote_cfg.decimals)
        return cls(
            base=base,
            quote=quote,
            probe_amount=TokenAmount.from_decimal(settings.probe_amount, base.decimals),
            trade_size=TokenAmount.from_decimal(settings.trade_size, quote.decimals),
            gas_cost=settings.gas_cost,
            profit_threshold=settings.profit_threshold,
            poll_interval_sec=settings.poll_interval_sec,
        )


class PollLoop:
    """Fixed-cadence quote → evaluate → report cycle over exactly two venues.

    Each cycle quotes ``probe_amount`` of base for quote currency on both
    venues at once and waits for both answers. Any transient failure abandons
    the cycle, as does a permanent one; neither changes the cadence. Status
    lines go to ``status_output`` on every evaluated cycle; only opportunities
    above the threshold reach the reporter's sink.
    """

    def __init__(
        self,
        sources: Sequence[QuoteSource],
        evaluator: ArbitrageEvaluator,
        reporter: OpportunityReporter,
        params: LoopParameters,
        status_output: Callable[[str], None] | None = None,
    ) -> None:
        if len(sources) != 2:
            raise ValueError(f"PollLoop compares exactly two venues, got {len(sources)}")
        self._sources = tuple(sources)
        self._evaluator = evaluator
        self._reporter = reporter
        self._params = params
        self._status_output = status_output or status_log.info
        self._state = LoopState.IDLE
        self.cycles = 0
        self.opportunities = 0
        self.consecutive_transient_failures = 0

    @property
    def state(self) -> LoopState:
        return self._state

    async def run(self, stop_event: asyncio.Event) -> None:
        names = " vs ".join(source.name for source in self._sources)
        log.info(
            "Polling %s for %s/%s every %.1fs (trade size %s %s, gas %s, threshold %s)",
            names,
            self._params.base.symbol,
            self._params.quote.symbol,
            self._params.poll_interval_sec,
            self._params.trade_size.format(),
            self._params.quote.symbol,
            self._params.gas_cost,
            self._params.profit_threshold,
        )
        try:
            while True:
                self._state = LoopState.IDLE
                if stop_event.is_set():
                    break
                await self.run_cycle()

                self._state = LoopState.SLEEPING
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=self._params.poll_interval_sec)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._state = LoopState.STOPPED
            log.info(
                "Poll loop stopped after %d cycles (%d opportunities)", self.cycles, self.opportunities
            )

    async def run_cycle(self) -> CycleOutcome:
        self.cycles += 1
        self._state = LoopState.QUOTING
        results = await asyncio.gather(
            *(self._fetch_quote(source) for source in self._sources), return_exceptions=True
        )

        for item in results:
            if isinstance(item, BaseException) and not isinstance(item, QuoteError):
                raise item
        errors = [item for item in results if isinstance(item, QuoteError)]
        if errors:
            return self._abandon(errors)
        self.consecutive_transient_failures = 0
        quote_a, quote_b = results  # type: ignore[misc]

        self._state = LoopState.EVALUATING
        rates = (to_rate(quote_a), to_rate(quote_b))
        result = self._evaluator.evaluate(rates[0], rates[1], self._params.trade_size, self._params.gas_cost)

        self._state = LoopState.REPORTING
        self._status_output(format_status(result, rates))
        try:
            opportunity = self._reporter.report(result, rates, self._params.profit_threshold)
        except SinkError as exc:
            log.error("Cycle %d: could not persist opportunity: %s", self.cycles, exc)
            return CycleOutcome(status=CycleStatus.SINK_ERROR, result=result)

        if opportunity is not None:
            self.opportunities += 1
            self._status_output(
                f"ARB DETECTED ({result.best.label}): {opportunity.net_profit:f} {self._params.quote.symbol}"
            )
        return CycleOutcome(status=CycleStatus.OK, result=result, opportunity=opportunity)

    async def _fetch_quote(self, source: QuoteSource) -> Quote:
        amount_out = await source.quote(self._params.probe_amount, self._params.base, self._params.quote)
        return Quote(
            venue=source.name,
            token_in=self._params.base,
            token_out=self._params.quote,
            amount_in=self._params.probe_amount,
            amount_out=amount_out,
            timestamp_ms=int(time.time() * 1000),
        )

    def _abandon(self, errors: list[QuoteError]) -> CycleOutcome:
        details = "; ".join(str(error) for error in errors)
        if any(isinstance(error, TransientQuoteError) for error in errors):
            self.consecutive_transient_failures += 1
            log.warning(
                "Cycle %d skipped, transient quote failure: %s (consecutive: %d)",
                self.cycles,
                details,
                self.consecutive_transient_failures,
            )
            return CycleOutcome(status=CycleStatus.TRANSIENT, errors=errors)

        self.consecutive_transient_failures = 0
        log.error("Cycle %d skipped, quote rejected: %s", self.cycles, details)
        return CycleOutcome(status=CycleStatus.PERMANENT, errors=errors)
