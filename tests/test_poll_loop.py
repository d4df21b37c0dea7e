from __future__ import annotations

import asyncio
from decimal import Decimal

import pytest
from conftest import ONE_WETH, USDC, WETH

from dex_arbitrage.core.exceptions import PermanentQuoteError, SinkError, TransientQuoteError
from dex_arbitrage.services.arbitrage_engine import ArbitrageEvaluator
from dex_arbitrage.services.poll_loop import CycleStatus, LoopParameters, LoopState, PollLoop
from dex_arbitrage.services.reporter import OpportunityReporter
from dex_arbitrage.services.schemas import Token, TokenAmount


class DummySource:
    def __init__(self, name: str, outcomes: list[object], delay: float = 0.0) -> None:
        self.name = name
        self._outcomes = outcomes
        self._delay = delay
        self.calls = 0
        self.completed = 0

    async def quote(self, amount_in: TokenAmount, token_in: Token, token_out: Token) -> TokenAmount:
        outcome = self._outcomes[min(self.calls, len(self._outcomes) - 1)]
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        self.completed += 1
        if isinstance(outcome, Exception):
            raise outcome
        return TokenAmount.from_decimal(Decimal(str(outcome)), token_out.decimals)


class SpyEvaluator(ArbitrageEvaluator):
    def __init__(self) -> None:
        self.calls = 0

    def evaluate(self, rate_a, rate_b, trade_size, gas_cost):  # type: ignore[no-untyped-def]
        self.calls += 1
        return super().evaluate(rate_a, rate_b, trade_size, gas_cost)


class ListSink:
    def __init__(self, fail: bool = False) -> None:
        self.lines: list[str] = []
        self._fail = fail

    def append(self, line: str) -> None:
        if self._fail:
            raise SinkError("sink unavailable")
        self.lines.append(line)


def _params(interval: float = 0.01, threshold: str = "0.1", gas: str = "0.01") -> LoopParameters:
    return LoopParameters(
        base=WETH,
        quote=USDC,
        probe_amount=ONE_WETH,
        trade_size=TokenAmount.from_decimal(Decimal("10000"), 6),
        gas_cost=Decimal(gas),
        profit_threshold=Decimal(threshold),
        poll_interval_sec=interval,
    )


def _loop(sources, sink=None, params=None):  # type: ignore[no-untyped-def]
    evaluator = SpyEvaluator()
    sink = sink if sink is not None else ListSink()
    status: list[str] = []
    loop = PollLoop(sources, evaluator, OpportunityReporter(sink), params or _params(), status_output=status.append)
    return loop, evaluator, sink, status


@pytest.mark.asyncio
async def test_profitable_cycle_writes_one_line() -> None:
    uni = DummySource("uniswap", ["4470.63"])
    quick = DummySource("quickswap", ["4466.44"])
    loop, evaluator, sink, status = _loop([uni, quick])

    outcome = await loop.run_cycle()

    assert outcome.status is CycleStatus.OK
    assert outcome.opportunity is not None
    assert outcome.opportunity.buy_venue == "quickswap"
    assert evaluator.calls == 1
    assert len(sink.lines) == 1
    assert loop.opportunities == 1
    assert any("uniswap: 4470.63 USDC/WETH" in line for line in status)
    assert loop.state is LoopState.REPORTING


@pytest.mark.asyncio
async def test_transient_failures_skip_cycle_then_resume() -> None:
    uni = DummySource("uniswap", [TransientQuoteError("uniswap", "timeout"), "4470.63"])
    quick = DummySource("quickswap", [TransientQuoteError("quickswap", "connection reset"), "4466.44"])
    loop, evaluator, sink, status = _loop([uni, quick])

    first = await loop.run_cycle()

    assert first.status is CycleStatus.TRANSIENT
    assert len(first.errors) == 2
    assert evaluator.calls == 0
    assert sink.lines == []
    assert status == []
    assert loop.consecutive_transient_failures == 1

    second = await loop.run_cycle()

    assert second.status is CycleStatus.OK
    assert evaluator.calls == 1
    assert len(sink.lines) == 1
    assert loop.consecutive_transient_failures == 0


@pytest.mark.asyncio
async def test_consecutive_transient_failures_are_counted() -> None:
    uni = DummySource("uniswap", [TransientQuoteError("uniswap", "timeout")])
    quick = DummySource("quickswap", ["4466.44"])
    loop, evaluator, sink, _status = _loop([uni, quick])

    for _ in range(3):
        outcome = await loop.run_cycle()
        assert outcome.status is CycleStatus.TRANSIENT

    assert loop.consecutive_transient_failures == 3
    assert evaluator.calls == 0
    assert sink.lines == []


@pytest.mark.asyncio
async def test_permanent_failure_skips_cycle() -> None:
    uni = DummySource("uniswap", ["4470.63"])
    quick = DummySource("quickswap", [PermanentQuoteError("quickswap", "execution reverted")])
    loop, evaluator, sink, _status = _loop([uni, quick])

    outcome = await loop.run_cycle()

    assert outcome.status is CycleStatus.PERMANENT
    assert [error.venue for error in outcome.errors] == ["quickswap"]
    assert evaluator.calls == 0
    assert sink.lines == []
    assert loop.consecutive_transient_failures == 0


@pytest.mark.asyncio
async def test_failure_does_not_cancel_sibling_quote() -> None:
    uni = DummySource("uniswap", [TransientQuoteError("uniswap", "timeout")])
    quick = DummySource("quickswap", ["4466.44"], delay=0.02)
    loop, _evaluator, _sink, _status = _loop([uni, quick])

    await loop.run_cycle()

    assert uni.completed == 1
    assert quick.completed == 1


@pytest.mark.asyncio
async def test_unprofitable_cycle_still_emits_status() -> None:
    uni = DummySource("uniswap", ["4470.00"])
    quick = DummySource("quickswap", ["4470.01"])
    loop, evaluator, sink, status = _loop([uni, quick], params=_params(gas="5"))

    outcome = await loop.run_cycle()

    assert outcome.status is CycleStatus.OK
    assert outcome.opportunity is None
    assert outcome.result is not None
    assert outcome.result.path_1.net_profit < 0
    assert outcome.result.path_2.net_profit < 0
    assert evaluator.calls == 1
    assert sink.lines == []
    assert len(status) == 1


@pytest.mark.asyncio
async def test_sink_failure_ends_cycle_only() -> None:
    uni = DummySource("uniswap", ["4470.63"])
    quick = DummySource("quickswap", ["4466.44"])
    loop, _evaluator, _sink, _status = _loop([uni, quick], sink=ListSink(fail=True))

    first = await loop.run_cycle()
    second = await loop.run_cycle()

    assert first.status is CycleStatus.SINK_ERROR
    assert second.status is CycleStatus.SINK_ERROR
    assert loop.opportunities == 0
    assert loop.cycles == 2


@pytest.mark.asyncio
async def test_unexpected_errors_propagate() -> None:
    uni = DummySource("uniswap", [RuntimeError("bug")])
    quick = DummySource("quickswap", ["4466.44"])
    loop, _evaluator, _sink, _status = _loop([uni, quick])

    with pytest.raises(RuntimeError):
        await loop.run_cycle()


@pytest.mark.asyncio
async def test_run_stops_on_event() -> None:
    uni = DummySource("uniswap", ["4470.00"])
    quick = DummySource("quickswap", ["4470.01"])
    stop_event = asyncio.Event()
    statuses: list[str] = []

    def _status(line: str) -> None:
        statuses.append(line)
        if len(statuses) == 2:
            stop_event.set()

    loop = PollLoop([uni, quick], ArbitrageEvaluator(), OpportunityReporter(ListSink()), _params(), status_output=_status)

    await asyncio.wait_for(loop.run(stop_event), timeout=2)

    assert loop.cycles == 2
    assert loop.state is LoopState.STOPPED


@pytest.mark.asyncio
async def test_run_exits_immediately_when_already_stopped() -> None:
    uni = DummySource("uniswap", ["4470.00"])
    quick = DummySource("quickswap", ["4470.01"])
    stop_event = asyncio.Event()
    stop_event.set()
    loop, _evaluator, _sink, _status = _loop([uni, quick])

    await loop.run(stop_event)

    assert loop.cycles == 0
    assert uni.calls == 0
    assert loop.state is LoopState.STOPPED


def test_requires_exactly_two_sources() -> None:
    with pytest.raises(ValueError):
        PollLoop(
            [DummySource("uniswap", ["1"])],
            ArbitrageEvaluator(),
            OpportunityReporter(ListSink()),
            _params(),
        )


class FixedSource:
    def __init__(self, name: str, amount: TokenAmount) -> None:
        self.name = name
        self._amount = amount

    async def quote(self, amount_in: TokenAmount, token_in: Token, token_out: Token) -> TokenAmount:
        return self._amount


@pytest.mark.asyncio
async def test_cycle_handles_uint256_sized_quotes() -> None:
    uni = FixedSource("uniswap", TokenAmount(2**200, 6))
    quick = FixedSource("quickswap", TokenAmount(2**201, 6))
    loop, evaluator, sink, status = _loop([uni, quick])

    outcome = await loop.run_cycle()

    assert outcome.status is CycleStatus.OK
    assert evaluator.calls == 1
    assert len(status) == 1
    assert str(2**200)[:20] in status[0]
    assert len(sink.lines) == 1
    assert f"quickswap_out={TokenAmount(2**201, 6).format()} USDC" in sink.lines[0]
