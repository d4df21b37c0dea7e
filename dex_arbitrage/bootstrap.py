from __future__ import annotations

from typing import Sequence

from dex_arbitrage.config import Settings, VenueConfig, load_settings
from dex_arbitrage.core import HttpClientFactory, RpcClient, configure_logging
from dex_arbitrage.quoters import AlgebraQuoter, QuoteSource, UniswapV3Quoter
from dex_arbitrage.services.arbitrage_engine import ArbitrageEvaluator
from dex_arbitrage.services.poll_loop import LoopParameters, PollLoop
from dex_arbitrage.services.reporter import FileSink, OpportunityReporter


def create_quoter(venue: VenueConfig, rpc: RpcClient) -> QuoteSource:
    match venue.kind:
        case "uniswap_v3":
            return UniswapV3Quoter(venue.name, rpc, venue.quoter_address, fee=venue.fee)
        case "algebra":
            return AlgebraQuoter(venue.name, rpc, venue.quoter_address)
        case _:
            raise ValueError(f"Unsupported quoter kind: {venue.kind}")


def create_quoters(settings: Settings, rpc: RpcClient) -> Sequence[QuoteSource]:
    return [create_quoter(venue, rpc) for venue in settings.venues]


def build_app_components(config_path: str | None = None) -> tuple[
    Settings,
    HttpClientFactory,
    RpcClient,
    PollLoop,
]:
    settings = load_settings(config_path)
    configure_logging(settings.logging, venues=[venue.name for venue in settings.venues])

    http_factory = HttpClientFactory(timeout=settings.rpc.timeout_sec)
    rpc = RpcClient(http_factory, settings.rpc.url, max_retries=settings.rpc.max_retries)
    quoters = create_quoters(settings, rpc)

    reporter = OpportunityReporter(FileSink(settings.sink_path))
    poll_loop = PollLoop(quoters, ArbitrageEvaluator(), reporter, LoopParameters.from_settings(settings))

    return settings, http_factory, rpc, poll_loop
