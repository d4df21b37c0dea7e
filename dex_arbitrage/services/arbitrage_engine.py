from __future__ import annotations

import logging
from decimal import Decimal, localcontext

from dex_arbitrage.services.schemas import DECIMAL_CONTEXT, Direction, PathResult, Rate, RoundTripResult, TokenAmount

log = logging.getLogger(__name__)


class ArbitrageEvaluator:
    """Simulates both two-venue round trips for a fixed trade size.

    Rates are quote currency per unit of base (e.g. USDC per WETH). A round
    trip spends the trade size buying base on one venue and sells all of it on
    the other; profit is what comes back minus what went in, then minus one
    fixed gas cost for the whole round trip.
    """

    def evaluate(self, rate_a: Rate, rate_b: Rate, trade_size: TokenAmount, gas_cost: Decimal) -> RoundTripResult:
        size = trade_size.to_decimal()
        path_1 = self._round_trip(Direction.A_TO_B, rate_a, rate_b, size, gas_cost)
        path_2 = self._round_trip(Direction.B_TO_A, rate_b, rate_a, size, gas_cost)

        # Ties go to path 1 so the choice never depends on evaluation order.
        best = path_2 if path_2.net_profit > path_1.net_profit else path_1

        log.debug(
            "Round trips: %s net=%s, %s net=%s -> best %s",
            path_1.label,
            path_1.net_profit,
            path_2.label,
            path_2.net_profit,
            best.label,
        )
        return RoundTripResult(trade_size=trade_size, best=best, path_1=path_1, path_2=path_2)

    @staticmethod
    def _round_trip(direction: Direction, buy: Rate, sell: Rate, size: Decimal, gas_cost: Decimal) -> PathResult:
        with localcontext(DECIMAL_CONTEXT):
            base_amount = size / buy.value
            quote_back = base_amount * sell.value
            gross = quote_back - size
            net = gross - gas_cost
        return PathResult(
            direction=direction,
            buy_venue=buy.venue,
            sell_venue=sell.venue,
            base_amount=base_amount,
            quote_back=quote_back,
            gross_profit=gross,
            gas_cost=gas_cost,
            net_profit=net,
        )
