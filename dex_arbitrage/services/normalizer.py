from __future__ import annotations

from decimal import localcontext

from dex_arbitrage.services.schemas import DECIMAL_CONTEXT, Quote, Rate


def to_rate(quote: Quote) -> Rate:
    """Decimal price of ``quote.token_in`` in ``quote.token_out`` implied by one quote.

    Both amounts are converted from smallest units before dividing, so venues
    quoting the same pair with different probe sizes stay comparable.
    """
    amount_in = quote.amount_in.to_decimal()
    if not amount_in:
        raise ValueError(f"{quote.venue}: cannot derive a rate from a zero input amount")
    with localcontext(DECIMAL_CONTEXT):
        value = quote.amount_out.to_decimal() / amount_in
    return Rate(venue=quote.venue, value=value, quote=quote)
