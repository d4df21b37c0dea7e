from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import Any

from dex_arbitrage.bootstrap import build_app_components
from dex_arbitrage.core.exceptions import ConfigurationError, RpcError

log = logging.getLogger("dex_arbitrage.system")


async def main(config_path: str | None = None) -> None:
    log.info("Starting DEX arbitrage monitor")
    settings, http_factory, rpc, poll_loop = build_app_components(config_path)
    log.info("Application components initialized (RPC %s, sink %s)", rpc.url, settings.sink_path)

    stop_event = asyncio.Event()

    def _handle_stop(*_: Any) -> None:
        log.info("Shutdown requested")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_stop)
        except NotImplementedError:
            pass

    try:
        if settings.check_block_on_start:
            try:
                block = await rpc.block_number()
                log.info("Connected, latest block: %d", block)
            except RpcError as exc:
                log.warning("Could not fetch latest block: %s", exc)

        await poll_loop.run(stop_event)
    finally:
        await http_factory.close()


if __name__ == "__main__":
    try:
        asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(2)
    except KeyboardInterrupt:
        ...
