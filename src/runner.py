"""Main entry point: DNS server for Tailscale devices with periodic refresh."""

import asyncio
import logging
import signal
import sys

from nameserver.refresh import RefreshFailed, RefreshScheduler
from nameserver.store import RegistryStore
from shared.config import load_config
from shared.tools.dns import start_dns_server

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
log = logging.getLogger("tailnet-dns")


async def main() -> int:
    config = load_config()
    logging.getLogger().setLevel(config.log_level.upper())
    log.info("tailnet-dns starting for tailnet %s, zone %s", config.tailnet, config.zone)
    log.info(
        "Refresh interval: %ds, TTL: %ds, alias tag prefix: %r",
        config.refresh_interval_seconds, config.ttl_seconds, config.alias_tag_prefix,
    )
    if not config.api_key:
        log.warning("TAILSCALE_API_KEY is not set; the device fetch will likely be rejected")

    store = RegistryStore()
    scheduler = RefreshScheduler(config, store)

    # No data to serve without a first successful fetch
    try:
        await scheduler.refresh_once()
    except RefreshFailed:
        log.critical("Initial device fetch failed", exc_info=True)
        return 1
    log.info("Tailscale devices loaded")

    shutdown = asyncio.Event()

    def handle_signal():
        log.info("Shutdown signal received")
        shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal)

    transport = await start_dns_server(config, store)
    try:
        await scheduler.run(shutdown)
    finally:
        transport.close()

    log.info("tailnet-dns stopped")
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)
