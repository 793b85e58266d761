"""Periodic directory refresh: fetch devices, build a registry, install it."""

import asyncio
import logging

from nameserver.registry import build_registry
from shared.tools.tailscale import fetch_devices

log = logging.getLogger("tailnet-dns.refresh")


class RefreshFailed(Exception):
    """A refresh could not produce a new registry."""


class RefreshScheduler:
    """Keeps a RegistryStore in sync with the Tailscale device list.

    ``fetch`` is an async callable taking the config and returning devices;
    it defaults to the Tailscale API client.
    """

    def __init__(self, config, store, fetch=None):
        self.config = config
        self.store = store
        self.fetch = fetch or fetch_devices
        self.failures = 0

    async def refresh_once(self) -> int:
        """Run one fetch/build/install cycle and return the installed version.

        Raises:
            RefreshFailed: if the device list could not be fetched or decoded.
                The active registry is left untouched.
        """
        try:
            devices = await self.fetch(self.config)
        except Exception as e:
            raise RefreshFailed(f"fetching devices from {self.config.devices_url}: {e}") from e

        try:
            registry = build_registry(devices, self.config.alias_tag_prefix)
        except Exception as e:
            raise RefreshFailed(f"building registry: {e}") from e
        if not devices:
            log.warning("Directory returned no devices; installing an empty registry")
        return self.store.install(registry)

    async def run(self, shutdown: asyncio.Event):
        """Refresh every interval until ``shutdown`` is set.

        The startup refresh is done separately (see ``refresh_once``), so the
        first tick here happens one interval after start.
        """
        interval = self.config.refresh_interval_seconds
        log.info("Refreshing devices every %ds", interval)

        while not shutdown.is_set():
            try:
                await asyncio.wait_for(shutdown.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
            if shutdown.is_set():
                break

            try:
                await self.refresh_once()
                self.failures = 0
            except Exception:
                self.failures += 1
                log.exception(
                    "Device refresh failed (%d in a row); keeping registry v%d",
                    self.failures, self.store.version,
                )

        log.info("Refresh loop stopped")
