import asyncio

import httpx

import nameserver.refresh
import src.runner
from src.runner import main


def test_startup_fetch_failure_exits_without_serving(monkeypatch, caplog):
    caplog.set_level("CRITICAL")
    started = []

    async def failing_fetch(config):
        raise httpx.ConnectError("unreachable")

    async def fake_start_dns_server(config, store):
        started.append(store)

    monkeypatch.setenv("TAILSCALE_API_KEY", "tskey-test")
    monkeypatch.setattr(nameserver.refresh, "fetch_devices", failing_fetch)
    monkeypatch.setattr(src.runner, "start_dns_server", fake_start_dns_server)

    assert asyncio.run(main()) == 1
    assert started == []
    assert "Initial device fetch failed" in caplog.text
