"""Fetch the device list from the Tailscale API.

API documented at https://github.com/tailscale/tailscale/blob/main/api.md#tailnet-devices-get
"""

import logging
from dataclasses import dataclass, field

import httpx

log = logging.getLogger("tailnet-dns.tailscale")


class DirectoryError(Exception):
    """The directory answered, but not with a usable device list."""


@dataclass(frozen=True)
class Device:
    name: str
    addresses: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    id: str = ""
    hostname: str = ""
    os: str = ""
    user: str = ""
    client_version: str = ""
    authorized: bool = False
    is_external: bool = False
    key_expiry_disabled: bool = False
    update_available: bool = False
    blocks_incoming_connections: bool = False
    # ISO-8601 timestamps, kept as text; "created" is sometimes empty upstream
    expires: str = ""
    last_seen: str = ""
    extra: dict = field(default_factory=dict, compare=False, repr=False)


_KNOWN_KEYS = {
    "name", "addresses", "tags", "id", "hostname", "os", "user",
    "clientVersion", "authorized", "isExternal", "keyExpiryDisabled",
    "updateAvailable", "blocksIncomingConnections", "expires", "lastSeen",
}


def _parse_device(raw: dict) -> Device | None:
    name = raw.get("name") or raw.get("hostname") or ""
    if not name:
        log.warning("Skipping device without a name: id=%s", raw.get("id", "?"))
        return None
    if not isinstance(name, str):
        log.warning("Skipping device with non-string name %r: id=%s", name, raw.get("id", "?"))
        return None
    return Device(
        name=name,
        addresses=tuple(str(a) for a in raw.get("addresses") or ()),
        tags=tuple(str(t) for t in raw.get("tags") or ()),
        id=str(raw.get("id", "")),
        hostname=str(raw.get("hostname") or ""),
        os=raw.get("os", "") or "",
        user=raw.get("user", "") or "",
        client_version=raw.get("clientVersion", "") or "",
        authorized=bool(raw.get("authorized", False)),
        is_external=bool(raw.get("isExternal", False)),
        key_expiry_disabled=bool(raw.get("keyExpiryDisabled", False)),
        update_available=bool(raw.get("updateAvailable", False)),
        blocks_incoming_connections=bool(raw.get("blocksIncomingConnections", False)),
        expires=raw.get("expires", "") or "",
        last_seen=raw.get("lastSeen", "") or "",
        extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
    )


def parse_devices(payload) -> list[Device]:
    """Turn a decoded devices response into Device records, in response order.

    Raises:
        DirectoryError: if the payload has no "devices" list.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("devices"), list):
        raise DirectoryError("Tailscale API response has no 'devices' list")

    devices = []
    for raw in payload["devices"]:
        if not isinstance(raw, dict):
            log.warning("Skipping malformed device entry: %r", raw)
            continue
        device = _parse_device(raw)
        if device is not None:
            devices.append(device)
    return devices


async def fetch_devices(config, transport: httpx.AsyncBaseTransport | None = None) -> list[Device]:
    """GET the tailnet's devices using the API key as the basic-auth username.

    Transport errors and timeouts propagate as httpx exceptions.

    Raises:
        DirectoryError: on a non-200 status or an undecodable body.
    """
    async with httpx.AsyncClient(
        timeout=config.fetch_timeout_seconds,
        auth=(config.api_key, ""),
        transport=transport,
    ) as client:
        resp = await client.get(config.devices_url)
        if resp.status_code != httpx.codes.OK:
            raise DirectoryError(
                f"Tailscale API request returned unexpected status code: "
                f"{resp.status_code} - {resp.reason_phrase}"
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise DirectoryError(f"parsing JSON: {e}") from e

    return parse_devices(data)
