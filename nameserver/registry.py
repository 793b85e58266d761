"""Build the name table served over DNS from a directory snapshot."""

import ipaddress
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

log = logging.getLogger("tailnet-dns.registry")

TAG_MARKER = "tag:"


@dataclass(frozen=True)
class HostEntry:
    # Either family may be missing when a device only has one address
    ipv4: ipaddress.IPv4Address | None = None
    ipv6: ipaddress.IPv6Address | None = None


@dataclass(frozen=True)
class AliasEntry:
    target: str  # short name of a host entry


NameEntry = Union[HostEntry, AliasEntry]
Registry = Mapping[str, NameEntry]

EMPTY_REGISTRY: Registry = MappingProxyType({})


def short_name(name: str) -> str:
    """First label of a directory or query name, lowercased."""
    return name.split(".", 1)[0].lower()


def _pick_addresses(device) -> HostEntry:
    ipv4 = ipv6 = None
    for raw in device.addresses:
        try:
            addr = ipaddress.ip_address(raw)
        except ValueError:
            log.warning("Skipping malformed address %r on device %s", raw, device.name)
            continue
        if getattr(addr, "scope_id", None):
            log.warning("Skipping scoped address %r on device %s", raw, device.name)
            continue
        if addr.version == 4 and ipv4 is None:
            ipv4 = addr
        elif addr.version == 6 and ipv6 is None:
            ipv6 = addr
    return HostEntry(ipv4=ipv4, ipv6=ipv6)


def build_registry(devices, alias_tag_prefix: str) -> Registry:
    """Build an immutable registry from devices in directory order.

    Each device contributes a host entry under its short name, and one alias
    entry per tag of the form ``tag:<alias_tag_prefix><alias>``. Keys are
    written in order, so when two sources produce the same key (host or
    alias) the later one wins.
    """
    marker = TAG_MARKER + alias_tag_prefix
    table: dict[str, NameEntry] = {}

    for device in devices:
        name = short_name(device.name)
        if not name:
            log.warning("Skipping device with empty name: %r", device.name)
            continue
        table[name] = _pick_addresses(device)

        for tag in device.tags:
            if not tag.startswith(marker):
                continue
            alias = tag[len(marker):].lower()
            if not alias:
                continue
            log.debug("Adding CNAME entry %s -> %s", alias, name)
            table[alias] = AliasEntry(target=name)

    return MappingProxyType(table)


def count_entries(registry: Registry) -> tuple[int, int]:
    """Return (hosts, aliases) in a registry."""
    aliases = sum(1 for e in registry.values() if isinstance(e, AliasEntry))
    return len(registry) - aliases, aliases
