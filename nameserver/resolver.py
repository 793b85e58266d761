"""Answer A/AAAA/CNAME questions from the active registry."""

import ipaddress
import logging
from dataclasses import dataclass, field

import dns.rcode
import dns.rdatatype

from nameserver.registry import AliasEntry, HostEntry, Registry, short_name

log = logging.getLogger("tailnet-dns.resolver")


@dataclass(frozen=True)
class Record:
    name: str  # absolute owner name
    rdtype: dns.rdatatype.RdataType
    ttl: int
    # Target name for CNAME, address for A/AAAA. None means the target host
    # has no address of the requested family.
    value: str | ipaddress.IPv4Address | ipaddress.IPv6Address | None


@dataclass
class Answer:
    rcode: dns.rcode.Rcode = dns.rcode.NOERROR
    records: list[Record] = field(default_factory=list)
    incomplete: bool = False

    @property
    def is_nxdomain(self) -> bool:
        return self.rcode == dns.rcode.NXDOMAIN


def _fqdn(name: str, domain: str) -> str:
    return f"{name}.{domain.rstrip('.')}."


def _address(entry, rdtype):
    if not isinstance(entry, HostEntry):
        return None
    return entry.ipv4 if rdtype == dns.rdatatype.A else entry.ipv6


def _resolve_alias(
    registry: Registry, query_name: str, alias: AliasEntry, rdtype, domain: str, ttl: int
) -> Answer:
    target = _fqdn(alias.target, domain)
    answer = Answer(records=[Record(query_name, dns.rdatatype.CNAME, ttl, target)])
    if rdtype == dns.rdatatype.CNAME:
        return answer

    # One hop only: if the target is missing or is itself an alias, the
    # address record goes out empty.
    addr = _address(registry.get(alias.target), rdtype)
    if addr is None:
        log.warning("Alias %s targets %s, which has no %s address",
                    query_name, alias.target, dns.rdatatype.to_text(rdtype))
        answer.incomplete = True
    answer.records.append(Record(target, rdtype, ttl, addr))
    return answer


def resolve(store, query_name: str, rdtype, domain: str, ttl: int) -> Answer:
    """Resolve one question against a single snapshot of ``store``.

    Only the first label of ``query_name`` is used as the lookup key. Names
    not in the registry get NXDOMAIN; a known name without data of the
    requested type gets an empty NOERROR answer.
    """
    registry = store.snapshot()
    key = short_name(query_name)
    if not query_name.endswith("."):
        query_name += "."
    entry = registry.get(key)

    if entry is None:
        log.debug("No entry for %s", key)
        return Answer(rcode=dns.rcode.NXDOMAIN)

    if rdtype not in (dns.rdatatype.A, dns.rdatatype.AAAA, dns.rdatatype.CNAME):
        return Answer()

    if isinstance(entry, AliasEntry):
        return _resolve_alias(registry, query_name, entry, rdtype, domain, ttl)

    # Host entries have no CNAME target, so a CNAME question gets nothing
    if rdtype == dns.rdatatype.CNAME:
        return Answer()

    addr = _address(entry, rdtype)
    if addr is None:
        return Answer()
    return Answer(records=[Record(query_name, rdtype, ttl, addr)])
