"""Holder for the active registry, shared by the refresher and query handlers."""

import logging
import threading

from nameserver.registry import EMPTY_REGISTRY, NameEntry, Registry, count_entries

log = logging.getLogger("tailnet-dns.store")


class RegistryStore:
    """One active registry, replaced wholesale and never edited in place.

    Readers take the current reference without locking; a reference load is
    atomic, so a reader sees either the old table or the new one. Writers are
    serialized by a lock so versions are installed in a total order.
    """

    def __init__(self, registry: Registry = EMPTY_REGISTRY):
        self._registry = registry
        self._version = 0
        self._write_lock = threading.Lock()

    def install(self, registry: Registry) -> int:
        """Make ``registry`` the active table and return its version number."""
        with self._write_lock:
            self._registry = registry
            self._version += 1
            version = self._version
        hosts, aliases = count_entries(registry)
        log.info("Installed registry v%d: %d host(s), %d alias(es)", version, hosts, aliases)
        return version

    def snapshot(self) -> Registry:
        return self._registry

    def lookup(self, name: str) -> NameEntry | None:
        return self._registry.get(name)

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._registry)
