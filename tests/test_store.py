import threading

from nameserver.registry import AliasEntry, HostEntry, build_registry
from nameserver.store import RegistryStore
from shared.tools.tailscale import Device


def _registry(*names, addr="10.0.0.1"):
    return build_registry([Device(name=n, addresses=(addr,)) for n in names], "cname-")


def test_starts_empty():
    store = RegistryStore()
    assert len(store) == 0
    assert store.version == 0
    assert store.lookup("anything") is None


def test_install_then_lookup_sees_new_registry():
    store = RegistryStore()
    store.install(_registry("one"))
    assert isinstance(store.lookup("one"), HostEntry)

    version = store.install(_registry("two"))
    assert version == 2
    assert store.lookup("one") is None
    assert isinstance(store.lookup("two"), HostEntry)


def test_snapshot_is_unaffected_by_later_install():
    store = RegistryStore()
    store.install(build_registry([Device(name="box", tags=("tag:cname-web",))], "cname-"))
    snapshot = store.snapshot()

    store.install(_registry("other"))

    assert snapshot["web"] == AliasEntry("box")
    assert store.lookup("web") is None


def test_install_logs_counts(caplog):
    caplog.set_level("INFO")
    store = RegistryStore()
    store.install(build_registry([Device(name="box", tags=("tag:cname-web",))], "cname-"))
    assert "1 host(s), 1 alias(es)" in caplog.text


def test_readers_never_see_a_mixed_table():
    # Every registry holds a full set of names sharing one address, so a
    # reader holding one snapshot must see the same address for all of them.
    names = [f"h{i}" for i in range(50)]
    registries = [_registry(*names, addr=f"10.0.0.{i}") for i in range(1, 20)]
    store = RegistryStore(registries[0])
    stop = threading.Event()
    mixed = []

    def reader():
        while not stop.is_set():
            snapshot = store.snapshot()
            seen = {snapshot[n].ipv4 for n in names}
            if len(seen) != 1:
                mixed.append(seen)

    threads = [threading.Thread(target=reader) for _ in range(4)]
    for t in threads:
        t.start()
    for _ in range(200):
        for r in registries:
            store.install(r)
    stop.set()
    for t in threads:
        t.join()

    assert mixed == []
    assert store.version == 200 * len(registries)
