"""Regeneration of the node's Ceph configuration from the cluster database."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator
from urllib.parse import urlsplit

from microceph.configwriter import ceph_config, ceph_keyring
from microceph.db.config import get_config_items
from microceph.db.services import ServiceFilter, get_services
from microceph.state import CephState


@contextmanager
def _wrapped(message: str) -> Iterator[None]:
    try:
        yield
    except Exception as err:
        raise RuntimeError(f"{message}: {err}") from err


def _hostname(address: str) -> str:
    """Return the host part of ``address``, dropping any scheme, port and brackets."""
    if "://" in address:
        return urlsplit(address).hostname or ""
    if address.startswith("["):
        end = address.find("]")
        return address[1:end] if end > 0 else address
    if address.count(":") == 1:
        return address.split(":", 1)[0]
    return address


def update_config(state: CephState) -> None:
    """Write ceph.conf and the admin keyring from the configuration in the database."""
    if state.database is None:
        raise RuntimeError("no database")

    with state.database.transaction() as tx:
        items = get_config_items(tx)
        monitors = get_services(tx, ServiceFilter(service="mon"))

    config = {item.key: item.value for item in items}
    # Monitors whose member is not a known remote leave an empty slot.
    addresses = [
        _hostname(state.remotes[monitor.member]) if monitor.member in state.remotes else ""
        for monitor in monitors
    ]

    paths = state.paths
    with _wrapped("Couldn't render ceph.conf"):
        ceph_config(paths.conf).write(
            {
                "fsid": config.get("fsid", ""),
                "runDir": paths.run,
                "monitors": ",".join(addresses),
                "addr": _hostname(state.address),
            }
        )

    with _wrapped("Couldn't render ceph.client.admin.keyring"):
        ceph_keyring(paths.conf, "ceph.keyring").write(
            {"name": "client.admin", "key": config.get("keyring.client.admin", "")}
        )