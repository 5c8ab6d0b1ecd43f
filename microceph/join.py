"""Joining a node to an existing Ceph deployment."""

from __future__ import annotations

import os

from microceph.cephconf import _wrapped, update_config
from microceph.daemons import join_mds, join_mgr, join_mon
from microceph.db.services import Service, ServiceFilter, create_service, get_services
from microceph.state import CephState, snap_start

# The number of instances of each core service the cluster aims for.
_WANTED_PER_SERVICE = 3

# Core services in the order they are set up, with their joiner and a readable label.
_CORE_SERVICES = (
    ("mon", join_mon, "monitor"),
    ("mgr", join_mgr, "manager"),
    ("mds", join_mds, "metadata server"),
)


def join(state: CephState) -> None:
    """Set up this node as a member of an existing deployment.

    Core services that have fewer than three instances in the cluster are
    started here and recorded in the database; the OSD service is always started.
    """
    paths = state.paths
    paths.create()

    with _wrapped("Failed to generate the configuration"):
        update_config(state)

    database = state.database
    if database is None:
        raise RuntimeError("no database")

    with database.transaction() as tx:
        counts = {
            name: len(get_services(tx, ServiceFilter(service=name)))
            for name, _, _ in _CORE_SERVICES
        }

    added: list[str] = []
    for name, joiner, label in _CORE_SERVICES:
        if counts[name] >= _WANTED_PER_SERVICE:
            continue
        data_dir = os.path.join(paths.data, name, f"ceph-{state.name}")
        with _wrapped(f"Failed to join {label}"):
            os.makedirs(data_dir, 0o700, exist_ok=True)
            joiner(state.runner, state.name, data_dir)
        with _wrapped(f"Failed to start {label}"):
            snap_start(state.runner, name, True)
        added.append(name)

    with database.transaction() as tx:
        for name in added:
            with _wrapped("Failed to record role"):
                create_service(tx, Service(member=state.name, service=name))

    with _wrapped("Failed to start OSD service"):
        snap_start(state.runner, "osd", True)