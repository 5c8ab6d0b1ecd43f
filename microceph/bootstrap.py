"""Creation of a brand new Ceph deployment on the first node."""

from __future__ import annotations

import os
import tempfile
import uuid
from contextlib import contextmanager
from typing import Iterator

from microceph.cephconf import _hostname, update_config
from microceph.configwriter import ceph_config
from microceph.daemons import (
    add_monmap,
    bootstrap_mds,
    bootstrap_mgr,
    bootstrap_mon,
    gen_monmap,
)
from microceph.db.config import ConfigItem, create_config_item
from microceph.db.services import Service, create_service
from microceph.keyring import gen_keyring, import_keyring, parse_keyring
from microceph.state import CephState, ceph_run, snap_start

_ADMIN_KEYRING = "ceph.client.admin.keyring"


@contextmanager
def _wrapped(message: str) -> Iterator[None]:
    try:
        yield
    except Exception as err:
        raise RuntimeError(f"{message}: {err}") from err


def _create_keyrings(state: CephState, conf_path: str, tmp: str) -> None:
    mon_keyring = os.path.join(tmp, "mon.keyring")
    admin_keyring = os.path.join(conf_path, _ADMIN_KEYRING)

    with _wrapped("Failed to generate monitor keyring"):
        gen_keyring(state.runner, mon_keyring, "mon.", ["mon", "allow *"])

    with _wrapped("Failed to generate admin keyring"):
        gen_keyring(
            state.runner,
            admin_keyring,
            "client.admin",
            ["mon", "allow *"],
            ["osd", "allow *"],
            ["mds", "allow *"],
            ["mgr", "allow *"],
        )

    with _wrapped("Failed to generate admin keyring"):
        import_keyring(state.runner, mon_keyring, admin_keyring)


def _create_mon_map(state: CephState, tmp: str, fsid: str) -> None:
    monmap = os.path.join(tmp, "mon.map")
    with _wrapped("Failed to generate monitor map"):
        gen_monmap(state.runner, monmap, fsid)
    with _wrapped("Failed to add monitor map"):
        add_monmap(state.runner, monmap, state.name, _hostname(state.address))


def _init_mon(state: CephState, data_path: str, tmp: str) -> None:
    mon_data = os.path.join(data_path, "mon", f"ceph-{state.name}")
    with _wrapped("Failed to bootstrap monitor"):
        os.makedirs(mon_data, 0o700, exist_ok=True)
        bootstrap_mon(
            state.runner,
            state.name,
            mon_data,
            os.path.join(tmp, "mon.map"),
            os.path.join(tmp, "mon.keyring"),
        )
    with _wrapped("Failed to start monitor"):
        snap_start(state.runner, "mon", True)


def _init_mgr(state: CephState, data_path: str) -> None:
    mgr_data = os.path.join(data_path, "mgr", f"ceph-{state.name}")
    with _wrapped("Failed to bootstrap manager"):
        os.makedirs(mgr_data, 0o700, exist_ok=True)
        bootstrap_mgr(state.runner, state.name, mgr_data)
    with _wrapped("Failed to start manager"):
        snap_start(state.runner, "mgr", True)


def _init_mds(state: CephState, data_path: str) -> None:
    mds_data = os.path.join(data_path, "mds", f"ceph-{state.name}")
    with _wrapped("Failed to bootstrap metadata server"):
        os.makedirs(mds_data, 0o700, exist_ok=True)
        bootstrap_mds(state.runner, state.name, mds_data)
    with _wrapped("Failed to start metadata server"):
        snap_start(state.runner, "mds", True)


def _update_database(state: CephState, fsid: str, admin_key: str) -> None:
    if state.database is None:
        raise RuntimeError("no database")
    with state.database.transaction() as tx:
        for service in ("mon", "mgr", "mds"):
            with _wrapped("Failed to record role"):
                create_service(tx, Service(member=state.name, service=service))
        with _wrapped("Failed to record fsid"):
            create_config_item(tx, ConfigItem(key="fsid", value=fsid))
        with _wrapped("Failed to record keyring"):
            create_config_item(tx, ConfigItem(key="keyring.client.admin", value=admin_key))


def bootstrap(state: CephState) -> None:
    """Initialise a new Ceph deployment with this node as its first member."""
    paths = state.paths
    paths.create()

    fsid = str(uuid.uuid4())
    host = _hostname(state.address)
    ceph_config(paths.conf).write(
        {"fsid": fsid, "runDir": paths.run, "monitors": host, "addr": host}
    )

    with tempfile.TemporaryDirectory() as tmp:
        _create_keyrings(state, paths.conf, tmp)

        with _wrapped("Failed parsing admin keyring"):
            admin_key = parse_keyring(os.path.join(paths.conf, _ADMIN_KEYRING))

        _create_mon_map(state, tmp, fsid)
        _init_mon(state, paths.data, tmp)
        _init_mgr(state, paths.data)
        _init_mds(state, paths.data)

        with _wrapped("Failed to enable msgr2"):
            ceph_run(state.runner, "mon", "enable-msgr2")

        with _wrapped("Failed to start OSD service"):
            snap_start(state.runner, "osd", True)

        _update_database(state, fsid, admin_key)

        with _wrapped("Failed to re-generate the configuration"):
            update_config(state)