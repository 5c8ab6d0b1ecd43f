"""Enabling the RADOS gateway (object storage) service."""

from __future__ import annotations

import os

from microceph.cephconf import _hostname, _wrapped
from microceph.configwriter import radosgw_config
from microceph.db.services import Service, create_service
from microceph.keyring import gen_auth
from microceph.state import CephState, snap_start


def _create_keyring(state: CephState, path: str) -> None:
    os.makedirs(path, 0o770, exist_ok=True)
    keyring = os.path.join(path, "keyring")
    if os.path.exists(keyring):
        return
    gen_auth(
        state.runner,
        keyring,
        "client.radosgw.gateway",
        ["mon", "allow rw"],
        ["osd", "allow rwx"],
    )


def _symlink_keyring(key_path: str, conf_path: str) -> None:
    with _wrapped("Failed to create symlink to RGW keyring"):
        os.symlink(
            os.path.join(key_path, "keyring"),
            os.path.join(conf_path, "ceph.client.radosgw.gateway.keyring"),
        )


def _update_database(state: CephState) -> None:
    if state.database is None:
        raise RuntimeError("no database")
    with state.database.transaction() as tx:
        with _wrapped("Failed to record role"):
            create_service(tx, Service(member=state.name, service="rgw"))


def enable_rgw(state: CephState, port: int) -> None:
    """Configure and start the RADOS gateway listening on ``port``."""
    paths = state.paths
    radosgw_config(paths.conf).write(
        {"runDir": paths.run, "monitors": _hostname(state.address), "rgwPort": port}
    )

    key_path = os.path.join(paths.data, "radosgw", "ceph-radosgw.gateway")
    _create_keyring(state, key_path)
    _symlink_keyring(key_path, paths.conf)
    _update_database(state)

    with _wrapped("Failed to start RGW service"):
        snap_start(state.runner, "rgw", True)