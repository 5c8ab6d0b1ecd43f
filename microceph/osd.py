"""Adding and listing the disks (OSDs) of the cluster."""

from __future__ import annotations

import os
import stat
import uuid

from microceph.cephconf import _wrapped
from microceph.db.disks import Disk as DiskRecord
from microceph.db.disks import create_disk, get_disks
from microceph.keyring import gen_auth
from microceph.state import CephState, ceph_run, snap_reload
from microceph.types import Disk


def _used_ids(output: str) -> set[int]:
    ids: set[int] = set()
    for line in output.split("\n"):
        try:
            ids.add(int(line))
        except ValueError:
            continue
    return ids


def next_osd(state: CephState) -> int:
    """Return the lowest OSD number used neither by Ceph nor in the database."""
    ceph_ids = _used_ids(ceph_run(state.runner, "osd", "ls"))

    if state.database is None:
        raise RuntimeError("no database")
    with state.database.transaction() as tx:
        with _wrapped("Failed to fetch disks"):
            db_ids = {disk.osd for disk in get_disks(tx)}

    used = ceph_ids | db_ids
    candidate = 0
    while candidate in used:
        candidate += 1
    return candidate


def _device_number(path: str) -> str:
    try:
        info = os.stat(path)
    except OSError as err:
        raise ValueError(f"Invalid disk path: {path}") from err
    if not stat.S_ISBLK(info.st_mode):
        raise ValueError(f"Invalid disk path: {path}")
    return f"{os.major(info.st_rdev)}:{os.minor(info.st_rdev)}"


def _stable_path(state: CephState, path: str) -> str:
    """Return a /dev/disk/by-id path for the device, or ``path`` if none is known."""
    device = _device_number(path)
    for disk in state.disks:
        if disk.device == device:
            return f"/dev/disk/by-id/{disk.device_id}"
        for part in disk.partitions:
            if part.device == device:
                return f"/dev/disk/by-id/{disk.device_id}-part{part.partition}"
    return path


def _write_file(path: str, content: str) -> None:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(content)


def add_osd(state: CephState, path: str, wipe: bool) -> None:
    """Turn the block device at ``path`` into a new OSD, wiping it first if asked."""
    path = _stable_path(state, path)

    if wipe:
        with _wrapped("Failed to wipe the device"):
            state.runner.run_command(
                "dd", "if=/dev/zero", f"of={path}", "bs=4M", "count=10", "status=none"
            )

    with _wrapped("Failed to find next OSD number"):
        number = next_osd(state)

    osd_dir = os.path.join(state.paths.data, "osd", f"ceph-{number}")
    with _wrapped("Failed to bootstrap monitor"):
        os.makedirs(osd_dir, 0o700, exist_ok=True)

    with _wrapped("Failed to generate OSD keyring"):
        gen_auth(
            state.runner,
            os.path.join(osd_dir, "keyring"),
            f"osd.{number}",
            ["mgr", "allow profile osd"],
            ["mon", "allow profile osd"],
            ["osd", "allow *"],
        )

    with _wrapped("Failed to add block symlink"):
        os.symlink(path, os.path.join(osd_dir, "block"))

    with _wrapped("Failed to write fsid"):
        _write_file(os.path.join(osd_dir, "fsid"), str(uuid.uuid4()))

    with _wrapped("Failed to bootstrap OSD"):
        state.runner.run_command("ceph-osd", "--mkfs", "--no-mon-config", "-i", str(number))

    with _wrapped("Failed to write stamp file"):
        _write_file(os.path.join(osd_dir, "ready"), "")

    if state.database is None:
        raise RuntimeError("no database")
    with state.database.transaction() as tx:
        with _wrapped("Failed to record disk"):
            create_disk(tx, DiskRecord(member=state.name, path=path, osd=number))

    snap_reload(state.runner, "osd")


def list_osd(state: CephState) -> list[Disk]:
    """Return the disks recorded in the database."""
    if state.database is None:
        raise RuntimeError("no database")
    with state.database.transaction() as tx:
        with _wrapped("Failed to fetch disks"):
            records = get_disks(tx)
    return [Disk(osd=record.osd, path=record.path, location=record.member) for record in records]