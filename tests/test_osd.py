import os
import stat
import uuid
from types import SimpleNamespace
from unittest import mock

import pytest

from microceph.db.disks import Disk as DiskRecord
from microceph.db.disks import create_disk
from microceph.db.schema import Database
from microceph.osd import add_osd, list_osd, next_osd
from microceph.state import (
    CephState,
    CommandError,
    SnapPaths,
    StorageDisk,
    StoragePartition,
)
from microceph.types import Disk

DEVICE = "/dev/fake-block"
_real_stat = os.stat


def fake_stat(path, *args, **kwargs):
    if path == DEVICE:
        return SimpleNamespace(st_mode=stat.S_IFBLK | 0o660, st_rdev=os.makedev(8, 16))
    return _real_stat(path, *args, **kwargs)


class FakeRunner:
    def __init__(self, outputs=None, fail_on=()):
        self.calls = []
        self.outputs = outputs or {}
        self.fail_on = set(fail_on)

    def run_command(self, name, *args):
        self.calls.append((name,) + args)
        if name in self.fail_on:
            raise CommandError(name, args, "boom")
        return self.outputs.get(" ".join((name,) + args), "ok")


@pytest.fixture
def db():
    database = Database()
    database.add_member("node1", "10.0.0.1:7443")
    yield database
    database.close()


def make_state(tmp_path, db, runner, disks=()):
    paths = SnapPaths(
        conf=str(tmp_path / "conf"),
        run=str(tmp_path / "run"),
        data=str(tmp_path / "data"),
        logs=str(tmp_path / "logs"),
    )
    return CephState(
        name="node1",
        address="10.0.0.1:7443",
        runner=runner,
        database=db,
        disks=list(disks),
        paths=paths,
    )


def test_next_osd_skips_ids_used_by_ceph_and_database(tmp_path, db):
    with db.transaction() as tx:
        create_disk(tx, DiskRecord(member="node1", osd=2, path="/dev/sdb"))
    runner = FakeRunner(outputs={"ceph osd ls": "0\n1\n\n3\nabc\n"})
    assert next_osd(make_state(tmp_path, db, runner)) == 4


def test_next_osd_starts_at_zero(tmp_path, db):
    assert next_osd(make_state(tmp_path, db, FakeRunner(outputs={"ceph osd ls": ""}))) == 0


def test_next_osd_without_database(tmp_path):
    with pytest.raises(RuntimeError, match="no database"):
        next_osd(make_state(tmp_path, None, FakeRunner()))


def test_add_osd_rejects_regular_file(tmp_path, db):
    regular = tmp_path / "file"
    regular.write_text("x")
    runner = FakeRunner()
    with pytest.raises(ValueError, match="Invalid disk path"):
        add_osd(make_state(tmp_path, db, runner), str(regular), False)
    assert runner.calls == []


def test_add_osd_rejects_missing_path(tmp_path, db):
    with pytest.raises(ValueError, match="Invalid disk path"):
        add_osd(make_state(tmp_path, db, FakeRunner()), str(tmp_path / "missing"), False)


def test_add_osd_full_disk(tmp_path, db):
    runner = FakeRunner(outputs={"ceph osd ls": ""})
    state = make_state(
        tmp_path, db, runner, [StorageDisk(device="8:16", device_id="wwn-example")]
    )
    with mock.patch("os.stat", side_effect=fake_stat):
        add_osd(state, DEVICE, True)

    stable = "/dev/disk/by-id/wwn-example"
    osd_dir = tmp_path / "data" / "osd" / "ceph-0"
    assert runner.calls[0] == (
        "dd", "if=/dev/zero", f"of={stable}", "bs=4M", "count=10", "status=none",
    )
    assert os.readlink(osd_dir / "block") == stable
    fsid = (osd_dir / "fsid").read_text()
    assert str(uuid.UUID(fsid)) == fsid
    assert (osd_dir / "ready").read_text() == ""
    assert (
        "ceph", "auth", "get-or-create", "osd.0",
        "mgr", "allow profile osd", "mon", "allow profile osd", "osd", "allow *",
        "-o", str(osd_dir / "keyring"),
    ) in runner.calls
    assert ("ceph-osd", "--mkfs", "--no-mon-config", "-i", "0") in runner.calls
    assert runner.calls[-1] == ("snapctl", "restart", "--reload", "microceph.osd")
    assert list_osd(state) == [Disk(osd=0, path=stable, location="node1")]


def test_add_osd_partition_and_no_wipe(tmp_path, db):
    runner = FakeRunner(outputs={"ceph osd ls": ""})
    disk = StorageDisk(
        device="8:0",
        device_id="ata-example",
        partitions=(StoragePartition(device="8:16", partition=2),),
    )
    state = make_state(tmp_path, db, runner, [disk])
    with mock.patch("os.stat", side_effect=fake_stat):
        add_osd(state, DEVICE, False)

    assert not any(call[0] == "dd" for call in runner.calls)
    assert list_osd(state) == [
        Disk(osd=0, path="/dev/disk/by-id/ata-example-part2", location="node1")
    ]


def test_add_osd_unknown_device_keeps_path(tmp_path, db):
    state = make_state(tmp_path, db, FakeRunner(outputs={"ceph osd ls": ""}))
    with mock.patch("os.stat", side_effect=fake_stat):
        add_osd(state, DEVICE, False)
    assert os.readlink(tmp_path / "data" / "osd" / "ceph-0" / "block") == DEVICE


def test_add_osd_bootstrap_failure_records_nothing(tmp_path, db):
    state = make_state(tmp_path, db, FakeRunner(fail_on={"ceph-osd"}))
    with mock.patch("os.stat", side_effect=fake_stat):
        with pytest.raises(RuntimeError, match="Failed to bootstrap OSD"):
            add_osd(state, DEVICE, False)
    assert list_osd(state) == []