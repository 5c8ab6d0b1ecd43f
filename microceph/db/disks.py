"""The table of disks (OSDs) recorded for each cluster member."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import Any

from microceph.db.config import (
    _delete_one,
    _exists,
    _insert,
    _lookup_id,
    _only,
    _select,
    _update_one,
)

_MEMBER_ID = (
    "(SELECT internal_cluster_members.id FROM internal_cluster_members"
    " WHERE internal_cluster_members.name = ?)"
)
_SELECT = (
    "SELECT disks.id, internal_cluster_members.name AS member, disks.osd, disks.path"
    " FROM disks"
    " JOIN internal_cluster_members ON disks.member_id = internal_cluster_members.id"
)
_ORDER = " ORDER BY internal_cluster_members.id, disks.osd"


@dataclass
class Disk:
    """A disk on a cluster member, backing the OSD with the given number."""

    member: str
    osd: int
    path: str
    id: int = 0


@dataclass(frozen=True)
class DiskFilter:
    """Selects disks by member, or by member and path."""

    member: str | None = None
    path: str | None = None
    osd: int | None = None


def _build(row_id: int, member: str, osd: int, path: str) -> Disk:
    return Disk(id=row_id, member=member, osd=osd, path=path)


def _filter_clause(disk_filter: DiskFilter) -> tuple[str, list[Any]]:
    member, path, osd = disk_filter.member, disk_filter.path, disk_filter.osd
    if osd is None and member is not None:
        if path is not None:
            return "( internal_cluster_members.name = ? AND disks.path = ? )", [member, path]
        return "( internal_cluster_members.name = ? )", [member]
    if member is None and path is None and osd is None:
        raise ValueError("Cannot filter on empty DiskFilter")
    raise ValueError("No statement exists for the given Filter")


def get_disks(tx: sqlite3.Connection, *filters: DiskFilter) -> list[Disk]:
    """Return the disks matching any of ``filters``, or all disks.

    Results are ordered by member, then by OSD number.
    """
    return _select(tx, _SELECT, _ORDER, filters, _filter_clause, _build)


def get_disk(tx: sqlite3.Connection, member: str, osd: int) -> Disk:
    """Return the disk of ``member`` backing OSD ``osd``."""
    disks = _select(
        tx,
        _SELECT,
        _ORDER,
        [(member, osd)],
        lambda key: ("( internal_cluster_members.name = ? AND disks.osd = ? )", list(key)),
        _build,
    )
    return _only(disks, "Disk", "disks")


def get_disk_id(tx: sqlite3.Connection, member: str, osd: int) -> int:
    return _lookup_id(
        tx,
        "SELECT disks.id FROM disks"
        " JOIN internal_cluster_members ON disks.member_id = internal_cluster_members.id"
        " WHERE internal_cluster_members.name = ? AND disks.osd = ?",
        (member, osd),
        "Disk",
    )


def disk_exists(tx: sqlite3.Connection, member: str, osd: int) -> bool:
    return _exists(get_disk_id, tx, member, osd)


def create_disk(tx: sqlite3.Connection, disk: Disk) -> int:
    """Insert ``disk`` and return its new id."""
    return _insert(
        tx,
        disk_exists(tx, disk.member, disk.osd),
        "disks",
        f"INSERT INTO disks (member_id, osd, path) VALUES ({_MEMBER_ID}, ?, ?)",
        (disk.member, disk.osd, disk.path),
    )


def delete_disk(tx: sqlite3.Connection, member: str, path: str) -> None:
    """Delete the disk at ``path`` on ``member``."""
    _delete_one(
        tx,
        f"DELETE FROM disks WHERE member_id = {_MEMBER_ID} AND path = ?",
        (member, path),
        "Disk",
    )


def delete_disks(tx: sqlite3.Connection, member: str) -> None:
    """Delete every disk of ``member``."""
    tx.execute(f"DELETE FROM disks WHERE member_id = {_MEMBER_ID}", (member,))


def update_disk(tx: sqlite3.Connection, member: str, osd: int, disk: Disk) -> None:
    """Replace the disk of ``member`` backing OSD ``osd`` with ``disk``."""
    disk_id = get_disk_id(tx, member, osd)
    _update_one(
        tx,
        f"UPDATE disks SET member_id = {_MEMBER_ID}, osd = ?, path = ? WHERE id = ?",
        (disk.member, disk.osd, disk.path, disk_id),
    )