"""The table of Ceph services recorded for each cluster member."""

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
from microceph.db.disks import _MEMBER_ID

_SELECT = (
    "SELECT services.id, internal_cluster_members.name AS member, services.service"
    " FROM services"
    " JOIN internal_cluster_members ON services.member_id = internal_cluster_members.id"
)
_ORDER = " ORDER BY internal_cluster_members.id, services.service"


@dataclass
class Service:
    """A Ceph service (such as ``mon``) running on a cluster member."""

    member: str
    service: str
    id: int = 0


@dataclass(frozen=True)
class ServiceFilter:
    """Selects services by member, by service name, or by both."""

    member: str | None = None
    service: str | None = None


def _filter_clause(service_filter: ServiceFilter) -> tuple[str, list[Any]]:
    parts = [
        (column, value)
        for column, value in (
            ("internal_cluster_members.name", service_filter.member),
            ("services.service", service_filter.service),
        )
        if value is not None
    ]
    if not parts:
        raise ValueError("Cannot filter on empty ServiceFilter")
    clause = " AND ".join(f"{column} = ?" for column, _ in parts)
    return f"( {clause} )", [value for _, value in parts]


def get_services(tx: sqlite3.Connection, *filters: ServiceFilter) -> list[Service]:
    """Return the services matching any of ``filters``, or all services.

    Results are ordered by member, then by service name.
    """
    return _select(
        tx,
        _SELECT,
        _ORDER,
        filters,
        _filter_clause,
        lambda row_id, member, service: Service(id=row_id, member=member, service=service),
    )


def get_service(tx: sqlite3.Connection, member: str, service: str) -> Service:
    """Return the ``service`` running on ``member``."""
    services = get_services(tx, ServiceFilter(member=member, service=service))
    return _only(services, "Service", "services")


def get_service_id(tx: sqlite3.Connection, member: str, service: str) -> int:
    return _lookup_id(
        tx,
        "SELECT services.id FROM services"
        " JOIN internal_cluster_members ON services.member_id = internal_cluster_members.id"
        " WHERE internal_cluster_members.name = ? AND services.service = ?",
        (member, service),
        "Service",
    )


def service_exists(tx: sqlite3.Connection, member: str, service: str) -> bool:
    return _exists(get_service_id, tx, member, service)


def create_service(tx: sqlite3.Connection, service: Service) -> int:
    """Insert ``service`` and return its new id."""
    return _insert(
        tx,
        service_exists(tx, service.member, service.service),
        "services",
        f"INSERT INTO services (member_id, service) VALUES ({_MEMBER_ID}, ?)",
        (service.member, service.service),
    )


def delete_service(tx: sqlite3.Connection, member: str, service: str) -> None:
    """Delete ``service`` from ``member``."""
    _delete_one(
        tx,
        f"DELETE FROM services WHERE member_id = {_MEMBER_ID} AND service = ?",
        (member, service),
        "Service",
    )


def delete_services(tx: sqlite3.Connection, member: str) -> None:
    """Delete every service of ``member``."""
    tx.execute(f"DELETE FROM services WHERE member_id = {_MEMBER_ID}", (member,))


def update_service(
    tx: sqlite3.Connection, member: str, service: str, new: Service
) -> None:
    """Replace the ``service`` record of ``member`` with ``new``."""
    service_id = get_service_id(tx, member, service)
    _update_one(
        tx,
        f"UPDATE services SET member_id = {_MEMBER_ID}, service = ? WHERE id = ?",
        (new.member, new.service, service_id),
    )