"""Listing of the services recorded in the cluster database."""

from __future__ import annotations

from microceph.db.services import get_services
from microceph.state import CephState
from microceph.types import Service


def list_services(state: CephState) -> list[Service]:
    """Return every recorded service with the member it runs on."""
    if state.database is None:
        raise RuntimeError("no database")
    with state.database.transaction() as tx:
        try:
            records = get_services(tx)
        except Exception as err:
            raise RuntimeError(f"Failed to fetch service: {err}") from err
    return [Service(service=record.service, location=record.member) for record in records]