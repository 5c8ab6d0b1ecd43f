"""Background refresh of the configuration when the monitor set changes."""

from __future__ import annotations

import threading
from typing import Sequence

from microceph.cephconf import update_config
from microceph.db.services import ServiceFilter, get_services
from microceph.state import CephState

_RETRY_DELAY = 10.0
_REFRESH_INTERVAL = 60.0


def refresh_config_if_changed(state: CephState, old_monitors: Sequence[str]) -> list[str]:
    """Regenerate the configuration if the monitors differ from ``old_monitors``.

    Returns the monitor members now in effect.
    """
    if state.database is None:
        raise RuntimeError("no database")
    with state.database.transaction() as tx:
        monitors = [s.member for s in get_services(tx, ServiceFilter(service="mon"))]

    if monitors == list(old_monitors):
        return list(old_monitors)

    update_config(state)
    return monitors


def start(state: CephState, stop_event: threading.Event | None = None) -> threading.Thread:
    """Start a daemon thread that keeps the configuration in step with the monitors.

    The thread runs until ``stop_event`` is set.
    """
    stop = stop_event if stop_event is not None else threading.Event()

    def loop() -> None:
        monitors: list[str] = []
        while not stop.is_set():
            database = state.database
            if database is None or not database.is_open():
                stop.wait(_RETRY_DELAY)
                continue
            try:
                monitors = refresh_config_if_changed(state, monitors)
            except Exception:
                stop.wait(_RETRY_DELAY)
                continue
            stop.wait(_REFRESH_INTERVAL)

    thread = threading.Thread(target=loop, name="microceph-config-refresh", daemon=True)
    thread.start()
    return thread