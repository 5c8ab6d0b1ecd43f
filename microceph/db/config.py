"""The cluster-wide configuration table, and row helpers shared by the tables."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Callable, Iterable, Sequence, TypeVar

from microceph.db.schema import StatusError

_T = TypeVar("_T")
_F = TypeVar("_F")


def _select(
    tx: sqlite3.Connection,
    base: str,
    order: str,
    filters: Iterable[_F],
    clause_for: Callable[[_F], tuple[str, list[Any]]],
    build: Callable[..., _T],
) -> list[_T]:
    """Run ``base`` with the filters' clauses OR-ed together, building one object per row."""
    clauses: list[str] = []
    params: list[Any] = []
    for row_filter in filters:
        clause, args = clause_for(row_filter)
        clauses.append(clause)
        params.extend(args)
    query = base + (" WHERE " + " OR ".join(clauses) if clauses else "") + order
    return [build(*row) for row in tx.execute(query, params)]


def _only(objects: list[_T], noun: str, table: str) -> _T:
    if not objects:
        raise StatusError(HTTPStatus.NOT_FOUND, f"{noun} not found")
    if len(objects) > 1:
        raise LookupError(f'More than one "{table}" entry matches')
    return objects[0]


def _lookup_id(tx: sqlite3.Connection, query: str, params: Sequence[Any], noun: str) -> int:
    row = tx.execute(query, params).fetchone()
    if row is None:
        raise StatusError(HTTPStatus.NOT_FOUND, f"{noun} not found")
    return int(row[0])


def _exists(get_id: Callable[..., int], tx: sqlite3.Connection, *key: Any) -> bool:
    try:
        get_id(tx, *key)
    except StatusError as err:
        if err.status == HTTPStatus.NOT_FOUND:
            return False
        raise
    return True


def _insert(
    tx: sqlite3.Connection, duplicate: bool, table: str, query: str, params: Sequence[Any]
) -> int:
    if duplicate:
        raise StatusError(HTTPStatus.CONFLICT, f'This "{table}" entry already exists')
    return int(tx.execute(query, params).lastrowid)


def _delete_one(tx: sqlite3.Connection, query: str, params: Sequence[Any], noun: str) -> None:
    count = tx.execute(query, params).rowcount
    if count == 0:
        raise StatusError(HTTPStatus.NOT_FOUND, f"{noun} not found")
    if count > 1:
        raise RuntimeError(f"Query deleted {count} {noun} rows instead of 1")


def _update_one(tx: sqlite3.Connection, query: str, params: Sequence[Any]) -> None:
    count = tx.execute(query, params).rowcount
    if count != 1:
        raise RuntimeError(f"Query updated {count} rows instead of 1")


@dataclass
class ConfigItem:
    """A configuration key and its value."""

    key: str
    value: str
    id: int = 0


@dataclass(frozen=True)
class ConfigItemFilter:
    """Selects configuration items by key."""

    key: str | None = None


def _config_clause(item_filter: ConfigItemFilter) -> tuple[str, list[Any]]:
    if item_filter.key is None:
        raise ValueError("Cannot filter on empty ConfigItemFilter")
    return "( config.key = ? )", [item_filter.key]


def get_config_items(tx: sqlite3.Connection, *filters: ConfigItemFilter) -> list[ConfigItem]:
    """Return the items matching any of ``filters``, or all items, ordered by key."""
    return _select(
        tx,
        "SELECT config.id, config.key, config.value FROM config",
        " ORDER BY config.key",
        filters,
        _config_clause,
        lambda row_id, key, value: ConfigItem(id=row_id, key=key, value=value),
    )


def get_config_item(tx: sqlite3.Connection, key: str) -> ConfigItem:
    return _only(get_config_items(tx, ConfigItemFilter(key=key)), "ConfigItem", "config")


def get_config_item_id(tx: sqlite3.Connection, key: str) -> int:
    return _lookup_id(
        tx, "SELECT config.id FROM config WHERE config.key = ?", (key,), "ConfigItem"
    )


def config_item_exists(tx: sqlite3.Connection, key: str) -> bool:
    return _exists(get_config_item_id, tx, key)


def create_config_item(tx: sqlite3.Connection, item: ConfigItem) -> int:
    """Insert ``item`` and return its new id."""
    return _insert(
        tx,
        config_item_exists(tx, item.key),
        "config",
        "INSERT INTO config (key, value) VALUES (?, ?)",
        (item.key, item.value),
    )


def delete_config_item(tx: sqlite3.Connection, key: str) -> None:
    _delete_one(tx, "DELETE FROM config WHERE key = ?", (key,), "ConfigItem")


def update_config_item(tx: sqlite3.Connection, key: str, item: ConfigItem) -> None:
    """Replace the item stored under ``key`` with ``item``."""
    item_id = get_config_item_id(tx, key)
    _update_one(
        tx,
        "UPDATE config SET key = ?, value = ? WHERE id = ?",
        (item.key, item.value, item_id),
    )