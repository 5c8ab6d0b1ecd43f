"""Request and response payloads exchanged with the daemon."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping, TypeVar

VERSION = "0.1"

_CONVERTERS: dict[str, Callable[..., Any]] = {"str": str, "bool": bool, "int": int}

_T = TypeVar("_T")


def _to_dict(payload: Any) -> dict[str, Any]:
    """Return the payload's fields as a JSON-style mapping."""
    return {field.name: getattr(payload, field.name) for field in fields(payload)}


def _from_dict(cls: type[_T], data: Mapping[str, Any]) -> _T:
    """Build a payload from a mapping, defaulting missing fields to zero values."""
    values = {}
    for field in fields(cls):  # type: ignore[arg-type]
        convert = _CONVERTERS[str(field.type)]
        values[field.name] = convert(data.get(field.name, convert()))
    return cls(**values)


@dataclass(frozen=True)
class DisksPost:
    """A request to add a disk, optionally wiping it first."""

    path: str
    wipe: bool = False

    def to_dict(self) -> dict[str, Any]:
        return _to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DisksPost:
        return _from_dict(cls, data)


@dataclass(frozen=True)
class Disk:
    """A configured disk: its OSD number, device path and owning member."""

    osd: int
    path: str
    location: str

    def to_dict(self) -> dict[str, Any]:
        return _to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Disk:
        return _from_dict(cls, data)


@dataclass(frozen=True)
class Service:
    """A service name and the member it runs on."""

    service: str
    location: str

    def to_dict(self) -> dict[str, Any]:
        return _to_dict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Service:
        return _from_dict(cls, data)