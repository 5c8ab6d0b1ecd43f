"""Rendering of the Ceph configuration and keyring files."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Any, Mapping

_PLACEHOLDER = re.compile(r"\{\{\s*\.(\w+)\s*\}\}")
_MISSING = "<no value>"

_CEPH_CONF = """# # Generated by MicroCeph, DO NOT EDIT.
[global]
run dir = {{.runDir}}
fsid = {{.fsid}}
mon host = {{.monitors}}
auth allow insecure global id reclaim = false
public addr = {{.addr}}
"""

_CEPH_KEYRING = """# Generated by MicroCeph, DO NOT EDIT.
[{{.name}}]
\tkey = {{.key}}
"""

_RADOSGW_CONF = """# Generated by MicroCeph, DO NOT EDIT.
[global]
mon host = {{.monitors}}
run dir = {{.runDir}}
auth allow insecure global id reclaim = false

[client.radosgw.gateway]
rgw init timeout = 1200
rgw frontends = beast port={{.rgwPort}}
"""


def _format(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return str(value)


@dataclass(frozen=True)
class ConfigFile:
    """A configuration file rendered from a template into a directory."""

    template: str
    config_dir: str
    config_file: str

    def path(self) -> str:
        return os.path.join(self.config_dir, self.config_file)

    def render(self, data: Mapping[str, Any]) -> str:
        """Fill the template's ``{{.name}}`` fields from ``data``."""

        def substitute(match: re.Match[str]) -> str:
            key = match.group(1)
            return _format(data[key]) if key in data else _MISSING

        return _PLACEHOLDER.sub(substitute, self.template)

    def write(self, data: Mapping[str, Any]) -> None:
        """Render the template and write it, replacing any existing file."""
        content = self.render(data)
        try:
            fd = os.open(self.path(), os.O_CREAT | os.O_TRUNC | os.O_RDWR, 0o644)
        except OSError as err:
            raise OSError(f"Couldn't write {self.config_file}: {err}") from err
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)


def ceph_config(config_dir: str) -> ConfigFile:
    return ConfigFile(_CEPH_CONF, config_dir, "ceph.conf")


def ceph_keyring(config_dir: str, config_file: str) -> ConfigFile:
    return ConfigFile(_CEPH_KEYRING, config_dir, config_file)


def radosgw_config(config_dir: str) -> ConfigFile:
    return ConfigFile(_RADOSGW_CONF, config_dir, "radosgw.conf")