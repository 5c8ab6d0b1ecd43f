"""Creation and parsing of Ceph keyrings."""

from __future__ import annotations

from typing import Sequence

from microceph.state import Runner, ceph_run


def _capability_args(caps: Sequence[Sequence[str]], flag: str | None) -> list[str]:
    args: list[str] = []
    for capability in caps:
        if len(capability) != 2:
            raise ValueError(
                f"Invalid keyring capability: [{' '.join(map(str, capability))}]"
            )
        if flag:
            args.append(flag)
        args.extend(capability)
    return args


def gen_keyring(runner: Runner, path: str, name: str, *caps: Sequence[str]) -> None:
    """Create a keyring file at ``path`` holding a new key for ``name``."""
    args = ["--create-keyring", path, "--gen-key", "-n", name]
    args.extend(_capability_args(caps, "--cap"))
    runner.run_command("ceph-authtool", *args)


def import_keyring(runner: Runner, path: str, source: str) -> None:
    """Import the keys of ``source`` into the keyring at ``path``."""
    runner.run_command("ceph-authtool", path, "--import-keyring", source)


def gen_auth(runner: Runner, path: str, name: str, *caps: Sequence[str]) -> None:
    """Get or create the cluster key for ``name`` and save it to ``path``."""
    args = ["auth", "get-or-create", name]
    args.extend(_capability_args(caps, None))
    args.extend(["-o", path])
    ceph_run(runner, *args)


def parse_keyring(path: str) -> str:
    """Return the first key found in the keyring file at ``path``."""
    try:
        handle = open(path, encoding="utf-8")
    except OSError as err:
        raise OSError(f'Failed to open "{path}": {err}') from err

    secret = ""
    with handle:
        for raw in handle:
            line = raw.strip()
            if not line or not line.startswith("key"):
                continue
            _, sep, value = line.partition("=")
            if not sep:
                continue
            secret = value.strip()
            break

    if not secret:
        raise ValueError("Couldn't find a keyring entry")
    return secret