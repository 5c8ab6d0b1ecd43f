# microceph

A library for standing up and running a small Ceph cluster. It keeps the
cluster's bookkeeping in a SQLite database and writes the local files each node
needs. It drives the Ceph tools (`ceph`, `ceph-authtool`, `monmaptool`,
`ceph-mon`, `ceph-osd`, `snapctl`, `dd`) through a `Runner` object that you supply.

What it covers:

- rendering `ceph.conf`, client keyrings and the RADOS gateway configuration
  (`microceph.configwriter`);
- a cluster database of configuration items, disks (OSDs) and the services each
  member runs (`microceph.db.schema`, `microceph.db.config`, `microceph.db.disks`,
  `microceph.db.services`);
- creating and reading keyrings (`microceph.keyring`) and setting up monitor,
  manager and metadata server daemons (`microceph.daemons`);
- bootstrapping a new cluster, joining a node to an existing one, adding and
  listing OSDs, listing services and enabling the RADOS gateway
  (`microceph.bootstrap`, `microceph.join`, `microceph.osd`, `microceph.listing`,
  `microceph.rgw`);
- regenerating `ceph.conf` and the admin keyring from the database
  (`microceph.cephconf.update_config`), and a background thread that does so
  whenever the set of monitors changes (`microceph.start`);
- request and response payloads with `to_dict`/`from_dict` (`microceph.types`:
  `DisksPost`, `Disk`, `Service`).

## Installation

```
pip install .
```

Python 3.10 or later; no third-party dependencies. For the tests:

```
pip install .[test]
pytest
```

## Layout on disk

Paths come from the `SNAP_DATA` and `SNAP_COMMON` environment variables:

| Path                  | Contents                          |
|-----------------------|-----------------------------------|
| `$SNAP_DATA/conf`     | `ceph.conf`, keyrings             |
| `$SNAP_DATA/run`      | runtime directory                 |
| `$SNAP_COMMON/data`   | mon, mgr, mds, osd and rgw data   |
| `$SNAP_COMMON/logs`   | logs                              |

`SnapPaths.from_env()` (in `microceph.state`) reads these, and
`SnapPaths.create()` makes the directories (`conf` with mode 0755, the others
0700). A `CephState` takes its `paths` from the environment unless you pass a
`SnapPaths` yourself.

## Writing configuration files

```python
from microceph.configwriter import ceph_config, ceph_keyring, radosgw_config

conf = ceph_config("/tmp/conf")
conf.write({"fsid": "fsid1234", "runDir": "/tmp/run",
            "monitors": "foohost", "addr": "foohost"})
print(conf.path())          # /tmp/conf/ceph.conf

keyring = ceph_keyring("/tmp/conf", "ceph.keyring")
keyring.write({"name": "client.admin", "key": "secret"})

print(radosgw_config("/tmp/conf").render({"monitors": "foohost"}))
```

Each `ConfigFile` fills the `{{.name}}` fields of its template. A field with no
value in the mapping is rendered as `<no value>`; `True`/`False` become
`true`/`false` and `None` becomes `<nil>`.

## Cluster database

`microceph.db.schema.Database` opens a SQLite database (in memory by default),
creates the member table and applies the schema. Work happens inside a
transaction, which rolls back if its body raises:

```python
from microceph.db.schema import Database
from microceph.db.services import Service, ServiceFilter, create_service, get_services

with Database(":memory:") as db:
    db.add_member("node1", "10.0.0.1:7443")
    with db.transaction() as tx:
        create_service(tx, Service(member="node1", service="mon"))
        monitors = get_services(tx, ServiceFilter(service="mon"))
```

Each table has get-many (with filters OR-ed together), get-one, id lookup,
exists, create, delete and update functions. Lookups that find nothing raise
`StatusError` with status 404; creating a duplicate raises it with status 409.
An empty filter raises `ValueError`.

## Cluster operations

`bootstrap(state)`, `join(state)`, `add_osd(state, path, wipe)`,
`next_osd(state)`, `list_osd(state)`, `list_services(state)` and
`enable_rgw(state, port)` take a `CephState`. It carries the member's name and
address, the cluster database, the other members (`remotes`, name to address),
the local block devices (`disks`, a list of `StorageDisk`) and the `Runner`.

A `Runner` is any object with `run_command(name, *args) -> str`. It should raise
an exception, such as `CommandError`, when a command fails:

```python
import subprocess
from microceph.state import CephState, CommandError
from microceph.db.schema import Database

class ProcessRunner:
    def run_command(self, name, *args):
        done = subprocess.run([name, *args], capture_output=True, text=True)
        if done.returncode != 0:
            raise CommandError(name, args, done.stderr.strip())
        return done.stdout

db = Database("/var/lib/cluster.db")
db.add_member("node1", "10.0.0.1:7443")
state = CephState(name="node1", address="10.0.0.1:7443",
                  runner=ProcessRunner(), database=db)
```

- `bootstrap` creates a new fsid, the keyrings and monitor map, sets up and
  starts mon, mgr and mds, enables msgr2, starts the OSD service, records the
  services, fsid and admin key, and rewrites the configuration.
- `join` rewrites the configuration from the database, then sets up and starts
  each of mon, mgr and mds of which the cluster has fewer than three, records
  them, and starts the OSD service.
- `add_osd` needs `path` to be a block device. It swaps in a
  `/dev/disk/by-id` path when the device is found in `state.disks`, optionally
  wipes the first 40 MiB, picks the lowest OSD number unused by Ceph and the
  database, creates the OSD, records the disk and reloads the OSD service.
- `enable_rgw` writes `radosgw.conf`, creates the gateway keyring if missing,
  links it into the conf directory, records the `rgw` service and starts it.

Operations that need the database raise `RuntimeError("no database")` when
`state.database` is `None`. Failures of individual steps are raised as
`RuntimeError` with a message naming the step.

`start(state, stop_event)` starts a daemon thread that checks the monitors
every minute (every ten seconds after an error or while the database is closed)
and calls `update_config` when they change; set the event to stop it.
`refresh_config_if_changed(state, old_monitors)` does one such check.

## What this package does not do

- It has no command-line tool and no daemon or HTTP API; everything is called
  from Python.
- It does not manage cluster membership: there are no join tokens and no
  network handshake between members. Members are added with
  `Database.add_member`, and `CephState.remotes` is filled in by the caller.
- It does not run programs itself and does not discover local disks; the
  `Runner` and `CephState.disks` come from the caller.