"""Bootstrap, join and manage a small Ceph cluster through a cluster database and a command runner."""

__version__ = "0.1"