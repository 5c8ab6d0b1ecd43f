[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "microceph"
version = "0.1"
description = "Bootstrap, join and manage a small Ceph cluster: config rendering, keyrings, daemon set-up and a cluster database"
requires-python = ">=3.10"
dependencies = []
keywords = ["ceph", "storage", "cluster", "osd", "radosgw", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Clustering",
    "Topic :: System :: Filesystems",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["microceph"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
