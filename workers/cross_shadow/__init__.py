"""
cross_shadow — run ``cross build`` with the user's cargo config hidden.

Four recipes (default/release, with or without an explicit target) move
``$CARGO_HOME/config.toml`` aside, invoke the cross-compilation tool once,
and put the file back on every exit path.
"""

__version__ = "1.0.0"
RUNNER_VERSION = "v1"
PACKAGE_NAME = "cross_shadow"
SCHEMA_VERSION = "1.0"
