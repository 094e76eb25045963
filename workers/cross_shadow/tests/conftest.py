"""
Shared pytest fixtures for cross_shadow tests.

Provides a throwaway CARGO_HOME with a config.toml and a fake ``cross``
executable (POSIX shell script) that records every call:

  - its arguments, one per line
  - whether the cargo config file was visible while it ran
  - its working directory

and exits with ``$FAKE_CROSS_EXIT`` (default 0).  ``$FAKE_CROSS_RAW`` makes it
print bytes that are not valid UTF-8.

Tests are automatically skipped on Windows (no /bin/sh).
"""
import os
import platform
import stat
import sys
import textwrap
from pathlib import Path
from typing import Dict, List

import pytest

from cross_shadow.config import Settings

CONFIG_BYTES = textwrap.dedent("""\
    # user cargo config
    [build]
    target = "x86_64-unknown-linux-gnu"
    rustflags = ["-C", "target-cpu=native"]

    [target.aarch64-unknown-linux-gnu]
    linker = "aarch64-linux-gnu-gcc"
""").encode("utf-8") + b"\x00trailing-bytes\xff"

FAKE_CROSS = textwrap.dedent("""\
    #!/bin/sh
    {
      echo "---"
      if [ -e "$FAKE_CROSS_CONFIG" ]; then echo "config=visible"; else echo "config=hidden"; fi
      echo "cwd=$(pwd)"
      for a in "$@"; do printf '%s\\n' "arg=$a"; done
    } >> "$FAKE_CROSS_LOG"
    echo "Compiling demo v0.1.0"
    if [ -n "$FAKE_CROSS_RAW" ]; then printf 'Compiling \\377\\376 demo\\n'; fi
    echo "warning: unused variable" >&2
    if [ -n "$FAKE_CROSS_SLEEP" ]; then exec sleep "$FAKE_CROSS_SLEEP"; fi
    exit "${FAKE_CROSS_EXIT:-0}"
""")


def read_calls(log_path: Path) -> List[Dict]:
    """Parse the fake tool's call log into one dict per invocation."""
    if not log_path.exists():
        return []
    calls: List[Dict] = []
    for line in log_path.read_text().splitlines():
        if line == "---":
            calls.append({"args": []})
            continue
        key, _, value = line.partition("=")
        if key == "arg":
            calls[-1]["args"].append(value)
        else:
            calls[-1][key] = value
    return calls


@pytest.fixture(scope="session")
def posix_ok():
    """Skip tests that need /bin/sh."""
    if platform.system() == "Windows" or not Path("/bin/sh").exists():
        pytest.skip("fake cross tool needs a POSIX shell")


@pytest.fixture
def cargo_home(tmp_path) -> Path:
    """CARGO_HOME containing a config.toml with known bytes."""
    home = tmp_path / "cargo_home"
    home.mkdir()
    (home / "config.toml").write_bytes(CONFIG_BYTES)
    return home


@pytest.fixture
def config_path(cargo_home) -> Path:
    return cargo_home / "config.toml"


@pytest.fixture
def backup_path(cargo_home) -> Path:
    return cargo_home / "config.toml.old"


@pytest.fixture
def project_dir(tmp_path) -> Path:
    """An empty crate directory to run the build in."""
    d = tmp_path / "demo"
    d.mkdir()
    (d / "Cargo.toml").write_text('[package]\nname = "demo"\nversion = "0.1.0"\n')
    return d


@pytest.fixture
def call_log(tmp_path) -> Path:
    return tmp_path / "cross_calls.log"


@pytest.fixture
def calls(call_log):
    """Callable returning the calls recorded so far by the fake tool."""
    return lambda: read_calls(call_log)


@pytest.fixture
def fake_cross(posix_ok, tmp_path, monkeypatch, call_log, config_path) -> Path:
    """Executable fake ``cross`` wired to this test's log and config path."""
    script = tmp_path / "bin" / "cross"
    script.parent.mkdir()
    script.write_text(FAKE_CROSS)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    monkeypatch.setenv("FAKE_CROSS_LOG", str(call_log))
    monkeypatch.setenv("FAKE_CROSS_CONFIG", str(config_path))
    monkeypatch.delenv("FAKE_CROSS_EXIT", raising=False)
    monkeypatch.delenv("FAKE_CROSS_SLEEP", raising=False)
    monkeypatch.delenv("FAKE_CROSS_RAW", raising=False)
    return script


@pytest.fixture
def settings(cargo_home, fake_cross) -> Settings:
    """Runner settings pointing at the temp CARGO_HOME and the fake tool."""
    return Settings(
        CARGO_HOME=cargo_home,
        CROSS_BIN=str(fake_cross),
        RECORD_TOOLCHAIN=False,
        RECEIPTS_PATH=None,
        CAPTURE_OUTPUT=True,
        BUILD_TIMEOUT=60,
    )


@pytest.fixture
def elf_file() -> Path:
    """Path to a real ELF executable (the running interpreter)."""
    exe = Path(os.path.realpath(sys.executable))
    with open(exe, "rb") as f:
        if f.read(4) != b"\x7fELF":
            pytest.skip("interpreter binary is not ELF on this platform")
    return exe


@pytest.fixture
def config_bytes() -> bytes:
    """Exact bytes of the config.toml written by ``cargo_home``."""
    return CONFIG_BYTES
