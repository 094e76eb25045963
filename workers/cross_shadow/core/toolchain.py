"""
Toolchain identity — versions of the tools a build ran with.

Captured once per process and tool path, and recorded in receipts when
RECORD_TOOLCHAIN is on.
"""
import logging
import platform
import subprocess
from pathlib import Path
from typing import Dict, List

from cross_shadow.io.schema import ToolchainIdentity

logger = logging.getLogger(__name__)

_toolchain_cache: Dict[str, ToolchainIdentity] = {}


def _first_line(cmd: List[str], timeout: int = 10) -> str:
    """First stdout line of *cmd*, or "unknown" if it cannot be run."""
    try:
        r = subprocess.run(
            cmd, capture_output=True, encoding="utf-8", errors="replace", timeout=timeout,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug("Version probe %s failed: %s", cmd, e)
        return "unknown"
    lines = r.stdout.strip().splitlines()
    return lines[0] if lines else "unknown"


def _os_release() -> str:
    try:
        for line in Path("/etc/os-release").read_text().splitlines():
            if line.startswith("PRETTY_NAME="):
                return line.split("=", 1)[1].strip('"')
    except OSError:
        pass
    return platform.system() or "unknown"


def capture_toolchain(cross_bin: str = "cross", refresh: bool = False) -> ToolchainIdentity:
    """Capture toolchain identity. Cached per *cross_bin* after first call."""
    cached = _toolchain_cache.get(cross_bin)
    if cached is not None and not refresh:
        return cached

    identity = ToolchainIdentity(
        cross_version=_first_line([cross_bin, "--version"]),
        cargo_version=_first_line(["cargo", "--version"]),
        rustc_version=_first_line(["rustc", "--version"]),
        os_release=_os_release(),
        kernel=platform.release() or "unknown",
        arch=platform.machine() or "unknown",
    )
    _toolchain_cache[cross_bin] = identity
    return identity
