"""
test_toolchain — version probes and their per-tool cache.
"""
import pytest

import cross_shadow.core.toolchain as toolchain_mod
from cross_shadow.core.toolchain import capture_toolchain


@pytest.fixture
def probes(monkeypatch):
    """Replace the version probe; returns the list of commands it was given."""
    seen = []

    def fake_first_line(cmd, timeout=10):
        seen.append(cmd)
        return f"{cmd[0]} 1.0"

    monkeypatch.setattr(toolchain_mod, "_toolchain_cache", {})
    monkeypatch.setattr(toolchain_mod, "_first_line", fake_first_line)
    return seen


class TestCaptureToolchain:

    def test_cached_per_tool(self, probes):
        first = capture_toolchain("/opt/a/cross")
        second = capture_toolchain("/opt/b/cross")

        assert first.cross_version == "/opt/a/cross 1.0"
        assert second.cross_version == "/opt/b/cross 1.0"

        again = capture_toolchain("/opt/a/cross")
        assert again is first
        assert [c for c in probes if c[-1] == "--version" and "cross" in c[0]] == [
            ["/opt/a/cross", "--version"],
            ["/opt/b/cross", "--version"],
        ]

    def test_refresh(self, probes):
        capture_toolchain("cross")
        capture_toolchain("cross", refresh=True)
        assert probes.count(["cross", "--version"]) == 2

    def test_missing_tool_is_unknown(self, tmp_path, monkeypatch):
        monkeypatch.setattr(toolchain_mod, "_toolchain_cache", {})
        identity = capture_toolchain(str(tmp_path / "no-such-cross"))
        assert identity.cross_version == "unknown"
        assert identity.arch
