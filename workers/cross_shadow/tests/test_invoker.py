"""
test_invoker — running the external tool and folding failures into results.
"""
from cross_shadow.core.invoker import (
    EXIT_NOT_EXECUTABLE,
    EXIT_TIMEOUT,
    EXIT_TOOL_NOT_FOUND,
    invoke,
)


class TestInvoke:

    def test_success_captured(self, fake_cross, project_dir, calls):
        result = invoke([str(fake_cross), "build"], cwd=project_dir, capture=True)

        assert result.ok is True
        assert result.exit_code == 0
        assert "Compiling demo" in result.stdout
        assert "warning" in result.stderr
        assert result.captured is True
        assert result.duration_ms >= 0

        recorded = calls()
        assert len(recorded) == 1
        assert recorded[0]["args"] == ["build"]
        assert recorded[0]["cwd"] == str(project_dir)

    def test_streamed_output_not_kept(self, fake_cross, project_dir):
        result = invoke([str(fake_cross), "build"], cwd=project_dir, capture=False)
        assert result.ok is True
        assert result.stdout is None
        assert result.stderr is None

    def test_nonzero_exit(self, fake_cross, project_dir, monkeypatch):
        monkeypatch.setenv("FAKE_CROSS_EXIT", "101")
        result = invoke([str(fake_cross), "build"], cwd=project_dir, capture=True)

        assert result.ok is False
        assert result.exit_code == 101
        assert result.timed_out is False

    def test_tool_not_found(self, tmp_path):
        result = invoke([str(tmp_path / "no-such-cross"), "build"], capture=True)

        assert result.exit_code == EXIT_TOOL_NOT_FOUND
        assert result.ok is False
        assert result.stderr

    def test_tool_not_executable(self, posix_ok, tmp_path):
        tool = tmp_path / "cross"
        tool.write_text("#!/bin/sh\nexit 0\n")
        tool.chmod(0o644)

        result = invoke([str(tool), "build"])
        assert result.exit_code == EXIT_NOT_EXECUTABLE

    def test_timeout(self, fake_cross, project_dir, monkeypatch):
        monkeypatch.setenv("FAKE_CROSS_SLEEP", "10")
        result = invoke([str(fake_cross), "build"], cwd=project_dir, timeout=1)

        assert result.timed_out is True
        assert result.exit_code == EXIT_TIMEOUT
        assert result.ok is False
        assert "TIMEOUT" in result.stderr

    def test_undecodable_output_replaced(self, fake_cross, project_dir, monkeypatch):
        monkeypatch.setenv("FAKE_CROSS_RAW", "1")
        result = invoke([str(fake_cross), "build"], cwd=project_dir, capture=True)

        assert result.ok is True
        assert "Compiling \ufffd\ufffd demo" in result.stdout
