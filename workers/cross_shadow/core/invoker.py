"""
Invoker — run the external build tool once and wait for its exit status.

Failures to start or finish the process are folded into the result
(127 for a missing tool, 126 for one that cannot be executed, -1 for a
timeout) instead of raised, so the caller always gets a record to put in
the receipt.
"""
from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

EXIT_NOT_EXECUTABLE = 126
EXIT_TOOL_NOT_FOUND = 127
EXIT_TIMEOUT = -1


@dataclass
class InvocationResult:
    argv: List[str]
    exit_code: int
    duration_ms: int = 0
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    timed_out: bool = False
    captured: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


def invoke(
    argv: List[str],
    cwd: Optional[Path] = None,
    timeout: Optional[int] = None,
    capture: bool = False,
    env: Optional[Dict[str, str]] = None,
) -> InvocationResult:
    """
    Execute *argv* (no shell) and return an InvocationResult.

    With ``capture=False`` the tool writes straight to the inherited
    stdout/stderr, which is what an interactive build wants.
    """
    logger.info("Running: %s", " ".join(argv))

    t0 = time.monotonic()
    try:
        result = subprocess.run(
            argv,
            cwd=str(cwd) if cwd is not None else None,
            capture_output=capture,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=env,
        )
    except OSError as e:
        duration = int((time.monotonic() - t0) * 1000)
        if isinstance(e, FileNotFoundError):
            exit_code = EXIT_TOOL_NOT_FOUND
        else:
            exit_code = EXIT_NOT_EXECUTABLE
        logger.error("Cannot start %s: %s", argv[0], e)
        return InvocationResult(
            argv=list(argv),
            exit_code=exit_code,
            duration_ms=duration,
            stderr=str(e),
            captured=capture,
        )
    except subprocess.TimeoutExpired as e:
        duration = int((time.monotonic() - t0) * 1000)
        logger.error("%s timed out after %ss", argv[0], timeout)
        return InvocationResult(
            argv=list(argv),
            exit_code=EXIT_TIMEOUT,
            duration_ms=duration,
            stdout=_as_text(e.stdout) if capture else None,
            stderr=f"TIMEOUT after {timeout}s",
            timed_out=True,
            captured=capture,
        )

    duration = int((time.monotonic() - t0) * 1000)
    logger.info("%s exited with %d after %d ms", argv[0], result.returncode, duration)
    return InvocationResult(
        argv=list(argv),
        exit_code=result.returncode,
        duration_ms=duration,
        stdout=result.stdout if capture else None,
        stderr=result.stderr if capture else None,
        captured=capture,
    )


def _as_text(data) -> Optional[str]:
    if data is None:
        return None
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
