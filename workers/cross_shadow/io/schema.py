"""
Schema — Pydantic models for the run receipt.

One receipt per recipe run: run_receipt.json.

Runtime contract fields (present in every receipt):
  package_name, runner_version, schema_version.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from cross_shadow import PACKAGE_NAME, RUNNER_VERSION, SCHEMA_VERSION


class RunStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    TIMEOUT = "TIMEOUT"
    ABORTED = "ABORTED"      # shadow precondition failed, tool not run
    DRY_RUN = "DRY_RUN"


class AbortReason(str, Enum):
    CONFIG_MISSING = "CONFIG_MISSING"
    BACKUP_EXISTS = "BACKUP_EXISTS"
    PROJECT_DIR_MISSING = "PROJECT_DIR_MISSING"


# ── Toolchain ────────────────────────────────────────────────────────────────

class ToolchainIdentity(BaseModel):
    """Record of the tools available when the build ran."""
    cross_version: str
    cargo_version: str
    rustc_version: str
    os_release: str
    kernel: str
    arch: str


# ── Shadow ───────────────────────────────────────────────────────────────────

class ShadowRecord(BaseModel):
    config_path: str
    backup_path: str
    config_present: bool = False
    shadowed: bool = False
    restored: bool = False
    sha256_before: Optional[str] = None
    sha256_after: Optional[str] = None
    byte_identical: Optional[bool] = None


# ── Invocation ───────────────────────────────────────────────────────────────

class InvocationRecord(BaseModel):
    argv: List[str]
    exit_code: int
    duration_ms: int = 0
    timed_out: bool = False
    captured: bool = False
    # Captured output lives in stdout.log / stderr.log when the receipt is
    # written, and inline (tail only) when it is not.
    stdout_path_rel: Optional[str] = None
    stderr_path_rel: Optional[str] = None
    stdout: Optional[str] = None
    stderr: Optional[str] = None


# ── Artifacts ────────────────────────────────────────────────────────────────

class ElfMeta(BaseModel):
    """Minimal ELF header facts."""
    elf_type: str = ""       # ET_EXEC, ET_DYN
    machine: str = ""        # EM_AARCH64, EM_X86_64, ...
    elf_class: int = 0       # 32 | 64
    build_id: Optional[str] = None


class ArtifactMeta(BaseModel):
    path_rel: str            # relative to the project dir
    sha256: str
    size_bytes: int
    elf: ElfMeta = ElfMeta()


# ── Receipt ──────────────────────────────────────────────────────────────────

class RecipeRecord(BaseModel):
    name: str
    profile: str
    target: Optional[str] = None


class RunReceipt(BaseModel):
    """Single receipt for one recipe run."""

    package_name: str = PACKAGE_NAME
    runner_version: str = RUNNER_VERSION
    schema_version: str = SCHEMA_VERSION

    run_id: str
    created_at: str
    finished_at: Optional[str] = None
    status: RunStatus

    recipe: RecipeRecord
    argv: List[str]
    project_dir: str

    shadow: Optional[ShadowRecord] = None
    invocation: Optional[InvocationRecord] = None
    toolchain: Optional[ToolchainIdentity] = None
    artifacts: List[ArtifactMeta] = Field(default_factory=list)

    abort_reason: Optional[AbortReason] = None
    error_message: Optional[str] = None

    @property
    def exit_code(self) -> int:
        """Process exit status a CLI should report for this run."""
        if self.invocation is not None:
            return self.invocation.exit_code
        if self.status in (RunStatus.SUCCESS, RunStatus.DRY_RUN):
            return 0
        return 1


def now_iso() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()
