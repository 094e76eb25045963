"""
Runner — top-level orchestration: recipe → shadowed tool run → receipt.

This module ties recipes, config shadowing, tool invocation and IO
together into a single ``run_recipe`` function that can be called from
the API endpoint or from the ``cross-shadow`` CLI.

Architecture:
  1. Resolve the recipe and build the tool argv (no filesystem access).
  2. Capture toolchain identity (only when a receipt is written).
  3. Hide the cargo config, run the tool once, restore the config.
  4. On success, list the produced ELF artifacts.
  5. Assemble and optionally write the receipt.
"""
import argparse
import logging
import signal
import sys
import uuid
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from cross_shadow import __version__
from cross_shadow.config import Settings
from cross_shadow.core.artifacts import discover_artifacts
from cross_shadow.core.invoker import InvocationResult, invoke
from cross_shadow.core.shadow import (
    BackupExistsError,
    ConfigMissingError,
    ConfigShadow,
    ShadowError,
    ShadowPaths,
    ShadowState,
    restore_stranded,
    shadow_status,
)
from cross_shadow.core.toolchain import capture_toolchain
from cross_shadow.io.schema import (
    AbortReason,
    InvocationRecord,
    RecipeRecord,
    RunReceipt,
    RunStatus,
    ShadowRecord,
    now_iso,
)
from cross_shadow.io.writer import write_receipt
from cross_shadow.policy.recipes import RecipeError, build_argv, get_recipe, iter_recipes

logger = logging.getLogger(__name__)

# Inline output kept in a receipt that is not written to disk
MAX_INLINE_OUTPUT = 64 * 1024


def _tail(text: Optional[str]) -> Optional[str]:
    if not text or len(text) <= MAX_INLINE_OUTPUT:
        return text or None
    return text[-MAX_INLINE_OUTPUT:]


def _shadow_record(state: ShadowState) -> ShadowRecord:
    return ShadowRecord(**asdict(state), byte_identical=state.byte_identical)


def _invocation_record(result: InvocationResult) -> InvocationRecord:
    return InvocationRecord(
        argv=result.argv,
        exit_code=result.exit_code,
        duration_ms=result.duration_ms,
        timed_out=result.timed_out,
        captured=result.captured,
    )


def run_recipe(
    name: str,
    target: Optional[str] = None,
    settings: Optional[Settings] = None,
    project_dir: Optional[Path] = None,
    dry_run: bool = False,
    receipts_dir: Optional[Path] = None,
    capture: Optional[bool] = None,
) -> RunReceipt:
    """
    Run one recipe with the cargo config hidden.

    Parameters
    ----------
    name : str
        Recipe name (``cross``, ``cross-release``, ``cross-target``,
        ``cross-release-target``).
    target : str, optional
        Target identifier for the ``*-target`` recipes, passed verbatim.
    settings : Settings, optional
        Defaults to ``Settings()`` (environment / .env).
    project_dir : Path, optional
        Working directory for the tool.  Defaults to the current directory.
    dry_run : bool
        Resolve the recipe and return without touching files or running
        anything.
    receipts_dir : Path, optional
        Where to write the receipt.  Defaults to ``settings.RECEIPTS_PATH``;
        if both are unset no receipt is written.
    capture : bool, optional
        Capture tool output instead of streaming it.  Defaults to
        ``settings.CAPTURE_OUTPUT``.

    Raises
    ------
    RecipeError
        Unknown recipe or wrong TARGET usage.  Raised before any file is
        touched.
    RestoreError
        The config could not be put back.  The backup is left in place.
    """
    if settings is None:
        settings = Settings()
    if receipts_dir is None:
        receipts_dir = settings.RECEIPTS_PATH
    if capture is None:
        capture = settings.CAPTURE_OUTPUT

    recipe = get_recipe(name)
    argv = build_argv(recipe, target, tool=settings.CROSS_BIN)
    project_dir = Path(project_dir or Path.cwd()).resolve()
    paths = ShadowPaths.from_settings(settings)

    receipt = RunReceipt(
        run_id=str(uuid.uuid4()),
        created_at=now_iso(),
        status=RunStatus.DRY_RUN,
        recipe=RecipeRecord(name=recipe.name, profile=recipe.profile.value, target=target),
        argv=argv,
        project_dir=str(project_dir),
    )

    if dry_run:
        logger.info("Dry run: %s (config %s)", " ".join(argv), paths.config_path)
        receipt.finished_at = now_iso()
        return receipt

    if not project_dir.is_dir():
        receipt.status = RunStatus.ABORTED
        receipt.abort_reason = AbortReason.PROJECT_DIR_MISSING
        receipt.error_message = f"Project directory not found: {project_dir}"
        logger.error(receipt.error_message)
        return _finish(receipt, receipts_dir)

    if receipts_dir is not None and settings.RECORD_TOOLCHAIN:
        receipt.toolchain = capture_toolchain(settings.CROSS_BIN)

    shadow = ConfigShadow(paths, require_config=settings.REQUIRE_CONFIG)
    try:
        with shadow:
            result = invoke(
                argv,
                cwd=project_dir,
                timeout=settings.BUILD_TIMEOUT,
                capture=capture,
            )
    except (ConfigMissingError, BackupExistsError) as e:
        logger.error("Not running %s: %s", recipe.name, e)
        receipt.status = RunStatus.ABORTED
        receipt.abort_reason = (
            AbortReason.BACKUP_EXISTS
            if isinstance(e, BackupExistsError)
            else AbortReason.CONFIG_MISSING
        )
        receipt.error_message = str(e)
        receipt.shadow = _shadow_record(shadow.state)
        return _finish(receipt, receipts_dir)

    receipt.shadow = _shadow_record(shadow.state)
    receipt.invocation = _invocation_record(result)

    if result.timed_out:
        receipt.status = RunStatus.TIMEOUT
        receipt.error_message = result.stderr
    elif result.ok:
        receipt.status = RunStatus.SUCCESS
        receipt.artifacts = discover_artifacts(project_dir, recipe.profile, target)
    else:
        receipt.status = RunStatus.FAILED
        receipt.error_message = f"{argv[0]} exited with {result.exit_code}"

    return _finish(receipt, receipts_dir, result)


def _finish(
    receipt: RunReceipt,
    receipts_dir: Optional[Path],
    result: Optional[InvocationResult] = None,
) -> RunReceipt:
    receipt.finished_at = now_iso()
    if receipts_dir is not None:
        path = write_receipt(
            receipt,
            receipts_dir,
            stdout=result.stdout if result else None,
            stderr=result.stderr if result else None,
        )
        logger.info("Receipt saved: %s", path)
    elif result is not None and result.captured and receipt.invocation is not None:
        receipt.invocation.stdout = _tail(result.stdout)
        receipt.invocation.stderr = _tail(result.stderr)
    return receipt


# ── CLI ──────────────────────────────────────────────────────────────────────

def _terminate(signum, frame):
    # Turn SIGTERM into SystemExit so ConfigShadow gets to restore.
    raise SystemExit(128 + signum)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    run_opts = argparse.ArgumentParser(add_help=False)
    run_opts.add_argument(
        "-C", "--project-dir",
        type=Path,
        default=None,
        help="Directory to run the build in (default: current directory)",
    )
    run_opts.add_argument(
        "-r", "--receipts-dir",
        type=Path,
        default=None,
        help="Directory to write run receipts to",
    )
    run_opts.add_argument(
        "-n", "--dry-run",
        action="store_true",
        help="Print the command without moving files or running it",
    )
    run_opts.add_argument(
        "--capture",
        action="store_true",
        default=None,
        help="Capture tool output into the receipt dir instead of streaming it",
    )

    parser = argparse.ArgumentParser(
        prog="cross-shadow",
        description="cross_shadow — run cross builds with ~/.cargo/config.toml hidden",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    for recipe in iter_recipes():
        p = sub.add_parser(
            recipe.name,
            parents=[common, run_opts],
            help=recipe.description,
        )
        if recipe.takes_target:
            p.add_argument("target", metavar="TARGET", help="Target identifier, passed verbatim")
        p.set_defaults(recipe=recipe.name)

    sub.add_parser("list", parents=[common], help="List recipes")
    sub.add_parser("status", parents=[common], help="Show config / backup presence")

    restore = sub.add_parser(
        "restore",
        parents=[common],
        help="Move a leftover backup back into place",
    )
    restore.add_argument(
        "-f", "--force",
        action="store_true",
        help="Overwrite an existing config with the backup",
    )
    return parser


def main(argv=None) -> int:
    """CLI entry point for cross_shadow."""
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.LOG_LEVEL,
        format="%(levelname)s %(name)s: %(message)s",
    )

    paths = ShadowPaths.from_settings(settings)

    if args.command == "list":
        for recipe in iter_recipes():
            print(f"{recipe.name:<22} {recipe.description}")
        return 0

    if args.command == "status":
        st = shadow_status(paths)
        print(f"config: {paths.config_path} ({'present' if st.config_exists else 'missing'})")
        print(f"backup: {paths.backup_path} ({'present' if st.backup_exists else 'missing'})")
        if st.stranded:
            print("Backup is stranded; run 'cross-shadow restore'.")
        return 0

    if args.command == "restore":
        try:
            restored = restore_stranded(paths, force=args.force)
        except ShadowError as e:
            logger.error("%s", e)
            return 1
        print("Restored." if restored else "Nothing to restore.")
        return 0

    previous = signal.signal(signal.SIGTERM, _terminate)
    try:
        receipt = run_recipe(
            args.recipe,
            target=getattr(args, "target", None),
            settings=settings,
            project_dir=args.project_dir,
            dry_run=args.dry_run,
            receipts_dir=args.receipts_dir,
            capture=args.capture,
        )
    except RecipeError as e:
        parser.error(str(e))
    except ShadowError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130
    finally:
        signal.signal(signal.SIGTERM, previous)

    # Captured output with no receipt dir to hold it
    inv = receipt.invocation
    if inv is not None and inv.stdout:
        sys.stdout.write(inv.stdout)
    if inv is not None and inv.stderr:
        sys.stderr.write(inv.stderr)

    if receipt.status == RunStatus.DRY_RUN:
        print(" ".join(receipt.argv))
    elif receipt.status != RunStatus.SUCCESS:
        print(f"{receipt.recipe.name}: {receipt.status.value}: {receipt.error_message}",
              file=sys.stderr)

    code = receipt.exit_code
    return code if code >= 0 else 1


if __name__ == "__main__":
    sys.exit(main())
