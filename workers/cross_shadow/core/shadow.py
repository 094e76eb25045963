"""
Shadow — hide the cargo config file for the duration of one tool run.

The file at ``config_path`` is renamed to ``backup_path`` on entry and
renamed back on exit.  It is never copied, parsed or rewritten; only its
bytes are hashed so callers can prove the restore was byte-identical.

The restore runs on every exit path out of the ``with`` block (normal exit,
non-zero tool status, exceptions, KeyboardInterrupt, SystemExit).
"""
from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


# ── Errors ───────────────────────────────────────────────────────────────────

class ShadowError(Exception):
    """Base class for config shadowing failures."""


class ConfigMissingError(ShadowError):
    """The config file to hide does not exist."""


class BackupExistsError(ShadowError):
    """The backup path is already occupied (stale backup or concurrent run)."""


class RestoreError(ShadowError):
    """Moving the backup back into place failed."""


class RestoreConflictError(RestoreError):
    """Both the config file and its backup exist; refusing to overwrite."""


# ── Types ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ShadowPaths:
    config_path: Path
    backup_path: Path

    @classmethod
    def for_cargo_home(
        cls,
        cargo_home: Path,
        config_name: str = "config.toml",
        suffix: str = ".old",
    ) -> "ShadowPaths":
        config_path = Path(cargo_home).expanduser() / config_name
        return cls(
            config_path=config_path,
            backup_path=config_path.with_name(config_name + suffix),
        )

    @classmethod
    def from_settings(cls, settings) -> "ShadowPaths":
        return cls(
            config_path=settings.config_path,
            backup_path=settings.backup_path,
        )


@dataclass
class ShadowState:
    """What the shadow did; copied verbatim into the run receipt."""
    config_path: str
    backup_path: str
    config_present: bool = False
    shadowed: bool = False
    restored: bool = False
    sha256_before: Optional[str] = None
    sha256_after: Optional[str] = None

    @property
    def byte_identical(self) -> Optional[bool]:
        if self.sha256_before is None or self.sha256_after is None:
            return None
        return self.sha256_before == self.sha256_after


@dataclass
class ShadowStatus:
    config_exists: bool
    backup_exists: bool

    @property
    def stranded(self) -> bool:
        """A backup is left behind with no config in place."""
        return self.backup_exists and not self.config_exists


# ── Helpers ──────────────────────────────────────────────────────────────────

def hash_file(path: Path) -> str:
    """SHA-256 of a file."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


def _exists(path: Path) -> bool:
    # A dangling symlink still occupies the name.
    return path.exists() or path.is_symlink()


def shadow_status(paths: ShadowPaths) -> ShadowStatus:
    return ShadowStatus(
        config_exists=_exists(paths.config_path),
        backup_exists=_exists(paths.backup_path),
    )


# ── Scoped shadow ────────────────────────────────────────────────────────────

class ConfigShadow:
    """
    Context manager moving ``config_path`` aside while the block runs.

    Parameters
    ----------
    paths : ShadowPaths
        Config file and backup location.
    require_config : bool
        If True (default) a missing config file raises ConfigMissingError
        before anything is moved.  If False the shadow is a no-op when
        there is nothing to hide.
    """

    def __init__(self, paths: ShadowPaths, require_config: bool = True):
        self.paths = paths
        self.require_config = require_config
        self.state = ShadowState(
            config_path=str(paths.config_path),
            backup_path=str(paths.backup_path),
        )

    def __enter__(self) -> ShadowState:
        config_path = self.paths.config_path
        backup_path = self.paths.backup_path

        if _exists(backup_path):
            raise BackupExistsError(
                f"Backup already exists at {backup_path}; "
                f"another run may be in progress, or a previous run left it "
                f"behind (see 'restore')"
            )

        if not _exists(config_path):
            if self.require_config:
                raise ConfigMissingError(f"No config file at {config_path}")
            logger.info("No config at %s, nothing to shadow", config_path)
            return self.state

        self.state.config_present = True
        if config_path.is_file():
            self.state.sha256_before = hash_file(config_path)

        os.rename(config_path, backup_path)
        self.state.shadowed = True
        logger.info("Shadowed %s -> %s", config_path, backup_path)
        return self.state

    def __exit__(self, exc_type, exc, tb) -> bool:
        if not self.state.shadowed:
            return False

        try:
            self._restore()
        except RestoreError:
            if exc_type is None:
                raise
            # Keep the original exception; the stranded backup is reported
            # here and can be recovered with restore_stranded().
            logger.error(
                "Could not restore %s from %s while handling %s",
                self.paths.config_path,
                self.paths.backup_path,
                exc_type.__name__,
                exc_info=True,
            )
        return False

    def _restore(self):
        config_path = self.paths.config_path
        backup_path = self.paths.backup_path

        conflict = RestoreConflictError(
            f"{config_path} was recreated while the build ran; "
            f"original left at {backup_path}"
        )

        # link() refuses an existing destination, so the conflict check and
        # the move are one step. rename() would silently replace it.
        try:
            os.link(backup_path, config_path, follow_symlinks=False)
        except FileExistsError:
            raise conflict
        except (OSError, NotImplementedError) as e:
            logger.debug("Hard link restore unavailable (%s), renaming", e)
            if _exists(config_path):
                raise conflict
            try:
                os.rename(backup_path, config_path)
            except OSError as err:
                raise RestoreError(
                    f"Failed to move {backup_path} back to {config_path}: {err}"
                ) from err
        else:
            try:
                os.unlink(backup_path)
            except OSError as e:
                raise RestoreError(
                    f"Restored {config_path} but could not remove {backup_path}: {e}"
                ) from e

        self.state.restored = True
        if config_path.is_file():
            self.state.sha256_after = hash_file(config_path)
        logger.info("Restored %s", config_path)


# ── Recovery ─────────────────────────────────────────────────────────────────

def restore_stranded(paths: ShadowPaths, force: bool = False) -> bool:
    """
    Move a leftover backup back into place.

    Returns True if a backup was restored, False if there was none.
    Raises RestoreConflictError if the config file also exists, unless
    *force* is set, in which case the backup replaces it.
    """
    status = shadow_status(paths)
    if not status.backup_exists:
        logger.info("No backup at %s, nothing to restore", paths.backup_path)
        return False

    if status.config_exists:
        if not force:
            raise RestoreConflictError(
                f"Both {paths.config_path} and {paths.backup_path} exist; "
                f"use force to overwrite the current config with the backup"
            )
        logger.warning("Overwriting %s with %s", paths.config_path, paths.backup_path)

    try:
        os.replace(paths.backup_path, paths.config_path)
    except OSError as e:
        raise RestoreError(
            f"Failed to move {paths.backup_path} back to {paths.config_path}: {e}"
        ) from e

    logger.info("Restored %s from %s", paths.config_path, paths.backup_path)
    return True
