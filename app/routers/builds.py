"""
Builds Router
Run the cross_shadow recipes over HTTP.

Builds run synchronously, one at a time: the cargo config and its backup
are a single shared resource, so a second request while a build is running
gets 409 instead of racing on the backup path.
"""
import logging
import threading
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from cross_shadow.config import Settings  # type: ignore
from cross_shadow.core.shadow import (  # type: ignore
    RestoreConflictError,
    RestoreError,
    ShadowPaths,
    restore_stranded,
    shadow_status,
)
from cross_shadow.io.schema import AbortReason, RunReceipt  # type: ignore
from cross_shadow.policy.recipes import (  # type: ignore
    TargetRequiredError,
    UnexpectedTargetError,
    UnknownRecipeError,
    iter_recipes,
)
from cross_shadow.runner import run_recipe  # type: ignore

logger = logging.getLogger(__name__)

_build_lock = threading.Lock()


# =============================================================================
# Dependencies
# =============================================================================

def get_runner_settings() -> Settings:
    """Runner settings (environment / .env)."""
    return Settings()


# =============================================================================
# Request/Response Models
# =============================================================================

class RecipeInfo(BaseModel):
    name: str
    profile: str
    takes_target: bool
    description: str


class BuildRequest(BaseModel):
    """Request to run one recipe."""
    target: Optional[str] = Field(
        None,
        description="Target identifier for the *-target recipes, passed verbatim",
    )
    project_dir: Optional[str] = Field(
        None,
        description="Directory to run the build in (default: server working directory)",
    )
    dry_run: bool = Field(False, description="Resolve the command without running it")


class RestoreRequest(BaseModel):
    force: bool = Field(False, description="Overwrite an existing config with the backup")


class ShadowStatusResponse(BaseModel):
    config_path: str
    backup_path: str
    config_exists: bool
    backup_exists: bool
    stranded: bool
    build_running: bool


class RestoreResponse(BaseModel):
    restored: bool
    config_path: str


# =============================================================================
# Router
# =============================================================================

router = APIRouter()


@router.get("/recipes", response_model=List[RecipeInfo])
def list_recipes():
    """List the available recipes."""
    return [
        RecipeInfo(
            name=r.name,
            profile=r.profile.value,
            takes_target=r.takes_target,
            description=r.description,
        )
        for r in iter_recipes()
    ]


@router.get("/status", response_model=ShadowStatusResponse)
def get_status(settings: Settings = Depends(get_runner_settings)):
    """Report whether the cargo config and its backup exist."""
    paths = ShadowPaths.from_settings(settings)
    st = shadow_status(paths)
    return ShadowStatusResponse(
        config_path=str(paths.config_path),
        backup_path=str(paths.backup_path),
        config_exists=st.config_exists,
        backup_exists=st.backup_exists,
        stranded=st.stranded,
        build_running=_build_lock.locked(),
    )


@router.post("/restore", response_model=RestoreResponse)
def restore(
    request: RestoreRequest = RestoreRequest(),
    settings: Settings = Depends(get_runner_settings),
):
    """Move a leftover backup back into place."""
    paths = ShadowPaths.from_settings(settings)
    if not _build_lock.acquire(blocking=False):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A build is running; its backup will be restored when it finishes",
        )
    try:
        restored = restore_stranded(paths, force=request.force)
    except RestoreConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except RestoreError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    finally:
        _build_lock.release()

    return RestoreResponse(restored=restored, config_path=str(paths.config_path))


@router.post("/{recipe}", response_model=RunReceipt)
def run_build(
    recipe: str,
    request: BuildRequest = BuildRequest(),
    settings: Settings = Depends(get_runner_settings),
):
    """
    Run *recipe* with the cargo config hidden and return its receipt.

    The tool's output is captured (there is no terminal to stream to) and
    returned on the receipt, or written next to it when RECEIPTS_PATH is set.
    """
    if not _build_lock.acquire(blocking=False):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Another build is already running",
        )
    try:
        receipt = run_recipe(
            recipe,
            target=request.target,
            settings=settings,
            project_dir=Path(request.project_dir) if request.project_dir else None,
            dry_run=request.dry_run,
            capture=True,
        )
    except UnknownRecipeError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (TargetRequiredError, UnexpectedTargetError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except RestoreError as e:
        logger.error("Restore failed after %s: %s", recipe, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    finally:
        _build_lock.release()

    if receipt.abort_reason == AbortReason.BACKUP_EXISTS:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=receipt.error_message,
        )

    logger.info("%s finished: %s", recipe, receipt.status.value)
    return receipt
