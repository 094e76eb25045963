"""
Artifacts — locate the binaries a cross build produced.

Cargo lays outputs out as::

    <project>/target/<triple>/<debug|release>/   (explicit --target)
    <project>/target/<debug|release>/            (host target)

Only the top level of that directory is scanned; ``deps/``, ``build/``,
``incremental/`` and ``examples/`` hold intermediates.  Files are kept if
pyelftools reads them as ELF executables or shared objects.
"""
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from cross_shadow.core.shadow import hash_file
from cross_shadow.io.schema import ArtifactMeta, ElfMeta
from cross_shadow.policy.recipes import BuildProfile

logger = logging.getLogger(__name__)

ELF_MAGIC = b"\x7fELF"
KEPT_ELF_TYPES = ("ET_EXEC", "ET_DYN")


def output_dir(project_dir: Path, profile: BuildProfile, target: Optional[str] = None) -> Path:
    """Directory cargo writes final outputs to."""
    base = Path(project_dir) / "target"
    if target:
        # Custom target specs (foo.json) build into target/foo/
        name = Path(target).stem if target.endswith(".json") else target
        base = base / name
    return base / profile.output_dir_name


def read_elf_meta(path: Path) -> Tuple[bool, ElfMeta]:
    """
    Read minimal ELF metadata.  Returns (is_elf, meta).
    Non-ELF files and unreadable files return (False, ElfMeta()).
    """
    try:
        with open(path, "rb") as f:
            if f.read(4) != ELF_MAGIC:
                return False, ElfMeta()
            f.seek(0)
            elf = ELFFile(f)

            build_id = None
            section = elf.get_section_by_name(".note.gnu.build-id")
            if section is not None:
                for note in section.iter_notes():
                    if note["n_type"] == "NT_GNU_BUILD_ID":
                        build_id = note["n_desc"]

            return True, ElfMeta(
                # Unnamed processor or OS specific values come back as ints
                elf_type=str(elf.header["e_type"]),
                machine=str(elf.header["e_machine"]),
                elf_class=elf.elfclass,
                build_id=build_id,
            )
    except (ELFError, OSError) as e:
        logger.warning("ELF read failed for %s: %s", path, e)
        return False, ElfMeta()


def discover_artifacts(
    project_dir: Path,
    profile: BuildProfile,
    target: Optional[str] = None,
) -> List[ArtifactMeta]:
    """List ELF executables / shared libraries in the cargo output dir."""
    project_dir = Path(project_dir)
    out_dir = output_dir(project_dir, profile, target)
    if not out_dir.is_dir():
        logger.info("No output directory at %s", out_dir)
        return []

    artifacts: List[ArtifactMeta] = []
    for path in sorted(out_dir.iterdir()):
        if path.is_symlink() or not path.is_file():
            continue

        is_elf, meta = read_elf_meta(path)
        if not is_elf or meta.elf_type not in KEPT_ELF_TYPES:
            continue

        artifacts.append(ArtifactMeta(
            path_rel=path.relative_to(project_dir).as_posix(),
            sha256=hash_file(path),
            size_bytes=path.stat().st_size,
            elf=meta,
        ))

    logger.info("Found %d artifact(s) in %s", len(artifacts), out_dir)
    return artifacts
