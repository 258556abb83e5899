"""Source discovery and loading."""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError, UnreadableFileError
from .languages import LanguageProfile, profile_for
from .models import SourceFile

log = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 2 * 1024 * 1024

# Directories never worth scanning
EXCLUDED_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        ".next",
        ".venv",
        "venv",
        ".tox",
        ".mypy_cache",
        ".pytest_cache",
        "__pycache__",
        "node_modules",
        "coverage",
        "dist",
        "build",
    }
)


@dataclass(frozen=True)
class SourceRef:
    """A file selected for checking, before it is read."""

    path: Path
    display: str  # POSIX path shown in reports
    profile: LanguageProfile


def _is_excluded(display: str, patterns: tuple[str, ...]) -> bool:
    return any(fnmatch.fnmatchcase(display, p) for p in patterns)


def _walk(root: Path, exclude: tuple[str, ...]) -> list[SourceRef]:
    refs: list[SourceRef] = []
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        dirnames[:] = sorted(
            d
            for d in dirnames
            if d not in EXCLUDED_DIRS
            and not _is_excluded((base / d).relative_to(root).as_posix() + "/", exclude)
        )
        for filename in sorted(filenames):
            path = base / filename
            profile = profile_for(path)
            if profile is None:
                continue
            relative = path.relative_to(root).as_posix()
            if _is_excluded(relative, exclude):
                continue
            display = (Path(os.path.normpath(root.as_posix())) / relative).as_posix()
            refs.append(SourceRef(path=path, display=display, profile=profile))
    return refs


def discover(paths: list[Path], exclude: tuple[str, ...] = ()) -> list[SourceRef]:
    """Collect supported source files under the given roots.

    Args:
        paths: Root directories or explicit files
        exclude: Glob patterns matched against paths relative to each root

    Returns:
        Files sorted by display path, without duplicates

    Raises:
        ConfigError: If a root does not exist or is not readable
    """
    found: dict[Path, SourceRef] = {}
    for root in paths:
        if not root.exists():
            raise ConfigError("path does not exist", source=str(root))
        if root.is_dir():
            if not os.access(root, os.R_OK | os.X_OK):
                raise ConfigError("directory is not readable", source=str(root))
            for ref in _walk(root, exclude):
                found.setdefault(ref.path.resolve(), ref)
            continue
        profile = profile_for(root)
        if profile is None:
            log.warning("Skipping %s: unsupported file type", root)
            continue
        ref = SourceRef(path=root, display=root.as_posix(), profile=profile)
        found.setdefault(root.resolve(), ref)

    refs = sorted(found.values(), key=lambda r: r.display)
    log.info("Discovered %d source files", len(refs))
    return refs


def read_source(ref: SourceRef, max_bytes: int = DEFAULT_MAX_FILE_BYTES) -> SourceFile:
    """Read and decode a file into an immutable SourceFile.

    Raises:
        UnreadableFileError: If the file cannot be read, is too large, or is
            not UTF-8 text.
    """
    try:
        size = ref.path.stat().st_size
        if size > max_bytes:
            raise UnreadableFileError(
                f"file is {size} bytes, limit is {max_bytes}", path=ref.display
            )
        data = ref.path.read_bytes()
    except OSError as e:
        raise UnreadableFileError(f"cannot read file: {e.strerror or e}", path=ref.display) from e

    if b"\x00" in data:
        raise UnreadableFileError("file looks binary (contains NUL bytes)", path=ref.display)
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise UnreadableFileError(
            f"cannot decode as UTF-8 at byte {e.start}", path=ref.display
        ) from e

    return SourceFile.from_text(ref.display, text, ref.profile)
