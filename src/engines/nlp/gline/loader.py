"""Process-wide loading of the bundled native library."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Optional

from .errors import LibraryInitializationError, LibraryNotInitializedError
from .native import ENTRY_POINTS, ffi
from .platforms import resolve_artifact

logger = logging.getLogger(__name__)

DEFAULT_LIB_DIR = Path(__file__).resolve().parent / "lib"
TEMP_DIR_PREFIX = "gline-lib-"


@dataclass(frozen=True)
class LoadedLibrary:
    handle: Any
    path: Path
    entry_points: Dict[str, Any] = field(default_factory=dict)

    def entry(self, name: str) -> Any:
        return self.entry_points[name]


_STATE_LOCK = Lock()
_LIBRARY: Optional[LoadedLibrary] = None


def resolve_lib_dir(lib_dir: Optional[str | Path] = None) -> Path:
    configured = lib_dir or os.getenv("GLINE_LIB_DIR")
    if configured:
        return Path(configured).expanduser().resolve()
    return DEFAULT_LIB_DIR


def _extract_artifact(source: Path) -> Path:
    compressed = source.suffix == ".gz"
    target_dir = Path(tempfile.mkdtemp(prefix=TEMP_DIR_PREFIX))
    dest = target_dir / (source.stem if compressed else source.name)

    opener = gzip.open if compressed else open
    try:
        with opener(source, "rb") as src, dest.open("wb") as out:
            shutil.copyfileobj(src, out)
        dest.chmod(0o755)
    except (OSError, EOFError) as exc:
        shutil.rmtree(target_dir, ignore_errors=True)
        raise LibraryInitializationError(f"failed to extract {source}: {exc}") from exc
    return dest


def _open_library(path: Path) -> Any:
    try:
        return ffi.dlopen(str(path), ffi.RTLD_LAZY | ffi.RTLD_GLOBAL)
    except OSError as exc:
        raise LibraryInitializationError(f"dlopen failed: {exc}") from exc


def _resolve_entry_points(handle: Any) -> Dict[str, Any]:
    entry_points: Dict[str, Any] = {}
    for name in ENTRY_POINTS:
        try:
            entry_points[name] = getattr(handle, name)
        except AttributeError as exc:
            raise LibraryInitializationError(f"symbol not found: {name}") from exc
    return entry_points


def initialize(lib_dir: Optional[str | Path] = None) -> LoadedLibrary:
    """Extract, open and bind the native library once per process.

    Repeated calls return the already loaded library without touching the
    filesystem again. A failed attempt removes its staging directory and
    leaves the process not-ready, so a later call may retry.
    """
    global _LIBRARY

    library = _LIBRARY
    if library is not None:
        return library

    with _STATE_LOCK:
        if _LIBRARY is not None:
            return _LIBRARY

        artifact = resolve_artifact()
        source = resolve_lib_dir(lib_dir) / artifact
        if not source.is_file():
            raise LibraryInitializationError(f"bundled library not found: {source}")

        start = time.perf_counter()
        path = _extract_artifact(source)
        logger.debug("Extracted %s to %s", source, path)

        try:
            handle = _open_library(path)
            entry_points = _resolve_entry_points(handle)
        except LibraryInitializationError:
            shutil.rmtree(path.parent, ignore_errors=True)
            raise

        _LIBRARY = LoadedLibrary(handle=handle, path=path, entry_points=entry_points)
        logger.info(
            "Native library %s loaded in %.2fms (%d entry points).",
            artifact,
            (time.perf_counter() - start) * 1000,
            len(entry_points),
        )
        return _LIBRARY


def is_initialized() -> bool:
    return _LIBRARY is not None


def get_library() -> LoadedLibrary:
    library = _LIBRARY
    if library is None:
        raise LibraryNotInitializedError()
    return library


__all__ = [
    "DEFAULT_LIB_DIR",
    "LoadedLibrary",
    "get_library",
    "initialize",
    "is_initialized",
    "resolve_lib_dir",
]
