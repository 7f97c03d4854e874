"""Mapping from (operating system, architecture) to the bundled native artifact."""

from __future__ import annotations

import platform
from typing import Dict, Optional, Tuple

from .errors import PlatformUnsupportedError

LIBRARY_BASENAME = "libgline_binding"

# Any architecture matches the universal darwin build.
ANY_ARCH = "*"

ARCH_ALIASES: Dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}

ARTIFACTS: Dict[Tuple[str, str], str] = {
    ("darwin", ANY_ARCH): f"darwin/{LIBRARY_BASENAME}.dylib.gz",
    ("linux", "arm64"): f"linux-arm64/{LIBRARY_BASENAME}.so.gz",
    ("linux", "amd64"): f"linux-amd64/{LIBRARY_BASENAME}.so.gz",
}


def current_platform() -> Tuple[str, str]:
    return platform.system(), platform.machine()


def resolve_artifact(system: Optional[str] = None, machine: Optional[str] = None) -> str:
    """Return the relative artifact path for this OS/architecture pair.

    Raises PlatformUnsupportedError for anything outside ``ARTIFACTS``.
    """
    if system is None or machine is None:
        detected_system, detected_machine = current_platform()
        system = detected_system if system is None else system
        machine = detected_machine if machine is None else machine

    os_key = (system or "").strip().lower()
    arch_key = ARCH_ALIASES.get((machine or "").strip().lower())

    artifact = ARTIFACTS.get((os_key, ANY_ARCH))
    if artifact is None and arch_key is not None:
        artifact = ARTIFACTS.get((os_key, arch_key))
    if artifact is not None:
        return artifact

    if any(key[0] == os_key for key in ARTIFACTS):
        raise PlatformUnsupportedError(f"unsupported {os_key} architecture: {machine}")
    raise PlatformUnsupportedError(f"unsupported OS: {system} ({machine})")


__all__ = ["ARTIFACTS", "ARCH_ALIASES", "LIBRARY_BASENAME", "current_platform", "resolve_artifact"]
