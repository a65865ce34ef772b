"""
Platform identifier — map the running host to a release target triple.

Read-only probes only. The Android sandbox (Termux) is checked before the
kernel name because it reports itself as plain Linux.
"""

from __future__ import annotations

import logging
import os
import platform
from typing import Mapping

from isoterm.core.errors import UnsupportedPlatform
from isoterm.core.models.platform import TargetTriple

logger = logging.getLogger(__name__)

# Raw ``platform.machine()`` strings → release arch naming
_ARCH_MAP: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",     # macOS reports arm64
}

# Oldest glibc the upstream -gnu builds link against
MIN_GLIBC = (2, 35)


def is_android_sandbox(environ: Mapping[str, str] | None = None) -> bool:
    """Whether we run inside Termux on Android."""
    env = os.environ if environ is None else environ
    if env.get("TERMUX_VERSION"):
        return True
    return "com.termux" in env.get("PREFIX", "")


def glibc_version(libc: tuple[str, str] | None = None) -> tuple[int, ...] | None:
    """Host glibc version as an int tuple, or None when not glibc."""
    lib, version = libc if libc is not None else platform.libc_ver()
    if lib != "glibc" or not version:
        return None
    parts: list[int] = []
    for piece in version.split("."):
        if not piece.isdigit():
            break
        parts.append(int(piece))
    return tuple(parts) or None


def linux_libc_flavour(libc: tuple[str, str] | None = None) -> str:
    """``gnu`` for a recent enough glibc, else ``musl``.

    musl builds are static, so they also cover old glibc hosts and
    musl-based distributions.
    """
    version = glibc_version(libc)
    if version is not None and version >= MIN_GLIBC:
        return "gnu"
    logger.debug("glibc %s below %s, preferring musl assets", version, MIN_GLIBC)
    return "musl"


def detect_target_triple(
    system: str | None = None,
    machine: str | None = None,
    environ: Mapping[str, str] | None = None,
    libc: tuple[str, str] | None = None,
) -> TargetTriple:
    """Identify the release triple for this host.

    All probes are injectable so tests can simulate any platform.

    Raises:
        UnsupportedPlatform: For any OS/architecture outside the table.
    """
    system = (system if system is not None else platform.system()).lower()
    raw_machine = machine if machine is not None else platform.machine()
    arch = _ARCH_MAP.get(raw_machine.lower())

    if is_android_sandbox(environ):
        if arch != "aarch64":
            raise UnsupportedPlatform("android", raw_machine, "only aarch64 is supported")
        triple = TargetTriple(arch="aarch64", vendor=None, os="linux", env="android")
    elif arch is None:
        raise UnsupportedPlatform(system, raw_machine)
    elif system == "linux":
        triple = TargetTriple(arch=arch, os="linux", env=linux_libc_flavour(libc))
    elif system == "darwin":
        triple = TargetTriple(arch=arch, vendor="apple", os="darwin")
    else:
        raise UnsupportedPlatform(system, raw_machine)

    logger.info("Detected target %s", triple)
    return triple
