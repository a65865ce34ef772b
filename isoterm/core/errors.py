"""
Error taxonomy for provisioning.

``UnsupportedPlatform`` is fatal for the whole run. Every
``ProvisionError`` is scoped to one tool: the engine records it in that
tool's outcome and moves on to the next catalog entry.
"""

from __future__ import annotations


class IsotermError(Exception):
    """Base class for all isoterm errors."""


class UnsupportedPlatform(IsotermError):
    """The host OS/architecture has no release-naming mapping."""

    def __init__(self, os_name: str, arch: str, reason: str = "") -> None:
        self.os_name = os_name
        self.arch = arch
        message = f"Unsupported platform: {os_name} {arch}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class ProvisionError(IsotermError):
    """A single tool could not be provisioned."""

    def __init__(self, tool: str, message: str) -> None:
        self.tool = tool
        super().__init__(message)


class AssetNotFound(ProvisionError):
    """No release asset matches the target triple."""

    def __init__(self, tool: str, target: str, available: list[str] | None = None) -> None:
        self.target = target
        self.available = list(available or [])
        super().__init__(tool, f"No release asset for '{tool}' matches {target}")


class DownloadFailed(ProvisionError):
    """Release metadata or the asset itself could not be fetched."""

    def __init__(self, tool: str, url: str, reason: object) -> None:
        self.url = url
        super().__init__(tool, f"Download failed for '{tool}' from {url}: {reason}")


class ExtractionFailed(ProvisionError):
    """The archive is corrupt, unsafe, or lacks the expected binary."""


class FilesystemError(ProvisionError):
    """Creating a directory, symlink, or executable bit failed."""


class ShellNotProvisioned(IsotermError):
    """Activation was requested but the shell binary is missing from bin/."""
