"""
Environment layout — the directory tree under one environment root.

The layout creates directories and answers questions about them. It
never deletes anything; removing an environment is ``rm -rf <root>``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

BIN_DIR = "bin"
CONFIG_DIR = "config"
DATA_DIR = "data"
RUNTIME_DIR = "fish_runtime"


class EnvironmentLayout:
    """Paths inside an isolated environment root."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(os.path.normpath(Path(root).expanduser().absolute()))

    def __repr__(self) -> str:
        return f"EnvironmentLayout({str(self.root)!r})"

    @property
    def bin_dir(self) -> Path:
        return self.root / BIN_DIR

    @property
    def config_dir(self) -> Path:
        return self.root / CONFIG_DIR

    @property
    def data_dir(self) -> Path:
        return self.root / DATA_DIR

    @property
    def runtime_dir(self) -> Path:
        return self.root / RUNTIME_DIR

    def subdir(self, name: str) -> Path:
        """A named directory directly under the root (not created)."""
        path = self.root / name
        if not self.contains(path):
            raise ValueError(f"{name!r} escapes the environment root")
        return path

    def ensure(self) -> None:
        """Create the four standard subdirectories. Idempotent."""
        for path in (self.bin_dir, self.config_dir, self.data_dir, self.runtime_dir):
            path.mkdir(parents=True, exist_ok=True)
        logger.debug("Layout ready at %s", self.root)

    def bin_path(self, name: str) -> Path:
        return self.bin_dir / name

    def has_executable(self, name: str) -> bool:
        """``bin/<name>`` exists and is executable.

        A symlink counts only when its target exists; a dangling link
        left behind by an uninstalled system tool is not "present".
        """
        path = self.bin_path(name)
        return path.is_file() and os.access(path, os.X_OK)

    def contains(self, path: str | os.PathLike[str]) -> bool:
        """Whether ``path`` lies under the root (lexically, links not followed)."""
        candidate = Path(os.path.normpath(Path(path).absolute()))
        return candidate == self.root or self.root in candidate.parents
