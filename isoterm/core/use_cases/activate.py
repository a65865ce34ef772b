"""
Activate use case — launch the isolated shell.

The activation context is injected into exactly one child process; the
caller's own environment is never modified.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, Mapping, Sequence

from isoterm.core.errors import ShellNotProvisioned
from isoterm.core.models.tool import ToolDescriptor
from isoterm.core.services.catalog import FISH, default_catalog
from isoterm.core.services.config_renderer import ActivationContext, build_context
from isoterm.core.services.layout import EnvironmentLayout

logger = logging.getLogger(__name__)

Runner = Callable[..., int]


def activation_context(
    root: Path,
    catalog: list[ToolDescriptor] | None = None,
) -> ActivationContext:
    """Context for ``root``; raises if the shell is missing."""
    layout = EnvironmentLayout(root)
    if not layout.has_executable(FISH.binary):
        raise ShellNotProvisioned(
            f"No shell at {layout.bin_path(FISH.binary)}. "
            f"Run 'isoterm setup {layout.root}' first."
        )
    return build_context(layout, catalog if catalog is not None else default_catalog())


def activate_environment(
    root: Path,
    args: Sequence[str] = (),
    base_env: Mapping[str, str] | None = None,
    runner: Runner | None = None,
    catalog: list[ToolDescriptor] | None = None,
) -> int:
    """Run the environment's login shell and return its exit code.

    Raises:
        ShellNotProvisioned: If ``bin/fish`` is missing or not executable.
    """
    ctx = activation_context(root, catalog)
    runner = runner or subprocess.call
    command = [str(ctx.shell), "-l", *args]
    logger.info("Launching %s", " ".join(command))
    return runner(command, env=ctx.environ(base_env), cwd=str(ctx.root))
