"""
Status use case — inspect an environment without changing it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from isoterm.core.models.tool import ToolDescriptor
from isoterm.core.services.catalog import default_catalog
from isoterm.core.services.config_renderer import ACTIVATE_SCRIPT
from isoterm.core.services.layout import EnvironmentLayout


@dataclass
class ToolStatus:
    """State of one tool's ``bin/`` entry."""

    name: str
    binary: str
    state: str          # installed | linked | broken | missing
    path: str = ""
    target: str = ""    # symlink target, when a link

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "binary": self.binary,
            "state": self.state,
            "path": self.path,
            "target": self.target,
        }


@dataclass
class EnvironmentStatus:
    """Aggregated environment status."""

    root: Path
    exists: bool = False
    activation_script: bool = False
    tools: list[ToolStatus] = field(default_factory=list)

    @property
    def ready(self) -> bool:
        """Whether the shell can be launched."""
        return any(t.binary == "fish" and t.state in ("installed", "linked") for t in self.tools)

    def to_dict(self) -> dict:
        return {
            "root": str(self.root),
            "exists": self.exists,
            "ready": self.ready,
            "activation_script": self.activation_script,
            "tools": [t.to_dict() for t in self.tools],
        }


def tool_status(layout: EnvironmentLayout, descriptor: ToolDescriptor) -> ToolStatus:
    path = layout.bin_path(descriptor.binary)
    status = ToolStatus(name=descriptor.name, binary=descriptor.binary, state="missing")
    if not path.is_symlink() and not path.exists():
        return status

    status.path = str(path)
    if path.is_symlink():
        status.target = os.readlink(path)
        if not layout.has_executable(descriptor.binary):
            status.state = "broken"
        elif layout.contains(path.parent / status.target):
            status.state = "installed"
        else:
            status.state = "linked"
    elif layout.has_executable(descriptor.binary):
        status.state = "installed"
    else:
        status.state = "broken"
    return status


def get_status(root: Path, catalog: list[ToolDescriptor] | None = None) -> EnvironmentStatus:
    """Report what an environment root currently provides."""
    layout = EnvironmentLayout(root)
    result = EnvironmentStatus(root=layout.root, exists=layout.root.is_dir())
    if not result.exists:
        return result

    result.activation_script = (layout.config_dir / ACTIVATE_SCRIPT).is_file()
    for descriptor in catalog if catalog is not None else default_catalog():
        result.tools.append(tool_status(layout, descriptor))
    return result
