"""
Provision decisions - the engine's per-tool verdict.

A decision is a small tagged variant. ``decide()`` produces one without
touching the filesystem or network; the dispatcher consumes it. Decisions
are recomputed every run and never persisted.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Union

from isoterm.core.models.platform import TargetTriple
from isoterm.core.models.tool import ToolDescriptor


@dataclass(frozen=True)
class AlreadyPresent:
    """``bin/<binary>`` exists and is executable; nothing to do."""

    path: Path
    kind: Literal["already_present"] = "already_present"


@dataclass(frozen=True)
class LinkToSystem:
    """An executable was found on the lookup path; symlink to it."""

    path: Path
    kind: Literal["link_to_system"] = "link_to_system"


@dataclass(frozen=True)
class Fetch:
    """Nothing local; download a release artifact for ``triple``."""

    descriptor: ToolDescriptor
    triple: TargetTriple
    kind: Literal["fetch"] = "fetch"


ProvisionDecision = Union[AlreadyPresent, LinkToSystem, Fetch]
