"""
Tool descriptor model - static, declarative description of one tool.

Descriptors are defined once in the catalog and never mutated. Everything
the engine and the release fetcher need to know about a tool lives here
as data, so adding a tool to the catalog requires no new code paths.
"""

from __future__ import annotations

from string import Template
from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field

from isoterm.core.models.platform import TargetTriple

# Asset-pattern key used when no OS-specific pattern is declared.
DEFAULT_PATTERN_KEY = "*"


class RelocationRule(BaseModel):
    """Where the binary sits inside an extracted release archive.

    Attributes:
        strip_components: Leading directories removed before locating
            the binary (``tar --strip-components`` semantics; the archive
            must contain a single top-level directory per stripped level).
        binary_path: Path of the binary inside the stripped tree.
            Defaults to the descriptor's binary filename at the tree root.
        keep_tree: Environment subdirectory that receives the whole
            stripped tree. ``bin/<binary>`` then becomes a relative
            symlink into it instead of a moved file.
        share_from_source: After a fetch, populate ``<keep_tree>/share``
            from the release's source tarball when the binary archive
            does not carry it.
    """

    model_config = ConfigDict(frozen=True)

    strip_components: int = Field(default=0, ge=0)
    binary_path: str | None = None
    keep_tree: str | None = None
    share_from_source: bool = False


class ToolDescriptor(BaseModel):
    """Immutable record describing how to provision one tool."""

    model_config = ConfigDict(frozen=True)

    name: str                                   # logical name (catalog key)
    binary: str                                 # filename under bin/
    repo: str                                   # GitHub owner/name
    description: str = ""
    asset_patterns: dict[str, str] = Field(
        default_factory=lambda: {DEFAULT_PATTERN_KEY: "{triple}"},
    )
    arch_map: dict[str, str] = Field(default_factory=dict)
    relocation: RelocationRule = Field(default_factory=RelocationRule)
    # Activation variables; values are ``string.Template`` text over
    # ${root}, ${bin}, ${config}, ${data}, ${runtime}.
    env: dict[str, str] = Field(default_factory=dict)

    @property
    def binary_in_tree(self) -> str:
        return self.relocation.binary_path or self.binary

    def asset_fragment(self, triple: TargetTriple) -> str | None:
        """Expected asset-name fragment for ``triple``, or None if unsupported."""
        pattern = self.asset_patterns.get(triple.os)
        if pattern is None:
            pattern = self.asset_patterns.get(DEFAULT_PATTERN_KEY)
        if pattern is None:
            return None
        return pattern.format(
            triple=str(triple),
            arch=self.arch_map.get(triple.arch, triple.arch),
            os=triple.os,
            libc=triple.env or "",
        )

    def asset_fragments(self, triple: TargetTriple) -> list[str]:
        """Fragments for every candidate of ``triple``, deduplicated, in order."""
        fragments: list[str] = []
        for candidate in triple.candidates():
            fragment = self.asset_fragment(candidate)
            if fragment and fragment not in fragments:
                fragments.append(fragment)
        return fragments

    def render_env(self, paths: Mapping[str, str]) -> dict[str, str]:
        """Substitute environment paths into this tool's activation variables."""
        return {
            key: Template(value).substitute(paths)
            for key, value in self.env.items()
        }
