"""
Tool catalog — the fixed set of tools an environment provides.

Order matters: tools are resolved in the order listed here, and the
shell comes first so a partially provisioned environment still has
something to launch.
"""

from __future__ import annotations

from isoterm.core.models.tool import RelocationRule, ToolDescriptor

FISH = ToolDescriptor(
    name="fish",
    binary="fish",
    repo="fish-shell/fish-shell",
    description="Interactive shell",
    # Release assets are fish-<ver>-linux-<arch>.tar.xz (a single binary)
    asset_patterns={"linux": "linux-{arch}"},
    relocation=RelocationRule(
        keep_tree="fish_runtime",
        binary_path="fish",
        share_from_source=True,
    ),
)

STARSHIP = ToolDescriptor(
    name="starship",
    binary="starship",
    repo="starship/starship",
    description="Prompt renderer",
    env={"STARSHIP_CONFIG": "${config}/starship.toml"},
)

ZOXIDE = ToolDescriptor(
    name="zoxide",
    binary="zoxide",
    repo="ajeetdsouza/zoxide",
    description="Directory jumper",
    env={"_ZO_DATA_DIR": "${data}/zoxide"},
)

ATUIN = ToolDescriptor(
    name="atuin",
    binary="atuin",
    repo="atuinsh/atuin",
    description="Shell history",
    relocation=RelocationRule(strip_components=1),
    env={"ATUIN_CONFIG_DIR": "${config}/atuin"},
)

RIPGREP = ToolDescriptor(
    name="ripgrep",
    binary="rg",
    repo="BurntSushi/ripgrep",
    description="Recursive search",
    relocation=RelocationRule(strip_components=1),
    env={"RIPGREP_CONFIG_PATH": "${config}/ripgrep/config"},
)

HELIX = ToolDescriptor(
    name="helix",
    binary="hx",
    repo="helix-editor/helix",
    description="Modal editor",
    asset_patterns={"linux": "{arch}-linux", "darwin": "{arch}-macos"},
    relocation=RelocationRule(strip_components=1, keep_tree="helix", binary_path="hx"),
    env={"HELIX_RUNTIME": "${root}/helix/runtime"},
)

CATALOG: tuple[ToolDescriptor, ...] = (FISH, STARSHIP, ZOXIDE, ATUIN, RIPGREP, HELIX)


def default_catalog(skip: list[str] | tuple[str, ...] = ()) -> list[ToolDescriptor]:
    """Catalog in resolution order, minus any tool named in ``skip``.

    The shell cannot be skipped; asking to is ignored.
    """
    skipped = {name for name in skip if name != FISH.name}
    return [tool for tool in CATALOG if tool.name not in skipped]


def get_tool(name: str) -> ToolDescriptor | None:
    """Look up a descriptor by logical name or binary name."""
    for tool in CATALOG:
        if name in (tool.name, tool.binary):
            return tool
    return None
