"""
Config renderer — activation script, shell config, and seeded tool configs.

Every path written into a generated file points inside the environment
root. ``activate.sh`` and ``config.fish`` are regenerated on every run;
the per-tool seed files are written only once so user edits survive.
"""

from __future__ import annotations

import logging
import os
import shlex
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from string import Template
from typing import Iterable, Mapping

from isoterm.core.models.tool import ToolDescriptor
from isoterm.core.services.layout import EnvironmentLayout

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent.parent / "templates"

ACTIVATE_SCRIPT = "activate.sh"
FISH_CONFIG = "fish/config.fish"

# Written only when absent: config-relative path → template name
SEED_FILES: dict[str, str] = {
    "starship.toml": "starship.toml",
    "atuin/config.toml": "atuin/config.toml",
    "ripgrep/config": "ripgrep/config",
}

# Tools that hook into fish start-up: binary → init command
_FISH_INIT: dict[str, str] = {
    "starship": "init fish",
    "zoxide": "init fish",
    "atuin": "init fish",
}

_DEFAULT_PATH = "/usr/local/bin:/usr/bin:/bin"
_DEFAULT_DATA_DIRS = "/usr/local/share:/usr/share"


@dataclass
class ActivationContext:
    """Environment the isolated shell runs with.

    ``exports`` are fixed values; ``prepends`` are list-style variables
    (``PATH``, ``XDG_DATA_DIRS``) whose environment entry is put in front
    of the inherited value, or of ``fallbacks[var]`` when unset.
    """

    root: Path
    shell: Path
    exports: dict[str, str] = field(default_factory=dict)
    prepends: dict[str, str] = field(default_factory=dict)
    fallbacks: dict[str, str] = field(default_factory=dict)

    def environ(self, base: Mapping[str, str] | None = None) -> dict[str, str]:
        """Process environment for launching the shell."""
        inherited = dict(os.environ if base is None else base)
        env = dict(inherited)
        env.update(self.exports)
        for name, prefix in self.prepends.items():
            current = inherited.get(name) or self.fallbacks.get(name, "")
            env[name] = f"{prefix}:{current}" if current else prefix
        return env

    def shell_lines(self) -> list[str]:
        """POSIX ``export`` lines reproducing :meth:`environ`."""
        lines = []
        for name, prefix in self.prepends.items():
            fallback = self.fallbacks.get(name, "")
            lines.append(f'export {name}={shlex.quote(prefix)}:"${{{name}:-{fallback}}}"')
        for name, value in self.exports.items():
            lines.append(f"export {name}={shlex.quote(value)}")
        return lines

    def paths(self) -> list[str]:
        """Every filesystem path the context refers to."""
        return [str(self.shell), *self.prepends.values(), *self.exports.values()]


def template_paths(layout: EnvironmentLayout) -> dict[str, str]:
    """Substitution values available to templates and descriptor env."""
    return {
        "root": str(layout.root),
        "bin": str(layout.bin_dir),
        "config": str(layout.config_dir),
        "data": str(layout.data_dir),
        "runtime": str(layout.runtime_dir),
    }


def build_context(
    layout: EnvironmentLayout,
    catalog: Iterable[ToolDescriptor],
) -> ActivationContext:
    """Activation context for ``layout`` with the catalog tools' variables.

    A tool that keeps its release tree only contributes variables once that
    tree exists; a system install linked into ``bin/`` finds its own files.
    """
    paths = template_paths(layout)
    exports = {
        "ISOTERM_ROOT": paths["root"],
        "XDG_CONFIG_HOME": paths["config"],
        "XDG_DATA_HOME": paths["data"],
    }
    for tool in catalog:
        tree = tool.relocation.keep_tree
        if tree and not layout.subdir(tree).is_dir():
            logger.debug("%s: no %s tree, skipping its variables", tool.name, tree)
            continue
        exports.update(tool.render_env(paths))

    return ActivationContext(
        root=layout.root,
        shell=layout.bin_path("fish"),
        exports=exports,
        prepends={
            "PATH": paths["bin"],
            "XDG_DATA_DIRS": str(layout.runtime_dir / "share"),
        },
        fallbacks={
            "PATH": _DEFAULT_PATH,
            "XDG_DATA_DIRS": _DEFAULT_DATA_DIRS,
        },
    )


def load_template(name: str) -> Template:
    return Template((TEMPLATES_DIR / name).read_text(encoding="utf-8"))


class ConfigRenderer:
    """Writes activation artifacts for one environment."""

    def __init__(self, layout: EnvironmentLayout, catalog: Iterable[ToolDescriptor]) -> None:
        self.layout = layout
        self.catalog = list(catalog)

    def context(self) -> ActivationContext:
        return build_context(self.layout, self.catalog)

    def render(self, available: Iterable[str] | None = None) -> list[Path]:
        """Write activation files; returns the paths written this run.

        Args:
            available: Binaries present in ``bin/``. Start-up hooks are
                emitted only for these. Defaults to probing the layout.
        """
        if available is None:
            available = [t.binary for t in self.catalog if self.layout.has_executable(t.binary)]
        available = set(available)
        ctx = self.context()
        values = template_paths(self.layout)

        written = [
            self._write(
                ACTIVATE_SCRIPT,
                load_template(ACTIVATE_SCRIPT).substitute(
                    values,
                    exports="\n".join(ctx.shell_lines()),
                    shell=shlex.quote(str(ctx.shell)),
                ),
                mode=0o755,
            ),
            self._write(
                FISH_CONFIG,
                load_template(FISH_CONFIG).substitute(
                    values,
                    init=self._fish_init(available),
                ),
            ),
        ]

        for rel, template_name in SEED_FILES.items():
            target = self.layout.config_dir / rel
            if target.exists():
                logger.debug("Keeping existing %s", target)
                continue
            written.append(self._write(rel, load_template(template_name).substitute(values)))

        logger.info("Rendered %d config file(s) under %s", len(written), self.layout.config_dir)
        return written

    def _fish_init(self, available: set[str]) -> str:
        lines = []
        for tool in self.catalog:
            command = _FISH_INIT.get(tool.binary)
            if command and tool.binary in available:
                binary = self.layout.bin_path(tool.binary)
                lines.append(f"    {shlex.quote(str(binary))} {command} | source")
        return "\n".join(lines) if lines else "    # no prompt or history tools provisioned"

    def _write(self, rel: str, content: str, mode: int = 0o644) -> Path:
        """Atomic write under config/: temp file in the same dir, then rename."""
        path = self.layout.config_dir / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}_", suffix=".tmp")
        tmp = Path(tmp_path)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(tmp, mode)
            os.replace(tmp, path)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        logger.debug("Wrote %s", path)
        return path
