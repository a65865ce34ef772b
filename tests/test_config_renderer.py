"""
Tests for the config renderer — activation context and generated files.
"""

import os
import re
from pathlib import Path

from isoterm.core.services.catalog import CATALOG
from isoterm.core.services.config_renderer import ConfigRenderer, build_context
from isoterm.core.services.layout import EnvironmentLayout


class TestActivationContext:
    def test_variables(self, layout: EnvironmentLayout):
        ctx = build_context(layout, CATALOG)
        root = str(layout.root)
        assert ctx.exports["ISOTERM_ROOT"] == root
        assert ctx.exports["XDG_CONFIG_HOME"] == f"{root}/config"
        assert ctx.exports["XDG_DATA_HOME"] == f"{root}/data"
        assert ctx.exports["STARSHIP_CONFIG"] == f"{root}/config/starship.toml"
        assert ctx.exports["ATUIN_CONFIG_DIR"] == f"{root}/config/atuin"
        assert ctx.exports["RIPGREP_CONFIG_PATH"] == f"{root}/config/ripgrep/config"
        assert "HELIX_RUNTIME" not in ctx.exports
        assert ctx.shell == layout.bin_path("fish")

    def test_kept_tree_variables_once_tree_exists(self, layout: EnvironmentLayout):
        (layout.root / "helix" / "runtime").mkdir(parents=True)
        ctx = build_context(layout, CATALOG)
        assert ctx.exports["HELIX_RUNTIME"] == f"{layout.root}/helix/runtime"

    def test_linked_editor_keeps_its_own_runtime(
        self, layout: EnvironmentLayout, tmp_path: Path,
    ):
        system_hx = tmp_path / "usr" / "bin" / "hx"
        system_hx.parent.mkdir(parents=True)
        system_hx.write_text("#!/bin/sh\n")
        os.chmod(system_hx, 0o755)
        layout.bin_path("hx").symlink_to(system_hx)

        ConfigRenderer(layout, CATALOG).render()

        assert "HELIX_RUNTIME" not in build_context(layout, CATALOG).environ({})
        activate = (layout.config_dir / "activate.sh").read_text()
        assert "HELIX_RUNTIME" not in activate

    def test_all_paths_inside_root(self, layout: EnvironmentLayout):
        ctx = build_context(layout, CATALOG)
        for path in ctx.paths():
            assert layout.contains(path), path

    def test_environ_prefixes_inherited(self, layout: EnvironmentLayout):
        ctx = build_context(layout, CATALOG)
        base = {"PATH": "/usr/bin", "XDG_DATA_DIRS": "/opt/share", "HOME": "/home/u"}

        env = ctx.environ(base)

        assert env["PATH"] == f"{layout.bin_dir}:/usr/bin"
        assert env["XDG_DATA_DIRS"] == f"{layout.runtime_dir}/share:/opt/share"
        assert env["HOME"] == "/home/u"
        assert base["PATH"] == "/usr/bin"

    def test_environ_fallbacks(self, layout: EnvironmentLayout):
        env = build_context(layout, CATALOG).environ({})
        assert env["XDG_DATA_DIRS"].endswith(":/usr/local/share:/usr/share")
        assert env["PATH"].startswith(f"{layout.bin_dir}:")


class TestRender:
    def test_writes_activation_files(self, layout: EnvironmentLayout):
        written = ConfigRenderer(layout, CATALOG).render(available=["fish"])

        script = layout.config_dir / "activate.sh"
        assert script in written
        assert os.access(script, os.X_OK)
        content = script.read_text()
        assert content.startswith("#!/bin/sh")
        assert f'exec {layout.bin_path("fish")} -l "$@"' in content
        assert f"export XDG_CONFIG_HOME={layout.config_dir}" in content
        assert (layout.config_dir / "fish" / "config.fish").is_file()

    def test_seeds_tool_configs(self, layout: EnvironmentLayout):
        ConfigRenderer(layout, CATALOG).render(available=[])
        assert (layout.config_dir / "starship.toml").is_file()
        atuin = (layout.config_dir / "atuin" / "config.toml").read_text()
        assert f'db_path = "{layout.data_dir}/atuin/history.db"' in atuin
        assert (layout.config_dir / "ripgrep" / "config").is_file()

    def test_rendered_paths_are_self_contained(self, layout: EnvironmentLayout, tmp_path: Path):
        ConfigRenderer(layout, CATALOG).render(available=["fish", "starship", "zoxide", "atuin"])
        tmp_prefix = str(tmp_path)
        for path in layout.config_dir.rglob("*"):
            if not path.is_file():
                continue
            for found in re.findall(re.escape(tmp_prefix) + r"[^\s'\":;]*", path.read_text()):
                assert layout.contains(found), f"{path}: {found}"

    def test_user_edits_survive(self, layout: EnvironmentLayout):
        renderer = ConfigRenderer(layout, CATALOG)
        renderer.render(available=["fish"])
        custom = layout.config_dir / "starship.toml"
        custom.write_text("# mine\n")

        written = renderer.render(available=["fish"])

        assert custom.read_text() == "# mine\n"
        assert custom not in written
        assert layout.config_dir / "activate.sh" in written

    def test_idempotent(self, layout: EnvironmentLayout):
        renderer = ConfigRenderer(layout, CATALOG)
        renderer.render(available=["fish", "starship"])
        first = {p: p.read_text() for p in layout.config_dir.rglob("*") if p.is_file()}

        renderer.render(available=["fish", "starship"])

        second = {p: p.read_text() for p in layout.config_dir.rglob("*") if p.is_file()}
        assert first == second

    def test_hooks_only_for_available_tools(self, layout: EnvironmentLayout):
        ConfigRenderer(layout, CATALOG).render(available=["fish", "zoxide"])
        config = (layout.config_dir / "fish" / "config.fish").read_text()
        assert f"{layout.bin_path('zoxide')} init fish | source" in config
        assert "starship" not in config
        assert "atuin" not in config

    def test_probes_layout_by_default(self, layout: EnvironmentLayout):
        (layout.bin_path("starship")).write_text("#!/bin/sh\n")
        os.chmod(layout.bin_path("starship"), 0o755)
        ConfigRenderer(layout, CATALOG).render()
        config = (layout.config_dir / "fish" / "config.fish").read_text()
        assert "starship init fish | source" in config

    def test_no_temp_files_left(self, layout: EnvironmentLayout):
        ConfigRenderer(layout, CATALOG).render(available=[])
        leftovers = [p for p in layout.config_dir.rglob("*.tmp")]
        assert leftovers == []
