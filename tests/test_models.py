"""
Tests for domain models — descriptors, catalog, outcomes, report.
"""

import pytest
from pydantic import ValidationError

from isoterm.core.models.outcome import ProvisionReport, ToolOutcome
from isoterm.core.models.platform import TargetTriple
from isoterm.core.models.tool import RelocationRule, ToolDescriptor
from isoterm.core.services.catalog import (
    CATALOG,
    FISH,
    HELIX,
    STARSHIP,
    default_catalog,
    get_tool,
)

GNU = TargetTriple(arch="x86_64", os="linux", env="gnu")
DARWIN = TargetTriple(arch="aarch64", vendor="apple", os="darwin")


class TestToolDescriptor:
    def test_default_pattern_is_triple(self):
        assert STARSHIP.asset_fragment(GNU) == "x86_64-unknown-linux-gnu"

    def test_fragments_cover_candidates(self):
        assert STARSHIP.asset_fragments(GNU) == [
            "x86_64-unknown-linux-gnu",
            "x86_64-unknown-linux-musl",
        ]

    def test_os_specific_pattern(self):
        assert FISH.asset_fragment(GNU) == "linux-x86_64"
        assert HELIX.asset_fragment(DARWIN) == "aarch64-macos"

    def test_fragments_deduplicated(self):
        # gnu and musl candidates render the same fish fragment
        assert FISH.asset_fragments(GNU) == ["linux-x86_64"]

    def test_unsupported_os_has_no_fragment(self):
        assert FISH.asset_fragment(DARWIN) is None
        assert FISH.asset_fragments(DARWIN) == []

    def test_arch_map_override(self):
        tool = ToolDescriptor(
            name="t", binary="t", repo="o/t",
            asset_patterns={"*": "{os}-{arch}"},
            arch_map={"x86_64": "amd64"},
        )
        assert tool.asset_fragment(GNU) == "linux-amd64"

    def test_binary_in_tree(self):
        assert STARSHIP.binary_in_tree == "starship"
        assert HELIX.binary_in_tree == "hx"

    def test_render_env(self):
        env = STARSHIP.render_env({"config": "/e/config"})
        assert env == {"STARSHIP_CONFIG": "/e/config/starship.toml"}

    def test_frozen(self):
        with pytest.raises(ValidationError):
            STARSHIP.binary = "other"

    def test_negative_strip_rejected(self):
        with pytest.raises(ValidationError):
            RelocationRule(strip_components=-1)


class TestCatalog:
    def test_shell_first(self):
        assert CATALOG[0] is FISH

    def test_core_tools_present(self):
        names = [t.name for t in default_catalog()]
        for name in ("fish", "starship", "zoxide", "atuin"):
            assert name in names

    def test_skip_tools(self):
        names = [t.name for t in default_catalog(["helix", "ripgrep"])]
        assert "helix" not in names
        assert "ripgrep" not in names

    def test_shell_cannot_be_skipped(self):
        assert default_catalog(["fish"])[0] is FISH

    def test_binaries_unique(self):
        binaries = [t.binary for t in CATALOG]
        assert len(binaries) == len(set(binaries))

    def test_get_tool_by_binary(self):
        assert get_tool("rg").name == "ripgrep"
        assert get_tool("nope") is None


class TestProvisionReport:
    def _report(self, *statuses: str) -> ProvisionReport:
        report = ProvisionReport(target="x86_64-unknown-linux-gnu", root="/e")
        for i, status in enumerate(statuses):
            report.outcomes.append(ToolOutcome(tool=f"t{i}", status=status, decision="fetch"))
        return report

    def test_all_ok(self):
        assert self._report("ok", "skipped").status == "ok"

    def test_partial(self):
        report = self._report("ok", "failed")
        assert report.status == "partial"
        assert [o.tool for o in report.failures()] == ["t1"]

    def test_all_failed(self):
        assert self._report("failed", "failed").status == "failed"

    def test_to_dict(self):
        data = self._report("ok", "skipped", "failed").to_dict()
        assert data["status"] == "partial"
        assert data["succeeded"] == 1
        assert data["skipped"] == 1
        assert data["failed"] == 1
        assert data["outcomes"][2]["status"] == "failed"

    def test_failure_outcome_records_kind(self):
        outcome = ToolOutcome.failure("t", "fetch", ValueError("boom"))
        assert outcome.failed
        assert outcome.error == "boom"
        assert outcome.error_kind == "ValueError"
        assert not outcome.resolved
