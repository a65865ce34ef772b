"""
Provision use case — build or refresh an isolated environment.

This is the top-level orchestrator: it resolves settings, detects the
platform, prepares the layout, resolves every catalog tool, and renders
the activation files. Safe to re-run: present tools are skipped and the
generated files are rewritten with identical content.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from isoterm.core.config.loader import IsotermSettings
from isoterm.core.engine.resolver import OutcomeCallback, ResolutionEngine, Which
from isoterm.core.models.outcome import ProvisionReport
from isoterm.core.models.platform import TargetTriple
from isoterm.core.models.tool import ToolDescriptor
from isoterm.core.services.catalog import default_catalog
from isoterm.core.services.config_renderer import ConfigRenderer
from isoterm.core.services.layout import EnvironmentLayout
from isoterm.core.services.platform_id import detect_target_triple
from isoterm.core.services.release_fetcher import ReleaseFetcher, UrllibTransport

logger = logging.getLogger(__name__)


@dataclass
class ProvisionResult:
    """Result of one provisioning run."""

    root: Path | None = None
    target: str = ""
    report: ProvisionReport | None = None
    rendered: list[Path] = field(default_factory=list)
    error: str | None = None

    @property
    def status(self) -> str:
        if self.error or self.report is None:
            return "failed"
        return self.report.status

    def to_dict(self) -> dict:
        result: dict = {"root": str(self.root) if self.root else "", "target": self.target}
        if self.error:
            result["error"] = self.error
            return result
        if self.report:
            result["report"] = self.report.to_dict()
        result["rendered"] = [str(p) for p in self.rendered]
        return result


def build_fetcher(settings: IsotermSettings) -> ReleaseFetcher:
    """Release fetcher wired from settings."""
    transport = UrllibTransport(
        user_agent=settings.user_agent,
        token=settings.github_token,
        timeout=settings.http_timeout,
    )
    return ReleaseFetcher(transport=transport, api_url=settings.api_url)


def provision_environment(
    root: Path | None = None,
    settings: IsotermSettings | None = None,
    triple: TargetTriple | None = None,
    catalog: list[ToolDescriptor] | None = None,
    fetcher: ReleaseFetcher | None = None,
    which: Which = shutil.which,
    search_path: str | None = None,
    on_outcome: OutcomeCallback | None = None,
) -> ProvisionResult:
    """Provision every catalog tool into the environment at ``root``.

    Args:
        root: Environment root. Defaults to ``settings.env_root``.
        settings: Loaded settings (defaults when None).
        triple: Target triple; detected from the host when None.
        catalog: Tools to resolve; the default catalog minus
            ``settings.skip_tools`` when None.
        fetcher: Release fetcher; built from settings when None.
        which: Executable lookup used for the system-link step.
        search_path: Lookup path override (default ``$PATH``).
        on_outcome: Called with each tool's outcome as it completes.

    Returns:
        ProvisionResult with the per-tool report.

    Raises:
        UnsupportedPlatform: Before anything is created on disk.
    """
    settings = settings or IsotermSettings()
    result = ProvisionResult()

    # ── Platform (fatal on failure, nothing written yet) ──────────
    if triple is None:
        triple = detect_target_triple()
    result.target = str(triple)

    # ── Layout ───────────────────────────────────────────────────
    layout = EnvironmentLayout(root if root is not None else settings.root_path())
    result.root = layout.root
    try:
        layout.ensure()
    except OSError as e:
        result.error = f"Cannot create environment at {layout.root}: {e}"
        return result

    # ── Resolve tools ────────────────────────────────────────────
    if catalog is None:
        catalog = default_catalog(settings.skip_tools)
    engine = ResolutionEngine(
        layout,
        triple,
        fetcher=fetcher or build_fetcher(settings),
        which=which,
        search_path=search_path,
    )
    report = engine.resolve_all(catalog, on_outcome=on_outcome)
    result.report = report

    # ── Render activation files ──────────────────────────────────
    available = [
        tool.binary for tool in catalog
        if (outcome := report.get(tool.name)) is not None and outcome.resolved
    ]
    try:
        result.rendered = ConfigRenderer(layout, catalog).render(available)
    except OSError as e:
        result.error = f"Cannot write configuration under {layout.config_dir}: {e}"
        return result

    logger.info("Environment %s: %s", layout.root, report.status)
    return result
