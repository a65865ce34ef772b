"""
Resolution engine — decide and apply, one tool at a time.

    decide()          pure three-way policy (present → system → fetch)
    ResolutionEngine  applies decisions in catalog order, one outcome
                      per tool, never raises for a single tool's failure

``decide`` has no side effects; its lookups are passed in.
"""

from __future__ import annotations

import logging
import os
import shutil
import time
from pathlib import Path
from typing import Callable, Iterable

from isoterm.core.errors import FilesystemError, ProvisionError
from isoterm.core.models.decision import (
    AlreadyPresent,
    Fetch,
    LinkToSystem,
    ProvisionDecision,
)
from isoterm.core.models.outcome import ProvisionReport, ToolOutcome
from isoterm.core.models.platform import TargetTriple
from isoterm.core.models.tool import ToolDescriptor
from isoterm.core.services.layout import EnvironmentLayout
from isoterm.core.services.release_fetcher import ReleaseFetcher, replace_symlink

logger = logging.getLogger(__name__)

Which = Callable[..., str | None]
OutcomeCallback = Callable[[ToolOutcome], None]


def system_search_path(layout: EnvironmentLayout, path: str | None = None) -> str:
    """The lookup path with the environment's own ``bin/`` removed."""
    raw = os.environ.get("PATH", "") if path is None else path
    own = os.path.normpath(layout.bin_dir)
    kept = [
        entry for entry in raw.split(os.pathsep)
        if entry and os.path.normpath(os.path.abspath(entry)) != own
    ]
    return os.pathsep.join(kept)


def decide(
    descriptor: ToolDescriptor,
    triple: TargetTriple,
    layout: EnvironmentLayout,
    which: Which = shutil.which,
    search_path: str | None = None,
) -> ProvisionDecision:
    """Choose how to provide ``descriptor`` inside ``layout``.

    Priority is strict: an executable already in ``bin/`` wins without
    consulting the lookup path; a system executable wins over a fetch.
    """
    if layout.has_executable(descriptor.binary):
        return AlreadyPresent(layout.bin_path(descriptor.binary))

    found = which(descriptor.binary, path=system_search_path(layout, search_path))
    if found:
        found_path = Path(found).absolute()
        # A hit inside the environment itself is never a system install
        if not layout.contains(found_path):
            return LinkToSystem(found_path)

    return Fetch(descriptor, triple)


class ResolutionEngine:
    """Resolve every catalog tool into ``bin/``."""

    def __init__(
        self,
        layout: EnvironmentLayout,
        triple: TargetTriple,
        fetcher: ReleaseFetcher | None = None,
        which: Which = shutil.which,
        search_path: str | None = None,
    ) -> None:
        self.layout = layout
        self.triple = triple
        self.fetcher = fetcher or ReleaseFetcher()
        self.which = which
        self.search_path = search_path

    def resolve_all(
        self,
        catalog: Iterable[ToolDescriptor],
        on_outcome: OutcomeCallback | None = None,
    ) -> ProvisionReport:
        """Resolve tools sequentially in catalog order.

        ``on_outcome`` is called with each outcome as soon as its tool is
        done, before the next tool starts.
        """
        report = ProvisionReport(target=str(self.triple), root=str(self.layout.root))
        for descriptor in catalog:
            outcome = self.resolve(descriptor)
            report.outcomes.append(outcome)
            if on_outcome is not None:
                on_outcome(outcome)
        logger.info(
            "Provisioned %d/%d tools (%d failed)",
            report.succeeded + report.skipped, report.total, report.failed,
        )
        return report

    def resolve(self, descriptor: ToolDescriptor) -> ToolOutcome:
        """Decide and apply for one tool; failures become outcomes."""
        start = time.monotonic()
        decision = decide(descriptor, self.triple, self.layout,
                          which=self.which, search_path=self.search_path)
        logger.debug("%s: %s", descriptor.name, decision.kind)

        try:
            outcome = self.apply(descriptor, decision)
        except ProvisionError as e:
            logger.info("%s failed: %s", descriptor.name, e)
            outcome = ToolOutcome.failure(descriptor.name, decision.kind, e)

        outcome.duration_ms = int((time.monotonic() - start) * 1000)
        return outcome

    def apply(self, descriptor: ToolDescriptor, decision: ProvisionDecision) -> ToolOutcome:
        """Carry out ``decision``.

        Raises:
            ProvisionError: On any per-tool failure.
        """
        if isinstance(decision, AlreadyPresent):
            logger.info("%s already present", descriptor.name)
            note = self.fetcher.repair_share(descriptor, self.layout)
            return ToolOutcome.skip(
                descriptor.name, decision.kind, path=str(decision.path),
                metadata={"notes": [note]} if note else {},
            )

        if isinstance(decision, LinkToSystem):
            link = self.link_system(descriptor, decision.path)
            logger.info("%s linked to %s", descriptor.name, decision.path)
            return ToolOutcome.success(
                descriptor.name, decision.kind, path=str(link), source=str(decision.path),
            )

        result = self.fetcher.fetch(decision.descriptor, decision.triple, self.layout)
        metadata = {"version": result.version}
        if result.notes:
            metadata["notes"] = result.notes
        return ToolOutcome.success(
            descriptor.name, decision.kind,
            path=str(result.path), source=result.asset, metadata=metadata,
        )

    def link_system(self, descriptor: ToolDescriptor, target: Path) -> Path:
        """Symlink ``bin/<binary>`` to a system executable.

        Any stale entry (typically a dangling link) is replaced.
        """
        link = self.layout.bin_path(descriptor.binary)
        try:
            replace_symlink(link, target)
        except OSError as e:
            raise FilesystemError(
                descriptor.name, f"Cannot link {link} → {target}: {e}"
            ) from e
        return link
