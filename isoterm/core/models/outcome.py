"""
Tool outcomes and the provisioning report.

Outcomes are the engine's receipts: the dispatcher never lets a per-tool
failure escape as an exception, it records it here instead. The report
aggregates outcomes in catalog order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ToolOutcome(BaseModel):
    """Result of resolving one tool."""

    tool: str
    status: Literal["ok", "skipped", "failed"] = "ok"
    decision: str = ""              # already_present | link_to_system | fetch
    path: str | None = None         # bin/<binary> when resolved
    source: str | None = None       # system path or downloaded asset name
    error: str | None = None
    error_kind: str | None = None   # exception class name for failures

    finished_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def resolved(self) -> bool:
        """Whether the tool is usable from ``bin/`` after this run."""
        return self.status in ("ok", "skipped")

    @classmethod
    def success(cls, tool: str, decision: str, **kwargs: Any) -> ToolOutcome:
        return cls(tool=tool, status="ok", decision=decision, **kwargs)

    @classmethod
    def skip(cls, tool: str, decision: str, **kwargs: Any) -> ToolOutcome:
        return cls(tool=tool, status="skipped", decision=decision, **kwargs)

    @classmethod
    def failure(cls, tool: str, decision: str, error: BaseException, **kwargs: Any) -> ToolOutcome:
        return cls(
            tool=tool,
            status="failed",
            decision=decision,
            error=str(error),
            error_kind=type(error).__name__,
            **kwargs,
        )


@dataclass
class ProvisionReport:
    """Outcomes of one provisioning run, in catalog order."""

    target: str = ""
    root: str = ""
    outcomes: list[ToolOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "skipped")

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def status(self) -> str:
        if self.failed == 0:
            return "ok"
        if self.succeeded + self.skipped > 0:
            return "partial"
        return "failed"

    def get(self, tool: str) -> ToolOutcome | None:
        for outcome in self.outcomes:
            if outcome.tool == tool:
                return outcome
        return None

    def failures(self) -> list[ToolOutcome]:
        return [o for o in self.outcomes if o.failed]

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "root": self.root,
            "status": self.status,
            "total": self.total,
            "succeeded": self.succeeded,
            "skipped": self.skipped,
            "failed": self.failed,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }
