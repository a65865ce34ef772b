"""
Domain models for isoterm.

    from isoterm.core.models import ToolDescriptor, TargetTriple, ToolOutcome
"""

from isoterm.core.models.decision import (
    AlreadyPresent,
    Fetch,
    LinkToSystem,
    ProvisionDecision,
)
from isoterm.core.models.outcome import ProvisionReport, ToolOutcome
from isoterm.core.models.platform import TargetTriple
from isoterm.core.models.tool import RelocationRule, ToolDescriptor

__all__ = [
    # decision.py
    "AlreadyPresent",
    "Fetch",
    "LinkToSystem",
    "ProvisionDecision",
    # outcome.py
    "ProvisionReport",
    "ToolOutcome",
    # platform.py
    "TargetTriple",
    # tool.py
    "RelocationRule",
    "ToolDescriptor",
]
