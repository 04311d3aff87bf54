"""
onchanged Orchestrator Package.

The supervisory loop coupling change detection to command runs.
Requires Python 3.11+.
"""

from orchestrator.loop import ChangeDecision, OrchestrationLoop, classify_batch, watch_and_run
from orchestrator.build_tool import locate_build_tool

__all__ = [
    "ChangeDecision",
    "OrchestrationLoop",
    "classify_batch",
    "watch_and_run",
    "locate_build_tool",
]
