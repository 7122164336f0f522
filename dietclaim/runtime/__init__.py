"""
DietClaim Runtime

Configuration loading, pipeline wiring, and the scenario runner.
"""

from dietclaim.runtime.config import PipelineConfig
from dietclaim.runtime.context import PipelineContext
from dietclaim.runtime.scenario import ScenarioResult, ScenarioRunner, StepResult

__all__ = [
    "PipelineConfig",
    "PipelineContext",
    "ScenarioResult",
    "ScenarioRunner",
    "StepResult",
]
