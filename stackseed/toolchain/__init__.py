"""stackseed toolchain -- runs install/build/test steps and reports on them.

Public API
----------
.. autoclass:: ToolchainOrchestrator
.. autoclass:: VerificationRunner
.. autoclass:: ToolchainStep
.. autoclass:: RunReport
"""

from .orchestrator import ToolchainOrchestrator
from .results import (
    ChainResult,
    ChainStatus,
    RunReport,
    RunStatus,
    StepResult,
    StepStatus,
)
from .steps import ToolchainStep, build_steps, validate_chain
from .verification import VerificationRunner

__all__ = [
    # Orchestration
    "ToolchainOrchestrator",
    "VerificationRunner",
    # Steps
    "ToolchainStep",
    "build_steps",
    "validate_chain",
    # Results
    "ChainResult",
    "ChainStatus",
    "RunReport",
    "RunStatus",
    "StepResult",
    "StepStatus",
]
