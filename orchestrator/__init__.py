"""Orchestrator module for agent builds.

Stage-based build orchestration with:
- Strictly ordered, fail-fast stages
- Scoped staging workspace with guaranteed cleanup
- Per-output-directory build lock
"""

from .agent_builder import AgentBuilder, StageFailure
from .locking import BuildLockError, BuildLockTimeout, build_lock
from .state_machine import BuildStateMachine, Transition
from .workspace import StagingWorkspace

__all__ = [
    "AgentBuilder",
    "StageFailure",
    "BuildLockError",
    "BuildLockTimeout",
    "build_lock",
    "BuildStateMachine",
    "Transition",
    "StagingWorkspace",
]
