"""Schemas module for structured build I/O.

Provides Pydantic models for:
- Build requests
- External tool invocations
- Per-stage results
- Build results
"""

from .build import (
    TOOL_NOT_FOUND_EXIT_STATUS,
    BuildRequest,
    BuildResult,
    BuildStage,
    FailureKind,
    StageResult,
    StageStatus,
    ToolInvocation,
)

__all__ = [
    "TOOL_NOT_FOUND_EXIT_STATUS",
    "BuildRequest",
    "BuildResult",
    "BuildStage",
    "FailureKind",
    "StageResult",
    "StageStatus",
    "ToolInvocation",
]
