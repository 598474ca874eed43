"""Build schema.

Request, invocation and result models for assembling a monitoring agent jar.
"""

from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Reported when the executable cannot be launched at all.
TOOL_NOT_FOUND_EXIT_STATUS = 127


class BuildStage(str, Enum):
    """Agent build stages, in execution order."""

    INIT = "init"
    COMPILE = "compile"
    WEAVE = "weave"
    VERIFY_WEAVE = "verify_weave"
    STAGE_WORKSPACE = "stage_workspace"
    ASSEMBLE_METADATA = "assemble_metadata"
    RELOCATE_CLASSES = "relocate_classes"
    ATTACH_MANIFEST = "attach_manifest"
    ARCHIVE = "archive"
    CLEANUP = "cleanup"
    DONE = "done"


class FailureKind(str, Enum):
    """Why a build stopped early."""

    TOOL_INVOCATION = "tool_invocation"  # compiler or archiver exited non-zero
    ARTIFACT_MISSING = "artifact_missing"  # weave descriptor absent
    FILESYSTEM = "filesystem"  # mkdir, copy, move or delete failed
    INTERRUPTED_WAIT = "interrupted_wait"  # wait for a child was interrupted
    BUILD_LOCKED = "build_locked"  # another build owns the output directory


class StageStatus(str, Enum):
    """Individual stage status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BuildRequest(BaseModel):
    """One agent build: where the generated sources live and what to call the jar."""

    model_config = ConfigDict(frozen=True)

    output_directory: Path = Field(..., description="Directory holding the generated sources")
    agent_name: str = Field(..., description="Base name for every generated file")

    @field_validator("agent_name")
    @classmethod
    def _plain_name(cls, value: str) -> str:
        if not value:
            raise ValueError("agent name must not be empty")
        if "/" in value or "\\" in value:
            raise ValueError(f"agent name must not contain path separators: {value!r}")
        return value

    @property
    def runtime_monitor_source(self) -> str:
        return f"{self.agent_name}RuntimeMonitor.java"

    @property
    def monitor_aspect_source(self) -> str:
        return f"{self.agent_name}MonitorAspect.aj"

    @property
    def archive_name(self) -> str:
        return f"{self.agent_name}.jar"


class ToolInvocation(BaseModel):
    """A single external tool call: where to run it and what to run."""

    model_config = ConfigDict(frozen=True)

    working_directory: Path
    command_line: list[str] = Field(..., min_length=1)

    @property
    def tool(self) -> str:
        return Path(self.command_line[0]).name

    def display(self) -> str:
        """Render the invocation the way verbose mode echoes it."""
        return f"{self.working_directory}: [{', '.join(self.command_line)}]"


class StageResult(BaseModel):
    """Result of a single stage execution."""

    stage: BuildStage = Field(..., description="Stage name")
    status: StageStatus = Field(..., description="Stage status")
    started_at: datetime | None = Field(None, description="When stage started")
    completed_at: datetime | None = Field(None, description="When stage completed")
    duration_seconds: float | None = Field(None, description="Duration in seconds")
    exit_status: int | None = Field(None, description="Exit status of the tool run by this stage")
    error: str | None = Field(None, description="Error message if failed")


class BuildResult(BaseModel):
    """Outcome of one build.

    Exactly one of two shapes: ``success`` with an ``archive_path``, or a
    failure carrying ``failure_kind``, ``failed_stage`` and the diagnostic
    ``message`` that was logged.
    """

    request: BuildRequest
    success: bool
    message: str
    failure_kind: FailureKind | None = None
    failed_stage: BuildStage | None = None
    archive_path: Path | None = None
    workspace_removed: bool = Field(
        True,
        description="False only when a staging workspace was created and could not be deleted",
    )
    stages: list[StageResult] = Field(default_factory=list)

    @classmethod
    def succeeded(cls, request: BuildRequest, archive_path: Path, message: str) -> "BuildResult":
        return cls(request=request, success=True, message=message, archive_path=archive_path)

    @classmethod
    def failed(
        cls,
        request: BuildRequest,
        kind: FailureKind,
        stage: BuildStage,
        message: str,
    ) -> "BuildResult":
        return cls(
            request=request,
            success=False,
            message=message,
            failure_kind=kind,
            failed_stage=stage,
        )

    def __bool__(self) -> bool:
        return self.success
