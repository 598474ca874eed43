"""State machine tracking the stages of one agent build."""

from dataclasses import dataclass
from datetime import datetime

from schemas.build import BuildStage, StageResult, StageStatus


@dataclass
class Transition:
    """Defines a valid stage transition."""

    from_stage: BuildStage
    to_stage: BuildStage


# Stages after which a staging workspace exists and must be cleaned up
STAGING_STAGES = (
    BuildStage.STAGE_WORKSPACE,
    BuildStage.ASSEMBLE_METADATA,
    BuildStage.RELOCATE_CLASSES,
    BuildStage.ATTACH_MANIFEST,
    BuildStage.ARCHIVE,
)


class BuildStateMachine:
    """State machine for the agent build pipeline.

    Manages:
    - Valid stage transitions (strictly linear, plus early cleanup)
    - Per-stage timing, exit status and error
    """

    TRANSITIONS: list[Transition] = [
        # Happy path
        Transition(BuildStage.INIT, BuildStage.COMPILE),
        Transition(BuildStage.COMPILE, BuildStage.WEAVE),
        Transition(BuildStage.WEAVE, BuildStage.VERIFY_WEAVE),
        Transition(BuildStage.VERIFY_WEAVE, BuildStage.STAGE_WORKSPACE),
        Transition(BuildStage.STAGE_WORKSPACE, BuildStage.ASSEMBLE_METADATA),
        Transition(BuildStage.ASSEMBLE_METADATA, BuildStage.RELOCATE_CLASSES),
        Transition(BuildStage.RELOCATE_CLASSES, BuildStage.ATTACH_MANIFEST),
        Transition(BuildStage.ATTACH_MANIFEST, BuildStage.ARCHIVE),
        Transition(BuildStage.ARCHIVE, BuildStage.CLEANUP),
        Transition(BuildStage.CLEANUP, BuildStage.DONE),
        # Once a workspace exists, any failure jumps straight to cleanup
        *[Transition(stage, BuildStage.CLEANUP) for stage in STAGING_STAGES[:-1]],
    ]

    def __init__(self) -> None:
        self.current_stage = BuildStage.INIT
        self.stages: dict[str, StageResult] = {}

        # Build transition map for quick lookup
        self._transition_map: dict[BuildStage, list[BuildStage]] = {}
        for t in self.TRANSITIONS:
            self._transition_map.setdefault(t.from_stage, []).append(t.to_stage)

    def can_transition(self, to_stage: BuildStage) -> bool:
        """Check if transition to target stage is valid."""
        return to_stage in self._transition_map.get(self.current_stage, [])

    def transition(self, to_stage: BuildStage) -> None:
        """Move to a new stage and mark it running.

        Raises:
            ValueError: If the transition is not allowed from the current stage
        """
        if not self.can_transition(to_stage):
            raise ValueError(
                f"Invalid stage transition: {self.current_stage.value} -> {to_stage.value}"
            )
        self.current_stage = to_stage
        self.stages[to_stage.value] = StageResult(
            stage=to_stage,
            status=StageStatus.RUNNING,
            started_at=datetime.now(),
        )

    def complete_stage(self, exit_status: int | None = None) -> None:
        """Mark current stage as completed."""
        self._finish(StageStatus.COMPLETED, exit_status=exit_status)

    def fail_stage(self, error: str, exit_status: int | None = None) -> None:
        """Mark current stage as failed."""
        self._finish(StageStatus.FAILED, exit_status=exit_status, error=error)

    def is_failed(self) -> bool:
        return any(result.status == StageStatus.FAILED for result in self.stages.values())

    def is_completed(self) -> bool:
        return self.current_stage == BuildStage.DONE

    def results(self) -> list[StageResult]:
        """Stage results in execution order."""
        return list(self.stages.values())

    def _finish(
        self,
        status: StageStatus,
        exit_status: int | None = None,
        error: str | None = None,
    ) -> None:
        result = self.stages.get(self.current_stage.value)
        if result is None:
            return
        result.status = status
        result.completed_at = datetime.now()
        if result.started_at:
            result.duration_seconds = (result.completed_at - result.started_at).total_seconds()
        result.exit_status = exit_status
        result.error = error
