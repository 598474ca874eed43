"""Agent builder: compile, weave and archive generated monitors into a jar."""

import contextlib
import logging
from pathlib import Path
from typing import ContextManager

from pipeline.config import Config, ToolchainConfig
from schemas.build import BuildRequest, BuildResult, BuildStage, FailureKind, ToolInvocation
from tools.base import ToolStatus
from tools.filesystem_tool import FileCopier, TreeDeleter, move_path
from tools.process_runner import ProcessRunner

from .locking import BuildLockError, BuildLockTimeout, build_lock
from .state_machine import BuildStateMachine
from .workspace import StagingWorkspace

logger = logging.getLogger(__name__)

AJC_MAIN_CLASS = "org.aspectj.tools.ajc.Main"
WEAVE_DESCRIPTOR = "aop-ajc.xml"
CLASSES_DIR = "mop"


class StageFailure(Exception):
    """Ends the build at the current stage."""

    def __init__(self, kind: FailureKind, message: str, exit_status: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.exit_status = exit_status


class AgentBuilder:
    """Drives one agent build through its stages.

    Stages run in strict order and the first failure ends the build:

        compile -> weave -> verify_weave -> stage_workspace
        -> assemble_metadata -> relocate_classes -> attach_manifest
        -> archive -> cleanup

    The weaver's exit status is not trusted; the presence of the weave
    descriptor it writes is the success signal for that step. Once the
    staging workspace exists it is deleted on every exit path.

    ``build`` never raises for build failures. It returns a ``BuildResult``
    carrying the failure kind, the failed stage and the diagnostic message
    that was logged.
    """

    def __init__(
        self,
        toolchain: ToolchainConfig | None = None,
        runner: ProcessRunner | None = None,
        *,
        verbose: bool = False,
        lock: bool = True,
        lock_timeout: float = 30.0,
        copier: FileCopier | None = None,
        deleter: TreeDeleter | None = None,
    ) -> None:
        self.toolchain = toolchain or ToolchainConfig()
        self.runner = runner or ProcessRunner(verbose=verbose)
        self.lock = lock
        self.lock_timeout = lock_timeout
        self.copier = copier or FileCopier()
        self.deleter = deleter or TreeDeleter()

    @classmethod
    def from_config(cls, config: Config, **overrides) -> "AgentBuilder":
        """Create a builder from loaded configuration."""
        options = {
            "verbose": config.build.verbose,
            "lock": config.build.lock,
            "lock_timeout": config.build.lock_timeout,
        }
        options.update(overrides)
        return cls(config.toolchain, **options)

    def build(self, request: BuildRequest) -> BuildResult:
        """Build ``<agent_name>.jar`` in the current directory."""
        machine = BuildStateMachine()
        output_dir = Path(request.output_directory).absolute()
        logger.info("Building %s from %s", request.archive_name, output_dir)

        if not output_dir.is_dir():
            message = f"Output directory {output_dir} is not a directory"
            logger.error("%s", message)
            result = BuildResult.failed(request, FailureKind.FILESYSTEM, BuildStage.INIT, message)
            result.stages = machine.results()
            return result

        try:
            with self._exclusive(output_dir):
                result = self._run(request, output_dir, machine)
        except BuildLockTimeout as e:
            logger.error("%s", e)
            result = BuildResult.failed(request, FailureKind.BUILD_LOCKED, BuildStage.INIT, str(e))
        except BuildLockError as e:
            logger.error("%s", e)
            result = BuildResult.failed(request, FailureKind.FILESYSTEM, BuildStage.INIT, str(e))

        result.stages = machine.results()
        if result.success:
            logger.info("%s", result.message)
        return result

    # ------------------------------------------------------------------

    def _exclusive(self, output_dir: Path) -> ContextManager:
        if not self.lock:
            return contextlib.nullcontext()
        return build_lock(output_dir, self.lock_timeout)

    def _run(self, request: BuildRequest, output_dir: Path, machine: BuildStateMachine) -> BuildResult:
        try:
            self._compile(request, output_dir, machine)
            self._weave(request, output_dir, machine)
            descriptor = self._verify_weave(output_dir, machine)
        except StageFailure as e:
            return self._failed(request, machine, e)

        machine.transition(BuildStage.STAGE_WORKSPACE)
        workspace = StagingWorkspace(output_dir, deleter=self.deleter)
        try:
            workspace.create()
        except OSError as e:
            return self._failed(
                request,
                machine,
                StageFailure(FailureKind.FILESYSTEM, f"(mkdtemp) Failed to create staging workspace: {e}"),
            )
        machine.complete_stage()

        failure: StageFailure | None = None
        failed_stage = BuildStage.INIT
        with workspace:
            try:
                self._stage_and_archive(request, output_dir, workspace, descriptor, machine)
            except StageFailure as e:
                failure = e
            except OSError as e:
                failure = StageFailure(FailureKind.FILESYSTEM, f"({machine.current_stage.value}) {e}")
            if failure is not None:
                failed_stage = machine.current_stage
                self._record_failure(machine, failure)
            machine.transition(BuildStage.CLEANUP)

        if workspace.removed:
            machine.complete_stage()
        else:
            machine.fail_stage(f"Failed to delete staging workspace {workspace.path}")

        if failure is not None:
            result = BuildResult.failed(request, failure.kind, failed_stage, failure.message)
        else:
            machine.transition(BuildStage.DONE)
            result = BuildResult.succeeded(
                request,
                archive_path=Path.cwd() / request.archive_name,
                message=f"{request.archive_name} is generated.",
            )
        result.workspace_removed = workspace.removed
        return result

    def _compile(self, request: BuildRequest, output_dir: Path, machine: BuildStateMachine) -> None:
        machine.transition(BuildStage.COMPILE)
        tc = self.toolchain
        invocation = ToolInvocation(
            working_directory=output_dir,
            command_line=[
                tc.javac,
                "-d",
                ".",
                "-cp",
                tc.classpath(tc.aspectj_runtime_jar, tc.bootstrap_jar),
                request.runtime_monitor_source,
            ],
        )
        status = self._run_tool("javac", invocation)
        if status != 0:
            raise StageFailure(FailureKind.TOOL_INVOCATION, "(javac) Failed to compile agent.", status)
        machine.complete_stage(status)

    def _weave(self, request: BuildRequest, output_dir: Path, machine: BuildStateMachine) -> None:
        machine.transition(BuildStage.WEAVE)
        tc = self.toolchain
        invocation = ToolInvocation(
            working_directory=output_dir,
            command_line=[
                tc.java,
                "-cp",
                tc.classpath(tc.aspectj_tools_jar, tc.bootstrap_jar, tc.aspectj_runtime_jar, "."),
                AJC_MAIN_CLASS,
                f"-{tc.source_level}",
                "-d",
                str(output_dir),
                "-outxml",
                str(tc.lib_file(tc.base_aspect)),
                request.monitor_aspect_source,
            ],
        )
        status = self._run_tool("ajc", invocation)
        # ajc exits non-zero on some non-fatal warnings; verify_weave decides
        if status != 0:
            logger.warning("ajc exited with status %d; checking for %s", status, WEAVE_DESCRIPTOR)
        machine.complete_stage(status)

    def _verify_weave(self, output_dir: Path, machine: BuildStateMachine) -> Path:
        machine.transition(BuildStage.VERIFY_WEAVE)
        descriptor = output_dir / "META-INF" / WEAVE_DESCRIPTOR
        if not descriptor.exists():
            raise StageFailure(FailureKind.ARTIFACT_MISSING, f"(ajc) Failed to produce {WEAVE_DESCRIPTOR}")
        machine.complete_stage()
        return descriptor

    def _stage_and_archive(
        self,
        request: BuildRequest,
        output_dir: Path,
        workspace: StagingWorkspace,
        descriptor: Path,
        machine: BuildStateMachine,
    ) -> None:
        machine.transition(BuildStage.ASSEMBLE_METADATA)
        meta_inf = workspace.metadata_dir
        if not meta_inf.is_dir():
            try:
                meta_inf.mkdir()
            except OSError as e:
                raise StageFailure(FailureKind.FILESYSTEM, "(mkdir) Failed to create META-INF") from e
        self.copier.copy(descriptor, meta_inf / WEAVE_DESCRIPTOR)
        machine.complete_stage()

        machine.transition(BuildStage.RELOCATE_CLASSES)
        move_path(output_dir / CLASSES_DIR, workspace.path / CLASSES_DIR)
        machine.complete_stage()

        machine.transition(BuildStage.ATTACH_MANIFEST)
        tc = self.toolchain
        manifest = self.copier.copy(tc.lib_file(tc.manifest), meta_inf / tc.manifest)
        machine.complete_stage()

        machine.transition(BuildStage.ARCHIVE)
        invocation = ToolInvocation(
            working_directory=Path.cwd(),
            command_line=[
                tc.jar,
                "cmf",
                str(manifest),
                request.archive_name,
                "-C",
                str(workspace.path),
                ".",
            ],
        )
        status = self._run_tool("jar", invocation)
        if status != 0:
            raise StageFailure(FailureKind.TOOL_INVOCATION, "(jar) Failed to produce final jar", status)
        machine.complete_stage(status)

    def _run_tool(self, label: str, invocation: ToolInvocation) -> int:
        logger.info("Running %s", label)
        result = self.runner.execute(invocation)
        if result.status == ToolStatus.INTERRUPTED:
            raise StageFailure(
                FailureKind.INTERRUPTED_WAIT,
                f"({label}) Interrupted while waiting for the tool to exit",
            )
        return result.exit_status

    @staticmethod
    def _record_failure(machine: BuildStateMachine, failure: StageFailure) -> None:
        logger.error("%s", failure.message)
        machine.fail_stage(failure.message, exit_status=failure.exit_status)

    def _failed(self, request: BuildRequest, machine: BuildStateMachine, failure: StageFailure) -> BuildResult:
        self._record_failure(machine, failure)
        return BuildResult.failed(request, failure.kind, machine.current_stage, failure.message)
