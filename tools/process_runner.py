"""Synchronous external tool execution."""

import logging
import subprocess
from typing import Any

from schemas.build import TOOL_NOT_FOUND_EXIT_STATUS, ToolInvocation

from .base import BaseTool, ToolResult

logger = logging.getLogger(__name__)


class ProcessRunner(BaseTool):
    """Run one external tool to completion and report how it ended.

    In verbose mode the command line is echoed first and the child inherits
    this process's stdin, stdout and stderr. Otherwise the child's streams
    are bound to the null device and never observed.

    There is no timeout: a tool that never exits blocks the caller.
    """

    name = "process"
    description = "External tool invocation"

    def __init__(self, verbose: bool = False) -> None:
        """Initialize process runner.

        Args:
            verbose: Echo command lines and forward child streams
        """
        self.verbose = verbose

    def execute(self, invocation: ToolInvocation) -> ToolResult:
        """Run the invocation and wait for it.

        Returns:
            ``ToolResult.exited`` with the child's exit status (negative if a
            signal killed it, ``TOOL_NOT_FOUND_EXIT_STATUS`` if the
            executable could not be started), or ``ToolResult.interrupted``
            if the wait itself was interrupted.
        """
        logger.debug("Running %s", invocation.display())
        if self.verbose:
            print(invocation.display(), flush=True)

        streams: dict[str, Any] = {}
        if not self.verbose:
            streams = {
                "stdin": subprocess.DEVNULL,
                "stdout": subprocess.DEVNULL,
                "stderr": subprocess.DEVNULL,
            }

        metadata = {"command": invocation.display()}
        try:
            proc = subprocess.Popen(
                invocation.command_line,
                cwd=invocation.working_directory,
                **streams,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.error("Cannot start %s: %s", invocation.tool, e)
            return ToolResult.exited(TOOL_NOT_FOUND_EXIT_STATUS, error=str(e), metadata=metadata)

        try:
            returncode = proc.wait()
        except KeyboardInterrupt:
            logger.exception("Interrupted while waiting for %s", invocation.tool)
            self._stop(proc)
            return ToolResult.interrupted(error=f"wait for {invocation.tool} interrupted", metadata=metadata)

        logger.debug("%s exited with status %d", invocation.tool, returncode)
        return ToolResult.exited(
            returncode,
            error=None if returncode == 0 else f"{invocation.tool} exited with status {returncode}",
            metadata=metadata,
        )

    @staticmethod
    def _stop(proc: subprocess.Popen) -> None:
        """Terminate an abandoned child and reap it."""
        proc.terminate()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
