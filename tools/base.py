"""Base tool interface for build pipeline operations."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ToolStatus(Enum):
    """How a tool step ended.

    ``INTERRUPTED`` is carried apart from the exit status: a child killed by
    a signal reports a negative status of its own, which is an ordinary
    ``FAILURE``.
    """

    SUCCESS = "success"
    FAILURE = "failure"
    INTERRUPTED = "interrupted"


@dataclass
class ToolResult:
    """Result of one tool step.

    ``exit_status`` is the child's status for process steps and ``None``
    when no status was observed (filesystem steps, interrupted waits).
    """

    status: ToolStatus
    exit_status: int | None = None
    output: Any = None
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def exited(cls, exit_status: int, **kwargs: Any) -> "ToolResult":
        status = ToolStatus.SUCCESS if exit_status == 0 else ToolStatus.FAILURE
        return cls(status=status, exit_status=exit_status, **kwargs)

    @classmethod
    def interrupted(cls, **kwargs: Any) -> "ToolResult":
        return cls(status=ToolStatus.INTERRUPTED, **kwargs)

    @property
    def success(self) -> bool:
        return self.status == ToolStatus.SUCCESS

    def __bool__(self) -> bool:
        return self.success


class BaseTool(ABC):
    """Abstract base class for pipeline tools.

    Tools wrap one external concern (a child process, a tree deletion)
    behind ``ToolResult`` so the orchestrator never depends on a particular
    compiler, weaver or archiver.
    """

    name: str = "base_tool"
    description: str = "Base tool interface"

    @abstractmethod
    def execute(self, *args: Any, **kwargs: Any) -> ToolResult:
        """Run the tool once and report how it ended."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
