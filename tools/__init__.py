"""Tools module for agent build operations.

Provides deterministic tool abstractions for:
- External tool invocation (javac, ajc, jar)
- Byte-exact file copy
- Move by rename
- Recursive tree deletion
"""

from .base import BaseTool, ToolResult, ToolStatus
from .filesystem_tool import FileCopier, TreeDeleteTool, TreeDeleter, move_path
from .process_runner import ProcessRunner

__all__ = [
    "BaseTool",
    "ToolResult",
    "ToolStatus",
    "FileCopier",
    "TreeDeleteTool",
    "TreeDeleter",
    "move_path",
    "ProcessRunner",
]
