"""mopagent CLI.

Command-line interface for building Java monitoring agents.
"""

from pipeline import __version__

from cli.mopagent.cli import app, main

__all__ = ["__version__", "app", "main"]
