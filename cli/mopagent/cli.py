"""mopagent CLI.

Command-line interface for assembling generated monitors into an agent jar.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.logging import RichHandler

from cli.mopagent.output import (
    console,
    error_console,
    print_build_result,
    print_checks,
    print_config,
    print_error,
    print_info,
    print_json,
    print_success,
    print_warning,
)
from orchestrator import AgentBuilder
from orchestrator.workspace import WORKSPACE_PREFIX
from pipeline.config import Config, find_config_file, load_config
from schemas.build import BuildRequest
from tools.filesystem_tool import TreeDeleteTool

app = typer.Typer(
    name="mopagent",
    help="Package generated runtime monitors into a deployable Java agent jar.",
    no_args_is_help=True,
)

# Config sub-app
config_app = typer.Typer(
    name="config",
    help="Manage configuration settings.",
)
app.add_typer(config_app, name="config")

CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to config.toml (default: search current and parent directories)",
)


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def _load(config_file: Optional[Path], lib_dir: Optional[Path] = None, verbose: bool = False) -> Config:
    config = load_config(config_file)
    if lib_dir is not None:
        config.toolchain.lib_dir = str(lib_dir)
    if verbose:
        config.build.verbose = True
    _setup_logging("DEBUG" if config.build.verbose else config.logging.level)
    return config


@app.command()
def build(
    name: str = typer.Argument(..., help="Agent name: reads NAMERuntimeMonitor.java and NAMEMonitorAspect.aj"),
    output_dir: Path = typer.Option(
        Path("."),
        "--output-dir",
        "-o",
        help="Directory holding the generated sources and intermediate files",
    ),
    lib_dir: Optional[Path] = typer.Option(
        None,
        "--lib-dir",
        "-l",
        help="Directory holding the AspectJ jars, rt.jar, BaseAspect.aj and MANIFEST.MF",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Echo tool command lines and show their output",
    ),
    no_lock: bool = typer.Option(
        False,
        "--no-lock",
        help="Do not lock the output directory against concurrent builds",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Print the build result as JSON",
    ),
    config_file: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Compile, weave and archive NAME.jar into the current directory."""
    config = _load(config_file, lib_dir=lib_dir, verbose=verbose)

    try:
        request = BuildRequest(output_directory=output_dir, agent_name=name)
    except ValidationError as e:
        print_error(f"Invalid build request: {e.errors()[0]['msg']}")
        raise typer.Exit(2)

    overrides = {"lock": False} if no_lock else {}
    builder = AgentBuilder.from_config(config, **overrides)

    try:
        result = builder.build(request)
    except KeyboardInterrupt:
        print_warning("Build interrupted")
        raise typer.Exit(130)

    if json_output:
        print_json(result.model_dump(mode="json"))
    else:
        print_build_result(result)

    if not result.success:
        raise typer.Exit(1)


@app.command()
def check(
    name: Optional[str] = typer.Argument(None, help="Agent name whose generated sources to look for"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Directory holding the generated sources"),
    lib_dir: Optional[Path] = typer.Option(None, "--lib-dir", "-l", help="Supporting library directory"),
    config_file: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Check that the toolchain, supporting files and generated sources are present."""
    config = _load(config_file, lib_dir=lib_dir)
    tc = config.toolchain
    checks: list[tuple[str, bool, str]] = []

    for tool in (tc.javac, tc.java, tc.jar):
        found = shutil.which(tool)
        checks.append((f"tool {tool}", found is not None, found or "not on PATH"))

    for path in tc.supporting_files():
        checks.append((f"library {path.name}", path.is_file(), str(path)))

    if name:
        try:
            request = BuildRequest(output_directory=output_dir, agent_name=name)
        except ValidationError as e:
            print_error(f"Invalid agent name: {e.errors()[0]['msg']}")
            raise typer.Exit(2)
        for source in (request.runtime_monitor_source, request.monitor_aspect_source):
            path = output_dir / source
            checks.append((f"source {source}", path.is_file(), str(path.absolute())))

    print_checks(checks)

    if not all(ok for _, ok, _ in checks):
        raise typer.Exit(1)


@app.command()
def clean(
    output_dir: Path = typer.Argument(Path("."), help="Output directory to clean"),
) -> None:
    """Delete staging workspaces left behind in OUTPUT_DIR."""
    if not output_dir.is_dir():
        print_error(f"Not a directory: {output_dir}")
        raise typer.Exit(1)

    stale = sorted(p for p in output_dir.glob(f"{WORKSPACE_PREFIX}*") if p.is_dir())
    if not stale:
        print_info("No staging workspaces found.")
        return

    tool = TreeDeleteTool(output_dir)
    failed = False
    for workspace in stale:
        result = tool.execute(workspace.name)
        if result:
            print_success(f"Removed {workspace} ({result.metadata['removed']} entries)")
        else:
            print_error(f"Failed to remove {workspace}: {result.error}")
            failed = True

    if failed:
        raise typer.Exit(1)


@config_app.command("show")
def config_show(
    config_file: Optional[Path] = CONFIG_OPTION,
) -> None:
    """Show the effective configuration."""
    config = load_config(config_file)
    source = config_file or find_config_file()
    print_info(f"Config file: {source or 'none (defaults and environment)'}")
    print_config(config.to_dict())


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config.toml"),
) -> None:
    """Create a config.toml with default settings in the current directory."""
    config_path = Path.cwd() / "config.toml"
    if config_path.exists() and not force:
        print_error(f"Config file already exists: {config_path} (use --force to overwrite)")
        raise typer.Exit(1)

    default_config = '''# mopagent configuration

[toolchain]
javac = "javac"
java = "java"
jar = "jar"
lib_dir = "lib"
source_level = "1.6"

[build]
verbose = false
lock = true
lock_timeout = 30.0

[logging]
level = "WARNING"
'''

    config_path.write_text(default_config)
    print_success(f"Created config file: {config_path}")


@app.command()
def version() -> None:
    """Show mopagent version."""
    from pipeline import __version__

    console.print(f"mopagent v{__version__}")


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
