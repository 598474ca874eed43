"""Configuration management for the agent builder.

Loads configuration from:
1. config.toml (defaults)
2. Environment variables (overrides)
"""

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class ToolchainConfig:
    """Java toolchain and supporting library locations."""

    javac: str = "javac"
    java: str = "java"
    jar: str = "jar"
    lib_dir: str = "lib"  # Resolved against the current directory
    source_level: str = "1.6"  # Passed to ajc as -<source_level>

    # Fixed file names inside lib_dir
    aspectj_tools_jar: str = "aspectjtools.jar"
    aspectj_runtime_jar: str = "aspectjrt.jar"
    aspectj_weaver_jar: str = "aspectjweaver.jar"
    bootstrap_jar: str = "rt.jar"
    base_aspect: str = "BaseAspect.aj"
    manifest: str = "MANIFEST.MF"

    @property
    def lib_path(self) -> Path:
        return Path(self.lib_dir).absolute()

    def lib_file(self, name: str) -> Path:
        return self.lib_path / name

    def classpath(self, *names: str) -> str:
        """Join library jars (or literal entries like ".") with the platform separator."""
        entries = [name if name == "." else str(self.lib_file(name)) for name in names]
        return os.pathsep.join(entries)

    def supporting_files(self) -> list[Path]:
        """Library files every build reads."""
        return [
            self.lib_file(self.aspectj_tools_jar),
            self.lib_file(self.aspectj_runtime_jar),
            self.lib_file(self.bootstrap_jar),
            self.lib_file(self.base_aspect),
            self.lib_file(self.manifest),
        ]


@dataclass
class BuildConfig:
    """Build execution configuration."""

    verbose: bool = False  # Echo command lines and forward tool output
    lock: bool = True  # Serialize builds into the same output directory
    lock_timeout: float = 30.0  # Seconds to wait for another build to finish


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Main configuration container."""

    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            toolchain=ToolchainConfig(**data.get("toolchain", {})),
            build=BuildConfig(**data.get("build", {})),
            logging=LoggingConfig(**data.get("logging", {})),
        )

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            "toolchain": dict(vars(self.toolchain)),
            "build": dict(vars(self.build)),
            "logging": dict(vars(self.logging)),
        }


def find_config_file() -> Path | None:
    """Find config.toml in current or parent directories.

    Returns:
        Path to config.toml or None if not found.
    """
    current = Path.cwd()

    for directory in [current, *current.parents]:
        config_path = directory / "config.toml"
        if config_path.exists():
            return config_path

    return None


def load_config(config_path: Path | str | None = None) -> Config:
    """Load configuration from file and environment.

    Args:
        config_path: Optional explicit path to config.toml

    Returns:
        Config object with merged settings.
    """
    config_data: dict[str, Any] = {}

    if config_path is None:
        config_path = find_config_file()

    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            with open(path, "rb") as f:
                config_data = tomllib.load(f)

    env_overrides = {
        "toolchain": {
            "javac": os.getenv("MOP_JAVAC"),
            "java": os.getenv("MOP_JAVA"),
            "jar": os.getenv("MOP_JAR"),
            "lib_dir": os.getenv("MOP_LIB_DIR"),
            "source_level": os.getenv("MOP_SOURCE_LEVEL"),
        },
        "build": {
            "verbose": _bool_or_none(os.getenv("MOP_VERBOSE")),
            "lock_timeout": _float_or_none(os.getenv("MOP_LOCK_TIMEOUT")),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL"),
        },
    }

    # Merge env overrides (only non-None values)
    for section, values in env_overrides.items():
        if section not in config_data:
            config_data[section] = {}
        for key, value in values.items():
            if value is not None:
                config_data[section][key] = value

    return Config.from_dict(config_data)


def _float_or_none(value: str | None) -> float | None:
    """Convert string to float, or return None."""
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _bool_or_none(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.strip().lower() in ("1", "true", "yes", "on")


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance.

    Returns:
        Config object (loaded once, cached).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Force reload of configuration.

    Returns:
        Fresh Config object.
    """
    global _config
    _config = load_config()
    return _config
