"""Configuration management for refsheet.

Settings are loaded from three sources in order of priority:
1. Environment variables (highest priority)
2. Project-level config: .refsheet.toml
3. Global config: ~/.config/refsheet/config.toml (lowest priority)

Command-line options are applied on top by the CLI.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final

from rich.console import Console

from refsheet.exceptions import ConfigError

console = Console(stderr=True)

_GLOBAL_CONFIG_PATH: Final[Path] = Path.home() / ".config" / "refsheet" / "config.toml"
_PROJECT_CONFIG_NAME: Final[str] = ".refsheet.toml"
_LOG_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR"})

DEFAULT_OUTPUT: Final[Path] = Path("spreadsheets") / "project_references.csv"


@dataclass
class RefsheetConfig:
    """refsheet configuration.

    Attributes:
        root: Directory to scan. Discovered paths are joined onto it as given.
        output: Location of the index table.
        exclude: Path segment names skipped during traversal.
        extensions: Suffixes identifying source files.
        follow_links: Whether the scan follows symbolic links.
        workers: Number of extraction threads (1 = extract inline).
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR).
    """

    root: Path = field(default_factory=lambda: Path("."))
    output: Path = DEFAULT_OUTPUT
    exclude: list[str] = field(default_factory=lambda: ["target"])
    extensions: list[str] = field(default_factory=lambda: [".rs"])
    follow_links: bool = True
    workers: int = 1
    log_level: str = "INFO"

    @property
    def verbose(self) -> bool:
        return self.log_level == "DEBUG"

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ConfigError: If any setting is out of range.
        """
        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")
        if self.log_level not in _LOG_LEVELS:
            raise ConfigError(
                f"Unknown log level {self.log_level!r}; expected one of "
                f"{', '.join(sorted(_LOG_LEVELS))}"
            )
        if not self.extensions:
            raise ConfigError("At least one source file extension is required")


def load_config(project_dir: Path) -> RefsheetConfig:
    """Load configuration from env vars, project config, and global config.

    Priority: env vars > .refsheet.toml > ~/.config/refsheet/config.toml

    Args:
        project_dir: Directory holding the project config file.

    Returns:
        A fully resolved RefsheetConfig instance.

    Raises:
        ConfigError: If a setting has an invalid value.
    """
    config = RefsheetConfig()

    _apply_toml(config, _load_toml(_GLOBAL_CONFIG_PATH))
    _apply_toml(config, _load_toml(project_dir / _PROJECT_CONFIG_NAME))
    _apply_env(config)

    config.validate()
    return config


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file, returning an empty dict if missing or invalid."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError, UnicodeDecodeError) as exc:
        console.print(f"[yellow]Warning:[/yellow] Could not parse {path}: {exc}")
        return {}


def _apply_toml(config: RefsheetConfig, settings: dict[str, Any]) -> None:
    """Merge TOML settings into a RefsheetConfig."""
    try:
        if "root" in settings:
            config.root = Path(str(settings["root"]))
        if "output" in settings:
            config.output = Path(str(settings["output"]))
        if "exclude" in settings:
            config.exclude = [str(name) for name in settings["exclude"]]
        if "extensions" in settings:
            config.extensions = [_dotted(str(ext)) for ext in settings["extensions"]]
        if "follow_links" in settings:
            config.follow_links = bool(settings["follow_links"])
        if "workers" in settings:
            config.workers = int(settings["workers"])
        if "log_level" in settings:
            config.log_level = str(settings["log_level"]).upper()
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc


def _apply_env(config: RefsheetConfig) -> None:
    """Override config with environment variables where set."""
    if output := os.environ.get("REFSHEET_OUTPUT"):
        config.output = Path(output)
    if exclude := os.environ.get("REFSHEET_EXCLUDE"):
        config.exclude = [name.strip() for name in exclude.split(",") if name.strip()]
    if follow := os.environ.get("REFSHEET_FOLLOW_LINKS"):
        config.follow_links = follow.lower() in ("true", "1", "yes")
    if workers := os.environ.get("REFSHEET_WORKERS"):
        try:
            config.workers = int(workers)
        except ValueError as exc:
            raise ConfigError(f"REFSHEET_WORKERS must be an integer, got {workers!r}") from exc
    if log_level := os.environ.get("REFSHEET_LOG_LEVEL"):
        config.log_level = log_level.upper()


def _dotted(ext: str) -> str:
    return ext if ext.startswith(".") else f".{ext}"
