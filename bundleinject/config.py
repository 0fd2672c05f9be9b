"""Settings model and config file resolution for bundleinject."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

CONFIG_FILENAME = "html.config.yml"
HTML_SUFFIXES = (".html", ".htm")


class GroupingMode(str, Enum):
    """How multi-entry mode decides which manifest keys belong to an entry."""

    SUBSTRING = "substring"
    SEGMENT = "segment"


class Settings(BaseModel):
    """Resolved options for one injection run."""

    model_config = ConfigDict(extra="forbid")

    manifest: Path = Field(default=Path("manifest.json"), description="Path to the bundler manifest JSON.")
    source: Path = Field(default=Path("src/index.html"), description="HTML template containing the bundle markers.")
    dest: Path = Field(
        default=Path("public"),
        description="Output directory, or an .html file path for single-entry runs.",
    )
    multi: bool = Field(default=False, description="Write one HTML file per manifest entry.")
    watch: int = Field(default=250, ge=0, description="Debounce interval in milliseconds for watch mode.")
    grouping: GroupingMode = Field(
        default=GroupingMode.SUBSTRING,
        description="Key matching used to group chunks per entry in multi mode.",
    )

    @field_validator("manifest", "source", "dest", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        if value is None or value == "":
            raise ValueError("path options cannot be empty")
        return Path(value)

    @property
    def output_dir(self) -> Path:
        if self.dest.suffix.lower() in HTML_SUFFIXES:
            return self.dest.parent
        return self.dest

    @property
    def single_destination_name(self) -> str:
        if self.dest.suffix.lower() in HTML_SUFFIXES:
            return self.dest.name
        return self.source.name

    @property
    def debounce_seconds(self) -> float:
        return self.watch / 1000.0


def load_settings(path: str | Path | None = None, *, cwd: Path | None = None) -> Settings:
    """Load settings, applying a config file over the built-in defaults.

    Resolution order:

    * ``path`` when given. It may name a config file or a directory holding
      ``html.config.yml``; a missing path raises ``FileNotFoundError``.
    * ``html.config.yml`` in the working directory.
    * Built-in defaults.

    Relative paths inside a config file are anchored to the directory holding
    that file. Defaults are anchored to the working directory.
    """
    working_dir = (cwd or Path.cwd()).resolve()
    data: dict[str, Any] = {}

    config_file, base_dir = _locate_config(path, working_dir)
    if config_file is not None:
        data = _read_config(config_file)

    settings = Settings.model_validate(data)

    def _abs(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    settings.manifest = _abs(settings.manifest)
    settings.source = _abs(settings.source)
    settings.dest = _abs(settings.dest)
    return settings


def _locate_config(path: str | Path | None, working_dir: Path) -> tuple[Path | None, Path]:
    """Return the config file to read (if any) and the directory paths are anchored to."""
    if path is not None:
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = working_dir / candidate
        if candidate.is_dir():
            config_file = candidate / CONFIG_FILENAME
            # A project directory without a config file uses defaults anchored there.
            if config_file.exists():
                return config_file, candidate.resolve()
            return None, candidate.resolve()
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        return candidate, candidate.parent.resolve()

    default_file = working_dir / CONFIG_FILENAME
    if default_file.exists():
        return default_file, working_dir
    return None, working_dir


def _read_config(config_file: Path) -> dict[str, Any]:
    try:
        with config_file.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Config file {config_file} could not be parsed: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_file} should define a mapping of options.")
    non_string = [key for key in data if not isinstance(key, str)]
    if non_string:
        raise ValueError(f"Config file {config_file} has non-text option names: {non_string!r}")
    return data
