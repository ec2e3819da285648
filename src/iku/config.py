"""Discovery and loading of iku.toml project files."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILENAME = "iku.toml"


@dataclass
class PackageConfig:
    name: str = "untitled"
    version: str = "0.0.0"
    authors: list[str] = field(default_factory=list)


@dataclass
class FormatConfig:
    indent: int = 4


@dataclass
class DiagnosticsConfig:
    color: bool = True


@dataclass
class IkuConfig:
    package: PackageConfig = field(default_factory=PackageConfig)
    format: FormatConfig = field(default_factory=FormatConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find iku.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_FILENAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_FILENAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> IkuConfig:
    """Parse an iku.toml file into an IkuConfig.

    Missing sections and keys keep their defaults. Raises ValueError for
    malformed TOML and for an indent that is not a positive integer.
    """
    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"{path}: invalid TOML: {e}") from e

    config = IkuConfig()

    if "package" in data:
        pkg = data["package"]
        config.package = PackageConfig(
            name=pkg.get("name", "untitled"),
            version=pkg.get("version", "0.0.0"),
            authors=pkg.get("authors", []),
        )

    if "format" in data:
        indent = data["format"].get("indent", 4)
        if isinstance(indent, bool) or not isinstance(indent, int) or indent < 1:
            raise ValueError(f"{path}: [format] indent must be a positive integer, got {indent!r}")
        config.format = FormatConfig(indent=indent)

    if "diagnostics" in data:
        config.diagnostics = DiagnosticsConfig(
            color=bool(data["diagnostics"].get("color", True)),
        )

    return config


def config_for(path: Path | None = None) -> IkuConfig:
    """Load the iku.toml governing ``path``, or the defaults when there is none."""
    try:
        return load_config(find_config(path))
    except FileNotFoundError:
        return IkuConfig()
