"""TOML config loading for plc.toml."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_NAME = "plc.toml"


@dataclass
class PackageConfig:
    name: str = "untitled"
    version: str = "0.0.0"
    authors: list[str] = field(default_factory=list)
    license: str = ""


@dataclass
class RunConfig:
    analyze: bool = True
    recursion_limit: int = 10000


@dataclass
class DiagnosticsConfig:
    color: bool = True


@dataclass
class PlcConfig:
    package: PackageConfig = field(default_factory=PackageConfig)
    run: RunConfig = field(default_factory=RunConfig)
    diagnostics: DiagnosticsConfig = field(default_factory=DiagnosticsConfig)


def find_config(start_path: Path | None = None) -> Path:
    """Walk up directories to find plc.toml. Raises FileNotFoundError."""
    path = (start_path or Path.cwd()).resolve()
    if path.is_file():
        path = path.parent
    while True:
        candidate = path / CONFIG_NAME
        if candidate.exists():
            return candidate
        parent = path.parent
        if parent == path:
            raise FileNotFoundError(f"No {CONFIG_NAME} found in any parent directory")
        path = parent


def load_config(path: Path) -> PlcConfig:
    """Parse a plc.toml file into a PlcConfig."""
    with open(path, "rb") as f:
        data = tomllib.load(f)

    config = PlcConfig()

    if "package" in data:
        pkg = data["package"]
        config.package = PackageConfig(
            name=pkg.get("name", "untitled"),
            version=pkg.get("version", "0.0.0"),
            authors=pkg.get("authors", []),
            license=pkg.get("license", ""),
        )

    if "run" in data:
        run = data["run"]
        config.run = RunConfig(
            analyze=run.get("analyze", True),
            recursion_limit=run.get("recursion_limit", 10000),
        )

    if "diagnostics" in data:
        diag = data["diagnostics"]
        config.diagnostics = DiagnosticsConfig(color=diag.get("color", True))

    return config


def config_for(path: Path) -> PlcConfig:
    """Config of the project containing ``path``, or defaults if there is none."""
    try:
        return load_config(find_config(path))
    except FileNotFoundError:
        return PlcConfig()
