"""Configuration loading for the SDK build engine."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .bindings import RUSTIFIED_ENUMS
from .catalog import DEFAULT_CATALOG
from .compiler import DEFAULT_PREFIX


@dataclass
class EngineConfig:
    features: list[str] | None = None  # None: take cargo's CARGO_FEATURE_* set
    sdk_layout: str = DEFAULT_CATALOG.name
    catalog_file: Path | None = None
    toolchain_prefix: str = DEFAULT_PREFIX
    bindgen_path: str | None = None
    rustified_enums: list[str] = field(default_factory=lambda: list(RUSTIFIED_ENUMS))
    optimization: str = "Oz"
    write_manifest: bool = True


def load_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from YAML file."""
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"{config_path}: invalid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: expected a mapping, got {type(data).__name__}")
    return data


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{key}': expected a mapping, got {type(section).__name__}")
    return section


def _names(value: Any, key: str) -> list[str]:
    names = value or []
    if not isinstance(names, list):
        raise ValueError(f"'{key}': expected a list, got {type(names).__name__}")
    return [str(n) for n in names]


def engine_config_from_dict(data: dict[str, Any], base_dir: Path | None = None) -> EngineConfig:
    """Build an EngineConfig; relative file paths resolve against `base_dir`."""
    config = EngineConfig()
    if "features" in data:
        config.features = _names(data["features"], "features")
    config.sdk_layout = str(data.get("sdk_layout", config.sdk_layout))

    catalog_file = data.get("catalog_file")
    if catalog_file:
        path = Path(catalog_file)
        if base_dir is not None and not path.is_absolute():
            path = base_dir / path
        config.catalog_file = path

    toolchain = _section(data, "toolchain")
    config.toolchain_prefix = toolchain.get("prefix", config.toolchain_prefix)
    config.optimization = toolchain.get("optimization", config.optimization)

    bindgen = _section(data, "bindgen")
    config.bindgen_path = bindgen.get("path", config.bindgen_path)
    if "rustified_enums" in bindgen:
        config.rustified_enums = _names(bindgen["rustified_enums"], "bindgen.rustified_enums")

    config.write_manifest = bool(data.get("write_manifest", config.write_manifest))
    return config


def load_engine_config(config_path: Path) -> EngineConfig:
    config_path = Path(config_path)
    data = load_config(config_path)
    try:
        return engine_config_from_dict(data, base_dir=config_path.parent)
    except ValueError as e:
        raise ValueError(f"{config_path}: {e}") from e
