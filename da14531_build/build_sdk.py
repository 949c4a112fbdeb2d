#!/usr/bin/env python3
"""
DA14531 SDK build engine: command line entry point

Meant to be spawned from a crate's build.rs: reads the cargo build-script
environment, generates the config headers, bindings, static SDK archive and
linker script into OUT_DIR, and prints cargo directives on stdout.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from .bindings import BindgenAdapter
from .catalog import get_catalog, load_catalog
from .compiler import CompilationConfig, GccToolchain
from .config import EngineConfig, load_engine_config
from .directives import CargoDirectives
from .errors import BuildError
from .features import FeatureSet
from .pipeline import BuildPipeline

log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="da14531-build",
        description="DA14531 SDK build engine: config headers, bindings, SDK archive and linker script",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML engine configuration (features, layout, toolchain, bindgen)",
    )
    parser.add_argument(
        "--features",
        nargs="+",
        default=None,
        help="Active features (default: the CARGO_FEATURE_* set from cargo)",
    )
    parser.add_argument(
        "--layout",
        default=None,
        help="Built-in SDK layout name (default, cmsis-5.6)",
    )
    parser.add_argument(
        "--catalog",
        type=Path,
        default=None,
        help="YAML file describing a custom SDK layout",
    )
    parser.add_argument(
        "--toolchain-prefix",
        default=None,
        help="Cross toolchain prefix (default: arm-none-eabi-)",
    )
    parser.add_argument(
        "--bindgen",
        default=None,
        help="Path to the bindgen executable",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate, resolve the plan and generate headers only; run no external tools",
    )
    parser.add_argument(
        "--no-manifest",
        action="store_true",
        help="Do not write build_manifest.json",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    return parser


def resolve_engine_config(args: argparse.Namespace) -> EngineConfig:
    """Config file first, command line flags on top."""
    config = load_engine_config(args.config) if args.config else EngineConfig()
    if args.features is not None:
        config.features = args.features
    if args.layout:
        config.sdk_layout = args.layout
    if args.catalog:
        config.catalog_file = args.catalog
    if args.toolchain_prefix:
        config.toolchain_prefix = args.toolchain_prefix
    if args.bindgen:
        config.bindgen_path = args.bindgen
    if args.no_manifest:
        config.write_manifest = False
    return config


def create_pipeline(
    config: EngineConfig,
    directives: CargoDirectives,
    config_file: Path | None = None,
) -> BuildPipeline:
    if config.catalog_file:
        catalog = load_catalog(config.catalog_file)
    else:
        catalog = get_catalog(config.sdk_layout)

    features = FeatureSet.of(config.features) if config.features is not None else None
    toolchain = GccToolchain(
        prefix=config.toolchain_prefix,
        config=CompilationConfig(optimization=config.optimization),
    )
    return BuildPipeline(
        environ=os.environ,
        features=features,
        catalog=catalog,
        toolchain=toolchain,
        binding_generator=BindgenAdapter(toolchain, config.bindgen_path),
        directives=directives,
        rustified_enums=config.rustified_enums,
        write_manifest=config.write_manifest,
        config_files=[p for p in (config_file, config.catalog_file) if p],
    )


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    # stdout carries cargo directives; logs go to stderr
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-5s %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    directives = CargoDirectives()
    try:
        config = resolve_engine_config(args)
        pipeline = create_pipeline(config, directives, config_file=args.config)
        pipeline.run(dry_run=args.dry_run)
    except (BuildError, OSError, ValueError) as e:
        log.error("%s", e)
        directives.emit()
        return 1

    directives.emit()
    return 0


if __name__ == "__main__":
    sys.exit(main())
