"""Build plan: the resolved include/define/source set shared by every tool step."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from .catalog import DEFAULT_CATALOG, SdkCatalog
from .errors import EnvironmentCheckError
from .features import FeatureSet
from .generate.headers import GENERATED_HEADERS

log = logging.getLogger(__name__)


@dataclass
class BuildPlan:
    include_dirs: list[Path] = field(default_factory=list)
    include_files: list[Path] = field(default_factory=list)  # force-included, config headers last
    defines: dict[str, str | None] = field(default_factory=dict)
    c_sources: list[Path] = field(default_factory=list)
    asm_sources: list[Path] = field(default_factory=list)

    def define_flags(self) -> list[str]:
        """-D flags; value-less defines are passed bare."""
        flags = []
        for key, value in self.defines.items():
            flags.append(f"-D{key}" if value is None else f"-D{key}={value}")
        return flags

    def include_dir_flags(self) -> list[str]:
        return [f"-I{d}" for d in self.include_dirs]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "include_dirs": [str(p) for p in self.include_dirs],
            "include_files": [str(p) for p in self.include_files],
            "defines": dict(self.defines),
            "c_sources": [str(p) for p in self.c_sources],
            "asm_sources": [str(p) for p in self.asm_sources],
        }


def _unique(paths: Iterable[Path]) -> list[Path]:
    # First occurrence wins; order is compiler search precedence
    return list(dict.fromkeys(paths))


def assemble_build_plan(
    sdk_root: Path | str | None,
    features: FeatureSet,
    out_dir: Path,
    local_include_dir: Path,
    selections: Mapping[str, str] | None = None,
    catalog: SdkCatalog = DEFAULT_CATALOG,
) -> BuildPlan:
    """
    Resolve the catalog against an SDK checkout and a feature set.

    `selections` are the resolved exclusive-group macros (see
    features.resolve_selections); they are mirrored into the defines with
    the same text the generated user_config.h uses.
    """
    if not sdk_root:
        raise EnvironmentCheckError("SDK_PATH is missing. Must be set to DA145XX SDK path")

    root = Path(sdk_root).absolute()
    out_dir = Path(out_dir).absolute()
    local_include_dir = Path(local_include_dir).absolute()
    active = features.active

    include_dirs = list(catalog.include_dirs)
    c_sources = list(catalog.c_sources)
    sdk_include_files: list[str] = []

    for addendum in catalog.addenda:
        if addendum.feature not in active:
            continue
        log.debug("Feature %s adds %d include dirs, %d sources, %d headers",
                  addendum.feature, len(addendum.include_dirs),
                  len(addendum.c_sources), len(addendum.include_files))
        include_dirs.extend(addendum.include_dirs)
        c_sources.extend(addendum.c_sources)
        sdk_include_files.extend(addendum.include_files)

    kept_sources = []
    for src in c_sources:
        excluded_by = [e for e in catalog.exclusions if e.excludes(src, active)]
        if excluded_by:
            log.debug("Excluding %s (feature %s)", src, excluded_by[0].feature)
            continue
        kept_sources.append(src)

    plan = BuildPlan()
    plan.include_dirs = _unique(
        [root / d for d in include_dirs] + [local_include_dir, out_dir]
    )

    plan.include_files = [root / f for f in sdk_include_files]
    for header in catalog.config_headers:
        # Generated headers live in the output dir, the rest ship with the project
        base = out_dir if header in GENERATED_HEADERS else local_include_dir
        plan.include_files.append(base / header)
    plan.include_files = _unique(plan.include_files)

    plan.defines = {key: value for key, value in catalog.defines}
    for macro, value in (selections or {}).items():
        plan.defines[macro] = value

    plan.c_sources = _unique(root / s for s in kept_sources)
    plan.asm_sources = _unique(root / s for s in catalog.asm_sources)

    log.info(
        "Build plan (%s layout): %d include dirs, %d forced headers, %d C sources, %d asm sources",
        catalog.name, len(plan.include_dirs), len(plan.include_files),
        len(plan.c_sources), len(plan.asm_sources),
    )
    return plan
