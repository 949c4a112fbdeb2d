"""DA14531 SDK build engine - configuration resolution and toolchain orchestration."""

from .catalog import (
    CATALOGS,
    DEFAULT_CATALOG,
    FeatureAddendum,
    SdkCatalog,
    SourceExclusion,
    get_catalog,
    load_catalog,
)
from .errors import (
    BuildError,
    CompilationError,
    ConfigurationConflict,
    EnvironmentCheckError,
    GenerationError,
    TemplateError,
    VersionError,
)
from .features import (
    EXCLUSIVE_GROUPS,
    ExclusiveGroup,
    FeatureSet,
    resolve_selections,
)
from .plan import BuildPlan, assemble_build_plan
from .guard import (
    KNOWN_GOOD_VERSION,
    REQUIRED_TARGET,
    BuildEnvironment,
    check_environment,
    check_sdk_version,
    parse_sdk_version,
)
from .compiler import CompilationConfig, CompileResult, GccToolchain
from .bindings import RUSTIFIED_ENUMS, BindgenAdapter
from .linker import generate_linker_script
from .directives import CargoDirectives
from .pipeline import BuildOutputs, BuildPipeline

__all__ = [
    # Catalog
    "CATALOGS",
    "DEFAULT_CATALOG",
    "FeatureAddendum",
    "SdkCatalog",
    "SourceExclusion",
    "get_catalog",
    "load_catalog",
    # Errors
    "BuildError",
    "CompilationError",
    "ConfigurationConflict",
    "EnvironmentCheckError",
    "GenerationError",
    "TemplateError",
    "VersionError",
    # Features
    "EXCLUSIVE_GROUPS",
    "ExclusiveGroup",
    "FeatureSet",
    "resolve_selections",
    # Plan
    "BuildPlan",
    "assemble_build_plan",
    # Guard
    "KNOWN_GOOD_VERSION",
    "REQUIRED_TARGET",
    "BuildEnvironment",
    "check_environment",
    "check_sdk_version",
    "parse_sdk_version",
    # Toolchain
    "CompilationConfig",
    "CompileResult",
    "GccToolchain",
    "RUSTIFIED_ENUMS",
    "BindgenAdapter",
    "generate_linker_script",
    # Pipeline
    "CargoDirectives",
    "BuildOutputs",
    "BuildPipeline",
    # Subpackage
    "generate",
]
