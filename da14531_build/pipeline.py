"""
SDK build pipeline.

Sequences the steps of one build script run:

1. environment guard and advisory SDK version check
2. feature validation and header item resolution (nothing written yet)
3. build plan assembly
4. config header generation
5. binding generation (emits extern.c)
6. SDK compilation and archiving, plus the vendor blob linkage
7. linker script expansion
8. rerun triggers and the build manifest
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from .bindings import RUSTIFIED_ENUMS, BindgenAdapter, BindingOutputs
from .catalog import DEFAULT_CATALOG, SdkCatalog
from .compiler import ARCHIVE_NAME, GccToolchain
from .directives import CargoDirectives
from .errors import VersionError
from .features import FeatureSet
from .generate.headers import generate_headers, resolve_config_groups, selection_defines
from .generate.items import OVERRIDE_PREFIX, ConfigItem
from .generate.templates import TEMPLATE_SUFFIX
from .guard import (
    BuildEnvironment,
    check_environment,
    check_sdk_version,
    format_version,
    parse_sdk_version,
)
from .linker import generate_linker_script
from .metadata import BuildManifest
from .plan import BuildPlan, assemble_build_plan

log = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).parent


@dataclass
class PreparedBuild:
    """Resolved state before anything is written."""

    env: BuildEnvironment
    features: FeatureSet
    groups: dict[str, list[ConfigItem]]
    plan: BuildPlan
    version_warning: str | None = None


@dataclass
class BuildOutputs:
    plan: BuildPlan
    headers: list[Path] = field(default_factory=list)
    bindings: BindingOutputs | None = None
    archive: Path | None = None
    linker_script: Path | None = None
    manifest: Path | None = None


class BuildPipeline:
    """One engine run. Collaborators are injectable so tests can fake the tools."""

    def __init__(
        self,
        environ: Mapping[str, str] | None = None,
        features: FeatureSet | None = None,
        catalog: SdkCatalog = DEFAULT_CATALOG,
        toolchain: GccToolchain | None = None,
        binding_generator: BindgenAdapter | None = None,
        directives: CargoDirectives | None = None,
        rustified_enums: tuple[str, ...] | list[str] = RUSTIFIED_ENUMS,
        write_manifest: bool = True,
        config_files: list[Path] | None = None,
    ):
        self.environ = dict(os.environ if environ is None else environ)
        self.features = features
        self.catalog = catalog
        self.toolchain = toolchain or GccToolchain()
        self.binding_generator = binding_generator or BindgenAdapter(self.toolchain)
        self.directives = directives or CargoDirectives()
        self.rustified_enums = rustified_enums
        self.write_manifest = write_manifest
        # Engine inputs outside the crate: YAML config, custom layout
        self.config_files = [Path(p) for p in config_files or []]

    def prepare(self) -> PreparedBuild:
        """Run every check and resolve the build plan without touching the disk."""
        env = check_environment(self.environ)

        version_warning = check_sdk_version(env.sdk_root, self.catalog.version_header)
        if version_warning:
            log.warning("%s", version_warning)
            self.directives.warning(version_warning)

        features = self.features
        if features is None:
            features = FeatureSet.from_cargo_env(self.environ)
        log.info("Features: %s", ", ".join(features.sorted()) or "(none)")

        groups = resolve_config_groups(features, self.environ)
        plan = assemble_build_plan(
            env.sdk_root,
            features,
            out_dir=env.out_dir,
            local_include_dir=env.include_dir,
            selections=selection_defines(groups),
            catalog=self.catalog,
        )
        return PreparedBuild(
            env=env,
            features=features,
            groups=groups,
            plan=plan,
            version_warning=version_warning,
        )

    def run(self, dry_run: bool = False) -> BuildOutputs:
        prepared = self.prepare()
        env, plan = prepared.env, prepared.plan
        env.out_dir.mkdir(parents=True, exist_ok=True)

        outputs = BuildOutputs(plan=plan)
        outputs.headers = generate_headers(prepared.groups, env.include_dir, env.out_dir)
        if dry_run:
            log.info("Dry run: skipping bindings, compilation and linker script")
            return outputs

        outputs.bindings = self.binding_generator.generate(
            plan, env.project_dir, env.out_dir, self.rustified_enums
        )
        outputs.archive = self.build_archive(plan, env, outputs.bindings)
        self.link_vendor_library(env)
        outputs.linker_script = generate_linker_script(
            self.toolchain, plan, env.sdk_root, env.out_dir, self.directives, self.catalog
        )
        self.register_rerun_triggers(env, prepared.groups)

        if self.write_manifest:
            outputs.manifest = self.save_manifest(prepared, outputs)
        log.info("Build complete: %s", outputs.archive)
        return outputs

    def build_archive(
        self, plan: BuildPlan, env: BuildEnvironment, bindings: BindingOutputs
    ) -> Path:
        obj_dir = env.out_dir / "obj"
        base_defines = [
            f"-D{key}" if value is None else f"-D{key}={value}"
            for key, value in self.catalog.defines
        ]
        asm_objects = self.toolchain.assemble(plan.asm_sources, base_defines, obj_dir)
        # extern.c includes bindings.h from the project dir
        c_objects = self.toolchain.compile(
            plan.c_sources + [bindings.wrappers_source],
            plan,
            obj_dir,
            extra_include_dirs=[env.project_dir],
        )
        archive = self.toolchain.archive(asm_objects + c_objects, env.out_dir, ARCHIVE_NAME)

        self.directives.link_lib(f"static:+whole-archive={ARCHIVE_NAME}")
        self.directives.link_search(env.out_dir, kind="native")
        return archive

    def link_vendor_library(self, env: BuildEnvironment) -> None:
        """Link the prebuilt vendor blob whole so vector-table-only symbols survive."""
        self.directives.link_lib(f"static:+whole-archive,+verbatim={self.catalog.vendor_library}")
        self.directives.link_search(env.sdk_root / self.catalog.vendor_library_dir, kind="native")

    def register_rerun_triggers(
        self, env: BuildEnvironment, groups: Mapping[str, list[ConfigItem]]
    ) -> None:
        """
        Register every input of this run. Once any trigger is printed cargo
        reruns the script only for the listed paths and variables.
        """
        if env.include_dir.is_dir():
            for template in sorted(env.include_dir.glob(f"*{TEMPLATE_SUFFIX}")):
                self.directives.rerun_if_changed(template)
        self.directives.rerun_if_changed(env.project_dir / "bindings.h")
        self.directives.rerun_if_changed(PACKAGE_DIR)
        for path in self.config_files:
            self.directives.rerun_if_changed(path.absolute())

        for name in ("TARGET", "SDK_PATH"):
            self.directives.rerun_if_env_changed(name)
        overrides = dict.fromkeys(
            f"{OVERRIDE_PREFIX}{item.name}" for items in groups.values() for item in items
        )
        for name in overrides:
            self.directives.rerun_if_env_changed(name)

    def save_manifest(self, prepared: PreparedBuild, outputs: BuildOutputs) -> Path:
        env = prepared.env
        try:
            sdk_version = format_version(
                parse_sdk_version(env.sdk_root / self.catalog.version_header)
            )
        except VersionError:
            sdk_version = None

        artifacts = list(outputs.headers)
        if outputs.bindings:
            artifacts += [outputs.bindings.bindings, outputs.bindings.wrappers_source]
        for path in (outputs.archive, outputs.linker_script):
            if path:
                artifacts.append(path)

        manifest = BuildManifest(
            target=env.target,
            sdk_root=str(env.sdk_root),
            layout=self.catalog.name,
            features=prepared.features.sorted(),
            selections={k: v or "" for k, v in selection_defines(prepared.groups).items()},
            plan=prepared.plan,
            sdk_version=sdk_version,
            version_warning=prepared.version_warning,
            compiler_version=self.toolchain.get_version(),
            archive=str(outputs.archive) if outputs.archive else None,
            artifacts=artifacts,
        )
        path = manifest.save(env.out_dir)
        log.info("Manifest: %s", path)
        return path
