import json
from pathlib import Path

import pytest

from da14531_build.bindings import BindingOutputs
from da14531_build.directives import CargoDirectives
from da14531_build.errors import (
    CompilationError,
    ConfigurationConflict,
    EnvironmentCheckError,
)
from da14531_build.features import FeatureSet
from da14531_build.generate import GENERATED_HEADERS
from da14531_build.metadata import MANIFEST_NAME
from da14531_build.pipeline import BuildPipeline


class FakeToolchain:
    """Records the build steps instead of running arm-none-eabi-gcc."""

    def __init__(self, fail_compile=False):
        self.calls = []
        self.fail_compile = fail_compile

    def assemble(self, sources, defines, obj_dir):
        self.calls.append(("assemble", list(sources), list(defines)))
        return [obj_dir / f"{s.name}.o" for s in sources]

    def compile(self, sources, plan, obj_dir, extra_include_dirs=None):
        self.calls.append(("compile", list(sources), list(extra_include_dirs or [])))
        if self.fail_compile:
            raise CompilationError("Compiling gpio.c failed", return_code=1, stderr="error")
        return [obj_dir / f"{s.name}.o" for s in sources]

    def archive(self, objects, out_dir, name):
        self.calls.append(("archive", list(objects), name))
        path = out_dir / f"lib{name}.a"
        path.write_bytes(b"!<arch>\n")
        return path

    def preprocess(self, source, plan):
        self.calls.append(("preprocess", source))
        return f"/* {source.name} */\nCHIP = da14531;\n"

    def get_version(self):
        return "arm-none-eabi-gcc (fake) 10.3.1"


class FakeBindingGenerator:
    def __init__(self):
        self.calls = []

    def generate(self, plan, project_dir, out_dir, rustified_enums):
        self.calls.append((plan, project_dir, out_dir, list(rustified_enums)))
        bindings = out_dir / "bindings.rs"
        wrappers = out_dir / "extern.c"
        bindings.write_text("pub const __DA14531__: u32 = 1;\n")
        wrappers.write_text('#include "bindings.h"\n')
        return BindingOutputs(bindings=bindings, wrappers_source=wrappers, command=["bindgen"])


def make_pipeline(environ, **kwargs):
    kwargs.setdefault("toolchain", FakeToolchain())
    kwargs.setdefault("binding_generator", FakeBindingGenerator())
    kwargs.setdefault("directives", CargoDirectives())
    return BuildPipeline(environ=environ, **kwargs)


def test_prepare_resolves_cargo_features(build_env):
    prepared = make_pipeline(build_env).prepare()

    assert prepared.features.sorted() == ["address_mode_static", "sleep_mode_off"]
    assert prepared.version_warning is None
    assert prepared.plan.defines["USER_CFG_ADDRESS_MODE"] == "APP_CFG_ADDR_STATIC"
    assert prepared.plan.defines["USER_CFG_ARCH_SLEEP_MODE"] == "ARCH_SLEEP_OFF"
    assert "app_gattc.c" not in [p.name for p in prepared.plan.c_sources]


def test_prepare_writes_nothing(build_env, out_dir):
    make_pipeline(build_env).prepare()
    assert not out_dir.exists()


def test_explicit_features_replace_cargo_features(build_env):
    features = FeatureSet.of(["address_mode_public", "sleep_mode_ext_on"])
    prepared = make_pipeline(build_env, features=features).prepare()
    assert prepared.plan.defines["USER_CFG_ADDRESS_MODE"] == "APP_CFG_ADDR_PUB"
    assert prepared.plan.defines["USER_CFG_ARCH_SLEEP_MODE"] == "ARCH_EXT_SLEEP_ON"


def test_full_run(build_env, sdk_root, project_dir, out_dir):
    toolchain = FakeToolchain()
    generator = FakeBindingGenerator()
    directives = CargoDirectives()
    pipeline = make_pipeline(
        build_env, toolchain=toolchain, binding_generator=generator, directives=directives
    )

    outputs = pipeline.run()

    assert [p.name for p in outputs.headers] == list(GENERATED_HEADERS)
    user_config = (out_dir / "user_config.h").read_text()
    assert "#define USER_CFG_ADDRESS_MODE APP_CFG_ADDR_STATIC" in user_config
    assert "#define USER_CFG_ARCH_SLEEP_MODE ARCH_SLEEP_OFF" in user_config

    assert outputs.archive == out_dir / "libda14531_sdk.a"
    assert outputs.linker_script == out_dir / "ldscript_DA14531.lds"
    assert "CHIP = da14531;" in outputs.linker_script.read_text()

    steps = [call[0] for call in toolchain.calls]
    assert steps == ["assemble", "compile", "archive", "preprocess"]
    assemble, compile_, archive = toolchain.calls[:3]
    assert assemble[2] == ["-D__DA14531__"]
    assert compile_[1][-1] == out_dir / "extern.c"
    assert compile_[2] == [project_dir]
    assert archive[2] == "da14531_sdk"
    assert generator.calls[0][1] == project_dir

    link_lines = [l for l in directives.lines if not l.startswith("cargo:rerun-if-")]
    assert link_lines == [
        "cargo::rustc-link-lib=static:+whole-archive=da14531_sdk",
        f"cargo::rustc-link-search=native={out_dir}",
        "cargo::rustc-link-lib=static:+whole-archive,+verbatim=da14531.a",
        f"cargo::rustc-link-search=native={sdk_root / 'sdk/platform/system_library/output/IAR'}",
        f"cargo::rustc-link-search={out_dir}",
        f"cargo::rustc-link-search={sdk_root / 'sdk/common_project_files/misc'}",
    ]
    assert f"cargo:rerun-if-changed={project_dir / 'include' / 'user_config.h.in'}" in directives.lines
    assert f"cargo:rerun-if-changed={project_dir / 'bindings.h'}" in directives.lines


def test_full_run_writes_manifest(build_env, out_dir):
    outputs = make_pipeline(build_env).run()

    assert outputs.manifest == out_dir / MANIFEST_NAME
    manifest = json.loads(outputs.manifest.read_text())
    assert manifest["target"] == "thumbv6m-none-eabi"
    assert manifest["sdk"]["version"] == "6.0.22.1401"
    assert manifest["features"] == ["address_mode_static", "sleep_mode_off"]
    assert manifest["selections"] == {
        "USER_CFG_ADDRESS_MODE": "APP_CFG_ADDR_STATIC",
        "USER_CFG_ARCH_SLEEP_MODE": "ARCH_SLEEP_OFF",
    }
    assert manifest["toolchain"]["compiler"] == "arm-none-eabi-gcc (fake) 10.3.1"
    assert "libda14531_sdk.a" in manifest["artifacts"]
    assert len(manifest["artifacts"]["user_config.h"]["sha256"]) == 64


def test_manifest_can_be_disabled(build_env, out_dir):
    outputs = make_pipeline(build_env, write_manifest=False).run()
    assert outputs.manifest is None
    assert not (out_dir / MANIFEST_NAME).exists()


def test_dry_run_only_writes_headers(build_env, out_dir):
    toolchain = FakeToolchain()
    generator = FakeBindingGenerator()
    directives = CargoDirectives()

    outputs = make_pipeline(
        build_env, toolchain=toolchain, binding_generator=generator, directives=directives
    ).run(dry_run=True)

    assert sorted(p.name for p in out_dir.iterdir()) == sorted(GENERATED_HEADERS)
    assert outputs.archive is None
    assert toolchain.calls == []
    assert generator.calls == []
    assert directives.lines == []


def test_conflicting_address_modes_write_nothing(build_env, out_dir):
    build_env["CARGO_FEATURE_ADDRESS_MODE_PUBLIC"] = "1"
    toolchain = FakeToolchain()

    with pytest.raises(ConfigurationConflict):
        make_pipeline(build_env, toolchain=toolchain).run()

    assert not out_dir.exists()
    assert toolchain.calls == []


def test_wrong_target_is_fatal(build_env):
    build_env["TARGET"] = "x86_64-unknown-linux-gnu"
    with pytest.raises(EnvironmentCheckError):
        make_pipeline(build_env).run()


@pytest.mark.parametrize(
    "version_line, expected",
    [
        ('#define SDK_VERSION "v_6.0.20.1338"', "SDK 6.0.20.1338 found"),
        ("#define SDK_VERSION 6", "Could not determine SDK version"),
    ],
)
def test_version_problems_only_warn(build_env, sdk_root, sdk_version, version_line, expected):
    sdk_version(sdk_root, version_line)
    directives = CargoDirectives()

    outputs = make_pipeline(build_env, directives=directives).run()

    assert outputs.archive is not None
    assert len(directives.warnings) == 1
    assert expected in directives.warnings[0]
    assert directives.lines[0].startswith("cargo::warning=")


def test_overrides_reach_headers_and_defines(build_env, out_dir):
    build_env["DA14531_CFG_MAX_CONNECTIONS"] = "2"
    build_env["DA14531_USER_CFG_ARCH_SLEEP_MODE"] = "3"

    outputs = make_pipeline(build_env).run(dry_run=True)

    assert "#define CFG_MAX_CONNECTIONS (2)" in (out_dir / "da14531_config_basic.h").read_text()
    assert "#define USER_CFG_ARCH_SLEEP_MODE (3)" in (out_dir / "user_config.h").read_text()
    assert outputs.plan.defines["USER_CFG_ARCH_SLEEP_MODE"] == "(3)"


def test_compilation_failure_propagates(build_env):
    with pytest.raises(CompilationError):
        make_pipeline(build_env, toolchain=FakeToolchain(fail_compile=True)).run()


def test_rerun_is_idempotent(build_env, out_dir):
    make_pipeline(build_env).run()
    first = {p.name: p.read_bytes() for p in out_dir.glob("*.h")}
    make_pipeline(build_env).run()
    second = {p.name: p.read_bytes() for p in out_dir.glob("*.h")}
    assert first == second


def test_rerun_triggers_cover_environment_inputs(build_env):
    build_env["DA14531_CFG_MAX_CONNECTIONS"] = "2"
    directives = CargoDirectives()

    make_pipeline(build_env, directives=directives).run()

    env_lines = [l for l in directives.lines if l.startswith("cargo:rerun-if-env-changed=")]
    names = [l.split("=", 1)[1] for l in env_lines]
    assert names[:2] == ["TARGET", "SDK_PATH"]
    assert "DA14531_CFG_MAX_CONNECTIONS" in names
    assert "DA14531_USER_CFG_ADDRESS_MODE" in names
    assert "DA14531_EXCLUDE_DLG_CUSTS1" in names
    assert len(names) == len(set(names))


def test_rerun_triggers_cover_config_files(build_env, tmp_path: Path):
    engine_yaml = tmp_path / "engine.yaml"
    layout_yaml = tmp_path / "layout.yaml"
    directives = CargoDirectives()

    make_pipeline(
        build_env, directives=directives, config_files=[engine_yaml, layout_yaml]
    ).run()

    assert f"cargo:rerun-if-changed={engine_yaml}" in directives.lines
    assert f"cargo:rerun-if-changed={layout_yaml}" in directives.lines
