"""Adapter around the external `bindgen` binding generator."""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .compiler import GccToolchain
from .errors import GenerationError
from .plan import BuildPlan

log = logging.getLogger(__name__)

ENTRY_HEADER = "bindings.h"

# Enums generated as closed Rust enums instead of integer constants
RUSTIFIED_ENUMS = (
    "hl_err",
    "process_event_response",
    "syscntl_dcdc_level_t",
    "APP_MSG",
)


@dataclass
class BindingOutputs:
    bindings: Path
    wrappers_source: Path  # out-of-line wrappers for static/inline functions
    command: list[str]


class BindgenAdapter:
    """Runs bindgen against the fixed entry header with the build plan's context."""

    def __init__(self, toolchain: GccToolchain, bindgen_path: str | None = None):
        self.toolchain = toolchain
        self.bindgen = bindgen_path or shutil.which("bindgen") or "bindgen"

    def detect_sysroot(self) -> Path:
        result = self.toolchain.print_sysroot()
        sysroot = result.stdout.strip()
        if not result.success or not sysroot:
            raise GenerationError(
                f"Could not detect the compiler sysroot with {self.toolchain.cc}: "
                f"{result.stderr.strip() or 'empty output'}"
            )
        return Path(sysroot)

    def command(
        self,
        entry_header: Path,
        plan: BuildPlan,
        out_dir: Path,
        sysroot: Path,
        rustified_enums: tuple[str, ...] | list[str] = RUSTIFIED_ENUMS,
    ) -> list[str]:
        cmd = [
            self.bindgen,
            str(entry_header),
            "--output", str(out_dir / "bindings.rs"),
            # --wrap-static-fns is gated behind --experimental
            "--experimental",
            "--wrap-static-fns",
            # bindgen appends the .c extension
            "--wrap-static-fns-path", str(out_dir / "extern"),
            "--ctypes-prefix", "cty",
            "--use-core",
        ]
        for name in rustified_enums:
            cmd += ["--rustified-enum", name]

        cmd += ["--", "-D__SOFTFP__", f"--sysroot={sysroot}", "-Wno-expansion-to-defined"]
        cmd += plan.define_flags()
        cmd += plan.include_dir_flags()
        for header in plan.include_files:
            cmd += ["-include", str(header)]
        return cmd

    def generate(
        self,
        plan: BuildPlan,
        project_dir: Path,
        out_dir: Path,
        rustified_enums: tuple[str, ...] | list[str] = RUSTIFIED_ENUMS,
    ) -> BindingOutputs:
        entry_header = project_dir / ENTRY_HEADER
        if not entry_header.is_file():
            raise GenerationError(f"Bindings entry header not found: {entry_header}")

        sysroot = self.detect_sysroot()
        cmd = self.command(entry_header, plan, out_dir, sysroot, rustified_enums)
        log.debug("Executing: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            raise GenerationError(f"Unable to run {self.bindgen}: {e}") from e
        if result.returncode != 0:
            raise GenerationError(
                f"Unable to generate bindings (exit {result.returncode}):\n{result.stderr}"
            )

        outputs = BindingOutputs(
            bindings=out_dir / "bindings.rs",
            wrappers_source=out_dir / "extern.c",
            command=cmd,
        )
        log.info("Generated bindings %s", outputs.bindings)
        return outputs
