"""GCC cross-toolchain wrapper: assemble, compile, archive, preprocess."""

import hashlib
import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .errors import CompilationError
from .plan import BuildPlan

log = logging.getLogger(__name__)

DEFAULT_PREFIX = "arm-none-eabi-"
ARCHIVE_NAME = "da14531_sdk"

# Cortex-M0+ core of the DA14531
CPU_FLAGS = ["-mcpu=cortex-m0plus", "-mthumb", "-mfloat-abi=soft"]
SPECS_FLAGS = ["-specs=nano.specs", "-specs=nosys.specs"]
WARNING_FLAGS = ["-Wno-expansion-to-defined", "-Wno-unused-parameter"]


@dataclass
class CompileResult:
    success: bool
    output_path: Path | None
    command: list[str]
    stdout: str
    stderr: str
    return_code: int


@dataclass
class CompilationConfig:
    optimization: str = "Oz"
    debug: bool = True
    lto: bool = True
    extra_flags: list[str] = field(default_factory=list)

    def to_flags(self) -> list[str]:
        """Convert configuration to compiler flags."""
        opt = self.optimization
        # Older arm-none-eabi-gcc releases lack -Oz
        if opt == "Oz":
            opt = "Os"
        flags = [f"-{opt}"]
        if self.debug:
            flags.append("-g")
        if self.lto:
            flags.append("-flto")
        flags.extend(self.extra_flags)
        return flags


def object_path(source: Path, obj_dir: Path) -> Path:
    """Object file name: stem plus a short hash of the source's directory."""
    digest = hashlib.sha1(str(source.parent).encode()).hexdigest()[:8]
    return obj_dir / f"{source.stem}-{digest}{source.suffix}.o"


class GccToolchain:
    """Wrapper for the arm-none-eabi GCC toolchain."""

    def __init__(self, prefix: str = DEFAULT_PREFIX, config: CompilationConfig | None = None):
        self.prefix = prefix
        self.cc = shutil.which(f"{prefix}gcc") or f"{prefix}gcc"
        # LTO objects need the plugin-aware wrappers
        self.ar = shutil.which(f"{prefix}gcc-ar") or f"{prefix}gcc-ar"
        self.ranlib = shutil.which(f"{prefix}gcc-ranlib") or f"{prefix}gcc-ranlib"
        self.config = config or CompilationConfig()

    def run(self, cmd: list[str], output_path: Path | None = None) -> CompileResult:
        """Run one tool invocation to completion; never raises."""
        log.debug("Executing: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True)
        except OSError as e:
            return CompileResult(
                success=False,
                output_path=None,
                command=cmd,
                stdout="",
                stderr=str(e),
                return_code=-1,
            )
        return CompileResult(
            success=result.returncode == 0,
            output_path=output_path if result.returncode == 0 else None,
            command=cmd,
            stdout=result.stdout,
            stderr=result.stderr,
            return_code=result.returncode,
        )

    def _check(self, result: CompileResult, what: str) -> CompileResult:
        if not result.success:
            raise CompilationError(
                f"{what} failed (exit {result.return_code}): {' '.join(result.command)}",
                command=result.command,
                return_code=result.return_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result

    def print_sysroot(self) -> CompileResult:
        return self.run([self.cc, "--print-sysroot"])

    def assemble(self, sources: list[Path], defines: list[str], obj_dir: Path) -> list[Path]:
        """Phase a: assembly sources to objects. No force-included headers here."""
        obj_dir.mkdir(parents=True, exist_ok=True)
        objects = []
        for src in sources:
            obj = object_path(src, obj_dir)
            cmd = [self.cc] + CPU_FLAGS + SPECS_FLAGS + ["-flto"] + defines
            cmd += ["-c", str(src), "-o", str(obj)]
            self._check(self.run(cmd, obj), f"Assembling {src.name}")
            objects.append(obj)
        log.info("Assembled %d sources", len(objects))
        return objects

    def compile(
        self,
        sources: list[Path],
        plan: BuildPlan,
        obj_dir: Path,
        extra_include_dirs: list[Path] | None = None,
    ) -> list[Path]:
        """Phase b: C sources to objects with the plan's includes and defines."""
        obj_dir.mkdir(parents=True, exist_ok=True)
        flags = (
            CPU_FLAGS
            + ["-march=armv6-m"]
            + self.config.to_flags()
            + WARNING_FLAGS
            + ["-fstack-usage", "-ffunction-sections", "-fdata-sections"]
            + SPECS_FLAGS
            + plan.include_dir_flags()
            + [f"-I{d}" for d in extra_include_dirs or []]
            + [f"-include{f}" for f in plan.include_files]
            + plan.define_flags()
        )
        objects = []
        for src in sources:
            obj = object_path(src, obj_dir)
            cmd = [self.cc] + flags + ["-c", str(src), "-o", str(obj)]
            self._check(self.run(cmd, obj), f"Compiling {src.name}")
            objects.append(obj)
        log.info("Compiled %d sources", len(objects))
        return objects

    def archive(self, objects: list[Path], out_dir: Path, name: str = ARCHIVE_NAME) -> Path:
        """Archive objects into lib<name>.a, replacing any previous archive."""
        archive = out_dir / f"lib{name}.a"
        if archive.exists():
            archive.unlink()
        cmd = [self.ar, "cq", str(archive)] + [str(o) for o in objects]
        self._check(self.run(cmd, archive), f"Archiving {archive.name}")
        self._check(self.run([self.ranlib, str(archive)], archive), f"Indexing {archive.name}")
        log.info("Archived %d objects into %s", len(objects), archive)
        return archive

    def preprocess(self, source: Path, plan: BuildPlan) -> str:
        """Expand `source` with the plan's defines and include dirs; returns the text."""
        cmd = (
            [self.cc, "-E", "-P"]
            + WARNING_FLAGS
            + SPECS_FLAGS
            + plan.include_dir_flags()
            + plan.define_flags()
            + [str(source)]
        )
        result = self._check(self.run(cmd), f"Preprocessing {source.name}")
        return result.stdout

    def get_version(self) -> str:
        """Get gcc version string."""
        result = self.run([self.cc, "--version"])
        if not result.success:
            return "unknown"
        return result.stdout.split("\n")[0]
