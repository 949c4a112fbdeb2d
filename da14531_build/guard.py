"""Environment checks and the SDK version compatibility check."""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .catalog import DEFAULT_CATALOG
from .errors import EnvironmentCheckError, VersionError

log = logging.getLogger(__name__)

REQUIRED_TARGET = "thumbv6m-none-eabi"
KNOWN_GOOD_VERSION = (6, 0, 22, 1401)

_VERSION_PREFIX = '#define SDK_VERSION "v_'
_VERSION_SUFFIX = '"'
_U32_MAX = 2**32 - 1


@dataclass
class BuildEnvironment:
    """The environment contract a build script run is given by cargo."""

    target: str
    sdk_root: Path
    out_dir: Path
    project_dir: Path

    @property
    def include_dir(self) -> Path:
        """Project-local headers and the *.h.in templates."""
        return self.project_dir / "include"


def check_environment(environ: Mapping[str, str] | None = None) -> BuildEnvironment:
    """Validate TARGET, SDK_PATH and OUT_DIR; raise EnvironmentCheckError on failure."""
    env = os.environ if environ is None else environ

    target = env.get("TARGET", "")
    if target != REQUIRED_TARGET:
        raise EnvironmentCheckError(
            f"Invalid target `{target}` for this crate. Only `{REQUIRED_TARGET}` is valid"
        )

    sdk_path = env.get("SDK_PATH")
    if not sdk_path:
        raise EnvironmentCheckError("SDK_PATH is missing. Must be set to DA145XX SDK path")
    sdk_root = Path(sdk_path).absolute()
    if not sdk_root.is_dir():
        raise EnvironmentCheckError(f"SDK_PATH does not point to a directory: {sdk_root}")

    out_dir = env.get("OUT_DIR")
    if not out_dir:
        raise EnvironmentCheckError("OUT_DIR is missing. Must be set to the build output directory")

    project_dir = Path(env.get("CARGO_MANIFEST_DIR") or os.getcwd()).absolute()

    return BuildEnvironment(
        target=target,
        sdk_root=sdk_root,
        out_dir=Path(out_dir).absolute(),
        project_dir=project_dir,
    )


def parse_version_line(line: str) -> tuple[int, int, int, int]:
    """Parse `#define SDK_VERSION "v_A.B.C.D"`; missing trailing parts read as 0."""
    if not line.startswith(_VERSION_PREFIX):
        raise VersionError(f"could not strip prefix {_VERSION_PREFIX}")
    body = line[len(_VERSION_PREFIX):]
    if not body.endswith(_VERSION_SUFFIX):
        raise VersionError(f"could not strip suffix {_VERSION_SUFFIX}")
    body = body[:-len(_VERSION_SUFFIX)]

    parts = body.split(".")
    if len(parts) > 4:
        raise VersionError(f"too many version components in '{body}'")

    numbers = [0, 0, 0, 0]
    for i, part in enumerate(parts):
        if not re.fullmatch(r"[0-9]+", part) or int(part) > _U32_MAX:
            raise VersionError(f"invalid version component '{part}'")
        numbers[i] = int(part)
    return tuple(numbers)


def parse_sdk_version(path: Path) -> tuple[int, int, int, int]:
    """Read the version from the first line of the SDK's version header."""
    try:
        text = Path(path).read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise VersionError(str(e)) from e

    lines = text.splitlines()
    if not lines:
        raise VersionError("version file empty")
    return parse_version_line(lines[0])


def format_version(version: tuple[int, ...]) -> str:
    return ".".join(str(n) for n in version)


def check_sdk_version(
    sdk_root: Path,
    version_header: str = DEFAULT_CATALOG.version_header,
    known_good: tuple[int, int, int, int] = KNOWN_GOOD_VERSION,
) -> str | None:
    """
    Advisory SDK version check.

    Returns a warning message when the version cannot be parsed or differs
    from the tested one, None otherwise. Never raises.
    """
    path = Path(sdk_root) / version_header
    try:
        version = parse_sdk_version(path)
    except VersionError as e:
        return f"Could not determine SDK version from {path}: {e}"

    log.debug("SDK version %s", format_version(version))
    if version != known_good:
        return (
            f"SDK {format_version(version)} found; "
            f"SDK has only been tested with {format_version(known_good)}"
        )
    return None
