import shutil
from pathlib import Path

import pytest

from da14531_build.catalog import DEFAULT_CATALOG

REPO_ROOT = Path(__file__).parent.parent
FIRMWARE_DIR = REPO_ROOT / "firmware"

LINKER_TEMPLATE = """\
#include "da14531_symbols.lds"
MEMORY { RAM (rwx) : ORIGIN = 0x07FC0000, LENGTH = 0x8000 }
#ifdef __DA14531__
CHIP = da14531;
#endif
"""


def write_sdk_version(sdk_root: Path, version_line: str) -> Path:
    path = sdk_root / DEFAULT_CATALOG.version_header
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(version_line + "\n")
    return path


@pytest.fixture
def sdk_version():
    """Rewrite the SDK version header of an SDK tree."""
    return write_sdk_version


@pytest.fixture
def template_dir() -> Path:
    return FIRMWARE_DIR / "include"


@pytest.fixture
def sdk_root(tmp_path: Path) -> Path:
    """A minimal SDK checkout: the version header and the linker script template."""
    root = tmp_path / "sdk_root"
    write_sdk_version(root, '#define SDK_VERSION "v_6.0.22.1401"')
    script = root / DEFAULT_CATALOG.linker_script
    script.parent.mkdir(parents=True, exist_ok=True)
    script.write_text(LINKER_TEMPLATE)
    return root


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A crate directory carrying the firmware templates and bindings.h."""
    crate = tmp_path / "crate"
    shutil.copytree(FIRMWARE_DIR / "include", crate / "include")
    shutil.copy(FIRMWARE_DIR / "bindings.h", crate / "bindings.h")
    return crate


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    return tmp_path / "out"


@pytest.fixture
def build_env(sdk_root: Path, project_dir: Path, out_dir: Path) -> dict[str, str]:
    """Cargo build-script environment for a static address, sleep-off build."""
    return {
        "TARGET": "thumbv6m-none-eabi",
        "SDK_PATH": str(sdk_root),
        "OUT_DIR": str(out_dir),
        "CARGO_MANIFEST_DIR": str(project_dir),
        "CARGO_FEATURE_DEFAULT": "1",
        "CARGO_FEATURE_ADDRESS_MODE_STATIC": "1",
        "CARGO_FEATURE_SLEEP_MODE_OFF": "1",
    }
