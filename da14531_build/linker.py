"""Linker script expansion through the C preprocessor."""

import logging
from pathlib import Path

from .catalog import DEFAULT_CATALOG, SdkCatalog
from .compiler import GccToolchain
from .directives import CargoDirectives
from .plan import BuildPlan

log = logging.getLogger(__name__)


def output_name(template: str) -> str:
    """ldscript_DA14531.lds.S -> ldscript_DA14531.lds"""
    name = Path(template).name
    return name[:-2] if name.endswith(".S") else name


def generate_linker_script(
    toolchain: GccToolchain,
    plan: BuildPlan,
    sdk_root: Path,
    out_dir: Path,
    directives: CargoDirectives,
    catalog: SdkCatalog = DEFAULT_CATALOG,
) -> Path:
    """
    Preprocess the SDK's templated linker script and register search paths.

    The expanded text is written verbatim; choosing the script is left to the
    consuming crate.
    """
    template = sdk_root / catalog.linker_script
    content = toolchain.preprocess(template, plan)

    out_path = out_dir / output_name(catalog.linker_script)
    out_path.write_text(content)
    log.info("Wrote linker script %s", out_path)

    directives.link_search(out_dir)
    # da14531_symbols.lds, included by the script, lives here
    directives.link_search(sdk_root / catalog.linker_misc_dir)
    return out_path
