"""SDK-relative path catalogs: include dirs, sources and feature-gated extras."""

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml


@dataclass(frozen=True)
class FeatureAddendum:
    """Paths appended to the build when `feature` is enabled."""

    feature: str
    include_dirs: tuple[str, ...] = ()
    c_sources: tuple[str, ...] = ()
    include_files: tuple[str, ...] = ()


@dataclass(frozen=True)
class SourceExclusion:
    """Drop sources ending in `suffix` when `feature` is (or is not) enabled."""

    suffix: str
    feature: str
    when_enabled: bool  # True: drop if enabled. False: drop unless enabled.

    def excludes(self, path: str, active: frozenset[str]) -> bool:
        if not path.endswith(self.suffix):
            return False
        return (self.feature in active) == self.when_enabled


@dataclass(frozen=True)
class SdkCatalog:
    """One SDK tree layout. All paths are relative to the SDK root."""

    name: str
    include_dirs: tuple[str, ...]
    c_sources: tuple[str, ...]
    asm_sources: tuple[str, ...]
    config_headers: tuple[str, ...]
    defines: tuple[tuple[str, str | None], ...] = (("__DA14531__", None),)
    addenda: tuple[FeatureAddendum, ...] = ()
    exclusions: tuple[SourceExclusion, ...] = ()
    version_header: str = "sdk/platform/include/sdk_version.h"
    linker_script: str = "sdk/common_project_files/ldscripts/ldscript_DA14531.lds.S"
    linker_misc_dir: str = "sdk/common_project_files/misc"
    vendor_library_dir: str = "sdk/platform/system_library/output/IAR"
    vendor_library: str = "da14531.a"


_INCLUDE_DIRS = (
    "sdk/app_modules/api",
    "sdk/ble_stack/controller/em",
    "sdk/ble_stack/controller/llc",
    "sdk/ble_stack/controller/lld",
    "sdk/ble_stack/controller/llm",
    "sdk/ble_stack/ea/api",
    "sdk/ble_stack/em/api",
    "sdk/ble_stack/hci/api",
    "sdk/ble_stack/hci/src",
    "sdk/ble_stack/host/att",
    "sdk/ble_stack/host/att/attc",
    "sdk/ble_stack/host/att/attm",
    "sdk/ble_stack/host/att/atts",
    "sdk/ble_stack/host/gap",
    "sdk/ble_stack/host/gap/gapc",
    "sdk/ble_stack/host/gap/gapm",
    "sdk/ble_stack/host/gatt",
    "sdk/ble_stack/host/gatt/gattc",
    "sdk/ble_stack/host/gatt/gattm",
    "sdk/ble_stack/host/l2c/l2cc",
    "sdk/ble_stack/host/l2c/l2cm",
    "sdk/ble_stack/host/smp",
    "sdk/ble_stack/host/smp/smpc",
    "sdk/ble_stack/host/smp/smpm",
    "sdk/ble_stack/profiles",
    "sdk/ble_stack/profiles/custom",
    "sdk/ble_stack/profiles/custom/custs/api",
    "sdk/ble_stack/profiles/dis/diss/api",
    "sdk/ble_stack/rwble",
    "sdk/ble_stack/rwble_hl",
    "sdk/common_project_files",
    "sdk/platform/arch",
    "sdk/platform/arch/boot",
    "sdk/platform/arch/boot/GCC",
    "sdk/platform/arch/compiler",
    "sdk/platform/arch/compiler/GCC",
    "sdk/platform/arch/ll",
    "sdk/platform/arch/main",
    "sdk/platform/core_modules/arch_console",
    "sdk/platform/core_modules/common/api",
    "sdk/platform/core_modules/crypto",
    "sdk/platform/core_modules/dbg/api",
    "sdk/platform/core_modules/gtl/api",
    "sdk/platform/core_modules/gtl/src",
    "sdk/platform/core_modules/h4tl/api",
    "sdk/platform/core_modules/ke/api",
    "sdk/platform/core_modules/ke/src",
    "sdk/platform/core_modules/nvds/api",
    "sdk/platform/core_modules/rf/api",
    "sdk/platform/core_modules/rwip/api",
    "sdk/platform/driver/adc",
    "sdk/platform/driver/ble",
    "sdk/platform/driver/dma",
    "sdk/platform/driver/gpio",
    "sdk/platform/driver/hw_otpc",
    "sdk/platform/driver/i2c",
    "sdk/platform/driver/i2c_eeprom",
    "sdk/platform/driver/reg",
    "sdk/platform/driver/spi",
    "sdk/platform/driver/spi_flash",
    "sdk/platform/driver/syscntl",
    "sdk/platform/driver/trng",
    "sdk/platform/driver/uart",
    "sdk/platform/include",
    "sdk/platform/include/CMSIS/5.9.0/CMSIS/Core/Include",
    "sdk/platform/system_library/include",
    "sdk/platform/utilities/otp_cs",
    "sdk/platform/utilities/otp_hdr",
    "third_party/hash",
    "third_party/irng",
    "third_party/rand",
)

_C_SOURCES = (
    "sdk/app_modules/src/app_common/app_msg_utils.c",
    "sdk/app_modules/src/app_common/app_task.c",
    "sdk/app_modules/src/app_custs/app_customs_task.c",
    "sdk/app_modules/src/app_default_hnd/app_default_handlers.c",
    "sdk/app_modules/src/app_entry/app_entry_point.c",
    "sdk/ble_stack/profiles/custom/custs/src/custs1_task.c",
    "sdk/ble_stack/profiles/prf.c",
    "sdk/ble_stack/rwble/rwble.c",
    "sdk/platform/arch/boot/system_DA14531.c",
    "sdk/platform/arch/main/arch_main.c",
    "sdk/platform/arch/main/arch_rom.c",
    "sdk/platform/arch/main/arch_sleep.c",
    "sdk/platform/arch/main/arch_system.c",
    "sdk/platform/arch/main/hardfault_handler.c",
    "sdk/platform/arch/main/jump_table.c",
    "sdk/platform/arch/main/nmi_handler.c",
    "sdk/platform/core_modules/crypto/aes.c",
    "sdk/platform/core_modules/crypto/aes_api.c",
    "sdk/platform/core_modules/crypto/aes_cbc.c",
    "sdk/platform/core_modules/crypto/aes_task.c",
    "sdk/platform/core_modules/crypto/sw_aes.c",
    "sdk/platform/core_modules/nvds/src/nvds.c",
    "sdk/platform/core_modules/rf/src/ble_arp.c",
    "sdk/platform/core_modules/rf/src/rf_531.c",
    "sdk/platform/core_modules/rwip/src/rwip.c",
    "sdk/platform/driver/adc/adc_531.c",
    "sdk/platform/driver/gpio/gpio.c",
    "sdk/platform/driver/hw_otpc/hw_otpc_531.c",
    "sdk/platform/driver/spi/spi_531.c",
    "sdk/platform/driver/spi_flash/spi_flash.c",
    "sdk/platform/driver/syscntl/syscntl.c",
    "sdk/platform/driver/trng/trng.c",
    "sdk/platform/system_library/src/DA14531/system_library_531.c",
    "sdk/platform/utilities/otp_cs/otp_cs.c",
    "sdk/platform/utilities/otp_hdr/otp_hdr.c",
    "third_party/rand/chacha20.c",
)

_ASM_SOURCES = (
    "sdk/platform/arch/boot/GCC/ivtable_DA14531.S",
    "sdk/platform/arch/boot/GCC/startup_DA14531.S",
)

_CONFIG_HEADERS = (
    "da1458x_config_basic.h",
    "da1458x_config_advanced.h",
    "user_config.h",
)

_ADDENDA = (
    FeatureAddendum(
        feature="profile_gatt_client",
        include_dirs=("sdk/ble_stack/profiles/gatt/gatt_client/api",),
        c_sources=("sdk/app_modules/src/app_gattc/app_gattc.c",),
    ),
    FeatureAddendum(
        feature="profile_prox_reporter",
        include_dirs=("sdk/ble_stack/profiles/prox/proxr/api",),
        include_files=("sdk/app_modules/api/app_proxr.h",),
    ),
    FeatureAddendum(
        feature="profile_batt_server",
        include_dirs=("sdk/ble_stack/profiles/bas/bass/api",),
        include_files=("sdk/app_modules/api/app_bass.h",),
    ),
    FeatureAddendum(
        feature="profile_findme_target",
        include_dirs=(
            "sdk/ble_stack/profiles/find/findt/api",
            "sdk/ble_stack/profiles/find",
        ),
        include_files=("sdk/app_modules/api/app_findme.h",),
    ),
)

_EXCLUSIONS = (
    SourceExclusion(suffix="arch_main.c", feature="no_main", when_enabled=True),
    SourceExclusion(suffix="spi_531.c", feature="driver_spi", when_enabled=False),
    SourceExclusion(suffix="spi_flash.c", feature="driver_spi_flash", when_enabled=False),
)

DEFAULT_CATALOG = SdkCatalog(
    name="default",
    include_dirs=_INCLUDE_DIRS,
    c_sources=_C_SOURCES,
    asm_sources=_ASM_SOURCES,
    config_headers=_CONFIG_HEADERS,
    addenda=_ADDENDA,
    exclusions=_EXCLUSIONS,
)

# Older SDK drops ship CMSIS 5.6.0; the rest of the tree is the same.
CMSIS_56_CATALOG = replace(
    DEFAULT_CATALOG,
    name="cmsis-5.6",
    include_dirs=tuple(
        d.replace("CMSIS/5.9.0/", "CMSIS/5.6.0/") for d in _INCLUDE_DIRS
    ),
)

CATALOGS: dict[str, SdkCatalog] = {
    DEFAULT_CATALOG.name: DEFAULT_CATALOG,
    CMSIS_56_CATALOG.name: CMSIS_56_CATALOG,
}


def get_catalog(name: str) -> SdkCatalog:
    """Look up a built-in layout by name."""
    if name not in CATALOGS:
        raise ValueError(
            f"Unknown SDK layout: {name} (known: {', '.join(sorted(CATALOGS))})"
        )
    return CATALOGS[name]


def _mapping(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{where}: expected a mapping, got {type(value).__name__}")
    return value


def _entries(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    entries = data[key] or []
    if not isinstance(entries, list):
        raise ValueError(f"'{key}': expected a list, got {type(entries).__name__}")
    return [_mapping(entry, f"'{key}' entry {i}") for i, entry in enumerate(entries)]


def _required(entry: dict[str, Any], key: str, where: str) -> str:
    if key not in entry:
        raise ValueError(f"{where}: missing '{key}'")
    return str(entry[key])


def _strings(data: dict[str, Any], key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    if key not in data:
        return default
    paths = data[key] or []
    if not isinstance(paths, list):
        raise ValueError(f"'{key}': expected a list of paths, got {type(paths).__name__}")
    return tuple(str(p).lstrip("/") for p in paths)


def catalog_from_dict(data: dict[str, Any], base: SdkCatalog = DEFAULT_CATALOG) -> SdkCatalog:
    """
    Build a catalog from a mapping, falling back to `base` for missing keys.

    Leading slashes are stripped so entries stay relative to the SDK root.
    A malformed mapping raises ValueError naming the offending key.
    """
    data = _mapping(data, "layout")

    addenda = base.addenda
    if "addenda" in data:
        addenda = tuple(
            FeatureAddendum(
                feature=_required(entry, "feature", f"'addenda' entry {i}"),
                include_dirs=_strings(entry, "include_dirs", ()),
                c_sources=_strings(entry, "c_sources", ()),
                include_files=_strings(entry, "include_files", ()),
            )
            for i, entry in enumerate(_entries(data, "addenda"))
        )

    exclusions = base.exclusions
    if "exclusions" in data:
        exclusions = tuple(
            SourceExclusion(
                suffix=_required(entry, "suffix", f"'exclusions' entry {i}"),
                feature=_required(entry, "feature", f"'exclusions' entry {i}"),
                when_enabled=bool(entry.get("when_enabled", True)),
            )
            for i, entry in enumerate(_entries(data, "exclusions"))
        )

    defines = base.defines
    if "defines" in data:
        defines = tuple(
            (str(k), None if v is None else str(v))
            for k, v in _mapping(data["defines"] or {}, "'defines'").items()
        )

    return SdkCatalog(
        name=str(data.get("name", base.name)),
        include_dirs=_strings(data, "include_dirs", base.include_dirs),
        c_sources=_strings(data, "c_sources", base.c_sources),
        asm_sources=_strings(data, "asm_sources", base.asm_sources),
        config_headers=_strings(data, "config_headers", base.config_headers),
        defines=defines,
        addenda=addenda,
        exclusions=exclusions,
        version_header=data.get("version_header", base.version_header),
        linker_script=data.get("linker_script", base.linker_script),
        linker_misc_dir=data.get("linker_misc_dir", base.linker_misc_dir),
        vendor_library_dir=data.get("vendor_library_dir", base.vendor_library_dir),
        vendor_library=data.get("vendor_library", base.vendor_library),
    )


def load_catalog(path: Path) -> SdkCatalog:
    """Load a custom SDK layout from YAML; a malformed file raises ValueError."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"{path}: invalid YAML: {e}") from e

    try:
        data = _mapping(data, "layout")
        base = get_catalog(data.get("base", DEFAULT_CATALOG.name))
        return catalog_from_dict(data, base=base)
    except ValueError as e:
        raise ValueError(f"{path}: {e}") from e
