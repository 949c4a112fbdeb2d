"""Config item lists for each generated header, derived from the feature set."""

import logging
from pathlib import Path
from typing import Callable, Mapping

from ..features import ADDRESS_MODE, SLEEP_MODE, FeatureSet, resolve_selections
from .items import ConfigItem, ConfigValue
from .templates import render_template

log = logging.getLogger(__name__)

USER_CONFIG = "user_config.h"
USER_MODULES_CONFIG = "user_modules_config.h"
USER_PROFILES_CONFIG = "user_profiles_config.h"
CONFIG_BASIC = "da14531_config_basic.h"
CONFIG_ADVANCED = "da14531_config_advanced.h"

# Generation order
GENERATED_HEADERS = (
    USER_CONFIG,
    USER_MODULES_CONFIG,
    USER_PROFILES_CONFIG,
    CONFIG_BASIC,
    CONFIG_ADVANCED,
)

# (module-exclusion macro, profile-config macro, feature)
_PROFILE_TABLE = (
    ("EXCLUDE_DLG_DISS", "CFG_PRF_DISS", "profile_dis_server"),
    ("EXCLUDE_DLG_PROXR", "CFG_PRF_PXPR", "profile_prox_reporter"),
    ("EXCLUDE_DLG_BASS", "CFG_PRF_BASS", "profile_batt_server"),
    ("EXCLUDE_DLG_FINDL", "CFG_PRF_FMPL", "profile_findme_locator"),
    ("EXCLUDE_DLG_FINDT", "CFG_PRF_FMPT", "profile_findme_target"),
    ("EXCLUDE_DLG_SUOTAR", "CFG_PRF_SUOTAR", "profile_suota_receiver"),
    ("EXCLUDE_DLG_CUSTS1", "CFG_PRF_CUST1", "profile_custom_server1"),
    ("EXCLUDE_DLG_CUSTS2", "CFG_PRF_CUST2", "profile_custom_server2"),
)

_PROFILE_CONFIG_ORDER = (
    ("CFG_PRF_CUST1", "profile_custom_server1"),
    ("CFG_PRF_CUST2", "profile_custom_server2"),
    ("CFG_PRF_DISS", "profile_dis_server"),
    ("CFG_PRF_PXPR", "profile_prox_reporter"),
    ("CFG_PRF_BASS", "profile_batt_server"),
    ("CFG_PRF_SUOTAR", "profile_suota_receiver"),
    ("CFG_PRF_FMPT", "profile_findme_target"),
    ("CFG_PRF_FMPL", "profile_findme_locator"),
    ("CFG_PRF_GATTC", "profile_gatt_client"),
)


def _flag(enabled: bool) -> ConfigValue:
    return ConfigValue.defined() if enabled else ConfigValue.undefined()


def basic_config(features: FeatureSet, environ: Mapping[str, str]) -> list[ConfigItem]:
    U, D = ConfigValue.undefined(), ConfigValue.defined()
    entries = [
        ("CFG_APP", D),
        ("CFG_APP_SECURITY", _flag(features.enabled("app_security"))),
        ("CFG_WDOG", D),
        ("CFG_WDG_TRIGGER_HW_RESET_IN_PRODUCTION_MODE", U),
        ("CFG_MAX_CONNECTIONS", ConfigValue.number(1)),
        ("CFG_DEVELOPMENT_DEBUG", D),
        ("CFG_PRINTF", U),
        ("CFG_UART1_SDK", U),
        ("CFG_SPI_FLASH_ENABLE", U),
        ("CFG_I2C_EEPROM_ENABLE", U),
        ("CFG_UART_DMA_SUPPORT", U),
        ("CFG_SPI_DMA_SUPPORT", U),
        ("CFG_I2C_DMA_SUPPORT", U),
        ("CFG_ADC_DMA_SUPPORT", U),
        ("CFG_POWER_MODE_BYPASS", U),
    ]
    return [ConfigItem.new(name, value, environ) for name, value in entries]


def advanced_config(features: FeatureSet, environ: Mapping[str, str]) -> list[ConfigItem]:
    U, D = ConfigValue.undefined(), ConfigValue.defined()
    entries = [
        ("CFG_TRNG", D),
        ("CFG_USE_CHACHA20_RAND", U),
        ("DB_HEAP_SZ", U),
        ("ENV_HEAP_SZ", U),
        ("MSG_HEAP_SZ", U),
        ("NON_RET_HEAP_SZ", U),
        ("CFG_USE_AES", D),
        ("CFG_AES_DECRYPT", D),
    ]
    return [ConfigItem.new(name, value, environ) for name, value in entries]


def modules_config(features: FeatureSet, environ: Mapping[str, str]) -> list[ConfigItem]:
    """EXCLUDE_DLG_* switches: 0 keeps a module, 1 drops it."""
    entries = [
        ("EXCLUDE_DLG_GAP", 0),
        ("EXCLUDE_DLG_TIMER", 0),
        ("EXCLUDE_DLG_MSG", 1),
        ("EXCLUDE_DLG_SEC", 1),
    ]
    entries += [
        (macro, 0 if features.enabled(feature) else 1)
        for macro, _, feature in _PROFILE_TABLE
    ]
    return [ConfigItem.new(name, ConfigValue.number(n), environ) for name, n in entries]


def profiles_config(features: FeatureSet, environ: Mapping[str, str]) -> list[ConfigItem]:
    return [
        ConfigItem.new(macro, _flag(features.enabled(feature)), environ)
        for macro, feature in _PROFILE_CONFIG_ORDER
    ]


def user_config(selections: Mapping[str, str], environ: Mapping[str, str]) -> list[ConfigItem]:
    entries = [
        (ADDRESS_MODE.macro, selections[ADDRESS_MODE.macro]),
        ("USER_CFG_CNTL_PRIV_MODE", "APP_CFG_CNTL_PRIV_MODE_NETWORK"),
        (SLEEP_MODE.macro, selections[SLEEP_MODE.macro]),
        ("USER_DEVICE_NAME", '""'),
    ]
    return [ConfigItem.new(name, ConfigValue.raw(text), environ) for name, text in entries]


_FEATURE_BUILDERS: dict[str, Callable[[FeatureSet, Mapping[str, str]], list[ConfigItem]]] = {
    USER_MODULES_CONFIG: modules_config,
    USER_PROFILES_CONFIG: profiles_config,
    CONFIG_BASIC: basic_config,
    CONFIG_ADVANCED: advanced_config,
}


def resolve_config_groups(
    features: FeatureSet,
    environ: Mapping[str, str],
    selections: Mapping[str, str] | None = None,
) -> dict[str, list[ConfigItem]]:
    """
    Build every header's item list, validating exclusive groups first.

    Raises ConfigurationConflict before any list is built, so nothing can be
    written for an invalid feature set.
    """
    if selections is None:
        selections = resolve_selections(features)

    groups = {USER_CONFIG: user_config(selections, environ)}
    for header in GENERATED_HEADERS:
        if header in _FEATURE_BUILDERS:
            groups[header] = _FEATURE_BUILDERS[header](features, environ)
    return {header: groups[header] for header in GENERATED_HEADERS}


def selection_defines(groups: Mapping[str, list[ConfigItem]]) -> dict[str, str | None]:
    """
    The exclusive-group macros of user_config.h as they will be rendered,
    overrides included, for mirroring into the build plan defines.
    """
    macros = (ADDRESS_MODE.macro, SLEEP_MODE.macro)
    return {
        item.name: item.define_value()
        for item in groups.get(USER_CONFIG, [])
        if item.name in macros and item.is_defined
    }


def generate_headers(
    groups: Mapping[str, list[ConfigItem]],
    template_dir: Path,
    out_dir: Path,
) -> list[Path]:
    """Render every header template; returns the written paths in order."""
    written = []
    for header, items in groups.items():
        written.append(render_template(header, items, template_dir, out_dir))
    log.info("Generated %d config headers in %s", len(written), out_dir)
    return written
