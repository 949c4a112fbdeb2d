"""Build-time feature selections and their mutual-exclusion groups."""

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from .errors import ConfigurationConflict

log = logging.getLogger(__name__)

CARGO_FEATURE_PREFIX = "CARGO_FEATURE_"

PROFILE_FEATURES = (
    "profile_dis_server",
    "profile_prox_reporter",
    "profile_batt_server",
    "profile_findme_locator",
    "profile_findme_target",
    "profile_suota_receiver",
    "profile_custom_server1",
    "profile_custom_server2",
    "profile_gatt_client",
)

SOURCE_FEATURES = ("no_main", "driver_spi", "driver_spi_flash")

# Consumed by the firmware wrapper modules, not by this engine
WRAPPER_FEATURES = ("expose_bindings", "ble_custom_server1", "ble_custom_server2")


@dataclass(frozen=True)
class ExclusiveGroup:
    """Features of which exactly one must be active; each selects a macro value."""

    name: str
    macro: str
    members: tuple[tuple[str, str], ...]  # (feature, macro value), in priority order

    @property
    def features(self) -> tuple[str, ...]:
        return tuple(feature for feature, _ in self.members)

    def resolve(self, active: frozenset[str]) -> str:
        chosen = [(f, value) for f, value in self.members if f in active]
        if not chosen:
            raise ConfigurationConflict(
                f"One {self.name} feature has to be set: {', '.join(self.features)}"
            )
        if len(chosen) > 1:
            raise ConfigurationConflict(
                f"Only one {self.name} feature can be set, got: "
                + ", ".join(f for f, _ in chosen)
            )
        return chosen[0][1]


ADDRESS_MODE = ExclusiveGroup(
    name="address mode",
    macro="USER_CFG_ADDRESS_MODE",
    members=(
        ("address_mode_public", "APP_CFG_ADDR_PUB"),
        ("address_mode_static", "APP_CFG_ADDR_STATIC"),
    ),
)

SLEEP_MODE = ExclusiveGroup(
    name="sleep mode",
    macro="USER_CFG_ARCH_SLEEP_MODE",
    members=(
        ("sleep_mode_off", "ARCH_SLEEP_OFF"),
        ("sleep_mode_ext_on", "ARCH_EXT_SLEEP_ON"),
        ("sleep_mode_ext_otp_copy_on", "ARCH_EXT_SLEEP_OTP_COPY_ON"),
    ),
)

EXCLUSIVE_GROUPS: tuple[ExclusiveGroup, ...] = (ADDRESS_MODE, SLEEP_MODE)

KNOWN_FEATURES: frozenset[str] = frozenset(
    [f for group in EXCLUSIVE_GROUPS for f in group.features]
    + ["app_security"]
    + list(PROFILE_FEATURES)
    + list(SOURCE_FEATURES)
    + list(WRAPPER_FEATURES)
)


@dataclass(frozen=True)
class FeatureSet:
    """Immutable set of active feature names."""

    active: frozenset[str] = frozenset()

    @classmethod
    def of(cls, names: Iterable[str]) -> "FeatureSet":
        active = set()
        for raw in names:
            name = raw.strip().lower().replace("-", "_")
            if not name:
                continue
            if name not in KNOWN_FEATURES:
                log.warning("Ignoring unknown feature '%s'", raw)
                continue
            active.add(name)
        return cls(frozenset(active))

    @classmethod
    def from_cargo_env(cls, environ: Mapping[str, str]) -> "FeatureSet":
        """Read the CARGO_FEATURE_<NAME> variables cargo sets for build scripts."""
        names = [
            key[len(CARGO_FEATURE_PREFIX):].lower()
            for key in environ
            if key.startswith(CARGO_FEATURE_PREFIX)
        ]
        # "default" is cargo's own feature, not one of ours
        return cls.of(n for n in names if n != "default")

    def __contains__(self, name: object) -> bool:
        return name in self.active

    def enabled(self, name: str) -> bool:
        return name in self.active

    def sorted(self) -> list[str]:
        return sorted(self.active)


def resolve_selections(
    features: FeatureSet,
    groups: Iterable[ExclusiveGroup] = EXCLUSIVE_GROUPS,
) -> dict[str, str]:
    """
    Check every exclusive group and return {macro: selected value}.

    All groups are checked before returning so a conflict is reported before
    anything is generated.
    """
    selections = {}
    for group in groups:
        selections[group.macro] = group.resolve(features.active)
    return selections
