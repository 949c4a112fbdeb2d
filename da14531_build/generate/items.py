"""Typed preprocessor entries for the generated configuration headers."""

import os
import re
from dataclasses import dataclass
from enum import Enum
from typing import Mapping

# Every item can be overridden from the environment, e.g.
# DA14531_CFG_TRNG=undefined turns CFG_TRNG into an #undef.
OVERRIDE_PREFIX = "DA14531_"

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_INTEGER = re.compile(r"[+-]?[0-9]+")

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


class ValueKind(Enum):
    UNDEFINED = "undefined"
    DEFINED = "defined"
    NUMBER = "number"
    RAW = "raw"


@dataclass(frozen=True)
class ConfigValue:
    """Tagged value of a config item. `payload` is an int for NUMBER, text for RAW."""

    kind: ValueKind
    payload: int | str | None = None

    @classmethod
    def undefined(cls) -> "ConfigValue":
        return cls(ValueKind.UNDEFINED)

    @classmethod
    def defined(cls) -> "ConfigValue":
        return cls(ValueKind.DEFINED)

    @classmethod
    def number(cls, value: int) -> "ConfigValue":
        return cls(ValueKind.NUMBER, int(value))

    @classmethod
    def raw(cls, text: str) -> "ConfigValue":
        return cls(ValueKind.RAW, text)

    @classmethod
    def parse(cls, text: str) -> "ConfigValue":
        """
        Parse an override string. Total: every input maps to some value.

        "undefined"/"defined" (any case) map to those kinds, a decimal that
        fits a signed 32-bit int maps to NUMBER, and anything else becomes a
        quoted C string literal.
        """
        lowered = text.lower()
        if lowered == "undefined":
            return cls.undefined()
        if lowered == "defined":
            return cls.defined()
        if _INTEGER.fullmatch(text):
            value = int(text)
            if _I32_MIN <= value <= _I32_MAX:
                return cls.number(value)
        return cls.raw(c_string_literal(text))


def c_string_literal(text: str) -> str:
    escaped = (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", "\\r")
        .replace("\n", "\\n")
    )
    return f'"{escaped}"'


def is_identifier(name: str) -> bool:
    return _IDENTIFIER.fullmatch(name) is not None


@dataclass(frozen=True)
class ConfigItem:
    """One #define/#undef line of a generated header."""

    name: str
    value: ConfigValue

    def __post_init__(self) -> None:
        if not is_identifier(self.name):
            raise ValueError(f"Not a valid C macro name: {self.name!r}")

    @classmethod
    def new(
        cls,
        name: str,
        default: ConfigValue,
        environ: Mapping[str, str] | None = None,
    ) -> "ConfigItem":
        """Create an item, letting DA14531_<name> in `environ` replace the default."""
        env = os.environ if environ is None else environ
        override = env.get(f"{OVERRIDE_PREFIX}{name}")
        value = default if override is None else ConfigValue.parse(override)
        return cls(name=name, value=value)

    def render(self) -> str:
        kind = self.value.kind
        if kind is ValueKind.UNDEFINED:
            return f"#undef {self.name}"
        if kind is ValueKind.DEFINED:
            return f"#define {self.name}"
        if kind is ValueKind.NUMBER:
            return f"#define {self.name} ({self.value.payload})"
        return f"#define {self.name} {self.value.payload}"

    @property
    def is_defined(self) -> bool:
        return self.value.kind is not ValueKind.UNDEFINED

    def define_value(self) -> str | None:
        """Replacement text for a -D flag; identical to what render() emits."""
        kind = self.value.kind
        if kind is ValueKind.NUMBER:
            return f"({self.value.payload})"
        if kind is ValueKind.RAW:
            return str(self.value.payload)
        return None

    def __str__(self) -> str:
        return self.render()
