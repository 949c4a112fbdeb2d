"""Generated configuration headers: config items, templates and header groups."""

from .items import (
    OVERRIDE_PREFIX,
    ConfigItem,
    ConfigValue,
    ValueKind,
)
from .templates import render_template, substitute
from .headers import (
    GENERATED_HEADERS,
    generate_headers,
    resolve_config_groups,
    selection_defines,
)

__all__ = [
    # Items
    "OVERRIDE_PREFIX",
    "ConfigItem",
    "ConfigValue",
    "ValueKind",
    # Templates
    "render_template",
    "substitute",
    # Headers
    "GENERATED_HEADERS",
    "generate_headers",
    "resolve_config_groups",
    "selection_defines",
]
