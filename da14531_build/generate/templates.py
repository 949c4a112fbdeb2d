"""`${NAME}` placeholder substitution for header templates."""

import logging
from pathlib import Path
from string import Template
from typing import Iterable

from ..errors import TemplateError
from .items import ConfigItem

log = logging.getLogger(__name__)

TEMPLATE_SUFFIX = ".in"


# Only the braced form is a placeholder; a bare `$` stays literal.
class HeaderTemplate(Template):
    pattern = r"""
    \$(?:
      (?P<escaped>(?!)) |
      (?P<named>(?!)) |
      \{(?P<braced>(?a:[_a-z][_a-z0-9]*))\} |
      (?P<invalid>\{)
    )
    """

    def check(self, source: str) -> None:
        """Raise TemplateError for the first `${` not closing over an identifier."""
        for mo in self.pattern.finditer(self.template):
            start = mo.start("invalid")
            if start < 0:
                continue
            line = self.template.count("\n", 0, start) + 1
            end = self.template.find("}", start)
            if end < 0:
                raise TemplateError(f"{source}:{line}: unterminated placeholder")
            raise TemplateError(
                f"{source}:{line}: ill-formed placeholder '${self.template[start:end + 1]}'"
            )


def substitute(text: str, values: dict[str, str], source: str = "<template>") -> str:
    """
    Replace every `${NAME}` whose NAME is in `values`.

    Unknown placeholders are not errors: they are copied through verbatim.
    An unterminated `${` or braces around a non-identifier raise TemplateError.
    """
    template = HeaderTemplate(text)
    template.check(source)
    return template.safe_substitute(values)


def render_template(
    template_name: str,
    items: Iterable[ConfigItem],
    template_dir: Path,
    out_dir: Path,
) -> Path:
    """Render `{template_dir}/{template_name}.in` into `{out_dir}/{template_name}`."""
    template_path = Path(template_dir) / f"{template_name}{TEMPLATE_SUFFIX}"
    try:
        template = template_path.read_text()
    except OSError as e:
        raise TemplateError(f"Cannot read template {template_path}: {e}") from e

    values = {item.name: item.render() for item in items}
    rendered = substitute(template, values, source=str(template_path))

    output_path = Path(out_dir) / template_name
    try:
        output_path.write_text(rendered)
    except OSError as e:
        raise TemplateError(f"Cannot write {output_path}: {e}") from e

    log.debug("Rendered %s (%d items)", output_path, len(values))
    return output_path
