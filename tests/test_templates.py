from pathlib import Path

import pytest

from da14531_build.errors import TemplateError
from da14531_build.generate.items import ConfigItem, ConfigValue
from da14531_build.generate.templates import render_template, substitute


def test_substitute_known_and_unknown():
    text = "a ${X} b ${UNKNOWN} c"
    assert substitute(text, {"X": "1"}) == "a 1 b ${UNKNOWN} c"


def test_substitute_leaves_plain_dollars():
    text = "cost $5 and $X and $"
    assert substitute(text, {"X": "no"}) == text


def test_substitute_repeated_placeholder():
    assert substitute("${A}${A}", {"A": "z"}) == "zz"


def test_substitute_unterminated_placeholder():
    with pytest.raises(TemplateError, match="unterminated"):
        substitute("line\n${CFG_TRNG\n", {}, source="user_config.h.in")


@pytest.mark.parametrize("text", ["${}", "${1X}", "${A B}"])
def test_substitute_ill_formed_placeholder(text):
    with pytest.raises(TemplateError, match="ill-formed"):
        substitute(text, {})


def test_substitute_error_reports_line():
    with pytest.raises(TemplateError, match="t.in:3"):
        substitute("a\nb\n${", {}, source="t.in")


def _write_template(directory: Path, name: str, body: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / f"{name}.in").write_text(body)


def test_render_template(tmp_path: Path):
    _write_template(tmp_path / "tpl", "cfg.h", "${A}\n${B}\n${KEEP}\n")
    items = [
        ConfigItem("A", ConfigValue.defined()),
        ConfigItem("B", ConfigValue.number(2)),
    ]
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    path = render_template("cfg.h", items, tmp_path / "tpl", out_dir)

    assert path == out_dir / "cfg.h"
    assert path.read_text() == "#define A\n#define B (2)\n${KEEP}\n"


def test_render_template_is_idempotent(tmp_path: Path):
    _write_template(tmp_path, "cfg.h", "${A}\n")
    items = [ConfigItem("A", ConfigValue.raw('"x"'))]
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    first = render_template("cfg.h", items, tmp_path, out_dir).read_bytes()
    second = render_template("cfg.h", items, tmp_path, out_dir).read_bytes()
    assert first == second


def test_render_template_missing_template(tmp_path: Path):
    with pytest.raises(TemplateError, match="Cannot read template"):
        render_template("absent.h", [], tmp_path, tmp_path)


def test_render_template_unwritable_output(tmp_path: Path):
    _write_template(tmp_path, "cfg.h", "x\n")
    with pytest.raises(TemplateError, match="Cannot write"):
        render_template("cfg.h", [], tmp_path, tmp_path / "missing" / "dir")


def test_substitute_doubled_dollar_before_placeholder():
    assert substitute("$${X} $$", {"X": "1"}) == "$1 $$"


def test_substitute_lowercase_names():
    assert substitute("${device_name}", {"device_name": '"dev"'}) == '"dev"'


def test_substitute_ill_formed_names_placeholder():
    with pytest.raises(TemplateError, match=r"t\.in:2: ill-formed placeholder '\$\{1X\}'"):
        substitute("ok\n${1X}\n", {}, source="t.in")


def test_substitute_checks_whole_text_before_replacing():
    with pytest.raises(TemplateError):
        substitute("${A}\n${", {"A": "1"})
