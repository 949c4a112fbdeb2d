"""Cargo build-script directives printed on stdout."""

import sys
from pathlib import Path
from typing import TextIO


class CargoDirectives:
    """Collects directives in emission order; `emit` prints them."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def warning(self, message: str) -> None:
        # One directive per line; cargo cannot take embedded newlines
        for line in str(message).splitlines() or [""]:
            self.lines.append(f"cargo::warning={line}")

    def link_lib(self, spec: str) -> None:
        self.lines.append(f"cargo::rustc-link-lib={spec}")

    def link_search(self, path: Path | str, kind: str | None = None) -> None:
        prefix = f"{kind}=" if kind else ""
        self.lines.append(f"cargo::rustc-link-search={prefix}{path}")

    def rerun_if_changed(self, path: Path | str) -> None:
        self.lines.append(f"cargo:rerun-if-changed={path}")

    def rerun_if_env_changed(self, name: str) -> None:
        self.lines.append(f"cargo:rerun-if-env-changed={name}")

    @property
    def warnings(self) -> list[str]:
        return [l.split("=", 1)[1] for l in self.lines if l.startswith("cargo::warning=")]

    def emit(self, stream: TextIO | None = None) -> None:
        out = stream or sys.stdout
        for line in self.lines:
            out.write(line + "\n")
        out.flush()
