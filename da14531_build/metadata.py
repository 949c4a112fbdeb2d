"""Build manifest describing one engine run."""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .plan import BuildPlan

ENGINE_NAME = "da14531-build"
ENGINE_VERSION = "0.1.0"
MANIFEST_NAME = "build_manifest.json"


def compute_sha256(file_path: Path) -> str:
    sha256_hash = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha256_hash.update(chunk)
    return sha256_hash.hexdigest()


@dataclass
class BuildManifest:
    """Everything a run resolved and produced."""

    target: str
    sdk_root: str
    layout: str
    features: list[str]
    selections: dict[str, str]
    plan: BuildPlan
    sdk_version: str | None = None
    version_warning: str | None = None
    compiler_version: str = "unknown"
    archive: str | None = None
    artifacts: list[Path] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        artifacts = {}
        for path in self.artifacts:
            if path.exists():
                artifacts[path.name] = {
                    "path": str(path),
                    "sha256": compute_sha256(path),
                    "size_bytes": path.stat().st_size,
                }
        return {
            "engine": {
                "name": ENGINE_NAME,
                "version": ENGINE_VERSION,
                "generated_at": datetime.now(timezone.utc).isoformat(),
            },
            "target": self.target,
            "sdk": {
                "root": self.sdk_root,
                "layout": self.layout,
                "version": self.sdk_version,
                "version_warning": self.version_warning,
            },
            "features": sorted(self.features),
            "selections": dict(self.selections),
            "plan": self.plan.to_dict(),
            "toolchain": {
                "compiler": self.compiler_version,
                "archive": self.archive,
            },
            "artifacts": artifacts,
        }

    def save(self, out_dir: Path) -> Path:
        manifest_path = out_dir / MANIFEST_NAME
        with open(manifest_path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        return manifest_path
