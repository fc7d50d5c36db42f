"""Run folders for marker exports.

Each CLI invocation gets ``<runs_root>/<UTC stamp>_<slug>/`` holding the
dictionary table it read (``input/``), every export (``artifacts/``), a
``manifest.json`` and a ``summary.md``. ``<runs_root>/latest`` points at the
most recent run.
"""

from __future__ import annotations

import json
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

Payload = Union[bytes, str, Dict[str, Any]]


@dataclass(frozen=True)
class RunPaths:
    run_id: str
    run_dir: Path

    @property
    def input_dir(self) -> Path:
        return self.run_dir / "input"

    @property
    def artifacts_dir(self) -> Path:
        return self.run_dir / "artifacts"

    @property
    def manifest_path(self) -> Path:
        return self.run_dir / "manifest.json"

    @property
    def summary_path(self) -> Path:
        return self.run_dir / "summary.md"

    @property
    def metadata_path(self) -> Path:
        return self.artifacts_dir / "metadata.json"

    def artifact(self, base_name: str, suffix: str) -> Path:
        """``artifacts/<base_name><suffix>``, e.g. ``-black.stl`` or ``.svg``."""
        return self.artifacts_dir / f"{base_name}{suffix}"


def slugify(value: str) -> str:
    # Export base names keep case and dots (``4x4_50-7_50x50x3.00mm``)
    slug = re.sub(r"[^A-Za-z0-9._-]+", "-", value.strip())
    return slug.strip("-.") or "marker"


def create_run_id(run_name: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d_%H%M%S")
    return f"{stamp}_{slugify(run_name)}"


def prepare_run_dir(runs_root: str, run_name: str) -> RunPaths:
    """Create a fresh run folder; same-second runs get a numeric suffix."""
    root = Path(runs_root)
    base_id = create_run_id(run_name)
    run_id = base_id
    attempt = 1
    while (root / run_id).exists():
        attempt += 1
        run_id = f"{base_id}-{attempt}"

    paths = RunPaths(run_id=run_id, run_dir=root / run_id)
    paths.input_dir.mkdir(parents=True)
    paths.artifacts_dir.mkdir()
    return paths


def copy_input_file(path: str, input_dir: Path) -> Path:
    src = Path(path)
    dst = input_dir / src.name
    shutil.copy2(src, dst)
    return dst


def write_artifact(path: Path, payload: Payload) -> Path:
    """Write bytes, text or a JSON-ready dict to ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(payload, bytes):
        path.write_bytes(payload)
    elif isinstance(payload, str):
        path.write_text(payload, encoding="utf-8")
    else:
        path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path


def update_latest_pointer(runs_root: str, run_dir: Path) -> None:
    root = Path(runs_root)
    latest = root / "latest"
    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.is_dir():
        shutil.rmtree(latest)

    try:
        latest.symlink_to(os.path.relpath(run_dir, root), target_is_directory=True)
    except OSError:
        # No symlink support: a folder naming the run instead
        latest.mkdir()
        (latest / "latest_run.txt").write_text(run_dir.name + "\n", encoding="utf-8")
