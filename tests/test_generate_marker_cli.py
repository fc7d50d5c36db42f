from __future__ import annotations

import importlib.util
import json
import subprocess
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
SCRIPT = REPO_ROOT / "scripts" / "generate_marker.py"


def _run(args, runs_dir: Path):
    cmd = [sys.executable, str(SCRIPT), "--runs-dir", str(runs_dir), *args]
    return subprocess.run(cmd, capture_output=True, text=True)


def _only_run_dir(runs_dir: Path) -> Path:
    run_dirs = sorted(
        [path for path in runs_dir.iterdir() if path.is_dir() and path.name != "latest"]
    )
    assert len(run_dirs) == 1
    return run_dirs[0]


def test_single_marker_cli_emits_artifacts(dict_json_file: str, tmp_path: Path):
    runs = tmp_path / "runs"
    proc = _run(
        ["--dict-json", dict_json_file, "single", "--dict", "4x4_50", "--id", "3", "--border", "4"],
        runs,
    )
    assert proc.returncode == 0, proc.stderr
    assert "Run ID:" in proc.stdout

    run_dir = _only_run_dir(runs)
    artifacts = run_dir / "artifacts"
    base = "4x4_50-3_50x50x3.00mm_positive_border4.0mm"
    for suffix in ("-black.stl", "-white.stl", ".glb", ".svg", ".png", ".dxf"):
        assert (artifacts / f"{base}{suffix}").exists(), suffix
    assert (run_dir / "input" / "dict.json").exists()

    metadata = json.loads((artifacts / "metadata.json").read_text(encoding="utf-8"))
    assert metadata["mode"] == "single"
    assert metadata["markers"][0]["marker_id"] == 3

    manifest = json.loads((run_dir / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "ok"
    assert manifest["base_name"] == base


def test_array_cli_with_gap_fill(dict_json_file: str, tmp_path: Path):
    runs = tmp_path / "runs"
    proc = _run(
        [
            "--dict-json", dict_json_file, "--no-dxf",
            "array", "--dict", "4x4_50", "--grid", "3", "2", "--gap", "4",
            "--dim", "20", "--gap-fill", "fill", "--start-id", "10",
        ],
        runs,
    )
    assert proc.returncode == 0, proc.stderr
    run_dir = _only_run_dir(runs)
    metadata = json.loads((run_dir / "artifacts" / "metadata.json").read_text(encoding="utf-8"))
    assert [m["marker_id"] for m in metadata["markers"]] == [10, 11, 12, 13, 14, 15]
    assert not list((run_dir / "artifacts").glob("*.dxf"))


def test_qr_cli_needs_no_dictionary(tmp_path: Path):
    runs = tmp_path / "runs"
    proc = _run(["qr", "--content", "hello", "--dim", "29", "--mode", "negative"], runs)
    assert proc.returncode == 0, proc.stderr
    assert "QR Code: 29×29 modules" in proc.stdout


def test_invalid_request_fails_without_exports(dict_json_file: str, tmp_path: Path):
    runs = tmp_path / "runs"
    proc = _run(["--dict-json", dict_json_file, "single", "--dict", "4x4_50", "--id", "77"], runs)
    assert proc.returncode == 1
    assert "Run ID:" in proc.stdout
    assert "Invalid ID (77)" in proc.stdout

    run_dir = _only_run_dir(runs)
    assert not list((run_dir / "artifacts").iterdir())
    manifest = json.loads((run_dir / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"


def test_bad_id_list_is_rejected(dict_json_file: str, tmp_path: Path):
    proc = _run(
        ["--dict-json", dict_json_file, "array", "--grid", "2", "1", "--ids", "1,x"],
        tmp_path / "runs",
    )
    assert proc.returncode == 2
    assert "Non-numeric ID found" in proc.stderr


def _load_cli():
    spec = importlib.util.spec_from_file_location("generate_marker", SCRIPT)
    assert spec and spec.loader
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_mesh_merge_failure_ends_run_without_exports(
    dict_json_file: str, tmp_path: Path, monkeypatch, capsys
):
    import trimesh

    def broken_concatenate(*args, **kwargs):
        raise RuntimeError("merge exploded")

    monkeypatch.setattr(trimesh.util, "concatenate", broken_concatenate)
    cli = _load_cli()
    runs = tmp_path / "runs"
    code = cli.main([
        "--runs-dir", str(runs), "--dict-json", dict_json_file,
        "single", "--dict", "4x4_50", "--id", "0",
    ])
    assert code == 1
    assert "Status: FAILED" in capsys.readouterr().out

    run_dir = _only_run_dir(runs)
    assert not list((run_dir / "artifacts").iterdir())
    manifest = json.loads((run_dir / "manifest.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"
    assert manifest["artifacts"] == {}
    assert "merge exploded" in manifest["errors"][0]
    assert "## Errors" in (run_dir / "summary.md").read_text(encoding="utf-8")
    assert (runs / "latest").exists()


def test_array_cli_with_black_filler(dict_json_file: str, tmp_path: Path):
    runs = tmp_path / "runs"
    proc = _run(
        [
            "--dict-json", dict_json_file, "--no-dxf",
            "array", "--dict", "4x4_50", "--grid", "2", "2", "--gap", "4",
            "--dim", "20", "--gap-fill", "black",
        ],
        runs,
    )
    assert proc.returncode == 0, proc.stderr
    run_dir = _only_run_dir(runs)
    metadata = json.loads((run_dir / "artifacts" / "metadata.json").read_text(encoding="utf-8"))
    # 2 * 20 + 4 between markers, plus a 4mm frame per side
    assert metadata["block_corners"][1][0] == 26.0
