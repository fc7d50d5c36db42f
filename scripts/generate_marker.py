#!/usr/bin/env python3
"""
Generate printable fiducial markers (ArUco/AprilTag, arrays, ChArUco boards, QR codes).

Usage:
    python scripts/generate_marker.py --dict-json dict.json single --dict 4x4_50 --id 7
    python scripts/generate_marker.py --dict-json dict.json array --dict 4x4_50 --grid 3 2 --gap 5 --gap-fill fill
    python scripts/generate_marker.py --dict-json dict.json charuco --dict 5x5_100 --squares 5 4
    python scripts/generate_marker.py qr --content "https://example.com" --ec H --border 2

Every run writes one folder under --runs-dir holding per-colour STL files,
a coloured GLB, SVG/PNG/DXF top views and calibration metadata.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import numpy as np

from dictionaries import DICTIONARY_SPECS, DictionaryCatalog, load_dictionaries
from dxf_exporter import DXFExportConfig, cells_to_dxf
from marker_solids import (
    ArrayRequest,
    BorderSpec,
    CharucoRequest,
    CornerPolicy,
    ErrorCorrection,
    GapFill,
    GridSpec,
    Material,
    MarkerValidationError,
    QrRequest,
    SingleMarkerRequest,
    ThicknessProfile,
    assemble_meshes,
    build_pattern,
    compute_base_filename,
    compute_metadata,
    export_glb,
    export_stl,
)
from marker_solids.charuco import count_light_squares
from marker_solids.patterns import DEFAULT_QR_TIMEOUT_S
from marker_solids.tiling import parse_id_list, random_ids, sequential_ids
from raster_exporter import cells_to_png
from run_protocol import (
    copy_input_file,
    prepare_run_dir,
    update_latest_pointer,
    write_artifact,
)
from svg_exporter import cells_to_svg


def _add_thickness_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--mode", default="positive", choices=["positive", "negative", "flat"],
        help="Extrusion mode (default: positive)",
    )
    parser.add_argument("--z1", type=float, default=2.0, help="Base height in mm (default: 2.0)")
    parser.add_argument("--z2", type=float, default=1.0, help="Feature height in mm (default: 1.0)")


def _add_border_args(parser: argparse.ArgumentParser, flag: str = "--border") -> None:
    parser.add_argument(flag, type=float, default=0.0, help="Border width in mm (0 = none)")
    parser.add_argument(
        f"{flag}-corners", default="same", choices=["same", "opposite"],
        help="Border corner colour policy (default: same)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Compile fiducial marker patterns into printable solids and cut files"
    )
    parser.add_argument("--dict-json", default=None, help="Byte-packed dictionary table (dict.json)")
    parser.add_argument("--name", default=None, help="Run name (default: the export base name)")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument("--svg-margin", type=float, default=0.0, help="SVG margin in mm")
    parser.add_argument("--png-px-per-mm", type=float, default=10.0, help="PNG resolution")
    parser.add_argument("--no-dxf", action="store_true", help="Skip the DXF top view")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    single = sub.add_parser("single", help="One marker or a solid block (id -1 white, -2 black)")
    single.add_argument("--dict", dest="dictionary", default="4x4_50", help="Dictionary name")
    single.add_argument("--id", dest="marker_id", type=int, default=0, help="Marker id")
    single.add_argument("--dim", type=float, default=50.0, help="Marker size in mm")
    _add_thickness_args(single)
    _add_border_args(single)

    array = sub.add_parser("array", help="Grid of markers with optional gap fill")
    array.add_argument("--dict", dest="dictionary", default="4x4_50", help="Dictionary name")
    array.add_argument("--grid", type=int, nargs=2, default=[2, 2], metavar=("X", "Y"))
    array.add_argument("--dim", type=float, default=50.0, help="Marker size in mm")
    array.add_argument("--gap", type=float, default=5.0, help="Gap between markers in mm")
    array.add_argument("--gap-fill", default="none", choices=[g.value for g in GapFill])
    array.add_argument("--gap-corners", default="same", choices=["same", "opposite"])
    ids = array.add_mutually_exclusive_group()
    ids.add_argument("--ids", default=None, help="Comma separated ids, row by row from the top")
    ids.add_argument("--start-id", type=int, default=0, help="First id of a sequential fill")
    ids.add_argument("--random-ids", action="store_true", help="Draw unique ids at random")
    array.add_argument("--seed", type=int, default=None, help="Seed for --random-ids")
    _add_thickness_args(array)
    _add_border_args(array, flag="--marker-border")

    charuco = sub.add_parser("charuco", help="ChArUco calibration board")
    charuco.add_argument("--dict", dest="dictionary", default="4x4_50", help="Dictionary name")
    charuco.add_argument("--squares", type=int, nargs=2, default=[5, 7], metavar=("X", "Y"))
    charuco.add_argument("--square-size", type=float, default=20.0, help="Square size in mm")
    charuco.add_argument("--margin", type=float, default=2.0, help="Marker margin in mm")
    charuco.add_argument("--first-square", default="white", choices=["white", "black"])
    charuco_ids = charuco.add_mutually_exclusive_group()
    charuco_ids.add_argument("--ids", default=None, help="Comma separated ids for light squares")
    charuco_ids.add_argument("--start-id", type=int, default=0, help="First id of a sequential fill")
    _add_thickness_args(charuco)

    qr = sub.add_parser("qr", help="QR code")
    qr.add_argument("--content", required=True, help="Text or URL to encode")
    qr.add_argument("--ec", default="M", choices=["L", "M", "Q", "H"], help="Error correction level")
    qr.add_argument("--dim", type=float, default=50.0, help="Code size in mm")
    qr.add_argument("--quiet-zone", type=int, default=4, help="Quiet zone in modules")
    qr.add_argument(
        "--qr-timeout", type=float, default=DEFAULT_QR_TIMEOUT_S,
        help=f"QR encoder timeout in seconds (default: {DEFAULT_QR_TIMEOUT_S})",
    )
    _add_thickness_args(qr)
    _add_border_args(qr)

    return parser


def _thickness(args) -> ThicknessProfile:
    return ThicknessProfile(base_height=args.z1, feature_height=args.z2, mode=args.mode)


def _max_id(catalog: DictionaryCatalog, name: str) -> int:
    if name in catalog:
        return catalog[name].max_id
    if name in DICTIONARY_SPECS:
        return DICTIONARY_SPECS[name].max_id
    return 0


def build_request(args, catalog: DictionaryCatalog):
    """Turn parsed arguments into one immutable request."""
    if args.command == "single":
        return SingleMarkerRequest(
            dictionary=args.dictionary,
            marker_id=args.marker_id,
            dim=args.dim,
            thickness=_thickness(args),
            border=BorderSpec(args.border, CornerPolicy(args.border_corners)),
        )

    if args.command == "array":
        count = args.grid[0] * args.grid[1]
        max_id = _max_id(catalog, args.dictionary)
        if args.ids is not None:
            marker_ids = parse_id_list(args.ids)
        elif args.random_ids:
            marker_ids = random_ids(count, max_id, np.random.default_rng(args.seed))
        else:
            marker_ids = sequential_ids(args.start_id, count, max_id)
        return ArrayRequest(
            dictionary=args.dictionary,
            grid=GridSpec(args.grid[0], args.grid[1], gap=args.gap, marker_ids=tuple(marker_ids)),
            dim=args.dim,
            thickness=_thickness(args),
            gap_fill=GapFill(args.gap_fill),
            gap_corner_policy=CornerPolicy(args.gap_corners),
            marker_border=BorderSpec(args.marker_border, CornerPolicy(args.marker_border_corners)),
        )

    if args.command == "charuco":
        first = Material(args.first_square)
        if args.ids is not None:
            marker_ids = parse_id_list(args.ids)
        else:
            count = count_light_squares(args.squares[0], args.squares[1], first)
            marker_ids = sequential_ids(args.start_id, count, _max_id(catalog, args.dictionary))
        return CharucoRequest(
            dictionary=args.dictionary,
            squares_x=args.squares[0],
            squares_y=args.squares[1],
            square_size=args.square_size,
            marker_margin=args.margin,
            marker_ids=tuple(marker_ids),
            thickness=_thickness(args),
            first_square=first,
        )

    return QrRequest(
        content=args.content,
        error_correction=ErrorCorrection(args.ec),
        dim=args.dim,
        thickness=_thickness(args),
        border=BorderSpec(args.border, CornerPolicy(args.border_corners)),
        quiet_zone=args.quiet_zone,
    )


def _write_exports(args, run_paths, base_name: str, request, result, assembly) -> dict:
    """Write every export of one successful build; returns name -> path."""
    artifacts = {}
    for material in assembly.materials():
        path = run_paths.artifact(base_name, f"-{material.value}.stl")
        write_artifact(path, export_stl(assembly, material))
        artifacts[f"stl_{material.value}"] = str(path)

    glb_path = run_paths.artifact(base_name, ".glb")
    write_artifact(glb_path, export_glb(assembly))
    artifacts["glb"] = str(glb_path)

    artifacts["svg"] = cells_to_svg(
        result.cells, str(run_paths.artifact(base_name, ".svg")), margin=args.svg_margin,
    )
    artifacts["png"] = cells_to_png(
        result.cells, str(run_paths.artifact(base_name, ".png")), px_per_mm=args.png_px_per_mm,
    )
    if not args.no_dxf:
        artifacts["dxf"] = cells_to_dxf(
            result.cells,
            str(run_paths.artifact(base_name, ".dxf")),
            DXFExportConfig(label=base_name),
        )

    write_artifact(run_paths.metadata_path, compute_metadata(request).to_dict())
    artifacts["metadata"] = str(run_paths.metadata_path)
    return artifacts


def _build_summary(*, run_id: str, elapsed_s: float, result, errors, artifacts) -> str:
    lines = [
        f"# Run {run_id}",
        "",
        f"- Status: **{'FAILED' if errors else 'OK'}**",
        f"- Duration: {elapsed_s:.2f}s",
        f"- Mode: {result.mode}",
    ]
    if not errors:
        lines += [
            f"- Summary: {result.summary}",
            f"- Cells: {len(result.cells)}",
            f"- Height: {result.total_height:.2f}mm",
            "",
            "## Artifacts",
        ]
        lines += [f"- {key}: `{Path(path).name}`" for key, path in artifacts.items()]
    else:
        lines += ["", "## Errors"] + [f"- {e}" for e in errors]
    lines.append("")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    started = time.perf_counter()
    catalog: DictionaryCatalog = {}
    if args.dict_json:
        catalog = load_dictionaries(args.dict_json)

    try:
        request = build_request(args, catalog)
    except MarkerValidationError as e:
        print(e.errors[0], file=sys.stderr)
        return 2

    base_name = compute_base_filename(request)
    run_paths = prepare_run_dir(args.runs_dir, args.name or base_name)
    if args.dict_json:
        copy_input_file(args.dict_json, run_paths.input_dir)

    qr_timeout = getattr(args, "qr_timeout", DEFAULT_QR_TIMEOUT_S)
    result = build_pattern(request, catalog, qr_timeout=qr_timeout)
    errors = list(result.errors)

    artifacts = {}
    if result.export_enabled:
        assembly = assemble_meshes(result.cells)
        if assembly.ok:
            artifacts = _write_exports(args, run_paths, base_name, request, result, assembly)
        else:
            # Merge failure: nothing is exported for this run
            errors = [f"Error: {e}" for e in assembly.errors] or ["Error: No mesh to export."]

    elapsed = time.perf_counter() - started
    write_artifact(
        run_paths.summary_path,
        _build_summary(
            run_id=run_paths.run_id, elapsed_s=elapsed, result=result, errors=errors, artifacts=artifacts,
        ),
    )
    write_artifact(run_paths.manifest_path, {
        "run_id": run_paths.run_id,
        "command": args.command,
        "base_name": base_name,
        "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "status": "failed" if errors else "ok",
        "errors": errors,
        "summary": result.summary,
        "cell_count": len(result.cells),
        "total_height_mm": result.total_height,
        "elapsed_s": round(elapsed, 3),
        "artifacts": artifacts,
    })
    update_latest_pointer(args.runs_dir, run_paths.run_dir)

    print(f"Run ID: {run_paths.run_id}")
    print(f"Run dir: {run_paths.run_dir}")
    if errors:
        print("Status: FAILED")
        print(errors[0])
        return 1

    print("Status: OK")
    print(f"Summary: {result.summary}")
    print(f"Cells: {len(result.cells)}")
    for key, path in artifacts.items():
        print(f"{key}: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
