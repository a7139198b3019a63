"""
FIT vs GPX diagnostic comparison.

Many devices export the same activity in both formats. GPX coordinates are
literal degrees, so they make a reference for catching binary misdecodes:
pair files by stem, compare first points, and report the offsets.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd

from trackheat.errors import TrackParseError
from trackheat.models.track import Track
from trackheat.services.ingest import parse_track_file
from trackheat.utils.geo import haversine_km, haversine_km_array


logger = logging.getLogger(__name__)


DISTANCE_THRESHOLD_M = 100.0
CLOSEST_POINT_SEARCH_M = 1_000_000.0  # beyond this, search every FIT point

# Region where sign/unit misdecodes of typical tracks tend to land
MISDECODE_REGION = {
    "lat_min": -35.0,
    "lat_max": 35.0,
    "lon_min": -20.0,
    "lon_max": 55.0,
}

DISTANCE_BINS = [0, 100, 500, 1000, 5000, 10000, np.inf]
DISTANCE_LABELS = ["0-100m", "100-500m", "500-1000m", "1-5km", "5-10km", "10km+"]

COLUMNS = [
    "name",
    "fit_path",
    "gpx_path",
    "fit_lat",
    "fit_lon",
    "gpx_lat",
    "gpx_lon",
    "distance_m",
    "in_misdecode_region",
    "is_error",
    "error",
]


def in_misdecode_region(lat: float, lon: float) -> bool:
    r = MISDECODE_REGION
    return r["lat_min"] <= lat <= r["lat_max"] and r["lon_min"] <= lon <= r["lon_max"]


def find_file_pairs(fit_dir: Path, gpx_dir: Path) -> list[tuple[str, Path, Path]]:
    """(stem, fit_path, gpx_path) for every FIT file with a same-stem GPX file."""
    gpx_by_stem = {
        p.stem: p for p in sorted(gpx_dir.iterdir())
        if p.is_file() and p.suffix.lower() == ".gpx"
    }

    pairs = []
    for fit_path in sorted(fit_dir.iterdir()):
        if not fit_path.is_file() or fit_path.suffix.lower() != ".fit":
            continue
        gpx_path = gpx_by_stem.get(fit_path.stem)
        if gpx_path is None:
            logger.warning(f"No matching GPX file for {fit_path.name}")
            continue
        pairs.append((fit_path.stem, fit_path, gpx_path))
    return pairs


def compare_pair(
    name: str,
    fit_path: Path,
    gpx_path: Path,
    threshold_m: float = DISTANCE_THRESHOLD_M,
) -> dict:
    """One report row for a FIT/GPX pair."""
    row = {col: None for col in COLUMNS}
    row.update(name=name, fit_path=str(fit_path), gpx_path=str(gpx_path),
               in_misdecode_region=False, is_error=True)

    try:
        gpx_track = parse_track_file(gpx_path)
    except (TrackParseError, OSError) as e:
        row["error"] = f"GPX parse failed: {e}"
        return row
    try:
        fit_track = parse_track_file(fit_path)
    except (TrackParseError, OSError) as e:
        row["error"] = f"FIT parse failed: {e}"
        return row

    gpx_point = gpx_track.points[0]
    fit_lat, fit_lon, distance_m = _closest_fit_point(fit_track, gpx_point.lat, gpx_point.lon)

    region = in_misdecode_region(fit_lat, fit_lon)
    row.update(
        fit_lat=fit_lat,
        fit_lon=fit_lon,
        gpx_lat=gpx_point.lat,
        gpx_lon=gpx_point.lon,
        distance_m=distance_m,
        in_misdecode_region=region,
        is_error=distance_m > threshold_m or region,
    )
    return row


def compare_directories(
    fit_dir: Union[str, Path],
    gpx_dir: Union[str, Path],
    threshold_m: float = DISTANCE_THRESHOLD_M,
) -> pd.DataFrame:
    """Compare every same-stem FIT/GPX pair; one DataFrame row per pair."""
    fit_dir = Path(fit_dir)
    gpx_dir = Path(gpx_dir)
    pairs = find_file_pairs(fit_dir, gpx_dir)
    logger.info(f"Found {len(pairs)} FIT/GPX pairs")

    rows = []
    for i, (name, fit_path, gpx_path) in enumerate(pairs, start=1):
        row = compare_pair(name, fit_path, gpx_path, threshold_m)
        if row["is_error"]:
            logger.warning(
                f"[{i}/{len(pairs)}] {name}: "
                f"{row['error'] or _describe_offset(row)}"
            )
        else:
            logger.info(f"[{i}/{len(pairs)}] {name}: {row['distance_m']:.2f} m")
        rows.append(row)

    return pd.DataFrame(rows, columns=COLUMNS)


def summarize_comparison(
    df: pd.DataFrame,
    threshold_m: float = DISTANCE_THRESHOLD_M,
) -> dict:
    """Totals, success rate and distance buckets."""
    total = len(df)
    errors = int(df["is_error"].sum()) if total else 0
    distances = pd.to_numeric(df["distance_m"], errors="coerce").dropna()

    buckets = pd.cut(distances, bins=DISTANCE_BINS, labels=DISTANCE_LABELS, right=False)
    counts = buckets.value_counts().reindex(DISTANCE_LABELS, fill_value=0)

    return {
        "total": total,
        "errors": errors,
        "region_errors": int(df["in_misdecode_region"].sum()) if total else 0,
        "distance_errors": int((distances > threshold_m).sum()),
        "parse_errors": int(df["error"].notna().sum()) if total else 0,
        "success_rate": round((total - errors) / total * 100, 2) if total else 0.0,
        "distance_buckets": {label: int(counts[label]) for label in DISTANCE_LABELS},
    }


def write_report(
    df: pd.DataFrame,
    json_path: Union[str, Path],
    txt_path: Optional[Union[str, Path]] = None,
    threshold_m: float = DISTANCE_THRESHOLD_M,
) -> dict:
    """Write the JSON (and optional text) report; returns the summary."""
    summary = summarize_comparison(df, threshold_m)
    records = json.loads(df.to_json(orient="records"))
    report = {
        "summary": summary,
        "error_files": [r for r in records if r["is_error"]],
        "all_results": records,
    }
    Path(json_path).write_text(json.dumps(report, indent=2), encoding="utf-8")

    if txt_path is not None:
        Path(txt_path).write_text(_format_text_report(summary, report["error_files"], threshold_m), encoding="utf-8")

    logger.info(f"Report written to {json_path}")
    return summary


def _closest_fit_point(track: Track, lat: float, lon: float) -> tuple[float, float, float]:
    first = track.points[0]
    distance_m = haversine_km(lat, lon, first.lat, first.lon) * 1000
    if distance_m <= CLOSEST_POINT_SEARCH_M:
        return first.lat, first.lon, distance_m

    arr = track.to_array()
    distances = haversine_km_array(lat, lon, arr[:, 0], arr[:, 1]) * 1000
    best = int(np.argmin(distances))
    logger.info(
        f"{track.filename}: first point {distance_m / 1000:.2f} km off, "
        f"closest point {distances[best] / 1000:.2f} km"
    )
    return float(arr[best, 0]), float(arr[best, 1]), float(distances[best])


def _describe_offset(row: dict) -> str:
    return f"distance={row['distance_m']:.2f} m, misdecode region={row['in_misdecode_region']}"


def _format_text_report(summary: dict, error_files: list[dict], threshold_m: float) -> str:
    lines = [
        "FIT vs GPX comparison report",
        "=" * 50,
        "",
        f"Total pairs: {summary['total']}",
        f"Errors: {summary['errors']}",
        f"   - in misdecode region: {summary['region_errors']}",
        f"   - distance over {threshold_m:g} m: {summary['distance_errors']}",
        f"   - parse errors: {summary['parse_errors']}",
        f"Success rate: {summary['success_rate']:.2f}%",
        "",
        "Distance distribution:",
    ]
    for label, count in summary["distance_buckets"].items():
        lines.append(f"  {label}: {count} files")
    lines.append("")

    if error_files:
        lines.append("Files with errors:")
        lines.append("-" * 50)
        for i, r in enumerate(error_files, start=1):
            lines.append(f"{i}. {r['name']}")
            if r["error"]:
                lines.append(f"   Error: {r['error']}")
            else:
                lines.append(f"   FIT: ({r['fit_lat']:.6f}, {r['fit_lon']:.6f})")
                lines.append(f"   GPX: ({r['gpx_lat']:.6f}, {r['gpx_lon']:.6f})")
                lines.append(f"   Distance: {r['distance_m']:.2f} m")
                lines.append(f"   In misdecode region: {'yes' if r['in_misdecode_region'] else 'no'}")
            lines.append("")

    return "\n".join(lines) + "\n"
