#!/usr/bin/env python3
"""
Compare FIT files against same-named GPX exports.

Usage:
    python compare_tracks.py FIT_DIR GPX_DIR [--threshold METERS] [--out PREFIX]

Writes PREFIX.json and PREFIX.txt (default: ./fit-gpx-comparison-report).
Exits non-zero when no pairs were found.
"""

import argparse
import logging
import sys
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))


def main():
    parser = argparse.ArgumentParser(description="FIT vs GPX coordinate comparison")
    parser.add_argument("fit_dir", help="Folder containing .fit files")
    parser.add_argument("gpx_dir", help="Folder containing .gpx files")
    parser.add_argument(
        "--threshold", "-t",
        type=float,
        default=100.0,
        help="Distance in meters above which a pair is an error (default: 100)"
    )
    parser.add_argument(
        "--out", "-o",
        default="./fit-gpx-comparison-report",
        help="Report path prefix (default: ./fit-gpx-comparison-report)"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    from trackheat.services.comparison import compare_directories, write_report

    fit_dir = Path(args.fit_dir)
    gpx_dir = Path(args.gpx_dir)
    for folder in (fit_dir, gpx_dir):
        if not folder.is_dir():
            print(f"Folder does not exist: {folder}")
            sys.exit(1)

    df = compare_directories(fit_dir, gpx_dir, threshold_m=args.threshold)
    if df.empty:
        print("No matching FIT/GPX pairs found")
        sys.exit(1)

    prefix = Path(args.out)
    summary = write_report(
        df,
        prefix.with_suffix(".json"),
        prefix.with_suffix(".txt"),
        threshold_m=args.threshold,
    )

    print(f"\nPairs: {summary['total']}, errors: {summary['errors']}, "
          f"success rate: {summary['success_rate']:.2f}%")
    for label, count in summary["distance_buckets"].items():
        print(f"  {label}: {count}")


if __name__ == "__main__":
    main()
