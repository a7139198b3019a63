#!/usr/bin/env python3
"""
Start the Trackheat API under uvicorn.

    python run_server.py [data_folder] [--port PORT] [--host HOST] [--debug]

The data folder is handed to the app through TRACKHEAT_DATA_FOLDER; when it
does not exist yet the server still starts and POST /folder can set one.
"""

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent))

from trackheat.main import APP_NAME, DATA_FOLDER_ENV, DEFAULT_DATA_FOLDER, app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=f"{APP_NAME} server")
    parser.add_argument(
        "data_folder",
        nargs="?",
        type=Path,
        default=DEFAULT_DATA_FOLDER,
        help=f"folder of .fit/.gpx recordings (default: {DEFAULT_DATA_FOLDER})",
    )
    parser.add_argument("--port", "-p", type=int, default=8000)
    parser.add_argument("--host", "-H", default="127.0.0.1", help="use 0.0.0.0 to listen on all interfaces")
    parser.add_argument("--debug", "-d", action="store_true", help="auto-reload on code changes")
    return parser


def route_table() -> list[str]:
    """One "METHOD /path" line per API route, read from the app itself."""
    lines = []
    for route in app.routes:
        methods = sorted(getattr(route, "methods", None) or ())
        for method in methods:
            if method in ("HEAD", "OPTIONS"):
                continue
            lines.append(f"{method:<5}{route.path}")
    return lines


def main(argv=None):
    args = build_parser().parse_args(argv)
    data_folder = args.data_folder

    print(f"{APP_NAME} on http://{args.host}:{args.port}")
    if data_folder.exists():
        os.environ[DATA_FOLDER_ENV] = str(data_folder)
        print(f"Data folder: {data_folder.absolute()}")
    else:
        print(f"Data folder {data_folder} not found; set one with POST /folder")

    for line in route_table():
        print(f"  {line}")

    import uvicorn

    uvicorn.run(
        "trackheat.main:app",
        host=args.host,
        port=args.port,
        reload=args.debug,
        log_level="info",
    )


if __name__ == "__main__":
    main()
