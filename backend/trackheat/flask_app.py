"""
Trackheat - Flask Backend

Alternative to FastAPI for environments where FastAPI isn't available.
Same API structure, different framework.
"""

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request

from trackheat.config import DEFAULT_POLICY, PipelinePolicy
from trackheat.models.track import TrackSummary
from trackheat.services.heatmap import heatmap_statistics, prepare_heatmap_points
from trackheat.services.repository import get_repository, init_repository
from trackheat.utils.geometry import sample_points


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


app = Flask(__name__)


APP_NAME = "Trackheat"
APP_VERSION = "0.1.0"
DEFAULT_DATA_FOLDER = Path("./data/tracks")


def _summary_dict(summary: TrackSummary) -> dict:
    return {
        "id": summary.id,
        "filename": summary.filename,
        "point_count": summary.point_count,
        "distance_km": summary.distance_km,
        "start": summary.start,
        "end": summary.end,
    }


def _int_arg(name: str, default: Optional[int], minimum: int) -> Optional[int]:
    """Query parameter as int; raises ValueError if malformed or too small."""
    raw = request.args.get(name)
    if raw is None:
        return default
    value = int(raw)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


# ============================================================================
# Health Endpoints
# ============================================================================

@app.route("/")
def root():
    """Root endpoint - basic health check."""
    return jsonify({
        "name": APP_NAME,
        "version": APP_VERSION,
        "status": "running",
    })


@app.route("/health")
def health_check():
    """Health check endpoint."""
    repo = get_repository()
    return jsonify({
        "status": "healthy",
        "data_folder": str(repo.data_folder) if repo.data_folder else None,
        "track_count": repo.track_count,
    })


# ============================================================================
# Folder Management Endpoints
# ============================================================================

@app.route("/folder", methods=["GET"])
def get_folder_info():
    """Get information about the current data folder."""
    repo = get_repository()
    return jsonify({
        "path": str(repo.data_folder) if repo.data_folder else None,
        "track_count": repo.track_count,
    })


@app.route("/folder", methods=["POST"])
def set_folder():
    """Set the data folder to scan for .fit and .gpx files."""
    data = request.get_json(silent=True)
    if not data or "path" not in data:
        return jsonify({"detail": "path is required"}), 400

    repo = get_repository()
    path = Path(data["path"])

    if not path.exists():
        return jsonify({"detail": f"Folder does not exist: {data['path']}"}), 400
    if not path.is_dir():
        return jsonify({"detail": f"Path is not a directory: {data['path']}"}), 400

    count = repo.set_data_folder(path)

    return jsonify({
        "path": str(path),
        "track_count": count,
    })


@app.route("/folder/rescan", methods=["POST"])
def rescan_folder():
    """Rescan the current data folder for new recordings."""
    repo = get_repository()

    if repo.data_folder is None:
        return jsonify({"detail": "No data folder set"}), 400

    count = repo.rescan()

    return jsonify({
        "path": str(repo.data_folder),
        "track_count": count,
    })


# ============================================================================
# Track Endpoints
# ============================================================================

@app.route("/tracks", methods=["GET"])
def list_tracks():
    """List all parseable tracks, newest first."""
    repo = get_repository()
    return jsonify([_summary_dict(s) for s in repo.list_tracks()])


@app.route("/tracks/<track_id>", methods=["GET"])
def get_track_summary(track_id: str):
    """Get the summary of one track."""
    summary = get_repository().get_summary(track_id)
    if summary is None:
        return jsonify({"detail": f"Track not found: {track_id}"}), 404
    return jsonify(_summary_dict(summary))


@app.route("/tracks/<track_id>/points", methods=["GET"])
def get_track_points(track_id: str):
    """Get the cleaned points of a track."""
    track = get_repository().get_track(track_id)
    if track is None:
        return jsonify({"detail": f"Track not found: {track_id}"}), 404

    try:
        simplify_max = _int_arg("simplify_max", None, 2)
    except ValueError as e:
        return jsonify({"detail": str(e)}), 400

    latlon = track.latlon
    if simplify_max is not None:
        latlon = sample_points(latlon, simplify_max)

    return jsonify({
        "id": track_id,
        "point_count": track.point_count,
        "points": [p.as_record() for p in track.points],
        "latlon": latlon,
    })


# ============================================================================
# Heatmap Endpoint
# ============================================================================

@app.route("/heatmap", methods=["GET"])
def get_heatmap():
    """Get the combined heatmap point list for every indexed track."""
    try:
        days = _int_arg("days", 0, 0)
        max_points = _int_arg("max_points", DEFAULT_POLICY.sampling.max_points, 1)
    except ValueError as e:
        return jsonify({"detail": str(e)}), 400

    tracks = get_repository().load_all()
    points = prepare_heatmap_points(tracks, days=days, max_points=max_points)

    return jsonify({
        "point_count": len(points),
        "points": points,
        "statistics": heatmap_statistics(tracks),
    })


# ============================================================================
# Startup
# ============================================================================

def create_app(data_folder: Optional[Path] = None) -> Flask:
    """Create and configure the Flask app."""
    if data_folder is None:
        data_folder = DEFAULT_DATA_FOLDER

    if data_folder.exists():
        init_repository(data_folder, PipelinePolicy.from_env())
        logger.info(f"Initialized repository with folder: {data_folder}")
    else:
        logger.info(f"Default data folder not found: {data_folder}")
        logger.info("Use POST /folder to set data folder")

    return app


if __name__ == "__main__":
    import sys

    # Allow specifying data folder as argument
    data_folder = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_DATA_FOLDER

    create_app(data_folder)
    app.run(host="0.0.0.0", port=8000, debug=True)
