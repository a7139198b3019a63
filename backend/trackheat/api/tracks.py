"""
API routes for tracks, heatmap points and the data folder.
"""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from trackheat.api.schemas import (
    FolderInfoResponse,
    HeatmapResponse,
    HeatmapStatisticsResponse,
    SetFolderRequest,
    TrackPointResponse,
    TrackPointsResponse,
    TrackSummaryResponse,
)
from trackheat.config import DEFAULT_POLICY
from trackheat.models.track import Track, TrackSummary
from trackheat.services.heatmap import heatmap_statistics, prepare_heatmap_points
from trackheat.services.repository import get_repository
from trackheat.utils.geometry import sample_points


router = APIRouter(prefix="/tracks", tags=["tracks"])


def _summary_response(summary: TrackSummary) -> TrackSummaryResponse:
    return TrackSummaryResponse(
        id=summary.id,
        filename=summary.filename,
        point_count=summary.point_count,
        distance_km=summary.distance_km,
        start=summary.start,
        end=summary.end,
    )


def _get_track_or_404(track_id: str) -> Track:
    track = get_repository().get_track(track_id)
    if track is None:
        raise HTTPException(status_code=404, detail=f"Track not found: {track_id}")
    return track


@router.get("", response_model=list[TrackSummaryResponse])
async def list_tracks():
    """
    List all parseable tracks.

    Returns summaries sorted by start time (newest first).
    """
    return [_summary_response(s) for s in get_repository().list_tracks()]


@router.get("/{track_id}", response_model=TrackSummaryResponse)
async def get_track_summary(track_id: str):
    """Get the summary of one track."""
    _get_track_or_404(track_id)
    return _summary_response(get_repository().get_summary(track_id))


@router.get("/{track_id}/points", response_model=TrackPointsResponse)
async def get_track_points(
    track_id: str,
    simplify_max: Optional[int] = Query(default=None, ge=2, description="Simplify to at most this many points"),
):
    """
    Get the cleaned points of a track.

    With simplify_max the [lat, lon] list is reduced by Douglas-Peucker;
    the point records are always complete.
    """
    track = _get_track_or_404(track_id)
    latlon = track.latlon
    if simplify_max is not None:
        latlon = sample_points(latlon, simplify_max)

    return TrackPointsResponse(
        id=track_id,
        point_count=track.point_count,
        points=[TrackPointResponse(**p.as_record()) for p in track.points],
        latlon=latlon,
    )


# ============================================================================
# Heatmap Routes
# ============================================================================

heatmap_router = APIRouter(prefix="/heatmap", tags=["heatmap"])


@heatmap_router.get("", response_model=HeatmapResponse)
async def get_heatmap(
    days: int = Query(default=0, ge=0, description="Only points from the last N days (0 = all)"),
    max_points: int = Query(default=DEFAULT_POLICY.sampling.max_points, ge=1),
):
    """
    Get the combined heatmap point list for every indexed track.

    Tracks are sampled and interpolated independently, never bridged.
    """
    tracks = get_repository().load_all()
    points = prepare_heatmap_points(tracks, days=days, max_points=max_points)

    return HeatmapResponse(
        point_count=len(points),
        points=points,
        statistics=HeatmapStatisticsResponse(**heatmap_statistics(tracks)),
    )


# ============================================================================
# Folder Management Routes
# ============================================================================

folder_router = APIRouter(prefix="/folder", tags=["folder"])


@folder_router.get("", response_model=FolderInfoResponse)
async def get_folder_info():
    """Get information about the current data folder."""
    repo = get_repository()

    return FolderInfoResponse(
        path=str(repo.data_folder) if repo.data_folder else None,
        track_count=repo.track_count,
    )


@folder_router.post("", response_model=FolderInfoResponse)
async def set_folder(request: SetFolderRequest):
    """
    Set the data folder to scan for .fit and .gpx files.

    This will clear the current cache and re-scan.
    """
    repo = get_repository()

    path = Path(request.path)
    if not path.exists():
        raise HTTPException(status_code=400, detail=f"Folder does not exist: {request.path}")
    if not path.is_dir():
        raise HTTPException(status_code=400, detail=f"Path is not a directory: {request.path}")

    count = repo.set_data_folder(path)

    return FolderInfoResponse(
        path=str(path),
        track_count=count,
    )


@folder_router.post("/rescan", response_model=FolderInfoResponse)
async def rescan_folder():
    """Rescan the current data folder for new recordings."""
    repo = get_repository()

    if repo.data_folder is None:
        raise HTTPException(status_code=400, detail="No data folder set")

    count = repo.rescan()

    return FolderInfoResponse(
        path=str(repo.data_folder),
        track_count=count,
    )
