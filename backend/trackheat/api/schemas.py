"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Optional

from pydantic import BaseModel


# ============================================================================
# Track Schemas
# ============================================================================

class TrackSummaryResponse(BaseModel):
    """Summary of a parsed track for listing."""
    id: str
    filename: str
    point_count: int
    distance_km: float
    start: Optional[str] = None
    end: Optional[str] = None


class TrackPointResponse(BaseModel):
    """Single converted point."""
    lat: float
    lon: float
    timestamp_ms: Optional[int] = None
    elevation_m: Optional[float] = None


class TrackPointsResponse(BaseModel):
    """Points of one track, as records and as [lat, lon] pairs."""
    id: str
    point_count: int
    points: list[TrackPointResponse]
    latlon: list[list[float]]


# ============================================================================
# Heatmap Schemas
# ============================================================================

class HeatmapStatisticsResponse(BaseModel):
    """Totals over the tracks feeding the heatmap."""
    track_count: int
    total_points: int
    total_distance_km: float
    start: Optional[str] = None
    end: Optional[str] = None


class HeatmapResponse(BaseModel):
    """Flat point list for the heatmap renderer."""
    point_count: int
    points: list[list[float]]
    statistics: HeatmapStatisticsResponse


# ============================================================================
# Folder Management Schemas
# ============================================================================

class SetFolderRequest(BaseModel):
    """Request to set the data folder."""
    path: str


class FolderInfoResponse(BaseModel):
    """Information about the current data folder."""
    path: Optional[str]
    track_count: int


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None
