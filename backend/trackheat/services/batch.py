"""
Sequential batch parsing with running totals.

Files are processed one at a time; a failed file becomes an error entry and
never stops the batch. The async variant yields to the event loop between
files.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from trackheat.config import PipelinePolicy
from trackheat.errors import TrackParseError
from trackheat.models.track import Track, TrackResult
from trackheat.services.ingest import parse_track_bytes, parse_track_file


logger = logging.getLogger(__name__)


# A path on disk, or an in-memory (filename, bytes) buffer
BatchInput = Union[str, Path, tuple[str, bytes]]


@dataclass
class BatchProgress:
    current: int
    total: int
    filename: str
    status: str  # processing | completed | error
    points: Optional[int] = None
    error: Optional[str] = None


@dataclass
class BatchStatistics:
    total_points: int
    total_distance_km: float
    date_range: tuple[Optional[datetime], Optional[datetime]]


ProgressCallback = Callable[[BatchProgress], None]


class TrackBatch:
    """
    Parses groups of recordings and keeps process-wide totals.

    Totals are reset at the start of every batch and updated only by the
    file currently being processed.
    """

    def __init__(self, policy: Optional[PipelinePolicy] = None):
        self.policy = policy
        self.clear()

    def clear(self) -> None:
        self.total_points = 0
        self.total_distance_km = 0.0
        self.date_range: tuple[Optional[datetime], Optional[datetime]] = (None, None)

    def parse_files(
        self,
        files: Iterable[BatchInput],
        progress: Optional[ProgressCallback] = None,
    ) -> list[TrackResult]:
        files = list(files)
        self.clear()
        return [
            self._process(i, len(files), item, progress)
            for i, item in enumerate(files, start=1)
        ]

    async def parse_files_async(
        self,
        files: Iterable[BatchInput],
        progress: Optional[ProgressCallback] = None,
    ) -> list[TrackResult]:
        files = list(files)
        self.clear()
        results = []
        for i, item in enumerate(files, start=1):
            results.append(self._process(i, len(files), item, progress))
            await asyncio.sleep(0)
        return results

    def statistics(self) -> BatchStatistics:
        return BatchStatistics(
            total_points=self.total_points,
            total_distance_km=round(self.total_distance_km, 2),
            date_range=self.date_range,
        )

    def date_range_text(self) -> str:
        """'-', a single YYYY-MM-DD, or 'YYYY-MM-DD ~ YYYY-MM-DD'."""
        start, end = self.date_range
        if start is None or end is None:
            return "-"
        start_text = start.strftime("%Y-%m-%d")
        end_text = end.strftime("%Y-%m-%d")
        if start_text == end_text:
            return start_text
        return f"{start_text} ~ {end_text}"

    def _process(
        self,
        current: int,
        total: int,
        item: BatchInput,
        progress: Optional[ProgressCallback],
    ) -> TrackResult:
        filename = _input_name(item)
        _notify(progress, BatchProgress(current, total, filename, "processing"))

        try:
            track = self._parse(item)
        except (TrackParseError, OSError) as e:
            logger.error(f"Failed to parse {filename}: {e}")
            _notify(progress, BatchProgress(current, total, filename, "error", error=str(e)))
            return TrackResult(filename=filename, error=str(e))

        self._accumulate(track)
        _notify(progress, BatchProgress(current, total, filename, "completed", points=track.point_count))
        return TrackResult(filename=filename, track=track)

    def _parse(self, item: BatchInput) -> Track:
        if isinstance(item, tuple):
            filename, data = item
            return parse_track_bytes(data, filename, self.policy)
        return parse_track_file(item, self.policy)

    def _accumulate(self, track: Track) -> None:
        self.total_points += track.point_count
        self.total_distance_km += track.distance_km

        if track.date_range is None:
            return
        track_start, track_end = track.get_time_range()
        start, end = self.date_range
        self.date_range = (
            track_start if start is None else min(start, track_start),
            track_end if end is None else max(end, track_end),
        )


def _input_name(item: BatchInput) -> str:
    if isinstance(item, tuple):
        return item[0]
    return Path(item).name


def _notify(progress: Optional[ProgressCallback], event: BatchProgress) -> None:
    if progress is not None:
        progress(event)
