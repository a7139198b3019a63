"""
Track Repository - indexes a folder of recordings and caches parsed tracks.

Files are parsed lazily on first access. A file that fails to parse is
logged and left out of listings; it is retried after a rescan.
"""

import hashlib
import logging
from pathlib import Path
from typing import Optional

from trackheat.config import PipelinePolicy
from trackheat.errors import TrackParseError
from trackheat.models.track import Track, TrackSummary
from trackheat.services.ingest import is_supported, parse_track_file


logger = logging.getLogger(__name__)


class TrackRepository:
    """
    Repository for track recordings.

    Reads .fit and .gpx files from a folder and caches parsed tracks in
    memory.
    """

    def __init__(
        self,
        data_folder: Optional[Path] = None,
        policy: Optional[PipelinePolicy] = None,
    ):
        """
        Initialize the repository.

        Args:
            data_folder: Folder containing recordings. If None, must be set later.
            policy: Pipeline policy passed to every parse
        """
        self._data_folder: Optional[Path] = data_folder
        self._policy = policy
        self._cache: dict[str, Track] = {}
        self._failed: dict[str, str] = {}  # id -> error message
        self._index: dict[str, Path] = {}  # id -> filepath mapping

        if data_folder is not None:
            self.scan_folder(data_folder)

    @property
    def data_folder(self) -> Optional[Path]:
        return self._data_folder

    @property
    def track_count(self) -> int:
        return len(self._index)

    def set_data_folder(self, folder: Path) -> int:
        """
        Switch to a new folder and index it.

        Returns:
            Number of recordings found
        """
        self._data_folder = folder
        return self.rescan()

    def rescan(self) -> int:
        """Drop cached state and index the current folder again."""
        self._cache.clear()
        self._failed.clear()
        self._index.clear()
        if self._data_folder is None:
            return 0
        return self.scan_folder(self._data_folder)

    def scan_folder(self, folder: Path) -> int:
        """
        Scan a folder for recordings and add them to the index.

        Returns:
            Number of recordings found
        """
        if not folder.exists():
            logger.warning(f"Data folder does not exist: {folder}")
            return 0

        count = 0
        for path in sorted(folder.iterdir()):
            if path.is_file() and is_supported(path.name):
                track_id = self._filepath_to_id(path)
                self._index[track_id] = path
                count += 1
                logger.debug(f"Indexed track: {track_id} -> {path.name}")

        logger.info(f"Scanned {count} track files in {folder}")
        return count

    def list_tracks(self) -> list[TrackSummary]:
        """
        Summaries of every track that parses, newest first.

        Tracks without timestamps sort last, by filename.
        """
        summaries = []
        for track_id in self._index:
            track = self.get_track(track_id)
            if track is not None:
                summaries.append(TrackSummary.from_track(track_id, track))

        dated = sorted(
            (s for s in summaries if s.start),
            key=lambda s: (s.start, s.filename),
            reverse=True,
        )
        undated = sorted((s for s in summaries if not s.start), key=lambda s: s.filename)
        return dated + undated

    def list_ids(self) -> list[str]:
        return list(self._index)

    def get_track(self, track_id: str) -> Optional[Track]:
        """
        Get a track by ID.

        Returns:
            Track if found and parseable, None otherwise
        """
        if track_id in self._cache:
            return self._cache[track_id]
        if track_id not in self._index or track_id in self._failed:
            return None

        filepath = self._index[track_id]
        try:
            track = parse_track_file(filepath, self._policy)
        except (TrackParseError, OSError) as e:
            logger.error(f"Failed to load track {filepath.name}: {e}")
            self._failed[track_id] = str(e)
            return None

        self._cache[track_id] = track
        logger.debug(f"Loaded and cached track: {track_id}")
        return track

    def get_summary(self, track_id: str) -> Optional[TrackSummary]:
        track = self.get_track(track_id)
        if track is None:
            return None
        return TrackSummary.from_track(track_id, track)

    def load_all(self) -> list[Track]:
        """Every parseable track in index order."""
        tracks = []
        for track_id in self._index:
            track = self.get_track(track_id)
            if track is not None:
                tracks.append(track)
        return tracks

    def failures(self) -> dict[str, str]:
        """Filename -> error message for files that failed to parse."""
        return {self._index[i].name: msg for i, msg in self._failed.items()}

    def clear_cache(self) -> None:
        """Clear the in-memory cache."""
        self._cache.clear()
        self._failed.clear()
        logger.info("Track cache cleared")

    def _filepath_to_id(self, filepath: Path) -> str:
        """Stable ID from filename + size + mtime."""
        stat = filepath.stat()
        id_string = f"{filepath.name}_{stat.st_size}_{stat.st_mtime}"
        return hashlib.sha256(id_string.encode()).hexdigest()[:16]


# Global repository instance (set up by app initialization)
_repository: Optional[TrackRepository] = None


def get_repository() -> TrackRepository:
    """Get the global repository instance."""
    global _repository
    if _repository is None:
        _repository = TrackRepository()
    return _repository


def init_repository(data_folder: Path, policy: Optional[PipelinePolicy] = None) -> TrackRepository:
    """Initialize the global repository with a data folder."""
    global _repository
    _repository = TrackRepository(data_folder, policy)
    return _repository
