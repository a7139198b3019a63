"""
Format adapters and the single entry point for parsing a recording.

Adapters are selected by file suffix. The binary adapter runs the decoder
strategy chosen by select_decoder and hands its records to the assembler.
"""

import logging
from pathlib import Path
from typing import Optional, Protocol, Sequence, Union

from trackheat.config import PipelinePolicy
from trackheat.errors import HeaderInvalid, UnsupportedFormat
from trackheat.models.track import Track
from trackheat.services.assembler import build_track
from trackheat.services.fit_decoder import RecordDecoder, select_decoder
from trackheat.services.gpx_parser import build_gpx_track


logger = logging.getLogger(__name__)


class TrackAdapter(Protocol):
    """Adapter interface for track file formats."""

    name: str

    def can_parse(self, filename: str) -> bool:
        ...

    def parse(self, data: bytes, filename: str, policy: Optional[PipelinePolicy] = None) -> Track:
        ...


class FitAdapter:
    name = "fit"
    suffixes = (".fit",)

    def __init__(self, decoders: Optional[Sequence[RecordDecoder]] = None):
        self._decoders = decoders

    def can_parse(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.suffixes

    def parse(self, data: bytes, filename: str, policy: Optional[PipelinePolicy] = None) -> Track:
        decoder = select_decoder(self._decoders)
        try:
            records = decoder.decode(data)
        except HeaderInvalid as e:
            if e.filename is not None:
                raise
            raise HeaderInvalid(str(e), filename) from e
        logger.debug(f"{filename}: {decoder.name} decoder produced {len(records)} records")
        return build_track(records, filename, policy)


class GpxAdapter:
    name = "gpx"
    suffixes = (".gpx",)

    def can_parse(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.suffixes

    def parse(self, data: bytes, filename: str, policy: Optional[PipelinePolicy] = None) -> Track:
        return build_gpx_track(data, filename, policy)


ADAPTERS: list[TrackAdapter] = [
    FitAdapter(),
    GpxAdapter(),
]

SUPPORTED_SUFFIXES = tuple(s for adapter in ADAPTERS for s in adapter.suffixes)


def _select_adapter(filename: str) -> TrackAdapter:
    for adapter in ADAPTERS:
        if adapter.can_parse(filename):
            return adapter
    raise UnsupportedFormat("no adapter for this file type", filename)


def is_supported(filename: str) -> bool:
    return Path(filename).suffix.lower() in SUPPORTED_SUFFIXES


def parse_track_bytes(
    data: bytes,
    filename: str,
    policy: Optional[PipelinePolicy] = None,
) -> Track:
    """
    Parse an in-memory recording.

    Raises:
        TrackParseError subclass on any fatal-to-file problem
    """
    adapter = _select_adapter(filename)
    track = adapter.parse(data, filename, policy)
    logger.info(f"Parsed {filename}: {track.point_count} points, {track.distance_km:.2f} km")
    return track


def parse_track_file(
    path: Union[str, Path],
    policy: Optional[PipelinePolicy] = None,
) -> Track:
    """Read a recording from disk and parse it."""
    path = Path(path)
    _select_adapter(path.name)
    return parse_track_bytes(path.read_bytes(), path.name, policy)
