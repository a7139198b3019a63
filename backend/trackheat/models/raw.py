"""
Raw decoder-side records (container structure, pre-unit-interpretation).

The binary decoder emits these; the assembler turns them into a Track.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union


TimestampLike = Union[int, float, datetime, str]


@dataclass(frozen=True)
class FieldDefinition:
    """One column of a data message."""

    field_number: int
    byte_size: int
    base_type: int


@dataclass
class MessageDefinition:
    """Layout of the data messages that follow for one local message type."""

    global_message_number: int
    architecture: int  # 0 = little-endian, anything else big-endian
    fields: list[FieldDefinition] = field(default_factory=list)

    @property
    def is_little_endian(self) -> bool:
        return self.architecture == 0

    @property
    def record_size(self) -> int:
        return sum(f.byte_size for f in self.fields)

    def has_position(self) -> bool:
        return any(f.field_number in (0, 1) for f in self.fields)


@dataclass
class GPSRecord:
    """A decoded record that carried both latitude and longitude fields."""

    raw_lat: int
    raw_lon: int
    timestamp_ms: Optional[TimestampLike] = None  # Unix ms from the manual decoder
    elevation_m: Optional[float] = None


@dataclass(frozen=True)
class RawCoordinatePair:
    """Unit-agnostic coordinate values straight from the decoder."""

    lat: float
    lon: float
    source_index: int
