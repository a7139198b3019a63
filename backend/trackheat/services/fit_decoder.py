"""
Binary track container decoder.

Walks the record stream of a FIT-style container and keeps only the records
that carry a position. The container is self-describing: definition messages
declare the field layout for a 4-bit local message type, and every data
message that follows with that local type is laid out accordingly.

Decoding is best-effort. A bad header is fatal for the file; anything wrong
after the header shortens the output instead of raising.
"""

import logging
import struct
from typing import Optional, Protocol, Sequence

from trackheat.errors import DecoderUnavailable, HeaderInvalid
from trackheat.models.raw import FieldDefinition, GPSRecord, MessageDefinition


logger = logging.getLogger(__name__)


FILE_SIGNATURE = b".FIT"
VALID_HEADER_SIZES = (12, 14)

# Seconds between the Unix epoch and 1989-12-31T00:00:00Z
CONTAINER_EPOCH_OFFSET_S = 631065600

# Record header bits
COMPRESSED_TIMESTAMP_FLAG = 0x80
DEFINITION_FLAG = 0x40
LOCAL_TYPE_MASK = 0x0F

# Field numbers
FIELD_POSITION_LAT = 0
FIELD_POSITION_LONG = 1
FIELD_ALTITUDE = 5          # primary
FIELD_ALTITUDE_FALLBACK = 6
FIELD_TIMESTAMP = 253
WANTED_FIELDS = frozenset({
    FIELD_POSITION_LAT,
    FIELD_POSITION_LONG,
    FIELD_ALTITUDE,
    FIELD_ALTITUDE_FALLBACK,
    FIELD_TIMESTAMP,
})

# Base types that mark a position field as signed
BASE_TYPE_SINT16 = 132
BASE_TYPE_SINT32 = 133
BASE_TYPE_UINT32 = 134
POSITION_BASE_TYPES = (BASE_TYPE_SINT16, BASE_TYPE_SINT32, BASE_TYPE_UINT32)

# Bytes skipped when a data message references an unknown local type
UNKNOWN_MESSAGE_SKIP = 10


class RecordDecoder(Protocol):
    """Decoder strategy for the binary container."""

    name: str

    def available(self) -> bool:
        ...

    def decode(self, data: bytes) -> list[GPSRecord]:
        ...


class BinaryRecordDecoder:
    """Manual, dependency-free decoder for the binary container."""

    def decode(self, data: bytes) -> list[GPSRecord]:
        """
        Decode every position-bearing record.

        Args:
            data: Whole file contents

        Returns:
            GPSRecords in stream order

        Raises:
            HeaderInvalid: header size, length or signature is wrong
        """
        header_size, payload_size = self._parse_header(data)

        definitions: dict[int, MessageDefinition] = {}
        records: list[GPSRecord] = []
        offset = header_size
        end = len(data)
        skipped = 0
        compressed = 0

        while offset < end and (offset - header_size) < payload_size:
            record_header = data[offset]
            offset += 1
            if offset >= end:
                break

            local_type = record_header & LOCAL_TYPE_MASK
            if record_header & COMPRESSED_TIMESTAMP_FLAG:
                compressed += 1

            if record_header & DEFINITION_FLAG:
                parsed = self._parse_definition(data, offset)
                if parsed is None:
                    break
                definitions[local_type], offset = parsed
                continue

            definition = definitions.get(local_type)
            if definition is None:
                # Corrupt stream: no layout to follow, guess and move on
                offset += UNKNOWN_MESSAGE_SKIP
                skipped += 1
                continue

            if definition.has_position():
                record = self._parse_data(data, offset, definition)
                if record is not None:
                    records.append(record)
            offset += definition.record_size

        if skipped:
            logger.debug(f"Skipped {skipped} data messages with no active definition")
        logger.debug(
            f"Decoded {len(records)} position records from {end} bytes "
            f"({compressed} compressed-timestamp headers)"
        )
        return records

    def _parse_header(self, data: bytes) -> tuple[int, int]:
        if not data:
            raise HeaderInvalid("empty file")

        header_size = data[0]
        if header_size not in VALID_HEADER_SIZES:
            raise HeaderInvalid(f"invalid header size {header_size}")
        if len(data) < header_size:
            raise HeaderInvalid(f"file too small for a {header_size}-byte header ({len(data)} bytes)")

        signature = bytes(data[8:12])
        if signature != FILE_SIGNATURE:
            raise HeaderInvalid(f"invalid signature {signature!r}")

        payload_size = struct.unpack_from("<I", data, 4)[0]
        return header_size, payload_size

    def _parse_definition(
        self,
        data: bytes,
        offset: int,
    ) -> Optional[tuple[MessageDefinition, int]]:
        if offset + 5 >= len(data):
            return None

        # data[offset] is reserved
        architecture = data[offset + 1]
        endian = "<" if architecture == 0 else ">"
        global_number = struct.unpack_from(f"{endian}H", data, offset + 2)[0]
        num_fields = data[offset + 4]
        offset += 5

        fields: list[FieldDefinition] = []
        for _ in range(num_fields):
            if offset + 3 > len(data):
                break
            fields.append(FieldDefinition(
                field_number=data[offset],
                byte_size=data[offset + 1],
                base_type=data[offset + 2],
            ))
            offset += 3

        return MessageDefinition(global_number, architecture, fields), offset

    def _parse_data(
        self,
        data: bytes,
        offset: int,
        definition: MessageDefinition,
    ) -> Optional[GPSRecord]:
        values: dict[int, float] = {}
        pos = offset

        for fdef in definition.fields:
            if fdef.field_number not in WANTED_FIELDS:
                pos += fdef.byte_size
                continue
            if pos + fdef.byte_size > len(data):
                break

            value = self._read_value(data, pos, fdef, definition.is_little_endian)
            if value is not None and fdef.field_number not in values:
                values[fdef.field_number] = value
            pos += fdef.byte_size

        if FIELD_POSITION_LAT not in values or FIELD_POSITION_LONG not in values:
            return None

        timestamp_ms = None
        if FIELD_TIMESTAMP in values:
            timestamp_ms = int((CONTAINER_EPOCH_OFFSET_S + values[FIELD_TIMESTAMP]) * 1000)

        elevation = None
        altitude_raw = values.get(FIELD_ALTITUDE, values.get(FIELD_ALTITUDE_FALLBACK))
        if altitude_raw is not None:
            elevation = altitude_raw / 5 - 500

        return GPSRecord(
            raw_lat=int(values[FIELD_POSITION_LAT]),
            raw_lon=int(values[FIELD_POSITION_LONG]),
            timestamp_ms=timestamp_ms,
            elevation_m=elevation,
        )

    def _read_value(
        self,
        data: bytes,
        pos: int,
        fdef: FieldDefinition,
        little_endian: bool,
    ) -> Optional[float]:
        endian = "<" if little_endian else ">"
        size = fdef.byte_size
        is_position = fdef.field_number in (FIELD_POSITION_LAT, FIELD_POSITION_LONG)

        if size == 1:
            return data[pos]
        if size == 2:
            if is_position and fdef.base_type == BASE_TYPE_SINT16:
                return struct.unpack_from(f"{endian}h", data, pos)[0]
            return struct.unpack_from(f"{endian}H", data, pos)[0]
        if size == 4:
            if is_position:
                # sint32 and uint32 positions are both reinterpreted as signed
                return struct.unpack_from(f"{endian}i", data, pos)[0]
            return struct.unpack_from(f"{endian}I", data, pos)[0]
        if size == 8:
            if little_endian:
                low, high = struct.unpack_from("<II", data, pos)
            else:
                high, low = struct.unpack_from(">II", data, pos)
            return low + high * 2**32
        return None


class ManualFitDecoder:
    """Decoder strategy backed by BinaryRecordDecoder; always available."""

    name = "manual"

    def __init__(self):
        self._decoder = BinaryRecordDecoder()

    def available(self) -> bool:
        return True

    def decode(self, data: bytes) -> list[GPSRecord]:
        return self._decoder.decode(data)


DECODERS: list[RecordDecoder] = [
    ManualFitDecoder(),
]


def select_decoder(decoders: Optional[Sequence[RecordDecoder]] = None) -> RecordDecoder:
    """Return the first available decoder from an explicit list."""
    for decoder in (DECODERS if decoders is None else decoders):
        if decoder.available():
            return decoder
    raise DecoderUnavailable("no binary decoder is available")
