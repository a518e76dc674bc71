# core/codec.py
"""
Wire format for a Record.

    [id: 4 bytes, big-endian][text: UTF-8, no length, no terminator]

The datagram boundary delimits the text. A frame is never larger than
508 bytes, the largest UDP payload every IPv4 host must accept without
fragmenting.
"""

import struct

from udprecord.core.errors import FrameTooLong, FrameTooShort, InvalidUtf8, PayloadTooLarge
from udprecord.core.record import Record

ID_FORMAT = "!I"
ID_SIZE = struct.calcsize(ID_FORMAT)
MAX_FRAME_SIZE = 508
MAX_TEXT_SIZE = MAX_FRAME_SIZE - ID_SIZE
ENCODING = "utf-8"


def encode(record: Record) -> bytes:
    """
    Serialize a record into one frame.

    Raises PayloadTooLarge instead of truncating.
    """
    payload = record.text.encode(ENCODING)
    size = ID_SIZE + len(payload)
    if size > MAX_FRAME_SIZE:
        raise PayloadTooLarge(size, MAX_FRAME_SIZE)
    return struct.pack(ID_FORMAT, record.id) + payload


def decode(frame: bytes) -> Record:
    """
    Rebuild a record from a received frame.

    Raises FrameTooShort, FrameTooLong or InvalidUtf8. Invalid text is
    rejected, never replaced.
    """
    length = len(frame)
    if length < ID_SIZE:
        raise FrameTooShort(f"Frame has {length} bytes, need at least {ID_SIZE}", length)
    if length > MAX_FRAME_SIZE:
        raise FrameTooLong(f"Frame has {length} bytes, limit is {MAX_FRAME_SIZE}", length)

    (record_id,) = struct.unpack_from(ID_FORMAT, frame)
    try:
        text = bytes(frame[ID_SIZE:]).decode(ENCODING)
    except UnicodeDecodeError as e:
        raise InvalidUtf8(f"Text is not valid UTF-8: {e.reason} at byte {e.start + ID_SIZE}", length) from e

    return Record(id=record_id, text=text)


def fit_text(text: str, limit: int = MAX_TEXT_SIZE) -> str:
    """
    Shorten text so its UTF-8 form is at most `limit` bytes.

    The cut moves back to the nearest code point boundary, so the result
    is always valid UTF-8.
    """
    if limit < 0:
        raise ValueError("limit must be >= 0")
    data = text.encode(ENCODING)
    if len(data) <= limit:
        return text

    end = limit
    # 0b10xxxxxx bytes continue a sequence started before them
    while end > 0 and (data[end] & 0xC0) == 0x80:
        end -= 1
    return data[:end].decode(ENCODING)
