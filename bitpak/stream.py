"""Parse and serialize the BA stream layout.

A BA stream is a 10 byte little-endian header followed by frame_count packed
frames of equal size::

    offset  field        type
    0       width        u16
    2       height       u16
    4       fps_x100     u16   frames per second times 100
    6       frame_count  u32
    10      frame 0      ceil(width*height/8) bytes, stored verbatim
    ...     diff i       frame i XOR frame i-1, for i = 1..frame_count-1
"""

import struct
from collections import namedtuple

from bitpak.errors import InvalidHeader, SizeMismatch, Truncated
from bitpak.frame import packed_len

HEADER_SIZE = 10
_HEADER = struct.Struct("<HHHI")
_LIMITS = (0xFFFF, 0xFFFF, 0xFFFF, 0xFFFFFFFF)


class StreamHeader(namedtuple("StreamHeader", [
    "width", # width of every frame, in pixels
    "height", # height of every frame, in pixels
    "fps_x100", # frames per second times 100
    "frame_count", # number of frames in the stream
])):
    __slots__ = ()

    @property
    def size(self):
        return (self.width, self.height)

    @property
    def fps(self):
        return self.fps_x100 / 100

    @property
    def packed_len(self):
        return packed_len(self.width, self.height)

    @property
    def stream_size(self):
        """Total number of bytes of a stream with this header."""
        return HEADER_SIZE + self.packed_len*self.frame_count


def _validate(header):
    for name, value, limit in zip(header._fields, header, _LIMITS):
        if not 0 < value <= limit:
            raise InvalidHeader(
                "invalid BA header: {} {} out of range".format(name, value))


def parse_header(data):
    """Parse and validate the header at the start of data."""
    if len(data) < HEADER_SIZE:
        raise Truncated(HEADER_SIZE, len(data), "BA stream header")
    header = StreamHeader(*_HEADER.unpack_from(data, 0))
    _validate(header)
    return header


def serialize_header(header):
    """Return the 10 byte representation of header."""
    header = StreamHeader(*(int(v) for v in header))
    _validate(header)
    return _HEADER.pack(*header)


class BitStream:
    """A parsed and validated BA stream.

    The stream does not copy its data; payloads are read-only views into it.

    Attributes
    ----------
    header : StreamHeader
        The stream header.
    data : memoryview
        The complete stream, header included, limited to its declared size.
    """
    def __init__(self, header, data):
        self.header = header
        self.data = data

    @property
    def frame_count(self):
        return self.header.frame_count

    def payload_offset(self, index):
        """Return the absolute byte offset of payload index."""
        index = int(index)
        if not 0 <= index < self.header.frame_count:
            raise IndexError("frame {} does not exist".format(index))
        return HEADER_SIZE + index*self.header.packed_len

    def payload(self, index):
        """Return payload index: the base frame for 0, a diff otherwise."""
        pos = self.payload_offset(index)
        return self.data[pos:pos+self.header.packed_len]


def parse_stream(data):
    """Parse and validate a complete BA stream.

    Raises Truncated, carrying the expected and actual byte counts, if data is
    shorter than the header declares. Bytes past the declared end are ignored.
    """
    data = memoryview(data).cast("B").toreadonly()
    header = parse_header(data)
    expected = header.stream_size
    if len(data) < expected:
        raise Truncated(expected, len(data))
    return BitStream(header, data[:expected])


def serialize_stream(header, payloads):
    """Return the header followed by the concatenated payloads.

    Parameters
    ----------
    header : StreamHeader
        The stream header. Its frame_count must match the number of payloads.
    payloads : iterable of bytes-like
        The base frame followed by each diff, in order.
    """
    header = StreamHeader(*header)
    chunks = [serialize_header(header)]
    for payload in payloads:
        payload = bytes(payload)
        if len(payload) != header.packed_len:
            raise SizeMismatch("payload of {} bytes does not match the "
                "{} byte frame size".format(len(payload), header.packed_len))
        chunks.append(payload)
    if len(chunks)-1 != header.frame_count:
        raise InvalidHeader("header declares {} frames but {} were given"
            .format(header.frame_count, len(chunks)-1))
    return b''.join(chunks)
