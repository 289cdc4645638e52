"""Store named streams in memory or in Bitpak container files.

A container maps stream names to raw bytes. Media containers hold a "BA" stream
with the packed video and optionally an "AU" stream with audio, which is passed
through untouched. Every container has the same two methods::

    read_stream(name) -> bytes, raising StreamNotFound if there is none
    write_stream(name, data)
"""

import struct
from collections import namedtuple

from bitpak.errors import InvalidHeader, StreamNotFound, Truncated
from bitpak.stream import parse_stream

VIDEO_STREAM = "BA"
AUDIO_STREAM = "AU"

StreamRecord = namedtuple("StreamRecord", [
    "name", # name of the stream
    "data_size", # size, in bytes, of the stream data
    "data_pos", # absolute position, in bytes, of the data in the file
])

_FILE_HEADER_SIZE = 16
_RECORD_HEADER = struct.Struct("<HI")


class MemoryContainer:
    """A container holding its streams in a dict."""
    def __init__(self, streams=None):
        self._streams = {}
        if streams is not None:
            for name, data in streams.items():
                self.write_stream(name, data)

    @property
    def names(self):
        return list(self._streams)

    def __contains__(self, name):
        return name in self._streams

    def read_stream(self, name):
        try:
            return self._streams[name]
        except KeyError:
            raise StreamNotFound(name) from None

    def write_stream(self, name, data):
        self._streams[str(name)] = bytes(data)


class BitpakFileReader:
    """Read named streams from a Bitpak container file.

    The stream table is read when the file is opened; stream data is only read
    when requested.

    Attributes
    ----------
    version : int
        The file format version.
    names : list of str
        Names of the streams in the file, in the order they were written.
    file_size : int
        Number of bytes of the file covered by the header and stream records.
    """
    def __init__(self, fname):
        """
        Parameters
        ----------
        fname : str or pathlib.Path object
            Path to the Bitpak file on disk.
        """
        self._opened = False
        # open the file and verify the header
        self._f = f = open(fname, "rb")
        try:
            header = f.read(_FILE_HEADER_SIZE)
            if len(header) < _FILE_HEADER_SIZE:
                raise Truncated(_FILE_HEADER_SIZE, len(header),
                    "bitpak file header")
            if header[:6] != b'Bitpak':
                raise InvalidHeader("not a bitpak file")
            version, stream_count, _ = struct.unpack("<HII", header[6:])
            if version != 1:
                raise InvalidHeader(f"unknown file version {version}")
            self.version = version

            self.file_size = _FILE_HEADER_SIZE
            self._records = {}
            for _ in range(stream_count):
                record = self._read_record()
                self._records[record.name] = record
        except BaseException:
            f.close()
            raise
        self._opened = True

    def _read_record(self):
        # read the record header at the end of the last record and make sure
        # all of its data is present
        self._f.seek(self.file_size)
        header = self._f.read(_RECORD_HEADER.size)
        if len(header) < _RECORD_HEADER.size:
            raise Truncated(_RECORD_HEADER.size, len(header),
                "bitpak stream record")
        name_size, data_size = _RECORD_HEADER.unpack(header)
        name = self._f.read(name_size)
        if len(name) < name_size:
            raise Truncated(name_size, len(name), "bitpak stream name")
        try:
            name = name.decode("utf-8")
        except UnicodeDecodeError:
            raise InvalidHeader(
                f"stream name {name!r} is not valid UTF-8") from None

        data_pos = self.file_size + _RECORD_HEADER.size + name_size
        end = self._f.seek(0, 2)
        if end < data_pos + data_size:
            raise Truncated(data_size, max(end - data_pos, 0),
                f"bitpak stream {name!r}")
        self.file_size = data_pos + data_size
        return StreamRecord(name, data_size, data_pos)

    @property
    def names(self):
        return list(self._records)

    def __contains__(self, name):
        return name in self._records

    def read_stream(self, name):
        """Read and return the data of the named stream.

        Raises StreamNotFound if the file has no stream with that name.
        """
        if not self._opened:
            raise ValueError("bitpak file is closed")
        record = self._records.get(name)
        if record is None:
            raise StreamNotFound(name)
        self._f.seek(record.data_pos)
        return self._f.read(record.data_size)

    def close(self):
        """Close the file."""
        if not self._opened: return
        self._opened = False
        self._f.close()

    def __del__(self):
        self.close()


class BitpakFileWriter:
    """Write named streams into a Bitpak container file.

    Attributes
    ----------
    names : list of str
        Names of the streams written so far.
    file_size : int
        Current size of the output file, in bytes.
    """
    def __init__(self, fname):
        """
        Parameters
        ----------
        fname : str or pathlib.Path object
            Path to the Bitpak file on disk. It is created if it does not exist,
            or truncated if it does.
        """
        self._opened = False
        self._f = f = open(fname, "wb")
        # stream count is patched in when the file is closed
        f.write(b'Bitpak\x01\x00')
        f.write(struct.pack("<II", 0, 0))
        self.file_size = _FILE_HEADER_SIZE
        self._names = []
        self._opened = True

    @property
    def names(self):
        return list(self._names)

    def write_stream(self, name, data):
        """Write data to the file as a stream with the given name.

        Stream names must be unique within a file.
        """
        if not self._opened:
            raise ValueError("bitpak file is closed")
        name = str(name)
        if name in self._names:
            raise ValueError(f"stream {name!r} already written")
        encoded = name.encode("utf-8")
        data = bytes(data)
        if len(encoded) > 0xFFFF or len(data) > 0xFFFFFFFF:
            raise ValueError(f"stream {name!r} is too large")

        self._f.write(_RECORD_HEADER.pack(len(encoded), len(data)))
        self._f.write(encoded)
        self._f.write(data)
        self.file_size += _RECORD_HEADER.size + len(encoded) + len(data)
        self._names.append(name)

    def close(self):
        """Close the file.

        This must be called before the writer is destroyed, as streams written
        to a file that was never closed are not visible to readers.
        """
        if not self._opened: return
        self._opened = False
        self._f.seek(8)
        self._f.write(struct.pack("<I", len(self._names)))
        self._f.close()

    def __del__(self):
        self.close()


def save_media(container, video, audio=None):
    """Store a BA stream, and optionally audio, in the container.

    The video stream is validated before anything is written.
    """
    parse_stream(video)
    container.write_stream(VIDEO_STREAM, video)
    if audio is not None:
        container.write_stream(AUDIO_STREAM, audio)


def load_media(container):
    """Load the media streams from the container.

    Returns a tuple of the parsed BitStream and the audio bytes, or None if the
    container has no audio. Raises StreamNotFound if there is no video stream.
    """
    stream = parse_stream(container.read_stream(VIDEO_STREAM))
    try:
        audio = container.read_stream(AUDIO_STREAM)
    except StreamNotFound:
        audio = None
    return stream, audio
