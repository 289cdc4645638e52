"""Pack and play monochrome video as bitpak streams.

bitpak stores a monochrome video as a stream of 1 bit per pixel frames. The
first frame is stored as is and every later frame as the XOR of itself and the
frame before it. Frames are rebuilt by folding the diffs in one at a time, so
playback never has to hold more than one frame in memory.

The packed video ("BA") and its audio ("AU") are stored as named streams in a
container. Playback is forward only and is paced by the audio position while
audio is playing, or by a wall clock otherwise.
"""

__version__ = "0.1.0"

from bitpak.errors import (BitpakError, DimensionMismatch, OutOfBounds,
    SizeMismatch, InvalidHeader, Truncated, StreamNotFound)
from bitpak.frame import BitFrame
from bitpak.stream import StreamHeader, BitStream
from bitpak.codec import StreamEncoder, FrameDecoder
from bitpak.file import BitpakFileReader, BitpakFileWriter, MemoryContainer
from bitpak.player import Synchronizer, PlaybackStatus

__all__ = ["BitFrame", "StreamHeader", "BitStream", "StreamEncoder",
    "FrameDecoder", "BitpakFileReader", "BitpakFileWriter", "MemoryContainer",
    "Synchronizer", "PlaybackStatus", "BitpakError", "DimensionMismatch",
    "OutOfBounds", "SizeMismatch", "InvalidHeader", "Truncated",
    "StreamNotFound"]
