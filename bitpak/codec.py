"""Encode frames into BA streams and reconstruct them incrementally."""

import numpy as np

from bitpak.errors import DimensionMismatch, InvalidHeader
from bitpak.frame import BitFrame, xor_in_place
from bitpak.stream import (HEADER_SIZE, BitStream, StreamHeader,
    parse_stream, serialize_header, serialize_stream)


def fps_to_x100(fps):
    """Convert a framerate to the header's fps_x100 value.

    The result is rounded and clamped to the range 1 to 65535.
    """
    return int(min(max(round(float(fps)*100), 1), 0xFFFF))


class StreamEncoder:
    """Diff and pack frames into a BA stream, one frame at a time.

    The first frame is stored verbatim, every later frame as the XOR of itself
    and the frame before it. The header is written, with the number of frames
    added so far, when the stream is retrieved with getvalue.

    Attributes
    ----------
    size : (int, int)
        Tuple of the width and height of each frame in pixels.
    fps_x100 : int
        The framerate written into the header, times 100.
    frame_count : int
        Number of frames that have been added so far.
    """
    def __init__(self, size, fps):
        """
        Parameters
        ----------
        size : (int, int)
            Tuple of the width and height of the frames to pack in pixels.
        fps : float
            Nominal framerate used to play the frames back.
        """
        width, height = int(size[0]), int(size[1])
        self.size = (width, height)
        self.fps_x100 = fps_to_x100(fps)
        self.frame_count = 0
        # validate the size now rather than when the first frame comes in
        serialize_header((width, height, self.fps_x100, 1))

        self._payloads = []
        self._prev = None

    def add_frame(self, frame):
        """Append a BitFrame to the stream.

        Raises DimensionMismatch if the frame size differs from the stream's.
        """
        if frame.size != self.size:
            raise DimensionMismatch("frame size {}x{} does not match stream "
                "size {}x{}".format(*frame.size, *self.size))
        if self._prev is None:
            self._payloads.append(frame.data.tobytes())
        else:
            # diff = prev XOR cur
            self._payloads.append(
                np.bitwise_xor(self._prev, frame.data).tobytes())
        self._prev = frame.data.copy()
        self.frame_count += 1

    def getvalue(self):
        """Return the complete stream of every frame added so far."""
        if self.frame_count == 0:
            raise InvalidHeader("a BA stream must contain at least one frame")
        header = StreamHeader(self.size[0], self.size[1], self.fps_x100,
            self.frame_count)
        return serialize_stream(header, self._payloads)


def encode_frames(frames, fps):
    """Encode a sequence of equally sized BitFrames into a BA stream."""
    encoder = None
    for frame in frames:
        if encoder is None:
            encoder = StreamEncoder(frame.size, fps)
        encoder.add_frame(frame)
    if encoder is None:
        raise InvalidHeader("a BA stream must contain at least one frame")
    return encoder.getvalue()


class FrameDecoder:
    """Reconstruct the frames of a BA stream by folding in one diff at a time.

    The decoder owns its running frame, which starts out as a copy of the base
    frame. Frames can only be visited in order; going back requires creating a
    new decoder.

    Attributes
    ----------
    stream : BitStream
        The stream being decoded.
    frame : BitFrame
        The frame at the current index. It is modified in place as the decoder
        advances.
    index : int
        The index of the last frame applied to the running frame.
    """
    def __init__(self, stream):
        """
        Parameters
        ----------
        stream : BitStream or bytes-like
            The stream to decode. Raw bytes are parsed and validated first.
        """
        if not isinstance(stream, BitStream):
            stream = parse_stream(stream)
        self.stream = stream
        width, height = stream.header.size
        self.frame = BitFrame(width, height, stream.payload(0))
        self.index = 0
        self._pos = HEADER_SIZE + stream.header.packed_len

    @property
    def header(self):
        return self.stream.header

    @property
    def at_end(self):
        """True if the running frame is the last frame of the stream."""
        return self.index + 1 >= self.stream.header.frame_count

    def advance_by_one_frame(self):
        """Apply the next diff to the running frame.

        Returns False, leaving the frame untouched, if the last frame has
        already been reached and True otherwise.
        """
        if self.at_end:
            return False
        end = self._pos + self.stream.header.packed_len
        xor_in_place(self.frame, self.stream.data[self._pos:end])
        self._pos = end
        self.index += 1
        return True


def iter_frames(stream):
    """Yield a copy of every frame in the stream, in order."""
    decoder = FrameDecoder(stream)
    yield decoder.frame.copy()
    while decoder.advance_by_one_frame():
        yield decoder.frame.copy()
