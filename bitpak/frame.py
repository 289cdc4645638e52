"""Packed one bit per pixel monochrome frames."""

import operator

import numpy as np

from bitpak.errors import DimensionMismatch, OutOfBounds, SizeMismatch

# rgba color of a set and a clear bit
BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)


def packed_len(width, height):
    """Return the number of bytes needed to hold width*height bits."""
    return (int(width)*int(height) + 7) // 8


class BitFrame:
    """A width by height monochrome bitmap packed 8 pixels per byte.

    Pixels are stored row-major, most significant bit first within each byte.
    Unused bits at the end of the last byte are always zero. A set bit is a
    black pixel.

    Attributes
    ----------
    size : (int, int)
        Tuple of the width and height of the frame in pixels.
    data : numpy array
        The packed bytes, as a 1D uint8 array of length packed_len.
    """
    def __init__(self, width, height, data=None):
        """
        Parameters
        ----------
        width, height : int
            Size of the frame in pixels. Both must be positive.
        data : bytes-like, optional
            The packed bytes of the frame. They are copied, so the frame never
            shares memory with the caller's buffer. If None (the default), an
            all white frame is created.
        """
        width, height = int(width), int(height)
        if width <= 0 or height <= 0:
            raise DimensionMismatch(
                "frame size {}x{} must be positive".format(width, height))
        self.size = (width, height)
        self.packed_len = packed_len(width, height)

        if data is None:
            self.data = np.zeros((self.packed_len,), dtype=np.uint8)
        else:
            data = np.frombuffer(data, dtype=np.uint8)
            if len(data) != self.packed_len:
                raise SizeMismatch("got {} bytes for a {}x{} frame, "
                    "expected {}".format(len(data), width, height,
                        self.packed_len))
            self.data = data.copy()
            _clear_padding(self)

    @property
    def width(self):
        return self.size[0]

    @property
    def height(self):
        return self.size[1]

    def get(self, x, y):
        """Return True if the pixel at (x, y) is set (black)."""
        x, y = operator.index(x), operator.index(y)
        if not (0 <= x < self.size[0] and 0 <= y < self.size[1]):
            raise OutOfBounds("pixel ({}, {}) is outside the {}x{} frame"
                .format(x, y, *self.size))
        i = y*self.size[0] + x
        return bool((int(self.data[i >> 3]) >> (7 - (i & 7))) & 1)

    def unpack(self):
        """Return the pixels as a (height, width) bool array."""
        width, height = self.size
        bits = np.unpackbits(self.data, count=width*height)
        return bits.reshape((height, width)).astype(bool)

    def to_rgba(self, rgba_out=None):
        """Render the frame into a (height, width, 4) uint8 RGBA array.

        Set bits become opaque black and clear bits opaque white.

        Parameters
        ----------
        rgba_out : numpy array, optional
            The array to render into. If None (the default), a new array is
            created and returned. Otherwise the same array is returned.
        """
        width, height = self.size
        if rgba_out is None:
            rgba_out = np.empty((height, width, 4), dtype=np.uint8)
        elif rgba_out.shape != (height, width, 4):
            raise DimensionMismatch("rgba buffer shape {} does not match the "
                "{}x{} frame".format(rgba_out.shape, width, height))
        bits = self.unpack()
        rgba_out[bits] = BLACK
        rgba_out[~bits] = WHITE
        return rgba_out

    def tobytes(self):
        return self.data.tobytes()

    def copy(self):
        return BitFrame(self.size[0], self.size[1], self.data)

    def __eq__(self, other):
        if not isinstance(other, BitFrame):
            return NotImplemented
        return self.size == other.size and np.array_equal(self.data, other.data)

    def __repr__(self):
        return "BitFrame({}x{})".format(*self.size)


def _clear_padding(frame):
    # bits past width*height in the last byte are always zero
    pad = frame.packed_len*8 - frame.size[0]*frame.size[1]
    if pad:
        frame.data[-1] &= (0xFF << pad) & 0xFF


def pack(bits, width, height):
    """Pack a flat row-major sequence of booleans into a BitFrame.

    Raises DimensionMismatch if the sequence does not hold exactly width*height
    values.
    """
    bits = np.asarray(bits, dtype=bool).ravel()
    if len(bits) != int(width)*int(height):
        raise DimensionMismatch("got {} bits for a {}x{} frame".format(
            len(bits), width, height))
    # packbits pads the last byte with zeros
    return BitFrame(width, height, np.packbits(bits))


def get(frame, x, y):
    """Return the bit of the frame at (x, y)."""
    return frame.get(x, y)


def xor_in_place(dst, src):
    """XOR src into dst, byte by byte.

    Parameters
    ----------
    dst : BitFrame
        The frame to modify.
    src : BitFrame or bytes-like
        The frame or packed payload to combine. Must have the same byte length
        as dst.
    """
    if isinstance(src, BitFrame):
        if src.size != dst.size:
            raise SizeMismatch("cannot xor a {}x{} frame into a {}x{} frame"
                .format(*src.size, *dst.size))
        src = src.data
    else:
        src = np.frombuffer(src, dtype=np.uint8)
    if len(src) != len(dst.data):
        raise SizeMismatch("cannot xor {} bytes into a {} byte frame".format(
            len(src), len(dst.data)))
    np.bitwise_xor(dst.data, src, out=dst.data)
    # a raw payload may carry stray padding bits
    _clear_padding(dst)


def threshold(gray, level=128):
    """Convert a 2D grayscale array into a BitFrame.

    Pixels at or below level become set (black) bits, brighter pixels clear
    (white) bits.
    """
    gray = np.asarray(gray)
    if gray.ndim != 2:
        raise DimensionMismatch(
            "grayscale frame must be 2D, not {}D".format(gray.ndim))
    height, width = gray.shape
    return pack(gray <= level, width, height)
