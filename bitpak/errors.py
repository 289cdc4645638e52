"""Exceptions raised while packing, parsing and playing bitpak streams."""


class BitpakError(Exception):
    """Base class for all bitpak errors."""


class DimensionMismatch(BitpakError, ValueError):
    """The number of bits or the frame size disagrees with width*height."""


class OutOfBounds(BitpakError, IndexError):
    """A pixel coordinate lies outside the frame."""


class SizeMismatch(BitpakError, ValueError):
    """Two packed frames of different byte lengths were combined."""


class InvalidHeader(BitpakError, ValueError):
    """A stream or file header contains invalid values."""


class Truncated(BitpakError, ValueError):
    """Fewer bytes are available than the header declares.

    Attributes
    ----------
    expected : int
        Number of bytes required.
    actual : int
        Number of bytes actually present.
    """
    def __init__(self, expected, actual, what="BA stream"):
        self.expected = int(expected)
        self.actual = int(actual)
        super().__init__("{} truncated: expected {} bytes, got {}".format(
            what, self.expected, self.actual))


class StreamNotFound(BitpakError, KeyError):
    """The container holds no stream with the requested name."""
    def __init__(self, name):
        self.name = name
        super().__init__(name)

    def __str__(self):
        return "stream {!r} not found".format(self.name)
