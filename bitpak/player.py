"""Play BA streams back in sync with an external clock.

Playback is forward only. Each render tick reads the current playback time,
works out which frame should be on screen and folds diffs into the running
frame until it gets there, then renders the running frame once. If ticks come
slower than the stream's framerate, frames are skipped on screen but the
running frame stays correct.

The synchronizer never owns a timer. It is given a schedule function which
arranges for a callback to run on the next render tick and a cancel function
which drops a scheduled callback, so it can be driven by any render loop (or
by hand in tests).
"""

import enum
import math
import time

from bitpak.codec import FrameDecoder
from bitpak.stream import BitStream, parse_stream

# absorbs float error when the time is an exact multiple of the frame period
_EPSILON = 1e-9


class PlaybackStatus(enum.Enum):
    IDLE = "idle" # no stream loaded
    READY = "ready" # stream loaded, showing frame 0, not started
    PLAYING = "playing"
    STOPPED = "stopped" # paused, running frame retained
    ENDED = "ended" # last frame reached


class WallClock:
    """Elapsed time since start, not counting time spent paused."""
    def __init__(self, timer=time.perf_counter):
        self._timer = timer
        self._elapsed = 0.0
        self._started_at = None

    @property
    def running(self):
        return self._started_at is not None

    def start(self):
        """Restart the clock from 0."""
        self._elapsed = 0.0
        self._started_at = self._timer()

    def pause(self):
        if self._started_at is None: return
        self._elapsed += self._timer() - self._started_at
        self._started_at = None

    def resume(self):
        if self._started_at is not None: return
        self._started_at = self._timer()

    def current_time_seconds(self):
        if self._started_at is None:
            return self._elapsed
        return self._elapsed + (self._timer() - self._started_at)


class AudioClock:
    """The playback position of an audio transport.

    Parameters
    ----------
    position : callable
        Returns the audio playback position in seconds.
    is_playing : callable
        Returns True while the audio is actively playing.
    """
    def __init__(self, position, is_playing):
        self._position = position
        self._is_playing = is_playing

    @property
    def active(self):
        return bool(self._is_playing())

    def current_time_seconds(self):
        return float(self._position())


class SyncClock:
    """The authoritative playback time.

    While the audio clock is active its position is used, otherwise the time
    comes from a wall clock. The returned time never decreases between
    restarts, even if the two sources disagree when switching between them.
    """
    def __init__(self, audio=None, wall=None):
        self.audio = audio
        self.wall = WallClock() if wall is None else wall
        self._last = 0.0

    def start(self):
        self.wall.start()
        self._last = 0.0

    def pause(self):
        self.wall.pause()

    def resume(self):
        self.wall.resume()

    def current_time_seconds(self):
        if self.audio is not None and self.audio.active:
            t = self.audio.current_time_seconds()
        else:
            t = self.wall.current_time_seconds()
        self._last = max(self._last, t)
        return self._last


class PlaybackState:
    """The state of one playback session.

    Attributes
    ----------
    decoder : FrameDecoder
        Holds the running frame, the index of the last frame applied and the
        position of the next diff.
    clock : object
        The time source, anything with a current_time_seconds method returning
        the seconds since playback started.
    status : PlaybackStatus
        READY, PLAYING, STOPPED or ENDED.
    """
    def __init__(self, stream, clock):
        self.decoder = FrameDecoder(stream)
        self.clock = clock
        self.status = PlaybackStatus.READY

    @property
    def header(self):
        return self.decoder.header

    @property
    def frame(self):
        return self.decoder.frame

    @property
    def index(self):
        return self.decoder.index

    def target_index(self, t):
        """Return the index of the frame that should be showing at time t."""
        return math.floor(t * self.header.fps_x100 / 100 + _EPSILON)


def tick(state, render):
    """Advance the state to the current playback time and render it once.

    Diffs are folded in until the running frame reaches the target index or
    the last frame. A target behind the current index leaves the frame as is.
    Returns False once the last frame has been reached (the state is then
    ENDED) and True if more ticks are needed.
    """
    target = state.target_index(state.clock.current_time_seconds())
    decoder = state.decoder
    while decoder.index < target:
        if not decoder.advance_by_one_frame():
            break
    render(decoder.frame)

    if decoder.at_end:
        state.status = PlaybackStatus.ENDED
        return False
    return True


class Synchronizer:
    """Drive playback of one stream at a time from a render loop.

    The synchronizer is not thread-safe; every method and every scheduled tick
    must run on the same thread.

    Attributes
    ----------
    state : PlaybackState
        The current session, or None if no stream is loaded.
    clock : object
        The time source handed to each session. It must have start, pause and
        resume methods in addition to current_time_seconds.
    """
    def __init__(self, render, schedule, cancel, clock=None):
        """
        Parameters
        ----------
        render : callable
            Called with the running BitFrame once per tick.
        schedule : callable
            Called with a callback to run on the next render tick. Returns a
            handle which can be passed to cancel.
        cancel : callable
            Called with a handle to drop the scheduled callback.
        clock : object, optional
            The time source. If None (the default), a SyncClock without audio
            is used.
        """
        self._render = render
        self._schedule = schedule
        self._cancel = cancel
        self.clock = SyncClock() if clock is None else clock
        self.state = None
        self._pending = None

    @property
    def status(self):
        if self.state is None:
            return PlaybackStatus.IDLE
        return self.state.status

    def load(self, stream):
        """Load a stream, replacing the current session.

        The stream is parsed before anything else happens, so a stream that
        fails to parse leaves the current session untouched.

        Parameters
        ----------
        stream : BitStream or bytes-like
            The stream to play.
        """
        if not isinstance(stream, BitStream):
            stream = parse_stream(stream)
        state = PlaybackState(stream, self.clock)
        self._cancel_pending()
        self.clock.pause()
        self.state = state

    def unload(self):
        """Stop playback and drop the current session."""
        self._cancel_pending()
        self.clock.pause()
        self.state = None

    def play(self):
        """Start or resume playback.

        Playing an ENDED session starts it over from frame 0 with a fresh
        running frame.
        """
        state = self.state
        if state is None:
            raise ValueError("no stream loaded")
        if state.status is PlaybackStatus.PLAYING:
            return
        if state.status is PlaybackStatus.STOPPED:
            self.clock.resume()
        else:
            if state.status is PlaybackStatus.ENDED:
                state = PlaybackState(state.decoder.stream, self.clock)
                self.state = state
            self.clock.start()
        state.status = PlaybackStatus.PLAYING
        self._pending = self._schedule(self._tick)

    def stop(self):
        """Pause playback, keeping the running frame."""
        self._cancel_pending()
        if self.state is not None and \
                self.state.status is PlaybackStatus.PLAYING:
            self.state.status = PlaybackStatus.STOPPED
            self.clock.pause()

    def _cancel_pending(self):
        if self._pending is not None:
            self._cancel(self._pending)
            self._pending = None

    def _tick(self):
        self._pending = None
        state = self.state
        if state is None or state.status is not PlaybackStatus.PLAYING:
            return
        try:
            more = tick(state, self._render)
        except BaseException:
            # leave the session paused so play can pick it up again
            if state is self.state and \
                    state.status is PlaybackStatus.PLAYING:
                state.status = PlaybackStatus.STOPPED
                self.clock.pause()
            raise
        # render may have stopped playback or loaded another stream
        if more and state is self.state and \
                state.status is PlaybackStatus.PLAYING:
            self._pending = self._schedule(self._tick)


class TickLoop:
    """Run scheduled callbacks on the calling thread at a fixed rate.

    At most one callback is pending at a time, as the synchronizer only ever
    schedules the next tick.
    """
    def __init__(self, rate=60, sleep=time.sleep):
        if rate <= 0:
            raise ValueError(f"tick rate {rate} must be positive")
        self.interval = 1/rate
        self._sleep = sleep
        self._pending = None

    def schedule(self, callback):
        handle = object()
        self._pending = (handle, callback)
        return handle

    def cancel(self, handle):
        if self._pending is not None and self._pending[0] is handle:
            self._pending = None

    def run(self):
        """Run callbacks until none is scheduled."""
        while self._pending is not None:
            self._sleep(self.interval)
            if self._pending is None: break # cancelled while sleeping
            _, callback = self._pending
            self._pending = None
            callback()
