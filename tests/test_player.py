"""Tests for time driven playback."""

import pytest

from bitpak.codec import encode_frames
from bitpak.errors import Truncated
from bitpak.frame import pack
from bitpak.player import (AudioClock, PlaybackState, PlaybackStatus,
    Synchronizer, SyncClock, TickLoop, WallClock, tick)


class Timer:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_scenario(scenario_frames, scenario_stream, clock):
    state = PlaybackState(scenario_stream, clock)
    rendered = []

    for t, expected in [(0, 0), (1/30, 1), (2/30, 2)]:
        clock.t = t
        more = tick(state, lambda frame: rendered.append(frame.copy()))
        assert state.index == expected
        assert rendered[-1] == scenario_frames[expected]
    assert more is False
    assert state.status is PlaybackStatus.ENDED

    clock.t = 100
    assert tick(state, rendered.append) is False
    assert state.index == 2
    assert rendered[-1] == scenario_frames[2]


def test_catch_up_renders_once(scenario_frames, scenario_stream, clock):
    state = PlaybackState(scenario_stream, clock)
    rendered = []
    clock.t = 5
    tick(state, lambda frame: rendered.append(frame.copy()))
    assert rendered == [scenario_frames[2]]


def test_playback_is_monotonic(clock):
    frames = [pack([(i >> b) & 1 for b in range(8)], 4, 2) for i in range(50)]
    state = PlaybackState(encode_frames(frames, 10), clock)
    last = 0
    for t in [0, 0.05, 0.31, 0.31, 1.0, 1.02, 2.5, 4.9, 4.95, 7, 12]:
        clock.t = t
        tick(state, lambda frame: None)
        assert last <= state.index <= 49
        assert state.frame == frames[state.index]
        last = state.index
    assert state.index == 49


def test_earlier_time_does_not_step_back(scenario_frames, scenario_stream,
        clock):
    state = PlaybackState(scenario_stream, clock)
    clock.t = 1/30
    tick(state, lambda frame: None)
    clock.t = 0
    tick(state, lambda frame: None)
    assert state.index == 1
    assert state.frame == scenario_frames[1]


def test_wall_clock_pauses():
    timer = Timer()
    wall = WallClock(timer)
    assert wall.current_time_seconds() == 0
    wall.start()
    timer.now += 2
    wall.pause()
    timer.now += 5
    assert wall.current_time_seconds() == 2
    wall.resume()
    timer.now += 1
    assert wall.current_time_seconds() == 3
    wall.start()
    assert wall.current_time_seconds() == 0


def test_sync_clock_prefers_active_audio():
    timer = Timer()
    audio = {"position": 0.0, "playing": False}
    sync = SyncClock(
        AudioClock(lambda: audio["position"], lambda: audio["playing"]),
        WallClock(timer))
    sync.start()
    timer.now += 1
    assert sync.current_time_seconds() == 1

    audio.update(position=4.0, playing=True)
    assert sync.current_time_seconds() == 4

    # the wall clock is behind the audio but time must not go back
    audio["playing"] = False
    timer.now += 1
    assert sync.current_time_seconds() == 4


def test_synchronizer_runs_to_end(scenario_frames, scenario_stream, scheduler,
        clock):
    rendered = []
    sync = Synchronizer(lambda frame: rendered.append(frame.copy()),
        scheduler.schedule, scheduler.cancel, clock)
    assert sync.status is PlaybackStatus.IDLE
    with pytest.raises(ValueError):
        sync.play()

    sync.load(scenario_stream)
    assert sync.status is PlaybackStatus.READY
    assert sync.state.frame == scenario_frames[0]

    sync.play()
    assert sync.status is PlaybackStatus.PLAYING
    assert clock.starts == 1
    scheduler.run_next()
    assert rendered == [scenario_frames[0]]

    clock.t = 1/30
    scheduler.run_next()
    clock.t = 100
    scheduler.run_next()
    assert rendered == scenario_frames
    assert sync.status is PlaybackStatus.ENDED
    assert scheduler.pending == []


def test_synchronizer_stop_and_resume(scenario_frames, scenario_stream,
        scheduler, clock):
    sync = Synchronizer(lambda frame: None, scheduler.schedule,
        scheduler.cancel, clock)
    sync.load(scenario_stream)
    sync.play()
    clock.t = 1/30
    scheduler.run_next()
    sync.stop()
    assert sync.status is PlaybackStatus.STOPPED
    assert clock.paused
    assert scheduler.pending == []
    assert sync.state.frame == scenario_frames[1]

    sync.play()
    assert clock.starts == 1
    assert not clock.paused
    assert sync.state.index == 1


def test_stop_from_render_ends_ticking(scenario_stream, scheduler, clock):
    sync = Synchronizer(lambda frame: sync.stop(), scheduler.schedule,
        scheduler.cancel, clock)
    sync.load(scenario_stream)
    sync.play()
    scheduler.run_next()
    assert sync.status is PlaybackStatus.STOPPED
    assert scheduler.pending == []


def test_load_cancels_pending_tick(scenario_stream, scheduler, clock):
    sync = Synchronizer(lambda frame: None, scheduler.schedule,
        scheduler.cancel, clock)
    sync.load(scenario_stream)
    sync.play()
    old_state = sync.state
    sync.load(scenario_stream)
    assert scheduler.pending == []
    assert scheduler.cancelled
    assert sync.state is not old_state
    assert sync.status is PlaybackStatus.READY


def test_failed_load_keeps_session(scenario_stream, scheduler, clock):
    sync = Synchronizer(lambda frame: None, scheduler.schedule,
        scheduler.cancel, clock)
    sync.load(scenario_stream)
    sync.play()
    state = sync.state
    with pytest.raises(Truncated):
        sync.load(scenario_stream[:11])
    assert sync.state is state
    assert sync.status is PlaybackStatus.PLAYING
    assert len(scheduler.pending) == 1


def test_play_after_end_starts_over(scenario_frames, scenario_stream,
        scheduler, clock):
    rendered = []
    sync = Synchronizer(lambda frame: rendered.append(frame.copy()),
        scheduler.schedule, scheduler.cancel, clock)
    sync.load(scenario_stream)
    sync.play()
    clock.t = 100
    scheduler.run_next()
    assert sync.status is PlaybackStatus.ENDED

    clock.t = 0
    sync.play()
    assert clock.starts == 2
    scheduler.run_next()
    assert rendered[-1] == scenario_frames[0]
    assert sync.state.index == 0


def test_tick_loop_drives_synchronizer(scenario_frames, scenario_stream,
        clock):
    sleeps = []

    def sleep(interval):
        sleeps.append(interval)
        clock.t += interval

    loop = TickLoop(rate=60, sleep=sleep)
    rendered = []
    sync = Synchronizer(lambda frame: rendered.append(frame.copy()),
        loop.schedule, loop.cancel, clock)
    sync.load(scenario_stream)
    sync.play()
    loop.run()
    assert sync.status is PlaybackStatus.ENDED
    assert rendered[0] == scenario_frames[0]
    assert rendered[-1] == scenario_frames[2]
    assert all(interval == pytest.approx(1/60) for interval in sleeps)


def test_tick_loop_rejects_bad_rate():
    with pytest.raises(ValueError):
        TickLoop(rate=0)


def test_synchronizer_with_wall_clock(scenario_frames, scenario_stream,
        scheduler):
    timer = Timer()
    sync = Synchronizer(lambda frame: None, scheduler.schedule,
        scheduler.cancel, SyncClock(wall=WallClock(timer)))
    sync.load(scenario_stream)
    timer.now += 10  # time spent loaded but not playing does not count
    sync.play()
    scheduler.run_next()
    assert sync.state.index == 0

    timer.now += 1/30
    scheduler.run_next()
    assert sync.state.index == 1
    sync.stop()
    timer.now += 10  # nor does time spent stopped
    sync.play()
    assert sync.clock.current_time_seconds() == pytest.approx(1/30)
    scheduler.run_next()
    assert sync.state.index == 1
    assert sync.status is PlaybackStatus.PLAYING

    timer.now += 1/30
    scheduler.run_next()
    assert sync.state.frame == scenario_frames[2]
    assert sync.status is PlaybackStatus.ENDED


def test_render_error_stops_session(scenario_stream, scheduler, clock):
    fail = [True]

    def render(frame):
        if fail[0]:
            raise RuntimeError("render surface lost")

    sync = Synchronizer(render, scheduler.schedule, scheduler.cancel, clock)
    sync.load(scenario_stream)
    sync.play()
    with pytest.raises(RuntimeError):
        scheduler.run_next()
    assert sync.status is PlaybackStatus.STOPPED
    assert clock.paused
    assert scheduler.pending == []

    fail[0] = False
    sync.play()
    assert sync.status is PlaybackStatus.PLAYING
    assert len(scheduler.pending) == 1
