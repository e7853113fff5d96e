import math

import numpy as np
import pytest

from komyaku.animation.animator import AnimatorConfig, CharacterAnimator
from komyaku.animation.attributes import PALETTES, CharacterAttributes, EyeType
from komyaku.animation.state import UNINITIALIZED, Animating
from komyaku.types import Rect, TrackedFace


class _Clock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _attrs(eye_type: EyeType, eye_count: int = 2, scale: float = 1.0) -> CharacterAttributes:
    return CharacterAttributes(
        palette=PALETTES[0],
        eye_type=eye_type,
        eye_count=eye_count,
        scale=scale,
        offset_ratio=0.1,
        rotation_offset=0.5,
    )


def _track(eye_type: EyeType, box: Rect = Rect(100, 100, 100, 100), **kwargs) -> TrackedFace:
    return TrackedFace(track_id=1, box=box, attributes=_attrs(eye_type, **kwargs))


def _animator(clock=None, **cfg) -> CharacterAnimator:
    return CharacterAnimator(AnimatorConfig(**cfg), rng=np.random.default_rng(3), clock=clock or _Clock())


@pytest.mark.parametrize("eye_type", [EyeType.SINGLE, EyeType.MULTIPLE])
def test_first_tick_seeds_body_at_box_center(eye_type):
    animator = _animator()
    track = _track(eye_type)
    assert track.render_state is UNINITIALIZED
    state = animator.advance(track)
    assert isinstance(state, Animating)
    assert track.render_state is state
    assert (state.central.x, state.central.y) == (150.0, 150.0)
    # eye seeded within half the body radius
    offset = math.hypot(state.central.eye_x - 150.0, state.central.eye_y - 150.0)
    assert offset <= state.central.size * 0.5 + 1e-9


def test_single_eye_geometry():
    animator = _animator()
    state = animator.advance(_track(EyeType.SINGLE, scale=1.0))
    assert state.central.size == pytest.approx(60.0)
    assert state.central.eye_size == pytest.approx(30.0)
    assert state.satellites == []


def test_multiple_eye_layout():
    animator = _animator()
    state = animator.advance(_track(EyeType.MULTIPLE, eye_count=3))
    assert state.central.size == pytest.approx(45.0)
    assert len(state.satellites) == 3
    assert len(state.bodies) == 4
    for s in state.satellites:
        assert 0.5 <= s.distance_ratio < 0.7
        assert 0.6 <= s.size_ratio < 1.0
        assert 0.3 <= s.eye_ratio < 0.8
        assert 0.0 <= s.angle < 2 * math.pi
        expected_x = 150.0 + math.cos(s.angle) * 100.0 * s.distance_ratio
        assert s.body.x == pytest.approx(expected_x)
        assert s.body.size == pytest.approx(45.0 * s.size_ratio)


@pytest.mark.parametrize("eye_type", [EyeType.SINGLE, EyeType.MULTIPLE])
def test_static_box_moves_at_most_max_move_per_tick(eye_type):
    animator = _animator()
    track = _track(eye_type)
    prev = animator.advance(track)
    last = (prev.central.x, prev.central.y, prev.central.eye_x, prev.central.eye_y)
    for _ in range(50):
        state = animator.advance(track)
        current = (state.central.x, state.central.y, state.central.eye_x, state.central.eye_y)
        for before, after in zip(last, current):
            assert abs(after - before) <= 5.0 + 1e-9
        for s in state.satellites:
            assert abs(s.body.x - s.body.prev_x) <= 5.0 + 1e-9
            assert abs(s.body.y - s.body.prev_y) <= 5.0 + 1e-9
            assert abs(s.body.eye_x - s.body.prev_eye_x) <= 5.0 + 1e-9
            assert abs(s.body.eye_y - s.body.prev_eye_y) <= 5.0 + 1e-9
        last = current


def test_satellite_eye_moves_exactly_with_its_body():
    animator = _animator()
    track = _track(EyeType.MULTIPLE, box=Rect(100, 100, 300, 300), eye_count=3)
    animator.advance(track)
    for _ in range(40):
        state = animator.advance(track)
        for body in state.bodies:
            assert body.eye_x - body.prev_eye_x == pytest.approx(body.x - body.prev_x)
            assert body.eye_y - body.prev_eye_y == pytest.approx(body.y - body.prev_y)


def test_single_eye_jitter_respects_max_move_while_body_moves():
    animator = _animator(eye_jitter_px=4.0)
    track = _track(EyeType.SINGLE, box=Rect(0, 0, 100, 100))
    animator.advance(track)
    track.box = Rect(80, 80, 100, 100)
    for _ in range(30):
        state = animator.advance(track)
        body = state.central
        assert abs(body.eye_x - body.prev_eye_x) <= 5.0 + 1e-9
        assert abs(body.eye_y - body.prev_eye_y) <= 5.0 + 1e-9


@pytest.mark.parametrize("eye_type", [EyeType.SINGLE, EyeType.MULTIPLE])
def test_body_converges_to_moved_box(eye_type):
    animator = _animator()
    track = _track(eye_type, box=Rect(0, 0, 100, 100))
    animator.advance(track)
    track.box = Rect(23, -12, 100, 100)
    xs = []
    for _ in range(10):
        state = animator.advance(track)
        xs.append((state.central.x, state.central.y))
    assert xs[0] == (55.0, 45.0)
    assert xs[4] == (73.0, 38.0)
    assert all(p == (73.0, 38.0) for p in xs[4:])


def test_eye_carried_by_body_delta_in_multiple_mode():
    animator = _animator()
    track = _track(EyeType.MULTIPLE, box=Rect(0, 0, 100, 100))
    state = animator.advance(track)
    offset = (state.central.eye_x - state.central.x, state.central.eye_y - state.central.y)
    track.box = Rect(40, 0, 100, 100)
    state = animator.advance(track)
    assert state.central.x == 55.0
    assert state.central.eye_x - state.central.x == pytest.approx(offset[0])
    assert state.central.eye_y - state.central.y == pytest.approx(offset[1])


def test_single_eye_stays_inside_body():
    animator = _animator(eye_jitter_px=10.0)
    track = _track(EyeType.SINGLE)
    for _ in range(300):
        state = animator.advance(track)
        offset = math.hypot(state.central.eye_x - state.central.x, state.central.eye_y - state.central.y)
        assert offset <= state.central.size * 0.5 + 1e-6


def test_ratios_drift_within_rate_limits():
    animator = _animator()
    track = _track(EyeType.MULTIPLE, eye_count=2)
    state = animator.advance(track)
    before = [(s.angle, s.distance_ratio, s.size_ratio, s.eye_ratio) for s in state.satellites]
    central_eye = state.central.eye_ratio
    state = animator.advance(track)
    assert abs(state.central.eye_ratio - central_eye) <= central_eye * 0.01 + 1e-12
    for (angle, dist, size, eye), s in zip(before, state.satellites):
        d_angle = abs(s.angle - angle)
        assert min(d_angle, 2 * math.pi - d_angle) <= 0.03 + 1e-9
        assert abs(s.distance_ratio - dist) <= dist * 0.1 + 1e-12
        assert abs(s.size_ratio - size) <= size * 0.1 + 1e-12
        assert abs(s.eye_ratio - eye) <= eye * 0.1 + 1e-12


def test_satellite_count_drifts_by_one_on_schedule():
    clock = _Clock(0.0)
    animator = _animator(clock=clock, mutation_interval_s=(1.0, 1.0))
    track = _track(EyeType.MULTIPLE, eye_count=2)
    state = animator.advance(track)
    assert state.next_mutation_at == 1.0

    clock.now = 0.5
    animator.advance(track)
    assert track.attributes.eye_count == 2

    clock.now = 1.5
    state = animator.advance(track)
    assert abs(track.attributes.eye_count - 2) == 1
    assert len(state.satellites) == track.attributes.eye_count
    assert state.next_mutation_at == 2.5
    # identity fields other than the count never change
    assert track.attributes.palette == PALETTES[0]
    assert track.attributes.scale == 1.0


def test_satellite_count_clamped_to_bounds():
    clock = _Clock(0.0)
    animator = _animator(clock=clock, mutation_interval_s=(1.0, 1.0), min_satellites=1, max_satellites=1)
    track = _track(EyeType.MULTIPLE, eye_count=1)
    animator.advance(track)
    for t in range(2, 20, 2):
        clock.now = float(t)
        state = animator.advance(track)
        assert track.attributes.eye_count == 1
        assert len(state.satellites) == 1


def test_clock_stepping_back_does_not_reschedule_into_past():
    clock = _Clock(10.0)
    animator = _animator(clock=clock, mutation_interval_s=(4.0, 4.0))
    track = _track(EyeType.MULTIPLE, eye_count=2)
    animator.advance(track)
    clock.now = 3.0
    state = animator.advance(track)
    assert state.last_tick_at == 10.0
    assert state.next_mutation_at == 14.0
    assert track.attributes.eye_count == 2


def test_scale_factors_applied_before_targets():
    animator = _animator()
    track = _track(EyeType.SINGLE, box=Rect(10, 20, 40, 20))
    state = animator.advance(track, scale_x=2.0, scale_y=0.5, size_scale=1.1)
    assert (state.central.x, state.central.y) == (60.0, 15.0)
    # scaled box is 80x10, size = 80 * 1.0 * 1.1, body = 0.6 of that
    assert state.central.size == pytest.approx(80.0 * 1.1 * 0.6)


def test_animator_config_validation():
    with pytest.raises(ValueError):
        AnimatorConfig(mutation_interval_s=(5.0, 1.0))
    with pytest.raises(ValueError):
        AnimatorConfig(min_satellites=0)
    with pytest.raises(ValueError):
        AnimatorConfig(max_move_px=-1.0)
