import numpy as np

from komyaku.animation.attributes import PALETTES, CharacterAttributes, EyeType
from komyaku.animation.state import Animating, BodyState
from komyaku.types import Rect, TrackedFace
from komyaku.viz.overlay import draw_characters


def _face(render_state=None, palette=PALETTES[0]) -> TrackedFace:
    attrs = CharacterAttributes(
        palette=palette,
        eye_type=EyeType.SINGLE,
        eye_count=1,
        scale=1.0,
        offset_ratio=0.0,
        rotation_offset=0.0,
    )
    face = TrackedFace(track_id=1, box=Rect(20, 20, 60, 60), attributes=attrs)
    if render_state is not None:
        face.render_state = render_state
    return face


def test_draw_characters_paints_body_and_eye():
    frame = np.zeros((100, 100, 3), dtype=np.uint8)
    body = BodyState(x=50.0, y=50.0, size=30.0, eye_x=50.0, eye_y=50.0, eye_ratio=0.5)
    draw_characters(frame, [_face(Animating(central=body))])

    # body edge: red body in BGR
    assert tuple(frame[50, 75]) == (18, 0, 230)
    # eye ring: white
    assert tuple(frame[50, 61]) == (255, 255, 255)
    # pupil: blue in BGR
    assert tuple(frame[50, 50]) == (183, 104, 0)
    # outside the body untouched
    assert tuple(frame[5, 5]) == (0, 0, 0)


def test_draw_characters_skips_uninitialized_tracks():
    frame = np.zeros((40, 40, 3), dtype=np.uint8)
    out = draw_characters(frame, [_face()])
    assert out is frame
    assert int(frame.sum()) == 0


def test_blue_body_pupil_sits_on_white_eye():
    frame = np.zeros((100, 100, 3), dtype=np.uint8)
    body = BodyState(x=50.0, y=50.0, size=30.0, eye_x=50.0, eye_y=50.0, eye_ratio=0.5)
    draw_characters(frame, [_face(Animating(central=body), palette=PALETTES[1])])

    assert tuple(frame[50, 75]) == (183, 104, 0)
    # white ring separates the blue pupil from the blue body
    assert tuple(frame[50, 61]) == (255, 255, 255)
    assert tuple(frame[50, 50]) == (183, 104, 0)
