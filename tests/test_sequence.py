import pytest

from brotkit import ConfigurationError, SequenceDriver, SequenceExhaustedError, SpaceSpec, apply_zoom, count_frames


@pytest.fixture
def start():
    return SpaceSpec(center=-0.75 + 0.1j, scale=10.0, x_res=16, y_res=9)


def test_sequence_stops_at_terminal_scale(start):
    rendered = []
    driver = SequenceDriver(start, 0.5, 2.0, lambda space: rendered.append(space) or space.scale)

    assert driver.has_next()
    assert [driver.next() for _ in range(3)] == [10.0, 5.0, 2.5]
    assert driver.current_scale == pytest.approx(1.25)
    assert not driver.has_next()
    with pytest.raises(SequenceExhaustedError):
        driver.next()
    assert len(rendered) == 3


def test_sequence_keeps_center_and_resolution(start):
    spaces = list(SequenceDriver(start, 0.8, 1.0, lambda space: space))

    assert len(spaces) == count_frames(10.0, 0.8, 1.0)
    assert all(space.center == start.center for space in spaces)
    assert all((space.x_res, space.y_res) == (16, 9) for space in spaces)
    assert [space.scale for space in spaces] == sorted((space.scale for space in spaces), reverse=True)


def test_count_frames():
    assert count_frames(10.0, 0.5, 2.0) == 3
    assert count_frames(1.0, 0.5, 1.0) == 0


@pytest.mark.parametrize("zoom_factor", [0.0, 1.0, 1.5, -0.5])
def test_zoom_factor_must_shrink(start, zoom_factor):
    with pytest.raises(ConfigurationError):
        SequenceDriver(start, zoom_factor, 1.0, lambda space: space)


def test_terminal_scale_must_be_positive(start):
    with pytest.raises(ConfigurationError):
        SequenceDriver(start, 0.5, 0.0, lambda space: space)


def test_apply_zoom(start):
    zoomed = apply_zoom(start, 0.25)
    assert zoomed.scale == 2.5
    assert zoomed.center == start.center
