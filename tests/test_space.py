import numpy as np
import pytest

from brotkit import ConfigurationError, SpaceSpec, sample_space, space_from_corners


def test_vertical_extent_preserves_aspect():
    space = SpaceSpec(center=-1 + 0j, scale=4.0, x_res=160, y_res=90)
    assert space.vertical_extent == pytest.approx(2.25)
    assert space.bounds == pytest.approx((-3.0, 1.0, -1.125, 1.125))


def test_sample_space_follows_mapping():
    space = SpaceSpec(center=0.5 + 0.25j, scale=2.0, x_res=8, y_res=4)
    points = sample_space(space)

    assert points.shape == (4, 8)
    assert points.dtype == np.complex128
    assert points[0, 0] == pytest.approx(-0.5 - 0.25j)
    # columns move along the real axis, rows along the imaginary axis
    assert points[0, 1] - points[0, 0] == pytest.approx(0.25)
    assert points[1, 0] - points[0, 0] == pytest.approx(0.25j)
    assert points[3, 7] == pytest.approx(1.25 + 0.5j)


def test_origin_sample_of_reference_view():
    space = SpaceSpec(center=-1 + 0j, scale=4.0, x_res=100, y_res=100)
    assert sample_space(space)[50, 75] == pytest.approx(0j, abs=1e-12)


@pytest.mark.parametrize(
    "center, scale, x_res, y_res",
    [
        (-1 + 0j, 4.0, 100, 100),
        (-0.21756183674433 - 1.11441769882846j, 1e-6, 192, 108),
        (0.3 + 0.1j, 0.75, 7, 31),
        (2 - 2j, 10.0, 1, 5),
    ],
)
def test_corners_round_trip(center, scale, x_res, y_res):
    space = SpaceSpec(center=center, scale=scale, x_res=x_res, y_res=y_res)
    points = sample_space(space)
    rebuilt = space_from_corners(points[0, 0], points[-1, -1], x_res, y_res)

    assert rebuilt.center.real == pytest.approx(center.real, abs=scale * 1e-6)
    assert rebuilt.center.imag == pytest.approx(center.imag, abs=scale * 1e-6)
    assert rebuilt.scale == pytest.approx(scale, rel=1e-7)


def test_single_sample_has_no_scale():
    with pytest.raises(ConfigurationError):
        space_from_corners(0j, 0j, 1, 1)


@pytest.mark.parametrize(
    "scale, x_res, y_res",
    [(0.0, 10, 10), (-1.0, 10, 10), (float("nan"), 10, 10), (1.0, 0, 10), (1.0, 10, -3)],
)
def test_invalid_space_is_rejected(scale, x_res, y_res):
    with pytest.raises(ConfigurationError):
        SpaceSpec(center=0j, scale=scale, x_res=x_res, y_res=y_res)


def test_with_scale_keeps_center_and_resolution():
    space = SpaceSpec(center=-0.5 + 0.5j, scale=3.0, x_res=30, y_res=20)
    zoomed = space.with_scale(1.5)

    assert zoomed.center == space.center
    assert (zoomed.x_res, zoomed.y_res) == (30, 20)
    assert zoomed.scale == 1.5
    with pytest.raises(ConfigurationError):
        space.with_scale(0.0)
