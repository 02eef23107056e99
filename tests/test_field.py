import numpy as np
import pytest

from brotkit import ConfigurationError, IterationPolicy, SpaceSpec, derive_statistics


@pytest.fixture
def space():
    return SpaceSpec(center=0j, scale=2.0, x_res=3, y_res=2)


def test_statistics_ignore_points_in_set(space):
    iterations = np.array([[0, 4, 9], [5, 0, 7]], dtype=np.int32)
    field = derive_statistics(space, iterations, None, bound=2, max_iterations=200)

    assert field.min_iteration == 4
    assert field.max_iteration == 9
    assert field.count_in_set == 2
    assert field.escaped_count == 4
    assert not field.continuous


def test_statistics_when_nothing_escapes(space):
    field = derive_statistics(space, np.zeros((2, 3), dtype=np.int32), None, bound=2, max_iterations=50)

    assert (field.min_iteration, field.max_iteration) == (0, 0)
    assert field.count_in_set == 6


def test_record_reads_column_then_row(space):
    iterations = np.array([[0, 4, 9], [5, 0, 7]], dtype=np.int32)
    speeds = np.array([[0.0, 4.5, 9.25], [5.75, 0.0, 7.0]])
    field = derive_statistics(space, iterations, speeds, bound=2000, max_iterations=200)

    assert field.record(2, 0) == (9, 9.25)
    assert field.record(0, 1) == (5, 5.75)
    assert field.record(1, 1) == (0, 0.0)
    assert field.continuous


def test_field_arrays_are_read_only(space):
    iterations = np.array([[0, 4, 9], [5, 0, 7]], dtype=np.int32)
    field = derive_statistics(space, iterations, None, bound=2, max_iterations=200)

    iterations[0, 0] = 99
    assert field.iterations[0, 0] == 0
    with pytest.raises(ValueError):
        field.iterations[0, 0] = 1


def test_grid_shape_must_match_space(space):
    with pytest.raises(ConfigurationError):
        derive_statistics(space, np.zeros((3, 2), dtype=np.int32), None, bound=2, max_iterations=200)
    with pytest.raises(ConfigurationError):
        derive_statistics(space, np.zeros((2, 3), dtype=np.int32), np.zeros(6), bound=2, max_iterations=200)


def test_policy_bootstraps_first_frame():
    assert IterationPolicy().next_max_iterations(None) == 200
    assert IterationPolicy(initial_iterations=75).next_max_iterations(None) == 75


def test_policy_scales_previous_minimum(space):
    iterations = np.array([[0, 5, 9], [12, 0, 7]], dtype=np.int32)
    previous = derive_statistics(space, iterations, None, bound=2, max_iterations=200)

    assert previous.min_iteration == 5
    assert IterationPolicy(growth_factor=200).next_max_iterations(previous) == 1000


def test_policy_keeps_cap_when_nothing_escaped(space):
    previous = derive_statistics(space, np.zeros((2, 3), dtype=np.int32), None, bound=2, max_iterations=640)
    assert IterationPolicy().next_max_iterations(previous) == 640


def test_policy_bounds():
    policy = IterationPolicy()
    assert policy.bound_for(False) == 2
    assert policy.bound_for(True) == 2000
    with pytest.raises(ConfigurationError):
        IterationPolicy(growth_factor=0)
