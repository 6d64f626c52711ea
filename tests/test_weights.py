"""Tests for weight field construction."""

import numpy as np
import pytest

from py_fmm.core.errors import ConfigurationError
from py_fmm.core.grid import Point
from py_fmm.core.weights import (
    WeightMap,
    build_weights,
    difference_weights,
    gradient_weights,
    identity_weights,
    laplacian_weights,
)


class TestWeightMapParsing:
    """Test strategy selection."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (WeightMap.GRADIENT, WeightMap.GRADIENT),
            ("gradient", WeightMap.GRADIENT),
            ("Laplacian", WeightMap.LAPLACIAN),
            ("abs-diff", WeightMap.ABSDIFF),
            ("gradient magnitude", WeightMap.GRADIENT),
            (0, WeightMap.IDENTITY),
            (3, WeightMap.LAPLACIAN),
            (np.int64(2), WeightMap.ABSDIFF),
            ("1", WeightMap.GRADIENT),
            (" 3 ", WeightMap.LAPLACIAN),
        ],
    )
    def test_parse_known_values(self, value, expected):
        assert WeightMap.parse(value) is expected

    @pytest.mark.parametrize("value", ["sobel", 4, -1, True, 1.5, None, "7", "-1"])
    def test_parse_unknown_strict(self, value):
        with pytest.raises(ConfigurationError):
            WeightMap.parse(value)

    def test_parse_unknown_lenient_falls_back_to_identity(self):
        assert WeightMap.parse(4, strict=False) is WeightMap.IDENTITY
        assert WeightMap.parse("sobel", strict=False) is WeightMap.IDENTITY


class TestWeightBuilders:
    """Test the four weight strategies."""

    @pytest.fixture
    def ramp(self):
        """5x6 horizontal ramp, value equals the column index."""
        return np.tile(np.arange(6, dtype=np.float64), (5, 1))

    @pytest.fixture
    def constant(self):
        return np.full((4, 5), 2.0)

    def test_identity_is_a_read_only_view(self, ramp):
        cost = identity_weights(ramp)
        assert np.shares_memory(cost, ramp)
        assert not cost.flags.writeable
        # The caller's array stays writable
        assert ramp.flags.writeable

    def test_gradient_of_constant_is_zero_inside(self, constant):
        cost = gradient_weights(constant)
        assert cost.shape == constant.shape
        np.testing.assert_allclose(cost[1:-1, 1:-1], 0.0)
        # Zero padding makes the border respond
        assert np.all(cost[0, :] > 0)
        assert np.all(cost[:, 0] > 0)

    def test_gradient_of_ramp(self, ramp):
        """Interior Sobel response of a unit ramp is 8 in x and 0 in y."""
        cost = gradient_weights(ramp)
        np.testing.assert_allclose(cost[1:-1, 1:-1], 8.0)
        assert np.all(cost >= 0)

    def test_gradient_normalized(self, ramp):
        cost = gradient_weights(ramp, normalize_output=True)
        assert cost.max() == pytest.approx(1.0)
        assert cost.min() >= 0.0

    def test_normalize_constant_zero_field(self):
        """An all-zero field has max 0 and must not produce NaN."""
        cost = gradient_weights(np.zeros((3, 3)), normalize_output=True)
        assert not np.isnan(cost).any()
        np.testing.assert_array_equal(cost, 0.0)

    def test_difference_uses_seed_mean(self, ramp):
        seeds = [Point(1, 0), Point(3, 2)]  # values 1 and 3, reference 2
        cost = difference_weights(ramp, seeds)
        np.testing.assert_allclose(cost, np.abs(ramp - 2.0))
        assert cost[0, 2] == 0.0

    def test_difference_duplicate_seeds_weight_the_mean(self, ramp):
        seeds = [Point(0, 0), Point(0, 1), Point(4, 0)]  # 0, 0, 4 -> 4/3
        cost = difference_weights(ramp, seeds)
        np.testing.assert_allclose(cost[0, 0], 4.0 / 3.0)

    def test_difference_requires_seeds(self, ramp):
        with pytest.raises(ConfigurationError):
            difference_weights(ramp, [])

    def test_laplacian_of_constant(self, constant):
        """Interior is 0; edges keep the -4 centre with missing neighbours."""
        cost = laplacian_weights(constant)
        np.testing.assert_allclose(cost[1:-1, 1:-1], 0.0)
        # Edge (non-corner) cell: -4*2 + 3*2 = -2
        assert cost[0, 2] == pytest.approx(2.0)
        # Corner cell: -4*2 + 2*2 = -4
        assert cost[0, 0] == pytest.approx(4.0)

    def test_laplacian_of_point(self):
        field = np.zeros((5, 5))
        field[2, 2] = 1.0
        cost = laplacian_weights(field)
        assert cost[2, 2] == pytest.approx(4.0)
        assert cost[1, 2] == cost[3, 2] == cost[2, 1] == cost[2, 3] == pytest.approx(1.0)
        assert cost[1, 1] == 0.0

    def test_laplacian_normalized(self):
        field = np.zeros((5, 5))
        field[2, 2] = 1.0
        cost = laplacian_weights(field, normalize_output=True)
        assert cost[2, 2] == pytest.approx(1.0)
        assert cost[1, 2] == pytest.approx(0.25)


class TestBuildWeights:
    """Test dispatch through build_weights."""

    @pytest.fixture
    def field(self):
        rng = np.random.default_rng(7)
        return rng.random((6, 7))

    @pytest.mark.parametrize("weight_map", list(WeightMap))
    def test_shape_and_non_negative(self, field, weight_map):
        cost = build_weights(field, [Point(3, 3)], weight_map)
        assert cost.shape == field.shape
        assert np.all(cost >= 0)

    def test_dispatch_matches_builders(self, field):
        seeds = [Point(1, 2)]
        np.testing.assert_array_equal(
            build_weights(field, seeds, "gradient"), gradient_weights(field)
        )
        np.testing.assert_array_equal(
            build_weights(field, seeds, "absdiff"), difference_weights(field, seeds)
        )
        np.testing.assert_array_equal(
            build_weights(field, seeds, "laplacian", normalize_output=True),
            laplacian_weights(field, normalize_output=True),
        )

    def test_unknown_weight_map(self, field):
        with pytest.raises(ConfigurationError):
            build_weights(field, [Point(0, 0)], "median")
