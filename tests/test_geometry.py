"""Tests for sphere geometry helpers."""

import math

import numpy as np
import pytest

from py_plates.core.alea_prng import AleaPRNG
from py_plates.core.geometry import (
    EARTH_RADIUS,
    distance,
    hex_radius_at_resolution,
    lat_lon_to_point,
    point_to_lat_lon,
    random_surface_point,
    random_unit_vector,
    rings_to_cover,
    set_length,
)


class TestProjection:
    """Test latitude/longitude projection (y-up)."""

    def test_equator_prime_meridian(self):
        """Test projecting latitude 0, longitude 0."""
        np.testing.assert_allclose(lat_lon_to_point(0.0, 0.0, 10.0), [10.0, 0.0, 0.0], atol=1e-12)

    def test_north_pole(self):
        """Test projecting the north pole."""
        np.testing.assert_allclose(lat_lon_to_point(math.pi / 2, 0.0, 5.0), [0.0, 5.0, 0.0], atol=1e-12)

    def test_east_quarter(self):
        """Test projecting longitude 90 on the equator."""
        np.testing.assert_allclose(lat_lon_to_point(0.0, math.pi / 2), [0.0, 0.0, 1.0], atol=1e-12)

    def test_inverse(self):
        """Test that projecting and un-projecting recovers the angles."""
        for lat, lon in [(0.3, -1.2), (-0.9, 2.5), (1.2, 0.1)]:
            point = lat_lon_to_point(lat, lon, EARTH_RADIUS)
            assert np.linalg.norm(point) == pytest.approx(EARTH_RADIUS)
            back = point_to_lat_lon(point)
            assert back == pytest.approx((lat, lon))

    def test_origin_has_no_lat_lon(self):
        """Test that the origin cannot be converted to latitude/longitude."""
        with pytest.raises(ValueError):
            point_to_lat_lon((0.0, 0.0, 0.0))


class TestVectors:
    """Test vector helpers."""

    def test_set_length(self):
        """Test rescaling a vector."""
        v = set_length(np.array([3.0, 4.0, 0.0]), 10.0)
        np.testing.assert_allclose(v, [6.0, 8.0, 0.0])

    def test_set_length_zero_vector(self):
        """Test that the zero vector is returned unchanged."""
        np.testing.assert_array_equal(set_length(np.zeros(3), 5.0), np.zeros(3))

    def test_distance(self):
        """Test Euclidean chord distance."""
        assert distance((0, 0, 0), (3, 4, 0)) == pytest.approx(5.0)

    def test_random_unit_vector(self):
        """Test that random directions have unit length."""
        prng = AleaPRNG("vec")
        for _ in range(20):
            assert np.linalg.norm(random_unit_vector(prng)) == pytest.approx(1.0)

    def test_random_surface_point(self):
        """Test that random surface points lie on the sphere."""
        point = random_surface_point(AleaPRNG("surface"), 2000.0)
        assert np.linalg.norm(point) == pytest.approx(2000.0)


class TestGridScale:
    """Test cell radius and ring count estimates."""

    def test_resolution_zero(self):
        """Test the hex radius at resolution 0."""
        assert hex_radius_at_resolution(EARTH_RADIUS, 0) == pytest.approx(1077.58)

    def test_resolution_three(self):
        """Test the hex radius at resolution 3."""
        assert hex_radius_at_resolution(EARTH_RADIUS, 3) == pytest.approx(58.565, abs=0.01)

    def test_scales_with_planet(self):
        """Test that the hex radius scales with the planet radius."""
        small = hex_radius_at_resolution(EARTH_RADIUS / 2, 3)
        assert small == pytest.approx(hex_radius_at_resolution(EARTH_RADIUS, 3) / 2)

    def test_rings_to_cover(self):
        """Test the ring count for a plate radius."""
        assert rings_to_cover(100.0, 58.565, 1.33) == 3

    def test_rings_capped(self):
        """Test that the ring count never exceeds the cap."""
        assert rings_to_cover(5000.0, 58.565, 1.33, max_rings=20) == 20

    def test_rings_zero_radius(self):
        """Test that a zero radius needs no rings."""
        assert rings_to_cover(0.0, 58.565, 1.33) == 0

    def test_rings_invalid_cell_radius(self):
        """Test that a non-positive cell radius is rejected."""
        with pytest.raises(ValueError):
            rings_to_cover(100.0, 0.0, 1.33)
