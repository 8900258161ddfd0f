"""Tests for the H3-backed spatial grid service."""

import h3
import numpy as np
import pytest

from py_plates.core.hex_grid import HexGrid

from conftest import EARTH_RADIUS, RESOLUTION, clean_center


class TestHexGrid:
    """Test cell lookup, projection and adjacency."""

    def test_cell_for_point(self, grid):
        """Test latitude/longitude lookup at a resolution."""
        cell = grid.cell_for_point(37.77, -122.42, RESOLUTION)
        assert grid.is_valid(cell)
        assert grid.resolution_of(cell) == RESOLUTION

    def test_cell_for_position_matches_lat_lon(self, grid):
        """Test that a cell's own center maps back to that cell."""
        cell = grid.cell_for_point(10.0, 20.0, RESOLUTION)
        center = grid.cell_to_point(cell, EARTH_RADIUS)
        assert grid.cell_for_position(center, EARTH_RADIUS, RESOLUTION) == cell

    def test_cell_to_point_on_sphere(self, grid):
        """Test that cell centers lie on the requested sphere."""
        cell = grid.cell_for_point(-45.0, 100.0, RESOLUTION)
        assert np.linalg.norm(grid.cell_to_point(cell, 3000.0)) == pytest.approx(3000.0)

    def test_neighbors(self, grid):
        """Test that a hexagon has six sorted neighbors."""
        cell = clean_center(grid, 1)
        neighbors = grid.neighbors_of(cell)
        assert len(neighbors) == 6
        assert cell not in neighbors
        assert neighbors == sorted(neighbors)

    def test_pentagon_neighbors(self, grid):
        """Test that a pentagon has five neighbors."""
        pentagon = h3.get_pentagons(RESOLUTION)[0]
        assert grid.is_pentagon(pentagon)
        assert len(grid.neighbors_of(pentagon)) == 5

    def test_sector_of(self, grid):
        """Test that a cell's sector is the resolution-0 cell containing it."""
        cell = grid.cell_for_point(20.0, 30.0, RESOLUTION)
        sector = grid.sector_of(cell)
        assert grid.resolution_of(sector) == 0
        assert cell in grid.children_of(sector, RESOLUTION)
        assert grid.sector_of(sector) == sector

    def test_disk_size(self, grid):
        """Test that a full k-disk holds 1 + 3k(k+1) cells."""
        cell = clean_center(grid, 4)
        for k in range(5):
            assert len(grid.disk(cell, k)) == 1 + 3 * k * (k + 1)

    def test_neighbor_spacing(self, grid):
        """Test that adjacent centers sit about two cell radii apart."""
        cell = clean_center(grid, 1)
        center = grid.cell_to_point(cell, EARTH_RADIUS)
        expected = 2 * grid.cell_radius(EARTH_RADIUS, RESOLUTION)
        for neighbor in grid.neighbors_of(cell):
            spacing = np.linalg.norm(grid.cell_to_point(neighbor, EARTH_RADIUS) - center)
            assert 0.6 * expected < spacing < 1.4 * expected

    def test_children(self, grid):
        """Test cell subdivision one resolution down."""
        cell = clean_center(grid, 1)
        children = grid.children_of(cell, RESOLUTION + 1)
        assert len(children) == 7
        assert all(grid.resolution_of(c) == RESOLUTION + 1 for c in children)

    def test_is_valid(self, grid):
        """Test cell id validation."""
        assert not grid.is_valid("not-a-cell")
        assert not grid.is_valid("")
        assert not grid.is_valid(None)
        assert not grid.is_valid(12345)

    def test_cell_radius(self):
        """Test the grid's cell radius."""
        assert HexGrid().cell_radius(EARTH_RADIUS, 0) == pytest.approx(1077.58)
