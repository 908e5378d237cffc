"""Test the Grid class."""

from __future__ import annotations

import numpy as np
import pytest
import rasterio as rio

from quadburn import Grid
from quadburn.exceptions import (
    InvalidBoundsError,
    InvalidGridError,
    InvalidResolutionError,
    InvalidShapeError,
)


class TestGrid:

    data = np.arange(12, dtype=np.float32).reshape(3, 4)
    bounds = (10.0, 20.0, 18.0, 26.0)
    res = (2.0, 2.0)

    def test_init(self) -> None:
        """Check attributes of a grid"""

        grid = Grid(self.data, bounds=self.bounds, res=self.res)

        assert grid.shape == (3, 4)
        assert grid.height == 3
        assert grid.width == 4
        assert grid.dtype == np.float32
        assert tuple(grid.bounds) == self.bounds
        assert grid.bounds.left == 10.0 and grid.bounds.top == 26.0
        assert grid.res == self.res
        assert grid.transform == rio.transform.Affine(2.0, 0.0, 10.0, 0.0, -2.0, 26.0)
        assert np.array_equal(grid.data, self.data)
        assert "Grid(shape=(3, 4)" in repr(grid)

    def test_init_from_list(self) -> None:
        """Check that array-likes are converted"""

        grid = Grid([[1, 2], [3, 4]], bounds=(0, 0, 2, 2), res=(1, 1))
        assert isinstance(grid.data, np.ndarray)
        assert grid.res == (1.0, 1.0)

    def test_init_errors(self) -> None:
        """Check that invalid inputs raise errors"""

        with pytest.raises(InvalidShapeError, match="Expected a 2D array.*"):
            Grid(np.zeros((2, 2, 2)), bounds=(0, 0, 2, 2), res=(1, 1))
        with pytest.raises(InvalidShapeError, match="Shape values must be strictly positive.*"):
            Grid(np.zeros((0, 2)), bounds=(0, 0, 2, 2), res=(1, 1))
        with pytest.raises(InvalidResolutionError):
            Grid(np.zeros((2, 2)), bounds=(0, 0, 2, 2), res=(0, 1))
        with pytest.raises(InvalidResolutionError):
            Grid(np.zeros((2, 2)), bounds=(0, 0, 2, 2), res=(1, -1))
        with pytest.raises(InvalidResolutionError):
            Grid(np.zeros((2, 2)), bounds=(0, 0, 2, 2), res=(1,))  # type: ignore
        with pytest.raises(InvalidBoundsError):
            Grid(np.zeros((2, 2)), bounds=(2, 0, 0, 2), res=(1, 1))
        with pytest.raises(InvalidBoundsError):
            Grid(np.zeros((2, 2)), bounds=(0, 0, np.nan, 2), res=(1, 1))
        with pytest.raises(InvalidBoundsError):
            Grid(np.zeros((2, 2)), bounds=(0, 0, 2), res=(1, 1))  # type: ignore

    def test_init_inconsistent(self) -> None:
        """Check that a shape not matching bounds and resolution raises an error"""

        with pytest.raises(InvalidGridError, match="Grid shape.*does not match bounds.*"):
            Grid(np.zeros((3, 3)), bounds=(0, 0, 4, 4), res=(1, 1))

        # Rounding is tolerated
        grid = Grid(np.zeros((3, 3)), bounds=(0, 0, 3.0000001, 3.0000001), res=(1, 1))
        assert grid.shape == (3, 3)

    def test_from_transform(self) -> None:
        """Check instantiation from an affine transform"""

        transform = rio.transform.from_origin(10.0, 26.0, 2.0, 2.0)
        grid = Grid.from_transform(self.data, transform)

        assert tuple(grid.bounds) == self.bounds
        assert grid.res == self.res
        assert grid.transform == transform

        # Rotated or south-up transforms are not supported
        with pytest.raises(InvalidGridError, match="Only north-up transforms.*"):
            Grid.from_transform(self.data, rio.transform.Affine(2.0, 0.5, 10.0, 0.0, -2.0, 26.0))
        with pytest.raises(InvalidGridError, match="Only north-up transforms.*"):
            Grid.from_transform(self.data, rio.transform.Affine(2.0, 0.0, 10.0, 0.0, 2.0, 20.0))

    def test_zeros(self) -> None:
        """Check grids of zeros derive their resolution from bounds"""

        grid = Grid.zeros((4, 8), bounds=(0, 0, 4, 2), dtype=np.uint8)

        assert grid.res == (0.5, 0.5)
        assert grid.dtype == np.uint8
        assert not grid.data.any()

    def test_copy_and_equal(self) -> None:
        """Check copies are equal but independent"""

        grid = Grid(self.data.copy(), bounds=self.bounds, res=self.res)
        grid_copy = grid.copy()

        assert grid.grid_equal(grid_copy)
        assert grid_copy.data is not grid.data

        grid_copy.data[0, 0] = 100
        assert not grid.grid_equal(grid_copy)
        assert grid.georeferenced_grid_equal(grid_copy)
        assert grid.data[0, 0] == 0

        other = Grid(self.data.astype(np.float64), bounds=self.bounds, res=self.res)
        assert not grid.grid_equal(other)
        assert not grid.grid_equal(self.data)  # type: ignore
