# Copyright (c) 2026 QuadBurn developers
#
# This file is part of the QuadBurn project.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Module defining the grid of cells that geometries are burned into."""

from __future__ import annotations

import math
from typing import Any, Sequence, TypeVar

import numpy as np
import rasterio as rio
from rasterio.coords import BoundingBox

from quadburn._typing import DTypeLike, IndexPair, NDArrayNum, ResLike
from quadburn.exceptions import (
    InvalidBoundsError,
    InvalidGridError,
    InvalidResolutionError,
    InvalidShapeError,
)

GridType = TypeVar("GridType", bound="Grid")


def _check_shape(shape: Sequence[Any]) -> tuple[int, int]:
    """Check and normalize a shape input into a tuple of two positive integers."""

    if not isinstance(shape, Sequence) or len(shape) != 2:
        raise InvalidShapeError(f"Expected a shape of two integers (rows, cols), got {shape!r}.")
    if not all(isinstance(s, (int, np.integer)) and not isinstance(s, bool) for s in shape):
        raise InvalidShapeError(f"Shape values must be integers, got {shape!r}.")
    if shape[0] < 1 or shape[1] < 1:
        raise InvalidShapeError(f"Shape values must be strictly positive, got {shape!r}.")

    return int(shape[0]), int(shape[1])


def _check_res(res: Sequence[Any]) -> tuple[float, float]:
    """Check and normalize a resolution input into a tuple of two positive floats."""

    if not isinstance(res, Sequence) or len(res) != 2:
        raise InvalidResolutionError(f"Expected a resolution of two numbers (xres, yres), got {res!r}.")
    try:
        xres, yres = float(res[0]), float(res[1])
    except (TypeError, ValueError):
        raise InvalidResolutionError(f"Resolution values must be numbers, got {res!r}.")
    if not (math.isfinite(xres) and math.isfinite(yres)) or xres <= 0 or yres <= 0:
        raise InvalidResolutionError(f"Resolution values must be finite and strictly positive, got {res!r}.")

    return xres, yres


def _check_bounds(bounds: Sequence[Any]) -> BoundingBox:
    """Check and normalize a bounds input into a bounding box."""

    if not isinstance(bounds, Sequence) or len(bounds) != 4:
        raise InvalidBoundsError(f"Expected bounds of four numbers (left, bottom, right, top), got {bounds!r}.")
    try:
        left, bottom, right, top = (float(b) for b in bounds)
    except (TypeError, ValueError):
        raise InvalidBoundsError(f"Bound values must be numbers, got {bounds!r}.")
    if not all(math.isfinite(b) for b in (left, bottom, right, top)):
        raise InvalidBoundsError(f"Bound values must be finite, got {bounds!r}.")
    if right <= left or top <= bottom:
        raise InvalidBoundsError(f"Bounds must satisfy left < right and bottom < top, got {bounds!r}.")

    return BoundingBox(left, bottom, right, top)


def _check_grid(
    shape: Sequence[Any], bounds: Sequence[Any], res: Sequence[Any]
) -> tuple[tuple[int, int], BoundingBox, tuple[float, float]]:
    """
    Check that a shape, bounds and resolution describe a consistent grid.

    :raises InvalidShapeError: If the shape is not two strictly positive integers.
    :raises InvalidBoundsError: If the bounds are not finite and ordered.
    :raises InvalidResolutionError: If the resolution is not two strictly positive numbers.
    :raises InvalidGridError: If the shape does not match the bounds divided by the resolution.

    :return: Normalized shape, bounds and resolution.
    """
    shape = _check_shape(shape)
    bbox = _check_bounds(bounds)
    xres, yres = _check_res(res)

    expected_shape = (round((bbox.top - bbox.bottom) / yres), round((bbox.right - bbox.left) / xres))
    if expected_shape != shape:
        raise InvalidGridError(
            f"Grid shape {shape} does not match bounds {tuple(bbox)} and resolution {(xres, yres)}, "
            f"which define a shape of {expected_shape}."
        )

    return shape, bbox, (xres, yres)


class Grid:
    """
    Georeferenced grid of cells.

    Describes a north-up 2D array of cells through its bounds and resolution. Row 0 is the top row and column 0
    the left column.
    """

    def __init__(self, data: NDArrayNum, bounds: Sequence[float], res: Sequence[float]):
        """
        Instantiate a grid from an array.

        :param data: 2D array of cell values.
        :param bounds: Bounds as (left, bottom, right, top).
        :param res: Resolution as (xres, yres), both positive.
        """
        data = np.asarray(data)
        if data.ndim != 2:
            raise InvalidShapeError(f"Expected a 2D array, got {data.ndim}D array of shape {data.shape}.")

        _, self._bounds, self._res = _check_grid(data.shape, bounds, res)
        self._data = data

    @property
    def data(self) -> NDArrayNum:
        return self._data

    @property
    def bounds(self) -> BoundingBox:
        return self._bounds

    @property
    def res(self) -> ResLike:
        return self._res

    @property
    def shape(self) -> IndexPair:
        return self._data.shape  # type: ignore

    @property
    def height(self) -> int:
        return self.shape[0]

    @property
    def width(self) -> int:
        return self.shape[1]

    @property
    def dtype(self) -> np.dtype:  # type: ignore
        return self._data.dtype

    @property
    def transform(self) -> rio.transform.Affine:
        return rio.transform.from_origin(self.bounds.left, self.bounds.top, self.res[0], self.res[1])

    @classmethod
    def from_transform(cls: type[GridType], data: NDArrayNum, transform: rio.transform.Affine) -> GridType:
        """
        Instantiate a grid from an array and a north-up affine transform.

        :param data: 2D array of cell values.
        :param transform: Affine transform of the array.

        :raises InvalidGridError: If the transform is rotated, sheared or not north-up.
        """
        data = np.asarray(data)
        if data.ndim != 2:
            raise InvalidShapeError(f"Expected a 2D array, got {data.ndim}D array of shape {data.shape}.")
        if transform.b != 0 or transform.d != 0 or transform.a <= 0 or transform.e >= 0:
            raise InvalidGridError(f"Only north-up transforms without rotation are supported, got {transform!r}.")

        bounds = rio.transform.array_bounds(data.shape[0], data.shape[1], transform)
        return cls(data, bounds=bounds, res=(transform.a, -transform.e))

    @classmethod
    def zeros(cls: type[GridType], shape: IndexPair, bounds: Sequence[float], dtype: DTypeLike = np.float64) -> GridType:
        """
        Instantiate a grid of zeros, with a resolution derived from bounds and shape.

        :param shape: Number of rows and columns.
        :param bounds: Bounds as (left, bottom, right, top).
        :param dtype: Data type of the cells.
        """
        shape = _check_shape(shape)
        bbox = _check_bounds(bounds)
        res = ((bbox.right - bbox.left) / shape[1], (bbox.top - bbox.bottom) / shape[0])
        return cls(np.zeros(shape, dtype=dtype), bounds=bbox, res=res)

    def copy(self: GridType) -> GridType:
        """Copy the grid, including its data."""
        return self.__class__(self._data.copy(), bounds=self.bounds, res=self.res)

    def georeferenced_grid_equal(self, other: Grid) -> bool:
        """Check that another grid has the same shape, bounds and resolution."""
        return self.shape == other.shape and self.bounds == other.bounds and self.res == other.res

    def grid_equal(self, other: Grid) -> bool:
        """Check that another grid has the same georeferencing, data type and cell values."""
        if not isinstance(other, Grid):
            return False
        return (
            self.georeferenced_grid_equal(other)
            and self.dtype == other.dtype
            and np.array_equal(self.data, other.data)
        )

    def __repr__(self) -> str:
        return f"Grid(shape={self.shape}, bounds={tuple(self.bounds)}, res={self.res}, dtype={self.dtype})"
