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

"""Affine helpers between pixel indices and world coordinates, and the rectangle predicate used for burning."""

from __future__ import annotations

from typing import Any

import numpy as np
import shapely
from shapely.geometry import Polygon
from shapely.geometry import box as shapely_box
from shapely.geometry.base import BaseGeometry

from quadburn._typing import BoundsLike, IndexPair, NDArrayBool, NDArrayGeom, ResLike

# Shapely type IDs of multi-part geometries and collections (MultiPoint, MultiLineString, MultiPolygon, Collection)
_MULTIPART_TYPE_IDS = (4, 5, 6, 7)


def pixel_center(row: Any, col: Any, res: ResLike, left: float, top: float) -> tuple[Any, Any]:
    """
    Get the world coordinates of the center of a pixel, for a north-up grid.

    Works with scalars or arrays of indices.

    :param row: Row index (or array of indices), counted from the top.
    :param col: Column index (or array of indices), counted from the left.
    :param res: Resolution of the grid (X and Y, both positive).
    :param left: Left bound of the grid.
    :param top: Top bound of the grid.

    :examples:
        >>> pixel_center(0, 0, (1.0, 1.0), 0.0, 4.0)
        (0.5, 3.5)
        >>> pixel_center(3, 1, (2.0, 1.0), 10.0, 4.0)
        (13.0, 0.5)

    :return: X and Y coordinates of the pixel center.
    """
    x = left + (res[0] / 2.0) + (col * res[0])
    y = top - (res[1] / 2.0) - (row * res[1])
    return x, y


def index_bounds(origin: tuple[Any, Any], shape: tuple[Any, Any], res: ResLike, left: float, top: float) -> tuple:
    """
    Get the world bounds of a block of pixels from its index range, for a north-up grid.

    Edges are always computed from the absolute row or column index of the edge, so that a pixel and a tile
    sharing an edge get the exact same floating-point coordinate. Works with scalars or arrays of indices.

    :param origin: Row and column of the upper-left pixel of the block.
    :param shape: Number of rows and columns of the block.
    :param res: Resolution of the grid (X and Y, both positive).
    :param left: Left bound of the grid.
    :param top: Top bound of the grid.

    :examples:
        >>> index_bounds((1, 2), (1, 1), (1.0, 1.0), 0.0, 4.0)
        (2.0, 2.0, 3.0, 3.0)

    :return: Bounds of the block as (left, bottom, right, top).
    """
    row, col = origin
    nrows, ncols = shape
    return (
        left + col * res[0],
        top - (row + nrows) * res[1],
        left + (col + ncols) * res[0],
        top - row * res[1],
    )


def make_rectangle(bounds: BoundsLike) -> Polygon:
    """
    Create an axis-aligned rectangle from bounds.

    :param bounds: Bounds as (left, bottom, right, top).
    """
    left, bottom, right, top = bounds
    return shapely_box(left, bottom, right, top)


def pixel_rectangles(origin: IndexPair, shape: IndexPair, res: ResLike, left: float, top: float) -> NDArrayGeom:
    """
    Create the rectangles of all pixels of a block of the grid.

    Pixel edges are those of :func:`index_bounds`, and match the edges of quadtree tiles exactly.

    :param origin: Row and column of the upper-left pixel of the block.
    :param shape: Number of rows and columns of the block.
    :param res: Resolution of the grid.
    :param left: Left bound of the full grid.
    :param top: Top bound of the full grid.

    :return: Array of rectangles with the shape of the block.
    """
    rows = np.arange(origin[0], origin[0] + shape[0])
    cols = np.arange(origin[1], origin[1] + shape[1])
    cc, rr = np.meshgrid(cols, rows)
    xmin, ymin, xmax, ymax = index_bounds((rr, cc), (1, 1), res, left, top)

    return shapely.box(xmin, ymin, xmax, ymax)


def prepare_geometry(geometry: BaseGeometry) -> NDArrayGeom:
    """
    Normalize a geometry into an array of prepared single-part geometries.

    Multi-part geometries and geometry collections (possibly nested) are flattened, and empty parts are dropped.

    :param geometry: Input geometry.

    :raises TypeError: If the geometry is not a shapely geometry.

    :return: Array of single-part geometries, prepared for repeated predicates.
    """
    if not isinstance(geometry, BaseGeometry):
        raise TypeError(f"Expected a shapely geometry, got object of type {type(geometry).__name__}.")

    parts = np.array([geometry], dtype=object)
    while True:
        is_multi = np.isin(shapely.get_type_id(parts), _MULTIPART_TYPE_IDS)
        if not is_multi.any():
            break
        parts = np.concatenate([parts[~is_multi], shapely.get_parts(parts[is_multi])])

    parts = parts[~shapely.is_empty(parts)]
    shapely.prepare(parts)

    return parts


def copy_prepared(parts: NDArrayGeom) -> NDArrayGeom:
    """Copy prepared geometry parts, so that a thread can use its own prepared geometries."""
    parts_copy = shapely.from_wkb(shapely.to_wkb(parts))
    shapely.prepare(parts_copy)
    return parts_copy


def intersects_rectangles(parts: NDArrayGeom, rectangles: NDArrayGeom | BaseGeometry) -> NDArrayBool:
    """
    Check which rectangles intersect a geometry, element-wise.

    A rectangle intersects the geometry if its interior meets the geometry: rectangles that only share an edge
    or a corner with the geometry are not considered intersecting.

    :param parts: Geometry parts, as returned by :func:`prepare_geometry`.
    :param rectangles: Rectangle or array of rectangles.

    :return: Boolean array with the shape of the rectangles.
    """
    if isinstance(rectangles, BaseGeometry):
        out_shape: tuple[int, ...] = ()
        rectangles = np.array([rectangles], dtype=object)
    else:
        out_shape = np.shape(rectangles)
        rectangles = np.asarray(rectangles, dtype=object).ravel()

    hit = np.zeros(rectangles.shape, dtype=bool)
    for part in parts:
        inter = np.asarray(shapely.intersects(part, rectangles), dtype=bool)
        if not inter.any():
            continue
        # Only check touching where the part intersects
        inter[inter] = ~np.asarray(shapely.touches(part, rectangles[inter]), dtype=bool)
        hit |= inter

    return hit.reshape(out_shape)
