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

"""Quadtree tiling of grids, and spatial query of the tiles intersecting a geometry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterator, Sequence

import geopandas as gpd
import numpy as np
from rasterio.coords import BoundingBox
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from quadburn._typing import IndexPair, NDArrayGeom, ResLike
from quadburn.geometry import index_bounds, intersects_rectangles, make_rectangle, prepare_geometry
from quadburn.grid import Grid, _check_grid, _check_shape

if TYPE_CHECKING:
    import matplotlib


@dataclass
class Tile:
    """
    Node of a quadtree, describing a rectangular part of a grid both in index space and in world space.

    A tile is either a leaf (no children) or has exactly four children, ordered as north-west, north-east,
    south-west and south-east. Children are stored as indices in the arena of the :class:`QuadTree`.
    """

    index: int
    origin: IndexPair
    shape: IndexPair
    bounds: BoundingBox
    res: ResLike
    depth: int = 0
    children: tuple[int, ...] = ()
    rectangle: Polygon = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.rectangle = make_rectangle(self.bounds)

    @property
    def is_leaf(self) -> bool:
        return len(self.children) == 0

    @property
    def slices(self) -> tuple[slice, slice]:
        """Row and column slices of the tile in the index space of the root grid."""
        return (
            slice(self.origin[0], self.origin[0] + self.shape[0]),
            slice(self.origin[1], self.origin[1] + self.shape[1]),
        )

    @property
    def size(self) -> int:
        return self.shape[0] * self.shape[1]


class QuadTree:
    """
    Quadtree over a grid, stored as an arena of tiles addressed by index.

    The root tile (index 0) covers the full grid. Tiles are quartered with :func:`QuadTree.split`, and never
    modified once they have children. The four children of a tile exactly partition its pixels and its bounds.
    """

    def __init__(self, shape: IndexPair, bounds: Sequence[float], res: Sequence[float]):
        """
        Instantiate a quadtree with a single (root) tile.

        :param shape: Number of rows and columns of the grid.
        :param bounds: Bounds of the grid as (left, bottom, right, top).
        :param res: Resolution of the grid as (xres, yres), both positive.
        """
        shape, bbox, res = _check_grid(shape, bounds, res)
        self._left, self._top = bbox.left, bbox.top
        root_bounds = BoundingBox(*index_bounds((0, 0), shape, res, self._left, self._top))
        self._nodes: list[Tile] = [Tile(index=0, origin=(0, 0), shape=shape, bounds=root_bounds, res=res)]

    @classmethod
    def from_grid(cls, grid: Grid, depth: int = 0) -> QuadTree:
        """
        Instantiate a quadtree covering a grid, subdivided to a given depth.

        :param grid: Grid to cover.
        :param depth: Number of times every leaf is quartered.
        """
        tree = cls(grid.shape, grid.bounds, grid.res)
        tree.subdivide(depth)
        return tree

    @property
    def nodes(self) -> list[Tile]:
        return self._nodes

    @property
    def root(self) -> Tile:
        return self._nodes[0]

    @property
    def depth(self) -> int:
        """Depth of the deepest leaf."""
        return max(self._nodes[i].depth for i in self.leaves())

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index: int) -> Tile:
        return self._nodes[index]

    def __iter__(self) -> Iterator[Tile]:
        return iter(self._nodes)

    def __repr__(self) -> str:
        return f"QuadTree(shape={self.root.shape}, nodes={len(self)}, leaves={len(self.leaves())}, depth={self.depth})"

    def leaves(self, index: int = 0) -> list[int]:
        """
        Get the leaves below a tile, in depth-first order (north-west, north-east, south-west, south-east).

        :param index: Index of the tile to start from, defaults to the root.

        :return: Indices of the leaves.
        """
        leaves = []
        stack = [index]
        while stack:
            tile = self._nodes[stack.pop()]
            if tile.is_leaf:
                leaves.append(tile.index)
            else:
                stack.extend(reversed(tile.children))
        return leaves

    def split(self, index: int) -> tuple[int, ...]:
        """
        Quarter a leaf tile into four children.

        Each axis is halved with a floor division: the north (west) half gets `n // 2` rows (columns), the south
        (east) half gets the rest. Bounds of the children are computed from their absolute row and column range with
        :func:`quadburn.geometry.index_bounds`, so that neighbouring children, and the pixels on their edges, share
        the exact same edges.

        A tile with less than two rows or two columns cannot be quartered without creating an empty child, and
        stays a leaf.

        :param index: Index of the tile to split.

        :return: Indices of the children (empty if the tile cannot be split).
        """
        tile = self._nodes[index]
        if not tile.is_leaf:
            return tile.children

        nrows, ncols = tile.shape
        if nrows < 2 or ncols < 2:
            return ()

        r1 = nrows // 2
        r2 = nrows - r1
        c1 = ncols // 2
        c2 = ncols - c1

        orow, ocol = tile.origin
        quadrants = [
            ((orow, ocol), (r1, c1)),
            ((orow, ocol + c1), (r1, c2)),
            ((orow + r1, ocol), (r2, c1)),
            ((orow + r1, ocol + c1), (r2, c2)),
        ]

        children = []
        for origin, shape in quadrants:
            bounds = BoundingBox(*index_bounds(origin, shape, tile.res, self._left, self._top))
            child = Tile(
                index=len(self._nodes),
                origin=origin,
                shape=shape,
                bounds=bounds,
                res=tile.res,
                depth=tile.depth + 1,
            )
            self._nodes.append(child)
            children.append(child.index)

        tile.children = tuple(children)
        return tile.children

    def subdivide(self, n: int, index: int = 0) -> list[int]:
        """
        Quarter every leaf below a tile, n times.

        Leaves that cannot be split (less than two rows or columns) are kept as they are.

        :param n: Number of successive quarterings.
        :param index: Index of the tile to subdivide, defaults to the root.

        :raises ValueError: If n is negative.

        :return: Indices of the leaves below the tile after subdivision.
        """
        if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 0:
            raise ValueError(f"Number of subdivisions must be a positive integer or zero, got {n!r}.")

        current = self.leaves(index)
        for _ in range(n):
            next_leaves = []
            for i in current:
                next_leaves.extend(self.split(i) or (i,))
            # Nothing left to split
            if next_leaves == current:
                break
            current = next_leaves

        return current

    def query(self, geometry: BaseGeometry | NDArrayGeom) -> list[int]:
        """
        Get the leaves whose rectangle intersects a geometry.

        The tree is traversed depth-first from the root, and a tile that does not intersect the geometry is
        pruned along with all its descendants, as they are contained in it.

        :param geometry: Geometry, or geometry parts already normalized with
            :func:`quadburn.geometry.prepare_geometry`.

        :return: Indices of the intersecting leaves, in depth-first order.
        """
        parts = prepare_geometry(geometry) if isinstance(geometry, BaseGeometry) else geometry

        candidates = []
        stack = [0]
        while stack:
            tile = self._nodes[stack.pop()]
            if not intersects_rectangles(parts, tile.rectangle):
                continue
            if tile.is_leaf:
                candidates.append(tile.index)
            else:
                stack.extend(reversed(tile.children))

        return candidates

    def to_wkt(self) -> list[str]:
        """Get the rectangles of all tiles as well-known text, in depth-first order starting from the root."""
        wkts = []
        stack = [0]
        while stack:
            tile = self._nodes[stack.pop()]
            wkts.append(tile.rectangle.wkt)
            stack.extend(reversed(tile.children))
        return wkts

    def footprints(self, crs: Any = None) -> gpd.GeoDataFrame:
        """
        Get the footprints of the leaves as a geodataframe.

        :param crs: Coordinate reference system of the grid, if known.

        :return: Geodataframe with one rectangle per leaf, and its location in the grid.
        """
        leaves = [self._nodes[i] for i in self.leaves()]
        return gpd.GeoDataFrame(
            {
                "index": [t.index for t in leaves],
                "row_off": [t.origin[0] for t in leaves],
                "col_off": [t.origin[1] for t in leaves],
                "height": [t.shape[0] for t in leaves],
                "width": [t.shape[1] for t in leaves],
                "depth": [t.depth for t in leaves],
            },
            geometry=[t.rectangle for t in leaves],
            crs=crs,
        )


def compute_depth(shape: IndexPair, min_tile_size: int) -> int:
    """
    Compute the number of quarterings that keeps tiles larger than a minimum size.

    The smallest dimension of the grid is halved as long as the half stays larger or equal to the minimum size.

    :param shape: Number of rows and columns of the grid.
    :param min_tile_size: Minimum number of pixels of a tile side.

    :examples:
        >>> compute_depth((64, 64), 8)
        3
        >>> compute_depth((1000, 30), 8)
        1
        >>> compute_depth((10, 10), 8)
        0

    :return: Depth of the quadtree.
    """
    nrows, ncols = _check_shape(shape)
    if isinstance(min_tile_size, bool) or not isinstance(min_tile_size, (int, np.integer)) or min_tile_size < 1:
        raise ValueError(f"Minimum tile size must be a strictly positive integer, got {min_tile_size!r}.")

    size = min(nrows, ncols)
    depth = 0
    while size // 2 >= min_tile_size:
        size //= 2
        depth += 1

    return depth


def plot_quadtree(tree: QuadTree, ax: matplotlib.axes.Axes | None = None, **kwargs: Any) -> matplotlib.axes.Axes:
    """
    Plot the outlines of the leaves of a quadtree.

    :param tree: Quadtree to plot.
    :param ax: Axes to plot on, a new figure is created if not provided.
    :param kwargs: Keyword arguments passed to :class:`matplotlib.patches.Rectangle`.

    :return: Axes of the plot.
    """
    import matplotlib.pyplot as plt
    from matplotlib.patches import Rectangle

    if ax is None:
        _, ax = plt.subplots()

    kwargs.setdefault("edgecolor", "red")
    kwargs.setdefault("facecolor", "none")
    kwargs.setdefault("linewidth", 1.0)

    for i in tree.leaves():
        left, bottom, right, top = tree[i].bounds
        ax.add_patch(Rectangle((left, bottom), right - left, top - bottom, **kwargs))

    left, bottom, right, top = tree.root.bounds
    ax.set_xlim(left, right)
    ax.set_ylim(bottom, top)
    ax.set_aspect("equal")

    return ax
