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

"""Parallel burning of geometries into grids, using a quadtree to select the tiles to process."""

from __future__ import annotations

import contextlib
import logging
import threading
from typing import Any, Sequence

import numpy as np
from shapely.geometry.base import BaseGeometry
from tqdm import tqdm

from quadburn._config import config, validate_ownership
from quadburn._typing import IndexPair, NDArrayGeom, NDArrayNum, Number
from quadburn.cluster import ClusterGenerator
from quadburn.exceptions import BurnError, InvalidGridError
from quadburn.geometry import (
    copy_prepared,
    index_bounds,
    intersects_rectangles,
    pixel_rectangles,
    prepare_geometry,
)
from quadburn.grid import Grid
from quadburn.recompose import recompose, split_blocks
from quadburn.tiling import QuadTree, Tile


def build_index(
    grid_shape: IndexPair, grid_bounds: Sequence[float], res: Sequence[float], target_depth: int
) -> QuadTree:
    """
    Build a quadtree over a grid, with every leaf quartered down to a target depth.

    :param grid_shape: Number of rows and columns of the grid.
    :param grid_bounds: Bounds of the grid as (left, bottom, right, top).
    :param res: Resolution of the grid as (xres, yres).
    :param target_depth: Number of times every leaf is quartered. Tiles with less than two rows or columns are not
        split further.

    :return: Quadtree over the grid.
    """
    tree = QuadTree(grid_shape, grid_bounds, res)
    tree.subdivide(target_depth)
    return tree


def chunk_leaves(leaves: Sequence[int], nb_workers: int) -> list[list[int]]:
    """
    Partition a list of leaves into contiguous chunks, one per worker.

    If there are fewer leaves than workers, a single chunk is returned. Otherwise, chunks have size
    `len(leaves) // nb_workers` and the last chunk gets the remainder.

    :param leaves: Indices of the leaves.
    :param nb_workers: Number of workers.

    :examples:
        >>> chunk_leaves([1, 2, 3, 4, 5], 2)
        [[1, 2], [3, 4, 5]]
        >>> chunk_leaves([1, 2], 4)
        [[1, 2]]

    :return: List of chunks, covering every leaf exactly once.
    """
    if isinstance(nb_workers, bool) or not isinstance(nb_workers, (int, np.integer)) or nb_workers < 1:
        raise ValueError(f"Number of workers must be a strictly positive integer, got {nb_workers!r}.")

    leaves = list(leaves)
    if len(leaves) == 0:
        return []
    if len(leaves) < nb_workers:
        return [leaves]

    chunk_size = len(leaves) // nb_workers
    chunks = [leaves[i * chunk_size : (i + 1) * chunk_size] for i in range(nb_workers - 1)]
    chunks.append(leaves[(nb_workers - 1) * chunk_size :])

    return chunks


def _check_burn_value(value: Number, dtype: np.dtype) -> Any:
    """
    Check that a burn value can be stored in an array of a given data type, and cast it.

    :raises ValueError: If the value is not a number, or cannot be represented in the data type.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ValueError(f"Burn value must be a number, got {value!r}.")

    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        if not float(value).is_integer() or not info.min <= value <= info.max:
            raise ValueError(f"Burn value {value} cannot be represented in the grid data type '{dtype}'.")
    elif np.issubdtype(dtype, np.floating):
        if np.isfinite(value) and abs(value) > np.finfo(dtype).max:
            raise ValueError(f"Burn value {value} overflows the grid data type '{dtype}'.")
    else:
        raise ValueError(f"Only grids of integer or floating data types are supported, got '{dtype}'.")

    return np.asarray(value).astype(dtype)[()]


def _check_tree_grid(tree: QuadTree, grid: Grid) -> None:
    """Check that a quadtree was built over the same grid."""

    root = tree.root
    # Bounds of the tree are derived from the pixel count, which the grid only matches up to rounding
    grid_bounds = index_bounds((0, 0), grid.shape, grid.res, grid.bounds.left, grid.bounds.top)
    if (
        root.shape != grid.shape
        or not np.allclose(tuple(root.bounds), grid_bounds, rtol=1e-12, atol=0)
        or not np.allclose(root.res, grid.res, rtol=1e-12, atol=0)
    ):
        raise InvalidGridError(
            f"Quadtree of shape {root.shape}, bounds {tuple(root.bounds)} and resolution {root.res} does not match "
            f"grid of shape {grid.shape}, bounds {tuple(grid.bounds)} and resolution {grid.res}."
        )


def _burn_leaf(block: NDArrayNum, tile: Tile, parts: NDArrayGeom, left: float, top: float) -> NDArrayNum:
    """
    Find the pixels of a leaf intersecting a geometry.

    :param block: Data of the leaf, only used to check the shape.
    :param tile: Leaf tile.
    :param parts: Prepared geometry parts.
    :param left: Left bound of the root grid.
    :param top: Top bound of the root grid.

    :return: Boolean array of the pixels to burn, with the shape of the leaf.
    """
    if block.shape != tile.shape:
        raise InvalidGridError(f"Block of shape {block.shape} does not match leaf {tile.index} of shape {tile.shape}.")

    rectangles = pixel_rectangles(tile.origin, tile.shape, tile.res, left, top)
    return intersects_rectangles(parts, rectangles)


def _burn_chunk(
    tiles: list[Tile],
    blocks: dict[int, NDArrayNum],
    parts: NDArrayGeom,
    value: Any,
    left: float,
    top: float,
    lock: threading.Lock | None = None,
) -> int:
    """
    Burn a value into the blocks of a chunk of leaves.

    :param tiles: Leaves of the chunk.
    :param blocks: Arrays the leaves write into, either owned copies or views of a shared array.
    :param parts: Prepared geometry parts.
    :param value: Burn value, already cast to the grid data type.
    :param left: Left bound of the root grid.
    :param top: Top bound of the root grid.
    :param lock: Lock guarding all writes into a shared array, if any.

    :return: Number of burned pixels.
    """
    # Prepared geometries are not shared between threads
    parts = copy_prepared(parts)

    nb_burned = 0
    for tile in tiles:
        block = blocks[tile.index]
        hit = _burn_leaf(block, tile, parts, left, top)
        with (lock if lock is not None else contextlib.nullcontext()):
            block[hit] = value
        nb_burned += int(np.count_nonzero(hit))

    return nb_burned


def burn(
    tree: QuadTree,
    grid: Grid,
    geometry: BaseGeometry,
    value: Number,
    workers: int = 1,
    ownership: str | None = None,
    inplace: bool = False,
    progress: bool | None = None,
) -> Grid:
    """
    Burn a value into all cells of a grid intersecting a geometry.

    The quadtree is queried for the leaves intersecting the geometry, which are distributed in chunks over
    workers. Each worker checks every pixel of its leaves, and writes the value where the pixel intersects the
    geometry. Pixels only touching the geometry on an edge or a corner are not burned. All other cells keep their
    value.

    With the "partitioned" ownership, each leaf owns a copy of its part of the grid and workers write without any
    lock, the grid is then recomposed from the leaves. With the "shared" ownership, workers write into a single
    array through one lock.

    The result does not depend on the number of workers.

    :param tree: Quadtree built over the grid.
    :param grid: Grid to burn into.
    :param geometry: Geometry to burn, in the same coordinates as the grid.
    :param value: Value to burn.
    :param workers: Number of workers.
    :param ownership: How workers access the grid, either "partitioned" or "shared". Defaults to the
        "ownership" value of the configuration.
    :param inplace: Whether to update the grid in place instead of returning a new grid.
    :param progress: Whether to display a progress bar over chunks. Defaults to the "show_progress" value of the
        configuration.

    :raises InvalidGridError: If the quadtree does not cover the grid.
    :raises ValueError: If the number of workers, the burn value or the ownership mode are invalid.
    :raises TypeError: If the geometry is not a shapely geometry.
    :raises BurnError: If any worker fails.

    :return: Burned grid.
    """
    ownership = config["ownership"] if ownership is None else validate_ownership(ownership)
    if progress is None:
        progress = config["show_progress"]

    _check_tree_grid(tree, grid)
    burn_value = _check_burn_value(value, grid.dtype)
    parts = prepare_geometry(geometry)

    candidates = tree.query(parts)
    chunks = chunk_leaves(candidates, workers)
    logging.debug(
        "Burning %d candidate leaves (out of %d) in %d chunks with '%s' ownership.",
        len(candidates),
        len(tree.leaves()),
        len(chunks),
        ownership,
    )

    left, top = tree.root.bounds.left, tree.root.bounds.top

    lock: threading.Lock | None
    if ownership == "partitioned":
        blocks = split_blocks(tree, grid.data)
        lock = None
    else:
        data = grid.data if inplace else grid.data.copy()
        blocks = {i: data[tree[i].slices] for i in candidates}
        lock = threading.Lock()

    cluster_name = "thread" if len(chunks) > 1 else "basic"
    with ClusterGenerator(cluster_name, nb_workers=max(len(chunks), 1)) as cluster:
        try:
            tasks = [
                cluster.launch_task(
                    fun=_burn_chunk, args=[[tree[i] for i in chunk], blocks, parts, burn_value, left, top, lock]
                )
                for chunk in chunks
            ]
            nb_burned = 0
            for task in tqdm(tasks, desc="Burning", unit="chunk", disable=not progress):
                nb_burned += cluster.get_res(task)

            if ownership == "partitioned":
                data = recompose(tree, blocks, cluster=cluster)
        except Exception as e:
            raise BurnError(f"Error burning geometry in worker tasks: {e}") from e

    logging.debug("Burned %d pixels.", nb_burned)

    if inplace:
        if data is not grid.data:
            grid.data[...] = data
        return grid

    return Grid(data, bounds=grid.bounds, res=grid.res)
