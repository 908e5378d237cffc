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

"""Splitting of a grid into blocks owned by quadtree leaves, and recomposition of these blocks into a grid."""

from __future__ import annotations

from typing import Any, Callable

import numpy as np

from quadburn._typing import NDArrayNum
from quadburn.cluster import AbstractCluster, ClusterGenerator
from quadburn.exceptions import InvalidGridError, InvalidShapeError
from quadburn.tiling import QuadTree, Tile


def split_blocks(tree: QuadTree, data: NDArrayNum) -> dict[int, NDArrayNum]:
    """
    Copy the data of a grid into blocks, each owned by one leaf of a quadtree.

    As leaves partition the grid, the blocks never overlap and can be modified independently.

    :param tree: Quadtree covering the grid.
    :param data: Data of the grid.

    :return: Dictionary of leaf index to block of data.
    """
    data = np.asarray(data)
    if data.shape != tree.root.shape:
        raise InvalidGridError(f"Array of shape {data.shape} does not match the quadtree shape {tree.root.shape}.")

    return {i: data[tree[i].slices].copy() for i in tree.leaves()}


def _paste_child(out: NDArrayNum, parent: Tile, child: Tile, child_data: NDArrayNum) -> None:
    """Paste the data of a child tile in the array of its parent tile, at the offset of its origin."""
    row_off = child.origin[0] - parent.origin[0]
    col_off = child.origin[1] - parent.origin[1]
    out[row_off : row_off + child.shape[0], col_off : col_off + child.shape[1]] = child_data


def _recompose_tile(tree: QuadTree, index: int, blocks: dict[int, NDArrayNum], dtype: np.dtype) -> NDArrayNum:
    """Recompose the data of a tile from the blocks of its leaves, sequentially."""

    tile = tree[index]
    if tile.is_leaf:
        block = blocks[index]
        if block.shape != tile.shape:
            raise InvalidShapeError(f"Block of leaf {index} has shape {block.shape}, expected {tile.shape}.")
        return block

    out = np.zeros(tile.shape, dtype=dtype)
    for child in tile.children:
        _paste_child(out, tile, tree[child], _recompose_tile(tree, child, blocks, dtype))

    return out


def map_children(
    tree: QuadTree,
    func: Callable[..., NDArrayNum],
    *args: Any,
    cluster: AbstractCluster | None = None,
    index: int = 0,
    dtype: np.dtype | None = None,
) -> NDArrayNum:
    """
    Apply a function to each child of a tile in parallel, and paste the results in an array of the tile shape.

    The function is called as `func(tree, child_index, *args)` and must return an array of the child shape.
    Only this level is distributed on the cluster: the function itself runs sequentially on the subtree.

    :param tree: Quadtree.
    :param func: Function to apply to each child.
    :param args: Additional arguments passed to the function.
    :param cluster: Cluster to run the tasks on, tasks are run sequentially if not provided.
    :param index: Index of the parent tile, defaults to the root.
    :param dtype: Data type of the output array, defaults to that of the first child result.

    :return: Array of the parent tile shape.
    """
    if cluster is None:
        cluster = ClusterGenerator("basic")

    tile = tree[index]
    tasks = [cluster.launch_task(fun=func, args=[tree, child, *args]) for child in tile.children]

    out = None
    for child, task in zip(tile.children, tasks):
        child_data = cluster.get_res(task)
        if out is None:
            out = np.zeros(tile.shape, dtype=dtype if dtype is not None else child_data.dtype)
        _paste_child(out, tile, tree[child], child_data)

    return out


def recompose(
    tree: QuadTree,
    blocks: dict[int, NDArrayNum],
    cluster: AbstractCluster | None = None,
    index: int = 0,
) -> NDArrayNum:
    """
    Recompose the data of a tile (by default, the full grid) from the blocks owned by its leaves.

    Each internal tile allocates an array of its shape filled with zeros, and pastes the data of its children at
    their origin. The children of the starting tile are recomposed in parallel if a cluster is passed, deeper
    levels are recomposed sequentially.

    :param tree: Quadtree covering the grid.
    :param blocks: Dictionary of leaf index to block of data, as returned by :func:`split_blocks`.
    :param cluster: Cluster to distribute the top-level recomposition on.
    :param index: Index of the tile to recompose, defaults to the root.

    :raises KeyError: If a block is missing for a leaf of the tile.

    :return: Data of the tile.
    """
    leaves = tree.leaves(index)
    missing = [i for i in leaves if i not in blocks]
    if len(missing) > 0:
        raise KeyError(f"Missing blocks for leaves {missing}.")

    dtype = np.result_type(*(blocks[i].dtype for i in leaves))

    if tree[index].is_leaf:
        return _recompose_tile(tree, index, blocks, dtype)

    return map_children(tree, _recompose_tile, blocks, dtype, cluster=cluster, index=index, dtype=dtype)
