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

"""Reading grids and geometries from files, and writing grids to files."""

from __future__ import annotations

import logging
import os
from typing import Any

import geopandas as gpd
import numpy as np
import pyproj
import rasterio as rio
from shapely.geometry import GeometryCollection
from shapely.geometry.base import BaseGeometry

from quadburn._typing import DTypeLike
from quadburn.grid import Grid


def read_grid(path: str | os.PathLike[str], set_zero: bool = False) -> tuple[Grid, dict[str, Any]]:
    """
    Read the first band of a raster file into a grid.

    :param path: Path to the raster file.
    :param set_zero: Whether to fill the grid with zeros instead of reading the raster values.

    :raises InvalidGridError: If the raster is rotated or not north-up.

    :return: Grid of float values, and the rasterio profile of the file.
    """
    with rio.open(path) as src:
        profile = dict(src.profile)
        transform = src.transform
        if src.count > 1:
            logging.warning("Raster %s has %d bands, only the first band is used.", path, src.count)
        if set_zero:
            data = np.zeros((src.height, src.width), dtype=np.float64)
        else:
            data = src.read(1).astype(np.float64)

    return Grid.from_transform(data, transform), profile


def read_geometry(path: str | os.PathLike[str], crs: Any = None) -> BaseGeometry:
    """
    Read all geometries of a vector file (e.g., GeoJSON) into a single geometry.

    :param path: Path to the vector file.
    :param crs: Coordinate reference system to reproject to, if different from that of the file.

    :raises ValueError: If the file has no geometry.

    :return: Geometry of the single feature, or collection of the geometries of all features.
    """
    gdf = gpd.read_file(path)
    gdf = gdf[~(gdf.geometry.isna() | gdf.geometry.is_empty)]
    if len(gdf) == 0:
        raise ValueError(f"Vector file {path} does not contain any geometry.")

    if crs is not None and gdf.crs is not None:
        dst_crs = pyproj.CRS.from_user_input(crs)
        if not dst_crs.equals(gdf.crs):
            logging.info("Reprojecting geometries from %s to %s.", gdf.crs.name, dst_crs.name)
            gdf = gdf.to_crs(dst_crs)

    geometries = list(gdf.geometry)
    if len(geometries) == 1:
        return geometries[0]
    return GeometryCollection(geometries)


def write_grid(
    path: str | os.PathLike[str],
    grid: Grid,
    profile: dict[str, Any] | None = None,
    dtype: DTypeLike | None = None,
) -> None:
    """
    Write a grid to a single-band GeoTIFF file.

    :param path: Path to the output file.
    :param grid: Grid to write.
    :param profile: Rasterio profile of the source file, used for the coordinate reference system.
    :param dtype: Data type of the file, defaults to that of the grid.
    """
    if profile is None:
        profile = {}
    dtype = grid.dtype if dtype is None else np.dtype(dtype)

    out_profile = {
        "driver": "GTiff",
        "height": grid.height,
        "width": grid.width,
        "count": 1,
        "dtype": np.dtype(dtype).name,
        "crs": profile.get("crs"),
        "transform": grid.transform,
    }
    with rio.open(path, "w", **out_profile) as dst:
        dst.write(grid.data.astype(dtype), 1)

    logging.info("Grid saved under %s", path)
