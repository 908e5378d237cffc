"""Test reading and writing files, and the command line tool."""

from __future__ import annotations

import os
from typing import Any

import geopandas as gpd
import numpy as np
import pytest
import rasterio as rio
from shapely.geometry import GeometryCollection, Polygon, box

from quadburn import Grid
from quadburn.cli import default_workers, getparser, main
from quadburn.exceptions import InvalidGridError
from quadburn.io import read_geometry, read_grid, write_grid

LEFT, BOTTOM, RES = 500000.0, 5000000.0, 2.0
TOP = BOTTOM + 8 * RES
CRS = "EPSG:32633"


def _write_raster(path: str, data: np.ndarray, transform: Any = None, crs: str = CRS) -> None:
    """Write a synthetic raster, with bands along the first axis if 3D."""
    if data.ndim == 2:
        data = data[np.newaxis, :, :]
    if transform is None:
        transform = rio.transform.from_origin(LEFT, TOP, RES, RES)
    with rio.open(
        path,
        "w",
        driver="GTiff",
        height=data.shape[1],
        width=data.shape[2],
        count=data.shape[0],
        dtype=data.dtype.name,
        crs=crs,
        transform=transform,
    ) as dst:
        dst.write(data)


def _write_vector(path: str, geometries: list[Polygon], crs: str = CRS, driver: str = "GPKG") -> None:
    gpd.GeoDataFrame({"id": list(range(len(geometries)))}, geometry=geometries, crs=crs).to_file(path, driver=driver)


class TestIO:
    def test_read_grid(self, tmp_path: Any) -> None:
        """Check a raster is read as a float grid with its georeferencing"""

        path = os.path.join(tmp_path, "dem.tif")
        data = np.arange(64, dtype=np.int16).reshape(8, 8)
        _write_raster(path, data)

        grid, profile = read_grid(path)
        assert grid.shape == (8, 8)
        assert grid.dtype == np.float64
        assert grid.res == (RES, RES)
        assert tuple(grid.bounds) == (LEFT, BOTTOM, LEFT + 8 * RES, TOP)
        assert np.array_equal(grid.data, data)
        assert profile["crs"].to_epsg() == 32633

        # With set_zero, values are not read
        grid, _ = read_grid(path, set_zero=True)
        assert grid.shape == (8, 8)
        assert not grid.data.any()

    def test_read_grid_multiband(self, tmp_path: Any, caplog: pytest.LogCaptureFixture) -> None:
        """Check that only the first band is read, with a warning"""

        path = os.path.join(tmp_path, "multiband.tif")
        data = np.stack([np.ones((8, 8)), 2 * np.ones((8, 8))]).astype(np.float32)
        _write_raster(path, data)

        grid, _ = read_grid(path)
        assert np.array_equal(grid.data, np.ones((8, 8)))
        assert "has 2 bands" in caplog.text

    def test_read_grid_rotated(self, tmp_path: Any) -> None:
        path = os.path.join(tmp_path, "rotated.tif")
        transform = rio.transform.Affine(RES, 0.5, LEFT, 0.0, -RES, TOP)
        _write_raster(path, np.zeros((8, 8), dtype=np.uint8), transform=transform)

        with pytest.raises(InvalidGridError):
            read_grid(path)

    def test_read_geometry(self, tmp_path: Any) -> None:
        """Check that features are merged into a single geometry, skipping empty ones"""

        path = os.path.join(tmp_path, "single.gpkg")
        _write_vector(path, [box(0, 0, 1, 1)])
        assert read_geometry(path).equals(box(0, 0, 1, 1))

        path = os.path.join(tmp_path, "multiple.gpkg")
        _write_vector(path, [box(0, 0, 1, 1), Polygon(), box(2, 2, 3, 3)])
        geometry = read_geometry(path)
        assert isinstance(geometry, GeometryCollection)
        assert len(geometry.geoms) == 2

        path = os.path.join(tmp_path, "empty.gpkg")
        _write_vector(path, [Polygon()])
        with pytest.raises(ValueError, match="Vector file.*does not contain any geometry.*"):
            read_geometry(path)

    def test_read_geometry_reproject(self, tmp_path: Any) -> None:
        """Check that geometries are reprojected to the raster coordinate system"""

        polygon = box(LEFT, TOP - 4 * RES, LEFT + 4 * RES, TOP)
        polygon_4326 = gpd.GeoSeries([polygon], crs=CRS).to_crs(4326).iloc[0]
        path = os.path.join(tmp_path, "polygon_4326.geojson")
        _write_vector(path, [polygon_4326], crs="EPSG:4326", driver="GeoJSON")

        geometry = read_geometry(path, crs=CRS)
        assert np.allclose(geometry.bounds, polygon.bounds, atol=1e-3)

        # Without a target, or with the same one, geometries are kept as is
        assert np.allclose(read_geometry(path).bounds, polygon_4326.bounds)
        assert np.allclose(read_geometry(path, crs=4326).bounds, polygon_4326.bounds)

    @pytest.mark.parametrize("dtype", [None, np.uint8, "int16"])  # type: ignore
    def test_write_grid(self, tmp_path: Any, dtype: Any) -> None:
        """Check a grid is written with its georeferencing and the right data type"""

        grid = Grid(np.arange(12, dtype=np.float64).reshape(3, 4), bounds=(10, 20, 18, 26), res=(2, 2))
        path = os.path.join(tmp_path, "out.tif")
        write_grid(path, grid, {"crs": rio.crs.CRS.from_epsg(32633)}, dtype=dtype)

        with rio.open(path) as src:
            assert src.count == 1
            assert src.dtypes[0] == np.dtype(np.float64 if dtype is None else dtype).name
            assert src.transform == grid.transform
            assert src.crs.to_epsg() == 32633
            assert np.array_equal(src.read(1), grid.data)

        # Without a profile, no coordinate system is written
        write_grid(path, grid)
        with rio.open(path) as src:
            assert src.crs is None


class TestCLI:
    def test_getparser(self) -> None:
        """Check the default arguments"""

        args = getparser().parse_args(["in.geojson", "in.tif", "out.tif"])
        assert args.burn_value == 1
        assert not args.set_zero
        assert args.workers is None
        assert args.min_tile_size is None
        assert args.ownership is None
        assert args.export_tiles is None

        args = getparser().parse_args(["in.geojson", "in.tif", "out.tif", "-v", "5", "-z", "-w", "3"])
        assert args.burn_value == 5.0
        assert args.set_zero
        assert args.workers == 3

        assert default_workers() >= 1

    @pytest.mark.parametrize("set_zero", [True, False])  # type: ignore
    @pytest.mark.parametrize("ownership", ["partitioned", "shared"])  # type: ignore
    def test_main(self, tmp_path: Any, set_zero: bool, ownership: str) -> None:
        """Check a full run of the command line tool"""

        raster_path = os.path.join(tmp_path, "dem.tif")
        vector_path = os.path.join(tmp_path, "outline.gpkg")
        output_path = os.path.join(tmp_path, "burned.tif")
        tiles_path = os.path.join(tmp_path, "tiles.gpkg")

        data = np.full((8, 8), 3, dtype=np.float32)
        _write_raster(raster_path, data)
        # Polygon covering the 4 x 4 upper-left pixels
        _write_vector(vector_path, [box(LEFT, TOP - 4 * RES, LEFT + 4 * RES, TOP)])

        argv = [vector_path, raster_path, output_path, "-v", "5", "-w", "2", "--min-tile-size", "2"]
        argv += ["--ownership", ownership, "--export-tiles", tiles_path]
        if set_zero:
            argv.append("-z")
        main(argv)

        with rio.open(output_path) as src:
            burned = src.read(1)
            assert src.transform == rio.transform.from_origin(LEFT, TOP, RES, RES)
            assert src.crs.to_epsg() == 32633

        expected = np.zeros((8, 8)) if set_zero else data.astype(np.float64)
        expected[:4, :4] = 5
        assert np.array_equal(burned, expected)

        # A minimum tile size of 2 pixels on 8 x 8 pixels gives 2 splits and 16 leaves
        tiles = gpd.read_file(tiles_path)
        assert len(tiles) == 16
        assert set(tiles["height"]) == {2}
