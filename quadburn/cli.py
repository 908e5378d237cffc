#!/usr/bin/env python
"""
Command line tool to burn the geometries of a vector file into a raster.
"""
from __future__ import annotations

import argparse
import logging
import os
from typing import Sequence

from quadburn._config import OWNERSHIP_MODES, config
from quadburn.burn import build_index, burn
from quadburn.io import read_geometry, read_grid, write_grid
from quadburn.tiling import compute_depth


def default_workers() -> int:
    """Half of the CPUs of the host, and at least one."""
    nb_cpus = os.cpu_count() or 1
    return max(1, nb_cpus // 2)


def getparser() -> argparse.ArgumentParser:
    # Set up description
    parser = argparse.ArgumentParser(
        description="Burn a value into all pixels of a raster that intersect the geometries of a vector file. "
        "The output raster has the same shape and georeferencing as the input raster."
    )

    # Positional arguments
    parser.add_argument("json_path", type=str, help="str, path to the vector file (e.g., GeoJSON)")
    parser.add_argument("raster_path", type=str, help="str, path to the input raster")
    parser.add_argument("output_raster", type=str, help="str, path to the output GeoTIFF")

    # optional arguments
    parser.add_argument(
        "-v",
        "--burn-value",
        dest="burn_value",
        type=float,
        default=1,
        help="float, value burned into intersecting pixels (Default is 1).",
    )
    parser.add_argument(
        "-z",
        "--set-zero",
        dest="set_zero",
        action="store_true",
        help="If set, burn into a raster of zeros with the shape of the input raster instead of its values.",
    )
    parser.add_argument(
        "-w",
        "--workers",
        dest="workers",
        type=int,
        default=None,
        help="int, number of workers (Default is half the number of CPUs).",
    )
    parser.add_argument(
        "--min-tile-size",
        dest="min_tile_size",
        type=int,
        default=None,
        help="int, minimum side of quadtree tiles in pixels, used to derive the tree depth "
        "(Default is from the configuration).",
    )
    parser.add_argument(
        "--ownership",
        dest="ownership",
        choices=OWNERSHIP_MODES,
        default=None,
        help="str, how workers access the raster (Default is from the configuration).",
    )
    parser.add_argument(
        "--export-tiles",
        dest="export_tiles",
        type=str,
        default=None,
        help="str, path to a vector file to save the footprints of the quadtree leaves to (Default is no export).",
    )
    parser.add_argument(
        "--progress",
        dest="progress",
        action="store_true",
        help="If set, display a progress bar.",
    )
    parser.add_argument(
        "--log-level",
        dest="log_level",
        type=str,
        default="WARNING",
        help="str, logging level, e.g. INFO or DEBUG (Default is WARNING).",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> None:

    parser = getparser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s:%(name)s:%(message)s")

    grid, profile = read_grid(args.raster_path, set_zero=args.set_zero)
    geometry = read_geometry(args.json_path, crs=profile.get("crs"))

    min_tile_size = config["min_tile_size"] if args.min_tile_size is None else args.min_tile_size
    depth = compute_depth(grid.shape, min_tile_size)
    workers = default_workers() if args.workers is None else args.workers
    logging.info("Splits: %d, workers: %d", depth, workers)

    tree = build_index(grid.shape, grid.bounds, grid.res, depth)
    if args.export_tiles is not None:
        tree.footprints(crs=profile.get("crs")).to_file(args.export_tiles)
        logging.info("Tile footprints saved under %s", args.export_tiles)

    burned = burn(
        tree,
        grid,
        geometry,
        args.burn_value,
        workers=workers,
        ownership=args.ownership,
        inplace=True,
        progress=args.progress or None,
    )
    write_grid(args.output_raster, burned, profile)


if __name__ == "__main__":
    main()
