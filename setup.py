from os import path
from typing import Optional

from setuptools import setup

FULLVERSION = "0.1.0"
VERSION = FULLVERSION

write_version = True


def write_version_py(filename: Optional[str] = None) -> None:
    cnt = """\
__version__ = '%s'
short_version = '%s'
"""
    if filename is None:
        filename = path.join(path.dirname(__file__), "quadburn", "_version.py")

    a = open(filename, "w")
    try:
        a.write(cnt % (FULLVERSION, VERSION))
    finally:
        a.close()


if write_version:
    write_version_py()


with open("README.md", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="quadburn",
    version=FULLVERSION,
    description="Parallel burning of vector geometries into rasters over a quadtree",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="The QuadBurn developers",
    license="Apache-2.0",
    packages=["quadburn"],
    package_data={"quadburn": ["config.ini"]},
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "rasterio",
        "affine < 3.0",
        "geopandas >= 0.12.0",
        "shapely >= 2.0",
        "pyproj",
        "matplotlib",
        "tqdm",
    ],
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["quadburn = quadburn.cli:main"]},
    zip_safe=False,
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "License :: OSI Approved :: Apache Software License",
    ],
)
