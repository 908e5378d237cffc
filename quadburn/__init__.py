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

"""
QuadBurn is a Python package to burn vector geometries into grids, in parallel over a quadtree.
"""

from quadburn._config import config  # noqa
from quadburn.grid import Grid  # noqa
from quadburn.tiling import QuadTree, Tile, compute_depth  # noqa
from quadburn.burn import build_index, burn  # noqa isort:skip

try:
    from quadburn._version import __version__ as __version__  # noqa
except ImportError:  # pragma: no cover
    raise ImportError(
        "quadburn is not properly installed. If you are "
        "running from the source directory, please instead "
        "create a new virtual environment (using conda or "
        "virtualenv) and then install it in-place by running: "
        "pip install -e ."
    )
