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

"""Typing aliases for internal use."""

from __future__ import annotations

from typing import Any, Tuple, Union

import numpy as np
from numpy.typing import DTypeLike, NDArray

# Mypy has issues with the builtin Number type (https://github.com/python/mypy/issues/3186)
Number = Union[int, float, np.integer[Any], np.floating[Any]]

DTypeLike = DTypeLike

# Use NDArray wrapper to easily define numerical (float or int) N-D array types, and boolean N-D array types
NDArrayNum = NDArray[Union[np.floating[Any], np.integer[Any]]]
NDArrayBool = NDArray[np.bool_]
# Array of shapely geometries (dtype=object)
NDArrayGeom = NDArray[np.object_]

# Bounds as (left, bottom, right, top), resolution as (xres, yres), index pairs as (row, col)
BoundsLike = Tuple[float, float, float, float]
ResLike = Tuple[float, float]
IndexPair = Tuple[int, int]
