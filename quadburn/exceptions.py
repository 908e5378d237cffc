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

"""Exceptions raised on invalid grid inputs and failed burns."""

from __future__ import annotations


class InvalidBoundsError(ValueError):
    """Raised when bounds are degenerate or inconsistent with the grid shape."""


class InvalidGridError(ValueError):
    """Raised when a grid does not match the expected layout (e.g., that of a quadtree)."""


class InvalidResolutionError(ValueError):
    """Raised when a resolution is not a pair of strictly positive numbers."""


class InvalidShapeError(ValueError):
    """Raised when a shape is not a pair of strictly positive integers."""


class BurnError(RuntimeError):
    """Raised when a burn worker fails, the burn is then aborted as a whole."""
