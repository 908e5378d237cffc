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

"""Setup of runtime configuration of QuadBurn."""

from __future__ import annotations

import configparser
import os
from typing import Any

# The setup is inspired by that of Matplotlib and Geowombat
# https://github.com/matplotlib/matplotlib/blob/main/lib/matplotlib/rcsetup.py
# https://github.com/jgrss/geowombat/blob/main/src/geowombat/config.py

_config_ini_file = os.path.abspath(os.path.join(os.path.dirname(__file__), "config.ini"))

OWNERSHIP_MODES = ("partitioned", "shared")

# Validators: to check the format of user inputs


def validate_bool(b: bool | str | int) -> bool:
    """Convert b to ``bool`` or raise."""
    if isinstance(b, str):
        b = b.lower()
    if b in ("t", "y", "yes", "on", "true", "1", 1, True):
        return True
    elif b in ("f", "n", "no", "off", "false", "0", 0, False):
        return False
    else:
        raise ValueError(f"Cannot convert {b!r} to bool")


def validate_positive_int(i: int | str) -> int:
    """Convert i to a strictly positive ``int`` or raise."""
    if isinstance(i, bool):
        raise ValueError(f"Cannot convert {i!r} to a positive integer")
    try:
        value = int(i)
    except (TypeError, ValueError):
        raise ValueError(f"Cannot convert {i!r} to a positive integer")
    if isinstance(i, float) and value != i:
        raise ValueError(f"Cannot convert {i!r} to a positive integer")
    if value < 1:
        raise ValueError(f"Expected a positive integer, got {value}")
    return value


def validate_ownership(s: str) -> str:
    """Check s is a supported grid ownership mode."""
    if not isinstance(s, str) or s.strip().lower() not in OWNERSHIP_MODES:
        raise ValueError(f"Ownership mode must be one of {OWNERSHIP_MODES}, got {s!r}")
    return s.strip().lower()


# Map the parameter names with a validating function to check user input
_validators = {
    "min_tile_size": validate_positive_int,
    "ownership": validate_ownership,
    "show_progress": validate_bool,
}


class QuadBurnConfigDict(dict):  # type: ignore
    """Class for a QuadBurn config dictionary"""

    def __setitem__(self, k: str, v: Any) -> None:
        """We override setitem to check user input."""

        validate_func = _validators[k]
        new_value = validate_func(v)
        super().__setitem__(k, new_value)

    def _set_defaults(self, path_init_file: str) -> None:
        """Fill the dictionary from the sections of an INI file."""

        config_parser = configparser.ConfigParser()
        config_parser.read(path_init_file)

        for section in config_parser.sections():
            for k, v in config_parser[section].items():
                self.__setitem__(k, v)


# Generate default config dictionary
config = QuadBurnConfigDict()
config._set_defaults(path_init_file=_config_ini_file)
