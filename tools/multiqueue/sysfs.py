# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

# ======================================================================================================================
# Imports
# ======================================================================================================================

import glob
import os
from typing import List

# ======================================================================================================================
# Public Functions
# ======================================================================================================================


def read_value(path: str) -> str:
    """Reads a pseudo-file and strips the trailing newline."""
    with open(path, "r") as f:
        return f.read().strip()


def write_value(path: str, value: str) -> None:
    """Writes a single value to a pseudo-file."""
    # Kernel attribute files expect one write per value, newline terminated like echo(1).
    with open(path, "w") as f:
        f.write(f"{value}\n")


def sorted_glob(pattern: str) -> List[str]:
    """Expands a glob pattern the way a shell would, in sorted order."""
    return sorted(glob.glob(pattern))


def subdirectories(path: str) -> List[str]:
    """Lists the names of the directories directly below path."""
    try:
        names = os.listdir(path)
    except OSError:
        return []
    return sorted(name for name in names if os.path.isdir(os.path.join(path, name)))


def numeric_entries(path: str) -> List[str]:
    """Lists numerically named directories below path (e.g. /proc/irq/<N>), in numeric order."""
    return sorted((name for name in subdirectories(path) if name.isdigit()), key=int)
