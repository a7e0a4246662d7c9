"""Array backend selection.

Everything in the simulation is written against an ``xp`` module that is
either NumPy or CuPy. NumPy is the default; CuPy is only imported when asked
for, so machines without CUDA never touch it.
"""
import importlib

import numpy as np

from .errors import ConfigError

BACKENDS = ("numpy", "cupy")


def get_array_module(name="numpy"):
    if name not in BACKENDS:
        raise ConfigError(f"Unknown array backend: {name!r} (expected one of {BACKENDS})")
    if name == "numpy":
        return np
    try:
        return importlib.import_module("cupy")
    except ImportError as exc:
        raise ConfigError("backend 'cupy' requested but CuPy is not installed") from exc


def to_host(arr):
    """Return ``arr`` as a NumPy array, copying off the GPU if needed."""
    if isinstance(arr, np.ndarray):
        return arr
    get = getattr(arr, "get", None)
    if get is not None:
        return get()
    return np.asarray(arr)
