# io.py
"""
Raw velocity files: three float64 arrays u, v, w of n^3 values each, in C
order with x the slowest index, written back to back.
"""
import logging
import os

import numpy as np

from spectralNS.errors import ConfigurationError

log = logging.getLogger(__name__)

NVARS = 3
ITEMSIZE = np.dtype(np.float64).itemsize


def grid_size_from_bytes(nbytes: int, nvars: int = NVARS) -> int:
    """Side n such that nbytes == nvars * n^3 * 8, or ConfigurationError."""
    if nbytes <= 0 or nbytes % (nvars * ITEMSIZE):
        raise ConfigurationError(f"{nbytes} bytes is not {nvars} float64 arrays")
    count = nbytes // (nvars * ITEMSIZE)
    n = int(round(count ** (1.0 / 3)))
    if n * n * n != count:
        raise ConfigurationError(f"{count} values per field is not a perfect cube")
    if n % 2:
        raise ConfigurationError(f"grid size must be even, got {n}")
    return n


def read_velocity_raw(path):
    """Return (n, u, v, w) from a raw velocity file."""
    try:
        nbytes = os.path.getsize(path)
    except OSError as e:
        raise ConfigurationError(f"fail to open '{path}': {e.strerror}") from e
    try:
        n = grid_size_from_bytes(nbytes)
    except ConfigurationError as e:
        raise ConfigurationError(f"wrong file '{path}': {e}") from e
    try:
        data = np.fromfile(path, dtype=np.float64)
    except OSError as e:
        raise ConfigurationError(f"fail to read '{path}': {e}") from e
    if data.size != NVARS * n**3:
        raise ConfigurationError(f"fail to read '{path}'")
    log.info("read %s: n = %d", path, n)
    u, v, w = data.reshape(NVARS, n, n, n)
    return n, u, v, w


def write_velocity_raw(path, u, v, w):
    with open(path, "wb") as f:
        for comp in (u, v, w):
            np.ascontiguousarray(comp, dtype=np.float64).tofile(f)


# ----------- example ICs -----------
def taylor_green_ic(X, V0=1.0):
    x, y, z = X
    U = X.copy()   # same shape and array module as the mesh
    U[0] = V0 * np.sin(x) * np.cos(y) * np.cos(z)
    U[1] = -V0 * np.cos(x) * np.sin(y) * np.cos(z)
    U[2] = 0.0
    return U


def taylor_green_field(n, V0=1.0):
    """Taylor-Green velocity (u, v, w) sampled on the n^3 grid of [0, 2π)^3."""
    X = np.mgrid[0:n, 0:n, 0:n].astype(np.float64) * (2 * np.pi / n)
    return tuple(taylor_green_ic(X, V0=V0))
