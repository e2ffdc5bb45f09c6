# backend.py
from typing import Literal

import numpy as np
import scipy.fft as _spfft

try:
    import cupy as _cp
    import cupyx.scipy.fft as _cupy_spfft
except ImportError:  # CuPy is optional
    _cp = None
    _cupy_spfft = None


def get_xp(backend: Literal["cpu", "gpu", "auto"] = "auto"):
    """
    Array module and backend name for a transform gateway.

    "cpu" is NumPy with scipy.fft, "gpu" is CuPy with cupyx.scipy.fft and
    raises RuntimeError when CuPy is missing; "auto" takes the GPU whenever
    CuPy imports.
    """
    if backend not in ("cpu", "gpu", "auto"):
        raise ValueError(f"unknown backend {backend!r}, use cpu, gpu or auto")
    if backend == "gpu" and _cp is None:
        raise RuntimeError("gpu backend requested but CuPy is not installed")
    if backend != "cpu" and _cp is not None:
        return _cp, "gpu"
    return np, "cpu"


def get_fft(bname: str):
    """Return FFT module: scipy.fft on CPU, cupyx.scipy.fft on GPU."""
    if bname == "gpu":
        return _cupy_spfft
    return _spfft


def to_host(a):
    """Device array -> NumPy array (no-op on CPU)."""
    if _cp is not None and isinstance(a, _cp.ndarray):
        return a.get()
    return np.asarray(a)
