# diagnostics.py
import math
from typing import NamedTuple

import numpy as np

from spectralNS.backend import to_host


class DiagnosticRecord(NamedTuple):
    tstep: int
    t: float
    energy: float
    enstrophy: float


def format_record(rec: DiagnosticRecord) -> str:
    return f"{rec.tstep: 10d} {rec.t: .16e} {rec.energy: .16e} {rec.enstrophy: .16e}"


def _mode_power(U_hat):
    """|U|^2 + |V|^2 + |W|^2 per stored mode."""
    return (U_hat[0].real**2 + U_hat[0].imag**2
            + U_hat[1].real**2 + U_hat[1].imag**2
            + U_hat[2].real**2 + U_hat[2].imag**2)


def _weighted_power(U_hat, wn, xp):
    p = _mode_power(U_hat)
    return p * wn.hermitian_weights(xp, dtype=p.dtype)


def energy_enstrophy(U_hat, wn, gateway):
    """
    Kinetic energy 1/2 <|u|^2> and enstrophy 1/2 <|omega|^2> from the
    (unnormalized) spectral velocity, summed over all ranks.

    Each stored half-spectrum mode is weighted by the number of full-spectrum
    modes it represents, so by Parseval the energy equals the physical-space
    mean for any real field.
    """
    xp = gateway.xp
    p = _weighted_power(U_hat, wn, xp)
    scale = 0.5 / float(gateway.n3)**2
    e = float(xp.sum(p))
    z = float(xp.sum(wn.K2 * p))
    e, z = gateway.allreduce(e), gateway.allreduce(z)
    return e * scale, z * scale


def stored_mode_sums(U_hat, wn, gateway):
    """
    Energy and enstrophy as printed on the diagnostic line:
        E = (1/n^3)^2 sum |U|^2 + |V|^2 + |W|^2
        Z = (1/n^3)^2 sum |k|^2 (|U|^2 + |V|^2 + |W|^2)
    over the stored half spectrum, without conjugate weights. Equals
    energy_enstrophy() only when no energy sits on the kz=0 and Nyquist planes.
    """
    xp = gateway.xp
    p = _mode_power(U_hat)
    scale = 1.0 / float(gateway.n3)**2
    e = gateway.allreduce(float(xp.sum(p)))
    z = gateway.allreduce(float(xp.sum(wn.K2 * p)))
    return e * scale, z * scale


def divergence_rms(U_hat, wn, gateway):
    """RMS of the physical divergence, computed from k . U_hat."""
    xp = gateway.xp
    div = wn.KX * U_hat[0] + wn.KY * U_hat[1] + wn.KZ * U_hat[2]
    w = wn.hermitian_weights(xp)
    s = float(xp.sum((div.real**2 + div.imag**2) * w))
    s = gateway.allreduce(s)
    return math.sqrt(s) / gateway.n3


def energy_spectrum(U_hat, wn, gateway):
    """
    Spherically binned energy spectrum E(k) using rFFT data.
    - Bins by m = round(|k|) (dk = 1 on the 2π box). Excludes DC, caps at Nyquist.
    - Hermitian weights along kz reconstruct the conjugate half.
    Returns: k (nbins,), E_k (nbins,) as NumPy arrays.
    """
    xp = gateway.xp
    n = wn.n
    nbins = n // 2 + 1

    kk = xp.sqrt(wn.K2)
    m = xp.floor(kk + 0.5).astype(xp.int64)
    valid = (kk > 0) & (m < nbins)

    F2 = 0.5 * _weighted_power(U_hat, wn, xp) / float(gateway.n3)**2
    E_k = xp.bincount(m[valid], weights=F2[valid], minlength=nbins)
    E_k = gateway.allreduce(to_host(E_k))
    return np.arange(nbins, dtype=np.float64), np.asarray(E_k, dtype=np.float64)
