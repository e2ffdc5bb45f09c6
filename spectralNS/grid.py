# grid.py
import numpy as np

from spectralNS.errors import ConfigurationError


def kmax(n: int) -> float:
    """2/3-rule cutoff on integer wavenumbers."""
    return 2.0 / 3.0 * (n // 2 + 1)


def fft_wavenumbers(n: int):
    """Integer wavenumbers in natural FFT order: 0..n/2-1, -n/2..-1."""
    return np.fft.fftfreq(n, 1.0 / n).astype(np.int64)


def rfft_wavenumbers(n: int):
    """Non-negative wavenumbers of the truncated axis: 0..n/2."""
    return np.arange(n // 2 + 1, dtype=np.int64)


class Wavenumbers:
    """
    Wavenumber, |k|^2 and dealias tables on the rFFT grid (x, y, z//2+1).

    With ``y_slice`` the tables cover only the y planes owned by one slab of
    a distributed run; every per-mode array then has shape (n, ny_local, nf).
    The tables are built once and never written afterwards.
    """

    def __init__(self, n, xp=np, y_slice=None, dtype=np.float64):
        n = int(n)
        if n <= 0 or n % 2:
            raise ConfigurationError(f"grid size must be a positive even integer, got {n}")
        self.n = n
        self.nf = n // 2 + 1
        self.y_slice = slice(0, n) if y_slice is None else y_slice

        # 1D integer tables (host)
        self.kx = fft_wavenumbers(n)
        self.ky = self.kx[self.y_slice]
        self.kz = rfft_wavenumbers(n)
        self.kmax = kmax(n)

        # broadcastable meshes on the device
        self.KX = xp.asarray(self.kx.astype(dtype))[:, None, None]
        self.KY = xp.asarray(self.ky.astype(dtype))[None, :, None]
        self.KZ = xp.asarray(self.kz.astype(dtype))[None, None, :]
        self.shape = (n, len(self.ky), self.nf)

        k2 = (self.kx[:, None, None]**2 + self.ky[None, :, None]**2
              + self.kz[None, None, :]**2)
        self.K2 = xp.asarray(k2.astype(dtype))
        # zero mode: no pressure correction, defined explicitly
        inv = np.zeros(k2.shape, dtype=dtype)
        np.divide(1.0, k2, out=inv, where=(k2 > 0))
        self.invK2 = xp.asarray(inv)

        self.dealias = xp.asarray(self._build_dealias_mask())

    def _build_dealias_mask(self):
        """True iff |kx|, |ky| and |kz| are all below kmax."""
        ax = np.abs(self.kx)[:, None, None] < self.kmax
        ay = np.abs(self.ky)[None, :, None] < self.kmax
        az = np.abs(self.kz)[None, None, :] < self.kmax
        return ax & ay & az

    @property
    def retained_modes(self) -> int:
        return int(self.dealias.sum())

    def hermitian_weights(self, xp=np, dtype=np.float64):
        """
        Weights along the rFFT axis: interior kz planes stand for a conjugate
        pair and count twice; kz=0 and the Nyquist plane count once.
        """
        wz = np.full(self.nf, 2.0, dtype=dtype)
        wz[0] = 1.0
        wz[-1] = 1.0
        return xp.asarray(wz)[None, None, :]
