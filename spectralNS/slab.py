# slab.py
"""
Slab-decomposed transforms for distributed runs.

Physical space is split along x: each rank owns ``Np = n / P`` x-planes,
local shape (Np, n, n). Spectral space is split along y: each rank owns
Np y-planes of every kx, local shape (n, Np, n//2+1). A transform is a 2D
FFT over the locally complete axes, an all-to-all transpose and a 1D FFT
along the remaining axis.

``comm`` is any communicator with mpi4py's buffer ``Alltoall(send, recv)``
and object ``allreduce(value)`` (sum) methods, normally
``mpi4py.MPI.COMM_WORLD``.
"""
import logging

import numpy as np
import scipy.fft as _spfft

from spectralNS.errors import ConfigurationError
from spectralNS.transforms import TransformGateway

log = logging.getLogger(__name__)


class SlabTransform(TransformGateway):

    def __init__(self, n, comm, precision="float64", workers=1):
        dtype = np.float32 if precision == "float32" else np.float64
        cdtype = np.complex64 if dtype == np.float32 else np.complex128
        super().__init__(n, np, "cpu", dtype, cdtype)
        self.comm = comm
        self.rank = comm.Get_rank()
        self.size = comm.Get_size()
        if self.n % self.size:
            raise ConfigurationError(
                f"grid size {self.n} is not divisible by {self.size} ranks")
        self.Np = self.n // self.size
        self.real_shape = (self.Np, self.n, self.n)
        self.spectral_shape = (self.n, self.Np, self.nf)
        self.x_slice = slice(self.rank * self.Np, (self.rank + 1) * self.Np)
        self.y_slice = slice(self.rank * self.Np, (self.rank + 1) * self.Np)
        self.workers = workers
        # transposed work arrays: planes of x with all y / all x with planes of y
        self._Uc_hatT = np.empty((self.Np, self.n, self.nf), dtype=cdtype)
        self._Uc_hat = np.empty((self.n, self.Np, self.nf), dtype=cdtype)
        self._recv = np.empty((self.n, self.Np, self.nf), dtype=cdtype)
        log.info("slab: rank %d/%d owns x%s y%s", self.rank, self.size,
                 (self.x_slice.start, self.x_slice.stop),
                 (self.y_slice.start, self.y_slice.stop))

    def _fftn_mpi(self, u):
        P, Np, nf = self.size, self.Np, self.nf
        self._Uc_hatT[:] = _spfft.rfft2(u, axes=(1, 2), workers=self.workers)
        # group the y blocks by destination rank
        send = np.ascontiguousarray(
            np.rollaxis(self._Uc_hatT.reshape(Np, P, Np, nf), 1).reshape(self._Uc_hat.shape))
        self.comm.Alltoall(send, self._recv)
        return _spfft.fft(self._recv, axis=0, workers=self.workers)

    def _ifftn_mpi(self, fu, scratch):
        P, Np, nf = self.size, self.Np, self.nf
        scratch[...] = fu
        self._Uc_hat[:] = _spfft.ifft(scratch, axis=0, norm="forward",
                                      overwrite_x=True, workers=self.workers)
        self.comm.Alltoall(self._Uc_hat, self._recv)
        self._Uc_hatT[:] = np.rollaxis(self._recv.reshape(P, Np, Np, nf), 1).reshape(
            self._Uc_hatT.shape)
        return _spfft.irfft2(self._Uc_hatT, s=(self.n, self.n), axes=(1, 2),
                             norm="forward", workers=self.workers)

    def forward(self, u):
        if u.ndim == 3:
            return self._fftn_mpi(u)
        out = np.empty(u.shape[:-3] + self.spectral_shape, dtype=self.cdtype)
        for c in np.ndindex(*u.shape[:-3]):
            out[c] = self._fftn_mpi(u[c])
        return out

    def backward(self, u_hat, scratch):
        if u_hat.ndim == 3:
            return self._ifftn_mpi(u_hat, scratch)
        out = np.empty(u_hat.shape[:-3] + self.real_shape, dtype=self.dtype)
        for c in np.ndindex(*u_hat.shape[:-3]):
            out[c] = self._ifftn_mpi(u_hat[c], scratch[c])
        return out

    def allreduce(self, value):
        return self.comm.allreduce(value)
