# transforms.py
import logging
import os
from contextlib import contextmanager

from spectralNS.backend import get_fft, get_xp

log = logging.getLogger(__name__)


class ScratchPool:
    """Reusable complex work buffers keyed by shape."""

    def __init__(self, xp, dtype):
        self.xp = xp
        self.dtype = dtype
        self._free = {}
        self.allocated = 0

    @contextmanager
    def acquire(self, shape):
        shape = tuple(shape)
        free = self._free.setdefault(shape, [])
        if free:
            buf = free.pop()
        else:
            buf = self.xp.empty(shape, dtype=self.dtype)
            self.allocated += 1
        try:
            yield buf
        finally:
            free.append(buf)


class TransformGateway:
    """
    Forward (real -> complex) and backward (complex -> real) 3D transforms.

    Both directions are unnormalized: a forward/backward round trip scales
    a field by n^3, and callers apply 1/n^3 exactly once. ``backward`` only
    ever overwrites the scratch buffer it is handed, never its input.

    Subclasses set ``real_shape``, ``spectral_shape``, ``x_slice``,
    ``y_slice``, ``rank`` and ``size`` and implement ``forward``,
    ``backward`` and ``allreduce``. Leading axes (e.g. a velocity component
    axis) are transformed independently.
    """

    rank = 0
    size = 1

    def __init__(self, n, xp, bname, dtype, cdtype):
        self.n = int(n)
        self.nf = self.n // 2 + 1
        self.n3 = self.n**3
        self.xp = xp
        self.backend = bname
        self.dtype = dtype
        self.cdtype = cdtype
        self.pool = ScratchPool(xp, cdtype)

    @property
    def is_root(self):
        return self.rank == 0

    def forward(self, u):
        raise NotImplementedError

    def backward(self, u_hat, scratch):
        raise NotImplementedError

    def allreduce(self, value):
        raise NotImplementedError

    @contextmanager
    def scratch(self, shape=None):
        with self.pool.acquire(self.spectral_shape if shape is None else shape) as buf:
            yield buf

    def to_physical(self, u_hat):
        """Normalized inverse transform through a pooled scratch buffer."""
        with self.scratch(u_hat.shape) as buf:
            u = self.backward(u_hat, buf)
        u *= 1.0 / self.n3
        return u


class SerialTransform(TransformGateway):
    """
    Whole-grid transforms in one process.

    On CPU this is scipy.fft with ``workers`` threads per transform; on GPU
    it is cupyx.scipy.fft.
    """

    def __init__(self, n, backend="auto", precision="float64", workers=None):
        xp, bname = get_xp(backend)
        dtype = xp.float32 if precision == "float32" else xp.float64
        cdtype = xp.complex64 if dtype == xp.float32 else xp.complex128
        super().__init__(n, xp, bname, dtype, cdtype)
        self.fft = get_fft(bname)
        self.real_shape = (self.n, self.n, self.n)
        self.spectral_shape = (self.n, self.n, self.nf)
        self.x_slice = slice(0, self.n)
        self.y_slice = slice(0, self.n)
        if bname == "cpu":
            self.workers = workers if workers is not None else (os.cpu_count() or 1)
            self._kw = {"workers": self.workers}
        else:
            self.workers = None
            self._kw = {}
        log.info("transform: n=%d backend=%s workers=%s", self.n, bname, self.workers)

    # ---------------- utilities ----------------
    def forward(self, u):   # real -> complex
        return self.fft.rfftn(u, axes=(-3, -2, -1), **self._kw)

    def backward(self, u_hat, scratch):  # complex -> real
        scratch[...] = u_hat
        return self.fft.irfftn(scratch, s=self.real_shape, axes=(-3, -2, -1),
                               norm="forward", overwrite_x=True, **self._kw)

    def allreduce(self, value):
        return value
