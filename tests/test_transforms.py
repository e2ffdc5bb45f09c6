"""Tests for the shared-memory transform gateway and its scratch pool."""
import importlib.util

import numpy as np
import pytest
import scipy.fft

from spectralNS.backend import get_fft, get_xp
from spectralNS.transforms import ScratchPool, SerialTransform


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


class TestSerialTransform:

    @pytest.mark.parametrize("n", [2, 4, 8, 16])
    def test_round_trip(self, n, rng):
        gw = SerialTransform(n, backend="cpu", workers=1)
        u = rng.standard_normal((n, n, n))
        with gw.scratch() as buf:
            back = gw.backward(gw.forward(u), buf)
        np.testing.assert_allclose(back / n**3, u, atol=1e-12)

    def test_unnormalized_forward(self):
        gw = SerialTransform(8, backend="cpu")
        u_hat = gw.forward(np.ones((8, 8, 8)))
        assert u_hat.shape == gw.spectral_shape == (8, 8, 5)
        assert u_hat[0, 0, 0] == pytest.approx(512.0)
        assert np.abs(u_hat).sum() == pytest.approx(512.0)

    def test_backward_leaves_input_untouched(self, rng):
        gw = SerialTransform(8, backend="cpu")
        u_hat = gw.forward(rng.standard_normal((8, 8, 8)))
        keep = u_hat.copy()
        with gw.scratch() as buf:
            gw.backward(u_hat, buf)
        assert np.array_equal(u_hat, keep)

    def test_vector_fields(self, rng):
        gw = SerialTransform(8, backend="cpu")
        U = rng.standard_normal((3, 8, 8, 8))
        U_hat = gw.forward(U)
        assert U_hat.shape == (3, 8, 8, 5)
        np.testing.assert_allclose(gw.to_physical(U_hat), U, atol=1e-12)
        np.testing.assert_allclose(U_hat[1], gw.forward(U[1]))

    def test_to_physical_reuses_scratch(self, rng):
        gw = SerialTransform(8, backend="cpu")
        u_hat = gw.forward(rng.standard_normal((8, 8, 8)))
        for _ in range(5):
            gw.to_physical(u_hat)
        assert gw.pool.allocated == 1

    def test_allreduce_is_identity(self):
        gw = SerialTransform(4, backend="cpu")
        assert gw.allreduce(2.5) == 2.5
        assert gw.is_root and gw.size == 1

    def test_float32(self, rng):
        gw = SerialTransform(8, backend="cpu", precision="float32")
        u = rng.standard_normal((8, 8, 8)).astype(np.float32)
        u_hat = gw.forward(u)
        assert u_hat.dtype == np.complex64
        np.testing.assert_allclose(gw.to_physical(u_hat), u, atol=1e-5)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            SerialTransform(8, backend="tpu")


class TestScratchPool:

    def test_returned_on_error(self):
        pool = ScratchPool(np, np.complex128)
        with pytest.raises(RuntimeError):
            with pool.acquire((2, 2)):
                raise RuntimeError("boom")
        with pool.acquire((2, 2)):
            pass
        assert pool.allocated == 1

    def test_nested_checkouts_are_distinct(self):
        pool = ScratchPool(np, np.complex128)
        with pool.acquire((4,)) as a, pool.acquire((4,)) as b:
            assert a is not b
        assert pool.allocated == 2


class TestBackend:

    def test_cpu(self):
        xp, name = get_xp("cpu")
        assert xp is np and name == "cpu"
        assert get_fft(name) is scipy.fft

    def test_unknown(self):
        with pytest.raises(ValueError, match="unknown backend"):
            get_xp("opencl")

    def test_gpu_without_cupy(self):
        if importlib.util.find_spec("cupy") is not None:
            pytest.skip("CuPy is installed")
        with pytest.raises(RuntimeError):
            get_xp("gpu")
        assert get_xp("auto") == (np, "cpu")
