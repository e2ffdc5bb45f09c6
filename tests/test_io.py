"""Raw velocity files and grid size detection."""
import numpy as np
import pytest

from spectralNS.errors import ConfigurationError
from spectralNS.io import (
    grid_size_from_bytes,
    read_velocity_raw,
    taylor_green_field,
    write_velocity_raw,
)


def test_write_then_read(tmp_path):
    rng = np.random.default_rng(0)
    u, v, w = rng.standard_normal((3, 6, 6, 6))
    path = tmp_path / "f.raw"
    write_velocity_raw(path, u, v, w)
    assert path.stat().st_size == 3 * 6**3 * 8

    n, u2, v2, w2 = read_velocity_raw(path)
    assert n == 6
    assert np.array_equal(u, u2) and np.array_equal(v, v2) and np.array_equal(w, w2)


def test_layout_is_x_slowest(tmp_path):
    n = 4
    u = np.arange(n**3, dtype=np.float64).reshape(n, n, n)
    path = tmp_path / "f.raw"
    write_velocity_raw(path, u, -u, 0 * u)
    raw = np.fromfile(path, dtype=np.float64)
    # u[i, j, k] sits at (i*n + j)*n + k, v follows after n^3 values
    assert raw[(1 * n + 2) * n + 3] == u[1, 2, 3]
    assert raw[n**3 + 5] == -5.0


@pytest.mark.parametrize("n", [2, 8, 32])
def test_grid_size(n):
    assert grid_size_from_bytes(3 * n**3 * 8) == n


@pytest.mark.parametrize("nbytes", [
    0,
    3 * 8**3 * 8 + 8,   # trailing value
    3 * 10 * 8,         # 10 is not a cube
    3 * 5**3 * 8,       # odd side
    4 * 8**3 * 8,       # four fields
])
def test_bad_sizes(nbytes):
    with pytest.raises(ConfigurationError):
        grid_size_from_bytes(nbytes)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="fail to open"):
        read_velocity_raw(tmp_path / "nope.raw")


def test_malformed_file(tmp_path):
    path = tmp_path / "bad.raw"
    path.write_bytes(b"\0" * 100)
    with pytest.raises(ConfigurationError, match="wrong file"):
        read_velocity_raw(path)


def test_taylor_green_field():
    u, v, w = taylor_green_field(8)
    assert u.shape == (8, 8, 8)
    assert u[0, 0, 0] == 0.0 and v[0, 0, 0] == -0.0
    assert u[2, 0, 0] == pytest.approx(1.0)
    assert not w.any()
    assert 0.5 * np.mean(u**2 + v**2 + w**2) == pytest.approx(0.125)
