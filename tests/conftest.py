"""Shared fixtures and an in-process stand-in for an MPI communicator."""
import functools
import operator
import threading

import numpy as np
import pytest

from spectralNS.grid import Wavenumbers
from spectralNS.transforms import SerialTransform


class _Group:
    def __init__(self, size):
        self.size = size
        self.slots = [None] * size
        self.barrier = threading.Barrier(size, timeout=60)


class ThreadComm:
    """Alltoall/allreduce between threads of one process, one thread per rank."""

    def __init__(self, group, rank):
        self.group = group
        self.rank = rank

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return self.group.size

    def Alltoall(self, send, recv):
        g = self.group
        g.slots[self.rank] = send
        g.barrier.wait()
        blk = send.shape[0] // g.size
        mine = slice(self.rank * blk, (self.rank + 1) * blk)
        for q in range(g.size):
            recv[q * blk:(q + 1) * blk] = g.slots[q][mine]
        g.barrier.wait()

    def allreduce(self, value):
        g = self.group
        g.slots[self.rank] = value
        g.barrier.wait()
        total = functools.reduce(operator.add, g.slots)
        g.barrier.wait()
        return total


def run_ranks(size, fn):
    """Call fn(comm) on ``size`` threads; return the per-rank results."""
    group = _Group(size)
    results = [None] * size
    errors = []

    def target(rank):
        try:
            results[rank] = fn(ThreadComm(group, rank))
        except BaseException as e:  # re-raised in the caller
            errors.append(e)
            group.barrier.abort()

    threads = [threading.Thread(target=target, args=(r,)) for r in range(size)]
    for th in threads:
        th.start()
    for th in threads:
        th.join()
    if errors:
        raise errors[0]
    return results


def solenoidal_field(n, seed=0, amplitude=1.0):
    """Random real, dealiased, divergence-free, zero-mean (u, v, w) on the n^3 grid."""
    rng = np.random.default_rng(seed)
    gw = SerialTransform(n, backend="cpu", workers=1)
    wn = Wavenumbers(n)
    U_hat = gw.forward(rng.standard_normal((3, n, n, n)))
    U_hat *= wn.dealias
    U_hat[:, 0, 0, 0] = 0
    kdotu = (wn.KX * U_hat[0] + wn.KY * U_hat[1] + wn.KZ * U_hat[2]) * wn.invK2
    U_hat[0] -= wn.KX * kdotu
    U_hat[1] -= wn.KY * kdotu
    U_hat[2] -= wn.KZ * kdotu
    U = gw.to_physical(U_hat)
    U *= amplitude / np.sqrt(np.mean(U**2))
    return U[0], U[1], U[2]


@pytest.fixture
def tgv_raw(tmp_path):
    from spectralNS.io import taylor_green_field, write_velocity_raw

    path = tmp_path / "tgv.raw"
    write_velocity_raw(path, *taylor_green_field(8))
    return path
