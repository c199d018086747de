import threading

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


class _Group:
    def __init__(self, size, timeout):
        self.size = size
        self.barrier = threading.Barrier(size, timeout=timeout)
        self.slot = None
        self.parts = [None] * size
        self.calls = []


class ThreadComm:
    """
    In-process stand-in for an MPI communicator, one instance per rank, each
    rank running on its own thread. Implements the collectives used by
    MPIManager with the same buffer semantics as mpi4py.
    """

    def __init__(self, group, rank):
        self.group = group
        self.rank = rank

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return self.group.size

    def _record(self, name):
        if self.rank == 0:
            self.group.calls.append(name)

    def _wait(self):
        self.group.barrier.wait()

    def Barrier(self):
        self._record("Barrier")
        self._wait()

    def bcast(self, obj, root=0):
        self._record("bcast")
        if self.rank == root:
            self.group.slot = obj
        self._wait()
        value = self.group.slot
        self._wait()
        return value

    def Bcast(self, buf, root=0):
        self._record("Bcast")
        if self.rank == root:
            self.group.slot = np.array(buf, copy=True)
        self._wait()
        if self.rank != root:
            buf[...] = self.group.slot
        self._wait()

    def Scatter(self, sendbuf, recvbuf, root=0):
        self._record("Scatter")
        if self.rank == root:
            self.group.slot = np.array(sendbuf, copy=True)
        self._wait()
        n = recvbuf.shape[0]
        recvbuf[...] = self.group.slot[self.rank * n:(self.rank + 1) * n]
        self._wait()

    def Gather(self, sendbuf, recvbuf, root=0):
        self._record("Gather")
        self.group.parts[self.rank] = np.array(sendbuf, copy=True)
        self._wait()
        if self.rank == root:
            recvbuf[...] = np.concatenate(self.group.parts)
        self._wait()

    def Abort(self, errorcode=1):
        raise RuntimeError(f"Abort({errorcode})")


class RankRun:
    def __init__(self, results, calls):
        self.results = results
        self.calls = calls


def _run_ranks(size, fn, timeout=30):
    group = _Group(size, timeout)
    results = [None] * size
    errors = []

    def target(rank):
        try:
            results[rank] = fn(ThreadComm(group, rank))
        except BaseException as e:
            errors.append(e)
            group.barrier.abort()

    threads = [threading.Thread(target=target, args=(r,)) for r in range(size)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout)
    if errors:
        raise errors[0]
    return RankRun(results, group.calls)


@pytest.fixture
def run_ranks():
    """Run ``fn(comm)`` on ``size`` thread ranks and collect the per-rank return values."""
    return _run_ranks


@pytest.fixture
def square_points():
    return np.array([[0.0, 0.0], [10.0, 0.0], [0.0, 10.0], [10.0, 10.0]])


@pytest.fixture
def blobs():
    rng = np.random.default_rng(7)
    centers = np.array([[0.0, 0.0], [50.0, 50.0], [100.0, 0.0]])
    pts = np.vstack([c + rng.normal(scale=5.0, size=(20, 2)) for c in centers])
    rng.shuffle(pts)
    return np.round(pts)
