# Author      : Tyson Limato
# Date        : 2025-7-2
# File Name   : mpiMGR.py
import numpy as np

COORDINATOR = 0


class MPIManager:
    """
    A utility class to handle the collective operations of the distributed k-means using `mpi4py`.

    All ranks must call the collective methods in the same order; each one
    blocks until every rank of the communicator has taken part.

    Parameters:
    -----------
    comm : MPI.Comm
        Communicator to run on (default is MPI.COMM_WORLD).

    Methods:
    --------
    broadcast_shape(n, k)
        Shares the dataset length and cluster count known by the coordinator.

    scatter_points(points, per_rank)
        Hands every rank its contiguous chunk of the dataset.

    broadcast_centroids(centroids)
        Overwrites every rank's centroid buffer with the coordinator's.

    gather_assignments(local, total)
        Concatenates the local assignment vectors on the coordinator in rank order.

    barrier()
        Waits until every rank arrives.

    broadcast_flag(flag)
        Shares the coordinator's continue/stop scalar.
    """

    def __init__(self, comm=None):
        # Initialize the MPI communicator
        if comm is None:
            from mpi4py import MPI

            comm = MPI.COMM_WORLD
        self.comm = comm
        # Get the rank (ID) of the current process
        self.rank = self.comm.Get_rank()
        # Get the total number of processes
        self.size = self.comm.Get_size()

    @property
    def is_coordinator(self) -> bool:
        return self.rank == COORDINATOR

    def broadcast_shape(self, n=None, k=None):
        """
        Broadcast the dataset length and cluster count from the coordinator so
        that every rank can allocate its receive buffers.

        Returns:
        --------
        tuple (n, k)
        """
        return self.comm.bcast((n, k) if self.is_coordinator else None, root=COORDINATOR)

    def scatter_points(self, points, per_rank: int) -> np.ndarray:
        """
        Scatter equal, contiguous chunks of ``points`` from the coordinator.

        Parameters:
        -----------
        points : np.ndarray or None
            Distributed portion of the dataset on the coordinator, exactly
            ``per_rank * size`` rows. Ignored on the other ranks.
        per_rank : int
            Chunk length, identical on every rank.

        Returns:
        --------
        np.ndarray
            This rank's (per_rank, 2) chunk.
        """
        chunk = np.empty((per_rank, 2), dtype=np.float64)
        sendbuf = None
        if self.is_coordinator:
            sendbuf = np.ascontiguousarray(points, dtype=np.float64)
        self.comm.Scatter(sendbuf, chunk, root=COORDINATOR)
        return chunk

    def broadcast_centroids(self, centroids):
        """Broadcast the centroid buffer in place from the coordinator to all ranks."""
        self.comm.Bcast(centroids.array, root=COORDINATOR)
        return centroids

    def gather_assignments(self, local: np.ndarray, total: int):
        """
        Gather local assignment vectors in rank order.

        Returns:
        --------
        np.ndarray or None
            The full vector of length ``total`` on the coordinator, None elsewhere.
        """
        full = np.empty(total, dtype=np.float64) if self.is_coordinator else None
        self.comm.Gather(np.ascontiguousarray(local, dtype=np.float64), full, root=COORDINATOR)
        return full

    def barrier(self):
        self.comm.Barrier()

    def broadcast_flag(self, flag: np.ndarray) -> np.ndarray:
        """Broadcast the one-element continue/stop flag in place."""
        self.comm.Bcast(flag, root=COORDINATOR)
        return flag

    def abort(self, errorcode: int = 1):
        self.comm.Abort(errorcode)
