# Author      : Tyson Limato
# Date        : 2025-7-2
# File Name   : points.py
import numpy as np


# ------------------ Partitioner ------------------
def chunk_size(n: int, size: int) -> int:
    """Number of points every rank owns. The last ``n % size`` points are left out."""
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")
    return n // size


def distributed_size(n: int, size: int) -> int:
    """Length of the portion of the dataset that takes part in the clustering."""
    return chunk_size(n, size) * size


def chunk_bounds(n: int, size: int, rank: int):
    """Half-open ``(start, stop)`` index range of the chunk owned by ``rank``."""
    if not 0 <= rank < size:
        raise ValueError(f"rank {rank} is outside of a group of size {size}")
    per = chunk_size(n, size)
    return rank * per, (rank + 1) * per


# ------------------ Dataset ------------------
class PointStore:
    """
    Read-only container for the full 2-D dataset.

    Only the coordinator holds a populated store; the other ranks only ever see
    the chunk scattered to them.

    Parameters:
    -----------
    points : array-like
        Sequence of (x, y) pairs. Copied into a float64 array of shape (n, 2)
        that is flagged read-only.
    """

    def __init__(self, points):
        arr = np.array(points, dtype=np.float64)
        if arr.size == 0:
            arr = arr.reshape(0, 2)
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise ValueError(f"points must have shape (n, 2), got {arr.shape}")
        arr.setflags(write=False)
        self.points = arr

    def __len__(self):
        return self.points.shape[0]

    def __getitem__(self, idx):
        return self.points[idx]

    def distributed_size(self, size: int) -> int:
        return distributed_size(len(self), size)

    def distributed_points(self, size: int) -> np.ndarray:
        """The contiguous prefix that gets scattered across ``size`` ranks."""
        return self.points[:self.distributed_size(size)]


# ------------------ Centroids ------------------
class CentroidSet:
    """
    Ordered, fixed-length set of cluster centers.

    The underlying ``array`` is the buffer that gets broadcast every round, so
    it is always a C-contiguous float64 array of shape (k, 2).
    """

    def __init__(self, centroids):
        arr = np.array(centroids, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] != 2:
            raise ValueError(f"centroids must have shape (k, 2), got {arr.shape}")
        self.array = np.ascontiguousarray(arr)

    @classmethod
    def empty(cls, k: int):
        """Receive buffer for ranks that get their centroids by broadcast."""
        return cls(np.zeros((k, 2), dtype=np.float64))

    def __len__(self):
        return self.array.shape[0]

    def __getitem__(self, idx):
        return self.array[idx]

    def clear(self):
        """Reset every centroid to the origin."""
        self.array[:] = 0.0

    def is_cleared(self, idx: int) -> bool:
        return self.array[idx, 0] == 0.0 and self.array[idx, 1] == 0.0

    def __repr__(self):
        return f"CentroidSet(k={len(self)})"
