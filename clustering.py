# Author      : Tyson Limato
# Date        : 2025-7-2
# File Name   : clustering.py
import logging

import numpy as np

from points import CentroidSet

logger = logging.getLogger(__name__)


# ------------------ Assignment Engine (CPU) ------------------
class AssignmentEngine:
    """
    Assigns every point of a local chunk to its nearest centroid.

    Runs identically on every rank (the coordinator included) and touches no
    shared state: the output only depends on the chunk and the centroids.

    Distances are plain Euclidean distances sqrt(dx**2 + dy**2). When two
    centroids are equally close, the one with the lower index wins.

    Parameters:
    -----------
    block_size : int
        Maximum number of points whose distance matrix is materialized at once.

    Methods:
    --------
    distances(chunk, centroids) -> np.ndarray
        (n, k) matrix of point-to-centroid distances.

    assign(chunk, centroids) -> np.ndarray
        float64 vector of nearest-centroid indices, one per point.
    """

    def __init__(self, block_size: int = 65536):
        if block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {block_size}")
        self.block_size = block_size

    def distances(self, chunk: np.ndarray, centroids: np.ndarray) -> np.ndarray:
        diffs = chunk[:, np.newaxis, :] - centroids[np.newaxis, :, :]
        return np.sqrt(np.sum(diffs ** 2, axis=2))

    def assign(self, chunk: np.ndarray, centroids) -> np.ndarray:
        centroids = _as_array(centroids)
        if len(centroids) == 0:
            raise ValueError("cannot assign points without centroids")

        out = np.empty(chunk.shape[0], dtype=np.float64)
        for start in range(0, chunk.shape[0], self.block_size):
            block = chunk[start:start + self.block_size]
            # argmin returns the first index of the minimum
            out[start:start + len(block)] = np.argmin(self.distances(block, centroids), axis=1)
        return out


# ------------------ Assignment Engine (GPU) ------------------
class AssignmentEngineGPU(AssignmentEngine):
    """
    Same assignment as ``AssignmentEngine`` with the distance matrix computed by CuPy.

    The local chunk is copied to the device once and reused every round; only
    the (k, 2) centroid array travels to the GPU per round.
    """

    def __init__(self, device: int = 0, block_size: int = 65536):
        super().__init__(block_size=block_size)
        import cupy as cp

        self.cp = cp
        num_gpus = cp.cuda.runtime.getDeviceCount()
        # one rank per device when there are enough GPUs, otherwise share them round robin
        self.device = device % num_gpus
        cp.cuda.Device(self.device).use()
        self._host_chunk = None
        self._device_chunk = None
        logger.info("Assigning on GPU %d of %d", self.device, num_gpus)

    def _chunk_on_device(self, chunk):
        if chunk is not self._host_chunk:
            self._device_chunk = self.cp.asarray(chunk)
            self._host_chunk = chunk
        return self._device_chunk

    def assign(self, chunk: np.ndarray, centroids) -> np.ndarray:
        cp = self.cp
        centroids = _as_array(centroids)
        if len(centroids) == 0:
            raise ValueError("cannot assign points without centroids")

        chunk_gpu = self._chunk_on_device(chunk)
        centroids_gpu = cp.asarray(centroids)
        out = np.empty(chunk.shape[0], dtype=np.float64)
        for start in range(0, chunk.shape[0], self.block_size):
            block = chunk_gpu[start:start + self.block_size]
            diffs = block[:, None, :] - centroids_gpu[None, :, :]
            dist = cp.sqrt(cp.sum(diffs ** 2, axis=2))
            out[start:start + block.shape[0]] = cp.asnumpy(cp.argmin(dist, axis=1))
        return out


def _as_array(centroids) -> np.ndarray:
    if isinstance(centroids, CentroidSet):
        return centroids.array
    return np.asarray(centroids, dtype=np.float64)


# ------------------ Convergence ------------------
class ConvergenceTracker:
    """
    Coordinator-side memory of the last gathered assignment vector.

    ``converged`` is True only when a previous vector exists and the new one is
    exactly equal to it, element by element (no tolerance).
    """

    def __init__(self):
        self.previous = None

    def changed_count(self, gathered: np.ndarray) -> int:
        """Number of points whose cluster differs from the previous round."""
        if self.previous is None:
            return len(gathered)
        return int(np.count_nonzero(self.previous != gathered))

    def converged(self, gathered: np.ndarray) -> bool:
        if self.previous is not None:
            if self.previous.shape != gathered.shape:
                raise ValueError(
                    f"assignment vector length changed from {self.previous.shape[0]} "
                    f"to {gathered.shape[0]}"
                )
            if np.array_equal(self.previous, gathered):
                return True
        self.previous = gathered.copy()
        return False


# ------------------ Centroid Updaters ------------------
class CentroidUpdater:
    """
    Recomputes centroids by folding assigned points in one at a time.

    Every centroid is first reset to (0, 0). Then, in dataset order, each point
    either becomes its centroid (when that centroid still reads (0, 0)) or moves
    the centroid to the midpoint between the old value and the point.

    This is not the arithmetic mean: later points weigh more than earlier ones,
    so the result depends on point order. ``MeanCentroidUpdater`` is the
    corrected variant.

    A centroid that receives no point stays at (0, 0).
    """

    name = "midpoint"

    def update(self, centroids: CentroidSet, points: np.ndarray, assignments: np.ndarray) -> np.ndarray:
        """
        Overwrite ``centroids`` in place.

        Parameters:
        -----------
        centroids : CentroidSet
            Stale centroids, cleared and refilled by this call.
        points : np.ndarray
            Dataset rows; only the first ``len(assignments)`` are used.
        assignments : np.ndarray
            Gathered float-encoded cluster index per point.

        Returns:
        --------
        np.ndarray
            Number of points assigned to each cluster.
        """
        labels = _labels(assignments, len(centroids))
        centroids.clear()

        cx = centroids.array[:, 0].tolist()
        cy = centroids.array[:, 1].tolist()
        for (x, y), c in zip(points[:len(labels)].tolist(), labels.tolist()):
            if cx[c] == 0.0 and cy[c] == 0.0:
                cx[c] = x
                cy[c] = y
            else:
                cx[c] = (x + cx[c]) / 2.0
                cy[c] = (y + cy[c]) / 2.0
        centroids.array[:, 0] = cx
        centroids.array[:, 1] = cy

        return np.bincount(labels, minlength=len(centroids))


class MeanCentroidUpdater(CentroidUpdater):
    """Corrected update: every centroid becomes the mean of its assigned points."""

    name = "mean"

    def update(self, centroids: CentroidSet, points: np.ndarray, assignments: np.ndarray) -> np.ndarray:
        k = len(centroids)
        labels = _labels(assignments, k)
        centroids.clear()

        counts = np.bincount(labels, minlength=k)
        sums = np.zeros((k, 2), dtype=np.float64)
        np.add.at(sums, labels, points[:len(labels)])
        filled = counts > 0
        centroids.array[filled] = sums[filled] / counts[filled, np.newaxis]
        return counts


UPDATE_RULES = {
    CentroidUpdater.name: CentroidUpdater,
    MeanCentroidUpdater.name: MeanCentroidUpdater,
}


def make_updater(rule: str) -> CentroidUpdater:
    try:
        return UPDATE_RULES[rule]()
    except KeyError:
        raise ValueError(
            f"unknown update rule {rule!r}, choose from {sorted(UPDATE_RULES)}"
        ) from None


def _labels(assignments: np.ndarray, k: int) -> np.ndarray:
    labels = np.asarray(assignments).astype(np.int64)
    if labels.size and (labels.min() < 0 or labels.max() >= k):
        raise ValueError(f"assignment indices must lie in [0, {k})")
    return labels
