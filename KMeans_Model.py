# Author      : Tyson Limato
# Date        : 2025-7-3
# File Name   : KMeans_Model.py
import logging
import time

import matplotlib.pyplot as plt
import numpy as np

from clustering import AssignmentEngine, AssignmentEngineGPU, ConvergenceTracker, make_updater
from mpiMGR import MPIManager
from points import CentroidSet, PointStore, chunk_bounds, distributed_size

logger = logging.getLogger(__name__)

# Values of the flag broadcast at the end of every round
KEEP_GOING = 0.0
STOP = 1.0

MAX_ITERATIONS = 400


class KMeansResult:
    """
    Outcome of a run, returned on every rank.

    ``assignments``, ``changed_per_round`` and ``empty_clusters`` are only
    filled on the coordinator. ``centroids`` is authoritative on the
    coordinator; the other ranks hold the copy from the last broadcast.
    """

    def __init__(self, centroids, assignments, rounds, converged, elapsed_ms,
                 round_times, changed_per_round, empty_clusters):
        self.centroids = centroids
        self.assignments = assignments
        self.rounds = rounds
        self.converged = converged
        self.elapsed_ms = elapsed_ms
        self.round_times = round_times
        self.changed_per_round = changed_per_round
        self.empty_clusters = empty_clusters

    def __repr__(self):
        return (f"KMeansResult(rounds={self.rounds}, converged={self.converged}, "
                f"elapsed_ms={self.elapsed_ms})")


# ------------------ Roles ------------------
class Worker:
    """Role of every non-coordinator rank: nothing to do between gather and barrier."""

    is_coordinator = False

    def check_and_update(self, gathered, centroids, flag):
        return None

    def empty_clusters(self):
        return None


class Coordinator(Worker):
    """
    Role of rank 0: owns the dataset, the convergence tracker and the centroid update.

    Parameters:
    -----------
    store : PointStore
        Full dataset.
    updater : CentroidUpdater
        Rule used to recompute centroids from a gathered assignment vector.
    """

    is_coordinator = True

    def __init__(self, store: PointStore, updater):
        self.store = store
        self.updater = updater
        self.tracker = ConvergenceTracker()
        self.counts = None

    def check_and_update(self, gathered, centroids, flag):
        """
        Compare ``gathered`` with the previous round, then either raise the stop
        flag or refresh ``centroids`` in place.

        Returns:
        --------
        int
            Number of points whose cluster changed this round.
        """
        changed = self.tracker.changed_count(gathered)
        if self.tracker.converged(gathered):
            flag[0] = STOP
        else:
            self.counts = self.updater.update(centroids, self.store.points, gathered)
        return changed

    def empty_clusters(self):
        if self.counts is None:
            return []
        return np.flatnonzero(self.counts == 0).tolist()


class DistributedKMeans:
    """
    K-means clustering of 2-D points across the ranks of an MPI communicator.

    Every rank runs ``fit`` with the same parameters. Each round:
        1) broadcast centroids from the coordinator
        2) assign the local chunk to the nearest centroids
        3) gather the local assignments on the coordinator
        4) coordinator only: stop if nothing changed, otherwise update the centroids
        5) decrement the iteration counter
        6) barrier
        7) broadcast the continue/stop flag

    Parameters:
    -----------
    mpi_mgr : MPIManager
        Collective operations wrapper (defaults to one over MPI.COMM_WORLD).
    update_rule : str
        "midpoint" (pairwise midpoint folding) or "mean" (arithmetic mean).
    max_iter : int
        Upper bound on the number of rounds.
    use_gpu : bool
        Compute the assignment with CuPy on the GPU matching this rank.

    Methods:
    --------
    fit(store, initial_centroids)   -- Run the rounds, return a KMeansResult.
    plot_round_stats(path)          -- Plot round times and changed points (coordinator).
    """

    def __init__(self, mpi_mgr=None, update_rule="midpoint", max_iter=MAX_ITERATIONS, use_gpu=False):
        if max_iter < 0:
            raise ValueError(f"max_iter must be >= 0, got {max_iter}")
        self.manager = mpi_mgr if mpi_mgr is not None else MPIManager()
        self.rank = self.manager.rank
        self.size = self.manager.size
        self.max_iter = max_iter
        self.updater = make_updater(update_rule)
        self.engine = AssignmentEngineGPU(device=self.rank) if use_gpu else AssignmentEngine()
        self.result = None

    def _setup(self, store, initial_centroids):
        """Share the problem shape, scatter the dataset and allocate centroid buffers."""
        mgr = self.manager
        if mgr.is_coordinator:
            try:
                if store is None or initial_centroids is None:
                    raise ValueError("the coordinator needs the dataset and the initial centroids")
                if isinstance(initial_centroids, CentroidSet):
                    initial_centroids = initial_centroids.array
                # private copy, the caller's centroids are never updated in place
                centroids = CentroidSet(initial_centroids)
            except ValueError as e:
                logger.error("Cannot start clustering: %s", e)
                if self.size > 1:
                    # the other ranks are already waiting for the problem shape
                    mgr.abort(1)
                raise
            role = Coordinator(store, self.updater)
            n, k = mgr.broadcast_shape(len(store), len(centroids))
            total = store.distributed_size(self.size)
            if total < n:
                logger.info("Dropping the last %d of %d points to split evenly across %d ranks",
                            n - total, n, self.size)
            if total == 0:
                logger.warning("%d points over %d ranks leaves every rank an empty chunk", n, self.size)
            sendbuf = store.distributed_points(self.size)
        else:
            n, k = mgr.broadcast_shape()
            centroids = CentroidSet.empty(k)
            role = Worker()
            total = distributed_size(n, self.size)
            sendbuf = None

        start, stop = chunk_bounds(n, self.size, self.rank)
        logger.debug("Rank %d owns points [%d, %d)", self.rank, start, stop)
        chunk = mgr.scatter_points(sendbuf, stop - start)
        return chunk, centroids, role, total

    def fit(self, store: PointStore = None, initial_centroids=None) -> KMeansResult:
        """
        Run the distributed convergence loop.

        Parameters:
        -----------
        store : PointStore
            Dataset, required on the coordinator and ignored elsewhere.
        initial_centroids : CentroidSet or array-like
            Starting centers, required on the coordinator and ignored elsewhere.

        Returns:
        --------
        KMeansResult
        """
        mgr = self.manager
        chunk, centroids, role, total = self._setup(store, initial_centroids)

        iterations_remaining = self.max_iter
        flag = np.array([KEEP_GOING], dtype=np.float64)
        rounds = 0
        round_times = []
        changed_per_round = []

        start = time.time()
        while iterations_remaining != 0 and flag[0] == KEEP_GOING:
            round_start = time.time()

            mgr.broadcast_centroids(centroids)
            local = self.engine.assign(chunk, centroids)
            gathered = mgr.gather_assignments(local, total)

            changed = role.check_and_update(gathered, centroids, flag)
            if role.is_coordinator:
                changed_per_round.append(changed)

            iterations_remaining -= 1
            rounds += 1
            mgr.barrier()
            mgr.broadcast_flag(flag)

            round_times.append(time.time() - round_start)
            if role.is_coordinator:
                logger.debug("Round %d: %d points changed cluster, t=%.4fs",
                             rounds, changed, round_times[-1])

        elapsed_ms = int((time.time() - start) * 1000)
        converged = bool(flag[0] == STOP)
        empty = role.empty_clusters()
        if role.is_coordinator:
            logger.info("Finished after %d rounds (%s) in %d ms", rounds,
                        "converged" if converged else "iteration cap reached", elapsed_ms)
            if empty:
                logger.warning("%d centroids received no points and stayed at the origin: %s",
                               len(empty), empty)

        self.result = KMeansResult(
            centroids=centroids,
            assignments=role.tracker.previous if role.is_coordinator else None,
            rounds=rounds,
            converged=converged,
            elapsed_ms=elapsed_ms,
            round_times=round_times,
            changed_per_round=changed_per_round if role.is_coordinator else None,
            empty_clusters=empty,
        )
        return self.result

    def plot_round_stats(self, filename: str = 'round_stats.png'):
        """
        Uses matplotlib to plot the number of points that changed cluster and
        the wall time of every round, and saves the figure to `filename`.
        """
        if self.result is None or self.result.changed_per_round is None:
            raise RuntimeError("round statistics are only available on the coordinator after fit()")

        rounds = list(range(1, self.result.rounds + 1))
        fig, ax1 = plt.subplots(figsize=(8, 5))

        # Changed assignments on left axis
        ax1.plot(rounds, self.result.changed_per_round,
                 label='Changed points', linestyle='-', marker='o')
        ax1.set_xlabel('Round')
        ax1.set_ylabel('Points that changed cluster')

        # Time on right axis
        ax2 = ax1.twinx()
        ax2.plot(rounds, self.result.round_times,
                 label='Time (s)', linestyle='--', marker='x')
        ax2.set_ylabel('Round Time (s)')

        # Combine legends
        lines1, labels1 = ax1.get_legend_handles_labels()
        lines2, labels2 = ax2.get_legend_handles_labels()
        ax1.legend(lines1 + lines2, labels1 + labels2, loc='upper right',
                   fontsize='small')

        plt.title('Changed Assignments & Time per Round')
        fig.tight_layout()
        fig.savefig(filename)
        plt.close(fig)
