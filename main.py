# ------------------------------------------------------------
# Author      : Tyson Limato
# Date        : 2025-7-3
# File Name   : main.py
# Description : Distributed k-means clustering of a 2-D dataset. Rank 0 loads
#               the points and picks the starting centroids, the dataset is
#               scattered in equal chunks, and every round the ranks assign
#               their chunk to the nearest centroid while rank 0 checks for
#               convergence and moves the centroids.
#
# Usage       : mpirun -np 4 python main.py --input s2.txt -k 15
#               python main.py --input s2.txt -k 15       (single rank)
#               python example_data_generator.py          (writes s2.txt)
#
# Dependencies:
#   See pyproject.toml. The large dependencies are below.
#       - mpi4py (needs an MPI runtime, e.g. OpenMPI or MPICH)
#       - numpy
#       - pandas + openpyxl
#       - matplotlib
#       - cupy (optional, only for --gpu)
# ------------------------------------------------------------
import argparse
import logging
import sys

from data_io import DatasetLoadError, load_points, pick_initial_centroids, plot_clusters, write_results
from clustering import UPDATE_RULES
from KMeans_Model import MAX_ITERATIONS, DistributedKMeans
from mpiMGR import MPIManager

logger = logging.getLogger(__name__)

DEFAULT_INPUT = "s2.txt"
DEFAULT_CLUSTERS = 100


def build_parser():
    parser = argparse.ArgumentParser(description="Distributed k-means over MPI")
    parser.add_argument('--input', '-i', type=str, default=DEFAULT_INPUT,
                        help="whitespace-separated dataset file")
    parser.add_argument('--clusters', '-k', type=int, default=DEFAULT_CLUSTERS)
    parser.add_argument('--max-iter', type=int, default=MAX_ITERATIONS)
    parser.add_argument('--seed', type=int, default=None,
                        help="seed for picking the initial centroids")
    parser.add_argument('--update-rule', type=str, default="midpoint",
                        choices=sorted(UPDATE_RULES))
    parser.add_argument('--gpu', action='store_true')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help="write centroids and dataset to this .xlsx (or .csv) file")
    parser.add_argument('--plot', type=str, default=None,
                        help="prefix for the round statistics and cluster plots")
    parser.add_argument('--log-level', type=str, default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def configure_logging(level: str, rank: int):
    logging.basicConfig(
        level=getattr(logging, level),
        format=f"%(asctime)s [rank {rank}] %(levelname)s %(name)s: %(message)s",
    )


def main(argv=None, mpi_mgr=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.clusters < 1:
        parser.error("--clusters must be at least 1")
    if args.max_iter < 0:
        parser.error("--max-iter must not be negative")

    mpi_mgr = mpi_mgr if mpi_mgr is not None else MPIManager()
    configure_logging(args.log_level, mpi_mgr.rank)

    store = centroids = None
    if mpi_mgr.is_coordinator:
        try:
            store = load_points(args.input)
            centroids = pick_initial_centroids(store, args.clusters, args.seed)
        except (DatasetLoadError, ValueError) as e:
            logger.error("Cannot start clustering: %s", e)
            if mpi_mgr.size > 1:
                # the other ranks are already blocked in the first collective
                mpi_mgr.abort(1)
            return 1
        logger.info("Clustering %d points into %d clusters on %d ranks",
                    len(store), args.clusters, mpi_mgr.size)

    model = DistributedKMeans(mpi_mgr=mpi_mgr, update_rule=args.update_rule,
                              max_iter=args.max_iter, use_gpu=args.gpu)
    result = model.fit(store, centroids)

    if mpi_mgr.is_coordinator:
        print(f"current result in millis: {result.elapsed_ms}")
        if args.output:
            write_results(args.output, result.centroids, store)
        if args.plot and result.assignments is not None:
            model.plot_round_stats(f"{args.plot}_rounds.png")
            plot_clusters(store, result.assignments, result.centroids, f"{args.plot}_clusters.png")
    return 0


if __name__ == "__main__":
    sys.exit(main())
