# Author      : Tyson Limato
# Date        : 2025-7-3
# File Name   : data_io.py
import logging
import os

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from points import CentroidSet, PointStore

logger = logging.getLogger(__name__)


class DatasetLoadError(Exception):
    """The input file could not be read or does not hold 2-D points."""


def load_points(path: str) -> PointStore:
    """
    Load a 2-D dataset from a whitespace-separated text file.

    Rows with three or more fields carry a label in field 0, so the point is
    taken from fields 1 and 2. Rows with only two fields are the point itself
    (leading whitespace does not produce an empty field).

    Parameters:
    -----------
    path : str
        Path to the dataset file.

    Returns:
    --------
    PointStore
        The loaded points as float64.

    Raises:
    -------
    DatasetLoadError
        If the file is missing, empty, ragged, or holds non-numeric coordinates.
    """
    try:
        df = pd.read_csv(path, sep=r"\s+", header=None)
    except FileNotFoundError as e:
        raise DatasetLoadError(f"dataset file not found: {path}") from e
    except pd.errors.EmptyDataError as e:
        raise DatasetLoadError(f"dataset file is empty: {path}") from e
    except pd.errors.ParserError as e:
        raise DatasetLoadError(f"could not parse {path}: {e}") from e
    except OSError as e:
        raise DatasetLoadError(f"could not read {path}: {e}") from e

    if df.shape[1] >= 3:
        xy = df.iloc[:, 1:3]
    elif df.shape[1] == 2:
        xy = df.iloc[:, 0:2]
    else:
        raise DatasetLoadError(f"expected 2 or 3 columns in {path}, found {df.shape[1]}")

    xy = xy.apply(pd.to_numeric, errors="coerce")
    bad = xy.isna().any(axis=1)
    if bad.any():
        # 1-based row numbers, blank lines are not counted
        lines = (np.flatnonzero(bad.values) + 1).tolist()
        raise DatasetLoadError(f"malformed rows in {path}: {lines[:10]}")

    store = PointStore(xy.values)
    logger.info("Loaded %d points from %s", len(store), path)
    return store


def pick_initial_centroids(store: PointStore, k: int, rng=None) -> CentroidSet:
    """
    Pick ``k`` dataset points as starting centroids, each from a different index.

    Parameters:
    -----------
    store : PointStore
        Dataset to draw from.
    k : int
        Number of clusters.
    rng : np.random.Generator or int or None
        Random generator or seed.
    """
    if k < 1:
        raise ValueError(f"k must be >= 1, got {k}")
    if k > len(store):
        raise ValueError(f"cannot pick {k} distinct centroids from {len(store)} points")
    rng = np.random.default_rng(rng)
    idx = rng.choice(len(store), size=k, replace=False)
    return CentroidSet(store[idx])


def write_results(path: str, centroids, dataset):
    """
    Dump the final centroids followed by the dataset to a spreadsheet.

    Layout of the "Clusters" sheet: one (x, y) row per centroid, a single
    "dataset" marker row, then one (x, y) row per dataset point. A ``.csv``
    path writes the same rows as plain CSV.
    """
    centroids = centroids.array if isinstance(centroids, CentroidSet) else np.asarray(centroids)
    dataset = dataset.points if isinstance(dataset, PointStore) else np.asarray(dataset)

    rows = [[x, y] for x, y in centroids.tolist()]
    rows.append(["dataset", None])
    rows.extend([x, y] for x, y in dataset.tolist())
    df = pd.DataFrame(rows)

    if os.path.splitext(path)[1].lower() == ".csv":
        df.to_csv(path, header=False, index=False)
    else:
        df.to_excel(path, sheet_name="Clusters", header=False, index=False)
    logger.info("Wrote %d centroids and %d points to %s", len(centroids), len(dataset), path)


def plot_clusters(points, assignments, centroids, filename: str = 'clusters.png'):
    """Scatter the clustered points colored by cluster, with centroids marked by crosses."""
    centroids = centroids.array if isinstance(centroids, CentroidSet) else np.asarray(centroids)
    points = points.points if isinstance(points, PointStore) else np.asarray(points)
    labels = np.asarray(assignments).astype(np.int64)
    clustered = points[:len(labels)]

    fig, ax = plt.subplots(figsize=(8, 8))
    ax.scatter(clustered[:, 0], clustered[:, 1], c=labels, cmap='tab20', s=4)
    if len(points) > len(labels):
        # remainder left out of the distributed computation
        left_out = points[len(labels):]
        ax.scatter(left_out[:, 0], left_out[:, 1], c='lightgray', s=4, label='Not clustered')
        ax.legend(loc='upper right', fontsize='small')
    ax.scatter(centroids[:, 0], centroids[:, 1], c='black', marker='x', s=60)
    ax.set_xlabel('x')
    ax.set_ylabel('y')
    ax.set_title(f'{len(centroids)} Clusters')
    fig.tight_layout()
    fig.savefig(filename)
    plt.close(fig)
