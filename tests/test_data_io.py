import numpy as np
import pandas as pd
import pytest

from data_io import DatasetLoadError, load_points, pick_initial_centroids, plot_clusters, write_results
from example_data_generator import generate_cluster_data
from points import PointStore


def write(tmp_path, text, name="points.txt"):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


def test_load_skips_label_column(tmp_path):
    store = load_points(write(tmp_path, "a 1 2\nb 3 4\nc 5 6\n"))
    np.testing.assert_array_equal(store.points, [[1.0, 2.0], [3.0, 4.0], [5.0, 6.0]])


def test_load_two_column_rows_with_leading_whitespace(tmp_path):
    store = load_points(write(tmp_path, "    845753    636607\n    812954    643720\n"))
    np.testing.assert_array_equal(store.points, [[845753.0, 636607.0], [812954.0, 643720.0]])


def test_missing_file(tmp_path):
    with pytest.raises(DatasetLoadError):
        load_points(str(tmp_path / "nope.txt"))


def test_empty_file(tmp_path):
    with pytest.raises(DatasetLoadError):
        load_points(write(tmp_path, ""))


def test_non_numeric_coordinates(tmp_path):
    with pytest.raises(DatasetLoadError, match=r"\[2\]"):
        load_points(write(tmp_path, "0 1 2\n0 x 4\n0 5 6\n"))


def test_single_column(tmp_path):
    with pytest.raises(DatasetLoadError):
        load_points(write(tmp_path, "1\n2\n"))


def test_initial_centroids_are_distinct_dataset_points():
    store = PointStore([[i, 0] for i in range(50)])
    centroids = pick_initial_centroids(store, 20, rng=1)
    xs = centroids.array[:, 0].tolist()
    assert len(set(xs)) == 20
    assert all(x in range(50) for x in xs)
    np.testing.assert_array_equal(centroids.array, pick_initial_centroids(store, 20, rng=1).array)


def test_initial_centroids_use_every_point_when_k_equals_n():
    store = PointStore([[1, 1], [1, 1], [2, 2]])
    centroids = pick_initial_centroids(store, 3, rng=0)
    assert sorted(centroids.array[:, 0].tolist()) == [1.0, 1.0, 2.0]


@pytest.mark.parametrize("k", [0, 4])
def test_initial_centroids_bad_k(k):
    with pytest.raises(ValueError):
        pick_initial_centroids(PointStore([[0, 0], [1, 1], [2, 2]]), k)


def test_write_results_xlsx(tmp_path, square_points):
    path = str(tmp_path / "result.xlsx")
    write_results(path, [[5.0, 5.0], [10.0, 10.0]], PointStore(square_points))
    df = pd.read_excel(path, sheet_name="Clusters", header=None)
    assert len(df) == 2 + 1 + 4
    assert df.iloc[2, 0] == "dataset"
    assert float(df.iloc[0, 0]) == 5.0
    assert float(df.iloc[6, 1]) == 10.0


def test_write_results_csv(tmp_path, square_points):
    path = str(tmp_path / "result.csv")
    write_results(path, np.array([[5.0, 5.0]]), square_points)
    lines = (tmp_path / "result.csv").read_text().splitlines()
    assert lines[0] == "5.0,5.0"
    assert lines[1] == "dataset,"
    assert len(lines) == 6


def test_plot_clusters(tmp_path, square_points):
    path = tmp_path / "clusters.png"
    plot_clusters(square_points, np.array([0.0, 0.0, 1.0]), [[0.0, 0.0], [10.0, 10.0]], str(path))
    assert path.exists() and path.stat().st_size > 0


def test_generated_data_loads(tmp_path):
    path = str(tmp_path / "s2.txt")
    rows = generate_cluster_data(num_clusters=3, points_per_cluster=10, filename=path, seed=4)
    store = load_points(path)
    assert len(store) == 30
    np.testing.assert_array_equal(store.points, [[x, y] for _, x, y in rows])
