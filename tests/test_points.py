import numpy as np
import pytest

from points import CentroidSet, PointStore, chunk_bounds, chunk_size, distributed_size


@pytest.mark.parametrize("n,size", [(10, 1), (10, 3), (100000, 7), (5, 5), (3, 4)])
def test_distributed_portion_drops_remainder(n, size):
    assert distributed_size(n, size) == (n // size) * size
    bounds = [chunk_bounds(n, size, r) for r in range(size)]
    # contiguous, equal, and never past the distributed portion
    assert bounds[0][0] == 0
    for (a, b), (c, _) in zip(bounds, bounds[1:]):
        assert b == c
    assert all(b - a == chunk_size(n, size) for a, b in bounds)
    assert bounds[-1][1] == distributed_size(n, size)


def test_chunk_bounds_rejects_bad_rank():
    with pytest.raises(ValueError):
        chunk_bounds(10, 2, 2)
    with pytest.raises(ValueError):
        chunk_size(10, 0)


def test_point_store_is_read_only(square_points):
    store = PointStore(square_points)
    assert len(store) == 4
    np.testing.assert_array_equal(store[1], [10.0, 0.0])
    with pytest.raises(ValueError):
        store.points[0, 0] = 1.0


def test_point_store_distributed_points():
    store = PointStore([[i, i] for i in range(10)])
    assert store.distributed_size(3) == 9
    np.testing.assert_array_equal(store.distributed_points(3)[-1], [8.0, 8.0])


def test_point_store_shape_checked():
    with pytest.raises(ValueError):
        PointStore([[1.0, 2.0, 3.0]])
    assert len(PointStore([])) == 0


def test_centroid_set_clear():
    centroids = CentroidSet([[1.5, 2.0], [3.0, -4.0]])
    assert not centroids.is_cleared(0)
    centroids.clear()
    assert centroids.is_cleared(0) and centroids.is_cleared(1)
    np.testing.assert_array_equal(centroids.array, np.zeros((2, 2)))


def test_centroid_set_copies_input():
    src = np.array([[1.0, 1.0]])
    centroids = CentroidSet(src)
    centroids.clear()
    assert src[0, 0] == 1.0
    assert CentroidSet.empty(3).array.shape == (3, 2)
