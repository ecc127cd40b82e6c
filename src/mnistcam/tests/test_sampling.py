import numpy as np
import pytest

from mnistcam.datasets.sampling import (
    PartitionCursor,
    create_shuffled_indices,
    gather_batch,
    split_partition,
)


@pytest.mark.parametrize("n", [0, 1, 7, 834])
def test_shuffled_indices_is_bijection(n: int) -> None:
    idx = create_shuffled_indices(n, np.random.default_rng(0))
    assert idx.shape == (n,)
    assert idx.dtype == np.int64
    assert sorted(idx.tolist()) == list(range(n))


def test_shuffled_indices_negative_raises() -> None:
    with pytest.raises(ValueError):
        create_shuffled_indices(-1, np.random.default_rng(0))


def test_cursor_serves_then_advances() -> None:
    cur = PartitionCursor(np.array([2, 0, 1], dtype=np.int64))
    assert cur.next_index() == 2
    assert cur.cursor == 1


def test_cursor_wraps_after_full_pass() -> None:
    cur = PartitionCursor(np.array([4, 2, 3, 0, 1], dtype=np.int64), cursor=2)
    first = [cur.next_index() for _ in range(len(cur))]
    assert cur.cursor == 2
    second = [cur.next_index() for _ in range(len(cur))]
    assert first == second == [3, 0, 1, 4, 2]


def test_cursor_empty_partition_raises() -> None:
    cur = PartitionCursor(np.array([], dtype=np.int64))
    with pytest.raises(ValueError):
        cur.next_index()


def test_cursor_reset() -> None:
    cur = PartitionCursor(np.arange(3, dtype=np.int64))
    cur.next_index()
    cur.reset()
    assert cur.cursor == 0


def _buffers(n: int = 5, d: int = 3, k: int = 2):
    images = np.arange(n * d, dtype=np.float32)
    labels = np.zeros(n * k, dtype=np.uint8)
    labels[np.arange(n) * k + (np.arange(n) % k)] = 1
    return images, labels


def test_gather_batch_copies_rows_in_permutation_order() -> None:
    images, labels = _buffers()
    cur = PartitionCursor(np.array([3, 1, 4, 0, 2], dtype=np.int64))
    xs, ys = gather_batch(images, labels, cur, 2, image_size=3, num_classes=2)

    assert xs.shape == (2, 3) and ys.shape == (2, 2)
    assert xs[0].tolist() == [9.0, 10.0, 11.0]
    assert xs[1].tolist() == [3.0, 4.0, 5.0]
    assert ys.tolist() == [[0, 1], [0, 1]]
    assert cur.cursor == 2


def test_gather_batch_is_independent_of_source() -> None:
    images, labels = _buffers()
    cur = PartitionCursor(np.arange(5, dtype=np.int64))
    xs, _ = gather_batch(images, labels, cur, 1, image_size=3, num_classes=2)
    xs[0, 0] = -1.0
    assert images[0] == 0.0


def test_gather_batch_rejects_non_positive_size() -> None:
    images, labels = _buffers()
    cur = PartitionCursor(np.arange(5, dtype=np.int64))
    with pytest.raises(ValueError):
        gather_batch(images, labels, cur, 0, image_size=3, num_classes=2)
    assert cur.cursor == 0


def test_split_partition_sizes() -> None:
    images, labels = _buffers(n=6)
    (tx, ty), (vx, vy) = split_partition(images, labels, 5, image_size=3, num_classes=2)
    assert tx.shape == (15,) and ty.shape == (10,)
    assert vx.shape == (3,) and vy.shape == (2,)
    assert vx.tolist() == [15.0, 16.0, 17.0]
    assert not np.shares_memory(tx, images)


def test_split_matches_reference_scenario() -> None:
    import math

    total = 65000
    train = math.floor(5 / 6 * total)
    assert train == 54166
    assert total - train == 10834
