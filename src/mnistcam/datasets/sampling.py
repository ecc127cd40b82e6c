"""
Permutation-based cyclic sampling over a fixed partition.

Each partition (train or test) owns one shuffled permutation of its local
indices, generated once, plus a cursor into that permutation. Rows are served
in permutation order and the cursor wraps around forever; the permutation is
never reshuffled on wrap.

    >>> rng = np.random.default_rng(0)
    >>> cur = PartitionCursor(create_shuffled_indices(3, rng))
    >>> sorted(cur.next_index() for _ in range(3))
    [0, 1, 2]
    >>> cur.cursor
    0
"""
from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from mnistcam.datasets.base import Batch

IndexArray = NDArray[np.int64]


def create_shuffled_indices(n: int, rng: np.random.Generator) -> IndexArray:
    """Return a uniformly random permutation of ``0..n-1`` (int64).

    Raises:
      ValueError: If `n` is negative.
    """
    if n < 0:
        raise ValueError(f"n must be >= 0; got {n}")
    return rng.permutation(n).astype(np.int64, copy=False)


@dataclass(slots=True)
class PartitionCursor:
    """
    A partition's shuffle permutation and the next slot to serve.

    Attributes:
      indices: Permutation of the partition-local indices.
      cursor: Next slot of `indices` to serve; always in ``[0, len(indices))``.
    """
    indices: IndexArray
    cursor: int = 0

    def __len__(self) -> int:
        return int(self.indices.shape[0])

    def next_index(self) -> int:
        """Return the entry under the cursor, then advance it cyclically."""
        n = len(self)
        if n == 0:
            raise ValueError("Cannot sample from an empty partition.")
        idx = int(self.indices[self.cursor])
        self.cursor = (self.cursor + 1) % n
        return idx

    def reset(self) -> None:
        self.cursor = 0


def gather_batch(
    images: NDArray[np.float32],
    labels: NDArray[np.uint8],
    cursor: PartitionCursor,
    batch_size: int,
    *,
    image_size: int,
    num_classes: int,
) -> Batch:
    """
    Copy `batch_size` rows, picked by successive cursor steps, into a new batch.

    `images` and `labels` are the partition's flat buffers (row-major, one row
    of `image_size` floats / `num_classes` bytes per element). `batch_size` may
    exceed the partition length since the cursor wraps.

    Args:
      images: Flat float32 buffer of length ``n * image_size``.
      labels: Flat uint8 buffer of length ``n * num_classes``.
      cursor: The partition's cursor; advanced by exactly `batch_size` steps.
      batch_size: Number of rows to draw; must be >= 1.
      image_size: Number of pixels per element.
      num_classes: One-hot label width.

    Returns:
      Batch with ``xs`` float32 ``(batch_size, image_size)`` and ``labels``
      uint8 ``(batch_size, num_classes)``. Both are fresh arrays owned by the caller.

    Raises:
      ValueError: If `batch_size` < 1 or the partition is empty.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1; got {batch_size}")

    xs = np.empty((batch_size, image_size), dtype=np.float32)
    ys = np.empty((batch_size, num_classes), dtype=np.uint8)

    for i in range(batch_size):
        idx = cursor.next_index()
        xs[i] = images[idx * image_size:(idx + 1) * image_size]
        ys[i] = labels[idx * num_classes:(idx + 1) * num_classes]

    return Batch(xs=xs, labels=ys)


def split_partition(
    images: NDArray[np.float32],
    labels: NDArray[np.uint8],
    num_train: int,
    *,
    image_size: int,
    num_classes: int,
) -> tuple[tuple[NDArray[np.float32], NDArray[np.uint8]], tuple[NDArray[np.float32], NDArray[np.uint8]]]:
    """Split flat image/label buffers into ``(train, test)`` pairs; train rows come first.

    The returned slices are copies, so the partitions never alias the source buffers.
    """
    img_cut = num_train * image_size
    lbl_cut = num_train * num_classes
    train = (images[:img_cut].copy(), labels[:lbl_cut].copy())
    test = (images[img_cut:].copy(), labels[lbl_cut:].copy())
    return train, test
