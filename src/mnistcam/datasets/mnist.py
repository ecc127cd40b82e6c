"""
MNIST sprite-sheet loader serving shuffled mini-batches.

This module exposes a single entry point, :class:`MnistData`, that downloads a
sprite atlas (one 784-pixel digit per PNG row) together with a parallel blob of
one-hot labels (10 bytes per digit), splits both into train/test partitions and
serves shuffled batches from either partition.

Quickstart
----------
Load the hosted dataset and draw a batch:

    >>> from mnistcam.datasets.mnist import MnistData
    >>> data = MnistData(random_state=0)
    >>> await data.load()            # or data.load_sync() outside an event loop
    >>> xs, labels = data.next_train_batch(64)
    >>> xs.shape, labels.shape
    ((64, 784), (64, 10))
    >>> xs.dtype, labels.dtype
    (dtype('float32'), dtype('uint8'))

Local copies work the same way:

    >>> data = MnistData(images_source="mnist_images.png",
    ...                  labels_source="mnist_labels_uint8")

Sampling
--------
Each partition owns one permutation generated at load time. Batches walk that
permutation with a cursor that wraps around indefinitely, so a batch size that
does not divide the partition simply continues into the next pass. The
permutation is not reshuffled on wrap.

Registry integration
--------------------
The class is registered under ``"mnist_sprite"`` and can be built via
``create_dataset("mnist_sprite", random_state=...)``.

API at a glance
---------------
class MnistData:
    - Attributes
        * name: "mnist_sprite"
        * images_source / labels_source: URL or path
        * num_elements, image_size, num_classes, train_test_ratio, chunk_size
        * random_state: int | None
    - Methods
        * await load() -> None
        * next_train_batch(batch_size) -> Batch
        * next_test_batch(batch_size) -> Batch

Raises
------
- ``ResourceUnavailableError``: when either resource cannot be fetched.
- ``ValueError``: when the resources do not match the configured sizes.
- ``RuntimeError``: when batches are requested before ``load()`` completed.
"""
from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass, field
from pathlib import Path

import httpx
import numpy as np
from loguru import logger
from numpy.typing import NDArray

from mnistcam.datasets.base import Batch, Split
from mnistcam.datasets.fetch import decode_labels, fetch_bytes, fetch_image_rows
from mnistcam.datasets.sampling import (
    PartitionCursor,
    create_shuffled_indices,
    gather_batch,
    split_partition,
)
from mnistcam.registry import register_dataset

IMAGE_SIZE = 784
NUM_CLASSES = 10
NUM_DATASET_ELEMENTS = 65000

TRAIN_TEST_RATIO = 5 / 6

NUM_TRAIN_ELEMENTS = math.floor(TRAIN_TEST_RATIO * NUM_DATASET_ELEMENTS)
NUM_TEST_ELEMENTS = NUM_DATASET_ELEMENTS - NUM_TRAIN_ELEMENTS

CHUNK_SIZE = 5000

MNIST_IMAGES_SPRITE_PATH = (
    "https://storage.googleapis.com/learnjs-data/model-builder/mnist_images.png"
)
MNIST_LABELS_PATH = (
    "https://storage.googleapis.com/learnjs-data/model-builder/mnist_labels_uint8"
)


@dataclass(slots=True)
class _Partition:
    images: NDArray[np.float32]
    labels: NDArray[np.uint8]
    cursor: PartitionCursor


@register_dataset("mnist_sprite")
@dataclass(slots=True)
class MnistData:
    """
    Sprite-sheet MNIST loader with per-partition shuffled cyclic sampling.

    Attributes:
      name: Dataset name (constant).
      images_source: URL or path of the PNG atlas.
      labels_source: URL or path of the one-hot label blob.
      num_elements: Total number of digits in the atlas.
      image_size: Pixels per digit (atlas width).
      num_classes: One-hot label width.
      train_test_ratio: Fraction of elements (from the front) used for training.
      chunk_size: Atlas rows decoded at a time.
      random_state: Seed for the shuffle permutations; None draws fresh entropy.
      timeout: Per-request timeout in seconds for URL sources; None waits indefinitely.
    """
    # Class metadata
    name: str = "mnist_sprite"

    # Configuration
    images_source: str | Path = MNIST_IMAGES_SPRITE_PATH
    labels_source: str | Path = MNIST_LABELS_PATH
    num_elements: int = NUM_DATASET_ELEMENTS
    image_size: int = IMAGE_SIZE
    num_classes: int = NUM_CLASSES
    train_test_ratio: float = TRAIN_TEST_RATIO
    chunk_size: int = CHUNK_SIZE
    random_state: int | None = None
    timeout: float | None = None

    # State populated by load()
    _train: _Partition | None = field(default=None, init=False, repr=False)
    _test: _Partition | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not 0.0 < self.train_test_ratio < 1.0:
            raise ValueError(f"train_test_ratio must be in (0, 1); got {self.train_test_ratio}")
        if self.num_elements <= 0 or self.image_size <= 0 or self.num_classes <= 0:
            raise ValueError("num_elements, image_size and num_classes must be positive")

    # -- Sizes
    @property
    def num_train_elements(self) -> int:
        return math.floor(self.train_test_ratio * self.num_elements)

    @property
    def num_test_elements(self) -> int:
        return self.num_elements - self.num_train_elements

    @property
    def is_loaded(self) -> bool:
        return self._train is not None and self._test is not None

    # -- Public API
    async def load(self, *, client: httpx.AsyncClient | None = None) -> None:
        """Fetch both resources concurrently, then build partitions and permutations.

        Calling it again re-fetches everything and resets both cursors.

        Args:
          client: Optional shared ``httpx.AsyncClient`` for URL sources.

        Raises:
          ResourceUnavailableError: If either resource cannot be retrieved.
          ValueError: If the resources do not match the configured sizes.
        """
        logger.info("Loading {} elements from {} / {}",
                    self.num_elements, self.images_source, self.labels_source)

        images, label_bytes = await asyncio.gather(
            fetch_image_rows(
                self.images_source,
                num_elements=self.num_elements,
                image_size=self.image_size,
                chunk_size=self.chunk_size,
                client=client,
                timeout=self.timeout,
            ),
            fetch_bytes(self.labels_source, client=client, timeout=self.timeout),
        )
        labels = decode_labels(
            label_bytes, num_elements=self.num_elements, num_classes=self.num_classes
        )

        rng = np.random.default_rng(self.random_state)
        train_indices = create_shuffled_indices(self.num_train_elements, rng)
        test_indices = create_shuffled_indices(self.num_test_elements, rng)

        (train_x, train_y), (test_x, test_y) = split_partition(
            images,
            labels,
            self.num_train_elements,
            image_size=self.image_size,
            num_classes=self.num_classes,
        )
        self._train = _Partition(train_x, train_y, PartitionCursor(train_indices))
        self._test = _Partition(test_x, test_y, PartitionCursor(test_indices))
        logger.info("Loaded train={} test={}", self.num_train_elements, self.num_test_elements)

    def load_sync(self) -> None:
        """Run :meth:`load` to completion from synchronous code."""
        asyncio.run(self.load())

    def next_train_batch(self, batch_size: int) -> Batch:
        return self.next_batch("train", batch_size)

    def next_test_batch(self, batch_size: int) -> Batch:
        return self.next_batch("test", batch_size)

    def next_batch(self, split: Split, batch_size: int) -> Batch:
        """Draw `batch_size` rows from `split`, advancing its cursor by `batch_size`.

        Raises:
          RuntimeError: If :meth:`load` has not completed.
          ValueError: If `split` is unknown or `batch_size` < 1.
        """
        part = self._partition(split)
        return gather_batch(
            part.images,
            part.labels,
            part.cursor,
            batch_size,
            image_size=self.image_size,
            num_classes=self.num_classes,
        )

    def cursor(self, split: Split) -> PartitionCursor:
        """The live cursor of `split` (inspection and tests)."""
        return self._partition(split).cursor

    # ---- Helper

    def _partition(self, split: Split) -> _Partition:
        if split not in ("train", "test"):
            raise ValueError(f"split must be 'train' or 'test'; got {split!r}")
        part = self._train if split == "train" else self._test
        if part is None:
            raise RuntimeError("MnistData.load() must complete before requesting batches.")
        return part
