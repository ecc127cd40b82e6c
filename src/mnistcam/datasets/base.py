from __future__ import annotations
from typing import NamedTuple, Protocol, Literal
import numpy as np
from numpy.typing import NDArray

Split = Literal["train", "test"]

# Batch record + Dataset Protocol

class Batch(NamedTuple):
    """One mini-batch: ``xs`` float32 (B, image_size), ``labels`` uint8 one-hot (B, num_classes)."""
    xs: NDArray[np.float32]
    labels: NDArray[np.uint8]


class Dataset(Protocol):
    name: str

    @property
    def num_train_elements(self) -> int: ...

    @property
    def num_test_elements(self) -> int: ...

    async def load(self) -> None: ...

    def next_batch(self, split: Split, batch_size: int) -> Batch: ...
