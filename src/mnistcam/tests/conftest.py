from dataclasses import dataclass
from pathlib import Path
from typing import Any

import numpy as np
import pytest
from PIL import Image

from mnistcam.camera.device import CameraUnavailableError

# Tiny synthetic sprite dataset: 12 digits of 4 pixels, 3 classes.
N_ELEMENTS = 12
IMAGE_SIZE = 4
NUM_CLASSES = 3
ROW_STEP = 20


def atlas_pixels(n: int = N_ELEMENTS, d: int = IMAGE_SIZE) -> np.ndarray:
    """Row i holds i*ROW_STEP + j, so the first pixel identifies the row."""
    rows = np.arange(n, dtype=np.uint8)[:, None] * ROW_STEP
    return (rows + np.arange(d, dtype=np.uint8)[None, :]).astype(np.uint8)


def one_hot_labels(n: int = N_ELEMENTS, k: int = NUM_CLASSES) -> bytes:
    out = np.zeros((n, k), dtype=np.uint8)
    out[np.arange(n), np.arange(n) % k] = 1
    return out.tobytes()


def row_ids(xs: np.ndarray) -> np.ndarray:
    return np.rint(xs[:, 0] * 255.0 / ROW_STEP).astype(int)


@pytest.fixture
def atlas_png(tmp_path: Path) -> Path:
    p = tmp_path / "atlas.png"
    Image.fromarray(atlas_pixels()).save(p)
    return p


@pytest.fixture
def labels_blob(tmp_path: Path) -> Path:
    p = tmp_path / "labels_uint8"
    p.write_bytes(one_hot_labels())
    return p


@pytest.fixture
def tiny_params(atlas_png: Path, labels_blob: Path) -> dict:
    return {
        "images_source": str(atlas_png),
        "labels_source": str(labels_blob),
        "num_elements": N_ELEMENTS,
        "image_size": IMAGE_SIZE,
        "num_classes": NUM_CLASSES,
        "train_test_ratio": 0.75,
        "chunk_size": 5,
        "random_state": 123,
    }


@dataclass
class FakeElement:
    """Video surface serving a fixed RGB frame once a stream is attached."""
    frame: np.ndarray
    width: float = 224
    height: float = 224
    src_object: Any = None
    released: bool = False

    @property
    def video_width(self) -> int:
        return int(self.frame.shape[1])

    @property
    def video_height(self) -> int:
        return int(self.frame.shape[0])

    def read_frame(self) -> np.ndarray:
        if self.src_object is None:
            raise CameraUnavailableError("no stream")
        return self.frame

    def release(self) -> None:
        self.released = True
