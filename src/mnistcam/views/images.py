from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

def center_square_bounds(height: int, width: int) -> tuple[int, int, int]:
    """
    Largest centered square inside a ``height × width`` frame.

    Returns:
      ``(top, left, side)`` with ``side = min(height, width)`` and the offset on
      the longer axis ``(dim - side) // 2`` (0 on the shorter one).

    Examples:
      >>> center_square_bounds(480, 640)
      (0, 80, 480)
      >>> center_square_bounds(5, 2)
      (1, 0, 2)
    """
    if height <= 0 or width <= 0:
        raise ValueError(f"Frame must be non-empty; got {height}x{width}.")
    side = min(height, width)
    return (height - side) // 2, (width - side) // 2, side

def center_square_crop(img: NDArray) -> NDArray:
    """Crop an ``(H, W, ...)`` image to its centered square (a view, no copy)."""
    if img.ndim < 2:
        raise ValueError(f"Expected (H, W[, C]) image, got shape {img.shape!r}.")
    top, left, side = center_square_bounds(int(img.shape[0]), int(img.shape[1]))
    return img[top:top + side, left:left + side]

def mirror_horizontal(img: NDArray) -> NDArray:
    """Flip an ``(H, W, ...)`` image left-to-right, like looking into a mirror."""
    if img.ndim < 2:
        raise ValueError(f"Expected (H, W[, C]) image, got shape {img.shape!r}.")
    return img[:, ::-1]

def normalize_unit(pixels: NDArray[np.integer] | NDArray[np.floating]) -> NDArray[np.float32]:
    """Map intensities ``[0, 255]`` to ``[0, 1]``: ``x / 255``."""
    return (np.asarray(pixels, dtype=np.float32) / np.float32(255.0)).astype(np.float32, copy=False)

def normalize_signed(pixels: NDArray[np.integer] | NDArray[np.floating]) -> NDArray[np.float32]:
    """
    Map intensities to roughly ``[-1, 1]``: ``x / 127 - 1``.

    0 maps to -1.0 exactly; 255 maps to 255/127 - 1 ≈ 1.00787, slightly above 1.
    """
    x = np.asarray(pixels, dtype=np.float32)
    return (x / np.float32(127.0) - np.float32(1.0)).astype(np.float32, copy=False)
