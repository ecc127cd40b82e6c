"""
OpenCV-backed video surface.

:class:`VideoElement` plays the role of an on-page ``<video>`` element: it has
display dimensions (``width``/``height``) that callers may resize, an attached
stream (``src_object``) and the stream's true dimensions
(``video_width``/``video_height``). :func:`open_camera` acquires the stream.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np
from loguru import logger


class CameraUnavailableError(OSError):
    """No usable camera device, or access to it was refused."""


def open_camera(index: int = 0, width: int = 224, height: int = 224) -> cv2.VideoCapture:
    """
    Open camera `index` and request a nominal ``width × height`` resolution.

    The device may deliver a different resolution; read the real one from the
    returned capture (or :attr:`VideoElement.video_width`).

    Raises:
        CameraUnavailableError: If the device cannot be opened.
    """
    cap = cv2.VideoCapture(index)
    if not cap.isOpened():
        cap.release()
        raise CameraUnavailableError(f"Cannot open camera {index}")
    cap.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    cap.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    logger.info("Opened camera {} (requested {}x{})", index, width, height)
    return cap


@dataclass
class VideoElement:
    """
    Display surface bound to a live capture stream.

    Attributes:
        width: Display width in pixels.
        height: Display height in pixels.
        src_object: Attached capture stream, or None before setup.
    """
    width: float = 224
    height: float = 224
    src_object: Optional[cv2.VideoCapture] = None

    @property
    def video_width(self) -> int:
        if self.src_object is None:
            return 0
        return int(self.src_object.get(cv2.CAP_PROP_FRAME_WIDTH))

    @property
    def video_height(self) -> int:
        if self.src_object is None:
            return 0
        return int(self.src_object.get(cv2.CAP_PROP_FRAME_HEIGHT))

    def read_frame(self) -> np.ndarray:
        """
        Grab the current frame as RGB ``uint8`` of shape ``(H, W, 3)``.

        Raises:
            CameraUnavailableError: If no stream is attached or no frame arrives.
        """
        if self.src_object is None:
            raise CameraUnavailableError("No stream attached to the video element")
        ok, frame = self.src_object.read()
        if not ok or frame is None:
            raise CameraUnavailableError("Camera returned no frame")
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

    def release(self) -> None:
        """Detach and release the stream."""
        if self.src_object is not None:
            self.src_object.release()
            self.src_object = None
