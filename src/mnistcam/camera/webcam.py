"""
Webcam frame source producing normalized single-example batches.

Typical use::

    cam = Webcam(VideoElement(width=224, height=224))
    await cam.setup()
    x = cam.capture()        # float32 (1, side, side, 3) in [-1, 1.0079]

Lifecycle: ``UNINITIALIZED -> REQUESTING -> READY | FAILED``. A failed webcam
stays failed; build a new instance to retry. ``release()`` moves a ready
webcam to ``CLOSED``.
"""
from __future__ import annotations

import asyncio
import enum
from typing import Any, Callable, Optional, Protocol

import numpy as np
from loguru import logger

from mnistcam.camera.device import CameraUnavailableError, VideoElement, open_camera
from mnistcam.registry import register_source
from mnistcam.views.images import (
    center_square_crop,
    mirror_horizontal,
    normalize_signed,
)


class CameraState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    REQUESTING = "requesting"
    READY = "ready"
    FAILED = "failed"
    CLOSED = "closed"


class VideoSurface(Protocol):
    width: float
    height: float
    src_object: Any

    @property
    def video_width(self) -> int: ...

    @property
    def video_height(self) -> int: ...

    def read_frame(self) -> np.ndarray: ...


@register_source("webcam")
class Webcam:
    """
    Wraps a video surface to capture 4D image batches.

    Attributes:
        element: The video surface frames are read from.
        state (CameraState): Current lifecycle state.
    """

    def __init__(
        self,
        element: Optional[VideoSurface] = None,
        *,
        device_index: int = 0,
        resolution: tuple[int, int] = (224, 224),
        opener: Callable[[int, int, int], Any] = open_camera,
    ):
        """
        Args:
            element: Video surface; a 224×224 :class:`VideoElement` by default.
            device_index: Camera index passed to `opener`.
            resolution: Nominal ``(width, height)`` requested from the device.
            opener: Callable ``(index, width, height) -> stream``.
        """
        self.element: VideoSurface = element if element is not None else VideoElement()
        self.device_index = device_index
        self.resolution = resolution
        self._opener = opener
        self.state = CameraState.UNINITIALIZED

    def capture(self) -> np.ndarray:
        """
        Capture one frame, mirrored, center-cropped and scaled to ``[-1, 1]``.

        Returns:
            float32 array of shape ``(1, side, side, 3)`` where
            ``side = min(frame height, frame width)``.

        Raises:
            RuntimeError: If :meth:`setup` has not completed.
        """
        if self.state is not CameraState.READY:
            raise RuntimeError(f"Webcam is {self.state.value}; call setup() first.")
        frame = self.element.read_frame()
        cropped = self.crop_image(mirror_horizontal(frame))
        batched = cropped[np.newaxis, ...]
        return normalize_signed(batched)

    def crop_image(self, img: np.ndarray) -> np.ndarray:
        """Crop to the largest centered square, leaving no blank margins."""
        return center_square_crop(img)

    def adjust_video_size(self, width: float, height: float) -> None:
        """
        Resize the display so the stream fills it without letterboxing.

        Args:
            width: Actual stream width.
            height: Actual stream height.
        """
        aspect_ratio = width / height
        if width >= height:
            self.element.width = aspect_ratio * self.element.height
        else:
            self.element.height = self.element.width / aspect_ratio

    async def setup(self) -> None:
        """
        Acquire the camera, attach it and wait for the first frame.

        Raises:
            RuntimeError: If setup already ran on this instance.
            CameraUnavailableError: If the device cannot be opened or yields no frame.
        """
        if self.state is not CameraState.UNINITIALIZED:
            raise RuntimeError(f"setup() not allowed in state {self.state.value}")

        self.state = CameraState.REQUESTING
        width, height = self.resolution
        try:
            stream = await asyncio.to_thread(self._opener, self.device_index, width, height)
            self.element.src_object = stream
            # first frame: real dimensions are now known
            frame = await asyncio.to_thread(self.element.read_frame)
            frame_height, frame_width = int(frame.shape[0]), int(frame.shape[1])
            if frame_width == 0 or frame_height == 0:
                raise CameraUnavailableError("Camera returned an empty frame")
            self.adjust_video_size(frame_width, frame_height)
        except Exception:
            self.state = CameraState.FAILED
            self._release_element()
            raise

        self.state = CameraState.READY
        logger.info(
            "Webcam ready: stream {}x{}, display {}x{}",
            frame_width, frame_height, self.element.width, self.element.height,
        )

    def release(self) -> None:
        """Release the underlying stream; the instance cannot capture afterwards."""
        self._release_element()
        if self.state is CameraState.READY:
            self.state = CameraState.CLOSED

    def _release_element(self) -> None:
        release = getattr(self.element, "release", None)
        if callable(release):
            release()
        else:
            self.element.src_object = None
