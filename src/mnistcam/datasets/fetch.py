"""
Resource fetching and decoding for the sprite-sheet dataset.

Two narrow entry points hide where the bytes come from:

- :func:`fetch_bytes` reads an ``http(s)://`` URL (via ``httpx``) or a local path.
- :func:`fetch_image_rows` fetches the PNG atlas and decodes it into a flat
  float32 buffer of normalized pixel intensities.

Atlas layout
------------
The atlas is a grayscale PNG whose width equals ``image_size`` (784 for 28×28
digits) and whose height is the number of elements: row ``i`` holds the
flattened pixels of element ``i``. Pixels are read from the first channel only
(all channels are equal for grayscale sources) and divided by 255.

Raises
------
- ``ResourceUnavailableError``: when a resource cannot be retrieved.
- ``ValueError``: when the retrieved bytes do not match the expected layout.
"""
from __future__ import annotations

import asyncio
import io
import math
from pathlib import Path

import httpx
import numpy as np
from loguru import logger
from numpy.typing import NDArray
from PIL import Image

from mnistcam.views.images import normalize_unit

Float32Array = NDArray[np.float32]
UInt8Array = NDArray[np.uint8]


class ResourceUnavailableError(OSError):
    """A dataset resource (atlas image or label blob) could not be retrieved."""


def _is_url(source: str | Path) -> bool:
    return isinstance(source, str) and source.startswith(("http://", "https://"))


async def fetch_bytes(
    source: str | Path,
    *,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> bytes:
    """Fetch raw bytes from a URL or a filesystem path.

    Args:
      source: ``http(s)://`` URL or local path.
      client: Optional shared client; a temporary one is created otherwise.
      timeout: Request timeout in seconds; None waits indefinitely.

    Raises:
      ResourceUnavailableError: On transport errors, non-2xx responses, or
        unreadable files.
    """
    if not _is_url(source):
        path = Path(source)
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise ResourceUnavailableError(f"Cannot read {path}: {e}") from e
        logger.debug("Read {} bytes from {}", len(data), path)
        return data

    url = str(source)
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own:
                response = await own.get(url)
        else:
            response = await client.get(url, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ResourceUnavailableError(f"Cannot fetch {url}: {e}") from e

    logger.debug("Fetched {} bytes from {}", len(response.content), url)
    return response.content


def decode_atlas(
    data: bytes,
    *,
    num_elements: int,
    image_size: int,
    chunk_size: int = 5000,
) -> Float32Array:
    """Decode a PNG sprite atlas into a flat float32 buffer in ``[0, 1]``.

    Pillow decodes the whole PNG into its native mode (one byte per pixel for
    grayscale atlases) on the first crop. The RGBA conversion and the uint8 view
    are then built `chunk_size` rows at a time, so peak extra memory is one RGBA
    chunk on top of the decoded image and the float32 output.

    Args:
      data: Encoded image bytes.
      num_elements: Number of rows (elements) to decode.
      image_size: Pixels per element; must equal the atlas width.
      chunk_size: Rows per decode chunk; the last chunk may be shorter.

    Returns:
      float32 array of shape ``(num_elements * image_size,)``.

    Raises:
      ValueError: If the atlas dimensions do not fit the requested layout or
        `chunk_size` is not positive.
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive; got {chunk_size}")

    with Image.open(io.BytesIO(data)) as img:
        width, height = img.size
        if width != image_size:
            raise ValueError(f"Atlas width {width} != image_size {image_size}.")
        if height < num_elements:
            raise ValueError(f"Atlas has {height} rows; expected at least {num_elements}.")

        out = np.empty(num_elements * image_size, dtype=np.float32)
        n_chunks = math.ceil(num_elements / chunk_size)
        for i in range(n_chunks):
            top = i * chunk_size
            bottom = min(top + chunk_size, num_elements)
            region = img.crop((0, top, width, bottom)).convert("RGBA")
            # grayscale source: every channel carries the same value
            red = np.asarray(region, dtype=np.uint8)[..., 0]
            out[top * image_size:bottom * image_size] = normalize_unit(red.reshape(-1))
            logger.debug("Decoded atlas rows {}..{}", top, bottom)

    return out


def decode_labels(data: bytes, *, num_elements: int, num_classes: int) -> UInt8Array:
    """View a one-hot label blob as a flat uint8 buffer.

    Raises:
      ValueError: If the blob is not exactly ``num_elements * num_classes`` bytes.
    """
    expected = num_elements * num_classes
    if len(data) != expected:
        raise ValueError(f"Label blob has {len(data)} bytes; expected {expected}.")
    return np.frombuffer(data, dtype=np.uint8).copy()


async def fetch_image_rows(
    source: str | Path,
    *,
    num_elements: int,
    image_size: int,
    chunk_size: int = 5000,
    client: httpx.AsyncClient | None = None,
    timeout: float | None = None,
) -> Float32Array:
    """Fetch the atlas and decode it off the event loop; see :func:`decode_atlas`."""
    data = await fetch_bytes(source, client=client, timeout=timeout)
    return await asyncio.to_thread(
        decode_atlas,
        data,
        num_elements=num_elements,
        image_size=image_size,
        chunk_size=chunk_size,
    )
