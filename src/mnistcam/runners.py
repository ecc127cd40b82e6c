from __future__ import annotations
import argparse, asyncio, json
from typing import Any, Sequence

import numpy as np
from loguru import logger

from mnistcam.config import LabConfig, load_config, resolve_config
from mnistcam.datasets.base import Dataset, Split
from mnistcam.logs import configure_logging


def _build_config(args: argparse.Namespace) -> LabConfig:
    cfg = load_config(args.config) if args.config else resolve_config({})
    configure_logging(args.log_level or cfg.logging.level, cfg.logging.logs_dir)
    return cfg


async def run_batches(cfg: LabConfig, split: Split, batch_size: int, count: int) -> dict[str, Any]:
    """Load the configured dataset and summarize `count` batches of `split`."""
    ds: Dataset = cfg.dataset.create()
    await ds.load()

    batches = []
    for _ in range(count):
        xs, labels = ds.next_batch(split, batch_size)
        batches.append({
            "xs": list(xs.shape),
            "labels": list(labels.shape),
            "class_counts": labels.sum(axis=0).astype(int).tolist(),
        })
    return {
        "dataset": ds.name,
        "split": split,
        "train_elements": ds.num_train_elements,
        "test_elements": ds.num_test_elements,
        "batches": batches,
    }


async def run_capture(cfg: LabConfig) -> dict[str, Any]:
    """Set up the configured webcam, capture one frame and summarize it."""
    cam = cfg.camera.create()
    try:
        await cam.setup()
        x = cam.capture()
    finally:
        cam.release()
    return {
        "shape": list(x.shape),
        "dtype": str(x.dtype),
        "min": float(np.min(x)),
        "max": float(np.max(x)),
        "display": [cam.element.width, cam.element.height],
    }


def main(argv: Sequence[str] | None = None) -> None:
    p = argparse.ArgumentParser(prog="mnistcam")
    p.add_argument("--config", action="append", default=[],
                   help="YAML file; repeat to merge, later ones override earlier")
    p.add_argument("--log-level", default=None)
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("batches", help="load the dataset and draw batches")
    b.add_argument("--split", choices=["train", "test"], default="train")
    b.add_argument("--batch-size", type=int, default=4)
    b.add_argument("--count", type=int, default=1)

    sub.add_parser("capture", help="capture one normalized webcam frame")

    args = p.parse_args(argv)
    cfg = _build_config(args)
    logger.debug("Resolved config: {}", cfg.cfg)

    if args.command == "batches":
        out = asyncio.run(run_batches(cfg, args.split, args.batch_size, args.count))
    else:
        out = asyncio.run(run_capture(cfg))
    print(json.dumps(out, indent=2))


if __name__ == "__main__":
    main()
