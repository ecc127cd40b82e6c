# src/mnistcam/registry.py
from __future__ import annotations
from typing import Any, Callable

# ---------- Registries ----------
_DATASETS: dict[str, Callable[..., Any]] = {}
_SOURCES: dict[str, Callable[..., Any]] = {}

# ---------- Dataset API ----------
def register_dataset(name: str):
    def deco(factory): _DATASETS[name] = factory; return factory
    return deco

def create_dataset(name: str, **kw: Any) -> Any:
    """Instantiate a registered dataset loader (``load()`` is still up to the caller)."""
    if name not in _DATASETS:
        raise KeyError(f"Unknown dataset '{name}'. Available: {sorted(_DATASETS)}")
    return _DATASETS[name](**kw)

def available_datasets() -> list[str]:
    return sorted(_DATASETS)

# ---------- Frame source API ----------
def register_source(name: str):
    """Register a frame source factory (e.g. a webcam wrapper) under `name`."""
    def deco(factory): _SOURCES[name] = factory; return factory
    return deco

def create_source(name: str, **kw: Any) -> Any:
    if name not in _SOURCES:
        raise KeyError(f"Unknown frame source '{name}'. Available: {sorted(_SOURCES)}")
    return _SOURCES[name](**kw)

def available_sources() -> list[str]:
    return sorted(_SOURCES)
