"""
Configuration utilities for mnistcam

Provides functions to load, merge, validate and resolve YAML configurations
for the dataset loader and the webcam frame source. Used by the CLI to parse
settings from files like `mnist.yaml`:

    dataset:
      name: mnist_sprite
      params:
        images_source: ${data_root}/mnist_images.png
        labels_source: ${data_root}/mnist_labels_uint8
    data_root: ~/data/mnist
    camera:
      device_index: 0
      width: 224
      height: 224
    logging:
      level: INFO
      logs_dir: null
    random_seed: 0

Every section is optional; omitted keys fall back to :func:`default_config`.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import yaml

# imported for their registry side effects
import mnistcam.datasets.mnist  # noqa: F401
import mnistcam.camera.webcam  # noqa: F401
from mnistcam.camera.device import VideoElement
from mnistcam.registry import available_datasets, create_dataset, create_source


#########
# Helpers
#########

def _load_yaml(path: str | Path) -> dict[str, Any]:
    """
    Load a YAML file into a dictionary.

    Args:
        path (str | Path): Path to the YAML file.
        It must exist, be readable and contain a YAML mapping.

    Returns:
        dict[str, Any]: Parsed YAML content as a dictionary.
        Returns an empty dictionary if the file is empty.

    Raises:
        FileNotFoundError: If the file does not exist.
        PermissionError: If the file cannot be read.
        IsADirectoryError: If `path` is a directory.
        yaml.YAMLError: If the file contains invalid YAML.
        TypeError: If the YAML content is valid but not a mapping.
    """
    txt = Path(path).read_text(encoding="utf-8")
    data = yaml.safe_load(txt)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"Expected a mapping, got {type(data).__name__}")
    return data

def _deep_update(
        base: dict[str, Any],
        override: dict[str, Any]
) -> dict[str, Any]:
    """
    Merge two dictionaries recursively.

    Keys present in 'override' replace those in 'base' unless both values are
    mappings, in which case they are merged recursively. Inputs are not mutated.

    Examples:
        >>> _deep_update({"a": {"x": 1}}, {"a": {"y": 2}, "b": 3})
        {'a': {'x': 1, 'y': 2}, 'b': 3}
        >>> _deep_update({"a": {"x": 1}}, {"a": 7})
        {'a': 7}
    """
    result: dict[str, Any] = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_update(result[k], v)
        else:
            result[k] = v
    return result

def load_and_merge(paths: Sequence[str | Path]) -> dict[str, Any]:
    """
    Load multiple YAML files and deep-merge them.

    Args:
        paths: List of file paths. Order matters: later paths override earlier.

    Returns:
        A new dictionary with the merged configuration ({} if `paths` is empty).

    Raises:
        FileNotFoundError, PermissionError, IsADirectoryError, yaml.YAMLError,
        TypeError: As for :func:`_load_yaml`.
    """
    cfg: dict[str, Any] = {}
    for p in paths:
        cfg = _deep_update(cfg, _load_yaml(p))
    return cfg

def _substitute_placeholders(s: str, vars: dict[str, str]) -> str:
    """
    Substitute placeholders of the form `${var}` in a string by its value.

    Example:
        >>> _substitute_placeholders("${data_root}/labels", {"data_root": "/data"})
        '/data/labels'
    """
    for key, value in vars.items():
        s = s.replace(f"${{{key}}}", value)
    return s

def default_config() -> dict[str, Any]:
    """Baseline configuration; user files are deep-merged on top of it."""
    return {
        "dataset": {"name": "mnist_sprite", "params": {}},
        "data_root": ".",
        "camera": {
            "device_index": 0,
            "width": 224,
            "height": 224,
            "display_width": 224,
            "display_height": 224,
        },
        "logging": {"level": "INFO", "logs_dir": None},
        "random_seed": None,
    }

#########
# Validation
#########

def _validate_config(cfg: dict[str, Any]) -> None:
    """
    Validate a (merged) configuration.

    Raises:
        ValueError: If any section/key is missing or malformed.
    """
    _require_keys(cfg, ["dataset", "camera", "logging", "random_seed"])
    _validate_dataset(cfg["dataset"])
    _validate_camera(cfg["camera"])
    _validate_logging(cfg["logging"])
    _validate_random_seed(cfg["random_seed"])
    _ensure_type(cfg.get("data_root", "."), str, "data_root")
    return None

# ----- validation helpers

def _require_keys(mapping: dict[str, Any], keys: Sequence[str]) -> None:
    """
    Ensure that all required keys are present in a dictionary.

    Raises:
        ValueError: If any key is missing from ``mapping``.

    Examples:
        >>> _require_keys({"a": 1, "b": 2}, ["a", "c"])
        Traceback (most recent call last):
            ...
        ValueError: Missing required config section/key: 'c'
    """
    for key in keys:
        if key not in mapping:
            raise ValueError(f"Missing required config section/key: '{key}'")
    return None

def _ensure_type(value: Any, expected_type: type[Any] | tuple[type[Any], ...], context: str) -> None:
    """
    Ensure that a value has the expected type.

    Examples:
        >>> _ensure_type("abc", int, "camera.width")
        Traceback (most recent call last):
            ...
        ValueError: camera.width must be int; got str
    """
    if isinstance(value, bool) and expected_type is int:
        raise ValueError(f"{context} must be int; got bool")
    if not isinstance(value, expected_type):
        names = (
            " | ".join(t.__name__ for t in expected_type)
            if isinstance(expected_type, tuple) else expected_type.__name__
        )
        raise ValueError(f"{context} must be {names}; got {type(value).__name__}")
    return None

def _ensure_one_of(value: Any, allowed: Sequence[Any], context: str) -> None:
    """
    Ensure that a value belongs to an allowed set.

    Examples:
        >>> _ensure_one_of("bad", ["INFO", "DEBUG"], "logging.level")
        Traceback (most recent call last):
            ...
        ValueError: logging.level must be one of ['INFO', 'DEBUG']; got 'bad'
    """
    if value not in allowed:
        raise ValueError(f"{context} must be one of {list(allowed)}; got {value!r}")
    return None

def _ensure_positive_int(value: Any, context: str) -> None:
    _ensure_type(value, int, context)
    if value <= 0:
        raise ValueError(f"{context} must be > 0; got {value}")

def _validate_dataset(dataset: dict[str, Any]) -> None:
    """
    Validate the dataset block.

    Expected schema:
      - ``name`` (str, required): a registered dataset name.
      - ``params`` (mapping | None, optional): constructor kwargs.
    """
    _ensure_type(dataset, dict, "dataset")
    _require_keys(dataset, ["name"])
    _ensure_type(dataset["name"], str, "dataset.name")
    _ensure_one_of(dataset["name"], available_datasets(), "dataset.name")

    params = dataset.get("params")
    if params is not None and not isinstance(params, dict):
        raise ValueError(f"dataset.params must be a mapping or None; got {type(params).__name__}")

    params = params or {}
    if "train_test_ratio" in params:
        ratio = params["train_test_ratio"]
        _ensure_type(ratio, (int, float), "dataset.params.train_test_ratio")
        if not 0.0 < float(ratio) < 1.0:
            raise ValueError("dataset.params.train_test_ratio must be in (0, 1)")
    for key in ("num_elements", "image_size", "num_classes", "chunk_size"):
        if key in params:
            _ensure_positive_int(params[key], f"dataset.params.{key}")
    return None

def _validate_camera(camera: dict[str, Any]) -> None:
    """
    Validate the camera block: a non-negative ``device_index`` and positive
    ``width``/``height``/``display_width``/``display_height``.
    """
    _ensure_type(camera, dict, "camera")
    _require_keys(camera, ["device_index", "width", "height", "display_width", "display_height"])
    _ensure_type(camera["device_index"], int, "camera.device_index")
    if camera["device_index"] < 0:
        raise ValueError("camera.device_index must be >= 0")
    for key in ("width", "height", "display_width", "display_height"):
        _ensure_positive_int(camera[key], f"camera.{key}")
    return None

def _validate_logging(log_cfg: dict[str, Any]) -> None:
    _ensure_type(log_cfg, dict, "logging")
    _require_keys(log_cfg, ["level"])
    _ensure_type(log_cfg["level"], str, "logging.level")
    _ensure_one_of(
        log_cfg["level"].upper(),
        ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"],
        "logging.level",
    )
    logs_dir = log_cfg.get("logs_dir")
    if logs_dir is not None:
        _ensure_type(logs_dir, str, "logging.logs_dir")
    return None

def _validate_random_seed(seed: Any) -> None:
    """
    Validate the random seed: an int or null.

    Examples:
        >>> _validate_random_seed(7)
        >>> _validate_random_seed("abc")
        Traceback (most recent call last):
            ...
        ValueError: random_seed must be int or null
    """
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise ValueError("random_seed must be int or null")
    return None

#########
# Resolved config
#########

@dataclass
class DatasetConfig:
    """Registered dataset name plus its constructor kwargs (placeholders resolved)."""
    name: str
    params: dict[str, Any] = field(default_factory=dict)

    def create(self) -> Any:
        return create_dataset(self.name, **self.params)

@dataclass
class CameraConfig:
    """Camera device index, nominal stream resolution and display size."""
    device_index: int = 0
    width: int = 224
    height: int = 224
    display_width: int = 224
    display_height: int = 224

    def create(self) -> Any:
        element = VideoElement(width=self.display_width, height=self.display_height)
        return create_source(
            "webcam",
            element=element,
            device_index=self.device_index,
            resolution=(self.width, self.height),
        )

@dataclass
class LoggingConfig:
    level: str = "INFO"
    logs_dir: Path | None = None

@dataclass
class LabConfig:
    """
    Container for fully resolved settings.

    Attributes:
        cfg: Full (validated, merged) configuration dictionary.
        dataset: Dataset name and constructor params.
        camera: Webcam settings.
        logging: Log level and optional log directory.
        random_seed: Seed used when the dataset params carry none.
    """
    cfg: dict[str, Any]
    dataset: DatasetConfig
    camera: CameraConfig
    logging: LoggingConfig
    random_seed: int | None

def resolve_config(raw_cfg: dict[str, Any]) -> LabConfig:
    """
    Resolve a raw configuration into a structured `LabConfig`.

    Steps:
      1) Deep-merge over :func:`default_config` and validate.
      2) Substitute ``${data_root}`` in string dataset params.
      3) Default the dataset's ``random_state`` to ``random_seed``.

    Raises:
        ValueError: For invalid configuration (via validators).
    """
    # 1) Merge & validate
    cfg = _deep_update(default_config(), raw_cfg)
    _validate_config(cfg)

    # 2) Paths with placeholders
    data_root = str(Path(cfg.get("data_root", ".")).expanduser())
    vars_map: dict[str, str] = {"data_root": data_root}
    params: dict[str, Any] = {
        k: _substitute_placeholders(v, vars_map) if isinstance(v, str) else v
        for k, v in (cfg["dataset"].get("params") or {}).items()
    }

    # 3) Seed
    seed = cfg["random_seed"]
    if seed is not None:
        params.setdefault("random_state", seed)

    cam = cfg["camera"]
    log_cfg = cfg["logging"]
    logs_dir = log_cfg.get("logs_dir")

    return LabConfig(
        cfg=cfg,
        dataset=DatasetConfig(name=cfg["dataset"]["name"], params=params),
        camera=CameraConfig(
            device_index=cam["device_index"],
            width=cam["width"],
            height=cam["height"],
            display_width=cam["display_width"],
            display_height=cam["display_height"],
        ),
        logging=LoggingConfig(
            level=log_cfg["level"].upper(),
            logs_dir=Path(logs_dir).expanduser() if logs_dir else None,
        ),
        random_seed=seed,
    )

def load_config(paths: Sequence[str | Path]) -> LabConfig:
    """Load, merge and resolve YAML files in one step."""
    return resolve_config(load_and_merge(paths))
