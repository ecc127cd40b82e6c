from pathlib import Path
import textwrap
import yaml
import pytest

import mnistcam.config as cfg
from mnistcam.camera.webcam import Webcam
from mnistcam.datasets.mnist import MnistData


# --------------------
# Helpers for tests
# --------------------

def make_tmp_yaml(tmp_path: Path, name: str, content: str) -> Path:
    p = tmp_path / name
    p.write_text(textwrap.dedent(content), encoding="utf-8")
    return p


# --------------------
# _load_yaml
# --------------------

def test_load_yaml_mapping(tmp_path: Path):
    p = make_tmp_yaml(tmp_path, "a.yaml", "a: 1\nb: {c: 2}")
    assert cfg._load_yaml(p) == {"a": 1, "b": {"c": 2}}


def test_load_yaml_empty_returns_empty_mapping(tmp_path: Path):
    p = make_tmp_yaml(tmp_path, "empty.yaml", "")
    assert cfg._load_yaml(p) == {}


def test_load_yaml_non_mapping_raises_type_error(tmp_path: Path):
    p = make_tmp_yaml(tmp_path, "list.yaml", "- 1\n- 2")
    with pytest.raises(TypeError):
        cfg._load_yaml(p)


def test_load_yaml_invalid_yaml_raises(tmp_path: Path):
    p = make_tmp_yaml(tmp_path, "bad.yaml", "a: [1, 2")  # unclosed list
    with pytest.raises(yaml.YAMLError):
        cfg._load_yaml(p)


def test_load_yaml_file_not_found_raises():
    with pytest.raises(FileNotFoundError):
        cfg._load_yaml("/no/such/file.yaml")


# --------------------
# _deep_update / load_and_merge
# --------------------

def test_deep_update_merges_recursively():
    base = {"a": {"x": 1}, "b": 1}
    override = {"a": {"y": 2}, "b": 3}
    out = cfg._deep_update(base, override)
    assert out == {"a": {"x": 1, "y": 2}, "b": 3}
    # inputs not mutated
    assert base == {"a": {"x": 1}, "b": 1} and override == {"a": {"y": 2}, "b": 3}


def test_load_and_merge_merges_files(tmp_path: Path):
    p1 = make_tmp_yaml(tmp_path, "1.yaml", "camera: {width: 320}\nrandom_seed: 1\n")
    p2 = make_tmp_yaml(tmp_path, "2.yaml", "camera: {height: 240}\nrandom_seed: 2\n")
    out = cfg.load_and_merge([p1, p2])
    assert out == {"camera": {"width": 320, "height": 240}, "random_seed": 2}


def test_load_and_merge_empty_list_returns_empty_dict():
    assert cfg.load_and_merge([]) == {}


def test_substitute_placeholders_happy_path():
    assert cfg._substitute_placeholders("${data_root}/x.png", {"data_root": "/d"}) == "/d/x.png"


def test_substitute_placeholders_non_str_replacement_raises():
    with pytest.raises(TypeError):
        cfg._substitute_placeholders("x=${n}", {"n": 3})


# --------------------
# validation
# --------------------

def test_require_keys_missing():
    with pytest.raises(ValueError):
        cfg._require_keys({"a": 1}, ["a", "b"])


def test_ensure_type_rejects_bool_for_int():
    with pytest.raises(ValueError):
        cfg._ensure_type(True, int, "camera.width")


@pytest.mark.parametrize(
    "raw",
    [
        {"dataset": {"name": "cifar"}},
        {"dataset": {"name": "mnist_sprite", "params": [1, 2]}},
        {"dataset": {"name": "mnist_sprite", "params": {"train_test_ratio": 1.5}}},
        {"dataset": {"name": "mnist_sprite", "params": {"chunk_size": 0}}},
        {"camera": {"width": "wide"}},
        {"camera": {"device_index": -1}},
        {"camera": {"display_height": 0}},
        {"logging": {"level": "LOUD"}},
        {"logging": {"logs_dir": 5}},
        {"random_seed": "abc"},
        {"data_root": 3},
    ],
)
def test_resolve_config_rejects_invalid(raw):
    with pytest.raises(ValueError):
        cfg.resolve_config(raw)


# --------------------
# resolve_config
# --------------------

def test_resolve_defaults():
    out = cfg.resolve_config({})
    assert out.dataset.name == "mnist_sprite"
    assert out.dataset.params == {}
    assert out.camera == cfg.CameraConfig()
    assert out.logging.level == "INFO" and out.logging.logs_dir is None
    assert out.random_seed is None


def test_resolve_substitutes_data_root_and_seed(tmp_path: Path):
    raw = {
        "data_root": str(tmp_path),
        "dataset": {
            "name": "mnist_sprite",
            "params": {
                "images_source": "${data_root}/mnist_images.png",
                "num_elements": 10,
            },
        },
        "random_seed": 7,
        "logging": {"level": "debug", "logs_dir": str(tmp_path / "logs")},
    }
    out = cfg.resolve_config(raw)
    assert out.dataset.params["images_source"] == f"{tmp_path}/mnist_images.png"
    assert out.dataset.params["num_elements"] == 10
    assert out.dataset.params["random_state"] == 7
    assert out.logging.level == "DEBUG"
    assert out.logging.logs_dir == tmp_path / "logs"


def test_explicit_random_state_wins():
    raw = {"dataset": {"name": "mnist_sprite", "params": {"random_state": 1}}, "random_seed": 9}
    assert cfg.resolve_config(raw).dataset.params["random_state"] == 1


def test_dataset_config_creates_loader(tmp_path: Path):
    raw = {"dataset": {"name": "mnist_sprite", "params": {"images_source": "x.png"}}}
    ds = cfg.resolve_config(raw).dataset.create()
    assert isinstance(ds, MnistData)
    assert ds.images_source == "x.png"
    assert not ds.is_loaded


def test_camera_config_creates_webcam():
    raw = {"camera": {"device_index": 1, "width": 320, "height": 240,
                      "display_width": 300, "display_height": 200}}
    cam = cfg.resolve_config(raw).camera.create()
    assert isinstance(cam, Webcam)
    assert cam.device_index == 1
    assert cam.resolution == (320, 240)
    assert (cam.element.width, cam.element.height) == (300, 200)


def test_load_config_from_files(tmp_path: Path):
    p = make_tmp_yaml(tmp_path, "mnist.yaml", """
        dataset:
          name: mnist_sprite
          params:
            chunk_size: 1000
        random_seed: 3
    """)
    out = cfg.load_config([p])
    assert out.dataset.params == {"chunk_size": 1000, "random_state": 3}
    assert out.cfg["camera"]["width"] == 224
