import json
import os

import pytest

from regionprune.errors import PathError, ConfigError
from regionprune.storage import WorldStorage, list_region_files, load_config, DEFAULT_CONFIG


def test_dimension_directories(tmp_path):
    storage = WorldStorage(str(tmp_path))
    assert storage.region_dir("overworld") == os.path.join(str(tmp_path), "region")
    assert storage.region_dir("Nether") == os.path.join(str(tmp_path), "DIM-1", "region")
    assert storage.entities_dir("end") == os.path.join(str(tmp_path), "DIM1", "entities")
    with pytest.raises(ValueError):
        storage.region_dir("aether")


def test_list_region_files(region_dir):
    for name in ["r.1.0.mca", "r.0.0.mca", "level.dat", "r.0.0.mca.tmp"]:
        (region_dir / name).write_bytes(b"")
    (region_dir / "sub.mca").mkdir()
    assert [os.path.basename(p) for p in list_region_files(str(region_dir))] == ["r.0.0.mca", "r.1.0.mca"]


def test_list_region_files_missing(tmp_path):
    with pytest.raises(PathError):
        list_region_files(str(tmp_path / "missing"))
    (tmp_path / "file").write_text("x")
    with pytest.raises(PathError):
        list_region_files(str(tmp_path / "file"))


def test_load_config(tmp_path):
    assert load_config() == DEFAULT_CONFIG
    path = tmp_path / "prune.json"
    path.write_text(json.dumps({"inhabited_under": "5m", "buffer": 2}))
    config = load_config(str(path))
    assert config["inhabited_under"] == "5m"
    assert config["buffer"] == 2
    assert config["dimension"] == "overworld"


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '{"colour": "red"}'])
def test_bad_config(tmp_path, content):
    path = tmp_path / "prune.json"
    path.write_text(content)
    with pytest.raises(ConfigError):
        load_config(str(path))


def test_missing_config(tmp_path):
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.json"))
