import os
import json

from .constants import DIMENSIONS
from .errors import PathError, ConfigError

DEFAULT_CONFIG = {
    "dimension": "overworld",
    "inhabited_under": "0",
    "buffer": 0.0,
    "workers": None,
    "log_file": None,
}


def list_region_files(directory):
    """Every *.mca file directly inside `directory`, sorted by name."""
    if not os.path.isdir(directory):
        raise PathError(f"{directory} is not a directory")
    files = []
    for name in sorted(os.listdir(directory)):
        path = os.path.join(directory, name)
        if name.endswith(".mca") and os.path.isfile(path):
            files.append(path)
    return files


class WorldStorage:
    """Directory layout of one world save."""

    def __init__(self, world):
        self.world = os.path.abspath(world)

    def dimension_dir(self, dimension):
        try:
            sub = DIMENSIONS[dimension.lower()]
        except KeyError:
            raise ValueError(f"Unknown dimension {dimension!r} (choose from {', '.join(DIMENSIONS)})")
        return os.path.join(self.world, sub) if sub else self.world

    def region_dir(self, dimension):
        return os.path.join(self.dimension_dir(dimension), "region")

    def entities_dir(self, dimension):
        return os.path.join(self.dimension_dir(dimension), "entities")


def load_config(path=None):
    config = dict(DEFAULT_CONFIG)
    if path is None:
        return config
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must hold a JSON object")
    unknown = sorted(set(data) - set(DEFAULT_CONFIG))
    if unknown:
        raise ConfigError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    config.update(data)
    return config
