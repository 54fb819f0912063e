import json
import logging

import pytest

from regionprune.cli import main
from regionprune.region import RegionFile

from conftest import write_region, flat_chunk, block_entity

SCENARIO_CHUNKS = {(0, 0): flat_chunk(0), (1, 0): flat_chunk(100), (0, 1): flat_chunk(0), (1, 1): flat_chunk(0)}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()


def test_prune_dry_run(world, region_dir, capsys):
    path = write_region(region_dir / "r.0.0.mca", SCENARIO_CHUNKS)
    before = path.read_bytes()
    code = main(["-w", str(world), "prune", "-i", "50", "-j", "2", "--dry-run"])
    assert code == 0
    assert "would be pruned: 3" in capsys.readouterr().out
    assert path.read_bytes() == before


def test_prune_with_duration_and_config(world, region_dir, tmp_path):
    path = write_region(region_dir / "r.0.0.mca", {(0, 0): flat_chunk(1200), (5, 5): flat_chunk(1199)})
    config = tmp_path / "prune.json"
    config.write_text(json.dumps({"inhabited_under": "1m", "workers": 2}))
    assert main(["-c", str(config), "-w", str(world), "prune"]) == 0
    assert [(e.local_x, e.local_z) for e in RegionFile.open(str(path)).chunks()] == [(0, 0)]


def test_log_file(world, region_dir, tmp_path):
    write_region(region_dir / "r.0.0.mca", SCENARIO_CHUNKS)
    log = tmp_path / "prune.log"
    assert main(["--log-file", str(log), "-w", str(world), "prune", "-i", "50", "-j", "1", "--dry-run"]) == 0
    for handler in logging.getLogger().handlers:
        handler.flush()
    assert "RegionPrune - INFO" in log.read_text()


def test_failures_give_nonzero_exit(world, region_dir):
    write_region(region_dir / "r.0.0.mca", SCENARIO_CHUNKS)
    write_region(region_dir / "stray.mca", SCENARIO_CHUNKS)
    assert main(["-w", str(world), "prune", "-i", "50", "-j", "1"]) == 2


def test_missing_world(tmp_path):
    assert main(["-w", str(tmp_path / "nowhere"), "prune", "-i", "10"]) == 1


def test_bad_threshold(world):
    assert main(["-w", str(world), "prune", "-i", "ten minutes"]) == 1


def test_bad_config_is_a_usage_error(world, tmp_path):
    config = tmp_path / "prune.json"
    config.write_text("[]")
    with pytest.raises(SystemExit) as exc:
        main(["-c", str(config), "-w", str(world), "prune"])
    assert exc.value.code == 2


def test_bad_coordinates_are_rejected(world):
    with pytest.raises(SystemExit):
        main(["-w", str(world), "entities", "--from", "1,2"])


def test_block_entities_json(world, region_dir, capsys):
    write_region(region_dir / "r.0.0.mca", {(0, 0): flat_chunk(0, block_entities=[block_entity(1, 2, 3)])})
    assert main(["-w", str(world), "entities", "--block-entities", "--json"]) == 0
    lines = [l for l in capsys.readouterr().out.splitlines() if l.startswith("{")]
    assert [json.loads(l) for l in lines] == [{"id": "minecraft:chest", "x": 1, "y": 2, "z": 3}]


def test_blocks_bad_pattern(world):
    assert main(["-w", str(world), "blocks", "-p", "(unclosed"]) == 1


def test_reset_lighting(world, region_dir):
    path = write_region(region_dir / "r.0.0.mca", {(0, 0): flat_chunk(7)})
    assert main(["-w", str(world), "reset-lighting", str(path)]) == 0
    assert main(["-w", str(world), "reset-lighting", str(region_dir / "r.9.9.mca")]) == 1


def test_nan_buffer_prunes_nothing(world, region_dir):
    path = write_region(region_dir / "r.0.0.mca", SCENARIO_CHUNKS)
    before = path.read_bytes()
    assert main(["-w", str(world), "prune", "-i", "50", "-b", "nan", "-j", "1"]) == 1
    assert path.read_bytes() == before
