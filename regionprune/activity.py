from dataclasses import dataclass, field
from types import MappingProxyType

from .bounds import chunk_coords
from .chunk import decode
from .errors import NameParseError, ContainerOpenError, ChunkDecodeError, CoordinateCollisionError
from .pool import map_regions
from .region import RegionFile, region_coords_from_name


@dataclass
class IndexResult:
    ages: MappingProxyType
    outcomes: list = field(default_factory=list)

    @property
    def failures(self):
        return [o for o in self.outcomes if o["status"] == "error"]

    @property
    def skipped(self):
        return [o for o in self.outcomes if o["status"] == "success" and o["skipped"]]

    @property
    def undecodable(self):
        return [c for o in self.outcomes if o["status"] == "success" for c in o["undecodable"]]

    @property
    def decode_failures(self):
        return len(self.undecodable)

    def usable_files(self):
        """Files whose every chunk was seen by the indexer."""
        return sorted(o["file"] for o in self.outcomes if o["status"] == "success" and not o["skipped"])


def scan_region(path):
    """Inhabited time of every decodable chunk of one region file."""
    try:
        rx, rz = region_coords_from_name(path)
    except NameParseError as e:
        return {"status": "error", "file": path, "kind": e.kind, "message": str(e)}

    outcome = {"status": "success", "file": path, "ages": {}, "undecodable": [], "skipped": None}
    try:
        region = RegionFile.open(path)
    except ContainerOpenError as e:
        outcome["skipped"] = str(e)
        return outcome

    for entry in region.chunks():
        coords = chunk_coords(rx, rz, entry.local_x, entry.local_z)
        try:
            chunk = decode(region.payload(entry))
        except ChunkDecodeError:
            # unknown is not the same as zero: leave it out of the index
            outcome["undecodable"].append(coords)
            continue
        outcome["ages"][coords] = chunk.inhabited_time
    return outcome


def merge_ages(index, ages, path):
    for coords, ticks in ages.items():
        if coords in index:
            raise CoordinateCollisionError(
                f"Chunk {coords[0]},{coords[1]} is claimed by more than one region file (again by {path})"
            )
        index[coords] = ticks


def index_activity(files, workers=None):
    """Chunk coordinate -> inhabited ticks, over every readable region file."""
    index = {}
    outcomes = []
    for outcome in map_regions(scan_region, files, workers):
        if outcome["status"] == "success":
            merge_ages(index, outcome.pop("ages"), outcome["file"])
        outcomes.append(outcome)
    outcomes.sort(key=lambda o: o["file"])
    return IndexResult(ages=MappingProxyType(index), outcomes=outcomes)
