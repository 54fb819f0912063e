from dataclasses import dataclass, field
from functools import partial

from .bounds import chunk_coords
from .chunk import decode
from .errors import NameParseError, ContainerOpenError, ChunkDecodeError, WriteError
from .pool import map_regions
from .region import RegionFile, region_coords_from_name

# Set once per worker process by the pool initializer; read-only afterwards.
_WORKER_KEEP = None


def _init_compact_worker(keep):
    global _WORKER_KEEP
    _WORKER_KEEP = keep


@dataclass
class CompactResult:
    outcomes: list = field(default_factory=list)

    @property
    def failures(self):
        return [o for o in self.outcomes if o["status"] == "error"]

    @property
    def pruned(self):
        return {o["file"]: o["pruned"] for o in self.outcomes if o["status"] == "success"}

    @property
    def total_pruned(self):
        return sum(self.pruned.values())


def compact_region(path, keep, dry_run=False):
    """
    Drop every decodable chunk of one region file whose coordinate is not in
    `keep`, then rewrite the file without them. Chunks that fail to decode
    always stay.
    """
    try:
        rx, rz = region_coords_from_name(path)
    except NameParseError as e:
        return {"status": "error", "file": path, "kind": e.kind, "message": str(e)}

    try:
        region = RegionFile.open(path)
    except ContainerOpenError as e:
        return {"status": "success", "file": path, "pruned": 0, "skipped": str(e),
                "size_before": None, "size_after": None}

    doomed = []
    for entry in region.chunks():
        coords = chunk_coords(rx, rz, entry.local_x, entry.local_z)
        try:
            decode(region.payload(entry))
        except ChunkDecodeError:
            continue
        if coords not in keep:
            doomed.append(entry.index)

    outcome = {"status": "success", "file": path, "pruned": len(doomed), "skipped": None,
               "size_before": len(region.data), "size_after": len(region.data)}
    if not doomed or dry_run:
        return outcome

    try:
        outcome["size_after"] = region.rewrite(remove=doomed)
    except WriteError as e:
        return {"status": "error", "file": path, "kind": e.kind, "message": str(e)}
    return outcome


def _compact_in_worker(path, dry_run=False):
    if _WORKER_KEEP is None:
        raise RuntimeError("no keep set installed in this worker")
    return compact_region(path, _WORKER_KEEP, dry_run=dry_run)


def compact(files, keep, workers=None, dry_run=False):
    """Compact every region file in parallel against one shared keep set."""
    task = partial(_compact_in_worker, dry_run=dry_run)
    outcomes = list(map_regions(task, files, workers, initializer=_init_compact_worker, initargs=(keep,)))
    outcomes.sort(key=lambda o: o["file"])
    return CompactResult(outcomes=outcomes)
