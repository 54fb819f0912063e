import math
import logging
from dataclasses import dataclass, field

from .activity import index_activity
from .buffer import compute_boundary, SpatialBufferResolver
from .compactor import compact
from .map_renderer import MapRenderer
from .storage import WorldStorage, list_region_files

logger = logging.getLogger("RegionPrune")


@dataclass
class PruneReport:
    region_files: int = 0
    indexed: int = 0
    decode_failures: int = 0
    boundary: int = 0
    kept: int = 0
    pruned: dict = field(default_factory=dict)
    failures: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    dry_run: bool = False
    preview: dict = None

    @property
    def total_pruned(self):
        return sum(self.pruned.values())

    def summary(self):
        verb = "would be pruned" if self.dry_run else "pruned"
        lines = [
            f"Region files:     {self.region_files}",
            f"Chunks indexed:   {self.indexed}",
            f"Undecodable:      {self.decode_failures}",
            f"Boundary chunks:  {self.boundary}",
            f"Chunks kept:      {self.kept}",
            f"Chunks {verb}: {self.total_pruned}",
        ]
        for path, count in sorted(self.pruned.items()):
            if count:
                lines.append(f"  {path}: {count}")
        for outcome in self.skipped:
            lines.append(f"Skipped {outcome['file']}: {outcome['skipped']}")
        for outcome in self.failures:
            lines.append(f"FAILED {outcome['file']} ({outcome['kind']}): {outcome['message']}")
        return "\n".join(lines)


def prune(world, dimension, threshold, buffer_radius, workers=None, dry_run=False, preview=None):
    """
    Remove every chunk inhabited for less than `threshold` ticks that lies
    farther than `buffer_radius` chunks from the edge of an active area.

    Indexing and the keep decision finish completely before the first region
    file is rewritten.
    """
    if not math.isfinite(buffer_radius) or buffer_radius < 0:
        raise ValueError(f"buffer radius must be a finite number >= 0: {buffer_radius}")
    region_dir = WorldStorage(world).region_dir(dimension)
    files = list_region_files(region_dir)
    report = PruneReport(region_files=len(files), dry_run=dry_run)

    logger.info(f"Reading chunks from {len(files)} region files in {region_dir}...")
    indexed = index_activity(files, workers)
    report.indexed = len(indexed.ages)
    report.decode_failures = indexed.decode_failures
    report.failures.extend(indexed.failures)
    report.skipped.extend(indexed.skipped)
    logger.info(f"{report.indexed} chunks read.")
    if report.decode_failures:
        logger.warning(f"{report.decode_failures} chunks could not be decoded and will be kept")
    for outcome in indexed.skipped:
        logger.warning(f"Skipping {outcome['file']}: {outcome['skipped']}")

    logger.info("Computing boundary...")
    boundary = compute_boundary(indexed.ages, threshold)
    report.boundary = len(boundary)
    logger.info(f"{report.boundary} chunks in boundary")

    logger.info("Building KDTree...")
    resolver = SpatialBufferResolver(boundary)
    logger.info("Creating buffer zone...")
    keep = resolver.keep_set(indexed.ages, threshold, buffer_radius)
    report.kept = len(keep)
    logger.info(f"{report.kept} chunks will be kept.")

    if preview:
        report.preview = MapRenderer().render_plan(
            indexed.ages, keep, threshold, preview, unknown=indexed.undecodable
        )

    # Files the indexer could not read are never compacted: nothing of theirs is in the keep set.
    targets = indexed.usable_files()
    logger.info("Counting prunable chunks (dry run)..." if dry_run else "Pruning...")
    compacted = compact(targets, keep, workers, dry_run=dry_run)
    report.pruned = compacted.pruned
    report.failures.extend(compacted.failures)
    for outcome in compacted.outcomes:
        if outcome["status"] == "success" and outcome["pruned"]:
            logger.debug(f"Removed {outcome['pruned']} chunks from {outcome['file']} "
                         f"({outcome['size_before']} -> {outcome['size_after']} bytes)")
    for outcome in report.failures:
        logger.error(f"{outcome['file']}: {outcome['message']}")

    logger.info(f"{report.total_pruned} chunks {'would be ' if dry_run else ''}pruned.")
    return report
