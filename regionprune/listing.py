import re
import logging

from .bounds import (
    chunk_coords, block_coords, within_bounds, rect_intersects_bounds,
    region_block_rect, chunk_block_rect,
)
from .chunk import decode, decode_document, block_entity_pos, to_python
from .errors import NameParseError, ContainerOpenError, ChunkDecodeError
from .region import RegionFile, region_coords_from_name
from .storage import WorldStorage, list_region_files

logger = logging.getLogger("RegionPrune.listing")


def iter_chunks(directory, lower=None, upper=None):
    """(chunk coords, region, entry) of every stored chunk whose column touches the bounds."""
    for path in list_region_files(directory):
        try:
            rx, rz = region_coords_from_name(path)
        except NameParseError as e:
            logger.warning(f"Skipping {path}: {e}")
            continue
        start, end = region_block_rect(rx, rz)
        if not rect_intersects_bounds(start, end, lower, upper):
            logger.debug(f"region {rx} {rz} doesn't intersect bounds, skipping")
            continue

        logger.debug(f"reading region {path}")
        try:
            region = RegionFile.open(path)
        except ContainerOpenError as e:
            logger.debug(f"error reading region {path}: {e}")
            continue

        for entry in region.chunks():
            cx, cz = chunk_coords(rx, rz, entry.local_x, entry.local_z)
            start, end = chunk_block_rect(cx, cz)
            if not rect_intersects_bounds(start, end, lower, upper):
                continue
            yield (cx, cz), region, entry


def list_entities(world, dimension, lower=None, upper=None):
    """Entity chunk documents (as plain Python) of a dimension."""
    directory = WorldStorage(world).entities_dir(dimension)
    for coords, region, entry in iter_chunks(directory, lower, upper):
        try:
            document = decode_document(region.payload(entry))
        except ChunkDecodeError as e:
            logger.debug(f"error reading entity chunk {coords}: {e}")
            continue
        yield coords, to_python(document)


def list_block_entities(world, dimension, lower=None, upper=None):
    directory = WorldStorage(world).region_dir(dimension)
    for coords, region, entry in iter_chunks(directory, lower, upper):
        try:
            chunk = decode(region.payload(entry))
        except ChunkDecodeError as e:
            logger.debug(f"error reading chunk {coords}: {e}")
            continue
        for tag in chunk.block_entities:
            try:
                pos = block_entity_pos(tag)
            except ChunkDecodeError:
                continue
            if within_bounds(pos, lower, upper):
                yield pos, to_python(tag)


def find_blocks(world, dimension, pattern, lower=None, upper=None):
    """(x, y, z) and name of every block whose state name matches `pattern`."""
    regex = re.compile(pattern)
    directory = WorldStorage(world).region_dir(dimension)
    for (cx, cz), region, entry in iter_chunks(directory, lower, upper):
        try:
            chunk = decode(region.payload(entry))
        except ChunkDecodeError as e:
            logger.debug(f"error reading chunk {cx} {cz}: {e}")
            continue
        for section in chunk.sections:
            if not any(regex.search(name) for name in section.palette):
                continue
            try:
                matches = [
                    (block_coords(cx, cz, x, section.y * 16 + y, z), name)
                    for x, y, z, name in section.blocks()
                    if regex.search(name)
                ]
            except ChunkDecodeError as e:
                logger.debug(f"bad block data in chunk {cx} {cz}: {e}")
                continue
            for pos, name in matches:
                if within_bounds(pos, lower, upper):
                    yield pos, name
