import io
import logging

from nbt import nbt

from .chunk import decode_chunk, decode_document, chunk_holder, section_tags
from .errors import ChunkDecodeError
from .region import RegionFile

logger = logging.getLogger("RegionPrune.lighting")

LIGHT_ARRAYS = ("BlockLight", "SkyLight")


def strip_light(root):
    """Drop stored light from a chunk document so the game relights it."""
    chunk = decode_chunk(root)
    for section in section_tags(root, chunk):
        for key in LIGHT_ARRAYS:
            if key in section:
                del section[key]
    chunk_holder(root, chunk)["isLightOn"] = nbt.TAG_Byte(0)
    return root


def reset_lighting(path):
    region = RegionFile.open(path)
    replace = {}
    skipped = 0
    for entry in region.chunks():
        try:
            root = decode_document(region.payload(entry))
            strip_light(root)
        except ChunkDecodeError as e:
            logger.debug(f"leaving chunk {entry.local_x},{entry.local_z} of {path} untouched: {e}")
            skipped += 1
            continue
        buf = io.BytesIO()
        root.write_file(buffer=buf)
        replace[entry.index] = buf.getvalue()

    if replace:
        region.rewrite(replace=replace)
    logger.info(f"Reset lighting of {len(replace)} chunks in {path} ({skipped} left untouched)")
    return {"status": "success", "file": path, "relit": len(replace), "skipped": skipped}
