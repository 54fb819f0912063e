import re

from .constants import REGION_SIZE, CHUNK_SIZE, TICKS_PER_SECOND

DURATION_RE = re.compile(r"^\s*(\d+)\s*([tsmhd]?)\s*$")
DURATION_UNITS = {
    "": 1,
    "t": 1,
    "s": TICKS_PER_SECOND,
    "m": 60 * TICKS_PER_SECOND,
    "h": 3600 * TICKS_PER_SECOND,
    "d": 86400 * TICKS_PER_SECOND,
}


def chunk_coords(region_x, region_z, local_x, local_z):
    """World chunk address of a chunk stored at (local_x, local_z) of a region."""
    return region_x * REGION_SIZE + local_x, region_z * REGION_SIZE + local_z


def block_coords(chunk_x, chunk_z, x, y, z):
    return chunk_x * CHUNK_SIZE + x, y, chunk_z * CHUNK_SIZE + z


def region_of_chunk(chunk_x, chunk_z):
    # floor division, also for negative chunks
    return chunk_x // REGION_SIZE, chunk_z // REGION_SIZE


def region_block_rect(region_x, region_z):
    """Inclusive (x, z) block rectangle covered by a region."""
    size = REGION_SIZE * CHUNK_SIZE
    start = (region_x * size, region_z * size)
    end = (start[0] + size - 1, start[1] + size - 1)
    return start, end


def chunk_block_rect(chunk_x, chunk_z):
    start = (chunk_x * CHUNK_SIZE, chunk_z * CHUNK_SIZE)
    end = (start[0] + CHUNK_SIZE - 1, start[1] + CHUNK_SIZE - 1)
    return start, end


def _normalize(a, b):
    lo = tuple(min(p, q) for p, q in zip(a, b))
    hi = tuple(max(p, q) for p, q in zip(a, b))
    return lo, hi


def within_bounds(pos, lower=None, upper=None):
    """
    Inclusive containment test of a block position against optional bounds.

    With a single bound the test is one-sided. With both bounds the box is
    normalized first, so the order in which they are given does not matter.
    """
    if lower is not None and upper is not None:
        lower, upper = _normalize(lower, upper)
    if lower is not None and any(p < b for p, b in zip(pos, lower)):
        return False
    if upper is not None and any(p > b for p, b in zip(pos, upper)):
        return False
    return True


def rect_intersects_bounds(rect_from, rect_to, lower=None, upper=None):
    """
    Does the (x, z) rectangle spanned by rect_from/rect_to touch the bounds?

    Bounds are (x, y, z) triples; only their x and z components are used.
    """
    rect_lo, rect_hi = _normalize(rect_from, rect_to)
    lo = (lower[0], lower[2]) if lower is not None else None
    hi = (upper[0], upper[2]) if upper is not None else None
    if lo is not None and hi is not None:
        lo, hi = _normalize(lo, hi)
    if lo is not None and any(r < b for r, b in zip(rect_hi, lo)):
        return False
    if hi is not None and any(r > b for r, b in zip(rect_lo, hi)):
        return False
    return True


def parse_coords(text):
    parts = text.split(",")
    if len(parts) != 3:
        raise ValueError(f"Failed to parse coordinates {text!r} (expected x,y,z)")
    try:
        x, y, z = (int(p.strip()) for p in parts)
    except ValueError:
        raise ValueError(f"Failed to parse coordinates {text!r} (expected x,y,z)")
    return x, y, z


def parse_duration(text):
    """Inhabited time in ticks. Accepts plain ticks or a t/s/m/h/d suffix."""
    m = DURATION_RE.match(str(text).lower())
    if not m:
        raise ValueError(f"Invalid duration: {text!r} (e.g. 6000, 300s, 5m, 1h)")
    value, unit = m.groups()
    return int(value) * DURATION_UNITS[unit]
