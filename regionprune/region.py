import os
import re
import gzip
import time
import zlib
import shutil
import struct
import tempfile
from collections import namedtuple

from .constants import (
    REGION_SIZE, CHUNKS_PER_REGION, SECTOR_BYTES, HEADER_BYTES,
    COMPRESSION_GZIP, COMPRESSION_ZLIB, COMPRESSION_NONE, COMPRESSION_LZ4,
    COMPRESSION_EXTERNAL,
)
from .bounds import chunk_coords
from .errors import NameParseError, ContainerOpenError, ChunkDecodeError, WriteError

REGION_NAME_RE = re.compile(r"^r\.(-?\d+)\.(-?\d+)\.mca$")

ChunkEntry = namedtuple(
    "ChunkEntry", "index local_x local_z sector_offset sector_count timestamp"
)


def region_coords_from_name(path):
    """(x, z) of a region file named r.<x>.<z>.mca"""
    name = os.path.basename(path)
    m = REGION_NAME_RE.match(name)
    if not m:
        raise NameParseError(f"Bad region file name: {name}")
    return int(m.group(1)), int(m.group(2))


def encode_payload(raw_nbt):
    """Stored form of an uncompressed NBT document: length, zlib id, body."""
    body = bytes([COMPRESSION_ZLIB]) + zlib.compress(raw_nbt)
    return struct.pack(">I", len(body)) + body


def _pad(blob):
    pad = (-len(blob)) % SECTOR_BYTES
    return blob + b"\x00" * pad if pad else blob


class RegionFile:
    """
    In-memory image of one Anvil region container.

    The whole file is read up front; nothing touches the disk again until
    rewrite(), which writes a compacted image next to the original and swaps
    it in atomically.
    """

    def __init__(self, path, data):
        self.path = path
        self.data = data
        self.offsets = struct.unpack(f">{CHUNKS_PER_REGION}I", data[:SECTOR_BYTES])
        self.timestamps = struct.unpack(f">{CHUNKS_PER_REGION}I", data[SECTOR_BYTES:HEADER_BYTES])

    @classmethod
    def open(cls, path):
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ContainerOpenError(f"Cannot read {path}: {e}") from e
        if len(data) < HEADER_BYTES:
            raise ContainerOpenError(f"Region header bad size in {path}: {len(data)} bytes")
        return cls(path, data)

    def chunks(self):
        """Every stored chunk, in header order."""
        for idx, loc in enumerate(self.offsets):
            if loc == 0:
                continue
            yield ChunkEntry(
                index=idx,
                local_x=idx % REGION_SIZE,
                local_z=idx // REGION_SIZE,
                sector_offset=loc >> 8,
                sector_count=loc & 0xFF,
                timestamp=self.timestamps[idx],
            )

    def _declared_length(self, entry):
        start = entry.sector_offset * SECTOR_BYTES
        if entry.sector_offset < 2 or start + 5 > len(self.data):
            return None
        (length,) = struct.unpack_from(">I", self.data, start)
        if length == 0 or start + 4 + length > len(self.data):
            return None
        return length

    def _stored_length(self, entry):
        """Payload length, or None unless the payload fits its header allocation."""
        length = self._declared_length(entry)
        if length is None or length + 4 > entry.sector_count * SECTOR_BYTES:
            return None
        return length

    def is_external(self, entry):
        if self._stored_length(entry) is None:
            return False
        return bool(self.data[entry.sector_offset * SECTOR_BYTES + 4] & COMPRESSION_EXTERNAL)

    def external_path(self, entry):
        rx, rz = region_coords_from_name(self.path)
        cx, cz = chunk_coords(rx, rz, entry.local_x, entry.local_z)
        return os.path.join(os.path.dirname(self.path), f"c.{cx}.{cz}.mcc")

    def payload(self, entry):
        """Decompressed NBT bytes of a stored chunk."""
        length = self._stored_length(entry)
        if length is None:
            raise ChunkDecodeError(
                f"chunk {entry.local_x},{entry.local_z} points outside the region data or its sector allocation"
            )
        start = entry.sector_offset * SECTOR_BYTES
        compression = self.data[start + 4]
        body = self.data[start + 5:start + 4 + length]

        if compression & COMPRESSION_EXTERNAL:
            compression &= ~COMPRESSION_EXTERNAL
            try:
                with open(self.external_path(entry), "rb") as f:
                    body = f.read()
            except (OSError, NameParseError) as e:
                raise ChunkDecodeError(f"external chunk unreadable: {e}") from e

        try:
            if compression == COMPRESSION_ZLIB:
                return zlib.decompress(body)
            if compression == COMPRESSION_GZIP:
                return gzip.decompress(body)
        except (zlib.error, OSError, EOFError) as e:
            raise ChunkDecodeError(f"corrupt compressed chunk: {e}") from e
        if compression == COMPRESSION_NONE:
            return bytes(body)
        if compression == COMPRESSION_LZ4:
            raise ChunkDecodeError("LZ4 compressed chunks are not supported")
        raise ChunkDecodeError(f"unknown compression type {compression}")

    def raw(self, entry):
        """
        Stored bytes of a chunk exactly as found: the whole declared payload
        when its length is readable, even past a too small sector count,
        otherwise the header allocation.
        """
        start = entry.sector_offset * SECTOR_BYTES
        length = self._declared_length(entry)
        if length is not None:
            return self.data[start:start + 4 + length]
        return self.data[start:start + entry.sector_count * SECTOR_BYTES]

    def rewrite(self, remove=(), replace=None):
        """
        Write the region back without the chunks in `remove`.

        `replace` maps a chunk index to new uncompressed NBT bytes. Surviving
        chunks are packed sector by sector in their original order and the
        file ends right after the last of them. Returns the new file length.
        """
        remove = set(remove)
        replace = replace or {}
        now = int(time.time())
        image = bytearray(HEADER_BYTES)
        stale = []
        next_sector = HEADER_BYTES // SECTOR_BYTES

        for entry in sorted(self.chunks(), key=lambda e: (e.sector_offset, e.index)):
            if entry.index in remove or entry.index in replace:
                if self.is_external(entry):
                    stale.append(self.external_path(entry))
            if entry.index in remove:
                continue
            if entry.index in replace:
                blob = encode_payload(replace[entry.index])
                stamp = now
            else:
                blob = self.raw(entry)
                stamp = entry.timestamp
            blob = _pad(blob) or b"\x00" * SECTOR_BYTES
            sectors = len(blob) // SECTOR_BYTES
            if sectors > 0xFF:
                raise WriteError(f"chunk {entry.local_x},{entry.local_z} of {self.path} needs {sectors} sectors")
            struct.pack_into(">I", image, entry.index * 4, (next_sector << 8) | sectors)
            struct.pack_into(">I", image, SECTOR_BYTES + entry.index * 4, stamp)
            image += blob
            next_sector += sectors

        self._write_atomic(image)
        for sidecar in stale:
            if os.path.exists(sidecar):
                os.remove(sidecar)

        self.data = bytes(image)
        self.offsets = struct.unpack(f">{CHUNKS_PER_REGION}I", self.data[:SECTOR_BYTES])
        self.timestamps = struct.unpack(f">{CHUNKS_PER_REGION}I", self.data[SECTOR_BYTES:HEADER_BYTES])
        return len(self.data)

    def _write_atomic(self, image):
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            fd, tmp_path = tempfile.mkstemp(prefix=".", suffix=".mca.tmp", dir=directory)
        except OSError as e:
            raise WriteError(f"Cannot create temporary file for {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(image)
                f.truncate(len(image))
                f.flush()
                os.fsync(f.fileno())
            shutil.copymode(self.path, tmp_path)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise WriteError(f"Cannot rewrite {self.path}: {e}") from e
