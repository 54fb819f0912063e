"""
Version-agnostic view of a serialized chunk.

Two on-disk layouts exist. Older chunks wrap everything in a "Level"
compound (Sections/Palette/BlockStates/TileEntities); newer ones keep the
fields at the root (sections/block_states/block_entities). The DataVersion
tag picks the layout, and both produce the same Chunk object.
"""
import io
import struct
from dataclasses import dataclass, field
from typing import List, Optional

from nbt import nbt

from .constants import FLAT_SCHEMA_DATA_VERSION, PADDED_STATES_DATA_VERSION, CHUNK_SIZE
from .errors import ChunkDecodeError

NESTED = "nested"
FLAT = "flat"

SECTION_VOLUME = CHUNK_SIZE * CHUNK_SIZE * CHUNK_SIZE
U64 = (1 << 64) - 1


@dataclass
class Section:
    y: int
    palette: List[str] = field(default_factory=list)
    data: Optional[List[int]] = None
    padded: bool = True

    @property
    def bits(self):
        return max(4, (len(self.palette) - 1).bit_length())

    def state_index(self, i):
        """Palette index of the i-th block (YZX order) of this section."""
        if not self.data:
            return 0
        bits = self.bits
        mask = (1 << bits) - 1
        try:
            if self.padded:
                per_long = 64 // bits
                word = self.data[i // per_long] & U64
                return (word >> ((i % per_long) * bits)) & mask
            word_i, shift = divmod(i * bits, 64)
            value = (self.data[word_i] & U64) >> shift
            if shift + bits > 64:
                value |= (self.data[word_i + 1] & U64) << (64 - shift)
            return value & mask
        except IndexError:
            raise ChunkDecodeError(f"block state data of section {self.y} is too short")

    def block_at(self, x, y, z):
        if not self.palette:
            return None
        idx = self.state_index((y * CHUNK_SIZE + z) * CHUNK_SIZE + x)
        if idx >= len(self.palette):
            raise ChunkDecodeError(f"palette index {idx} out of range in section {self.y}")
        return self.palette[idx]

    def blocks(self):
        """(x, y, z, name) of every block, y relative to the section."""
        if not self.palette:
            return
        for i in range(SECTION_VOLUME):
            y, rest = divmod(i, CHUNK_SIZE * CHUNK_SIZE)
            z, x = divmod(rest, CHUNK_SIZE)
            idx = self.state_index(i)
            if idx >= len(self.palette):
                raise ChunkDecodeError(f"palette index {idx} out of range in section {self.y}")
            yield x, y, z, self.palette[idx]


@dataclass
class Chunk:
    schema: str
    data_version: int
    inhabited_time: int
    sections: List[Section]
    block_entities: list = field(default_factory=list)
    light_on: bool = False


def decode_document(payload):
    """Parse an uncompressed NBT document."""
    try:
        return nbt.NBTFile(buffer=io.BytesIO(payload))
    except (nbt.MalformedFileError, struct.error, ValueError, KeyError, EOFError,
            TypeError, IndexError, AttributeError, OverflowError, RecursionError) as e:
        # the nbt parser surfaces some malformed input as arbitrary exceptions
        raise ChunkDecodeError(f"malformed chunk document: {e}") from e


def _child(compound, name, kind):
    if not isinstance(compound, nbt.TAG_Compound) or name not in compound:
        raise ChunkDecodeError(f"missing {name}")
    tag = compound[name]
    if not isinstance(tag, kind):
        raise ChunkDecodeError(f"{name} has unexpected type {tag.__class__.__name__}")
    return tag


def _optional(compound, name, kind):
    if name not in compound:
        return None
    return _child(compound, name, kind)


def _inhabited_time(compound):
    value = _child(compound, "InhabitedTime", (nbt.TAG_Long, nbt.TAG_Int)).value
    if value < 0:
        raise ChunkDecodeError(f"negative InhabitedTime {value}")
    return value


def _palette_names(palette):
    names = []
    for entry in palette.tags:
        names.append(_child(entry, "Name", nbt.TAG_String).value)
    return names


def _light_on(compound):
    tag = _optional(compound, "isLightOn", nbt.TAG_Byte)
    return bool(tag.value) if tag is not None else False


def _decode_flat(root, version):
    sections = []
    for tag in _child(root, "sections", nbt.TAG_List).tags:
        y = _child(tag, "Y", nbt.TAG_Byte).value
        section = Section(y=y)
        states = _optional(tag, "block_states", nbt.TAG_Compound)
        if states is not None:
            section.palette = _palette_names(_child(states, "palette", nbt.TAG_List))
            data = _optional(states, "data", nbt.TAG_Long_Array)
            section.data = list(data.value) if data is not None else None
        sections.append(section)

    entities = _optional(root, "block_entities", nbt.TAG_List)
    return Chunk(
        schema=FLAT,
        data_version=version,
        inhabited_time=_inhabited_time(root),
        sections=sections,
        block_entities=list(entities.tags) if entities is not None else [],
        light_on=_light_on(root),
    )


def _decode_nested(root, version):
    level = _child(root, "Level", nbt.TAG_Compound)
    padded = version >= PADDED_STATES_DATA_VERSION
    sections = []
    for tag in _child(level, "Sections", nbt.TAG_List).tags:
        y = _child(tag, "Y", nbt.TAG_Byte).value
        section = Section(y=y, padded=padded)
        palette = _optional(tag, "Palette", nbt.TAG_List)
        if palette is not None:
            section.palette = _palette_names(palette)
            data = _optional(tag, "BlockStates", nbt.TAG_Long_Array)
            section.data = list(data.value) if data is not None else None
        sections.append(section)

    entities = _optional(level, "TileEntities", nbt.TAG_List)
    return Chunk(
        schema=NESTED,
        data_version=version,
        inhabited_time=_inhabited_time(level),
        sections=sections,
        block_entities=list(entities.tags) if entities is not None else [],
        light_on=_light_on(level),
    )


def decode_chunk(root):
    version = _child(root, "DataVersion", nbt.TAG_Int).value
    if version >= FLAT_SCHEMA_DATA_VERSION:
        return _decode_flat(root, version)
    return _decode_nested(root, version)


def decode(payload):
    """Chunk view of an uncompressed chunk payload; ChunkDecodeError if neither layout fits."""
    return decode_chunk(decode_document(payload))


def chunk_holder(root, chunk):
    """Compound holding the chunk fields: the root, or Level for the nested layout."""
    return root if chunk.schema == FLAT else root["Level"]


def section_tags(root, chunk):
    name = "sections" if chunk.schema == FLAT else "Sections"
    return chunk_holder(root, chunk)[name].tags


def block_entity_pos(tag):
    return tuple(_child(tag, axis, nbt.TAG_Int).value for axis in ("x", "y", "z"))


def to_python(tag):
    """Plain Python value of an NBT tag, suitable for json.dumps."""
    if isinstance(tag, nbt.TAG_Compound):
        return {child.name: to_python(child) for child in tag.tags}
    if isinstance(tag, nbt.TAG_List):
        return [to_python(child) for child in tag.tags]
    if isinstance(tag, (nbt.TAG_Byte_Array, nbt.TAG_Int_Array, nbt.TAG_Long_Array)):
        return list(tag.value)
    return tag.value
