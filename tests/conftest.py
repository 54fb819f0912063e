import io
import gzip
import zlib
import struct

import pytest
from nbt import nbt

SECTOR = 4096
U64 = (1 << 64) - 1


class Stored:
    """A literal stored chunk blob (length + compression byte + body)."""

    def __init__(self, blob):
        self.blob = blob


def stored_blob(payload, compression=2):
    if compression == 2:
        body = zlib.compress(payload)
    elif compression == 1:
        body = gzip.compress(payload)
    else:
        body = payload
    body = bytes([compression]) + body
    return struct.pack(">I", len(body)) + body


def write_region(path, chunks, compression=2):
    """Write an Anvil region file holding {(local_x, local_z): nbt bytes or Stored}."""
    header = bytearray(2 * SECTOR)
    body = bytearray()
    sector = 2
    for (lx, lz), payload in sorted(chunks.items(), key=lambda kv: (kv[0][1], kv[0][0])):
        blob = payload.blob if isinstance(payload, Stored) else stored_blob(payload, compression)
        blob += b"\x00" * ((-len(blob)) % SECTOR)
        count = len(blob) // SECTOR
        idx = lx + lz * 32
        struct.pack_into(">I", header, idx * 4, (sector << 8) | count)
        struct.pack_into(">I", header, SECTOR + idx * 4, 1000 + idx)
        body += blob
        sector += count
    path.write_bytes(bytes(header + body))
    return path


def to_signed(value):
    return value - (1 << 64) if value >= (1 << 63) else value


def pack_states(indices, bits, padded=True):
    if padded:
        per_long = 64 // bits
        longs = [0] * (-(-len(indices) // per_long))
        for i, v in enumerate(indices):
            longs[i // per_long] |= v << ((i % per_long) * bits)
    else:
        longs = [0] * (-(-len(indices) * bits // 64))
        for i, v in enumerate(indices):
            word, shift = divmod(i * bits, 64)
            longs[word] |= (v << shift) & U64
            if shift + bits > 64:
                longs[word + 1] |= v >> (64 - shift)
    return [to_signed(v) for v in longs]


def render(root):
    buf = io.BytesIO()
    root.write_file(buffer=buf)
    return buf.getvalue()


def _palette(name, names):
    palette = nbt.TAG_List(name=name, type=nbt.TAG_Compound)
    for block in names:
        entry = nbt.TAG_Compound()
        entry.tags.append(nbt.TAG_String(name="Name", value=block))
        palette.tags.append(entry)
    return palette


def _long_array(name, values):
    arr = nbt.TAG_Long_Array(name=name)
    arr.value = list(values)
    return arr


def _light(section):
    for key in ("BlockLight", "SkyLight"):
        arr = nbt.TAG_Byte_Array(name=key)
        arr.value = bytearray(2048)
        section.tags.append(arr)


def flat_section(y, palette=("minecraft:air",), data=None, light=True):
    section = nbt.TAG_Compound()
    section.tags.append(nbt.TAG_Byte(name="Y", value=y))
    states = nbt.TAG_Compound(name="block_states")
    states.tags.append(_palette("palette", palette))
    if data is not None:
        states.tags.append(_long_array("data", data))
    section.tags.append(states)
    if light:
        _light(section)
    return section


def nested_section(y, palette=("minecraft:air",), data=None, light=True):
    section = nbt.TAG_Compound()
    section.tags.append(nbt.TAG_Byte(name="Y", value=y))
    section.tags.append(_palette("Palette", palette))
    if data is not None:
        section.tags.append(_long_array("BlockStates", data))
    if light:
        _light(section)
    return section


def block_entity(x, y, z, kind="minecraft:chest"):
    tag = nbt.TAG_Compound()
    tag.tags.append(nbt.TAG_String(name="id", value=kind))
    for axis, value in zip("xyz", (x, y, z)):
        tag.tags.append(nbt.TAG_Int(name=axis, value=value))
    return tag


def _fill(holder, inhabited, sections, section_list, entities, entity_list, light_on):
    if inhabited is not None:
        holder.tags.append(nbt.TAG_Long(name="InhabitedTime", value=inhabited))
    holder.tags.append(nbt.TAG_Byte(name="isLightOn", value=1 if light_on else 0))
    secs = nbt.TAG_List(name=section_list, type=nbt.TAG_Compound)
    secs.tags.extend(sections)
    holder.tags.append(secs)
    ents = nbt.TAG_List(name=entity_list, type=nbt.TAG_Compound)
    ents.tags.extend(entities)
    holder.tags.append(ents)


def flat_chunk(inhabited, data_version=2825, sections=None, block_entities=(), light_on=True):
    root = nbt.NBTFile()
    root.name = ""
    if data_version is not None:
        root.tags.append(nbt.TAG_Int(name="DataVersion", value=data_version))
    if sections is None:
        sections = [flat_section(0)]
    _fill(root, inhabited, sections, "sections", block_entities, "block_entities", light_on)
    return render(root)


def nested_chunk(inhabited, data_version=2724, sections=None, block_entities=(), light_on=True):
    root = nbt.NBTFile()
    root.name = ""
    if data_version is not None:
        root.tags.append(nbt.TAG_Int(name="DataVersion", value=data_version))
    level = nbt.TAG_Compound(name="Level")
    if sections is None:
        sections = [nested_section(0)]
    _fill(level, inhabited, sections, "Sections", block_entities, "TileEntities", light_on)
    root.tags.append(level)
    return render(root)


@pytest.fixture
def world(tmp_path):
    root = tmp_path / "world"
    (root / "region").mkdir(parents=True)
    return root


@pytest.fixture
def region_dir(world):
    return world / "region"


def set_sector_count(path, local_x, local_z, count):
    """Overwrite the sector count byte of one header entry."""
    data = bytearray(path.read_bytes())
    data[(local_x + local_z * 32) * 4 + 3] = count
    path.write_bytes(bytes(data))
    return path


# A compound holding a list of TAG_End elements, which the nbt parser cannot build
END_LIST_DOCUMENT = b"\x0a\x00\x00" + b"\x09\x00\x02xs\x00" + struct.pack(">i", 3) + b"\x00"
