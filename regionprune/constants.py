VERSION = "0.3.0"

# Region container geometry
REGION_SIZE = 32
CHUNKS_PER_REGION = REGION_SIZE * REGION_SIZE
SECTOR_BYTES = 4096
HEADER_BYTES = 2 * SECTOR_BYTES
CHUNK_SIZE = 16

# Payload compression ids
COMPRESSION_GZIP = 1
COMPRESSION_ZLIB = 2
COMPRESSION_NONE = 3
COMPRESSION_LZ4 = 4
COMPRESSION_EXTERNAL = 128

# First DataVersion written without the "Level" wrapper
FLAT_SCHEMA_DATA_VERSION = 2825
# From this DataVersion on, packed block states never span two longs
PADDED_STATES_DATA_VERSION = 2527

TICKS_PER_SECOND = 20

DIMENSIONS = {
    "overworld": "",
    "nether": "DIM-1",
    "end": "DIM1",
}
