class PruneError(Exception):
    """Base class for every error raised by regionprune."""

    kind = "error"


class PathError(PruneError):
    """A world or dimension directory is missing or is not a directory."""

    kind = "path"


class NameParseError(PruneError):
    """A container file name does not carry region coordinates."""

    kind = "name"


class ContainerOpenError(PruneError):
    """A region file could not be read as a region container."""

    kind = "open"


class ChunkDecodeError(PruneError):
    """A chunk payload matches neither known chunk schema."""

    kind = "decode"


class WriteError(PruneError):
    """Rewriting a region file failed."""

    kind = "write"


class CoordinateCollisionError(PruneError):
    """Two region files claimed the same chunk coordinate."""

    kind = "collision"


class ConfigError(PruneError):
    kind = "config"
