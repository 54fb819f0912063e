from .constants import VERSION as __version__
from .pruner import prune, PruneReport
