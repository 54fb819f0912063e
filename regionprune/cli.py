import re
import sys
import json
import logging
import argparse
from pprint import pformat

from .constants import VERSION, DIMENSIONS
from .bounds import parse_coords, parse_duration
from .errors import PathError, ConfigError, CoordinateCollisionError, ContainerOpenError, WriteError
from .lighting import reset_lighting
from .listing import list_entities, list_block_entities, find_blocks
from .pruner import prune
from .storage import load_config

logger = logging.getLogger("RegionPrune")


def setup_logging(verbose=False, log_file=None):
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )


def build_parser():
    ap = argparse.ArgumentParser(
        prog="regionprune",
        description="Prune rarely visited chunks from a world save, keeping a buffer around active areas.",
    )
    ap.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    ap.add_argument("-c", "--config", default=None, help="JSON config file")
    ap.add_argument("--log-file", default=None, help="Also write the log to this file")
    ap.add_argument("-w", "--world", required=True, help="World save directory")
    ap.add_argument("-d", "--dimension", choices=sorted(DIMENSIONS), default=None,
                    help="Dimension to work on (default: overworld)")

    sub = ap.add_subparsers(dest="action", required=True)

    p = sub.add_parser("prune", help="Remove inactive chunks outside the buffer zone")
    p.add_argument("-i", "--inhabited-under", default=None,
                   help="Inhabited time threshold: ticks, or with a s/m/h/d suffix (e.g. 5m)")
    p.add_argument("-b", "--buffer", type=float, default=None,
                   help="Buffer radius in chunks kept around active areas")
    p.add_argument("-j", "--workers", type=int, default=None, help="Worker processes")
    p.add_argument("--dry-run", action="store_true", help="Count prunable chunks without writing")
    p.add_argument("--preview", default=None, help="Save a PNG of the prune plan")

    p = sub.add_parser("entities", help="Print entities within bounds")
    p.add_argument("-f", "--from", dest="lower", type=parse_coords, default=None, help="x,y,z")
    p.add_argument("-t", "--to", dest="upper", type=parse_coords, default=None, help="x,y,z")
    p.add_argument("--block-entities", action="store_true", help="List block entities instead")
    p.add_argument("--json", action="store_true", help="One JSON document per line")

    p = sub.add_parser("blocks", help="Find blocks whose name matches a pattern")
    p.add_argument("-p", "--pattern", required=True, help="Regular expression, e.g. minecraft:diamond_ore")
    p.add_argument("-f", "--from", dest="lower", type=parse_coords, default=None, help="x,y,z")
    p.add_argument("-t", "--to", dest="upper", type=parse_coords, default=None, help="x,y,z")

    p = sub.add_parser("reset-lighting", help="Strip stored light from a region file")
    p.add_argument("region", help="Path to an r.<x>.<z>.mca file")
    return ap


def _print_document(doc, as_json):
    if as_json:
        print(json.dumps(doc))
    else:
        print(pformat(doc))


def run_prune(args, config):
    try:
        threshold = parse_duration(args.inhabited_under or config["inhabited_under"])
    except ValueError as e:
        raise ConfigError(str(e))
    buffer_radius = args.buffer if args.buffer is not None else float(config["buffer"])
    workers = args.workers or config["workers"]
    logger.info(f"Pruning chunks inhabited under {threshold} ticks, buffer {buffer_radius} chunks")
    report = prune(args.world, args.dimension, threshold, buffer_radius,
                   workers=workers, dry_run=args.dry_run, preview=args.preview)
    print(report.summary())
    return 2 if report.failures else 0


def run_entities(args):
    if args.block_entities:
        for _, doc in list_block_entities(args.world, args.dimension, args.lower, args.upper):
            _print_document(doc, args.json)
    else:
        for _, doc in list_entities(args.world, args.dimension, args.lower, args.upper):
            _print_document(doc, args.json)
    return 0


def run_blocks(args):
    for (x, y, z), name in find_blocks(args.world, args.dimension, args.pattern, args.lower, args.upper):
        print(f"{x} {y} {z} {name}")
    return 0


def main(argv=None):
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as e:
        ap.error(str(e))
    setup_logging(args.verbose, args.log_file or config["log_file"])
    args.dimension = args.dimension or config["dimension"]

    try:
        if args.action == "prune":
            return run_prune(args, config)
        if args.action == "entities":
            return run_entities(args)
        if args.action == "blocks":
            return run_blocks(args)
        reset_lighting(args.region)
        return 0
    except (PathError, ConfigError, CoordinateCollisionError, ContainerOpenError, WriteError,
            ValueError, re.error) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
