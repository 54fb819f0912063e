import os
import logging

from PIL import Image

logger = logging.getLogger("MapGen")


class MapRenderer:
    # One colour per chunk fate
    DEFAULT_PALETTE = {
        "background": (20, 20, 25),
        "active": (91, 142, 49),
        "buffer": (219, 211, 160),
        "pruned": (178, 34, 34),
        "unknown": (120, 120, 120),
    }
    MAX_PIXELS = 64 * 1024 * 1024

    def __init__(self, scale=4, palette=None):
        self.scale = max(1, int(scale))
        self.palette = self.DEFAULT_PALETTE.copy()
        if palette:
            self.palette.update(palette)

    def _fate(self, coords, ticks, keep, threshold):
        if ticks >= threshold:
            return "active"
        if coords in keep:
            return "buffer"
        return "pruned"

    def render_plan(self, index, keep, threshold, path, unknown=()):
        """
        Draw the prune plan, one scale x scale block per chunk, north up.

        `unknown` holds coordinates of chunks that could not be decoded and
        will be left alone.
        """
        coords = list(index) + list(unknown)
        if not coords:
            logger.warning("Nothing to render: no chunks were indexed")
            return {"status": "error", "message": "No chunks to render"}

        min_x = min(x for x, _ in coords)
        max_x = max(x for x, _ in coords)
        min_z = min(z for _, z in coords)
        max_z = max(z for _, z in coords)
        cols, rows = max_x - min_x + 1, max_z - min_z + 1

        scale = self.scale
        while scale > 1 and cols * rows * scale * scale > self.MAX_PIXELS:
            scale -= 1
        if scale != self.scale:
            logger.info(f"Preview scale reduced to {scale} to fit {cols}x{rows} chunks")

        img = Image.new("RGB", (cols * scale, rows * scale), color=self.palette["background"])
        counts = {"active": 0, "buffer": 0, "pruned": 0, "unknown": 0}

        def paint(x, z, fate):
            px, pz = (x - min_x) * scale, (z - min_z) * scale
            img.paste(self.palette[fate], (px, pz, px + scale, pz + scale))
            counts[fate] += 1

        for (x, z), ticks in index.items():
            paint(x, z, self._fate((x, z), ticks, keep, threshold))
        for x, z in unknown:
            paint(x, z, "unknown")

        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        img.save(path)
        logger.info(f"Plan preview saved to {path} ({img.width}x{img.height})")
        return {
            "status": "success",
            "path": path,
            "origin": (min_x, min_z),
            "scale": scale,
            "width": img.width,
            "height": img.height,
            "counts": counts,
        }
