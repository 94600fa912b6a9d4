"""
Candidate boxes drawn onto a scene raster.
"""

from typing import Iterable, Tuple

import cv2
import numpy as np

from ..module1_bitmap_codec import PixelRaster
from ..module3_template_matching import MatchCandidate
from .exceptions import ResultSinkError


BOX_COLOR = (0, 255, 0)


def draw_rectangle(
    raster: PixelRaster,
    x: int,
    y: int,
    width: int,
    height: int,
    color: Tuple[int, int, int] = BOX_COLOR,
) -> PixelRaster:
    """
    Draw a 1-pixel rectangle outline in place.

    (x, y) is the top-left corner counted from the top of the image.
    Parts outside the raster are clipped. Alpha is left untouched.

    Raises:
        ResultSinkError: If width or height is not positive
    """
    if width <= 0 or height <= 0:
        raise ResultSinkError(f"Rectangle extent must be positive, got {width}x{height}")

    rgb = np.ascontiguousarray(raster.top_down()[..., :3])
    cv2.rectangle(
        rgb,
        (int(x), int(y)),
        (int(x + width - 1), int(y + height - 1)),
        tuple(int(c) for c in color),
        thickness=1,
    )
    raster.pixels[..., :3] = rgb[::-1]
    return raster


def annotate_scene(
    scene: PixelRaster,
    candidates: Iterable[MatchCandidate],
    color: Tuple[int, int, int] = BOX_COLOR,
) -> PixelRaster:
    """
    Copy of the scene with a box at every candidate's location and extent.
    """
    annotated = scene.copy()
    for candidate in candidates:
        draw_rectangle(annotated, candidate.x, candidate.y, candidate.width, candidate.height, color)
    return annotated
