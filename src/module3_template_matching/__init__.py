"""
Module 3: Template Matching

Multi-scale sliding-window normalized cross-correlation search. The scene is
blurred, downscaled per scale hypothesis and compared with the template at
every offset; accepted offsets are back-projected to scene coordinates and
ranked.

Public API:
    - TemplateMatcher(config_path=None, overrides=None)
    - TemplateMatcher.search(scene, template, reference=None) -> MatchResult
    - ncc_map(scene_gray, template_gray, flat_tolerance=0.5) -> np.ndarray
    - ncc_score(window, template, flat_tolerance=0.5) -> float
    - ScaleHypothesis, ReferenceBox, MatchCandidate, MatchResult

Coordinates: candidates use x = column and y = row counted from the TOP of
the scene, unlike PixelRaster buffers.
"""

from .matcher import TemplateMatcher
from .ncc import ncc_map, ncc_score, FLAT_EPSILON
from .candidates import (
    ScaleHypothesis,
    ReferenceBox,
    MatchCandidate,
    MatchResult,
    overlap_area,
    score_against_reference,
    rank_candidates,
)
from .exceptions import MatchingError, MatchingConfigError

__all__ = [
    "TemplateMatcher",
    "ncc_map",
    "ncc_score",
    "FLAT_EPSILON",
    "ScaleHypothesis",
    "ReferenceBox",
    "MatchCandidate",
    "MatchResult",
    "overlap_area",
    "score_against_reference",
    "rank_candidates",
    "MatchingError",
    "MatchingConfigError",
]

__version__ = "1.0.0"
