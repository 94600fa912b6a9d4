"""
Data types produced and consumed by the template search, plus the
rectangle-overlap scoring used against a reference location.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .exceptions import MatchingConfigError


@dataclass(frozen=True)
class ScaleHypothesis:
    """
    One trial pair of independent downscale factors.

    Attributes:
        scale_width: Horizontal factor in (0, 1]
        scale_height: Vertical factor in (0, 1]
    """
    scale_width: float
    scale_height: float

    def __post_init__(self):
        for name in ("scale_width", "scale_height"):
            value = getattr(self, name)
            if not 0.0 < value <= 1.0:
                raise MatchingConfigError(f"{name} must be in (0, 1], got {value}")

    def __str__(self) -> str:
        return f"{self.scale_width:g}x{self.scale_height:g}"


@dataclass(frozen=True)
class ReferenceBox:
    """
    Expected template location in scene coordinates (top-left origin).

    width/height default to the extent of the candidate being scored.
    """
    x: int
    y: int
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass
class MatchCandidate:
    """
    A scored template location in scene coordinates.

    Attributes:
        x: Column of the top-left corner
        y: Row of the top-left corner, counted from the top
        accuracy: Score in [0, 1]
        iou: Overlap ratio against the reference, None without one
        width: Template width back-projected to scene scale
        height: Template height back-projected to scene scale
        score: Raw NCC value that admitted the candidate
        hypothesis: Scale pair that produced it
    """
    x: int
    y: int
    accuracy: float
    iou: Optional[float]
    width: int
    height: int
    score: float
    hypothesis: Optional[ScaleHypothesis] = None

    @property
    def location(self) -> Tuple[int, int]:
        return (self.x, self.y)


@dataclass
class MatchResult:
    """
    Outcome of one search.

    Attributes:
        candidates: Ranked candidates, best first, truncated to top_k
        elapsed_ms: Wall-clock search time in milliseconds
        hypothesis: Scale pair whose candidates were returned
        hypotheses_tried: Number of scale pairs evaluated
    """
    candidates: List[MatchCandidate] = field(default_factory=list)
    elapsed_ms: float = 0.0
    hypothesis: Optional[ScaleHypothesis] = None
    hypotheses_tried: int = 0

    @property
    def best(self) -> Optional[MatchCandidate]:
        return self.candidates[0] if self.candidates else None

    @property
    def average_accuracy(self) -> float:
        """Mean accuracy of the returned candidates, 0.0 when empty."""
        if not self.candidates:
            return 0.0
        return sum(c.accuracy for c in self.candidates) / len(self.candidates)


def overlap_area(
    ax: int, ay: int, aw: int, ah: int,
    bx: int, by: int, bw: int, bh: int,
) -> int:
    """Area shared by two axis-aligned rectangles (0 when disjoint)."""
    dx = min(ax + aw, bx + bw) - max(ax, bx)
    dy = min(ay + ah, by + bh) - max(ay, by)
    if dx <= 0 or dy <= 0:
        return 0
    return dx * dy


def score_against_reference(
    x: int, y: int, width: int, height: int, reference: ReferenceBox
) -> Optional[Tuple[float, float]]:
    """
    Accuracy and IoU of a candidate box against the reference.

    accuracy = overlap / candidate area
    IoU      = overlap / (candidate area + reference area - overlap)

    Returns:
        (accuracy, iou), or None when the boxes do not overlap
    """
    ref_width = reference.width if reference.width is not None else width
    ref_height = reference.height if reference.height is not None else height

    overlap = overlap_area(
        x, y, width, height,
        reference.x, reference.y, ref_width, ref_height,
    )
    if overlap == 0:
        return None

    area = width * height
    union = area + ref_width * ref_height - overlap
    return overlap / area, overlap / union


def rank_candidates(candidates: List[MatchCandidate]) -> List[MatchCandidate]:
    """
    Sort by accuracy, then raw NCC, both descending.

    The sort is stable, so equal candidates keep scan order.
    """
    return sorted(candidates, key=lambda c: (-c.accuracy, -c.score))
