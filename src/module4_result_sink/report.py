"""
Plain-text match report.

One block per scene, appended to a shared file:

    input1.bmp:
    coordinates accuracy IoU
    (537, 420) 1 1
    ...
    average precision:0.93 processing time(ms):812.4
    <blank line>
"""

import logging
import os

from ..module3_template_matching import MatchCandidate, MatchResult
from .exceptions import ResultSinkError


logger = logging.getLogger(__name__)

REPORT_HEADER = "coordinates accuracy IoU"
DEFAULT_REPORT_NAME = "output.txt"


def format_candidate_line(candidate: MatchCandidate) -> str:
    """`(x, y) accuracy IoU`, with `n/a` when no reference was given."""
    iou = "n/a" if candidate.iou is None else f"{candidate.iou:g}"
    return f"({candidate.x}, {candidate.y}) {candidate.accuracy:g} {iou}"


def format_summary_line(result: MatchResult) -> str:
    return (
        f"average precision:{result.average_accuracy:g} "
        f"processing time(ms):{result.elapsed_ms:g}"
    )


def format_report(scene_name: str, result: MatchResult) -> str:
    """
    Render the report block for one scene.

    Args:
        scene_name: Label written on the first line (usually the file name)
        result: Search outcome

    Returns:
        Block text ending with a blank line
    """
    lines = [f"{scene_name}:", REPORT_HEADER]
    lines.extend(format_candidate_line(c) for c in result.candidates)
    lines.append(format_summary_line(result))
    return "\n".join(lines) + "\n\n"


def write_report(path: str, scene_name: str, result: MatchResult) -> None:
    """
    Append the report block for one scene to a text file.

    Raises:
        ResultSinkError: If the file cannot be written
    """
    parent = os.path.dirname(path)
    try:
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(path, 'a') as f:
            f.write(format_report(scene_name, result))
    except OSError as e:
        raise ResultSinkError(f"Failed to write report {path}: {e}") from e

    logger.info(f"Appended {len(result.candidates)} candidates for {scene_name} to {path}")
