"""
Module 4: Result Sink

Consumers of match results outside the core: the appended text report,
annotated scene images, the reference point fixture and the `bmp-match`
command-line tool.

Public API:
    - format_report(scene_name, result) -> str
    - write_report(path, scene_name, result)
    - draw_rectangle(raster, x, y, width, height, color=(0, 255, 0))
    - annotate_scene(scene, candidates) -> PixelRaster
    - load_reference_points(path=None) -> Dict[int, ReferenceBox]
    - pair_file_names(index) -> (scene_name, template_name)
    - run_pair(matcher, scene_path, template_path, ...) -> MatchResult
    - main(argv=None) -> int
"""

from .report import (
    format_candidate_line,
    format_summary_line,
    format_report,
    write_report,
    REPORT_HEADER,
)
from .annotate import draw_rectangle, annotate_scene, BOX_COLOR
from .references import load_reference_points, pair_file_names
from .cli import run_pair, run_batch, main
from .exceptions import ResultSinkError

__all__ = [
    "format_candidate_line",
    "format_summary_line",
    "format_report",
    "write_report",
    "REPORT_HEADER",
    "draw_rectangle",
    "annotate_scene",
    "BOX_COLOR",
    "load_reference_points",
    "pair_file_names",
    "run_pair",
    "run_batch",
    "main",
    "ResultSinkError",
]

__version__ = "1.0.0"
