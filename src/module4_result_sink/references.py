"""
Reference point fixture and numbered pair naming.
"""

import os
from typing import Dict, Optional, Tuple

import yaml

from ..module3_template_matching import ReferenceBox
from .exceptions import ResultSinkError


DEFAULT_REFERENCE_PATH = os.path.join(os.path.dirname(__file__), "reference_points.yaml")


def pair_file_names(index: int) -> Tuple[str, str]:
    """
    Scene and template file names for a numbered pair.

    Index 0 is the input1.bmp / input2.bmp pair; index N >= 1 is
    testNNN.bmp / objNNN.bmp.
    """
    if index < 0:
        raise ResultSinkError(f"Pair index must be >= 0, got {index}")
    if index == 0:
        return "input1.bmp", "input2.bmp"
    return f"test{index:03d}.bmp", f"obj{index:03d}.bmp"


def load_reference_points(path: Optional[str] = None) -> Dict[int, ReferenceBox]:
    """
    Load the reference fixture.

    Args:
        path: YAML file with a `reference_points` mapping of
              index -> [x, y] or [x, y, width, height].
              Defaults to the bundled fixture.

    Returns:
        Mapping of pair index to ReferenceBox

    Raises:
        ResultSinkError: If the file is missing or malformed
    """
    if path is None:
        path = DEFAULT_REFERENCE_PATH

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ResultSinkError(f"Cannot load reference points {path}: {e}") from e

    points = data.get("reference_points") if isinstance(data, dict) else None
    if not isinstance(points, dict):
        raise ResultSinkError(f"{path} has no reference_points mapping")

    references = {}
    for index, value in points.items():
        if not isinstance(value, (list, tuple)) or len(value) not in (2, 4):
            raise ResultSinkError(f"Reference {index} must be [x, y] or [x, y, w, h], got {value}")
        references[int(index)] = ReferenceBox(*(int(v) for v in value))

    return references
