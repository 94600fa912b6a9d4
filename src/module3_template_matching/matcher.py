"""
Multi-scale template search.
"""

import logging
import os
import time
from typing import List, Optional

import numpy as np
import yaml

from ..module1_bitmap_codec import PixelRaster
from ..module2_image_ops import (
    ImageOpsError,
    gaussian_blur_n,
    nearest_resample,
    to_grayscale,
)
from .candidates import (
    MatchCandidate,
    MatchResult,
    ReferenceBox,
    ScaleHypothesis,
    rank_candidates,
    score_against_reference,
)
from .exceptions import MatchingError, MatchingConfigError
from .ncc import ncc_map


logger = logging.getLogger(__name__)


def _as_float(name: str, value) -> float:
    """Coerce a configuration value, raising MatchingConfigError if it is not numeric."""
    if isinstance(value, bool):
        raise MatchingConfigError(f"{name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise MatchingConfigError(f"{name} must be a number, got {value!r}") from e


class TemplateMatcher:
    """
    Locates a template inside a scene with sliding-window NCC.

    The scene is blurred once, then for every scale hypothesis it is
    downscaled and compared with the template at native size. Candidates
    of each hypothesis are ranked on their own; the search stops at the
    first hypothesis whose best candidate is accurate enough.
    """

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[dict] = None):
        """
        Initialize the matcher.

        Args:
            config_path: Path to configuration YAML file.
                        If None, uses default configuration.
            overrides: Keys replacing entries of the `matching` section

        Raises:
            MatchingConfigError: If the file cannot be read or a value is invalid
        """
        self.config = self._load_config(config_path)
        if overrides:
            self.config["matching"].update(overrides)
        self.hypotheses = self._validate_config(self.config["matching"])

    def _load_config(self, config_path: Optional[str]) -> dict:
        """
        Load configuration from file or use defaults.

        Args:
            config_path: Path to config file or None

        Returns:
            Configuration dictionary with a `matching` section
        """
        defaults = self._get_default_config()

        if config_path is None:
            # Use default config from same directory
            default_config_path = os.path.join(
                os.path.dirname(__file__),
                "default_config.yaml"
            )
            if not os.path.exists(default_config_path):
                return defaults
            config_path = default_config_path

        try:
            with open(config_path, 'r') as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise MatchingConfigError(f"Cannot load matching config {config_path}: {e}") from e

        if not isinstance(loaded, dict):
            raise MatchingConfigError(f"Matching config {config_path} must be a mapping")

        defaults["matching"].update(loaded.get("matching") or {})
        return defaults

    def _get_default_config(self) -> dict:
        """
        Get hardcoded default configuration.

        Returns:
            Default configuration dictionary
        """
        return {
            "matching": {
                "blur_passes": 3,
                "ncc_threshold": 0.6,
                "early_stop_accuracy": 0.8,
                "top_k": 5,
                "flat_tolerance": 0.5,
                "scale_schedule": {
                    "widths": [0.15, 0.10, 0.05],
                    "heights": [0.05, 0.10, 0.15],
                },
            }
        }

    def _validate_config(self, matching: dict) -> List[ScaleHypothesis]:
        if not isinstance(matching["blur_passes"], int) or matching["blur_passes"] < 0:
            raise MatchingConfigError(
                f"blur_passes must be a non-negative integer, got {matching['blur_passes']}"
            )
        if not isinstance(matching["top_k"], int) or matching["top_k"] < 1:
            raise MatchingConfigError(f"top_k must be a positive integer, got {matching['top_k']}")
        for key in ("ncc_threshold", "early_stop_accuracy", "flat_tolerance"):
            matching[key] = _as_float(key, matching[key])

        if not -1.0 <= matching["ncc_threshold"] < 1.0:
            raise MatchingConfigError(
                f"ncc_threshold must be in [-1, 1), got {matching['ncc_threshold']}"
            )
        if not 0.0 <= matching["early_stop_accuracy"] <= 1.0:
            raise MatchingConfigError(
                f"early_stop_accuracy must be in [0, 1], got {matching['early_stop_accuracy']}"
            )
        if matching["flat_tolerance"] < 0.0:
            raise MatchingConfigError(
                f"flat_tolerance must be >= 0, got {matching['flat_tolerance']}"
            )

        schedule = matching["scale_schedule"]
        if not isinstance(schedule, dict):
            raise MatchingConfigError("scale_schedule must map widths/heights to lists")
        widths = schedule.get("widths") or []
        heights = schedule.get("heights") or []
        if not isinstance(widths, list) or not isinstance(heights, list):
            raise MatchingConfigError("scale_schedule widths/heights must be lists")
        if not widths or not heights:
            raise MatchingConfigError("scale_schedule needs at least one width and one height")

        # Widths outer, heights inner
        return [
            ScaleHypothesis(_as_float("scale width", sw), _as_float("scale height", sh))
            for sw in widths
            for sh in heights
        ]

    def search(
        self,
        scene: PixelRaster,
        template: PixelRaster,
        reference: Optional[ReferenceBox] = None,
    ) -> MatchResult:
        """
        Search the scene for the template over the scale schedule.

        Args:
            scene: Scene raster (not modified)
            template: Template raster at its native size (not modified)
            reference: Expected location used for accuracy/IoU scoring.
                       Without it accuracy is the NCC clipped to [0, 1].

        Returns:
            MatchResult with the top_k candidates of the hypothesis that
            stopped the search, or of the last hypothesis tried

        Raises:
            MatchingError: If either input is not a PixelRaster
        """
        for name, raster in (("scene", scene), ("template", template)):
            if not isinstance(raster, PixelRaster):
                raise MatchingError(f"{name} must be a PixelRaster, got {type(raster)}")

        matching = self.config["matching"]
        start = time.perf_counter()

        blurred = gaussian_blur_n(scene.copy(), matching["blur_passes"])
        template_gray = to_grayscale(template)[::-1]

        candidates: List[MatchCandidate] = []
        chosen = None
        tried = 0

        for hypothesis in self.hypotheses:
            tried += 1
            candidates = self._search_hypothesis(
                blurred, template_gray, hypothesis, reference
            )
            chosen = hypothesis

            if candidates and candidates[0].accuracy >= matching["early_stop_accuracy"]:
                logger.debug(
                    f"Early stop at {hypothesis}: best accuracy {candidates[0].accuracy:.4f}"
                )
                break

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        result = MatchResult(
            candidates=candidates[:matching["top_k"]],
            elapsed_ms=elapsed_ms,
            hypothesis=chosen,
            hypotheses_tried=tried,
        )

        logger.info(
            f"Search finished: {len(result.candidates)} candidates, "
            f"{tried}/{len(self.hypotheses)} hypotheses, {elapsed_ms:.1f} ms"
        )
        return result

    def _search_hypothesis(
        self,
        blurred: PixelRaster,
        template_gray: np.ndarray,
        hypothesis: ScaleHypothesis,
        reference: Optional[ReferenceBox],
    ) -> List[MatchCandidate]:
        """Ranked candidates for one scale pair (empty if the template does not fit)."""
        matching = self.config["matching"]
        sw, sh = hypothesis.scale_width, hypothesis.scale_height

        try:
            small = nearest_resample(blurred, sw, sh)
        except ImageOpsError:
            logger.warning(f"Skipping {hypothesis}: scene vanishes at this scale")
            return []

        t_height, t_width = template_gray.shape
        if t_height > small.height or t_width > small.width:
            logger.warning(
                f"Skipping {hypothesis}: scaled scene {small.width}x{small.height} "
                f"smaller than template {t_width}x{t_height}"
            )
            return []

        scene_gray = to_grayscale(small)[::-1]
        scores = ncc_map(scene_gray, template_gray, matching["flat_tolerance"])

        # Template extent expressed at scene scale
        width = int(t_width / sw)
        height = int(t_height / sh)

        candidates = []
        rows, cols = np.nonzero(scores > matching["ncc_threshold"])
        for i, j in zip(rows.tolist(), cols.tolist()):
            x = min(int(j / sw), blurred.width - 1)
            y = min(int(i / sh), blurred.height - 1)
            ncc = float(scores[i, j])

            if reference is None:
                accuracy, iou = min(max(ncc, 0.0), 1.0), None
            else:
                scored = score_against_reference(x, y, width, height, reference)
                if scored is None:
                    continue
                accuracy, iou = scored

            candidates.append(MatchCandidate(
                x=x, y=y,
                accuracy=accuracy, iou=iou,
                width=width, height=height,
                score=ncc, hypothesis=hypothesis,
            ))

        logger.debug(
            f"Hypothesis {hypothesis}: {scores.size} offsets, {len(candidates)} candidates"
        )
        return rank_candidates(candidates)
