# file: tests/test_module3_template_matching.py

"""
Unit tests for Module 3: Template Matching.

Test coverage:
    - NCC values on matching, inverted and flat inputs
    - Overlap scoring and ranking
    - End-to-end search on a small synthetic scene
    - Early stop, skipped hypotheses and top-k truncation
    - Configuration loading and validation
"""

import numpy as np
import pytest

from src.module1_bitmap_codec import PixelRaster
from src.module3_template_matching import (
    TemplateMatcher,
    ncc_map,
    ncc_score,
    ScaleHypothesis,
    ReferenceBox,
    MatchCandidate,
    MatchResult,
    overlap_area,
    score_against_reference,
    rank_candidates,
    MatchingError,
    MatchingConfigError,
)


# Single native-scale hypothesis, no smoothing
NATIVE_SCALE = {
    'blur_passes': 0,
    'scale_schedule': {'widths': [1.0], 'heights': [1.0]},
}


def block_scene() -> PixelRaster:
    """4x4 white scene with a 2x2 black block whose top-left is (1, 1)."""
    rgb = np.full((4, 4, 3), 255, dtype=np.uint8)
    rgb[1:3, 1:3] = 0
    return PixelRaster.from_top_down(rgb)


def black_template() -> PixelRaster:
    return PixelRaster.blank(2, 2, (0, 0, 0, 255))


def gray_raster(values: np.ndarray) -> PixelRaster:
    """Raster whose top-down gray level equals values."""
    rgb = np.repeat(values.astype(np.uint8)[..., None], 3, axis=2)
    return PixelRaster.from_top_down(rgb)


class TestNCC:
    """Normalized cross-correlation."""

    def test_self_match_is_one(self):
        rng = np.random.default_rng(3)
        template = rng.integers(0, 256, size=(6, 5))
        assert ncc_score(template, template) == pytest.approx(1.0, abs=1e-9)

    def test_inverted_is_minus_one(self):
        template = np.array([[0, 50], [100, 200]])
        assert ncc_score(255 - template, template) == pytest.approx(-1.0, abs=1e-9)

    def test_affine_invariance(self):
        template = np.array([[1, 2, 3], [4, 5, 9]])
        assert ncc_score(template * 3 + 40, template) == pytest.approx(1.0, abs=1e-9)

    def test_map_shape_and_peak(self):
        rng = np.random.default_rng(11)
        scene = rng.integers(0, 256, size=(12, 10)).astype(np.float64)
        template = scene[4:8, 3:6]

        scores = ncc_map(scene, template)
        assert scores.shape == (9, 8)
        assert np.unravel_index(np.argmax(scores), scores.shape) == (4, 3)
        assert scores[4, 3] == pytest.approx(1.0, abs=1e-9)

    def test_both_flat_same_level(self):
        flat = np.full((3, 3), 80)
        assert ncc_score(flat, flat) == 1.0

    def test_both_flat_different_level(self):
        assert ncc_score(np.full((3, 3), 80), np.full((3, 3), 81)) == 0.0

    def test_one_side_flat(self):
        textured = np.array([[0, 255], [255, 0]])
        flat = np.full((2, 2), 128)
        assert ncc_score(flat, textured) == 0.0
        assert ncc_score(textured, flat) == 0.0

    def test_no_nan_on_flat_scene(self):
        scores = ncc_map(np.zeros((6, 6)), np.array([[1, 2], [3, 4]]))
        assert not np.isnan(scores).any()
        assert (scores == 0.0).all()

    def test_template_larger_than_scene(self):
        with pytest.raises(MatchingError):
            ncc_map(np.zeros((2, 2)), np.zeros((3, 1)))

    def test_shape_mismatch(self):
        with pytest.raises(MatchingError):
            ncc_score(np.zeros((2, 2)), np.zeros((2, 3)))

    def test_rejects_non_2d(self):
        with pytest.raises(MatchingError):
            ncc_map(np.zeros((2, 2, 3)), np.zeros((1, 1)))


class TestCandidates:
    """Scoring helpers and data types."""

    def test_overlap_area(self):
        assert overlap_area(0, 0, 4, 4, 2, 2, 4, 4) == 4
        assert overlap_area(0, 0, 2, 2, 2, 0, 2, 2) == 0
        assert overlap_area(1, 1, 2, 2, 0, 0, 10, 10) == 4

    def test_score_exact_match(self):
        assert score_against_reference(5, 5, 4, 3, ReferenceBox(5, 5)) == (1.0, 1.0)

    def test_score_partial_overlap(self):
        accuracy, iou = score_against_reference(1, 1, 2, 2, ReferenceBox(2, 2))
        assert accuracy == pytest.approx(0.25)
        assert iou == pytest.approx(1 / 7)

    def test_score_explicit_reference_extent(self):
        accuracy, iou = score_against_reference(0, 0, 2, 2, ReferenceBox(0, 0, 4, 4))
        assert accuracy == 1.0
        assert iou == pytest.approx(4 / 16)

    def test_score_disjoint(self):
        assert score_against_reference(0, 0, 2, 2, ReferenceBox(5, 5)) is None

    def test_rank_breaks_ties_by_ncc_then_order(self):
        a = MatchCandidate(0, 0, 0.9, None, 1, 1, score=0.7)
        b = MatchCandidate(1, 0, 0.9, None, 1, 1, score=0.8)
        c = MatchCandidate(2, 0, 1.0, None, 1, 1, score=0.61)
        d = MatchCandidate(3, 0, 0.9, None, 1, 1, score=0.7)
        assert [m.x for m in rank_candidates([a, b, c, d])] == [2, 1, 0, 3]

    @pytest.mark.parametrize("sw,sh", [(0.0, 0.5), (0.5, 1.01), (-1.0, 1.0)])
    def test_hypothesis_bounds(self, sw, sh):
        with pytest.raises(MatchingConfigError):
            ScaleHypothesis(sw, sh)

    def test_empty_result_average(self):
        assert MatchResult().average_accuracy == 0.0
        assert MatchResult().best is None


class TestTemplateMatcherSearch:
    """End-to-end search."""

    def test_block_found_at_one_one(self):
        matcher = TemplateMatcher(overrides=NATIVE_SCALE)
        result = matcher.search(block_scene(), black_template())

        best = result.best
        assert best is not None
        assert best.location == (1, 1)
        assert (best.width, best.height) == (2, 2)
        assert best.iou is None
        assert best.accuracy == 1.0
        assert result.elapsed_ms >= 0.0

    def test_blurred_block_not_matched_by_flat_template(self):
        # Three blur passes leave the block window flat at a gray level far
        # from the black template, so no offset clears the threshold
        matcher = TemplateMatcher(overrides={
            'blur_passes': 3,
            'scale_schedule': {'widths': [1.0], 'heights': [1.0]},
        })
        result = matcher.search(block_scene(), black_template())

        assert result.candidates == []
        assert result.hypotheses_tried == 1

    def test_block_scores_higher_than_origin(self):
        scene_gray = np.full((4, 4), 255)
        scene_gray[1:3, 1:3] = 0
        scores = ncc_map(scene_gray, np.zeros((2, 2)))
        assert scores[1, 1] > scores[0, 0]

    def test_textured_template_found(self):
        rng = np.random.default_rng(5)
        values = rng.integers(0, 256, size=(10, 12))
        scene = gray_raster(values)
        template = gray_raster(values[3:7, 6:10])

        result = TemplateMatcher(overrides=NATIVE_SCALE).search(scene, template)
        assert result.best.location == (6, 3)

    def test_reference_scoring(self):
        matcher = TemplateMatcher(overrides=NATIVE_SCALE)
        result = matcher.search(block_scene(), black_template(), ReferenceBox(1, 1))

        assert result.best.accuracy == 1.0
        assert result.best.iou == 1.0

    def test_reference_partial_overlap(self):
        matcher = TemplateMatcher(overrides=NATIVE_SCALE)
        result = matcher.search(block_scene(), black_template(), ReferenceBox(2, 2))

        assert result.best.accuracy == pytest.approx(0.25)
        assert result.best.iou == pytest.approx(1 / 7)

    def test_disjoint_reference_drops_candidates(self):
        matcher = TemplateMatcher(overrides=NATIVE_SCALE)
        result = matcher.search(block_scene(), black_template(), ReferenceBox(3, 3))
        assert result.candidates == []

    def test_early_stop(self):
        matcher = TemplateMatcher(overrides={
            'blur_passes': 0,
            'scale_schedule': {'widths': [1.0, 0.5], 'heights': [1.0]},
        })
        result = matcher.search(block_scene(), black_template(), ReferenceBox(1, 1))

        assert result.hypotheses_tried == 1
        assert result.hypothesis == ScaleHypothesis(1.0, 1.0)

    def test_no_candidates_tries_everything(self):
        scene = PixelRaster.blank(4, 4, (255, 255, 255, 255))
        matcher = TemplateMatcher(overrides={
            'blur_passes': 0,
            'scale_schedule': {'widths': [1.0, 0.75], 'heights': [1.0]},
        })
        result = matcher.search(scene, black_template())

        assert result.candidates == []
        assert result.hypotheses_tried == 2
        assert result.hypothesis == ScaleHypothesis(0.75, 1.0)

    def test_scene_smaller_than_template_skipped(self):
        matcher = TemplateMatcher(overrides={
            'blur_passes': 0,
            'scale_schedule': {'widths': [0.25], 'heights': [0.25, 0.1]},
        })
        result = matcher.search(block_scene(), black_template())
        assert result.candidates == []
        assert result.hypotheses_tried == 2

    def test_back_projection(self):
        # Block at scene (4, 2) seen at half width: column 2 of the small scene
        rgb = np.full((4, 8, 3), 255, dtype=np.uint8)
        rgb[2:4, 4:8] = 0
        matcher = TemplateMatcher(overrides={
            'blur_passes': 0,
            'scale_schedule': {'widths': [0.5], 'heights': [1.0]},
        })
        result = matcher.search(PixelRaster.from_top_down(rgb), black_template())

        assert result.best.location == (4, 2)
        assert (result.best.width, result.best.height) == (4, 2)

    def test_top_k_truncation_and_order(self):
        ramp = np.tile(np.arange(8) * 20, (8, 1))
        scene = gray_raster(ramp)
        template = gray_raster(ramp[:3, :3])
        matcher = TemplateMatcher(overrides=dict(NATIVE_SCALE, top_k=3))

        result = matcher.search(scene, template)
        assert len(result.candidates) == 3
        accuracies = [c.accuracy for c in result.candidates]
        assert accuracies == sorted(accuracies, reverse=True)

    def test_scene_not_modified(self):
        scene = block_scene()
        before = scene.pixels.copy()
        matcher = TemplateMatcher(overrides={
            'scale_schedule': {'widths': [1.0], 'heights': [1.0]},
        })
        matcher.search(scene, black_template())
        np.testing.assert_array_equal(scene.pixels, before)

    def test_rejects_non_raster(self):
        with pytest.raises(MatchingError):
            TemplateMatcher().search(np.zeros((4, 4)), black_template())


class TestTemplateMatcherConfig:
    """Configuration loading and validation."""

    def test_default_schedule(self):
        matcher = TemplateMatcher()
        matching = matcher.config['matching']

        assert matching['blur_passes'] == 3
        assert matching['ncc_threshold'] == 0.6
        assert matching['top_k'] == 5
        assert len(matcher.hypotheses) == 9
        assert matcher.hypotheses[0] == ScaleHypothesis(0.15, 0.05)
        assert matcher.hypotheses[1] == ScaleHypothesis(0.15, 0.10)
        assert matcher.hypotheses[-1] == ScaleHypothesis(0.05, 0.15)

    def test_yaml_overlay(self, tmp_path):
        path = tmp_path / "matching.yaml"
        path.write_text("matching:\n  top_k: 2\n  blur_passes: 1\n")

        matcher = TemplateMatcher(str(path))
        assert matcher.config['matching']['top_k'] == 2
        assert matcher.config['matching']['blur_passes'] == 1
        assert matcher.config['matching']['ncc_threshold'] == 0.6

    def test_missing_file(self, tmp_path):
        with pytest.raises(MatchingConfigError):
            TemplateMatcher(str(tmp_path / "missing.yaml"))

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(MatchingConfigError):
            TemplateMatcher(str(path))

    @pytest.mark.parametrize("overrides", [
        {'blur_passes': -1},
        {'top_k': 0},
        {'ncc_threshold': 1.5},
        {'early_stop_accuracy': 2.0},
        {'flat_tolerance': -0.1},
        {'scale_schedule': {'widths': [], 'heights': [0.1]}},
        {'scale_schedule': {'widths': [1.5], 'heights': [0.1]}},
        {'ncc_threshold': 'high'},
        {'early_stop_accuracy': None},
        {'flat_tolerance': [0.5]},
        {'scale_schedule': {'widths': ['wide'], 'heights': [0.1]}},
        {'scale_schedule': {'widths': 0.1, 'heights': [0.1]}},
        {'scale_schedule': [0.1, 0.1]},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(MatchingConfigError):
            TemplateMatcher(overrides=overrides)

    def test_non_numeric_yaml_value(self, tmp_path):
        path = tmp_path / "matching.yaml"
        path.write_text("matching:\n  ncc_threshold: high\n")
        with pytest.raises(MatchingConfigError):
            TemplateMatcher(str(path))

    def test_numeric_strings_coerced(self):
        matcher = TemplateMatcher(overrides={'ncc_threshold': '0.5'})
        assert matcher.config['matching']['ncc_threshold'] == 0.5
