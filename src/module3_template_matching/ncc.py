"""
Normalized cross-correlation.

    NCC(i, j) = sum((I - mean_I) * (T - mean_T)) / (N * std_I * std_T)

with population standard deviations over the N template pixels and the
window of the scene whose top-left corner is (i, j).

Flat inputs (zero standard deviation) would divide by zero. They are scored
instead of propagated as NaN:
    - template and window both flat: 1.0 if their means differ by at most
      flat_tolerance, else 0.0
    - only one of them flat: 0.0
"""

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .exceptions import MatchingError


FLAT_EPSILON = 1e-12
DEFAULT_FLAT_TOLERANCE = 0.5


def _as_plane(array: np.ndarray, name: str) -> np.ndarray:
    plane = np.asarray(array, dtype=np.float64)
    if plane.ndim != 2 or plane.size == 0:
        raise MatchingError(f"{name} must be a non-empty 2D array, got shape {plane.shape}")
    return plane


def _normalize(
    numerator: np.ndarray,
    window_std: np.ndarray,
    window_mean: np.ndarray,
    template_std: float,
    template_mean: float,
    count: int,
    flat_tolerance: float,
) -> np.ndarray:
    scores = np.zeros_like(numerator)
    window_flat = window_std <= FLAT_EPSILON

    if template_std <= FLAT_EPSILON:
        same_level = np.abs(window_mean - template_mean) <= flat_tolerance
        scores[window_flat & same_level] = 1.0
        return scores

    valid = ~window_flat
    scores[valid] = numerator[valid] / (count * window_std[valid] * template_std)
    return np.clip(scores, -1.0, 1.0)


def ncc_score(
    window: np.ndarray,
    template: np.ndarray,
    flat_tolerance: float = DEFAULT_FLAT_TOLERANCE,
) -> float:
    """
    NCC of two same-sized planes.

    Raises:
        MatchingError: If shapes differ or inputs are not 2D
    """
    window = _as_plane(window, "window")
    template = _as_plane(template, "template")
    if window.shape != template.shape:
        raise MatchingError(f"Window shape {window.shape} != template shape {template.shape}")

    return float(ncc_map(window, template, flat_tolerance)[0, 0])


def ncc_map(
    scene: np.ndarray,
    template: np.ndarray,
    flat_tolerance: float = DEFAULT_FLAT_TOLERANCE,
) -> np.ndarray:
    """
    NCC at every valid offset of template inside scene.

    Args:
        scene: 2D grayscale plane, row 0 = top
        template: 2D grayscale plane, row 0 = top
        flat_tolerance: Mean difference accepted between two flat inputs

    Returns:
        (H_s - H_t + 1, W_s - W_t + 1) float64 array, values in [-1, 1]

    Raises:
        MatchingError: If the template does not fit inside the scene
    """
    scene = _as_plane(scene, "scene")
    template = _as_plane(template, "template")

    t_height, t_width = template.shape
    s_height, s_width = scene.shape
    if t_height > s_height or t_width > s_width:
        raise MatchingError(
            f"Template {t_width}x{t_height} does not fit in scene {s_width}x{s_height}"
        )

    count = t_height * t_width
    rows = s_height - t_height + 1
    cols = s_width - t_width + 1

    template_mean = template.sum() / count
    template_centered = template - template_mean
    template_std = float(np.sqrt((template_centered ** 2).sum() / count))

    windows = sliding_window_view(scene, (t_height, t_width))
    result = np.empty((rows, cols), dtype=np.float64)

    # One scene row of windows at a time keeps memory at cols * N
    for i in range(rows):
        row_windows = windows[i]
        window_mean = row_windows.sum(axis=(1, 2)) / count
        centered = row_windows - window_mean[:, None, None]
        window_std = np.sqrt((centered ** 2).sum(axis=(1, 2)) / count)
        numerator = (centered * template_centered).sum(axis=(1, 2))

        result[i] = _normalize(
            numerator, window_std, window_mean,
            template_std, template_mean, count, flat_tolerance,
        )

    return result
