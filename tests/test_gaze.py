import numpy as np
import pytest

from gaze_link.vision.config import VisionConfig
from gaze_link.vision.gaze import GazeEstimator
from gaze_link.vision.types import Direction

from conftest import make_eye


@pytest.fixture
def estimator():
    return GazeEstimator(VisionConfig.for_mirrored_preview())


def test_dark_pupil_becomes_foreground(estimator):
    binary = estimator.binarize(make_eye(center_x=30))
    assert binary[20, 30] == 255
    assert binary[2, 2] == 0


def test_centroid_of_synthetic_pupil(estimator):
    sample = estimator.measure(make_eye(width=60, center_x=30))
    assert sample is not None
    assert sample.eye_width == 60
    assert sample.ratio == pytest.approx(0.5, abs=0.03)


@pytest.mark.parametrize('center_x, expected', [
    (9, Direction.LEFT),
    (30, Direction.CENTER),
    (51, Direction.RIGHT),
])
def test_mirrored_preview_labels(estimator, center_x, expected):
    assert estimator.estimate(make_eye(center_x=center_x)) == expected


def test_raw_preview_inverts_lateral_labels():
    raw = GazeEstimator(VisionConfig.for_raw_preview())
    assert raw.estimate(make_eye(center_x=9)) == Direction.RIGHT
    assert raw.estimate(make_eye(center_x=51)) == Direction.LEFT
    assert raw.estimate(make_eye(center_x=30)) == Direction.CENTER


def test_sweep_passes_through_center(estimator):
    width = 60
    labels, ratios = [], []
    for fraction in np.linspace(0.1, 0.9, 33):
        eye = make_eye(width=width, center_x=fraction * width)
        ratios.append(estimator.measure(eye).ratio)
        labels.append(estimator.estimate(eye))

    assert ratios == sorted(ratios)
    assert labels[0] == Direction.LEFT
    assert labels[-1] == Direction.RIGHT
    assert Direction.CENTER in labels
    for prev, cur in zip(labels, labels[1:]):
        assert {prev, cur} != {Direction.LEFT, Direction.RIGHT}


@pytest.mark.parametrize('center_x', [10, 14, 46, 50])
def test_mirror_images_give_opposite_labels(estimator, center_x):
    eye = make_eye(center_x=center_x)
    mirrored = np.ascontiguousarray(np.fliplr(eye))
    a, b = estimator.estimate(eye), estimator.estimate(mirrored)
    assert {a, b} == {Direction.LEFT, Direction.RIGHT}


def test_low_mass_is_rejected(estimator):
    eye = make_eye(center_x=8, blob_w=5, blob_h=5)
    assert estimator.measure(eye) is None
    assert estimator.estimate(eye) == Direction.CENTER


def test_uniform_crop_is_center(estimator):
    assert estimator.estimate(make_eye()) == Direction.CENTER


def test_speckle_removed_by_opening(estimator):
    eye = make_eye()
    eye[5, 5] = eye[30, 50] = eye[12, 40] = 0
    assert not estimator.binarize(eye).any()


def test_empty_region_raises(estimator):
    with pytest.raises(ValueError):
        estimator.measure(np.zeros((0, 10), dtype=np.uint8))


@pytest.mark.parametrize('low, high', [(0.6, 0.7), (0.3, 0.45), (0.0, 0.6), (0.4, 1.0), (0.1, 0.65), (0.35, 0.6)])
def test_invalid_bands_rejected(low, high):
    with pytest.raises(ValueError):
        VisionConfig(gaze_threshold_low=low, gaze_threshold_high=high)


def test_classify_ratio_band_edges(estimator):
    assert estimator.classify_ratio(0.34) == Direction.LEFT
    assert estimator.classify_ratio(0.35) == Direction.CENTER
    assert estimator.classify_ratio(0.65) == Direction.CENTER
    assert estimator.classify_ratio(0.66) == Direction.RIGHT


@pytest.mark.parametrize('low, high', [(0.35, 0.65), (0.2, 0.8), (0.45, 0.55)])
def test_symmetric_bands_accepted(low, high):
    config = VisionConfig(gaze_threshold_low=low, gaze_threshold_high=high)
    assert config.gaze_threshold_high - 0.5 == pytest.approx(0.5 - config.gaze_threshold_low)
