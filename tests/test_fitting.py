"""
Unit tests for model fitting
"""

import numpy as np
import pytest

from tabletop_recognition.fitting import ExhaustiveFitDetector, IterativeTranslationFitter
from tabletop_recognition.model_registry import ModelRegistry
from tabletop_recognition.spatial_index import SpatialIndex

from conftest import box_surface

OFFSET = np.array([0.3, 0.2, 0.0])


@pytest.fixture
def small_box():
    return box_surface(0.06, 0.04, 0.1)


@pytest.fixture
def large_box():
    return box_surface(0.12, 0.08, 0.2)


class TestIterativeTranslationFitter:
    """Test single-model fitting"""

    def test_recovers_translation(self, small_box):
        cluster = small_box + OFFSET
        fitter = IterativeTranslationFitter()

        pose, score = fitter.fit(small_box, cluster, SpatialIndex.build(cluster))

        assert np.allclose(pose.position, OFFSET, atol=1e-6)
        assert np.allclose(pose.rotation, np.eye(3))
        assert score == pytest.approx(1.0, abs=1e-6)

    def test_wrong_model_scores_lower(self, small_box, large_box):
        cluster = small_box + OFFSET
        index = SpatialIndex.build(cluster)
        fitter = IterativeTranslationFitter()

        _, good = fitter.fit(small_box, cluster, index)
        _, bad = fitter.fit(large_box, cluster, index)

        assert 0.0 <= bad < good

    def test_initial_translation_rests_on_lowest_point(self, small_box):
        cluster = small_box + np.array([0.0, 0.0, 0.05])
        fitter = IterativeTranslationFitter()

        translation = fitter.initial_translation(small_box, cluster)
        assert translation[2] == pytest.approx(0.05)

    def test_score_clipping(self):
        fitter = IterativeTranslationFitter(distance_clip=0.01)
        assert fitter.score(np.zeros(4)) == 1.0
        assert fitter.score(np.full(4, 1.0)) == 0.0
        assert fitter.score(np.array([0.0, 0.01])) == pytest.approx(0.5)

    def test_invalid_clip(self):
        with pytest.raises(ValueError):
            IterativeTranslationFitter(distance_clip=0.0)


class TestExhaustiveFitDetector:
    """Test model ranking"""

    @pytest.fixture
    def detector(self, small_box, large_box):
        detector = ExhaustiveFitDetector()
        detector.add_object("large", large_box)
        detector.add_object("small", small_box)
        return detector

    def test_best_first(self, detector, small_box):
        cluster = small_box + OFFSET
        fits = detector.fit_best_models(cluster, 2, SpatialIndex.build(cluster), 0.0)

        assert [fit.model_id for fit in fits] == ["small", "large"]
        assert fits[0].score > fits[1].score
        assert np.allclose(fits[0].pose.position, OFFSET, atol=1e-6)

    def test_limits_to_num_models(self, detector, small_box):
        cluster = small_box + OFFSET
        fits = detector.fit_best_models(cluster, 1, SpatialIndex.build(cluster), 0.0)

        assert len(fits) == 1
        assert fits[0].model_id == "small"

    def test_cutoff_prunes_poor_fits(self, detector, small_box):
        cluster = small_box + OFFSET
        fits = detector.fit_best_models(cluster, 2, SpatialIndex.build(cluster), 0.99)

        assert [fit.model_id for fit in fits] == ["small"]

    def test_empty_cluster(self, detector):
        assert detector.fit_best_models(np.empty((0, 3)), 1, SpatialIndex.build([]), 0.0) == []

    def test_empty_registry(self, small_box):
        detector = ExhaustiveFitDetector()
        assert detector.fit_best_models(small_box, 1, SpatialIndex.build(small_box), 0.0) == []

    def test_clear_objects(self, detector, small_box):
        detector.clear_objects()
        assert detector.fit_best_models(small_box, 1, SpatialIndex.build(small_box), 0.0) == []


class TestDetectorConstruction:
    """Test injected collaborators are kept"""

    def test_keeps_injected_empty_registry(self, small_box):
        registry = ModelRegistry(num_model_points=1000)
        detector = ExhaustiveFitDetector(registry=registry)

        assert detector.registry is registry
        assert detector.registry.num_model_points == 1000

        registry.add_object("small", small_box)
        cluster = small_box + OFFSET
        fits = detector.fit_best_models(cluster, 1, SpatialIndex.build(cluster), 0.0)

        assert [fit.model_id for fit in fits] == ["small"]

    def test_keeps_injected_fitter(self):
        fitter = IterativeTranslationFitter(distance_clip=0.01)
        assert ExhaustiveFitDetector(fitter=fitter).fitter is fitter
