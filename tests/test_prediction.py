"""Tests for weight and slaughter-date prediction."""

from datetime import date, timedelta

from rebanho.data.models import Breed, Sex
from rebanho.metrics.prediction import (
    BENCHMARK_CONFIDENCE,
    MAX_PROJECTED_GMD,
    PredictionStatus,
    age_factor,
    batch_predict_weights,
    predict_animal_slaughter_date,
    predict_date_for_weight,
    predict_slaughter_date,
    predict_weight,
)


class TestPredictSlaughterDate:
    """Tests for predict_slaughter_date."""

    def test_target_below_current_weight_is_insufficient(self, today):
        """Verify 380 kg at 0.8 kg/day against 18 @ (270 kg) gives no date."""
        prediction = predict_slaughter_date(380.0, 0.8, 18, today=today)

        assert prediction.status is PredictionStatus.INSUFFICIENT_DATA
        assert prediction.target_weight_kg == 270.0
        assert prediction.reached_on is None
        assert prediction.current_arrobas == 25.3

    def test_reaches_target(self, today):
        """Verify days are rounded up to the day the target is crossed."""
        prediction = predict_slaughter_date(400.0, 0.9, 30, days_tracked=120, today=today)

        assert prediction.status is PredictionStatus.OK
        assert prediction.days_needed == 56
        assert prediction.reached_on == today + timedelta(days=56)
        assert prediction.confidence == round(85 * (1 - 56 / 1000))

    def test_non_positive_gain_is_insufficient(self, today):
        """Verify zero or negative growth never yields a date."""
        assert predict_slaughter_date(300.0, 0.0, 30, today=today).status is PredictionStatus.INSUFFICIENT_DATA
        assert predict_slaughter_date(300.0, -0.2, 30, today=today).status is PredictionStatus.INSUFFICIENT_DATA
        assert predict_slaughter_date(300.0, None, 30, today=today).status is PredictionStatus.INSUFFICIENT_DATA

    def test_default_target(self, today):
        """Verify the configured default target is used."""
        assert predict_slaughter_date(200.0, 1.0, today=today).target_arrobas == 18


class TestPredictDateForWeight:
    """Tests for predict_date_for_weight."""

    def test_beyond_horizon_is_insufficient(self, today):
        """Verify targets more than two years away are not reported."""
        prediction = predict_date_for_weight(100.0, 0.1, 500.0, today=today)
        assert prediction.status is PredictionStatus.INSUFFICIENT_DATA

    def test_unknown_current_weight(self, today):
        """Verify a missing weight is insufficient data."""
        assert predict_date_for_weight(None, 1.0, 500.0, today=today).status is PredictionStatus.INSUFFICIENT_DATA


class TestPredictWeight:
    """Tests for predict_weight."""

    def test_observed_rate(self, make_animal, weighings, today):
        """Verify the observed GMD drives the projection when history is long enough."""
        animal = make_animal(
            "a",
            sex=Sex.MALE,
            birth_date=date(2025, 1, 1),
            weight_kg=400.0,
            weighings=weighings((date(2026, 1, 1), 250.0), (date(2026, 5, 31), 400.0)),
        )
        prediction = predict_weight(animal, today + timedelta(days=20), today)

        assert prediction.status is PredictionStatus.OK
        assert prediction.based_on_days == 150
        assert prediction.projected_gmd == 1.0
        assert prediction.predicted_weight_kg == 420.0
        # Two weighings cap confidence below the observed maximum
        assert prediction.confidence == round(90 * 0.9)

    def test_benchmark_without_history(self, make_animal, today):
        """Verify the breed benchmark is used with low confidence."""
        animal = make_animal(
            "a", breed=Breed.BRAFORD, sex=Sex.FEMALE, birth_date=date(2025, 12, 1), weight_kg=150.0
        )
        prediction = predict_weight(animal, today + timedelta(days=10), today)

        expected_gmd = round(1.2 * 0.95 * age_factor(6), 3)
        assert prediction.projected_gmd == expected_gmd
        assert prediction.confidence == BENCHMARK_CONFIDENCE

    def test_projection_is_clamped(self, make_animal, weighings, today):
        """Verify extreme observed rates are clamped."""
        animal = make_animal(
            "a",
            birth_date=date(2025, 1, 1),
            weight_kg=500.0,
            weighings=weighings((date(2026, 1, 1), 100.0), (date(2026, 5, 1), 500.0)),
        )
        assert predict_weight(animal, today + timedelta(days=5), today).projected_gmd == MAX_PROJECTED_GMD

    def test_past_date_returns_current_weight(self, make_animal, today):
        """Verify a date that is not in the future reports the current weight."""
        animal = make_animal("a", weight_kg=321.0)
        prediction = predict_weight(animal, today, today)
        assert prediction.predicted_weight_kg == 321.0
        assert prediction.confidence == 100

    def test_missing_weight(self, make_animal, today):
        """Verify an animal without weight is insufficient data."""
        prediction = predict_weight(make_animal("a"), today + timedelta(days=30), today)
        assert prediction.status is PredictionStatus.INSUFFICIENT_DATA
        assert prediction.predicted_weight_kg is None

    def test_never_predicts_loss(self, make_animal, weighings, today):
        """Verify a losing animal is projected at the minimum gain, not a loss."""
        animal = make_animal(
            "a",
            weight_kg=300.0,
            weighings=weighings((date(2026, 1, 1), 320.0), (date(2026, 5, 1), 300.0)),
        )
        prediction = predict_weight(animal, today + timedelta(days=10), today)
        assert prediction.predicted_weight_kg >= 300.0

    def test_batch(self, make_animal, today):
        """Verify one prediction per animal."""
        animals = [make_animal("a", weight_kg=100.0), make_animal("b")]
        results = batch_predict_weights(animals, today + timedelta(days=1), today)
        assert [r.animal_id for r in results] == ["a", "b"]


class TestPredictAnimalSlaughterDate:
    """Tests for predict_animal_slaughter_date."""

    def test_uses_observed_gmd(self, make_animal, weighings, today):
        """Verify the animal's own weight and GMD are used."""
        animal = make_animal(
            "a",
            weight_kg=240.0,
            weighings=weighings((date(2026, 3, 2), 180.0), (date(2026, 5, 1), 240.0)),
        )
        prediction = predict_animal_slaughter_date(animal, 18, today)

        assert prediction.status is PredictionStatus.OK
        assert prediction.days_needed == 30
