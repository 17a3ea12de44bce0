"""Weight and slaughter-date prediction.

Both predictions use the same linear model:

    weight(t) = current_weight + daily_gain * days

Future weight uses the animal's observed GMD when it has at least 30 days
of weighings, otherwise a breed x sex x age benchmark with low confidence.
Date predictions solve the model for the day the target is crossed and
use the observed GMD only; without one they report INSUFFICIENT_DATA.
"""

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from rebanho.core.config import settings
from rebanho.core.units import arrobas_to_kg, kg_to_arrobas
from rebanho.data.models import Animal, Breed, Sex
from rebanho.metrics.growth import age_in_months, animal_gain_metrics

logger = logging.getLogger(__name__)

# =============================================================================
# Growth Benchmarks
# =============================================================================

# Expected daily gain by breed (kg/day)
BREED_GMD_BENCHMARKS = {
    Breed.HEREFORD: {"min": 0.8, "avg": 1.1, "max": 1.4},
    Breed.BRAFORD: {"min": 0.9, "avg": 1.2, "max": 1.5},
    Breed.HEREFORD_PO: {"min": 0.85, "avg": 1.15, "max": 1.45},
    Breed.OTHER: {"min": 0.7, "avg": 1.0, "max": 1.3},
}

SEX_FACTOR = {
    Sex.MALE: 1.1,
    Sex.FEMALE: 0.95,
}

# (max age in months, factor) - growth slows with age
AGE_FACTORS = [
    (6, 1.2),
    (12, 1.1),
    (18, 1.0),
    (24, 0.9),
    (36, 0.75),
]
ADULT_AGE_FACTOR = 0.5

# Projected daily gain is clamped to this range (kg/day)
MIN_PROJECTED_GMD = 0.3
MAX_PROJECTED_GMD = 2.0

# Minimum tracking period before the observed GMD is trusted
MIN_TRACKED_DAYS = 30

# Longest horizon a date prediction will report
MAX_PREDICTION_DAYS = 730

OBSERVED_MAX_CONFIDENCE = 90
DATE_MAX_CONFIDENCE = 85
BENCHMARK_CONFIDENCE = 40


def age_factor(age_months: int) -> float:
    for max_age, factor in AGE_FACTORS:
        if age_months <= max_age:
            return factor
    return ADULT_AGE_FACTOR


def _horizon_factor(days: int) -> float:
    if days > 180:
        return 0.7
    if days > 90:
        return 0.85
    if days > 30:
        return 0.95
    return 1.0


# =============================================================================
# Result Types
# =============================================================================


class PredictionStatus(Enum):
    OK = "ok"
    INSUFFICIENT_DATA = "insufficient_data"


@dataclass(frozen=True)
class WeightPrediction:
    animal_id: str
    target_date: date
    status: PredictionStatus
    current_weight_kg: float | None = None
    predicted_weight_kg: float | None = None
    confidence: int = 0
    based_on_days: int = 0
    projected_gmd: float | None = None


@dataclass(frozen=True)
class DatePrediction:
    status: PredictionStatus
    target_weight_kg: float
    reached_on: date | None = None
    days_needed: int | None = None
    confidence: int = 0


@dataclass(frozen=True)
class SlaughterPrediction:
    status: PredictionStatus
    target_arrobas: float
    target_weight_kg: float
    current_arrobas: float | None = None
    reached_on: date | None = None
    days_needed: int | None = None
    confidence: int = 0


# =============================================================================
# Weight at a Future Date
# =============================================================================


def predict_weight(animal: Animal, target_date: date, today: date | None = None) -> WeightPrediction:
    """
    Predict an animal's weight on a future date.

    Confidence falls with the prediction horizon and rises with the
    amount of weighing history. Predictions never show weight loss.
    """
    today = today or date.today()
    current = animal.weight_kg
    if current is None:
        return WeightPrediction(
            animal_id=animal.id, target_date=target_date, status=PredictionStatus.INSUFFICIENT_DATA
        )

    days_ahead = (target_date - today).days
    if days_ahead <= 0:
        return WeightPrediction(
            animal_id=animal.id,
            target_date=target_date,
            status=PredictionStatus.OK,
            current_weight_kg=current,
            predicted_weight_kg=current,
            confidence=100,
            projected_gmd=0.0,
        )

    metrics = animal_gain_metrics(animal, today)
    age = age_in_months(animal.birth_date, today) or 0
    factor_now = age_factor(age)

    if metrics.total is not None and metrics.total > 0 and metrics.days_tracked >= MIN_TRACKED_DAYS:
        future_factor = age_factor(age + days_ahead // 30)
        projected = metrics.total * (future_factor / factor_now)
        confidence = min(OBSERVED_MAX_CONFIDENCE, 50 + metrics.days_tracked / 3)
        # Two weighings are a thin basis, three or more count in full
        confidence *= min(1.0, 0.7 + 0.1 * metrics.sample_count)
    else:
        benchmark = BREED_GMD_BENCHMARKS.get(animal.breed, BREED_GMD_BENCHMARKS[Breed.OTHER])
        projected = benchmark["avg"] * SEX_FACTOR.get(animal.sex, 1.0) * factor_now
        confidence = BENCHMARK_CONFIDENCE

    projected = max(MIN_PROJECTED_GMD, min(MAX_PROJECTED_GMD, projected))
    predicted = round(current + projected * days_ahead, 1)
    confidence *= _horizon_factor(days_ahead)

    return WeightPrediction(
        animal_id=animal.id,
        target_date=target_date,
        status=PredictionStatus.OK,
        current_weight_kg=current,
        predicted_weight_kg=max(current, predicted),
        confidence=round(confidence),
        based_on_days=metrics.days_tracked,
        projected_gmd=round(projected, 3),
    )


def batch_predict_weights(
    animals: Iterable[Animal],
    target_date: date,
    today: date | None = None,
) -> list[WeightPrediction]:
    return [predict_weight(animal, target_date, today) for animal in animals]


# =============================================================================
# Date for a Target Weight
# =============================================================================


def predict_date_for_weight(
    current_weight_kg: float | None,
    daily_gain_kg: float | None,
    target_weight_kg: float,
    *,
    days_tracked: int = 0,
    today: date | None = None,
) -> DatePrediction:
    """
    Predict when a target weight will be reached.

    Reports INSUFFICIENT_DATA instead of a date when the current weight or
    gain is unknown, the gain is not positive, the target is not above the
    current weight, or the target is more than MAX_PREDICTION_DAYS away.

    Args:
        current_weight_kg: Current live weight
        daily_gain_kg: Observed GMD (kg/day)
        target_weight_kg: Weight to reach
        days_tracked: Length of the weighing history behind the GMD
        today: Reference date
    """
    insufficient = DatePrediction(status=PredictionStatus.INSUFFICIENT_DATA, target_weight_kg=target_weight_kg)

    if current_weight_kg is None or daily_gain_kg is None or daily_gain_kg <= 0:
        return insufficient
    if target_weight_kg <= current_weight_kg:
        return insufficient

    days_needed = math.ceil((target_weight_kg - current_weight_kg) / daily_gain_kg)
    if days_needed > MAX_PREDICTION_DAYS:
        logger.debug("Target %.1f kg is %d days away, beyond horizon", target_weight_kg, days_needed)
        return insufficient

    today = today or date.today()
    base_confidence = min(DATE_MAX_CONFIDENCE, 50 + days_tracked / 3)
    return DatePrediction(
        status=PredictionStatus.OK,
        target_weight_kg=target_weight_kg,
        reached_on=today + timedelta(days=days_needed),
        days_needed=days_needed,
        confidence=round(base_confidence * (1 - days_needed / 1000)),
    )


def predict_slaughter_date(
    current_weight_kg: float | None,
    daily_gain_kg: float | None,
    target_arrobas: float | None = None,
    *,
    days_tracked: int = 0,
    today: date | None = None,
) -> SlaughterPrediction:
    """
    Predict when an animal reaches its slaughter weight.

    Args:
        current_weight_kg: Current live weight
        daily_gain_kg: Observed GMD (kg/day)
        target_arrobas: Slaughter target (defaults to settings.default_slaughter_arrobas)
    """
    if target_arrobas is None:
        target_arrobas = settings.default_slaughter_arrobas
    target_kg = arrobas_to_kg(target_arrobas)

    prediction = predict_date_for_weight(
        current_weight_kg, daily_gain_kg, target_kg, days_tracked=days_tracked, today=today
    )
    return SlaughterPrediction(
        status=prediction.status,
        target_arrobas=target_arrobas,
        target_weight_kg=target_kg,
        current_arrobas=round(kg_to_arrobas(current_weight_kg), 1) if current_weight_kg is not None else None,
        reached_on=prediction.reached_on,
        days_needed=prediction.days_needed,
        confidence=prediction.confidence,
    )


def predict_animal_slaughter_date(
    animal: Animal,
    target_arrobas: float | None = None,
    today: date | None = None,
) -> SlaughterPrediction:
    """Slaughter-date prediction from an animal's current weight and observed GMD."""
    metrics = animal_gain_metrics(animal, today)
    return predict_slaughter_date(
        animal.weight_kg,
        metrics.total,
        target_arrobas,
        days_tracked=metrics.days_tracked,
        today=today,
    )
