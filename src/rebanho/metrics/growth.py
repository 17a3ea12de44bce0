"""GMD (ganho médio diário) - average daily weight gain.

All rates are kg/day rounded to 3 decimals. A rate needs two weighings
with usable dates on different days; otherwise it is None. Absence of a
rate is distinct from zero gain.

Rates computed per animal:
- total:               first to last weighing
- birth_to_weaning:    first Birth weighing to first Weaning weighing
- weaning_to_yearling: first Weaning weighing to first Yearling weighing
- last_30_days:        first to last weighing inside the last 30 days
- last_period:         the last two weighings (current growth phase)
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, timedelta
from enum import Enum
from typing import NamedTuple

from rebanho.data.models import Animal, WeighingType, WeightEntry

# Average month length used for ages
DAYS_PER_MONTH = 30.44

RECENT_WINDOW_DAYS = 30

# Auto-classification windows (months of age): (target, min, max)
WEANING_AGE_MONTHS = (7, 5, 9)
YEARLING_AGE_MONTHS = (18, 12, 23)


# =============================================================================
# Classification
# =============================================================================


class GrowthBand(Enum):
    EXCELLENT = "Excelente"
    GOOD = "Bom"
    AVERAGE = "Regular"
    BELOW = "Abaixo"
    CRITICAL = "Crítico"


# Lower bound (kg/day) of each band, best first
GROWTH_BAND_THRESHOLDS = [
    (1.5, GrowthBand.EXCELLENT),
    (1.0, GrowthBand.GOOD),
    (0.7, GrowthBand.AVERAGE),
    (0.4, GrowthBand.BELOW),
]


def classify_gmd(gmd: float | None) -> GrowthBand | None:
    """Classify a daily gain into a qualitative band. None stays None."""
    if gmd is None:
        return None
    for threshold, band in GROWTH_BAND_THRESHOLDS:
        if gmd >= threshold:
            return band
    return GrowthBand.CRITICAL


# =============================================================================
# Gain Metrics
# =============================================================================


@dataclass(frozen=True)
class GainMetrics:
    total: float | None = None
    birth_to_weaning: float | None = None
    weaning_to_yearling: float | None = None
    last_30_days: float | None = None
    last_period: float | None = None
    last_period_days: int | None = None
    days_tracked: int = 0
    first_weight: float | None = None
    last_weight: float | None = None
    last_weighing_date: date | None = None
    days_since_last_weighing: int | None = None
    estimated_weight_today: float | None = None
    sample_count: int = 0

    @property
    def band(self) -> GrowthBand | None:
        return classify_gmd(self.total)


def daily_gain(first: WeightEntry, last: WeightEntry) -> float | None:
    """Daily gain between two weighings, None when they are not on increasing dates."""
    if first.date is None or last.date is None:
        return None
    days = (last.date - first.date).days
    if days <= 0:
        return None
    return round((last.weight_kg - first.weight_kg) / days, 3)


def _first_of(entries: Sequence[WeightEntry], weighing_type: WeighingType) -> WeightEntry | None:
    return next((e for e in entries if e.type is weighing_type), None)


def calculate_gain_metrics(weighings: Iterable[WeightEntry], today: date | None = None) -> GainMetrics:
    """
    Compute every GMD figure for one weighing history.

    Weighings without a usable date are ignored.

    Args:
        weighings: Weighing history in any order
        today: Reference date for the 30-day window and today's estimate

    Returns:
        GainMetrics; rates are None when there is not enough data
    """
    today = today or date.today()
    dated = sorted((w for w in weighings if w.date is not None), key=lambda w: w.date)

    if len(dated) < 2:
        return GainMetrics(sample_count=len(dated))

    first, last = dated[0], dated[-1]
    total = daily_gain(first, last)

    birth = _first_of(dated, WeighingType.BIRTH)
    weaning = _first_of(dated, WeighingType.WEANING)
    yearling = _first_of(dated, WeighingType.YEARLING)
    birth_to_weaning = daily_gain(birth, weaning) if birth and weaning else None
    weaning_to_yearling = daily_gain(weaning, yearling) if weaning and yearling else None

    cutoff = today - timedelta(days=RECENT_WINDOW_DAYS)
    recent = [w for w in dated if w.date >= cutoff]
    last_30_days = daily_gain(recent[0], recent[-1]) if len(recent) >= 2 else None

    previous = dated[-2]
    last_period = daily_gain(previous, last)

    days_since = max(0, (today - last.date).days)
    # Estimate from the current phase, falling back to the lifetime rate
    rate = last_period if last_period is not None else total
    estimated = None
    if rate is not None:
        estimated = max(0.0, round(last.weight_kg + rate * days_since, 1))

    return GainMetrics(
        total=total,
        birth_to_weaning=birth_to_weaning,
        weaning_to_yearling=weaning_to_yearling,
        last_30_days=last_30_days,
        last_period=last_period,
        last_period_days=(last.date - previous.date).days,
        days_tracked=(last.date - first.date).days,
        first_weight=first.weight_kg,
        last_weight=last.weight_kg,
        last_weighing_date=last.date,
        days_since_last_weighing=days_since,
        estimated_weight_today=estimated,
        sample_count=len(dated),
    )


def animal_gain_metrics(animal: Animal, today: date | None = None) -> GainMetrics:
    return calculate_gain_metrics(animal.weighings, today)


# =============================================================================
# Herd Aggregates
# =============================================================================


class GMDRank(NamedTuple):
    rank: int
    animal: Animal
    metrics: GainMetrics


def average_gmd(animals: Iterable[Animal], today: date | None = None) -> float | None:
    """Mean total GMD over animals with a positive rate."""
    gmds = [m.total for m in (animal_gain_metrics(a, today) for a in animals) if m.total and m.total > 0]
    if not gmds:
        return None
    return round(sum(gmds) / len(gmds), 3)


def rank_by_gmd(animals: Iterable[Animal], today: date | None = None) -> list[GMDRank]:
    """Rank animals with a positive total GMD, best first (rank 1)."""
    scored = [(a, animal_gain_metrics(a, today)) for a in animals]
    scored = [(a, m) for a, m in scored if m.total and m.total > 0]
    scored.sort(key=lambda am: am[1].total, reverse=True)
    return [GMDRank(rank=i, animal=a, metrics=m) for i, (a, m) in enumerate(scored, start=1)]


# =============================================================================
# Age
# =============================================================================


def age_in_months(birth_date: date | None, today: date | None = None) -> int | None:
    """Whole months of age (30.44-day months). None without a birth date."""
    if birth_date is None:
        return None
    today = today or date.today()
    return max(0, math.floor((today - birth_date).days / DAYS_PER_MONTH))


def auto_classify_weighing_types(
    weighings: Sequence[WeightEntry],
    birth_date: date | None,
) -> tuple[WeightEntry, ...]:
    """
    Assign Weaning and Yearling types from the animal's age at each weighing.

    Weaning is the weighing closest to 7 months of age (5-9 months);
    Yearling the one closest to 18 months (12-23 months). Existing Weaning
    and Yearling marks are replaced; Birth and Turn weighings are kept
    as they are. Returns a new tuple in the original order.
    """
    if birth_date is None or not weighings:
        return tuple(weighings)

    cleaned = [
        replace(w, type=WeighingType.NONE) if w.type in (WeighingType.WEANING, WeighingType.YEARLING) else w
        for w in weighings
    ]

    def pick(window: tuple[int, int, int], taken: set[int]) -> int | None:
        target, low, high = window
        best, best_distance = None, None
        for i, w in enumerate(cleaned):
            if i in taken or w.date is None or w.type in (WeighingType.BIRTH, WeighingType.TURN):
                continue
            age = (w.date - birth_date).days / DAYS_PER_MONTH
            if low <= age <= high:
                distance = abs(age - target)
                if best_distance is None or distance < best_distance:
                    best, best_distance = i, distance
        return best

    weaning = pick(WEANING_AGE_MONTHS, set())
    if weaning is not None:
        cleaned[weaning] = replace(cleaned[weaning], type=WeighingType.WEANING)

    yearling = pick(YEARLING_AGE_MONTHS, {weaning} if weaning is not None else set())
    if yearling is not None:
        cleaned[yearling] = replace(cleaned[yearling], type=WeighingType.YEARLING)

    return tuple(cleaned)
