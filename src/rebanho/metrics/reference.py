"""Reference period for DEP and weight KPIs.

Only part of each generation stays in the herd: promising bulls and
valuable calves are sold and drop out of the records. Older cohorts are
therefore a biased sample. DEP baselines and average-weight KPIs only use
animals born on or after ``settings.reference_period_start``.

Genealogy and progeny views are never filtered.
"""

from collections.abc import Iterable
from datetime import date
from typing import TypedDict

from rebanho.core.config import settings
from rebanho.data.models import Animal


class ReferencePeriodStats(TypedDict):
    total: int
    in_period: int
    excluded: int
    percent_in_period: int


def is_in_reference_period(animal: Animal, start: date | None = None) -> bool:
    """Whether the animal was born on or after the period start. Undated animals are out."""
    start = start or settings.reference_period_start
    return animal.birth_date is not None and animal.birth_date >= start


def filter_by_reference_period(animals: Iterable[Animal], start: date | None = None) -> list[Animal]:
    return [a for a in animals if is_in_reference_period(a, start)]


def reference_period_stats(animals: Iterable[Animal], start: date | None = None) -> ReferencePeriodStats:
    """Count how many animals fall inside the reference period."""
    total = 0
    in_period = 0
    for animal in animals:
        total += 1
        in_period += is_in_reference_period(animal, start)
    return ReferencePeriodStats(
        total=total,
        in_period=in_period,
        excluded=total - in_period,
        percent_in_period=round(in_period / total * 100) if total else 0,
    )
