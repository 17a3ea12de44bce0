"""DEP (diferença esperada na progênie) - expected progeny differences.

Per-animal genetic merit estimates for birth, weaning and yearling weight,
plus maternal ability for cows, relative to a per-breed herd baseline.

DEP for one trait combines two sources:
- Own record:  h² x (own - mean) / 2, weighted 0.5
- Progeny:     2 x (progeny mean - mean), weighted min(1, n / 10)

The result is the weighted mean of whichever sources exist, 0 when none do.
Only animals born in the reference period contribute data (see
rebanho.metrics.reference).
"""

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from enum import Enum
from statistics import fmean, stdev

from rebanho.data.models import Animal, Breed, Sex, WeighingType
from rebanho.metrics.reference import is_in_reference_period

# Heritabilities (h²) for beef cattle
HERITABILITIES = {
    "birth_weight": 0.35,
    "weaning_weight": 0.25,
    "yearling_weight": 0.30,
    "maternal_weaning": 0.20,
}

OWN_RECORD_WEIGHT = 0.5
# Progeny count at which the progeny source reaches full weight
FULL_PROGENY_WEIGHT_AT = 10

TRAIT_WEIGHINGS = {
    "birth_weight": WeighingType.BIRTH,
    "weaning_weight": WeighingType.WEANING,
    "yearling_weight": WeighingType.YEARLING,
}


# =============================================================================
# Types
# =============================================================================


class Recommendation(Enum):
    ELITE_SIRE = "reprodutor_elite"
    SIRE = "reprodutor"
    ELITE_DAM = "matriz_elite"
    DAM = "matriz"
    CULL = "descarte"
    UNDEFINED = "indefinido"


@dataclass(frozen=True)
class DEPValues:
    birth_weight: float = 0.0
    weaning_weight: float = 0.0
    yearling_weight: float = 0.0
    milk_production: float = 0.0
    total_maternal: float = 0.0


@dataclass(frozen=True)
class TraitBaseline:
    mean: float
    std_dev: float
    count: int


@dataclass(frozen=True)
class HerdBaseline:
    breed: Breed
    birth_weight: TraitBaseline
    weaning_weight: TraitBaseline
    yearling_weight: TraitBaseline


@dataclass(frozen=True)
class DEPReport:
    animal_id: str
    brinco: str
    name: str | None
    sex: Sex | None
    breed: Breed
    dep: DEPValues
    accuracy: DEPValues
    percentile: DEPValues = field(default_factory=lambda: DEPValues(50, 50, 50, 50, 50))
    own_records: int = 0
    progeny_records: int = 0
    sibling_records: int = 0
    recommendation: Recommendation = Recommendation.UNDEFINED


@dataclass
class DEPDistribution:
    """DEP values of one breed, used to place each animal as a percentile."""

    birth_weight: list[float] = field(default_factory=list)
    weaning_weight: list[float] = field(default_factory=list)
    yearling_weight: list[float] = field(default_factory=list)
    milk_production: list[float] = field(default_factory=list)
    total_maternal: list[float] = field(default_factory=list)

    def add(self, report: DEPReport) -> None:
        self.birth_weight.append(report.dep.birth_weight)
        self.weaning_weight.append(report.dep.weaning_weight)
        self.yearling_weight.append(report.dep.yearling_weight)
        # Maternal traits only rank cows against cows
        if report.sex is Sex.FEMALE:
            self.milk_production.append(report.dep.milk_production)
            self.total_maternal.append(report.dep.total_maternal)


# =============================================================================
# Statistics Helpers
# =============================================================================


def _mean(values: Sequence[float]) -> float:
    return fmean(values) if values else 0.0


def _std_dev(values: Sequence[float]) -> float:
    return stdev(values) if len(values) >= 2 else 0.0


def trait_weights(animals: Iterable[Animal], weighing_type: WeighingType) -> list[float]:
    """Positive first weights of a given type."""
    weights = (a.first_weight_of(weighing_type) for a in animals)
    return [w for w in weights if w is not None and w > 0]


def calculate_percentile(value: float, all_values: Iterable[float]) -> int:
    """
    Percentage of the distribution strictly below a value.

    Zeros mean "no data" and are left out of the distribution. A value of
    zero, or an empty distribution, is placed at 50.
    """
    non_zero = sorted(v for v in all_values if v != 0)
    if not non_zero or value == 0:
        return 50
    below = 0
    for v in non_zero:
        if v >= value:
            break
        below += 1
    return round(below / len(non_zero) * 100)


# =============================================================================
# Baselines
# =============================================================================


def _trait_baseline(weights: Sequence[float]) -> TraitBaseline:
    return TraitBaseline(mean=_mean(weights), std_dev=_std_dev(weights), count=len(weights))


def calculate_herd_baselines(animals: Iterable[Animal]) -> list[HerdBaseline]:
    """
    Per-breed means and standard deviations of birth, weaning and yearling weight.

    Only reference-period animals are used. Breeds with no such animals
    get no baseline.
    """
    by_breed: dict[Breed, list[Animal]] = {breed: [] for breed in Breed}
    for animal in animals:
        if is_in_reference_period(animal):
            by_breed[animal.breed].append(animal)

    baselines = []
    for breed, members in by_breed.items():
        if not members:
            continue
        baselines.append(
            HerdBaseline(
                breed=breed,
                birth_weight=_trait_baseline(trait_weights(members, WeighingType.BIRTH)),
                weaning_weight=_trait_baseline(trait_weights(members, WeighingType.WEANING)),
                yearling_weight=_trait_baseline(trait_weights(members, WeighingType.YEARLING)),
            )
        )
    return baselines


def baseline_for(breed: Breed, baselines: Sequence[HerdBaseline]) -> HerdBaseline | None:
    """The breed's own baseline, falling back to the first one available."""
    for baseline in baselines:
        if baseline.breed is breed:
            return baseline
    return baselines[0] if baselines else None


# =============================================================================
# DEP Calculation
# =============================================================================


def calculate_single_dep(
    own_value: float | None,
    progeny_values: Sequence[float],
    baseline_mean: float,
    heritability: float,
) -> float:
    """Weighted DEP from the animal's own record and its progeny mean."""
    if baseline_mean <= 0:
        return 0.0

    dep = 0.0
    weight = 0.0

    if own_value is not None and own_value > 0:
        dep += heritability * (own_value - baseline_mean) / 2 * OWN_RECORD_WEIGHT
        weight += OWN_RECORD_WEIGHT

    if progeny_values:
        # Progeny carry half the parent's genes
        progeny_dep = 2 * (_mean(progeny_values) - baseline_mean)
        progeny_weight = min(1.0, len(progeny_values) / FULL_PROGENY_WEIGHT_AT)
        dep += progeny_dep * progeny_weight
        weight += progeny_weight

    return dep / weight if weight > 0 else 0.0


def calculate_maternal_dep(
    progeny_weaning: Sequence[float],
    baseline_weaning_mean: float,
    direct_weaning_dep: float,
    heritability: float = HERITABILITIES["maternal_weaning"],
) -> float:
    """
    Maternal (milk) DEP of a cow.

    The progeny deviation left over after the direct weaning DEP, shrunk
    towards zero by n / (n + k), k = (4 - h²) / h².
    """
    if not progeny_weaning or baseline_weaning_mean <= 0:
        return 0.0
    n = len(progeny_weaning)
    k = (4 - heritability) / heritability
    deviation = _mean(progeny_weaning) - baseline_weaning_mean
    return n / (n + k) * (deviation - direct_weaning_dep)


def calculate_accuracy(
    own_records: int,
    progeny_records: int,
    sibling_records: int,
    heritability: float,
) -> float:
    """
    Accuracy (0-1) from the prediction error variance of each information source.

    Reliabilities:
        own records: n h² / (1 + (n - 1) h²)
        progeny:     n / (n + k), k = (4 - h²) / h²
        half-sibs:   n h²/4 / (1 + (n - 1) h²/4), at most 0.25

    Sources are combined as independent: PEV / σ²a is the product of the
    unexplained fractions, and accuracy = sqrt(1 - PEV / σ²a).
    """
    if heritability <= 0:
        return 0.0

    unexplained = 1.0
    if own_records > 0:
        unexplained *= 1 - own_records * heritability / (1 + (own_records - 1) * heritability)
    if progeny_records > 0:
        k = (4 - heritability) / heritability
        unexplained *= 1 - progeny_records / (progeny_records + k)
    if sibling_records > 0:
        h_quarter = heritability / 4
        reliability = sibling_records * h_quarter / (1 + (sibling_records - 1) * h_quarter)
        unexplained *= 1 - min(0.25, reliability)

    return round(math.sqrt(max(0.0, 1 - unexplained)), 2)


def calculate_animal_dep(
    animal: Animal,
    baseline: HerdBaseline,
    progeny: Iterable[Animal],
    siblings: Iterable[Animal],
) -> DEPReport:
    """
    DEP report for one animal with provisional percentiles (all 50).

    Progeny and siblings are passed in already resolved; only those born
    in the reference period are used. Use apply_percentiles once the breed
    distribution is known.
    """
    in_period = is_in_reference_period(animal)
    own = {
        trait: animal.first_weight_of(weighing_type) if in_period else None
        for trait, weighing_type in TRAIT_WEIGHINGS.items()
    }
    own = {trait: value if value is not None and value > 0 else None for trait, value in own.items()}

    progeny = [p for p in progeny if is_in_reference_period(p)]
    siblings = [s for s in siblings if is_in_reference_period(s)]
    progeny_weights = {
        trait: trait_weights(progeny, weighing_type) for trait, weighing_type in TRAIT_WEIGHINGS.items()
    }
    sibling_weaning = trait_weights(siblings, WeighingType.WEANING)

    means = {
        "birth_weight": baseline.birth_weight.mean,
        "weaning_weight": baseline.weaning_weight.mean,
        "yearling_weight": baseline.yearling_weight.mean,
    }
    direct = {
        trait: calculate_single_dep(own[trait], progeny_weights[trait], means[trait], HERITABILITIES[trait])
        for trait in TRAIT_WEIGHINGS
    }

    milk = 0.0
    total_maternal = 0.0
    if animal.sex is Sex.FEMALE and progeny_weights["weaning_weight"] and means["weaning_weight"] > 0:
        milk = calculate_maternal_dep(
            progeny_weights["weaning_weight"], means["weaning_weight"], direct["weaning_weight"]
        )
        total_maternal = direct["weaning_weight"] + milk

    n_own = {trait: int(own[trait] is not None) for trait in TRAIT_WEIGHINGS}
    n_progeny = {trait: len(values) for trait, values in progeny_weights.items()}
    h2 = HERITABILITIES

    accuracy = DEPValues(
        birth_weight=calculate_accuracy(n_own["birth_weight"], n_progeny["birth_weight"], 0, h2["birth_weight"]),
        weaning_weight=calculate_accuracy(
            n_own["weaning_weight"], n_progeny["weaning_weight"], len(sibling_weaning), h2["weaning_weight"]
        ),
        yearling_weight=calculate_accuracy(
            n_own["yearling_weight"], n_progeny["yearling_weight"], 0, h2["yearling_weight"]
        ),
        milk_production=calculate_accuracy(0, n_progeny["weaning_weight"], 0, h2["maternal_weaning"]),
        total_maternal=calculate_accuracy(
            n_own["weaning_weight"],
            n_progeny["weaning_weight"],
            len(sibling_weaning),
            (h2["weaning_weight"] + h2["maternal_weaning"]) / 2,
        ),
    )

    return DEPReport(
        animal_id=animal.id,
        brinco=animal.brinco,
        name=animal.name,
        sex=animal.sex,
        breed=animal.breed,
        dep=DEPValues(
            birth_weight=round(direct["birth_weight"], 1),
            weaning_weight=round(direct["weaning_weight"], 1),
            yearling_weight=round(direct["yearling_weight"], 1),
            milk_production=round(milk, 1),
            total_maternal=round(total_maternal, 1),
        ),
        accuracy=accuracy,
        own_records=sum(n_own.values()),
        progeny_records=len(progeny),
        sibling_records=len(siblings),
    )


# =============================================================================
# Percentiles and Recommendation
# =============================================================================


def recommend(sex: Sex | None, avg_percentile: float, avg_accuracy: float) -> Recommendation:
    """Selection recommendation from mean weaning/yearling percentile and accuracy."""
    if sex is Sex.MALE:
        if avg_percentile >= 80 and avg_accuracy >= 0.5:
            return Recommendation.ELITE_SIRE
        if avg_percentile >= 60 and avg_accuracy >= 0.3:
            return Recommendation.SIRE
        if avg_percentile < 30:
            return Recommendation.CULL
        return Recommendation.UNDEFINED

    if avg_percentile >= 80 and avg_accuracy >= 0.4:
        return Recommendation.ELITE_DAM
    if avg_percentile >= 50:
        return Recommendation.DAM
    if avg_percentile < 20:
        return Recommendation.CULL
    return Recommendation.UNDEFINED


def apply_percentiles(report: DEPReport, distribution: DEPDistribution) -> DEPReport:
    """Place a report within its breed distribution and derive its recommendation."""
    percentile = DEPValues(
        birth_weight=calculate_percentile(report.dep.birth_weight, distribution.birth_weight),
        weaning_weight=calculate_percentile(report.dep.weaning_weight, distribution.weaning_weight),
        yearling_weight=calculate_percentile(report.dep.yearling_weight, distribution.yearling_weight),
        milk_production=report.percentile.milk_production,
        total_maternal=report.percentile.total_maternal,
    )
    if report.sex is Sex.FEMALE:
        percentile = replace(
            percentile,
            milk_production=calculate_percentile(report.dep.milk_production, distribution.milk_production),
            total_maternal=calculate_percentile(report.dep.total_maternal, distribution.total_maternal),
        )

    avg_percentile = (percentile.weaning_weight + percentile.yearling_weight) / 2
    avg_accuracy = (report.accuracy.weaning_weight + report.accuracy.yearling_weight) / 2
    return replace(
        report,
        percentile=percentile,
        recommendation=recommend(report.sex, avg_percentile, avg_accuracy),
    )


# =============================================================================
# Report Filters
# =============================================================================


def rank_by_dep(reports: Iterable[DEPReport], trait: str, ascending: bool = False) -> list[DEPReport]:
    """Sort reports by one DEP trait (e.g. "weaning_weight"), best first by default."""
    return sorted(reports, key=lambda r: getattr(r.dep, trait), reverse=not ascending)


def elite_animals(reports: Iterable[DEPReport]) -> list[DEPReport]:
    return [
        r for r in reports if r.recommendation in (Recommendation.ELITE_SIRE, Recommendation.ELITE_DAM)
    ]


def cull_animals(reports: Iterable[DEPReport]) -> list[DEPReport]:
    return [r for r in reports if r.recommendation is Recommendation.CULL]
