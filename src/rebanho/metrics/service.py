"""Derived metrics service.

One service instance is one herd snapshot. On construction (or rebuild)
it builds lookup indices over the animals in a single pass; compute_all
then derives, for every animal, GMD, DEP, progeny and sibling sets,
parent ids, reproductive status and rankings. Herd KPIs are folded from
that derived data, never recomputed from raw histories.

The snapshot never changes after it is built. Call rebuild() with the new
collections after any herd change.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from statistics import fmean
from types import MappingProxyType

from rebanho.data.models import (
    Animal,
    AnimalStatus,
    Breed,
    BreedingSeason,
    DiagnosisResult,
    Sex,
    WeighingType,
    normalize_key,
)
from rebanho.genealogy import progeny as progeny_view
from rebanho.genealogy.progeny import ProgenyRecord
from rebanho.metrics.dep import (
    DEPDistribution,
    DEPReport,
    HerdBaseline,
    apply_percentiles,
    baseline_for,
    calculate_animal_dep,
    calculate_herd_baselines,
)
from rebanho.metrics.growth import GainMetrics, GrowthBand, age_in_months, calculate_gain_metrics
from rebanho.metrics.reference import (
    ReferencePeriodStats,
    filter_by_reference_period,
    reference_period_stats,
)

logger = logging.getLogger(__name__)

# Gestation length used when only a manual pregnancy record exists
GESTATION_DAYS = 283

# Calving intervals outside this open range (days) are treated as data errors
MIN_CALVING_INTERVAL_DAYS = 200
MAX_CALVING_INTERVAL_DAYS = 730

# Plausible age at first calving (months, inclusive)
MIN_FIRST_CALVING_MONTHS = 18
MAX_FIRST_CALVING_MONTHS = 48

# Females at or above this age count as breeding cows
BREEDING_AGE_MONTHS = 18

# Below these sample sizes a KPI is flagged as imprecise
MIN_WEIGHT_SAMPLES = 5
MIN_CALVING_INTERVAL_SAMPLES = 3


# =============================================================================
# Snapshot Types
# =============================================================================


@dataclass(frozen=True)
class AnimalIndices:
    """Lookup tables built from exactly one animal collection."""

    by_id: Mapping[str, Animal]
    by_brinco: Mapping[str, Animal]
    by_father_name: Mapping[str, tuple[Animal, ...]]
    by_mother_name: Mapping[str, tuple[Animal, ...]]
    by_father_id: Mapping[str, tuple[Animal, ...]]
    by_mother_id: Mapping[str, tuple[Animal, ...]]
    by_breed: Mapping[Breed, tuple[Animal, ...]]
    by_sex: Mapping[Sex, tuple[Animal, ...]]
    by_status: Mapping[AnimalStatus, tuple[Animal, ...]]


class PregnancySource(Enum):
    BREEDING_SEASON = "breeding_season"
    MANUAL = "manual"
    NONE = "none"


@dataclass(frozen=True)
class ReproductiveData:
    is_pregnant: bool
    pregnancy_source: PregnancySource
    expected_calving_date: date | None
    calving_intervals: tuple[int, ...]
    first_calving_age_months: int | None


@dataclass(frozen=True)
class Rankings:
    gmd_overall: int | None = None
    gmd_breed: int | None = None
    dep_weaning_percentile: int | None = None
    dep_yearling_percentile: int | None = None


@dataclass(frozen=True)
class AnimalDerivedData:
    animal_id: str
    brinco: str
    gmd: GainMetrics
    dep: DEPReport | None
    progeny_ids: frozenset[str]
    sibling_ids: frozenset[str]
    father_id: str | None
    mother_id: str | None
    reproductive: ReproductiveData | None
    rankings: Rankings
    age_months: int | None

    @property
    def growth_band(self) -> GrowthBand | None:
        return self.gmd.band

    @property
    def is_pregnant(self) -> bool:
        return self.reproductive is not None and self.reproductive.is_pregnant


@dataclass(frozen=True)
class ZootechnicalKPIs:
    pregnancy_rate: float | None
    birth_rate: float | None
    mortality_rate: float | None
    calving_interval: int | None
    avg_birth_weight: float | None
    avg_weaning_weight: float | None
    avg_yearling_weight: float | None
    avg_gmd: float | None
    kg_calf_per_cow_year: float | None


@dataclass(frozen=True)
class KPIDetails:
    total_animals: int
    total_females: int
    total_males: int
    total_active: int
    total_deaths: int
    total_sold: int
    calves_weaned: int
    exposed_cows: int
    pregnant_cows: int
    births: int
    pregnant_from_breeding_season: int
    pregnant_from_manual_record: int
    animals_in_reference_period: int
    animals_excluded_from_period: int


@dataclass(frozen=True)
class KPIResult:
    kpis: ZootechnicalKPIs
    details: KPIDetails
    warnings: tuple[str, ...]


# =============================================================================
# Helpers
# =============================================================================


def _mean_or_none(values: list[float]) -> float | None:
    return fmean(values) if values else None


def _round(value: float | None, digits: int = 1) -> float | None:
    return round(value, digits) if value is not None else None


def _percent(part: int, whole: int) -> float | None:
    return part / whole * 100 if whole > 0 else None


def _calendar_months(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def _add_unique(result: list[Animal], seen: set[str], candidates: Iterable[Animal], key) -> None:
    for candidate in candidates:
        k = key(candidate)
        if k not in seen:
            seen.add(k)
            result.append(candidate)


def build_indices(animals: Iterable[Animal]) -> AnimalIndices:
    """Build every lookup table in one pass over the herd."""
    by_id: dict[str, Animal] = {}
    by_brinco: dict[str, Animal] = {}
    by_father_name: dict[str, list[Animal]] = {}
    by_mother_name: dict[str, list[Animal]] = {}
    by_father_id: dict[str, list[Animal]] = {}
    by_mother_id: dict[str, list[Animal]] = {}
    by_breed: dict[Breed, list[Animal]] = {breed: [] for breed in Breed}
    by_sex: dict[Sex, list[Animal]] = {sex: [] for sex in Sex}
    by_status: dict[AnimalStatus, list[Animal]] = {status: [] for status in AnimalStatus}

    # Mother tables use the genetic mother, so FIV calves sit under the donor
    for animal in animals:
        by_id[animal.id] = animal
        brinco = normalize_key(animal.brinco)
        if brinco:
            by_brinco.setdefault(brinco, animal)
        father_name = normalize_key(animal.father_name)
        if father_name:
            by_father_name.setdefault(father_name, []).append(animal)
        mother_name = normalize_key(animal.lineage_mother_name)
        if mother_name:
            by_mother_name.setdefault(mother_name, []).append(animal)
        if animal.father_id:
            by_father_id.setdefault(animal.father_id, []).append(animal)
        if animal.lineage_mother_id:
            by_mother_id.setdefault(animal.lineage_mother_id, []).append(animal)
        by_breed[animal.breed].append(animal)
        if animal.sex is not None:
            by_sex[animal.sex].append(animal)
        by_status[animal.status].append(animal)

    def freeze(groups: dict) -> Mapping:
        return MappingProxyType({k: tuple(v) for k, v in groups.items()})

    return AnimalIndices(
        by_id=MappingProxyType(by_id),
        by_brinco=MappingProxyType(by_brinco),
        by_father_name=freeze(by_father_name),
        by_mother_name=freeze(by_mother_name),
        by_father_id=freeze(by_father_id),
        by_mother_id=freeze(by_mother_id),
        by_breed=freeze(by_breed),
        by_sex=freeze(by_sex),
        by_status=freeze(by_status),
    )


# =============================================================================
# Service
# =============================================================================


class AnimalMetricsService:
    """Derived data and KPIs for one herd snapshot."""

    def __init__(
        self,
        animals: Iterable[Animal],
        breeding_seasons: Iterable[BreedingSeason] = (),
        today: date | None = None,
    ):
        self._today = today
        self.rebuild(animals, breeding_seasons)

    @property
    def today(self) -> date:
        return self._today or date.today()

    def rebuild(self, animals: Iterable[Animal], breeding_seasons: Iterable[BreedingSeason] = ()) -> None:
        """Replace the snapshot. Indices are rebuilt and derived data is dropped."""
        self._animals: tuple[Animal, ...] = tuple(animals)
        self._seasons: tuple[BreedingSeason, ...] = tuple(breeding_seasons)
        self._indices = build_indices(self._animals)
        self._by_name: dict[str, Animal] = {}
        for animal in self._animals:
            name = normalize_key(animal.name)
            if name:
                self._by_name.setdefault(name, animal)
        self._position = {animal.id: i for i, animal in enumerate(self._animals)}
        self._parents: dict[str, tuple[Animal | None, Animal | None]] | None = None
        self._children_by_parent: dict[str, list[Animal]] = {}
        self._reference_animals = filter_by_reference_period(self._animals)
        self._reference_stats: ReferencePeriodStats = reference_period_stats(self._animals)
        self._derived: Mapping[str, AnimalDerivedData] | None = None
        self._baselines: list[HerdBaseline] = []
        logger.debug("Indexed %d animals, %d breeding seasons", len(self._animals), len(self._seasons))

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    @property
    def animals(self) -> tuple[Animal, ...]:
        return self._animals

    def get_indices(self) -> AnimalIndices:
        return self._indices

    def get_animal_by_id(self, animal_id: str) -> Animal | None:
        return self._indices.by_id.get(animal_id)

    def get_animal_by_brinco(self, brinco: str) -> Animal | None:
        return self._indices.by_brinco.get(normalize_key(brinco) or "")

    def get_children_by_parent_name(self, parent_name: str, parent_sex: Sex) -> tuple[Animal, ...]:
        index = self._indices.by_father_name if parent_sex is Sex.MALE else self._indices.by_mother_name
        return index.get(normalize_key(parent_name) or "", ())

    def _find_registered(self, name_or_tag: str | None, animal_id: str | None) -> Animal | None:
        # Same precedence as find_parent: id, then brinco, then name
        if animal_id and animal_id in self._indices.by_id:
            return self._indices.by_id[animal_id]
        term = normalize_key(name_or_tag)
        if term is None:
            return None
        return self._indices.by_brinco.get(term) or self._by_name.get(term)

    def resolve_parent(self, animal: Animal, parent_sex: Sex) -> Animal | None:
        """Registered father or (genetic) mother of an animal, by id first, then brinco or name."""
        if parent_sex is Sex.MALE:
            return self._find_registered(animal.father_name, animal.father_id)
        return self._find_registered(animal.lineage_mother_name, animal.lineage_mother_id)

    def _resolved_parents(self) -> dict[str, tuple[Animal | None, Animal | None]]:
        if self._parents is None:
            parents = {}
            children: dict[str, list[Animal]] = {}
            for animal in self._animals:
                pair = (self.resolve_parent(animal, Sex.MALE), self.resolve_parent(animal, Sex.FEMALE))
                parents[animal.id] = pair
                for parent in pair:
                    if parent is not None:
                        children.setdefault(parent.id, []).append(animal)
            self._parents = parents
            self._children_by_parent = children
        return self._parents

    def _progeny_candidates(self, animal: Animal) -> list[Animal]:
        if animal.sex is Sex.MALE:
            name_index, id_index = self._indices.by_father_name, self._indices.by_father_id
        elif animal.sex is Sex.FEMALE:
            name_index, id_index = self._indices.by_mother_name, self._indices.by_mother_id
        else:
            return []
        candidates: list[Animal] = []
        seen: set[str] = set()
        for key in animal.keys:
            _add_unique(candidates, seen, name_index.get(key, ()), lambda a: a.id)
        _add_unique(candidates, seen, id_index.get(animal.id, ()), lambda a: a.id)
        return sorted(candidates, key=lambda a: self._position[a.id])

    def get_progeny_records(self, animal: Animal) -> list[ProgenyRecord]:
        """Unified progeny records, including manual calves that are not registered."""
        return progeny_view.get_unified_progeny(
            animal, self._progeny_candidates(animal), by_brinco=self._indices.by_brinco
        )

    def get_unified_progeny(self, animal: Animal) -> list[Animal]:
        """
        Registered offspring from manual records, name references and id references.

        Same records as rebanho.genealogy.get_unified_progeny, restricted to
        animals in the snapshot. FIV calves count for the donor, not the
        receptor.
        """
        by_id = self._indices.by_id
        return [by_id[r.animal_id] for r in self.get_progeny_records(animal) if r.animal_id in by_id]

    def get_siblings(self, animal: Animal) -> list[Animal]:
        """
        Full and half siblings: animals with the same resolved father or mother.

        A parent that is not registered is compared by its recorded name
        among the animals whose same parent is also unregistered.
        """
        parents = self._resolved_parents()
        result: list[Animal] = []
        seen: set[str] = {animal.id}

        own = parents.get(animal.id) or (self.resolve_parent(animal, Sex.MALE), self.resolve_parent(animal, Sex.FEMALE))
        names = (animal.father_name, animal.lineage_mother_name)
        for i, (parent, name) in enumerate(zip(own, names)):
            if parent is not None:
                _add_unique(result, seen, self._children_by_parent.get(parent.id, ()), lambda a: a.id)
            elif name:
                sex = Sex.MALE if i == 0 else Sex.FEMALE
                unresolved = (a for a in self.get_children_by_parent_name(name, sex) if parents[a.id][i] is None)
                _add_unique(result, seen, unresolved, lambda a: a.id)
        return result

    # -------------------------------------------------------------------------
    # Per-animal Derivations
    # -------------------------------------------------------------------------

    def _reproductive_data(self, animal: Animal, progeny: list[Animal]) -> ReproductiveData | None:
        if animal.sex is not Sex.FEMALE:
            return None

        is_pregnant = False
        source = PregnancySource.NONE
        expected_calving = None

        # Breeding season diagnoses take precedence over manual records
        for season in self._seasons:
            if not season.counts_for_metrics:
                continue
            coverage = next(
                (
                    c
                    for c in season.coverage_records
                    if c.cow_id == animal.id and c.pregnancy_result is DiagnosisResult.POSITIVE
                ),
                None,
            )
            if coverage is not None:
                is_pregnant = True
                source = PregnancySource.BREEDING_SEASON
                expected_calving = coverage.expected_calving_date
                break

        if not is_pregnant and animal.pregnancies:
            last = animal.pregnancies[-1]
            if last.date is not None:
                aborted = any(a.date is not None and a.date >= last.date for a in animal.abortions)
                if not aborted:
                    is_pregnant = True
                    source = PregnancySource.MANUAL
                    expected_calving = last.date + timedelta(days=GESTATION_DAYS)

        # The donor of an FIV calf did not calve it
        births = sorted(p.birth_date for p in progeny if p.birth_date is not None and not p.is_fiv)
        intervals = tuple(
            gap
            for gap in ((later - earlier).days for earlier, later in zip(births, births[1:]))
            if MIN_CALVING_INTERVAL_DAYS < gap < MAX_CALVING_INTERVAL_DAYS
        )

        first_calving = None
        if births and animal.birth_date is not None:
            months = _calendar_months(animal.birth_date, births[0])
            if MIN_FIRST_CALVING_MONTHS <= months <= MAX_FIRST_CALVING_MONTHS:
                first_calving = months

        return ReproductiveData(
            is_pregnant=is_pregnant,
            pregnancy_source=source,
            expected_calving_date=expected_calving,
            calving_intervals=intervals,
            first_calving_age_months=first_calving,
        )

    # -------------------------------------------------------------------------
    # Snapshot Computation
    # -------------------------------------------------------------------------

    def compute_all(self) -> Mapping[str, AnimalDerivedData]:
        """
        Derive data for every animal.

        Returns:
            Read-only mapping of animal id to AnimalDerivedData
        """
        today = self.today
        self._baselines = calculate_herd_baselines(self._animals)

        gmds: dict[str, GainMetrics] = {}
        progeny: dict[str, list[Animal]] = {}
        siblings: dict[str, list[Animal]] = {}
        deps: dict[str, DEPReport] = {}

        parents = self._resolved_parents()

        # Pass 1: growth, relatives and provisional DEP
        for animal in self._animals:
            gmds[animal.id] = calculate_gain_metrics(animal.weighings, today)
            progeny[animal.id] = self.get_unified_progeny(animal)
            siblings[animal.id] = self.get_siblings(animal)
            baseline = baseline_for(animal.breed, self._baselines)
            if baseline is not None:
                deps[animal.id] = calculate_animal_dep(animal, baseline, progeny[animal.id], siblings[animal.id])

        # Pass 2: distributions for rankings and percentiles
        def positive_gmd(animal: Animal) -> float | None:
            total = gmds[animal.id].total
            return total if total is not None and total > 0 else None

        reference_gmds = [g for g in map(positive_gmd, self._reference_animals) if g is not None]
        reference_gmds_by_breed: dict[Breed, list[float]] = {breed: [] for breed in Breed}
        for animal in self._reference_animals:
            g = positive_gmd(animal)
            if g is not None:
                reference_gmds_by_breed[animal.breed].append(g)

        distributions: dict[Breed, DEPDistribution] = {breed: DEPDistribution() for breed in Breed}
        for animal in self._animals:
            if animal.id in deps:
                distributions[animal.breed].add(deps[animal.id])

        # Pass 3: assemble
        derived: dict[str, AnimalDerivedData] = {}
        for animal in self._animals:
            gmd_value = positive_gmd(animal)
            rankings = Rankings()
            if gmd_value is not None:
                rankings = Rankings(
                    gmd_overall=1 + sum(g > gmd_value for g in reference_gmds),
                    gmd_breed=1 + sum(g > gmd_value for g in reference_gmds_by_breed[animal.breed]),
                )

            dep = deps.get(animal.id)
            if dep is not None:
                dep = apply_percentiles(dep, distributions[animal.breed])
                deps[animal.id] = dep
                rankings = Rankings(
                    gmd_overall=rankings.gmd_overall,
                    gmd_breed=rankings.gmd_breed,
                    dep_weaning_percentile=dep.percentile.weaning_weight,
                    dep_yearling_percentile=dep.percentile.yearling_weight,
                )

            father, mother = parents[animal.id]

            derived[animal.id] = AnimalDerivedData(
                animal_id=animal.id,
                brinco=animal.brinco,
                gmd=gmds[animal.id],
                dep=dep,
                progeny_ids=frozenset(p.id for p in progeny[animal.id]),
                sibling_ids=frozenset(s.id for s in siblings[animal.id]),
                father_id=father.id if father else None,
                mother_id=mother.id if mother else None,
                reproductive=self._reproductive_data(animal, progeny[animal.id]),
                rankings=rankings,
                age_months=age_in_months(animal.birth_date, today),
            )

        self._derived = MappingProxyType(derived)
        logger.debug("Derived data computed for %d animals (%d DEP reports)", len(derived), len(deps))
        return self._derived

    def get_all_derived_data(self) -> Mapping[str, AnimalDerivedData]:
        """Derived data for the whole snapshot, computing it on first use."""
        if self._derived is None:
            return self.compute_all()
        return self._derived

    def get_derived_data(self, animal_id: str) -> AnimalDerivedData | None:
        return self.get_all_derived_data().get(animal_id)

    def get_all_deps(self) -> list[DEPReport]:
        """DEP reports in herd order. Animals without a breed baseline have none."""
        derived = self.get_all_derived_data()
        return [d.dep for d in (derived[a.id] for a in self._animals) if d.dep is not None]

    def get_dep_baselines(self) -> list[HerdBaseline]:
        self.get_all_derived_data()
        return list(self._baselines)

    # -------------------------------------------------------------------------
    # KPIs
    # -------------------------------------------------------------------------

    def calculate_kpis(self) -> KPIResult:
        """
        Herd-wide zootechnical KPIs.

        Operational rates use the whole herd. Average weights use the
        reference period only. Pregnancy and birth rates come from running
        or finished breeding seasons when there are any, otherwise from
        manual pregnancy records and last year's births over breeding-age
        cows.
        """
        derived = self.get_all_derived_data()
        today = self.today
        index = self._indices
        warnings: list[str] = []

        active = index.by_status[AnimalStatus.ACTIVE]
        dead = index.by_status[AnimalStatus.DECEASED]
        sold = index.by_status[AnimalStatus.SOLD]
        females = index.by_sex[Sex.FEMALE]
        males = index.by_sex[Sex.MALE]
        active_females = [f for f in females if f.status is AnimalStatus.ACTIVE]
        breeding_age_females = [
            f
            for f in active_females
            if derived[f.id].age_months is not None and derived[f.id].age_months >= BREEDING_AGE_MONTHS
        ]

        mortality_rate = _percent(len(dead), len(self._animals))

        # Average weights over the reference period
        birth_weights, weaning_weights, yearling_weights = [], [], []
        for animal in self._reference_animals:
            for weighing_type, bucket in (
                (WeighingType.BIRTH, birth_weights),
                (WeighingType.WEANING, weaning_weights),
                (WeighingType.YEARLING, yearling_weights),
            ):
                weight = animal.first_weight_of(weighing_type)
                if weight is not None and weight > 0:
                    bucket.append(weight)

        avg_birth = _mean_or_none(birth_weights)
        avg_weaning = _mean_or_none(weaning_weights)
        avg_yearling = _mean_or_none(yearling_weights)
        if len(birth_weights) < MIN_WEIGHT_SAMPLES:
            warnings.append("Too few birth weights for a precise average")
        if len(weaning_weights) < MIN_WEIGHT_SAMPLES:
            warnings.append("Too few weaning weights for a precise average")

        # Pregnancy and birth rates
        seasons = [s for s in self._seasons if s.counts_for_metrics]
        pregnant_from_season = 0
        pregnant_from_manual = 0
        if seasons:
            exposed = sum(len(s.exposed_cow_ids) for s in seasons)
            coverages = [c for s in seasons for c in s.coverage_records]
            pregnancies = sum(c.is_pregnant for c in coverages)
            pregnant_from_season = pregnancies
            births = sum(c.calved for c in coverages)
        else:
            exposed = len(breeding_age_females)
            pregnant_from_manual = sum(
                1
                for f in breeding_age_females
                if derived[f.id].reproductive.pregnancy_source is PregnancySource.MANUAL
            )
            pregnancies = pregnant_from_manual
            one_year_ago = today - timedelta(days=365)
            births = sum(1 for a in self._animals if a.birth_date is not None and a.birth_date >= one_year_ago)

        pregnancy_rate = _percent(pregnancies, exposed)
        # Without seasons the denominator is the breeding-age cows, not the pregnancies
        birth_rate = _percent(births, pregnancies if seasons else len(breeding_age_females))

        intervals = [i for f in active_females for i in derived[f.id].reproductive.calving_intervals]
        calving_interval = _mean_or_none(intervals)
        if len(intervals) < MIN_CALVING_INTERVAL_SAMPLES:
            warnings.append("Too few calvings for a precise calving interval")

        gmds = [derived[a.id].gmd.total for a in active]
        avg_gmd = _mean_or_none([g for g in gmds if g is not None and g > 0])

        kg_calf = None
        if avg_weaning is not None and birth_rate is not None:
            kg_calf = avg_weaning * birth_rate / 100

        kpis = ZootechnicalKPIs(
            pregnancy_rate=_round(pregnancy_rate),
            birth_rate=_round(birth_rate),
            mortality_rate=_round(mortality_rate),
            calving_interval=round(calving_interval) if calving_interval is not None else None,
            avg_birth_weight=_round(avg_birth),
            avg_weaning_weight=_round(avg_weaning),
            avg_yearling_weight=_round(avg_yearling),
            avg_gmd=_round(avg_gmd, 2),
            kg_calf_per_cow_year=_round(kg_calf),
        )
        details = KPIDetails(
            total_animals=len(self._animals),
            total_females=len(females),
            total_males=len(males),
            total_active=len(active),
            total_deaths=len(dead),
            total_sold=len(sold),
            calves_weaned=len(weaning_weights),
            exposed_cows=exposed,
            pregnant_cows=pregnancies,
            births=births,
            pregnant_from_breeding_season=pregnant_from_season,
            pregnant_from_manual_record=pregnant_from_manual,
            animals_in_reference_period=self._reference_stats["in_period"],
            animals_excluded_from_period=self._reference_stats["excluded"],
        )
        return KPIResult(kpis=kpis, details=details, warnings=tuple(warnings))


def create_metrics_service(
    animals: Iterable[Animal],
    breeding_seasons: Iterable[BreedingSeason] = (),
    today: date | None = None,
) -> AnimalMetricsService:
    """Build a service and compute its derived data up front."""
    service = AnimalMetricsService(animals, breeding_seasons, today)
    service.compute_all()
    return service
