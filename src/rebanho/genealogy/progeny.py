"""Unified progeny view.

Offspring of an animal can be known from three places:
1. Manual calf records kept on the parent (``offspring_records``)
2. Name references: children whose genetic mother or father name is the parent's name or brinco
3. Id references: children whose genetic mother or father id is the parent's id

Manual records are checked against the child's current parent fields when
the child is registered. A record whose child now points to another
parent is stale and ignored. Records are keyed by normalized brinco.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from statistics import fmean

from rebanho.data.models import Animal, Sex, WeighingType, normalize_key


class ProgenySource(Enum):
    MANUAL = "manual"
    NAME = "name"
    ID = "id"


@dataclass(frozen=True)
class ProgenyRecord:
    brinco: str
    source: ProgenySource
    name: str | None = None
    birth_weight_kg: float | None = None
    weaning_weight_kg: float | None = None
    yearling_weight_kg: float | None = None
    # Registered child, when there is one
    animal_id: str | None = None


@dataclass(frozen=True)
class ProgenyStats:
    total: int
    avg_birth_weight: float | None
    avg_weaning_weight: float | None
    avg_yearling_weight: float | None
    count_with_birth: int
    count_with_weaning: int
    count_with_yearling: int


def is_actual_child(child: Animal, parent: Animal) -> bool:
    """Whether the child's own sire or genetic dam fields point to this parent."""
    if parent.id in (child.father_id, child.lineage_mother_id):
        return True
    keys = parent.keys
    return any(normalize_key(c) in keys for c in (child.father_name, child.lineage_mother_name) if c)


def brinco_index(herd: Iterable[Animal]) -> dict[str, Animal]:
    """Animals by normalized brinco. The first animal wins a repeated brinco."""
    index: dict[str, Animal] = {}
    for a in herd:
        key = normalize_key(a.brinco)
        if key is not None:
            index.setdefault(key, a)
    return index


def _from_animal(child: Animal, source: ProgenySource) -> ProgenyRecord:
    return ProgenyRecord(
        brinco=child.brinco,
        source=source,
        name=child.name,
        birth_weight_kg=child.first_weight_of(WeighingType.BIRTH),
        weaning_weight_kg=child.first_weight_of(WeighingType.WEANING),
        yearling_weight_kg=child.first_weight_of(WeighingType.YEARLING),
        animal_id=child.id,
    )


def get_unified_progeny(
    animal: Animal,
    herd: Sequence[Animal],
    by_brinco: Mapping[str, Animal] | None = None,
) -> list[ProgenyRecord]:
    """
    Merge the three progeny sources for an animal.

    Cows are matched on genetic mother fields (the donor for FIV calves),
    bulls on father fields. Manual records win over reverse lookups for the
    same brinco; name matches win over id matches.

    Args:
        animal: The parent
        herd: Candidate children, in display order
        by_brinco: Index for manual record lookups, built from ``herd``
            when not given
    """
    if by_brinco is None:
        by_brinco = brinco_index(herd)

    progeny: dict[str, ProgenyRecord] = {}

    for record in animal.offspring_records:
        key = normalize_key(record.offspring_brinco)
        if key is None:
            continue
        child = by_brinco.get(key)
        if child is not None:
            if not is_actual_child(child, animal):
                continue
            progeny[key] = _from_animal(child, ProgenySource.MANUAL)
        else:
            progeny[key] = ProgenyRecord(
                brinco=record.offspring_brinco,
                source=ProgenySource.MANUAL,
                birth_weight_kg=record.birth_weight_kg,
                weaning_weight_kg=record.weaning_weight_kg,
                yearling_weight_kg=record.yearling_weight_kg,
            )

    if animal.sex is Sex.FEMALE:
        name_field, id_field = "lineage_mother_name", "lineage_mother_id"
    elif animal.sex is Sex.MALE:
        name_field, id_field = "father_name", "father_id"
    else:
        return list(progeny.values())

    keys = animal.keys
    for child in herd:
        child_key = normalize_key(child.brinco)
        if child_key is None or child_key in progeny or child.id == animal.id:
            continue
        if normalize_key(getattr(child, name_field)) in keys:
            progeny[child_key] = _from_animal(child, ProgenySource.NAME)
        elif getattr(child, id_field) == animal.id:
            progeny[child_key] = _from_animal(child, ProgenySource.ID)

    return list(progeny.values())


def calculate_progeny_stats(progeny: Iterable[ProgenyRecord]) -> ProgenyStats:
    """Average calf weights over the records that have each weight."""
    records = list(progeny)
    birth = [p.birth_weight_kg for p in records if p.birth_weight_kg is not None]
    weaning = [p.weaning_weight_kg for p in records if p.weaning_weight_kg is not None]
    yearling = [p.yearling_weight_kg for p in records if p.yearling_weight_kg is not None]
    return ProgenyStats(
        total=len(records),
        avg_birth_weight=fmean(birth) if birth else None,
        avg_weaning_weight=fmean(weaning) if weaning else None,
        avg_yearling_weight=fmean(yearling) if yearling else None,
        count_with_birth=len(birth),
        count_with_weaning=len(weaning),
        count_with_yearling=len(yearling),
    )
