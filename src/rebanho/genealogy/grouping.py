"""Descendant statistics and display grouping."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from rebanho.data.models import Animal, AnimalStatus, Sex

NO_DATE_KEY = "Sem data"

STATUS_ORDER = {
    AnimalStatus.ACTIVE.value: 0,
    AnimalStatus.SOLD.value: 1,
    AnimalStatus.DECEASED.value: 2,
}

STATUS_LABELS = {
    AnimalStatus.ACTIVE.value: "Ativos",
    AnimalStatus.SOLD.value: "Vendidos",
    AnimalStatus.DECEASED.value: "Óbito",
}

SEX_LABELS = {
    Sex.MALE.value: "Machos",
    Sex.FEMALE.value: "Fêmeas",
}


class GroupBy(Enum):
    NONE = "none"
    STATUS = "status"
    SEX = "sexo"
    BIRTH_YEAR = "anoNascimento"


@dataclass(frozen=True)
class OffspringStats:
    total: int = 0
    males: int = 0
    females: int = 0
    active: int = 0
    sold: int = 0
    deceased: int = 0
    fiv: int = 0


@dataclass(frozen=True)
class AnimalGroup:
    key: str
    label: str
    animals: tuple[Animal, ...]


def compute_stats(animals: Iterable[Animal]) -> OffspringStats:
    """Count a generation set by sex, status and FIV origin."""
    counts = dict.fromkeys(("total", "males", "females", "active", "sold", "deceased", "fiv"), 0)
    for animal in animals:
        counts["total"] += 1
        counts["males"] += animal.sex is Sex.MALE
        counts["females"] += animal.sex is Sex.FEMALE
        counts["active"] += animal.status is AnimalStatus.ACTIVE
        counts["sold"] += animal.status is AnimalStatus.SOLD
        counts["deceased"] += animal.status is AnimalStatus.DECEASED
        counts["fiv"] += animal.is_fiv
    return OffspringStats(**counts)


def _group_key(animal: Animal, group_by: GroupBy) -> str:
    if group_by is GroupBy.STATUS:
        return animal.status.value
    if group_by is GroupBy.SEX:
        return animal.sex.value if animal.sex else "?"
    if group_by is GroupBy.BIRTH_YEAR:
        return str(animal.birth_date.year) if animal.birth_date else NO_DATE_KEY
    return "all"


def _sort_key(key: str, group_by: GroupBy):
    if group_by is GroupBy.STATUS:
        return (STATUS_ORDER.get(key, 99), key)
    if group_by is GroupBy.BIRTH_YEAR:
        # Newest year first, undated animals last
        if key == NO_DATE_KEY:
            return (1, 0)
        return (0, -int(key))
    return key


def group_animals(animals: Sequence[Animal], group_by: GroupBy = GroupBy.NONE) -> list[AnimalGroup]:
    """
    Group animals for display.

    Status groups follow Active, Sold, Deceased. Birth-year groups run from
    the newest year down with undated animals in a trailing "Sem data"
    group. Sex groups are ordered by key. Labels carry the group size.
    """
    if group_by is GroupBy.NONE:
        return [AnimalGroup(key="all", label=f"Todos ({len(animals)})", animals=tuple(animals))]

    groups: dict[str, list[Animal]] = {}
    for animal in animals:
        groups.setdefault(_group_key(animal, group_by), []).append(animal)

    result = []
    for key in sorted(groups, key=lambda k: _sort_key(k, group_by)):
        members = groups[key]
        if group_by is GroupBy.STATUS:
            label = STATUS_LABELS.get(key, key)
        elif group_by is GroupBy.SEX:
            label = SEX_LABELS.get(key, key)
        else:
            label = key
        result.append(AnimalGroup(key=key, label=f"{label} ({len(members)})", animals=tuple(members)))
    return result
