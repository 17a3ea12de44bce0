"""Lineage reference resolution.

Parent fields hold free text (a name or an ear tag) and/or a record id.
Resolution order is fixed: exact id, then case-insensitive trimmed brinco,
then case-insensitive trimmed name. An unmatched name is a normal outcome:
it denotes an animal that was never registered in this herd (bought-in
sire, semen donor, ...), not an error.
"""

from collections.abc import Iterable
from dataclasses import dataclass

from rebanho.data.models import Animal, normalize_key


@dataclass(frozen=True)
class ResolvedRef:
    """Reference that points at a registered animal."""

    animal: Animal

    @property
    def name(self) -> str:
        return self.animal.display_name

    @property
    def father_name(self) -> str | None:
        return self.animal.father_name

    @property
    def mother_name(self) -> str | None:
        return self.animal.lineage_mother_name

    @property
    def is_reference(self) -> bool:
        return False


@dataclass(frozen=True)
class ExternalRef:
    """Reference to an animal that is not in the herd records. Carries only its name."""

    name: str

    @property
    def animal(self) -> None:
        return None

    @property
    def is_reference(self) -> bool:
        return True


AncestorRef = ResolvedRef | ExternalRef


def find_parent(
    herd: Iterable[Animal],
    name_or_tag: str | None = None,
    id: str | None = None,
) -> Animal | None:
    """
    Find a registered animal by id, brinco or name.

    Args:
        herd: Animals to search
        name_or_tag: Free-text name or ear tag
        id: Record id (checked first)

    Returns:
        The matching animal, or None
    """
    animals = herd if isinstance(herd, (list, tuple)) else list(herd)

    if id:
        for animal in animals:
            if animal.id == id:
                return animal

    term = normalize_key(name_or_tag)
    if term is None:
        return None

    for animal in animals:
        if normalize_key(animal.brinco) == term:
            return animal
    for animal in animals:
        if normalize_key(animal.name) == term:
            return animal
    return None


def resolve(
    herd: Iterable[Animal],
    name_or_tag: str | None = None,
    id: str | None = None,
) -> AncestorRef | None:
    """
    Resolve a lineage reference.

    Returns:
        ResolvedRef when an animal matches, ExternalRef when only a name was
        given and nothing matches, None when there is nothing to resolve.
    """
    name = name_or_tag.strip() if name_or_tag else None
    if not name and not id:
        return None

    animal = find_parent(herd, name, id)
    if animal is not None:
        return ResolvedRef(animal)
    if name:
        return ExternalRef(name)
    return None


def resolve_father(herd: Iterable[Animal], animal: Animal) -> AncestorRef | None:
    return resolve(herd, animal.father_name, animal.father_id)


def resolve_mother(herd: Iterable[Animal], animal: Animal) -> AncestorRef | None:
    """Resolve the genetic mother. For FIV animals this is the donor, never the receptor."""
    return resolve(herd, animal.lineage_mother_name, animal.lineage_mother_id)
