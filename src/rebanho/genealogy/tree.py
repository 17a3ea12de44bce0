"""Ancestor and descendant trees.

Ancestors are walked up a fixed number of generations (parents,
grandparents, great-grandparents). The bound also neutralizes bad data
such as an animal listed as its own ancestor.

Descendants are found by reverse lookup over the whole herd, one
generation at a time, deduplicated by id within each generation.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import lru_cache

from rebanho.core.units import format_weight
from rebanho.data.models import Animal, Sex, normalize_key
from rebanho.genealogy.resolver import (
    AncestorRef,
    ResolvedRef,
    resolve,
    resolve_father,
    resolve_mother,
)

logger = logging.getLogger(__name__)

# Parents (1), grandparents (2), great-grandparents (3)
MAX_ANCESTOR_DEPTH = 3

# Children, grandchildren, great-grandchildren
DESCENDANT_GENERATIONS = 3


# =============================================================================
# Ancestors
# =============================================================================


@dataclass(frozen=True)
class AncestorNode:
    """One ancestor position in the tree. ``level`` 1 is a parent."""

    ref: AncestorRef
    gender: Sex
    level: int
    father: "AncestorNode | None" = None
    mother: "AncestorNode | None" = None

    @property
    def display_name(self) -> str:
        return self.ref.name

    @property
    def is_reference(self) -> bool:
        return self.ref.is_reference

    @property
    def animal(self) -> Animal | None:
        return self.ref.animal

    @property
    def is_fiv(self) -> bool:
        return self.animal is not None and self.animal.is_fiv

    @property
    def parents(self) -> tuple["AncestorNode", ...]:
        return tuple(n for n in (self.father, self.mother) if n is not None)


@dataclass(frozen=True)
class AncestorTree:
    animal: Animal
    father: AncestorNode | None
    mother: AncestorNode | None
    # FIV surrogate mother, shown next to the animal but never walked
    receptor: AncestorRef | None = None

    @property
    def has_parents(self) -> bool:
        return self.father is not None or self.mother is not None

    def level(self, n: int) -> list[AncestorNode]:
        """Nodes at generation ``n`` (1 = parents), paternal side first."""
        nodes = [node for node in (self.father, self.mother) if node is not None]
        for _ in range(n - 1):
            nodes = [parent for node in nodes for parent in node.parents]
        return nodes

    @property
    def generation_count(self) -> int:
        """Number of ancestor generations with at least one known node."""
        count = 0
        while count < MAX_ANCESTOR_DEPTH and self.level(count + 1):
            count += 1
        return count


def _ancestor_node(
    herd: Sequence[Animal],
    ref: AncestorRef | None,
    gender: Sex,
    level: int,
    depth: int,
) -> AncestorNode | None:
    if ref is None:
        return None

    father = mother = None
    # External references have no recorded parents to follow
    if isinstance(ref, ResolvedRef) and level < depth:
        father = _ancestor_node(herd, resolve_father(herd, ref.animal), Sex.MALE, level + 1, depth)
        mother = _ancestor_node(herd, resolve_mother(herd, ref.animal), Sex.FEMALE, level + 1, depth)

    return AncestorNode(ref=ref, gender=gender, level=level, father=father, mother=mother)


def build_ancestor_tree(
    animal: Animal,
    herd: Sequence[Animal],
    depth: int = MAX_ANCESTOR_DEPTH,
) -> AncestorTree:
    """
    Build the ancestor tree of an animal.

    For FIV animals the mother branch follows the biological (donor) mother;
    the receptor is resolved separately for display only.

    Args:
        animal: Animal whose ancestry is wanted
        herd: Full herd collection
        depth: Generations to walk up (capped at MAX_ANCESTOR_DEPTH)
    """
    depth = max(0, min(depth, MAX_ANCESTOR_DEPTH))
    if depth == 0:
        return AncestorTree(animal=animal, father=None, mother=None)

    receptor = None
    if animal.is_fiv and (animal.receptor_mother_name or animal.receptor_mother_id):
        receptor = resolve(herd, animal.receptor_mother_name, animal.receptor_mother_id)

    return AncestorTree(
        animal=animal,
        father=_ancestor_node(herd, resolve_father(herd, animal), Sex.MALE, 1, depth),
        mother=_ancestor_node(herd, resolve_mother(herd, animal), Sex.FEMALE, 1, depth),
        receptor=receptor,
    )


# =============================================================================
# Descendants
# =============================================================================


def _points_to(reference: str | None, parent_keys: tuple[str, ...]) -> bool:
    key = normalize_key(reference)
    return key is not None and key in parent_keys


def find_offspring_of(parent: Animal, herd: Iterable[Animal]) -> list[Animal]:
    """
    Find the direct offspring of an animal.

    A record is offspring when its mother id or father id equals the
    parent's id, or when its father name, mother name or (for FIV) donor
    name matches the parent's brinco or name. The parent itself is never
    included.
    """
    parent_keys = parent.keys
    offspring = []
    for animal in herd:
        if animal.id == parent.id:
            continue
        if (
            (animal.is_fiv and _points_to(animal.biological_mother_name, parent_keys))
            or _points_to(animal.mother_name, parent_keys)
            or _points_to(animal.father_name, parent_keys)
            or animal.mother_id == parent.id
            or animal.father_id == parent.id
            or (animal.is_fiv and animal.biological_mother_id == parent.id)
        ):
            offspring.append(animal)
    return offspring


def _dedupe(animals: Iterable[Animal]) -> tuple[Animal, ...]:
    seen = set()
    unique = []
    for animal in animals:
        if animal.id not in seen:
            seen.add(animal.id)
            unique.append(animal)
    return tuple(unique)


def find_descendants(
    animal: Animal,
    herd: Sequence[Animal],
    generations: int = DESCENDANT_GENERATIONS,
) -> list[tuple[Animal, ...]]:
    """
    Find descendants generation by generation.

    Returns:
        One tuple per generation (children first). Each animal appears at
        most once per generation, however many paths lead to it.
    """
    result: list[tuple[Animal, ...]] = []
    current: tuple[Animal, ...] = (animal,)
    for _ in range(generations):
        current = _dedupe(child for a in current for child in find_offspring_of(a, herd))
        result.append(current)
    return result


# =============================================================================
# Full Genealogy
# =============================================================================


@dataclass(frozen=True)
class Genealogy:
    animal: Animal
    ancestors: AncestorTree
    children: tuple[Animal, ...]
    grandchildren: tuple[Animal, ...]
    great_grandchildren: tuple[Animal, ...]

    @property
    def descendant_count(self) -> int:
        return len(self.children) + len(self.grandchildren) + len(self.great_grandchildren)

    @property
    def generations_below(self) -> int:
        """Number of consecutive descendant generations with at least one animal."""
        count = 0
        for generation in (self.children, self.grandchildren, self.great_grandchildren):
            if not generation:
                break
            count += 1
        return count


@lru_cache(maxsize=256)
def build_genealogy(animal: Animal, herd: tuple[Animal, ...]) -> Genealogy:
    """
    Build ancestors and descendants of an animal.

    Memoised on the (animal, herd) pair; pass the herd as a tuple (e.g.
    ``Herd.animals``). A changed herd is a different key, so stale trees
    are never returned.
    """
    logger.debug("Building genealogy for %s over %d animals", animal.brinco, len(herd))
    children, grandchildren, great_grandchildren = find_descendants(animal, herd, DESCENDANT_GENERATIONS)
    return Genealogy(
        animal=animal,
        ancestors=build_ancestor_tree(animal, herd),
        children=children,
        grandchildren=grandchildren,
        great_grandchildren=great_grandchildren,
    )


# =============================================================================
# Formatting
# =============================================================================


def _label(animal: Animal) -> str:
    line = animal.brinco or animal.id
    if animal.name and animal.name != animal.brinco:
        line += f" {animal.name}"
    line += f" ({animal.breed.value})"
    if animal.birth_date:
        line += f" [{animal.birth_date.year}]"
    if animal.is_fiv:
        line += " FIV"
    return line


def _format_node(node: AncestorNode, indent: int) -> list[str]:
    prefix = "  " * indent
    if node.animal is not None:
        lines = [f"{prefix}{_label(node.animal)}"]
    else:
        lines = [f"{prefix}{node.display_name} (not registered)"]

    if node.father:
        lines.append(f"{prefix}  ├─ Sire:")
        lines.extend(_format_node(node.father, indent + 2))
    if node.mother:
        lines.append(f"{prefix}  └─ Dam:")
        lines.extend(_format_node(node.mother, indent + 2))
    return lines


def format_lineage_tree(tree: AncestorTree) -> str:
    """
    Format an ancestor tree as a readable tree string.

    Returns:
        Formatted tree string
    """
    lines = [_label(tree.animal)]
    if tree.animal.weight_kg is not None:
        lines[0] += f" {format_weight(tree.animal.weight_kg)}"
    if tree.receptor is not None:
        lines.append(f"  (Receptor: {tree.receptor.name})")
    if tree.father:
        lines.append("  ├─ Sire:")
        lines.extend(_format_node(tree.father, 2))
    if tree.mother:
        lines.append("  └─ Dam:")
        lines.extend(_format_node(tree.mother, 2))
    return "\n".join(lines)
