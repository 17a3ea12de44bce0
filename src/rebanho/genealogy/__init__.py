"""Genealogy module - lineage resolution, trees and descendant views."""

from rebanho.genealogy.grouping import (
    AnimalGroup,
    GroupBy,
    OffspringStats,
    compute_stats,
    group_animals,
)
from rebanho.genealogy.progeny import (
    ProgenyRecord,
    ProgenySource,
    ProgenyStats,
    brinco_index,
    calculate_progeny_stats,
    get_unified_progeny,
)
from rebanho.genealogy.resolver import (
    AncestorRef,
    ExternalRef,
    ResolvedRef,
    find_parent,
    resolve,
)
from rebanho.genealogy.tree import (
    AncestorNode,
    AncestorTree,
    Genealogy,
    build_ancestor_tree,
    build_genealogy,
    find_descendants,
    find_offspring_of,
    format_lineage_tree,
)

__all__ = [
    "AncestorRef",
    "ExternalRef",
    "ResolvedRef",
    "find_parent",
    "resolve",
    "AncestorNode",
    "AncestorTree",
    "Genealogy",
    "build_ancestor_tree",
    "build_genealogy",
    "find_descendants",
    "find_offspring_of",
    "format_lineage_tree",
    "AnimalGroup",
    "GroupBy",
    "OffspringStats",
    "compute_stats",
    "group_animals",
    "ProgenyRecord",
    "ProgenySource",
    "ProgenyStats",
    "brinco_index",
    "calculate_progeny_stats",
    "get_unified_progeny",
]
