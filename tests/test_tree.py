"""Tests for ancestor and descendant trees."""

from datetime import date

from rebanho.data.models import AnimalStatus, Sex
from rebanho.genealogy.tree import (
    build_ancestor_tree,
    build_genealogy,
    find_descendants,
    find_offspring_of,
    format_lineage_tree,
)


class TestBuildAncestorTree:
    """Tests for build_ancestor_tree."""

    def test_parents_and_grandparents(self, family):
        """Verify parents and grandparents are resolved through the herd."""
        lua = family[-1]
        tree = build_ancestor_tree(lua, family)

        assert tree.father.is_reference
        assert tree.father.display_name == "Touro Externo"
        assert tree.mother.animal.id == "estrela"
        assert tree.mother.gender is Sex.FEMALE
        assert tree.mother.level == 1
        assert [n.animal.id for n in tree.level(2)] == ["touro", "mimosa"]
        assert tree.generation_count == 2

    def test_receptor_is_display_only(self, family):
        """Verify the FIV receptor is reported but never walked as an ancestor."""
        lua = family[-1]
        tree = build_ancestor_tree(lua, family)

        assert tree.receptor.animal.id == "receptora"
        ancestor_ids = {n.animal.id for level in (1, 2, 3) for n in tree.level(level) if n.animal}
        assert "receptora" not in ancestor_ids

    def test_external_reference_has_no_parents(self, family):
        """Verify external references are leaves."""
        tree = build_ancestor_tree(family[-1], family)
        assert tree.father.parents == ()

    def test_no_lineage(self, family):
        """Verify an animal without parent fields has an empty tree."""
        tree = build_ancestor_tree(family[0], family)
        assert not tree.has_parents
        assert tree.generation_count == 0

    def test_depth_is_bounded_for_self_reference(self, make_animal):
        """Verify an animal listed as its own parent does not recurse forever."""
        loop = make_animal("x", "X1", name="Loop", father_id="x", mother_name="Loop")
        tree = build_ancestor_tree(loop, (loop,))

        assert len(tree.level(3)) == 8
        assert all(n.father is None and n.mother is None for n in tree.level(3))
        assert tree.level(4) == []

    def test_depth_parameter(self, family):
        """Verify a shallower depth stops at parents."""
        tree = build_ancestor_tree(family[-1], family, depth=1)
        assert tree.mother.parents == ()


class TestFindOffspring:
    """Tests for find_offspring_of."""

    def test_matches_id_name_and_tag(self, family):
        """Verify children linked by id, name or brinco are all found."""
        mimosa = family[1]
        assert {a.id for a in find_offspring_of(mimosa, family)} == {"estrela", "bravo"}

    def test_fiv_donor_gets_offspring(self, family):
        """Verify an FIV calf is offspring of its biological mother."""
        estrela = family[2]
        assert [a.id for a in find_offspring_of(estrela, family)] == ["lua"]

    def test_receptor_also_listed_by_mother_name(self, family):
        """Verify the recorded mother name still links the receptor."""
        receptora = family[4]
        assert [a.id for a in find_offspring_of(receptora, family)] == ["lua"]

    def test_never_includes_self(self, make_animal):
        """Verify an animal is never its own offspring."""
        loop = make_animal("x", "X1", mother_id="x")
        assert find_offspring_of(loop, (loop,)) == []

    def test_symmetric_with_parent_id(self, make_animal):
        """Verify a child pointing at a parent id is found."""
        mother = make_animal("m")
        child = make_animal("c", mother_id="m")
        assert find_offspring_of(mother, (mother, child)) == [child]


class TestFindDescendants:
    """Tests for find_descendants."""

    def test_generations(self, family):
        """Verify children and grandchildren are separated by generation."""
        children, grandchildren, great = find_descendants(family[1], family)
        assert {a.id for a in children} == {"estrela", "bravo"}
        assert [a.id for a in grandchildren] == ["lua"]
        assert great == ()

    def test_diamond_is_deduplicated(self, make_animal):
        """Verify a grandchild reachable through two children appears once."""
        root = make_animal("root", sex=Sex.MALE)
        son = make_animal("son", sex=Sex.MALE, father_id="root")
        daughter = make_animal("daughter", sex=Sex.FEMALE, father_id="root")
        grandchild = make_animal("gc", father_id="son", mother_id="daughter")

        _, grandchildren, _ = find_descendants(root, (root, son, daughter, grandchild))
        assert [a.id for a in grandchildren] == ["gc"]


class TestBuildGenealogy:
    """Tests for build_genealogy."""

    def test_counts(self, family):
        """Verify descendant counts over all generations."""
        genealogy = build_genealogy(family[0], family)
        assert genealogy.descendant_count == 3
        assert genealogy.generations_below == 2

    def test_memoised_on_animal_and_herd(self, family):
        """Verify the same pair returns the cached object."""
        assert build_genealogy(family[1], family) is build_genealogy(family[1], family)

    def test_new_herd_is_new_key(self, family, make_animal):
        """Verify a changed herd is not served from the cache."""
        before = build_genealogy(family[1], family)
        calf = make_animal("new", mother_id="mimosa", status=AnimalStatus.ACTIVE, birth_date=date(2026, 1, 1))
        after = build_genealogy(family[1], family + (calf,))
        assert after is not before
        assert "new" in {a.id for a in after.children}


class TestFormatLineageTree:
    """Tests for format_lineage_tree."""

    def test_formats_nested_lineage(self, family):
        """Verify sire/dam lines, receptor and external markers."""
        output = format_lineage_tree(build_ancestor_tree(family[-1], family))

        assert output.startswith("L001 Lua (Hereford) [2025] FIV")
        assert "(Receptor: Receptora)" in output
        assert "├─ Sire:" in output
        assert "└─ Dam:" in output
        assert "Touro Externo (not registered)" in output
        assert "E001 Estrela" in output
