"""Tests for lineage reference resolution."""

from rebanho.data.models import Animal
from rebanho.genealogy.resolver import (
    ExternalRef,
    ResolvedRef,
    find_parent,
    resolve,
    resolve_father,
    resolve_mother,
)

HERD = (Animal(id="1", brinco="ABC001", name="Mimosa"),)


class TestResolve:
    """Tests for the resolve function."""

    def test_resolves_by_id(self):
        """Verify an exact id resolves to the animal."""
        ref = resolve(HERD, id="1")
        assert isinstance(ref, ResolvedRef)
        assert ref.animal is HERD[0]

    def test_resolves_by_tag_case_insensitive(self):
        """Verify a brinco matches regardless of case."""
        assert resolve(HERD, "abc001") == ResolvedRef(HERD[0])

    def test_resolves_by_name_case_insensitive(self):
        """Verify a name matches regardless of case and surrounding spaces."""
        assert resolve(HERD, "  MIMOSA ") == ResolvedRef(HERD[0])

    def test_unmatched_name_is_external_reference(self):
        """Verify an unknown name yields an external reference carrying the name."""
        ref = resolve(HERD, "XYZ999")
        assert ref == ExternalRef("XYZ999")
        assert ref.is_reference
        assert ref.animal is None

    def test_nothing_to_resolve_returns_none(self):
        """Verify no name and no id yields no reference."""
        assert resolve(HERD) is None
        assert resolve(HERD, "   ") is None

    def test_unmatched_id_without_name_returns_none(self):
        """Verify a dangling id with no name is absent, not external."""
        assert resolve(HERD, id="missing") is None

    def test_id_wins_over_name(self):
        """Verify the id is checked before the free-text reference."""
        herd = (
            Animal(id="1", brinco="A", name="Mimosa"),
            Animal(id="2", brinco="B", name="Outra"),
        )
        ref = resolve(herd, "Mimosa", "2")
        assert ref.animal.id == "2"

    def test_brinco_wins_over_name(self):
        """Verify a brinco match beats another animal's name match."""
        herd = (
            Animal(id="1", brinco="X1", name="B7"),
            Animal(id="2", brinco="B7", name="Outra"),
        )
        assert find_parent(herd, "b7").id == "2"


class TestResolveParents:
    """Tests for father and mother resolution."""

    def test_fiv_mother_is_donor(self, family):
        """Verify an FIV animal's mother resolves to the biological mother."""
        lua = family[-1]
        ref = resolve_mother(family, lua)
        assert ref.animal.id == "estrela"

    def test_father_external(self, family):
        """Verify an unregistered sire is an external reference."""
        lua = family[-1]
        assert resolve_father(family, lua) == ExternalRef("Touro Externo")

    def test_resolved_ref_exposes_parent_names(self, family):
        """Verify a resolved reference reports the animal's lineage names."""
        ref = ResolvedRef(family[-1])
        assert ref.name == "Lua"
        assert ref.mother_name == "Estrela"
        assert ref.father_name == "Touro Externo"
        assert not ref.is_reference
