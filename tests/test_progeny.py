"""Tests for the unified progeny view."""

from datetime import date

from rebanho.data.models import OffspringRecord, Sex, WeighingType, WeightEntry
from rebanho.genealogy.progeny import (
    ProgenySource,
    brinco_index,
    calculate_progeny_stats,
    get_unified_progeny,
    is_actual_child,
)


class TestGetUnifiedProgeny:
    """Tests for get_unified_progeny."""

    def test_merges_sources(self, make_animal):
        """Verify manual, name and id sources are merged without duplicates."""
        cow = make_animal(
            "cow",
            "V10",
            name="Vaca",
            sex=Sex.FEMALE,
            offspring_records=(
                OffspringRecord(offspring_brinco="c1"),
                OffspringRecord(offspring_brinco="SOLD9", birth_weight_kg=31.0),
            ),
        )
        c1 = make_animal("c1", "C1", mother_id="cow")
        c2 = make_animal("c2", "C2", mother_name="vaca")
        c3 = make_animal("c3", "C3", mother_id="cow")

        progeny = get_unified_progeny(cow, (cow, c1, c2, c3))
        by_brinco = {p.brinco: p for p in progeny}

        assert set(by_brinco) == {"C1", "SOLD9", "C2", "C3"}
        assert by_brinco["C1"].source is ProgenySource.MANUAL
        assert by_brinco["C1"].animal_id == "c1"
        assert by_brinco["SOLD9"].animal_id is None
        assert by_brinco["SOLD9"].birth_weight_kg == 31.0
        assert by_brinco["C2"].source is ProgenySource.NAME
        assert by_brinco["C3"].source is ProgenySource.ID

    def test_stale_manual_record_ignored(self, make_animal):
        """Verify a manual record whose child now points elsewhere is dropped."""
        cow = make_animal("cow", sex=Sex.FEMALE, offspring_records=(OffspringRecord(offspring_brinco="C1"),))
        child = make_animal("c1", "C1", mother_id="other")
        assert get_unified_progeny(cow, (cow, child)) == []

    def test_bull_uses_father_fields(self, make_animal):
        """Verify bulls are matched on father fields only."""
        bull = make_animal("bull", "T1", sex=Sex.MALE)
        calf = make_animal("calf", father_name="t1")
        other = make_animal("other", mother_id="bull")
        assert [p.animal_id for p in get_unified_progeny(bull, (bull, calf, other))] == ["calf"]

    def test_unknown_sex_only_manual(self, make_animal):
        """Verify an animal without sex only reports manual records."""
        animal = make_animal("x", offspring_records=(OffspringRecord(offspring_brinco="Z1"),))
        child = make_animal("c", mother_id="x")
        assert [p.brinco for p in get_unified_progeny(animal, (animal, child))] == ["Z1"]

    def test_fiv_calf_belongs_to_donor(self, make_animal):
        """Verify an FIV calf is listed under the donor and not the receptor."""
        donor = make_animal("donor", "D1", name="Doadora", sex=Sex.FEMALE)
        receptor = make_animal("rec", "R1", name="Receptora", sex=Sex.FEMALE)
        calf = make_animal("calf", is_fiv=True, mother_name="Receptora", biological_mother_name="Doadora")
        herd = (donor, receptor, calf)

        assert [p.animal_id for p in get_unified_progeny(donor, herd)] == ["calf"]
        assert get_unified_progeny(receptor, herd) == []

    def test_manual_record_uses_given_index(self, make_animal):
        """Verify manual records are looked up in the supplied brinco index."""
        cow = make_animal("cow", sex=Sex.FEMALE, offspring_records=(OffspringRecord(offspring_brinco="c9"),))
        child = make_animal("c9", "C9", mother_id="cow")

        progeny = get_unified_progeny(cow, (), by_brinco=brinco_index((cow, child)))

        assert [(p.animal_id, p.source) for p in progeny] == [("c9", ProgenySource.MANUAL)]


class TestIsActualChild:
    """Tests for is_actual_child."""

    def test_fiv_donor(self, make_animal):
        """Verify an FIV calf is the donor's child."""
        donor = make_animal("d", name="Doadora")
        calf = make_animal("c", is_fiv=True, biological_mother_name="DOADORA", mother_name="Receptora")
        assert is_actual_child(calf, donor)

    def test_fiv_receptor(self, make_animal):
        """Verify an FIV calf is not the receptor's child."""
        receptor = make_animal("r", name="Receptora")
        calf = make_animal("c", is_fiv=True, biological_mother_name="Doadora", mother_name="Receptora")
        assert not is_actual_child(calf, receptor)



class TestCalculateProgenyStats:
    """Tests for calculate_progeny_stats."""

    def test_averages_only_present_weights(self, make_animal):
        """Verify averages skip missing weights and are None without data."""
        cow = make_animal("cow", sex=Sex.FEMALE)
        calves = (
            make_animal("a", mother_id="cow", weighings=(WeightEntry(date(2025, 1, 1), 30.0, WeighingType.BIRTH),)),
            make_animal("b", mother_id="cow", weighings=(WeightEntry(date(2025, 2, 1), 40.0, WeighingType.BIRTH),)),
            make_animal("c", mother_id="cow"),
        )
        stats = calculate_progeny_stats(get_unified_progeny(cow, (cow,) + calves))

        assert stats.total == 3
        assert stats.avg_birth_weight == 35.0
        assert stats.count_with_birth == 2
        assert stats.avg_weaning_weight is None
