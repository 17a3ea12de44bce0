"""Tests for herd records and snapshot loading."""

import json
from datetime import date

import pytest

from rebanho.data import herd as herd_module
from rebanho.data.herd import HerdFileNotFoundError, load_herd, parse_herd, summarize_herd
from rebanho.data.models import (
    Animal,
    AnimalStatus,
    Breed,
    DiagnosisResult,
    SeasonStatus,
    Sex,
    WeighingType,
    parse_date,
)

ANIMAL_DOC = {
    "id": "a1",
    "brinco": " 123 ",
    "nome": "Estrela",
    "raca": "Braford",
    "sexo": "Fêmea",
    "status": "Vendido",
    "dataNascimento": "2025-02-10",
    "pesoKg": "312.5",
    "paiNome": "Touro",
    "maeId": "m1",
    "isFIV": True,
    "maeBiologicaNome": "Doadora",
    "maeReceptoraNome": "Receptora",
    "historicoPesagens": [
        {"date": "2025-02-10", "weightKg": 33, "type": "Nascimento"},
        {"date": "not a date", "weightKg": 100},
        {"date": "2025-03-01"},
    ],
    "historicoProgenie": [{"offspringBrinco": "F1", "birthWeightKg": 30}],
}


class TestAnimalFromDict:
    """Tests for Animal.from_dict."""

    def test_parses_document(self):
        """Verify stored fields map onto the record."""
        animal = Animal.from_dict(ANIMAL_DOC)

        assert animal.brinco == "123"
        assert animal.breed is Breed.BRAFORD
        assert animal.sex is Sex.FEMALE
        assert animal.status is AnimalStatus.SOLD
        assert animal.birth_date == date(2025, 2, 10)
        assert animal.weight_kg == 312.5
        assert animal.lineage_mother_name == "Doadora"
        assert animal.offspring_records[0].birth_weight_kg == 30.0

    def test_malformed_weighings(self):
        """Verify bad dates become None and weightless entries are dropped."""
        animal = Animal.from_dict(ANIMAL_DOC)

        assert len(animal.weighings) == 2
        assert animal.weighings[0].type is WeighingType.BIRTH
        assert animal.weighings[1].date is None

    def test_unknown_values_fall_back(self):
        """Verify unknown enum strings use defaults."""
        animal = Animal.from_dict({"id": "x", "raca": "Angus", "sexo": "?", "status": "???"})

        assert animal.breed is Breed.OTHER
        assert animal.sex is None
        assert animal.status is AnimalStatus.ACTIVE


class TestParseDate:
    """Tests for parse_date."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2024-03-01", date(2024, 3, 1)),
            ("2024-03-01T10:00:00Z", date(2024, 3, 1)),
            (date(2024, 3, 1), date(2024, 3, 1)),
            ("", None),
            ("31/12/2024", None),
            (12345, None),
        ],
    )
    def test_values(self, value, expected):
        """Verify accepted and rejected date shapes."""
        assert parse_date(value) == expected


class TestLoadHerd:
    """Tests for load_herd and parse_herd."""

    def test_loads_export(self, tmp_path):
        """Verify animals and seasons are read from a JSON export."""
        path = tmp_path / "herd.json"
        path.write_text(
            json.dumps(
                {
                    "animals": [ANIMAL_DOC, {"brinco": "no-id"}],
                    "breedingSeasons": [
                        {
                            "id": "s1",
                            "status": "active",
                            "exposedCowIds": ["a1"],
                            "coverageRecords": [{"cowId": "a1", "pregnancyResult": "positive"}],
                        }
                    ],
                }
            ),
            encoding="utf-8",
        )

        herd = load_herd(path)

        assert [a.id for a in herd.animals] == ["a1"]
        season = herd.seasons[0]
        assert season.status is SeasonStatus.ACTIVE
        assert season.counts_for_metrics
        assert season.coverage_records[0].pregnancy_result is DiagnosisResult.POSITIVE

    def test_bare_list(self):
        """Verify a bare list is read as animals only."""
        herd = parse_herd([ANIMAL_DOC])
        assert len(herd.animals) == 1
        assert herd.seasons == ()

    def test_missing_file(self, tmp_path):
        """Verify a missing export raises a dedicated error."""
        with pytest.raises(HerdFileNotFoundError):
            load_herd(tmp_path / "missing.json")

    def test_default_path_from_cache_dir(self, tmp_path, monkeypatch):
        """Verify the cache directory is used when no path is configured."""
        monkeypatch.setattr(herd_module.settings, "herd_file", None)
        monkeypatch.setattr(herd_module, "get_cache_dir", lambda: tmp_path)
        (tmp_path / "herd.json").write_text("[]", encoding="utf-8")

        assert load_herd().animals == ()


class TestSummarizeHerd:
    """Tests for summarize_herd."""

    def test_counts_by_category(self, family):
        """Verify counts by status, sex and breed."""
        summary = summarize_herd(family)

        assert summary["total"] == 6
        assert summary["by_sex"] == {"Macho": 2, "Fêmea": 4}
        assert summary["by_status"] == {"Ativo": 6}
        assert summary["by_breed"] == {"Hereford": 6}
