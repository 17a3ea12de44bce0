"""Tests for the command-line interface."""

import json
import sys

import pytest

from rebanho import cli

HERD = {
    "animals": [
        {"id": "touro", "brinco": "T1", "nome": "Touro", "sexo": "Macho"},
        {"id": "mimosa", "brinco": "ABC001", "nome": "Mimosa", "sexo": "Fêmea"},
        {
            "id": "c1",
            "brinco": "C1",
            "sexo": "Macho",
            "paiId": "touro",
            "maeNome": "Mimosa",
            "dataNascimento": "2025-02-01",
            "pesoKg": 380,
            "historicoPesagens": [
                {"date": "2025-02-01", "weightKg": 35, "type": "Nascimento"},
                {"date": "2025-09-01", "weightKg": 210, "type": "Desmame"},
            ],
        },
    ]
}


@pytest.fixture
def herd_file(tmp_path):
    path = tmp_path / "herd.json"
    path.write_text(json.dumps(HERD), encoding="utf-8")
    return path


async def run(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["rebanho", *argv])
    await cli.cli_main()


class TestCommands:
    """Tests for CLI commands against a herd file."""

    async def test_lineage(self, monkeypatch, capsys, herd_file):
        """Verify the ancestor tree is printed."""
        await run(monkeypatch, "--herd", str(herd_file), "lineage", "c1")

        out = capsys.readouterr().out
        assert "├─ Sire:" in out
        assert "ABC001 Mimosa" in out

    async def test_offspring_json(self, monkeypatch, capsys, herd_file):
        """Verify offspring JSON output."""
        await run(monkeypatch, "--herd", str(herd_file), "offspring", "mimosa", "--json")

        data = json.loads(capsys.readouterr().out)
        assert data["stats"]["total"] == 1
        assert data["groups"][0]["animals"] == ["c1"]

    async def test_slaughter_insufficient(self, monkeypatch, capsys, herd_file):
        """Verify a target below the current weight reports insufficient data."""
        await run(monkeypatch, "--herd", str(herd_file), "slaughter", "C1", "--arrobas", "18")

        assert "Insufficient data" in capsys.readouterr().out

    async def test_kpis_json(self, monkeypatch, capsys, herd_file):
        """Verify KPIs serialize to JSON."""
        await run(monkeypatch, "--herd", str(herd_file), "kpis", "--json")

        data = json.loads(capsys.readouterr().out)
        assert data["details"]["total_animals"] == 3

    async def test_unknown_animal(self, monkeypatch, capsys, herd_file):
        """Verify an unknown animal is reported, not raised."""
        await run(monkeypatch, "--herd", str(herd_file), "gmd", "nobody")

        assert "No animal matches" in capsys.readouterr().out

    async def test_missing_herd_file(self, monkeypatch, capsys, tmp_path):
        """Verify a missing herd file is reported."""
        await run(monkeypatch, "--herd", str(tmp_path / "none.json"), "summary")

        assert "Herd file not found" in capsys.readouterr().out

    async def test_predict_invalid_date(self, monkeypatch, capsys, herd_file):
        """Verify a malformed --date is reported instead of raised."""
        await run(monkeypatch, "--herd", str(herd_file), "predict", "c1", "--date", "01/12/2026")

        assert "Error: Invalid date '01/12/2026'" in capsys.readouterr().out

    async def test_slaughter_reports_date(self, monkeypatch, capsys, herd_file):
        """Verify a reachable target prints the predicted date."""
        await run(monkeypatch, "--herd", str(herd_file), "slaughter", "C1", "--arrobas", "30")

        out = capsys.readouterr().out
        assert "Date:" in out
        assert "days)" in out
