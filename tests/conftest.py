"""Shared test fixtures."""

import sys
from datetime import date
from pathlib import Path

import pytest
import respx

# Add src/ to path so tests can import rebanho
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from rebanho.data.models import (  # noqa: E402
    Animal,
    AnimalStatus,
    Breed,
    Sex,
    WeighingType,
    WeightEntry,
)

TODAY = date(2026, 6, 1)


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_animal():
    """Factory for Animal records with sensible defaults."""

    def _make(id: str, brinco: str | None = None, **kwargs) -> Animal:
        kwargs.setdefault("breed", Breed.HEREFORD)
        kwargs.setdefault("status", AnimalStatus.ACTIVE)
        return Animal(id=id, brinco=brinco if brinco is not None else id.upper(), **kwargs)

    return _make


@pytest.fixture
def weighings():
    """Factory for weighing histories: weighings((date, kg[, type]), ...)."""

    def _make(*entries) -> tuple[WeightEntry, ...]:
        result = []
        for entry in entries:
            when, kg, *rest = entry
            result.append(WeightEntry(date=when, weight_kg=kg, type=rest[0] if rest else WeighingType.NONE))
        return tuple(result)

    return _make


@pytest.fixture
def family(make_animal):
    """
    Three-generation family with an FIV calf.

        Touro x Mimosa -> Estrela (F) -> Lua (FIV, donor Estrela, receptor Receptora)
                       -> Bravo (M)
    """
    return (
        make_animal("touro", "T001", name="Touro", sex=Sex.MALE),
        make_animal("mimosa", "ABC001", name="Mimosa", sex=Sex.FEMALE),
        make_animal(
            "estrela",
            "E001",
            name="Estrela",
            sex=Sex.FEMALE,
            father_name="Touro",
            mother_id="mimosa",
            birth_date=date(2022, 3, 1),
        ),
        make_animal(
            "bravo",
            "B001",
            name="Bravo",
            sex=Sex.MALE,
            father_id="touro",
            mother_name="abc001",
            birth_date=date(2023, 4, 1),
        ),
        make_animal("receptora", "R001", name="Receptora", sex=Sex.FEMALE),
        make_animal(
            "lua",
            "L001",
            name="Lua",
            sex=Sex.FEMALE,
            is_fiv=True,
            mother_name="Receptora",
            biological_mother_name="Estrela",
            receptor_mother_name="Receptora",
            father_name="Touro Externo",
            birth_date=date(2025, 2, 1),
        ),
    )


@pytest.fixture
def mock_gemini():
    """Mock generative AI API responses."""
    with respx.mock(base_url="https://generativelanguage.googleapis.com") as mock:
        yield mock


@pytest.fixture
def gemini_key(monkeypatch):
    """Configure an API key for client tests."""
    from rebanho.core import client

    monkeypatch.setattr(client.settings, "gemini_api_key", "test-key")
    return "test-key"
