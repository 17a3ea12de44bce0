"""Data module - herd records and snapshot loading."""

from rebanho.data.herd import (
    DEFAULT_HERD_FILE,
    Herd,
    HerdFileNotFoundError,
    load_herd,
    parse_herd,
    summarize_herd,
)
from rebanho.data.models import (
    Animal,
    AnimalStatus,
    Breed,
    BreedingSeason,
    CoverageRecord,
    DiagnosisResult,
    OffspringRecord,
    PregnancyRecord,
    SeasonStatus,
    Sex,
    WeighingType,
    WeightEntry,
    normalize_key,
    parse_date,
)

__all__ = [
    "Animal",
    "AnimalStatus",
    "Breed",
    "BreedingSeason",
    "CoverageRecord",
    "DiagnosisResult",
    "OffspringRecord",
    "PregnancyRecord",
    "SeasonStatus",
    "Sex",
    "WeighingType",
    "WeightEntry",
    "normalize_key",
    "parse_date",
    "DEFAULT_HERD_FILE",
    "Herd",
    "HerdFileNotFoundError",
    "load_herd",
    "parse_herd",
    "summarize_herd",
]
