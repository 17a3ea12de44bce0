"""Herd snapshot loading.

A herd export is a JSON document:

    {"animals": [...], "breedingSeasons": [...]}

A bare list is read as animals with no breeding seasons. The snapshot is
immutable; reload it (and rebuild any metrics service) after the source
data changes.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import NamedTuple

from rebanho.core import get_cache_dir, settings
from rebanho.data.models import Animal, BreedingSeason

logger = logging.getLogger(__name__)

# Default export file name inside the cache directory
DEFAULT_HERD_FILE = "herd.json"


class HerdFileNotFoundError(FileNotFoundError):
    """Raised when no herd export can be found."""

    pass


class Herd(NamedTuple):
    animals: tuple[Animal, ...]
    seasons: tuple[BreedingSeason, ...] = ()


def _parse_all(items: Iterable, parser, kind: str) -> tuple:
    parsed = []
    for item in items:
        if not isinstance(item, dict) or not item.get("id"):
            logger.warning("Skipping %s record without id", kind)
            continue
        parsed.append(parser(item))
    return tuple(parsed)


def parse_herd(data: dict | list) -> Herd:
    """Build a Herd from an already decoded export."""
    if isinstance(data, list):
        animals, seasons = data, []
    else:
        animals = data.get("animals") or []
        seasons = data.get("breedingSeasons") or []

    herd = Herd(
        animals=_parse_all(animals, Animal.from_dict, "animal"),
        seasons=_parse_all(seasons, BreedingSeason.from_dict, "breeding season"),
    )
    logger.debug("Parsed herd: %d animals, %d seasons", len(herd.animals), len(herd.seasons))
    return herd


def resolve_herd_path(path: Path | str | None = None) -> Path:
    """Pick the herd file: explicit path, then settings.herd_file, then the cache default."""
    if path is not None:
        return Path(path)
    if settings.herd_file is not None:
        return settings.herd_file
    return get_cache_dir() / DEFAULT_HERD_FILE


def load_herd(path: Path | str | None = None) -> Herd:
    """
    Load a herd export from disk.

    Args:
        path: Export file. Defaults to settings.herd_file, then .cache/herd.json

    Returns:
        Herd snapshot

    Raises:
        HerdFileNotFoundError: If the file does not exist
    """
    herd_path = resolve_herd_path(path)
    if not herd_path.exists():
        raise HerdFileNotFoundError(f"Herd file not found: {herd_path}")

    with open(herd_path, encoding="utf-8") as f:
        data = json.load(f)

    herd = parse_herd(data)
    logger.info("Loaded %d animals from %s", len(herd.animals), herd_path)
    return herd


def summarize_herd(animals: Iterable[Animal]) -> dict:
    """
    Generate summary statistics for a list of animals.

    Returns:
        Summary dict with total and counts by status, sex and breed
    """
    summary = {
        "total": 0,
        "by_status": {},
        "by_sex": {},
        "by_breed": {},
    }

    for animal in animals:
        sex = animal.sex.value if animal.sex else "unknown"
        summary["total"] += 1
        summary["by_status"][animal.status.value] = summary["by_status"].get(animal.status.value, 0) + 1
        summary["by_sex"][sex] = summary["by_sex"].get(sex, 0) + 1
        summary["by_breed"][animal.breed.value] = summary["by_breed"].get(animal.breed.value, 0) + 1

    return summary
