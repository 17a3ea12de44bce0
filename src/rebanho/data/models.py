"""Herd record model.

Records are immutable snapshots of the stored documents. Enum values keep
the stored Portuguese strings so exported herds round-trip unchanged.

Lineage fields:
    father_name / father_id      Sire reference (free text and/or record id)
    mother_name / mother_id      Dam reference. For FIV animals this may hold
                                 either the donor or the receptor, depending on
                                 when the record was last edited.
    biological_mother_*          FIV donor (genetic mother)
    receptor_mother_*            FIV surrogate (gestational mother), display only
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class Breed(Enum):
    HEREFORD = "Hereford"
    BRAFORD = "Braford"
    HEREFORD_PO = "Hereford PO"
    OTHER = "Outros"


class Sex(Enum):
    MALE = "Macho"
    FEMALE = "Fêmea"


class AnimalStatus(Enum):
    ACTIVE = "Ativo"
    SOLD = "Vendido"
    DECEASED = "Óbito"


class WeighingType(Enum):
    NONE = "Nenhum"
    BIRTH = "Nascimento"
    WEANING = "Desmame"
    YEARLING = "Sobreano"
    TURN = "Peso de Virada"


class PregnancyType(Enum):
    EMBRYO_TRANSFER = "Transferência de Embrião"
    ARTIFICIAL_INSEMINATION = "Inseminação Artificial"
    NATURAL = "Monta Natural"


class SeasonStatus(Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class DiagnosisResult(Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    PENDING = "pending"


# Stored value of a confirmed calving on a coverage record
CALVING_DONE = "realizado"


# =============================================================================
# Parsing Helpers
# =============================================================================


def normalize_key(value: str | None) -> str | None:
    """Case-fold and trim a name or tag for comparison. Empty becomes None."""
    if value is None:
        return None
    key = str(value).strip().lower()
    return key or None


def parse_date(value) -> date | None:
    """
    Parse a stored date leniently.

    Accepts date/datetime objects, ISO strings ("2024-03-01",
    "2024-03-01T10:00:00Z") and Firestore-style {"seconds": ...} dicts.
    Anything else yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, dict) and "seconds" in value:
        try:
            return datetime.fromtimestamp(float(value["seconds"])).date()
        except (TypeError, ValueError, OverflowError, OSError):
            logger.debug("Unparseable timestamp: %r", value)
            return None
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            logger.debug("Unparseable date: %r", value)
            return None
    logger.debug("Unsupported date value: %r", value)
    return None


def _parse_float(value) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Unparseable number: %r", value)
        return None


def _parse_enum(enum_cls, value, default):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        if value is not None:
            logger.debug("Unknown %s value %r, using %s", enum_cls.__name__, value, default)
        return default


def _text(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# =============================================================================
# Histories
# =============================================================================


@dataclass(frozen=True)
class WeightEntry:
    date: date | None
    weight_kg: float
    type: WeighingType = WeighingType.NONE
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "WeightEntry | None":
        weight = _parse_float(data.get("weightKg"))
        if weight is None:
            return None
        return cls(
            date=parse_date(data.get("date")),
            weight_kg=weight,
            type=_parse_enum(WeighingType, data.get("type"), WeighingType.NONE),
            id=_text(data.get("id")),
        )


@dataclass(frozen=True)
class MedicationRecord:
    medication: str
    date: date | None
    dose: float | None = None
    unit: str | None = None
    reason: str | None = None
    responsible: str | None = None
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "MedicationRecord":
        return cls(
            medication=_text(data.get("medicamento")) or "",
            date=parse_date(data.get("dataAplicacao")),
            dose=_parse_float(data.get("dose")),
            unit=_text(data.get("unidade")),
            reason=_text(data.get("motivo")),
            responsible=_text(data.get("responsavel")),
            id=_text(data.get("id")),
        )


@dataclass(frozen=True)
class PregnancyRecord:
    date: date | None
    type: PregnancyType | None = None
    sire_name: str | None = None
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "PregnancyRecord":
        return cls(
            date=parse_date(data.get("date")),
            type=_parse_enum(PregnancyType, data.get("type"), None),
            sire_name=_text(data.get("sireName")),
            id=_text(data.get("id")),
        )


@dataclass(frozen=True)
class AbortionRecord:
    date: date | None
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "AbortionRecord":
        return cls(date=parse_date(data.get("date")), id=_text(data.get("id")))


@dataclass(frozen=True)
class OffspringRecord:
    """Manually entered calf record kept on the dam/sire."""

    offspring_brinco: str
    birth_weight_kg: float | None = None
    weaning_weight_kg: float | None = None
    yearling_weight_kg: float | None = None
    id: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "OffspringRecord":
        return cls(
            offspring_brinco=_text(data.get("offspringBrinco")) or "",
            birth_weight_kg=_parse_float(data.get("birthWeightKg")),
            weaning_weight_kg=_parse_float(data.get("weaningWeightKg")),
            yearling_weight_kg=_parse_float(data.get("yearlingWeightKg")),
            id=_text(data.get("id")),
        )


def _records(items, parser) -> tuple:
    parsed = (parser(item) for item in (items or []) if isinstance(item, dict))
    return tuple(p for p in parsed if p is not None)


# =============================================================================
# Animal
# =============================================================================


@dataclass(frozen=True)
class Animal:
    id: str
    brinco: str
    name: str | None = None
    breed: Breed = Breed.OTHER
    sex: Sex | None = None
    birth_date: date | None = None
    weight_kg: float | None = None
    status: AnimalStatus = AnimalStatus.ACTIVE

    father_name: str | None = None
    father_id: str | None = None
    mother_name: str | None = None
    mother_id: str | None = None

    is_fiv: bool = False
    biological_mother_name: str | None = None
    biological_mother_id: str | None = None
    receptor_mother_name: str | None = None
    receptor_mother_id: str | None = None

    weighings: tuple[WeightEntry, ...] = ()
    medications: tuple[MedicationRecord, ...] = ()
    pregnancies: tuple[PregnancyRecord, ...] = ()
    abortions: tuple[AbortionRecord, ...] = ()
    offspring_records: tuple[OffspringRecord, ...] = ()

    @property
    def display_name(self) -> str:
        return self.name or self.brinco or self.id

    @property
    def lineage_mother_name(self) -> str | None:
        """Genetic mother's name: the FIV donor when there is one."""
        if self.is_fiv and self.biological_mother_name:
            return self.biological_mother_name
        return self.mother_name

    @property
    def lineage_mother_id(self) -> str | None:
        """Genetic mother's id: the FIV donor when there is one."""
        if self.is_fiv and self.biological_mother_id:
            return self.biological_mother_id
        return self.mother_id

    @property
    def keys(self) -> tuple[str, ...]:
        """Normalized brinco and name, the strings other records may use to refer to this animal."""
        return tuple(k for k in (normalize_key(self.brinco), normalize_key(self.name)) if k)

    def first_weight_of(self, weighing_type: WeighingType) -> float | None:
        """Weight of the first stored weighing of a given type."""
        for entry in self.weighings:
            if entry.type is weighing_type:
                return entry.weight_kg
        return None

    @classmethod
    def from_dict(cls, data: dict) -> "Animal":
        """
        Build an Animal from a stored document.

        Converts:
            { id, brinco, nome, raca, sexo, dataNascimento, pesoKg, paiNome, maeId,
              isFIV, maeBiologicaNome, historicoPesagens: [...], ... }
        """
        return cls(
            id=str(data["id"]),
            brinco=_text(data.get("brinco")) or "",
            name=_text(data.get("nome")),
            breed=_parse_enum(Breed, data.get("raca"), Breed.OTHER),
            sex=_parse_enum(Sex, data.get("sexo"), None),
            birth_date=parse_date(data.get("dataNascimento")),
            weight_kg=_parse_float(data.get("pesoKg")),
            status=_parse_enum(AnimalStatus, data.get("status"), AnimalStatus.ACTIVE),
            father_name=_text(data.get("paiNome")),
            father_id=_text(data.get("paiId")),
            mother_name=_text(data.get("maeNome")),
            mother_id=_text(data.get("maeId")),
            is_fiv=bool(data.get("isFIV")),
            biological_mother_name=_text(data.get("maeBiologicaNome")),
            biological_mother_id=_text(data.get("maeBiologicaId")),
            receptor_mother_name=_text(data.get("maeReceptoraNome")),
            receptor_mother_id=_text(data.get("maeReceptoraId")),
            weighings=_records(data.get("historicoPesagens"), WeightEntry.from_dict),
            medications=_records(data.get("historicoSanitario"), MedicationRecord.from_dict),
            pregnancies=_records(data.get("historicoPrenhez"), PregnancyRecord.from_dict),
            abortions=_records(data.get("historicoAborto"), AbortionRecord.from_dict),
            offspring_records=_records(data.get("historicoProgenie"), OffspringRecord.from_dict),
        )


# =============================================================================
# Breeding Seasons
# =============================================================================


@dataclass(frozen=True)
class RepasseRecord:
    """Second service after a negative first diagnosis."""

    enabled: bool = False
    diagnosis_result: DiagnosisResult | None = None
    calving_result: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "RepasseRecord":
        return cls(
            enabled=bool(data.get("enabled")),
            diagnosis_result=_parse_enum(DiagnosisResult, data.get("diagnosisResult"), None),
            calving_result=_text(data.get("calvingResult")),
        )


@dataclass(frozen=True)
class CoverageRecord:
    cow_id: str
    cow_brinco: str | None = None
    service_date: date | None = None
    pregnancy_result: DiagnosisResult | None = None
    expected_calving_date: date | None = None
    calving_result: str | None = None
    repasse: RepasseRecord | None = None
    id: str | None = None

    @property
    def is_pregnant(self) -> bool:
        """Pregnant from the first service, or from repasse when the first was not."""
        if self.pregnancy_result is DiagnosisResult.POSITIVE:
            return True
        return self.repasse is not None and self.repasse.diagnosis_result is DiagnosisResult.POSITIVE

    @property
    def calved(self) -> bool:
        if self.pregnancy_result is DiagnosisResult.POSITIVE:
            return self.calving_result == CALVING_DONE
        if self.repasse is not None and self.repasse.diagnosis_result is DiagnosisResult.POSITIVE:
            return self.repasse.calving_result == CALVING_DONE
        return False

    @classmethod
    def from_dict(cls, data: dict) -> "CoverageRecord":
        repasse = data.get("repasse")
        return cls(
            cow_id=str(data.get("cowId") or ""),
            cow_brinco=_text(data.get("cowBrinco")),
            service_date=parse_date(data.get("date")),
            pregnancy_result=_parse_enum(DiagnosisResult, data.get("pregnancyResult"), None),
            expected_calving_date=parse_date(data.get("expectedCalvingDate")),
            calving_result=_text(data.get("calvingResult")),
            repasse=RepasseRecord.from_dict(repasse) if isinstance(repasse, dict) else None,
            id=_text(data.get("id")),
        )


@dataclass(frozen=True)
class BreedingSeason:
    id: str
    name: str | None = None
    status: SeasonStatus = SeasonStatus.PLANNING
    start_date: date | None = None
    end_date: date | None = None
    exposed_cow_ids: tuple[str, ...] = ()
    coverage_records: tuple[CoverageRecord, ...] = ()

    @property
    def counts_for_metrics(self) -> bool:
        """Only running or finished seasons feed pregnancy and birth rates."""
        return self.status in (SeasonStatus.ACTIVE, SeasonStatus.FINISHED)

    @classmethod
    def from_dict(cls, data: dict) -> "BreedingSeason":
        return cls(
            id=str(data["id"]),
            name=_text(data.get("name")),
            status=_parse_enum(SeasonStatus, data.get("status"), SeasonStatus.PLANNING),
            start_date=parse_date(data.get("startDate")),
            end_date=parse_date(data.get("endDate")),
            exposed_cow_ids=tuple(str(c) for c in data.get("exposedCowIds") or []),
            coverage_records=_records(data.get("coverageRecords"), CoverageRecord.from_dict),
        )
