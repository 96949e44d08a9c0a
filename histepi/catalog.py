"""Disease/medicine catalog: parsing, loading and the injected provider.

The catalog is a data asset (YAML) with four top-level keys:
  - exchange:   Columbian Exchange restriction sets
  - diseases:   DiseaseDefinition records, in presentation order
  - prevalence: PrevalenceRecord records
  - medicines:  MedicineDefinition records

Parsing is strict: malformed data raises CatalogError. The CatalogProvider
wraps loading behind an observable state so callers can degrade gracefully
while the catalog is unavailable:

    UNLOADED → LOADING → READY
                       ↘ FAILED → (retry) LOADING → ...

Concurrent awaiters of ensure_loaded() share one in-flight load.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import yaml

from histepi.types import (
    CATALOG_ERAS,
    DiseaseCategory,
    DiseaseDefinition,
    ExchangeRestriction,
    MedicineDefinition,
    NarrativeHints,
    PrevalenceRecord,
    ProgressionStage,
    Region,
    SeverityTier,
    StatDeltas,
    Symptom,
    TransmissionVector,
)
from histepi.utils import file_sha256

logger = logging.getLogger(__name__)

BUNDLED_CATALOG = Path(__file__).parent / 'data' / 'catalog.yaml'


class CatalogError(ValueError):
    """Malformed catalog data."""


class CatalogNotReadyError(RuntimeError):
    """The catalog was required before it finished loading."""


# ═══════════════════════════════════════════════════════════════════════
# CATALOG
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class DiseaseCatalog:
    """Loaded catalog with id indexes. Treat as read-only."""
    diseases: Tuple[DiseaseDefinition, ...] = ()
    prevalence: Tuple[PrevalenceRecord, ...] = ()
    medicines: Tuple[MedicineDefinition, ...] = ()
    exchange: ExchangeRestriction = field(default_factory=ExchangeRestriction)
    source_sha256: Optional[str] = None   # set when loaded from a file

    def __post_init__(self):
        self._disease_index = {d.id: d for d in self.diseases}
        self._medicine_index = {m.id: m for m in self.medicines}
        self._prevalence_index = {
            (p.disease_id, p.era, p.region): p for p in self.prevalence
        }

    def get_disease(self, disease_id: str) -> Optional[DiseaseDefinition]:
        return self._disease_index.get(disease_id)

    def get_medicine(self, medicine_id: str) -> Optional[MedicineDefinition]:
        return self._medicine_index.get(medicine_id)

    def prevalence_for(
        self, disease_id: str, era: str, region: str,
    ) -> Optional[PrevalenceRecord]:
        """Prevalence record for the exact (disease, catalog era, region) triple."""
        return self._prevalence_index.get((disease_id, era, region))

    def __len__(self) -> int:
        return len(self.diseases)


# ═══════════════════════════════════════════════════════════════════════
# PARSING
# ═══════════════════════════════════════════════════════════════════════

_REGIONS = frozenset(r.value for r in Region)


def _require(record: Dict, key: str, where: str) -> Any:
    if key not in record:
        raise CatalogError(f"{where}: missing required field '{key}'")
    return record[key]


def _enum(enum_cls, value: Any, where: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = [m.value for m in enum_cls]
        raise CatalogError(f"{where}: '{value}' is not one of {valid}") from None


def _probability(value: Any, where: str) -> float:
    value = float(value)
    if not 0.0 <= value <= 1.0:
        raise CatalogError(f"{where}: must be in [0, 1], got {value}")
    return value


def _eras(values: Iterable[str], where: str) -> frozenset:
    eras = frozenset(values)
    unknown = eras - set(CATALOG_ERAS)
    if unknown:
        raise CatalogError(f"{where}: unknown era(s) {sorted(unknown)}")
    return eras


def _regions(values: Iterable[str], where: str) -> frozenset:
    regions = frozenset(values)
    unknown = regions - _REGIONS
    if unknown:
        raise CatalogError(f"{where}: unknown region(s) {sorted(unknown)}")
    return regions


def _stats(data: Optional[Dict], where: str) -> StatDeltas:
    try:
        return StatDeltas.from_mapping(data)
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{where}: {exc}") from None


def parse_disease(record: Dict) -> DiseaseDefinition:
    """Parse one disease record. Raises CatalogError on malformed data."""
    disease_id = record.get('id', '<missing id>')
    where = f"disease {disease_id}"
    _require(record, 'id', where)

    incubation = int(_require(record, 'incubation_days', where))
    duration = int(_require(record, 'duration_days', where))
    if incubation < 0 or duration < 1:
        raise CatalogError(
            f"{where}: need incubation_days >= 0 and duration_days >= 1, "
            f"got {incubation}/{duration}"
        )
    if incubation > duration:
        raise CatalogError(
            f"{where}: incubation_days ({incubation}) exceeds duration_days ({duration})"
        )

    start_year = record.get('start_year')
    end_year = record.get('end_year')
    if start_year is not None and end_year is not None and start_year > end_year:
        raise CatalogError(f"{where}: start_year {start_year} after end_year {end_year}")

    symptoms = tuple(
        Symptom(
            id=str(_require(s, 'id', where)),
            name=str(s.get('name', s['id'])),
            description=str(s.get('description', '')),
            severity=_probability(s.get('severity', 0.0), f"{where} symptom {s['id']}"),
        )
        for s in record.get('symptoms') or ()
    )

    stages = []
    for i, s in enumerate(record.get('progression_stages') or ()):
        stage_where = f"{where} progression_stages[{i}]"
        stages.append(ProgressionStage(
            day=float(_require(s, 'day', stage_where)),
            symptoms=tuple(s.get('symptoms') or ()),
            severity=_probability(s.get('severity', 0.0), stage_where),
            stat_modifiers=_stats(s.get('stat_modifiers'), stage_where),
        ))
    days = [s.day for s in stages]
    if days != sorted(days):
        raise CatalogError(f"{where}: progression_stages must be ordered by day")

    hints = record.get('narrative_hints') or {}

    return DiseaseDefinition(
        id=str(disease_id),
        name=str(_require(record, 'name', where)),
        category=_enum(DiseaseCategory, _require(record, 'category', where), where),
        severity_tier=_enum(SeverityTier, _require(record, 'severity_tier', where), where),
        available_eras=_eras(_require(record, 'available_eras', where), where),
        available_regions=_regions(_require(record, 'available_regions', where), where),
        transmission_vector=_enum(
            TransmissionVector, _require(record, 'transmission_vector', where), where),
        incubation_days=incubation,
        duration_days=duration,
        start_year=start_year,
        end_year=end_year,
        base_transmission_rate=_probability(
            record.get('base_transmission_rate', 0.0), f"{where} base_transmission_rate"),
        proximity_multiplier=float(record.get('proximity_multiplier', 1.0)),
        direct_contact_multiplier=float(record.get('direct_contact_multiplier', 1.0)),
        symptoms=symptoms,
        mortality_rate=_probability(record.get('mortality_rate', 0.0), f"{where} mortality_rate"),
        stat_effects=_stats(record.get('stat_effects'), where),
        recovery_chance=_probability(
            record.get('recovery_chance', 0.5), f"{where} recovery_chance"),
        grants_immunity=bool(record.get('grants_immunity', False)),
        immunity_duration_days=int(record.get('immunity_duration_days', 0)),
        progression_stages=tuple(stages),
        narrative_hints=NarrativeHints(
            npc=tuple(hints.get('npc') or ()),
            animal=tuple(hints.get('animal') or ()),
            player=tuple(hints.get('player') or ()),
        ),
        badge_icon=str(record.get('badge_icon', '')),
        outline_color=str(record.get('outline_color', '')),
        is_animal_disease=bool(record.get('is_animal_disease', False)),
    )


def parse_medicine(record: Dict) -> MedicineDefinition:
    """Parse one medicine record.

    Categories absent from `effectiveness` get an explicit 0.0; an unknown
    category name raises CatalogError.
    """
    medicine_id = record.get('id', '<missing id>')
    where = f"medicine {medicine_id}"
    _require(record, 'id', where)

    raw = record.get('effectiveness') or {}
    effectiveness = {category: 0.0 for category in DiseaseCategory}
    for key, value in raw.items():
        category = _enum(DiseaseCategory, key, f"{where} effectiveness")
        effectiveness[category] = _probability(value, f"{where} effectiveness.{key}")

    return MedicineDefinition(
        id=str(medicine_id),
        name=str(_require(record, 'name', where)),
        available_eras=_eras(_require(record, 'available_eras', where), where),
        available_regions=_regions(_require(record, 'available_regions', where), where),
        effectiveness=effectiveness,
        side_effects=_stats(record.get('side_effects'), where),
        cost=int(record.get('cost', 0)),
        description=str(record.get('description', '')),
    )


def parse_prevalence(record: Dict) -> PrevalenceRecord:
    where = f"prevalence {record.get('disease_id')}/{record.get('era')}/{record.get('region')}"
    era = _require(record, 'era', where)
    if era not in CATALOG_ERAS:
        raise CatalogError(f"{where}: unknown era '{era}'")
    region = _require(record, 'region', where)
    if region not in _REGIONS:
        raise CatalogError(f"{where}: unknown region '{region}'")
    return PrevalenceRecord(
        disease_id=str(_require(record, 'disease_id', where)),
        era=era,
        region=region,
        base_incidence=_probability(record.get('base_incidence', 0.0), where),
        epidemic_years=frozenset(int(y) for y in record.get('epidemic_years') or ()),
        endemic_regions=_regions(record.get('endemic_regions') or (), where),
    )


def parse_exchange(record: Optional[Dict]) -> ExchangeRestriction:
    record = record or {}
    try:
        return ExchangeRestriction(
            pre_contact_new_world=frozenset(record.get('pre_contact_new_world') or ()),
            pre_contact_old_world=frozenset(record.get('pre_contact_old_world') or ()),
            exchange_year=int(record.get('exchange_year', 1492)),
        )
    except (TypeError, AttributeError, ValueError) as exc:
        raise CatalogError(f"exchange: {exc}") from None


def _unique(records: List, kind: str) -> None:
    seen = set()
    for r in records:
        if r.id in seen:
            raise CatalogError(f"duplicate {kind} id '{r.id}'")
        seen.add(r.id)


def _parse_all(parser: Callable[[Dict], Any], records: Iterable, kind: str) -> List:
    """Parse every record, reporting structural errors as CatalogError."""
    parsed = []
    for index, record in enumerate(records or ()):
        if not isinstance(record, dict):
            raise CatalogError(f"{kind} #{index} must be a mapping, got {type(record).__name__}")
        try:
            parsed.append(parser(record))
        except CatalogError:
            raise
        except (TypeError, KeyError, AttributeError, ValueError) as exc:
            where = record.get('id') or record.get('disease_id') or f"#{index}"
            raise CatalogError(f"{kind} {where}: malformed record: {exc}") from exc
    return parsed


def parse_catalog(data: Dict) -> DiseaseCatalog:
    """Build a DiseaseCatalog from a parsed YAML mapping.

    Raises:
        CatalogError: On any malformed or inconsistent record.
    """
    if not isinstance(data, dict):
        raise CatalogError(f"catalog root must be a mapping, got {type(data).__name__}")

    diseases = _parse_all(parse_disease, data.get('diseases'), 'disease')
    medicines = _parse_all(parse_medicine, data.get('medicines'), 'medicine')
    prevalence = _parse_all(parse_prevalence, data.get('prevalence'), 'prevalence')
    _unique(diseases, 'disease')
    _unique(medicines, 'medicine')

    exchange = parse_exchange(data.get('exchange'))

    known = {d.id for d in diseases}
    for p in prevalence:
        if p.disease_id not in known:
            raise CatalogError(f"prevalence references unknown disease '{p.disease_id}'")

    return DiseaseCatalog(
        diseases=tuple(diseases),
        prevalence=tuple(prevalence),
        medicines=tuple(medicines),
        exchange=exchange,
    )


def load_catalog(path: Optional[Union[str, Path]] = None) -> DiseaseCatalog:
    """Read and parse a catalog YAML file (the bundled catalog by default).

    Raises:
        FileNotFoundError: If the file doesn't exist.
        CatalogError: If the data is malformed.
    """
    path = Path(path) if path is not None else BUNDLED_CATALOG
    if not path.exists():
        raise FileNotFoundError(f"Catalog file not found: {path}")
    with open(path, encoding='utf-8') as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise CatalogError(f"{path}: invalid YAML: {exc}") from exc
    catalog = parse_catalog(data or {})
    catalog.source_sha256 = file_sha256(path)
    return catalog


# ═══════════════════════════════════════════════════════════════════════
# PROVIDER
# ═══════════════════════════════════════════════════════════════════════

class CatalogState(str, Enum):
    UNLOADED = 'unloaded'
    LOADING  = 'loading'
    READY    = 'ready'
    FAILED   = 'failed'


class CatalogProvider:
    """Owns the catalog and its readiness.

    Args:
        path: Catalog YAML path; None for the bundled catalog.
        loader: Optional zero-argument callable returning a DiseaseCatalog,
            used instead of reading `path`.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        loader: Optional[Callable[[], DiseaseCatalog]] = None,
    ):
        self.path = Path(path) if path is not None else BUNDLED_CATALOG
        self._loader = loader if loader is not None else (lambda: load_catalog(self.path))
        self._catalog: Optional[DiseaseCatalog] = None
        self._task: Optional[asyncio.Task] = None
        self.state = CatalogState.UNLOADED
        self.last_error: Optional[BaseException] = None

    @classmethod
    def from_catalog(cls, catalog: DiseaseCatalog) -> 'CatalogProvider':
        """Provider that is READY immediately with an in-memory catalog."""
        provider = cls(loader=lambda: catalog)
        provider._set_ready(catalog)
        return provider

    @property
    def is_ready(self) -> bool:
        return self.state is CatalogState.READY

    @property
    def catalog(self) -> Optional[DiseaseCatalog]:
        return self._catalog

    def require(self) -> DiseaseCatalog:
        if self._catalog is None:
            raise CatalogNotReadyError(
                f"Disease catalog not ready (state={self.state.value})"
            )
        return self._catalog

    def _set_ready(self, catalog: DiseaseCatalog) -> None:
        self._catalog = catalog
        self.state = CatalogState.READY
        self.last_error = None

    def _set_loaded(self, catalog: DiseaseCatalog) -> None:
        self._set_ready(catalog)
        logger.info("Loaded disease catalog: %d diseases, %d medicines (sha256 %s)",
                    len(catalog.diseases), len(catalog.medicines),
                    (catalog.source_sha256 or "in-memory")[:12])

    def _set_failed(self, exc: BaseException) -> None:
        self.state = CatalogState.FAILED
        self.last_error = exc
        logger.error("Failed to load disease catalog from %s: %s", self.path, exc)

    def load(self) -> Optional[DiseaseCatalog]:
        """Synchronous load. Returns None (state FAILED) on failure."""
        if self._catalog is not None:
            return self._catalog
        self.state = CatalogState.LOADING
        try:
            catalog = self._loader()
        except Exception as exc:  # any loader failure leaves a retryable FAILED state
            self._set_failed(exc)
            return None
        self._set_loaded(catalog)
        return catalog

    async def _load_async(self) -> Optional[DiseaseCatalog]:
        self.state = CatalogState.LOADING
        try:
            catalog = await asyncio.to_thread(self._loader)
        except Exception as exc:  # any loader failure leaves a retryable FAILED state
            self._set_failed(exc)
            return None
        finally:
            self._task = None
        self._set_loaded(catalog)
        return catalog

    async def ensure_loaded(self) -> Optional[DiseaseCatalog]:
        """Load the catalog once; concurrent callers await the same load.

        Returns:
            The catalog, or None when loading failed. A later call retries.
        """
        if self._catalog is not None:
            return self._catalog
        if self._task is None:
            self._task = asyncio.ensure_future(self._load_async())
        return await self._task
