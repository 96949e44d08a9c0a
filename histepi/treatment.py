"""Medicine application.

A medicine acts on a disease through its effectiveness for the disease's
category (e ∈ [0, 1]):

    severity       -= 0.5 · e                 (floor 0.1)
    days_remaining -= floor(duration · e · 0.3)   (floor 1)

then its side effects hit the patient's stats, each stat floored at 1.
A medicine with e = 0 fails and changes nothing.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from histepi.catalog import DiseaseCatalog
from histepi.config import EngineConfig, resolve_config
from histepi.types import health_of

logger = logging.getLogger(__name__)


@dataclass
class TreatmentResult:
    success: bool = False
    message: str = ''
    new_severity: Optional[float] = None


def treat(
    entity: Any,
    catalog: DiseaseCatalog,
    disease_id: str,
    medicine_id: str,
    cfg: Optional[EngineConfig] = None,
) -> TreatmentResult:
    """Apply one dose of a medicine to one of a character's diseases.

    Returns:
        TreatmentResult; on failure nothing about the character changes.
    """
    t = resolve_config(cfg).treatment
    health = health_of(entity)
    if health is None or not health.current_diseases:
        return TreatmentResult(message='No diseases to treat')

    active = health.find_disease(disease_id)
    if active is None:
        return TreatmentResult(message='Disease not found')

    medicine = catalog.get_medicine(medicine_id)
    if medicine is None:
        return TreatmentResult(message='Medicine not found')

    disease = active.disease
    effectiveness = medicine.effectiveness_against(disease.category)
    if effectiveness <= 0:
        return TreatmentResult(
            message=f"{medicine.name} is not effective against "
                    f"{disease.category.value} diseases")

    active.severity = max(t.severity_floor,
                          active.severity - effectiveness * t.severity_reduction_scale)
    reduction = math.floor(disease.duration_days * effectiveness * t.duration_reduction_scale)
    active.days_remaining = max(t.min_days_remaining, active.days_remaining - reduction)

    stats = getattr(entity, 'stats', None)
    if stats is not None and not medicine.side_effects.is_zero:
        stats.apply(medicine.side_effects, floor=t.side_effect_floor)

    logger.debug("Treated %s of %s with %s: severity %.2f",
                 disease.id, getattr(entity, 'id', '?'), medicine.id, active.severity)
    return TreatmentResult(
        success=True,
        message=f"Applied {medicine.name}. {disease.name} severity reduced.",
        new_severity=active.severity,
    )
