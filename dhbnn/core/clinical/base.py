"""
Clinical Decision Layer - Base Types

Defines the data contracts consumed and produced by the DHBNN decision
engine: the clinical part of the patient record, the two triage
checklists and the treatment recommendation.

Every reader coalesces absent values: a missing boolean is False and a
missing number is None (the rule depending on it is skipped).
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class WaterType(str, Enum):
    """Water involved in an aquatic inoculation."""
    FRESH = "douce"
    SALT  = "mer"

    @classmethod
    def parse(cls, value: Any) -> Optional["WaterType"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class TreatmentSetting(str, Enum):
    AMBULATORY = "ambulatory"
    HOSPITAL   = "hospital"


def _flags_from_dict(cls, data: Optional[Dict[str, Any]]):
    """Build a dataclass made only of booleans, coalescing absent keys to False."""
    data = data or {}
    return cls(**{f.name: bool(data.get(f.name) or False) for f in fields(cls)})


# ── Patient record (clinical part) ───────────────────────────────────────────

@dataclass
class MedicalHistory:
    """Comorbidities and risk factors (antécédents)."""
    diabetes: bool = False
    hypertension: bool = False
    heart_failure: bool = False
    renal_insufficiency: bool = False
    arteriopathy: bool = False
    venous_insufficiency: bool = False
    lymphatic_insufficiency: bool = False
    immunosuppression: bool = False
    recent_surgery: bool = False
    recent_hospitalization: bool = False
    anti_inflammatory_use: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MedicalHistory":
        return _flags_from_dict(cls, data)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class CurrentAntibiotic:
    """Antibiotic treatment already in progress at intake."""
    active: bool = False
    name: str = ""
    duration_days: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CurrentAntibiotic":
        data = data or {}
        return cls(
            active=bool(data.get("active") or False),
            name=data.get("name") or "",
            duration_days=data.get("duration_days"),
        )

    def to_dict(self) -> dict:
        return {"active": self.active, "name": self.name, "duration_days": self.duration_days}


@dataclass
class EntryPoint:
    """Presumed origin lesion (porte d'entrée)."""
    intertrigo: bool = False
    wound: bool = False
    insect_bite: bool = False
    animal_bite_scratch: bool = False
    aquatic_inoculation: bool = False
    water_type: Optional[WaterType] = None
    other: bool = False
    other_details: str = ""

    @property
    def is_bite_or_sting(self) -> bool:
        return self.animal_bite_scratch or self.insect_bite

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "EntryPoint":
        data = data or {}
        return cls(
            intertrigo=bool(data.get("intertrigo") or False),
            wound=bool(data.get("wound") or False),
            insect_bite=bool(data.get("insect_bite") or False),
            animal_bite_scratch=bool(data.get("animal_bite_scratch") or False),
            aquatic_inoculation=bool(data.get("aquatic_inoculation") or False),
            water_type=WaterType.parse(data.get("water_type")),
            other=bool(data.get("other") or False),
            other_details=data.get("other_details") or "",
        )

    def to_dict(self) -> dict:
        return {
            "intertrigo": self.intertrigo,
            "wound": self.wound,
            "insect_bite": self.insect_bite,
            "animal_bite_scratch": self.animal_bite_scratch,
            "aquatic_inoculation": self.aquatic_inoculation,
            "water_type": self.water_type.value if self.water_type else None,
            "other": self.other,
            "other_details": self.other_details,
        }


@dataclass
class Symptoms:
    fever: bool = False
    adenopathy: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Symptoms":
        return _flags_from_dict(cls, data)

    def to_dict(self) -> dict:
        return {"fever": self.fever, "adenopathy": self.adenopathy}


@dataclass
class Presentation:
    """Current clinical presentation."""
    entry_point: EntryPoint = field(default_factory=EntryPoint)
    symptoms: Symptoms = field(default_factory=Symptoms)
    localisation_notes: str = ""
    selected_regions: List[str] = field(default_factory=list)
    initial_lesion_photo: Optional[str] = None       # data URL

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Presentation":
        data = data or {}
        return cls(
            entry_point=EntryPoint.from_dict(data.get("entry_point")),
            symptoms=Symptoms.from_dict(data.get("symptoms")),
            localisation_notes=data.get("localisation_notes") or "",
            selected_regions=list(data.get("selected_regions") or []),
            initial_lesion_photo=data.get("initial_lesion_photo"),
        )

    def to_dict(self) -> dict:
        return {
            "entry_point": self.entry_point.to_dict(),
            "symptoms": self.symptoms.to_dict(),
            "localisation_notes": self.localisation_notes,
            "selected_regions": list(self.selected_regions),
            "initial_lesion_photo": self.initial_lesion_photo,
        }


def compute_bmi(weight_kg: Optional[float], height_cm: Optional[float]) -> Optional[float]:
    """Body-mass index rounded to 2 decimals, or None if either input is missing."""
    if not weight_kg or not height_cm:
        return None
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 2)


# ── Triage checklists ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SeverityInput:
    """Signs of severity (suspected necrotizing fasciitis)."""
    sepsis: bool = False
    intense_pain: bool = False
    local_severity: bool = False
    rapid_extension: bool = False

    @property
    def any_present(self) -> bool:
        return self.sepsis or self.intense_pain or self.local_severity or self.rapid_extension

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SeverityInput":
        return _flags_from_dict(cls, data)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class HospitalizationInput:
    """Criteria requiring hospital admission."""
    comorbidity: bool = False
    morbid_obesity: bool = False
    long_term_medication: bool = False
    social_context: bool = False
    diagnostic_doubt: bool = False

    @property
    def any_present(self) -> bool:
        return (
            self.comorbidity
            or self.morbid_obesity
            or self.long_term_medication
            or self.social_context
            or self.diagnostic_doubt
        )

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HospitalizationInput":
        return _flags_from_dict(cls, data)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class TriageOutcome:
    has_severity_signs: bool
    needs_hospitalization: bool

    @property
    def is_urgent(self) -> bool:
        return self.has_severity_signs

    @property
    def setting(self) -> TreatmentSetting:
        if self.has_severity_signs or self.needs_hospitalization:
            return TreatmentSetting.HOSPITAL
        return TreatmentSetting.AMBULATORY


# ── Output ────────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Recommendation:
    """
    Treatment recommendation for one triage outcome.

    Recomputed on demand, never persisted. With severity signs present,
    `alternative_antibiotic` and `special_notes` are always empty.
    """
    title: str
    setting_icon: str
    primary_antibiotic: Tuple[str, ...]
    alternative_antibiotic: Tuple[str, ...]
    special_notes: Tuple[str, ...]
    duration: str
    measures: Tuple[str, ...]
    # Special-case rule ids in the order they fired
    applied_rules: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "setting_icon": self.setting_icon,
            "primary_antibiotic": list(self.primary_antibiotic),
            "alternative_antibiotic": list(self.alternative_antibiotic),
            "special_notes": list(self.special_notes),
            "duration": self.duration,
            "measures": list(self.measures),
            "applied_rules": list(self.applied_rules),
        }
