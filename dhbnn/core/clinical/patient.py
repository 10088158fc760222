"""
Patient Record

The stored patient: intake data (read by the decision engine) plus the
lifecycle fields written by later events (assessment, follow-up, photos,
cure). Serialises to plain dicts so any key-value store can hold it.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .base import (
    CurrentAntibiotic,
    HospitalizationInput,
    MedicalHistory,
    Presentation,
    SeverityInput,
    TreatmentSetting,
    TriageOutcome,
    compute_bmi,
)

# Reduced plan written with every assessment, regardless of the computed
# recommendation.
PLAN_PRIMARY_ANTIBIOTIC     = "Amoxicilline 1g x 3/jour"
PLAN_ALTERNATIVE_ANTIBIOTIC = "Pristinamycine 1g x 3/jour"
PLAN_DURATION               = "7 jours minimum"
DEFAULT_FOLLOW_UP_HOURS     = 48


class PatientStatus(str, Enum):
    """
    Status of a patient.

    SEVERE / HOSPITALIZED / AMBULATORY / CURED are stored on the record.
    NEW and FOLLOWUP are only derived for display.
    """
    NEW          = "new"
    SEVERE       = "severe"
    HOSPITALIZED = "hospitalized"
    FOLLOWUP     = "followup"
    AMBULATORY   = "ambulatory"
    CURED        = "cured"


class Evolution(str, Enum):
    FAVORABLE   = "favorable"
    UNFAVORABLE = "defavorable"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


# ── Assessment summary ───────────────────────────────────────────────────────

@dataclass
class TreatmentPlan:
    setting: TreatmentSetting
    is_urgent: bool
    follow_up_date: datetime
    primary_antibiotic: str = PLAN_PRIMARY_ANTIBIOTIC
    alternative_antibiotic: str = PLAN_ALTERNATIVE_ANTIBIOTIC
    duration: str = PLAN_DURATION
    follow_up_required: bool = True

    def to_dict(self) -> dict:
        return {
            "setting": self.setting.value,
            "is_urgent": self.is_urgent,
            "primary_antibiotic": self.primary_antibiotic,
            "alternative_antibiotic": self.alternative_antibiotic,
            "duration": self.duration,
            "follow_up_required": self.follow_up_required,
            "follow_up_date": _iso(self.follow_up_date),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TreatmentPlan":
        return cls(
            setting=TreatmentSetting(data.get("setting") or TreatmentSetting.AMBULATORY.value),
            is_urgent=bool(data.get("is_urgent") or False),
            follow_up_date=_parse_dt(data.get("follow_up_date")),
            primary_antibiotic=data.get("primary_antibiotic") or PLAN_PRIMARY_ANTIBIOTIC,
            alternative_antibiotic=data.get("alternative_antibiotic") or PLAN_ALTERNATIVE_ANTIBIOTIC,
            duration=data.get("duration") or PLAN_DURATION,
            follow_up_required=bool(data.get("follow_up_required", True)),
        )


@dataclass
class AssessmentRecord:
    """
    What is persisted after an assessment: the raw checklist answers, the
    two triage flags and a terse plan. The full recommendation is not kept.
    """
    date_assessed: datetime
    severity_signs: SeverityInput
    hospitalization_criteria: HospitalizationInput
    outcome: TriageOutcome
    treatment_plan: TreatmentPlan

    @classmethod
    def build(
        cls,
        severity: SeverityInput,
        hospitalization: HospitalizationInput,
        outcome: TriageOutcome,
        assessed_at: datetime,
        follow_up_hours: int = DEFAULT_FOLLOW_UP_HOURS,
    ) -> "AssessmentRecord":
        plan = TreatmentPlan(
            setting=outcome.setting,
            is_urgent=outcome.is_urgent,
            follow_up_date=assessed_at + timedelta(hours=follow_up_hours),
        )
        return cls(
            date_assessed=assessed_at,
            severity_signs=severity,
            hospitalization_criteria=hospitalization,
            outcome=outcome,
            treatment_plan=plan,
        )

    @property
    def status(self) -> PatientStatus:
        if self.outcome.has_severity_signs:
            return PatientStatus.SEVERE
        if self.outcome.needs_hospitalization:
            return PatientStatus.HOSPITALIZED
        return PatientStatus.AMBULATORY

    def to_dict(self) -> dict:
        return {
            "date_assessed": _iso(self.date_assessed),
            "severity_signs": {
                **self.severity_signs.to_dict(),
                "has_severity_signs": self.outcome.has_severity_signs,
            },
            "hospitalization_criteria": {
                **self.hospitalization_criteria.to_dict(),
                "needs_hospitalization": self.outcome.needs_hospitalization,
            },
            "treatment_plan": self.treatment_plan.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssessmentRecord":
        severity = data.get("severity_signs") or {}
        criteria = data.get("hospitalization_criteria") or {}
        return cls(
            date_assessed=_parse_dt(data.get("date_assessed")),
            severity_signs=SeverityInput.from_dict(severity),
            hospitalization_criteria=HospitalizationInput.from_dict(criteria),
            outcome=TriageOutcome(
                has_severity_signs=bool(severity.get("has_severity_signs") or False),
                needs_hospitalization=bool(criteria.get("needs_hospitalization") or False),
            ),
            treatment_plan=TreatmentPlan.from_dict(data.get("treatment_plan") or {}),
        )


@dataclass
class FollowUp:
    date_assessed: datetime
    evolution: Evolution

    def to_dict(self) -> dict:
        return {"date_assessed": _iso(self.date_assessed), "evolution": self.evolution.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FollowUp":
        return cls(date_assessed=_parse_dt(data["date_assessed"]), evolution=Evolution(data["evolution"]))


@dataclass
class Photo:
    date: datetime
    description: str
    image_data: str

    def to_dict(self) -> dict:
        return {"date": _iso(self.date), "description": self.description, "image_data": self.image_data}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Photo":
        return cls(
            date=_parse_dt(data["date"]),
            description=data.get("description") or "",
            image_data=data.get("image_data") or "",
        )


# ── Patient ──────────────────────────────────────────────────────────────────

@dataclass
class Patient:
    # ── Identity ──────────────────────────────────────────────────────────
    patient_id: Optional[int] = None
    last_name: str = ""
    first_name: str = ""
    sex: Optional[str] = None
    age: Optional[int] = None
    weight_kg: Optional[float] = None
    height_cm: Optional[float] = None
    profession: str = ""
    # Used when weight or height is unknown
    recorded_bmi: Optional[float] = None

    # ── Clinical intake ───────────────────────────────────────────────────
    history: MedicalHistory = field(default_factory=MedicalHistory)
    current_antibiotic: CurrentAntibiotic = field(default_factory=CurrentAntibiotic)
    recurrence_count: int = 0
    presentation: Presentation = field(default_factory=Presentation)

    # ── Lifecycle ─────────────────────────────────────────────────────────
    date_created: Optional[datetime] = None
    date_modified: Optional[datetime] = None
    assessment: Optional[AssessmentRecord] = None
    status: Optional[PatientStatus] = None
    follow_up: Optional[FollowUp] = None
    photos: List[Photo] = field(default_factory=list)
    cure_date: Optional[datetime] = None

    @property
    def bmi(self) -> Optional[float]:
        computed = compute_bmi(self.weight_kg, self.height_cm)
        return computed if computed is not None else self.recorded_bmi

    @property
    def full_name(self) -> str:
        return f"{self.last_name} {self.first_name}".strip()

    def to_dict(self) -> dict:
        return {
            "patient_id": self.patient_id,
            "last_name": self.last_name,
            "first_name": self.first_name,
            "sex": self.sex,
            "age": self.age,
            "weight_kg": self.weight_kg,
            "height_cm": self.height_cm,
            "profession": self.profession,
            "bmi": self.bmi,
            "history": self.history.to_dict(),
            "current_antibiotic": self.current_antibiotic.to_dict(),
            "recurrence_count": self.recurrence_count,
            "presentation": self.presentation.to_dict(),
            "date_created": _iso(self.date_created),
            "date_modified": _iso(self.date_modified),
            "assessment": self.assessment.to_dict() if self.assessment else None,
            "status": self.status.value if self.status else None,
            "follow_up": self.follow_up.to_dict() if self.follow_up else None,
            "photos": [p.to_dict() for p in self.photos],
            "cure_date": _iso(self.cure_date),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Patient":
        data = data or {}
        assessment = data.get("assessment")
        follow_up = data.get("follow_up")
        status = data.get("status")
        return cls(
            patient_id=data.get("patient_id"),
            last_name=data.get("last_name") or "",
            first_name=data.get("first_name") or "",
            sex=data.get("sex"),
            age=data.get("age"),
            weight_kg=data.get("weight_kg"),
            height_cm=data.get("height_cm"),
            profession=data.get("profession") or "",
            recorded_bmi=data.get("bmi"),
            history=MedicalHistory.from_dict(data.get("history")),
            current_antibiotic=CurrentAntibiotic.from_dict(data.get("current_antibiotic")),
            recurrence_count=int(data.get("recurrence_count") or 0),
            presentation=Presentation.from_dict(data.get("presentation")),
            date_created=_parse_dt(data.get("date_created")),
            date_modified=_parse_dt(data.get("date_modified")),
            assessment=AssessmentRecord.from_dict(assessment) if assessment else None,
            status=PatientStatus(status) if status else None,
            follow_up=FollowUp.from_dict(follow_up) if follow_up else None,
            photos=[Photo.from_dict(p) for p in data.get("photos") or []],
            cure_date=_parse_dt(data.get("cure_date")),
        )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
