"""
API request / response schemas (pydantic).

Request models validate the wire payload and convert to the clinical
domain types with `to_domain()`. Responses carry the domain `to_dict()`
output so the JSON shape matches what the store persists.
"""
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from dhbnn.core.clinical import (
    HospitalizationInput,
    Patient,
    SeverityInput,
    WaterType,
)


# ---- Intake ----

class MedicalHistoryModel(BaseModel):
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


class CurrentAntibioticModel(BaseModel):
    active: bool = False
    name: str = ""
    duration_days: Optional[int] = Field(None, ge=0)


class EntryPointModel(BaseModel):
    intertrigo: bool = False
    wound: bool = False
    insect_bite: bool = False
    animal_bite_scratch: bool = False
    aquatic_inoculation: bool = False
    water_type: Optional[WaterType] = Field(None, description="'douce' (fresh) or 'mer' (salt)")
    other: bool = False
    other_details: str = ""


class SymptomsModel(BaseModel):
    fever: bool = False
    adenopathy: bool = False


class PresentationModel(BaseModel):
    entry_point: EntryPointModel = Field(default_factory=EntryPointModel)
    symptoms: SymptomsModel = Field(default_factory=SymptomsModel)
    localisation_notes: str = ""
    selected_regions: List[str] = Field(default_factory=list)
    initial_lesion_photo: Optional[str] = Field(None, description="Image data URL")


class PatientRequest(BaseModel):
    """Intake form: identity, history and presentation."""
    last_name: str = ""
    first_name: str = ""
    sex: Optional[str] = None
    age: Optional[int] = Field(None, ge=1, le=150)
    weight_kg: Optional[float] = Field(None, gt=0)
    height_cm: Optional[float] = Field(None, gt=0)
    # Used only when weight or height is missing
    bmi: Optional[float] = Field(None, gt=0)
    profession: str = ""
    history: MedicalHistoryModel = Field(default_factory=MedicalHistoryModel)
    current_antibiotic: CurrentAntibioticModel = Field(default_factory=CurrentAntibioticModel)
    recurrence_count: int = Field(0, ge=0)
    presentation: PresentationModel = Field(default_factory=PresentationModel)

    def to_domain(self) -> Patient:
        return Patient.from_dict(self.model_dump())


# ---- Assessment ----

class SeveritySignsModel(BaseModel):
    sepsis: bool = False
    intense_pain: bool = False
    local_severity: bool = False
    rapid_extension: bool = False


class HospitalizationCriteriaModel(BaseModel):
    comorbidity: bool = False
    morbid_obesity: bool = False
    long_term_medication: bool = False
    social_context: bool = False
    diagnostic_doubt: bool = False


class ChecklistRequest(BaseModel):
    """Severity signs and hospitalization criteria checklists."""
    severity_signs: SeveritySignsModel = Field(default_factory=SeveritySignsModel)
    hospitalization_criteria: HospitalizationCriteriaModel = Field(
        default_factory=HospitalizationCriteriaModel
    )

    def to_domain(self) -> Tuple[SeverityInput, HospitalizationInput]:
        return (
            SeverityInput.from_dict(self.severity_signs.model_dump()),
            HospitalizationInput.from_dict(self.hospitalization_criteria.model_dump()),
        )


class FollowUpRequest(BaseModel):
    evolution: str = Field(..., description="'favorable' or 'defavorable'")


class PhotoRequest(BaseModel):
    image_data: str = Field(..., description="Image data URL")
    description: str = ""


# ---- Responses ----

class EvaluationResponse(BaseModel):
    """Triage outcome and recommendation (not persisted)."""
    patient_id: int
    has_severity_signs: bool
    needs_hospitalization: bool
    setting: str
    is_urgent: bool
    recommendation: Dict[str, Any]


class AssessmentResponse(EvaluationResponse):
    follow_up_scheduled: bool
    patient: Dict[str, Any]


class PatientListResponse(BaseModel):
    count: int
    patients: List[Dict[str, Any]]


class StatisticsResponse(BaseModel):
    total: int
    hospitalized: int
    ambulatory: int
    followup_pending: int


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str
    uptime_seconds: float
    store_backend: str
    pending_follow_ups: int
