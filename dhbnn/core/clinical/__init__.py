"""
Clinical Decision Layer

Turns a patient record and the triage checklists into a treatment
recommendation.

Usage:
    from dhbnn.core.clinical import DecisionEngine, SeverityInput, HospitalizationInput

    engine = DecisionEngine()
    outcome, rec = engine.assess(patient, SeverityInput(), HospitalizationInput())
"""
from .engine import DecisionEngine, evaluate, recommend
from .base import (
    CurrentAntibiotic,
    EntryPoint,
    HospitalizationInput,
    MedicalHistory,
    Presentation,
    Recommendation,
    SeverityInput,
    Symptoms,
    TreatmentSetting,
    TriageOutcome,
    WaterType,
)
from .patient import (
    AssessmentRecord,
    Evolution,
    FollowUp,
    Patient,
    PatientStatus,
    Photo,
    TreatmentPlan,
)
from .rules_special_cases import SPECIAL_CASE_RULES, SpecialCaseRule
from .care_plan import CarePlan, build_care_plan

__all__ = [
    "DecisionEngine",
    "evaluate",
    "recommend",
    "CurrentAntibiotic",
    "EntryPoint",
    "HospitalizationInput",
    "MedicalHistory",
    "Presentation",
    "Recommendation",
    "SeverityInput",
    "Symptoms",
    "TreatmentSetting",
    "TriageOutcome",
    "WaterType",
    "AssessmentRecord",
    "Evolution",
    "FollowUp",
    "Patient",
    "PatientStatus",
    "Photo",
    "TreatmentPlan",
    "SPECIAL_CASE_RULES",
    "SpecialCaseRule",
    "CarePlan",
    "build_care_plan",
]
