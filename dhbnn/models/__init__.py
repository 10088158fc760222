"""API schemas."""
from .patient import (
    AssessmentResponse,
    ChecklistRequest,
    EvaluationResponse,
    FollowUpRequest,
    HealthResponse,
    PatientListResponse,
    PatientRequest,
    PhotoRequest,
    StatisticsResponse,
)

__all__ = [
    "AssessmentResponse",
    "ChecklistRequest",
    "EvaluationResponse",
    "FollowUpRequest",
    "HealthResponse",
    "PatientListResponse",
    "PatientRequest",
    "PhotoRequest",
    "StatisticsResponse",
]
