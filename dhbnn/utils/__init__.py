"""
Utilities Package - Logging and Exception Handling
"""
from .logging import get_logger, setup_logging
from .exceptions import (
    DHBNNError,
    PatientNotFoundError,
    InvalidPatientDataError,
    PatientStoreError,
    SchedulingError,
    ReportGenerationError,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "DHBNNError",
    "PatientNotFoundError",
    "InvalidPatientDataError",
    "PatientStoreError",
    "SchedulingError",
    "ReportGenerationError",
]
