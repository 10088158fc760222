"""
Custom Exception Hierarchy

Provides specific exception types for the service layer
with structured error information. The decision engine itself
never raises.
"""
from typing import Optional, Dict, Any


class DHBNNError(Exception):
    """Base exception for all DHBNN service errors."""
    
    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details
        }


class PatientNotFoundError(DHBNNError):
    """A patient record does not exist in the store."""
    
    def __init__(
        self,
        patient_id: Any,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=f"Patient with ID {patient_id} not found",
            code="PATIENT_NOT_FOUND",
            details={"patient_id": patient_id, **(details or {})}
        )
        self.patient_id = patient_id


class InvalidPatientDataError(DHBNNError):
    """Lifecycle event or record payload rejected."""
    
    def __init__(
        self,
        message: str,
        field: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="INVALID_PATIENT_DATA",
            details={"field": field, **(details or {})}
        )
        self.field = field


class PatientStoreError(DHBNNError):
    """Errors raised by a patient store backend."""
    
    def __init__(
        self,
        message: str,
        backend: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="STORE_ERROR",
            details={"backend": backend, **(details or {})}
        )
        self.backend = backend


class SchedulingError(DHBNNError):
    """Errors while scheduling a follow-up reminder."""
    
    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="SCHEDULING_ERROR",
            details=details
        )


class ReportGenerationError(DHBNNError):
    """Errors during treatment sheet generation."""
    
    def __init__(
        self,
        message: str,
        report_type: str = "unknown",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            code="REPORT_ERROR",
            details={"report_type": report_type, **(details or {})}
        )
        self.report_type = report_type
