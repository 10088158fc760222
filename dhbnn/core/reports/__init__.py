"""
Report Generation Module

Printable PDF treatment sheet for a computed recommendation.
"""
from .treatment_sheet import TreatmentSheetGenerator, TreatmentSheet

__all__ = [
    "TreatmentSheetGenerator",
    "TreatmentSheet",
]
