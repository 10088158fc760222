"""
Patient management service.

Registration, listing (search / status filter / sort / statistics) and the
lifecycle events recorded after the initial assessment: follow-up
evolution, photos and cure.
"""
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional

from dhbnn.core.clinical import (
    Evolution,
    FollowUp,
    Patient,
    PatientStatus,
    Photo,
    TreatmentSetting,
)
from dhbnn.core.clinical.patient import utcnow
from dhbnn.services.patient_store import PatientStore
from dhbnn.utils import get_logger, InvalidPatientDataError, PatientNotFoundError

logger = get_logger(__name__)


class StatusFilter(str, Enum):
    ALL          = "all"
    NEW          = "new"
    AMBULATORY   = "ambulatory"
    HOSPITALIZED = "hospitalized"
    FOLLOWUP     = "followup"
    CURED        = "cured"


class SortOrder(str, Enum):
    RECENT    = "recent"
    OLDEST    = "oldest"
    NAME_ASC  = "name-asc"
    NAME_DESC = "name-desc"
    SEVERITY  = "severity"


# Lower = listed first when sorting by severity
_SEVERITY_ORDER = {
    PatientStatus.SEVERE:       0,
    PatientStatus.HOSPITALIZED: 1,
    PatientStatus.FOLLOWUP:     2,
    PatientStatus.AMBULATORY:   2,
    PatientStatus.NEW:          3,
    PatientStatus.CURED:        4,
}

MAX_TAGS = 4
LOCATION_TAG_LENGTH = 30


def _setting(patient: Patient) -> Optional[TreatmentSetting]:
    if patient.assessment is None:
        return None
    return patient.assessment.treatment_plan.setting


def derive_status(patient: Patient) -> PatientStatus:
    """Status shown in the patient list."""
    if patient.status is PatientStatus.CURED:
        return PatientStatus.CURED
    if patient.assessment is not None:
        if patient.assessment.outcome.has_severity_signs:
            return PatientStatus.SEVERE
        setting = _setting(patient)
        if setting is TreatmentSetting.HOSPITAL:
            return PatientStatus.HOSPITALIZED
        if setting is TreatmentSetting.AMBULATORY:
            return PatientStatus.AMBULATORY if patient.follow_up else PatientStatus.FOLLOWUP
    return PatientStatus.NEW


def matches_filter(patient: Patient, status_filter: StatusFilter) -> bool:
    if status_filter is StatusFilter.NEW:
        return patient.assessment is None
    if status_filter is StatusFilter.AMBULATORY:
        return _setting(patient) is TreatmentSetting.AMBULATORY
    if status_filter is StatusFilter.HOSPITALIZED:
        return _setting(patient) is TreatmentSetting.HOSPITAL
    if status_filter is StatusFilter.FOLLOWUP:
        return patient.assessment is not None and patient.follow_up is None
    if status_filter is StatusFilter.CURED:
        return patient.status is PatientStatus.CURED
    return True


def _created_key(p: Patient) -> float:
    return p.date_created.timestamp() if p.date_created else float("-inf")


def sort_patients(patients: List[Patient], order: SortOrder) -> List[Patient]:
    if order is SortOrder.RECENT:
        return sorted(patients, key=_created_key, reverse=True)
    if order is SortOrder.OLDEST:
        return sorted(patients, key=_created_key)
    if order is SortOrder.NAME_ASC:
        return sorted(patients, key=lambda p: p.last_name.lower())
    if order is SortOrder.NAME_DESC:
        return sorted(patients, key=lambda p: p.last_name.lower(), reverse=True)
    if order is SortOrder.SEVERITY:
        return sorted(patients, key=lambda p: _SEVERITY_ORDER.get(derive_status(p), 5))
    return list(patients)


def patient_tags(patient: Patient) -> List[str]:
    """Short labels for the list view (key comorbidities, recurrences, location)."""
    tags = []
    if patient.history.diabetes:
        tags.append("Diabète")
    if patient.history.hypertension:
        tags.append("HTA")
    if patient.history.immunosuppression:
        tags.append("Immunodépression")

    if patient.recurrence_count > 0:
        plural = "s" if patient.recurrence_count > 1 else ""
        tags.append(f"{patient.recurrence_count} récidive{plural}")

    notes = patient.presentation.localisation_notes
    if notes:
        location = notes[:LOCATION_TAG_LENGTH]
        tags.append(location + ("..." if len(notes) > LOCATION_TAG_LENGTH else ""))

    return tags[:MAX_TAGS]


class PatientService:
    """Patient records management on top of a PatientStore."""

    def __init__(self, store: PatientStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self._clock = clock

    # ── CRUD ─────────────────────────────────────────────────────────────
    def register(self, patient: Patient) -> Patient:
        patient.patient_id = None
        saved = self.store.put(patient)
        logger.info(f"Patient registered: {saved.patient_id} ({saved.full_name})")
        return saved

    def get(self, patient_id: int) -> Patient:
        patient = self.store.get(patient_id)
        if patient is None:
            raise PatientNotFoundError(patient_id)
        return patient

    def update_intake(self, patient_id: int, intake: Patient) -> Patient:
        """Replace intake fields, keeping the lifecycle fields already recorded."""
        current = self.get(patient_id)
        intake.patient_id = patient_id
        intake.date_created = current.date_created
        intake.assessment = current.assessment
        intake.status = current.status
        intake.follow_up = current.follow_up
        intake.photos = current.photos
        intake.cure_date = current.cure_date
        return self.store.put(intake)

    def delete(self, patient_id: int) -> None:
        self.get(patient_id)
        self.store.delete(patient_id)

    # ── Listing ──────────────────────────────────────────────────────────
    def list_patients(
        self,
        search: str = "",
        status_filter: StatusFilter = StatusFilter.ALL,
        sort: SortOrder = SortOrder.RECENT,
    ) -> List[Patient]:
        patients = self.store.search(search) if search else self.store.list()
        patients = [p for p in patients if matches_filter(p, status_filter)]
        patients = sort_patients(patients, sort)
        logger.debug(f"Filtered to {len(patients)} patients")
        return patients

    def statistics(self) -> Dict[str, int]:
        patients = self.store.list()
        active = [p for p in patients if p.status is not PatientStatus.CURED]
        return {
            "total": len(patients),
            "hospitalized": sum(1 for p in active if _setting(p) is TreatmentSetting.HOSPITAL),
            "ambulatory": sum(1 for p in active if _setting(p) is TreatmentSetting.AMBULATORY),
            "followup_pending": sum(
                1 for p in active if p.assessment is not None and p.follow_up is None
            ),
        }

    # ── Lifecycle events ─────────────────────────────────────────────────
    def record_follow_up(self, patient_id: int, evolution: str) -> Patient:
        try:
            parsed = Evolution(evolution)
        except ValueError:
            raise InvalidPatientDataError(
                f"Unknown evolution: {evolution}. Valid: {[e.value for e in Evolution]}",
                field="evolution",
            )
        patient = self.get(patient_id)
        patient.follow_up = FollowUp(date_assessed=self._clock(), evolution=parsed)
        logger.info(f"Follow-up recorded for patient {patient_id}: {parsed.value}")
        return self.store.put(patient)

    def add_photo(self, patient_id: int, image_data: str, description: str = "") -> Patient:
        if not image_data:
            raise InvalidPatientDataError("Photo image data is empty", field="image_data")
        patient = self.get(patient_id)
        patient.photos.append(Photo(date=self._clock(), description=description.strip(), image_data=image_data))
        return self.store.put(patient)

    def delete_photo(self, patient_id: int, index: int) -> Patient:
        patient = self.get(patient_id)
        if not 0 <= index < len(patient.photos):
            raise InvalidPatientDataError(
                f"No photo at index {index}",
                field="index",
                details={"photo_count": len(patient.photos)},
            )
        del patient.photos[index]
        return self.store.put(patient)

    def mark_cured(self, patient_id: int) -> Patient:
        patient = self.get(patient_id)
        patient.status = PatientStatus.CURED
        patient.cure_date = self._clock()
        logger.info(f"Patient {patient_id} marked as cured")
        return self.store.put(patient)
