"""
Unit Tests for the patient service: registration, listing and lifecycle.
"""
from datetime import datetime, timedelta, timezone

import pytest

from dhbnn.core.clinical import (
    AssessmentRecord,
    Evolution,
    HospitalizationInput,
    MedicalHistory,
    Patient,
    PatientStatus,
    Presentation,
    SeverityInput,
    evaluate,
)
from dhbnn.services.patient_service import (
    SortOrder,
    StatusFilter,
    derive_status,
    matches_filter,
    patient_tags,
    sort_patients,
)
from dhbnn.utils import InvalidPatientDataError, PatientNotFoundError

BASE_DATE = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _assess(patient: Patient, severity: SeverityInput, criteria: HospitalizationInput) -> Patient:
    outcome = evaluate(severity, criteria)
    patient.assessment = AssessmentRecord.build(severity, criteria, outcome, assessed_at=BASE_DATE)
    patient.status = patient.assessment.status
    return patient


def _new(name: str, day: int = 0) -> Patient:
    return Patient(last_name=name, date_created=BASE_DATE + timedelta(days=day))


def _severe(name: str, day: int = 0) -> Patient:
    return _assess(_new(name, day), SeverityInput(sepsis=True), HospitalizationInput())


def _hospital(name: str, day: int = 0) -> Patient:
    return _assess(_new(name, day), SeverityInput(), HospitalizationInput(social_context=True))


def _ambulatory(name: str, day: int = 0) -> Patient:
    return _assess(_new(name, day), SeverityInput(), HospitalizationInput())


@pytest.fixture
def ward(patient_service):
    """One patient per list status, registered in date order."""
    patients = {
        "new": _new("Nouveau", 0),
        "severe": _severe("Sévère", 1),
        "hospital": _hospital("Hôpital", 2),
        "awaiting": _ambulatory("Attente", 3),
        "followed": _ambulatory("Suivi", 4),
        "cured": _ambulatory("Guéri", 5),
    }
    saved = {key: patient_service.register(p) for key, p in patients.items()}
    patient_service.record_follow_up(saved["followed"].patient_id, "favorable")
    patient_service.mark_cured(saved["cured"].patient_id)
    return {key: patient_service.get(p.patient_id) for key, p in saved.items()}


class TestDeriveStatus:
    def test_statuses(self, ward):
        assert derive_status(ward["new"]) is PatientStatus.NEW
        assert derive_status(ward["severe"]) is PatientStatus.SEVERE
        assert derive_status(ward["hospital"]) is PatientStatus.HOSPITALIZED
        assert derive_status(ward["awaiting"]) is PatientStatus.FOLLOWUP
        assert derive_status(ward["followed"]) is PatientStatus.AMBULATORY
        assert derive_status(ward["cured"]) is PatientStatus.CURED


class TestFilters:
    @pytest.mark.parametrize("status_filter,expected", [
        (StatusFilter.ALL, {"Nouveau", "Sévère", "Hôpital", "Attente", "Suivi", "Guéri"}),
        (StatusFilter.NEW, {"Nouveau"}),
        (StatusFilter.HOSPITALIZED, {"Sévère", "Hôpital"}),
        (StatusFilter.AMBULATORY, {"Attente", "Suivi", "Guéri"}),
        (StatusFilter.FOLLOWUP, {"Sévère", "Hôpital", "Attente", "Guéri"}),
        (StatusFilter.CURED, {"Guéri"}),
    ])
    def test_filter(self, ward, patient_service, status_filter, expected):
        listed = patient_service.list_patients(status_filter=status_filter)
        assert {p.last_name for p in listed} == expected

    def test_matches_filter_new(self, ward):
        assert matches_filter(ward["new"], StatusFilter.NEW)
        assert not matches_filter(ward["severe"], StatusFilter.NEW)

    def test_search(self, ward, patient_service):
        listed = patient_service.list_patients(search="sui")
        assert [p.last_name for p in listed] == ["Suivi"]


class TestSort:
    def test_recent_and_oldest(self, ward, patient_service):
        recent = patient_service.list_patients(sort=SortOrder.RECENT)
        oldest = patient_service.list_patients(sort=SortOrder.OLDEST)
        assert recent[0].last_name == "Guéri"
        assert oldest[0].last_name == "Nouveau"
        assert [p.patient_id for p in recent] == [p.patient_id for p in reversed(oldest)]

    def test_name(self):
        patients = [Patient(last_name="bernard"), Patient(last_name="Arnaud"), Patient(last_name="Colin")]
        assert [p.last_name for p in sort_patients(patients, SortOrder.NAME_ASC)] == [
            "Arnaud", "bernard", "Colin",
        ]
        assert [p.last_name for p in sort_patients(patients, SortOrder.NAME_DESC)] == [
            "Colin", "bernard", "Arnaud",
        ]

    def test_severity_lists_severe_first(self, ward, patient_service):
        listed = patient_service.list_patients(sort=SortOrder.SEVERITY)
        names = [p.last_name for p in listed]
        assert names[0] == "Sévère"
        assert names[1] == "Hôpital"
        assert names[-2:] == ["Nouveau", "Guéri"]


class TestStatistics:
    def test_counts(self, ward, patient_service):
        stats = patient_service.statistics()
        assert stats == {
            "total": 6,
            "hospitalized": 2,
            "ambulatory": 2,
            "followup_pending": 3,
        }

    def test_empty(self, patient_service):
        assert patient_service.statistics() == {
            "total": 0, "hospitalized": 0, "ambulatory": 0, "followup_pending": 0,
        }


class TestTags:
    def test_comorbidities_and_recurrences(self):
        patient = Patient(
            history=MedicalHistory(diabetes=True, hypertension=True),
            recurrence_count=1,
        )
        assert patient_tags(patient) == ["Diabète", "HTA", "1 récidive"]

    def test_plural_and_truncated_location(self):
        patient = Patient(
            recurrence_count=3,
            presentation=Presentation(localisation_notes="Face antérieure de la jambe droite, tiers inférieur"),
        )
        tags = patient_tags(patient)
        assert tags[0] == "3 récidives"
        assert tags[1] == "Face antérieure de la jambe dr..."

    def test_at_most_four_tags(self):
        patient = Patient(
            history=MedicalHistory(diabetes=True, hypertension=True, immunosuppression=True),
            recurrence_count=2,
            presentation=Presentation(localisation_notes="Pied"),
        )
        assert patient_tags(patient) == ["Diabète", "HTA", "Immunodépression", "2 récidives"]


class TestRegistration:
    def test_register_ignores_supplied_id(self, patient_service):
        saved = patient_service.register(Patient(patient_id=99, last_name="Dupont"))
        assert saved.patient_id == 1

    def test_get_missing_raises(self, patient_service):
        with pytest.raises(PatientNotFoundError) as exc_info:
            patient_service.get(7)
        assert exc_info.value.patient_id == 7
        assert exc_info.value.to_dict()["error"] == "PATIENT_NOT_FOUND"

    def test_update_intake_keeps_lifecycle(self, ward, patient_service):
        target = ward["followed"]
        updated = patient_service.update_intake(
            target.patient_id, Patient(last_name="Suivi", first_name="Renommé", recurrence_count=2)
        )
        assert updated.first_name == "Renommé"
        assert updated.recurrence_count == 2
        assert updated.assessment is not None
        assert updated.follow_up.evolution is Evolution.FAVORABLE
        assert updated.date_created == target.date_created

    def test_delete(self, patient_service):
        saved = patient_service.register(Patient(last_name="A"))
        patient_service.delete(saved.patient_id)
        with pytest.raises(PatientNotFoundError):
            patient_service.delete(saved.patient_id)


class TestLifecycleEvents:
    def test_follow_up(self, patient_service, clock):
        saved = patient_service.register(_ambulatory("A"))
        updated = patient_service.record_follow_up(saved.patient_id, "defavorable")
        assert updated.follow_up.evolution is Evolution.UNFAVORABLE
        assert updated.follow_up.date_assessed.tzinfo is not None

    def test_unknown_evolution(self, patient_service):
        saved = patient_service.register(_ambulatory("A"))
        with pytest.raises(InvalidPatientDataError) as exc_info:
            patient_service.record_follow_up(saved.patient_id, "stable")
        assert exc_info.value.code == "INVALID_PATIENT_DATA"

    def test_photos(self, patient_service):
        saved = patient_service.register(Patient(last_name="A"))
        patient_service.add_photo(saved.patient_id, "data:image/png;base64,AAAA", "  J2 ")
        updated = patient_service.add_photo(saved.patient_id, "data:image/png;base64,BBBB")
        assert [p.description for p in updated.photos] == ["J2", ""]

        updated = patient_service.delete_photo(saved.patient_id, 0)
        assert [p.image_data for p in updated.photos] == ["data:image/png;base64,BBBB"]

    def test_photo_errors(self, patient_service):
        saved = patient_service.register(Patient(last_name="A"))
        with pytest.raises(InvalidPatientDataError):
            patient_service.add_photo(saved.patient_id, "")
        with pytest.raises(InvalidPatientDataError):
            patient_service.delete_photo(saved.patient_id, 0)

    def test_mark_cured(self, patient_service, clock):
        saved = patient_service.register(_hospital("A"))
        cured = patient_service.mark_cured(saved.patient_id)
        assert cured.status is PatientStatus.CURED
        assert cured.cure_date is not None
        # The assessment summary is kept
        assert cured.assessment is not None
