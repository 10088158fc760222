"""
Assessment workflow service.

Calling layer around the decision engine:
  1. load the patient (PatientNotFoundError halts the workflow)
  2. triage + recommendation from the checklist answers
  3. on save, persist the reduced assessment summary and the new status
  4. for non-urgent assessments, schedule the follow-up reminder
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple

from dhbnn.core.clinical import (
    AssessmentRecord,
    DecisionEngine,
    HospitalizationInput,
    Patient,
    Recommendation,
    SeverityInput,
    TriageOutcome,
)
from dhbnn.core.clinical.patient import DEFAULT_FOLLOW_UP_HOURS, utcnow
from dhbnn.services.notifications import FollowUpScheduler
from dhbnn.services.patient_service import PatientService
from dhbnn.utils import get_logger, SchedulingError

logger = get_logger(__name__)


@dataclass
class AssessmentResult:
    patient: Patient
    outcome: TriageOutcome
    recommendation: Recommendation
    follow_up_scheduled: bool


class AssessmentService:
    def __init__(
        self,
        patients: PatientService,
        scheduler: FollowUpScheduler,
        engine: Optional[DecisionEngine] = None,
        follow_up_hours: int = DEFAULT_FOLLOW_UP_HOURS,
        notification_delay_ms: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.patients = patients
        self.scheduler = scheduler
        self.engine = engine or DecisionEngine()
        self.follow_up_hours = follow_up_hours
        if notification_delay_ms is None:
            notification_delay_ms = follow_up_hours * 3600 * 1000
        self.notification_delay_ms = notification_delay_ms
        self._clock = clock

    def preview(
        self,
        patient_id: int,
        severity: SeverityInput,
        hospitalization: HospitalizationInput,
    ) -> Tuple[TriageOutcome, Recommendation]:
        """Recompute on a checklist change. Nothing is written."""
        patient = self.patients.get(patient_id)
        return self.engine.assess(patient, severity, hospitalization)

    def current_recommendation(self, patient_id: int) -> Tuple[TriageOutcome, Recommendation]:
        """
        Recommendation for the stored checklist answers.

        Unassessed patients are evaluated with empty checklists.
        """
        patient = self.patients.get(patient_id)
        if patient.assessment is None:
            return self.engine.assess(patient, SeverityInput(), HospitalizationInput())
        return self.engine.assess(
            patient,
            patient.assessment.severity_signs,
            patient.assessment.hospitalization_criteria,
        )

    async def save(
        self,
        patient_id: int,
        severity: SeverityInput,
        hospitalization: HospitalizationInput,
    ) -> AssessmentResult:
        patient = self.patients.get(patient_id)
        outcome, rec = self.engine.assess(patient, severity, hospitalization)

        record = AssessmentRecord.build(
            severity=severity,
            hospitalization=hospitalization,
            outcome=outcome,
            assessed_at=self._clock(),
            follow_up_hours=self.follow_up_hours,
        )
        patient.assessment = record
        patient.status = record.status
        saved = self.patients.store.put(patient)
        logger.info(
            f"Assessment saved for patient {patient_id}: "
            f"{record.treatment_plan.setting.value}, urgent={outcome.is_urgent}"
        )

        scheduled = False
        if not outcome.is_urgent:
            try:
                self.scheduler.schedule(patient_id, self.notification_delay_ms, patient_name=saved.full_name)
                scheduled = True
            except SchedulingError as exc:
                # The assessment stays saved; only the reminder is lost
                logger.error(f"Follow-up not scheduled for patient {patient_id}: {exc.message}")
        elif self.scheduler.cancel(patient_id):
            logger.info(f"Pending follow-up for patient {patient_id} cancelled: assessment is urgent")

        return AssessmentResult(
            patient=saved,
            outcome=outcome,
            recommendation=rec,
            follow_up_scheduled=scheduled,
        )
