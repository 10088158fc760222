"""
DHBNN Clinical Assessment - FastAPI Application

Main application entry point with API endpoints for:
- Patient records (intake, listing, statistics)
- Triage and treatment recommendation for bacterial dermohypodermitis
- Lifecycle events (follow-up, photos, cure) and care plan
- Printable treatment sheet (PDF)
"""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse

from dhbnn.config import settings
from dhbnn.core.clinical import DecisionEngine, Patient, build_care_plan
from dhbnn.core.reports import TreatmentSheetGenerator
from dhbnn.models import (
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
from dhbnn.services.assessment_service import AssessmentService
from dhbnn.services.notifications import FollowUpScheduler
from dhbnn.services.patient_service import (
    PatientService,
    SortOrder,
    StatusFilter,
    derive_status,
    patient_tags,
)
from dhbnn.services.patient_store import create_patient_store
from dhbnn.utils import (
    DHBNNError,
    InvalidPatientDataError,
    PatientNotFoundError,
    get_logger,
    setup_logging,
)

logger = get_logger(__name__)


# ---- Services ----
_store = create_patient_store(settings.PATIENT_STORE_BACKEND, settings.PATIENT_STORE_DIR)
_engine = DecisionEngine()
_scheduler = FollowUpScheduler()
_patient_service = PatientService(_store)
_assessment_service = AssessmentService(
    patients=_patient_service,
    scheduler=_scheduler,
    engine=_engine,
    follow_up_hours=settings.FOLLOW_UP_DELAY_HOURS,
    notification_delay_ms=settings.notification_delay_ms,
)
_sheet_gen = TreatmentSheetGenerator(output_dir=settings.REPORTS_DIR)
START_TIME = datetime.now()


# ---- Application Lifespan ----

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging on startup; drop pending reminders on shutdown."""
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE or None)
    logger.info(
        f"{settings.APP_NAME} v{settings.APP_VERSION} starting "
        f"(store={settings.PATIENT_STORE_BACKEND}, {_store.count()} patients)"
    )
    yield
    pending = len(_scheduler.pending())
    if pending:
        logger.warning(f"Shutting down with {pending} follow-up reminder(s) not yet shown")
    _scheduler.cancel_all()
    logger.info(f"{settings.APP_NAME} shut down.")


# ---- FastAPI Application ----

app = FastAPI(
    title="DHBNN Clinical Assessment API",
    description="Triage and antibiotic recommendation for bacterial dermohypodermitis (cellulitis)",
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---- Error Handling ----

def _status_code(exc: DHBNNError) -> int:
    if isinstance(exc, PatientNotFoundError):
        return 404
    if isinstance(exc, InvalidPatientDataError):
        return 400
    return 500


@app.exception_handler(DHBNNError)
async def dhbnn_error_handler(request: Request, exc: DHBNNError):
    status_code = _status_code(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path}: {exc.code} {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# ---- Utility Functions ----

def _list_entry(patient: Patient) -> Dict[str, Any]:
    """Patient dict enriched with the list-view status and tags."""
    entry = patient.to_dict()
    entry["display_status"] = derive_status(patient).value
    entry["tags"] = patient_tags(patient)
    return entry


def _health() -> HealthResponse:
    return HealthResponse(
        status="healthy",
        version=settings.APP_VERSION,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=(datetime.now() - START_TIME).total_seconds(),
        store_backend=settings.PATIENT_STORE_BACKEND,
        pending_follow_ups=len(_scheduler.pending()),
    )


# ---- API Endpoints ----

@app.get("/", response_model=HealthResponse, tags=["Health"])
async def root():
    """API root - health check."""
    return _health()


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return _health()


@app.get("/api/v1/rules", tags=["Reference"])
async def list_rules():
    """Special-case rules in the order they are applied."""
    rules = _engine.registered_rules()
    return {"count": len(rules), "rules": [r.to_dict() for r in rules]}


@app.post("/api/v1/patients", status_code=201, tags=["Patients"])
async def create_patient(request: PatientRequest):
    """Register a new patient from the intake form."""
    patient = _patient_service.register(request.to_domain())
    return patient.to_dict()


@app.get("/api/v1/patients", response_model=PatientListResponse, tags=["Patients"])
async def list_patients(
    search: str = Query("", description="Case-insensitive match on the full name"),
    status_filter: StatusFilter = Query(StatusFilter.ALL),
    sort: SortOrder = Query(SortOrder.RECENT),
):
    patients = _patient_service.list_patients(search=search, status_filter=status_filter, sort=sort)
    return PatientListResponse(count=len(patients), patients=[_list_entry(p) for p in patients])


@app.get("/api/v1/patients/statistics", response_model=StatisticsResponse, tags=["Patients"])
async def patient_statistics():
    """Counts shown above the patient list (cured patients excluded except from total)."""
    return StatisticsResponse(**_patient_service.statistics())


@app.get("/api/v1/patients/{patient_id}", tags=["Patients"])
async def get_patient(patient_id: int):
    return _list_entry(_patient_service.get(patient_id))


@app.put("/api/v1/patients/{patient_id}", tags=["Patients"])
async def update_patient(patient_id: int, request: PatientRequest):
    """Replace the intake data; assessment and lifecycle events are kept."""
    patient = _patient_service.update_intake(patient_id, request.to_domain())
    return patient.to_dict()


@app.delete("/api/v1/patients/{patient_id}", status_code=204, tags=["Patients"])
async def delete_patient(patient_id: int):
    _patient_service.delete(patient_id)
    _scheduler.cancel(patient_id)


@app.post("/api/v1/patients/{patient_id}/evaluate", response_model=EvaluationResponse, tags=["Assessment"])
async def evaluate_patient(patient_id: int, request: ChecklistRequest):
    """
    Compute triage and recommendation for the given checklists.

    Nothing is saved; call this on every checklist change.
    """
    severity, hospitalization = request.to_domain()
    outcome, rec = _assessment_service.preview(patient_id, severity, hospitalization)
    return EvaluationResponse(patient_id=patient_id, **DecisionEngine.summarise(outcome, rec))


@app.post("/api/v1/patients/{patient_id}/assessment", response_model=AssessmentResponse, tags=["Assessment"])
async def save_assessment(patient_id: int, request: ChecklistRequest):
    """
    Save the assessment summary and update the patient status.

    Non-urgent assessments schedule the 48h follow-up reminder.
    """
    severity, hospitalization = request.to_domain()
    result = await _assessment_service.save(patient_id, severity, hospitalization)
    return AssessmentResponse(
        patient_id=patient_id,
        follow_up_scheduled=result.follow_up_scheduled,
        patient=result.patient.to_dict(),
        **DecisionEngine.summarise(result.outcome, result.recommendation),
    )


@app.get("/api/v1/patients/{patient_id}/recommendation", response_model=EvaluationResponse, tags=["Assessment"])
async def current_recommendation(patient_id: int):
    """Recommendation recomputed from the saved checklists."""
    outcome, rec = _assessment_service.current_recommendation(patient_id)
    return EvaluationResponse(patient_id=patient_id, **DecisionEngine.summarise(outcome, rec))


@app.post("/api/v1/patients/{patient_id}/follow-up", tags=["Lifecycle"])
async def record_follow_up(patient_id: int, request: FollowUpRequest):
    patient = _patient_service.record_follow_up(patient_id, request.evolution)
    _scheduler.cancel(patient_id)
    return patient.to_dict()


@app.post("/api/v1/patients/{patient_id}/photos", status_code=201, tags=["Lifecycle"])
async def add_photo(patient_id: int, request: PhotoRequest):
    patient = _patient_service.add_photo(patient_id, request.image_data, request.description)
    return patient.to_dict()


@app.delete("/api/v1/patients/{patient_id}/photos/{index}", tags=["Lifecycle"])
async def delete_photo(patient_id: int, index: int):
    patient = _patient_service.delete_photo(patient_id, index)
    return patient.to_dict()


@app.post("/api/v1/patients/{patient_id}/cure", tags=["Lifecycle"])
async def mark_cured(patient_id: int):
    patient = _patient_service.mark_cured(patient_id)
    _scheduler.cancel(patient_id)
    return patient.to_dict()


@app.get("/api/v1/patients/{patient_id}/care-plan", tags=["Lifecycle"])
async def care_plan(patient_id: int):
    """Prevention, prophylaxis and (on unfavorable evolution) complications guidance."""
    patient = _patient_service.get(patient_id)
    return build_care_plan(patient).to_dict()


@app.post("/api/v1/patients/{patient_id}/treatment-sheet", tags=["Reports"])
async def treatment_sheet(patient_id: int):
    """
    Generate and download the PDF treatment sheet for the saved assessment.
    """
    patient = _patient_service.get(patient_id)
    outcome, rec = _assessment_service.current_recommendation(patient_id)
    sheet = _sheet_gen.generate(patient, outcome, rec)
    return FileResponse(
        sheet.pdf_path,
        media_type="application/pdf",
        filename=f"{sheet.sheet_id}.pdf",
        headers={"X-Sheet-Id": sheet.sheet_id},
    )


# ---- Run with uvicorn ----
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
