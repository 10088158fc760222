"""
Pytest Configuration and Fixtures

Shared fixtures for the DHBNN assessment service tests.
"""
from datetime import datetime, timedelta, timezone

import pytest

from dhbnn.core.clinical import (
    EntryPoint,
    MedicalHistory,
    Patient,
    Presentation,
    WaterType,
)
from dhbnn.services.patient_service import PatientService
from dhbnn.services.patient_store import DiskPatientStore, InMemoryPatientStore


class FakeClock:
    """Deterministic clock; each call advances by one minute."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(minutes=1)
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def plain_patient() -> Patient:
    """Adult with no comorbidity and no special entry point."""
    return Patient(
        last_name="Martin",
        first_name="Claire",
        sex="F",
        age=45,
        weight_kg=65.0,
        height_cm=170.0,
    )


@pytest.fixture
def bite_patient() -> Patient:
    return Patient(
        last_name="Durand",
        first_name="Paul",
        age=38,
        weight_kg=70.0,
        height_cm=175.0,
        presentation=Presentation(entry_point=EntryPoint(animal_bite_scratch=True)),
    )


@pytest.fixture
def salt_water_patient() -> Patient:
    return Patient(
        last_name="Lefebvre",
        first_name="Marc",
        age=52,
        weight_kg=80.0,
        height_cm=180.0,
        presentation=Presentation(
            entry_point=EntryPoint(aquatic_inoculation=True, water_type=WaterType.SALT)
        ),
    )


@pytest.fixture
def diabetic_wound_patient() -> Patient:
    return Patient(
        last_name="Bernard",
        first_name="Louise",
        age=67,
        weight_kg=72.0,
        height_cm=165.0,
        history=MedicalHistory(diabetes=True),
        presentation=Presentation(entry_point=EntryPoint(wound=True)),
    )


@pytest.fixture
def obese_patient() -> Patient:
    """BMI 32.0 (92.48 kg, 170 cm)."""
    return Patient(
        last_name="Petit",
        first_name="Jean",
        age=58,
        weight_kg=92.48,
        height_cm=170.0,
    )


@pytest.fixture
def memory_store() -> InMemoryPatientStore:
    return InMemoryPatientStore()


@pytest.fixture
def disk_store(tmp_path):
    store = DiskPatientStore(str(tmp_path / "store"))
    yield store
    store.close()


@pytest.fixture
def patient_service(memory_store, clock) -> PatientService:
    return PatientService(memory_store, clock=clock)
