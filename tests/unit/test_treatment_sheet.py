"""
Unit Tests for the PDF treatment sheet.
"""
import os

import pytest

from dhbnn.core.clinical import DecisionEngine, HospitalizationInput, Patient, SeverityInput
from dhbnn.core.reports import TreatmentSheet, TreatmentSheetGenerator
from dhbnn.utils import ReportGenerationError


@pytest.fixture
def generator(tmp_path) -> TreatmentSheetGenerator:
    return TreatmentSheetGenerator(output_dir=str(tmp_path / "reports"))


def _assess(patient: Patient, severity: SeverityInput = SeverityInput()):
    return DecisionEngine().assess(patient, severity, HospitalizationInput())


class TestTreatmentSheetGenerator:
    def test_generates_pdf(self, generator, diabetic_wound_patient):
        diabetic_wound_patient.patient_id = 8
        outcome, rec = _assess(diabetic_wound_patient)

        sheet = generator.generate(diabetic_wound_patient, outcome, rec)

        assert isinstance(sheet, TreatmentSheet)
        assert sheet.sheet_id.startswith("TS-8-")
        assert sheet.title == rec.title
        assert os.path.exists(sheet.pdf_path)
        with open(sheet.pdf_path, "rb") as f:
            assert f.read(5) == b"%PDF-"

    def test_severe_sheet(self, generator, plain_patient):
        outcome, rec = _assess(plain_patient, SeverityInput(sepsis=True))
        sheet = generator.generate(plain_patient, outcome, rec)
        assert os.path.getsize(sheet.pdf_path) > 0

    def test_markup_characters_are_escaped(self, generator):
        patient = Patient(last_name="<Dupont & Fils>", first_name="Léa")
        outcome, rec = _assess(patient)
        sheet = generator.generate(patient, outcome, rec)
        assert os.path.exists(sheet.pdf_path)

    def test_to_dict(self, generator, plain_patient):
        outcome, rec = _assess(plain_patient)
        data = generator.generate(plain_patient, outcome, rec).to_dict()
        assert set(data) == {"sheet_id", "generated_at", "patient_id", "title", "pdf_path"}

    def test_unwritable_directory(self, generator, plain_patient, tmp_path):
        outcome, rec = _assess(plain_patient)
        generator.output_dir = str(tmp_path / "missing" / "nested")

        with pytest.raises(ReportGenerationError) as exc_info:
            generator.generate(plain_patient, outcome, rec)
        assert exc_info.value.code == "REPORT_ERROR"
