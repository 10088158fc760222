"""
Treatment Sheet Generator

Printable PDF of a treatment recommendation:
- patient header (identity, age, BMI)
- triage outcome and treatment setting
- antibiotic therapy (first line / alternative), duration
- special notes and supportive measures
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional
from xml.sax.saxutils import escape
import os

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from dhbnn.core.clinical import Patient, Recommendation, TriageOutcome
from dhbnn.utils import get_logger, ReportGenerationError

logger = get_logger(__name__)

SETTING_COLORS = {
    "severe": HexColor("#991B1B"),      # Dark red
    "hospital": HexColor("#B45309"),    # Amber
    "ambulatory": HexColor("#15803D"),  # Green
}
NOTE_COLOR = HexColor("#B45309")


@dataclass
class TreatmentSheet:
    """Data container for a generated sheet."""
    sheet_id: str
    generated_at: datetime
    patient_id: Optional[int]
    title: str
    pdf_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sheet_id": self.sheet_id,
            "generated_at": self.generated_at.isoformat(),
            "patient_id": self.patient_id,
            "title": self.title,
            "pdf_path": self.pdf_path,
        }


def _setting_key(outcome: TriageOutcome) -> str:
    if outcome.has_severity_signs:
        return "severe"
    return outcome.setting.value


class TreatmentSheetGenerator:
    """Renders a Recommendation to PDF with reportlab."""

    def __init__(self, output_dir: str = "reports"):
        self.output_dir = output_dir
        os.makedirs(output_dir, exist_ok=True)
        self._styles = getSampleStyleSheet()
        self._create_custom_styles()
        logger.info(f"TreatmentSheetGenerator initialized, output: {output_dir}")

    def _create_custom_styles(self):
        if 'SheetTitle' not in self._styles:
            self._styles.add(ParagraphStyle(
                name='SheetTitle',
                parent=self._styles['Title'],
                fontSize=20,
                spaceAfter=14,
                alignment=TA_CENTER,
                fontName='Helvetica-Bold'
            ))
        if 'SectionHeader' not in self._styles:
            self._styles.add(ParagraphStyle(
                name='SectionHeader',
                parent=self._styles['Heading2'],
                fontSize=13,
                spaceBefore=14,
                spaceAfter=6,
                textColor=HexColor("#1F2937"),
                fontName='Helvetica-Bold'
            ))
        if 'Note' not in self._styles:
            self._styles.add(ParagraphStyle(
                name='Note',
                parent=self._styles['Normal'],
                fontSize=10,
                leading=13,
                textColor=NOTE_COLOR,
                leftIndent=10
            ))
        if 'Small' not in self._styles:
            self._styles.add(ParagraphStyle(
                name='Small',
                parent=self._styles['Normal'],
                fontSize=9,
                textColor=HexColor("#6B7280")
            ))

    def generate(
        self,
        patient: Patient,
        outcome: TriageOutcome,
        recommendation: Recommendation,
    ) -> TreatmentSheet:
        generated_at = datetime.now()
        sheet = TreatmentSheet(
            sheet_id=f"TS-{patient.patient_id or 0}-{generated_at.strftime('%Y%m%d-%H%M%S')}",
            generated_at=generated_at,
            patient_id=patient.patient_id,
            title=recommendation.title,
        )
        try:
            sheet.pdf_path = self._generate_pdf(sheet, patient, outcome, recommendation)
        except OSError as exc:
            logger.error(f"Treatment sheet generation failed: {exc}", exc_info=True)
            raise ReportGenerationError(
                f"Cannot write treatment sheet: {exc}",
                report_type="treatment_sheet",
                details={"patient_id": patient.patient_id},
            ) from exc
        logger.info(f"Treatment sheet {sheet.sheet_id} written to {sheet.pdf_path}")
        return sheet

    def _bullets(self, items, style: str = 'Normal') -> List[Paragraph]:
        return [Paragraph(f"• {escape(item)}", self._styles[style]) for item in items]

    def _generate_pdf(
        self,
        sheet: TreatmentSheet,
        patient: Patient,
        outcome: TriageOutcome,
        rec: Recommendation,
    ) -> str:
        filepath = os.path.join(self.output_dir, f"{sheet.sheet_id}.pdf")
        doc = SimpleDocTemplate(
            filepath,
            pagesize=A4,
            rightMargin=2*cm,
            leftMargin=2*cm,
            topMargin=2*cm,
            bottomMargin=2*cm
        )
        story = []

        story.append(Paragraph("Fiche de Traitement DHBNN", self._styles['SheetTitle']))
        story.append(Paragraph(
            f"Générée le {sheet.generated_at.strftime('%d/%m/%Y à %H:%M')} | Réf. {sheet.sheet_id}",
            self._styles['Small']
        ))
        story.append(Spacer(1, 12))

        # ===== PATIENT =====
        bmi = patient.bmi
        rows = [
            ["Patient", patient.full_name or "Patient Inconnu"],
            ["Âge", f"{patient.age} ans" if patient.age else "N/A"],
            ["IMC", f"{bmi}" if bmi is not None else "N/A"],
            ["Récidives", str(patient.recurrence_count)],
        ]
        table = Table(rows, colWidths=[4*cm, 12*cm])
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 4),
            ('LINEBELOW', (0, -1), (-1, -1), 0.5, HexColor("#D1D5DB")),
        ]))
        story.append(table)

        # ===== SETTING =====
        banner = ParagraphStyle(
            name='Banner',
            parent=self._styles['Heading1'],
            textColor=SETTING_COLORS[_setting_key(outcome)],
            spaceBefore=16,
        )
        story.append(Paragraph(escape(rec.title), banner))

        # ===== ANTIBIOTICS =====
        story.append(Paragraph("Antibiothérapie Recommandée", self._styles['SectionHeader']))
        story.append(Paragraph("<b>1ère intention :</b>", self._styles['Normal']))
        story.extend(self._bullets(rec.primary_antibiotic))
        if rec.alternative_antibiotic:
            story.append(Paragraph("<b>Alternative (si allergie) :</b>", self._styles['Normal']))
            story.extend(self._bullets(rec.alternative_antibiotic))

        story.append(Paragraph("Durée du Traitement", self._styles['SectionHeader']))
        story.append(Paragraph(escape(rec.duration), self._styles['Normal']))

        if rec.special_notes:
            story.append(Paragraph("Notes Spécifiques", self._styles['SectionHeader']))
            story.extend(self._bullets(rec.special_notes, style='Note'))

        story.append(Paragraph("Mesures d'Accompagnement", self._styles['SectionHeader']))
        story.extend(self._bullets(rec.measures))

        story.append(Spacer(1, 20))
        story.append(Paragraph(
            "Aide à la décision clinique. La prescription reste sous la responsabilité du médecin.",
            self._styles['Small']
        ))

        doc.build(story)
        return filepath
