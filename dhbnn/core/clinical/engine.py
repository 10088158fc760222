"""
Clinical Decision Engine

DHBNN decision tree: severity triage, then hospitalization triage, then
antibiotic regimen selection with special-case overrides.

Usage:
    from dhbnn.core.clinical import DecisionEngine

    engine = DecisionEngine()
    outcome, rec = engine.assess(patient, severity, hospitalization)
    print(rec.title, rec.primary_antibiotic, rec.duration)

Adding a special case:
    1. Write its trigger and transform in rules_special_cases.py
    2. Insert it in SPECIAL_CASE_RULES at the position that gives the
       intended precedence.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .base import HospitalizationInput, Recommendation, SeverityInput, TriageOutcome
from .patient import Patient
from .rules_special_cases import (
    SPECIAL_CASE_RULES,
    STANDARD_ALTERNATIVE,
    STANDARD_PRIMARY,
    SpecialCaseRule,
    TreatmentDraft,
    apply_special_cases,
)

logger = logging.getLogger(__name__)

# ── Titles and icons ─────────────────────────────────────────────────────────
SEVERE_TITLE     = "URGENCE MÉDICO-CHIRURGICALE"
HOSPITAL_TITLE   = "TRAITEMENT À L'HÔPITAL"
AMBULATORY_TITLE = "TRAITEMENT AMBULATOIRE"

SEVERE_ICON     = "🚨"
HOSPITAL_ICON   = "🏥"
AMBULATORY_ICON = "🏠"

SEVERE_MANAGEMENT = (
    "Hospitalisation en réanimation",
    "Prise en charge médico-chirurgicale",
)
SURGICAL_CONSULT = "Avis chirurgical immédiat et exploration"

DEFAULT_MEASURES = (
    "Repos au lit avec surélévation du membre atteint",
    "Traitement de la porte d’entrée",
    "Antalgiques si besoin (paracétamol)",
    "Arrêt total des AINS",
    "Surveillance quotidienne de la fièvre et des signes locaux",
)


def evaluate(
    severity: Optional[SeverityInput],
    hospitalization: Optional[HospitalizationInput],
) -> TriageOutcome:
    """
    Two-step triage.

    Hospitalization criteria are only looked at when no severity sign is
    present: the severe path already means an intensive-care admission.
    """
    has_severity_signs = bool(severity and severity.any_present)
    needs_hospitalization = False
    if not has_severity_signs:
        needs_hospitalization = bool(hospitalization and hospitalization.any_present)
    return TriageOutcome(
        has_severity_signs=has_severity_signs,
        needs_hospitalization=needs_hospitalization,
    )


def recommend(
    patient: Optional[Patient],
    has_severity_signs: bool,
    needs_hospitalization: bool,
    rules: Tuple[SpecialCaseRule, ...] = SPECIAL_CASE_RULES,
) -> Recommendation:
    """
    Build the treatment recommendation. Pure and deterministic.

    The severe branch returns before any special case is looked at, so its
    alternative list and notes stay empty and its duration stays the default.
    """
    patient = patient or Patient()
    draft = TreatmentDraft(measures=list(DEFAULT_MEASURES))

    if has_severity_signs:
        draft.title = SEVERE_TITLE
        draft.setting_icon = SEVERE_ICON
        draft.primary_antibiotic.extend(SEVERE_MANAGEMENT)
        draft.measures.insert(0, SURGICAL_CONSULT)
        return draft.freeze()

    if needs_hospitalization:
        draft.title = HOSPITAL_TITLE
        draft.setting_icon = HOSPITAL_ICON
    else:
        draft.title = AMBULATORY_TITLE
        draft.setting_icon = AMBULATORY_ICON

    draft.primary_antibiotic.append(STANDARD_PRIMARY)
    draft.alternative_antibiotic.append(STANDARD_ALTERNATIVE)

    apply_special_cases(patient, draft, rules)
    return draft.freeze()


class DecisionEngine:
    """
    Facade over evaluate() / recommend().

    Stateless; safe to share across requests.
    """

    def __init__(self, rules: Tuple[SpecialCaseRule, ...] = SPECIAL_CASE_RULES):
        self._rules = rules

    def evaluate(
        self,
        severity: Optional[SeverityInput],
        hospitalization: Optional[HospitalizationInput],
    ) -> TriageOutcome:
        return evaluate(severity, hospitalization)

    def recommend(
        self,
        patient: Optional[Patient],
        has_severity_signs: bool,
        needs_hospitalization: bool,
    ) -> Recommendation:
        rec = recommend(patient, has_severity_signs, needs_hospitalization, self._rules)
        if rec.applied_rules:
            logger.debug(
                f"DecisionEngine: special cases fired: {', '.join(rec.applied_rules)}"
            )
        return rec

    def assess(
        self,
        patient: Optional[Patient],
        severity: Optional[SeverityInput],
        hospitalization: Optional[HospitalizationInput],
    ) -> Tuple[TriageOutcome, Recommendation]:
        """Triage then recommend in one call."""
        outcome = self.evaluate(severity, hospitalization)
        rec = self.recommend(patient, outcome.has_severity_signs, outcome.needs_hospitalization)
        return outcome, rec

    def registered_rules(self) -> List[SpecialCaseRule]:
        """Special-case rules in precedence order."""
        return list(self._rules)

    @staticmethod
    def summarise(outcome: TriageOutcome, rec: Recommendation) -> Dict:
        """
        Compact dict for JSON API responses.

        Example output:
        {
            "has_severity_signs": false,
            "needs_hospitalization": false,
            "setting": "ambulatory",
            "is_urgent": false,
            "recommendation": {...}
        }
        """
        return {
            "has_severity_signs": outcome.has_severity_signs,
            "needs_hospitalization": outcome.needs_hospitalization,
            "setting": outcome.setting.value,
            "is_urgent": outcome.is_urgent,
            "recommendation": rec.to_dict(),
        }
