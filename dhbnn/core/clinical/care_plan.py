"""
Follow-up care plan: recurrence prevention and management of an
unfavourable evolution.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .patient import Evolution, Patient

# ≥ 2 episodes in the last 12 months
PROPHYLAXIS_MIN_RECURRENCES = 2

PREVENTION_PRINCIPLES = (
    "Prise en charge des facteurs de risque de DHBNN.",
    "Antibioprophylaxie si facteurs de risque non contrôlables ou non résolutifs, "
    "et à partir de 2 épisodes au cours des 12 derniers mois.",
)

PROPHYLAXIS_REGIMENS = (
    "Benzylpénicilline G retard : 2,4MUI toutes les 2 à 4 semaines",
    "ou Pénicilline V per os : 1 à 2MUI/j selon le poids, en 2 prises",
    "ou Azithromycine : 250 mg/j si allergie à la pénicilline",
)

COMPLICATIONS_TO_SEARCH = (
    "Les signes d’alarmes (l’évolution vers la fasciite nécrosante)",
    "Posologie inadéquate ou diffusion inadéquate (oedème, artériopathie)",
    "Abcès ou autres complications locales",
    "Germe résistant",
)

GENERAL_COMPLICATIONS = {
    "Choc septique ou toxinique": (
        "Transfert en réanimation + PEC médico-chirurgicale en cas de DHBN-FN"
    ),
    "Décompensation d’une comorbidité": "Prise en charge spécialisée",
}

LOCAL_COMPLICATIONS = {
    "Abcès": (
        "Abcès de moins de 0,4 cm de profondeur : tenter un traitement médical. "
        "Abcès immature au sein d’une dermohypodermite : compresses chaudes, "
        "pas plus de 36h puis incision. Abcès mûr (fluctuation) : traitement "
        "chirurgical. Antibiothérapie antistaphylococcique jusqu’à 5 jours après "
        "le geste (céfazoline 80 à 100 mg/kg/j ou pristinamycine 1g/8h ou "
        "cotrimoxazole 800/160mg /8 à 12h)."
    ),
    "Nécrose superficielle": "Ablation des tissus dévitalisés + antibiothérapie ciblée",
    "TVP": "Anticoagulation curative + contention élastique dégressive",
    "Complications ostéoarticulaires": (
        "Prise en charge médico-chirurgicale + adaptation de l’antibiothérapie "
        "en fonction des résultats des prélèvements"
    ),
}

RESISTANT_GERM_GUIDANCE = (
    "Adaptation de l’antibiothérapie en fonction des résultats des prélèvements"
)
INADEQUATE_DOSING_GUIDANCE = (
    "Adaptation de la posologie (majoration en cas d’artériopathie, "
    "décharge pour réduire l’oedème)"
)


@dataclass(frozen=True)
class ComplicationsGuidance:
    to_search: List[str] = field(default_factory=lambda: list(COMPLICATIONS_TO_SEARCH))
    general: Dict[str, str] = field(default_factory=lambda: dict(GENERAL_COMPLICATIONS))
    local: Dict[str, str] = field(default_factory=lambda: dict(LOCAL_COMPLICATIONS))
    resistant_germ: str = RESISTANT_GERM_GUIDANCE
    inadequate_dosing: str = INADEQUATE_DOSING_GUIDANCE

    def to_dict(self) -> dict:
        return {
            "to_search": list(self.to_search),
            "general": dict(self.general),
            "local": dict(self.local),
            "resistant_germ": self.resistant_germ,
            "inadequate_dosing": self.inadequate_dosing,
        }


@dataclass(frozen=True)
class CarePlan:
    recurrence_count: int
    prophylaxis_indicated: bool
    prevention_principles: List[str]
    prophylaxis_regimens: List[str]
    # Only set after an unfavourable follow-up
    complications: Optional[ComplicationsGuidance] = None

    def to_dict(self) -> dict:
        return {
            "recurrence_count": self.recurrence_count,
            "prophylaxis_indicated": self.prophylaxis_indicated,
            "prevention_principles": list(self.prevention_principles),
            "prophylaxis_regimens": list(self.prophylaxis_regimens),
            "complications": self.complications.to_dict() if self.complications else None,
        }


def needs_prophylaxis(patient: Patient) -> bool:
    return (patient.recurrence_count or 0) >= PROPHYLAXIS_MIN_RECURRENCES


def build_care_plan(patient: Patient) -> CarePlan:
    indicated = needs_prophylaxis(patient)
    unfavourable = (
        patient.follow_up is not None
        and patient.follow_up.evolution is Evolution.UNFAVORABLE
    )
    return CarePlan(
        recurrence_count=patient.recurrence_count or 0,
        prophylaxis_indicated=indicated,
        prevention_principles=list(PREVENTION_PRINCIPLES),
        prophylaxis_regimens=list(PROPHYLAXIS_REGIMENS) if indicated else [],
        complications=ComplicationsGuidance() if unfavourable else None,
    )
