"""
DHBNN Special-Case Rules ("cas particuliers")

Overrides applied on top of the standard non-severe regimen.

Design principles:
  - Each rule is a SpecialCaseRule: a trigger predicate over the raw
    patient flags plus a transform of the treatment draft.
  - Rules are evaluated independently, in the fixed order of
    SPECIAL_CASE_RULES. A rule that replaces the antibiotic lists simply
    overwrites whatever an earlier rule wrote (last write wins); notes
    accumulate.
  - The last three rules are informational riders: they only append notes.

Known gap: when several regimen rules fire together (e.g. a diabetic
patient with both a wound and an insect bite) the result is decided by
list order alone, not by a clinical precedence.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from .base import Recommendation, WaterType
from .patient import Patient

# ── Regimens ─────────────────────────────────────────────────────────────────
STANDARD_PRIMARY     = "Amoxicilline 50 mg/kg/j (max 6 g/j)"
STANDARD_ALTERNATIVE = "Pristinamycine 1g x 3/jour"

BITE_PRIMARY         = "Amoxicilline – Acide Clavulanique 1g/8h"
BITE_ALTERNATIVE     = "Doxycycline 100mg/12h"
FRESH_WATER_PRIMARY  = "Doxycycline 100mg/12h + Ciprofloxacine 500mg/12h"
SALT_WATER_PRIMARY   = "Doxycycline 100mg/12h + Cefotaxime 2g/8h (ou Ceftriaxone 2g/24h)"
IPPD_PRIMARY         = "Amoxicilline – Acide Clavulanique 1-2g/8h"
IPPD_ALTERNATIVE     = "Ceftriaxone 1g/j + Metronidazole 500mg/8h (si allergie non grave)"

# ── Durations ────────────────────────────────────────────────────────────────
DEFAULT_DURATION = "7 jours"
BITE_DURATION    = "5 jours"
IPPD_DURATION    = "10-14 jours"

# ── Notes ────────────────────────────────────────────────────────────────────
NOTE_PASTEURELLA   = "Couverture contre Pasteurella multocida."
NOTE_AEROMONAS     = "Couverture contre Aeromonas spp."
NOTE_VIBRIO        = "Couverture contre Vibrio spp."
NOTE_IPPD          = "Patient diabétique avec plaie (IPPD) : Schéma thérapeutique adapté."
NOTE_IPPD_ALLERGY  = "Si allergie grave à la pénicilline : Avis infectiologique requis."
NOTE_OBESITY       = "Patient obèse : Adapter la posologie au poids ajusté."
NOTE_ARTERIOPATHY  = "Artériopathie : Majoration de la posologie à envisager."
NOTE_RENAL         = (
    "Insuffisance rénale : Adaptation posologique selon la clairance "
    "de la créatinine est nécessaire."
)

OBESITY_BMI = 30.0


@dataclass
class TreatmentDraft:
    """Mutable recommendation under construction."""
    title: str = ""
    setting_icon: str = ""
    primary_antibiotic: List[str] = field(default_factory=list)
    alternative_antibiotic: List[str] = field(default_factory=list)
    special_notes: List[str] = field(default_factory=list)
    duration: str = DEFAULT_DURATION
    measures: List[str] = field(default_factory=list)
    applied_rules: List[str] = field(default_factory=list)

    def freeze(self) -> Recommendation:
        return Recommendation(
            title=self.title,
            setting_icon=self.setting_icon,
            primary_antibiotic=tuple(self.primary_antibiotic),
            alternative_antibiotic=tuple(self.alternative_antibiotic),
            special_notes=tuple(self.special_notes),
            duration=self.duration,
            measures=tuple(self.measures),
            applied_rules=tuple(self.applied_rules),
        )


@dataclass(frozen=True)
class SpecialCaseRule:
    rule_id: str                                       # e.g. "DHBNN-BITE-001"
    title: str
    applies: Callable[[Patient], bool]
    apply: Callable[[Patient, TreatmentDraft], None]
    # Informational riders never touch the antibiotic lists
    replaces_regimen: bool = True

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "title": self.title,
            "replaces_regimen": self.replaces_regimen,
        }


# ── Rule 1: Bite, scratch or sting ───────────────────────────────────────────

def _is_bite_or_sting(p: Patient) -> bool:
    return p.presentation.entry_point.is_bite_or_sting


def _apply_bite(p: Patient, draft: TreatmentDraft) -> None:
    draft.primary_antibiotic = [BITE_PRIMARY]
    draft.alternative_antibiotic = [BITE_ALTERNATIVE]
    draft.duration = BITE_DURATION
    draft.special_notes.append(NOTE_PASTEURELLA)


# ── Rules 2a/2b: Aquatic inoculation ─────────────────────────────────────────

def _water(p: Patient) -> Optional[WaterType]:
    entry = p.presentation.entry_point
    return entry.water_type if entry.aquatic_inoculation else None


def _apply_fresh_water(p: Patient, draft: TreatmentDraft) -> None:
    draft.primary_antibiotic = [FRESH_WATER_PRIMARY]
    draft.alternative_antibiotic = []
    draft.special_notes.append(NOTE_AEROMONAS)


def _apply_salt_water(p: Patient, draft: TreatmentDraft) -> None:
    draft.primary_antibiotic = [SALT_WATER_PRIMARY]
    draft.alternative_antibiotic = []
    draft.special_notes.append(NOTE_VIBRIO)


# ── Rule 3: Diabetic patient with a wound (IPPD) ─────────────────────────────
# Wound age is not collected at intake, so any wound in a diabetic patient
# gets the regimen for the more severe presentation.

def _is_diabetic_wound(p: Patient) -> bool:
    return p.history.diabetes and p.presentation.entry_point.wound


def _apply_ippd(p: Patient, draft: TreatmentDraft) -> None:
    draft.special_notes.append(NOTE_IPPD)
    draft.primary_antibiotic = [IPPD_PRIMARY]
    draft.alternative_antibiotic = [IPPD_ALTERNATIVE]
    draft.duration = IPPD_DURATION
    draft.special_notes.append(NOTE_IPPD_ALLERGY)


# ── Rules 4-6: Informational riders ──────────────────────────────────────────

def _is_obese(p: Patient) -> bool:
    bmi = p.bmi
    return bmi is not None and bmi >= OBESITY_BMI


def _note(text: str) -> Callable[[Patient, TreatmentDraft], None]:
    def _append(p: Patient, draft: TreatmentDraft) -> None:
        draft.special_notes.append(text)
    return _append


# ── Registry (order is precedence) ───────────────────────────────────────────
SPECIAL_CASE_RULES: Tuple[SpecialCaseRule, ...] = (
    SpecialCaseRule(
        rule_id="DHBNN-BITE-001",
        title="Morsure, griffure ou piqûre",
        applies=_is_bite_or_sting,
        apply=_apply_bite,
    ),
    SpecialCaseRule(
        rule_id="DHBNN-AQUA-001",
        title="Inoculation aquatique (eau douce)",
        applies=lambda p: _water(p) is WaterType.FRESH,
        apply=_apply_fresh_water,
    ),
    SpecialCaseRule(
        rule_id="DHBNN-AQUA-002",
        title="Inoculation aquatique (eau de mer)",
        applies=lambda p: _water(p) is WaterType.SALT,
        apply=_apply_salt_water,
    ),
    SpecialCaseRule(
        rule_id="DHBNN-IPPD-001",
        title="Patient diabétique avec plaie",
        applies=_is_diabetic_wound,
        apply=_apply_ippd,
    ),
    SpecialCaseRule(
        rule_id="DHBNN-OBES-001",
        title="Sujet obèse (IMC ≥ 30)",
        applies=_is_obese,
        apply=_note(NOTE_OBESITY),
        replaces_regimen=False,
    ),
    SpecialCaseRule(
        rule_id="DHBNN-ARTE-001",
        title="Artériopathie",
        applies=lambda p: p.history.arteriopathy,
        apply=_note(NOTE_ARTERIOPATHY),
        replaces_regimen=False,
    ),
    SpecialCaseRule(
        rule_id="DHBNN-RENAL-001",
        title="Insuffisance rénale",
        applies=lambda p: p.history.renal_insufficiency,
        apply=_note(NOTE_RENAL),
        replaces_regimen=False,
    ),
)


def apply_special_cases(
    patient: Patient,
    draft: TreatmentDraft,
    rules: Tuple[SpecialCaseRule, ...] = SPECIAL_CASE_RULES,
) -> TreatmentDraft:
    """Run every rule whose trigger fires, in order, recording its id."""
    for rule in rules:
        if rule.applies(patient):
            rule.apply(patient, draft)
            draft.applied_rules.append(rule.rule_id)
    return draft
