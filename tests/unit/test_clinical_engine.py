"""
Unit Tests for the Clinical Decision Engine

Triage (severity, hospitalization), regimen selection and special-case
overrides.
"""
import itertools

import pytest

from dhbnn.core.clinical import (
    DecisionEngine,
    EntryPoint,
    HospitalizationInput,
    MedicalHistory,
    Patient,
    Presentation,
    SeverityInput,
    SPECIAL_CASE_RULES,
    SpecialCaseRule,
    TreatmentSetting,
    WaterType,
    evaluate,
    recommend,
)
from dhbnn.core.clinical.engine import (
    AMBULATORY_TITLE,
    DEFAULT_MEASURES,
    HOSPITAL_TITLE,
    SEVERE_MANAGEMENT,
    SEVERE_TITLE,
    SURGICAL_CONSULT,
)
from dhbnn.core.clinical.rules_special_cases import (
    BITE_ALTERNATIVE,
    BITE_PRIMARY,
    FRESH_WATER_PRIMARY,
    IPPD_ALTERNATIVE,
    IPPD_PRIMARY,
    NOTE_AEROMONAS,
    NOTE_ARTERIOPATHY,
    NOTE_IPPD,
    NOTE_IPPD_ALLERGY,
    NOTE_OBESITY,
    NOTE_PASTEURELLA,
    NOTE_RENAL,
    NOTE_VIBRIO,
    SALT_WATER_PRIMARY,
    STANDARD_ALTERNATIVE,
    STANDARD_PRIMARY,
)


SEVERITY_FIELDS = ("sepsis", "intense_pain", "local_severity", "rapid_extension")
HOSPITALIZATION_FIELDS = (
    "comorbidity",
    "morbid_obesity",
    "long_term_medication",
    "social_context",
    "diagnostic_doubt",
)


class TestEvaluate:
    """Two-step triage."""

    @pytest.mark.parametrize("flags", list(itertools.product([False, True], repeat=4)))
    def test_severity_is_or_of_four_signs(self, flags):
        severity = SeverityInput(**dict(zip(SEVERITY_FIELDS, flags)))
        outcome = evaluate(severity, HospitalizationInput())
        assert outcome.has_severity_signs is any(flags)

    @pytest.mark.parametrize("field_name", HOSPITALIZATION_FIELDS)
    def test_any_criterion_requires_hospitalization(self, field_name):
        outcome = evaluate(SeverityInput(), HospitalizationInput(**{field_name: True}))
        assert outcome.has_severity_signs is False
        assert outcome.needs_hospitalization is True
        assert outcome.setting is TreatmentSetting.HOSPITAL
        assert outcome.is_urgent is False

    def test_no_criteria_is_ambulatory(self):
        outcome = evaluate(SeverityInput(), HospitalizationInput())
        assert outcome.needs_hospitalization is False
        assert outcome.setting is TreatmentSetting.AMBULATORY

    def test_hospitalization_not_evaluated_when_severe(self):
        outcome = evaluate(SeverityInput(sepsis=True), HospitalizationInput(comorbidity=True))
        assert outcome.has_severity_signs is True
        assert outcome.needs_hospitalization is False
        assert outcome.is_urgent is True
        assert outcome.setting is TreatmentSetting.HOSPITAL

    def test_missing_inputs_are_treated_as_absent(self):
        outcome = evaluate(None, None)
        assert outcome.has_severity_signs is False
        assert outcome.needs_hospitalization is False


class TestSevereBranch:
    """Severity signs short-circuit everything else."""

    @pytest.mark.parametrize("needs_hospitalization", [False, True])
    def test_severe_output_is_fixed(self, bite_patient, needs_hospitalization):
        rec = recommend(bite_patient, True, needs_hospitalization)

        assert rec.title == SEVERE_TITLE
        assert rec.primary_antibiotic == SEVERE_MANAGEMENT
        assert rec.alternative_antibiotic == ()
        assert rec.special_notes == ()
        assert rec.duration == "7 jours"
        assert rec.measures[0] == SURGICAL_CONSULT
        assert rec.measures[1:] == DEFAULT_MEASURES
        assert rec.applied_rules == ()

    def test_hospitalization_flag_has_no_effect(self, diabetic_wound_patient):
        assert recommend(diabetic_wound_patient, True, False) == recommend(
            diabetic_wound_patient, True, True
        )


class TestStandardRegimen:
    def test_ambulatory(self, plain_patient):
        rec = recommend(plain_patient, False, False)
        assert rec.title == AMBULATORY_TITLE
        assert rec.primary_antibiotic == (STANDARD_PRIMARY,)
        assert rec.alternative_antibiotic == (STANDARD_ALTERNATIVE,)
        assert rec.special_notes == ()
        assert rec.duration == "7 jours"
        assert rec.measures == DEFAULT_MEASURES

    def test_hospital(self, plain_patient):
        rec = recommend(plain_patient, False, True)
        assert rec.title == HOSPITAL_TITLE
        assert rec.primary_antibiotic == (STANDARD_PRIMARY,)

    def test_missing_patient_gets_standard_regimen(self):
        rec = recommend(None, False, False)
        assert rec.primary_antibiotic == (STANDARD_PRIMARY,)
        assert rec.applied_rules == ()


class TestSpecialCases:
    def test_bite(self, bite_patient):
        rec = recommend(bite_patient, False, False)
        assert rec.primary_antibiotic == (BITE_PRIMARY,)
        assert rec.alternative_antibiotic == (BITE_ALTERNATIVE,)
        assert rec.duration == "5 jours"
        assert rec.special_notes == (NOTE_PASTEURELLA,)
        assert rec.applied_rules == ("DHBNN-BITE-001",)

    def test_insect_bite_counts_as_bite(self):
        patient = Patient(presentation=Presentation(entry_point=EntryPoint(insect_bite=True)))
        assert recommend(patient, False, False).primary_antibiotic == (BITE_PRIMARY,)

    def test_salt_water(self, salt_water_patient):
        rec = recommend(salt_water_patient, False, False)
        assert rec.primary_antibiotic == (SALT_WATER_PRIMARY,)
        assert rec.alternative_antibiotic == ()
        assert rec.special_notes == (NOTE_VIBRIO,)
        assert rec.duration == "7 jours"

    def test_fresh_water(self):
        patient = Patient(presentation=Presentation(
            entry_point=EntryPoint(aquatic_inoculation=True, water_type=WaterType.FRESH)
        ))
        rec = recommend(patient, False, False)
        assert rec.primary_antibiotic == (FRESH_WATER_PRIMARY,)
        assert rec.special_notes == (NOTE_AEROMONAS,)

    def test_aquatic_without_water_type_keeps_standard(self):
        patient = Patient(presentation=Presentation(entry_point=EntryPoint(aquatic_inoculation=True)))
        rec = recommend(patient, False, False)
        assert rec.primary_antibiotic == (STANDARD_PRIMARY,)
        assert rec.applied_rules == ()

    def test_water_type_without_aquatic_flag_is_ignored(self):
        patient = Patient(presentation=Presentation(entry_point=EntryPoint(water_type=WaterType.SALT)))
        assert recommend(patient, False, False).primary_antibiotic == (STANDARD_PRIMARY,)

    def test_diabetic_wound(self, diabetic_wound_patient):
        rec = recommend(diabetic_wound_patient, False, False)
        assert rec.primary_antibiotic == (IPPD_PRIMARY,)
        assert rec.alternative_antibiotic == (IPPD_ALTERNATIVE,)
        assert rec.duration == "10-14 jours"
        assert rec.special_notes == (NOTE_IPPD, NOTE_IPPD_ALLERGY)

    def test_wound_without_diabetes_keeps_standard(self):
        patient = Patient(presentation=Presentation(entry_point=EntryPoint(wound=True)))
        assert recommend(patient, False, False).primary_antibiotic == (STANDARD_PRIMARY,)

    def test_obesity_note_only(self, obese_patient):
        assert obese_patient.bmi == 32.0
        rec = recommend(obese_patient, False, False)
        assert rec.special_notes == (NOTE_OBESITY,)
        assert rec.primary_antibiotic == (STANDARD_PRIMARY,)
        assert rec.alternative_antibiotic == (STANDARD_ALTERNATIVE,)

    def test_obesity_threshold_is_inclusive(self):
        assert recommend(Patient(recorded_bmi=30.0), False, False).special_notes == (NOTE_OBESITY,)
        assert recommend(Patient(recorded_bmi=29.99), False, False).special_notes == ()

    def test_arteriopathy_and_renal_notes(self):
        patient = Patient(history=MedicalHistory(arteriopathy=True, renal_insufficiency=True))
        rec = recommend(patient, False, False)
        assert rec.special_notes == (NOTE_ARTERIOPATHY, NOTE_RENAL)
        assert rec.applied_rules == ("DHBNN-ARTE-001", "DHBNN-RENAL-001")


class TestRulePrecedence:
    """Several triggers on one patient: arrays last-write-wins, notes accumulate."""

    def test_bite_and_diabetic_wound(self):
        patient = Patient(
            history=MedicalHistory(diabetes=True),
            presentation=Presentation(entry_point=EntryPoint(wound=True, animal_bite_scratch=True)),
        )
        rec = recommend(patient, False, False)

        assert rec.applied_rules == ("DHBNN-BITE-001", "DHBNN-IPPD-001")
        assert rec.primary_antibiotic == (IPPD_PRIMARY,)
        assert rec.duration == "10-14 jours"
        assert rec.special_notes == (NOTE_PASTEURELLA, NOTE_IPPD, NOTE_IPPD_ALLERGY)

    def test_bite_then_salt_water(self):
        patient = Patient(presentation=Presentation(entry_point=EntryPoint(
            insect_bite=True, aquatic_inoculation=True, water_type=WaterType.SALT,
        )))
        rec = recommend(patient, False, False)

        assert rec.primary_antibiotic == (SALT_WATER_PRIMARY,)
        assert rec.alternative_antibiotic == ()
        # Duration set by the bite rule is not reset by the aquatic rule
        assert rec.duration == "5 jours"
        assert rec.special_notes == (NOTE_PASTEURELLA, NOTE_VIBRIO)

    def test_bite_salt_water_and_diabetic_wound(self):
        patient = Patient(
            history=MedicalHistory(diabetes=True),
            presentation=Presentation(entry_point=EntryPoint(
                wound=True, insect_bite=True, aquatic_inoculation=True, water_type=WaterType.SALT,
            )),
        )
        rec = recommend(patient, False, False)

        assert rec.applied_rules == ("DHBNN-BITE-001", "DHBNN-AQUA-002", "DHBNN-IPPD-001")
        # Diabetic wound runs last and overwrites both antibiotic lists
        assert rec.primary_antibiotic == (IPPD_PRIMARY,)
        assert rec.alternative_antibiotic == (IPPD_ALTERNATIVE,)
        assert rec.duration == "10-14 jours"
        assert rec.special_notes == (NOTE_PASTEURELLA, NOTE_VIBRIO, NOTE_IPPD, NOTE_IPPD_ALLERGY)

    def test_riders_follow_regimen_rules(self, diabetic_wound_patient):
        diabetic_wound_patient.recorded_bmi = 35.0
        diabetic_wound_patient.weight_kg = None
        diabetic_wound_patient.history.renal_insufficiency = True
        rec = recommend(diabetic_wound_patient, False, False)

        assert rec.applied_rules == ("DHBNN-IPPD-001", "DHBNN-OBES-001", "DHBNN-RENAL-001")
        assert rec.special_notes[-2:] == (NOTE_OBESITY, NOTE_RENAL)

    def test_registry_order(self):
        assert [r.rule_id for r in SPECIAL_CASE_RULES] == [
            "DHBNN-BITE-001",
            "DHBNN-AQUA-001",
            "DHBNN-AQUA-002",
            "DHBNN-IPPD-001",
            "DHBNN-OBES-001",
            "DHBNN-ARTE-001",
            "DHBNN-RENAL-001",
        ]


class TestDecisionEngine:
    def test_assess_is_idempotent(self, diabetic_wound_patient):
        engine = DecisionEngine()
        severity = SeverityInput()
        criteria = HospitalizationInput(social_context=True)

        first = engine.assess(diabetic_wound_patient, severity, criteria)
        second = engine.assess(diabetic_wound_patient, severity, criteria)
        assert first == second

    def test_custom_rule_registry(self, bite_patient):
        extra = SpecialCaseRule(
            rule_id="TEST-NOTE-001",
            title="Test note",
            applies=lambda p: True,
            apply=lambda p, draft: draft.special_notes.append("note de test"),
            replaces_regimen=False,
        )
        engine = DecisionEngine(rules=(extra,))
        _, rec = engine.assess(bite_patient, SeverityInput(), HospitalizationInput())

        # The default bite rule is not part of this registry
        assert rec.primary_antibiotic == (STANDARD_PRIMARY,)
        assert rec.special_notes == ("note de test",)
        assert rec.applied_rules == ("TEST-NOTE-001",)
        assert [r.rule_id for r in engine.registered_rules()] == ["TEST-NOTE-001"]

    def test_summarise(self, plain_patient):
        engine = DecisionEngine()
        outcome, rec = engine.assess(plain_patient, SeverityInput(), HospitalizationInput())
        summary = DecisionEngine.summarise(outcome, rec)

        assert summary["setting"] == "ambulatory"
        assert summary["is_urgent"] is False
        assert summary["recommendation"]["primary_antibiotic"] == [STANDARD_PRIMARY]
        assert summary["recommendation"]["applied_rules"] == []

    def test_recommendation_is_immutable(self, plain_patient):
        rec = recommend(plain_patient, False, False)
        with pytest.raises(AttributeError):
            rec.duration = "3 jours"
