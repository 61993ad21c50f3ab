from ancillary_engine.models import AncillaryService, PatientProfile
from ancillary_engine.prompts import build_patient_context, build_qualification_system_prompt


def test_guidelines_come_from_catalog_hints():
    services = [
        AncillaryService(
            code="ALPHA", name="Alpha Screen", category="Lab", repeat_policy="ONCE_ONLY",
            qualification_hints=("Polypharmacy", "Psychiatric medication"),
        ),
        AncillaryService(code="BETA", name="Beta", category="Procedure", repeat_policy="NO_LIMIT"),
    ]
    prompt = build_qualification_system_prompt(services)
    assert "- ALPHA: Alpha Screen (Lab)" in prompt
    assert "- BETA: Beta (Procedure)" in prompt
    assert "**Alpha Screen** [ALPHA] (Lab) (Once only):" in prompt
    assert "- Psychiatric medication" in prompt
    assert "**Beta**" not in prompt
    assert '"recommendations"' in prompt


def test_patient_context_defaults():
    ctx = build_patient_context(PatientProfile(patient_uuid="p-1"))
    assert "- Name: Unknown" in ctx
    assert "- Insurance: Unknown (Unknown)" in ctx
    assert "MEDICAL HISTORY:\nNot documented" in ctx
    assert "CLINICAL NOTES:\nNo additional notes" in ctx
