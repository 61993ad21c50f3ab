from ancillary_engine.analysis_log import AnalysisEventLog
from ancillary_engine.api import (
    AnalyzePayload,
    EvidencePayload,
    analyze_patient,
    evidence_summary,
    events_summary,
    list_catalog,
    ping,
)
from ancillary_engine.engine import AnalysisEngine


class BrokenClient:
    def complete(self, messages, *, temperature, json_mode=False, max_tokens=None, stage="completion"):
        raise ConnectionError("upstream unavailable")


def _engine(tmp_path):
    return AnalysisEngine(client=BrokenClient(), event_log=AnalysisEventLog(log_dir=str(tmp_path)))


def test_ping():
    assert ping() == {"status": "ok"}


def test_catalog_listing_uses_wire_names():
    rows = list_catalog()
    assert rows
    assert {"ancillary_code", "ancillary_name", "category", "repeat_policy"} <= set(rows[0])


def test_analyze_endpoint_falls_back(tmp_path):
    payload = AnalyzePayload.model_validate({
        "patient_uuid": "p-9",
        "profile": {
            "patient_uuid": "p-9",
            "medical_history": "Hypertension\nType 2 Diabetes",
            "medications": "Lisinopril 10 mg",
            "payor_type": "PPO",
        },
        "prior_ancillaries": [{"ancillary_code": "VITALWAVE", "completed_date": "2000-01-01"}],
    })
    result = analyze_patient(payload, engine=_engine(tmp_path))
    codes = [r.ancillary_code for r in result.recommendations]
    assert "BRAINWAVE" in codes and "VITALWAVE" in codes
    statuses = {r.ancillary_code: r.cooldown_status for r in result.recommendations}
    assert statuses["VITALWAVE"] == "eligible"


def test_evidence_endpoint_never_raises(tmp_path):
    engine = _engine(tmp_path)
    out = evidence_summary(EvidencePayload(ancillary_code="PGX", clinical_context="polypharmacy"), engine=engine)
    assert out["ancillary_code"] == "PGX"
    assert "Pharmacogenomics" in out["summary"]

    out = evidence_summary(EvidencePayload(ancillary_code="UNKNOWN"), engine=engine)
    assert out["summary"] == "Service not found in catalog."


def test_event_summary_reads_engine_log(tmp_path):
    engine = _engine(tmp_path)
    payload = AnalyzePayload(
        patient_uuid="p-9",
        profile={"patient_uuid": "p-9", "medical_history": "Hypertension"},
    )
    analyze_patient(payload, engine=engine)
    counts = events_summary(engine=engine)
    assert counts.get("events_analysis.fallback") == 1
