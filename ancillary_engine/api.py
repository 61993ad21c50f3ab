from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from .catalog import get_catalog
from .engine import AnalysisEngine, get_default_engine
from .models import AIAnalysisResult, PatientData, PatientProfile, PriorAncillaryRecord

router = APIRouter()


class AnalyzePayload(BaseModel):
    patient_uuid: str
    profile: PatientProfile
    patient_data: Optional[PatientData] = None
    prior_ancillaries: List[PriorAncillaryRecord] = Field(default_factory=list)


class EvidencePayload(BaseModel):
    ancillary_code: str
    clinical_context: str = ""


def get_engine() -> AnalysisEngine:
    return get_default_engine()


@router.get("/ping")
def ping():
    return {"status": "ok"}


@router.get("/ancillaries/catalog")
def list_catalog() -> List[Dict[str, Any]]:
    return [svc.model_dump(by_alias=True) for svc in get_catalog()]


@router.post("/ancillaries/analyze", response_model=AIAnalysisResult)
def analyze_patient(payload: AnalyzePayload, engine: AnalysisEngine = Depends(get_engine)) -> AIAnalysisResult:
    return engine.analyze(
        payload.patient_uuid,
        payload.profile,
        payload.patient_data,
        payload.prior_ancillaries,
    )


@router.post("/ancillaries/evidence")
def evidence_summary(payload: EvidencePayload, engine: AnalysisEngine = Depends(get_engine)) -> Dict[str, str]:
    summary = engine.evidence_summary(payload.ancillary_code, payload.clinical_context)
    return {"ancillary_code": payload.ancillary_code, "summary": summary}


@router.get("/ancillaries/events/summary")
def events_summary(day: Optional[str] = None, engine: AnalysisEngine = Depends(get_engine)) -> Dict[str, int]:
    return engine.event_summary(day)
