from .catalog import get_catalog, get_service
from .cooldown import evaluate
from .engine import AnalysisEngine, analyze_patient_for_ancillaries, generate_evidence_summary
from .fallback import classify
from .models import (
    AIAnalysisResult,
    AncillaryRecommendation,
    AncillaryService,
    PatientData,
    PatientProfile,
    PriorAncillaryRecord,
)

__all__ = [
    "AnalysisEngine",
    "analyze_patient_for_ancillaries",
    "generate_evidence_summary",
    "classify",
    "evaluate",
    "get_catalog",
    "get_service",
    "AIAnalysisResult",
    "AncillaryRecommendation",
    "AncillaryService",
    "PatientData",
    "PatientProfile",
    "PriorAncillaryRecord",
]
