"""
Public entry point for ancillary analysis.

analyze() tries the model path first and falls back to the rule table on any
failure; evidence_summary() degrades to a fixed sentence. Neither raises.
"""
from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Any, Dict, Iterable, Optional

from . import config
from .analysis_log import (
    EVENT_EVIDENCE_FALLBACK,
    EVENT_EVIDENCE_NOT_FOUND,
    EVENT_EVIDENCE_OK,
    EVENT_FALLBACK,
    EVENT_PRIMARY,
    AnalysisEventLog,
    event_log as default_event_log,
)
from .catalog import CatalogError, get_service
from .fallback import classify
from .llm import OpenAIChatClient, TextGenerator
from .models import AIAnalysisResult, PatientData, PatientProfile, PriorAncillaryRecord
from .prompts import EVIDENCE_SYSTEM, EVIDENCE_USER
from .synthesizer import PrimarySynthesizer

logger = logging.getLogger("ancillary.engine")

SERVICE_NOT_FOUND = "Service not found in catalog."
EVIDENCE_UNAVAILABLE = "Evidence summary unavailable."


ANALYSIS_UNAVAILABLE = "Ancillary analysis unavailable; service catalog could not be loaded."
FOLLOW_UP_UNAVAILABLE = "Review ancillary services manually."


def evidence_fallback_text(service_name: str) -> str:
    return f"{service_name} is indicated per standard clinical guidelines."


def empty_analysis(patient_uuid: str) -> AIAnalysisResult:
    return AIAnalysisResult(
        patient_uuid=patient_uuid,
        overall_summary=ANALYSIS_UNAVAILABLE,
        suggested_follow_up=FOLLOW_UP_UNAVAILABLE,
    )


class AnalysisEngine:
    def __init__(
        self,
        client: Optional[TextGenerator] = None,
        synthesizer: Optional[PrimarySynthesizer] = None,
        event_log: Optional[AnalysisEventLog] = None,
    ) -> None:
        self._client = client
        self._synthesizer = synthesizer
        self._event_log = event_log or default_event_log
        self._lock = threading.Lock()

    def _get_client(self) -> TextGenerator:
        with self._lock:
            if self._client is None:
                self._client = OpenAIChatClient()
            return self._client

    def _get_synthesizer(self) -> PrimarySynthesizer:
        if self._synthesizer is None:
            client = self._get_client()
            with self._lock:
                if self._synthesizer is None:
                    self._synthesizer = PrimarySynthesizer(client)
        return self._synthesizer

    def _record(self, event_type: str, meta: Dict[str, Any]) -> None:
        try:
            self._event_log.log_event(event_type, meta)
        except Exception as exc:
            logger.warning("Event log failed for %s: %s", event_type, exc)

    def analyze(
        self,
        patient_uuid: str,
        profile: PatientProfile,
        patient_data: Optional[PatientData] = None,
        prior_ancillaries: Optional[Iterable[PriorAncillaryRecord]] = None,
        today: Optional[date] = None,
    ) -> AIAnalysisResult:
        prior = list(prior_ancillaries or [])
        data = patient_data or PatientData()
        try:
            result = self._get_synthesizer().synthesize(
                patient_uuid, profile, data, prior, today=today
            )
        except Exception as exc:
            logger.warning("AI analysis failed for patient=%s; using fallback: %s", patient_uuid, exc)
            try:
                result = classify(
                    patient_uuid,
                    profile,
                    prior,
                    payor_type=data.payor_type or profile.payor_type,
                    today=today,
                )
            except Exception as fallback_exc:
                logger.error("Fallback analysis failed for patient=%s: %s", patient_uuid, fallback_exc)
                result = empty_analysis(patient_uuid)
            self._record(
                EVENT_FALLBACK,
                {"patient_uuid": patient_uuid, "error": type(exc).__name__, "count": len(result.recommendations)},
            )
            return result

        self._record(EVENT_PRIMARY, {"patient_uuid": patient_uuid, "count": len(result.recommendations)})
        return result

    def evidence_summary(self, ancillary_code: str, clinical_context: str) -> str:
        try:
            service = get_service(ancillary_code)
        except CatalogError as exc:
            logger.error("Evidence summary skipped, catalog unavailable: %s", exc)
            self._record(EVENT_EVIDENCE_FALLBACK, {"ancillary_code": str(ancillary_code), "error": type(exc).__name__})
            return EVIDENCE_UNAVAILABLE
        if service is None:
            self._record(EVENT_EVIDENCE_NOT_FOUND, {"ancillary_code": str(ancillary_code)})
            return SERVICE_NOT_FOUND

        messages = [
            {"role": "system", "content": EVIDENCE_SYSTEM.format(service_name=service.name)},
            {
                "role": "user",
                "content": EVIDENCE_USER.format(
                    service_name=service.name,
                    clinical_context=clinical_context or "",
                ),
            },
        ]
        try:
            text = self._get_client().complete(
                messages,
                temperature=config.EVIDENCE_TEMPERATURE,
                max_tokens=config.EVIDENCE_MAX_TOKENS,
                stage="evidence",
            )
        except Exception as exc:
            logger.warning("Evidence summary failed for %s: %s", service.code, exc)
            self._record(EVENT_EVIDENCE_FALLBACK, {"ancillary_code": service.code, "error": type(exc).__name__})
            return evidence_fallback_text(service.name)

        self._record(EVENT_EVIDENCE_OK, {"ancillary_code": service.code})
        return (text or "").strip() or EVIDENCE_UNAVAILABLE

    def event_summary(self, day: Optional[str] = None) -> Dict[str, int]:
        return self._event_log.summarize_day(day)


_DEFAULT_ENGINE: Optional[AnalysisEngine] = None
_DEFAULT_LOCK = threading.Lock()


def get_default_engine() -> AnalysisEngine:
    global _DEFAULT_ENGINE
    with _DEFAULT_LOCK:
        if _DEFAULT_ENGINE is None:
            _DEFAULT_ENGINE = AnalysisEngine()
        return _DEFAULT_ENGINE


def analyze_patient_for_ancillaries(
    patient_uuid: str,
    profile: PatientProfile,
    patient_data: Optional[PatientData] = None,
    prior_ancillaries: Optional[Iterable[PriorAncillaryRecord]] = None,
) -> AIAnalysisResult:
    return get_default_engine().analyze(patient_uuid, profile, patient_data, prior_ancillaries)


def generate_evidence_summary(ancillary_code: str, clinical_context: str) -> str:
    return get_default_engine().evidence_summary(ancillary_code, clinical_context)
