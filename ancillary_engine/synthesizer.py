from __future__ import annotations

import json
import logging
from datetime import date
from typing import Iterable, List, Optional

from . import config
from .catalog import get_catalog, get_service
from .cooldown import evaluate_for_code
from .llm import TextGenerator
from .models import (
    AIAnalysisResult,
    AncillaryRecommendation,
    PatientData,
    PatientProfile,
    PriorAncillaryRecord,
    sort_recommendations,
)
from .prompts import build_qualification_system_prompt, build_qualification_user_prompt
from .validation import coerce_analysis

logger = logging.getLogger("ancillary.synthesizer")


class SynthesisError(RuntimeError):
    pass


def parse_model_json(content: str) -> dict:
    if not (content or "").strip():
        raise SynthesisError("No response from AI")
    try:
        parsed = json.loads(content)
    except json.JSONDecodeError as exc:
        raise SynthesisError(f"AI response was not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise SynthesisError("AI response JSON was not an object")
    return parsed


class PrimarySynthesizer:
    def __init__(self, client: TextGenerator, temperature: Optional[float] = None) -> None:
        self.client = client
        self.temperature = config.ANCILLARY_TEMPERATURE if temperature is None else temperature

    def synthesize(
        self,
        patient_uuid: str,
        profile: PatientProfile,
        patient_data: Optional[PatientData] = None,
        prior_ancillaries: Optional[Iterable[PriorAncillaryRecord]] = None,
        today: Optional[date] = None,
    ) -> AIAnalysisResult:
        prior = list(prior_ancillaries or [])
        data = patient_data or PatientData()
        payor = data.payor_type or profile.payor_type

        messages = [
            {"role": "system", "content": build_qualification_system_prompt(get_catalog())},
            {"role": "user", "content": build_qualification_user_prompt(profile, data)},
        ]
        content = self.client.complete(
            messages,
            temperature=self.temperature,
            json_mode=True,
            stage="qualification",
        )
        coerced = coerce_analysis(parse_model_json(content), get_service)

        recommendations: List[AncillaryRecommendation] = []
        for cand in coerced.candidates:
            cooldown = evaluate_for_code(cand.service, payor, prior, today=today)
            recommendations.append(
                AncillaryRecommendation(
                    ancillary_code=cand.service.code,
                    ancillary_name=cand.service.name,
                    category=cand.service.category,
                    qualification_score=cand.qualification_score,
                    qualification_reasoning=cand.qualification_reasoning,
                    clinical_indications=cand.clinical_indications,
                    evidence_citations=cand.evidence_citations,
                    priority=cand.priority,
                    cooldown_status=cooldown.status,
                    eligible_date=cooldown.eligible_date,
                )
            )

        logger.info(
            "synthesizer.qualification patient=%s recommendations=%d dropped=%d",
            patient_uuid,
            len(recommendations),
            len(coerced.dropped_codes),
        )
        return AIAnalysisResult(
            patient_uuid=patient_uuid,
            recommendations=sort_recommendations(recommendations),
            overall_summary=coerced.overall_summary,
            risk_factors_identified=coerced.risk_factors_identified,
            suggested_follow_up=coerced.suggested_follow_up,
        )
