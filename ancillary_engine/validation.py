"""
Coercion of the model's JSON into typed recommendations.

All defaulting, clamping and dropping for the model path happens here:
- unknown codes and non-object entries are dropped (not errors)
- scores default to 75 and are clamped to 0..100
- indications/citations become lists of non-empty strings
- invalid priorities become "medium"
- a repeated code keeps its first occurrence
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .models import PRIORITIES, AncillaryService

logger = logging.getLogger("ancillary.validation")

DEFAULT_SCORE = 75
DEFAULT_PRIORITY = "medium"
DEFAULT_SUMMARY = "Analysis complete."
DEFAULT_FOLLOW_UP = "Schedule recommended ancillary services."
GENERIC_REASONING = "Clinical evaluation recommended based on patient profile."


@dataclass
class CoercedCandidate:
    service: AncillaryService
    qualification_score: int
    qualification_reasoning: str
    clinical_indications: List[str]
    evidence_citations: List[str]
    priority: str


@dataclass
class CoercedAnalysis:
    candidates: List[CoercedCandidate] = field(default_factory=list)
    overall_summary: str = DEFAULT_SUMMARY
    risk_factors_identified: List[str] = field(default_factory=list)
    suggested_follow_up: str = DEFAULT_FOLLOW_UP
    dropped_codes: List[str] = field(default_factory=list)


def clamp_score(value: Any, default: int = DEFAULT_SCORE) -> int:
    if value is None or isinstance(value, bool):
        return default
    # JSON integers are unbounded; compare before any float conversion.
    if isinstance(value, int):
        return max(0, min(100, value))
    try:
        num = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(num):
        return default
    if math.isinf(num):
        return 100 if num > 0 else 0
    # A literal 0 is a real score, unlike a missing one.
    return max(0, min(100, int(round(num))))


def coerce_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    out: List[str] = []
    for item in value:
        if item is None or isinstance(item, (dict, list)):
            continue
        s = str(item).strip()
        if s:
            out.append(s)
    return out


def coerce_text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def coerce_priority(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in PRIORITIES:
        return value.strip().lower()
    return DEFAULT_PRIORITY


def build_reasoning(indications: List[str]) -> str:
    if not indications:
        return GENERIC_REASONING
    return f"Indicated based on: {'; '.join(indications)}."


def coerce_analysis(
    raw: Dict[str, Any],
    lookup: Callable[[Any], Optional[AncillaryService]],
) -> CoercedAnalysis:
    if not isinstance(raw, dict):
        raise ValueError("Analysis JSON was not an object")

    out = CoercedAnalysis(
        overall_summary=coerce_text(raw.get("overall_summary"), DEFAULT_SUMMARY),
        risk_factors_identified=coerce_str_list(raw.get("risk_factors_identified")),
        suggested_follow_up=coerce_text(raw.get("suggested_follow_up"), DEFAULT_FOLLOW_UP),
    )

    items = raw.get("recommendations")
    if not isinstance(items, list):
        items = []

    seen = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        code = item.get("ancillary_code")
        service = lookup(code)
        if service is None:
            out.dropped_codes.append(str(code))
            continue
        if service.code in seen:
            continue
        seen.add(service.code)
        indications = coerce_str_list(item.get("clinical_indications"))
        out.candidates.append(
            CoercedCandidate(
                service=service,
                qualification_score=clamp_score(item.get("qualification_score")),
                qualification_reasoning=build_reasoning(indications),
                clinical_indications=indications,
                evidence_citations=coerce_str_list(item.get("evidence_citations")),
                priority=coerce_priority(item.get("priority")),
            )
        )

    if out.dropped_codes:
        logger.info("Dropped %d unknown ancillary codes: %s", len(out.dropped_codes), out.dropped_codes)
    return out
