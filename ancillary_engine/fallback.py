"""
Deterministic fallback classifier.

Used when the model path is unavailable. Risk flags come from fixed keyword
matching over the profile text; services come from FALLBACK_RULES, where a
rule fires when ANY of its flags is present.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .catalog import get_service
from .cooldown import evaluate_for_code
from .models import (
    AIAnalysisResult,
    AncillaryRecommendation,
    PatientProfile,
    PriorAncillaryRecord,
    sort_recommendations,
)

logger = logging.getLogger("ancillary.fallback")

MAX_RULE_INDICATIONS = 3
POLYPHARMACY_MIN_LINES = 4

FALLBACK_FOLLOW_UP = "Review recommendations and schedule indicated services based on clinical judgment."


@dataclass(frozen=True)
class RiskFlag:
    key: str
    label: str
    keywords: Tuple[str, ...] = ()
    patterns: Tuple[str, ...] = ()  # regexes, for words that are also common substrings


RISK_FLAGS: Tuple[RiskFlag, ...] = (
    RiskFlag("hypertension", "Hypertension", ("hypertension", "htn", "high blood pressure")),
    RiskFlag("diabetes", "Diabetes", ("diabetes", "dm", "metformin", "glipizide", "insulin")),
    RiskFlag("cardiac", "Cardiac disease", ("cardiac", "heart", "cad", "chf", "coronary", "cardiomyopathy")),
    RiskFlag("stroke", "Stroke/TIA history", ("stroke", "tia", "cerebrovascular")),
    RiskFlag("cognitive", "Cognitive complaints", ("memory", "cognitive", "dementia", "confusion", "brain fog")),
    RiskFlag("anxiety", "Anxiety/depression", ("anxiety", "depression", "sertraline", "escitalopram", "ssri")),
    RiskFlag("pad", "Peripheral arterial disease", ("pad", "peripheral", "claudication", "leg pain")),
    RiskFlag("kidney", "Kidney disease", ("kidney", "ckd", "renal", "creatinine")),
    RiskFlag("liver", "Liver disease", ("liver", "hepat", "cirrhosis")),
    RiskFlag("edema", "Edema/DVT signs", ("edema", "swelling", "dvt")),
    RiskFlag("hyperlipidemia", "Hyperlipidemia", ("hyperlipidemia", "cholesterol", "statin", "atorvastatin")),
    RiskFlag("obesity", "Obesity", ("obesity", "obese", "bmi 3")),
    RiskFlag("smoking", "Smoking history", ("smok", "tobacco")),
    RiskFlag("musculoskeletal", "Musculoskeletal pain", ("back pain", "joint", "arthritis")),
    RiskFlag("dizziness", "Dizziness/syncope", ("dizz", "syncope", "lightheaded", "orthostatic")),
    RiskFlag("fatigue", "Fatigue", ("fatigue", "tired", "exercise intolerance")),
    RiskFlag("neuropathy", "Neuropathy", ("neuropathy", "numbness", "tingling", "gabapentin")),
    # Service-specific findings
    RiskFlag("abdominal", "Abdominal symptoms", ("abdominal pain", "weight loss")),
    RiskFlag("arm_symptoms", "Arm symptoms", patterns=(r"\barms?\b",)),
    RiskFlag("venous", "Venous disease", ("dvt", "varicose")),
    RiskFlag("arm_swelling", "Arm swelling/catheter history", ("arm swelling", "catheter")),
    RiskFlag("exertional", "Exertional symptoms", ("exertional", "chest pain")),
    RiskFlag("aortic", "Aortic findings", ("aneurysm", "pulsation")),
    RiskFlag("aaa_screening", "AAA screening criteria", ("aaa",), patterns=(r"\bmale\b",)),
)

_FLAG_LABELS: Dict[str, str] = {f.key: f.label for f in RISK_FLAGS}

POLYPHARMACY_FLAG = RiskFlag("polypharmacy", "Polypharmacy")
_FLAG_LABELS[POLYPHARMACY_FLAG.key] = POLYPHARMACY_FLAG.label

# Reported in risk_factors_identified, in this order.
HEADLINE_RISK_FLAGS: Tuple[str, ...] = ("hypertension", "diabetes", "cardiac", "hyperlipidemia")


@dataclass(frozen=True)
class FallbackRule:
    code: str
    any_of: Tuple[str, ...]
    score: int
    priority: str
    reasoning: str
    citations: Tuple[str, ...]


FALLBACK_RULES: Tuple[FallbackRule, ...] = (
    FallbackRule(
        "BRAINWAVE",
        ("hypertension", "diabetes", "cognitive", "anxiety", "stroke", "obesity", "neuropathy"),
        85, "high",
        "Neuro-cognitive assessment indicated based on vascular/metabolic risk factors.",
        ("SPRINT-MIND Study (JAMA, 2019)", "Cognitive Decline & HTN (Lancet Neurol, 2020)"),
    ),
    FallbackRule(
        "VITALWAVE",
        ("hypertension", "diabetes", "cardiac", "dizziness", "fatigue", "anxiety", "neuropathy"),
        85, "high",
        "Autonomic function assessment for cardiovascular risk stratification.",
        ("HRV Guidelines (Circulation, 2017)", "Autonomic Dysfunction in DM (Diabetes Care, 2018)"),
    ),
    FallbackRule(
        "PGX",
        ("polypharmacy", "anxiety", "cardiac"),
        80, "medium",
        "Pharmacogenomic testing to optimize medication therapy.",
        ("CPIC Guidelines", "PREDICT Study (Clin Pharmacol Ther, 2020)"),
    ),
    FallbackRule(
        "STEROID_INJ",
        ("musculoskeletal",),
        75, "medium",
        "Pain management for musculoskeletal conditions.",
        ("AAOS Guidelines for Joint Injections",),
    ),
    FallbackRule(
        "US_CAROTID_93880",
        ("hypertension", "diabetes", "stroke", "cardiac", "smoking", "hyperlipidemia"),
        85, "high",
        "Stroke risk assessment with vascular risk factors.",
        ("AIUM Carotid Guidelines", "USPSTF Recommendations"),
    ),
    FallbackRule(
        "US_ECHO_93306",
        ("cardiac", "hypertension", "edema", "fatigue"),
        85, "high",
        "Cardiac structure/function evaluation.",
        ("ACC/AHA Echo Guidelines (2019)",),
    ),
    FallbackRule(
        "US_RENAL_ART_VEIN_93975",
        ("hypertension", "kidney"),
        80, "medium",
        "Renovascular assessment for resistant hypertension/CKD.",
        ("AHA/ACC Resistant HTN Guidelines",),
    ),
    FallbackRule(
        "US_ABD_ART_CELIAC_SMA_IMA_93975",
        ("cardiac", "hypertension", "abdominal"),
        75, "medium",
        "Mesenteric vasculature assessment.",
        ("ACG Mesenteric Ischemia Guidelines",),
    ),
    FallbackRule(
        "US_IVC_93975",
        ("cardiac", "edema"),
        75, "medium",
        "Volume status and cardiac preload assessment.",
        ("Echo Chamber Quantification (JASE, 2015)",),
    ),
    FallbackRule(
        "US_LIVER_PORTAL_HEPATIC_93975",
        ("liver", "diabetes", "obesity"),
        75, "medium",
        "Hepatic vasculature assessment for liver disease/NAFLD.",
        ("AASLD NAFLD Guidelines",),
    ),
    FallbackRule(
        "US_LE_ARTERIAL_93925",
        ("pad", "diabetes", "neuropathy", "smoking"),
        85, "high",
        "PAD screening in high-risk patient.",
        ("ADA Standards of Care", "SVS PAD Guidelines"),
    ),
    FallbackRule(
        "US_UE_ARTERIAL_93930",
        ("cardiac", "arm_symptoms"),
        70, "low",
        "Upper extremity arterial assessment.",
        ("SVS Vascular Guidelines",),
    ),
    FallbackRule(
        "US_LE_VENOUS_93971",
        ("edema", "venous"),
        80, "high",
        "DVT/venous insufficiency assessment.",
        ("ACCP VTE Guidelines",),
    ),
    FallbackRule(
        "US_UE_VENOUS_93970",
        ("arm_swelling",),
        75, "medium",
        "Upper extremity venous assessment.",
        ("ACCP VTE Guidelines",),
    ),
    FallbackRule(
        "US_STRESS_ECHO_93350",
        ("cardiac", "exertional"),
        80, "high",
        "Stress-induced ischemia evaluation.",
        ("ACC Appropriate Use Criteria for Stress Testing",),
    ),
    FallbackRule(
        "US_AORTA_ILIAC_93978",
        ("smoking", "hypertension", "cardiac", "aortic"),
        80, "high",
        "Aortic/iliac vascular assessment.",
        ("SVS AAA Guidelines",),
    ),
    FallbackRule(
        "US_AAA_SCREEN_G0389",
        ("smoking", "hypertension", "aaa_screening"),
        80, "high",
        "AAA screening for high-risk patient.",
        ("USPSTF AAA Screening Recommendation",),
    ),
)


def _profile_text(profile: PatientProfile) -> str:
    parts = [profile.medical_history or "", profile.medications or "", profile.patient_notes or ""]
    return " ".join(parts).lower()


def _flag_present(flag: RiskFlag, text: str) -> bool:
    if any(k in text for k in flag.keywords):
        return True
    return any(re.search(p, text) for p in flag.patterns)


def _is_polypharmacy(medications: Optional[str]) -> bool:
    lines = [ln for ln in (medications or "").split("\n") if ln.strip()]
    return len(lines) >= POLYPHARMACY_MIN_LINES


def detect_risk_flags(profile: PatientProfile) -> Set[str]:
    text = _profile_text(profile)
    flags = {f.key for f in RISK_FLAGS if _flag_present(f, text)}
    if _is_polypharmacy(profile.medications):
        flags.add(POLYPHARMACY_FLAG.key)
    return flags


def headline_risk_factors(flags: Set[str]) -> List[str]:
    return [_FLAG_LABELS[k] for k in HEADLINE_RISK_FLAGS if k in flags]


def rule_indications(rule: FallbackRule, flags: Set[str]) -> List[str]:
    present = [_FLAG_LABELS[k] for k in rule.any_of if k in flags]
    return present[:MAX_RULE_INDICATIONS]


def classify(
    patient_uuid: str,
    profile: PatientProfile,
    prior_ancillaries: Optional[Iterable[PriorAncillaryRecord]] = None,
    payor_type: Optional[str] = None,
    today: Optional[date] = None,
) -> AIAnalysisResult:
    prior = list(prior_ancillaries or [])
    payor = payor_type or profile.payor_type
    flags = detect_risk_flags(profile)

    recommendations: List[AncillaryRecommendation] = []
    for rule in FALLBACK_RULES:
        if not any(k in flags for k in rule.any_of):
            continue
        service = get_service(rule.code)
        if service is None:
            logger.debug("Fallback rule %s has no catalog entry; skipped", rule.code)
            continue
        cooldown = evaluate_for_code(service, payor, prior, today=today)
        recommendations.append(
            AncillaryRecommendation(
                ancillary_code=service.code,
                ancillary_name=service.name,
                category=service.category,
                qualification_score=max(0, min(100, rule.score)),
                qualification_reasoning=rule.reasoning,
                clinical_indications=rule_indications(rule, flags),
                evidence_citations=list(rule.citations),
                priority=rule.priority,
                cooldown_status=cooldown.status,
                eligible_date=cooldown.eligible_date,
            )
        )

    recommendations = sort_recommendations(recommendations)
    logger.info(
        "fallback.classify patient=%s flags=%d recommendations=%d",
        patient_uuid,
        len(flags),
        len(recommendations),
    )
    return AIAnalysisResult(
        patient_uuid=patient_uuid,
        recommendations=recommendations,
        overall_summary=(
            f"Deterministic analysis identified {len(recommendations)} potentially indicated ancillary "
            "services based on documented conditions and risk factors. AI-powered analysis recommended "
            "for comprehensive clinical context."
        ),
        risk_factors_identified=headline_risk_factors(flags),
        suggested_follow_up=FALLBACK_FOLLOW_UP,
    )
