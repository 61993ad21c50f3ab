from __future__ import annotations

from typing import Iterable, List, Optional

from .models import AncillaryService, PatientData, PatientProfile

QUALIFICATION_SYSTEM_HEADER = (
    "You are an expert clinical decision support AI for a preventive care practice. "
    "Your goal is to MAXIMIZE patient qualification for ancillary services while maintaining "
    "clinical appropriateness.\n\n"
    "IMPORTANT: Be AGGRESSIVE in finding clinical justifications. If there is ANY reasonable "
    "medical indication, recommend the service. The practice wants to catch ALL patients who could benefit."
)

QUALIFICATION_OUTPUT_RULES = (
    "For each recommendation, provide:\n"
    "1. A qualification score (0-100) - be generous, default to higher scores\n"
    "2. Specific clinical indications found in the patient data\n"
    "3. Peer-reviewed evidence supporting the test\n"
    "4. Priority level (high, medium or low)\n\n"
    "Only use ancillary_code values from the list above.\n\n"
    "Format your response as JSON matching this structure:\n"
    "{\n"
    '  "recommendations": [\n'
    "    {\n"
    '      "ancillary_code": "CODE",\n'
    '      "qualification_score": 85,\n'
    '      "clinical_indications": ["indication1", "indication2"],\n'
    '      "evidence_citations": ["Study name (Journal, Year)"],\n'
    '      "priority": "high"\n'
    "    }\n"
    "  ],\n"
    '  "risk_factors_identified": ["factor1", "factor2"],\n'
    '  "overall_summary": "Summary of patient\'s clinical picture and recommendations",\n'
    '  "suggested_follow_up": "Follow-up recommendations"\n'
    "}"
)

QUALIFICATION_USER_PREFIX = (
    "Analyze this patient for ALL potentially appropriate ancillary services. "
    "Be aggressive in finding indications:\n\n"
)

EVIDENCE_SYSTEM = (
    "You are a medical evidence summarizer. Provide concise, peer-reviewed evidence supporting the use of "
    "{service_name} for the given clinical context. Include study names, journals, and key findings. "
    "Format for clinical documentation."
)

EVIDENCE_USER = "Summarize evidence for {service_name} in this clinical context:\n{clinical_context}"


def _service_line(svc: AncillaryService) -> str:
    return f"- {svc.code}: {svc.name} ({svc.category})"


def _guideline_block(svc: AncillaryService) -> List[str]:
    if not svc.qualification_hints:
        return []
    policy = {"NO_LIMIT": " (No limit)", "ONCE_ONLY": " (Once only)"}.get(svc.repeat_policy, "")
    lines = [f"**{svc.name}** [{svc.code}] ({svc.category}){policy}:"]
    lines.extend(f"- {hint}" for hint in svc.qualification_hints)
    return lines


def build_qualification_system_prompt(catalog: Iterable[AncillaryService]) -> str:
    services = list(catalog)
    parts: List[str] = [QUALIFICATION_SYSTEM_HEADER, "", "Available ancillary services:"]
    parts.extend(_service_line(s) for s in services)
    parts.extend(["", "QUALIFICATION GUIDELINES (be liberal):"])
    for svc in services:
        block = _guideline_block(svc)
        if block:
            parts.append("")
            parts.extend(block)
    parts.extend(["", QUALIFICATION_OUTPUT_RULES])
    return "\n".join(parts)


def build_patient_context(profile: PatientProfile, patient_data: Optional[PatientData] = None) -> str:
    data = patient_data or PatientData()
    name = f"{data.first_name or 'Unknown'} {data.last_name or ''}".rstrip()
    payor = data.payor_type or profile.payor_type or "Unknown"
    return (
        "PATIENT INFORMATION:\n"
        f"- Name: {name}\n"
        f"- DOB: {data.date_of_birth or 'Unknown'}\n"
        f"- Insurance: {payor} ({data.payor_name or 'Unknown'})\n\n"
        "MEDICAL HISTORY:\n"
        f"{profile.medical_history or 'Not documented'}\n\n"
        "CURRENT MEDICATIONS:\n"
        f"{profile.medications or 'Not documented'}\n\n"
        "CLINICAL NOTES:\n"
        f"{profile.patient_notes or 'No additional notes'}\n"
    )


def build_qualification_user_prompt(profile: PatientProfile, patient_data: Optional[PatientData] = None) -> str:
    return QUALIFICATION_USER_PREFIX + build_patient_context(profile, patient_data)
