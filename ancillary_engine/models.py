from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


# =========================
# Shared strict base model (Pydantic v2)
# =========================

class StrictBaseModel(BaseModel):
    """
    Strict, assignment-validating base model (Pydantic v2).
    - extra fields are forbidden (schema discipline)
    - assignment is validated (catches subtle runtime drift)
    """
    model_config = ConfigDict(extra="forbid", validate_assignment=True)


RepeatPolicy = Literal["NO_LIMIT", "ONCE_ONLY", "COOLDOWN"]
PayorType = Literal["Medicare", "PPO", "Medicaid", "HMO", "Other", "Unknown"]
Priority = Literal["high", "medium", "low"]
CooldownStatus = Literal["eligible", "in_cooldown", "once_only_completed", "no_limit"]

PRIORITIES: Tuple[str, ...] = ("high", "medium", "low")


# =========================
# Catalog
# =========================

class AncillaryService(BaseModel):
    """
    One catalog entry. Immutable once loaded.
    Cooldown months are only consulted when repeat_policy is COOLDOWN.
    """
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    code: str = Field(..., alias="ancillary_code", min_length=1)
    name: str = Field(..., alias="ancillary_name")
    category: str
    repeat_policy: RepeatPolicy
    cooldown_months_medicare: Optional[int] = Field(default=None, ge=0)
    cooldown_months_ppo: Optional[int] = Field(default=None, ge=0)
    qualification_hints: Tuple[str, ...] = ()


# =========================
# Patient inputs
# =========================

class PatientProfile(StrictBaseModel):
    patient_uuid: str
    medical_history: Optional[str] = None
    medications: Optional[str] = None
    patient_notes: Optional[str] = None
    payor_type: Optional[PayorType] = None
    last_updated: Optional[str] = None


class PatientData(StrictBaseModel):
    """Demographic context for the prompt; never used for rule matching."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    payor_type: Optional[str] = None
    payor_name: Optional[str] = None


class PriorAncillaryRecord(StrictBaseModel):
    ancillary_code: str
    completed_date: date

    @field_validator("completed_date", mode="before")
    @classmethod
    def _coerce_completed_date(cls, value):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, str):
            s = value.strip()
            # Accept full ISO timestamps ("2024-03-01T10:00:00Z") as well as plain dates.
            if len(s) > 10 and s[4:5] == "-" and s[10:11] in {"T", " "}:
                return s[:10]
            return s
        return value


# =========================
# Engine outputs
# =========================

class CooldownResult(StrictBaseModel):
    status: CooldownStatus
    eligible_date: Optional[date] = None


class AncillaryRecommendation(StrictBaseModel):
    ancillary_code: str
    ancillary_name: str
    category: str
    qualification_score: int = Field(..., ge=0, le=100)
    qualification_reasoning: str
    clinical_indications: List[str] = Field(default_factory=list)
    evidence_citations: List[str] = Field(default_factory=list)
    priority: Priority = "medium"
    cooldown_status: CooldownStatus
    eligible_date: Optional[date] = None


class AIAnalysisResult(StrictBaseModel):
    patient_uuid: str
    analysis_timestamp: datetime = Field(default_factory=_now_utc)
    recommendations: List[AncillaryRecommendation] = Field(default_factory=list)
    overall_summary: str = ""
    risk_factors_identified: List[str] = Field(default_factory=list)
    suggested_follow_up: str = ""


def sort_recommendations(recs: List[AncillaryRecommendation]) -> List[AncillaryRecommendation]:
    # Stable: ties keep catalog/rule order.
    return sorted(recs, key=lambda r: r.qualification_score, reverse=True)
