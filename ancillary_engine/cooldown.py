"""
Repeat/cooldown gating for ancillary services.

Both reasoning paths call evaluate(); it is the only place eligibility is decided.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta

from .models import AncillaryService, CooldownResult, PriorAncillaryRecord


def _today_utc() -> date:
    return datetime.now(timezone.utc).date()


def cooldown_months_for(service: AncillaryService, payor_type: Optional[str]) -> Optional[int]:
    if payor_type == "Medicare":
        return service.cooldown_months_medicare
    return service.cooldown_months_ppo


def evaluate(
    service: AncillaryService,
    payor_type: Optional[str],
    last_completed_date: Optional[date] = None,
    today: Optional[date] = None,
) -> CooldownResult:
    """
    Compute the cooldown status of one service for one patient.

    NO_LIMIT services are always "no_limit". ONCE_ONLY services are
    "once_only_completed" as soon as any completion exists. COOLDOWN services
    use the Medicare duration for Medicare patients and the PPO duration for
    everyone else; a missing duration means the service is never gated.
    """
    if service.repeat_policy == "NO_LIMIT":
        return CooldownResult(status="no_limit")

    if service.repeat_policy == "ONCE_ONLY":
        if last_completed_date is not None:
            return CooldownResult(status="once_only_completed")
        return CooldownResult(status="eligible")

    if last_completed_date is None:
        return CooldownResult(status="eligible")

    months = cooldown_months_for(service, payor_type)
    if not months:
        return CooldownResult(status="eligible")

    eligible_date = last_completed_date + relativedelta(months=months)
    if (today or _today_utc()) >= eligible_date:
        return CooldownResult(status="eligible")
    return CooldownResult(status="in_cooldown", eligible_date=eligible_date)


def latest_completion(code: str, prior: Optional[Iterable[PriorAncillaryRecord]]) -> Optional[date]:
    # Most recent completion wins when a code was done more than once.
    dates = [p.completed_date for p in (prior or []) if p.ancillary_code == code]
    return max(dates) if dates else None


def evaluate_for_code(
    service: AncillaryService,
    payor_type: Optional[str],
    prior: Optional[Iterable[PriorAncillaryRecord]],
    today: Optional[date] = None,
) -> CooldownResult:
    return evaluate(service, payor_type, latest_completion(service.code, prior), today=today)
