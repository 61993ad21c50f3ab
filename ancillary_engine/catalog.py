from __future__ import annotations

import json
import logging
import os
import threading
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import ValidationError

from .config import ENV_CATALOG_PATH
from .models import AncillaryService

logger = logging.getLogger("ancillary.catalog")

_LOCK = threading.Lock()


class CatalogError(ValueError):
    pass


# Standard cooldowns for cooldown-gated services (months).
_MEDICARE_MONTHS = 12
_PPO_MONTHS = 6


def _cooldown(code: str, name: str, category: str, hints: Tuple[str, ...]) -> AncillaryService:
    return AncillaryService(
        code=code,
        name=name,
        category=category,
        repeat_policy="COOLDOWN",
        cooldown_months_medicare=_MEDICARE_MONTHS,
        cooldown_months_ppo=_PPO_MONTHS,
        qualification_hints=hints,
    )


_BUILTIN_CATALOG: Tuple[AncillaryService, ...] = (
    _cooldown(
        "BRAINWAVE", "BrainWave", "Neuro",
        (
            "ANY cognitive complaints, memory issues, brain fog",
            "Depression, anxiety (affects cognition)",
            "Age 50+ with ANY chronic condition",
            "Diabetes (neuropathy risk)",
            "Hypertension (vascular dementia risk)",
            "Sleep disorders",
            "Prior head injury",
            "Family history of dementia",
        ),
    ),
    _cooldown(
        "VITALWAVE", "VitalWave", "Cardio/Autonomic",
        (
            "ANY cardiovascular history",
            "Hypertension, diabetes, hyperlipidemia",
            "Dizziness, lightheadedness, syncope",
            "Fatigue, exercise intolerance",
            "Arrhythmias, palpitations",
            "Age 50+ with risk factors",
            "Anxiety (autonomic dysregulation)",
            "Medication effects on autonomic system",
        ),
    ),
    AncillaryService(
        code="PGX",
        name="Pharmacogenomics (PGX)",
        category="Lab",
        repeat_policy="ONCE_ONLY",
        qualification_hints=(
            "Taking ANY psychiatric medication",
            "Taking cardiovascular medications",
            "Multiple medications (polypharmacy)",
            "History of medication side effects",
            "Difficulty finding right medication doses",
            "Planning to start new medications",
            "Chronic pain management",
        ),
    ),
    AncillaryService(
        code="STEROID_INJ",
        name="Steroid Injection",
        category="Procedure",
        repeat_policy="NO_LIMIT",
        qualification_hints=(
            "Joint pain, back pain",
            "Arthritis",
            "Any musculoskeletal complaint",
        ),
    ),
    _cooldown(
        "US_CAROTID_93880", "Carotid Ultrasound", "Ultrasound",
        ("Stroke risk factors, HTN, diabetes, smoking history, CAD, PAD, age >60",),
    ),
    _cooldown(
        "US_ECHO_93306", "Transthoracic Echocardiogram", "Ultrasound",
        ("ANY cardiac symptoms, HTN, murmurs, dyspnea, edema, arrhythmias",),
    ),
    _cooldown(
        "US_RENAL_ART_VEIN_93975", "Renal Artery/Vein", "Ultrasound",
        ("HTN, CKD, diabetes, renovascular disease risk",),
    ),
    _cooldown(
        "US_ABD_ART_CELIAC_SMA_IMA_93975", "Abdominal Arteries Celiac/SMA/IMA", "Ultrasound",
        ("Abdominal symptoms, weight loss, postprandial pain",),
    ),
    _cooldown(
        "US_IVC_93975", "IVC Ultrasound", "Ultrasound",
        ("Heart failure, edema, volume assessment",),
    ),
    _cooldown(
        "US_LIVER_PORTAL_HEPATIC_93975", "Liver Artery/Vein Portal/Hepatic", "Ultrasound",
        ("Liver disease, hepatitis, cirrhosis risk, abnormal LFTs",),
    ),
    _cooldown(
        "US_LE_ARTERIAL_93925", "Lower Extremity Arterial Duplex", "Ultrasound",
        ("Claudication, leg pain, PAD risk, diabetes with foot issues",),
    ),
    _cooldown(
        "US_UE_ARTERIAL_93930", "Upper Extremity Arterial Duplex", "Ultrasound",
        ("Arm symptoms, vascular risk",),
    ),
    _cooldown(
        "US_LE_VENOUS_93971", "Lower Extremity Venous Duplex", "Ultrasound",
        ("DVT risk, leg swelling, varicose veins",),
    ),
    _cooldown(
        "US_UE_VENOUS_93970", "Upper Extremity Venous Duplex", "Ultrasound",
        ("Arm swelling, catheter history",),
    ),
    _cooldown(
        "US_STRESS_ECHO_93350", "Stress Echocardiogram", "Ultrasound",
        ("CAD risk, exertional symptoms, pre-operative assessment",),
    ),
    _cooldown(
        "US_AORTA_ILIAC_93978", "Aorta and Iliac Artery Duplex", "Ultrasound",
        ("AAA risk (smoking, HTN, age, male), abdominal pulsation",),
    ),
    _cooldown(
        "US_AAA_SCREEN_G0389", "Screening AAA Ultrasound", "Ultrasound",
        (
            "Male 65-75 with smoking history (Medicare covers)",
            "Age >60 with risk factors",
        ),
    ),
)

_LOADED = False
_CATALOG: Tuple[AncillaryService, ...] = ()
_CODE_MAP: Dict[str, AncillaryService] = {}


def _index(services: Tuple[AncillaryService, ...]) -> Dict[str, AncillaryService]:
    out: Dict[str, AncillaryService] = {}
    for svc in services:
        if svc.code in out:
            raise CatalogError(f"Duplicate ancillary code in catalog: {svc.code}")
        out[svc.code] = svc
    return out


def _load_from_json(path: str) -> Tuple[AncillaryService, ...]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except OSError as exc:
        raise CatalogError(f"Catalog file could not be read: {path}: {exc}") from exc
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise CatalogError(f"Catalog file is not valid JSON: {path}: {exc}") from exc
    if isinstance(raw, dict):
        raw = raw.get("services") or raw.get("ancillaries") or []
    if not isinstance(raw, list):
        raise CatalogError(f"Catalog file must contain a list of services: {path}")
    out: List[AncillaryService] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise CatalogError(f"Catalog entry {idx} is not an object")
        try:
            out.append(AncillaryService.model_validate(item))
        except ValidationError as exc:
            raise CatalogError(f"Catalog entry {idx} is invalid: {exc}") from exc
    return tuple(out)


def load_catalog(path: Optional[str] = None) -> Tuple[AncillaryService, ...]:
    global _LOADED, _CATALOG, _CODE_MAP
    with _LOCK:
        if _LOADED:
            return _CATALOG
        source = path or (os.getenv(ENV_CATALOG_PATH) or "").strip()
        if source:
            services = _load_from_json(source)
            logger.info("Loaded %d ancillary services from %s", len(services), source)
        else:
            services = _BUILTIN_CATALOG
        code_map = _index(services)
        _CATALOG = services
        _CODE_MAP = code_map
        _LOADED = True
        return _CATALOG


def reset_catalog_cache() -> None:
    global _LOADED, _CATALOG, _CODE_MAP
    with _LOCK:
        _LOADED = False
        _CATALOG = ()
        _CODE_MAP = {}


def get_catalog() -> Tuple[AncillaryService, ...]:
    if not _LOADED:
        load_catalog()
    return _CATALOG


def get_service(code: Any) -> Optional[AncillaryService]:
    if not _LOADED:
        load_catalog()
    if not isinstance(code, str):
        return None
    return _CODE_MAP.get(code.strip())


def catalog_codes() -> FrozenSet[str]:
    if not _LOADED:
        load_catalog()
    return frozenset(_CODE_MAP)
