from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# .env lives at the repository root, one level above the package.
load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except Exception:
        return default


def _int_env(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except Exception:
        return default


def _flag_env(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


# =========================
# Text generation
# =========================
OPENAI_API_KEY = os.getenv("AI_INTEGRATIONS_OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY") or ""
OPENAI_BASE_URL = os.getenv("AI_INTEGRATIONS_OPENAI_BASE_URL") or os.getenv("OPENAI_BASE_URL") or None

ANCILLARY_MODEL = os.getenv("ANCILLARY_MODEL", "gpt-4o-mini")

ANCILLARY_TEMPERATURE = _float_env("ANCILLARY_TEMPERATURE", 0.3)
EVIDENCE_TEMPERATURE = _float_env("EVIDENCE_TEMPERATURE", 0.2)
EVIDENCE_MAX_TOKENS = _int_env("EVIDENCE_MAX_TOKENS", 500)
LLM_TIMEOUT_SEC = _float_env("ANCILLARY_LLM_TIMEOUT_SEC", 30.0)
LLM_DEBUG_LOG_PROMPTS = _flag_env("ANCILLARY_DEBUG_LOG_PROMPTS", False)

# =========================
# Catalog / event log
# =========================
ENV_CATALOG_PATH = "ANCILLARY_CATALOG_PATH"

EVENT_LOG_ENABLED = _flag_env("ANCILLARY_EVENT_LOG", True)
EVENT_LOG_DIR = os.getenv("ANCILLARY_EVENT_LOG_DIR", os.path.join("data", "analysis_logs"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
