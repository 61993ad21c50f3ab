from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, Optional

from . import config

logger = logging.getLogger("ancillary.events")

EVENT_PRIMARY = "analysis.primary"
EVENT_FALLBACK = "analysis.fallback"
EVENT_EVIDENCE_OK = "evidence.ok"
EVENT_EVIDENCE_FALLBACK = "evidence.fallback"
EVENT_EVIDENCE_NOT_FOUND = "evidence.not_found"


class AnalysisEventLog:
    """Append-only JSONL log of which reasoning path served each request."""

    def __init__(self, log_dir: Optional[str] = None, enabled: Optional[bool] = None) -> None:
        self.lock = threading.Lock()
        self.log_dir = log_dir or config.EVENT_LOG_DIR
        self.enabled = config.EVENT_LOG_ENABLED if enabled is None else enabled
        self.daily_counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))

    def _path(self, day: str) -> str:
        return os.path.join(self.log_dir, f"analysis_{day}.jsonl")

    def log_event(self, event_type: str, meta: Optional[Dict[str, Any]] = None) -> None:
        day = datetime.now().strftime("%Y-%m-%d")
        entry = {
            "ts": time.time(),
            "type": event_type,
            "meta": meta or {},
        }
        with self.lock:
            self.daily_counts[day][f"events_{event_type}"] += 1
            if not self.enabled:
                return
            try:
                os.makedirs(self.log_dir, exist_ok=True)
                with open(self._path(day), "a", encoding="utf-8") as f:
                    f.write(json.dumps(entry) + "\n")
            except OSError as exc:
                logger.warning("Analysis event log write failed: %s", exc)

    def summarize_day(self, day: Optional[str] = None) -> Dict[str, int]:
        target = day or datetime.now().strftime("%Y-%m-%d")
        counts: Dict[str, int] = defaultdict(int)
        path = self._path(target)
        if self.enabled and os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                for raw in f:
                    raw = raw.strip()
                    if not raw:
                        continue
                    try:
                        entry = json.loads(raw)
                    except Exception:
                        continue
                    etype = entry.get("type") or "unknown"
                    counts[f"events_{etype}"] += 1
        elif target in self.daily_counts:
            for key, value in self.daily_counts[target].items():
                counts[key] += value
        return dict(counts)


event_log = AnalysisEventLog()
