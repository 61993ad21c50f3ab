"""
OpenAI chat wrapper. The engine only talks to the TextGenerator protocol, so
tests (and other providers) can pass any object with a matching complete().
"""
from __future__ import annotations

import hashlib
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

from openai import OpenAI

from . import config

logger = logging.getLogger("ancillary.llm")

Message = Dict[str, str]


class TextGenerator(Protocol):
    def complete(
        self,
        messages: List[Message],
        *,
        temperature: float,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        stage: str = "completion",
    ) -> str:
        ...


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def _usage_tokens(resp: Any) -> Tuple[Optional[int], Optional[int]]:
    usage = getattr(resp, "usage", None)
    if not usage:
        return None, None
    return getattr(usage, "prompt_tokens", None), getattr(usage, "completion_tokens", None)


class OpenAIChatClient:
    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        key = api_key or config.OPENAI_API_KEY
        if not key:
            raise RuntimeError("OPENAI_API_KEY not set for ancillary analysis.")
        self.model = model or config.ANCILLARY_MODEL
        # No retries: one failed attempt is enough to switch to the fallback path.
        self._client = OpenAI(
            api_key=key,
            base_url=base_url or config.OPENAI_BASE_URL,
            timeout=timeout if timeout is not None else config.LLM_TIMEOUT_SEC,
            max_retries=0,
        )

    def complete(
        self,
        messages: List[Message],
        *,
        temperature: float,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        stage: str = "completion",
    ) -> str:
        use_model = self.model
        kwargs: Dict[str, Any] = {
            "model": use_model,
            "messages": messages,
            "temperature": temperature,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        prompt_hash = _sha256("".join(m.get("content", "") for m in messages))
        if config.LLM_DEBUG_LOG_PROMPTS:
            logger.debug("llm.%s prompt=%s", stage, messages)
        try:
            resp = self._client.chat.completions.create(**kwargs)
        except Exception:
            logger.info("llm.%s model=%s prompt_hash=%s ok=False", stage, use_model, prompt_hash[:12])
            raise
        inp, out = _usage_tokens(resp)
        logger.info(
            "llm.%s model=%s prompt_hash=%s ok=True input_tokens=%s output_tokens=%s",
            stage,
            use_model,
            prompt_hash[:12],
            inp,
            out,
        )
        if not resp.choices:
            return ""
        return (resp.choices[0].message.content or "").strip()
