"""
Provider-agnostic LLM client (JSON mode).

Contract: `generate_json(prompt, schema=None) -> (obj, err_code)`. Exactly one of the two
is None. This function never raises; every caller has a static fallback payload.

Env:
- LLM_PROVIDER: "openai" (default, `langchain_openai`), "anthropic" (`langchain_anthropic`)
  or "vertexai" (`langchain_google_vertexai`)
- LLM_MODEL: model name (default depends on provider)
- LLM_TEMPERATURE, LLM_MAX_OUTPUT_TOKENS, LLM_TIMEOUT_SECONDS
- LLM_MOCK=1: deterministic stub, no external calls
- OPENAI_API_KEY / ANTHROPIC_API_KEY / GOOGLE_CLOUD_PROJECT + GOOGLE_CLOUD_LOCATION
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_DEFAULT_MODELS = {
    "openai": "gpt-4o",
    "anthropic": "claude-sonnet-4-5",
    "vertexai": "gemini-2.5-flash",
}


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "y", "on")


def _provider() -> str:
    p = (os.getenv("LLM_PROVIDER") or "").strip().lower() or "openai"
    if p in ("vertex", "gcp_vertexai"):
        return "vertexai"
    return p


@dataclass(frozen=True)
class LLMConfig:
    model: str
    temperature: float
    max_output_tokens: int
    timeout: int = 60


def _load_config(provider: str) -> LLMConfig:
    model = (os.getenv("LLM_MODEL") or "").strip() or _DEFAULT_MODELS.get(provider, "gpt-4o")
    try:
        temperature = float((os.getenv("LLM_TEMPERATURE") or "").strip() or "0.7")
    except ValueError:
        temperature = 0.7
    try:
        max_output_tokens = int((os.getenv("LLM_MAX_OUTPUT_TOKENS") or "").strip() or "2048")
    except ValueError:
        max_output_tokens = 2048
    try:
        timeout = int((os.getenv("LLM_TIMEOUT_SECONDS") or "").strip() or "60")
    except ValueError:
        timeout = 60

    return LLMConfig(
        model=model,
        temperature=max(0.0, min(temperature, 1.0)),
        max_output_tokens=max(64, min(max_output_tokens, 8192)),
        timeout=max(5, min(timeout, 180)),
    )


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Best-effort parse of a model reply that should be a JSON object.

    Handles ```json fences and leading/trailing chatter around the object.
    """
    if not text:
        return None
    t = text.strip()
    if t.startswith("```"):
        t = re.sub(r"^```[a-zA-Z]*\s*", "", t)
        t = re.sub(r"\s*```$", "", t).strip()

    try:
        obj = json.loads(t)
        return obj if isinstance(obj, dict) else None
    except ValueError:
        pass

    # Walk forward from each "{" and let the decoder find where the object ends.
    decoder = json.JSONDecoder()
    idx = t.find("{")
    while idx != -1:
        try:
            obj, _end = decoder.raw_decode(t, idx)
            if isinstance(obj, dict):
                return obj
        except ValueError:
            pass
        idx = t.find("{", idx + 1)
    return None


def _mock_response() -> Dict[str, Any]:
    return {"mock": True, "message": "LLM_MOCK enabled: no external call was made."}


def _classify_error(e: Exception, *, model: str) -> str:
    msg = str(e or "").replace("\n", " ").strip()
    up = msg.upper()

    if isinstance(e, TimeoutError) or "TIMEOUT" in up or "TIMED OUT" in up or "408" in msg:
        return "timeout"
    if "401" in msg or "UNAUTHENTICATED" in up or ("API_KEY" in up and "INVALID" in up):
        return "unauthenticated"
    if "403" in msg or "PERMISSION_DENIED" in up:
        return "permission_denied"
    if "429" in msg or ("RATE" in up and "LIMIT" in up) or "OVERLOADED" in up:
        return "rate_limited"
    if "404" in msg or "NOT FOUND" in up:
        return f"model_not_found:{model}"
    if "CONTEXT LENGTH" in up or "MAX_TOKENS" in up:
        return "max_tokens_truncated"
    return f"llm_error:{type(e).__name__}"


def _get_llm_instance(provider: str, cfg: LLMConfig) -> Tuple[Any, Optional[str]]:
    """
    Return (chat_model, err_code) for the configured provider. Exactly one is None.
    """
    if provider == "openai":
        api_key = (os.getenv("OPENAI_API_KEY") or "").strip()
        if not api_key:
            return None, "missing_api_key"
        try:
            from langchain_openai import ChatOpenAI  # type: ignore[import-not-found]
        except ImportError:
            return None, "sdk_import_failed:langchain_openai"
        return (
            ChatOpenAI(
                model=cfg.model,
                temperature=cfg.temperature,
                max_tokens=cfg.max_output_tokens,
                api_key=api_key,
                timeout=cfg.timeout,
            ),
            None,
        )

    if provider == "anthropic":
        api_key = (os.getenv("ANTHROPIC_API_KEY") or "").strip()
        if not api_key:
            return None, "missing_api_key"
        try:
            from langchain_anthropic import ChatAnthropic  # type: ignore[import-not-found]
        except ImportError:
            return None, "sdk_import_failed:langchain_anthropic"
        return (
            ChatAnthropic(
                model=cfg.model,
                temperature=cfg.temperature,
                max_tokens=cfg.max_output_tokens,
                anthropic_api_key=api_key,
                timeout=cfg.timeout,
            ),
            None,
        )

    if provider == "vertexai":
        project = (os.getenv("GOOGLE_CLOUD_PROJECT") or "").strip()
        location = (os.getenv("GOOGLE_CLOUD_LOCATION") or "").strip()
        if not project:
            return None, "missing_gcp_project"
        if not location:
            return None, "missing_gcp_location"
        try:
            from langchain_google_vertexai import ChatVertexAI  # type: ignore[import-not-found]
        except ImportError:
            return None, "sdk_import_failed:langchain_google_vertexai"
        return (
            ChatVertexAI(
                model=cfg.model,
                temperature=cfg.temperature,
                max_output_tokens=cfg.max_output_tokens,
                project=project,
                location=location,
                timeout=cfg.timeout,
            ),
            None,
        )

    return None, "provider_not_configured"


def generate_json(
    prompt: str, *, schema: Optional[Type[BaseModel]] = None
) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """
    Provider-agnostic JSON call.

    Args:
        prompt: The prompt to send to the LLM
        schema: Optional Pydantic schema for structured output

    Returns: (obj, err_code). Exactly one is non-None.
    """
    if _env_bool("LLM_MOCK", False):
        if schema is not None:
            try:
                return schema.model_validate({}).model_dump(mode="json"), None
            except Exception:
                return _mock_response(), None
        return _mock_response(), None

    provider = _provider()
    cfg = _load_config(provider)
    llm, err = _get_llm_instance(provider, cfg)
    if err:
        return None, err

    try:
        if schema is not None:
            out = llm.with_structured_output(schema).invoke(prompt)
            if isinstance(out, BaseModel):
                return out.model_dump(mode="json"), None
            if isinstance(out, dict):
                return out, None
            return None, "schema_output_unexpected"

        msg = llm.invoke(prompt)
        obj = extract_json_object(str(getattr(msg, "content", "") or ""))
        return (obj, None) if obj is not None else (None, "json_parse_failed")
    except Exception as e:
        code = _classify_error(e, model=cfg.model)
        logger.warning("LLM call failed (%s): %s", code, type(e).__name__)
        return None, code
