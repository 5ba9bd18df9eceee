from __future__ import annotations
import json, os, time, logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import openai
from openai import OpenAI
from pydantic import BaseModel, ValidationError

from .azure_cfg import client as azure_client, settings as azure_settings, is_configured as azure_configured
from .config import REASONING_TIMEOUT_SEC

log = logging.getLogger(__name__)

_SELECTION_SYSTEM = (
    "You are a computer-adaptive testing engine for a leadership assessment. "
    "Pick the next batch of items from the pool. Priorities, in order: "
    "1) target the dimensions with the highest uncertainty; "
    "2) if the top archetype matches are close, prefer items that differentiate them; "
    "3) include at least one re-test of a moderate-confidence, low-evidence dimension; "
    "4) avoid a batch made of a single item type; "
    "5) if validity signals suggest gaming, prefer forced_choice items. "
    'Return ONLY JSON: {"selected_ids": [...], "rationale": "..."} with exactly '
    "batch_size ids taken from pool. No explanations outside the JSON."
)


class SelectionReply(BaseModel):
    selected_ids: List[str]
    rationale: str = ""


@dataclass
class ReasoningOutcome:
    status: str  # ok | timed_out | invalid | unavailable
    selected_ids: List[str] = field(default_factory=list)
    rationale: str = ""
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"


def backend_in_use(var: str = "REASONING_BACKEND") -> str:
    b = (os.getenv(var) or "").lower().strip()
    return b if b in ("azure", "openai") else "none"


def backend_ready(backend: str) -> bool:
    if backend == "azure":
        return azure_configured()
    if backend == "openai":
        return bool(os.getenv("OPENAI_API_KEY"))
    return False


def complete(system: str, user: str, *, backend: str, timeout: float, max_tokens: int = 600) -> str:
    """One chat completion returning raw text; raises on any transport error."""

    if backend == "azure":
        cli = azure_client(timeout=timeout)
        model = azure_settings().deployment
    elif backend == "openai":
        cli = OpenAI(api_key=os.getenv("OPENAI_API_KEY"), timeout=timeout, max_retries=0)
        model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
    else:
        raise RuntimeError("no reasoning backend configured")
    resp = cli.chat.completions.create(
        model=model,
        messages=[{"role": "system", "content": system}, {"role": "user", "content": user}],
        temperature=0.0, max_tokens=max_tokens, top_p=1.0,
        response_format={"type": "json_object"},
    )
    return resp.choices[0].message.content or "{}"


def _append_log(path_env: str, default: str, row: Dict[str, Any]) -> None:
    path = os.getenv(path_env, default)
    if not path:
        return
    try:
        with open(path, "a", encoding="utf-8") as f:
            f.write(json.dumps(row, ensure_ascii=False) + "\n")
    except OSError as e:
        log.debug("could not append %s: %s", path, e)


def request_selection(request: Dict[str, Any], timeout: float = REASONING_TIMEOUT_SEC) -> ReasoningOutcome:
    """Ask the reasoning service for the next batch; single attempt, never raises.

    Only the reply's shape is checked here. Whether the ids belong to the
    pool and match the batch size is the caller's call."""

    t0 = time.time()
    backend = backend_in_use()
    raw: Optional[str] = None
    if not backend_ready(backend):
        outcome = ReasoningOutcome("unavailable", detail=f"backend={backend}")
    else:
        try:
            raw = complete(_SELECTION_SYSTEM, json.dumps(request), backend=backend, timeout=timeout)
            reply = SelectionReply.model_validate_json(raw)
            outcome = ReasoningOutcome("ok", list(reply.selected_ids), reply.rationale)
        except (openai.APITimeoutError, TimeoutError) as e:
            outcome = ReasoningOutcome("timed_out", detail=str(e))
        except ValidationError as e:
            outcome = ReasoningOutcome("invalid", detail=str(e)[:300])
        except (openai.OpenAIError, RuntimeError, OSError) as e:
            outcome = ReasoningOutcome("unavailable", detail=str(e)[:300])
    if backend != "none":
        _append_log("LLM_SELECTION_LOG", "llm_selection_log.jsonl", {
            "ts": round(time.time(), 3),
            "backend": backend,
            "round": request.get("round_number"),
            "status": outcome.status,
            "raw": (raw or "")[:1200],
            "rt_ms": int((time.time() - t0) * 1000),
        })
    log.debug("reasoning selection status=%s detail=%s", outcome.status, outcome.detail)
    return outcome
