from __future__ import annotations
import os, json, pathlib
from dataclasses import dataclass, fields
from typing import Tuple


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


PRIOR_SCORE: float = 50.0
PRIOR_CONFIDENCE: float = 0.1
MAX_PER_ITEM: float = 100.0

TIER_HIGH_UNCERTAINTY: float = 0.1
TIER_MEDIUM_UNCERTAINTY: float = 0.2

FAST_RESPONSE_MS: int = 2000
ADEQUATE_FAST_PCT: float = 0.3

RED_FLAG_PENALTY: float = 0.15
TIEBREAK_MARGIN: float = 0.05

BATCH_SIZE: int = 5
INFO_WEIGHTS: Tuple[float, float, float] = (1.0, 0.5, 0.25)
REASONING_TIMEOUT_SEC: float = 8.0
ROUNDS_PER_TIER: dict[str, int] = {"quick": 3, "deep": 10}
UPGRADE_ROUNDS: int = 7

NARRATIVE_ATTEMPTS: int = 2
NARRATIVE_TIMEOUT_SEC: float = 60.0

CATALOGUE_TTL_SEC: float = 3600.0

BANK_MIN_PER_DIMENSION: int = 4
BANK_MIN_NON_LIKERT: int = 1

AUDIT_EXPORT_ENABLED: bool = True

DEBUG_TRACE: bool = False
TRACE_FIELDS: tuple[str, ...] = (
    "item_id",
    "dimension",
    "type",
    "reliability",
    "contribution",
    "score_before",
    "score_after",
    "confidence_after",
    "uncertainty_after",
)


@dataclass(frozen=True)
class ValidityThresholds:
    """(low, high) cut points for each validity index.

    An index above its ``high`` value makes the verdict "low"; every index
    below its ``low`` value makes it "high"."""

    inconsistency: Tuple[float, float] = (1.5, 2.5)
    impression_management: Tuple[float, float] = (0.5, 0.75)
    straight_line: Tuple[float, float] = (0.5, 0.7)
    acquiescence: Tuple[float, float] = (0.7, 0.85)
    extreme_response: Tuple[float, float] = (0.6, 0.8)


# // env overrides for staging/ops; defaults remain conservative.
BATCH_SIZE = _env_int("BATCH_SIZE", BATCH_SIZE)
REASONING_TIMEOUT_SEC = _env_float("REASONING_TIMEOUT_SEC", REASONING_TIMEOUT_SEC)
CATALOGUE_TTL_SEC = _env_float("CATALOGUE_TTL_SEC", CATALOGUE_TTL_SEC)
FAST_RESPONSE_MS = _env_int("FAST_RESPONSE_MS", FAST_RESPONSE_MS)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)
AUDIT_EXPORT_ENABLED = _env_bool("AUDIT_EXPORT_ENABLED", AUDIT_EXPORT_ENABLED)


def load_config() -> dict:
    cfg: dict = {}
    p = pathlib.Path(os.getenv("LEADERSHIP_CONFIG", "config.json"))
    if p.exists():
        try:
            cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            cfg = {}
    e = os.environ
    for k in ("REASONING_BACKEND", "NARRATIVE_BACKEND", "OPENAI_MODEL"):
        if e.get(k):
            cfg[k] = e.get(k)
    return cfg


def validity_thresholds(cfg: dict | None = None) -> ValidityThresholds:
    """Build the threshold set, letting ``config.json`` override any pair."""

    raw = (cfg if cfg is not None else load_config()).get("validity_thresholds") or {}
    base = ValidityThresholds()
    values = {}
    for f in fields(ValidityThresholds):
        pair = raw.get(f.name)
        if isinstance(pair, (list, tuple)) and len(pair) == 2:
            values[f.name] = (float(pair[0]), float(pair[1]))
        else:
            values[f.name] = getattr(base, f.name)
    return ValidityThresholds(**values)
