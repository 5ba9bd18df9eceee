"""Confidence-weighted fusion of item evidence into a per-dimension belief.

Each dimension keeps a running weighted mean: the prior counts with its
confidence as weight and every contributing item counts with its reliability.
Because the weights only add up, the final score is the same whatever order
the responses are folded in.
"""
from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Optional

from .config import (
    PRIOR_SCORE,
    PRIOR_CONFIDENCE,
    MAX_PER_ITEM,
    TIER_HIGH_UNCERTAINTY,
    TIER_MEDIUM_UNCERTAINTY,
)
from .scoring import contribution
from .types import DIMENSIONS, DimensionBelief, Item, ResponseRecord, ScoreProfile


def uncertainty_for(evidence_count: int) -> float:
    return math.sqrt(1.0 / (evidence_count + 1))


def initialize() -> ScoreProfile:
    return {
        d: DimensionBelief(
            score=PRIOR_SCORE,
            confidence=PRIOR_CONFIDENCE,
            uncertainty=uncertainty_for(0),
            evidence_count=0,
            evidence_weight=PRIOR_CONFIDENCE,
        )
        for d in DIMENSIONS
    }


def _fuse_one(b: DimensionBelief, value: float, reliability: float) -> DimensionBelief:
    weight = b.evidence_weight
    total = weight + reliability
    score = (b.score * weight + value * reliability) / total if total > 0 else b.score
    n = b.evidence_count + 1
    return DimensionBelief(
        score=score,
        confidence=min(1.0, max(b.confidence, total)),
        uncertainty=uncertainty_for(n),
        evidence_count=n,
        raw_contribution=b.raw_contribution + value,
        max_possible=b.max_possible + MAX_PER_ITEM,
        evidence_weight=total,
    )


def fuse(belief: ScoreProfile, contrib: Mapping[str, float], reliability: float) -> ScoreProfile:
    """Return a new profile with one item's evidence folded in.

    Dimensions whose contribution is zero are carried over untouched."""

    r = max(0.0, float(reliability))
    out: ScoreProfile = dict(belief)
    for d in DIMENSIONS:
        value = float(contrib.get(d, 0.0) or 0.0)
        if value == 0.0:
            continue
        out[d] = _fuse_one(belief[d], value, r)
    return out


def fold(
    items_by_id: Mapping[str, Item],
    responses: Iterable[ResponseRecord],
    prior: Optional[ScoreProfile] = None,
    trace: Optional[List[Dict[str, object]]] = None,
) -> ScoreProfile:
    """Fuse every response in order, starting from ``prior`` or the default prior.

    Responses whose item id is not in the catalogue are skipped; the caller
    decides whether that is worth logging. When ``trace`` is given, one row per
    fused dimension is appended to it."""

    profile = dict(prior) if prior is not None else initialize()
    for resp in responses:
        item = items_by_id.get(resp.item_id)
        if item is None:
            continue
        contrib = contribution(item, resp.answer)
        after = fuse(profile, contrib, item.difficulty)
        if trace is not None:
            for d in DIMENSIONS:
                if after[d] is profile[d]:
                    continue
                trace.append({
                    "item_id": item.id,
                    "dimension": d,
                    "type": item.type,
                    "reliability": item.difficulty,
                    "contribution": contrib[d],
                    "score_before": profile[d].score,
                    "score_after": after[d].score,
                    "confidence_after": after[d].confidence,
                    "uncertainty_after": after[d].uncertainty,
                    "latency_ms": resp.time_to_answer_ms,
                })
        profile = after
    return profile


def confidence_tier(uncertainty: float) -> str:
    if uncertainty < TIER_HIGH_UNCERTAINTY:
        return "high"
    if uncertainty <= TIER_MEDIUM_UNCERTAINTY:
        return "medium"
    return "low"


def simple_scores(profile: ScoreProfile) -> Dict[str, int]:
    return {d: int(round(profile[d].score)) for d in DIMENSIONS}


def to_dict(profile: ScoreProfile) -> Dict[str, Dict[str, float]]:
    return {
        d: {
            "score": b.score,
            "confidence": b.confidence,
            "uncertainty": b.uncertainty,
            "evidence_count": b.evidence_count,
            "raw_contribution": b.raw_contribution,
            "max_possible": b.max_possible,
            "evidence_weight": b.evidence_weight,
        }
        for d, b in profile.items()
    }


def from_dict(raw: Mapping[str, Mapping[str, float]]) -> ScoreProfile:
    """Rebuild a stored profile; missing dimensions start from the prior."""

    out = initialize()
    for d in DIMENSIONS:
        row = raw.get(d)
        if not row:
            continue
        conf = float(row.get("confidence", PRIOR_CONFIDENCE))
        n = int(row.get("evidence_count", 0))
        out[d] = DimensionBelief(
            score=float(row.get("score", PRIOR_SCORE)),
            confidence=min(1.0, conf),
            uncertainty=uncertainty_for(n),
            evidence_count=n,
            raw_contribution=float(row.get("raw_contribution", 0.0)),
            max_possible=float(row.get("max_possible", 0.0)),
            evidence_weight=float(row.get("evidence_weight", conf)),
        )
    return out
