# leadership_core/policy.py
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from . import llm_bridge
from .config import BATCH_SIZE, INFO_WEIGHTS, REASONING_TIMEOUT_SEC
from .question_bank import items_for_tier
from .types import DIMENSIONS, Item, ScoreProfile, SelectionDecision, ValiditySignals

log = logging.getLogger(__name__)

Reasoner = Callable[[Dict[str, object], float], "llm_bridge.ReasoningOutcome"]


def _pools(items: Iterable[Item]) -> Dict[str, List[Item]]:
    out: Dict[str, List[Item]] = {d: [] for d in DIMENSIONS}
    for it in items:
        out.setdefault(it.dimension, []).append(it)
    return out


def information_weights(profile: ScoreProfile) -> Dict[str, float]:
    """Per-dimension multiplier: 1.0 for the most uncertain, 0.5 next, 0.25 rest.

    Ties in uncertainty keep the fixed dimension order."""

    order = sorted(DIMENSIONS, key=lambda d: -profile[d].uncertainty)
    return {d: INFO_WEIGHTS[min(i, len(INFO_WEIGHTS) - 1)] for i, d in enumerate(order)}


def fallback_batch(profile: ScoreProfile, pool: Sequence[Item], batch_size: int = BATCH_SIZE) -> SelectionDecision:
    weights = information_weights(profile)
    value = {it.id: it.difficulty * weights.get(it.dimension, INFO_WEIGHTS[-1]) for it in pool}
    ranked = sorted(pool, key=lambda it: -value[it.id])
    chosen = ranked[:batch_size]

    kinds = {it.type for it in chosen}
    if len(chosen) > 1 and len(kinds) == 1:
        alt = next((it for it in ranked[batch_size:] if it.type not in kinds), None)
        if alt is not None:
            chosen[-1] = alt

    top = sorted(weights, key=lambda d: -weights[d])[:2]
    return SelectionDecision(
        item_ids=[it.id for it in chosen],
        rationale=f"Deterministic pick weighted toward {top[0]} and {top[1]}, the least certain dimensions.",
        source="fallback",
    )


class ItemSelector:
    """Seed and adaptive batch selection for one assessment tier.

    Holds only the tier's catalogue; every round gets the belief, history and
    validity signals as arguments, so nothing carries over between calls."""

    def __init__(self, items: Sequence[Item], tier: str, batch_size: int = BATCH_SIZE,
                 reasoner: Optional[Reasoner] = None):
        if int(batch_size) < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.tier = tier
        self.items = items_for_tier(items, tier)
        self.batch_size = int(batch_size)
        self._reasoner = reasoner
        self._dim_index = {d: idx for idx, d in enumerate(DIMENSIONS)}

    # ---- round 1 ----
    def seed_batch(self) -> SelectionDecision:
        pools = _pools(self.items)
        candidates = [min(pools[d], key=lambda it: it.difficulty) for d in DIMENSIONS if pools[d]]

        while len(candidates) > self.batch_size:
            # largest eligible pool goes first; earlier dimension on ties
            loser = max(candidates, key=lambda it: (len(pools[it.dimension]), -self._dim_index[it.dimension]))
            candidates.remove(loser)

        if len(candidates) < self.batch_size:
            taken = {it.id for it in candidates}
            rest = sorted((it for it in self.items if it.id not in taken), key=lambda it: it.difficulty)
            candidates.extend(rest[: self.batch_size - len(candidates)])

        if candidates and all(it.type == "likert" for it in candidates):
            taken = {it.id for it in candidates}
            alts = sorted(
                (it for it in self.items if it.type != "likert" and it.id not in taken),
                key=lambda it: it.difficulty,
            )
            if alts:
                hardest = max(candidates, key=lambda it: it.difficulty)
                candidates[candidates.index(hardest)] = alts[0]

        candidates.sort(key=lambda it: it.difficulty)
        return SelectionDecision(
            item_ids=[it.id for it in candidates],
            rationale="Opening batch: easiest item per dimension, mixed item types.",
            source="seed",
        )

    # ---- later rounds ----
    def build_request(self, profile: ScoreProfile, answered_ids: Sequence[str], pool: Sequence[Item],
                      round_number: int, total_rounds: int, validity: ValiditySignals) -> Dict[str, object]:
        return {
            "batch_size": self.batch_size,
            "scores_by_dimension": {
                d: {
                    "score": round(profile[d].score, 2),
                    "confidence": round(profile[d].confidence, 3),
                    "uncertainty": round(profile[d].uncertainty, 3),
                    "evidence_count": profile[d].evidence_count,
                }
                for d in DIMENSIONS
            },
            "answered_ids": list(answered_ids),
            "pool_summary": [
                {
                    "id": it.id,
                    "dimension": it.dimension,
                    "secondary_dimension": it.secondary_dimension,
                    "type": it.type,
                    "difficulty": it.difficulty,
                }
                for it in pool
            ],
            "round_number": round_number,
            "rounds_remaining": max(0, total_rounds - round_number),
            "validity_signals": {
                "inconsistency_index": validity.inconsistency_index,
                "impression_management": validity.impression_management,
                "straight_line_pct": validity.straight_line_pct,
                "acquiescence_bias": validity.acquiescence_bias,
                "extreme_response_pct": validity.extreme_response_pct,
                "fast_response_pct": validity.fast_response_pct,
                "overall_reliability": validity.overall_reliability,
            },
        }

    def _accepted_ids(self, outcome: "llm_bridge.ReasoningOutcome", pool_ids: set[str]) -> Optional[List[str]]:
        if not outcome.ok:
            return None
        ids = [str(x) for x in outcome.selected_ids]
        if len(ids) != self.batch_size or len(set(ids)) != len(ids):
            return None
        if any(x not in pool_ids for x in ids):
            return None
        return ids

    def next_batch(self, profile: ScoreProfile, answered_ids: Sequence[str], round_number: int,
                   total_rounds: int, validity: ValiditySignals) -> SelectionDecision:
        answered = set(answered_ids)
        pool = [it for it in self.items if it.id not in answered]
        if not pool:
            return SelectionDecision([], "No eligible items remain.", source="exhausted")
        if len(pool) <= self.batch_size:
            return SelectionDecision([it.id for it in pool], "Remaining eligible items.", source="remaining")

        request = self.build_request(profile, answered_ids, pool, round_number, total_rounds, validity)
        reasoner = self._reasoner or llm_bridge.request_selection
        try:
            outcome = reasoner(request, REASONING_TIMEOUT_SEC)
        except Exception as e:  # collaborator failures never reach the caller
            log.warning("reasoner raised %s: %s", type(e).__name__, e)
            outcome = llm_bridge.ReasoningOutcome("unavailable", detail=str(e))

        ids = self._accepted_ids(outcome, {it.id for it in pool})
        if ids is not None:
            return SelectionDecision(ids, outcome.rationale or "Reasoned selection.", source="reasoning")
        log.info("round %s: reasoning selection not usable (status=%s); using fallback",
                 round_number, outcome.status)
        return fallback_batch(profile, pool, self.batch_size)
