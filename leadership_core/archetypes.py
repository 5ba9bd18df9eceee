from __future__ import annotations

import json
import importlib.resources as ir
import math
from typing import Dict, List, Mapping, Sequence, Union

from .config import RED_FLAG_PENALTY, TIEBREAK_MARGIN
from .types import DIMENSIONS, ArchetypeProfile, DimensionBelief, MatchResult, ScoreProfile

_EPS = 1e-9


def load_archetypes() -> List[ArchetypeProfile]:
    data = ir.files(__package__).joinpath("data/archetypes.json").read_text(encoding="utf-8")
    return [ArchetypeProfile(**r) for r in json.loads(data)]


def vectorize(values: Union[ScoreProfile, Mapping[str, float]]) -> List[float]:
    out: List[float] = []
    for d in DIMENSIONS:
        v = values.get(d, 0.0)
        out.append(float(v.score if isinstance(v, DimensionBelief) else v or 0.0))
    return out


def weighted_cosine(a: Sequence[float], b: Sequence[float], weights: Sequence[float]) -> float:
    wa = [x * w for x, w in zip(a, weights)]
    wb = [x * w for x, w in zip(b, weights)]
    na = math.sqrt(sum(x * x for x in wa))
    nb = math.sqrt(sum(x * x for x in wb))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return sum(x * y for x, y in zip(wa, wb)) / (na * nb)


def red_flag_count(scores: Mapping[str, float], flags: Mapping[str, Mapping[str, float]]) -> int:
    hits = 0
    for dim, rule in flags.items():
        if dim not in scores:
            continue
        s = scores[dim]
        if rule.get("below") is not None and s < float(rule["below"]):
            hits += 1
        if rule.get("above") is not None and s > float(rule["above"]):
            hits += 1
    return hits


def needs_tiebreak(first: float, second: float, margin: float = TIEBREAK_MARGIN) -> bool:
    return (first - second) <= margin + _EPS


def match(profile: ScoreProfile, archetypes: Sequence[ArchetypeProfile]) -> MatchResult:
    """Rank archetypes by confidence-weighted cosine, minus red-flag penalties."""

    if not archetypes:
        raise ValueError("archetype catalogue is empty")
    vec = vectorize(profile)
    weights = [profile[d].confidence for d in DIMENSIONS]
    scores = dict(zip(DIMENSIONS, vec))

    sims: Dict[str, float] = {}
    for arch in archetypes:
        sim = weighted_cosine(vec, vectorize(arch.ideal_scores), weights)
        sim -= RED_FLAG_PENALTY * red_flag_count(scores, arch.red_flags)
        sims[arch.id] = max(0.0, sim)

    ranked = sorted(archetypes, key=lambda a: -sims[a.id])
    primary = ranked[0].id
    secondary = ranked[1].id if len(ranked) > 1 else primary
    tie = len(ranked) > 1 and needs_tiebreak(sims[primary], sims[secondary])
    return MatchResult(
        primary_id=primary,
        secondary_id=secondary,
        similarity_by_archetype=sims,
        needs_tiebreak=tie,
    )
