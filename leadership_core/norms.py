"""Population percentile lookup against stored per-dimension norm tables."""
from __future__ import annotations

import json
import importlib.resources as ir
from typing import Dict, List, Mapping

from .types import DIMENSIONS


def load_norms(segment: str = "all") -> Dict[str, Dict[str, float]]:
    data = ir.files(__package__).joinpath("data/norms.json").read_text(encoding="utf-8")
    return json.loads(data).get(segment, {})


def percentile_for(score: float, percentile_map: Mapping[str, float]) -> int:
    """Highest percentile whose threshold score the respondent reaches; 50 if none."""

    percentile = 50
    for p, threshold in sorted(percentile_map.items(), key=lambda kv: float(kv[1])):
        if score >= float(threshold):
            percentile = int(p)
    return percentile


def percentiles(scores: Mapping[str, float], norms: Mapping[str, Mapping[str, float]]) -> Dict[str, int]:
    return {d: percentile_for(scores[d], norms[d]) for d in DIMENSIONS if d in norms and d in scores}


def population_medians(norms: Mapping[str, Mapping[str, float]]) -> Dict[str, float]:
    return {d: float(norms[d].get("50", 50)) for d in DIMENSIONS if d in norms}


def comparison(scores: Mapping[str, float], norms: Mapping[str, Mapping[str, float]]) -> List[Dict[str, object]]:
    pct = percentiles(scores, norms)
    med = population_medians(norms)
    return [
        {"dimension": d, "score": scores[d], "percentile": pct[d], "median": med[d]}
        for d in DIMENSIONS if d in pct
    ]
