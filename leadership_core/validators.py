from __future__ import annotations
from collections import Counter
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence
from .config import FAST_RESPONSE_MS, ADEQUATE_FAST_PCT, ValidityThresholds, validity_thresholds
from .scoring import scale_value
from .types import Item, ResponseRecord, ValiditySignals


def _frac(num: int, den: int) -> float:
    return num / den if den else 0.0


def _pairs(items: Sequence[Item]) -> List[tuple[Item, Item]]:
    groups: Dict[str, List[Item]] = {}
    for it in items:
        if it.validity_pair_id:
            groups.setdefault(it.validity_pair_id, []).append(it)
    return [(g[0], g[1]) for g in groups.values() if len(g) >= 2]


def inconsistency_index(items: Sequence[Item], answers: Dict[str, ResponseRecord]) -> float:
    diffs: List[float] = []
    for a, b in _pairs(items):
        ra, rb = answers.get(a.id), answers.get(b.id)
        if ra is None or rb is None:
            continue
        va, vb = scale_value(a, ra.answer), scale_value(b, rb.answer)
        if va is None or vb is None:
            continue
        if a.reverse_scored: va = 6 - va
        if b.reverse_scored: vb = 6 - vb
        diffs.append(abs(va - vb))
    return sum(diffs) / len(diffs) if diffs else 0.0


def reliability_verdict(sig: ValiditySignals, th: ValidityThresholds) -> str:
    checks = (
        (sig.inconsistency_index, th.inconsistency),
        (sig.impression_management, th.impression_management),
        (sig.straight_line_pct, th.straight_line),
        (sig.acquiescence_bias, th.acquiescence),
        (sig.extreme_response_pct, th.extreme_response),
    )
    if any(value > high for value, (_low, high) in checks):
        return "low"
    if all(value < low for value, (low, _high) in checks):
        return "high"
    return "medium"


def analyze(
    responses: Iterable[ResponseRecord],
    items: Sequence[Item],
    thresholds: Optional[ValidityThresholds] = None,
) -> ValiditySignals:
    """Derive response-pattern signals from the full history.

    Pure report: nothing is cached, so it can be recomputed after any answer."""

    history = list(responses)
    by_id = {it.id: it for it in items}
    latest: Dict[str, ResponseRecord] = {r.item_id: r for r in history}

    scaled: List[int] = []
    rev_seen = rev_ok = 0
    for r in history:
        it = by_id.get(r.item_id)
        if it is None:
            continue
        v = scale_value(it, r.answer)
        if v is None:
            continue
        scaled.append(v)
        if it.reverse_scored:
            rev_seen += 1
            rev_ok += v <= 3

    probes = [it for it in items if it.is_impression_management]
    im_high = sum(
        1 for it in probes
        if it.id in latest and (scale_value(it, latest[it.id].answer) or 0) >= 4
    )

    modal = Counter(scaled).most_common(1)[0][1] if scaled else 0
    fast = sum(1 for r in history if r.time_to_answer_ms is not None and r.time_to_answer_ms < FAST_RESPONSE_MS)
    fast_pct = _frac(fast, len(history))

    sig = ValiditySignals(
        inconsistency_index=inconsistency_index(items, latest),
        impression_management=_frac(im_high, len(probes)),
        straight_line_pct=_frac(modal, len(scaled)),
        acquiescence_bias=_frac(sum(1 for v in scaled if v >= 4), len(scaled)),
        extreme_response_pct=_frac(sum(1 for v in scaled if v in (1, 5)), len(scaled)),
        fast_response_pct=fast_pct,
        reverse_discrimination_rate=_frac(rev_ok, rev_seen) if rev_seen else None,
        adequate_response_time=fast_pct < ADEQUATE_FAST_PCT,
    )
    th = thresholds or validity_thresholds()
    return replace(sig, overall_reliability=reliability_verdict(sig, th))
