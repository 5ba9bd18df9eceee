"""Structured prose for a finished profile.

The text itself comes from the configured LLM backend; when that is off or its
reply does not validate, a template built from the archetype catalogue is
returned instead, so callers always get the same shape back.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, ValidationError

from . import llm_bridge
from .config import NARRATIVE_ATTEMPTS, NARRATIVE_TIMEOUT_SEC
from .types import DIMENSIONS, ArchetypeProfile, Item, MatchResult, ResponseRecord, ScoreProfile, ValiditySignals

log = logging.getLogger(__name__)


class Titled(BaseModel):
    title: str
    description: str


class NarrativeReply(BaseModel):
    headline: str
    summary: str
    strengths: List[Titled]
    blind_spots: List[Titled]
    growth_actions: List[Titled]
    under_pressure: str
    team_dynamics: str
    deep_insight: str
    dimensional_deep_dive: Optional[Dict[str, str]] = None


_BASE_PROMPT = """You are a leadership analyst writing a personalized assessment report.
Be factual and objective. Reference specific scores by number and name the highest and lowest upfront.

Score interpretation guide:
- 0-35: Well below average.
- 36-50: Below average.
- 51-65: Average range.
- 66-80: Above average. A genuine strength.
- 81-100: Exceptional. Note possible over-indexing at 90+.

Respond with JSON only, with keys: headline, summary, strengths, blind_spots, growth_actions
(each a list of {"title","description"}), under_pressure, team_dynamics, deep_insight, and
dimensional_deep_dive (one paragraph per dimension: drive, resilience, vision, connection,
adaptability, integrity).
Provide exactly 3 strengths, 2-3 blind_spots, and 3 growth_actions."""


def _pct(x: float) -> int:
    return int(round(x * 100))


def validity_notes(v: ValiditySignals) -> tuple[List[str], List[str]]:
    """Return (mitigations, observations) worded for the report prompt."""

    mitigations: List[str] = []
    observations: List[str] = []
    discriminates = v.reverse_discrimination_rate is not None and v.reverse_discrimination_rate > 0.5

    if v.adequate_response_time:
        mitigations.append("Response times suggest engaged rather than mechanical responding.")
    if discriminates:
        mitigations.append(
            f"Reverse-scored items were differentiated {_pct(v.reverse_discrimination_rate or 0)}% of the time."
        )

    if v.acquiescence_bias > 0.8:
        if discriminates:
            observations.append(
                f"High agreement rate ({_pct(v.acquiescence_bias)}%) alongside good differentiation on "
                "reverse-scored items; read scores at face value."
            )
        else:
            observations.append(
                f"High agreement rate ({_pct(v.acquiescence_bias)}%) without differentiation on reverse-scored "
                "items; scores may be somewhat elevated."
            )
    elif v.acquiescence_bias > 0.7:
        observations.append(f"Elevated agreement tendency ({_pct(v.acquiescence_bias)}% positive responses).")

    if v.impression_management > 0.7:
        observations.append(
            f"Elevated social desirability responding ({_pct(v.impression_management)}% of probes endorsed)."
        )
    elif v.impression_management > 0.5:
        observations.append(f"Moderately elevated impression management ({_pct(v.impression_management)}%).")

    if v.straight_line_pct > 0.6:
        tail = "with adequate response times" if v.adequate_response_time else "combined with rapid responses"
        observations.append(f"The modal answer covers {_pct(v.straight_line_pct)}% of scaled items, {tail}.")
    if v.extreme_response_pct > 0.7:
        observations.append(f"{_pct(v.extreme_response_pct)}% of scaled answers were at the scale endpoints.")
    if v.inconsistency_index > 2.0:
        observations.append(f"Inconsistency index of {v.inconsistency_index:.1f} on paired validity items.")
    if v.fast_response_pct > 0.5:
        observations.append(f"{_pct(v.fast_response_pct)}% of responses took under 2 seconds.")
    return mitigations, observations


def build_system_prompt(tier: str, validity: ValiditySignals, needs_tiebreak: bool) -> str:
    prompt = _BASE_PROMPT
    prompt += "\nBe thorough, 3-4 sentences per dimension." if tier == "deep" else "\nKeep each dimension to 1-2 sentences."
    if needs_tiebreak:
        prompt += ("\n\nIMPORTANT: two archetypes matched closely. Use the actual responses to decide which is "
                   "the better primary fit and explain why in the summary.")
    mitigations, observations = validity_notes(validity)
    if observations:
        prompt += "\n\nRESPONSE PATTERN OBSERVATIONS:"
        if mitigations:
            prompt += "\nMitigating factors:\n" + "\n".join(f"- {m}" for m in mitigations)
        prompt += "\nObservations:\n" + "\n".join(f"{i}. {o}" for i, o in enumerate(observations, 1))
        prompt += "\nDescribe patterns factually. Report the scores as they are."
    elif validity.overall_reliability == "medium":
        prompt += "\n\nNote: some validity indicators are slightly elevated but within acceptable range."
    return prompt


def _archetype_brief(a: ArchetypeProfile) -> Dict[str, Any]:
    return {
        "id": a.id, "name": a.name, "tagline": a.tagline, "description": a.description,
        "strengths": a.strengths, "blind_spots": a.blind_spots, "growth_actions": a.growth_actions,
        "compatible_with": a.compatible_with, "tension_with": a.tension_with,
    }


def parse_reply(raw: str) -> Optional[Dict[str, Any]]:
    try:
        reply = NarrativeReply.model_validate_json(raw)
    except ValidationError as e:
        log.debug("narrative reply rejected: %s", str(e)[:300])
        return None
    out = reply.model_dump()
    dive = out.get("dimensional_deep_dive")
    if dive is not None and not all(isinstance(dive.get(d), str) for d in DIMENSIONS):
        out["dimensional_deep_dive"] = None
    return out


def fallback_narrative(profile: ScoreProfile, primary: ArchetypeProfile, secondary: ArchetypeProfile) -> Dict[str, Any]:
    ranked = sorted(DIMENSIONS, key=lambda d: -profile[d].score)
    top, bottom = ranked[0], ranked[-1]
    name = primary.name or primary.id
    strengths = [
        {"title": s, "description": (f"This is a core part of your leadership identity as a {name}." if i == 0
                                     else "This strength supports your effectiveness in team settings.")}
        for i, s in enumerate(primary.strengths[:3])
    ]
    return {
        "headline": name,
        "summary": primary.description,
        "strengths": strengths,
        "blind_spots": [{"title": b, "description": f"Something to watch, common for {name} leaders."}
                        for b in primary.blind_spots[:3]],
        "growth_actions": [{"title": g, "description": "A practical step you can start this week."}
                           for g in primary.growth_actions[:3]],
        "under_pressure": f"Under pressure, {name} leaders tend to lean harder into {top}. Watch for over-indexing there.",
        "team_dynamics": f"Your team likely sees a leader strong in {top} who could invest more in {bottom}.",
        "deep_insight": (f"Your secondary archetype ({secondary.name or secondary.id}) suggests more range "
                         f"than a typical {name}."),
        "dimensional_deep_dive": None,
    }


def generate_narrative(
    profile: ScoreProfile,
    validity: ValiditySignals,
    match: MatchResult,
    archetypes_by_id: Mapping[str, ArchetypeProfile],
    responses: Sequence[ResponseRecord] = (),
    tier: str = "quick",
    items_by_id: Optional[Mapping[str, Item]] = None,
) -> Dict[str, Any]:
    primary = archetypes_by_id[match.primary_id]
    secondary = archetypes_by_id.get(match.secondary_id, primary)
    backend = llm_bridge.backend_in_use("NARRATIVE_BACKEND")

    if llm_bridge.backend_ready(backend):
        system = build_system_prompt(tier, validity, match.needs_tiebreak)
        items_by_id = items_by_id or {}
        user = json.dumps({
            "tier": tier,
            "archetype": _archetype_brief(primary),
            "secondary_archetype": _archetype_brief(secondary),
            "scores": {d: round(profile[d].score, 1) for d in DIMENSIONS},
            "responses": [
                {
                    "question_text": items_by_id[r.item_id].text if r.item_id in items_by_id else r.item_id,
                    "answer_value": getattr(r.answer, "value", getattr(r.answer, "key", None)),
                    "question_type": items_by_id[r.item_id].type if r.item_id in items_by_id else None,
                }
                for r in responses
            ],
        }, ensure_ascii=False)
        max_tokens = 5000 if tier == "deep" else 3000
        for attempt in range(1, NARRATIVE_ATTEMPTS + 1):
            try:
                raw = llm_bridge.complete(system, user, backend=backend, timeout=NARRATIVE_TIMEOUT_SEC,
                                           max_tokens=max_tokens)
            except Exception as e:  # any transport failure ends in the template
                log.info("narrative attempt %d failed: %s", attempt, e)
                continue
            parsed = parse_reply(raw)
            if parsed is not None:
                parsed["source"] = "llm"
                return parsed
            log.info("narrative attempt %d returned an invalid payload", attempt)

    out = fallback_narrative(profile, primary, secondary)
    out["source"] = "fallback"
    return out
