# leadership_core/engine.py
from __future__ import annotations
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
from datetime import datetime, timezone
import logging

from .types import DIMENSIONS, ArchetypeProfile, Item, ResponseRecord, ScoreProfile, SelectionDecision, ValiditySignals
from .question_bank import load_bank
from .archetypes import load_archetypes, match as match_archetypes
from .scoring import resolve_answer
from .validators import analyze
from .norms import load_norms, comparison
from .narrative import generate_narrative
from .policy import ItemSelector, Reasoner
from .config import BATCH_SIZE, ROUNDS_PER_TIER, UPGRADE_ROUNDS, DEBUG_TRACE, TRACE_FIELDS
from . import fusion


log = logging.getLogger(__name__)

RawAnswer = Union[int, str]


def _emit_trace(**values: object) -> None:
    if not DEBUG_TRACE:
        return
    ordered = []
    for key in TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        log.info("trace %s", " ".join(str(val) for val in ordered))


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class EngineState:
    tier: str
    total_rounds: int
    phase: str = "seeding"  # seeding -> adaptive -> exhausted
    round_number: int = 0
    pending: List[str] = field(default_factory=list)
    responses: List[ResponseRecord] = field(default_factory=list)
    decisions: List[Dict[str, object]] = field(default_factory=list)
    audit_events: List[Dict[str, object]] = field(default_factory=list)


class AssessmentSession:
    """One respondent's run through SEEDING -> ADAPTIVE_ROUND* -> EXHAUSTED.

    Rounds must be driven one at a time; the host serialises calls per session.
    A ``prior`` profile (from a finished quick run) skips seeding and starts
    the adaptive rounds from that belief."""

    def __init__(
        self,
        tier: str = "quick",
        items: Optional[Sequence[Item]] = None,
        archetypes: Optional[Sequence[ArchetypeProfile]] = None,
        prior: Optional[ScoreProfile] = None,
        reasoner: Optional[Reasoner] = None,
        batch_size: int = BATCH_SIZE,
        norms: Optional[Mapping[str, Mapping[str, float]]] = None,
    ):
        if tier not in ROUNDS_PER_TIER:
            raise ValueError(f"unknown tier: {tier!r}")
        self.catalogue: List[Item] = list(items if items is not None else load_bank())
        self.items_by_id: Dict[str, Item] = {it.id: it for it in self.catalogue}
        self.archetypes: List[ArchetypeProfile] = list(archetypes if archetypes is not None else load_archetypes())
        self.norms = norms
        self.selector = ItemSelector(self.catalogue, tier, batch_size=batch_size, reasoner=reasoner)
        self.prior = prior
        self.state = EngineState(
            tier=tier,
            total_rounds=UPGRADE_ROUNDS if prior is not None else ROUNDS_PER_TIER[tier],
            phase="adaptive" if prior is not None else "seeding",
        )
        self._profile: ScoreProfile = dict(prior) if prior is not None else fusion.initialize()

    # ---- read side ----
    @property
    def profile(self) -> ScoreProfile:
        return self._profile

    @property
    def phase(self) -> str:
        return self.state.phase

    @property
    def answered_ids(self) -> List[str]:
        return [r.item_id for r in self.state.responses]

    def validity(self) -> ValiditySignals:
        return analyze(self.state.responses, self.catalogue)

    def pending_items(self) -> List[Item]:
        return [self.items_by_id[i] for i in self.state.pending]

    # ---- rounds ----
    def _exhaust(self, why: str) -> List[Item]:
        if self.state.phase != "exhausted":
            log.info("session exhausted after round %d: %s", self.state.round_number, why)
        self.state.phase = "exhausted"
        self.state.pending = []
        return []

    def next_batch(self) -> List[Item]:
        """Items for the current round; repeated calls return the same batch until it is answered."""

        st = self.state
        if st.pending:
            return self.pending_items()
        if st.phase == "exhausted":
            return []
        if st.round_number >= st.total_rounds:
            return self._exhaust("round budget used")

        if st.phase == "seeding":
            decision = self.selector.seed_batch()
        else:
            decision = self.selector.next_batch(
                self._profile, self.answered_ids, st.round_number + 1, st.total_rounds, self.validity()
            )
        if not decision.item_ids:
            return self._exhaust("item pool empty")

        st.round_number += 1
        st.phase = "adaptive"
        st.pending = list(decision.item_ids)
        st.decisions.append({
            "round": st.round_number,
            "source": decision.source,
            "item_ids": list(decision.item_ids),
            "rationale": decision.rationale,
        })
        log.debug("round %d via %s: %s", st.round_number, decision.source, decision.item_ids)
        return self.pending_items()

    def submit(self, answers: Iterable[Tuple[str, RawAnswer, Optional[int]]]) -> int:
        """Fold answers for the current batch into the belief; returns how many were accepted."""

        st = self.state
        if st.phase == "exhausted":
            raise ValueError("assessment is exhausted; no further answers accepted")
        accepted = 0
        answered = set(self.answered_ids)
        for item_id, raw, rt_ms in answers:
            item = self.items_by_id.get(item_id)
            if item is None:
                log.warning("unknown item id %s; answer skipped", item_id)
                continue
            if item_id in answered or item_id not in st.pending:
                log.warning("item %s is not awaiting an answer; skipped", item_id)
                continue
            rec = ResponseRecord(item_id=item_id, answer=resolve_answer(item, raw),
                                 time_to_answer_ms=int(rt_ms) if rt_ms is not None else None)
            rows: List[Dict[str, object]] = []
            self._profile = fusion.fold(self.items_by_id, [rec], prior=self._profile, trace=rows)
            for row in rows:
                event = {"t": _now_iso(), "round": st.round_number, **row}
                st.audit_events.append(event)
                _emit_trace(**event)
            st.responses.append(rec)
            st.pending.remove(item_id)
            answered.add(item_id)
            accepted += 1
        return accepted

    # ---- results ----
    def finalize(self, with_narrative: bool = True) -> Dict[str, Any]:
        profile = self._profile
        validity = self.validity()
        match = match_archetypes(profile, self.archetypes)
        scores = fusion.simple_scores(profile)
        norms = self.norms if self.norms is not None else load_norms()
        result: Dict[str, Any] = {
            "tier": self.state.tier,
            "upgrade": self.prior is not None,
            "rounds": self.state.round_number,
            "responses": len(self.state.responses),
            "scores": scores,
            "profile": fusion.to_dict(profile),
            "confidence_tiers": {d: fusion.confidence_tier(profile[d].uncertainty) for d in DIMENSIONS},
            "validity": asdict(validity),
            "match": asdict(match),
            "population": comparison(scores, norms),
            "decisions": list(self.state.decisions),
            "audit_events": list(self.state.audit_events),
        }
        if with_narrative:
            by_id = {a.id: a for a in self.archetypes}
            result["narrative"] = generate_narrative(
                profile, validity, match, by_id, self.state.responses, self.state.tier, self.items_by_id
            )
        return result
