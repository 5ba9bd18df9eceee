from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Literal, Union

DIMENSIONS: List[str] = ["drive", "resilience", "vision", "connection", "adaptability", "integrity"]
ItemType = Literal["likert", "situational", "forced_choice"]
Reliability = Literal["high", "medium", "low"]

@dataclass
class ItemOption:
    key: str; text: str
    scores: Dict[str, float] = field(default_factory=dict)

@dataclass
class Item:
    id: str; dimension: str; type: ItemType; text: str
    secondary_dimension: Optional[str] = None
    scoring_weights: Dict[str, Dict[str, float]] = field(default_factory=dict)
    options: List[ItemOption] = field(default_factory=list)
    difficulty: float = 0.5
    reverse_scored: bool = False
    validity_pair_id: Optional[str] = None
    is_impression_management: bool = False
    tiers: List[str] = field(default_factory=lambda: ["quick", "deep"])

    def __post_init__(self) -> None:
        # bank rows arrive as plain dicts
        self.options = [o if isinstance(o, ItemOption) else ItemOption(**o) for o in self.options]

@dataclass(frozen=True)
class ScaledAnswer:
    value: int

@dataclass(frozen=True)
class OptionAnswer:
    key: str

AnswerValue = Union[ScaledAnswer, OptionAnswer]

@dataclass(frozen=True)
class ResponseRecord:
    item_id: str
    answer: AnswerValue
    time_to_answer_ms: Optional[int] = None

@dataclass(frozen=True)
class DimensionBelief:
    score: float = 50.0
    confidence: float = 0.1
    uncertainty: float = 1.0
    evidence_count: int = 0
    raw_contribution: float = 0.0
    max_possible: float = 0.0
    evidence_weight: float = 0.1

ScoreProfile = Dict[str, DimensionBelief]

@dataclass(frozen=True)
class ValiditySignals:
    inconsistency_index: float = 0.0
    impression_management: float = 0.0
    straight_line_pct: float = 0.0
    acquiescence_bias: float = 0.0
    extreme_response_pct: float = 0.0
    fast_response_pct: float = 0.0
    reverse_discrimination_rate: Optional[float] = None
    adequate_response_time: bool = True
    overall_reliability: Reliability = "medium"

@dataclass
class ArchetypeProfile:
    id: str
    ideal_scores: Dict[str, float]
    red_flags: Dict[str, Dict[str, float]] = field(default_factory=dict)
    name: str = ""
    tagline: str = ""
    description: str = ""
    strengths: List[str] = field(default_factory=list)
    blind_spots: List[str] = field(default_factory=list)
    growth_actions: List[str] = field(default_factory=list)
    compatible_with: List[str] = field(default_factory=list)
    tension_with: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class MatchResult:
    primary_id: str
    secondary_id: str
    similarity_by_archetype: Dict[str, float]
    needs_tiebreak: bool

@dataclass(frozen=True)
class SelectionDecision:
    item_ids: List[str]
    rationale: str
    source: str = "fallback"  # seed | reasoning | fallback | remaining | exhausted
