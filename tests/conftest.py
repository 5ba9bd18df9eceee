from __future__ import annotations

import pytest

from leadership_core.types import DIMENSIONS, ArchetypeProfile, Item, ItemOption


def likert_weights(dim: str, reverse: bool = False) -> dict[str, dict[str, float]]:
    values = [10, 30, 50, 70, 90]
    if reverse:
        values = values[::-1]
    return {str(i + 1): {dim: float(v)} for i, v in enumerate(values)}


def build_synthetic_bank(
    *,
    dimensions: list[str] | None = None,
    likert_per_dimension: int = 3,
    include_options: bool = True,
    tiers: tuple[str, ...] = ("quick", "deep"),
) -> list[Item]:
    """Create a deterministic synthetic bank for tests and smoke runs."""

    items: list[Item] = []
    for d_idx, dim in enumerate(dimensions or list(DIMENSIONS)):
        for idx in range(likert_per_dimension):
            items.append(
                Item(
                    id=f"{dim}_l{idx}",
                    dimension=dim,
                    type="likert",
                    text=f"{dim} statement #{idx}",
                    scoring_weights=likert_weights(dim, reverse=(idx == 1)),
                    difficulty=round(0.3 + 0.1 * idx + 0.01 * d_idx, 2),
                    reverse_scored=(idx == 1),
                    validity_pair_id=f"{dim}_pair" if idx < 2 else None,
                    tiers=list(tiers),
                )
            )
        if include_options:
            items.append(
                Item(
                    id=f"{dim}_s0",
                    dimension=dim,
                    type="situational",
                    text=f"{dim} scenario",
                    options=[
                        ItemOption("a", "best", {dim: 90.0}),
                        ItemOption("b", "fine", {dim: 60.0}),
                        ItemOption("c", "weak", {dim: 30.0}),
                    ],
                    difficulty=round(0.7 + 0.01 * d_idx, 2),
                    tiers=list(tiers),
                )
            )
            items.append(
                Item(
                    id=f"{dim}_f0",
                    dimension=dim,
                    type="forced_choice",
                    text=f"{dim} either/or",
                    options=[ItemOption("a", "this", {dim: 80.0}), ItemOption("b", "that", {dim: 40.0})],
                    difficulty=round(0.8 + 0.01 * d_idx, 2),
                    tiers=list(tiers),
                )
            )
    return items


def build_archetypes() -> list[ArchetypeProfile]:
    return [
        ArchetypeProfile(
            id="driver",
            name="Driver",
            ideal_scores={"drive": 90, "resilience": 80, "vision": 55, "connection": 45, "adaptability": 55, "integrity": 40},
            red_flags={"drive": {"below": 40}},
            strengths=["Pace", "Ownership", "Grit"],
            blind_spots=["Impatience"],
            growth_actions=["Slow down once a week"],
        ),
        ArchetypeProfile(
            id="diplomat",
            name="Diplomat",
            ideal_scores={"drive": 50, "resilience": 55, "vision": 55, "connection": 92, "adaptability": 85, "integrity": 35},
            red_flags={"connection": {"below": 40}},
            strengths=["Trust", "Empathy"],
            blind_spots=["Avoids hard calls"],
            growth_actions=["Make one unpopular call"],
        ),
    ]


@pytest.fixture
def synthetic_bank() -> list[Item]:
    return build_synthetic_bank()


@pytest.fixture
def archetype_catalogue() -> list[ArchetypeProfile]:
    return build_archetypes()


@pytest.fixture(autouse=True)
def _no_live_llm(monkeypatch):
    monkeypatch.delenv("REASONING_BACKEND", raising=False)
    monkeypatch.delenv("NARRATIVE_BACKEND", raising=False)
    monkeypatch.setenv("LLM_SELECTION_LOG", "")
