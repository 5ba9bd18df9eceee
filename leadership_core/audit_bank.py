from __future__ import annotations

import json
import tempfile
from collections import Counter
from pathlib import Path
from typing import Iterable

from . import config
from .question_bank import TIERS, load_bank
from .types import DIMENSIONS, Item

ITEM_TYPES: tuple[str, ...] = ("likert", "situational", "forced_choice")


def _blank_dimension() -> dict[str, object]:
    return {
        "types": {t: 0 for t in ITEM_TYPES},
        "tiers": {t: 0 for t in TIERS},
        "reverse_scored": 0,
        "impression_management": 0,
    }


def audit_items(items: Iterable[Item]) -> dict[str, object]:
    coverage: dict[str, dict[str, object]] = {d: _blank_dimension() for d in DIMENSIONS}
    totals = {t: 0 for t in ITEM_TYPES}
    warnings: list[str] = []
    ids: Counter[str] = Counter()
    pairs: dict[str, list[str]] = {}
    non_likert_per_tier = {t: 0 for t in TIERS}

    for item in items:
        ids[item.id] += 1
        if item.dimension not in coverage:
            warnings.append(f"{item.id} has unknown dimension {item.dimension!r}")
            continue
        data = coverage[item.dimension]
        types = data["types"]  # type: ignore[assignment]
        if item.type in types:
            types[item.type] += 1
            totals[item.type] += 1
        else:
            warnings.append(f"{item.id} has unknown type {item.type!r}")
        for tier in item.tiers:
            if tier in data["tiers"]:  # type: ignore[operator]
                data["tiers"][tier] += 1  # type: ignore[index]
                if item.type != "likert":
                    non_likert_per_tier[tier] += 1
        data["reverse_scored"] += int(item.reverse_scored)  # type: ignore[operator]
        data["impression_management"] += int(item.is_impression_management)  # type: ignore[operator]

        if not 0.0 <= float(item.difficulty) <= 1.0:
            warnings.append(f"{item.id} difficulty {item.difficulty} outside [0, 1]")
        if item.type == "likert" and not item.scoring_weights:
            warnings.append(f"{item.id} is likert but has no scoring_weights")
        if item.type != "likert" and not item.options:
            warnings.append(f"{item.id} is {item.type} but has no options")
        if item.validity_pair_id:
            pairs.setdefault(item.validity_pair_id, []).append(item.id)

    for dup, n in sorted(ids.items()):
        if n > 1:
            warnings.append(f"duplicate item id {dup} ({n}x)")
    for pair_id, members in sorted(pairs.items()):
        if len(members) != 2:
            warnings.append(f"validity pair {pair_id} has {len(members)} member(s), expected 2")
    for dim, data in coverage.items():
        for tier, n in data["tiers"].items():  # type: ignore[union-attr]
            if n < config.BANK_MIN_PER_DIMENSION:
                warnings.append(f"{dim} {tier} tier has {n} (<{config.BANK_MIN_PER_DIMENSION})")
    for tier, n in non_likert_per_tier.items():
        if n < config.BANK_MIN_NON_LIKERT:
            warnings.append(f"{tier} tier has {n} non-likert items (<{config.BANK_MIN_NON_LIKERT})")

    return {"coverage": coverage, "warnings": warnings, "totals": totals}


def print_report(summary: dict[str, object]) -> None:
    coverage: dict[str, dict[str, object]] = summary["coverage"]  # type: ignore[assignment]
    print("=== Bank Coverage ===")
    for dim in DIMENSIONS:
        data = coverage[dim]
        types = "  ".join(f"{t}:{n:3d}" for t, n in data["types"].items())  # type: ignore[union-attr]
        tiers = "  ".join(f"{t}:{n:3d}" for t, n in data["tiers"].items())  # type: ignore[union-attr]
        print(f"\n{dim}\n  {types}\n  {tiers}  reverse:{data['reverse_scored']}  im:{data['impression_management']}")

    warnings: list[str] = summary["warnings"]  # type: ignore[assignment]
    if warnings:
        print("\nWarnings:")
        for msg in warnings:
            print(f" - {msg}")
    else:
        print("\nNo warnings.")
    print("\nTotals:", summary["totals"])


def write_summary(summary: dict[str, object], path: Path | None = None) -> str:
    path = path or Path(tempfile.gettempdir()) / "bank_audit.json"
    text = json.dumps(summary, indent=2, sort_keys=True)
    path.write_text(text + "\n", encoding="utf-8")
    return text


def main(_argv: list[str] | None = None) -> int:
    items = load_bank()
    summary = audit_items(items)
    print_report(summary)
    write_summary(summary)
    return 2 if summary["warnings"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
