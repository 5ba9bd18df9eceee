from __future__ import annotations
from collections import defaultdict
import os
from leadership_core.question_bank import load_bank
from leadership_core.types import DIMENSIONS

# Configurable targets; defaults match the packaged bank
TARGETS = {
    "likert_min": int(os.getenv("TARGET_LIKERT_MIN", 4)),
    "situational_min": int(os.getenv("TARGET_SITUATIONAL_MIN", 2)),
    "forced_choice_min": int(os.getenv("TARGET_FORCED_CHOICE_MIN", 1)),
    "reverse_min": int(os.getenv("TARGET_REVERSE_MIN", 2)),
    "quick_min": int(os.getenv("TARGET_QUICK_MIN", 4)),
}

def main():
    items = load_bank()
    by_dim = defaultdict(list)
    for it in items:
        by_dim[it.dimension].append(it)

    print(f"Targets per dimension: ≥{TARGETS['likert_min']} likert (≥{TARGETS['reverse_min']} reverse-scored), "
          f"≥{TARGETS['situational_min']} situational, ≥{TARGETS['forced_choice_min']} forced choice, "
          f"≥{TARGETS['quick_min']} quick-eligible.\n")

    short = 0
    for d in DIMENSIONS:
        dim = by_dim[d]
        lik = [it for it in dim if it.type == "likert"]
        sjt = [it for it in dim if it.type == "situational"]
        fc = [it for it in dim if it.type == "forced_choice"]
        rev = sum(1 for it in lik if it.reverse_scored)
        quick = sum(1 for it in dim if "quick" in it.tiers)

        print(f"{d}: likert={len(lik)} situational={len(sjt)} forced_choice={len(fc)}  reverse={rev} quick={quick}")
        for lo, hi in [(0.0, 0.3), (0.3, 0.5), (0.5, 0.7), (0.7, 1.01)]:
            n = sum(1 for it in dim if lo <= it.difficulty < hi)
            print(f"  difficulty {lo:.1f}-{min(hi, 1.0):.1f}: {n:2d}")

        need = {
            "likert": max(0, TARGETS["likert_min"] - len(lik)),
            "situational": max(0, TARGETS["situational_min"] - len(sjt)),
            "forced_choice": max(0, TARGETS["forced_choice_min"] - len(fc)),
            "reverse likert": max(0, TARGETS["reverse_min"] - rev),
            "quick-eligible": max(0, TARGETS["quick_min"] - quick),
        }
        if any(need.values()):
            short += 1
            print("  → Add: " + ", ".join(f"{k} {v}" for k, v in need.items() if v) + "\n")
        else:
            print("  ✓ Meets targets\n")
    return 1 if short else 0

if __name__ == "__main__":
    raise SystemExit(main())
