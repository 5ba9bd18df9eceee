from __future__ import annotations

import argparse
import logging
from typing import List, Optional, Tuple

from .config import DEBUG_TRACE, TRACE_FIELDS
from .engine import AssessmentSession
from .types import Item


def _maybe_enable_trace() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if DEBUG_TRACE:
        logging.getLogger("leadership_core.engine").setLevel(logging.INFO)


def _auto_answer(item: Item, lean: int) -> Tuple[str, object, Optional[int]]:
    """Scripted respondent: scaled items get ``lean`` (1-5), option items the first key."""

    if item.type == "likert":
        value = 6 - lean if item.reverse_scored else lean
        return item.id, value, 4500
    return item.id, item.options[0].key if item.options else "a", 7000


def run_smoke_session(tier: str = "quick", lean: int = 4, upgrade: bool = False) -> dict:
    _maybe_enable_trace()
    session = AssessmentSession(tier)
    logging.info("Starting scripted %s run (lean=%d)", tier, lean)
    logging.info("Trace fields: %s", ", ".join(TRACE_FIELDS))

    while True:
        batch = session.next_batch()
        if not batch:
            break
        session.submit([_auto_answer(it, lean) for it in batch])

    result = session.finalize(with_narrative=False)
    if upgrade and tier == "quick":
        deep = AssessmentSession("deep", prior=session.profile)
        answered = 0
        while True:
            batch = deep.next_batch()
            if not batch:
                break
            answered += deep.submit([_auto_answer(it, lean) for it in batch])
        logging.info("Upgrade answered %d extra items over %d rounds", answered, deep.state.round_number)
        result = deep.finalize(with_narrative=False)

    logging.info("Run complete: rounds=%s responses=%s", result["rounds"], result["responses"])
    for dim, score in result["scores"].items():
        logging.info("  %-12s score=%3d tier=%s", dim, score, result["confidence_tiers"][dim])
    logging.info("Match: %s (secondary %s) tiebreak=%s", result["match"]["primary_id"],
                 result["match"]["secondary_id"], result["match"]["needs_tiebreak"])
    logging.info("Reliability: %s", result["validity"]["overall_reliability"])
    sources: List[str] = [d["source"] for d in result["decisions"]]
    logging.info("Round sources: %s", sources)
    return result


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Scripted assessment run")
    ap.add_argument("--tier", choices=("quick", "deep"), default="quick")
    ap.add_argument("--lean", type=int, default=4, choices=range(1, 6))
    ap.add_argument("--upgrade", action="store_true", help="continue a quick run into the deep tier")
    args = ap.parse_args(argv)
    run_smoke_session(args.tier, args.lean, args.upgrade)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
