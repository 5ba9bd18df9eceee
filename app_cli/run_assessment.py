
from __future__ import annotations
import os, sys, json, datetime, time
from leadership_core.engine import AssessmentSession
from leadership_core.types import Item
def ask(item: Item) -> str:
    if item.type == "likert":
        prompt = f"(1-5) {item.text}  [1=strongly disagree, 5=strongly agree]"
        while True:
            v = input(prompt + " ").strip()
            if v in {"1", "2", "3", "4", "5"}: return v
            print("Enter a number from 1 to 5.")
    print(item.text)
    keys = [o.key for o in item.options]
    for o in item.options: print(f"  [{o.key}] {o.text}")
    while True:
        v = input("Your choice: ").strip().lower()
        if v in keys: return v
        print(f"Enter one of: {', '.join(keys)}")
def main():
    tier = sys.argv[1] if len(sys.argv) > 1 else "quick"
    print(f"Leadership Assessment ({tier})")
    session = AssessmentSession(tier=tier)
    while True:
        batch = session.next_batch()
        if not batch: break
        print(f"\n--- Round {session.state.round_number} of {session.state.total_rounds} ---")
        answers = []
        for item in batch:
            t0 = time.perf_counter(); v = ask(item); rt_ms = int((time.perf_counter() - t0) * 1000)
            answers.append((item.id, v, rt_ms))
        session.submit(answers)
    res = session.finalize(); os.makedirs("reports", exist_ok=True)
    ts = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
    path = os.path.join("reports", f"report_{tier}_{ts}.json")
    with open(path, "w", encoding="utf-8") as f: json.dump(res, f, indent=2)
    print(f"\n{res['narrative']['headline']}")
    for dim, score in res["scores"].items(): print(f"  {dim:<13}{score:>4}  ({res['confidence_tiers'][dim]} confidence)")
    print(f"Done. Report saved to: {path}")
if __name__ == "__main__": main()
