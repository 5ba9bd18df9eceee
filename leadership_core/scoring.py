from __future__ import annotations
from typing import Dict, Optional, Union
from .types import DIMENSIONS, Item, AnswerValue, ScaledAnswer, OptionAnswer


def _zero() -> Dict[str, float]:
    return {d: 0.0 for d in DIMENSIONS}


def resolve_answer(item: Item, raw: Union[int, str, AnswerValue]) -> AnswerValue:
    """Turn a number-or-string answer from the host into a tagged answer.

    Scaled items expect a number; option items expect a key. Anything that
    does not parse is kept as an option key, which later scores as zero."""

    if isinstance(raw, (ScaledAnswer, OptionAnswer)):
        return raw
    if item.type == "likert":
        try:
            return ScaledAnswer(int(str(raw).strip()))
        except ValueError:
            return OptionAnswer(str(raw))
    return OptionAnswer(str(raw).strip())


def contribution(item: Item, answer: AnswerValue) -> Dict[str, float]:
    out = _zero()
    table: Dict[str, float] = {}
    if item.type == "likert":
        if isinstance(answer, ScaledAnswer):
            table = item.scoring_weights.get(str(answer.value)) or {}
    elif isinstance(answer, OptionAnswer):
        opt = next((o for o in item.options if o.key == answer.key), None)
        if opt is not None:
            table = opt.scores
    for dim, val in table.items():
        if dim in out:
            try:
                out[dim] = float(val)
            except (TypeError, ValueError):
                out[dim] = 0.0
    return out


def scale_value(item: Item, answer: AnswerValue) -> Optional[int]:
    """Native 1-5 answer of a scaled item, or None."""

    if item.type != "likert" or not isinstance(answer, ScaledAnswer):
        return None
    v = answer.value
    return v if 1 <= v <= 5 else None
