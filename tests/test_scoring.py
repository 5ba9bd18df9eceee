from __future__ import annotations

from leadership_core.scoring import contribution, resolve_answer, scale_value
from leadership_core.types import DIMENSIONS, Item, ItemOption, OptionAnswer, ScaledAnswer
from tests.conftest import likert_weights


def _likert(**kw) -> Item:
    return Item(id="l", dimension="drive", type="likert", text="t", scoring_weights=likert_weights("drive"), **kw)


def _situational() -> Item:
    return Item(
        id="s", dimension="vision", type="situational", text="t",
        options=[ItemOption("a", "x", {"vision": 85.0, "drive": 40.0}), ItemOption("b", "y", {"vision": 20.0})],
    )


def test_resolve_answer_tags_by_item_type():
    assert resolve_answer(_likert(), 4) == ScaledAnswer(4)
    assert resolve_answer(_likert(), " 2 ") == ScaledAnswer(2)
    assert resolve_answer(_likert(), "often") == OptionAnswer("often")
    assert resolve_answer(_situational(), " b ") == OptionAnswer("b")
    assert resolve_answer(_situational(), ScaledAnswer(3)) == ScaledAnswer(3)


def test_likert_contribution_uses_stringified_value():
    out = contribution(_likert(), ScaledAnswer(4))
    assert out["drive"] == 70.0
    assert set(out) == set(DIMENSIONS)
    assert sum(v for d, v in out.items() if d != "drive") == 0.0


def test_option_contribution_covers_multiple_dimensions():
    out = contribution(_situational(), OptionAnswer("a"))
    assert out["vision"] == 85.0
    assert out["drive"] == 40.0


def test_malformed_answers_give_zero_vector():
    zero = {d: 0.0 for d in DIMENSIONS}
    assert contribution(_situational(), OptionAnswer("z")) == zero
    assert contribution(_situational(), ScaledAnswer(3)) == zero
    assert contribution(_likert(), ScaledAnswer(9)) == zero
    assert contribution(_likert(), OptionAnswer("often")) == zero


def test_scale_value_only_for_in_range_likert():
    assert scale_value(_likert(), ScaledAnswer(5)) == 5
    assert scale_value(_likert(), ScaledAnswer(0)) is None
    assert scale_value(_situational(), OptionAnswer("a")) is None


def test_option_keys_match_case_exactly():
    item = Item(
        id="fc_upper", dimension="drive", type="forced_choice", text="t",
        options=[ItemOption("A", "x", {"drive": 95.0}), ItemOption("B", "y", {"drive": 5.0})],
    )
    assert resolve_answer(item, "A ") == OptionAnswer("A")
    assert contribution(item, resolve_answer(item, "A"))["drive"] == 95.0
    assert contribution(item, resolve_answer(item, "B"))["drive"] == 5.0
    assert contribution(item, resolve_answer(item, "a"))["drive"] == 0.0
