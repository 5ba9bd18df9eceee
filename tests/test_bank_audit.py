from __future__ import annotations

import tempfile
from pathlib import Path

import leadership_core.audit_bank as audit_bank
from leadership_core import config
from leadership_core.question_bank import load_bank
from leadership_core.types import Item
from tests.conftest import build_synthetic_bank


def test_audit_flags_sparse_dimensions(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "BANK_MIN_PER_DIMENSION", 6, raising=False)

    bank = build_synthetic_bank(dimensions=["drive", "vision"], likert_per_dimension=2)

    summary = audit_bank.audit_items(bank)
    assert summary["warnings"], "expected sparse coverage warnings"
    joined = "\n".join(summary["warnings"])
    assert "drive quick tier has 4 (<6)" in joined
    assert "integrity deep tier has 0 (<6)" in joined
    assert summary["coverage"]["drive"]["types"] == {"likert": 2, "situational": 1, "forced_choice": 1}
    assert summary["coverage"]["drive"]["reverse_scored"] == 1

    outfile = tmp_path / "bank_audit.json"
    text = audit_bank.write_summary(summary, path=outfile)
    assert outfile.read_text(encoding="utf-8").strip() == text


def test_audit_flags_malformed_items(monkeypatch):
    monkeypatch.setattr(config, "BANK_MIN_PER_DIMENSION", 0, raising=False)
    monkeypatch.setattr(config, "BANK_MIN_NON_LIKERT", 0, raising=False)

    items = [
        Item(id="a1", dimension="drive", type="likert", text="t", difficulty=1.4, validity_pair_id="lonely"),
        Item(id="a1", dimension="drive", type="situational", text="t"),
        Item(id="b1", dimension="charisma", type="likert", text="t"),
        Item(id="c1", dimension="vision", type="essay", text="t"),
    ]
    warnings = audit_bank.audit_items(items)["warnings"]
    joined = "\n".join(warnings)

    assert "a1 difficulty 1.4 outside [0, 1]" in joined
    assert "a1 is likert but has no scoring_weights" in joined
    assert "a1 is situational but has no options" in joined
    assert "duplicate item id a1 (2x)" in joined
    assert "validity pair lonely has 1 member(s)" in joined
    assert "unknown dimension 'charisma'" in joined
    assert "unknown type 'essay'" in joined


def test_audit_flags_likert_only_tier(monkeypatch):
    monkeypatch.setattr(config, "BANK_MIN_PER_DIMENSION", 0, raising=False)
    bank = build_synthetic_bank(include_options=False)
    warnings = audit_bank.audit_items(bank)["warnings"]
    assert any("quick tier has 0 non-likert" in w for w in warnings)


def test_packaged_bank_is_clean():
    summary = audit_bank.audit_items(load_bank())
    assert summary["warnings"] == []
    assert sum(summary["totals"].values()) == len(load_bank())


def test_main_returns_warning_exit(monkeypatch, capsys):
    monkeypatch.setattr(config, "BANK_MIN_PER_DIMENSION", 6, raising=False)

    bank = build_synthetic_bank(dimensions=["drive"], likert_per_dimension=1)
    monkeypatch.setattr(audit_bank, "load_bank", lambda: bank)

    exit_code = audit_bank.main([])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "drive" in captured.out
    assert "Warnings:" in captured.out
    assert (Path(tempfile.gettempdir()) / "bank_audit.json").exists()
