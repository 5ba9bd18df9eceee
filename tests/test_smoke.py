from __future__ import annotations

from leadership_core import smoke


def test_scripted_quick_run_on_packaged_catalogue():
    result = smoke.run_smoke_session("quick", lean=5)
    assert result["rounds"] == 3
    assert result["responses"] == 15
    assert result["decisions"][0]["source"] == "seed"
    assert result["scores"]["drive"] > 50


def test_scripted_upgrade_run():
    result = smoke.run_smoke_session("quick", lean=2, upgrade=True)
    assert result["tier"] == "deep"
    assert result["upgrade"] is True
    assert 0 < result["rounds"] <= 7


def test_cli_entrypoint():
    assert smoke.main(["--tier", "deep", "--lean", "3"]) == 0
