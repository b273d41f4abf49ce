import json

import pytest

from modifiers import (
    DEFAULT_TUNING,
    IDENTITY,
    ModifierBundle,
    combine_all,
    load_tuning,
)


def test_multiplicative_and_additive_channels_combine():
    a = ModifierBundle(tax_multiplier=1.5, stability_delta=5.0)
    b = ModifierBundle(tax_multiplier=0.5, stability_delta=-2.0, upkeep_pct=0.1)
    c = a.combine(b)
    assert c.tax_multiplier == pytest.approx(0.75)
    assert c.stability_delta == pytest.approx(3.0)
    assert c.upkeep_pct == pytest.approx(0.1)
    assert c.manpower_multiplier == 1.0


def test_identity_is_neutral():
    b = ModifierBundle(corruption_delta=-0.2, research_output_multiplier=1.1)
    assert b.combine(IDENTITY) == b
    assert IDENTITY.combine(b) == b
    assert IDENTITY.is_identity()
    assert not b.is_identity()
    assert combine_all([]) == IDENTITY


def test_to_dict_only_lists_changed_channels():
    b = ModifierBundle(tax_multiplier=1.3, stability_delta=-15.0)
    assert b.to_dict() == {"tax_multiplier": 1.3, "stability_delta": -15.0}
    assert ModifierBundle.from_dict(b.to_dict()) == b


def test_from_dict_drops_unknown_and_malformed(caplog):
    b = ModifierBundle.from_dict({"tax_multiplier": "oops", "attack_bonus": 3, "stability_delta": "4"})
    assert b.tax_multiplier == 1.0
    assert b.stability_delta == 4.0
    assert "attack_bonus" in caplog.text


def test_bundles_are_frozen():
    with pytest.raises(Exception):
        IDENTITY.tax_multiplier = 2.0


def test_load_tuning_overlays_known_keys(tmp_path):
    path = tmp_path / "realm.json"
    path.write_text(json.dumps({
        "base_tax_rate": 0.1,
        "leader_capacity": "5",
        "not_a_setting": 1,
        "per_capita_gdp": "bad",
    }))
    t = load_tuning(str(path))
    assert t.base_tax_rate == pytest.approx(0.1)
    assert t.leader_capacity == 5
    assert t.per_capita_gdp == DEFAULT_TUNING.per_capita_gdp
    assert DEFAULT_TUNING.base_tax_rate == pytest.approx(0.05)


def test_load_tuning_missing_or_broken_file(tmp_path):
    assert load_tuning(str(tmp_path / "absent.json")) is DEFAULT_TUNING
    broken = tmp_path / "broken.json"
    broken.write_text("{not json")
    assert load_tuning(str(broken)) is DEFAULT_TUNING
