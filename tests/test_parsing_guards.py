import json
from pathlib import Path

from engine import RealmEngine
from sim.safe_parse import clamp, to_bool, to_float, to_int, to_json_list, to_str_list


def test_safe_parse_helpers():
    assert to_int("7") == 7
    assert to_int("bad", default=3) == 3
    assert to_int(True, default=4) == 4
    assert to_int("2.9") == 2
    assert to_float("1.5") == 1.5
    assert to_float("nan", default=2.5) == 2.5
    assert to_float(None, default=1.0) == 1.0
    assert to_bool("yes") is True
    assert to_bool("maybe", default=False) is False
    assert to_str_list(" a; ;b ") == ["a", "b"]
    assert to_json_list("[1, 2]") == [1, 2]
    assert to_json_list("{}") == []
    assert to_json_list("oops") == []
    assert clamp(5, 0, 1) == 1
    assert clamp(-5, 0, 1) == 0


def test_world_loader_guard(tmp_path: Path):
    # Hand written save with problematic strings
    data = {
        "seed": "9",
        "time": "12.5",
        "calendar": {"year": "3", "month": "14", "day": "x"},
        "world": {
            "seconds_per_year": "fast",
            "realms": {
                "0": {
                    "realm_id": "0",
                    "name": "Oddland",
                    "buildings": "-4",
                    "members": [
                        {"id": "1", "age": "33", "money": "lots", "soldier": "true"},
                        "not a member",
                    ],
                    "cities": [{"city_id": 5, "name": "Port", "resources": {"wood": "12"}}],
                }
            },
            "wars": [],
            "contracts": [],
        },
        "ledgers": {
            "realmsim.0.treasury": "250",
            "realmsim.0.law.taxation": "High",
            "realmsim.0.stability": "inf",
        },
    }
    path = tmp_path / "world.json"
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f)

    eng = RealmEngine()
    eng.load_json(str(path))
    realm = eng.world.realms[0]
    assert realm.buildings == 0
    assert len(realm.members) == 1
    m = realm.members[0]
    assert m.age == 33
    assert m.money == 0  # default from to_int
    assert m.soldier is True
    assert realm.cities[0].resources == {"wood": 12}
    assert eng.world.seconds_per_year == 60.0
    assert eng.calendar.month == 12
    assert eng.calendar.day == 1
    assert eng.sim_time == 12.5

    led = eng.ledgers[0]
    assert led.treasury == 250
    assert led.stability == 50.0
    assert led.laws
    eng.force_recompute(0)
    assert led.census.population == 1
