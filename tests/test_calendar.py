import math

from engine import RealmEngine
from time_model import Calendar, seconds_to_years


def test_half_years_land_on_expected_days():
    cal = Calendar()
    cal.advance_fraction(0.5)
    assert (cal.year, cal.month, cal.day) == (0, 7, 2)
    cal.advance_fraction(0.5)
    assert (cal.year, cal.month, cal.day) == (1, 1, 1)


def test_one_real_minute_is_about_one_year():
    eng = RealmEngine()
    eng.add_realm("A", population=5)
    eng.track_all()
    eng.run(59)
    cal = eng.calendar
    assert cal.year == 0
    assert cal.month == 12
    assert cal.day >= 24
    eng.run(1.5)
    assert eng.calendar.year >= 1


def test_seconds_to_years_guards_bad_scale():
    assert seconds_to_years(30.0, 60.0) == 0.5
    assert seconds_to_years(30.0, None) == 0.5
    assert seconds_to_years(30.0, 0) == 0.5
    assert seconds_to_years(30.0, -5) == 0.5
    assert seconds_to_years(30.0, math.nan) == 0.5
    assert seconds_to_years(30.0, 120.0) == 0.25
    assert seconds_to_years(-3.0, 60.0) == 0.0


def test_partial_day_survives_save_and_load(tmp_path):
    path = str(tmp_path / "world.json")
    eng = RealmEngine()
    eng.add_realm("A", population=5)
    eng.track_all()
    eng.run(1)
    assert 0.0 < eng.calendar.day_fraction < 1.0
    eng.save_json(path)

    loaded = RealmEngine()
    loaded.load_json(path)
    assert loaded.calendar.day_fraction == eng.calendar.day_fraction
    eng.calendar.advance_fraction(0.01)
    loaded.calendar.advance_fraction(0.01)
    assert loaded.calendar.to_dict() == eng.calendar.to_dict()


def test_out_of_range_day_fraction_is_dropped(tmp_path):
    path = tmp_path / "world.json"
    path.write_text('{"calendar": {"year": 2, "month": 3, "day": 4, "day_fraction": 7.5}}')
    eng = RealmEngine()
    eng.load_json(str(path))
    assert eng.calendar.to_dict() == {"year": 2, "month": 3, "day": 4}
    assert eng.calendar.day_fraction == 0.0
