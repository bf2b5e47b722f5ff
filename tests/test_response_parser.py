import json
from datetime import date

import pytest

from conftest import make_plan
from errors import MalformedResponseError
from models import ActivityCategory
from services.response_parser import (
    PLAN_DEFAULTS,
    extract_json_object,
    normalize_time,
    parse,
    try_parse,
)


class TestExtraction:
    def test_noise_around_payload_is_ignored(self):
        raw = json.dumps(make_plan())
        noisy = "Sure! Here is your itinerary:\n```json\n" + raw + "\n```\nEnjoy your trip!"
        assert parse(noisy) == parse(raw)

    def test_no_braces(self):
        with pytest.raises(MalformedResponseError):
            extract_json_object("I cannot help with that.")

    def test_empty_text(self):
        with pytest.raises(MalformedResponseError):
            extract_json_object("   ")

    def test_stray_brace_in_trailing_prose_falls_back_to_scanning(self):
        raw = json.dumps(make_plan(days=2))
        text = raw + "\nNote: prices use {approximate} rates }"
        plan = parse(text)
        assert len(plan.days) == 2

    def test_wrapper_key_is_unwrapped(self):
        raw = json.dumps({"itinerary": make_plan(days=2)})
        assert len(parse(raw).days) == 2


class TestStructuralRejections:
    def test_missing_summary(self):
        body = make_plan()
        del body["summary"]
        outcome = try_parse(json.dumps(body))
        assert not outcome.ok
        assert "summary" in outcome.error.detail

    def test_empty_days(self):
        body = make_plan()
        body["days"] = []
        with pytest.raises(MalformedResponseError):
            parse(json.dumps(body))

    def test_days_not_a_list(self):
        body = make_plan()
        body["days"] = {"1": {}}
        with pytest.raises(MalformedResponseError):
            parse(json.dumps(body))

    def test_missing_day_number(self):
        body = make_plan()
        del body["days"][1]["dayNumber"]
        with pytest.raises(MalformedResponseError, match="dayNumber"):
            parse(json.dumps(body))

    def test_gap_in_day_numbers(self):
        body = make_plan()
        body["days"][2]["dayNumber"] = 5
        with pytest.raises(MalformedResponseError, match="gap or duplicate"):
            parse(json.dumps(body))

    def test_duplicate_day_numbers(self):
        body = make_plan()
        body["days"][1]["dayNumber"] = 1
        with pytest.raises(MalformedResponseError):
            parse(json.dumps(body))

    def test_unwrap_raises_the_captured_error(self):
        outcome = try_parse("nothing here")
        with pytest.raises(MalformedResponseError):
            outcome.unwrap()


class TestDefaults:
    def test_bare_activity_is_filled_from_defaults(self):
        body = make_plan(days=2, activities_per_day=1)
        body["days"][0]["activities"] = [{"title": "Mystery stop"}]
        act = parse(json.dumps(body)).days[0].activities[0]
        assert act.category == ActivityCategory.OTHER
        assert act.estimated_cost == PLAN_DEFAULTS["estimated_cost"]
        assert act.priority == PLAN_DEFAULTS["priority"]
        assert act.tags == []
        assert act.start_time is None
        assert act.description == ""

    def test_unknown_category_becomes_other(self):
        body = make_plan(days=2, activities_per_day=1)
        body["days"][0]["activities"][0]["category"] = "museum"
        assert parse(json.dumps(body)).days[0].activities[0].category == ActivityCategory.OTHER

    def test_missing_weather_uses_neutral_defaults(self):
        body = make_plan(days=2)
        del body["weatherInfo"]
        for day in body["days"]:
            for key in ("weatherSummary", "temperatureMin", "temperatureMax", "chanceOfRain"):
                day.pop(key)
        plan = parse(json.dumps(body))
        assert plan.weather_info.temperature_min == 20.0
        assert plan.weather_info.temperature_max == 30.0
        assert plan.weather_info.chance_of_rain == 0.0
        assert plan.days[0].temperature_min == 20.0
        assert plan.days[1].chance_of_rain == 0.0

    def test_priority_and_cost_are_clamped(self):
        body = make_plan(days=2, activities_per_day=1)
        body["days"][0]["activities"][0].update({"priority": 9, "estimatedCost": -15})
        act = parse(json.dumps(body)).days[0].activities[0]
        assert act.priority == 5
        assert act.estimated_cost == 0.0

    def test_missing_date_is_derived_from_start(self):
        body = make_plan(days=3)
        for day in body["days"]:
            del day["date"]
        plan = parse(json.dumps(body), start_date=date(2026, 4, 1))
        assert [d.date for d in plan.days] == [date(2026, 4, 1), date(2026, 4, 2), date(2026, 4, 3)]

    def test_copied_example_dates_are_replaced_by_trip_calendar(self):
        body = make_plan(days=2)
        for day in body["days"]:
            day["date"] = "2024-01-01"
        plan = parse(json.dumps(body), start_date=date(2026, 4, 1))
        assert [d.date for d in plan.days] == [date(2026, 4, 1), date(2026, 4, 2)]

    def test_model_date_kept_without_start(self):
        body = make_plan(days=2)
        body["days"][0]["date"] = "2024-01-01"
        assert parse(json.dumps(body)).days[0].date == date(2024, 1, 1)

    def test_non_object_activities_are_skipped(self):
        body = make_plan(days=2, activities_per_day=2)
        body["days"][0]["activities"].append("lunch somewhere")
        assert len(parse(json.dumps(body)).days[0].activities) == 2


class TestNormalizeTime:
    @pytest.mark.parametrize("raw,expected", [
        ("9:00", "09:00"),
        ("09:00:00", "09:00"),
        ("24:00", "23:59"),
        ("TBD", None),
        ("25:10", None),
        (None, None),
    ])
    def test_values(self, raw, expected):
        assert normalize_time(raw) == expected
