# services/response_parser.py
"""
Turn a model's free-text answer into a validated GeneratedPlan.

Structural fields (``summary``, ``days``, each day's ``dayNumber`` and
``activities``) must be present or the whole answer is rejected. Descriptive
fields are filled from PLAN_DEFAULTS when missing or unusable.
"""
from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from errors import MalformedResponseError
from models import ActivityCategory, GeneratedPlan

log = logging.getLogger("itinerary")

# Every default the parser may apply lives here.
PLAN_DEFAULTS: Dict[str, Any] = {
    "category": ActivityCategory.OTHER.value,
    "estimated_cost": 0.0,
    "priority": 3,
    "tags": (),
    "text": "",
    "suggestions": (),
    "weather_summary": "",
    "chance_of_rain": 0.0,
    "temperature_min": 20.0,
    "temperature_max": 30.0,
}

_WRAPPER_KEYS = {"itinerary", "plan", "data", "result"}
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")
_TIME_PLACEHOLDERS = {"", "tbd", "unknown", "n/a"}
_CATEGORIES = {c.value for c in ActivityCategory}
_PREVIEW_CHARS = 500


@dataclass(frozen=True)
class ParseOutcome:
    """Tagged result: exactly one of ``plan`` / ``error`` is set."""
    plan: Optional[GeneratedPlan] = None
    error: Optional[MalformedResponseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> GeneratedPlan:
        if self.error is not None:
            raise self.error
        return self.plan


# ---------- JSON extraction ----------

def extract_json_object(raw_text: str | None) -> Dict[str, Any]:
    """
    Slice from the first '{' to the last '}' and decode it. Tolerates prose
    and code fences around the payload. If that slice does not decode (stray
    braces in the commentary), try each '{' in turn and keep the first
    position that decodes to an object.
    """
    if not raw_text or not raw_text.strip():
        raise MalformedResponseError("Model response was empty")

    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start == -1 or end < start:
        raise MalformedResponseError("No JSON object found in model response")

    try:
        return json.loads(raw_text[start:end + 1])
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    idx = start
    while idx != -1:
        try:
            obj, _ = decoder.raw_decode(raw_text, idx)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict):
            log.info("Recovered JSON object by brace scanning", extra={"offset": idx})
            return obj
        idx = raw_text.find("{", idx + 1)

    raise MalformedResponseError("Model response did not contain decodable JSON")


def _unwrap_root(candidate: Any) -> Any:
    if isinstance(candidate, dict) and len(candidate) == 1:
        k = next(iter(candidate.keys()))
        if k in _WRAPPER_KEYS and isinstance(candidate[k], dict):
            return candidate[k]
    return candidate


# ---------- field coercion ----------

def _as_num(x: Any) -> Optional[float]:
    if x is None or isinstance(x, bool):
        return None
    try:
        v = float(x)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None

def _num(x: Any, key: str) -> float:
    v = _as_num(x)
    return float(PLAN_DEFAULTS[key]) if v is None else v

def _percent(x: Any) -> float:
    return max(0.0, min(100.0, _num(x, "chance_of_rain")))

def _text(x: Any) -> str:
    return x.strip() if isinstance(x, str) else PLAN_DEFAULTS["text"]

def _optional_text(x: Any) -> Optional[str]:
    if isinstance(x, str) and x.strip():
        return x.strip()
    return None

def _str_list(x: Any, key: str) -> List[str]:
    if not isinstance(x, list):
        return list(PLAN_DEFAULTS[key])
    return [str(item).strip() for item in x if item is not None and str(item).strip()]

def normalize_time(val: Any) -> Optional[str]:
    """'9:00', '09:00', '09:00:00' -> '09:00'; '24:00' -> '23:59'; junk -> None."""
    if not isinstance(val, str):
        return None
    s = val.strip().lower()
    if s in _TIME_PLACEHOLDERS:
        return None
    m = _TIME_RE.match(s)
    if not m:
        return None
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours == 24 and minutes == 0:
        return "23:59"
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"

def normalize_category(val: Any) -> str:
    if isinstance(val, str) and val.strip().lower() in _CATEGORIES:
        return val.strip().lower()
    return PLAN_DEFAULTS["category"]

def _priority(val: Any) -> int:
    v = _as_num(val)
    if v is None:
        return PLAN_DEFAULTS["priority"]
    return max(1, min(5, int(round(v))))

def _cost(val: Any) -> float:
    return max(0.0, _num(val, "estimated_cost"))

def _day_number(val: Any) -> Optional[int]:
    v = _as_num(val)
    if v is None or v != int(v):
        return None
    return int(v)

def _day_date(val: Any, day_number: int, start_date: Optional[date]) -> Optional[date]:
    """The trip calendar wins over whatever date the model wrote."""
    given = None
    if isinstance(val, str):
        try:
            given = date.fromisoformat(val.strip()[:10])
        except ValueError:
            given = None
    if start_date is None:
        return given
    derived = start_date + timedelta(days=day_number - 1)
    if given is not None and given != derived:
        log.info("Replacing model day date", extra={"day_number": day_number, "model_date": given.isoformat()})
    return derived


# ---------- normalization ----------

def _normalize_activity(a: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "title": _text(a.get("title")),
        "description": _text(a.get("description")),
        "location": _text(a.get("location")),
        "start_time": normalize_time(a.get("startTime")),
        "end_time": normalize_time(a.get("endTime")),
        "category": normalize_category(a.get("category")),
        "estimated_cost": _cost(a.get("estimatedCost")),
        "priority": _priority(a.get("priority")),
        "tags": _str_list(a.get("tags"), "tags"),
        "notes": _optional_text(a.get("notes")),
        "booking_url": _optional_text(a.get("bookingUrl")),
        "contact_info": _optional_text(a.get("contactInfo")),
    }

def _normalize_day(position: int, day: Any, start_date: Optional[date]) -> Dict[str, Any]:
    if not isinstance(day, dict):
        raise MalformedResponseError(f"days[{position}] is not an object")
    day_number = _day_number(day.get("dayNumber"))
    if day_number is None:
        raise MalformedResponseError(f"days[{position}] is missing 'dayNumber'")
    expected = position + 1
    if day_number != expected:
        raise MalformedResponseError(
            f"days[{position}] has dayNumber {day_number}; expected {expected} (gap or duplicate)"
        )
    activities = day.get("activities")
    if not isinstance(activities, list):
        raise MalformedResponseError(f"days[{position}] is missing an 'activities' list")

    clean_acts = []
    for a in activities:
        if not isinstance(a, dict):
            log.warning("Skipping non-object activity", extra={"day_number": day_number})
            continue
        clean_acts.append(_normalize_activity(a))

    return {
        "day_number": day_number,
        "date": _day_date(day.get("date"), day_number, start_date),
        "weather_summary": _text(day.get("weatherSummary")) or PLAN_DEFAULTS["weather_summary"],
        "temperature_min": _num(day.get("temperatureMin"), "temperature_min"),
        "temperature_max": _num(day.get("temperatureMax"), "temperature_max"),
        "chance_of_rain": _percent(day.get("chanceOfRain")),
        "activities": clean_acts,
    }

def _normalize_weather(w: Any) -> Dict[str, Any]:
    if not isinstance(w, dict):
        w = {}
    return {
        "summary": _text(w.get("summary")) or PLAN_DEFAULTS["weather_summary"],
        "chance_of_rain": _percent(w.get("chanceOfRain")),
        "temperature_min": _num(w.get("temperatureMin"), "temperature_min"),
        "temperature_max": _num(w.get("temperatureMax"), "temperature_max"),
    }

def normalize_plan(candidate: Any, start_date: Optional[date] = None) -> Dict[str, Any]:
    candidate = _unwrap_root(candidate)
    if not isinstance(candidate, dict):
        raise MalformedResponseError("Model response root is not a JSON object")

    summary = candidate.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise MalformedResponseError("Model response is missing 'summary'")

    days = candidate.get("days")
    if not isinstance(days, list) or not days:
        raise MalformedResponseError("Model response is missing a non-empty 'days' list")

    total = _as_num(candidate.get("totalEstimatedCost"))
    return {
        "summary": summary.strip(),
        "suggestions": _str_list(candidate.get("suggestions"), "suggestions"),
        "weather_info": _normalize_weather(candidate.get("weatherInfo")),
        "days": [_normalize_day(i, d, start_date) for i, d in enumerate(days)],
        "total_estimated_cost": max(0.0, total) if total is not None else None,
    }


# ---------- public API ----------

def try_parse(raw_text: str | None, start_date: Optional[date] = None) -> ParseOutcome:
    try:
        candidate = extract_json_object(raw_text)
        plan = GeneratedPlan.model_validate(normalize_plan(candidate, start_date))
    except MalformedResponseError as e:
        log.warning(
            "Model response rejected: %s", e.detail,
            extra={"preview": (raw_text or "")[:_PREVIEW_CHARS]},
        )
        return ParseOutcome(error=e)
    except PydanticValidationError as e:
        err = MalformedResponseError(f"Model response failed plan validation: {e.error_count()} error(s)")
        err.__cause__ = e
        log.warning(
            "Model response failed plan validation", exc_info=True,
            extra={"preview": (raw_text or "")[:_PREVIEW_CHARS]},
        )
        return ParseOutcome(error=err)

    log.info("Model response parsed", extra={
        "days": len(plan.days),
        "activities_total": sum(len(d.activities) for d in plan.days),
    })
    return ParseOutcome(plan=plan)


def parse(raw_text: str | None, start_date: Optional[date] = None) -> GeneratedPlan:
    """Raise MalformedResponseError unless ``raw_text`` holds a usable plan."""
    return try_parse(raw_text, start_date).unwrap()
