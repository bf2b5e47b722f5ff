import pytest

from config import Settings
from errors import NotFoundOrForbiddenError, UpstreamError, ValidationError
from models import GenerationRequest, TripType


def payload(**overrides):
    base = {
        "destination": "Tokyo",
        "startDate": "2026-04-01",
        "endDate": "2026-04-03",
        "numberOfTravelers": 2,
    }
    base.update(overrides)
    return base


class TestGenerationRequest:
    def test_defaults(self):
        req = GenerationRequest.from_payload(payload(preferences=None))
        assert req.trip_type == TripType.MID_RANGE
        assert req.preferences == []
        assert req.day_count == 3

    def test_accepts_snake_case_too(self):
        req = GenerationRequest.from_payload({
            "destination": "Tokyo",
            "start_date": "2026-04-01",
            "end_date": "2026-04-02",
            "number_of_travelers": 1,
        })
        assert req.day_count == 2

    @pytest.mark.parametrize("overrides", [
        {"endDate": "2026-04-01"},
        {"endDate": "2026-03-30"},
        {"endDate": "2026-05-02"},
        {"numberOfTravelers": 0},
        {"numberOfTravelers": 51},
        {"destination": "   "},
        {"tripType": "backpacker"},
        {"unexpected": True},
    ])
    def test_invalid_input_is_a_validation_error(self, overrides):
        with pytest.raises(ValidationError):
            GenerationRequest.from_payload(payload(**overrides))

    def test_validation_detail_names_the_field(self):
        with pytest.raises(ValidationError) as exc:
            GenerationRequest.from_payload(payload(numberOfTravelers=0))
        assert "numberOfTravelers" in exc.value.detail


class TestErrors:
    def test_to_dict_carries_kind_and_detail_only(self):
        err = UpstreamError("Completion provider error: boom", status=429, error_type="rate_limit", code="429")
        assert err.to_dict() == {"kind": "upstream_error", "detail": "Completion provider error: boom"}

    def test_not_found_has_fixed_message(self):
        assert NotFoundOrForbiddenError().status_code == 404
        assert "permission" in NotFoundOrForbiddenError().detail


class TestSettings:
    def test_defaults(self):
        cfg = Settings(OPENROUTER_API_KEY="k")
        assert cfg.OPENROUTER_BASE_URL == "https://openrouter.ai/api/v1"
        assert cfg.OPENROUTER_MODEL == "google/gemini-2.0-flash-001"
        assert cfg.COMPLETION_TIMEOUT_S == 30.0

    def test_production_rejects_placeholder_key(self):
        with pytest.raises(ValueError):
            Settings(APP_ENV="production", OPENROUTER_API_KEY="your-openrouter-api-key-here")

    def test_debug_forces_debug_level(self):
        assert Settings(DEBUG=True, LOG_LEVEL="warning").log_level == "DEBUG"
