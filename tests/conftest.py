import json
from datetime import date

import httpx
import pytest

from config import Settings
from models import GenerationRequest
from services.completion_client import CompletionClient
from services.itinerary_generator import ItineraryGenerator
from services.itinerary_store import ItineraryStore

TODAY = date(2026, 3, 1)


def make_plan(days=3, activities_per_day=2, cost=10.0, start=date(2026, 4, 1)):
    """A well-formed model answer as a dict, camelCase like the prompt example."""
    return {
        "summary": "A classic first visit.",
        "suggestions": ["Buy a transit pass", "Carry cash"],
        "weatherInfo": {"summary": "Mild", "chanceOfRain": 25, "temperatureMin": 12, "temperatureMax": 21},
        "days": [
            {
                "dayNumber": n,
                "date": date.fromordinal(start.toordinal() + n - 1).isoformat(),
                "weatherSummary": "Clear",
                "temperatureMin": 13,
                "temperatureMax": 20,
                "chanceOfRain": 10,
                "activities": [
                    {
                        "title": f"Day {n} stop {i}",
                        "description": "Walk around",
                        "location": "Shibuya",
                        "startTime": f"{9 + 2 * i:02d}:00",
                        "endTime": f"{10 + 2 * i:02d}:30",
                        "category": "sightseeing",
                        "estimatedCost": cost * (i + 1),
                        "priority": 4,
                        "tags": ["walk"],
                    }
                    for i in range(activities_per_day)
                ],
            }
            for n in range(1, days + 1)
        ],
        "totalEstimatedCost": 0,
    }


def chat_body(content, **overrides):
    body = {
        "id": "gen-123",
        "object": "chat.completion",
        "created": 1767225600,
        "model": "google/gemini-2.0-flash-001",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
        "usage": {"prompt_tokens": 100, "completion_tokens": 50, "total_tokens": 150},
    }
    body.update(overrides)
    return body


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class ScriptedProvider:
    """httpx transport handler that replays a list of responses (or exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def cfg():
    return Settings(
        OPENROUTER_API_KEY="test-key",
        OPENROUTER_SITE_URL="https://travelmate.example",
        OPENROUTER_SITE_NAME="TravelMate AI",
        COMPLETION_RETRY_BASE_S=1.0,
        COMPLETION_MAX_RETRIES=3,
    )


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def make_client(cfg, sleep):
    def _make(provider: ScriptedProvider) -> CompletionClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(provider))
        return CompletionClient(cfg, http_client=http_client, sleep=sleep)
    return _make


@pytest.fixture
def store():
    return ItineraryStore.in_memory()


@pytest.fixture
def make_generator(cfg, make_client, store):
    def _make(provider: ScriptedProvider) -> ItineraryGenerator:
        return ItineraryGenerator(make_client(provider), store, cfg, today=lambda: TODAY)
    return _make


@pytest.fixture
def tokyo():
    return GenerationRequest.from_payload({
        "destination": "Tokyo",
        "startDate": "2026-04-01",
        "endDate": "2026-04-03",
        "numberOfTravelers": 2,
        "preferences": ["food", "temples"],
        "tripType": "mid-range",
    })
